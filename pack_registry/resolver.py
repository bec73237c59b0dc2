"""
Maven repository path resolution.

Turns the path below ``/<project>/~maven/`` into package coordinates and
decides which kind of request it is. Maven lays files out as::

    <group segments>/<artifactId>/<version>/<fileName>
    <group segments>/<artifactId>/maven-metadata.xml
    <group segments>/<artifactId>/<version>-SNAPSHOT/maven-metadata.xml
    <group segments>/maven-metadata.xml            (plugin group metadata)
"""

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import BadRequest
from .metadata import FILE_METADATA, is_snapshot
from .validation import validate_segments

logger = logging.getLogger(__name__)

READ_METHODS = ("GET", "HEAD")


class PathKind(enum.Enum):
    # maven-metadata.xml inside a snapshot version directory
    VERSIONED_METADATA = "versioned-metadata"
    # file stored directly under a group id, no artifact or version
    GROUP_FILE = "group-file"
    # maven-metadata.xml of an artifact, synthesized from its versions
    ARTIFACT_METADATA = "artifact-metadata"
    ARTIFACT_FILE = "artifact-file"


@dataclass(frozen=True)
class PackPath:
    kind: PathKind
    group_id: str
    artifact_id: Optional[str]
    version: Optional[str]
    file_name: str

    @property
    def fallback_group_id(self) -> str:
        """Group id used when an artifact-level metadata path has no versions."""
        return f"{self.group_id}.{self.artifact_id}"


def is_read(method: str) -> bool:
    return method.upper() in READ_METHODS


def split_path(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def _group_id(segments: List[str]) -> str:
    if not segments:
        raise BadRequest("No group id")
    return ".".join(segments)


def _group_id_and_artifact_id(segments: List[str]) -> Tuple[str, str]:
    if not segments:
        raise BadRequest("No artifact id")
    return _group_id(segments[:-1]), segments[-1]


def resolve_path(path: str) -> PackPath:
    """
    Resolve a Maven repository path into coordinates.

    Args:
        path: Slash separated path below the repository root

    Returns:
        PackPath describing the request

    Raises:
        BadRequest: 400 if the file name, the GAV segments, the artifact id
            or the group id is missing, or a segment is malformed

    Examples:
        >>> resolve_path("org/acme/demo/1.0/demo-1.0.jar").kind
        <PathKind.ARTIFACT_FILE: 'artifact-file'>
        >>> resolve_path("org/acme/demo/maven-metadata.xml").group_id
        'org.acme'
    """
    segments = split_path(path)
    if not segments:
        raise BadRequest("No file name")
    validate_segments(segments)

    file_name = segments[-1]
    segments = segments[:-1]
    if not segments:
        raise BadRequest("No GAV info")
    prev_segment = segments[-1]
    segments = segments[:-1]

    if file_name.startswith(FILE_METADATA):
        if is_snapshot(prev_segment):
            group_id, artifact_id = _group_id_and_artifact_id(segments)
            resolved = PackPath(PathKind.VERSIONED_METADATA, group_id, artifact_id, prev_segment, file_name)
        elif not segments:
            resolved = PackPath(PathKind.GROUP_FILE, prev_segment, None, None, file_name)
        else:
            resolved = PackPath(PathKind.ARTIFACT_METADATA, _group_id(segments), prev_segment, None, file_name)
    else:
        group_id, artifact_id = _group_id_and_artifact_id(segments)
        resolved = PackPath(PathKind.ARTIFACT_FILE, group_id, artifact_id, prev_segment, file_name)

    logger.debug(f"Resolved '{path}' to {resolved}")
    return resolved
