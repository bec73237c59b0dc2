"""
Maven metadata synthesis.

``maven-metadata.xml`` at the artifact level is never stored. It is rebuilt
on every request from the versions published for the artifact, so it cannot
drift from what the registry actually holds.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

FILE_METADATA = "maven-metadata.xml"

VERSION_SUFFIX_SNAPSHOT = "-SNAPSHOT"

LAST_UPDATED_FORMAT = "%Y%m%d%H%M%S"


def is_snapshot(version: str) -> bool:
    return version.endswith(VERSION_SUFFIX_SNAPSHOT)


def format_last_updated(moment: datetime, timezone_name: str = "UTC") -> str:
    """
    Format a publish time the way Maven clients expect in ``lastUpdated``.

    Args:
        moment: Publish time (naive values are taken as UTC)
        timezone_name: "UTC" or "local" (the server's zone)

    Example:
        >>> format_last_updated(datetime(2024, 3, 5, 7, 8, 9, tzinfo=timezone.utc))
        '20240305070809'
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if timezone_name.lower() == "local":
        moment = moment.astimezone()
    elif timezone_name.upper() == "UTC":
        moment = moment.astimezone(timezone.utc)
    else:
        raise ValueError(f"Unsupported lastUpdated timezone: {timezone_name}")
    return moment.strftime(LAST_UPDATED_FORMAT)


@dataclass
class MavenMetadata:
    group_id: str
    artifact_id: str
    latest: str
    release: Optional[str]
    last_updated: str
    versions: List[str] = field(default_factory=list)

    def to_xml(self) -> bytes:
        root = ET.Element("metadata")
        ET.SubElement(root, "groupId").text = self.group_id
        ET.SubElement(root, "artifactId").text = self.artifact_id
        versioning = ET.SubElement(root, "versioning")
        ET.SubElement(versioning, "latest").text = self.latest
        if self.release is not None:
            ET.SubElement(versioning, "release").text = self.release
        ET.SubElement(versioning, "lastUpdated").text = self.last_updated
        versions = ET.SubElement(versioning, "versions")
        for version in self.versions:
            ET.SubElement(versions, "version").text = version
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def synthesize_metadata(
    group_id: str,
    artifact_id: str,
    version_infos: Sequence[Tuple[str, datetime]],
    timezone_name: str = "UTC",
) -> MavenMetadata:
    """
    Derive the metadata document from an artifact's publish history.

    Args:
        group_id: Dotted group id
        artifact_id: Artifact id
        version_infos: (version, publish time) pairs, oldest publish first
        timezone_name: Zone used for ``lastUpdated``

    Returns:
        MavenMetadata where:
        - latest: most recently published version, snapshots included
        - release: most recently published non-snapshot version, or None
        - last_updated: publish time of ``latest``
        - versions: every version in publish order

    Raises:
        ValueError: if ``version_infos`` is empty
    """
    if not version_infos:
        raise ValueError(f"No versions published for {group_id}:{artifact_id}")

    latest_version, latest_date = version_infos[-1]
    release = None
    for version, _ in reversed(version_infos):
        if not is_snapshot(version):
            release = version
            break

    metadata = MavenMetadata(
        group_id=group_id,
        artifact_id=artifact_id,
        latest=latest_version,
        release=release,
        last_updated=format_last_updated(latest_date, timezone_name),
        versions=[version for version, _ in version_infos],
    )
    logger.debug(
        f"Synthesized metadata for {group_id}:{artifact_id}: "
        f"latest={metadata.latest}, release={metadata.release}, {len(metadata.versions)} versions"
    )
    return metadata
