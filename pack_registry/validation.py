"""
Input validation module for the package registry.

Provides validation functions for project names, path segments and
uploaded checksums.
"""

import logging
import re
from typing import List

from .config import config
from .digest import ALGORITHMS
from .errors import BadRequest

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[a-zA-Z0-9._-]+$")
_HEX_RE = re.compile(r"^[0-9a-f]+$")

# Hex characters in a digest of each algorithm
_HEX_LENGTHS = {"md5": 32, "sha1": 40, "sha256": 64, "sha512": 128}


def validate_project(name: str) -> None:
    """
    Validate project name before it is used as a storage directory.

    Args:
        name: Project name (e.g., "acme" or "my-service")

    Raises:
        BadRequest: 400 if name is invalid

    Validation Rules:
        - Must be 1-{MAX_PROJECT_NAME_LENGTH} characters (configurable)
        - Only alphanumeric characters, dots (.), hyphens (-) and underscores (_)
        - Must not start with a dot

    Security:
        Prevents path traversal out of the blob root.
    """
    if not name or len(name) > config.MAX_PROJECT_NAME_LENGTH:
        logger.warning(f"Invalid project name length: {len(name or '')}")
        raise BadRequest(f"Invalid project name: must be 1-{config.MAX_PROJECT_NAME_LENGTH} characters")

    if not _NAME_RE.match(name) or name.startswith("."):
        logger.warning(f"Invalid project name format: {name}")
        raise BadRequest(
            "Invalid project name: only alphanumeric, dots, hyphens, and underscores allowed, "
            "and must not start with a dot"
        )

    logger.debug(f"Project validated: {name}")


def validate_segments(segments: List[str]) -> None:
    """
    Validate the segments of a registry path.

    Segments only name coordinates and files inside the index, so any
    character Maven accepts in a version (``1.0.0+build.5``) is allowed.

    Raises:
        BadRequest: 400 if a segment is empty, too long, or a relative
            path component
    """
    for segment in segments:
        if not segment or len(segment) > config.MAX_SEGMENT_LENGTH:
            logger.warning(f"Invalid path segment length: {len(segment)}")
            raise BadRequest(f"Invalid path segment: must be 1-{config.MAX_SEGMENT_LENGTH} characters")
        if segment in (".", ".."):
            logger.warning(f"Invalid path segment: {segment}")
            raise BadRequest(f"Invalid path segment: {segment}")


def validate_hex_digest(value: str, algorithm: str) -> str:
    """
    Validate an uploaded checksum and return it in lowercase.

    Args:
        value: Checksum text with surrounding whitespace already stripped
        algorithm: One of md5, sha1, sha256 or sha512

    Raises:
        BadRequest: 400 if the value is not a hex digest of that algorithm
    """
    if algorithm not in ALGORITHMS:
        raise BadRequest(f"Unsupported checksum algorithm: {algorithm}")

    digest = value.lower()
    expected = _HEX_LENGTHS[algorithm]
    if len(digest) != expected or not _HEX_RE.match(digest):
        logger.warning(f"Malformed {algorithm} checksum: {value[:expected + 8]!r}")
        raise BadRequest(f"Invalid {algorithm} checksum: expected {expected} hex characters")
    return digest
