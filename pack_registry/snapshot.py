"""
JSON files used to persist registry state between restarts.

Snapshots are whole documents replaced atomically. Journals are JSON-lines
files that only ever grow by one line per write.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, List, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON to a temp file next to ``path`` and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.parent / f".{path.name}.tmp-{uuid4().hex}"
    try:
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(data, handle, sort_keys=True)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def read_json(path: Path) -> Optional[Any]:
    """Return the decoded JSON document, or None if the file does not exist."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError:
        return None
    except json.JSONDecodeError:
        logger.error(f"Unreadable snapshot: {path}")
        raise


def append_json_line(path: Path, data: Any) -> None:
    """
    Append one JSON document as a line and fsync it.

    The line goes out in a single ``write`` on an ``O_APPEND`` descriptor, so
    concurrent appenders never interleave within a line.
    """
    line = (json.dumps(data, sort_keys=True) + "\n").encode("utf-8")
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
    try:
        written = os.write(fd, line)
        if written != len(line):
            raise OSError(f"Short write to journal {path}: {written} of {len(line)} bytes")
        os.fsync(fd)
    finally:
        os.close(fd)


def read_json_lines(path: Path) -> List[Any]:
    """
    Return every document of a journal, or an empty list if there is none.

    A torn last line (crash during an append) is dropped; a bad line
    anywhere else means the journal cannot be trusted and is an error.
    """
    try:
        with open(path, "r", encoding="utf-8") as handle:
            lines = handle.read().splitlines()
    except FileNotFoundError:
        return []

    entries = []
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            if number == len(lines):
                logger.warning(f"Dropping torn last line {number} of journal {path}")
                break
            logger.error(f"Unreadable journal line {number}: {path}")
            raise
    return entries
