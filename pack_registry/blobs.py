"""
Content-addressable blob storage for package files.

Blobs are scoped to a project and addressed by the sha256 of their content.
Each blob lives at ``<root>/<project>/<hh>/<sha256>`` with a ``<sha256>.json``
record next to it holding the size that was observed when it was committed.
The record is what makes a blob "exist"; the size lets reads detect content
that was truncated or replaced behind the registry's back.
"""

import hashlib
import logging
import os
import shutil
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Optional, Union
from uuid import uuid4

from .digest import CHUNK_SIZE, digest_stream
from .snapshot import read_json, write_json_atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Blob:
    project: str
    sha256: str
    size: int
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "project": self.project,
            "sha256": self.sha256,
            "size": self.size,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Blob":
        return cls(
            project=data["project"],
            sha256=data["sha256"],
            size=int(data["size"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


class BlobStore:
    def __init__(self, root: Union[str, Path], chunk_size: int = CHUNK_SIZE) -> None:
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.tmp_dir = self.root / ".tmp"
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        self.chunk_size = chunk_size
        self._mutex = threading.Lock()

    def _path(self, project: str, sha256: str) -> Path:
        return self.root / project / sha256[:2] / sha256

    def _record_path(self, project: str, sha256: str) -> Path:
        return self.root / project / sha256[:2] / f"{sha256}.json"

    def path_of(self, blob: Blob) -> Path:
        return self._path(blob.project, blob.sha256)

    def get(self, project: str, sha256: str) -> Optional[Blob]:
        """Look up a blob record on disk; records are replaced atomically."""
        data = read_json(self._record_path(project, sha256))
        if data is None:
            return None
        return Blob.from_dict(data)

    def exists(self, project: str, sha256: str) -> bool:
        return self.get(project, sha256) is not None

    def upload(self, project: str, stream: BinaryIO) -> Blob:
        """
        Stream content into the store and return its blob.

        Bytes go to a temporary file while sha256 is computed incrementally,
        so payloads of any size are handled without buffering them. If the
        project already holds an intact blob with the same digest, the new
        bytes are discarded and the existing blob is returned.

        An exception raised by the stream (client disconnect) leaves nothing
        behind but the removed temporary file.
        """
        tmp_path = self.tmp_dir / f"upload-{uuid4().hex}.tmp"
        h = hashlib.sha256()
        size = 0
        try:
            with open(tmp_path, "wb") as handle:
                for chunk in iter(lambda: stream.read(self.chunk_size), b""):
                    h.update(chunk)
                    handle.write(chunk)
                    size += len(chunk)
                handle.flush()
                os.fsync(handle.fileno())
            sha256 = h.hexdigest()

            existing = self.get(project, sha256)
            if existing is not None and self._size_on_disk(existing) == existing.size:
                logger.debug(f"Blob already stored: {project}/{sha256}, discarding upload")
                return existing

            path = self._path(project, sha256)
            path.parent.mkdir(parents=True, exist_ok=True)
            blob = Blob(project=project, sha256=sha256, size=size, created_at=datetime.now(timezone.utc))
            with self._mutex:
                os.replace(tmp_path, path)
                write_json_atomic(self._record_path(project, sha256), blob.to_dict())
            logger.info(f"Stored blob: {project}/{sha256} ({size} bytes)")
            return blob
        finally:
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)

    def _size_on_disk(self, blob: Blob) -> Optional[int]:
        try:
            return self.path_of(blob).stat().st_size
        except FileNotFoundError:
            return None

    def verify_integrity(self, blob: Blob) -> bool:
        """
        Check that the stored file still has the recorded length.

        A mismatch deletes the blob so the next upload of the same content
        starts from a clean slate.
        """
        actual = self._size_on_disk(blob)
        if actual == blob.size:
            return True
        logger.warning(
            f"Corrupted blob {blob.project}/{blob.sha256}: "
            f"recorded {blob.size} bytes, found {actual}; deleting"
        )
        self.delete(blob)
        return False

    def open(self, blob: Blob) -> BinaryIO:
        return open(self.path_of(blob), "rb")

    def download(self, blob: Blob, sink: BinaryIO) -> None:
        with self.open(blob) as handle:
            shutil.copyfileobj(handle, sink, self.chunk_size)

    def compute_secondary_digest(self, blob: Blob, algorithm: str) -> str:
        """Re-read the blob and hash it with md5, sha1 or sha512."""
        logger.debug(f"Computing {algorithm} of {blob.project}/{blob.sha256}")
        with self.open(blob) as handle:
            return digest_stream(handle, algorithm, self.chunk_size)

    def delete(self, blob: Blob) -> None:
        with self._mutex:
            self._record_path(blob.project, blob.sha256).unlink(missing_ok=True)
            self.path_of(blob).unlink(missing_ok=True)
        logger.info(f"Deleted blob: {blob.project}/{blob.sha256}")
