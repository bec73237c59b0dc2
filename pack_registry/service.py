"""
Maven repository service.

Handles every request below ``/<project>/~maven/``: serving stored files and
synthesized metadata, accepting uploads, and verifying the checksum files
Maven deploys next to each artifact.

Uploads are split in two phases. Content is streamed into the blob store
without holding any lock; only the short index update that points the
coordinate at the new blob runs under the coordinate's named lock.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List, Optional, Type

from .access import AccessPolicy, FeatureGate, check_project, check_subscription
from .blobs import Blob, BlobStore
from .config import Config
from .digest import blob_name, checksum_algorithm, digest_bytes
from .errors import BadRequest, NotFound, PayloadTooLarge, RegistryError
from .events import ListenerRegistry, PackPublished
from .index import PackIndex, PackKey, PackRecord
from .locks import LockRegistry, pack_lock_name
from .metadata import FILE_METADATA, synthesize_metadata
from .packs import MAVEN, get_pack_support, pack_supports
from .resolver import PathKind, is_read, resolve_path
from .validation import validate_hex_digest, validate_project

logger = logging.getLogger(__name__)

CONTENT_TYPE_XML = "application/xml"
CONTENT_TYPE_JAR = "application/java-archive"
CONTENT_TYPE_TEXT = "text/plain"
CONTENT_TYPE_BINARY = "application/octet-stream"


def content_type_of(file_name: str) -> str:
    if file_name.endswith(".xml"):
        return CONTENT_TYPE_XML
    if file_name.endswith(".jar"):
        return CONTENT_TYPE_JAR
    return CONTENT_TYPE_BINARY


@dataclass
class PackResponse:
    """
    What the HTTP layer should send back.

    Exactly one of ``body`` or ``blob_path`` is set when there is content;
    both are None for status-only responses (HEAD, uploads).
    """

    status: int
    body: Optional[bytes] = None
    blob_path: Optional[Path] = None
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    last_modified: Optional[datetime] = None


def _text(value: str) -> PackResponse:
    body = value.encode("utf-8")
    return PackResponse(200, body=body, content_type=CONTENT_TYPE_TEXT, content_length=len(body))


class MavenService:
    def __init__(
        self,
        store: BlobStore,
        index: PackIndex,
        locks: LockRegistry,
        cfg: Config,
        access: AccessPolicy,
        gate: FeatureGate,
        listeners: ListenerRegistry,
    ):
        self.store = store
        self.index = index
        self.locks = locks
        self.config = cfg
        self.access = access
        self.gate = gate
        self.listeners = listeners

    # -------------------------------
    # Dispatch
    # -------------------------------

    def service(
        self,
        method: str,
        project: str,
        path: str,
        stream: Optional[BinaryIO] = None,
        user: Optional[str] = None,
        build_id: Optional[int] = None,
    ) -> PackResponse:
        """
        Handle one repository request.

        Args:
            method: HTTP method; GET and HEAD read, anything else writes
            project: Project owning the repository
            path: Path below the repository root
            stream: Request body for writes
            user: Publishing identity, None for anonymous requests
            build_id: Build that produced the upload, if any

        Raises:
            RegistryError: carrying the status and message to send back
        """
        check_subscription(self.gate)
        validate_project(project)
        resolved = resolve_path(path)
        reading = is_read(method)
        is_get = method.upper() == "GET"

        logger.info(
            f"Maven request: project='{project}', path='{path}', method={method}, kind={resolved.kind.value}"
        )

        if resolved.kind in (PathKind.VERSIONED_METADATA, PathKind.ARTIFACT_FILE):
            key = PackKey(project, MAVEN, resolved.group_id, resolved.artifact_id, resolved.version)
        elif resolved.kind == PathKind.GROUP_FILE:
            key = PackKey(project, MAVEN, resolved.group_id)
        else:
            self._check_project(project, user, write=not reading)
            records = self.index.query_by_ga_with_v(project, MAVEN, resolved.group_id, resolved.artifact_id)
            if records:
                return self._serve_metadata(resolved.group_id, resolved.artifact_id, records,
                                            resolved.file_name, method)
            # No versions: this is a plugin group stored as plain files
            key = PackKey(project, MAVEN, resolved.fallback_group_id)

        if reading:
            return self.serve_blob(key, resolved.file_name, is_get, user)
        return self.upload_blob(key, resolved.file_name, stream, user, build_id)

    def _check_project(self, project: str, user: Optional[str], write: bool) -> None:
        check_project(self.gate, self.access, project, user, write)

    def check_version(self, project: str) -> None:
        """Answer the version check sent to the repository root."""
        check_subscription(self.gate)
        validate_project(project)
        logger.debug(f"Version check: project='{project}'")

    # -------------------------------
    # Read path
    # -------------------------------

    def _serve_metadata(self, group_id: str, artifact_id: str, records: List[PackRecord],
                        file_name: str, method: str) -> PackResponse:
        latest = records[-1]
        if not is_read(method):
            # Maven uploads metadata as its last deploy step; it is regenerated
            # on read, so the upload only signals that the pack is published
            if file_name == FILE_METADATA:
                self.listeners.post(PackPublished(latest))
            return PackResponse(200)

        if method.upper() == "HEAD":
            return PackResponse(200, last_modified=latest.publish_date)

        metadata = synthesize_metadata(
            group_id,
            artifact_id,
            [(record.version, record.publish_date) for record in records],
            self.config.LAST_UPDATED_TIMEZONE,
        )
        body = metadata.to_xml()
        algorithm = checksum_algorithm(file_name)
        if algorithm is not None:
            response = _text(digest_bytes(body, algorithm))
        else:
            response = PackResponse(200, body=body, content_type=CONTENT_TYPE_XML, content_length=len(body))
        response.last_modified = latest.publish_date
        return response

    def serve_blob(self, key: PackKey, file_name: str, is_get: bool, user: Optional[str] = None) -> PackResponse:
        """
        Serve a stored file or one of its checksums.

        Reads take no lock: a concurrent upload is seen either fully applied
        or not at all.
        """
        self._check_project(key.project, user, write=False)

        pack = self.index.find(key)
        if pack is None:
            raise NotFound("Unknown GAV")
        name = blob_name(file_name)
        sha256 = pack.blobs.get(name)
        if sha256 is None:
            raise NotFound("Unknown file")

        if not is_get:
            return PackResponse(200, last_modified=pack.publish_date)

        algorithm = checksum_algorithm(file_name)
        if algorithm == "sha256":
            response = _text(sha256)
        else:
            blob = self._load_blob(key.project, sha256, NotFound, "Missing file", "Invalid file")
            if algorithm is not None:
                response = _text(self.store.compute_secondary_digest(blob, algorithm))
            else:
                response = PackResponse(
                    200,
                    blob_path=self.store.path_of(blob),
                    content_type=content_type_of(file_name),
                    content_length=blob.size,
                )
        response.last_modified = pack.publish_date
        logger.info(f"Serving {name} of {key} ({sha256})")
        return response

    def _load_blob(self, project: str, sha256: str, error: Type[RegistryError],
                   missing_message: str, invalid_message: str) -> Blob:
        blob = self.store.get(project, sha256)
        if blob is None:
            raise error(missing_message)
        if not self.store.verify_integrity(blob):
            # The record is gone now; the next upload of this content repairs it
            raise error(invalid_message)
        return blob

    # -------------------------------
    # Write path
    # -------------------------------

    def _read_checksum(self, stream: BinaryIO, algorithm: str) -> str:
        """Read a bounded checksum body and return it as a lowercase hex digest."""
        limit = self.config.MAX_CHECKSUM_SIZE
        chunks = []
        total = 0
        while total < limit:
            chunk = stream.read(limit - total)
            if not chunk:
                break
            chunks.append(chunk)
            total += len(chunk)
        if total >= limit:
            raise PayloadTooLarge("Checksum is too large")
        try:
            text = b"".join(chunks).decode("utf-8").strip()
        except UnicodeDecodeError:
            raise BadRequest("Checksum is not valid UTF-8 text")
        return validate_hex_digest(text, algorithm)

    def upload_blob(
        self,
        key: PackKey,
        file_name: str,
        stream: Optional[BinaryIO],
        user: Optional[str] = None,
        build_id: Optional[int] = None,
    ) -> PackResponse:
        """
        Store an uploaded file, or verify an uploaded checksum file.

        Returns:
            201 for stored content, 200 for a verified checksum
        """
        self._check_project(key.project, user, write=True)
        if stream is None:
            raise BadRequest("No request body")

        lock_name = pack_lock_name(key.project, key.type, key.group_id, key.artifact_id, key.version)
        name = blob_name(file_name)
        algorithm = checksum_algorithm(file_name)

        if algorithm is not None:
            checksum = self._read_checksum(stream, algorithm)
            with self.locks.hold(lock_name), self.index.transaction() as tx:
                pack = tx.find(key)
                if pack is None:
                    raise BadRequest("Unknown GAV to verify checksum")
                sha256 = pack.blobs.get(name)
                if sha256 is None:
                    raise BadRequest("Unknown file to verify checksum")
                blob = self._load_blob(key.project, sha256, BadRequest,
                                       "Missing file to verify checksum", "Invalid file to verify checksum")
                if algorithm == "sha256":
                    actual = sha256
                else:
                    actual = self.store.compute_secondary_digest(blob, algorithm)
                if actual != checksum:
                    logger.warning(f"Checksum verification failed for {name} of {key}: {algorithm}")
                    raise BadRequest("Checksum verification failed")
                tx.create_reference_if_not_exist(key, sha256)
            logger.info(f"Verified {algorithm} of {name} for {key}")
            return PackResponse(200)

        blob = self.store.upload(key.project, stream)
        with self.locks.hold(lock_name), self.index.transaction() as tx:
            pack = tx.find(key) or PackRecord(key=key)
            prev_sha256 = pack.blobs.get(name)
            pack = replace(
                pack.with_blob(name, blob.sha256),
                build_id=build_id,
                user=user,
                publish_date=datetime.now(timezone.utc),
            )
            tx.put(pack)
            tx.create_reference_if_not_exist(key, blob.sha256)
            if (prev_sha256 is not None and prev_sha256 != blob.sha256
                    and prev_sha256 not in pack.blobs.values()):
                tx.delete_reference(key, prev_sha256)
        logger.info(f"Published {name} for {key} ({blob.sha256})")
        return PackResponse(201)

    # -------------------------------
    # Listing
    # -------------------------------

    def list_packs(self, project: str, user: Optional[str] = None, pack_type: Optional[str] = None) -> List[dict]:
        """Describe every record of a project, oldest publish first."""
        check_subscription(self.gate)
        validate_project(project)
        self._check_project(project, user, write=False)
        if pack_type is not None:
            try:
                get_pack_support(pack_type)
            except KeyError:
                raise BadRequest(f"Unknown pack type: {pack_type}")

        packs = []
        for record in self.index.query(project, pack_type):
            packs.append({
                "type": record.type,
                "reference": get_pack_support(record.type).get_reference(record),
                "groupId": record.group_id,
                "artifactId": record.artifact_id,
                "version": record.version,
                "publishDate": record.publish_date.isoformat() if record.publish_date else None,
                "buildId": record.build_id,
                "user": record.user,
                "blobs": dict(record.blobs),
            })
        return packs

    def list_pack_types(self) -> List[dict]:
        return [support.to_dict() for support in pack_supports()]
