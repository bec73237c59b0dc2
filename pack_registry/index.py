"""
Coordinate and reference index.

The index maps a package coordinate (project, type, groupId, artifactId,
version) to a ``PackRecord`` holding the file name -> sha256 mapping of that
coordinate, and tracks which records reference which blobs.

State is held in an immutable ``_State`` value. Writers stage their changes
in a ``PackTransaction`` and the index installs them by building the next
state and rebinding a single attribute, so readers always see one whole
state or the next, never a mix. When a snapshot path is configured each
commit is journaled to disk before it is installed.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterator, List, Mapping, NamedTuple, Optional, Set

from .snapshot import append_json_line, read_json, read_json_lines, write_json_atomic

logger = logging.getLogger(__name__)


class PackKey(NamedTuple):
    project: str
    type: str
    group_id: str
    artifact_id: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class PackRecord:
    key: PackKey
    blobs: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    publish_date: Optional[datetime] = None
    sequence: int = 0
    build_id: Optional[int] = None
    user: Optional[str] = None

    @property
    def project(self) -> str:
        return self.key.project

    @property
    def type(self) -> str:
        return self.key.type

    @property
    def group_id(self) -> str:
        return self.key.group_id

    @property
    def artifact_id(self) -> Optional[str]:
        return self.key.artifact_id

    @property
    def version(self) -> Optional[str]:
        return self.key.version

    def with_blob(self, file_name: str, sha256: str) -> "PackRecord":
        blobs = dict(self.blobs)
        blobs[file_name] = sha256
        return replace(self, blobs=MappingProxyType(blobs))

    def to_dict(self) -> dict:
        return {
            "key": list(self.key),
            "blobs": dict(self.blobs),
            "publish_date": self.publish_date.isoformat() if self.publish_date else None,
            "sequence": self.sequence,
            "build_id": self.build_id,
            "user": self.user,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PackRecord":
        publish_date = data.get("publish_date")
        return cls(
            key=PackKey(*data["key"]),
            blobs=MappingProxyType(dict(data.get("blobs") or {})),
            publish_date=datetime.fromisoformat(publish_date) if publish_date else None,
            sequence=int(data.get("sequence", 0)),
            build_id=data.get("build_id"),
            user=data.get("user"),
        )


class Reference(NamedTuple):
    pack: PackKey
    sha256: str


class _State(NamedTuple):
    records: Mapping[PackKey, PackRecord]
    references: FrozenSet[Reference]


def _publish_order(record: PackRecord):
    return (record.publish_date or datetime.min.replace(tzinfo=timezone.utc), record.sequence)


def _reference_order(ref: Reference):
    return (tuple(part or "" for part in ref.pack), ref.sha256)


def _reference_to_dict(ref: Reference) -> dict:
    return {"pack": list(ref.pack), "sha256": ref.sha256}


def _reference_from_dict(data: dict) -> Reference:
    return Reference(PackKey(*data["pack"]), data["sha256"])


class PackTransaction:
    """
    Staged changes against a ``PackIndex``.

    Reads see the committed state overlaid with this transaction's own
    changes. Nothing is visible to other threads until the enclosing
    ``PackIndex.transaction()`` block exits without an exception.
    """

    def __init__(self, index: "PackIndex"):
        self._index = index
        self._puts: Dict[PackKey, PackRecord] = {}
        self._added: Set[Reference] = set()
        self._removed: Set[Reference] = set()

    def find(self, key: PackKey) -> Optional[PackRecord]:
        if key in self._puts:
            return self._puts[key]
        return self._index.find(key)

    def put(self, record: PackRecord) -> PackRecord:
        """Stage a record, stamping it with the next publish sequence on commit."""
        self._puts[record.key] = record
        return record

    def has_reference(self, key: PackKey, sha256: str) -> bool:
        ref = Reference(key, sha256)
        if ref in self._removed:
            return False
        return ref in self._added or self._index.has_reference(key, sha256)

    def create_reference_if_not_exist(self, key: PackKey, sha256: str) -> bool:
        """Stage a reference; returns False if it already exists."""
        if self.has_reference(key, sha256):
            return False
        ref = Reference(key, sha256)
        self._removed.discard(ref)
        self._added.add(ref)
        return True

    def delete_reference(self, key: PackKey, sha256: str) -> bool:
        if not self.has_reference(key, sha256):
            return False
        ref = Reference(key, sha256)
        self._added.discard(ref)
        self._removed.add(ref)
        return True

    @property
    def empty(self) -> bool:
        return not (self._puts or self._added or self._removed)

    def _stamp(self, first_sequence: int) -> List[PackRecord]:
        return [
            replace(record, sequence=sequence)
            for sequence, record in enumerate(self._puts.values(), start=first_sequence)
        ]

    def _entry(self, records: List[PackRecord]) -> dict:
        return {
            "records": [record.to_dict() for record in records],
            "added": [_reference_to_dict(ref) for ref in sorted(self._added, key=_reference_order)],
            "removed": [_reference_to_dict(ref) for ref in sorted(self._removed, key=_reference_order)],
        }


def _apply(state: _State, records: List[PackRecord], added, removed) -> _State:
    merged = dict(state.records)
    for record in records:
        merged[record.key] = record
    references = (state.references - frozenset(removed)) | frozenset(added)
    return _State(MappingProxyType(merged), frozenset(references))


class PackIndex:
    """
    In-memory index persisted as a snapshot plus an append-only journal.

    Each commit appends one journal line holding only its own changes, so
    the cost of a write does not grow with the size of the index. On start
    the snapshot is loaded, the journal replayed on top of it, and the
    result folded back into a fresh snapshot.

    Every transaction touches the records and references of a single
    coordinate, and callers hold that coordinate's named lock across the
    whole block. Journal lines of one coordinate therefore appear in commit
    order, while lines of different coordinates touch disjoint keys and may
    replay in any order.
    """

    def __init__(self, snapshot_path=None):
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None
        self.journal_path = (
            self.snapshot_path.with_name(self.snapshot_path.name + ".journal") if self.snapshot_path else None
        )
        self._mutex = threading.Lock()
        self._state = _State(MappingProxyType({}), frozenset())
        self._sequence = 0
        if self.snapshot_path is not None:
            self._load()

    def _load(self) -> None:
        data = read_json(self.snapshot_path) or {}
        records = {}
        for item in data.get("records", []):
            record = PackRecord.from_dict(item)
            records[record.key] = record
        references = frozenset(_reference_from_dict(item) for item in data.get("references", []))
        state = _State(MappingProxyType(records), references)
        sequence = int(data.get("sequence", 0))

        entries = read_json_lines(self.journal_path)
        for entry in entries:
            replayed = [PackRecord.from_dict(item) for item in entry.get("records", [])]
            state = _apply(
                state,
                replayed,
                [_reference_from_dict(item) for item in entry.get("added", [])],
                [_reference_from_dict(item) for item in entry.get("removed", [])],
            )
            sequence = max([sequence] + [record.sequence for record in replayed])

        self._state = state
        self._sequence = sequence
        logger.info(
            f"Loaded pack index: {len(state.records)} records, {len(state.references)} references, "
            f"{len(entries)} journal entries replayed"
        )
        if self.journal_path.exists():
            self.compact()

    def compact(self) -> None:
        """
        Fold the journal into the snapshot.

        Only safe while no transaction is running; the index does this once
        at startup.
        """
        if self.snapshot_path is None:
            return
        state = self._state
        write_json_atomic(
            self.snapshot_path,
            {
                "records": [record.to_dict() for record in state.records.values()],
                "references": [_reference_to_dict(ref) for ref in sorted(state.references, key=_reference_order)],
                "sequence": self._sequence,
            },
        )
        self.journal_path.unlink(missing_ok=True)
        logger.info(f"Compacted pack index into {self.snapshot_path}")

    @contextmanager
    def transaction(self) -> Iterator[PackTransaction]:
        """
        Stage changes and install them atomically when the block exits cleanly.

        The changes are journaled before they become visible. The index
        mutex is held only to reserve publish sequences and to swap in the
        new state.
        """
        tx = PackTransaction(self)
        yield tx
        if tx.empty:
            return

        with self._mutex:
            first_sequence = self._sequence + 1
            self._sequence += len(tx._puts)
        records = tx._stamp(first_sequence)

        if self.journal_path is not None:
            self.journal_path.parent.mkdir(parents=True, exist_ok=True)
            append_json_line(self.journal_path, tx._entry(records))

        with self._mutex:
            self._state = _apply(self._state, records, tx._added, tx._removed)
        logger.debug(f"Pack index committed {len(records)} records up to sequence {self._sequence}")

    # -------------------------------
    # Queries (lock free)
    # -------------------------------

    def find(self, key: PackKey) -> Optional[PackRecord]:
        return self._state.records.get(key)

    def find_by_gav(self, project: str, pack_type: str, group_id: str, artifact_id: str, version: str):
        return self.find(PackKey(project, pack_type, group_id, artifact_id, version))

    def find_by_group_without_av(self, project: str, pack_type: str, group_id: str):
        return self.find(PackKey(project, pack_type, group_id))

    def query_by_ga_with_v(self, project: str, pack_type: str, group_id: str, artifact_id: str) -> List[PackRecord]:
        """Records of every version of an artifact, oldest publish first."""
        records = [
            record
            for key, record in self._state.records.items()
            if key.project == project
            and key.type == pack_type
            and key.group_id == group_id
            and key.artifact_id == artifact_id
            and key.version is not None
        ]
        return sorted(records, key=_publish_order)

    def query(self, project: str, pack_type: Optional[str] = None) -> List[PackRecord]:
        records = [
            record
            for key, record in self._state.records.items()
            if key.project == project and (pack_type is None or key.type == pack_type)
        ]
        return sorted(records, key=_publish_order)

    def has_reference(self, key: PackKey, sha256: str) -> bool:
        return Reference(key, sha256) in self._state.references

    def references_of(self, key: PackKey) -> List[Reference]:
        return sorted((ref for ref in self._state.references if ref.pack == key), key=_reference_order)

    def references_to(self, project: str, sha256: str) -> List[Reference]:
        return sorted(
            (ref for ref in self._state.references if ref.pack.project == project and ref.sha256 == sha256),
            key=_reference_order,
        )

    def __len__(self):
        return len(self._state.records)
