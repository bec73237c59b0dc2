"""
Named locks for serializing writes to a single package coordinate.

Locks are created on first use and dropped once no thread holds or waits on
them, so the registry does not grow with the number of coordinates ever seen.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class LockRegistry:
    def __init__(self):
        self._entries: Dict[str, _Entry] = {}
        self._mutex = threading.Lock()

    @contextmanager
    def hold(self, name: str, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the lock called ``name`` for the duration of the block.

        Raises:
            TimeoutError: if ``timeout`` seconds pass without acquiring it
        """
        with self._mutex:
            entry = self._entries.get(name)
            if entry is None:
                entry = self._entries[name] = _Entry()
            entry.users += 1
        try:
            acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
            if not acquired:
                raise TimeoutError(f"Timed out waiting for lock: {name}")
            try:
                logger.debug(f"Lock acquired: {name}")
                yield
            finally:
                entry.lock.release()
                logger.debug(f"Lock released: {name}")
        finally:
            with self._mutex:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[name]

    def __len__(self):
        with self._mutex:
            return len(self._entries)


def pack_lock_name(project: str, pack_type: str, group_id: str, artifact_id=None, version=None) -> str:
    """
    Build the lock name guarding a coordinate's index entries.

    Examples:
        >>> pack_lock_name("acme", "Maven", "org.acme")
        'update-pack:acme:Maven:org.acme'
        >>> pack_lock_name("acme", "Maven", "org.acme", "demo", "1.0")
        'update-pack:acme:Maven:org.acme:demo:1.0'
    """
    name = f"update-pack:{project}:{pack_type}:{group_id}"
    if artifact_id is not None and version is not None:
        name += f":{artifact_id}:{version}"
    return name
