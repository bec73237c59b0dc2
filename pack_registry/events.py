"""
Publish notifications.

Maven clients finish a deploy by uploading ``maven-metadata.xml`` for the
artifact. The registry does not store that document, but treats the upload as
the signal that a pack has been published and posts a ``PackPublished`` event
to whatever listeners the hosting application registered.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List

from .index import PackRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackPublished:
    pack: PackRecord


Listener = Callable[[object], None]


class ListenerRegistry:
    def __init__(self):
        self._listeners: List[Listener] = []

    def register(self, listener: Listener) -> Listener:
        self._listeners.append(listener)
        return listener

    def post(self, event: object) -> None:
        logger.info(f"Posting event: {type(event).__name__}")
        for listener in list(self._listeners):
            listener(event)
