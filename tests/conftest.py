"""Test configuration and fixtures."""

import pytest

from pack_registry.access import AccessPolicy, FeatureGate
from pack_registry.blobs import BlobStore
from pack_registry.config import Config
from pack_registry.events import ListenerRegistry
from pack_registry.index import PackIndex
from pack_registry.locks import LockRegistry
from pack_registry.routes import create_app
from pack_registry.service import MavenService


@pytest.fixture
def cfg(tmp_path) -> Config:
    """Configuration rooted in a per-test data directory."""
    config = Config()
    config.DATA_DIR = str(tmp_path / "data")
    config.UPLOAD_CHUNK_SIZE = 7
    config.MAX_CHECKSUM_SIZE = 1000
    config.LAST_UPDATED_TIMEZONE = "UTC"
    config.PACK_PROJECTS = frozenset()
    config.READ_ONLY_PROJECTS = frozenset()
    config.SUBSCRIPTION_ACTIVE = True
    return config


@pytest.fixture
def store(cfg) -> BlobStore:
    return BlobStore(cfg.blobs_dir, chunk_size=cfg.UPLOAD_CHUNK_SIZE)


@pytest.fixture
def index(cfg) -> PackIndex:
    return PackIndex(cfg.index_path)


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def listeners(events) -> ListenerRegistry:
    registry = ListenerRegistry()
    registry.register(events.append)
    return registry


@pytest.fixture
def service(cfg, store, index, listeners) -> MavenService:
    return MavenService(
        store=store,
        index=index,
        locks=LockRegistry(),
        cfg=cfg,
        access=AccessPolicy(),
        gate=FeatureGate(),
        listeners=listeners,
    )


@pytest.fixture
def app(cfg, listeners):
    app = create_app(cfg, listeners=listeners)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()

