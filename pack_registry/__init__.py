"""
Maven package registry backed by a deduplicating blob store.

Files uploaded to a project are stored once by sha256 and referenced from the
package coordinates (groupId, artifactId, version) that publish them.
Artifact-level maven-metadata.xml is never stored; it is synthesized from the
versions published so far.

Package Formats:
    1. Maven artifacts:
       Path: <group segments>/<artifactId>/<version>/<file>
       Example: org/acme/demo/1.0/demo-1.0.jar

    2. Maven metadata:
       Path: <group segments>/<artifactId>/maven-metadata.xml
       Synthesized from published versions; snapshot and plugin-group
       metadata files are stored like artifacts.

See README.md for full documentation.
"""

__version__ = "0.1.0"

# Import key components for convenience
from .config import Config
from .blobs import Blob, BlobStore
from .index import PackIndex, PackKey, PackRecord, Reference
from .locks import LockRegistry, pack_lock_name
from .metadata import MavenMetadata, synthesize_metadata
from .resolver import PackPath, PathKind, resolve_path
from .service import MavenService, PackResponse
from .routes import create_app

__all__ = [
    "Config",
    "Blob",
    "BlobStore",
    "PackIndex",
    "PackKey",
    "PackRecord",
    "Reference",
    "LockRegistry",
    "pack_lock_name",
    "MavenMetadata",
    "synthesize_metadata",
    "PackPath",
    "PathKind",
    "resolve_path",
    "MavenService",
    "PackResponse",
    "create_app",
]
