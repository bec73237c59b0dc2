"""
Maven package registry backed by a deduplicating blob store.

Serves Maven repositories per project. Uploaded files are stored once per
project by sha256 and referenced from the coordinates that publish them;
artifact-level maven-metadata.xml is synthesized from the published versions.

Features:
    - Maven repository layout (GAV files, snapshot and plugin-group metadata)
    - Content-addressable, deduplicated blob storage with streaming uploads
    - md5/sha1/sha256/sha512 checksum serving and verification
    - Per-coordinate write serialization with atomic index updates
    - Self-healing of blobs whose stored size no longer matches
    - Configurable via environment variables

Endpoints:
    - GET/HEAD /<project>/~maven/<path> - Download file, checksum or metadata
    - PUT/POST /<project>/~maven/<path> - Upload file or verify checksum
    - GET /<project>/~packs - List published packs

Environment Variables:
    LOG_LEVEL, FLASK_HOST, FLASK_PORT, DATA_DIR, MAX_CHECKSUM_SIZE,
    UPLOAD_CHUNK_SIZE, LAST_UPDATED_TIMEZONE, PACK_PROJECTS,
    SUBSCRIPTION_ACTIVE, READ_ONLY_PROJECTS

Example:
    $ LOG_LEVEL=DEBUG DATA_DIR=/var/lib/packs python app.py
    $ mvn deploy -DaltDeploymentRepository=local::http://localhost:6443/acme/~maven/
"""

import logging

from pack_registry.config import config
from pack_registry.routes import create_app

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the registry application."""
    debug_mode = logger.getEffectiveLevel() == logging.DEBUG
    app = create_app(config)
    logger.info(f"Starting package registry service on {config.FLASK_HOST}:{config.FLASK_PORT}")
    logger.info(f"Configuration: {config}")
    logger.info(f"Log level: {logging.getLevelName(logger.getEffectiveLevel())}")
    if debug_mode:
        logger.info("Flask debug mode enabled")
    app.run(host=config.FLASK_HOST, port=config.FLASK_PORT, debug=debug_mode, threaded=True)


if __name__ == "__main__":
    main()
