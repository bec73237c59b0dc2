"""
Configuration module for the package registry.

Loads all configuration from environment variables with sensible defaults.
"""

import os


def _split_list(value: str) -> frozenset:
    return frozenset(item.strip() for item in value.split(",") if item.strip())


class Config:
    """
    Registry configuration from environment variables.

    Loads all configuration values from environment variables with sensible defaults.
    All settings can be overridden by setting the corresponding environment variable.
    """

    def __init__(self):
        """
        Initialize configuration from environment variables.

        Environment Variables:
            LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
            FLASK_HOST: Server bind address. Default: 0.0.0.0
            FLASK_PORT: Server bind port. Default: 6443
            DATA_DIR: Root directory for blobs and the index snapshot. Default: ./data
            MAX_CHECKSUM_SIZE: Upper bound for checksum upload bodies in bytes. Default: 1000
            UPLOAD_CHUNK_SIZE: Read size used while streaming uploads. Default: 65536
            LAST_UPDATED_TIMEZONE: Zone of maven-metadata lastUpdated ("UTC" or "local"). Default: UTC
            MAX_PROJECT_NAME_LENGTH: Maximum project name length. Default: 255
            MAX_SEGMENT_LENGTH: Maximum length of a single path segment. Default: 255
            PACK_PROJECTS: Comma-separated projects with package management enabled. Default: all
            SUBSCRIPTION_ACTIVE: Whether the package feature is licensed. Default: true
            READ_ONLY_PROJECTS: Comma-separated projects that reject uploads. Default: none
        """
        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # Server
        self.FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
        self.FLASK_PORT = int(os.getenv("FLASK_PORT", "6443"))

        # Storage
        self.DATA_DIR = os.getenv("DATA_DIR", "./data")
        self.UPLOAD_CHUNK_SIZE = int(os.getenv("UPLOAD_CHUNK_SIZE", "65536"))

        # Maven protocol
        self.MAX_CHECKSUM_SIZE = int(os.getenv("MAX_CHECKSUM_SIZE", "1000"))  # bytes
        self.LAST_UPDATED_TIMEZONE = os.getenv("LAST_UPDATED_TIMEZONE", "UTC")

        # Validation limits
        self.MAX_PROJECT_NAME_LENGTH = int(os.getenv("MAX_PROJECT_NAME_LENGTH", "255"))
        self.MAX_SEGMENT_LENGTH = int(os.getenv("MAX_SEGMENT_LENGTH", "255"))

        # Gating
        self.PACK_PROJECTS = _split_list(os.getenv("PACK_PROJECTS", ""))
        self.SUBSCRIPTION_ACTIVE = os.getenv("SUBSCRIPTION_ACTIVE", "true").lower() in ("1", "true", "yes")
        self.READ_ONLY_PROJECTS = _split_list(os.getenv("READ_ONLY_PROJECTS", ""))

    @property
    def blobs_dir(self) -> str:
        return os.path.join(self.DATA_DIR, "blobs")

    @property
    def index_path(self) -> str:
        return os.path.join(self.DATA_DIR, "index.json")

    def __repr__(self):
        """String representation for logging."""
        return (
            f"Config(LOG_LEVEL={self.LOG_LEVEL}, "
            f"FLASK_HOST={self.FLASK_HOST}, "
            f"FLASK_PORT={self.FLASK_PORT}, "
            f"DATA_DIR={self.DATA_DIR}, "
            f"LAST_UPDATED_TIMEZONE={self.LAST_UPDATED_TIMEZONE})"
        )


# Global config instance
config = Config()
