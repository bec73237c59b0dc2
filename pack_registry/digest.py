"""
Digest helpers shared by the blob store and the Maven service.
"""

import hashlib
from typing import BinaryIO, Optional

ALGORITHMS = ("md5", "sha1", "sha256", "sha512")

# Checksum side files published next to every Maven artifact
CHECKSUM_EXTENSIONS = {
    ".md5": "md5",
    ".sha1": "sha1",
    ".sha256": "sha256",
    ".sha512": "sha512",
}

CHUNK_SIZE = 65536


def digest_bytes(data: bytes, algorithm: str = "sha256") -> str:
    """
    Compute a hex digest of in-memory data.

    Args:
        data: Bytes to hash
        algorithm: One of md5, sha1, sha256, sha512

    Returns:
        Lowercase hex digest

    Example:
        >>> digest_bytes(b"hello")
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unsupported digest algorithm: {algorithm}")
    h = hashlib.new(algorithm)
    h.update(data)
    return h.hexdigest()


def digest_stream(stream: BinaryIO, algorithm: str = "sha256", chunk_size: int = CHUNK_SIZE) -> str:
    """Compute a hex digest of a binary stream without loading it into memory."""
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unsupported digest algorithm: {algorithm}")
    h = hashlib.new(algorithm)
    for chunk in iter(lambda: stream.read(chunk_size), b""):
        h.update(chunk)
    return h.hexdigest()


def checksum_algorithm(file_name: str) -> Optional[str]:
    """Return the algorithm named by a checksum suffix, or None for regular files."""
    for ext, algorithm in CHECKSUM_EXTENSIONS.items():
        if file_name.endswith(ext):
            return algorithm
    return None


def blob_name(file_name: str) -> str:
    """
    Strip a checksum suffix from a file name.

    Examples:
        >>> blob_name("demo-1.0.jar.sha1")
        'demo-1.0.jar'
        >>> blob_name("demo-1.0.jar")
        'demo-1.0.jar'
    """
    if checksum_algorithm(file_name) is not None:
        return file_name.rsplit(".", 1)[0]
    return file_name
