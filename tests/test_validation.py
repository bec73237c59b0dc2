import pytest

from pack_registry.digest import digest_bytes
from pack_registry.errors import BadRequest
from pack_registry.validation import validate_hex_digest, validate_project, validate_segments


@pytest.mark.parametrize("name", ["acme", "my-service", "team_1.web"])
def test_valid_project(name):
    validate_project(name)


@pytest.mark.parametrize("name", ["", ".tmp", "ac$me", "a/b", "x" * 256])
def test_invalid_project(name):
    with pytest.raises(BadRequest):
        validate_project(name)


def test_segments_allow_any_version_characters():
    validate_segments(["org", "acme", "demo", "1.0.0+build.5", "demo-1.0.0+build.5.jar"])
    validate_segments(["org", "acme", "demo", "1.0~rc1", "demo 1.0.jar"])


@pytest.mark.parametrize("segment", ["", ".", "..", "x" * 256])
def test_invalid_segment(segment):
    with pytest.raises(BadRequest):
        validate_segments(["org", segment, "demo.jar"])


@pytest.mark.parametrize("algorithm", ["md5", "sha1", "sha256", "sha512"])
def test_hex_digest(algorithm):
    digest = digest_bytes(b"hello", algorithm)
    assert validate_hex_digest(digest, algorithm) == digest
    assert validate_hex_digest(digest.upper(), algorithm) == digest


@pytest.mark.parametrize(
    "value, algorithm",
    [
        ("", "sha1"),
        ("0" * 39, "sha1"),
        ("0" * 41, "sha1"),
        ("g" * 32, "md5"),
        ("0" * 40 + " x", "sha1"),
        ("0" * 64, "sha1"),
    ],
)
def test_malformed_hex_digest(value, algorithm):
    with pytest.raises(BadRequest) as exc_info:
        validate_hex_digest(value, algorithm)
    assert exc_info.value.status == 400


def test_unsupported_algorithm():
    with pytest.raises(BadRequest):
        validate_hex_digest("0" * 56, "sha224")
