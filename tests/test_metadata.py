import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone

import pytest

from pack_registry.metadata import format_last_updated, is_snapshot, synthesize_metadata

T0 = datetime(2024, 3, 5, 7, 8, 9, tzinfo=timezone.utc)


def _history(*versions):
    return [(version, T0 + timedelta(minutes=i)) for i, version in enumerate(versions)]


def test_latest_release_and_versions_follow_publish_order():
    metadata = synthesize_metadata("org.acme", "demo", _history("1.0", "1.1-SNAPSHOT", "1.2"))
    assert metadata.latest == "1.2"
    assert metadata.release == "1.2"
    assert metadata.versions == ["1.0", "1.1-SNAPSHOT", "1.2"]
    assert metadata.last_updated == "20240305071009"


def test_snapshot_published_last():
    metadata = synthesize_metadata("org.acme", "demo", _history("1.0", "2.0-SNAPSHOT"))
    assert metadata.latest == "2.0-SNAPSHOT"
    assert metadata.release == "1.0"


def test_publish_order_is_not_version_order():
    metadata = synthesize_metadata("org.acme", "demo", _history("2.0", "1.5"))
    assert metadata.latest == "1.5"
    assert metadata.versions == ["2.0", "1.5"]


def test_no_release_omits_element():
    metadata = synthesize_metadata("org.acme", "demo", _history("1.0-SNAPSHOT"))
    assert metadata.release is None

    root = ET.fromstring(metadata.to_xml())
    assert root.tag == "metadata"
    assert root.findtext("groupId") == "org.acme"
    assert root.findtext("artifactId") == "demo"
    assert root.find("versioning/release") is None
    assert root.findtext("versioning/latest") == "1.0-SNAPSHOT"
    assert [v.text for v in root.findall("versioning/versions/version")] == ["1.0-SNAPSHOT"]


def test_xml_document():
    xml = synthesize_metadata("org.acme", "demo", _history("1.0", "1.1")).to_xml()
    assert xml.startswith(b"<?xml")
    root = ET.fromstring(xml)
    assert root.findtext("versioning/release") == "1.1"
    assert root.findtext("versioning/lastUpdated") == "20240305070909"


def test_empty_history():
    with pytest.raises(ValueError):
        synthesize_metadata("org.acme", "demo", [])


def test_format_last_updated():
    assert format_last_updated(T0) == "20240305070809"
    assert format_last_updated(T0.replace(tzinfo=None)) == "20240305070809"
    plus_two = T0.astimezone(timezone(timedelta(hours=2)))
    assert format_last_updated(plus_two, "UTC") == "20240305070809"
    assert len(format_last_updated(T0, "local")) == 14
    with pytest.raises(ValueError):
        format_last_updated(T0, "Mars/Olympus")


def test_is_snapshot():
    assert is_snapshot("1.0-SNAPSHOT")
    assert not is_snapshot("1.0")
