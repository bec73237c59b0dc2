import pytest

from pack_registry.index import PackKey, PackRecord
from pack_registry.packs import MAVEN, RUBYGEMS, get_pack_support, pack_supports


def test_supports_are_ordered():
    assert [support.type for support in pack_supports()] == [MAVEN, RUBYGEMS]


def test_maven_reference():
    support = get_pack_support(MAVEN)
    assert support.get_reference(PackRecord(PackKey("acme", MAVEN, "org.acme", "demo", "1.0"))) == "org.acme:demo:1.0"
    assert support.get_reference(PackRecord(PackKey("acme", MAVEN, "org.acme"))) == "org.acme:<Plugins Metadata>"


def test_gem_reference():
    support = get_pack_support(RUBYGEMS)
    assert support.get_reference(PackRecord(PackKey("acme", RUBYGEMS, "rails", "rails", "7.1.0"))) == "rails-7.1.0"
    assert support.get_reference(PackRecord(PackKey("acme", RUBYGEMS, "rake", None, "13.0"))) == "rake-13.0"


def test_unknown_type():
    with pytest.raises(KeyError):
        get_pack_support("Cargo")
