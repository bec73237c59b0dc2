"""
Registry types served by the package registry.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List

from .index import PackRecord

MAVEN = "Maven"
RUBYGEMS = "RubyGems"


def _maven_reference(pack: PackRecord) -> str:
    if pack.artifact_id is not None and pack.version is not None:
        return f"{pack.group_id}:{pack.artifact_id}:{pack.version}"
    return f"{pack.group_id}:<Plugins Metadata>"


def _gem_reference(pack: PackRecord) -> str:
    name = pack.artifact_id or pack.group_id
    return f"{name}-{pack.version}"


@dataclass(frozen=True)
class PackSupport:
    type: str
    order: int
    icon: str
    project_separator: str
    reference: Callable[[PackRecord], str]

    def get_reference(self, pack: PackRecord) -> str:
        return self.reference(pack)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "order": self.order,
            "icon": self.icon,
            "separator": self.project_separator,
        }


_SUPPORTS: Dict[str, PackSupport] = {
    support.type: support
    for support in (
        PackSupport(MAVEN, 200, "maven", ">", _maven_reference),
        PackSupport(RUBYGEMS, 400, "ruby", ":", _gem_reference),
    )
}


def get_pack_support(pack_type: str) -> PackSupport:
    """Raises KeyError for types the registry does not know."""
    return _SUPPORTS[pack_type]


def pack_supports() -> List[PackSupport]:
    """Every known type, in the order they are presented."""
    return sorted(_SUPPORTS.values(), key=lambda support: support.order)
