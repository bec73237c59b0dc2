"""
Capability checks and feature gating.

The registry does not decide who may read or publish packages. It asks an
``AccessPolicy`` and a ``FeatureGate`` supplied by the hosting application;
the defaults here are driven by configuration only.
"""

import logging
from typing import Iterable, Optional

from .config import Config
from .errors import Forbidden, NotEnabled, Unauthorized

logger = logging.getLogger(__name__)

SUBSCRIPTION_MESSAGE = "This feature requires an active subscription"


class AccessPolicy:
    """Allows everything except writes to read-only projects."""

    def __init__(self, read_only_projects: Iterable[str] = ()):
        self.read_only_projects = frozenset(read_only_projects)

    def can_read(self, project: str, user: Optional[str]) -> bool:
        return True

    def can_write(self, project: str, user: Optional[str]) -> bool:
        return project not in self.read_only_projects


class FeatureGate:
    """Package management switch per project, plus the global subscription."""

    def __init__(self, subscription_active: bool = True, enabled_projects: Iterable[str] = ()):
        self.subscription_active = subscription_active
        self.enabled_projects = frozenset(enabled_projects)

    def is_subscription_active(self) -> bool:
        return self.subscription_active

    def is_enabled(self, project: str) -> bool:
        return not self.enabled_projects or project in self.enabled_projects


def policy_from_config(cfg: Config) -> AccessPolicy:
    return AccessPolicy(read_only_projects=cfg.READ_ONLY_PROJECTS)


def gate_from_config(cfg: Config) -> FeatureGate:
    return FeatureGate(subscription_active=cfg.SUBSCRIPTION_ACTIVE, enabled_projects=cfg.PACK_PROJECTS)


def check_subscription(gate: FeatureGate) -> None:
    if not gate.is_subscription_active():
        raise NotEnabled(SUBSCRIPTION_MESSAGE)


def check_project(gate: FeatureGate, policy: AccessPolicy, project: str, user: Optional[str], write: bool) -> None:
    """
    Ensure package management is on for ``project`` and ``user`` may use it.

    Raises:
        NotEnabled: 406 if package management is off for the project
        Unauthorized: 401 if the anonymous user lacks the permission
        Forbidden: 403 if an identified user lacks the permission
    """
    if not gate.is_enabled(project):
        raise NotEnabled(f"Package management not enabled for project '{project}'")

    allowed = policy.can_write(project, user) if write else policy.can_read(project, user)
    if allowed:
        return

    action = "write" if write else "read"
    message = f"No package {action} permission for project: {project}"
    logger.warning(f"{message} (user={user})")
    if user is None:
        raise Unauthorized(message)
    raise Forbidden(message)
