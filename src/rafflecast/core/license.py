"""
Operator Identity

The identity/license collaborator decides who is operating and whether
the control surface may run at all. The draw core never checks it; the
process entry point does, once, before building the control surface.
"""

import logging
from dataclasses import dataclass

from ..config import OperatorConfig
from .errors import LicenseBlocked

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operator:
    name: str
    license_active: bool = True


class LicenseProvider:
    """Supplies the current operator."""

    def current_operator(self) -> Operator:
        raise NotImplementedError


class StaticLicenseProvider(LicenseProvider):
    """Operator and license flag taken from configuration."""

    def __init__(self, config: OperatorConfig):
        self._operator = Operator(name=config.name, license_active=config.license_active)

    def current_operator(self) -> Operator:
        return self._operator


def require_active_license(provider: LicenseProvider) -> Operator:
    """Return the operator, or raise LicenseBlocked if their license is not active."""
    operator = provider.current_operator()
    if not operator.license_active:
        logger.error(f"License for {operator.name} is blocked")
        raise LicenseBlocked(f"License for {operator.name} is blocked")
    return operator
