"""RaffleCast Output Modules"""

from .caspar import CasparClient, MockCasparClient
from .effects import Effects, MutableEffects, fire

__all__ = ["CasparClient", "MockCasparClient", "Effects", "MutableEffects", "fire"]
