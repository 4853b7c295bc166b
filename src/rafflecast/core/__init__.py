"""RaffleCast Core Components"""

from .state import DrawPhase, DrawSession, ShowState
from .draw import DrawMachine

__all__ = ["DrawPhase", "DrawSession", "ShowState", "DrawMachine"]
