"""RaffleCast Simulation Helpers"""

from .fake_roster import FakeRosterExport

__all__ = ["FakeRosterExport"]
