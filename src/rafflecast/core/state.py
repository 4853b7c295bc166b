"""
RaffleCast State Management

Single owned container for the roster, the drawing history, the prize
catalog and the current draw session.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Callable

from .errors import DrawInProgress
from .models import ImportStats, ParticipantRecord, Roster, WinnerRecord
from .prizes import PrizeCatalog

logger = logging.getLogger(__name__)


class DrawPhase(Enum):
    IDLE = "idle"
    IDLE_CYCLING = "idle_cycling"
    SPINNING = "spinning"
    WINNER_SHOWN = "winner_shown"


@dataclass
class DrawSession:
    """Transient state of the drawing in progress (or just finished)."""
    phase: DrawPhase = DrawPhase.IDLE
    started_at: Optional[float] = None  # clock() reading when the spin began
    candidate: str = ""
    winner: Optional[WinnerRecord] = None
    ticks: int = 0
    history_error: Optional[str] = None  # durable append failure, winner still shown
    roster: Optional[Roster] = field(default=None, repr=False)  # snapshot being drawn from

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "phase": self.phase.value,
            "candidate": self.candidate,
            "winner": self.winner.to_dict() if self.winner else None,
            "ticks": self.ticks,
            "history_error": self.history_error,
        }


class ShowState:
    """
    Thread-safe show state with change notifications.

    The roster is only ever replaced wholesale or shrunk by removal, and
    neither is allowed while a drawing is spinning.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._roster = Roster()
        self._history: List[WinnerRecord] = []
        self._prizes = PrizeCatalog()
        self._session = DrawSession()
        self._last_import: Optional[ImportStats] = None
        self._listeners: List[Callable[[], None]] = []

    @property
    def roster(self) -> Roster:
        with self._lock:
            return self._roster

    @property
    def history(self) -> List[WinnerRecord]:
        """Winners, newest first."""
        with self._lock:
            return list(self._history)

    @property
    def prizes(self) -> PrizeCatalog:
        """A copy of the prize catalog; mutate through the state methods."""
        with self._lock:
            return self._prizes.copy()

    @property
    def active_prize(self) -> str:
        with self._lock:
            return self._prizes.active

    @property
    def session(self) -> DrawSession:
        with self._lock:
            return self._session

    @property
    def phase(self) -> DrawPhase:
        with self._lock:
            return self._session.phase

    @property
    def last_import(self) -> Optional[ImportStats]:
        with self._lock:
            return self._last_import

    def _ensure_not_spinning(self) -> None:
        if self._session.phase == DrawPhase.SPINNING:
            raise DrawInProgress("A drawing is in progress")

    # ============ Roster ============

    def replace_roster(self, roster: Roster, stats: Optional[ImportStats] = None) -> None:
        """Discard the current roster and install a new one."""
        with self._lock:
            self._ensure_not_spinning()
            self._roster = roster
            self._last_import = stats
        logger.info(f"Roster replaced: {len(roster)} participants")
        self._notify_listeners()

    def remove_participant(self, participant_id: int) -> Optional[ParticipantRecord]:
        with self._lock:
            self._ensure_not_spinning()
            record = self._roster.get(participant_id)
            if record is None:
                return None
            self._roster = self._roster.without(participant_id)
        self._notify_listeners()
        return record

    def ensure_can_modify_roster(self) -> None:
        with self._lock:
            self._ensure_not_spinning()

    # ============ History ============

    def set_history(self, history: List[WinnerRecord]) -> None:
        with self._lock:
            self._history = list(history)
        self._notify_listeners()

    def append_history(self, winner: WinnerRecord) -> None:
        with self._lock:
            self._history.insert(0, winner)
        self._notify_listeners()

    def settle_winner(self, winner: WinnerRecord, saved: Optional[WinnerRecord] = None,
                      error: Optional[str] = None) -> None:
        """
        Apply the outcome of the durable append for a winner already shown.

        The saved copy (with its history id) replaces the local entry; an
        error is kept on the session if it still shows that winner.
        """
        with self._lock:
            if saved is not None:
                self._history = [saved if w is winner else w for w in self._history]
            if self._session.winner is winner:
                if saved is not None:
                    self._session.winner = saved
                self._session.history_error = error
        self._notify_listeners()

    def remove_history(self, history_id: int) -> bool:
        with self._lock:
            before = len(self._history)
            self._history = [w for w in self._history if w.id != history_id]
            removed = len(self._history) < before
        if removed:
            self._notify_listeners()
        return removed

    # ============ Prizes ============

    def set_prizes(self, catalog: PrizeCatalog) -> None:
        with self._lock:
            self._prizes = catalog.copy()
        self._notify_listeners()

    def add_prize(self, label: str) -> str:
        with self._lock:
            label = self._prizes.add(label)
        self._notify_listeners()
        return label

    def remove_prize(self, label: str) -> str:
        """Returns the active label after removal."""
        with self._lock:
            active = self._prizes.remove(label)
        self._notify_listeners()
        return active

    def select_prize(self, label: str) -> str:
        with self._lock:
            label = self._prizes.select(label)
        self._notify_listeners()
        return label

    # ============ Session ============

    def set_session(self, session: DrawSession) -> None:
        with self._lock:
            self._session = session
        self._notify_listeners()

    def update_session(self, notify: bool = True, **kwargs) -> None:
        """
        Update session fields.

        Args:
            notify: Whether listeners should hear about this change
            **kwargs: Fields to update (phase, candidate, winner, etc.)
        """
        with self._lock:
            for key, value in kwargs.items():
                if hasattr(self._session, key):
                    setattr(self._session, key, value)
        if notify:
            self._notify_listeners()

    def clear(self) -> None:
        """Drop all participants and history."""
        with self._lock:
            self._ensure_not_spinning()
            self._roster = Roster()
            self._history = []
            self._last_import = None
        self._notify_listeners()

    # ============ Listeners ============

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Add a state change listener."""
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        """Remove a state change listener."""
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def _notify_listeners(self) -> None:
        """Notify all listeners of state change."""
        with self._lock:
            listeners = self._listeners.copy()
        for callback in listeners:
            try:
                callback()
            except Exception as e:
                logger.error(f"State listener error: {e}")

    def to_dict(self) -> dict:
        """Get full show state as dictionary."""
        with self._lock:
            return {
                "participants": len(self._roster),
                "winners": len(self._history),
                "prizes": self._prizes.to_dict(),
                "session": self._session.to_dict(),
                "last_import": self._last_import.to_dict() if self._last_import else None,
            }
