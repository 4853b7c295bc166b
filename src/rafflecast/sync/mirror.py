"""
Display Mirror

Read-only display-side state derived purely from Sync Channel messages.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Dict, Any

from .channel import MessageKind, SyncMessage, PHASE_KINDS

logger = logging.getLogger(__name__)

IDLE_TITLE = "Sorteio Fácil"


def mask_phone(phone: str) -> str:
    """Hide the last four characters of a phone for public display."""
    if not phone:
        return ""
    digits = "".join(c for c in phone if c.isdigit())
    if len(digits) < 4:
        return phone
    return phone[:-4] + "xxxx"


@dataclass
class DisplayState:
    """What an audience display currently shows."""
    mode: str = "idle"  # idle, cycling, spinning, winner
    name: str = IDLE_TITLE
    prize: str = ""
    winner: Optional[Dict[str, Any]] = None
    confetti: int = 0  # celebrations triggered so far

    def to_dict(self) -> dict:
        winner = None
        if self.winner:
            winner = dict(self.winner)
            winner["phone"] = mask_phone(winner.get("phone", ""))
        return {
            "mode": self.mode,
            "name": self.name,
            "prize": self.prize,
            "winner": winner,
            "show_prize": bool(self.prize) and self.mode in ("idle", "cycling"),
        }


class DisplayMirror:
    """
    Applies channel messages to a DisplayState.

    Phase messages older than the last applied phase message are ignored,
    so a reset that overtook a winner announcement still wins. Candidate
    and prize updates are last-applied-wins per kind.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = DisplayState()
        self._last_phase_seq = 0
        self._last_seq: Dict[MessageKind, int] = {}

    @property
    def state(self) -> DisplayState:
        with self._lock:
            return DisplayState(**vars(self._state))

    def apply(self, message: SyncMessage) -> bool:
        """Apply one message. Returns False if it was stale and ignored."""
        with self._lock:
            if message.kind in PHASE_KINDS:
                if message.seq and message.seq < self._last_phase_seq:
                    logger.debug(f"Ignoring stale {message.kind.value} #{message.seq}")
                    return False
                self._last_phase_seq = message.seq
            else:
                if message.seq and message.seq < self._last_seq.get(message.kind, 0):
                    return False
                self._last_seq[message.kind] = message.seq
            self._apply(message)
            return True

    def _apply(self, message: SyncMessage) -> None:
        state = self._state
        kind = message.kind
        payload = message.payload

        if kind == MessageKind.PRIZE_UPDATED:
            state.prize = payload or ""
        elif kind == MessageKind.CANDIDATE_UPDATED:
            if state.mode in ("spinning", "cycling"):
                state.name = payload or ""
        elif kind == MessageKind.DRAW_STARTED:
            state.mode = "spinning"
            state.winner = None
            if payload:
                state.prize = payload
        elif kind == MessageKind.WINNER_ANNOUNCED:
            state.mode = "winner"
            state.winner = dict(payload or {})
            state.name = state.winner.get("name", "")
            if state.winner.get("prize"):
                state.prize = state.winner["prize"]
            state.confetti += 1
        elif kind == MessageKind.DRAW_RESET:
            state.mode = "idle"
            state.winner = None
            state.name = IDLE_TITLE
        elif kind == MessageKind.IDLE_CYCLING_STARTED:
            if state.mode == "idle":
                state.mode = "cycling"
        elif kind == MessageKind.IDLE_CYCLING_STOPPED:
            if state.mode == "cycling":
                state.mode = "idle"
                state.name = IDLE_TITLE

    def to_dict(self) -> dict:
        with self._lock:
            return self._state.to_dict()
