"""
Show Controller

Operator operations over the show state: roster import, participant and
winner removal, prize catalog edits and draw settings. Each operation
talks to storage first and only then changes in-memory state, so a
storage failure leaves memory as it was. Roster writes hold the draw
machine lock, so no drawing can start between the phase check and the
write.
"""

import logging
from typing import Optional

from ..config import _truthy
from ..importer.normalizer import Payload, RosterNormalizer
from .draw import DrawMachine
from .errors import DrawInProgress
from .models import ImportStats, ParticipantRecord, Roster
from .prizes import PrizeCatalog
from .state import DrawPhase, ShowState

logger = logging.getLogger(__name__)


class ShowController:
    """Entry point for everything the operator can do besides running the draw."""

    def __init__(self, state: ShowState, machine: DrawMachine, storage=None,
                 normalizer: Optional[RosterNormalizer] = None):
        self.state = state
        self.machine = machine
        self.storage = storage
        self.normalizer = normalizer or RosterNormalizer()

    @property
    def settings(self):
        return self.machine.settings

    def load(self) -> None:
        """Load participants, history and prizes from storage."""
        if self.storage is None:
            return
        participants = self.storage.list_participants()
        history = self.storage.list_history()
        prizes = self.storage.list_prizes()

        self.state.replace_roster(Roster(participants))
        self.state.set_history(history)
        self.state.set_prizes(PrizeCatalog(prizes))
        logger.info(
            f"Loaded {len(participants)} participants, {len(history)} winners, "
            f"{len(prizes)} prizes"
        )

    # ============ Roster ============

    def import_roster(self, payload: Payload, filename: Optional[str] = None) -> ImportStats:
        """
        Replace the whole roster with the contents of an export.

        The previous roster is discarded, never merged. On any failure the
        previous roster stays in place.
        """
        self.state.ensure_can_modify_roster()
        roster, stats = self.normalizer.normalize(payload, filename)

        with self.machine.lock:
            self.state.ensure_can_modify_roster()
            if self.storage is not None:
                saved = self.storage.replace_participants(list(roster))
                roster = Roster(saved)
            self.state.replace_roster(roster, stats)
        logger.info(f"Imported {filename or 'upload'}: {len(roster)} participants")
        return stats

    def remove_participant(self, participant_id: int) -> Optional[ParticipantRecord]:
        with self.machine.lock:
            self.state.ensure_can_modify_roster()
            if self.state.roster.get(participant_id) is None:
                return None
            if self.storage is not None:
                self.storage.delete_participant(participant_id)
            return self.state.remove_participant(participant_id)

    def clear_all(self) -> None:
        """Delete every participant and every winner, in storage and in memory."""
        with self.machine.lock:
            self.state.ensure_can_modify_roster()
            if self.storage is not None:
                self.storage.clear_participants()
                self.storage.clear_history()
            if self.state.phase != DrawPhase.IDLE:
                self.machine.reset()
            self.state.clear()
        logger.warning("All participants and history cleared")

    # ============ History ============

    def delete_history(self, history_id: int) -> bool:
        if self.storage is not None:
            self.storage.delete_history(history_id)
        return self.state.remove_history(history_id)

    # ============ Prizes ============

    def add_prize(self, label: str) -> str:
        label = PrizeCatalog.clean(label)
        catalog = self.state.prizes
        catalog.add(label)  # validates duplicates before touching storage
        if self.storage is not None:
            self.storage.add_prize(label)
        return self.state.add_prize(label)

    def _ensure_prize_can_change(self) -> None:
        if self.state.phase == DrawPhase.SPINNING:
            raise DrawInProgress("The prize cannot change while a drawing is in progress")

    def remove_prize(self, label: str) -> str:
        """Remove a prize; returns the active prize afterwards."""
        self._ensure_prize_can_change()
        previous = self.state.active_prize
        self.state.prizes.remove(label)
        if self.storage is not None:
            self.storage.remove_prize(label)
        active = self.state.remove_prize(label)
        if active != previous:
            self.machine.publish_prize()
        return active

    def select_prize(self, label: str) -> str:
        self._ensure_prize_can_change()
        label = self.state.select_prize(label)
        self.machine.publish_prize()
        return label

    # ============ Settings ============

    def update_settings(self, duration: Optional[float] = None, speed: Optional[int] = None,
                        muted: Optional[bool] = None) -> dict:
        """Apply operator draw settings; out-of-range values are clamped."""
        if isinstance(muted, str):
            muted = _truthy(muted)
        elif muted is not None and not isinstance(muted, bool):
            raise TypeError(f"muted must be true or false, got {muted!r}")

        settings = self.machine.settings
        if duration is not None:
            settings.set_duration(duration)
        if speed is not None:
            settings.set_speed(speed)
        if muted is not None:
            settings.muted = muted
        logger.info(f"Draw settings: {settings.to_dict()}")
        return settings.to_dict()

