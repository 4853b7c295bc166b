"""
Draw State Machine

Owns the idle / cycling / spinning / winner lifecycle of a drawing.

Phases:
    IDLE --toggle--> IDLE_CYCLING --toggle--> IDLE
    IDLE | IDLE_CYCLING | WINNER_SHOWN --start--> SPINNING
    SPINNING --(duration elapsed)--> WINNER_SHOWN
    any --reset--> IDLE

At most one periodic task (spin ticks or idle rotation) is live at a time.
Effects run on a single background worker and never hold up a transition.
The durable history append happens after the winner is announced, outside
the machine lock.
Every random pick is an independent uniform sample over the whole roster;
the winner is a fresh pick at commit time, not the last name shown.
"""

import logging
import random
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Optional

from ..config import DrawConfig
from ..output.effects import Effects, MutableEffects, fire
from ..sync.channel import MessageKind, SyncChannel
from .errors import DrawInProgress, EmptyRosterError, InvalidTransition
from .models import WinnerRecord
from .state import DrawPhase, DrawSession, ShowState
from .timing import PeriodicTask

logger = logging.getLogger(__name__)


class DrawMachine:
    """
    Drawing lifecycle controller.

    Args:
        state: Show state holding roster, prizes, history and the session
        channel: Sync Channel every transition and tick is published on
        storage: Storage collaborator for the durable history append
        effects: Audio/visual effects sink
        settings: Draw timing and mute settings, read live
        rng: Random source (random.Random compatible)
        clock: Monotonic clock in seconds
        task_factory: Builds periodic tasks: (interval_fn, callback, name)
        effects_executor: Runs effect calls; defaults to a single worker
            thread owned by the machine
    """

    def __init__(self, state: ShowState, channel: SyncChannel, storage=None,
                 effects: Optional[Effects] = None, settings: Optional[DrawConfig] = None,
                 rng: Optional[random.Random] = None, clock: Callable[[], float] = time.monotonic,
                 task_factory=PeriodicTask, effects_executor: Optional[Executor] = None):
        self.state = state
        self.channel = channel
        self.storage = storage
        self.settings = settings or DrawConfig()
        self.effects = MutableEffects(effects or Effects(), lambda: self.settings.muted)
        self._rng = rng or random.SystemRandom()
        self._clock = clock
        self._task_factory = task_factory
        self._lock = threading.RLock()
        self._task = None
        self._catchup: Optional[threading.Timer] = None
        self._owns_executor = effects_executor is None
        self._effects_executor = effects_executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="effects"
        )

    @property
    def phase(self) -> DrawPhase:
        return self.state.phase

    @property
    def lock(self) -> threading.RLock:
        """Held by every transition. Hold it to keep the phase from changing."""
        return self._lock

    @property
    def task_active(self) -> bool:
        with self._lock:
            return self._task is not None

    # ============ Timers / effects ============

    def _start_task(self, interval: Callable[[], float], callback, name: str):
        self._stop_task()
        task = None

        def run():
            callback(task)

        task = self._task_factory(interval, run, name)
        self._task = task
        return task

    def _stop_task(self) -> None:
        if self._task is not None:
            self._task.cancel()
            logger.debug(f"Cancelled task {getattr(self._task, 'name', '')}")
            self._task = None

    def _fire(self, action: str) -> None:
        try:
            self._effects_executor.submit(fire, self.effects, action)
        except RuntimeError as e:
            logger.debug(f"Effect {action} skipped: {e}")

    # ============ Idle cycling ============

    def toggle_idle_cycling(self) -> DrawPhase:
        """Enter or leave the idle name rotation (screensaver)."""
        with self._lock:
            phase = self.state.phase
            if phase == DrawPhase.IDLE_CYCLING:
                self._stop_idle_cycling()
            elif phase == DrawPhase.IDLE:
                if not self.state.roster:
                    raise EmptyRosterError("Add participants first")
                self.state.update_session(phase=DrawPhase.IDLE_CYCLING)
                self.channel.publish(MessageKind.IDLE_CYCLING_STARTED)
                task = self._start_task(lambda: self.settings.idle_seconds, self._cycle_tick, "idle-cycling")
                task.start()
                logger.info("Idle cycling started")
            else:
                raise InvalidTransition(f"Idle cycling is not available while {phase.value}")
            return self.state.phase

    def _stop_idle_cycling(self) -> None:
        self._stop_task()
        self.state.update_session(phase=DrawPhase.IDLE, candidate="")
        self.channel.publish(MessageKind.IDLE_CYCLING_STOPPED)
        logger.info("Idle cycling stopped")

    def _cycle_tick(self, task) -> None:
        with self._lock:
            if task is not self._task or self.state.phase != DrawPhase.IDLE_CYCLING:
                return
            roster = self.state.roster
            if not roster:
                self._stop_idle_cycling()
                return
            name = roster[self._rng.randrange(len(roster))].name
            self.state.update_session(notify=False, candidate=name)
            self.channel.publish(MessageKind.CANDIDATE_UPDATED, name)

    # ============ Drawing ============

    def start_draw(self) -> DrawSession:
        """
        Begin a drawing.

        Raises:
            DrawInProgress: a drawing is already spinning
            EmptyRosterError: there is nobody to draw from
        """
        with self._lock:
            phase = self.state.phase
            if phase == DrawPhase.SPINNING:
                raise DrawInProgress("A drawing is already in progress")
            roster = self.state.roster
            if not roster:
                raise EmptyRosterError("Add participants first")

            if phase == DrawPhase.IDLE_CYCLING:
                self._stop_task()
                self.channel.publish(MessageKind.IDLE_CYCLING_STOPPED)

            session = DrawSession(
                phase=DrawPhase.SPINNING,
                started_at=self._clock(),
                roster=roster,
            )
            self.state.set_session(session)
            prize = self.state.active_prize
            self.channel.publish(MessageKind.DRAW_STARTED, prize)
            self._fire("play_roll_sound")
            logger.info(
                f"Drawing started: {len(roster)} participants, prize '{prize}', "
                f"{self.settings.duration}s at {self.settings.speed}ms"
            )

            task = self._start_task(lambda: self.settings.tick_seconds, self._spin_tick, "draw-spin")
            winner = self._advance_spin(task)
            if task is self._task:
                task.start()
        if winner is not None:
            self._save_winner(winner)
        return session

    def _spin_tick(self, task) -> None:
        with self._lock:
            winner = self._advance_spin(task)
        if winner is not None:
            self._save_winner(winner)

    def _advance_spin(self, task) -> Optional[WinnerRecord]:
        """Publish one candidate; returns the winner once the duration has elapsed."""
        session = self.state.session
        if task is not self._task or session.phase != DrawPhase.SPINNING:
            return None
        roster = session.roster
        name = roster[self._rng.randrange(len(roster))].name
        self.state.update_session(notify=False, candidate=name, ticks=session.ticks + 1)
        self.channel.publish(MessageKind.CANDIDATE_UPDATED, name)
        logger.debug(f"Tick {session.ticks}: {name}")

        if self._clock() - session.started_at >= self.settings.duration:
            return self._commit()
        return None

    def _commit(self) -> WinnerRecord:
        """Stop the spin, pick the winner and announce it. Called with the lock held."""
        self._stop_task()
        session = self.state.session
        roster = session.roster

        participant = roster[self._rng.randrange(len(roster))]
        winner = WinnerRecord(
            participant=participant,
            prize=self.state.active_prize,
            won_at=datetime.now(),
        )

        self.state.append_history(winner)
        self.state.update_session(
            phase=DrawPhase.WINNER_SHOWN,
            winner=winner,
            candidate=winner.name,
        )
        self.channel.publish(MessageKind.WINNER_ANNOUNCED, winner.to_dict())
        self._fire("stop_roll_sound")
        self._fire("play_win_sound")
        self._fire("burst_confetti")
        logger.info(f"Winner: {winner.name} ({winner.prize}) after {session.ticks} ticks")
        return winner

    def _save_winner(self, winner: WinnerRecord) -> None:
        """Durable history append, made once the winner is on screen. Not retried."""
        if self.storage is None:
            return
        try:
            history_id = self.storage.append_history(winner)
        except Exception as e:
            logger.error(f"Failed to save winner {winner.name} to history: {e}")
            self.state.settle_winner(winner, error=str(e))
            return
        self.state.settle_winner(winner, saved=winner.with_id(history_id))

    # ============ Reset / teardown ============

    def reset(self) -> None:
        """Stop every timer, clear the session and return to IDLE. Valid from any phase."""
        with self._lock:
            previous = self.state.phase
            self._stop_task()
            self.state.set_session(DrawSession())
            self.channel.publish(MessageKind.DRAW_RESET)
            if previous == DrawPhase.SPINNING:
                self._fire("stop_roll_sound")
            logger.info(f"Draw reset from {previous.value}")

    def publish_prize(self) -> None:
        """Publish the active prize so displays can (re)synchronize."""
        self.channel.publish(MessageKind.PRIZE_UPDATED, self.state.active_prize)

    def schedule_catchup(self, delay: float = 1.0) -> None:
        """Publish the active prize once, shortly after channel setup."""
        with self._lock:
            if self._catchup is not None:
                self._catchup.cancel()
            self._catchup = threading.Timer(delay, self.publish_prize)
            self._catchup.daemon = True
            self._catchup.start()

    def shutdown(self) -> None:
        """Cancel all timers and stop the effects worker for process teardown."""
        with self._lock:
            task = self._task
            self._stop_task()
            if self._catchup is not None:
                self._catchup.cancel()
                self._catchup = None
        if task is not None:
            task.join()
        if self._owns_executor:
            self._effects_executor.shutdown(wait=False)
        logger.info("Draw machine stopped")
