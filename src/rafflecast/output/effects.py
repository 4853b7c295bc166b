"""
Audio / Visual Effects

Fire-and-forget effect hooks triggered by the draw machine. Effect
failures are logged and ignored; they never interrupt a drawing.
"""

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Effects:
    """Effects sink. The base implementation only logs."""

    def play_roll_sound(self) -> None:
        logger.debug("Effect: roll sound")

    def stop_roll_sound(self) -> None:
        logger.debug("Effect: stop roll sound")

    def play_win_sound(self) -> None:
        logger.debug("Effect: win sound")

    def burst_confetti(self) -> None:
        logger.debug("Effect: confetti")


class MutableEffects(Effects):
    """Wraps another sink and drops sound effects while muted."""

    def __init__(self, inner: Effects, muted: Callable[[], bool]):
        self.inner = inner
        self._muted = muted

    def play_roll_sound(self) -> None:
        if not self._muted():
            self.inner.play_roll_sound()

    def stop_roll_sound(self) -> None:
        # Not gated by mute
        self.inner.stop_roll_sound()

    def play_win_sound(self) -> None:
        if not self._muted():
            self.inner.play_win_sound()

    def burst_confetti(self) -> None:
        self.inner.burst_confetti()


def fire(effects: Optional[Effects], action: str) -> None:
    """Invoke an effect by name, logging and ignoring any failure."""
    if effects is None:
        return
    try:
        getattr(effects, action)()
    except Exception as e:
        logger.warning(f"Effect {action} failed: {e}")
