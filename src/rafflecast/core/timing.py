"""
Periodic Tasks

Cancellable fixed-interval timer used by the draw machine for the spin
animation and the idle name rotation.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Calls a function every `interval` seconds on a background thread.

    The interval is read through a callable on every cycle so operator
    speed changes apply to a running task. cancel() is safe from any
    thread, including from inside the callback.
    """

    def __init__(self, interval: Callable[[], float], callback: Callable[[], None],
                 name: str = "periodic"):
        self._interval = interval
        self._callback = callback
        self.name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def active(self) -> bool:
        return self._thread is not None and not self._stop_event.is_set()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
        self._thread.start()
        logger.debug(f"Task {self.name} started")

    def cancel(self) -> None:
        self._stop_event.set()

    def join(self, timeout: float = 2.0) -> None:
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self._interval()):
            try:
                self._callback()
            except Exception as e:
                logger.error(f"Task {self.name} callback error: {e}")
        logger.debug(f"Task {self.name} stopped")
