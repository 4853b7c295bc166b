"""
Sync Channel

One-to-many broadcast of draw events from the control process to any
number of display subscribers.

Delivery is best-effort and at-most-once: no acknowledgement, no retry,
no persistence. Every message carries a channel-wide sequence number so
a display can drop phase changes that arrive out of order.
"""

import itertools
import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "sorteio_facil_channel"

# Per-subscriber backlog before messages are dropped
SUBSCRIBER_BACKLOG = 1024


class MessageKind(Enum):
    PRIZE_UPDATED = "prize_updated"
    CANDIDATE_UPDATED = "candidate_updated"
    DRAW_STARTED = "draw_started"
    WINNER_ANNOUNCED = "winner_announced"
    DRAW_RESET = "draw_reset"
    IDLE_CYCLING_STARTED = "idle_started"
    IDLE_CYCLING_STOPPED = "idle_stopped"


# Kinds that move the display between idle / cycling / spinning / winner
PHASE_KINDS = frozenset({
    MessageKind.DRAW_STARTED,
    MessageKind.WINNER_ANNOUNCED,
    MessageKind.DRAW_RESET,
    MessageKind.IDLE_CYCLING_STARTED,
    MessageKind.IDLE_CYCLING_STOPPED,
})


@dataclass(frozen=True)
class SyncMessage:
    """A self-describing draw event."""
    kind: MessageKind
    payload: Any = None
    seq: int = 0

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "payload": self.payload, "seq": self.seq}

    @classmethod
    def from_dict(cls, data: dict) -> "SyncMessage":
        return cls(
            kind=MessageKind(data["type"]),
            payload=data.get("payload"),
            seq=data.get("seq", 0),
        )


class SyncChannel:
    """
    Base publish side of a named broadcast channel.

    Subclasses implement _deliver. publish never raises and never blocks
    on subscribers.
    """

    def __init__(self, name: str = DEFAULT_CHANNEL):
        self.name = name
        self._seq = itertools.count(1)
        self._seq_lock = threading.Lock()

    def publish(self, kind: MessageKind, payload: Any = None) -> SyncMessage:
        with self._seq_lock:
            message = SyncMessage(kind=kind, payload=payload, seq=next(self._seq))
        try:
            self._deliver(message)
        except Exception as e:
            logger.warning(f"Channel {self.name}: failed to publish {kind.value}: {e}")
        return message

    def _deliver(self, message: SyncMessage) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Release transport resources."""
        pass


class Subscription:
    """
    Receiving end of a LocalChannel.

    Messages queue up until read with get() or drain(). When a callback is
    given, a daemon thread pumps the queue into it instead.
    """

    def __init__(self, channel: "LocalChannel", callback: Optional[Callable[[SyncMessage], None]] = None,
                 backlog: int = SUBSCRIBER_BACKLOG):
        self._channel = channel
        self._queue: "queue.Queue[Optional[SyncMessage]]" = queue.Queue(maxsize=backlog)
        self._closed = False
        self._callback = callback
        self._thread: Optional[threading.Thread] = None
        if callback is not None:
            self._thread = threading.Thread(target=self._pump, daemon=True)
            self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, message: SyncMessage) -> bool:
        """Queue a message without blocking. Returns False if it was dropped."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(message)
            return True
        except queue.Full:
            logger.debug(f"Subscriber backlog full, dropped {message.kind.value} #{message.seq}")
            return False

    def get(self, timeout: Optional[float] = None) -> Optional[SyncMessage]:
        """Wait for the next message; None on timeout or close."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[SyncMessage]:
        """Return every message queued so far."""
        messages = []
        while True:
            try:
                message = self._queue.get_nowait()
            except queue.Empty:
                break
            if message is not None:
                messages.append(message)
        return messages

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._channel.unsubscribe(self)
        if self._thread:
            try:
                self._queue.put_nowait(None)
            except queue.Full:
                pass
            if threading.current_thread() is not self._thread:
                self._thread.join(timeout=2.0)
            self._thread = None

    def _pump(self) -> None:
        while not self._closed:
            message = self._queue.get()
            if message is None:
                break
            try:
                self._callback(message)
            except Exception as e:
                logger.error(f"Subscriber callback error: {e}")


class LocalChannel(SyncChannel):
    """In-process channel; each subscriber has its own bounded queue."""

    def __init__(self, name: str = DEFAULT_CHANNEL):
        super().__init__(name)
        self._lock = threading.Lock()
        self._subscribers: List[Subscription] = []

    def subscribe(self, callback: Optional[Callable[[SyncMessage], None]] = None) -> Subscription:
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscribers.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def _deliver(self, message: SyncMessage) -> None:
        with self._lock:
            subscribers = self._subscribers.copy()
        for subscription in subscribers:
            subscription.offer(message)

    def close(self) -> None:
        with self._lock:
            subscribers = self._subscribers.copy()
        for subscription in subscribers:
            subscription.close()
