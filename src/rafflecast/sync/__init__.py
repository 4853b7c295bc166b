"""RaffleCast Sync Channel"""

from .channel import (
    DEFAULT_CHANNEL,
    LocalChannel,
    MessageKind,
    Subscription,
    SyncChannel,
    SyncMessage,
)
from .mirror import DisplayMirror, mask_phone
from .socketio_channel import SocketIOChannel

__all__ = [
    "DEFAULT_CHANNEL", "LocalChannel", "MessageKind", "Subscription",
    "SyncChannel", "SyncMessage", "DisplayMirror", "mask_phone", "SocketIOChannel",
]
