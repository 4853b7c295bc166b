"""
Flask-SocketIO Sync Channel

Broadcasts draw events to browser displays. Displays join a room named
after the channel on the display namespace; each message kind is emitted
as its own event with the message dictionary as data.
"""

import logging

from flask_socketio import SocketIO

from .channel import DEFAULT_CHANNEL, SyncChannel, SyncMessage

logger = logging.getLogger(__name__)

DISPLAY_NAMESPACE = "/display"


class SocketIOChannel(SyncChannel):
    """Sync Channel carried by a Flask-SocketIO server."""

    def __init__(self, socketio: SocketIO, name: str = DEFAULT_CHANNEL,
                 namespace: str = DISPLAY_NAMESPACE):
        super().__init__(name)
        self.socketio = socketio
        self.namespace = namespace

    def _deliver(self, message: SyncMessage) -> None:
        self.socketio.emit(
            message.kind.value,
            message.to_dict(),
            to=self.name,
            namespace=self.namespace
        )
        logger.debug(f"Emitted {message.kind.value} #{message.seq} to {self.name}")
