"""
CasparCG AMCP Client

Plays draw sound clips and the confetti template on a CasparCG server
using the AMCP protocol over TCP.
"""

import socket
import logging
from typing import Optional
from ..config import get_config
from .effects import Effects

logger = logging.getLogger(__name__)


class CasparClient(Effects):
    """
    CasparCG AMCP protocol client.

    Handles connection management and command sending to CasparCG server.
    Sounds play on the layers just above the graphics layer.
    """

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 channel: Optional[int] = None, layer: Optional[int] = None):
        """
        Initialize CasparCG client.

        Args:
            host: CasparCG server hostname (default from config)
            port: CasparCG server port (default from config)
            channel: Video channel number (default from config)
            layer: Graphics layer number (default from config)
        """
        config = get_config()
        self.host = host or config.caspar.host
        self.port = port or config.caspar.port
        self.channel = channel or config.caspar.channel
        self.layer = layer or config.caspar.layer
        self.roll_clip = config.caspar.roll_clip
        self.win_clip = config.caspar.win_clip
        self.confetti_template = config.caspar.confetti_template
        self._socket: Optional[socket.socket] = None
        self._connected = False

    @property
    def connected(self) -> bool:
        """Check if connected to CasparCG."""
        return self._connected

    @property
    def roll_layer(self) -> int:
        return self.layer + 1

    @property
    def win_layer(self) -> int:
        return self.layer + 2

    def connect(self) -> bool:
        """
        Connect to CasparCG server.

        Returns:
            True if connection successful, False otherwise
        """
        if self._connected:
            return True

        try:
            self._socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self._socket.settimeout(5.0)
            self._socket.connect((self.host, self.port))
            self._connected = True
            logger.info(f"Connected to CasparCG at {self.host}:{self.port}")
            return True
        except (socket.error, socket.timeout) as e:
            logger.warning(f"Failed to connect to CasparCG: {e}")
            self._connected = False
            self._socket = None
            return False

    def disconnect(self) -> None:
        """Disconnect from CasparCG server."""
        if self._socket:
            try:
                self._socket.close()
            except socket.error as e:
                logger.debug(f"Error closing CasparCG socket: {e}")
        self._socket = None
        self._connected = False
        logger.info("Disconnected from CasparCG")

    def send(self, command: str) -> bool:
        """
        Send raw AMCP command to CasparCG.

        Args:
            command: AMCP command string

        Returns:
            True if sent successfully, False otherwise
        """
        if not self._connected:
            if not self.connect():
                return False

        try:
            full_command = f"{command}\r\n"
            self._socket.sendall(full_command.encode("utf-8"))
            logger.debug(f"Sent: {command}")
            return True
        except (socket.error, socket.timeout) as e:
            logger.warning(f"Failed to send command: {e}")
            self._connected = False
            return False

    # ============ Effects ============

    def play_roll_sound(self) -> None:
        self.send(f'PLAY {self.channel}-{self.roll_layer} "{self.roll_clip}" LOOP')

    def stop_roll_sound(self) -> None:
        self.send(f'STOP {self.channel}-{self.roll_layer}')

    def play_win_sound(self) -> None:
        self.send(f'PLAY {self.channel}-{self.win_layer} "{self.win_clip}"')

    def burst_confetti(self) -> None:
        self.send(f'CG {self.channel}-{self.layer} ADD 1 "{self.confetti_template}" 1')


# Mock client for running without CasparCG
class MockCasparClient(CasparClient):
    """
    Mock CasparCG client for testing.

    Logs all commands instead of sending to server.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._commands: list = []

    def connect(self) -> bool:
        self._connected = True
        logger.info("MockCasparClient: Simulated connection")
        return True

    def disconnect(self) -> None:
        self._connected = False
        logger.info("MockCasparClient: Simulated disconnect")

    def send(self, command: str) -> bool:
        self._commands.append(command)
        logger.debug(f"MockCasparClient: {command}")
        return True

    def get_commands(self) -> list:
        """Get list of all commands sent."""
        return self._commands.copy()

    def clear_commands(self) -> None:
        """Clear command history."""
        self._commands.clear()
