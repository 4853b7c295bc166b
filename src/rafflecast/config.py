"""
RaffleCast Configuration Management

Loads settings from config/default.json with environment variable overrides.
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

# Operator-tunable draw limits
DURATION_MIN = 5
DURATION_MAX = 60
SPEED_MIN = 10
SPEED_MAX = 300


def _clamp(value, low, high):
    return max(low, min(high, value))


@dataclass
class DrawConfig:
    duration: float = 10  # seconds the names spin before a winner is committed
    speed: int = 50  # milliseconds between spin ticks
    idle_interval_ms: int = 300  # idle name rotation, fixed
    muted: bool = False

    def __post_init__(self):
        self.set_duration(self.duration)
        self.set_speed(self.speed)

    def set_duration(self, seconds: float) -> float:
        self.duration = _clamp(float(seconds), DURATION_MIN, DURATION_MAX)
        return self.duration

    def set_speed(self, milliseconds: int) -> int:
        self.speed = int(_clamp(int(milliseconds), SPEED_MIN, SPEED_MAX))
        return self.speed

    @property
    def tick_seconds(self) -> float:
        return self.speed / 1000.0

    @property
    def idle_seconds(self) -> float:
        return self.idle_interval_ms / 1000.0

    def to_dict(self) -> dict:
        return {"duration": self.duration, "speed": self.speed, "muted": self.muted}


@dataclass
class WebConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False


@dataclass
class SyncConfig:
    channel: str = "sorteio_facil_channel"
    catchup_delay: float = 1.0  # seconds after setup before the prize catch-up ping


@dataclass
class StorageConfig:
    db_path: Optional[str] = None  # None = platform data directory


@dataclass
class CasparConfig:
    host: str = "127.0.0.1"
    port: int = 5250
    channel: int = 1
    layer: int = 10
    enabled: bool = False
    roll_clip: str = "tambores"
    win_clip: str = "vitoria"
    confetti_template: str = "confetti"


@dataclass
class OperatorConfig:
    name: str = "operator"
    license_active: bool = True


@dataclass
class Config:
    draw: DrawConfig = field(default_factory=DrawConfig)
    web: WebConfig = field(default_factory=WebConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    caspar: CasparConfig = field(default_factory=CasparConfig)
    operator: OperatorConfig = field(default_factory=OperatorConfig)
    debug: bool = False


def _truthy(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from JSON file with environment variable overrides.

    Priority (highest to lowest):
    1. Environment variables (RAFFLECAST_*)
    2. Config file values
    3. Default values
    """
    config = Config()

    # Determine config file path
    if config_path is None:
        base_dir = Path(__file__).parent.parent
        config_path = base_dir / "config" / "default.json"
    else:
        config_path = Path(config_path)

    # Load from JSON if exists
    if config_path.exists():
        with open(config_path, "r") as f:
            data = json.load(f)

        # Draw config
        if "draw" in data:
            config.draw.set_duration(data["draw"].get("duration", config.draw.duration))
            config.draw.set_speed(data["draw"].get("speed", config.draw.speed))
            config.draw.muted = data["draw"].get("muted", config.draw.muted)

        # Web config
        if "web" in data:
            config.web.host = data["web"].get("host", config.web.host)
            config.web.port = data["web"].get("port", config.web.port)
            config.web.debug = data["web"].get("debug", config.web.debug)

        # Sync channel config
        if "sync" in data:
            config.sync.channel = data["sync"].get("channel", config.sync.channel)
            config.sync.catchup_delay = data["sync"].get("catchup_delay", config.sync.catchup_delay)

        if "storage" in data:
            config.storage.db_path = data["storage"].get("db_path", config.storage.db_path)

        # CasparCG config
        if "caspar" in data:
            config.caspar.host = data["caspar"].get("host", config.caspar.host)
            config.caspar.port = data["caspar"].get("port", config.caspar.port)
            config.caspar.channel = data["caspar"].get("channel", config.caspar.channel)
            config.caspar.layer = data["caspar"].get("layer", config.caspar.layer)
            config.caspar.enabled = data["caspar"].get("enabled", config.caspar.enabled)
            config.caspar.roll_clip = data["caspar"].get("roll_clip", config.caspar.roll_clip)
            config.caspar.win_clip = data["caspar"].get("win_clip", config.caspar.win_clip)
            config.caspar.confetti_template = data["caspar"].get(
                "confetti_template", config.caspar.confetti_template
            )

        if "operator" in data:
            config.operator.name = data["operator"].get("name", config.operator.name)
            config.operator.license_active = data["operator"].get(
                "license_active", config.operator.license_active
            )

        config.debug = data.get("debug", config.debug)

    # Environment variable overrides
    if os.environ.get("RAFFLECAST_DURATION"):
        config.draw.set_duration(float(os.environ["RAFFLECAST_DURATION"]))
    if os.environ.get("RAFFLECAST_SPEED"):
        config.draw.set_speed(int(os.environ["RAFFLECAST_SPEED"]))
    if os.environ.get("RAFFLECAST_MUTED"):
        config.draw.muted = _truthy(os.environ["RAFFLECAST_MUTED"])
    if os.environ.get("RAFFLECAST_WEB_PORT"):
        config.web.port = int(os.environ["RAFFLECAST_WEB_PORT"])
    if os.environ.get("RAFFLECAST_CHANNEL"):
        config.sync.channel = os.environ["RAFFLECAST_CHANNEL"]
    if os.environ.get("RAFFLECAST_DB_PATH"):
        config.storage.db_path = os.environ["RAFFLECAST_DB_PATH"]
    if os.environ.get("RAFFLECAST_CASPAR_HOST"):
        config.caspar.host = os.environ["RAFFLECAST_CASPAR_HOST"]
    if os.environ.get("RAFFLECAST_CASPAR_ENABLED"):
        config.caspar.enabled = _truthy(os.environ["RAFFLECAST_CASPAR_ENABLED"])
    if os.environ.get("RAFFLECAST_DEBUG"):
        config.debug = _truthy(os.environ["RAFFLECAST_DEBUG"])

    return config


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global config instance, loading it if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Config) -> None:
    """Set the global config instance."""
    global _config
    _config = config
