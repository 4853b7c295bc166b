import json

import pytest

from rafflecast.config import DrawConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("RAFFLECAST_DURATION", "RAFFLECAST_SPEED", "RAFFLECAST_MUTED",
                 "RAFFLECAST_WEB_PORT", "RAFFLECAST_CHANNEL", "RAFFLECAST_DB_PATH",
                 "RAFFLECAST_CASPAR_HOST", "RAFFLECAST_CASPAR_ENABLED", "RAFFLECAST_DEBUG"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file(tmp_path):
    config = load_config(str(tmp_path / "missing.json"))

    assert config.draw.duration == 10
    assert config.draw.speed == 50
    assert config.draw.idle_seconds == pytest.approx(0.3)
    assert config.sync.channel == "sorteio_facil_channel"
    assert config.web.port == 8080
    assert config.operator.license_active


def test_file_values_are_clamped(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "draw": {"duration": 300, "speed": 2, "muted": True},
        "sync": {"channel": "feira_2024"},
        "caspar": {"enabled": True, "roll_clip": "drums"},
    }))

    config = load_config(str(path))

    assert config.draw.duration == 60
    assert config.draw.speed == 10
    assert config.draw.muted
    assert config.sync.channel == "feira_2024"
    assert config.caspar.enabled
    assert config.caspar.roll_clip == "drums"


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"draw": {"duration": 20}, "web": {"port": 9000}}))
    monkeypatch.setenv("RAFFLECAST_DURATION", "30")
    monkeypatch.setenv("RAFFLECAST_SPEED", "1000")
    monkeypatch.setenv("RAFFLECAST_WEB_PORT", "8181")
    monkeypatch.setenv("RAFFLECAST_MUTED", "yes")
    monkeypatch.setenv("RAFFLECAST_DB_PATH", str(tmp_path / "x.db"))

    config = load_config(str(path))

    assert config.draw.duration == 30
    assert config.draw.speed == 300
    assert config.draw.muted
    assert config.web.port == 8181
    assert config.storage.db_path == str(tmp_path / "x.db")


def test_draw_config_tick_interval():
    draw = DrawConfig(duration=7, speed=120)
    assert draw.tick_seconds == pytest.approx(0.12)
    assert draw.to_dict() == {"duration": 7, "speed": 120, "muted": False}

    draw.set_speed(5)
    assert draw.speed == 10
