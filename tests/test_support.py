import threading

import pytest

from rafflecast.config import OperatorConfig
from rafflecast.core.errors import LicenseBlocked
from rafflecast.core.license import StaticLicenseProvider, require_active_license
from rafflecast.core.timing import PeriodicTask
from rafflecast.output.effects import Effects, MutableEffects, fire
from rafflecast.simulator.fake_roster import HEADERS, FakeRosterExport


def test_active_license_returns_operator():
    operator = require_active_license(StaticLicenseProvider(OperatorConfig(name="Lia")))
    assert operator.name == "Lia"


def test_blocked_license():
    provider = StaticLicenseProvider(OperatorConfig(name="Lia", license_active=False))
    with pytest.raises(LicenseBlocked):
        require_active_license(provider)


def test_periodic_task_ticks_until_cancelled():
    calls = []
    reached = threading.Event()

    def tick():
        calls.append(1)
        if len(calls) == 3:
            reached.set()

    task = PeriodicTask(lambda: 0.01, tick, "test-tick")
    task.start()
    assert reached.wait(2.0)
    task.cancel()
    task.join()

    assert not task.active
    count = len(calls)
    assert count >= 3
    reached.clear()
    assert not reached.wait(0.05)
    assert len(calls) == count


def test_periodic_task_survives_callback_error():
    calls = []
    reached = threading.Event()

    def tick():
        calls.append(1)
        if len(calls) == 2:
            reached.set()
        raise RuntimeError("boom")

    task = PeriodicTask(lambda: 0.01, tick, "test-error")
    task.start()
    assert reached.wait(2.0)
    task.cancel()
    task.join()


def test_cancel_from_inside_callback():
    done = threading.Event()
    task = None

    def tick():
        task.cancel()
        done.set()

    task = PeriodicTask(lambda: 0.01, tick, "test-self-cancel")
    task.start()
    assert done.wait(2.0)
    task.join()
    assert not task.active


def test_fire_ignores_effect_failures():
    class Broken(Effects):
        def burst_confetti(self):
            raise OSError("no display")

    fire(Broken(), "burst_confetti")
    fire(None, "burst_confetti")


def test_mute_only_silences_sounds():
    calls = []

    class Recording(Effects):
        def play_roll_sound(self):
            calls.append("roll")

        def play_win_sound(self):
            calls.append("win")

        def burst_confetti(self):
            calls.append("confetti")

    muted = MutableEffects(Recording(), lambda: True)
    muted.play_roll_sound()
    muted.play_win_sound()
    muted.burst_confetti()

    assert calls == ["confetti"]


def test_fake_export_is_reproducible():
    first = FakeRosterExport(participants=20, seed=5).to_csv()
    second = FakeRosterExport(participants=20, seed=5).to_csv()

    assert first == second
    assert first.splitlines()[0] == ",".join(HEADERS)


def test_simulation_seeds_only_an_empty_roster(controller, state):
    import logging
    from rafflecast.run import seed_demo_roster

    logger = logging.getLogger("test")
    seed_demo_roster(controller, logger)
    seeded = len(state.roster)
    assert seeded > 40

    controller.import_roster("Nome,Telefone\nAna,11911110000\n", "a.csv")
    seed_demo_roster(controller, logger)
    assert state.roster.names() == ["Ana"]
