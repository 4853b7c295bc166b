"""Shared fixtures: manual timers, a fake clock, a recording channel and in-memory storage."""

import random
from concurrent.futures import Executor, Future

import pytest

from rafflecast.config import DrawConfig
from rafflecast.core.draw import DrawMachine
from rafflecast.core.errors import StorageError
from rafflecast.core.models import ParticipantRecord, Roster
from rafflecast.core.show import ShowController
from rafflecast.core.state import ShowState
from rafflecast.sync.channel import SyncChannel


class ManualTask:
    """PeriodicTask stand-in that only ticks when the test says so."""

    def __init__(self, interval, callback, name):
        self.interval = interval
        self.callback = callback
        self.name = name
        self.started = False
        self.cancelled = False

    @property
    def active(self):
        return self.started and not self.cancelled

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def join(self, timeout=None):
        pass

    def fire(self):
        # Runs even after cancel, like a tick racing the cancellation
        self.callback()


class ManualTaskFactory:
    def __init__(self):
        self.tasks = []

    def __call__(self, interval, callback, name):
        task = ManualTask(interval, callback, name)
        self.tasks.append(task)
        return task

    @property
    def live(self):
        return [t for t in self.tasks if t.active]

    @property
    def last(self):
        return self.tasks[-1] if self.tasks else None


class InlineExecutor(Executor):
    """Runs submitted effects immediately so tests can assert on call order."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        future.set_result(fn(*args, **kwargs))
        return future


class FakeClock:
    """Monotonic clock advanced by hand, kept in whole milliseconds."""

    def __init__(self):
        self._ms = 0

    def __call__(self):
        return self._ms / 1000

    def advance(self, seconds):
        self._ms += int(round(seconds * 1000))


class RecordingChannel(SyncChannel):
    def __init__(self, name="test_channel"):
        super().__init__(name)
        self.messages = []

    def _deliver(self, message):
        self.messages.append(message)

    def kinds(self):
        return [m.kind for m in self.messages]

    def of_kind(self, kind):
        return [m for m in self.messages if m.kind == kind]


class RecordingEffects:
    def __init__(self):
        self.calls = []

    def play_roll_sound(self):
        self.calls.append("play_roll_sound")

    def stop_roll_sound(self):
        self.calls.append("stop_roll_sound")

    def play_win_sound(self):
        self.calls.append("play_win_sound")

    def burst_confetti(self):
        self.calls.append("burst_confetti")


class MemoryStorage:
    """In-memory storage collaborator; method names in `failing` raise StorageError."""

    def __init__(self):
        self.participants = []
        self.history = []
        self.prizes = []
        self.failing = set()
        self._next_id = 1

    def _check(self, method):
        if method in self.failing:
            raise StorageError(f"{method} unavailable")

    def _id(self):
        value = self._next_id
        self._next_id += 1
        return value

    def list_participants(self):
        self._check("list_participants")
        return list(self.participants)

    def replace_participants(self, records):
        self._check("replace_participants")
        self.participants = [r.with_id(self._id()) for r in records]
        return list(self.participants)

    def delete_participant(self, participant_id):
        self._check("delete_participant")
        before = len(self.participants)
        self.participants = [p for p in self.participants if p.id != participant_id]
        return len(self.participants) < before

    def clear_participants(self):
        self._check("clear_participants")
        self.participants = []

    def append_history(self, winner):
        self._check("append_history")
        history_id = self._id()
        self.history.insert(0, winner.with_id(history_id))
        return history_id

    def list_history(self):
        self._check("list_history")
        return list(self.history)

    def delete_history(self, history_id):
        self._check("delete_history")
        before = len(self.history)
        self.history = [w for w in self.history if w.id != history_id]
        return len(self.history) < before

    def clear_history(self):
        self._check("clear_history")
        self.history = []

    def list_prizes(self):
        self._check("list_prizes")
        return list(self.prizes)

    def add_prize(self, label):
        self._check("add_prize")
        self.prizes.append(label)

    def remove_prize(self, label):
        self._check("remove_prize")
        if label in self.prizes:
            self.prizes.remove(label)
            return True
        return False


def make_roster(count, start_id=1):
    return Roster([
        ParticipantRecord(name=f"Participant {i}", phone=f"11900000{i:03d}", id=start_id + i)
        for i in range(count)
    ])


@pytest.fixture
def roster_of():
    return make_roster


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tasks():
    return ManualTaskFactory()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def effects():
    return RecordingEffects()


@pytest.fixture
def inline_executor():
    return InlineExecutor()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def state():
    return ShowState()


@pytest.fixture
def settings():
    return DrawConfig(duration=5, speed=100)


@pytest.fixture
def machine(state, channel, storage, effects, settings, clock, tasks, inline_executor):
    machine = DrawMachine(
        state,
        channel,
        storage=storage,
        effects=effects,
        settings=settings,
        rng=random.Random(1234),
        clock=clock,
        task_factory=tasks,
        effects_executor=inline_executor,
    )
    yield machine
    machine.shutdown()


@pytest.fixture
def controller(state, machine, storage):
    return ShowController(state, machine, storage=storage)


@pytest.fixture
def run_draw(machine, tasks, clock):
    """Advance the fake clock one tick at a time until the drawing commits."""
    def run(max_ticks=10000):
        ticks = 0
        while tasks.live and ticks < max_ticks:
            clock.advance(machine.settings.tick_seconds)
            tasks.last.fire()
            ticks += 1
        return ticks
    return run
