import threading
import time

import pytest

from rafflecast.core.errors import DrawInProgress, EmptyRosterError, InvalidTransition
from rafflecast.core.state import DrawPhase
from rafflecast.output.caspar import MockCasparClient
from rafflecast.output.effects import Effects
from rafflecast.sync.channel import MessageKind


@pytest.fixture
def loaded(state, roster_of):
    state.replace_roster(roster_of(50))
    return state


def test_start_draw_on_empty_roster_is_rejected(machine, state, channel, tasks):
    with pytest.raises(EmptyRosterError):
        machine.start_draw()

    assert state.phase == DrawPhase.IDLE
    assert channel.messages == []
    assert tasks.tasks == []


def test_full_drawing_publishes_candidates_then_one_winner(machine, loaded, channel, storage, run_draw):
    machine.start_draw()
    assert loaded.phase == DrawPhase.SPINNING

    run_draw()

    candidates = channel.of_kind(MessageKind.CANDIDATE_UPDATED)
    winners = channel.of_kind(MessageKind.WINNER_ANNOUNCED)
    # 5 s at 100 ms: one immediate tick plus one per interval
    assert 50 <= len(candidates) <= 51
    assert len(winners) == 1
    assert channel.kinds()[-1] == MessageKind.WINNER_ANNOUNCED
    assert len(storage.history) == 1
    assert len(loaded.history) == 1
    assert loaded.phase == DrawPhase.WINNER_SHOWN


def test_winner_message_carries_prize_and_saved_winner_gets_id(machine, loaded, channel, storage, run_draw):
    machine.start_draw()
    run_draw()

    session = loaded.session
    payload = channel.of_kind(MessageKind.WINNER_ANNOUNCED)[0].payload
    assert payload["name"] == session.winner.name
    assert payload["prize"] == "Brinde Surpresa"
    assert session.winner.id == storage.history[0].id
    assert loaded.history[0].id == storage.history[0].id
    assert session.history_error is None


def test_draw_started_is_published_with_active_prize(machine, loaded, channel):
    loaded.add_prize("Bicicleta")
    loaded.select_prize("Bicicleta")

    machine.start_draw()

    started = channel.of_kind(MessageKind.DRAW_STARTED)
    assert [m.payload for m in started] == ["Bicicleta"]


def test_first_tick_runs_immediately(machine, loaded, channel):
    machine.start_draw()

    assert len(channel.of_kind(MessageKind.CANDIDATE_UPDATED)) == 1
    assert loaded.session.ticks == 1
    assert loaded.session.candidate


def test_second_start_while_spinning_is_rejected(machine, loaded, channel, tasks):
    machine.start_draw()
    published = len(channel.messages)
    spin_task = tasks.last

    with pytest.raises(DrawInProgress):
        machine.start_draw()

    assert len(channel.messages) == published
    assert tasks.last is spin_task
    assert spin_task.active


def test_winner_is_independent_of_last_candidate(machine, state, roster_of, channel, run_draw):
    state.replace_roster(roster_of(2))

    names = set()
    differs = 0
    for _ in range(20):
        machine.start_draw()
        run_draw()
        last_shown = channel.of_kind(MessageKind.CANDIDATE_UPDATED)[-1].payload
        winner = channel.of_kind(MessageKind.WINNER_ANNOUNCED)[-1].payload["name"]
        names.add(winner)
        if winner != last_shown:
            differs += 1

    assert names == {"Participant 0", "Participant 1"}
    assert len(channel.of_kind(MessageKind.WINNER_ANNOUNCED)) == 20
    # Independent picks disagree with the last shown name about half the time
    assert 0 < differs < 20


def test_reset_then_redraw_can_pick_previous_winner(machine, state, roster_of, channel, run_draw):
    state.replace_roster(roster_of(1))
    machine.start_draw()
    run_draw()
    first = state.session.winner

    machine.reset()
    assert state.phase == DrawPhase.IDLE
    assert state.session.winner is None
    assert channel.kinds()[-1] == MessageKind.DRAW_RESET

    machine.start_draw()
    run_draw()
    assert state.session.winner.participant == first.participant
    assert len(state.history) == 2


def test_start_from_winner_shown_discards_previous_winner(machine, loaded, run_draw):
    machine.start_draw()
    run_draw()
    assert loaded.session.winner is not None

    machine.start_draw()
    assert loaded.phase == DrawPhase.SPINNING
    assert loaded.session.winner is None


def test_idle_cycling_requires_participants(machine, state):
    with pytest.raises(EmptyRosterError):
        machine.toggle_idle_cycling()
    assert state.phase == DrawPhase.IDLE


def test_idle_cycling_toggles_and_publishes_candidates(machine, loaded, channel, tasks):
    assert machine.toggle_idle_cycling() == DrawPhase.IDLE_CYCLING
    cycle_task = tasks.last
    assert cycle_task.interval() == pytest.approx(0.3)

    for _ in range(3):
        cycle_task.fire()

    assert len(channel.of_kind(MessageKind.CANDIDATE_UPDATED)) == 3
    assert len(loaded.roster) == 50

    assert machine.toggle_idle_cycling() == DrawPhase.IDLE
    assert cycle_task.cancelled
    assert channel.kinds()[0] == MessageKind.IDLE_CYCLING_STARTED
    assert channel.kinds()[-1] == MessageKind.IDLE_CYCLING_STOPPED


def test_starting_draw_cancels_cycling_before_first_spin_tick(machine, loaded, channel, tasks):
    machine.toggle_idle_cycling()
    cycle_task = tasks.last

    machine.start_draw()

    assert cycle_task.cancelled
    assert tasks.live == [tasks.last]
    assert tasks.last is not cycle_task
    kinds = channel.kinds()
    assert kinds.index(MessageKind.IDLE_CYCLING_STOPPED) < kinds.index(MessageKind.CANDIDATE_UPDATED)

    # A stale cycling tick must not publish anything
    published = len(channel.messages)
    cycle_task.fire()
    assert len(channel.messages) == published


def test_idle_cycling_not_available_while_spinning(machine, loaded):
    machine.start_draw()
    with pytest.raises(InvalidTransition):
        machine.toggle_idle_cycling()
    assert loaded.phase == DrawPhase.SPINNING


def test_reset_while_spinning_stops_timer(machine, loaded, channel, tasks, effects):
    machine.start_draw()
    spin_task = tasks.last

    machine.reset()

    assert spin_task.cancelled
    assert tasks.live == []
    assert loaded.phase == DrawPhase.IDLE
    assert effects.calls[-1] == "stop_roll_sound"

    published = len(channel.messages)
    spin_task.fire()
    assert len(channel.messages) == published
    assert channel.of_kind(MessageKind.WINNER_ANNOUNCED) == []


def test_reset_is_safe_from_idle(machine, state, channel):
    machine.reset()
    assert state.phase == DrawPhase.IDLE
    assert channel.kinds() == [MessageKind.DRAW_RESET]


def test_history_append_failure_still_shows_winner(machine, loaded, channel, storage, run_draw):
    storage.failing.add("append_history")

    machine.start_draw()
    run_draw()

    session = loaded.session
    assert session.phase == DrawPhase.WINNER_SHOWN
    assert session.winner is not None
    assert session.winner.id is None
    assert "append_history unavailable" in session.history_error
    assert len(loaded.history) == 1
    assert storage.history == []
    assert len(channel.of_kind(MessageKind.WINNER_ANNOUNCED)) == 1


def test_effects_order_on_draw(machine, loaded, effects, run_draw):
    machine.start_draw()
    run_draw()

    assert effects.calls == [
        "play_roll_sound", "stop_roll_sound", "play_win_sound", "burst_confetti"
    ]


def test_muted_drawing_keeps_confetti(machine, loaded, effects, settings, run_draw):
    settings.muted = True

    machine.start_draw()
    run_draw()

    assert "play_roll_sound" not in effects.calls
    assert "play_win_sound" not in effects.calls
    assert effects.calls == ["stop_roll_sound", "burst_confetti"]


def test_failing_effects_do_not_interrupt_drawing(state, channel, storage, settings, clock, tasks, roster_of):
    from rafflecast.core.draw import DrawMachine

    class BrokenEffects:
        def __getattr__(self, name):
            def fail():
                raise OSError("audio device gone")
            return fail

    state.replace_roster(roster_of(5))
    machine = DrawMachine(state, channel, storage=storage, effects=BrokenEffects(),
                          settings=settings, clock=clock, task_factory=tasks)
    machine.start_draw()
    while tasks.live:
        clock.advance(settings.tick_seconds)
        tasks.last.fire()

    assert state.phase == DrawPhase.WINNER_SHOWN
    assert len(channel.of_kind(MessageKind.WINNER_ANNOUNCED)) == 1
    machine.shutdown()


def test_speed_change_applies_to_running_spin(machine, loaded, settings, tasks):
    machine.start_draw()
    assert tasks.last.interval() == pytest.approx(0.1)

    settings.set_speed(200)
    assert tasks.last.interval() == pytest.approx(0.2)


def test_caspar_commands_follow_draw(state, channel, settings, clock, tasks, roster_of, inline_executor):
    from rafflecast.core.draw import DrawMachine

    caspar = MockCasparClient(host="127.0.0.1", port=5250, channel=1, layer=10)
    state.replace_roster(roster_of(3))
    machine = DrawMachine(state, channel, effects=caspar, settings=settings,
                          clock=clock, task_factory=tasks, effects_executor=inline_executor)
    machine.start_draw()
    while tasks.live:
        clock.advance(settings.tick_seconds)
        tasks.last.fire()

    commands = caspar.get_commands()
    assert commands[0].startswith("PLAY 1-11 ")
    assert commands[1] == "STOP 1-11"
    assert commands[2].startswith("PLAY 1-12 ")
    assert commands[3].startswith("CG 1-10 ADD 1 ")


def test_publish_prize_sends_active_label(machine, state, channel):
    machine.publish_prize()
    assert channel.messages[-1].kind == MessageKind.PRIZE_UPDATED
    assert channel.messages[-1].payload == "Brinde Surpresa"


def test_shutdown_cancels_live_task(machine, loaded, tasks):
    machine.toggle_idle_cycling()
    machine.shutdown()
    assert tasks.live == []
    assert not machine.task_active


def test_winner_is_announced_before_effects_run(state, channel, storage, settings, clock, tasks,
                                                roster_of, inline_executor):
    from rafflecast.core.draw import DrawMachine

    seen = []

    class WatchingEffects(Effects):
        def stop_roll_sound(self):
            seen.append(len(channel.of_kind(MessageKind.WINNER_ANNOUNCED)))

    state.replace_roster(roster_of(3))
    machine = DrawMachine(state, channel, storage=storage, effects=WatchingEffects(),
                          settings=settings, clock=clock, task_factory=tasks,
                          effects_executor=inline_executor)
    machine.start_draw()
    while tasks.live:
        clock.advance(settings.tick_seconds)
        tasks.last.fire()

    assert seen == [1]


def test_slow_effects_do_not_hold_up_the_drawing(state, channel, storage, settings, clock, tasks, roster_of):
    from rafflecast.core.draw import DrawMachine

    release = threading.Event()
    confetti = threading.Event()

    class StuckEffects(Effects):
        def play_roll_sound(self):
            release.wait(5)

        def play_win_sound(self):
            release.wait(5)

        def burst_confetti(self):
            confetti.set()

    state.replace_roster(roster_of(5))
    machine = DrawMachine(state, channel, storage=storage, effects=StuckEffects(),
                          settings=settings, clock=clock, task_factory=tasks)
    try:
        started = time.monotonic()
        machine.start_draw()
        while tasks.live:
            clock.advance(settings.tick_seconds)
            tasks.last.fire()
        elapsed = time.monotonic() - started

        assert elapsed < 1.0
        assert state.phase == DrawPhase.WINNER_SHOWN
        assert len(channel.of_kind(MessageKind.WINNER_ANNOUNCED)) == 1
        assert not confetti.is_set()

        release.set()
        assert confetti.wait(5)
    finally:
        release.set()
        machine.shutdown()


def test_reset_is_not_blocked_by_a_slow_history_save(machine, loaded, storage, settings, clock, tasks):
    saving = threading.Event()
    release = threading.Event()
    append = storage.append_history

    def slow_append(winner):
        saving.set()
        release.wait(5)
        return append(winner)

    storage.append_history = slow_append
    machine.start_draw()
    while len(tasks.live) and loaded.session.ticks < 50:
        clock.advance(settings.tick_seconds)
        tasks.last.fire()
    clock.advance(settings.tick_seconds)

    committing = threading.Thread(target=tasks.last.fire)
    committing.start()
    try:
        assert saving.wait(5)
        assert loaded.phase == DrawPhase.WINNER_SHOWN

        resetting = threading.Thread(target=machine.reset)
        resetting.start()
        resetting.join(2)
        assert not resetting.is_alive()
        assert loaded.phase == DrawPhase.IDLE
    finally:
        release.set()
        committing.join(5)

    assert len(storage.history) == 1
    assert loaded.history[0].id == storage.history[0].id
    assert loaded.session.history_error is None
