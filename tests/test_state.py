import pytest

from scholar.core.errors import InvalidTransitionError
from scholar.live.state import TRANSITIONS, LiveStatus, StatusMachine


def test_happy_path_and_change_callback():
    seen = []
    machine = StatusMachine(on_change=lambda prev, to: seen.append((prev, to)))

    for to in (LiveStatus.CONNECTING, LiveStatus.LISTENING, LiveStatus.SPEAKING, LiveStatus.LISTENING):
        machine.transition(to)

    assert machine.status is LiveStatus.LISTENING
    assert seen[0] == (LiveStatus.INITIALIZING, LiveStatus.CONNECTING)
    assert len(seen) == 4


def test_self_transition_is_a_no_op():
    seen = []
    machine = StatusMachine(on_change=lambda prev, to: seen.append(to))

    machine.transition(LiveStatus.INITIALIZING)

    assert seen == []


def test_invalid_transition_raises():
    machine = StatusMachine()
    with pytest.raises(InvalidTransitionError):
        machine.transition(LiveStatus.SPEAKING)


def test_every_live_state_can_fail_or_close():
    for status in LiveStatus:
        if status in (LiveStatus.CLOSED, LiveStatus.ERROR):
            continue
        assert LiveStatus.ERROR in TRANSITIONS[status]
        assert LiveStatus.CLOSED in TRANSITIONS[status]


def test_closed_is_terminal():
    machine = StatusMachine(initial=LiveStatus.CLOSED)
    for status in LiveStatus:
        if status is not LiveStatus.CLOSED:
            assert not machine.can(status)


def test_error_recovers_through_reconnecting():
    machine = StatusMachine(initial=LiveStatus.ERROR)
    machine.transition(LiveStatus.RECONNECTING)
    machine.transition(LiveStatus.INITIALIZING)
    assert machine.status is LiveStatus.INITIALIZING
