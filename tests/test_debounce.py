import pytest

from notchwatch.core.debounce import DebounceConfig, DebounceMachine
from notchwatch.core.reading import Reading

ACTIVE = Reading.active()
INACTIVE = Reading.inactive()
NEUTRAL = Reading.neutral()


def _feed(machine: DebounceMachine, readings) -> list:
    return [machine.update(reading) for reading in readings]


def test_activates_on_first_reading_with_fast_show() -> None:
    machine = DebounceMachine(DebounceConfig(required_to_activate=1, required_to_deactivate=3))

    assert machine.update(ACTIVE) is True
    assert machine.state.as_tuple() == (1, 0, True)


def test_deactivates_only_on_third_trailing_inactive() -> None:
    machine = DebounceMachine(DebounceConfig(required_to_activate=1, required_to_deactivate=3))
    machine.update(ACTIVE)

    events = _feed(machine, [INACTIVE, INACTIVE, ACTIVE, INACTIVE, INACTIVE, INACTIVE])

    assert events == [None, None, None, None, None, False]
    assert machine.state.as_tuple() == (0, 3, False)


def test_activation_requires_consecutive_readings() -> None:
    machine = DebounceMachine(DebounceConfig(required_to_activate=3, required_to_deactivate=1))

    events = _feed(machine, [ACTIVE, ACTIVE, INACTIVE, ACTIVE, ACTIVE])
    assert events == [None, None, None, None, None]
    assert machine.is_active is False

    assert machine.update(ACTIVE) is True


def test_counters_are_mutually_exclusive() -> None:
    machine = DebounceMachine(DebounceConfig(required_to_activate=2, required_to_deactivate=2))

    for reading in [ACTIVE, INACTIVE, ACTIVE, ACTIVE, INACTIVE, INACTIVE, ACTIVE]:
        machine.update(reading)
        state = machine.state
        assert state.consecutive_active == 0 or state.consecutive_inactive == 0


def test_neutral_reading_leaves_state_unchanged() -> None:
    machine = DebounceMachine(DebounceConfig(required_to_activate=2, required_to_deactivate=2))
    machine.update(ACTIVE)
    before = machine.state.as_tuple()

    assert machine.update(NEUTRAL) is None
    assert machine.state.as_tuple() == before

    # 中性读数不打断连续计数
    assert machine.update(ACTIVE) is True


def test_repeated_readings_do_not_reemit() -> None:
    machine = DebounceMachine(DebounceConfig(required_to_activate=1, required_to_deactivate=1))

    assert _feed(machine, [ACTIVE, ACTIVE, ACTIVE]) == [True, None, None]
    assert _feed(machine, [INACTIVE, INACTIVE]) == [False, None]


def test_timeout_and_failure_count_as_inactive() -> None:
    machine = DebounceMachine(DebounceConfig(required_to_activate=1, required_to_deactivate=2))
    machine.update(ACTIVE)

    assert machine.update(Reading.timeout()) is None
    assert machine.update(Reading.failure("boom")) is False


def test_reset_clears_everything_and_reports_previous_state() -> None:
    machine = DebounceMachine(DebounceConfig())
    machine.update(ACTIVE)

    assert machine.reset() is True
    assert machine.state.as_tuple() == (0, 0, False)
    assert machine.reset() is False


def test_state_is_a_copy() -> None:
    machine = DebounceMachine(DebounceConfig())
    snapshot = machine.state
    snapshot.is_active = True

    assert machine.is_active is False


@pytest.mark.parametrize("show, hide", [(0, 1), (1, 0), (-1, 3)])
def test_config_rejects_thresholds_below_one(show: int, hide: int) -> None:
    with pytest.raises(ValueError):
        DebounceConfig(required_to_activate=show, required_to_deactivate=hide)
