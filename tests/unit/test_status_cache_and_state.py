"""Unit tests for the status cache and the conversion lifecycle state machine."""

from __future__ import annotations

import pytest

from pandocflow.engine.state import ConversionStateMachine, LifecycleState
from pandocflow.engine.status_cache import StatusCache
from pandocflow.errors import InitialisationError


class _FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        """Start at zero seconds."""

        self.now = 0.0

    def __call__(self) -> float:
        """Return the current fake time."""

        return self.now


def _collaborators(**overrides: object) -> dict[str, object | None]:
    """Return a complete collaborator mapping with optional overrides."""

    values: dict[str, object | None] = {
        "assessor": object(),
        "splitter": object(),
        "sanitiser": object(),
        "simplifier": object(),
        "sink": object(),
    }
    values.update(overrides)
    return values


def _ready_machine() -> ConversionStateMachine:
    """Return a machine that is initialised with a bound converter."""

    machine = ConversionStateMachine()
    assert machine.initialise(_collaborators())
    assert machine.bind_converter(lambda document, arguments: document)
    return machine


def test_status_cache_memoises_within_ttl_and_recomputes_after_expiry() -> None:
    """Repeated reads inside the TTL should reuse one snapshot."""

    machine = ConversionStateMachine()
    clock = _FakeClock()
    cache = StatusCache(source=machine.snapshot, ttl_seconds=0.05, clock=clock)

    first = cache.read_status()
    second = cache.read_status()
    clock.now = 0.06
    third = cache.read_status()

    assert first is second
    assert third is not first
    assert cache.hits == 1
    assert cache.misses == 2
    assert cache.hit_rate() == pytest.approx(1 / 3)


def test_status_cache_with_zero_ttl_always_recomputes() -> None:
    """A zero TTL disables memoisation entirely."""

    machine = ConversionStateMachine()
    cache = StatusCache(source=machine.snapshot, ttl_seconds=0.0, clock=_FakeClock())

    cache.read_status()
    cache.read_status()

    assert cache.hits == 0
    assert cache.misses == 2


def test_status_cache_rejects_negative_ttl() -> None:
    """Negative freshness windows are configuration errors."""

    with pytest.raises(ValueError, match="ttl_seconds"):
        StatusCache(source=ConversionStateMachine().snapshot, ttl_seconds=-1.0)


def test_state_mutation_invalidates_cache_before_reader_sees_stale_snapshot() -> None:
    """Every transition should drop the memoised snapshot synchronously."""

    machine = _ready_machine()
    clock = _FakeClock()
    cache = StatusCache(source=machine.snapshot, ttl_seconds=10.0, clock=clock)
    machine.set_on_change(cache.invalidate)

    assert cache.read_status().conversion_in_progress is False
    assert machine.start_conversion()
    assert cache.read_status().conversion_in_progress is True
    assert cache.invalidations == 1


def test_initialise_with_missing_collaborators_stays_uninitialised() -> None:
    """Missing collaborators should fail non-fatally and keep the error."""

    machine = ConversionStateMachine()

    assert machine.initialise(_collaborators(sink=None, assessor=None)) is False
    assert machine.state is LifecycleState.UNINITIALISED
    error = machine.initialisation_error
    assert isinstance(error, InitialisationError)
    assert error.missing == ("assessor", "sink")
    assert machine.snapshot().initialised is False


def test_bind_converter_is_rejected_until_initialised_and_latest_binding_wins() -> None:
    """Binding requires initialisation; rebinding replaces the converter."""

    machine = ConversionStateMachine()

    def first(document: str, arguments: object) -> str:
        return "first"

    def second(document: str, arguments: object) -> str:
        return "second"

    assert machine.bind_converter(first) is False
    assert machine.initialise(_collaborators())
    assert machine.bind_converter(first)
    assert machine.bind_converter(second)

    assert machine.state is LifecycleState.READY
    assert machine.converter is second
    assert machine.snapshot().pandoc_available is True


def test_start_conversion_while_converting_sets_queued_flag_once() -> None:
    """A second trigger while converting should queue instead of starting."""

    machine = _ready_machine()

    assert machine.start_conversion() is True
    assert machine.start_conversion() is False
    assert machine.start_conversion() is False

    status = machine.snapshot()
    assert status.conversion_in_progress is True
    assert status.conversion_queued is True


def test_complete_conversion_reports_pending_replay_and_clears_queue() -> None:
    """Completion returns to READY and hands back the queued flag."""

    machine = _ready_machine()
    machine.start_conversion()
    machine.start_conversion()

    assert machine.complete_conversion(success=True) is True
    assert machine.state is LifecycleState.READY
    assert machine.queued is False
    assert machine.complete_conversion(success=True) is False


def test_start_conversion_without_converter_is_rejected() -> None:
    """An initialised engine without a converter cannot start converting."""

    machine = ConversionStateMachine()
    machine.initialise(_collaborators())

    assert machine.start_conversion() is False
    assert machine.state is LifecycleState.INITIALISED
    assert machine.queued is False


def test_timeout_counter_and_teardown() -> None:
    """Timeout arming is counted and teardown resets every flag."""

    machine = _ready_machine()
    machine.start_conversion()
    machine.timeout_armed()
    machine.timeout_armed()
    machine.timeout_cleared()
    assert machine.snapshot().active_timeout_count == 1

    machine.teardown()

    status = machine.snapshot()
    assert machine.state is LifecycleState.UNINITIALISED
    assert status.active_timeout_count == 0
    assert status.pandoc_available is False
    assert status.conversion_in_progress is False


def test_validate_reports_queue_warning_and_clean_state() -> None:
    """Validation flags a queued conversion as a warning, not an issue."""

    machine = _ready_machine()
    assert machine.validate().valid is True

    machine.start_conversion()
    machine.start_conversion()
    validation = machine.validate()

    assert validation.valid is True
    assert "Conversion in progress with another queued" in validation.warnings


def test_clear_queue_drops_only_the_queued_flag() -> None:
    """Clearing the queue leaves the in-flight conversion untouched."""

    machine = _ready_machine()
    machine.start_conversion()
    machine.start_conversion()

    assert machine.clear_queue() is True
    assert machine.clear_queue() is False
    assert machine.converting is True
