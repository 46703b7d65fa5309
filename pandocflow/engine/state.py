"""Conversion lifecycle state machine.

Responsibilities:
- Own the single authoritative set of engine lifecycle flags.
- Apply named transitions only, invalidating the status cache before each mutation.
- Provide a consistency check over the current flag combination.

Key types:
- `LifecycleState`: `UNINITIALISED -> INITIALISED -> READY <-> CONVERTING`.
- `ConversionStateMachine`: transition operations and status snapshots.
- `StateValidation`: result of a consistency check.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
import time

from loguru import logger

from ..errors import InitialisationError
from ..models.datatypes import EngineStatus
from .contracts import Converter


_MAX_EXPECTED_TIMEOUTS = 10


class LifecycleState(str, Enum):
    """Exclusive engine lifecycle states; queueing is a separate flag."""

    UNINITIALISED = "uninitialised"
    INITIALISED = "initialised"
    READY = "ready"
    CONVERTING = "converting"


@dataclass(frozen=True, slots=True)
class StateValidation:
    """Consistency check result for the current lifecycle flags."""

    valid: bool
    issues: tuple[str, ...] = field(default_factory=tuple)
    warnings: tuple[str, ...] = field(default_factory=tuple)


class ConversionStateMachine:
    """Own engine lifecycle flags and enforce their transition rules.

    Every operation that changes a flag calls `on_change` first, so a status
    cache wired to it never serves a snapshot older than the mutation.
    """

    def __init__(
        self,
        *,
        on_change: Callable[[], None] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._on_change = on_change
        self._clock = clock
        self._state = LifecycleState.UNINITIALISED
        self._queued = False
        self._automatic_disabled = False
        self._active_timeouts = 0
        self._converter: Converter | None = None
        self._last_conversion_at = 0.0
        self._initialisation_error: InitialisationError | None = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def converter(self) -> Converter | None:
        return self._converter

    @property
    def initialisation_error(self) -> InitialisationError | None:
        """Return the last initialisation failure, if any."""

        return self._initialisation_error

    @property
    def automatic_conversions_disabled(self) -> bool:
        return self._automatic_disabled

    @property
    def converting(self) -> bool:
        return self._state is LifecycleState.CONVERTING

    @property
    def queued(self) -> bool:
        return self._queued

    def set_on_change(self, on_change: Callable[[], None] | None) -> None:
        """Wire the pre-mutation hook (usually a status cache invalidator)."""

        self._on_change = on_change

    def _before_mutation(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def initialise(self, collaborators: Mapping[str, object | None]) -> bool:
        """Move UNINITIALISED -> INITIALISED when every collaborator is bound.

        Missing collaborators are logged once and leave the machine UNINITIALISED.

        Returns:
            Whether the machine is initialised after the call.
        """

        if self._state is not LifecycleState.UNINITIALISED:
            return True

        missing = [name for name, value in collaborators.items() if value is None]
        if missing:
            error = InitialisationError(missing)
            if self._initialisation_error is None or (
                self._initialisation_error.missing != error.missing
            ):
                logger.error("Engine initialisation failed: {}", error)
            self._initialisation_error = error
            return False

        self._before_mutation()
        self._state = LifecycleState.INITIALISED
        self._initialisation_error = None
        logger.debug("Engine initialised")
        return True

    def bind_converter(self, converter: Converter) -> bool:
        """Bind the converter and move INITIALISED/READY -> READY.

        Rebinding is allowed while READY or CONVERTING; the latest binding wins.
        """

        if self._state is LifecycleState.UNINITIALISED:
            logger.warning("Converter binding rejected: engine is not initialised")
            return False

        self._before_mutation()
        self._converter = converter
        if self._state is LifecycleState.INITIALISED:
            self._state = LifecycleState.READY
        return True

    def start_conversion(self) -> bool:
        """Move READY -> CONVERTING, or coalesce into the queued flag.

        Returns:
            `True` when the caller now owns the conversion slot.
        """

        if self._state is LifecycleState.CONVERTING:
            if not self._queued:
                self._before_mutation()
                self._queued = True
            logger.debug("Conversion in progress; trigger coalesced into queue")
            return False
        if self._state is not LifecycleState.READY:
            logger.warning("Conversion start rejected in state {}", self._state.value)
            return False

        self._before_mutation()
        self._state = LifecycleState.CONVERTING
        return True

    def complete_conversion(self, success: bool) -> bool:
        """Move CONVERTING -> READY and report whether a replay is pending.

        The queued flag is cleared; a `True` return obliges the caller to issue
        exactly one replay through `start_conversion()`.
        """

        if self._state is not LifecycleState.CONVERTING:
            logger.warning("Conversion completion ignored in state {}", self._state.value)
            return False

        self._before_mutation()
        pending = self._queued
        self._queued = False
        self._state = (
            LifecycleState.READY if self._converter is not None else LifecycleState.INITIALISED
        )
        self._last_conversion_at = self._clock()
        logger.debug("Conversion completed (success={}, replay_pending={})", success, pending)
        return pending

    def clear_queue(self) -> bool:
        """Clear the queued flag without touching in-flight work.

        Returns:
            Whether a queued trigger was dropped.
        """

        if not self._queued:
            return False
        self._before_mutation()
        self._queued = False
        return True

    def set_automatic_conversions_disabled(self, disabled: bool) -> None:
        """Set the flag gating automatic (non-manual) conversion triggers."""

        self._before_mutation()
        self._automatic_disabled = bool(disabled)

    def timeout_armed(self) -> None:
        self._before_mutation()
        self._active_timeouts += 1

    def timeout_cleared(self) -> None:
        self._before_mutation()
        self._active_timeouts = max(0, self._active_timeouts - 1)

    def teardown(self) -> None:
        """Return to UNINITIALISED, unbinding the converter and dropping the queue."""

        self._before_mutation()
        self._state = LifecycleState.UNINITIALISED
        self._queued = False
        self._converter = None
        self._active_timeouts = 0

    def snapshot(self) -> EngineStatus:
        """Return an immutable snapshot of the current lifecycle flags."""

        return EngineStatus(
            initialised=self._state is not LifecycleState.UNINITIALISED,
            ready=self._state in {LifecycleState.READY, LifecycleState.CONVERTING},
            conversion_in_progress=self._state is LifecycleState.CONVERTING,
            conversion_queued=self._queued,
            automatic_conversions_disabled=self._automatic_disabled,
            active_timeout_count=self._active_timeouts,
            pandoc_available=self._converter is not None,
            last_conversion_at=self._last_conversion_at,
        )

    def validate(self) -> StateValidation:
        """Check the current flag combination for inconsistencies."""

        status = self.snapshot()
        issues: list[str] = []
        warnings: list[str] = []
        if status.ready and not status.initialised:
            issues.append("Engine marked ready but not initialised")
        if status.ready and not status.pandoc_available:
            issues.append("Engine marked ready but no converter is bound")
        if status.conversion_queued and not status.conversion_in_progress:
            issues.append("Conversion queued while no conversion is in progress")
        if status.conversion_in_progress and status.conversion_queued:
            warnings.append("Conversion in progress with another queued")
        if status.active_timeout_count > _MAX_EXPECTED_TIMEOUTS:
            warnings.append(f"High number of active timeouts: {status.active_timeout_count}")
        return StateValidation(valid=not issues, issues=tuple(issues), warnings=tuple(warnings))
