"""Domain exceptions for conversion orchestration and CLI diagnostics."""

from __future__ import annotations


class PandocflowError(RuntimeError):
    """Base class for all pandocflow errors."""


class InitialisationError(PandocflowError):
    """Raised when the engine is missing required collaborator bindings."""

    def __init__(self, missing: list[str]) -> None:
        """Initialize with the names of the missing collaborators."""

        super().__init__(
            "Missing required collaborators: " + ", ".join(sorted(missing))
        )
        self.missing = tuple(sorted(missing))


class ConverterError(PandocflowError):
    """Raised when the bound converter fails to produce output."""

    def __init__(self, message: str, *, failure_kind: str = "unknown") -> None:
        """Initialize converter failure with a diagnostic classification."""

        super().__init__(message)
        self.failure_kind = failure_kind


class ConverterNotBoundError(ConverterError):
    """Raised when a conversion is attempted before a converter is bound."""

    def __init__(self) -> None:
        """Initialize the unbound-converter failure."""

        super().__init__(
            "No converter function is bound to the engine.",
            failure_kind="converter_unbound",
        )


class ConversionTimeoutError(PandocflowError):
    """Raised when one conversion attempt exceeds its wall-clock budget."""

    def __init__(self, label: str, budget_seconds: float) -> None:
        """Initialize timeout metadata for the expired attempt."""

        super().__init__(
            f"Conversion timeout after {budget_seconds:.2f}s ({label}) - "
            "document may be too complex"
        )
        self.label = label
        self.budget_seconds = budget_seconds


class EventOrderError(PandocflowError):
    """Raised when lifecycle events are emitted out of order."""


class ConversionStageError(PandocflowError):
    """Raised when a specific CLI-visible stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint
