"""Error types and the aggregator used while translating stage files.

Translation collects every independent failure into an :class:`ErrorCollector`
so a single run reports all invalid targets, sources, and glob misses.
Execution, by contrast, raises the first :class:`StageError` it meets.

Usage
-----
Collect failures from a batch of independent operations::

    errors = ErrorCollector()
    for source in sources:
        with errors.capture(context=f"source {source!r}"):
            validate(source)
    errors.ok(None)  # raises StageErrors when anything was captured
"""

from __future__ import annotations

import contextlib
import enum
import typing as typ

__all__ = [
    "ErrorCollector",
    "ErrorKind",
    "HarvestingError",
    "InvalidConfigurationError",
    "StageError",
    "StageErrors",
    "TemplateRenderError",
]

T = typ.TypeVar("T")


class ErrorKind(enum.Enum):
    """Broad category of a staging failure, for programmatic handling."""

    INVALID_CONFIGURATION = "Error in the configuration."
    HARVESTING_FAILED = "Preparing to stage failed."
    STAGING_FAILED = "Staging failed."


class StageError(RuntimeError):
    """Raised when the staging pipeline cannot continue.

    Parameters
    ----------
    message : str
        Human readable description of the failure.
    context : str | None, optional
        Location prefix (for example the target being translated) shown
        before ``message`` when the error is rendered.
    """

    kind: ErrorKind = ErrorKind.STAGING_FAILED

    def __init__(self, message: str, *, context: str | None = None) -> None:
        super().__init__(message)
        self.context = context

    def __str__(self) -> str:
        message = super().__str__()
        return f"{self.context}: {message}" if self.context else message


class InvalidConfigurationError(StageError):
    """Raised when the stage description itself is malformed."""

    kind = ErrorKind.INVALID_CONFIGURATION


class TemplateRenderError(InvalidConfigurationError):
    """Raised when a template string cannot be rendered."""


class HarvestingError(StageError):
    """Raised when source files cannot be located or enumerated."""

    kind = ErrorKind.HARVESTING_FAILED


class StageErrors(StageError):
    """Aggregate of every failure collected during one translation pass.

    ``kind`` reports the most configuration-like kind present so callers can
    map the aggregate onto a single exit status.
    """

    def __init__(self, errors: typ.Iterable[StageError]) -> None:
        self.errors: tuple[StageError, ...] = tuple(errors)
        count = len(self.errors)
        super().__init__(f"{count} staging error(s)")
        present = {error.kind for error in self.errors}
        self.kind = next(
            (kind for kind in ErrorKind if kind in present),
            ErrorKind.STAGING_FAILED,
        )

    def __str__(self) -> str:
        lines = [super().__str__() + ":"]
        lines.extend(f"  - [{error.kind.value}] {error}" for error in self.errors)
        return "\n".join(lines)

    def __iter__(self) -> typ.Iterator[StageError]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)


class ErrorCollector:
    """Accumulate independent :class:`StageError` failures.

    The collector never short-circuits: callers keep processing after a push
    and decide at the end of the batch with :meth:`ok`.
    """

    def __init__(self) -> None:
        self._errors: list[StageError] = []

    def push(self, error: StageError, context: str | None = None) -> None:
        """Record ``error``, flattening aggregates into their members."""
        if isinstance(error, StageErrors):
            for member in error.errors:
                self.push(member, context)
            return
        if context and error.context is None:
            error.context = context
        self._errors.append(error)

    def extend(self, errors: typ.Iterable[StageError]) -> None:
        for error in errors:
            self.push(error)

    @contextlib.contextmanager
    def capture(self, context: str | None = None) -> typ.Iterator[None]:
        """Record a :class:`StageError` raised inside the block instead of propagating it."""
        try:
            yield
        except StageError as exc:
            self.push(exc, context)

    def ok(self, value: T) -> T:
        """Return ``value`` when nothing was collected.

        Raises
        ------
        StageErrors
            Raised with every collected failure when the batch had errors.
        """
        if self._errors:
            raise StageErrors(self._errors)
        return value

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __iter__(self) -> typ.Iterator[StageError]:
        return iter(self._errors)
