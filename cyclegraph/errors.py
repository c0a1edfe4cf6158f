"""
Exception Hierarchy
=====================

All errors raised by CycleGraph derive from :class:`CycleGraphError`.

Degenerate geometry (zero-length bike segments, singular basis matrices)
is deliberately absent: it is reported through return values so that the
road x bike-lane matching loop keeps scanning other candidates.
"""

from typing import List, Optional


class CycleGraphError(Exception):
    """Base class for all CycleGraph errors."""


class DimensionMismatch(CycleGraphError, ValueError):
    """Matrix operands are empty, not 2D, or have incompatible shapes."""


class NotInitialized(CycleGraphError, RuntimeError):
    """The graph store was queried before ingestion completed."""


class IngestionFailure(CycleGraphError):
    """A GeoJSON source could not be read, parsed, or stored.

    Args:
        message: Human readable reason.
        source: Path or label of the offending source, if known.
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class WriteFailure(CycleGraphError):
    """A chunked batch write failed partway.

    The failing chunk is rolled back; every chunk listed in
    ``committed`` stays applied.

    Args:
        message: Human readable reason.
        committed: Rows changed by each chunk committed before the failure.
        failed_chunk: Zero-based index of the chunk that failed.
    """

    def __init__(
        self,
        message: str,
        committed: Optional[List[int]] = None,
        failed_chunk: int = -1,
    ):
        super().__init__(message)
        self.committed = list(committed or [])
        self.failed_chunk = failed_chunk

    @property
    def total_committed(self) -> int:
        """Total rows changed by the committed chunks."""
        return sum(self.committed)


class BuildFailure(CycleGraphError):
    """A mandatory network build step failed; later steps did not run.

    Args:
        step: Name of the step that failed.
        cause: The underlying exception.
        report: Step outcomes up to and including the failure.
    """

    def __init__(self, step: str, cause: Exception, report=None):
        super().__init__(f"Build step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause
        self.report = report
