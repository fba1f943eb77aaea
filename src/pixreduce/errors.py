"""Error taxonomy for the reduction pipeline."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for failures raised by a pipeline run."""


class AllocationFailure(PipelineError):
    """Run-scoped storage could not be obtained; no map work was scheduled."""


class InvariantViolation(PipelineError):
    """A pipeline invariant was broken. Indicates a defect, never retried."""


class MapStageError(PipelineError):
    """One or more map batches raised while executing."""
