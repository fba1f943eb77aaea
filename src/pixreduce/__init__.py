"""pixreduce package entrypoint."""

from pixreduce.cli.app import main as _cli_main
from pixreduce.config.schema import ReductionConfig
from pixreduce.errors import AllocationFailure, InvariantViolation, MapStageError, PipelineError
from pixreduce.observability.metrics import RunMetrics
from pixreduce.pipeline.buffer import Sample, SampleBuffer
from pixreduce.pipeline.executor import Pipeline, RunState, run_pipeline, sum_red_channel
from pixreduce.pipeline.stage import Combiner, Extractor

__all__ = [
    "AllocationFailure",
    "Combiner",
    "Extractor",
    "InvariantViolation",
    "MapStageError",
    "Pipeline",
    "PipelineError",
    "ReductionConfig",
    "RunMetrics",
    "RunState",
    "Sample",
    "SampleBuffer",
    "main",
    "run_pipeline",
    "sum_red_channel",
]


def main() -> None:
    """Run the pixreduce CLI."""
    _cli_main()
