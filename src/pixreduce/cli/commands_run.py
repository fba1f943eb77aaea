"""`pixreduce run` command."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path

from pixreduce.cli.sources import synthetic_buffer
from pixreduce.config.loader import load_reduction_config
from pixreduce.config.profiles import apply_profile
from pixreduce.observability.logging import configure_logging
from pixreduce.observability.metrics import format_report, write_metrics
from pixreduce.pipeline.executor import Pipeline


@dataclass(slots=True)
class RunCommand:
    """Reduce one synthetic RGBA32 buffer and print the run report."""

    samples: int = 1_000_000
    fill: int | None = None
    seed: int = 0
    config: str | None = None
    profile: str | None = None
    extractor: str | None = None
    combiner: str | None = None
    batch_size: int | None = None
    reduce_mode: str | None = None
    workers: int | None = None
    metrics_out: Path | None = None
    log_level: str = "WARNING"


def execute(command: RunCommand) -> None:
    configure_logging(command.log_level)
    cfg = load_reduction_config(command.config)
    if command.profile is not None:
        apply_profile(cfg, command.profile)
    if command.extractor is not None:
        cfg.extractor = command.extractor
    if command.combiner is not None:
        cfg.combiner = command.combiner
    if command.batch_size is not None:
        cfg.batch_size = command.batch_size
    if command.reduce_mode is not None:
        cfg.reduce_mode = command.reduce_mode  # type: ignore[assignment]
    if command.workers is not None:
        cfg.max_workers = command.workers

    buffer = synthetic_buffer(command.samples, fill=command.fill, seed=command.seed)
    metrics = Pipeline(cfg).run(buffer)

    label = f"synthetic fill={command.fill}" if command.fill is not None else f"synthetic seed={command.seed}"
    for line in format_report(metrics, label=label):
        print(line)
    if command.metrics_out is not None:
        write_metrics(command.metrics_out, metrics, config=asdict(cfg), source=label)
