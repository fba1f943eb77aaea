"""Pipeline orchestration: map, completion barrier, reduce, timing."""

from __future__ import annotations

from enum import Enum
import logging
import time
from typing import Any

import numpy as np

from pixreduce.config.schema import ReductionConfig
from pixreduce.observability.logging import get_logger, log_event
from pixreduce.observability.metrics import RunMetrics
from pixreduce.pipeline.buffer import SampleBuffer, allocate_intermediate
from pixreduce.pipeline.map_stage import BatchObserver, run_map
from pixreduce.pipeline.reduce_stage import run_reduce
from pixreduce.pipeline.registry import resolve_combiner, resolve_extractor
from pixreduce.pipeline.stage import (
    CombineFn,
    Combiner,
    ExtractFn,
    Extractor,
    as_combiner,
    as_extractor,
)


_LOGGER = get_logger("pixreduce.executor")


class RunState(str, Enum):
    """Lifecycle of one pipeline run."""

    IDLE = "idle"
    MAP_SCHEDULED = "map_scheduled"
    MAP_COMPLETE = "map_complete"
    REDUCE_SCHEDULED = "reduce_scheduled"
    REDUCE_COMPLETE = "reduce_complete"
    FINALIZED = "finalized"


class RunScope:
    """Run-scoped intermediate storage, released on every exit path."""

    def __init__(self, count: int) -> None:
        self.count = count
        self.intermediate: np.ndarray | None = None
        self.released = False

    def __enter__(self) -> "RunScope":
        try:
            self.intermediate = allocate_intermediate(self.count)
        except BaseException:
            self.released = True
            raise
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        self.intermediate = None
        self.released = True
        return False


class Pipeline:
    """Map-reduce pipeline over sample buffers.

    Extractor and combiner default to the registry entries named in the
    config; explicit arguments to `run` take precedence.
    """

    def __init__(
        self,
        config: ReductionConfig | None = None,
        *,
        observer: BatchObserver | None = None,
    ) -> None:
        self.config = config if config is not None else ReductionConfig()
        self.config.validate()
        self.observer = observer
        self.state = RunState.IDLE
        self.history: list[RunState] = []
        self.last_scope: RunScope | None = None

    def _transition(self, state: RunState) -> None:
        self.state = state
        self.history.append(state)

    def _resolve(
        self,
        extract: Extractor | ExtractFn | None,
        combine: Combiner | CombineFn | None,
        identity: int | None,
    ) -> tuple[Extractor, Combiner]:
        extractor = (
            as_extractor(extract)
            if extract is not None
            else resolve_extractor(self.config.extractor)
        )
        base = combine if combine is not None else resolve_combiner(self.config.combiner)
        return extractor, as_combiner(base, identity)

    def run(
        self,
        buffer: SampleBuffer,
        extract: Extractor | ExtractFn | None = None,
        combine: Combiner | CombineFn | None = None,
        identity: int | None = None,
        batch_size: int | None = None,
    ) -> RunMetrics:
        """Run map then reduce over ``buffer`` and return the run's metrics."""

        extractor, combiner = self._resolve(extract, combine, identity)
        batch_size = self.config.batch_size if batch_size is None else int(batch_size)
        if batch_size <= 0:
            raise ValueError(f"batch_size must be > 0, got {batch_size}")

        count = len(buffer)
        self.history = []
        self.last_scope = None
        self._transition(RunState.IDLE)
        log_event(
            _LOGGER,
            "pipeline.run.started",
            level=logging.DEBUG,
            sample_count=count,
            extractor=extractor.name,
            combiner=combiner.name,
            batch_size=batch_size,
        )

        def _metrics(aggregate: int, duration: float) -> RunMetrics:
            return RunMetrics(
                duration_seconds=duration,
                sample_count=count,
                aggregate=aggregate,
                batch_size=batch_size,
                batch_count=-(-count // batch_size),
                reduce_mode=self.config.reduce_mode,
                extractor=extractor.name,
                combiner=combiner.name,
            )

        if count == 0:
            self._transition(RunState.FINALIZED)
            log_event(_LOGGER, "pipeline.run.empty_input", extractor=extractor.name)
            return _metrics(combiner.identity, 0.0)

        scope = RunScope(count)
        self.last_scope = scope
        try:
            with scope:
                started_perf = time.perf_counter()
                self._transition(RunState.MAP_SCHEDULED)
                run_map(
                    buffer,
                    extractor,
                    batch_size,
                    max_workers=self.config.max_workers,
                    observer=self.observer,
                    out=scope.intermediate,
                )
                # run_map returns only after every batch has settled.
                self._transition(RunState.MAP_COMPLETE)
                self._transition(RunState.REDUCE_SCHEDULED)
                aggregate = run_reduce(
                    scope.intermediate,
                    combiner,
                    expected_count=count,
                    mode=self.config.reduce_mode,
                    chunk_size=self.config.tree_chunk_size,
                    max_workers=self.config.max_workers,
                )
                self._transition(RunState.REDUCE_COMPLETE)
                duration = time.perf_counter() - started_perf
        except Exception as exc:
            log_event(
                _LOGGER,
                "pipeline.run.failed",
                level=logging.ERROR,
                state=self.state.value,
                error=f"{type(exc).__name__}: {exc}",
                sample_count=count,
            )
            raise
        finally:
            self._transition(RunState.FINALIZED)

        metrics = _metrics(aggregate, duration)
        log_event(
            _LOGGER,
            "pipeline.run.finished",
            sample_count=count,
            aggregate=aggregate,
            batch_count=metrics.batch_count,
            duration_ms=metrics.duration_ms,
        )
        return metrics


def run_pipeline(
    buffer: SampleBuffer,
    extract: Extractor | ExtractFn,
    combine: Combiner | CombineFn,
    identity: int | None,
    batch_size: int,
    *,
    max_workers: int | None = None,
    reduce_mode: str = "sequential",
    observer: BatchObserver | None = None,
) -> RunMetrics:
    """Functional entry point: one run with explicit extract/combine/identity."""

    config = ReductionConfig(
        batch_size=batch_size,
        max_workers=max_workers,
        reduce_mode=reduce_mode,  # type: ignore[arg-type]
    )
    pipeline = Pipeline(config, observer=observer)
    return pipeline.run(buffer, extract, combine, identity, batch_size)


def sum_red_channel(buffer: SampleBuffer, batch_size: int = 256) -> RunMetrics:
    """Sum the red channel of every sample."""

    return run_pipeline(
        buffer,
        resolve_extractor("red"),
        resolve_combiner("sum"),
        0,
        batch_size,
    )
