"""Parallel map stage: per-sample extraction into the intermediate buffer."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
import logging
import time
from typing import Callable

import numpy as np

from pixreduce.errors import InvariantViolation, MapStageError
from pixreduce.observability.logging import get_logger, log_event
from pixreduce.pipeline.buffer import (
    INTERMEDIATE_DTYPE,
    Sample,
    SampleBuffer,
    allocate_intermediate,
)
from pixreduce.pipeline.stage import Batch, ExtractFn, Extractor, as_extractor
from pixreduce.workers.pool import normalize_worker_count


_LOGGER = get_logger("pixreduce.map")

BatchObserver = Callable[[Batch], None]


def partition(count: int, batch_size: int) -> list[Batch]:
    """Split ``[0, count)`` into contiguous batches of at most ``batch_size``."""

    if batch_size <= 0:
        raise ValueError(f"batch_size must be > 0, got {batch_size}")
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")

    return [
        Batch(index=index, start=start, stop=min(start + batch_size, count))
        for index, start in enumerate(range(0, count, batch_size))
    ]


def _extract_rows(extractor: Extractor, rows: np.ndarray) -> np.ndarray:
    if extractor.vectorized is not None:
        return np.asarray(extractor.vectorized(rows))
    return np.fromiter(
        (extractor.fn(Sample._make(row)) for row in rows.tolist()),
        dtype=INTERMEDIATE_DTYPE,
        count=rows.shape[0],
    )


def _run_batch(
    buffer: SampleBuffer,
    extractor: Extractor,
    batch: Batch,
    out: np.ndarray,
    observer: BatchObserver | None,
) -> Batch:
    """Worker body. Writes only ``out[batch.start:batch.stop]``."""

    values = _extract_rows(extractor, buffer.rows(batch.start, batch.stop))
    if values.dtype.kind not in "iu":
        raise InvariantViolation(
            f"Extractor '{extractor.name}' produced {values.dtype} scalars "
            f"for batch {batch.index}; expected integers"
        )
    if values.shape != (len(batch),):
        raise InvariantViolation(
            f"Extractor '{extractor.name}' produced shape {values.shape} "
            f"for batch {batch.index} of {len(batch)} samples"
        )
    out[batch.start : batch.stop] = values
    if observer is not None:
        observer(batch)
    return batch


def _batch_failure(batch: Batch, exc: Exception) -> MapStageError:
    return MapStageError(
        f"Map batch {batch.index} [{batch.start}, {batch.stop}) failed: "
        f"{type(exc).__name__}: {exc}"
    )


def run_map(
    buffer: SampleBuffer,
    extract: Extractor | ExtractFn,
    batch_size: int,
    *,
    max_workers: int | None = None,
    observer: BatchObserver | None = None,
    out: np.ndarray | None = None,
) -> np.ndarray:
    """Apply ``extract`` to every sample, writing one int64 scalar per index.

    Batches run on a thread pool and write disjoint slices of ``out``, so no
    locking is needed. The call returns only after every scheduled batch has
    settled. ``observer`` is invoked from the worker once a batch's writes
    have landed.
    """

    extractor = as_extractor(extract)
    count = len(buffer)
    if out is None:
        out = allocate_intermediate(count)
    elif out.shape != (count,):
        raise InvariantViolation(
            f"Intermediate buffer shape {out.shape} does not match {count} samples"
        )

    batches = partition(count, batch_size)
    if not batches:
        return out

    workers = min(normalize_worker_count(max_workers), len(batches))
    started_perf = time.perf_counter()

    if workers <= 1:
        for batch in batches:
            try:
                _run_batch(buffer, extractor, batch, out, observer)
            except InvariantViolation:
                raise
            except Exception as exc:
                raise _batch_failure(batch, exc) from exc
    else:
        first_error: tuple[Batch, Exception] | None = None
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pixreduce-map") as executor:
            future_map: dict[Future[Batch], Batch] = {
                executor.submit(_run_batch, buffer, extractor, batch, out, observer): batch
                for batch in batches
            }
            for future in as_completed(future_map):
                if future.cancelled():
                    continue
                exc = future.exception()
                if exc is None:
                    continue
                if first_error is None:
                    first_error = (future_map[future], exc)
                    for pending in future_map:
                        pending.cancel()

        if first_error is not None:
            batch, exc = first_error
            if isinstance(exc, InvariantViolation):
                raise exc
            raise _batch_failure(batch, exc) from exc

    log_event(
        _LOGGER,
        "map.stage.completed",
        level=logging.DEBUG,
        extractor=extractor.name,
        sample_count=count,
        batch_count=len(batches),
        workers=workers,
        latency_sec=time.perf_counter() - started_perf,
    )
    return out
