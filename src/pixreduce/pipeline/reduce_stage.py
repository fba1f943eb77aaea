"""Reduce stage: fold the intermediate buffer into one aggregate."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from functools import reduce
import logging
import time
from typing import Literal

import numpy as np

from pixreduce.errors import InvariantViolation
from pixreduce.observability.logging import get_logger, log_event
from pixreduce.pipeline.stage import CombineFn, Combiner, as_combiner
from pixreduce.workers.pool import normalize_worker_count


_LOGGER = get_logger("pixreduce.reduce")

ReduceMode = Literal["sequential", "tree"]
REDUCE_MODES: tuple[str, ...] = ("sequential", "tree")
DEFAULT_TREE_CHUNK = 65_536
_INT64_MAX = int(np.iinfo(np.int64).max)


def _sum_fits_int64(values: np.ndarray) -> bool:
    bound = max(abs(int(values.max())), abs(int(values.min())))
    return bound * values.size <= _INT64_MAX


def _fold_unseeded(values: np.ndarray, combiner: Combiner) -> int:
    """Fold a non-empty chunk from its first element, without the identity."""

    ufunc = combiner.ufunc
    if ufunc is not None and (ufunc is not np.add or _sum_fits_int64(values)):
        return int(ufunc.reduce(values, dtype=np.int64))
    return reduce(combiner.fn, values.tolist())


def fold_sequential(
    values: np.ndarray,
    combine: Combiner | CombineFn,
    identity: int | None = None,
) -> int:
    """Left fold over ``values`` starting from ``identity``."""

    combiner = as_combiner(combine, identity)
    if values.size == 0:
        return combiner.identity
    if combiner.ufunc is None:
        return reduce(combiner.fn, values.tolist(), combiner.identity)
    return combiner.fn(combiner.identity, _fold_unseeded(values, combiner))


def _combine_pairwise(partials: list[int], combiner: Combiner) -> int:
    level = partials
    while len(level) > 1:
        paired = [
            combiner.fn(level[idx], level[idx + 1])
            for idx in range(0, len(level) - 1, 2)
        ]
        if len(level) % 2:
            paired.append(level[-1])
        level = paired
    return level[0]


def fold_tree(
    values: np.ndarray,
    combine: Combiner | CombineFn,
    identity: int | None = None,
    *,
    chunk_size: int = DEFAULT_TREE_CHUNK,
    max_workers: int | None = None,
) -> int:
    """Tree fold: per-chunk partials in parallel, then pairwise combination.

    Chunks fold without the identity; partials combine in index order and
    the identity is applied once at the end, so the result matches
    `fold_sequential` for any associative ``combine``.
    """

    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be > 0, got {chunk_size}")

    combiner = as_combiner(combine, identity)
    if values.size == 0:
        return combiner.identity

    chunks = [values[start : start + chunk_size] for start in range(0, values.size, chunk_size)]
    workers = min(normalize_worker_count(max_workers), len(chunks))
    if workers <= 1:
        partials = [_fold_unseeded(chunk, combiner) for chunk in chunks]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pixreduce-reduce") as executor:
            partials = list(executor.map(_fold_unseeded, chunks, [combiner] * len(chunks)))
    return combiner.fn(combiner.identity, _combine_pairwise(partials, combiner))


def run_reduce(
    values: np.ndarray,
    combine: Combiner | CombineFn,
    identity: int | None = None,
    *,
    expected_count: int,
    mode: ReduceMode = "sequential",
    chunk_size: int = DEFAULT_TREE_CHUNK,
    max_workers: int | None = None,
) -> int:
    """Fold the intermediate buffer into the aggregate for one run."""

    if values.shape != (expected_count,):
        raise InvariantViolation(
            f"Reduce observed {values.shape} scalars, expected ({expected_count},)"
        )

    combiner = as_combiner(combine, identity)
    started_perf = time.perf_counter()
    if mode == "sequential":
        aggregate = fold_sequential(values, combiner)
    elif mode == "tree":
        aggregate = fold_tree(values, combiner, chunk_size=chunk_size, max_workers=max_workers)
    else:
        raise ValueError(f"Unknown reduce mode '{mode}'. Expected one of {REDUCE_MODES}")

    log_event(
        _LOGGER,
        "reduce.stage.completed",
        level=logging.DEBUG,
        combiner=combiner.name,
        mode=mode,
        sample_count=expected_count,
        latency_sec=time.perf_counter() - started_perf,
    )
    return aggregate
