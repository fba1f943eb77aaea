"""Stage interfaces: batches, extractors and combiners."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol

import numpy as np

from pixreduce.pipeline.buffer import Sample


@dataclass(frozen=True, slots=True)
class Batch:
    """A contiguous, half-open index range ``[start, stop)`` of one map unit."""

    index: int
    start: int
    stop: int

    def __len__(self) -> int:
        return self.stop - self.start


class ExtractFn(Protocol):
    """Pure per-sample projection to one scalar."""

    def __call__(self, sample: Sample) -> int:
        ...


class CombineFn(Protocol):
    """Associative reducer folding one scalar into an aggregate."""

    def __call__(self, aggregate: int, scalar: int) -> int:
        ...


@dataclass(frozen=True, slots=True)
class Extractor:
    """Named map-stage projection.

    ``vectorized`` maps a ``(k, 4)`` uint8 slice to ``k`` scalars in one call
    and must agree with ``fn`` element-wise. When absent, ``fn`` is applied
    sample by sample.
    """

    name: str
    fn: ExtractFn
    vectorized: Callable[[np.ndarray], np.ndarray] | None = None


@dataclass(frozen=True, slots=True)
class Combiner:
    """Named reduce-stage fold with its identity element.

    ``ufunc`` is an optional numpy ufunc whose ``reduce`` computes the same
    fold over an int64 slice. Results are bounded by int64; an `np.add` fold
    that could exceed it falls back to ``fn`` over Python ints.
    """

    name: str
    fn: CombineFn
    identity: int
    ufunc: np.ufunc | None = None


def _callable_name(fn: Any) -> str:
    return getattr(fn, "__name__", type(fn).__name__)


def as_extractor(extract: Extractor | ExtractFn) -> Extractor:
    """Wrap a plain callable into an `Extractor`."""

    if isinstance(extract, Extractor):
        return extract
    if not callable(extract):
        raise TypeError(f"extract must be callable, got {type(extract).__name__}")
    return Extractor(name=_callable_name(extract), fn=extract)


def as_combiner(combine: Combiner | CombineFn, identity: int | None = None) -> Combiner:
    """Wrap a plain callable into a `Combiner`.

    An explicit ``identity`` overrides the one carried by a `Combiner`.
    """

    if isinstance(combine, Combiner):
        if identity is None or identity == combine.identity:
            return combine
        return Combiner(name=combine.name, fn=combine.fn, identity=identity, ufunc=combine.ufunc)
    if not callable(combine):
        raise TypeError(f"combine must be callable, got {type(combine).__name__}")
    if identity is None:
        raise ValueError("identity is required when combine is a plain callable")
    return Combiner(name=_callable_name(combine), fn=combine, identity=identity)
