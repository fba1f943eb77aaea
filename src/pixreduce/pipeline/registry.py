"""Built-in extractors and combiners, resolved by name from config."""

from __future__ import annotations

import operator

import numpy as np

from pixreduce.pipeline.buffer import CHANNELS, INTERMEDIATE_DTYPE, Sample
from pixreduce.pipeline.stage import Combiner, Extractor


# Integer Rec.601 weights, scaled by 1000.
_LUMA_WEIGHTS = (299, 587, 114)


def _channel_extractor(name: str, channel: str) -> Extractor:
    column = CHANNELS.index(channel)

    def extract(sample: Sample) -> int:
        return sample[column]

    def extract_rows(rows: np.ndarray) -> np.ndarray:
        return rows[:, column].astype(INTERMEDIATE_DTYPE)

    extract.__name__ = f"extract_{name}"
    return Extractor(name=name, fn=extract, vectorized=extract_rows)


def _luma(sample: Sample) -> int:
    wr, wg, wb = _LUMA_WEIGHTS
    return (wr * sample.r + wg * sample.g + wb * sample.b) // 1000


def _luma_rows(rows: np.ndarray) -> np.ndarray:
    wide = rows[:, :3].astype(INTERMEDIATE_DTYPE)
    return (wide @ np.asarray(_LUMA_WEIGHTS, dtype=INTERMEDIATE_DTYPE)) // 1000


_EXTRACTORS: dict[str, Extractor] = {
    "red": _channel_extractor("red", "r"),
    "green": _channel_extractor("green", "g"),
    "blue": _channel_extractor("blue", "b"),
    "alpha": _channel_extractor("alpha", "a"),
    "luma": Extractor(name="luma", fn=_luma, vectorized=_luma_rows),
}

_COMBINERS: dict[str, Combiner] = {
    "sum": Combiner(name="sum", fn=operator.add, identity=0, ufunc=np.add),
    "max": Combiner(name="max", fn=max, identity=0, ufunc=np.maximum),
    "min": Combiner(name="min", fn=min, identity=255, ufunc=np.minimum),
}


def available_extractors() -> dict[str, Extractor]:
    """Return built-in extractors by name."""

    return dict(_EXTRACTORS)


def available_combiners() -> dict[str, Combiner]:
    """Return built-in combiners by name."""

    return dict(_COMBINERS)


def _resolve(kind: str, table: dict, name: str):
    key = name.strip().lower()
    found = table.get(key)
    if found is None:
        known = ", ".join(sorted(table))
        raise ValueError(f"Unknown {kind} '{name}'. Available {kind}s: {known}")
    return found


def resolve_extractor(name: str) -> Extractor:
    """Resolve one built-in extractor by name."""

    return _resolve("extractor", _EXTRACTORS, name)


def resolve_combiner(name: str) -> Combiner:
    """Resolve one built-in combiner by name."""

    return _resolve("combiner", _COMBINERS, name)
