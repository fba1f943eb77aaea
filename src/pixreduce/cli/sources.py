"""Synthetic sample sources for CLI runs and benchmarks."""

from __future__ import annotations

import numpy as np

from pixreduce.pipeline.buffer import SampleBuffer


def synthetic_buffer(samples: int, fill: int | None = None, seed: int = 0) -> SampleBuffer:
    """Build an RGBA32 buffer, constant when ``fill`` is set, seeded noise otherwise."""

    if samples < 0:
        raise ValueError(f"samples must be >= 0, got {samples}")
    if fill is not None:
        if not 0 <= fill <= 255:
            raise ValueError(f"fill must be within 0..255, got {fill}")
        return SampleBuffer(np.full((samples, 4), fill, dtype=np.uint8))
    rng = np.random.default_rng(seed)
    return SampleBuffer(rng.integers(0, 256, size=(samples, 4), dtype=np.uint8))
