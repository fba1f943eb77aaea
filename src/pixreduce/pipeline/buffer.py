"""Sample buffer views and run-scoped intermediate storage."""

from __future__ import annotations

from typing import Iterable, NamedTuple

import numpy as np

from pixreduce.errors import AllocationFailure


CHANNELS = ("r", "g", "b", "a")
INTERMEDIATE_DTYPE = np.int64


class Sample(NamedTuple):
    """One RGBA32 pixel with channels as plain ints."""

    r: int
    g: int
    b: int
    a: int


class SampleBuffer:
    """Read-only, random-access view over ``N`` RGBA32 samples.

    The backing array has shape ``(N, 4)`` and dtype ``uint8``. Constructors
    avoid copying caller memory whenever the input layout allows it, and the
    view handed to workers is never writeable.
    """

    __slots__ = ("_array",)

    def __init__(self, array: np.ndarray) -> None:
        if not isinstance(array, np.ndarray):
            raise TypeError(f"SampleBuffer expects a numpy array, got {type(array).__name__}")
        if array.dtype != np.uint8:
            raise ValueError(f"Samples must be uint8, got {array.dtype}")
        if array.ndim != 2 or array.shape[1] != 4:
            raise ValueError(f"Samples must have shape (N, 4), got {array.shape}")
        view = array.view()
        view.flags.writeable = False
        self._array = view

    @classmethod
    def from_array(cls, array: np.ndarray) -> "SampleBuffer":
        """Wrap an ``(N, 4)`` or ``(H, W, 4)`` uint8 array."""

        if array.ndim == 3:
            if array.shape[2] != 4:
                raise ValueError(f"Image must have shape (H, W, 4), got {array.shape}")
            array = array.reshape(-1, 4)
        return cls(array)

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> "SampleBuffer":
        """Wrap raw RGBA32 pixel bytes, four bytes per sample."""

        raw = np.frombuffer(data, dtype=np.uint8)
        if raw.size % 4:
            raise ValueError(f"Raw pixel data length {raw.size} is not a multiple of 4")
        return cls(raw.reshape(-1, 4))

    @classmethod
    def from_samples(cls, samples: Iterable[tuple[int, int, int, int]]) -> "SampleBuffer":
        rows = [tuple(sample) for sample in samples]
        if not rows:
            return cls(np.empty((0, 4), dtype=np.uint8))
        return cls(np.asarray(rows, dtype=np.uint8))

    def __len__(self) -> int:
        return int(self._array.shape[0])

    def __getitem__(self, index: int) -> Sample:
        return Sample._make(self._array[index].tolist())

    def __repr__(self) -> str:
        return f"SampleBuffer(n={len(self)})"

    @property
    def array(self) -> np.ndarray:
        """The read-only ``(N, 4)`` backing view."""

        return self._array

    def rows(self, start: int, stop: int) -> np.ndarray:
        """Return the read-only ``(stop - start, 4)`` slice for a batch."""

        return self._array[start:stop]

    def channel(self, name: str) -> np.ndarray:
        """Return one channel column as a read-only strided view."""

        try:
            column = CHANNELS.index(name.lower())
        except ValueError:
            raise ValueError(f"Unknown channel '{name}'. Expected one of {CHANNELS}") from None
        return self._array[:, column]


def _allocate(count: int) -> np.ndarray:
    return np.empty(count, dtype=INTERMEDIATE_DTYPE)


def allocate_intermediate(count: int) -> np.ndarray:
    """Allocate the per-run intermediate buffer of ``count`` scalars."""

    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    try:
        return _allocate(count)
    except MemoryError as exc:
        raise AllocationFailure(
            f"Could not allocate intermediate buffer for {count} samples"
        ) from exc
