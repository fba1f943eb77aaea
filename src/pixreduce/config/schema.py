"""Dataclass-based configuration schema for pixreduce."""

from dataclasses import dataclass
from typing import Literal


@dataclass(slots=True)
class ReductionConfig:
    """Options for one map-reduce pipeline."""

    extractor: str = "red"
    combiner: str = "sum"
    batch_size: int = 256
    max_workers: int | None = None
    reduce_mode: Literal["sequential", "tree"] = "sequential"
    tree_chunk_size: int = 65_536

    def validate(self) -> None:
        """Raise ``ValueError`` for settings no run could accept."""

        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be > 0, got {self.batch_size}")
        if self.max_workers is not None and self.max_workers <= 0:
            raise ValueError(f"max_workers must be > 0 or None, got {self.max_workers}")
        if self.reduce_mode not in ("sequential", "tree"):
            raise ValueError(f"reduce_mode must be 'sequential' or 'tree', got {self.reduce_mode!r}")
        if self.tree_chunk_size <= 0:
            raise ValueError(f"tree_chunk_size must be > 0, got {self.tree_chunk_size}")
