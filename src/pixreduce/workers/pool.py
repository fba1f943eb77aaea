"""Worker pool helper utilities."""

from __future__ import annotations

import os


def available_execution_units() -> int:
    """Return the number of hardware execution units visible to this process."""

    return os.cpu_count() or 1


def normalize_worker_count(requested: int | None) -> int:
    """Return a worker count bounded by the available execution units.

    ``None`` means "use every unit"; explicit requests are clamped to
    ``[1, cpu_count]``.
    """

    cpu = available_execution_units()
    if requested is None:
        return cpu
    workers = max(1, int(requested))
    return min(workers, cpu)
