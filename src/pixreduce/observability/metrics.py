"""Per-run metrics and their human-readable and persisted forms."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
import json
import os
from pathlib import Path
import tempfile
from typing import Any


@dataclass(frozen=True, slots=True)
class RunMetrics:
    """Outcome of one pipeline run, handed to the caller once."""

    duration_seconds: float
    sample_count: int
    aggregate: int
    batch_size: int
    batch_count: int
    reduce_mode: str
    extractor: str
    combiner: str

    @property
    def duration_ms(self) -> float:
        return self.duration_seconds * 1000.0

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["duration_ms"] = self.duration_ms
        return payload


def format_report(metrics: RunMetrics, label: str | None = None) -> list[str]:
    """Render the summary lines a host prints after a run."""

    lines = ["--- Parallel Reduction Complete ---"]
    if label:
        lines.append(f"Source: {label}")
    lines.extend(
        [
            f"Total Samples: {metrics.sample_count:,}",
            f"Total {metrics.extractor.title()} {metrics.combiner.title()}: {metrics.aggregate:,}",
            f"Batches: {metrics.batch_count:,} x {metrics.batch_size:,} ({metrics.reduce_mode} reduce)",
            f"Execution Time: {metrics.duration_ms:.3f} ms",
        ]
    )
    return lines


def write_metrics(path: Path, metrics: RunMetrics, **context: Any) -> None:
    """Persist one run's metrics as JSON, replacing ``path`` atomically."""

    payload = {
        "schema": "run-metrics/v1",
        "written_at": datetime.now(timezone.utc).isoformat(),
        "metrics": metrics.as_dict(),
        **context,
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, indent=2, sort_keys=True) + "\n")
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)


def read_metrics(path: Path) -> RunMetrics:
    """Load metrics previously written by `write_metrics`."""

    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict) or not isinstance(payload.get("metrics"), dict):
        raise TypeError(f"Metrics payload must be an object: {path}")
    fields = dict(payload["metrics"])
    fields.pop("duration_ms", None)
    return RunMetrics(**fields)
