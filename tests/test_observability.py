import json
import logging

import numpy as np

from pixreduce.observability.logging import JsonFormatter, KeyValueFormatter, log_event
from pixreduce.observability.metrics import RunMetrics, format_report, read_metrics, write_metrics


def _metrics(**overrides):
    fields = dict(
        duration_seconds=0.0125,
        sample_count=2_073_600,
        aggregate=264_384_000,
        batch_size=256,
        batch_count=8100,
        reduce_mode="sequential",
        extractor="red",
        combiner="sum",
    )
    fields.update(overrides)
    return RunMetrics(**fields)


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestLogging:
    def setup_method(self):
        self.logger = logging.getLogger("pixreduce.test")
        self.logger.setLevel(logging.DEBUG)
        self.capture = _Capture()
        self.logger.addHandler(self.capture)

    def teardown_method(self):
        self.logger.removeHandler(self.capture)

    def test_json_formatter_includes_fields(self):
        log_event(self.logger, "pipeline.run.finished", aggregate=np.int64(7), sample_count=3)
        line = JsonFormatter().format(self.capture.records[0])
        payload = json.loads(line)
        assert payload["event"] == "pipeline.run.finished"
        assert payload["aggregate"] == 7
        assert payload["sample_count"] == 3
        assert payload["level"] == "INFO"

    def test_key_value_formatter(self):
        log_event(self.logger, "map.stage.completed", level=logging.DEBUG, workers=4, batch_count=2)
        line = KeyValueFormatter().format(self.capture.records[0])
        assert line == "DEBUG pixreduce.test map.stage.completed batch_count=2 workers=4"

    def test_disabled_level_is_skipped(self):
        self.logger.setLevel(logging.WARNING)
        log_event(self.logger, "quiet", level=logging.DEBUG)
        assert self.capture.records == []


class TestRunMetrics:
    def test_report_lines(self):
        lines = format_report(_metrics(), label="synthetic seed=0")
        assert lines[0] == "--- Parallel Reduction Complete ---"
        assert "Source: synthetic seed=0" in lines
        assert "Total Samples: 2,073,600" in lines
        assert "Total Red Sum: 264,384,000" in lines
        assert lines[-1] == "Execution Time: 12.500 ms"

    def test_write_and_read(self, tmp_path):
        path = tmp_path / "out" / "metrics.json"
        metrics = _metrics()
        write_metrics(path, metrics, source="unit")
        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["source"] == "unit"
        assert payload["metrics"]["duration_ms"] == metrics.duration_ms
        assert read_metrics(path) == metrics
        assert [p.name for p in path.parent.iterdir()] == ["metrics.json"]
