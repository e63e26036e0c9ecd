"""
Unit tests for progress sinks and JSON-lines logging.
"""

import io
import json
import logging

import numpy as np
from sparse_dictionary import HistorySink, JsonLogSink, LoggingSink
from sparse_dictionary.jsonlog import log


class TestJsonLog:
    """Test JSON-lines records."""

    def test_record_fields(self):
        stream = io.StringIO()

        log("objective", stream=stream, iteration=np.int64(2), value=np.float64(1.5))

        rec = json.loads(stream.getvalue())
        assert rec["event"] == "objective"
        assert rec["iteration"] == 2
        assert rec["value"] == 1.5
        assert "ts" in rec

    def test_one_line_per_record(self):
        stream = io.StringIO()

        log("a", stream=stream)
        log("b", stream=stream, shape=[2, 3])

        lines = stream.getvalue().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["a", "b"]


class TestSinks:
    """Test the sink implementations."""

    def test_history_sink(self):
        sink = HistorySink()

        sink.record("objective", iteration=0, value=3.0)
        sink.record("objective", iteration=1, value=2.0)
        sink.record("sparsity", iteration=1, percent=12.5)

        assert sink.values("objective", "value") == [3.0, 2.0]
        assert sink.values("sparsity", "percent") == [12.5]
        assert sink.values("converged", "iteration") == []

        sink.clear()
        assert sink.values("objective", "value") == []

    def test_json_sink_skips_newton_iterations(self):
        stream = io.StringIO()
        sink = JsonLogSink(stream=stream)

        sink.record("newton_iteration", iteration=1)
        sink.record("objective", iteration=0, value=1.0)

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["event"] == "objective"

    def test_logging_sink_levels(self, caplog):
        sink = LoggingSink(name="sparse_dictionary.test")

        with caplog.at_level(logging.DEBUG, logger="sparse_dictionary.test"):
            sink.record("objective", iteration=0, value=1.0)
            sink.record("inactive_atoms", count=2, atoms=8)

        levels = {r.getMessage().split(":")[0]: r.levelno for r in caplog.records}
        assert levels["objective"] == logging.DEBUG
        assert levels["inactive_atoms"] == logging.WARNING
