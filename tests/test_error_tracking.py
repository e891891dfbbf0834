from __future__ import annotations

import logging

from gradspeech.services.error_tracking import LoggingErrorTracker


class TestLoggingErrorTracker:
    def test_returns_unique_ids(self):
        tracker = LoggingErrorTracker()
        first = tracker.capture_exception(RuntimeError("a"))
        second = tracker.capture_exception(RuntimeError("b"))
        assert first != second
        assert len(first) == 32

    def test_logs_with_tags_and_context(self, caplog):
        tracker = LoggingErrorTracker("gradspeech.errors.test")

        try:
            raise ValueError("bad payload")
        except ValueError as e:
            with caplog.at_level(logging.ERROR, logger="gradspeech.errors.test"):
                event_id = tracker.capture_exception(e, tags={"event_type": "x"}, context={"path": "/hook"})

        record = caplog.records[-1]
        assert event_id in record.getMessage()
        assert "event_type" in record.getMessage()
        assert "bad payload" in record.getMessage()
        assert record.exc_info is not None
