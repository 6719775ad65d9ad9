"""Tests for extraction tracking."""

import pytest

from dataknobs_structured.extraction import (
    ExtractionHistoryQuery,
    ExtractionRecord,
    ExtractionTracker,
)


def _record(tracker, shape="Contact", outcome="succeeded", attempts=1, model="m", **kwargs):
    return tracker.record_outcome(
        shape_name=shape,
        outcome=outcome,
        attempts=attempts,
        duration_ms=10.0,
        model_used=model,
        **kwargs,
    )


class TestExtractionTracker:
    """Test recording and querying extraction outcomes."""

    def test_bounded_history(self):
        """Test the oldest records are dropped first."""
        tracker = ExtractionTracker(max_history=2)
        for attempts in (1, 2, 3):
            _record(tracker, attempts=attempts)
        assert len(tracker) == 2
        assert [r.attempts for r in tracker.query()] == [2, 3]

    def test_truncation(self):
        """Test long raw responses are truncated."""
        tracker = ExtractionTracker(truncate_text_at=5)
        record = _record(tracker, raw_response="abcdefgh")
        assert record.raw_response == "abcde..."
        assert record.truncated
        assert not _record(tracker, raw_response="abc").truncated

    def test_unknown_outcome(self):
        """Test unknown outcomes are rejected."""
        with pytest.raises(ValueError):
            _record(ExtractionTracker(), outcome="maybe")

    def test_query_filters(self):
        """Test query filters combine."""
        tracker = ExtractionTracker()
        _record(tracker, shape="Contact", outcome="succeeded", attempts=1)
        _record(tracker, shape="Contact", outcome="exhausted", attempts=3, model="other")
        _record(tracker, shape="Invoice", outcome="succeeded", attempts=2)

        assert len(tracker.query(ExtractionHistoryQuery(shape_name="Contact"))) == 2
        assert len(tracker.query(ExtractionHistoryQuery(model="other"))) == 1
        assert len(tracker.query(ExtractionHistoryQuery(outcome="succeeded", min_attempts=2))) == 1
        limited = tracker.query(ExtractionHistoryQuery(limit=1))
        assert [r.shape_name for r in limited] == ["Invoice"]

    def test_stats(self):
        """Test aggregated statistics."""
        tracker = ExtractionTracker()
        _record(tracker, attempts=1)
        _record(tracker, attempts=3, outcome="exhausted", validation_errors=["email: missing"])
        _record(tracker, attempts=2, model=None)

        stats = tracker.get_stats()
        assert stats.total_extractions == 3
        assert stats.successful_extractions == 2
        assert stats.failed_extractions == 1
        assert stats.success_rate == pytest.approx(2 / 3)
        assert stats.avg_attempts == pytest.approx(2.0)
        assert stats.retried_extractions == 2
        assert stats.most_common_errors == [("email: missing", 1)]
        assert stats.by_outcome == {"succeeded": 2, "exhausted": 1}
        assert stats.by_model == {"m": 2, "unknown": 1}

    def test_empty_stats(self):
        """Test statistics of an empty tracker."""
        stats = ExtractionTracker().get_stats()
        assert stats.total_extractions == 0
        assert stats.success_rate == 0.0

    def test_recent_and_clear(self):
        """Test recent records and clearing history."""
        tracker = ExtractionTracker()
        for attempts in (1, 2, 3):
            _record(tracker, attempts=attempts)
        assert [r.attempts for r in tracker.get_recent(2)] == [2, 3]
        tracker.clear()
        assert len(tracker) == 0

    def test_record_round_trip(self):
        """Test records convert to and from dictionaries."""
        record = _record(ExtractionTracker(), outcome="cancelled", attempts=0)
        restored = ExtractionRecord.from_dict(record.to_dict())
        assert restored == record
        assert not restored.success
