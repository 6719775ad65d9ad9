"""Extraction observability for tracking and auditing extraction calls.

The client records one ``ExtractionRecord`` per extraction call (successful,
exhausted, failed or cancelled) when it is given a tracker.

Example:
    ```python
    from dataknobs_structured.extraction import ExtractionClient, ExtractionTracker

    tracker = ExtractionTracker(max_history=100)
    client = ExtractionClient(generator, tracker=tracker)

    await client.extract(Person, "Alice, alice@example.com, 30")

    stats = tracker.get_stats()
    print(f"Success rate: {stats.success_rate:.1%}")
    print(f"Average attempts: {stats.avg_attempts:.2f}")
    ```
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any

OUTCOMES = ("succeeded", "exhausted", "generator_error", "cancelled")


@dataclass
class ExtractionRecord:
    """Record of a single extraction call.

    Attributes:
        timestamp: Unix timestamp when the call finished
        shape_name: Name of the target shape
        outcome: One of ``succeeded``, ``exhausted``, ``generator_error``,
            ``cancelled``
        attempts: Number of generator calls made
        duration_ms: Wall time of the whole call in milliseconds
        validation_errors: Rendered errors of the final failed attempt
        model_used: Model reported by the generator, if any
        raw_response: Final raw output (may be truncated)
        truncated: Whether raw_response was truncated
    """

    timestamp: float
    shape_name: str
    outcome: str
    attempts: int
    duration_ms: float
    validation_errors: list[str] = field(default_factory=list)
    model_used: str | None = None
    raw_response: str | None = None
    truncated: bool = False

    @property
    def success(self) -> bool:
        return self.outcome == "succeeded"

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtractionRecord:
        """Create record from dictionary."""
        return cls(**data)


@dataclass
class ExtractionStats:
    """Aggregated statistics for extraction calls.

    Attributes:
        total_extractions: Total number of extraction calls
        successful_extractions: Calls that produced a valid value
        failed_extractions: Calls that did not
        success_rate: Ratio of successful to total calls
        avg_attempts: Average generator calls per extraction
        avg_duration_ms: Average call duration in milliseconds
        retried_extractions: Calls that needed more than one attempt
        most_common_errors: List of (error, count) tuples
        by_outcome: Call counts per outcome
        by_shape: Call counts per shape name
        by_model: Call counts per model
    """

    total_extractions: int = 0
    successful_extractions: int = 0
    failed_extractions: int = 0
    success_rate: float = 0.0
    avg_attempts: float = 0.0
    avg_duration_ms: float = 0.0
    retried_extractions: int = 0
    most_common_errors: list[tuple[str, int]] = field(default_factory=list)
    by_outcome: dict[str, int] = field(default_factory=dict)
    by_shape: dict[str, int] = field(default_factory=dict)
    by_model: dict[str, int] = field(default_factory=dict)


@dataclass
class ExtractionHistoryQuery:
    """Query parameters for filtering extraction history.

    Attributes:
        shape_name: Filter by shape name
        model: Filter by model used
        outcome: Filter by outcome
        min_attempts: Only include calls with at least this many attempts
        since: Filter to records after this timestamp
        until: Filter to records before this timestamp
        limit: Maximum number of (most recent) records to return
    """

    shape_name: str | None = None
    model: str | None = None
    outcome: str | None = None
    min_attempts: int | None = None
    since: float | None = None
    until: float | None = None
    limit: int | None = None


class ExtractionTracker:
    """Tracks extraction history with query and statistics capabilities.

    Keeps a bounded history; the oldest records are dropped first.
    """

    def __init__(self, max_history: int = 100, truncate_text_at: int = 200):
        """Initialize tracker.

        Args:
            max_history: Maximum records to retain (default 100)
            truncate_text_at: Max length for stored raw responses (default 200)
        """
        self._history: list[ExtractionRecord] = []
        self._max_history = max_history
        self._truncate_at = truncate_text_at

    def record(self, extraction: ExtractionRecord) -> None:
        """Record an extraction call."""
        self._history.append(extraction)
        if len(self._history) > self._max_history:
            self._history.pop(0)

    def record_outcome(
        self,
        shape_name: str,
        outcome: str,
        attempts: int,
        duration_ms: float,
        validation_errors: list[str] | None = None,
        model_used: str | None = None,
        raw_response: str | None = None,
    ) -> ExtractionRecord:
        """Create and store a record, truncating the raw response.

        Raises:
            ValueError: If ``outcome`` is not a known outcome
        """
        if outcome not in OUTCOMES:
            raise ValueError(f"Unknown extraction outcome: {outcome}")
        truncated = False
        if raw_response and len(raw_response) > self._truncate_at:
            raw_response = raw_response[: self._truncate_at] + "..."
            truncated = True
        record = ExtractionRecord(
            timestamp=time.time(),
            shape_name=shape_name,
            outcome=outcome,
            attempts=attempts,
            duration_ms=duration_ms,
            validation_errors=list(validation_errors or []),
            model_used=model_used,
            raw_response=raw_response,
            truncated=truncated,
        )
        self.record(record)
        return record

    def query(self, query: ExtractionHistoryQuery | None = None) -> list[ExtractionRecord]:
        """Query extraction history.

        Args:
            query: Query parameters, or None for all records

        Returns:
            List of matching extraction records, oldest first
        """
        if query is None:
            return list(self._history)

        results = self._history

        if query.shape_name:
            results = [r for r in results if r.shape_name == query.shape_name]

        if query.model:
            results = [r for r in results if r.model_used == query.model]

        if query.outcome:
            results = [r for r in results if r.outcome == query.outcome]

        if query.min_attempts is not None:
            results = [r for r in results if r.attempts >= query.min_attempts]

        if query.since:
            results = [r for r in results if r.timestamp >= query.since]

        if query.until:
            results = [r for r in results if r.timestamp <= query.until]

        if query.limit:
            results = results[-query.limit:]

        return list(results)

    def get_stats(self) -> ExtractionStats:
        """Get aggregated extraction statistics."""
        if not self._history:
            return ExtractionStats()

        total = len(self._history)
        successful = sum(1 for r in self._history if r.success)
        error_counts = Counter(
            error for record in self._history for error in record.validation_errors
        )

        return ExtractionStats(
            total_extractions=total,
            successful_extractions=successful,
            failed_extractions=total - successful,
            success_rate=successful / total,
            avg_attempts=sum(r.attempts for r in self._history) / total,
            avg_duration_ms=sum(r.duration_ms for r in self._history) / total,
            retried_extractions=sum(1 for r in self._history if r.attempts > 1),
            most_common_errors=error_counts.most_common(5),
            by_outcome=dict(Counter(r.outcome for r in self._history)),
            by_shape=dict(Counter(r.shape_name for r in self._history)),
            by_model=dict(Counter(r.model_used or "unknown" for r in self._history)),
        )

    def get_recent(self, count: int = 10) -> list[ExtractionRecord]:
        """Get the most recent extraction records."""
        return self._history[-count:]

    def clear(self) -> None:
        """Clear all extraction history."""
        self._history.clear()

    def __len__(self) -> int:
        """Return number of records in history."""
        return len(self._history)


__all__ = [
    "ExtractionHistoryQuery",
    "ExtractionRecord",
    "ExtractionStats",
    "ExtractionTracker",
    "OUTCOMES",
]
