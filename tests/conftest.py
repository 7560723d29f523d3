"""Shared fixtures for Pinpoint Sentiment tests."""

from datetime import datetime, timezone

import pytest

from pinpoint_sentiment.core.models import Source, Subject, SentimentRun, SentimentSummary
from pinpoint_sentiment.core.scoring import map_score_to_label


@pytest.fixture
def subject():
    return Subject(id="tool-1", name="Cursor", slug="cursor")


@pytest.fixture
def make_run():
    """Factory for stored-shape runs with a consistent label."""
    def _make_run(source, score, subject_id="tool-1", run_at=None, positives=None, negatives=None, features=None):
        return SentimentRun(
            subject_id=subject_id,
            source=source,
            run_at=run_at or datetime(2025, 1, 1, tzinfo=timezone.utc),
            raw_window_start="2024-01-01T00:00:00+00:00",
            raw_window_end="2025-01-01T00:00:00+00:00",
            score=score,
            label=map_score_to_label(score),
            summary=f"{source.display_name} users are talking.",
            top_positives=positives or [],
            top_negatives=negatives or [],
            top_features=features or [],
        )
    return _make_run


class FakeSummarizer:
    """Returns a fixed score per source and records calls."""

    def __init__(self, scores):
        self.scores = scores
        self.calls = []

    def summarize(self, source, subject_name, raw):
        source = Source(source)
        self.calls.append((source, subject_name, raw))
        score = self.scores[source]
        return SentimentSummary(
            score=score,
            label=map_score_to_label(score),
            summary=f"{source.display_name} summary for {subject_name}",
            top_positives=["Fast completions"],
            top_negatives=["Pricing"],
            top_features=["Autocomplete"],
            model_used="gpt-4o",
        )


@pytest.fixture
def fake_summarizer():
    return FakeSummarizer({Source.REDDIT: 8.0, Source.X: 6.0, Source.YOUTUBE: 4.0})
