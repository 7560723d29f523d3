"""Tests for the append-only sentiment stores."""

from datetime import datetime, timedelta, timezone

import pytest

from pinpoint_sentiment.core.errors import PersistenceError
from pinpoint_sentiment.core.models import Source
from pinpoint_sentiment.core.scoring import compute_sentiment_aggregate, map_score_to_label
from pinpoint_sentiment.services.store import InMemorySentimentStore, SQLSentimentStore

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemorySentimentStore()
    return SQLSentimentStore("sqlite://")


def test_insert_run_assigns_id(store, make_run):
    run = make_run(Source.X, 6.5, positives=["Fast"])
    stored = store.insert_run(run)
    assert stored.id
    assert run.id is None
    assert stored.score == 6.5


def test_latest_runs_per_source(store, make_run):
    store.insert_run(make_run(Source.REDDIT, 3.0, run_at=T0))
    store.insert_run(make_run(Source.REDDIT, 8.5, run_at=T0 + timedelta(days=90), positives=["Agent mode"]))
    store.insert_run(make_run(Source.YOUTUBE, 5.0, run_at=T0 + timedelta(days=30)))
    store.insert_run(make_run(Source.X, 9.0, subject_id="other-tool"))

    latest = store.latest_runs_per_source("tool-1")
    assert set(latest) == {Source.REDDIT, Source.YOUTUBE}
    reddit = latest[Source.REDDIT]
    assert reddit.score == 8.5
    assert reddit.label == map_score_to_label(reddit.score)
    assert reddit.top_positives == ["Agent mode"]
    assert reddit.run_at == T0 + timedelta(days=90)


def test_same_timestamp_prefers_later_insert(store, make_run):
    store.insert_run(make_run(Source.X, 4.0, run_at=T0))
    second = store.insert_run(make_run(Source.X, 7.0, run_at=T0))
    assert store.latest_runs_per_source("tool-1")[Source.X].id == second.id


def test_history_newest_first_with_limit(store, make_run):
    for month in range(15):
        runs = {Source.YOUTUBE: make_run(Source.YOUTUBE, month / 2)}
        store.insert_aggregate(compute_sentiment_aggregate(runs, "tool-1", run_at=T0 + timedelta(days=30 * month)))

    history = store.history("tool-1")
    assert len(history) == 12
    assert history[0].final_score == 7.0
    assert [a.run_at for a in history] == sorted((a.run_at for a in history), reverse=True)
    assert len(store.history("tool-1", limit=3)) == 3
    assert store.latest_aggregate("tool-1").id == history[0].id


def test_aggregate_round_trip(store, make_run):
    runs = {
        Source.X: make_run(Source.X, 8.0, positives=["Fast"], negatives=["Bugs"]),
        Source.YOUTUBE: make_run(Source.YOUTUBE, 4.0, positives=["fast"], features=["Chat"]),
    }
    stored = store.insert_aggregate(compute_sentiment_aggregate(runs, "tool-1", run_at=T0))
    loaded = store.latest_aggregate("tool-1")
    assert loaded.id == stored.id
    assert loaded.final_score == 6.0
    assert loaded.final_label == "positive"
    assert loaded.reddit_score is None
    assert loaded.x_score == 8.0
    assert loaded.combined_top_positives == ["Fast"]
    assert loaded.combined_top_features == ["Chat"]
    assert loaded.rubric_version == "1.0.0"


def test_unknown_subject(store):
    assert store.latest_aggregate("missing") is None
    assert store.latest_runs_per_source("missing") == {}
    assert store.history("missing") == []


def test_sql_errors_are_wrapped(make_run):
    store = SQLSentimentStore("sqlite://")
    run = make_run(Source.X, 5.0)
    run.summary = None
    with pytest.raises(PersistenceError):
        store.insert_run(run)
