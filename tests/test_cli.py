"""Tests for CLI helpers and read-only commands."""

import argparse
from datetime import datetime, timedelta, timezone

from pinpoint_sentiment.cli import slugify, subject_from_args, cmd_history, cmd_show
from pinpoint_sentiment.core.models import Source
from pinpoint_sentiment.core.scoring import compute_sentiment_aggregate
from pinpoint_sentiment.services.store import SQLSentimentStore


def test_slugify():
    assert slugify("GitHub Copilot") == "github-copilot"
    assert slugify("  Claude 3.5 (Sonnet) ") == "claude-3-5-sonnet"


def test_subject_from_args():
    args = argparse.Namespace(name="GitHub Copilot", id=None, slug=None, query=None)
    subject = subject_from_args(args)
    assert subject.id == "github-copilot"
    assert subject.slug == "github-copilot"
    assert subject.search_query is None


def test_history_export(tmp_path, make_run, capsys):
    db_url = f"sqlite:///{tmp_path / 'sentiment.db'}"
    store = SQLSentimentStore(db_url)
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    for i, score in enumerate([5.0, 7.0]):
        runs = {Source.X: make_run(Source.X, score)}
        store.insert_aggregate(compute_sentiment_aggregate(runs, "tool-1", run_at=start + timedelta(days=90 * i)))

    csv_path = tmp_path / "history.csv"
    args = argparse.Namespace(db=db_url, subject_id="tool-1", limit=12, csv=str(csv_path))
    assert cmd_history(args) == 0

    lines = csv_path.read_text().strip().splitlines()
    assert lines[0].startswith("run_at,final_score,final_label")
    assert len(lines) == 3
    assert ",5.0," in lines[1]
    assert ",7.0," in lines[2]


def test_show_unknown_subject(tmp_path, capsys):
    args = argparse.Namespace(db=f"sqlite:///{tmp_path / 'empty.db'}", subject_id="nope", limit=12)
    assert cmd_show(args) == 1
    assert "No sentiment data" in capsys.readouterr().out
