"""Data preparation for export."""

import datetime
import json
from typing import Dict, Any, List

import pandas as pd

from ..core.models import SentimentAggregate


def history_to_frame(history: List[SentimentAggregate]) -> pd.DataFrame:
    """Tabulate aggregate history, oldest first, for trend charts and CSV export."""
    columns = [
        "run_at", "final_score", "final_label",
        "reddit_score", "x_score", "youtube_score", "rubric_version",
    ]
    rows = [
        {
            "run_at": agg.run_at,
            "final_score": agg.final_score,
            "final_label": agg.final_label,
            "reddit_score": agg.reddit_score,
            "x_score": agg.x_score,
            "youtube_score": agg.youtube_score,
            "rubric_version": agg.rubric_version,
        }
        for agg in history
    ]
    df = pd.DataFrame(rows, columns=columns)
    if not df.empty:
        df = df.sort_values("run_at").reset_index(drop=True)
    return df


def export_to_json(data: Dict[str, Any], filename: str) -> None:
    """Export data to JSON file."""
    payload = dict(data)
    payload["metadata"] = dict(payload.get("metadata") or {})
    payload["metadata"]["export_timestamp"] = datetime.datetime.now().isoformat()

    with open(filename, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
