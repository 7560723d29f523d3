"""Scoring and aggregation modules."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Mapping, Iterable, Tuple

from .constants import ScoringConstants
from .models import Source, SentimentRun, SentimentAggregate

logger = logging.getLogger(__name__)


def _winsorize(x: float, lo: float = ScoringConstants.MIN_SCORE, hi: float = ScoringConstants.MAX_SCORE) -> float:
    """Clamp value to range [lo, hi]."""
    return max(lo, min(hi, float(x)))


def round_score(score: float) -> float:
    """Round to one decimal and clamp to the 0-10 scale."""
    return _winsorize(round(float(score) * 10) / 10)


def map_score_to_label(score: float) -> str:
    """Map a 0-10 score to its rubric label.

    Bands are closed at the low end and open at the high end; exactly 10
    falls outside the half-open logic and is mapped to "very positive".
    """
    clamped = _winsorize(score)
    for label, lo, hi in ScoringConstants.LABEL_BANDS:
        if lo <= clamped < hi:
            return label
    # Exactly 10.0 sits outside the half-open bands
    return "very positive"


def is_valid_label(label) -> bool:
    return isinstance(label, str) and label in ScoringConstants.LABELS


def _weighted_mean(pairs: Iterable[Tuple[float, float]]) -> float:
    """Compute weighted average of score-weight pairs; 0 when nothing is weighted."""
    pairs = list(pairs)
    den = sum(w for _, w in pairs)
    if den <= 0:
        return 0.0
    num = sum(s * w for s, w in pairs)
    return num / den


def merge_and_deduplicate(items: List[str], max_items: int) -> List[str]:
    """Merge bullet lists, ranking repeated items first.

    Items are compared trimmed and lower-cased; the first occurrence's
    casing is kept. Ties are broken alphabetically on the normalized text.
    """
    counts: Dict[str, int] = {}
    originals: Dict[str, str] = {}
    for item in items:
        if not isinstance(item, str):
            continue
        normalized = item.strip().lower()
        if not normalized:
            continue
        counts[normalized] = counts.get(normalized, 0) + 1
        originals.setdefault(normalized, item.strip())

    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [originals[normalized] for normalized, _ in ranked[:max_items]]


def compute_sentiment_aggregate(
    runs: Mapping[Source, SentimentRun],
    subject_id: str,
    run_at: Optional[datetime] = None,
    weights: Optional[Mapping[str, float]] = None,
) -> SentimentAggregate:
    """Combine the available per-source runs into one weighted aggregate.

    Sources missing from ``runs`` contribute neither numerator nor
    denominator. With no runs at all the final score is 0.
    """
    weights = weights or ScoringConstants.DEFAULT_WEIGHTS
    run_at = run_at or datetime.now(timezone.utc)

    pairs = []
    summaries = []
    positives: List[str] = []
    negatives: List[str] = []
    features: List[str] = []

    # Fixed source order keeps the narrative and tie-breaking stable
    for source in Source:
        run = runs.get(source)
        if run is None:
            continue
        weight = float(weights.get(source.value, ScoringConstants.DEFAULT_WEIGHTS[source.value]))
        pairs.append((run.score, weight))
        summaries.append(f"{source.display_name}: {run.summary}")
        positives.extend(run.top_positives or [])
        negatives.extend(run.top_negatives or [])
        features.extend(run.top_features or [])

    final_score = round_score(_weighted_mean(pairs))

    if not pairs:
        logger.warning(f"No source runs available for {subject_id}; aggregate is degenerate")

    return SentimentAggregate(
        subject_id=subject_id,
        run_at=run_at,
        final_score=final_score,
        final_label=map_score_to_label(final_score),
        cross_platform_summary=" ".join(summaries),
        reddit_score=runs[Source.REDDIT].score if Source.REDDIT in runs else None,
        x_score=runs[Source.X].score if Source.X in runs else None,
        youtube_score=runs[Source.YOUTUBE].score if Source.YOUTUBE in runs else None,
        combined_top_positives=merge_and_deduplicate(positives, ScoringConstants.MAX_POSITIVES),
        combined_top_negatives=merge_and_deduplicate(negatives, ScoringConstants.MAX_NEGATIVES),
        combined_top_features=merge_and_deduplicate(features, ScoringConstants.MAX_FEATURES),
        rubric_version=ScoringConstants.RUBRIC_VERSION,
    )
