"""Data models for Pinpoint Sentiment."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any

from .constants import ScoringConstants


class Source(Enum):
    REDDIT = "reddit"
    X = "x"
    YOUTUBE = "youtube"

    @property
    def display_name(self) -> str:
        return ScoringConstants.SOURCE_DISPLAY_NAMES[self.value]


@dataclass(frozen=True)
class Subject:
    """A tool being evaluated."""
    id: str
    name: str
    slug: str
    search_query: Optional[str] = None


@dataclass
class RawSourceData:
    """Raw text collected from one source, before summarization."""
    source: Source
    subject_id: str
    text_blocks: List[str]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def window_start(self) -> Optional[str]:
        return self.metadata.get("window_start")

    @property
    def window_end(self) -> Optional[str]:
        return self.metadata.get("window_end")


@dataclass
class SentimentSummary:
    """Structured opinion summary for one source."""
    score: float
    label: str
    summary: str
    top_positives: List[str] = field(default_factory=list)
    top_negatives: List[str] = field(default_factory=list)
    top_features: List[str] = field(default_factory=list)
    subscores: Dict[str, float] = field(default_factory=dict)
    # Meta-review fields (social-chatter source)
    source_score: Optional[float] = None
    reconciled_score: Optional[float] = None
    reason_for_adjustment: Optional[str] = None
    confidence: Optional[float] = None
    source_post_count: Optional[int] = None
    model_used: Optional[str] = None


@dataclass
class SentimentRun:
    """Persisted, append-only record of one source summarization."""
    subject_id: str
    source: Source
    run_at: datetime
    raw_window_start: str
    raw_window_end: str
    score: float
    label: str
    summary: str
    top_positives: List[str] = field(default_factory=list)
    top_negatives: List[str] = field(default_factory=list)
    top_features: List[str] = field(default_factory=list)
    subscores: Dict[str, float] = field(default_factory=dict)
    data_window_start: Optional[str] = None
    data_window_end: Optional[str] = None
    source_post_count: Optional[int] = None
    confidence: Optional[float] = None
    source_score: Optional[float] = None
    reconciled_score: Optional[float] = None
    reason_for_adjustment: Optional[str] = None
    scoring_schema_version: Optional[str] = None
    model: Optional[str] = None
    source_model: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["source"] = self.source.value
        data["run_at"] = self.run_at.isoformat()
        return data


@dataclass
class SentimentAggregate:
    """Combined result across all sources for one orchestrator execution."""
    subject_id: str
    run_at: datetime
    final_score: float
    final_label: str
    cross_platform_summary: str
    reddit_score: Optional[float] = None
    x_score: Optional[float] = None
    youtube_score: Optional[float] = None
    combined_top_positives: List[str] = field(default_factory=list)
    combined_top_negatives: List[str] = field(default_factory=list)
    combined_top_features: List[str] = field(default_factory=list)
    rubric_version: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["run_at"] = self.run_at.isoformat()
        return data


@dataclass
class SourceResult:
    """Per-source outcome reported to the caller."""
    success: bool
    error: Optional[str] = None
    score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        if self.score is not None:
            data["score"] = self.score
        return data


@dataclass
class SentimentJobResult:
    """Result returned by one orchestrator execution."""
    subject_id: str
    subject_name: str
    success: bool = False
    sources: Dict[str, SourceResult] = field(default_factory=dict)
    aggregate: Optional[Dict[str, Any]] = None
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "subject_id": self.subject_id,
            "subject_name": self.subject_name,
            "success": self.success,
            "sources": {name: result.to_dict() for name, result in self.sources.items()},
            "errors": list(self.errors),
        }
        if self.aggregate is not None:
            data["aggregate"] = dict(self.aggregate)
        return data


@dataclass
class SubjectSentimentView:
    """Latest aggregate, latest run per source and score history for a subject."""
    aggregate: SentimentAggregate
    runs: Dict[str, SentimentRun]
    history: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aggregate": self.aggregate.to_dict(),
            "runs": {name: run.to_dict() for name, run in self.runs.items()},
            "history": list(self.history),
        }
