"""Core modules for Pinpoint Sentiment."""

from .models import *
from .config import settings, SentimentConfig, load_sentiment_config
from .errors import PinpointError, CollectionError, SummarizationError, PersistenceError
from .scoring import map_score_to_label, compute_sentiment_aggregate, merge_and_deduplicate

__all__ = [
    "settings",
    "SentimentConfig",
    "load_sentiment_config",
    "PinpointError",
    "CollectionError",
    "SummarizationError",
    "PersistenceError",
    "Source",
    "Subject",
    "RawSourceData",
    "SentimentSummary",
    "SentimentRun",
    "SentimentAggregate",
    "SentimentJobResult",
    "map_score_to_label",
    "compute_sentiment_aggregate",
    "merge_and_deduplicate",
]
