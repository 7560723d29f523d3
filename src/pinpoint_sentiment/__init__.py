"""Pinpoint Sentiment - community sentiment scoring for AI tools."""

__version__ = "1.0.0"

from .core.models import *
from .core.config import settings, load_sentiment_config
from .services.sentiment_job import SentimentJob, run_sentiment_analysis

__all__ = [
    "settings",
    "load_sentiment_config",
    "Source",
    "Subject",
    "SentimentJob",
    "run_sentiment_analysis",
]
