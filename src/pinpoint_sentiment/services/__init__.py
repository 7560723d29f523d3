"""Services for Pinpoint Sentiment."""

from .llm import OpenAIService
from .grok_client import GrokService
from .youtube_client import YouTubeService
from .reddit_client import RedditAnswersService
from .store import SentimentStore, SQLSentimentStore, InMemorySentimentStore
from .sentiment_job import SentimentJob, run_sentiment_analysis

__all__ = [
    "OpenAIService",
    "GrokService",
    "YouTubeService",
    "RedditAnswersService",
    "SentimentStore",
    "SQLSentimentStore",
    "InMemorySentimentStore",
    "SentimentJob",
    "run_sentiment_analysis",
]
