"""Constants and configuration values for Pinpoint Sentiment."""

# Scoring Constants
class ScoringConstants:
    """Constants for the sentiment rubric and aggregation."""

    # Ordered label bands: (label, min inclusive, max exclusive).
    # DO NOT CHANGE casually - they affect score comparability over time
    LABEL_BANDS = (
        ("very negative", 0.0, 2.0),
        ("negative", 2.0, 4.0),
        ("mixed", 4.0, 6.0),
        ("positive", 6.0, 8.0),
        ("very positive", 8.0, 10.0),
    )
    LABELS = tuple(label for label, _, _ in LABEL_BANDS)

    MIN_SCORE = 0.0
    MAX_SCORE = 10.0

    # Increment when making deliberate changes to the scoring methodology
    RUBRIC_VERSION = "1.0.0"

    # Per-source prompt/rubric versions
    SCORING_SCHEMA_VERSIONS = {
        "reddit": "reddit_sentiment_v1",
        "x": "x_sentiment_v1",
        "youtube": "youtube_sentiment_v1",
    }

    # Equal weighting by default
    DEFAULT_WEIGHTS = {
        "reddit": 10,
        "x": 10,
        "youtube": 10,
    }

    # List caps on summaries and aggregates
    MAX_POSITIVES = 5
    MAX_NEGATIVES = 5
    MAX_FEATURES = 10

    # Narrative prefixes for the cross-platform summary
    SOURCE_DISPLAY_NAMES = {
        "reddit": "Reddit",
        "x": "X/Twitter",
        "youtube": "YouTube",
    }


# Prompt Constants
class PromptConstants:
    """Constants for LLM prompts and templates."""

    # Prompt Versions (for cache invalidation)
    SENTIMENT_PROMPT_VERSION = "v1.0"

    SUMMARY_TEMPERATURE = 0.0  # zero temperature for determinism
    SUMMARY_MAX_TOKENS = 2000

    TEXT_BLOCK_SEPARATOR = "\n\n=========================\n\n"

    UNCHANGED_REASON = "Score consistent with evidence"


# Collector Constants
class CollectorConstants:
    """Constants for the three source collectors."""

    # X.AI (Grok)
    XAI_BASE_URL = "https://api.x.ai/v1"
    XAI_TEMPERATURE = 0.3
    XAI_MAX_TOKENS = 4000

    # YouTube
    YOUTUBE_COMMENTS_PAGE_SIZE = 50  # API max per page

    # Reddit Answers
    REDDIT_ANSWERS_URL = "https://www.reddit.com/answers/"
    ANSWER_POLL_INTERVAL = 1.0  # seconds between answer checks
    MIN_ANSWER_ELEMENT_CHARS = 100
    MIN_ANSWER_CHARS = 50


# Error Handling Constants
class ErrorConstants:
    """Constants for error handling."""

    REQUEST_TIMEOUT = 60  # timeout for API requests
    MAX_ERROR_BODY_CHARS = 500  # truncate upstream error bodies in messages


# Cache Constants
class CacheConstants:
    """Constants for caching behavior."""

    CACHE_KEY_LENGTH = 8  # length of cache key for logging


# File and Path Constants
class FileConstants:
    """Constants for file operations."""

    CACHE_DIR = "cache/llm_cache"  # cache directory
    SENTIMENT_CONFIG_FILE = "config/sentiment.yaml"
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
