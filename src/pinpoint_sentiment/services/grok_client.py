"""X (Twitter) chatter collection through the xAI Grok chat API."""

import logging
from textwrap import dedent
from typing import Any, Dict, List, Optional

import requests

from ..core.config import settings, SentimentConfig, DEFAULT_SENTIMENT_CONFIG
from ..core.constants import CollectorConstants, ErrorConstants
from ..core.errors import CollectionError
from ..core.models import Source, Subject, RawSourceData
from ..core.scoring import round_score
from ..utils.dates import collection_window
from ..utils.json_utils import parse_json_object

logger = logging.getLogger(__name__)

GROK_SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes X (Twitter) posts and provides "
    "structured JSON summaries. Always return valid JSON only."
)

GROK_PROMPT = dedent("""
What do people on X think about "{name}"? Please summarize the top positives and top negatives and the major features of the tool.

Please analyze X posts and provide a JSON object with the following structure:
{{
  "overall_sentiment_0_to_10": 7.5,
  "summary": "A brief summary of overall sentiment",
  "top_positives": ["positive point 1", "positive point 2", ...],
  "top_negatives": ["negative point 1", "negative point 2", ...],
  "major_features": ["feature 1", "feature 2", ...],
  "source_post_count": 150,
  "data_window_start": "2024-10-01T00:00:00Z",
  "data_window_end": "2025-04-01T00:00:00Z"
}}

Requirements:
- overall_sentiment_0_to_10: A number from 0.0 to 10.0 with exactly ONE decimal place
  * 0.0 = Overwhelmingly negative. Most users complain, very few positives.
  * 5.0 = Mixed or neutral. Similar number of positives and negatives.
  * 10.0 = Overwhelmingly positive. Strong enthusiasm, very few serious complaints.
- top_positives: up to 10 positive things people say about {name}
- top_negatives: up to 10 negative things people say about {name}
- major_features: major features or capabilities people mention about {name}
- summary: 2-3 sentence summary of overall sentiment
- source_post_count: estimated number of X posts/threads you analyzed (integer)
- data_window_start / data_window_end: ISO timestamps of the earliest and latest posts you found
- Only consider roughly the last {months} months and at most about {max_posts} posts

Focus on actual user posts, reviews, complaints, praise, and discussions about {name}.
Return ONLY valid JSON, no additional text or explanation.
""").strip()


def _numbered(items) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, 1))


def _number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def build_text_block(parsed: Dict[str, Any]) -> str:
    """Render a parsed Grok reply as one structured text block."""
    parts = []
    if parsed.get("summary"):
        parts.append(f"SUMMARY: {parsed['summary']}")

    score = _number(parsed.get("overall_sentiment_0_to_10"))
    if score is not None:
        parts.append(f"SOURCE ORIGINAL SENTIMENT: {round_score(score)}/10")

    post_count = _number(parsed.get("source_post_count"))
    if post_count is not None:
        parts.append(f"SOURCE POST COUNT: {int(post_count)} posts analyzed")

    if parsed.get("data_window_start") and parsed.get("data_window_end"):
        parts.append(f"DATA WINDOW: {parsed['data_window_start']} to {parsed['data_window_end']}")

    for title, key in (("TOP POSITIVES", "top_positives"),
                       ("TOP NEGATIVES", "top_negatives"),
                       ("MAJOR FEATURES", "major_features")):
        items = parsed.get(key)
        if isinstance(items, list) and items:
            parts.append(f"{title}:\n{_numbered(items)}")

    return "\n\n".join(parts)


class GrokService:
    """Collect X sentiment by asking Grok to search and summarize posts."""

    def __init__(self, api_key: Optional[str] = None, models: Optional[List[str]] = None,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key if api_key is not None else settings.xai_api_key
        self.models = models or list(settings.xai_models)
        self.session = session or requests.Session()

    def _post(self, model: str, prompt: str) -> Dict[str, Any]:
        response = self.session.post(
            f"{CollectorConstants.XAI_BASE_URL}/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": model,
                "messages": [
                    {"role": "system", "content": GROK_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": CollectorConstants.XAI_TEMPERATURE,
                "max_tokens": CollectorConstants.XAI_MAX_TOKENS,
                "response_format": {"type": "json_object"},
            },
            timeout=ErrorConstants.REQUEST_TIMEOUT,
        )
        if not response.ok:
            body = response.text[:ErrorConstants.MAX_ERROR_BODY_CHARS]
            try:
                error = response.json()
                message = (error.get("error") or {}).get("message") or error.get("message") or body
            except ValueError:
                message = body
            raise CollectionError(f'X.AI API error with model "{model}" ({response.status_code}): {message}')
        return response.json()

    def ask(self, prompt: str):
        """Try each model in order; return (content, model) from the first that answers."""
        last_error = None
        for model in self.models:
            logger.info(f"[X.AI] Trying model: {model}")
            try:
                data = self._post(model, prompt)
            except (requests.RequestException, ValueError, CollectionError) as e:
                logger.warning(f"[X.AI] Model {model} failed: {e}")
                last_error = e
                continue
            logger.info(f"[X.AI] Successfully used model: {model}")
            choices = data.get("choices") or []
            content = ((choices[0].get("message") or {}).get("content") or "").strip() if choices else ""
            if not content:
                raise CollectionError("X.AI API returned empty response")
            return content, model

        raise CollectionError(f"All X.AI models failed. Last error: {last_error}")

    def collect(self, subject: Subject, config: SentimentConfig = DEFAULT_SENTIMENT_CONFIG) -> RawSourceData:
        """Collect X chatter for a subject over the configured lookback window."""
        if not self.api_key:
            raise CollectionError("XAI_API_KEY environment variable is not set")

        window_start, window_end = collection_window(config.lookback_months)
        prompt = GROK_PROMPT.format(
            name=subject.name, months=config.lookback_months, max_posts=config.x_max_posts
        )
        content, model = self.ask(prompt)

        metadata: Dict[str, Any] = {
            "window_start": window_start,
            "window_end": window_end,
            "source_model": model,
        }
        text_blocks = []

        parsed = parse_json_object(content)
        if parsed is None:
            logger.warning("[X.AI] Could not parse response as JSON, using raw content")
            text_blocks.append(content)
            metadata["total_items"] = 1
            return RawSourceData(source=Source.X, subject_id=subject.id, text_blocks=text_blocks, metadata=metadata)

        block = build_text_block(parsed)
        if block:
            text_blocks.append(block)

        score = _number(parsed.get("overall_sentiment_0_to_10"))
        if score is not None:
            metadata["source_score"] = round_score(score)
        post_count = _number(parsed.get("source_post_count"))
        if post_count is not None:
            metadata["source_post_count"] = int(post_count)
        for key in ("data_window_start", "data_window_end"):
            if parsed.get(key):
                metadata[key] = str(parsed[key])
        metadata["total_items"] = metadata.get("source_post_count", len(text_blocks))

        logger.info(f"[X.AI] Collected X data for {subject.name}: score={metadata.get('source_score')}, "
                    f"posts={metadata.get('source_post_count')}")
        return RawSourceData(source=Source.X, subject_id=subject.id, text_blocks=text_blocks, metadata=metadata)
