"""LLM summarization service for OpenAI integration."""

import hashlib
import logging
import math
from textwrap import dedent
from typing import Any, Dict, List, Mapping, Optional, Union

import openai
from diskcache import Cache

from ..core.config import settings
from ..core.constants import PromptConstants, ScoringConstants, CacheConstants, ErrorConstants
from ..core.errors import SummarizationError
from ..core.models import Source, RawSourceData, SentimentSummary
from ..core.scoring import map_score_to_label, is_valid_label, round_score, _winsorize
from ..utils.json_utils import repair_json_object

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a precise sentiment analyst for AI tools. You analyze community feedback "
    "from various sources and provide structured, consistent sentiment analysis."
)

# Reply keys
SCORE_KEY = "overall_sentiment_0_to_10"
LABEL_KEY = "sentiment_label"
SOURCE_SCORE_KEY = "source_original_score"
RECONCILED_KEY = "reconciled_score"
REASON_KEY = "reason_for_adjustment"
CONFIDENCE_KEY = "confidence_0_to_1"
POST_COUNT_KEY = "source_post_count"

SOURCE_QUESTIONS = {
    Source.REDDIT: 'What do people on Reddit think about "{name}"?',
    Source.X: 'What do people on X think about "{name}"?',
    Source.YOUTUBE: 'What do people on YouTube think about "{name}"?',
}

SCHEMA_PROMPT = dedent("""
{{
  "overall_sentiment_0_to_10": number,
  "sentiment_label": "very negative" | "negative" | "mixed" | "positive" | "very positive",
  "summary": string,
  "top_positives": string[],
  "top_negatives": string[],
  "top_features": string[],
  "subscores": {{
    "pricing": number,
    "performance": number,
    "quality": number,
    "ease_of_use": number,
    "innovation": number
  }}{meta_fields}
}}
""").strip()

META_SCHEMA_FIELDS = """,
  "source_original_score": number | null,
  "reconciled_score": number,
  "reason_for_adjustment": string,
  "confidence_0_to_1": number,
  "source_post_count": number | null"""

RUBRIC_PROMPT = dedent("""
SCORING RUBRIC (apply this scale consistently; a band includes its lower bound and excludes its upper bound, except 10.0):
- 0.0 up to 2.0 (very negative): Overwhelmingly negative. Most users complain, very few positives. Serious fundamental issues.
- 2.0 up to 4.0 (negative): Mostly negative. More complaints than praise. Serious issues or missing core features.
- 4.0 up to 6.0 (mixed): Mixed or lukewarm. Similar number of positives and negatives, or mild satisfaction.
- 6.0 up to 8.0 (positive): Mostly positive. Users are generally happy, issues exist but are not dealbreakers.
- 8.0 to 10.0 (very positive): Overwhelmingly positive. Strong enthusiasm, very few serious complaints, widely considered best in class.

Rules:
- Score from the perspective of creators/users using the tool
- Score must be a number with exactly ONE decimal place (e.g., 7.5, 8.2, 6.0)
- sentiment_label must be the band of the score above
- Apply the rubric consistently - do not be overly optimistic or pessimistic
- Extract real themes and features that users mention
- Limit arrays: top_positives (max 5), top_negatives (max 5), top_features (max 10)
- Subscores are optional but helpful (0-10 each, one decimal place)
- Summary should be 2-4 sentences capturing overall sentiment
""").strip()

META_REVIEW_PROMPT = dedent("""
META-REVIEWER INSTRUCTIONS:
You are acting as a meta-reviewer. An external assistant already analyzed X posts and provided:
- Original score: {source_score}/10
{context_lines}
Your job:
1. Review the provided summary, positives, negatives, and features
2. Compare the original score ({source_score}/10) to the evidence provided
3. If the score is inconsistent with the evidence, adjust it using the rubric above
4. Set "reconciled_score" to your final score (this becomes the official X score)
5. Set "source_original_score" to {source_score}
6. If you adjusted the score, give a brief "reason_for_adjustment" (e.g., "Original score too optimistic given number of complaints")
7. If you kept the score, set "reason_for_adjustment" to "{unchanged}"
8. Set "confidence_0_to_1" based on data quality:
   - 0.9-1.0: High confidence (many posts, clear patterns)
   - 0.7-0.8: Medium confidence (moderate data, some patterns)
   - 0.5-0.6: Low confidence (limited data, unclear patterns)
   - Below 0.5: Very low confidence (very limited or conflicting data)

IMPORTANT: Do not just repeat the original score. Apply the rubric consistently and adjust if needed.
""").strip()

META_INITIAL_PROMPT = dedent("""
META-REVIEWER INSTRUCTIONS:
No original score is available for this X data. Provide:
- "reconciled_score": your final score using the rubric above (this becomes the official X score)
- "source_original_score": null
- "reason_for_adjustment": "{unchanged}" unless you have a specific note
- "confidence_0_to_1": your confidence in the score based on data quality
""").strip()


def _as_number(value) -> Optional[float]:
    """Return value as a finite float, or None for non-numbers (bools included)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def _string_list(value, cap: int) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return items[:cap]


def _subscores(value) -> Dict[str, float]:
    if not isinstance(value, dict):
        return {}
    scores = {}
    for name, raw in value.items():
        number = _as_number(raw)
        if number is not None:
            scores[str(name)] = round_score(number)
    return scores


def build_sentiment_prompt(source: Source, subject_name: str, combined_text: str,
                           metadata: Optional[Mapping[str, Any]] = None) -> str:
    """Build the user prompt: question, schema, rubric, meta-review block (X only), data."""
    metadata = metadata or {}
    is_x = source is Source.X
    name = source.display_name

    parts = [
        SOURCE_QUESTIONS[source].format(name=subject_name)
        + " Please summarize the top positives and top negatives and the major features of the tool.",
        f'You are evaluating sentiment about the AI tool "{subject_name}" based on {name} data from the community.',
        f"You are given text content from {name} (posts, comments, answers, videos, etc.).\n"
        "Please read everything and respond with **only** a JSON object matching this exact schema:",
        SCHEMA_PROMPT.format(meta_fields=META_SCHEMA_FIELDS if is_x else ""),
        RUBRIC_PROMPT,
    ]

    if is_x:
        source_score = _as_number(metadata.get("source_score"))
        if source_score is not None:
            context = []
            if metadata.get("source_post_count"):
                context.append(f"- Source post count: {metadata['source_post_count']} posts analyzed")
            if metadata.get("data_window_start") and metadata.get("data_window_end"):
                context.append(f"- Data window: {metadata['data_window_start']} to {metadata['data_window_end']}")
            parts.append(META_REVIEW_PROMPT.format(
                source_score=round_score(source_score),
                context_lines="\n".join(context) + ("\n" if context else ""),
                unchanged=PromptConstants.UNCHANGED_REASON,
            ))
        else:
            parts.append(META_INITIAL_PROMPT.format(unchanged=PromptConstants.UNCHANGED_REASON))

    parts.append(f"Here is the {name} data for {subject_name}:\n\n{combined_text}")
    return "\n\n".join(parts)


def validation_problem(parsed: Mapping[str, Any]) -> Optional[str]:
    """Describe why a reply fails required-field validation, or None when it passes."""
    if _as_number(parsed.get(SCORE_KEY)) is None:
        return f"missing or invalid {SCORE_KEY}"
    summary = parsed.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        return "missing or invalid summary"
    return None


def normalize_summary(source: Source, parsed: Mapping[str, Any], metadata: Optional[Mapping[str, Any]] = None,
                      model_used: Optional[str] = None) -> SentimentSummary:
    """Turn a validated model reply into a SentimentSummary.

    The stored score is the reconciled score for X and the raw score
    elsewhere; the label is always re-derived from that final score.
    """
    metadata = metadata or {}
    raw_score = _as_number(parsed.get(SCORE_KEY))
    if raw_score is None:
        raise SummarizationError(f"missing or invalid {SCORE_KEY}")

    source_score = None
    reconciled = None
    reason = None

    if source is Source.X:
        source_score = _as_number(parsed.get(SOURCE_SCORE_KEY))
        if source_score is None:
            source_score = _as_number(metadata.get("source_score"))
        if source_score is not None:
            source_score = round_score(source_score)

        reconciled = _as_number(parsed.get(RECONCILED_KEY))
        if reconciled is None:
            logger.warning(f"[OpenAI] No {RECONCILED_KEY} in X reply, keeping the analyzed score {raw_score}")
            reconciled = raw_score
        reconciled = round_score(reconciled)
        final_score = reconciled

        reason = parsed.get(REASON_KEY)
        if not isinstance(reason, str) or not reason.strip():
            if source_score is None or source_score == final_score:
                reason = PromptConstants.UNCHANGED_REASON
            else:
                reason = f"Adjusted from {source_score} to {final_score} under the rubric"
        reason = reason.strip()
    else:
        final_score = round_score(raw_score)

    label = map_score_to_label(final_score)
    model_label = parsed.get(LABEL_KEY)
    if not is_valid_label(model_label):
        logger.warning(f"[OpenAI] Missing or invalid {LABEL_KEY} for {source.value}, deriving from score {final_score}")
    elif model_label != label:
        logger.warning(f"[OpenAI] Label '{model_label}' inconsistent with score {final_score} for {source.value}, using '{label}'")

    confidence = _as_number(parsed.get(CONFIDENCE_KEY))
    if confidence is not None:
        confidence = _winsorize(confidence, 0.0, 1.0)

    post_count = _as_number(parsed.get(POST_COUNT_KEY))
    if post_count is None:
        post_count = _as_number(metadata.get("source_post_count"))

    return SentimentSummary(
        score=final_score,
        label=label,
        summary=parsed["summary"].strip(),
        top_positives=_string_list(parsed.get("top_positives"), ScoringConstants.MAX_POSITIVES),
        top_negatives=_string_list(parsed.get("top_negatives"), ScoringConstants.MAX_NEGATIVES),
        top_features=_string_list(parsed.get("top_features"), ScoringConstants.MAX_FEATURES),
        subscores=_subscores(parsed.get("subscores")),
        source_score=source_score,
        reconciled_score=reconciled,
        reason_for_adjustment=reason,
        confidence=confidence,
        source_post_count=int(post_count) if post_count is not None and post_count >= 0 else None,
        model_used=model_used,
    )


class OpenAIService:
    """OpenAI-based sentiment summarization service."""

    def __init__(self, client=None, models: Optional[List[str]] = None, cache: Optional[Cache] = None):
        if client is None and settings.openai_api_key:
            client = openai.OpenAI(api_key=settings.openai_api_key)
        self.client = client
        # Primary model first; the fallback is tried once if it fails
        self.models = models or [settings.openai_model, settings.openai_fallback_model]
        if cache is None and settings.llm_cache_enabled:
            cache = Cache(settings.cache_dir)
        self.cache = cache

    def chat(self, model: str, system: str, user: str,
             temperature: float = PromptConstants.SUMMARY_TEMPERATURE,
             max_tokens: int = PromptConstants.SUMMARY_MAX_TOKENS) -> str:
        """Single strict-JSON completion, served from cache when enabled."""
        cache_key = hashlib.md5(
            f"{model}|{system}|{user}|{temperature}|{max_tokens}|{PromptConstants.SENTIMENT_PROMPT_VERSION}".encode()
        ).hexdigest()

        if self.cache is not None:
            cached_response = self.cache.get(cache_key)
            if cached_response:
                logger.debug(f"Cache hit for LLM request: {cache_key[:CacheConstants.CACHE_KEY_LENGTH]}...")
                return cached_response

        response = self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            response_format={"type": "json_object"},
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=ErrorConstants.REQUEST_TIMEOUT,
        )
        content = (response.choices[0].message.content or "").strip() if response.choices else ""

        if self.cache is not None and content:
            self.cache.set(cache_key, content, expire=3600 * settings.llm_cache_ttl_hours)
            logger.debug(f"Cached LLM response: {cache_key[:CacheConstants.CACHE_KEY_LENGTH]}...")
        return content

    def summarize(self, source: Union[Source, str], subject_name: str, raw_data: RawSourceData) -> SentimentSummary:
        """Summarize one collector's raw text into a validated SentimentSummary."""
        source = Source(source)
        if self.client is None:
            raise SummarizationError("OPENAI_API_KEY environment variable is not set")

        combined_text = PromptConstants.TEXT_BLOCK_SEPARATOR.join(raw_data.text_blocks)
        prompt = build_sentiment_prompt(source, subject_name, combined_text, raw_data.metadata)

        failures = []
        for model in self.models:
            try:
                content = self.chat(model, SYSTEM_PROMPT, prompt)
            except openai.OpenAIError as e:
                logger.warning(f"[OpenAI] {model} failed for {source.value} ({subject_name}): {e}")
                failures.append(f"{model}: {e}")
                continue

            if not content:
                logger.warning(f"[OpenAI] {model} returned an empty response for {source.value}")
                failures.append(f"{model}: empty response")
                continue

            parsed = repair_json_object(content)
            if parsed is None:
                logger.warning(f"[OpenAI] {model} returned invalid JSON for {source.value}: {content[:200]}")
                failures.append(f"{model}: invalid JSON response")
                continue

            problem = validation_problem(parsed)
            if problem:
                logger.warning(f"[OpenAI] {model} reply for {source.value} failed validation: {problem}")
                failures.append(f"{model}: {problem}")
                continue

            summary = normalize_summary(source, parsed, raw_data.metadata, model_used=model)
            logger.info(f"[OpenAI] {source.value} ({subject_name}): {summary.score}/10 ({summary.label}) via {model}")
            return summary

        raise SummarizationError(
            f"OpenAI summarization failed for {source.value}: " + "; ".join(failures)
        )
