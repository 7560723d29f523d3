"""Sentiment job orchestrator.

Runs collect -> summarize -> store for each source, then aggregates the
sources that made it through and stores the aggregate. A failing source
never stops its siblings; its error is reported in the job result.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional, Tuple

from ..core.config import SentimentConfig, load_sentiment_config
from ..core.constants import CollectorConstants, ScoringConstants
from ..core.errors import CollectionError, PinpointError
from ..core.models import (
    Source, Subject, RawSourceData, SentimentSummary, SentimentRun,
    SourceResult, SentimentJobResult, SubjectSentimentView,
)
from ..core.scoring import compute_sentiment_aggregate
from ..utils.dates import collection_window
from .grok_client import GrokService
from .llm import OpenAIService
from .reddit_client import RedditAnswersService, format_answer_block
from .store import DEFAULT_HISTORY_LIMIT, SentimentStore, SQLSentimentStore
from .youtube_client import YouTubeService

logger = logging.getLogger(__name__)

MANUAL_QUESTION = 'What do people on reddit think about "{name}"?'


def build_run(subject: Subject, source: Source, run_at: datetime, raw: RawSourceData,
              summary: SentimentSummary) -> SentimentRun:
    """Combine a summary with its collection context into an unsaved run."""
    run_at_iso = run_at.isoformat()
    metadata = raw.metadata
    return SentimentRun(
        subject_id=subject.id,
        source=source,
        run_at=run_at,
        raw_window_start=raw.window_start or run_at_iso,
        raw_window_end=raw.window_end or run_at_iso,
        score=summary.score,
        label=summary.label,
        summary=summary.summary,
        top_positives=list(summary.top_positives),
        top_negatives=list(summary.top_negatives),
        top_features=list(summary.top_features),
        subscores=dict(summary.subscores),
        data_window_start=metadata.get("data_window_start") or raw.window_start,
        data_window_end=metadata.get("data_window_end") or raw.window_end,
        source_post_count=summary.source_post_count,
        confidence=summary.confidence,
        source_score=summary.source_score,
        reconciled_score=summary.reconciled_score,
        reason_for_adjustment=summary.reason_for_adjustment,
        scoring_schema_version=ScoringConstants.SCORING_SCHEMA_VERSIONS[source.value],
        model=summary.model_used,
        source_model=metadata.get("source_model"),
    )


class SentimentJob:
    """Wires collectors, the summarizer and the store into one pipeline."""

    def __init__(self, collectors: Optional[Mapping[Source, object]] = None, summarizer=None,
                 store: Optional[SentimentStore] = None):
        self.collectors = dict(collectors) if collectors is not None else {
            Source.REDDIT: RedditAnswersService(),
            Source.X: GrokService(),
            Source.YOUTUBE: YouTubeService(),
        }
        self.summarizer = summarizer or OpenAIService()
        self.store = store if store is not None else SQLSentimentStore()

    def _run_source(self, source: Source, subject: Subject, config: SentimentConfig,
                    run_at: datetime) -> SentimentRun:
        """Collect, summarize and store one source. Raises PinpointError on failure."""
        collector = self.collectors.get(source)
        if collector is None:
            raise CollectionError(f"No collector configured for {source.display_name}")

        logger.info(f"[Sentiment] Collecting {source.display_name} data for {subject.name}")
        raw = collector.collect(subject, config)
        if not raw.text_blocks:
            raise CollectionError(f"No data collected from {source.display_name}")

        logger.info(f"[Sentiment] Summarizing {len(raw.text_blocks)} {source.display_name} blocks for {subject.name}")
        summary = self.summarizer.summarize(source, subject.name, raw)
        run = build_run(subject, source, run_at, raw, summary)
        return self.store.insert_run(run)

    def _source_outcome(self, source: Source, subject: Subject, config: SentimentConfig,
                        run_at: datetime) -> Tuple[Optional[SentimentRun], Optional[str]]:
        if not config.is_enabled(source.value):
            return None, f"{source.display_name} collection disabled by config"
        try:
            return self._run_source(source, subject, config, run_at), None
        except PinpointError as e:
            logger.warning(f"[Sentiment] {source.display_name} failed for {subject.name} "
                           f"(continuing with other sources): {e}")
            return None, str(e)
        except Exception as e:
            logger.exception(f"[Sentiment] Unexpected {source.display_name} failure for {subject.name} "
                             f"(continuing with other sources): {e}")
            return None, f"{type(e).__name__}: {e}"

    def run(self, subject: Subject, config: Optional[SentimentConfig] = None) -> SentimentJobResult:
        """Run the full pipeline for one subject and report per-source outcomes."""
        config = config or load_sentiment_config()
        run_at = datetime.now(timezone.utc)
        result = SentimentJobResult(subject_id=subject.id, subject_name=subject.name)
        logger.info(f"[Sentiment] Starting sentiment analysis for {subject.name}")

        sources = list(Source)
        if config.parallel_sources:
            with ThreadPoolExecutor(max_workers=len(sources)) as executor:
                futures = [executor.submit(self._source_outcome, s, subject, config, run_at) for s in sources]
                # Join point: every source reaches a terminal state before aggregation
                outcomes = [future.result() for future in futures]
        else:
            outcomes = [self._source_outcome(s, subject, config, run_at) for s in sources]

        stored_runs: Dict[Source, SentimentRun] = {}
        for source, (run, error) in zip(sources, outcomes):
            if run is not None:
                stored_runs[source] = run
                result.sources[source.value] = SourceResult(success=True, score=run.score)
            else:
                result.sources[source.value] = SourceResult(success=False, error=error)
                result.errors.append(f"{source.display_name}: {error}")

        aggregate = compute_sentiment_aggregate(stored_runs, subject.id, run_at=run_at, weights=config.weights)
        try:
            stored = self.store.insert_aggregate(aggregate)
        except PinpointError as e:
            logger.error(f"[Sentiment] Failed to store aggregate for {subject.name}: {e}")
            result.errors.append(f"Store aggregate: {e}")
            return result

        result.aggregate = {"final_score": stored.final_score, "final_label": stored.final_label}
        result.success = True
        logger.info(f"[Sentiment] {subject.name}: {stored.final_score}/10 ({stored.final_label}) "
                    f"from {len(stored_runs)} source(s)")
        return result

    def submit_manual_forum_answer(self, subject: Subject, answer_text: str,
                                   config: Optional[SentimentConfig] = None) -> SentimentJobResult:
        """Summarize a pasted Reddit Answers reply, store it and refresh the aggregate."""
        answer = (answer_text or "").strip()
        if len(answer) < CollectorConstants.MIN_ANSWER_CHARS:
            raise CollectionError(
                f"Answer text must be at least {CollectorConstants.MIN_ANSWER_CHARS} characters"
            )

        config = config or load_sentiment_config()
        run_at = datetime.now(timezone.utc)
        window_start, window_end = collection_window(config.lookback_months, now=run_at)
        question = MANUAL_QUESTION.format(name=subject.name)
        raw = RawSourceData(
            source=Source.REDDIT,
            subject_id=subject.id,
            text_blocks=[format_answer_block(question, answer)],
            metadata={
                "total_items": 1,
                "window_start": window_start,
                "window_end": window_end,
                "collection_method": "manual",
            },
        )

        summary = self.summarizer.summarize(Source.REDDIT, subject.name, raw)
        run = self.store.insert_run(build_run(subject, Source.REDDIT, run_at, raw, summary))

        latest = self.store.latest_runs_per_source(subject.id)
        aggregate = self.store.insert_aggregate(
            compute_sentiment_aggregate(latest, subject.id, run_at=run_at, weights=config.weights)
        )
        logger.info(f"[Sentiment] Manual Reddit answer stored for {subject.name}: {run.score}/10, "
                    f"aggregate {aggregate.final_score}/10")

        return SentimentJobResult(
            subject_id=subject.id,
            subject_name=subject.name,
            success=True,
            sources={Source.REDDIT.value: SourceResult(success=True, score=run.score)},
            aggregate={"final_score": aggregate.final_score, "final_label": aggregate.final_label},
        )

    def get_subject_sentiment(self, subject_id: str,
                              history_limit: int = DEFAULT_HISTORY_LIMIT) -> Optional[SubjectSentimentView]:
        """Latest aggregate, latest run per source and score history, or None if never run."""
        aggregate = self.store.latest_aggregate(subject_id)
        if aggregate is None:
            return None
        runs = self.store.latest_runs_per_source(subject_id)
        history = [
            {"run_at": agg.run_at.isoformat(), "final_score": agg.final_score}
            for agg in self.store.history(subject_id, limit=history_limit)
        ]
        return SubjectSentimentView(
            aggregate=aggregate,
            runs={source.value: run for source, run in runs.items()},
            history=history,
        )


def run_sentiment_analysis(subject: Subject, config: Optional[SentimentConfig] = None,
                           job: Optional[SentimentJob] = None) -> SentimentJobResult:
    """Run the sentiment pipeline for one subject with the default wiring."""
    return (job or SentimentJob()).run(subject, config)
