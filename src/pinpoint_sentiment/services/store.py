"""Append-only persistence for sentiment runs and aggregates."""

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Iterable, List, Optional

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from ..core.config import settings
from ..core.errors import PersistenceError
from ..core.models import Source, SentimentRun, SentimentAggregate

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 12


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class SentimentStore:
    """Store interface. Records are only ever appended; nothing is updated or deleted."""

    def insert_run(self, run: SentimentRun) -> SentimentRun:
        raise NotImplementedError

    def insert_aggregate(self, aggregate: SentimentAggregate) -> SentimentAggregate:
        raise NotImplementedError

    def runs_newest_first(self, subject_id: str) -> Iterable[SentimentRun]:
        raise NotImplementedError

    def latest_aggregate(self, subject_id: str) -> Optional[SentimentAggregate]:
        raise NotImplementedError

    def history(self, subject_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[SentimentAggregate]:
        raise NotImplementedError

    def latest_runs_per_source(self, subject_id: str) -> Dict[Source, SentimentRun]:
        """Newest run for each source, taken from a newest-first scan."""
        latest: Dict[Source, SentimentRun] = {}
        for run in self.runs_newest_first(subject_id):
            latest.setdefault(run.source, run)
            if len(latest) == len(Source):
                break
        return latest


class InMemorySentimentStore(SentimentStore):
    """Thread-safe ordered log, for tests and dry runs."""

    def __init__(self):
        self._lock = threading.Lock()
        self._runs: List[SentimentRun] = []
        self._aggregates: List[SentimentAggregate] = []

    def insert_run(self, run: SentimentRun) -> SentimentRun:
        stored = replace(run, id=_new_id())
        with self._lock:
            self._runs.append(stored)
        return stored

    def insert_aggregate(self, aggregate: SentimentAggregate) -> SentimentAggregate:
        stored = replace(aggregate, id=_new_id())
        with self._lock:
            self._aggregates.append(stored)
        return stored

    @staticmethod
    def _newest_first(records, subject_id):
        # Stable sort keeps later inserts first among equal timestamps
        matching = [r for r in reversed(records) if r.subject_id == subject_id]
        return sorted(matching, key=lambda r: _utc(r.run_at), reverse=True)

    def runs_newest_first(self, subject_id: str) -> List[SentimentRun]:
        with self._lock:
            return self._newest_first(self._runs, subject_id)

    def latest_aggregate(self, subject_id: str) -> Optional[SentimentAggregate]:
        history = self.history(subject_id, limit=1)
        return history[0] if history else None

    def history(self, subject_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[SentimentAggregate]:
        with self._lock:
            return self._newest_first(self._aggregates, subject_id)[:limit]


class Base(DeclarativeBase):
    pass


class SentimentRunRecord(Base):
    __tablename__ = "sentiment_runs"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, default=_new_id)
    subject_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    run_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    raw_window_start: Mapped[str] = mapped_column(String(64), nullable=False)
    raw_window_end: Mapped[str] = mapped_column(String(64), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    label: Mapped[str] = mapped_column(String(32), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    top_positives: Mapped[List[str]] = mapped_column(JSON, default=list)
    top_negatives: Mapped[List[str]] = mapped_column(JSON, default=list)
    top_features: Mapped[List[str]] = mapped_column(JSON, default=list)
    subscores: Mapped[Dict[str, float]] = mapped_column(JSON, default=dict)
    data_window_start: Mapped[Optional[str]] = mapped_column(String(64))
    data_window_end: Mapped[Optional[str]] = mapped_column(String(64))
    source_post_count: Mapped[Optional[int]] = mapped_column(Integer)
    confidence: Mapped[Optional[float]] = mapped_column(Float)
    source_score: Mapped[Optional[float]] = mapped_column(Float)
    reconciled_score: Mapped[Optional[float]] = mapped_column(Float)
    reason_for_adjustment: Mapped[Optional[str]] = mapped_column(Text)
    scoring_schema_version: Mapped[Optional[str]] = mapped_column(String(64))
    model: Mapped[Optional[str]] = mapped_column(String(64))
    source_model: Mapped[Optional[str]] = mapped_column(String(64))

    def __repr__(self):
        return f"<SentimentRunRecord {self.subject_id}/{self.source} {self.score} @ {self.run_at}>"


class SentimentAggregateRecord(Base):
    __tablename__ = "sentiment_aggregate"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, default=_new_id)
    subject_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    run_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    final_score: Mapped[float] = mapped_column(Float, nullable=False)
    final_label: Mapped[str] = mapped_column(String(32), nullable=False)
    cross_platform_summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reddit_score: Mapped[Optional[float]] = mapped_column(Float)
    x_score: Mapped[Optional[float]] = mapped_column(Float)
    youtube_score: Mapped[Optional[float]] = mapped_column(Float)
    combined_top_positives: Mapped[List[str]] = mapped_column(JSON, default=list)
    combined_top_negatives: Mapped[List[str]] = mapped_column(JSON, default=list)
    combined_top_features: Mapped[List[str]] = mapped_column(JSON, default=list)
    rubric_version: Mapped[Optional[str]] = mapped_column(String(32))

    def __repr__(self):
        return f"<SentimentAggregateRecord {self.subject_id} {self.final_score} @ {self.run_at}>"


_RUN_FIELDS = [
    "subject_id", "raw_window_start", "raw_window_end", "score", "label", "summary",
    "top_positives", "top_negatives", "top_features", "subscores",
    "data_window_start", "data_window_end", "source_post_count", "confidence",
    "source_score", "reconciled_score", "reason_for_adjustment",
    "scoring_schema_version", "model", "source_model",
]

_AGGREGATE_FIELDS = [
    "subject_id", "final_score", "final_label", "cross_platform_summary",
    "reddit_score", "x_score", "youtube_score",
    "combined_top_positives", "combined_top_negatives", "combined_top_features",
    "rubric_version",
]


def _copy_fields(obj, names) -> Dict[str, Any]:
    return {name: getattr(obj, name) for name in names}


def _run_from_record(record: SentimentRunRecord) -> SentimentRun:
    return SentimentRun(
        source=Source(record.source),
        run_at=_utc(record.run_at),
        id=record.id,
        **_copy_fields(record, _RUN_FIELDS),
    )


def _aggregate_from_record(record: SentimentAggregateRecord) -> SentimentAggregate:
    return SentimentAggregate(run_at=_utc(record.run_at), id=record.id, **_copy_fields(record, _AGGREGATE_FIELDS))


class SQLSentimentStore(SentimentStore):
    """SQLAlchemy-backed store (SQLite by default, any SQLAlchemy URL works)."""

    def __init__(self, database_url: Optional[str] = None, create_tables: bool = True):
        self.database_url = database_url or settings.database_url
        engine_options: Dict[str, Any] = {}
        if self.database_url.startswith("sqlite"):
            # Sources are stored from worker threads
            engine_options["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.database_url or self.database_url == "sqlite://":
                engine_options["poolclass"] = StaticPool
        try:
            self.engine = create_engine(self.database_url, **engine_options)
            if create_tables:
                Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to initialize database: {e}") from e
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._write_lock = threading.Lock()
        logger.info(f"Sentiment store ready ({self.engine.url.render_as_string(hide_password=True)})")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Session with commit on success and rollback on failure; store errors become PersistenceError."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error: {e}")
            raise PersistenceError(str(e)) from e
        finally:
            session.close()

    def insert_run(self, run: SentimentRun) -> SentimentRun:
        record = SentimentRunRecord(
            id=_new_id(),
            source=run.source.value,
            run_at=_utc(run.run_at),
            **_copy_fields(run, _RUN_FIELDS),
        )
        with self._write_lock, self.get_session() as session:
            session.add(record)
        return replace(run, id=record.id)

    def insert_aggregate(self, aggregate: SentimentAggregate) -> SentimentAggregate:
        record = SentimentAggregateRecord(
            id=_new_id(),
            run_at=_utc(aggregate.run_at),
            **_copy_fields(aggregate, _AGGREGATE_FIELDS),
        )
        with self._write_lock, self.get_session() as session:
            session.add(record)
        return replace(aggregate, id=record.id)

    def runs_newest_first(self, subject_id: str) -> List[SentimentRun]:
        stmt = (
            select(SentimentRunRecord)
            .where(SentimentRunRecord.subject_id == subject_id)
            .order_by(SentimentRunRecord.run_at.desc(), SentimentRunRecord.seq.desc())
        )
        with self.get_session() as session:
            return [_run_from_record(record) for record in session.scalars(stmt)]

    def latest_aggregate(self, subject_id: str) -> Optional[SentimentAggregate]:
        history = self.history(subject_id, limit=1)
        return history[0] if history else None

    def history(self, subject_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> List[SentimentAggregate]:
        stmt = (
            select(SentimentAggregateRecord)
            .where(SentimentAggregateRecord.subject_id == subject_id)
            .order_by(SentimentAggregateRecord.run_at.desc(), SentimentAggregateRecord.seq.desc())
            .limit(limit)
        )
        with self.get_session() as session:
            return [_aggregate_from_record(record) for record in session.scalars(stmt)]
