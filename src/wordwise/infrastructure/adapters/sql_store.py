"""
SQL store: Infrastructure adapter for a relational database via SQLAlchemy.

Implements ProgressRepository, CardCatalog and ThresholdRepository over
three tables: card_progress, flashcards and state_thresholds.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    DateTime,
    Float,
    Integer,
    Numeric,
    String,
    create_engine,
    delete,
    inspect,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from wordwise.application.scheduling.thresholds import DEFAULT_THRESHOLDS, parse_threshold_rows
from wordwise.domain.exceptions import ConfigurationError, TransientStoreError
from wordwise.domain.models import CardProgress, MasteryState, StateThreshold
from wordwise.domain.ports import CardCatalog, ProgressRepository, ThresholdRepository

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class CardProgressRow(Base):
    __tablename__ = "card_progress"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    flashcard_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    state: Mapped[str] = mapped_column(String(16), default=MasteryState.UNKNOWN.value)
    mastery_level: Mapped[int] = mapped_column(Integer, default=0)
    correct_streak: Mapped[int] = mapped_column(Integer, default=0)
    review_count: Mapped[int] = mapped_column(Integer, default=0)
    score: Mapped[float] = mapped_column(Numeric(6, 2, asdecimal=False), default=0)
    last_reviewed: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_review: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    response_time_ms: Mapped[float | None] = mapped_column(Float, nullable=True)


class FlashcardRow(Base):
    __tablename__ = "flashcards"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[str] = mapped_column(String(64), unique=True)


class StateThresholdTableRow(Base):
    __tablename__ = "state_thresholds"

    state: Mapped[str] = mapped_column(String(16), primary_key=True)
    min_mastery_level: Mapped[int] = mapped_column(Integer, default=0)
    min_correct_streak: Mapped[int] = mapped_column(Integer, default=0)
    min_review_count: Mapped[int] = mapped_column(Integer, default=0)
    score_weight: Mapped[float] = mapped_column(Float, default=0.0)
    next_review_delay: Mapped[str | None] = mapped_column(String(32), nullable=True)


class SqlStore(ProgressRepository, CardCatalog, ThresholdRepository):
    """
    Relational persistence for progress, the card catalog and thresholds.

    Lost connections and lock timeouts surface as TransientStoreError so the
    engine's retry policy can handle them.
    """

    def __init__(self, database_url: str | None = None, engine: Engine | None = None):
        if engine is None:
            if database_url is None:
                raise ValueError("SqlStore needs a database_url or an engine")
            engine = create_engine(database_url)
        self.engine = engine

    def create_schema(self, seed_thresholds: bool = True) -> None:
        """
        Create missing tables.

        The default threshold table is seeded only when the thresholds table
        itself is created here. A table an administrator emptied later stays
        empty, and reviews then follow the fallback ladder.
        """
        table_name = StateThresholdTableRow.__tablename__
        is_new = not inspect(self.engine).has_table(table_name)
        Base.metadata.create_all(self.engine)
        if not (seed_thresholds and is_new):
            return
        with Session(self.engine) as session, session.begin():
            session.add_all(_threshold_to_row(t) for t in DEFAULT_THRESHOLDS)
        logger.info("Seeded default state thresholds")

    # ---------- Progress ----------

    async def get_progress(self, user_id: str, flashcard_id: str) -> CardProgress | None:
        with _transient_errors("get_progress"), Session(self.engine) as session:
            row = session.get(CardProgressRow, (user_id, flashcard_id))
            return _row_to_progress(row) if row else None

    async def upsert_progress(self, record: CardProgress) -> CardProgress:
        with _transient_errors("upsert_progress"), Session(self.engine) as session:
            with session.begin():
                row = session.merge(_progress_to_row(record))
            return _row_to_progress(row)

    async def get_all_progress_for_user(self, user_id: str) -> list[CardProgress]:
        with _transient_errors("get_all_progress_for_user"), Session(self.engine) as session:
            rows = session.scalars(
                select(CardProgressRow)
                .where(CardProgressRow.user_id == user_id)
                .order_by(CardProgressRow.flashcard_id)
            )
            return [_row_to_progress(r) for r in rows]

    async def delete_all_progress_for_user(self, user_id: str) -> None:
        with _transient_errors("delete_all_progress_for_user"), Session(self.engine) as session:
            with session.begin():
                result = session.execute(
                    delete(CardProgressRow).where(CardProgressRow.user_id == user_id)
                )
            logger.debug(f"Deleted {result.rowcount} progress records for user={user_id}")

    # ---------- Catalog ----------

    async def get_all_card_ids(self) -> list[str]:
        with _transient_errors("get_all_card_ids"), Session(self.engine) as session:
            return list(session.scalars(select(FlashcardRow.card_id).order_by(FlashcardRow.seq)))

    def add_flashcards(self, card_ids: Iterable[str]) -> int:
        """Append unknown card IDs to the catalog. Returns how many were new."""
        with Session(self.engine) as session, session.begin():
            existing = set(session.scalars(select(FlashcardRow.card_id)))
            added = 0
            for card_id in card_ids:
                if card_id in existing:
                    continue
                session.add(FlashcardRow(card_id=card_id))
                existing.add(card_id)
                added += 1
        return added

    # ---------- Thresholds ----------

    async def get_state_thresholds(self) -> list[StateThreshold]:
        try:
            with Session(self.engine) as session:
                rows = session.scalars(select(StateThresholdTableRow)).all()
                raw = [_row_to_mapping(r) for r in rows]
        except SQLAlchemyError as e:
            raise ConfigurationError(f"Cannot read state thresholds: {e}") from e
        return parse_threshold_rows(raw)

    async def replace_state_thresholds(self, thresholds: Sequence[StateThreshold]) -> None:
        """Swap the whole threshold table in one transaction."""
        with _transient_errors("replace_state_thresholds"), Session(self.engine) as session:
            with session.begin():
                session.execute(delete(StateThresholdTableRow))
                session.add_all(_threshold_to_row(t) for t in thresholds)


@contextmanager
def _transient_errors(operation: str) -> Iterator[None]:
    """Translate connection-level SQLAlchemy failures into TransientStoreError."""
    try:
        yield
    except (OperationalError, PoolTimeoutError) as e:
        raise TransientStoreError(f"{operation}: {e}") from e


def _naive_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(tzinfo=None)


def _aware_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def _progress_to_row(record: CardProgress) -> CardProgressRow:
    return CardProgressRow(
        user_id=record.user_id,
        flashcard_id=record.flashcard_id,
        state=record.state.value,
        mastery_level=record.mastery_level,
        correct_streak=record.correct_streak,
        review_count=record.review_count,
        score=record.score,
        last_reviewed=_naive_utc(record.last_reviewed),
        next_review=_naive_utc(record.next_review),
        response_time_ms=record.response_time_ms,
    )


def _row_to_progress(row: CardProgressRow) -> CardProgress:
    return CardProgress(
        user_id=row.user_id,
        flashcard_id=row.flashcard_id,
        state=MasteryState.parse(row.state),
        mastery_level=row.mastery_level,
        correct_streak=row.correct_streak,
        review_count=row.review_count,
        score=float(row.score),
        last_reviewed=_aware_utc(row.last_reviewed),
        next_review=_aware_utc(row.next_review),
        response_time_ms=row.response_time_ms,
    )


def _threshold_to_row(threshold: StateThreshold) -> StateThresholdTableRow:
    return StateThresholdTableRow(
        state=threshold.state.value,
        min_mastery_level=threshold.min_mastery_level,
        min_correct_streak=threshold.min_correct_streak,
        min_review_count=threshold.min_review_count,
        score_weight=threshold.score_weight,
        next_review_delay=threshold.next_review_delay,
    )


def _row_to_mapping(row: StateThresholdTableRow) -> dict[str, Any]:
    return {
        "state": row.state,
        "min_mastery_level": row.min_mastery_level,
        "min_correct_streak": row.min_correct_streak,
        "min_review_count": row.min_review_count,
        "score_weight": row.score_weight,
        "next_review_delay": row.next_review_delay,
    }
