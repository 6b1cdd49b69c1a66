import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from wordwise.application.progress_engine import ProgressEngine
from wordwise.consts import VERSION
from wordwise.domain.exceptions import (
    NotAuthenticated,
    PersistenceError,
    ValidationError,
    WordwiseError,
)
from wordwise.application.scheduling.thresholds import StateThresholdRow
from wordwise.domain.models import CardProgress, StateThreshold

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("wordwise.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"wordwise server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("wordwise server shutting down...")


app = FastAPI(
    title="wordwise",
    description="Spaced-repetition review API for vocabulary flashcards.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


@lru_cache(maxsize=1)
def get_engine() -> ProgressEngine:
    """One engine per process, built from the resolved configuration."""
    from wordwise.application.config import resolve_config
    from wordwise.application.factory import build_engine

    return build_engine(resolve_config())


EngineDep = Annotated[ProgressEngine, Depends(get_engine)]


def _http_error(e: WordwiseError) -> HTTPException:
    if isinstance(e, NotAuthenticated):
        return HTTPException(status_code=401, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, PersistenceError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class ReviewRequest(BaseModel):
    flashcard_id: str = Field(min_length=1)
    correct: bool
    response_time_ms: float | None = Field(default=None, ge=0)


class ProgressResponse(BaseModel):
    user_id: str
    flashcard_id: str
    state: str
    mastery_level: int
    correct_streak: int
    review_count: int
    score: float
    last_reviewed: datetime | None
    next_review: datetime | None
    response_time_ms: float | None

    @classmethod
    def from_domain(cls, record: CardProgress) -> "ProgressResponse":
        return cls(
            user_id=record.user_id,
            flashcard_id=record.flashcard_id,
            state=record.state.value,
            mastery_level=record.mastery_level,
            correct_streak=record.correct_streak,
            review_count=record.review_count,
            score=record.score,
            last_reviewed=record.last_reviewed,
            next_review=record.next_review,
            response_time_ms=record.response_time_ms,
        )


class QueueResponse(BaseModel):
    user_id: str
    card_ids: list[str]


class StatsResponse(BaseModel):
    total_words: int
    words_mastered: int
    best_streak: int
    average_score: float
    total_reviews: int
    due_count: int
    state_counts: dict[str, int]


class ThresholdResponse(BaseModel):
    state: str
    min_mastery_level: int
    min_correct_streak: int
    min_review_count: int
    score_weight: float
    next_review_delay: str | None

    @classmethod
    def from_domain(cls, threshold: StateThreshold) -> "ThresholdResponse":
        return cls(
            state=threshold.state.value,
            min_mastery_level=threshold.min_mastery_level,
            min_correct_streak=threshold.min_correct_streak,
            min_review_count=threshold.min_review_count,
            score_weight=threshold.score_weight,
            next_review_delay=threshold.next_review_delay,
        )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.post("/reviews", response_model=ProgressResponse)
async def submit_review(
    req: ReviewRequest,
    engine: EngineDep,
    x_user_id: Annotated[str | None, Header()] = None,
):
    """
    Apply one review outcome for the calling user (``X-User-Id`` header).
    """
    try:
        record = await engine.apply_review(
            x_user_id, req.flashcard_id, req.correct, req.response_time_ms
        )
    except WordwiseError as e:
        logger.error(f"Review failed: {e}")
        raise _http_error(e) from e
    return ProgressResponse.from_domain(record)


@app.get("/users/{user_id}/queue", response_model=QueueResponse)
async def get_queue(user_id: str, engine: EngineDep, limit: int | None = None):
    """Smart-practice queue: due cards, then unseen cards, then scheduled cards."""
    try:
        card_ids = await engine.build_queue(user_id)
    except WordwiseError as e:
        logger.error(f"Queue build failed: {e}")
        raise _http_error(e) from e
    if limit is not None:
        card_ids = card_ids[:limit]
    return QueueResponse(user_id=user_id, card_ids=card_ids)


@app.get("/users/{user_id}/stats", response_model=StatsResponse)
async def get_stats(user_id: str, engine: EngineDep):
    try:
        stats = await engine.get_stats(user_id)
    except WordwiseError as e:
        raise _http_error(e) from e
    return StatsResponse(
        total_words=stats.total_words,
        words_mastered=stats.words_mastered,
        best_streak=stats.best_streak,
        average_score=stats.average_score,
        total_reviews=stats.total_reviews,
        due_count=stats.due_count,
        state_counts={state.value: n for state, n in stats.state_counts.items()},
    )


@app.get("/users/{user_id}/progress", response_model=list[ProgressResponse])
async def list_progress(user_id: str, engine: EngineDep, state: str | None = None):
    """Reviewed cards grouped by mastery state; ``state`` narrows to one group."""
    try:
        records = await engine.list_progress(user_id, state)
    except WordwiseError as e:
        raise _http_error(e) from e
    return [ProgressResponse.from_domain(r) for r in records]


@app.delete("/users/{user_id}/progress")
async def reset_progress(user_id: str, engine: EngineDep):
    """Administrative wipe of all progress for a user."""
    try:
        await engine.reset_progress(user_id)
    except WordwiseError as e:
        logger.error(f"Reset failed: {e}")
        raise _http_error(e) from e
    return {"ok": True}


@app.get("/thresholds", response_model=list[ThresholdResponse])
async def get_thresholds(engine: EngineDep):
    rows = await engine.current_thresholds()
    return [ThresholdResponse.from_domain(t) for t in rows]


@app.put("/thresholds", response_model=list[ThresholdResponse])
async def put_thresholds(rows: list[StateThresholdRow], engine: EngineDep):
    """
    Replace the whole threshold table. The next review uses the new rows.
    """
    try:
        table = await engine.replace_thresholds([row.to_domain() for row in rows])
    except WordwiseError as e:
        logger.error(f"Threshold update failed: {e}")
        raise _http_error(e) from e
    return [ThresholdResponse.from_domain(t) for t in table]
