from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from wordwise.application.progress_engine import ProgressEngine
from wordwise.application.scheduling.thresholds import DEFAULT_THRESHOLDS
from wordwise.domain.exceptions import ConfigurationError, TransientStoreError
from wordwise.domain.models import CardProgress, MasteryState, StateThreshold
from wordwise.infrastructure.adapters.sql_store import CardProgressRow, SqlStore

REVIEWED_AT = datetime(2026, 3, 2, 9, 30, 15, 123456, tzinfo=timezone.utc)


@pytest.fixture
def sql_store(tmp_path):
    store = SqlStore(database_url=f"sqlite:///{tmp_path / 'wordwise.db'}")
    store.create_schema()
    return store


def sample(**kwargs) -> CardProgress:
    fields = dict(
        user_id="alice",
        flashcard_id="apple",
        state=MasteryState.KNOWN,
        mastery_level=2,
        correct_streak=2,
        review_count=4,
        score=3.47,
        last_reviewed=REVIEWED_AT,
        next_review=REVIEWED_AT + timedelta(days=1),
        response_time_ms=1325.5,
    )
    fields.update(kwargs)
    return CardProgress(**fields)


@pytest.mark.asyncio
async def test_round_trip(sql_store):
    written = sample()

    returned = await sql_store.upsert_progress(written)
    loaded = await sql_store.get_progress("alice", "apple")

    assert returned == written
    assert loaded == written


@pytest.mark.asyncio
async def test_round_trip_of_unreviewed_record(sql_store):
    written = CardProgress.initial("alice", "apple")

    await sql_store.upsert_progress(written)

    assert await sql_store.get_progress("alice", "apple") == written


@pytest.mark.asyncio
async def test_upsert_replaces_by_key(sql_store):
    await sql_store.upsert_progress(sample())
    await sql_store.upsert_progress(sample(review_count=5, correct_streak=3))

    records = await sql_store.get_all_progress_for_user("alice")

    assert len(records) == 1
    assert records[0].review_count == 5


@pytest.mark.asyncio
async def test_missing_progress_is_none(sql_store):
    assert await sql_store.get_progress("alice", "nothing") is None


@pytest.mark.asyncio
async def test_delete_all_progress_for_user(sql_store):
    await sql_store.upsert_progress(sample())
    await sql_store.upsert_progress(sample(flashcard_id="banana"))
    await sql_store.upsert_progress(sample(user_id="bob"))

    await sql_store.delete_all_progress_for_user("alice")

    assert await sql_store.get_all_progress_for_user("alice") == []
    assert len(await sql_store.get_all_progress_for_user("bob")) == 1


@pytest.mark.asyncio
async def test_legacy_state_name_is_read_as_unknown(sql_store):
    with Session(sql_store.engine) as session, session.begin():
        session.add(CardProgressRow(user_id="alice", flashcard_id="old", state="new"))

    record = await sql_store.get_progress("alice", "old")

    assert record.state == MasteryState.UNKNOWN


@pytest.mark.asyncio
async def test_catalog_keeps_insertion_order(sql_store):
    assert sql_store.add_flashcards(["pear", "apple", "fig"]) == 3
    assert sql_store.add_flashcards(["apple", "kiwi"]) == 1

    assert await sql_store.get_all_card_ids() == ["pear", "apple", "fig", "kiwi"]


@pytest.mark.asyncio
async def test_thresholds_are_seeded_once(sql_store):
    sql_store.create_schema()

    assert await sql_store.get_state_thresholds() == DEFAULT_THRESHOLDS


@pytest.mark.asyncio
async def test_replace_thresholds(sql_store):
    await sql_store.replace_state_thresholds(
        [StateThreshold(MasteryState.LEARNING, min_mastery_level=1, next_review_delay="6 hours")]
    )

    table = await sql_store.get_state_thresholds()

    assert [t.state for t in table] == [MasteryState.LEARNING]
    assert table[0].next_review_delay == "6 hours"


@pytest.mark.asyncio
async def test_cleared_thresholds_stay_cleared_after_restart(sql_store):
    await sql_store.replace_state_thresholds([])

    restarted = SqlStore(engine=sql_store.engine)
    restarted.create_schema()

    assert await restarted.get_state_thresholds() == []


@pytest.mark.asyncio
async def test_unreachable_database(tmp_path):
    store = SqlStore(database_url=f"sqlite:///{tmp_path / 'missing' / 'wordwise.db'}")

    with pytest.raises(TransientStoreError):
        await store.get_progress("alice", "apple")
    with pytest.raises(ConfigurationError):
        await store.get_state_thresholds()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_engine_against_sqlite(sql_store):
    sql_store.add_flashcards(["apple", "banana"])
    clock_time = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
    engine = ProgressEngine(sql_store, sql_store, sql_store, clock=lambda: clock_time)

    first = await engine.apply_review("alice", "apple", True, 2000)
    second = await engine.apply_review("alice", "apple", True, 1000)

    assert first.score == 1.8
    assert second.review_count == 2
    assert second.state == MasteryState.KNOWN
    assert await sql_store.get_progress("alice", "apple") == second
    assert await engine.build_queue("alice", now=clock_time) == ["banana", "apple"]
