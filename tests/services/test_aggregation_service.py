"""Aggregation engine tests.

The engine is exercised directly against fresh in-memory repos; every
call passes an explicit ``now`` so the day bucket is deterministic.
"""

from __future__ import annotations

import asyncio
import datetime

import pytest

from tests.conftest import NOW, seed_course
from watchtime.core.errors import InvalidInput, NotFound
from watchtime.repos.activity_repo import InMemoryActivityRepo
from watchtime.repos.catalog_repo import InMemoryCatalogRepo
from watchtime.services.aggregation_service import (
    local_date,
    record_chunk,
    record_snapshot,
)

USER = "u1"


# --- record_chunk ---


def test_chunk_appends_event_and_bumps_day_and_course(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    asyncio.run(record_chunk(repo, catalog, USER, video.id, 30, now=NOW))

    daily = asyncio.run(repo.get_daily(USER, NOW.date()))
    assert daily is not None
    assert daily.total_seconds == 30

    agg = asyncio.run(repo.get_course_aggregate(USER, course.id))
    assert agg is not None
    assert agg.total_watched_seconds == 30
    assert agg.completed_videos == 0

    events = asyncio.run(repo.list_events(USER, 0, 2**40))
    assert len(events) == 1
    assert events[0].video_id == video.id
    assert events[0].watched_seconds == 30
    assert events[0].occurred_at == int(NOW.timestamp())


def test_chunks_on_same_day_are_additive(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (v1, v2) = seed_course(catalog, owner=USER)

    async def run() -> None:
        await record_chunk(repo, catalog, USER, v1.id, 30, now=NOW)
        await record_chunk(
            repo, catalog, USER, v2.id, 45, now=NOW + datetime.timedelta(hours=2)
        )

    asyncio.run(run())

    daily = asyncio.run(repo.get_daily(USER, NOW.date()))
    assert daily is not None
    assert daily.total_seconds == 75
    agg = asyncio.run(repo.get_course_aggregate(USER, course.id))
    assert agg is not None
    assert agg.total_watched_seconds == 75


def test_chunks_on_different_days_land_in_separate_rows(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    _, (video, _) = seed_course(catalog, owner=USER)
    tomorrow = NOW + datetime.timedelta(days=1)

    async def run() -> None:
        await record_chunk(repo, catalog, USER, video.id, 10, now=NOW)
        await record_chunk(repo, catalog, USER, video.id, 20, now=tomorrow)

    asyncio.run(run())

    assert asyncio.run(repo.get_daily(USER, NOW.date())).total_seconds == 10
    assert asyncio.run(repo.get_daily(USER, tomorrow.date())).total_seconds == 20


def test_zero_second_chunk_still_logs_event(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    _, (video, _) = seed_course(catalog, owner=USER)

    asyncio.run(record_chunk(repo, catalog, USER, video.id, 0, now=NOW))

    assert len(asyncio.run(repo.list_events(USER, 0, 2**40))) == 1
    assert asyncio.run(repo.get_daily(USER, NOW.date())).total_seconds == 0


def test_chunk_unknown_video_raises_not_found_and_writes_nothing(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    with pytest.raises(NotFound):
        asyncio.run(record_chunk(repo, catalog, USER, "no-such-video", 30, now=NOW))

    assert asyncio.run(repo.list_events(USER, 0, 2**40)) == []
    assert asyncio.run(repo.get_daily(USER, NOW.date())) is None


def test_chunk_missing_amount_raises_invalid_input(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    _, (video, _) = seed_course(catalog, owner=USER)
    with pytest.raises(InvalidInput):
        asyncio.run(record_chunk(repo, catalog, USER, video.id, None, now=NOW))  # type: ignore[arg-type]


def test_naive_now_is_rejected(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    _, (video, _) = seed_course(catalog, owner=USER)
    with pytest.raises(ValueError, match="timezone-aware"):
        asyncio.run(
            record_chunk(
                repo, catalog, USER, video.id, 5, now=datetime.datetime(2026, 3, 14)
            )
        )


def test_concurrent_chunks_lose_no_updates(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    async def run() -> None:
        await asyncio.gather(
            record_chunk(repo, catalog, USER, video.id, 10, now=NOW),
            record_chunk(repo, catalog, USER, video.id, 10, now=NOW),
        )

    asyncio.run(run())

    assert asyncio.run(repo.get_daily(USER, NOW.date())).total_seconds == 20
    agg = asyncio.run(repo.get_course_aggregate(USER, course.id))
    assert agg.total_watched_seconds == 20
    assert len(asyncio.run(repo.list_events(USER, 0, 2**40))) == 2


def test_local_date_uses_activity_timezone() -> None:
    # UTC under test: 23:30 on the 14th stays on the 14th
    late = datetime.datetime(2026, 3, 14, 23, 30, tzinfo=datetime.UTC)
    assert local_date(late) == datetime.date(2026, 3, 14)


# --- record_snapshot ---


def test_snapshot_creates_progress(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    _, (video, _) = seed_course(catalog, owner=USER)

    asyncio.run(record_snapshot(repo, catalog, USER, video.id, 120, False, now=NOW))

    p = asyncio.run(repo.get_video_progress(USER, video.id))
    assert p is not None
    assert p.watched_seconds == 120
    assert p.completed is False
    assert p.last_watched_at == int(NOW.timestamp())


def test_snapshot_overwrites_rather_than_adds(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    _, (video, _) = seed_course(catalog, owner=USER)

    async def run() -> None:
        await record_snapshot(repo, catalog, USER, video.id, 300, False, now=NOW)
        await record_snapshot(repo, catalog, USER, video.id, 100, False, now=NOW)

    asyncio.run(run())

    assert asyncio.run(repo.get_video_progress(USER, video.id)).watched_seconds == 100


def test_snapshot_does_not_touch_day_or_course_seconds(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    async def run() -> None:
        await record_chunk(repo, catalog, USER, video.id, 30, now=NOW)
        await record_snapshot(repo, catalog, USER, video.id, 999, False, now=NOW)

    asyncio.run(run())

    assert asyncio.run(repo.get_daily(USER, NOW.date())).total_seconds == 30
    agg = asyncio.run(repo.get_course_aggregate(USER, course.id))
    assert agg.total_watched_seconds == 30


def test_completion_transition_increments_once(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    async def run() -> list[bool]:
        return [
            await record_snapshot(repo, catalog, USER, video.id, 590, True, now=NOW),
            await record_snapshot(repo, catalog, USER, video.id, 600, True, now=NOW),
        ]

    assert asyncio.run(run()) == [True, False]

    agg = asyncio.run(repo.get_course_aggregate(USER, course.id))
    assert agg is not None
    assert agg.completed_videos == 1


def test_completion_creates_course_aggregate_on_demand(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    asyncio.run(record_snapshot(repo, catalog, USER, video.id, 600, True, now=NOW))

    agg = asyncio.run(repo.get_course_aggregate(USER, course.id))
    assert agg is not None
    assert agg.total_watched_seconds == 0
    assert agg.completed_videos == 1


def test_uncompleting_keeps_counter(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    async def run() -> None:
        await record_snapshot(repo, catalog, USER, video.id, 600, True, now=NOW)
        await record_snapshot(repo, catalog, USER, video.id, 10, False, now=NOW)

    asyncio.run(run())

    p = asyncio.run(repo.get_video_progress(USER, video.id))
    assert p.completed is False
    agg = asyncio.run(repo.get_course_aggregate(USER, course.id))
    assert agg.completed_videos == 1


def test_recompleting_after_uncomplete_counts_again(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    async def run() -> None:
        await record_snapshot(repo, catalog, USER, video.id, 600, True, now=NOW)
        await record_snapshot(repo, catalog, USER, video.id, 10, False, now=NOW)
        await record_snapshot(repo, catalog, USER, video.id, 600, True, now=NOW)

    asyncio.run(run())

    agg = asyncio.run(repo.get_course_aggregate(USER, course.id))
    assert agg.completed_videos == 2


def test_concurrent_completions_count_once(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    async def run() -> list[bool]:
        return list(
            await asyncio.gather(
                record_snapshot(repo, catalog, USER, video.id, 600, True, now=NOW),
                record_snapshot(repo, catalog, USER, video.id, 600, True, now=NOW),
            )
        )

    assert sorted(asyncio.run(run())) == [False, True]
    agg = asyncio.run(repo.get_course_aggregate(USER, course.id))
    assert agg.completed_videos == 1


def test_snapshot_unknown_video_raises_not_found(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    with pytest.raises(NotFound):
        asyncio.run(record_snapshot(repo, catalog, USER, "missing", 10, True, now=NOW))
    assert asyncio.run(repo.get_video_progress(USER, "missing")) is None


def test_snapshot_missing_fields_raise_invalid_input(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    _, (video, _) = seed_course(catalog, owner=USER)
    with pytest.raises(InvalidInput):
        asyncio.run(
            record_snapshot(repo, catalog, USER, video.id, 10, None, now=NOW)  # type: ignore[arg-type]
        )


def test_users_are_isolated(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    async def run() -> None:
        await record_chunk(repo, catalog, USER, video.id, 30, now=NOW)
        await record_chunk(repo, catalog, "u2", video.id, 5, now=NOW)

    asyncio.run(run())

    assert asyncio.run(repo.get_daily(USER, NOW.date())).total_seconds == 30
    assert asyncio.run(repo.get_daily("u2", NOW.date())).total_seconds == 5
    assert asyncio.run(repo.get_course_aggregate("u2", course.id)).total_watched_seconds == 5


def test_incomplete_then_complete_increments_once(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    async def run() -> None:
        await record_snapshot(repo, catalog, USER, video.id, 100, False, now=NOW)
        await record_snapshot(repo, catalog, USER, video.id, 600, True, now=NOW)

    asyncio.run(run())

    assert asyncio.run(repo.get_course_aggregate(USER, course.id)).completed_videos == 1


def test_chunks_then_completion_end_to_end(
    repo: InMemoryActivityRepo, catalog: InMemoryCatalogRepo
) -> None:
    course, (video, _) = seed_course(catalog, owner=USER)

    async def run() -> None:
        await record_chunk(repo, catalog, USER, video.id, 30, now=NOW)
        await record_chunk(repo, catalog, USER, video.id, 45, now=NOW)
        await record_snapshot(repo, catalog, USER, video.id, 300, True, now=NOW)

    asyncio.run(run())

    assert asyncio.run(repo.get_daily(USER, NOW.date())).total_seconds == 75
    p = asyncio.run(repo.get_video_progress(USER, video.id))
    assert (p.watched_seconds, p.completed) == (300, True)
    agg = asyncio.run(repo.get_course_aggregate(USER, course.id))
    assert agg.completed_videos == 1
    assert agg.total_watched_seconds == 75
