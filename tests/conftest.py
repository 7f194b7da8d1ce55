from __future__ import annotations

import datetime
import sys
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from watchtime.api.dependencies import activity_repo, catalog_repo
from watchtime.main import app
from watchtime.models.catalog import Course, Video
from watchtime.repos.activity_repo import InMemoryActivityRepo
from watchtime.repos.catalog_repo import InMemoryCatalogRepo
from watchtime.services import token_service

# Ensure repo root is on sys.path so `import watchtime` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# 2026-03-14 10:00:00 UTC; ACTIVITY_TIMEZONE is UTC under test.
NOW = datetime.datetime(2026, 3, 14, 10, 0, 0, tzinfo=datetime.UTC)


@pytest.fixture(autouse=True)
def reset_activity_state() -> None:
    """Clear the in-memory stores between tests."""
    assert isinstance(activity_repo, InMemoryActivityRepo)
    assert isinstance(catalog_repo, InMemoryCatalogRepo)
    activity_repo.reset()
    catalog_repo.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def repo() -> InMemoryActivityRepo:
    return InMemoryActivityRepo()


@pytest.fixture
def catalog() -> InMemoryCatalogRepo:
    return InMemoryCatalogRepo()


def mint_token(username: str = "test-user", **claims: object) -> str:
    """Create a valid HS256 JWT for testing."""
    return token_service.create_access_token(sub=username, extra_claims=claims)


@pytest.fixture
def token() -> str:
    return mint_token()


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------


def seed_course(
    catalog: InMemoryCatalogRepo,
    *,
    owner: str = "test-user",
    title: str = "Python Basics",
    videos: int = 2,
    duration: int = 600,
) -> tuple[Course, list[Video]]:
    """Add a course with ``videos`` videos of ``duration`` seconds each."""
    course = Course(
        id=str(uuid.uuid4()),
        user_id=owner,
        title=title,
        total_duration_seconds=duration * videos,
    )
    catalog.add_course(course)
    added = []
    for position in range(videos):
        video = Video(
            id=str(uuid.uuid4()),
            course_id=course.id,
            external_video_id=f"yt-{position}",
            title=f"{title} #{position + 1}",
            duration_seconds=duration,
            position=position,
        )
        catalog.add_video(video)
        added.append(video)
    return course, added
