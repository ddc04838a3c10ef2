"""Pytest fixtures for tests."""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from threadboard.core.db import init_db
from threadboard.core.models import Comment, Post

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_conn():
    """Create a temporary database for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    conn = init_db(db_path)

    yield conn

    conn.close()
    db_path.unlink(missing_ok=True)
    # Also remove WAL and SHM files
    Path(str(db_path) + "-wal").unlink(missing_ok=True)
    Path(str(db_path) + "-shm").unlink(missing_ok=True)


@pytest.fixture
def now() -> datetime:
    """Fixed clock."""
    return NOW


def make_post(
    id: int,
    upvotes: int = 0,
    downvotes: int = 0,
    hours_ago: float = 0,
    community_id: int = 1,
) -> Post:
    return Post(
        id=id,
        community_id=community_id,
        title=f"Post {id}",
        author="tester",
        upvotes=upvotes,
        downvotes=downvotes,
        created_at=NOW - timedelta(hours=hours_ago),
    )


def make_comment(
    id: int,
    parent_id: int | None = None,
    minutes: int | None = None,
    post_id: int = 1,
    depth: int = 0,
) -> Comment:
    """Comment created ``minutes`` after NOW (defaults to its id)."""
    return Comment(
        id=id,
        post_id=post_id,
        parent_id=parent_id,
        author=f"user{id}",
        content=f"Comment {id}",
        created_at=NOW + timedelta(minutes=id if minutes is None else minutes),
        depth=depth,
    )
