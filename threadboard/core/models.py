"""Board entities consumed by the ranking and threading core."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class SortType(str, Enum):
    """Orderings a feed or comment list can be ranked by."""

    HOT = "hot"
    NEW = "new"
    TOP = "top"


class VoteType(str, Enum):
    """Direction of a vote."""

    UP = "up"
    DOWN = "down"


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _Timestamped(BaseModel):
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: datetime) -> datetime:
        return as_utc(value)


class Community(_Timestamped):
    """A topic area that groups posts."""

    id: int
    name: str
    description: str = ""
    member_count: int = Field(default=1, ge=1)
    icon_url: str | None = None


class Post(_Timestamped):
    """A post inside a community."""

    id: int
    community_id: int
    title: str
    content: str = ""
    image_url: str | None = None
    author: str
    upvotes: int = Field(default=0, ge=0)
    downvotes: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)
    updated_at: datetime | None = None

    @property
    def score(self) -> int:
        return self.upvotes - self.downvotes


class Comment(_Timestamped):
    """
    A comment on a post.

    ``depth`` is whatever the store last recorded. Thread assembly
    recomputes it from ``parent_id`` and never trusts this value.
    """

    id: int
    post_id: int
    parent_id: int | None = None
    author: str
    content: str = ""
    upvotes: int = Field(default=0, ge=0)
    downvotes: int = Field(default=0, ge=0)
    depth: int = Field(default=0, ge=0)

    @property
    def score(self) -> int:
        return self.upvotes - self.downvotes
