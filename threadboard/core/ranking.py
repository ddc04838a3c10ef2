"""Deterministic ranking algorithms for feeds and comment lists."""

from datetime import datetime
from typing import Any, Sequence, TypeVar

from .errors import InvalidSortType
from .models import SortType, as_utc

T = TypeVar("T")

SECONDS_PER_HOUR = 3600.0


def resolve_sort_type(value: Any) -> SortType:
    """Map a sort key onto a SortType, falling back to ``new``."""
    try:
        return _parse_sort_type(value)
    except InvalidSortType:
        return SortType.NEW


def _parse_sort_type(value: Any) -> SortType:
    if isinstance(value, SortType):
        return value
    if isinstance(value, str):
        try:
            return SortType(value.strip().lower())
        except ValueError:
            pass
    raise InvalidSortType(value)


def score(item: Any) -> int:
    """Vote differential of a post or comment."""
    return item.upvotes - item.downvotes


def hours_since(created_at: datetime, now: datetime) -> float:
    """Age in fractional hours."""
    return (as_utc(now) - as_utc(created_at)).total_seconds() / SECONDS_PER_HOUR


def hot_score(item: Any, now: datetime) -> float:
    """
    Time-decayed vote score.

    Score = (upvotes - downvotes) / (hours_since_created + 1)

    Items stamped after ``now`` count as zero hours old, so the
    denominator is always at least one.

    A negative score shrinks toward zero as the item ages, so heavily
    downvoted items climb slowly over time.
    """
    return score(item) / (max(hours_since(item.created_at, now), 0.0) + 1)


def rank_new(items: Sequence[T]) -> list[T]:
    """Rank by newest first (created_at descending)."""
    return sorted(items, key=lambda i: as_utc(i.created_at), reverse=True)


def rank_top(items: Sequence[T]) -> list[T]:
    """Rank by vote differential descending."""
    return sorted(items, key=score, reverse=True)


def rank_hot(items: Sequence[T], now: datetime) -> list[T]:
    """Rank by hot score descending."""
    return sorted(items, key=lambda i: hot_score(i, now), reverse=True)


def compute_score(item: Any, sort_type: Any, now: datetime) -> float:
    """Compute the value a single item is ranked by."""
    sort_type = resolve_sort_type(sort_type)
    if sort_type == SortType.HOT:
        return hot_score(item, now)
    elif sort_type == SortType.TOP:
        return float(score(item))
    return as_utc(item.created_at).timestamp()


def rank(items: Sequence[T], sort_type: Any, now: datetime) -> list[T]:
    """
    Rank items using the given sort type.

    Always returns a new list. Ties keep their input order. Unknown sort
    types rank as ``new``.
    """
    snapshot = list(items)
    sort_type = resolve_sort_type(sort_type)
    if sort_type == SortType.HOT:
        return rank_hot(snapshot, now)
    elif sort_type == SortType.TOP:
        return rank_top(snapshot)
    return rank_new(snapshot)


RANKING_VERSION = "v1.0"
