"""Error taxonomy for ranking, threading and the board store."""

from dataclasses import dataclass


class BoardError(Exception):
    """Base class for all board errors."""


class InvalidSortType(BoardError, ValueError):
    """Unrecognised sort key. Recovered by falling back to ``new``."""

    def __init__(self, value: object):
        super().__init__(f"Unknown sort type: {value!r}")
        self.value = value


class CycleDetected(BoardError):
    """Comment parent references form a loop."""

    def __init__(self, comment_ids: list[int]):
        self.comment_ids = sorted(comment_ids)
        super().__init__(
            f"Comment parent chain forms a cycle: {self.comment_ids}"
        )


class UnknownParent(BoardError, KeyError):
    """Reply targets a comment that is not part of the thread."""

    def __init__(self, parent_id: int):
        super().__init__(parent_id)
        self.parent_id = parent_id

    def __str__(self) -> str:
        return f"Comment {self.parent_id} is not in this thread"


class ReplyDepthExceeded(BoardError):
    """Reply targets a comment at or beyond the reply depth limit."""

    def __init__(self, parent_id: int, depth: int, max_depth: int):
        super().__init__(
            f"Comment {parent_id} at depth {depth} cannot be replied to "
            f"(max depth {max_depth})"
        )
        self.parent_id = parent_id
        self.depth = depth
        self.max_depth = max_depth


class NotFound(BoardError, LookupError):
    """A store record does not exist."""


class InvalidVote(BoardError, ValueError):
    """Vote type is neither up nor down."""


@dataclass(frozen=True)
class OrphanParent:
    """A comment promoted to root because its parent did not resolve."""

    comment_id: int
    parent_id: int
    reason: str = "missing"
