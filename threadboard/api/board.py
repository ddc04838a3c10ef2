"""API-shaped in-process functions for the board."""

import sqlite3
from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from pydantic import BaseModel, Field

from threadboard.config import get_settings
from threadboard.core import store
from threadboard.core.errors import (
    CycleDetected,
    ReplyDepthExceeded,
    UnknownParent,
)
from threadboard.core.models import Comment, Post, SortType, VoteType, utc_now
from threadboard.core.ranking import (
    RANKING_VERSION,
    compute_score,
    rank,
    resolve_sort_type,
)
from threadboard.core.threads import (
    Forest,
    ThreadNode,
    build_forest,
    flat_forest,
    insert_reply,
)


class FeedItem(BaseModel):
    """A single ranked post."""

    post: Post
    position: int
    score: float


class Feed(BaseModel):
    """Response from feed() API."""

    sort_type: SortType
    community_id: int | None = None
    generated_at: datetime
    ranking_version: str = RANKING_VERSION
    items: list[FeedItem] = Field(default_factory=list)


@dataclass
class PostThread:
    """Response from post_thread() API: a post and its comment forest."""

    post: Post
    forest: Forest
    comment_count: int
    # True when comments could not be threaded and are shown flat
    degraded: bool = False


def feed(
    conn: sqlite3.Connection,
    sort_type: SortType | str | None = None,
    now: datetime | None = None,
    community_id: int | None = None,
    limit: int | None = None,
) -> Feed:
    """
    Generate a ranked feed of posts.

    Fetches posts from the store, ranks them, and attaches the value
    each post was ranked by. Unknown sort types rank as ``new``.
    """
    settings = get_settings()
    now = now or utc_now()
    if sort_type is None:
        sort_type = settings.default_sort
    resolved = resolve_sort_type(sort_type)

    if community_id is not None:
        store.get_community(conn, community_id)
    posts = store.fetch_posts(conn, community_id=community_id)
    if limit is None:
        limit = settings.feed_limit
    ranked = rank(posts, resolved, now)[:limit]

    items = [
        FeedItem(post=post, position=i, score=compute_score(post, resolved, now))
        for i, post in enumerate(ranked)
    ]

    return Feed(
        sort_type=resolved,
        community_id=community_id,
        generated_at=now,
        items=items,
    )


def post_thread(
    conn: sqlite3.Connection, post_id: int, max_depth: int | None = None
) -> PostThread:
    """
    Load a post with its threaded comments.

    Comment data whose parent chain loops cannot be threaded; the thread
    is then rendered flat, oldest first, with replies disabled.
    """
    if max_depth is None:
        max_depth = get_settings().max_reply_depth

    post = store.get_post(conn, post_id)
    comments = store.fetch_comments(conn, post_id)

    degraded = False
    try:
        forest = build_forest(comments, max_depth=max_depth)
    except CycleDetected as e:
        logger.warning("Post {}: {}; rendering comments flat", post_id, e)
        forest = flat_forest(comments, max_depth=max_depth)
        degraded = True

    for orphan in forest.orphans:
        logger.debug(
            "Post {}: comment {} promoted to root ({} parent {})",
            post_id, orphan.comment_id, orphan.reason, orphan.parent_id,
        )

    return PostThread(
        post=post,
        forest=forest,
        comment_count=len(comments),
        degraded=degraded,
    )


def comment(
    conn: sqlite3.Connection,
    post_id: int,
    author: str,
    content: str,
    now: datetime | None = None,
) -> Comment:
    """Create a top-level comment. Callers reload the thread afterwards."""
    return store.create_comment(conn, post_id, author, content.strip(), now=now)


def reply(
    conn: sqlite3.Connection,
    thread: PostThread,
    parent_id: int,
    author: str,
    content: str,
    now: datetime | None = None,
) -> ThreadNode:
    """
    Reply to a comment in a loaded thread.

    The reply is persisted, then appended as the last child of its parent
    in the in-memory forest so it shows without a reload.
    """
    parent = thread.forest.find(parent_id)
    if parent is None:
        raise UnknownParent(parent_id)
    if not parent.can_reply:
        raise ReplyDepthExceeded(parent_id, parent.depth, thread.forest.max_depth)

    created = store.create_comment(
        conn, thread.post.id, author, content.strip(), parent_id=parent_id, now=now
    )
    node = insert_reply(thread.forest, parent_id, created)
    thread.comment_count += 1
    return node


def vote(
    conn: sqlite3.Connection,
    kind: str,
    item_id: int,
    vote_type: VoteType | str,
) -> Post | Comment:
    """Record an up or down vote on a post or comment."""
    if kind == "post":
        return store.vote_post(conn, item_id, vote_type)
    elif kind == "comment":
        return store.vote_comment(conn, item_id, vote_type)
    else:
        raise ValueError(f"Unknown vote target: {kind}")
