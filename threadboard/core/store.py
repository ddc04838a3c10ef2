"""Board store: reads and writes communities, posts and comments."""

import sqlite3
from datetime import datetime

from loguru import logger

from .db import transaction
from .errors import InvalidVote, NotFound
from .models import Comment, Community, Post, VoteType, as_utc, utc_now

VOTE_COLUMNS = {VoteType.UP: "upvotes", VoteType.DOWN: "downvotes"}
COMMUNITY_FIELDS = {"name", "description", "icon_url"}
POST_FIELDS = {"title", "content", "image_url"}
COMMENT_FIELDS = {"content"}


def _timestamp(now: datetime | None) -> str:
    return as_utc(now or utc_now()).isoformat(timespec="microseconds")


def _vote_column(vote_type: VoteType | str) -> str:
    try:
        return VOTE_COLUMNS[VoteType(vote_type)]
    except ValueError as e:
        raise InvalidVote(f"Unknown vote type: {vote_type!r}") from e


def _update(
    conn: sqlite3.Connection,
    table: str,
    record_id: int,
    changes: dict[str, object],
    editable: set[str],
) -> None:
    unknown = sorted(set(changes) - editable)
    if unknown:
        raise ValueError(f"Cannot update {table} fields: {unknown}")
    if not changes:
        return
    assignments = ", ".join(f"{column} = ?" for column in changes)
    conn.execute(
        f"UPDATE {table} SET {assignments} WHERE id = ?",
        [*changes.values(), record_id],
    )


# Communities


def list_communities(conn: sqlite3.Connection) -> list[Community]:
    """All communities, largest first."""
    rows = conn.execute(
        "SELECT * FROM communities ORDER BY member_count DESC, id"
    ).fetchall()
    return [Community.model_validate(dict(row)) for row in rows]


def popular_communities(conn: sqlite3.Connection, limit: int = 10) -> list[Community]:
    """The largest communities."""
    return list_communities(conn)[:limit]


def get_community(conn: sqlite3.Connection, community_id: int) -> Community:
    row = conn.execute(
        "SELECT * FROM communities WHERE id = ?", (community_id,)
    ).fetchone()
    if row is None:
        raise NotFound("Community not found")
    return Community.model_validate(dict(row))


def search_communities(conn: sqlite3.Connection, query: str) -> list[Community]:
    """Case-insensitive match on name or description, largest first."""
    rows = conn.execute(
        """
        SELECT * FROM communities
        WHERE instr(lower(name), lower(?)) > 0
           OR instr(lower(description), lower(?)) > 0
        ORDER BY member_count DESC, id
        """,
        (query, query),
    ).fetchall()
    return [Community.model_validate(dict(row)) for row in rows]


def create_community(
    conn: sqlite3.Connection,
    name: str,
    description: str = "",
    icon_url: str | None = None,
    now: datetime | None = None,
) -> Community:
    """Create a community; its creator is the first member."""
    cursor = conn.execute(
        """
        INSERT INTO communities (name, description, member_count, icon_url, created_at)
        VALUES (?, ?, 1, ?, ?)
        """,
        (name, description, icon_url, _timestamp(now)),
    )
    logger.info("Created community {} ({})", cursor.lastrowid, name)
    return get_community(conn, cursor.lastrowid)


def join_community(conn: sqlite3.Connection, community_id: int) -> Community:
    get_community(conn, community_id)
    conn.execute(
        "UPDATE communities SET member_count = member_count + 1 WHERE id = ?",
        (community_id,),
    )
    return get_community(conn, community_id)


def leave_community(conn: sqlite3.Connection, community_id: int) -> Community:
    """Remove one member; a community never drops below one member."""
    get_community(conn, community_id)
    conn.execute(
        "UPDATE communities SET member_count = MAX(1, member_count - 1) WHERE id = ?",
        (community_id,),
    )
    return get_community(conn, community_id)


def update_community(
    conn: sqlite3.Connection, community_id: int, **changes: object
) -> Community:
    """Edit name, description or icon_url."""
    get_community(conn, community_id)
    _update(conn, "communities", community_id, changes, COMMUNITY_FIELDS)
    return get_community(conn, community_id)


def delete_community(conn: sqlite3.Connection, community_id: int) -> Community:
    """Delete a community together with its posts and their comments."""
    community = get_community(conn, community_id)
    with transaction(conn) as cursor:
        cursor.execute(
            "DELETE FROM comments WHERE post_id IN "
            "(SELECT id FROM posts WHERE community_id = ?)",
            (community_id,),
        )
        cursor.execute("DELETE FROM posts WHERE community_id = ?", (community_id,))
        cursor.execute("DELETE FROM communities WHERE id = ?", (community_id,))
    logger.info("Deleted community {}", community_id)
    return community


# Posts


def fetch_posts(
    conn: sqlite3.Connection, community_id: int | None = None
) -> list[Post]:
    """Posts newest first, optionally limited to one community."""
    query = "SELECT * FROM posts"
    params: list[int] = []

    if community_id is not None:
        query += " WHERE community_id = ?"
        params.append(community_id)

    query += " ORDER BY created_at DESC, id DESC"
    rows = conn.execute(query, params).fetchall()
    return [Post.model_validate(dict(row)) for row in rows]


def get_post(conn: sqlite3.Connection, post_id: int) -> Post:
    row = conn.execute("SELECT * FROM posts WHERE id = ?", (post_id,)).fetchone()
    if row is None:
        raise NotFound("Post not found")
    return Post.model_validate(dict(row))


def search_posts(conn: sqlite3.Connection, query: str) -> list[Post]:
    """Case-insensitive match on title or content, newest first."""
    rows = conn.execute(
        """
        SELECT * FROM posts
        WHERE instr(lower(title), lower(?)) > 0
           OR instr(lower(content), lower(?)) > 0
        ORDER BY created_at DESC, id DESC
        """,
        (query, query),
    ).fetchall()
    return [Post.model_validate(dict(row)) for row in rows]


def create_post(
    conn: sqlite3.Connection,
    community_id: int,
    title: str,
    author: str,
    content: str = "",
    image_url: str | None = None,
    now: datetime | None = None,
) -> Post:
    """Create a post. The author's own upvote is counted."""
    get_community(conn, community_id)
    stamp = _timestamp(now)
    cursor = conn.execute(
        """
        INSERT INTO posts
        (community_id, title, content, image_url, author,
         upvotes, downvotes, comment_count, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, 1, 0, 0, ?, ?)
        """,
        (community_id, title, content, image_url, author, stamp, stamp),
    )
    logger.info("Created post {} in community {}", cursor.lastrowid, community_id)
    return get_post(conn, cursor.lastrowid)


def vote_post(
    conn: sqlite3.Connection, post_id: int, vote_type: VoteType | str
) -> Post:
    column = _vote_column(vote_type)
    get_post(conn, post_id)
    conn.execute(
        f"UPDATE posts SET {column} = {column} + 1 WHERE id = ?", (post_id,)
    )
    logger.debug("Recorded {} on post {}", column, post_id)
    return get_post(conn, post_id)


def update_post(conn: sqlite3.Connection, post_id: int, **changes: object) -> Post:
    """Edit title, content or image_url and stamp updated_at."""
    get_post(conn, post_id)
    _update(conn, "posts", post_id, changes, POST_FIELDS)
    conn.execute(
        "UPDATE posts SET updated_at = ? WHERE id = ?", (_timestamp(None), post_id)
    )
    return get_post(conn, post_id)


def delete_post(conn: sqlite3.Connection, post_id: int) -> Post:
    """Delete a post and all of its comments."""
    post = get_post(conn, post_id)
    with transaction(conn) as cursor:
        cursor.execute("DELETE FROM comments WHERE post_id = ?", (post_id,))
        cursor.execute("DELETE FROM posts WHERE id = ?", (post_id,))
    logger.info("Deleted post {}", post_id)
    return post


# Comments


def fetch_comments(conn: sqlite3.Connection, post_id: int) -> list[Comment]:
    """Comments on a post, oldest first."""
    rows = conn.execute(
        "SELECT * FROM comments WHERE post_id = ? ORDER BY created_at, id",
        (post_id,),
    ).fetchall()
    return [Comment.model_validate(dict(row)) for row in rows]


def fetch_replies(conn: sqlite3.Connection, parent_id: int) -> list[Comment]:
    """Direct replies to a comment, oldest first."""
    rows = conn.execute(
        "SELECT * FROM comments WHERE parent_id = ? ORDER BY created_at, id",
        (parent_id,),
    ).fetchall()
    return [Comment.model_validate(dict(row)) for row in rows]


def get_comment(conn: sqlite3.Connection, comment_id: int) -> Comment:
    row = conn.execute(
        "SELECT * FROM comments WHERE id = ?", (comment_id,)
    ).fetchone()
    if row is None:
        raise NotFound("Comment not found")
    return Comment.model_validate(dict(row))


def create_comment(
    conn: sqlite3.Connection,
    post_id: int,
    author: str,
    content: str,
    parent_id: int | None = None,
    now: datetime | None = None,
) -> Comment:
    """
    Create a comment or reply and bump the post's comment count.

    The stored depth is the parent's stored depth plus one. It is kept for
    display caches only; thread assembly recomputes depth.
    """
    get_post(conn, post_id)
    depth = 0
    if parent_id is not None:
        parent = get_comment(conn, parent_id)
        if parent.post_id != post_id:
            raise NotFound("Comment not found")
        depth = parent.depth + 1

    with transaction(conn) as cursor:
        cursor.execute(
            """
            INSERT INTO comments
            (post_id, parent_id, author, content, upvotes, downvotes, depth, created_at)
            VALUES (?, ?, ?, ?, 1, 0, ?, ?)
            """,
            (post_id, parent_id, author, content, depth, _timestamp(now)),
        )
        comment_id = cursor.lastrowid
        cursor.execute(
            "UPDATE posts SET comment_count = comment_count + 1 WHERE id = ?",
            (post_id,),
        )

    logger.info(
        "Created comment {} on post {} (parent={})", comment_id, post_id, parent_id
    )
    return get_comment(conn, comment_id)


def vote_comment(
    conn: sqlite3.Connection, comment_id: int, vote_type: VoteType | str
) -> Comment:
    column = _vote_column(vote_type)
    get_comment(conn, comment_id)
    conn.execute(
        f"UPDATE comments SET {column} = {column} + 1 WHERE id = ?", (comment_id,)
    )
    logger.debug("Recorded {} on comment {}", column, comment_id)
    return get_comment(conn, comment_id)


def update_comment(
    conn: sqlite3.Connection, comment_id: int, **changes: object
) -> Comment:
    """Edit a comment's content."""
    get_comment(conn, comment_id)
    _update(conn, "comments", comment_id, changes, COMMENT_FIELDS)
    return get_comment(conn, comment_id)


def delete_comment(conn: sqlite3.Connection, comment_id: int) -> Comment:
    """
    Delete one comment and decrement its post's comment count.

    Replies are left in place; their parent no longer resolves, so thread
    assembly promotes them to roots.
    """
    comment = get_comment(conn, comment_id)
    with transaction(conn) as cursor:
        cursor.execute("DELETE FROM comments WHERE id = ?", (comment_id,))
        cursor.execute(
            "UPDATE posts SET comment_count = MAX(0, comment_count - 1) WHERE id = ?",
            (comment.post_id,),
        )
    logger.info("Deleted comment {} on post {}", comment_id, comment.post_id)
    return comment
