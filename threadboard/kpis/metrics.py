"""Board metrics: attention concentration and thread shape."""

import sqlite3
from collections import Counter
from typing import Any

from threadboard.core import store
from threadboard.core.errors import CycleDetected
from threadboard.core.threads import build_forest


def gini_coefficient(values: list[float]) -> float:
    """
    Calculate the Gini coefficient for a list of values.

    Returns a value between 0 (perfect equality) and 1 (perfect inequality).
    """
    n = len(values)
    if n <= 1:
        return 0.0

    total = sum(values)
    if total == 0:
        return 0.0

    weighted = sum((2 * (i + 1) - n - 1) * v for i, v in enumerate(sorted(values)))
    return weighted / (n * total)


def attention_gini(conn: sqlite3.Connection) -> float:
    """Gini coefficient of comment counts across posts."""
    rows = conn.execute("SELECT comment_count FROM posts").fetchall()
    return gini_coefficient([float(row[0]) for row in rows])


def depth_histogram(conn: sqlite3.Connection) -> tuple[dict[int, int], list[int]]:
    """
    Count comments per thread depth across all posts.

    Depth comes from assembling each post's thread, not from stored values.
    Returns the histogram and the ids of posts whose comments loop.
    """
    histogram: Counter[int] = Counter()
    unthreaded: list[int] = []

    for post in store.fetch_posts(conn):
        comments = store.fetch_comments(conn, post.id)
        try:
            forest = build_forest(comments)
        except CycleDetected:
            unthreaded.append(post.id)
            continue
        histogram.update(node.depth for node in forest.walk())

    return dict(sorted(histogram.items())), sorted(unthreaded)


def compute_kpis(conn: sqlite3.Connection) -> dict[str, Any]:
    """Compute all board metrics."""
    counts = {
        table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        for table in ["communities", "posts", "comments"]
    }
    votes = conn.execute(
        """
        SELECT
            (SELECT COALESCE(SUM(upvotes), 0) FROM posts)
          + (SELECT COALESCE(SUM(upvotes), 0) FROM comments),
            (SELECT COALESCE(SUM(downvotes), 0) FROM posts)
          + (SELECT COALESCE(SUM(downvotes), 0) FROM comments)
        """
    ).fetchone()
    histogram, unthreaded = depth_histogram(conn)

    return {
        "counts": counts,
        "votes": {"up": votes[0], "down": votes[1]},
        "attention_gini": attention_gini(conn),
        "depth_histogram": histogram,
        "max_depth": max(histogram, default=0),
        "unthreaded_posts": unthreaded,
    }
