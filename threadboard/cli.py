"""CLI for the threadboard discussion board."""

import json
from datetime import timedelta
from pathlib import Path

import click

from threadboard.api.board import comment, feed, post_thread, reply, vote
from threadboard.config import get_settings
from threadboard.core import store
from threadboard.core.db import get_connection, init_db
from threadboard.core.errors import BoardError
from threadboard.core.models import SortType, VoteType, utc_now
from threadboard.kpis.metrics import compute_kpis
from threadboard.utils.logging import setup_logging

SORT_CHOICES = [s.value for s in SortType]


def _open(ctx: click.Context):
    path: Path = ctx.obj["db_path"]
    if not path.exists():
        raise click.ClickException(f"Database not found: {path}. Run 'init-db' first")
    return get_connection(path)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to SQLite database file",
)
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")
@click.pass_context
def cli(ctx: click.Context, db_path: Path | None, log_level: str | None) -> None:
    """Threadboard discussion board CLI."""
    settings = get_settings()
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path or settings.db_path


@cli.command("init-db")
@click.option("--force", is_flag=True, help="Drop existing database if it exists")
@click.pass_context
def init_db_cmd(ctx: click.Context, force: bool) -> None:
    """Initialize the database schema."""
    path: Path = ctx.obj["db_path"]

    if path.exists():
        if force:
            path.unlink()
            click.echo(f"Removed existing database: {path}")
        else:
            click.echo(f"Database already exists: {path}")
            click.echo("Use --force to recreate")
            return

    conn = init_db(path)
    conn.close()
    click.echo(f"Initialized database: {path}")


@cli.command("seed")
@click.pass_context
def seed(ctx: click.Context) -> None:
    """Load a small demo board."""
    conn = _open(ctx)
    now = utc_now()

    python = store.create_community(conn, "python", "All things Python", now=now - timedelta(days=30))
    rust = store.create_community(conn, "rust", "Systems programming in Rust", now=now - timedelta(days=20))
    store.join_community(conn, python.id)

    fresh = store.create_post(
        conn, python.id, "What's new in the latest release?", "ada",
        content="Share your favourite additions.", now=now - timedelta(hours=1),
    )
    old = store.create_post(
        conn, rust.id, "Borrow checker tips", "grace",
        content="Lessons learned after a year.", now=now - timedelta(hours=10),
    )
    for _ in range(9):
        store.vote_post(conn, fresh.id, VoteType.UP)
    for _ in range(4):
        store.vote_post(conn, old.id, VoteType.UP)

    first = store.create_comment(conn, fresh.id, "linus", "Pattern matching", now=now - timedelta(minutes=50))
    second = store.create_comment(conn, fresh.id, "guido", "Better error messages", now=now - timedelta(minutes=40))
    nested = store.create_comment(
        conn, fresh.id, "ada", "Agreed, huge win", parent_id=first.id, now=now - timedelta(minutes=30)
    )
    store.create_comment(
        conn, fresh.id, "grace", "Especially for beginners", parent_id=nested.id,
        now=now - timedelta(minutes=20),
    )
    store.create_comment(conn, fresh.id, "linus", "Seconded", parent_id=second.id, now=now - timedelta(minutes=10))

    conn.close()
    click.echo("Seeded 2 communities, 2 posts, 5 comments")


@cli.command("feed")
@click.option("--sort", "sort_type", type=click.Choice(SORT_CHOICES), default=None, help="Ranking algorithm")
@click.option("--community", "community_id", type=int, default=None, help="Limit to one community")
@click.option("--limit", type=int, default=None, help="Number of posts to show")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def feed_cmd(
    ctx: click.Context,
    sort_type: str | None,
    community_id: int | None,
    limit: int | None,
    json_output: bool,
) -> None:
    """Show a ranked feed of posts."""
    conn = _open(ctx)
    try:
        result = feed(conn, sort_type, community_id=community_id, limit=limit)
    except BoardError as e:
        raise click.ClickException(str(e)) from e
    finally:
        conn.close()

    if json_output:
        click.echo(result.model_dump_json(indent=2))
        return

    click.echo(f"{'#':>3} {'Score':>10} {'Votes':>6} {'Comments':>8}  Title")
    click.echo("-" * 80)
    for item in result.items:
        post = item.post
        click.echo(
            f"{item.position + 1:>3} {item.score:>10.3f} {post.score:>6} "
            f"{post.comment_count:>8}  [{post.id}] {post.title}"
        )


@cli.command("thread")
@click.argument("post_id", type=int)
@click.option("--max-depth", type=int, default=None, help="Deepest level that offers replies")
@click.pass_context
def thread_cmd(ctx: click.Context, post_id: int, max_depth: int | None) -> None:
    """Show a post with its comment thread."""
    conn = _open(ctx)
    try:
        thread = post_thread(conn, post_id, max_depth=max_depth)
    except BoardError as e:
        raise click.ClickException(str(e)) from e
    finally:
        conn.close()

    post = thread.post
    click.echo(f"[{post.id}] {post.title}  ({post.score} points, by u/{post.author})")
    if post.content:
        click.echo(post.content)
    click.echo(f"\n{thread.comment_count} comments")
    if thread.degraded:
        click.echo("(comment threading unavailable, showing flat list)")

    for node in thread.forest.walk():
        c = node.comment
        marker = "" if node.can_reply else " [no replies]"
        click.echo(
            f"{'  ' * node.depth}- [{c.id}] u/{c.author} ({c.score}): {c.content}{marker}"
        )


@cli.command("post")
@click.option("--community", "community_id", type=int, required=True)
@click.option("--title", required=True)
@click.option("--author", required=True)
@click.option("--content", default="")
@click.option("--image-url", default=None)
@click.pass_context
def post_cmd(
    ctx: click.Context,
    community_id: int,
    title: str,
    author: str,
    content: str,
    image_url: str | None,
) -> None:
    """Create a post."""
    conn = _open(ctx)
    try:
        post = store.create_post(
            conn, community_id, title.strip(), author, content=content.strip(), image_url=image_url
        )
    except BoardError as e:
        raise click.ClickException(str(e)) from e
    finally:
        conn.close()
    click.echo(f"Created post {post.id}")


@cli.command("comment")
@click.argument("post_id", type=int)
@click.option("--author", required=True)
@click.option("--content", required=True)
@click.option("--parent", "parent_id", type=int, default=None, help="Comment to reply to")
@click.pass_context
def comment_cmd(
    ctx: click.Context,
    post_id: int,
    author: str,
    content: str,
    parent_id: int | None,
) -> None:
    """Comment on a post, or reply to a comment."""
    if not content.strip():
        raise click.ClickException("Comment content is empty")

    conn = _open(ctx)
    try:
        if parent_id is None:
            created = comment(conn, post_id, author, content)
            depth = 0
        else:
            thread = post_thread(conn, post_id)
            node = reply(conn, thread, parent_id, author, content)
            created, depth = node.comment, node.depth
    except BoardError as e:
        raise click.ClickException(str(e)) from e
    finally:
        conn.close()
    click.echo(f"Created comment {created.id} at depth {depth}")


@cli.command("vote")
@click.argument("kind", type=click.Choice(["post", "comment"]))
@click.argument("item_id", type=int)
@click.argument("vote_type", type=click.Choice([v.value for v in VoteType]))
@click.pass_context
def vote_cmd(ctx: click.Context, kind: str, item_id: int, vote_type: str) -> None:
    """Up- or downvote a post or comment."""
    conn = _open(ctx)
    try:
        item = vote(conn, kind, item_id, vote_type)
    except BoardError as e:
        raise click.ClickException(str(e)) from e
    finally:
        conn.close()
    click.echo(f"{kind} {item.id}: {item.upvotes} up, {item.downvotes} down")


@cli.command("communities")
@click.option("--popular", is_flag=True, help="Only the largest communities")
@click.option("--search", "query", default=None, help="Filter by name or description")
@click.option("--join", "join_id", type=int, default=None, help="Join a community")
@click.option("--leave", "leave_id", type=int, default=None, help="Leave a community")
@click.pass_context
def communities_cmd(
    ctx: click.Context,
    popular: bool,
    query: str | None,
    join_id: int | None,
    leave_id: int | None,
) -> None:
    """List, search, join or leave communities."""
    conn = _open(ctx)
    try:
        if join_id is not None:
            store.join_community(conn, join_id)
        if leave_id is not None:
            store.leave_community(conn, leave_id)

        if query:
            rows = store.search_communities(conn, query)
        elif popular:
            rows = store.popular_communities(conn)
        else:
            rows = store.list_communities(conn)
    except BoardError as e:
        raise click.ClickException(str(e)) from e
    finally:
        conn.close()

    for community in rows:
        click.echo(
            f"[{community.id}] r/{community.name} ({community.member_count} members)"
            f" - {community.description}"
        )


@cli.command("stats")
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_context
def stats(ctx: click.Context, json_output: bool) -> None:
    """Compute and display board metrics."""
    conn = _open(ctx)
    metrics = compute_kpis(conn)
    conn.close()

    if json_output:
        click.echo(json.dumps(metrics, indent=2))
        return

    click.echo("Board:")
    click.echo(f"  Communities: {metrics['counts']['communities']}")
    click.echo(f"  Posts: {metrics['counts']['posts']}")
    click.echo(f"  Comments: {metrics['counts']['comments']}")
    click.echo(f"  Votes: {metrics['votes']['up']} up, {metrics['votes']['down']} down")
    click.echo()
    click.echo("Comment depth:")
    for depth, count in metrics["depth_histogram"].items():
        click.echo(f"  {depth}: {count}")
    if metrics["unthreaded_posts"]:
        click.echo(f"  Unthreaded posts: {metrics['unthreaded_posts']}")
    click.echo()
    click.echo(f"Attention Gini: {metrics['attention_gini']:.4f}")


if __name__ == "__main__":
    cli()
