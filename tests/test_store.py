"""Tests for the board store."""

from datetime import timedelta

import pytest

from threadboard.core import store
from threadboard.core.errors import InvalidVote, NotFound
from threadboard.core.models import VoteType


@pytest.fixture
def community(db_conn, now):
    return store.create_community(db_conn, "python", "All things Python", now=now)


@pytest.fixture
def post(db_conn, community, now):
    return store.create_post(db_conn, community.id, "Hello", "ada", content="First!", now=now)


class TestCommunities:
    """Tests for community membership and lookup."""

    def test_create_starts_with_one_member(self, community):
        assert community.member_count == 1
        assert community.name == "python"

    def test_join_and_leave(self, db_conn, community):
        assert store.join_community(db_conn, community.id).member_count == 2
        assert store.leave_community(db_conn, community.id).member_count == 1

    def test_leave_never_below_one(self, db_conn, community):
        assert store.leave_community(db_conn, community.id).member_count == 1

    def test_list_largest_first(self, db_conn, community, now):
        other = store.create_community(db_conn, "rust", "Borrowing", now=now)
        store.join_community(db_conn, other.id)

        assert [c.name for c in store.list_communities(db_conn)] == ["rust", "python"]

    def test_popular_limit(self, db_conn, now):
        for i in range(12):
            store.create_community(db_conn, f"c{i}", now=now)

        assert len(store.popular_communities(db_conn)) == 10
        assert len(store.popular_communities(db_conn, limit=3)) == 3

    def test_search_case_insensitive(self, db_conn, community, now):
        store.create_community(db_conn, "rust", "Borrowing", now=now)

        assert [c.name for c in store.search_communities(db_conn, "PYTHON")] == ["python"]
        assert [c.name for c in store.search_communities(db_conn, "borrow")] == ["rust"]
        assert store.search_communities(db_conn, "haskell") == []

    def test_unknown_community(self, db_conn):
        with pytest.raises(NotFound, match="Community not found"):
            store.get_community(db_conn, 999)


class TestPosts:
    """Tests for post creation, lookup and votes."""

    def test_creator_upvote(self, post):
        assert post.upvotes == 1
        assert post.downvotes == 0
        assert post.comment_count == 0
        assert post.score == 1

    def test_created_at_round_trips_as_utc(self, post, now):
        assert post.created_at == now
        assert post.created_at.tzinfo is not None

    def test_post_requires_community(self, db_conn):
        with pytest.raises(NotFound):
            store.create_post(db_conn, 42, "Nowhere", "ada")

    def test_fetch_newest_first(self, db_conn, community, post, now):
        later = store.create_post(db_conn, community.id, "Later", "bob", now=now + timedelta(hours=1))

        assert [p.id for p in store.fetch_posts(db_conn)] == [later.id, post.id]

    def test_fetch_by_community(self, db_conn, community, post, now):
        other = store.create_community(db_conn, "rust", now=now)
        store.create_post(db_conn, other.id, "Elsewhere", "bob", now=now)

        assert [p.id for p in store.fetch_posts(db_conn, community_id=community.id)] == [post.id]

    def test_search_posts(self, db_conn, community, post, now):
        store.create_post(db_conn, community.id, "Unrelated", "bob", content="nothing", now=now)

        assert [p.id for p in store.search_posts(db_conn, "first")] == [post.id]

    def test_votes(self, db_conn, post):
        store.vote_post(db_conn, post.id, VoteType.UP)
        voted = store.vote_post(db_conn, post.id, "down")

        assert voted.upvotes == 2
        assert voted.downvotes == 1

    def test_invalid_vote(self, db_conn, post):
        with pytest.raises(InvalidVote):
            store.vote_post(db_conn, post.id, "sideways")

    def test_vote_unknown_post(self, db_conn):
        with pytest.raises(NotFound, match="Post not found"):
            store.vote_post(db_conn, 999, "up")


class TestComments:
    """Tests for comment creation, lookup and votes."""

    def test_top_level_comment(self, db_conn, post, now):
        comment = store.create_comment(db_conn, post.id, "bob", "Nice", now=now)

        assert comment.parent_id is None
        assert comment.depth == 0
        assert comment.upvotes == 1
        assert store.get_post(db_conn, post.id).comment_count == 1

    def test_reply_depth(self, db_conn, post, now):
        root = store.create_comment(db_conn, post.id, "bob", "Root", now=now)
        child = store.create_comment(db_conn, post.id, "cy", "Child", parent_id=root.id, now=now)
        grandchild = store.create_comment(db_conn, post.id, "di", "Grand", parent_id=child.id, now=now)

        assert child.depth == 1
        assert grandchild.depth == 2
        assert store.get_post(db_conn, post.id).comment_count == 3

    def test_reply_to_unknown_comment(self, db_conn, post):
        with pytest.raises(NotFound, match="Comment not found"):
            store.create_comment(db_conn, post.id, "bob", "Hi", parent_id=999)

        assert store.get_post(db_conn, post.id).comment_count == 0

    def test_fetch_oldest_first(self, db_conn, post, now):
        late = store.create_comment(db_conn, post.id, "bob", "Late", now=now + timedelta(minutes=5))
        early = store.create_comment(db_conn, post.id, "cy", "Early", now=now)

        assert [c.id for c in store.fetch_comments(db_conn, post.id)] == [early.id, late.id]

    def test_fetch_replies(self, db_conn, post, now):
        root = store.create_comment(db_conn, post.id, "bob", "Root", now=now)
        second = store.create_comment(
            db_conn, post.id, "cy", "B", parent_id=root.id, now=now + timedelta(minutes=2)
        )
        first = store.create_comment(
            db_conn, post.id, "di", "A", parent_id=root.id, now=now + timedelta(minutes=1)
        )

        assert [c.id for c in store.fetch_replies(db_conn, root.id)] == [first.id, second.id]

    def test_vote_comment(self, db_conn, post, now):
        comment = store.create_comment(db_conn, post.id, "bob", "Nice", now=now)
        voted = store.vote_comment(db_conn, comment.id, "down")

        assert voted.score == 0

    def test_reply_to_comment_on_other_post(self, db_conn, community, post, now):
        other = store.create_post(db_conn, community.id, "Other", "bob", now=now)
        foreign = store.create_comment(db_conn, post.id, "bob", "Over here", now=now)

        with pytest.raises(NotFound, match="Comment not found"):
            store.create_comment(db_conn, other.id, "cy", "Stray", parent_id=foreign.id, now=now)

        assert store.fetch_comments(db_conn, other.id) == []
        assert store.get_post(db_conn, other.id).comment_count == 0
        assert store.get_post(db_conn, post.id).comment_count == 1


class TestUpdateAndDelete:
    """Tests for editing and removing records."""

    def test_update_community(self, db_conn, community):
        updated = store.update_community(db_conn, community.id, description="Snakes")

        assert updated.description == "Snakes"
        assert updated.name == "python"

    def test_update_unknown_field(self, db_conn, community):
        with pytest.raises(ValueError):
            store.update_community(db_conn, community.id, member_count=500)

        assert store.get_community(db_conn, community.id).member_count == 1

    def test_update_unknown_community(self, db_conn):
        with pytest.raises(NotFound, match="Community not found"):
            store.update_community(db_conn, 999, name="ghost")

    def test_delete_community_cascades(self, db_conn, community, post, now):
        store.create_comment(db_conn, post.id, "bob", "Bye", now=now)

        deleted = store.delete_community(db_conn, community.id)

        assert deleted.id == community.id
        assert store.list_communities(db_conn) == []
        assert store.fetch_posts(db_conn) == []
        assert store.fetch_comments(db_conn, post.id) == []

    def test_update_post(self, db_conn, post):
        updated = store.update_post(db_conn, post.id, title="Edited", content="New body")

        assert updated.title == "Edited"
        assert updated.content == "New body"
        assert updated.updated_at != post.updated_at
        assert updated.created_at == post.created_at

    def test_update_post_rejects_votes(self, db_conn, post):
        with pytest.raises(ValueError):
            store.update_post(db_conn, post.id, upvotes=1000)

    def test_delete_post_removes_comments(self, db_conn, post, now):
        store.create_comment(db_conn, post.id, "bob", "Bye", now=now)

        store.delete_post(db_conn, post.id)

        with pytest.raises(NotFound, match="Post not found"):
            store.get_post(db_conn, post.id)
        assert store.fetch_comments(db_conn, post.id) == []

    def test_delete_unknown_post(self, db_conn):
        with pytest.raises(NotFound):
            store.delete_post(db_conn, 999)

    def test_update_comment(self, db_conn, post, now):
        comment = store.create_comment(db_conn, post.id, "bob", "Typo", now=now)

        assert store.update_comment(db_conn, comment.id, content="Fixed").content == "Fixed"

    def test_update_unknown_comment(self, db_conn):
        with pytest.raises(NotFound, match="Comment not found"):
            store.update_comment(db_conn, 999, content="x")

    def test_delete_comment_keeps_replies(self, db_conn, post, now):
        root = store.create_comment(db_conn, post.id, "bob", "Root", now=now)
        child = store.create_comment(db_conn, post.id, "cy", "Child", parent_id=root.id, now=now)

        deleted = store.delete_comment(db_conn, root.id)

        assert deleted.id == root.id
        assert [c.id for c in store.fetch_comments(db_conn, post.id)] == [child.id]
        assert store.get_comment(db_conn, child.id).parent_id == root.id
        assert store.get_post(db_conn, post.id).comment_count == 1

    def test_delete_unknown_comment(self, db_conn):
        with pytest.raises(NotFound):
            store.delete_comment(db_conn, 999)
