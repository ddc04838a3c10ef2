"""Comment thread assembly: flat parent references to a rooted forest."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from .errors import CycleDetected, OrphanParent, ReplyDepthExceeded, UnknownParent
from .models import Comment, as_utc

DEFAULT_MAX_DEPTH = 3


@dataclass
class ThreadNode:
    """A comment placed in its thread, with its resolved depth."""

    comment: Comment
    depth: int
    can_reply: bool
    children: list["ThreadNode"] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.comment.id


@dataclass
class Forest:
    """All threads under one post."""

    roots: list[ThreadNode] = field(default_factory=list)
    orphans: list[OrphanParent] = field(default_factory=list)
    max_depth: int = DEFAULT_MAX_DEPTH
    _index: dict[int, ThreadNode] = field(default_factory=dict, repr=False)

    @property
    def size(self) -> int:
        return len(self._index)

    def find(self, comment_id: int) -> ThreadNode | None:
        return self._index.get(comment_id)

    def walk(self) -> Iterator[ThreadNode]:
        """Yield nodes in pre-order."""
        stack = list(reversed(self.roots))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


def _chronological(comments: list[Comment]) -> list[Comment]:
    return sorted(comments, key=lambda c: as_utc(c.created_at))


def build_forest(
    comments: Iterable[Comment], max_depth: int = DEFAULT_MAX_DEPTH
) -> Forest:
    """
    Build the comment forest for one post.

    Depth is recomputed from the parent chain; stored depth values are
    ignored. Roots and every sibling group are ordered oldest first.
    Comments whose parent is unknown, or belongs to another post, are
    promoted to roots and reported in ``Forest.orphans``.

    ``max_depth`` only controls ``ThreadNode.can_reply``; deeper comments
    are still placed in the tree.

    Raises CycleDetected when parent references loop.
    """
    by_id: dict[int, Comment] = {}
    for comment in comments:
        # First occurrence wins on duplicate ids
        by_id.setdefault(comment.id, comment)

    roots: list[Comment] = []
    orphans: list[OrphanParent] = []
    children: dict[int, list[Comment]] = defaultdict(list)

    for comment in by_id.values():
        if comment.parent_id is None:
            roots.append(comment)
            continue

        parent = by_id.get(comment.parent_id)
        if parent is None:
            orphans.append(OrphanParent(comment.id, comment.parent_id, "missing"))
            roots.append(comment)
        elif parent.post_id != comment.post_id:
            orphans.append(OrphanParent(comment.id, comment.parent_id, "other_post"))
            roots.append(comment)
        else:
            children[comment.parent_id].append(comment)

    forest = Forest(orphans=orphans, max_depth=max_depth)

    stack: list[ThreadNode] = []
    for comment in _chronological(roots):
        node = _new_node(forest, comment, 0)
        forest.roots.append(node)
        stack.append(node)

    while stack:
        node = stack.pop()
        for child in _chronological(children.get(node.id, [])):
            if child.id in forest._index:
                raise CycleDetected([child.id])
            child_node = _new_node(forest, child, node.depth + 1)
            node.children.append(child_node)
            stack.append(child_node)

    if forest.size < len(by_id):
        unreached = [cid for cid in by_id if cid not in forest._index]
        raise CycleDetected(unreached)

    return forest


def _new_node(forest: Forest, comment: Comment, depth: int) -> ThreadNode:
    node = ThreadNode(
        comment=comment,
        depth=depth,
        can_reply=depth < forest.max_depth,
    )
    forest._index[comment.id] = node
    return node


def flat_forest(
    comments: Iterable[Comment], max_depth: int = DEFAULT_MAX_DEPTH
) -> Forest:
    """
    Every comment as its own root, oldest first, with replies disabled.

    Fallback rendering for comment data that cannot be threaded.
    """
    forest = Forest(max_depth=max_depth)
    for comment in _chronological(list(comments)):
        if comment.id in forest._index:
            continue
        node = ThreadNode(comment=comment, depth=0, can_reply=False)
        forest._index[comment.id] = node
        forest.roots.append(node)
    return forest


def flatten(forest: Forest | Iterable[ThreadNode]) -> list[Comment]:
    """Pre-order list of the original comments."""
    if isinstance(forest, Forest):
        return [node.comment for node in forest.walk()]
    return flatten(Forest(roots=list(forest)))


def insert_reply(forest: Forest, parent_id: int, reply: Comment) -> ThreadNode:
    """
    Append a freshly created reply under ``parent_id``.

    The new node goes last among the parent's children, without
    re-sorting, so live replies appear at the end of the visible list.
    """
    parent = forest.find(parent_id)
    if parent is None:
        raise UnknownParent(parent_id)
    if not parent.can_reply:
        raise ReplyDepthExceeded(parent_id, parent.depth, forest.max_depth)
    if reply.id in forest._index:
        raise ValueError(f"Comment {reply.id} is already in this thread")

    depth = parent.depth + 1
    reply = reply.model_copy(update={"parent_id": parent_id, "depth": depth})
    node = _new_node(forest, reply, depth)
    parent.children.append(node)
    return node


class CollapseState:
    """
    Per-comment expanded/collapsed view state.

    Held apart from the Forest so that rebuilding the tree never resets
    what the reader has folded. Every comment starts expanded and only
    changes on an explicit toggle.
    """

    def __init__(self) -> None:
        self._collapsed: set[int] = set()

    def is_collapsed(self, comment_id: int) -> bool:
        return comment_id in self._collapsed

    def collapse(self, comment_id: int) -> None:
        self._collapsed.add(comment_id)

    def expand(self, comment_id: int) -> None:
        self._collapsed.discard(comment_id)

    def toggle(self, comment_id: int) -> bool:
        """Flip the state and return True if now collapsed."""
        if comment_id in self._collapsed:
            self._collapsed.discard(comment_id)
            return False
        self._collapsed.add(comment_id)
        return True

    def visible(self, forest: Forest) -> Iterator[ThreadNode]:
        """Yield nodes to render in pre-order; a collapsed node hides its subtree."""
        stack = list(reversed(forest.roots))
        while stack:
            node = stack.pop()
            yield node
            if node.id not in self._collapsed:
                stack.extend(reversed(node.children))
