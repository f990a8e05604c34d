# thread tree builder - turns a flat list of responses into nested reply trees
#
# build steps:
#   1. order records by created_at (stable, so equal timestamps keep input order)
#   2. index every record by id (first occurrence of a duplicate id wins)
#   3. attach each record to its parent, or make it a root when it has no
#      parent or its parent is not in the list (orphan promotion)
#   4. walk down from the roots assigning depth and reply counts
#   5. anything the walk never reached sits on a parent cycle: promote the
#      earliest such record to root and walk again until every record is placed

import logging
from typing import Iterable, Iterator, Sequence

from commonground.models.response import ResponseDetail, ThreadNode

logger = logging.getLogger(__name__)


def _to_node(response: ResponseDetail) -> ThreadNode:
    return ThreadNode(**response.model_dump(exclude={"depth", "replies"}))


def _assign_depths(starts: Iterable[ThreadNode], placed: set[str]) -> None:
    """iterative pre-order walk; sets depth and reply_count, records visited ids"""
    stack = [(node, 0) for node in reversed(list(starts))]
    while stack:
        node, depth = stack.pop()
        if node.id in placed:
            continue
        placed.add(node.id)
        node.depth = depth
        node.reply_count = len(node.replies)
        for child in reversed(node.replies):
            stack.append((child, depth + 1))


def _cycle_entry(nodes: dict[str, ThreadNode], start_id: str, position: dict[str, int]) -> ThreadNode:
    """follow parent links from an unreachable node to the cycle above it and
    return the earliest node on that cycle"""
    chain: list[str] = []
    seen: dict[str, int] = {}
    current = start_id
    while current not in seen:
        seen[current] = len(chain)
        chain.append(current)
        current = nodes[current].parent_id
    cycle = chain[seen[current]:]
    return nodes[min(cycle, key=lambda response_id: position[response_id])]


def build_thread_tree(responses: Sequence[ResponseDetail], sort: bool = True) -> list[ThreadNode]:
    """build the reply forest for one discussion.

    roots and siblings come out in created_at order (or input order when
    sort=False). replies whose parent is missing, self-referencing, or
    caught in a parent cycle are promoted to roots, so every distinct
    response id appears exactly once in the result.
    """
    if not responses:
        return []

    records = sorted(responses, key=lambda r: r.created_at) if sort else list(responses)

    nodes: dict[str, ThreadNode] = {}
    order: list[str] = []
    for record in records:
        if record.id in nodes:
            logger.warning(f"Duplicate response id {record.id} in thread input, keeping first occurrence")
            continue
        nodes[record.id] = _to_node(record)
        order.append(record.id)

    roots: list[ThreadNode] = []
    for response_id in order:
        node = nodes[response_id]
        parent = nodes.get(node.parent_id) if node.parent_id else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.replies.append(node)

    placed: set[str] = set()
    _assign_depths(roots, placed)

    if len(placed) < len(order):
        position = {response_id: i for i, response_id in enumerate(order)}
        for response_id in order:
            if response_id in placed:
                continue
            node = _cycle_entry(nodes, response_id, position)
            parent = nodes[node.parent_id]
            parent.replies = [r for r in parent.replies if r is not node]
            logger.warning(f"Response {node.id} is part of a parent cycle, promoting to root")
            roots.append(node)
            _assign_depths([node], placed)

        # parents that lost a promoted child need their counts refreshed
        for node in nodes.values():
            node.reply_count = len(node.replies)
        roots.sort(key=lambda n: position[n.id])

    return roots


def iter_thread(tree: Sequence[ThreadNode]) -> Iterator[ThreadNode]:
    """yield nodes in display order (parent before its replies)"""
    stack = list(reversed(tree))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.replies))


def count_nodes(tree: Sequence[ThreadNode]) -> int:
    return sum(1 for _ in iter_thread(tree))


def max_thread_depth(tree: Sequence[ThreadNode]) -> int:
    """deepest depth present in the tree, 0 for an empty tree"""
    return max((node.depth for node in iter_thread(tree)), default=0)
