# thread depth guard - enforces the reply nesting limit at write time
# depth counts parent hops: a top-level response is 0, its reply is 1

import logging
from typing import Optional

from commonground.config import settings
from commonground.errors import ThreadDepthExceededError
from commonground.services.db import Database

logger = logging.getLogger(__name__)


async def calculate_thread_depth(db: Database, response_id: str, max_depth: Optional[int] = None) -> int:
    """count parent hops from a stored response up to its root.

    unknown ids count as depth 0. the walk gives up after max_depth + 1 hops,
    and a parent cycle reports max_depth + 1, so a corrupted chain always
    reads as too deep instead of looping.
    """
    limit = (settings.MAX_THREAD_DEPTH if max_depth is None else max_depth) + 1

    depth = 0
    seen = {response_id}
    current = await db.responses.find_one({"response_id": response_id}, {"parent_id": 1})

    while current and current.get("parent_id"):
        parent_id = current["parent_id"]
        depth += 1
        if depth >= limit:
            break
        if parent_id in seen:
            logger.warning(f"Parent cycle detected above response {response_id} at {parent_id}")
            return limit
        seen.add(parent_id)
        current = await db.responses.find_one({"response_id": parent_id}, {"parent_id": 1})

    return depth


async def ensure_reply_depth(db: Database, parent_id: str, max_depth: Optional[int] = None) -> int:
    """depth a new reply under parent_id would get; raises if over the limit"""
    limit = settings.MAX_THREAD_DEPTH if max_depth is None else max_depth
    depth = await calculate_thread_depth(db, parent_id, limit) + 1
    if depth > limit:
        logger.warning(f"Reply to {parent_id} rejected: depth {depth} exceeds {limit}")
        raise ThreadDepthExceededError(depth, limit)
    return depth
