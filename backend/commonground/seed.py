# seed script - creates demo users and one threaded demo discussion in mongodb
# run once: python -m commonground.seed

import asyncio
import logging
import os
import uuid
from datetime import datetime, timedelta, timezone

from commonground.services.db import db
from commonground.services.auth_service import hash_password
from commonground.services.response_service import ResponseService

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

# seed password from env
DEFAULT_PASSWORD = os.getenv("SEED_PASSWORD", "commonground123")

DEMO_USERS = [
    {"email": "alice@commonground.dev", "display_name": "Alice"},
    {"email": "bob@commonground.dev", "display_name": "Bob"},
    {"email": "carol@commonground.dev", "display_name": "Carol"},
]

# (author index, parent index or None, content)
DEMO_THREAD = [
    (0, None, "Carbon pricing is the most efficient lever we have, because it lets markets find the cheapest cuts first."),
    (1, 0, "Efficient on paper, but the burden lands on rural households who have no alternative to driving."),
    (0, 1, "A dividend that returns the revenue per person would leave most of those households better off."),
    (2, 1, "Where I live the nearest bus stop is 12 miles away, so the dividend would need to be large."),
    (2, None, "Could we agree that whatever the mechanism, the revenue use should be decided up front?"),
]


async def _ensure_user(email: str, display_name: str, hashed_pw: str) -> dict:
    existing = await db.users.find_one({"email": email})
    if existing:
        logger.info(f"User already exists: {email}")
        return {"id": str(existing["_id"]), "display_name": existing.get("display_name")}

    result = await db.users.insert_one({
        "email": email,
        "hashed_password": hashed_pw,
        "display_name": display_name,
        "email_verified": True,
        "created_at": datetime.now(timezone.utc).isoformat(),
    })
    logger.info(f"Created user: {display_name} ({email})")
    return {"id": str(result.inserted_id), "display_name": display_name}


async def seed():
    """create demo users and a demo discussion, skips existing"""
    await db.connect()

    hashed_pw = hash_password(DEFAULT_PASSWORD)
    users = [await _ensure_user(u["email"], u["display_name"], hashed_pw) for u in DEMO_USERS]

    title = "How should carbon pricing revenue be used?"
    if await db.discussions.find_one({"title": title}):
        logger.info("Demo discussion already exists, skipping")
        await db.close()
        return

    service = ResponseService(db)
    start = datetime.now(timezone.utc) - timedelta(hours=len(DEMO_THREAD))
    discussion_id = str(uuid.uuid4())

    response_ids = []
    participants = set()
    for i, (author_idx, parent_idx, content) in enumerate(DEMO_THREAD):
        author = users[author_idx]
        parent_id = response_ids[parent_idx] if parent_idx is not None else None
        doc = service.build_response_doc(
            discussion_id, author, content, [],
            parent_id=parent_id, now=(start + timedelta(hours=i)).isoformat(),
        )
        await db.responses.insert_one(doc)
        response_ids.append(doc["response_id"])
        participants.add(author["id"])

    now = datetime.now(timezone.utc).isoformat()
    await db.discussions.insert_one({
        "discussion_id": discussion_id,
        "topic_id": "demo-climate-policy",
        "creator_id": users[0]["id"],
        "creator_display_name": users[0]["display_name"],
        "title": title,
        "status": "ACTIVE",
        "response_count": len(DEMO_THREAD),
        "participant_count": len(participants),
        "last_activity_at": now,
        "created_at": start.isoformat(),
        "updated_at": now,
    })
    for user in users:
        count = sum(1 for a, _, _ in DEMO_THREAD if users[a]["id"] == user["id"])
        await db.participant_activity.insert_one({
            "discussion_id": discussion_id,
            "user_id": user["id"],
            "response_count": count,
            "first_seen_at": start.isoformat(),
            "last_activity_at": now,
        })

    logger.info(f"Created demo discussion {discussion_id} with {len(DEMO_THREAD)} responses")
    await db.close()


if __name__ == "__main__":
    asyncio.run(seed())
