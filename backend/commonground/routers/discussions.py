# discussions router - open, list and view discussions
# a discussion always starts with one top-level response from its creator

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from commonground.models.discussion import (
    DiscussionCreate,
    DiscussionDetail,
    DiscussionListResponse,
    DiscussionResponse,
    DiscussionStatus,
    PaginationMeta,
)
from commonground.models.user import UserSummary
from commonground.services.db import Database, get_db
from commonground.services.response_service import ResponseService, doc_to_response
from commonground.dependencies import get_response_service, require_verified

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/discussions", tags=["discussions"])

SORT_FIELDS = {
    "lastActivityAt": "last_activity_at",
    "createdAt": "created_at",
    "responseCount": "response_count",
}


def _doc_to_discussion(doc: dict) -> DiscussionResponse:
    """convert a mongodb discussion document to response model"""
    return DiscussionResponse(
        id=doc["discussion_id"],
        topicId=doc.get("topic_id", ""),
        title=doc.get("title", ""),
        status=doc.get("status", "ACTIVE"),
        creator=UserSummary(id=doc.get("creator_id", ""), displayName=doc.get("creator_display_name")),
        responseCount=doc.get("response_count", 0),
        participantCount=doc.get("participant_count", 0),
        lastActivityAt=doc["last_activity_at"],
        createdAt=doc["created_at"],
        updatedAt=doc.get("updated_at", doc["created_at"]),
    )


@router.post("", response_model=DiscussionDetail, status_code=status.HTTP_201_CREATED)
async def create_discussion(
    body: DiscussionCreate,
    current_user: dict = Depends(require_verified),
    db: Database = Depends(get_db),
    service: ResponseService = Depends(get_response_service),
):
    """open a discussion with its initial response. verified users only."""
    citations = await service.validate_citations(body.initial_response.citations, current_user["id"])

    now = datetime.now(timezone.utc).isoformat()
    discussion_id = str(uuid.uuid4())

    doc = {
        "discussion_id": discussion_id,
        "topic_id": body.topic_id,
        "creator_id": current_user["id"],
        "creator_display_name": current_user.get("display_name"),
        "title": body.title,
        "status": "ACTIVE",
        "response_count": 1,
        "participant_count": 1,
        "last_activity_at": now,
        "created_at": now,
        "updated_at": now,
    }
    await db.discussions.insert_one(doc)

    initial = service.build_response_doc(
        discussion_id, current_user, body.initial_response.content, citations, now=now,
    )
    await db.responses.insert_one(initial)

    await db.participant_activity.insert_one({
        "discussion_id": discussion_id,
        "user_id": current_user["id"],
        "response_count": 1,
        "first_seen_at": now,
        "last_activity_at": now,
    })

    logger.info(f"Discussion created: {discussion_id} in topic {body.topic_id} by {current_user['id']}")

    return DiscussionDetail(
        **_doc_to_discussion(doc).model_dump(),
        responses=[doc_to_response(initial)],
    )


@router.get("", response_model=DiscussionListResponse)
async def list_discussions(
    topic_id: Optional[str] = Query(None, alias="topicId", description="filter by topic"),
    status_filter: DiscussionStatus = Query("ACTIVE", alias="status"),
    sort_by: Literal["lastActivityAt", "createdAt", "responseCount"] = Query("lastActivityAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Database = Depends(get_db),
):
    """list discussions with filtering, sorting and pagination"""
    query = {"status": status_filter}
    if topic_id:
        query["topic_id"] = topic_id

    total = await db.discussions.count_documents(query)
    skip = (page - 1) * limit
    direction = 1 if sort_order == "asc" else -1
    cursor = db.discussions.find(query).sort(SORT_FIELDS[sort_by], direction).skip(skip).limit(limit)

    discussions = []
    async for doc in cursor:
        discussions.append(_doc_to_discussion(doc))

    total_pages = math.ceil(total / limit) if total else 0
    return DiscussionListResponse(
        data=discussions,
        meta=PaginationMeta(
            page=page,
            limit=limit,
            totalItems=total,
            totalPages=total_pages,
            hasNextPage=page < total_pages,
            hasPreviousPage=page > 1,
        ),
    )


@router.get("/{discussion_id}", response_model=DiscussionDetail)
async def get_discussion(
    discussion_id: str,
    db: Database = Depends(get_db),
    service: ResponseService = Depends(get_response_service),
):
    """discussion with its visible responses in posting order"""
    doc = await db.discussions.find_one({"discussion_id": discussion_id})
    if not doc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Discussion with ID {discussion_id} not found",
        )

    responses = await service.list_responses(discussion_id)
    return DiscussionDetail(**_doc_to_discussion(doc).model_dump(), responses=responses)
