# responses router - post, reply, edit, delete and read discussion responses
# the thread endpoint returns the nested reply forest for a discussion

import logging
from fastapi import APIRouter, Depends, status

from commonground.config import settings
from commonground.models.response import (
    ReplyCreate,
    ResponseCreate,
    ResponseDetail,
    ResponseUpdate,
    ThreadResponse,
)
from commonground.services.response_service import ResponseService
from commonground.services.thread_tree import count_nodes
from commonground.dependencies import get_current_user, get_response_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["responses"])


@router.get("/discussions/{discussion_id}/responses", response_model=list[ResponseDetail])
async def list_discussion_responses(
    discussion_id: str,
    service: ResponseService = Depends(get_response_service),
):
    """flat list of visible responses, oldest first"""
    return await service.list_responses(discussion_id)


@router.get("/discussions/{discussion_id}/thread", response_model=ThreadResponse)
async def get_discussion_thread(
    discussion_id: str,
    service: ResponseService = Depends(get_response_service),
):
    """responses nested by reply. replies to deleted responses show up as top-level."""
    threads = await service.get_thread(discussion_id)
    return ThreadResponse(
        discussionId=discussion_id,
        totalResponses=count_nodes(threads),
        maxDepth=settings.MAX_THREAD_DEPTH,
        threads=threads,
    )


@router.post(
    "/discussions/{discussion_id}/responses",
    response_model=ResponseDetail,
    status_code=status.HTTP_201_CREATED,
)
async def create_discussion_response(
    discussion_id: str,
    body: ResponseCreate,
    current_user: dict = Depends(get_current_user),
    service: ResponseService = Depends(get_response_service),
):
    return await service.create_response(discussion_id, current_user, body)


@router.post(
    "/responses/{response_id}/replies",
    response_model=ResponseDetail,
    status_code=status.HTTP_201_CREATED,
)
async def reply_to_response(
    response_id: str,
    body: ReplyCreate,
    current_user: dict = Depends(get_current_user),
    service: ResponseService = Depends(get_response_service),
):
    return await service.reply_to_response(response_id, current_user, body)


@router.get("/responses/{response_id}", response_model=ResponseDetail)
async def get_response(
    response_id: str,
    service: ResponseService = Depends(get_response_service),
):
    return await service.get_response(response_id)


@router.patch("/responses/{response_id}", response_model=ResponseDetail)
async def update_response(
    response_id: str,
    body: ResponseUpdate,
    current_user: dict = Depends(get_current_user),
    service: ResponseService = Depends(get_response_service),
):
    """edit own response. send the version you last read, 409 if it moved on."""
    return await service.update_response(response_id, current_user["id"], body)


@router.delete("/responses/{response_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_response(
    response_id: str,
    current_user: dict = Depends(get_current_user),
    service: ResponseService = Depends(get_response_service),
):
    """soft delete own response"""
    await service.delete_response(response_id, current_user["id"])
