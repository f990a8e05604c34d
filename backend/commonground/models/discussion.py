# discussion models - creation, listing, and detail schemas

from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

from commonground.models.response import CitationInput, ResponseDetail
from commonground.models.user import UserSummary

DiscussionStatus = Literal["ACTIVE", "ARCHIVED", "DELETED"]


class InitialResponse(BaseModel):
    content: str = Field(..., min_length=50, max_length=25000)
    citations: list[CitationInput] = Field(default_factory=list)

    model_config = {"str_strip_whitespace": True}


class DiscussionCreate(BaseModel):
    topic_id: str = Field(..., alias="topicId", min_length=1)
    title: str = Field(..., min_length=10, max_length=200)
    initial_response: InitialResponse = Field(..., alias="initialResponse")

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


class DiscussionResponse(BaseModel):
    id: str
    topic_id: str = Field(..., alias="topicId")
    title: str
    status: DiscussionStatus = "ACTIVE"
    creator: UserSummary
    response_count: int = Field(0, alias="responseCount")
    participant_count: int = Field(0, alias="participantCount")
    last_activity_at: datetime = Field(..., alias="lastActivityAt")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    model_config = {"populate_by_name": True}


class DiscussionDetail(DiscussionResponse):
    responses: list[ResponseDetail] = Field(default_factory=list)


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total_items: int = Field(..., alias="totalItems")
    total_pages: int = Field(..., alias="totalPages")
    has_next_page: bool = Field(..., alias="hasNextPage")
    has_previous_page: bool = Field(..., alias="hasPreviousPage")

    model_config = {"populate_by_name": True}


class DiscussionListResponse(BaseModel):
    data: list[DiscussionResponse]
    meta: PaginationMeta
