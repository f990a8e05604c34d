# response models - creation, edit, and threaded read schemas
# a response with parentResponseId = null is a top-level (root) response

from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel, Field

from commonground.models.user import UserSummary


class CitationInput(BaseModel):
    url: str = Field(..., min_length=1, description="cited source url (http/https)")
    title: Optional[str] = Field(None, max_length=500)

    model_config = {"str_strip_whitespace": True}


class CitationResponse(BaseModel):
    original_url: str = Field(..., alias="originalUrl")
    normalized_url: str = Field(..., alias="normalizedUrl")
    title: Optional[str] = None
    resolved_ip: Optional[str] = Field(None, alias="resolvedIp")
    validation_status: Literal["UNVERIFIED", "VALID", "INVALID"] = Field("UNVERIFIED", alias="validationStatus")
    created_at: datetime = Field(..., alias="createdAt")

    model_config = {"populate_by_name": True}


class ReplyCreate(BaseModel):
    """payload for replying to an existing response"""
    content: str = Field(..., min_length=10, max_length=10000, description="response text")
    citations: list[CitationInput] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


class ResponseCreate(ReplyCreate):
    """payload for posting into a discussion, optionally as a reply"""
    parent_response_id: Optional[str] = Field(None, alias="parentResponseId")


class ResponseUpdate(BaseModel):
    """author edit; version must match the stored version"""
    content: Optional[str] = Field(None, min_length=10, max_length=10000)
    citations: Optional[list[CitationInput]] = None
    version: int = Field(..., ge=1, description="version the client last read")

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


class ResponseDetail(BaseModel):
    """single response as returned by the api"""
    id: str
    discussion_id: str = Field(..., alias="discussionId")
    content: str
    author: UserSummary
    parent_id: Optional[str] = Field(None, alias="parentResponseId")
    citations: list[CitationResponse] = Field(default_factory=list)
    version: int = 1
    edit_count: int = Field(0, alias="editCount")
    edited_at: Optional[datetime] = Field(None, alias="editedAt")
    deleted_at: Optional[datetime] = Field(None, alias="deletedAt")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    reply_count: int = Field(0, alias="replyCount")

    model_config = {"populate_by_name": True}


class ThreadNode(ResponseDetail):
    """response placed in a reply tree"""
    depth: int = 0
    replies: list["ThreadNode"] = Field(default_factory=list)


class ThreadResponse(BaseModel):
    discussion_id: str = Field(..., alias="discussionId")
    total_responses: int = Field(..., alias="totalResponses")
    max_depth: int = Field(..., alias="maxDepth")
    threads: list[ThreadNode]

    model_config = {"populate_by_name": True}
