# response service - posting, replying, editing and reading discussion responses
# owns citation checks, the thread depth guard and participant bookkeeping

import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from commonground.config import settings
from commonground.errors import (
    CitationBlockedError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
    VersionConflictError,
)
from commonground.models.response import (
    CitationInput,
    CitationResponse,
    ReplyCreate,
    ResponseCreate,
    ResponseDetail,
    ResponseUpdate,
    ThreadNode,
)
from commonground.models.user import UserSummary
from commonground.services.db import Database
from commonground.services.thread_depth import ensure_reply_depth
from commonground.services.thread_tree import build_thread_tree
from commonground.services.url_validator import validate_citation_url

logger = logging.getLogger(__name__)


def doc_to_response(doc: dict, reply_count: int = 0) -> ResponseDetail:
    """convert a mongodb response document to the api model"""
    return ResponseDetail(
        id=doc["response_id"],
        discussionId=doc.get("discussion_id", ""),
        content=doc.get("content", ""),
        author=UserSummary(id=doc.get("author_id", ""), displayName=doc.get("author_display_name")),
        parentResponseId=doc.get("parent_id"),
        citations=[CitationResponse(**c) for c in doc.get("citations") or []],
        version=doc.get("version", 1),
        editCount=doc.get("edit_count", 0),
        editedAt=doc.get("edited_at"),
        deletedAt=doc.get("deleted_at"),
        createdAt=doc["created_at"],
        updatedAt=doc.get("updated_at"),
        replyCount=reply_count,
    )


class ResponseService:
    """response operations over one database handle"""

    def __init__(self, db: Database):
        self.db = db

    # lookups

    async def get_discussion(self, discussion_id: str) -> dict:
        discussion = await self.db.discussions.find_one({"discussion_id": discussion_id})
        if not discussion:
            raise NotFoundError(f"Discussion with ID {discussion_id} not found")
        return discussion

    async def _get_response_doc(self, response_id: str) -> dict:
        doc = await self.db.responses.find_one({"response_id": response_id})
        if not doc:
            raise NotFoundError(f"Response with ID {response_id} not found")
        return doc

    async def _visible_docs(self, discussion_id: str) -> list[dict]:
        cursor = self.db.responses.find(
            {"discussion_id": discussion_id, "deleted_at": None}
        ).sort("created_at", 1)
        return [doc async for doc in cursor]

    # citations

    async def validate_citations(self, citations: list[CitationInput], user_id: str) -> list[dict]:
        """check count and every url, returns citation documents ready to store"""
        if len(citations) > settings.MAX_CITATIONS_PER_RESPONSE:
            raise InvalidRequestError(
                f"Maximum {settings.MAX_CITATIONS_PER_RESPONSE} citations allowed per response"
            )

        now = datetime.now(timezone.utc).isoformat()
        docs = []
        for citation in citations:
            result = await validate_citation_url(citation.url)
            if not result.safe:
                logger.warning(f"Citation blocked for user {user_id}: {result.threat} {result.original_url}")
                raise CitationBlockedError(result.error or "unsafe URL")
            docs.append({
                "originalUrl": result.original_url,
                "normalizedUrl": result.normalized_url,
                "title": citation.title,
                "resolvedIp": result.resolved_ip,
                "validationStatus": "UNVERIFIED",
                "createdAt": now,
            })
        return docs

    # writes

    def build_response_doc(
        self,
        discussion_id: str,
        author: dict,
        content: str,
        citations: list[dict],
        parent_id: Optional[str] = None,
        now: Optional[str] = None,
    ) -> dict:
        now = now or datetime.now(timezone.utc).isoformat()
        return {
            "response_id": str(uuid.uuid4()),
            "discussion_id": discussion_id,
            "author_id": author["id"],
            "author_display_name": author.get("display_name"),
            "parent_id": parent_id,
            "content": content,
            "citations": citations,
            "version": 1,
            "edit_count": 0,
            "edited_at": None,
            "deleted_at": None,
            "created_at": now,
            "updated_at": now,
        }

    async def record_participation(self, discussion_id: str, user_id: str, now: str) -> bool:
        """bump the user's activity in a discussion, returns true for a first-time participant"""
        result = await self.db.participant_activity.update_one(
            {"discussion_id": discussion_id, "user_id": user_id},
            {
                "$inc": {"response_count": 1},
                "$set": {"last_activity_at": now},
                "$setOnInsert": {"first_seen_at": now},
            },
            upsert=True,
        )
        return result.upserted_id is not None

    async def _check_parent(self, discussion_id: str, parent_id: str) -> dict:
        parent = await self.db.responses.find_one({"response_id": parent_id})
        if not parent:
            raise NotFoundError(f"Parent response with ID {parent_id} not found")
        if parent.get("discussion_id") != discussion_id:
            raise InvalidRequestError("Parent response must belong to the same discussion")
        if parent.get("deleted_at"):
            raise InvalidRequestError("Cannot reply to deleted responses")
        await ensure_reply_depth(self.db, parent_id)
        return parent

    async def create_response(self, discussion_id: str, author: dict, body: ResponseCreate) -> ResponseDetail:
        """post a response into a discussion, as a root or as a reply"""
        discussion = await self.get_discussion(discussion_id)
        if discussion.get("status") != "ACTIVE":
            raise InvalidRequestError("Cannot add responses to non-active discussions")

        if len(body.citations) > settings.MAX_CITATIONS_PER_RESPONSE:
            raise InvalidRequestError(
                f"Maximum {settings.MAX_CITATIONS_PER_RESPONSE} citations allowed per response"
            )

        if body.parent_response_id:
            await self._check_parent(discussion_id, body.parent_response_id)

        citations = await self.validate_citations(body.citations, author["id"])

        now = datetime.now(timezone.utc).isoformat()
        doc = self.build_response_doc(
            discussion_id, author, body.content, citations,
            parent_id=body.parent_response_id, now=now,
        )
        await self.db.responses.insert_one(doc)

        first_time = await self.record_participation(discussion_id, author["id"], now)
        increments = {"response_count": 1}
        if first_time:
            increments["participant_count"] = 1
        await self.db.discussions.update_one(
            {"discussion_id": discussion_id},
            {"$inc": increments, "$set": {"last_activity_at": now, "updated_at": now}},
        )

        kind = "Reply" if body.parent_response_id else "Response"
        logger.info(f"{kind} posted: {doc['response_id']} in discussion {discussion_id} by {author['id']}")
        return doc_to_response(doc)

    async def reply_to_response(self, parent_id: str, author: dict, body: ReplyCreate) -> ResponseDetail:
        """reply to a response, the discussion is taken from the parent"""
        parent = await self.db.responses.find_one({"response_id": parent_id})
        if not parent:
            raise NotFoundError(f"Parent response with ID {parent_id} not found")
        if parent.get("deleted_at"):
            raise InvalidRequestError("Cannot reply to a deleted response")
        if not parent.get("discussion_id"):
            raise InvalidRequestError("Parent response must belong to a discussion")

        create = ResponseCreate(
            content=body.content,
            citations=body.citations,
            parentResponseId=parent_id,
        )
        return await self.create_response(parent["discussion_id"], author, create)

    async def update_response(self, response_id: str, user_id: str, body: ResponseUpdate) -> ResponseDetail:
        """author edit guarded by the version the client last saw"""
        doc = await self._get_response_doc(response_id)

        if doc.get("author_id") != user_id:
            raise PermissionDeniedError("You can only edit your own responses")
        if doc.get("deleted_at"):
            raise InvalidRequestError("Cannot edit deleted responses")

        discussion = await self.get_discussion(doc["discussion_id"])
        if discussion.get("status") != "ACTIVE":
            raise InvalidRequestError("Cannot edit responses in non-active discussions")

        if body.content is None and body.citations is None:
            raise InvalidRequestError("No fields to update")

        current_version = doc.get("version", 1)
        if current_version != body.version:
            logger.warning(f"Version conflict on {response_id}: client {body.version}, stored {current_version}")
            raise VersionConflictError(current_version, body.version)

        now = datetime.now(timezone.utc).isoformat()
        update_fields = {"edited_at": now, "updated_at": now}
        if body.content is not None:
            update_fields["content"] = body.content
        if body.citations is not None:
            update_fields["citations"] = await self.validate_citations(body.citations, user_id)

        result = await self.db.responses.update_one(
            {"response_id": response_id, "version": body.version, "deleted_at": None},
            {"$set": update_fields, "$inc": {"version": 1, "edit_count": 1}},
        )
        if result.matched_count == 0:
            # lost a race with another edit between read and write
            latest = await self._get_response_doc(response_id)
            raise VersionConflictError(latest.get("version", 1), body.version)

        updated = await self._get_response_doc(response_id)
        logger.info(f"Response edited: {response_id} now at version {updated.get('version')}")
        return doc_to_response(updated)

    async def delete_response(self, response_id: str, user_id: str) -> None:
        """soft delete; replies stay and are promoted to roots when the thread is read"""
        doc = await self._get_response_doc(response_id)

        if doc.get("author_id") != user_id:
            raise PermissionDeniedError("You can only delete your own responses")
        if doc.get("deleted_at"):
            raise InvalidRequestError("Response is already deleted")

        now = datetime.now(timezone.utc).isoformat()
        result = await self.db.responses.update_one(
            {"response_id": response_id, "deleted_at": None},
            {"$set": {"deleted_at": now, "updated_at": now}},
        )
        if result.modified_count == 0:
            # another delete won between read and write, counters were already adjusted
            raise InvalidRequestError("Response is already deleted")

        await self.db.discussions.update_one(
            {"discussion_id": doc["discussion_id"]},
            {"$inc": {"response_count": -1}, "$set": {"updated_at": now}},
        )
        await self.db.participant_activity.update_one(
            {"discussion_id": doc["discussion_id"], "user_id": user_id},
            {"$inc": {"response_count": -1}},
        )
        logger.info(f"Response deleted: {response_id} by {user_id}")

    # reads

    async def get_response(self, response_id: str) -> ResponseDetail:
        doc = await self._get_response_doc(response_id)
        if doc.get("deleted_at"):
            raise NotFoundError(f"Response with ID {response_id} not found")
        reply_count = await self.db.responses.count_documents({"parent_id": response_id, "deleted_at": None})
        return doc_to_response(doc, reply_count)

    async def list_responses(self, discussion_id: str) -> list[ResponseDetail]:
        """non-deleted responses of a discussion, oldest first"""
        await self.get_discussion(discussion_id)
        docs = await self._visible_docs(discussion_id)
        reply_counts = Counter(d["parent_id"] for d in docs if d.get("parent_id"))
        return [doc_to_response(d, reply_counts.get(d["response_id"], 0)) for d in docs]

    async def get_thread(self, discussion_id: str) -> list[ThreadNode]:
        """nested reply forest of a discussion"""
        responses = await self.list_responses(discussion_id)
        return build_thread_tree(responses)
