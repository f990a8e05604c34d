# shared fixtures for backend api tests
# provides mock db, test users, auth tokens, and httpx test client

import re

import pytest
import pytest_asyncio
from unittest.mock import MagicMock
from bson import ObjectId

from httpx import AsyncClient, ASGITransport

from commonground.config import settings
from commonground.main import app
from commonground.services.db import get_db
from commonground.services.auth_service import hash_password, create_access_token
from commonground.dependencies import get_current_user


# test ids (fixed so importing this module twice yields the same values)
ALICE_OID = ObjectId("65a000000000000000000001")
BOB_OID = ObjectId("65a000000000000000000002")
ALICE_ID = str(ALICE_OID)
BOB_ID = str(BOB_OID)

DISCUSSION_ID = "d0000000-0000-0000-0000-000000000001"
ARCHIVED_DISCUSSION_ID = "d0000000-0000-0000-0000-000000000002"
OTHER_DISCUSSION_ID = "d0000000-0000-0000-0000-000000000003"


# test user documents (as they'd appear from mongodb)

ALICE_DOC = {
    "_id": ALICE_OID,
    "email": "alice@commonground.dev",
    "hashed_password": hash_password("commonground123"),
    "display_name": "Alice",
    "email_verified": True,
    "created_at": "2026-01-01T00:00:00+00:00",
}

BOB_DOC = {
    "_id": BOB_OID,
    "email": "bob@commonground.dev",
    "hashed_password": hash_password("commonground123"),
    "display_name": "Bob",
    "email_verified": False,
    "created_at": "2026-01-02T00:00:00+00:00",
}


# sample data


def make_discussion(discussion_id, status="ACTIVE", **overrides):
    doc = {
        "_id": ObjectId(),
        "discussion_id": discussion_id,
        "topic_id": "topic-climate",
        "creator_id": ALICE_ID,
        "creator_display_name": "Alice",
        "title": "How should carbon pricing revenue be used?",
        "status": status,
        "response_count": 4,
        "participant_count": 2,
        "last_activity_at": "2026-01-29T10:15:00+00:00",
        "created_at": "2026-01-29T10:00:00+00:00",
        "updated_at": "2026-01-29T10:15:00+00:00",
    }
    doc.update(overrides)
    return doc


def make_response(response_id, parent_id=None, minute=0, author_id=ALICE_ID,
                  discussion_id=DISCUSSION_ID, **overrides):
    ts = f"2026-01-29T10:{minute:02d}:00+00:00"
    doc = {
        "_id": ObjectId(),
        "response_id": response_id,
        "discussion_id": discussion_id,
        "author_id": author_id,
        "author_display_name": "Alice" if author_id == ALICE_ID else "Bob",
        "parent_id": parent_id,
        "content": f"Response {response_id} with enough words to pass validation.",
        "citations": [],
        "version": 1,
        "edit_count": 0,
        "edited_at": None,
        "deleted_at": None,
        "created_at": ts,
        "updated_at": ts,
    }
    doc.update(overrides)
    return doc


def sample_responses():
    """r1 -> r2 -> r3 chain plus a second root r4"""
    return [
        make_response("r1", None, 0, ALICE_ID),
        make_response("r2", "r1", 5, BOB_ID),
        make_response("r3", "r2", 10, ALICE_ID),
        make_response("r4", None, 15, BOB_ID),
    ]


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor, supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = list(data or [])
        self._index = 0

    def sort(self, key, direction=1):
        self._data = sorted(
            self._data,
            key=lambda d: (d.get(key) is None, d.get(key)),
            reverse=direction == -1,
        )
        return self

    def skip(self, n):
        self._data = self._data[n:]
        return self

    def limit(self, n):
        self._data = self._data[:n]
        return self

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._data):
            raise StopAsyncIteration
        item = self._data[self._index]
        self._index += 1
        return item

    async def to_list(self, length=None):
        if length is not None:
            return self._data[:length]
        return self._data


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None):
        self._data = data or []
        self.inserted = []

    def find(self, query=None, projection=None):
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock(results)

    async def find_one(self, query=None, projection=None):
        if not query:
            return self._data[0] if self._data else None
        for doc in self._data:
            if self._matches(doc, query):
                return doc
        return None

    async def insert_one(self, doc):
        oid = doc.get("_id", ObjectId())
        doc["_id"] = oid
        self._data.append(doc)
        self.inserted.append(doc)
        result = MagicMock()
        result.inserted_id = oid
        return result

    async def count_documents(self, query=None):
        if not query:
            return len(self._data)
        return len([d for d in self._data if self._matches(d, query)])

    async def update_one(self, query, update, upsert=False):
        result = MagicMock()
        result.matched_count = 0
        result.modified_count = 0
        result.upserted_id = None
        for doc in self._data:
            if self._matches(doc, query):
                self._apply(doc, update)
                result.matched_count = 1
                result.modified_count = 1
                return result

        if upsert:
            # seed the new document from the equality fields of the filter
            doc = {k: v for k, v in query.items() if not k.startswith("$") and not isinstance(v, dict)}
            doc.update(update.get("$setOnInsert", {}))
            self._apply(doc, update)
            doc["_id"] = ObjectId()
            self._data.append(doc)
            self.inserted.append(doc)
            result.upserted_id = doc["_id"]
        return result

    def _apply(self, doc, update):
        if "$set" in update:
            doc.update(update["$set"])
        if "$inc" in update:
            for key, val in update["$inc"].items():
                doc[key] = doc.get(key, 0) + val

    async def delete_one(self, query):
        result = MagicMock()
        result.deleted_count = 0
        for i, doc in enumerate(self._data):
            if self._matches(doc, query):
                del self._data[i]
                result.deleted_count = 1
                break
        return result

    async def create_index(self, *args, **kwargs):
        return "mock_index"

    def _matches(self, doc, query):
        """basic mongodb query matching for tests"""
        for key, value in query.items():
            if key == "$or":
                if not any(self._matches(doc, cond) for cond in value):
                    return False
                continue
            doc_val = doc.get(key)
            if isinstance(value, dict):
                if "$in" in value:
                    if doc_val not in value["$in"]:
                        return False
                elif "$ne" in value:
                    if doc_val == value["$ne"]:
                        return False
                elif "$regex" in value:
                    flags = re.IGNORECASE if value.get("$options") == "i" else 0
                    if doc_val is None or not re.search(value["$regex"], str(doc_val), flags):
                        return False
            elif doc_val != value:
                return False
        return True


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self):
        self.users = MockCollection([ALICE_DOC.copy(), BOB_DOC.copy()])
        self.discussions = MockCollection([
            make_discussion(DISCUSSION_ID),
            make_discussion(
                ARCHIVED_DISCUSSION_ID,
                status="ARCHIVED",
                title="An archived discussion about transit",
                response_count=0,
                last_activity_at="2025-12-01T00:00:00+00:00",
                created_at="2025-12-01T00:00:00+00:00",
            ),
            make_discussion(
                OTHER_DISCUSSION_ID,
                topic_id="topic-housing",
                title="Should cities end single-family zoning?",
                response_count=9,
                last_activity_at="2026-01-20T08:00:00+00:00",
                created_at="2026-01-10T08:00:00+00:00",
            ),
        ])
        self.responses = MockCollection(sample_responses())
        self.participant_activity = MockCollection([
            {"_id": ObjectId(), "discussion_id": DISCUSSION_ID, "user_id": ALICE_ID, "response_count": 2},
            {"_id": ObjectId(), "discussion_id": DISCUSSION_ID, "user_id": BOB_ID, "response_count": 2},
        ])

    async def connect(self):
        pass

    async def close(self):
        pass


@pytest.fixture(autouse=True)
def no_dns(monkeypatch):
    """citation checks never hit the network in tests"""
    monkeypatch.setattr(settings, "CITATION_RESOLVE_DNS", False)


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


def _alice_dict():
    """verified user as get_current_user would return it"""
    doc = ALICE_DOC.copy()
    doc["id"] = ALICE_ID
    del doc["_id"]
    return doc


def _bob_dict():
    """unverified user as get_current_user would return it"""
    doc = BOB_DOC.copy()
    doc["id"] = BOB_ID
    del doc["_id"]
    return doc


@pytest.fixture
def alice_token():
    """jwt access token for the verified test user"""
    return create_access_token({"sub": ALICE_ID})


async def _client_for(mock_db, user_factory=None):
    async def override_get_db():
        return mock_db

    app.dependency_overrides[get_db] = override_get_db
    if user_factory is not None:
        async def override_get_current_user():
            return user_factory()

        app.dependency_overrides[get_current_user] = override_get_current_user

    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture
async def client(mock_db):
    """httpx async test client with mocked db, no auth override"""
    async with await _client_for(mock_db) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def alice_client(mock_db):
    """client authenticated as the verified user"""
    async with await _client_for(mock_db, _alice_dict) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def bob_client(mock_db):
    """client authenticated as the unverified user"""
    async with await _client_for(mock_db, _bob_dict) as ac:
        yield ac
    app.dependency_overrides.clear()
