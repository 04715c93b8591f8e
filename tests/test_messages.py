"""Tests for messaging: conversation aggregation, stores and the /api/messages endpoints."""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from skillsmatrix.services.messaging import (
    InMemoryMessageStore,
    MessageRecord,
    SqlMessageStore,
    build_conversations,
    conversations_for_user,
    find_conversation,
    new_message_id,
)

STUDENT = {"X-User-Id": "student-1", "X-User-Name": "Sam Student", "X-User-Role": "student"}
LECTURER = {"X-User-Id": "lecturer-1", "X-User-Name": "Lee Lecturer", "X-User-Role": "LECTURER"}
OTHER = {"X-User-Id": "student-2", "X-User-Name": "Other Student"}

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _msg(from_id, to_id, minutes, content="hi", is_read=False, **kwargs):
    return MessageRecord(
        id=new_message_id(),
        from_id=from_id,
        to_id=to_id,
        content=content,
        is_read=is_read,
        created_at=T0 + timedelta(minutes=minutes),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def test_message_ids_are_unique():
    ids = {new_message_id() for _ in range(200)}
    assert len(ids) == 200
    assert all(i.startswith("msg-") for i in ids)


def test_conversations_group_by_unordered_pair():
    messages = [
        _msg("lecturer-1", "student-1", 5, "second"),
        _msg("student-1", "lecturer-1", 0, "first"),
        _msg("student-2", "lecturer-1", 3, "other"),
    ]
    conversations = build_conversations(messages)

    assert len(conversations) == 2
    conv = next(c for c in conversations if "student-1" in c.participants)
    assert conv.id == "student-1-lecturer-1"
    assert [m.content for m in conv.messages] == ["first", "second"]
    assert conv.last_message == "second"
    assert conv.last_message_at == T0 + timedelta(minutes=5)


@pytest.mark.asyncio
async def test_summaries_from_each_side():
    store = InMemoryMessageStore([
        _msg("student-1", "lecturer-1", 0, "question", from_name="Sam", to_name="Lee",
             from_role="STUDENT", to_role="LECTURER"),
        _msg("lecturer-1", "student-1", 1, "answer", from_name="Lee", to_name="Sam",
             from_role="LECTURER", to_role="STUDENT"),
        _msg("lecturer-1", "student-1", 2, "follow-up", from_name="Lee", to_name="Sam",
             from_role="LECTURER", to_role="STUDENT"),
    ])

    student_view = (await conversations_for_user(store, "student-1"))[0]
    assert student_view.other_user_id == "lecturer-1"
    assert student_view.other_user_name == "Lee"
    assert student_view.other_user_role == "LECTURER"
    assert student_view.unread_count == 2
    assert student_view.last_message == "follow-up"

    lecturer_view = (await conversations_for_user(store, "lecturer-1"))[0]
    assert lecturer_view.other_user_id == "student-1"
    assert lecturer_view.other_user_role == "STUDENT"
    assert lecturer_view.unread_count == 1


@pytest.mark.asyncio
async def test_missing_roles_fall_back_by_direction():
    store = InMemoryMessageStore([_msg("a", "b", 0)])
    assert (await conversations_for_user(store, "a"))[0].other_user_role == "STUDENT"
    assert (await conversations_for_user(store, "b"))[0].other_user_role == "LECTURER"


@pytest.mark.asyncio
async def test_conversations_newest_first_and_private():
    store = InMemoryMessageStore([
        _msg("student-1", "lecturer-1", 0),
        _msg("student-1", "lecturer-2", 10),
        _msg("student-2", "lecturer-1", 20),
    ])

    views = await conversations_for_user(store, "student-1")
    assert [v.other_user_id for v in views] == ["lecturer-2", "lecturer-1"]
    assert await find_conversation(store, "student-1", "student-2-lecturer-1") is None
    assert await find_conversation(store, "lecturer-1", "student-2-lecturer-1") is not None


@pytest.mark.asyncio
async def test_in_memory_set_read():
    message = _msg("a", "b", 0)
    store = InMemoryMessageStore([message])
    updated = await store.set_read(message.id)
    assert updated.is_read is True
    assert await store.set_read("msg-missing") is None


@pytest.mark.asyncio
async def test_sql_store_round_trip(db_session, session_factory):
    store = SqlMessageStore(db_session)
    first = await store.add(_msg("student-1", "lecturer-1", 0, "first"))
    await store.add(_msg("lecturer-1", "student-1", 1, "second"))
    await store.add(_msg("student-2", "lecturer-2", 2, "unrelated"))

    async with session_factory() as db:
        fresh = SqlMessageStore(db)
        listed = await fresh.list_for_user("student-1")
        assert [m.content for m in listed] == ["first", "second"]

        updated = await fresh.set_read(first.id)
        assert updated.is_read is True
        assert (await fresh.get(first.id)).is_read is True
        assert await fresh.get("msg-missing") is None


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

async def _send(client: AsyncClient, headers, to_id, content, **extra):
    body = {"to_id": to_id, "content": content, **extra}
    resp = await client.post("/api/messages", json=body, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_send_message(client: AsyncClient):
    data = await _send(
        client, STUDENT, "lecturer-1", "When is the practical?",
        to_name="Lee Lecturer", to_role="lecturer", subject="Practical",
    )
    assert data["id"].startswith("msg-")
    assert data["from_id"] == "student-1"
    assert data["from_name"] == "Sam Student"
    assert data["from_role"] == "STUDENT"
    assert data["to_role"] == "LECTURER"
    assert data["subject"] == "Practical"
    assert data["is_read"] is False


@pytest.mark.asyncio
async def test_send_message_default_subject(client: AsyncClient):
    data = await _send(client, STUDENT, "lecturer-1", "Hello")
    assert data["subject"] == "Message"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"content": "no recipient"},
        {"to_id": "lecturer-1"},
        {"to_id": "  ", "content": "blank recipient"},
        {"to_id": "lecturer-1", "content": "   "},
    ],
)
async def test_send_message_missing_fields(client: AsyncClient, body):
    resp = await client.post("/api/messages", json=body, headers=STUDENT)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_messages_require_user_header(client: AsyncClient):
    resp = await client.get("/api/messages")
    assert resp.status_code == 422

    resp = await client.get("/api/messages", headers={"X-User-Id": "  "})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_conversation_flow(client: AsyncClient):
    await _send(client, STUDENT, "lecturer-1", "Question", to_name="Lee Lecturer", to_role="LECTURER")
    reply = await _send(client, LECTURER, "student-1", "Answer", to_name="Sam Student", to_role="STUDENT")

    resp = await client.get("/api/messages", headers=STUDENT)
    assert resp.status_code == 200
    conversations = resp.json()
    assert len(conversations) == 1
    conv = conversations[0]
    assert conv["id"] == "student-1-lecturer-1"
    assert conv["other_user_id"] == "lecturer-1"
    assert conv["other_user_name"] == "Lee Lecturer"
    assert conv["last_message"] == "Answer"
    assert conv["unread_count"] == 1
    assert [m["content"] for m in conv["messages"]] == ["Question", "Answer"]

    resp = await client.patch("/api/messages", json={"message_id": reply["id"]}, headers=STUDENT)
    assert resp.status_code == 200
    assert resp.json()["is_read"] is True

    resp = await client.get(
        "/api/messages", params={"conversation_id": conv["id"]}, headers=STUDENT
    )
    assert resp.status_code == 200
    assert resp.json()["unread_count"] == 0


@pytest.mark.asyncio
async def test_conversation_not_visible_to_outsiders(client: AsyncClient):
    await _send(client, STUDENT, "lecturer-1", "Private")

    resp = await client.get(
        "/api/messages", params={"conversation_id": "student-1-lecturer-1"}, headers=OTHER
    )
    assert resp.status_code == 404

    resp = await client.get("/api/messages", headers=OTHER)
    assert resp.json() == []


@pytest.mark.asyncio
async def test_only_recipient_marks_read(client: AsyncClient):
    message = await _send(client, STUDENT, "lecturer-1", "Hello")

    resp = await client.patch("/api/messages", json={"message_id": message["id"]}, headers=STUDENT)
    assert resp.status_code == 403

    resp = await client.patch("/api/messages", json={"message_id": "msg-unknown"}, headers=LECTURER)
    assert resp.status_code == 404

    resp = await client.patch(
        "/api/messages", json={"message_id": message["id"], "is_read": True}, headers=LECTURER
    )
    assert resp.status_code == 200
