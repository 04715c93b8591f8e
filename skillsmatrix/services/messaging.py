"""
Direct messaging between students and lecturers.

Messages live behind the MessageStore interface.  SqlMessageStore keeps them
in the database; InMemoryMessageStore keeps them in a list and is meant for
tests.  Conversations are never stored: they are rebuilt from the flat
message list on every read.
"""
from __future__ import annotations

import abc
import dataclasses
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from skillsmatrix.models.database_models import Message

logger = logging.getLogger(__name__)


def new_message_id() -> str:
    return f"msg-{uuid.uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclasses.dataclass
class MessageRecord:
    id: str
    from_id: str
    to_id: str
    content: str
    subject: str = "Message"
    from_name: Optional[str] = None
    from_role: Optional[str] = None
    to_name: Optional[str] = None
    to_role: Optional[str] = None
    is_read: bool = False
    created_at: datetime = dataclasses.field(default_factory=_utcnow)
    updated_at: datetime = dataclasses.field(default_factory=_utcnow)


@dataclasses.dataclass
class Conversation:
    id: str
    participants: Tuple[str, str]
    participant_names: Dict[str, Optional[str]]
    last_message: str
    last_message_at: datetime
    messages: List[MessageRecord]


@dataclasses.dataclass
class ConversationSummary:
    id: str
    other_user_id: str
    other_user_name: Optional[str]
    other_user_role: Optional[str]
    last_message: str
    last_message_at: datetime
    unread_count: int
    messages: List[MessageRecord]


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class MessageStore(abc.ABC):
    """Read/write operations on the flat message list."""

    @abc.abstractmethod
    async def add(self, message: MessageRecord) -> MessageRecord: ...

    @abc.abstractmethod
    async def get(self, message_id: str) -> Optional[MessageRecord]: ...

    @abc.abstractmethod
    async def list_for_user(self, user_id: str) -> List[MessageRecord]:
        """Messages sent or received by *user_id*, oldest first."""

    @abc.abstractmethod
    async def set_read(self, message_id: str, is_read: bool = True) -> Optional[MessageRecord]: ...


class InMemoryMessageStore(MessageStore):
    def __init__(self, messages: Optional[Sequence[MessageRecord]] = None) -> None:
        self._messages: List[MessageRecord] = list(messages or [])

    async def add(self, message: MessageRecord) -> MessageRecord:
        self._messages.append(message)
        return message

    async def get(self, message_id: str) -> Optional[MessageRecord]:
        return next((m for m in self._messages if m.id == message_id), None)

    async def list_for_user(self, user_id: str) -> List[MessageRecord]:
        mine = [m for m in self._messages if user_id in (m.from_id, m.to_id)]
        return sorted(mine, key=lambda m: m.created_at)

    async def set_read(self, message_id: str, is_read: bool = True) -> Optional[MessageRecord]:
        message = await self.get(message_id)
        if message is not None:
            message.is_read = is_read
            message.updated_at = _utcnow()
        return message


def _to_record(row: Message) -> MessageRecord:
    return MessageRecord(
        id=row.id,
        from_id=row.from_id,
        from_name=row.from_name,
        from_role=row.from_role,
        to_id=row.to_id,
        to_name=row.to_name,
        to_role=row.to_role,
        subject=row.subject,
        content=row.content,
        is_read=row.is_read,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlMessageStore(MessageStore):
    """Database-backed store. Writes are committed immediately."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def add(self, message: MessageRecord) -> MessageRecord:
        row = Message(**dataclasses.asdict(message))
        self.db.add(row)
        await self.db.commit()
        return _to_record(row)

    async def get(self, message_id: str) -> Optional[MessageRecord]:
        row = await self.db.get(Message, message_id)
        return _to_record(row) if row is not None else None

    async def list_for_user(self, user_id: str) -> List[MessageRecord]:
        result = await self.db.execute(
            select(Message)
            .where(or_(Message.from_id == user_id, Message.to_id == user_id))
            .order_by(Message.created_at)
        )
        return [_to_record(row) for row in result.scalars().all()]

    async def set_read(self, message_id: str, is_read: bool = True) -> Optional[MessageRecord]:
        row = await self.db.get(Message, message_id)
        if row is None:
            return None
        row.is_read = is_read
        row.updated_at = _utcnow()
        await self.db.commit()
        return _to_record(row)


# ---------------------------------------------------------------------------
# Conversation aggregation
# ---------------------------------------------------------------------------

def build_conversations(messages: Sequence[MessageRecord]) -> List[Conversation]:
    """
    Group messages by unordered participant pair.

    The conversation id is ``"{from_id}-{to_id}"`` of its oldest message;
    the last message fields follow its newest message.
    """
    by_pair: Dict[frozenset, Conversation] = {}

    for message in sorted(messages, key=lambda m: m.created_at):
        pair = frozenset((message.from_id, message.to_id))
        conv = by_pair.get(pair)
        if conv is None:
            conv = Conversation(
                id=f"{message.from_id}-{message.to_id}",
                participants=(message.from_id, message.to_id),
                participant_names={},
                last_message=message.content,
                last_message_at=message.created_at,
                messages=[],
            )
            by_pair[pair] = conv

        conv.messages.append(message)
        if message.from_name:
            conv.participant_names[message.from_id] = message.from_name
        if message.to_name:
            conv.participant_names[message.to_id] = message.to_name
        if message.created_at >= conv.last_message_at:
            conv.last_message = message.content
            conv.last_message_at = message.created_at

    return list(by_pair.values())


def summarize_for_user(
    conversations: Sequence[Conversation], user_id: str
) -> List[ConversationSummary]:
    """The user's conversations, newest first, from the user's point of view."""
    summaries: List[ConversationSummary] = []

    for conv in conversations:
        if user_id not in conv.participants:
            continue
        other_id = next((p for p in conv.participants if p != user_id), user_id)
        latest = conv.messages[-1]
        if latest.from_id == user_id:
            other_role = latest.to_role or "STUDENT"
        else:
            other_role = latest.from_role or "LECTURER"

        summaries.append(
            ConversationSummary(
                id=conv.id,
                other_user_id=other_id,
                other_user_name=conv.participant_names.get(other_id),
                other_user_role=other_role,
                last_message=conv.last_message,
                last_message_at=conv.last_message_at,
                unread_count=sum(1 for m in conv.messages if m.to_id == user_id and not m.is_read),
                messages=list(conv.messages),
            )
        )

    summaries.sort(key=lambda s: s.last_message_at, reverse=True)
    return summaries


async def conversations_for_user(store: MessageStore, user_id: str) -> List[ConversationSummary]:
    return summarize_for_user(build_conversations(await store.list_for_user(user_id)), user_id)


async def find_conversation(
    store: MessageStore, user_id: str, conversation_id: str
) -> Optional[ConversationSummary]:
    for summary in await conversations_for_user(store, user_id):
        if summary.id == conversation_id:
            return summary
    return None
