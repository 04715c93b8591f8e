"""
Direct messaging endpoints.

Route summary
-------------
GET   /              the caller's conversations, newest first
GET   /?conversation_id=…    one conversation (404 unless the caller takes part)
POST  /              send a message
PATCH /              mark a message read/unread (recipient only)
"""
from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from skillsmatrix.database import get_db
from skillsmatrix.dependencies.auth import CurrentUser, get_current_user
from skillsmatrix.models.schemas import (
    ConversationResponse,
    MessageCreate,
    MessageMarkRead,
    MessageResponse,
)
from skillsmatrix.services.messaging import (
    MessageRecord,
    MessageStore,
    SqlMessageStore,
    conversations_for_user,
    find_conversation,
    new_message_id,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_message_store(db: AsyncSession = Depends(get_db)) -> MessageStore:
    """Database-backed message store."""
    return SqlMessageStore(db)


@router.get(
    "",
    response_model=Union[List[ConversationResponse], ConversationResponse],
    summary="List conversations or fetch one",
)
async def list_messages(
    conversation_id: Optional[str] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    store: MessageStore = Depends(get_message_store),
):
    if conversation_id:
        conversation = await find_conversation(store, user.id, conversation_id)
        if conversation is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found.",
            )
        return ConversationResponse.model_validate(dataclasses.asdict(conversation))

    conversations = await conversations_for_user(store, user.id)
    return [ConversationResponse.model_validate(dataclasses.asdict(c)) for c in conversations]


@router.post(
    "",
    response_model=MessageResponse,
    summary="Send a message",
)
async def send_message(
    body: MessageCreate,
    user: CurrentUser = Depends(get_current_user),
    store: MessageStore = Depends(get_message_store),
):
    if not (body.to_id and body.to_id.strip()) or not (body.content and body.content.strip()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: to_id and content.",
        )

    message = await store.add(
        MessageRecord(
            id=new_message_id(),
            from_id=user.id,
            from_name=user.name,
            from_role=user.role,
            to_id=body.to_id.strip(),
            to_name=body.to_name,
            to_role=body.to_role.upper() if body.to_role else None,
            subject=body.subject or "Message",
            content=body.content,
        )
    )
    logger.info("Message %s sent from %s to %s", message.id, message.from_id, message.to_id)
    return MessageResponse.model_validate(dataclasses.asdict(message))


@router.patch("", response_model=MessageResponse, summary="Mark a message read")
async def mark_read(
    body: MessageMarkRead,
    user: CurrentUser = Depends(get_current_user),
    store: MessageStore = Depends(get_message_store),
):
    message = await store.get(body.message_id)
    if message is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Message not found.",
        )
    if message.to_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the recipient can change a message's read state.",
        )

    updated = await store.set_read(body.message_id, body.is_read)
    return MessageResponse.model_validate(dataclasses.asdict(updated))
