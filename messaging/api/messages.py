# messaging/api/messages.py
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from messaging.api.dependencies import (
    get_current_user_id,
    get_fanout_interactor,
    get_message_interactor,
)
from messaging.domain.entities import MessagePriority, MessageType, SendOptions
from messaging.infrastructure import schemas
from messaging.interactors.fanout_interactor import FanoutInteractor
from messaging.interactors.message_interactor import MessageInteractor

router = APIRouter()


@router.post("/", response_model=schemas.Message, status_code=201)
async def send_message(
    message: schemas.MessageCreate,
    fanout_interactor: FanoutInteractor = Depends(get_fanout_interactor),
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    options = SendOptions(
        type=message.type,
        priority=message.priority,
        attachments=[a.model_dump(mode="json") for a in message.attachments],
        mentions=message.mentions,
        reply_to_message_id=message.reply_to_message_id,
        client_message_id=message.client_message_id,
        property_id=message.property_id,
        property_name=message.property_name,
        unit_id=message.unit_id,
        unit_number=message.unit_number,
        maintenance_request_id=message.maintenance_request_id,
    )
    message_id = await fanout_interactor.send(
        message.conversation_id,
        message.content,
        current_user_id,
        message.sender_name,
        message.sender_role,
        options,
    )
    return await message_interactor.get_message(message_id)


@router.get("/search", response_model=list[schemas.Message])
async def search_messages(
    q: str = Query(..., min_length=1, description="Text to look for in content or sender name"),
    type: MessageType | None = None,
    priority: MessagePriority | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await message_interactor.search_messages(
        current_user_id, q, type, priority, date_from, date_to
    )


@router.get("/conversation/{conversation_id}", response_model=list[schemas.Message])
async def read_messages(
    conversation_id: str,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await message_interactor.get_messages(conversation_id)


@router.get("/{message_id}", response_model=schemas.Message)
async def read_message(
    message_id: str,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await message_interactor.get_message(message_id)


@router.put("/{message_id}", response_model=schemas.Message)
async def update_message(
    message_id: str,
    message_update: schemas.MessageUpdate,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await message_interactor.edit_message(
        message_id, message_update.content, current_user_id
    )


@router.delete("/{message_id}", response_model=schemas.Message)
async def delete_message(
    message_id: str,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await message_interactor.delete_message(message_id, current_user_id)


@router.put("/{message_id}/status", response_model=schemas.Message)
async def mark_message_read(
    message_id: str,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await message_interactor.mark_read(message_id, current_user_id)


@router.post(
    "/{message_id}/reactions", response_model=schemas.ReactionCreated, status_code=201
)
async def add_reaction(
    message_id: str,
    reaction: schemas.ReactionCreate,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    reaction_id = await message_interactor.add_reaction(
        message_id, current_user_id, reaction.user_name, reaction.emoji
    )
    return schemas.ReactionCreated(id=reaction_id)


@router.delete("/{message_id}/reactions/{reaction_id}", status_code=204)
async def remove_reaction(
    message_id: str,
    reaction_id: str,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    await message_interactor.remove_reaction(message_id, reaction_id, current_user_id)
