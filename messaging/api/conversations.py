# messaging/api/conversations.py

from fastapi import APIRouter, Body, Depends, File, UploadFile

from messaging.api.dependencies import (
    get_attachment_interactor,
    get_conversation_interactor,
    get_current_user_id,
    get_fanout_interactor,
    get_typing_interactor,
)
from messaging.domain.entities import ConversationOptions, ParticipantProfile
from messaging.infrastructure import schemas
from messaging.interactors.attachment_interactor import AttachmentInteractor
from messaging.interactors.conversation_interactor import ConversationInteractor
from messaging.interactors.fanout_interactor import FanoutInteractor
from messaging.interactors.typing_interactor import TypingInteractor

router = APIRouter()


def to_profile(profile: schemas.ParticipantProfileIn) -> ParticipantProfile:
    return ParticipantProfile(**profile.model_dump())


@router.post("/", response_model=schemas.Conversation, status_code=201)
async def create_conversation(
    conversation: schemas.ConversationCreate,
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    options = ConversationOptions(
        description=conversation.description,
        profiles={
            user_id: to_profile(profile)
            for user_id, profile in conversation.profiles.items()
        },
        **conversation.model_dump(
            include={
                "property_id",
                "property_name",
                "unit_id",
                "unit_number",
                "maintenance_request_id",
            }
        ),
    )
    conversation_id = await conversation_interactor.create_conversation(
        conversation.title,
        conversation.type,
        conversation.participant_ids,
        current_user_id,
        options,
    )
    return await conversation_interactor.get_conversation(conversation_id)


@router.get("/", response_model=list[schemas.Conversation])
async def read_conversations(
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await conversation_interactor.get_conversations(current_user_id)


@router.get("/unread", response_model=schemas.UnreadTotal)
async def read_total_unread(
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    unread_count = await conversation_interactor.get_total_unread(current_user_id)
    return schemas.UnreadTotal(user_id=current_user_id, unread_count=unread_count)


@router.get("/{conversation_id}", response_model=schemas.Conversation)
async def read_conversation(
    conversation_id: str,
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await conversation_interactor.get_conversation(conversation_id)


@router.patch("/{conversation_id}", response_model=schemas.Conversation)
async def update_conversation(
    conversation_id: str,
    fields: dict = Body(...),
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await conversation_interactor.update_conversation(
        conversation_id, fields, current_user_id
    )


@router.delete("/{conversation_id}", status_code=204)
async def delete_conversation(
    conversation_id: str,
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    await conversation_interactor.delete_conversation(conversation_id, current_user_id)


@router.post("/{conversation_id}/participants", response_model=schemas.Conversation)
async def add_participant(
    conversation_id: str,
    participant: schemas.ParticipantAdd,
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    profile = to_profile(participant.profile) if participant.profile else None
    return await conversation_interactor.add_participant(
        conversation_id, participant.user_id, current_user_id, profile
    )


@router.delete(
    "/{conversation_id}/participants/{user_id}", response_model=schemas.Conversation
)
async def remove_participant(
    conversation_id: str,
    user_id: str,
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await conversation_interactor.remove_participant(
        conversation_id, user_id, current_user_id
    )


@router.put("/{conversation_id}/settings", response_model=schemas.ParticipantSettings)
async def update_settings(
    conversation_id: str,
    settings: schemas.ParticipantSettingsUpdate,
    conversation_interactor: ConversationInteractor = Depends(get_conversation_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    return await conversation_interactor.update_settings(
        conversation_id, current_user_id, settings
    )


@router.post("/{conversation_id}/read", status_code=204)
async def mark_conversation_read(
    conversation_id: str,
    fanout_interactor: FanoutInteractor = Depends(get_fanout_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    await fanout_interactor.mark_conversation_read(conversation_id, current_user_id)


@router.put("/{conversation_id}/typing", response_model=list[schemas.TypingIndicator])
async def set_typing(
    conversation_id: str,
    typing: schemas.TypingRequest,
    typing_interactor: TypingInteractor = Depends(get_typing_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    await typing_interactor.set_typing(
        conversation_id, current_user_id, typing.user_name, typing.is_typing
    )
    return await typing_interactor.get_typing(conversation_id, exclude_user_id=current_user_id)


@router.post("/{conversation_id}/attachments", response_model=schemas.Attachment)
async def upload_attachment(
    conversation_id: str,
    file: UploadFile = File(...),
    attachment_interactor: AttachmentInteractor = Depends(get_attachment_interactor),
    current_user_id: str = Depends(get_current_user_id),
):
    data = await file.read()
    return await attachment_interactor.upload_attachment(
        conversation_id,
        current_user_id,
        file.filename or "attachment",
        data,
        file.content_type,
    )
