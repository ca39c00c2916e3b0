# messaging/infrastructure/schemas.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from messaging.domain.entities import (
    AttachmentKind,
    ConversationType,
    MessagePriority,
    MessageType,
    RecipientStatus,
)


class ParticipantProfileIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr | None = None
    role: str = "tenant"
    avatar: str | None = None


class Participant(BaseModel):
    user_id: str
    name: str
    email: str | None = None
    role: str
    avatar: str | None = None
    is_online: bool
    joined_at: datetime
    last_read_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ParticipantSettings(BaseModel):
    is_archived: bool = False
    is_muted: bool = False
    is_pinned: bool = False

    model_config = ConfigDict(from_attributes=True)


class ParticipantSettingsUpdate(BaseModel):
    is_archived: bool | None = None
    is_muted: bool | None = None
    is_pinned: bool | None = None


class LastMessage(BaseModel):
    id: str
    content: str
    sender_id: str
    sender_name: str
    created_at: datetime


class LinkedEntitiesIn(BaseModel):
    property_id: str | None = None
    property_name: str | None = None
    unit_id: str | None = None
    unit_number: str | None = None
    maintenance_request_id: str | None = None


class ConversationCreate(LinkedEntitiesIn):
    title: str = Field(..., min_length=1)
    type: ConversationType = ConversationType.DIRECT
    description: str | None = None
    participant_ids: list[str]
    profiles: dict[str, ParticipantProfileIn] = Field(default_factory=dict)


class ConversationUpdate(BaseModel):
    title: str | None = Field(None, min_length=1)
    type: ConversationType | None = None
    description: str | None = None
    property_id: str | None = None
    property_name: str | None = None
    unit_id: str | None = None
    unit_number: str | None = None
    maintenance_request_id: str | None = None

    model_config = ConfigDict(extra="forbid")


class ParticipantAdd(BaseModel):
    user_id: str = Field(..., min_length=1)
    profile: ParticipantProfileIn | None = None


class Conversation(BaseModel):
    id: str
    title: str
    type: ConversationType
    description: str | None = None
    created_by: str
    participants: dict[str, Participant] = Field(default_factory=dict)
    settings: dict[str, ParticipantSettings] = Field(default_factory=dict)
    unread_count: dict[str, int] = Field(default_factory=dict)
    last_message: LastMessage | None = None
    last_activity_at: datetime
    message_count: int
    property_id: str | None = None
    property_name: str | None = None
    unit_id: str | None = None
    unit_number: str | None = None
    maintenance_request_id: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Attachment(BaseModel):
    id: str
    name: str
    type: AttachmentKind
    size: int
    url: str
    mime_type: str
    uploaded_at: datetime
    uploaded_by: str

    model_config = ConfigDict(from_attributes=True, frozen=True)


class Recipient(BaseModel):
    status: RecipientStatus
    delivered_at: datetime | None = None
    read_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class Reaction(BaseModel):
    emoji: str
    user_id: str
    user_name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageCreate(LinkedEntitiesIn):
    conversation_id: str
    content: str
    sender_name: str
    sender_role: str = "tenant"
    type: MessageType = MessageType.DIRECT
    priority: MessagePriority = MessagePriority.MEDIUM
    attachments: list[Attachment] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)
    reply_to_message_id: str | None = None
    client_message_id: str | None = None


class MessageUpdate(BaseModel):
    content: str


class Message(BaseModel):
    id: str
    conversation_id: str
    client_message_id: str | None = None
    content: str
    type: MessageType
    priority: MessagePriority
    sender_id: str
    sender_name: str
    sender_role: str
    recipients: dict[str, Recipient] = Field(default_factory=dict)
    parent_message_id: str | None = None
    reply_to_message_id: str | None = None
    thread_count: int = 0
    attachments: list[Attachment] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)
    property_id: str | None = None
    property_name: str | None = None
    unit_id: str | None = None
    unit_number: str | None = None
    maintenance_request_id: str | None = None
    is_edited: bool = False
    edited_at: datetime | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None
    reactions: dict[str, Reaction] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReactionCreate(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=32)
    user_name: str


class ReactionCreated(BaseModel):
    id: str


class TypingRequest(BaseModel):
    user_name: str
    is_typing: bool


class TypingIndicator(BaseModel):
    conversation_id: str
    user_id: str
    user_name: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class Notification(BaseModel):
    id: str
    user_id: str
    message_id: str
    conversation_id: str
    type: str
    title: str
    body: str
    data: dict = Field(default_factory=dict)
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnreadTotal(BaseModel):
    user_id: str
    unread_count: int
