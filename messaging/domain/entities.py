# messaging/domain/entities.py
from dataclasses import dataclass, field
from enum import StrEnum


class ConversationType(StrEnum):
    DIRECT = "direct"
    GROUP = "group"
    PROPERTY = "property"
    MAINTENANCE = "maintenance"


class MessageType(StrEnum):
    DIRECT = "direct"
    NOTIFICATION = "notification"
    ALERT = "alert"
    REMINDER = "reminder"


class MessagePriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class RecipientStatus(StrEnum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class AttachmentKind(StrEnum):
    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"

    @classmethod
    def from_mime_type(cls, mime_type: str | None) -> "AttachmentKind":
        mime_type = (mime_type or "").lower()
        if mime_type.startswith("image/"):
            return cls.IMAGE
        if mime_type.startswith("video/"):
            return cls.VIDEO
        if mime_type.startswith("audio/"):
            return cls.AUDIO
        return cls.DOCUMENT


class NotificationType(StrEnum):
    NEW_MESSAGE = "new_message"
    MENTION = "mention"
    REPLY = "reply"


DEFAULT_PARTICIPANT_ROLE = "tenant"


@dataclass
class ParticipantProfile:
    name: str
    email: str | None = None
    role: str = DEFAULT_PARTICIPANT_ROLE
    avatar: str | None = None


@dataclass
class LinkedEntities:
    """References to property-management records owned by other services."""

    property_id: str | None = None
    property_name: str | None = None
    unit_id: str | None = None
    unit_number: str | None = None
    maintenance_request_id: str | None = None


@dataclass
class ConversationOptions(LinkedEntities):
    description: str | None = None
    profiles: dict[str, ParticipantProfile] = field(default_factory=dict)


@dataclass
class SendOptions(LinkedEntities):
    type: MessageType = MessageType.DIRECT
    priority: MessagePriority = MessagePriority.MEDIUM
    attachments: list[dict] = field(default_factory=list)
    mentions: list[str] = field(default_factory=list)
    reply_to_message_id: str | None = None
    client_message_id: str | None = None
