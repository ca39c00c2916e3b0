# messaging/domain/events.py
from datetime import datetime

from pydantic import BaseModel, Field


class Event(BaseModel):
    pass


class ConversationEvent(Event):
    conversation_id: str
    participant_ids: list[str] = Field(default_factory=list)


class ConversationCreated(ConversationEvent):
    pass


class ConversationUpdated(ConversationEvent):
    pass


class ConversationDeleted(ConversationEvent):
    pass


class ConversationRead(ConversationEvent):
    user_id: str
    read_at: datetime


class MessageEvent(ConversationEvent):
    message_id: str
    sender_id: str
    content: str
    created_at: datetime
    is_deleted: bool
    # set when the conversation record (snapshot, counters) changed too
    conversation_changed: bool = False


class MessageCreated(MessageEvent):
    conversation_changed: bool = True


class MessageUpdated(MessageEvent):
    updated_at: datetime


class MessageDeleted(MessageEvent):
    updated_at: datetime | None = None


class MessageStatusUpdated(Event):
    message_id: str
    conversation_id: str
    user_id: str
    status: str
    read_at: datetime | None


class TypingChanged(Event):
    conversation_id: str
    user_id: str
    user_name: str
    is_typing: bool
