# messaging/infrastructure/models.py
import uuid
from datetime import UTC, datetime
from typing import Any, List, Optional

from messaging.infrastructure.database import Base
from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, including on SQLite which stores them naive."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


class Conversation(Base):
    __tablename__ = "conversations"

    __table_args__ = (Index("ix_conversations_last_activity", "last_activity_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String)
    type: Mapped[str] = mapped_column(String(32))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String, index=True)

    property_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    property_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    unit_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    unit_number: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    maintenance_request_id: Mapped[Optional[str]] = mapped_column(
        String, nullable=True
    )

    # denormalized snapshot of the newest non-deleted message
    last_message_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    last_message_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_message_sender_id: Mapped[Optional[str]] = mapped_column(
        String, nullable=True
    )
    last_message_sender_name: Mapped[Optional[str]] = mapped_column(
        String, nullable=True
    )
    last_message_created_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )

    last_activity_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow
    )
    message_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow
    )

    members: Mapped[List["ConversationParticipant"]] = relationship(
        "ConversationParticipant",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ConversationParticipant.joined_at",
    )

    @property
    def participants(self) -> dict[str, "ConversationParticipant"]:
        return {member.user_id: member for member in self.members}

    @property
    def settings(self) -> dict[str, "ConversationParticipant"]:
        return self.participants

    @property
    def unread_count(self) -> dict[str, int]:
        return {member.user_id: member.unread_count for member in self.members}

    @property
    def participant_ids(self) -> list[str]:
        return [member.user_id for member in self.members]

    @property
    def last_message(self) -> Optional[dict[str, Any]]:
        if self.last_message_id is None:
            return None
        return {
            "id": self.last_message_id,
            "content": self.last_message_content,
            "sender_id": self.last_message_sender_id,
            "sender_name": self.last_message_sender_name,
            "created_at": self.last_message_created_at,
        }


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"

    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(String, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String)
    avatar: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, default=False)
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow)
    last_read_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )

    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    is_muted: Mapped[bool] = mapped_column(Boolean, default=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    unread_count: Mapped[int] = mapped_column(Integer, default=0)


class Message(Base):
    __tablename__ = "messages"

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
        Index("ix_messages_conversation_deleted", "conversation_id", "is_deleted"),
        UniqueConstraint(
            "conversation_id", "client_message_id", name="uq_messages_client_id"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    conversation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), index=True
    )
    client_message_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    content: Mapped[str] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(32))
    priority: Mapped[str] = mapped_column(String(16))

    sender_id: Mapped[str] = mapped_column(String, index=True)
    sender_name: Mapped[str] = mapped_column(String)
    sender_role: Mapped[str] = mapped_column(String)

    parent_message_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    reply_to_message_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True
    )
    thread_count: Mapped[int] = mapped_column(Integer, default=0)

    attachments: Mapped[list] = mapped_column(JSON, default=list)
    mentions: Mapped[list] = mapped_column(JSON, default=list)

    property_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    property_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    unit_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    unit_number: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    maintenance_request_id: Mapped[Optional[str]] = mapped_column(
        String, nullable=True
    )

    is_edited: Mapped[bool] = mapped_column(Boolean, default=False)
    edited_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow
    )

    recipient_rows: Mapped[List["MessageRecipient"]] = relationship(
        "MessageRecipient", lazy="selectin", cascade="all, delete-orphan"
    )
    reaction_rows: Mapped[List["MessageReaction"]] = relationship(
        "MessageReaction",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="MessageReaction.created_at",
    )

    @property
    def recipients(self) -> dict[str, "MessageRecipient"]:
        return {row.user_id: row for row in self.recipient_rows}

    @property
    def reactions(self) -> dict[str, "MessageReaction"]:
        return {row.id: row for row in self.reaction_rows}


class MessageRecipient(Base):
    __tablename__ = "message_recipients"

    __table_args__ = (Index("ix_message_recipients_user_status", "user_id", "status"),)

    message_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    status: Mapped[str] = mapped_column(String(16))
    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    read_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )


class MessageReaction(Base):
    __tablename__ = "message_reactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    message_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("messages.id", ondelete="CASCADE"), index=True
    )
    emoji: Mapped[str] = mapped_column(String(32))
    user_id: Mapped[str] = mapped_column(String)
    user_name: Mapped[str] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow
    )


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String, index=True)
    message_id: Mapped[str] = mapped_column(String(36))
    conversation_id: Mapped[str] = mapped_column(String(36), index=True)
    type: Mapped[str] = mapped_column(String(32))
    title: Mapped[str] = mapped_column(String)
    body: Mapped[str] = mapped_column(Text)
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow
    )


class TypingIndicator(Base):
    __tablename__ = "typing_indicators"

    conversation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    user_name: Mapped[str] = mapped_column(String)
    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow
    )
