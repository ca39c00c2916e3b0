# messaging/gateways/message_gateway.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from messaging.domain.entities import RecipientStatus, SendOptions
from messaging.gateways.interfaces import IMessageGateway
from messaging.infrastructure import models
from messaging.infrastructure.data_mappers import (
    MessageMapper,
    ReactionMapper,
    RecipientMapper,
)
from messaging.infrastructure.uow import UnitOfWork, UoWModel


class MessageGateway(IMessageGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Message] = MessageMapper(session)
        uow.mappers[models.MessageRecipient] = RecipientMapper(session)
        uow.mappers[models.MessageReaction] = ReactionMapper(session)

    async def get_message(self, message_id: str) -> Optional[UoWModel]:
        stmt = (
            select(models.Message)
            .filter(models.Message.id == message_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        message = result.scalar_one_or_none()
        return UoWModel(message, self.uow) if message else None

    async def get_by_client_id(
        self, conversation_id: str, client_message_id: str
    ) -> Optional[UoWModel]:
        stmt = select(models.Message).filter(
            models.Message.conversation_id == conversation_id,
            models.Message.client_message_id == client_message_id,
        )
        result = await self.session.execute(stmt)
        message = result.scalar_one_or_none()
        return UoWModel(message, self.uow) if message else None

    async def get_all(self, conversation_id: str) -> List[UoWModel]:
        stmt = (
            select(models.Message)
            .filter(
                models.Message.conversation_id == conversation_id,
                models.Message.is_deleted.is_(False),
            )
            .order_by(models.Message.created_at, models.Message.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        messages = result.scalars().all()
        return [UoWModel(message, self.uow) for message in messages]

    async def newest_visible(
        self, conversation_id: str, exclude_message_id: str
    ) -> Optional[UoWModel]:
        stmt = (
            select(models.Message)
            .filter(
                models.Message.conversation_id == conversation_id,
                models.Message.is_deleted.is_(False),
                models.Message.id != exclude_message_id,
            )
            .order_by(models.Message.created_at.desc(), models.Message.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        message = result.scalar_one_or_none()
        return UoWModel(message, self.uow) if message else None

    async def search(
        self,
        user_id: str,
        query: str,
        type: Optional[str] = None,
        priority: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[UoWModel]:
        pattern = f"%{query}%"
        stmt = (
            select(models.Message)
            .join(
                models.ConversationParticipant,
                models.ConversationParticipant.conversation_id
                == models.Message.conversation_id,
            )
            .filter(
                models.ConversationParticipant.user_id == user_id,
                models.Message.is_deleted.is_(False),
                or_(
                    models.Message.content.ilike(pattern),
                    models.Message.sender_name.ilike(pattern),
                ),
            )
        )
        if type:
            stmt = stmt.filter(models.Message.type == type)
        if priority:
            stmt = stmt.filter(models.Message.priority == priority)
        if date_from:
            stmt = stmt.filter(models.Message.created_at >= date_from)
        if date_to:
            stmt = stmt.filter(models.Message.created_at <= date_to)
        stmt = stmt.order_by(models.Message.created_at.desc(), models.Message.id.desc())
        result = await self.session.execute(stmt)
        messages = result.scalars().all()
        return [UoWModel(message, self.uow) for message in messages]

    def create_message(
        self,
        conversation_id: str,
        content: str,
        sender_id: str,
        sender_name: str,
        sender_role: str,
        participant_ids: List[str],
        options: SendOptions,
        now: datetime,
    ) -> UoWModel:
        db_message = models.Message(
            id=models.new_id(),
            conversation_id=conversation_id,
            client_message_id=options.client_message_id,
            content=content,
            type=options.type,
            priority=options.priority,
            sender_id=sender_id,
            sender_name=sender_name,
            sender_role=sender_role,
            parent_message_id=options.reply_to_message_id,
            reply_to_message_id=options.reply_to_message_id,
            thread_count=0,
            attachments=list(options.attachments),
            mentions=list(dict.fromkeys(options.mentions)),
            property_id=options.property_id,
            property_name=options.property_name,
            unit_id=options.unit_id,
            unit_number=options.unit_number,
            maintenance_request_id=options.maintenance_request_id,
            is_edited=False,
            is_deleted=False,
            created_at=now,
            updated_at=now,
        )
        for user_id in participant_ids:
            is_sender = user_id == sender_id
            db_message.recipient_rows.append(
                models.MessageRecipient(
                    message_id=db_message.id,
                    user_id=user_id,
                    status=RecipientStatus.READ if is_sender else RecipientStatus.SENT,
                    delivered_at=now,
                    read_at=now if is_sender else None,
                )
            )
        return self.uow.register_new(db_message)

    def edit_message(self, message: UoWModel, content: str, now: datetime) -> None:
        message.content = content
        message.is_edited = True
        message.edited_at = now
        message.updated_at = now

    def soft_delete_message(
        self, message: UoWModel, placeholder: str, now: datetime
    ) -> None:
        message.content = placeholder
        message.attachments = []
        message.is_deleted = True
        message.deleted_at = now
        message.updated_at = now

    def mark_recipient_read(
        self, recipient: models.MessageRecipient, read_at: datetime
    ) -> None:
        recipient.status = RecipientStatus.READ
        recipient.read_at = read_at
        self.uow.register_dirty(recipient)

    def mark_conversation_read(
        self, conversation_id: str, user_id: str, read_at: datetime
    ) -> None:
        message_ids = select(models.Message.id).where(
            models.Message.conversation_id == conversation_id
        )
        self.uow.register_statement(
            update(models.MessageRecipient)
            .where(
                models.MessageRecipient.user_id == user_id,
                models.MessageRecipient.status != RecipientStatus.READ,
                models.MessageRecipient.message_id.in_(message_ids),
            )
            .values(status=RecipientStatus.READ, read_at=read_at)
        )

    def increment_thread_count(self, message_id: str) -> None:
        self.uow.register_statement(
            update(models.Message)
            .where(models.Message.id == message_id)
            .values(thread_count=models.Message.thread_count + 1)
        )

    def add_reaction(
        self, message: UoWModel, user_id: str, user_name: str, emoji: str, now: datetime
    ) -> UoWModel:
        reaction = models.MessageReaction(
            id=models.new_id(),
            message_id=message.id,
            emoji=emoji,
            user_id=user_id,
            user_name=user_name,
            created_at=now,
        )
        message.updated_at = now
        return self.uow.register_new(reaction)

    def remove_reaction(self, reaction: models.MessageReaction) -> None:
        self.uow.register_deleted(reaction)
