# messaging/interactors/message_interactor.py
from datetime import datetime
from typing import List, Optional

from messaging.config import AppConfig
from messaging.domain.entities import MessagePriority, MessageType, RecipientStatus
from messaging.domain.events import MessageDeleted, MessageStatusUpdated, MessageUpdated
from messaging.domain.exceptions import (
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from messaging.gateways.conversation_gateway import ConversationGateway
from messaging.gateways.message_gateway import MessageGateway
from messaging.infrastructure import schemas
from messaging.infrastructure.event_dispatcher import EventDispatcher
from messaging.infrastructure.models import utcnow
from messaging.infrastructure.uow import UnitOfWork, UoWModel


class MessageInteractor:
    def __init__(
        self,
        uow: UnitOfWork,
        message_gateway: MessageGateway,
        conversation_gateway: ConversationGateway,
        event_dispatcher: EventDispatcher,
        config: AppConfig,
    ):
        self.uow = uow
        self.message_gateway = message_gateway
        self.conversation_gateway = conversation_gateway
        self.event_dispatcher = event_dispatcher
        self.config = config

    async def get_message(self, message_id: str) -> schemas.Message:
        message = await self._load(message_id)
        return schemas.Message.model_validate(message)

    async def get_messages(self, conversation_id: str) -> List[schemas.Message]:
        messages = await self.message_gateway.get_all(conversation_id)
        return [schemas.Message.model_validate(message) for message in messages]

    async def search_messages(
        self,
        user_id: str,
        query: str,
        type: Optional[MessageType] = None,
        priority: Optional[MessagePriority] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[schemas.Message]:
        messages = await self.message_gateway.search(
            user_id, query, type, priority, date_from, date_to
        )
        return [schemas.Message.model_validate(message) for message in messages]

    async def edit_message(
        self, message_id: str, content: str, editor_id: str
    ) -> schemas.Message:
        message = await self._load(message_id)
        self._ensure_owner(message, editor_id)
        if message.is_deleted:
            raise ValidationFailedError("Deleted messages cannot be edited", message_id=message_id)
        if not content or not content.strip():
            raise ValidationFailedError("Message content must not be blank")

        conversation = await self.conversation_gateway.get_conversation(message.conversation_id)
        is_last_message = conversation.last_message_id == message.id
        now = utcnow()

        self.message_gateway.edit_message(message, content, now)
        if is_last_message:
            self.conversation_gateway.set_last_message(
                message.conversation_id, message, self.config.LAST_MESSAGE_PREVIEW_LENGTH, now
            )
        await self.uow.commit()

        await self.event_dispatcher.dispatch(
            MessageUpdated(
                conversation_id=message.conversation_id,
                participant_ids=conversation.participant_ids,
                message_id=message.id,
                sender_id=message.sender_id,
                content=message.content,
                created_at=message.created_at,
                updated_at=now,
                is_deleted=False,
                conversation_changed=is_last_message,
            )
        )
        return await self.get_message(message_id)

    async def delete_message(self, message_id: str, requester_id: str) -> schemas.Message:
        message = await self._load(message_id)
        self._ensure_owner(message, requester_id)
        if message.is_deleted:
            return schemas.Message.model_validate(message)

        conversation = await self.conversation_gateway.get_conversation(message.conversation_id)
        is_last_message = conversation.last_message_id == message.id
        replacement = None
        if is_last_message:
            replacement = await self.message_gateway.newest_visible(
                message.conversation_id, exclude_message_id=message.id
            )
        now = utcnow()

        self.conversation_gateway.decrement_unread_for(message)
        self.message_gateway.soft_delete_message(
            message, self.config.DELETED_MESSAGE_PLACEHOLDER, now
        )
        if is_last_message:
            self.conversation_gateway.set_last_message(
                message.conversation_id,
                replacement,
                self.config.LAST_MESSAGE_PREVIEW_LENGTH,
                now,
            )
        await self.uow.commit()

        await self.event_dispatcher.dispatch(
            MessageDeleted(
                conversation_id=message.conversation_id,
                participant_ids=conversation.participant_ids,
                message_id=message.id,
                sender_id=message.sender_id,
                content=message.content,
                created_at=message.created_at,
                updated_at=now,
                is_deleted=True,
                conversation_changed=True,
            )
        )
        return await self.get_message(message_id)

    async def mark_read(self, message_id: str, user_id: str) -> schemas.Message:
        message = await self._load(message_id)
        recipient = message.recipients.get(user_id)
        if recipient is None:
            raise NotFoundError(
                "Recipient not found", message_id=message_id, user_id=user_id
            )

        if recipient.status != RecipientStatus.READ:
            now = utcnow()
            self.message_gateway.mark_recipient_read(recipient, now)
            await self.uow.commit()
            await self.event_dispatcher.dispatch(
                MessageStatusUpdated(
                    message_id=message_id,
                    conversation_id=message.conversation_id,
                    user_id=user_id,
                    status=RecipientStatus.READ,
                    read_at=now,
                )
            )
        return await self.get_message(message_id)

    async def add_reaction(
        self, message_id: str, user_id: str, user_name: str, emoji: str
    ) -> str:
        message = await self._load(message_id)
        if message.is_deleted:
            raise ValidationFailedError("Cannot react to a deleted message", message_id=message_id)
        if not emoji or not emoji.strip():
            raise ValidationFailedError("Emoji must not be blank")

        now = utcnow()
        reaction = self.message_gateway.add_reaction(message, user_id, user_name, emoji, now)
        await self.uow.commit()

        await self._dispatch_reaction_change(message, now)
        return reaction.id

    async def remove_reaction(self, message_id: str, reaction_id: str, user_id: str) -> None:
        message = await self._load(message_id)
        reaction = message.reactions.get(reaction_id)
        if reaction is None:
            raise NotFoundError(
                "Reaction not found", message_id=message_id, reaction_id=reaction_id
            )
        if reaction.user_id != user_id:
            raise UnauthorizedError(
                "Only the reacting user may remove a reaction", reaction_id=reaction_id
            )

        now = utcnow()
        self.message_gateway.remove_reaction(reaction)
        message.updated_at = now
        await self.uow.commit()

        await self._dispatch_reaction_change(message, now)

    async def _dispatch_reaction_change(self, message: UoWModel, now: datetime) -> None:
        await self.event_dispatcher.dispatch(
            MessageUpdated(
                conversation_id=message.conversation_id,
                message_id=message.id,
                sender_id=message.sender_id,
                content=message.content,
                created_at=message.created_at,
                updated_at=now,
                is_deleted=message.is_deleted,
            )
        )

    async def _load(self, message_id: str) -> UoWModel:
        message = await self.message_gateway.get_message(message_id)
        if not message:
            raise NotFoundError("Message not found", message_id=message_id)
        return message

    @staticmethod
    def _ensure_owner(message: UoWModel, user_id: str) -> None:
        if message.sender_id != user_id:
            raise UnauthorizedError(
                "Only the sender may change this message",
                message_id=message.id,
                user_id=user_id,
            )
