# messaging/interactors/fanout_interactor.py
import logging
from dataclasses import replace
from typing import Optional

from pydantic import ValidationError

from messaging.config import AppConfig
from messaging.domain.entities import DEFAULT_PARTICIPANT_ROLE, SendOptions
from messaging.domain.events import ConversationRead, MessageCreated
from messaging.domain.exceptions import (
    NotFoundError,
    NotificationDeliveryError,
    UnauthorizedError,
    ValidationFailedError,
)
from messaging.gateways.conversation_gateway import ConversationGateway
from messaging.gateways.message_gateway import MessageGateway
from messaging.infrastructure import schemas
from messaging.infrastructure.event_dispatcher import EventDispatcher
from messaging.infrastructure.models import utcnow
from messaging.infrastructure.uow import UnitOfWork
from messaging.interactors.notification_interactor import NotificationInteractor


class FanoutInteractor:
    """Sends messages and keeps the conversation's denormalized state in step.

    A send writes the message, its recipient rows, the conversation snapshot
    and every participant's unread counter in one transaction. Notification
    records are written afterwards in a transaction of their own; losing them
    never undoes a delivered message.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        conversation_gateway: ConversationGateway,
        message_gateway: MessageGateway,
        notification_interactor: NotificationInteractor,
        event_dispatcher: EventDispatcher,
        config: AppConfig,
        logger: logging.Logger,
    ):
        self.uow = uow
        self.conversation_gateway = conversation_gateway
        self.message_gateway = message_gateway
        self.notification_interactor = notification_interactor
        self.event_dispatcher = event_dispatcher
        self.config = config
        self.logger = logger

    def _validate(self, content: str, options: SendOptions) -> list[dict]:
        if not content or not content.strip():
            raise ValidationFailedError("Message content must not be blank")
        if len(options.attachments) > self.config.MAX_ATTACHMENTS_PER_MESSAGE:
            raise ValidationFailedError(
                "Too many attachments",
                count=len(options.attachments),
                max=self.config.MAX_ATTACHMENTS_PER_MESSAGE,
            )
        try:
            return [
                schemas.Attachment.model_validate(attachment).model_dump(mode="json")
                for attachment in options.attachments
            ]
        except ValidationError as e:
            raise ValidationFailedError(
                "Invalid attachment descriptor", errors=e.error_count()
            ) from e

    async def send(
        self,
        conversation_id: str,
        content: str,
        sender_id: str,
        sender_name: str,
        sender_role: str = DEFAULT_PARTICIPANT_ROLE,
        options: Optional[SendOptions] = None,
    ) -> str:
        options = options or SendOptions()
        attachments = self._validate(content, options)

        conversation = await self.conversation_gateway.get_conversation(conversation_id)
        if not conversation:
            raise NotFoundError("Conversation not found", conversation_id=conversation_id)
        participant_ids = conversation.participant_ids
        if sender_id not in participant_ids:
            raise UnauthorizedError(
                "Sender is not a participant",
                conversation_id=conversation_id,
                sender_id=sender_id,
            )
        unknown_mentions = [m for m in options.mentions if m not in participant_ids]
        if unknown_mentions:
            raise ValidationFailedError(
                "Mentioned users must be participants", mentions=unknown_mentions
            )

        if options.client_message_id:
            existing = await self.message_gateway.get_by_client_id(
                conversation_id, options.client_message_id
            )
            if existing:
                if existing.sender_id != sender_id:
                    raise ValidationFailedError(
                        "client_message_id already used by another sender",
                        client_message_id=options.client_message_id,
                    )
                self.logger.info(
                    f"Duplicate send {options.client_message_id} resolved to {existing.id}"
                )
                return existing.id

        replied_to = None
        if options.reply_to_message_id:
            replied_to = await self.message_gateway.get_message(options.reply_to_message_id)
            if not replied_to or replied_to.conversation_id != conversation_id:
                raise NotFoundError(
                    "Replied-to message not found",
                    message_id=options.reply_to_message_id,
                )

        now = utcnow()
        message = self.message_gateway.create_message(
            conversation_id,
            content,
            sender_id,
            sender_name,
            sender_role,
            participant_ids,
            replace(options, attachments=attachments),
            now,
        )
        self.conversation_gateway.record_message(
            conversation_id, message, self.config.LAST_MESSAGE_PREVIEW_LENGTH
        )
        self.conversation_gateway.mark_caught_up(conversation_id, sender_id, now)
        self.message_gateway.mark_conversation_read(conversation_id, sender_id, now)
        self.conversation_gateway.increment_unread(message)
        if replied_to:
            self.message_gateway.increment_thread_count(replied_to.id)
        await self.uow.commit()

        # reload so the recipient and reaction collections come back populated
        sent = schemas.Message.model_validate(
            await self.message_gateway.get_message(message.id)
        )
        self.logger.info(
            f"Message {sent.id} sent to conversation {conversation_id} "
            f"({len(participant_ids) - 1} recipients)"
        )

        try:
            await self.notification_interactor.enqueue_for_message(
                sent, participant_ids, replied_to.sender_id if replied_to else None
            )
        except NotificationDeliveryError:
            self.logger.exception(f"Notifications for message {sent.id} were not enqueued")

        await self.event_dispatcher.dispatch(
            MessageCreated(
                conversation_id=conversation_id,
                participant_ids=participant_ids,
                message_id=sent.id,
                sender_id=sender_id,
                content=sent.content,
                created_at=sent.created_at,
                is_deleted=False,
            )
        )
        return sent.id

    async def mark_conversation_read(self, conversation_id: str, user_id: str) -> None:
        conversation = await self.conversation_gateway.get_conversation(conversation_id)
        if not conversation:
            raise NotFoundError("Conversation not found", conversation_id=conversation_id)
        if user_id not in conversation.participant_ids:
            raise UnauthorizedError(
                "User is not a participant",
                conversation_id=conversation_id,
                user_id=user_id,
            )

        now = utcnow()
        self.conversation_gateway.mark_caught_up(conversation_id, user_id, now)
        self.message_gateway.mark_conversation_read(conversation_id, user_id, now)
        await self.uow.commit()

        await self.event_dispatcher.dispatch(
            ConversationRead(
                conversation_id=conversation_id,
                participant_ids=conversation.participant_ids,
                user_id=user_id,
                read_at=now,
            )
        )
