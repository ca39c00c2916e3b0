# messaging/interactors/notification_interactor.py
from typing import List, Optional

from messaging.domain.entities import NotificationType
from messaging.domain.exceptions import NotificationDeliveryError, TransientIOError
from messaging.gateways.notification_gateway import NotificationGateway
from messaging.infrastructure import schemas
from messaging.infrastructure.uow import UnitOfWork


class NotificationInteractor:
    """Writes notification records for the external delivery worker."""

    def __init__(
        self,
        uow: UnitOfWork,
        notification_gateway: NotificationGateway,
        body_length: int = 100,
    ):
        self.uow = uow
        self.notification_gateway = notification_gateway
        self.body_length = body_length

    @staticmethod
    def notification_type(
        user_id: str, mentions: List[str], replied_to_sender_id: Optional[str]
    ) -> NotificationType:
        if user_id in mentions:
            return NotificationType.MENTION
        if replied_to_sender_id is not None and user_id == replied_to_sender_id:
            return NotificationType.REPLY
        return NotificationType.NEW_MESSAGE

    async def enqueue_for_message(
        self,
        message: schemas.Message,
        participant_ids: List[str],
        replied_to_sender_id: Optional[str] = None,
    ) -> int:
        recipients = [user_id for user_id in participant_ids if user_id != message.sender_id]
        for user_id in recipients:
            self.notification_gateway.create_notification(
                user_id=user_id,
                message_id=message.id,
                conversation_id=message.conversation_id,
                type=self.notification_type(user_id, message.mentions, replied_to_sender_id),
                title=f"New message from {message.sender_name}",
                body=message.content[: self.body_length],
                data={
                    "sender_id": message.sender_id,
                    "sender_name": message.sender_name,
                    "conversation_id": message.conversation_id,
                },
            )
        try:
            await self.uow.commit()
        except TransientIOError as e:
            raise NotificationDeliveryError(
                "Failed to enqueue notifications", message_id=message.id
            ) from e
        return len(recipients)

    async def get_notifications(self, user_id: str) -> List[schemas.Notification]:
        notifications = await self.notification_gateway.get_for_user(user_id)
        return [
            schemas.Notification.model_validate(notification)
            for notification in notifications
        ]
