# messaging/gateways/notification_gateway.py
from typing import Any, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from messaging.gateways.interfaces import INotificationGateway
from messaging.infrastructure import models
from messaging.infrastructure.data_mappers import NotificationMapper
from messaging.infrastructure.uow import UnitOfWork, UoWModel


class NotificationGateway(INotificationGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Notification] = NotificationMapper(session)

    def create_notification(self, **fields: Any) -> UoWModel:
        notification = models.Notification(id=models.new_id(), is_read=False, **fields)
        return self.uow.register_new(notification)

    async def get_for_user(self, user_id: str) -> List[UoWModel]:
        stmt = (
            select(models.Notification)
            .filter(models.Notification.user_id == user_id)
            .order_by(models.Notification.created_at.desc())
        )
        result = await self.session.execute(stmt)
        notifications = result.scalars().all()
        return [UoWModel(notification, self.uow) for notification in notifications]
