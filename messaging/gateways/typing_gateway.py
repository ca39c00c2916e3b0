# messaging/gateways/typing_gateway.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from messaging.gateways.interfaces import ITypingGateway
from messaging.infrastructure import models
from messaging.infrastructure.data_mappers import TypingIndicatorMapper
from messaging.infrastructure.uow import UnitOfWork, UoWModel


class TypingGateway(ITypingGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.TypingIndicator] = TypingIndicatorMapper(session)

    async def get_indicator(self, conversation_id: str, user_id: str) -> Optional[UoWModel]:
        stmt = (
            select(models.TypingIndicator)
            .filter(
                models.TypingIndicator.conversation_id == conversation_id,
                models.TypingIndicator.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        indicator = result.scalar_one_or_none()
        return UoWModel(indicator, self.uow) if indicator else None

    async def get_all(self, conversation_id: str) -> List[UoWModel]:
        stmt = (
            select(models.TypingIndicator)
            .filter(models.TypingIndicator.conversation_id == conversation_id)
            .order_by(models.TypingIndicator.timestamp)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        indicators = result.scalars().all()
        return [UoWModel(indicator, self.uow) for indicator in indicators]

    async def get_participant_ids(self, conversation_id: str) -> Optional[List[str]]:
        """Members allowed to type, or None when the conversation does not exist."""
        found = await self.session.scalar(
            select(models.Conversation.id).where(models.Conversation.id == conversation_id)
        )
        if found is None:
            return None
        result = await self.session.scalars(
            select(models.ConversationParticipant.user_id).where(
                models.ConversationParticipant.conversation_id == conversation_id
            )
        )
        return list(result)

    def start_typing(
        self, conversation_id: str, user_id: str, user_name: str, now: datetime
    ) -> UoWModel:
        indicator = models.TypingIndicator(
            conversation_id=conversation_id,
            user_id=user_id,
            user_name=user_name,
            timestamp=now,
        )
        return self.uow.register_new(indicator)

    def stop_typing(self, indicator: UoWModel) -> None:
        self.uow.register_deleted(indicator)
