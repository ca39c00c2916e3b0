# messaging/infrastructure/data_mappers.py

from typing import Protocol, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from messaging.infrastructure import models

ModelT_contra = TypeVar("ModelT_contra", contravariant=True)


class DataMapper(Protocol[ModelT_contra]):
    async def insert(self, model: ModelT_contra):
        raise NotImplementedError

    async def delete(self, model: ModelT_contra):
        raise NotImplementedError

    async def update(self, model: ModelT_contra):
        raise NotImplementedError


class SessionMapper:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, model):
        self.session.add(model)
        await self.session.flush()

    async def delete(self, model):
        await self.session.delete(model)

    async def update(self, model):
        await self.session.merge(model)


class ConversationMapper(SessionMapper, DataMapper[models.Conversation]):
    pass


class ParticipantMapper(SessionMapper, DataMapper[models.ConversationParticipant]):
    pass


class MessageMapper(SessionMapper, DataMapper[models.Message]):
    pass


class RecipientMapper(SessionMapper, DataMapper[models.MessageRecipient]):
    pass


class ReactionMapper(SessionMapper, DataMapper[models.MessageReaction]):
    pass


class NotificationMapper(SessionMapper, DataMapper[models.Notification]):
    pass


class TypingIndicatorMapper(SessionMapper, DataMapper[models.TypingIndicator]):
    async def insert(self, model: models.TypingIndicator):
        # upsert: a stale row may exist if a previous clear never arrived
        await self.session.merge(model)
        await self.session.flush()
