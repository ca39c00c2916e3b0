# messaging/gateways/conversation_gateway.py
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import case, delete, func, literal, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from messaging.domain.entities import ConversationOptions, ParticipantProfile
from messaging.gateways.interfaces import IConversationGateway
from messaging.infrastructure import models
from messaging.infrastructure.data_mappers import ConversationMapper, ParticipantMapper
from messaging.infrastructure.uow import UnitOfWork, UoWModel

Participant = models.ConversationParticipant


class ConversationGateway(IConversationGateway):
    """Reads conversations and stages conversation writes on the unit of work.

    Nothing here commits: callers compose several staged writes and commit
    them together. Counter changes are staged as relative SQL updates.
    """

    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Conversation] = ConversationMapper(session)
        uow.mappers[models.ConversationParticipant] = ParticipantMapper(session)

    async def get_conversation(self, conversation_id: str) -> Optional[UoWModel]:
        stmt = (
            select(models.Conversation)
            .filter(models.Conversation.id == conversation_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        conversation = result.scalar_one_or_none()
        return UoWModel(conversation, self.uow) if conversation else None

    async def get_all(self, user_id: str) -> List[UoWModel]:
        stmt = (
            select(models.Conversation)
            .join(Participant, Participant.conversation_id == models.Conversation.id)
            .filter(Participant.user_id == user_id)
            .order_by(models.Conversation.last_activity_at.desc(), models.Conversation.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        conversations = result.scalars().all()
        return [UoWModel(conversation, self.uow) for conversation in conversations]

    def create_conversation(
        self,
        title: str,
        type: str,
        participant_ids: List[str],
        created_by: str,
        options: ConversationOptions,
    ) -> UoWModel:
        now = models.utcnow()
        db_conversation = models.Conversation(
            id=models.new_id(),
            title=title,
            type=type,
            description=options.description,
            created_by=created_by,
            property_id=options.property_id,
            property_name=options.property_name,
            unit_id=options.unit_id,
            unit_number=options.unit_number,
            maintenance_request_id=options.maintenance_request_id,
            message_count=0,
            last_activity_at=now,
            created_at=now,
            updated_at=now,
        )
        for user_id in participant_ids:
            profile = options.profiles.get(user_id) or ParticipantProfile(name=user_id)
            db_conversation.members.append(
                self._new_participant(db_conversation.id, user_id, profile, now)
            )
        return self.uow.register_new(db_conversation)

    def update_conversation(
        self, conversation: UoWModel, fields: dict[str, Any], now: datetime
    ) -> UoWModel:
        for key, value in fields.items():
            setattr(conversation, key, value)
        conversation.updated_at = now
        return conversation

    def delete_conversation(self, conversation_id: str) -> None:
        message_ids = select(models.Message.id).where(
            models.Message.conversation_id == conversation_id
        )
        for statement in (
            delete(models.MessageReaction).where(
                models.MessageReaction.message_id.in_(message_ids)
            ),
            delete(models.MessageRecipient).where(
                models.MessageRecipient.message_id.in_(message_ids)
            ),
            delete(models.Message).where(models.Message.conversation_id == conversation_id),
            delete(models.TypingIndicator).where(
                models.TypingIndicator.conversation_id == conversation_id
            ),
            delete(Participant).where(Participant.conversation_id == conversation_id),
            delete(models.Conversation).where(models.Conversation.id == conversation_id),
        ):
            self.uow.register_statement(statement)

    def add_participant(
        self, conversation_id: str, user_id: str, profile: ParticipantProfile, now: datetime
    ) -> UoWModel:
        participant = self._new_participant(conversation_id, user_id, profile, now)
        self.uow.register_statement(
            update(models.Conversation)
            .where(models.Conversation.id == conversation_id)
            .values(updated_at=now)
        )
        return self.uow.register_new(participant)

    def remove_participant(self, conversation_id: str, user_id: str) -> None:
        self.uow.register_statement(
            delete(Participant).where(
                Participant.conversation_id == conversation_id,
                Participant.user_id == user_id,
            )
        )
        self.uow.register_statement(
            update(models.Conversation)
            .where(models.Conversation.id == conversation_id)
            .values(updated_at=models.utcnow())
        )

    def update_settings(self, participant: Participant, settings: dict[str, bool]) -> None:
        for key, value in settings.items():
            setattr(participant, key, value)
        self.uow.register_dirty(participant)

    def set_presence(self, user_id: str, is_online: bool) -> None:
        self.uow.register_statement(
            update(Participant)
            .where(Participant.user_id == user_id)
            .values(is_online=is_online)
        )

    async def total_unread(self, user_id: str) -> int:
        stmt = select(func.coalesce(func.sum(Participant.unread_count), 0)).filter(
            Participant.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    def record_message(
        self, conversation_id: str, message: models.Message, preview_length: int
    ) -> None:
        self.uow.register_statement(
            update(models.Conversation)
            .where(models.Conversation.id == conversation_id)
            .values(
                **self._snapshot(message, preview_length),
                last_activity_at=message.created_at,
                updated_at=message.created_at,
                message_count=models.Conversation.message_count + 1,
            )
        )

    def set_last_message(
        self,
        conversation_id: str,
        message: Optional[models.Message],
        preview_length: int,
        now: datetime,
    ) -> None:
        self.uow.register_statement(
            update(models.Conversation)
            .where(models.Conversation.id == conversation_id)
            .values(**self._snapshot(message, preview_length), updated_at=now)
        )

    def mark_caught_up(self, conversation_id: str, user_id: str, read_at: datetime) -> None:
        # last_read_at never moves back; the counter is recounted from what
        # stays unread, including messages stamped later by a concurrent sender
        read_at_value = literal(read_at, models.UTCDateTime())
        caught_up_to = case(
            (Participant.last_read_at > read_at_value, Participant.last_read_at),
            else_=read_at_value,
        )
        still_unread = (
            select(func.count(models.Message.id))
            .where(
                models.Message.conversation_id == conversation_id,
                models.Message.sender_id != user_id,
                models.Message.is_deleted.is_(False),
                models.Message.created_at > caught_up_to,
            )
            .scalar_subquery()
        )
        self.uow.register_statement(
            update(Participant)
            .where(
                Participant.conversation_id == conversation_id,
                Participant.user_id == user_id,
            )
            .values(unread_count=still_unread, last_read_at=caught_up_to)
        )

    def increment_unread(self, message: models.Message) -> None:
        self.uow.register_statement(
            update(Participant)
            .where(*self._counts_as_unread(message))
            .values(unread_count=Participant.unread_count + 1)
        )

    def decrement_unread_for(self, message: models.Message) -> None:
        self.uow.register_statement(
            update(Participant)
            .where(*self._counts_as_unread(message))
            .values(
                unread_count=case(
                    (Participant.unread_count > 0, Participant.unread_count - 1),
                    else_=0,
                )
            )
        )

    @staticmethod
    def _counts_as_unread(message: models.Message) -> tuple:
        # participants that joined before the message and have not read past it
        return (
            Participant.conversation_id == message.conversation_id,
            Participant.user_id != message.sender_id,
            Participant.joined_at <= message.created_at,
            or_(
                Participant.last_read_at.is_(None),
                Participant.last_read_at < message.created_at,
            ),
        )

    @staticmethod
    def _snapshot(message: Optional[models.Message], preview_length: int) -> dict[str, Any]:
        if message is None:
            return {
                "last_message_id": None,
                "last_message_content": None,
                "last_message_sender_id": None,
                "last_message_sender_name": None,
                "last_message_created_at": None,
            }
        return {
            "last_message_id": message.id,
            "last_message_content": message.content[:preview_length],
            "last_message_sender_id": message.sender_id,
            "last_message_sender_name": message.sender_name,
            "last_message_created_at": message.created_at,
        }

    @staticmethod
    def _new_participant(
        conversation_id: str, user_id: str, profile: ParticipantProfile, now: datetime
    ) -> Participant:
        return Participant(
            conversation_id=conversation_id,
            user_id=user_id,
            name=profile.name,
            email=profile.email,
            role=profile.role,
            avatar=profile.avatar,
            is_online=False,
            joined_at=now,
            last_read_at=now,
            is_archived=False,
            is_muted=False,
            is_pinned=False,
            unread_count=0,
        )
