# messaging/interactors/conversation_interactor.py
from typing import Any, List, Optional

from pydantic import ValidationError

from messaging.domain.entities import ConversationOptions, ConversationType, ParticipantProfile
from messaging.domain.events import ConversationCreated, ConversationDeleted, ConversationUpdated
from messaging.domain.exceptions import NotFoundError, UnauthorizedError, ValidationFailedError
from messaging.gateways.conversation_gateway import ConversationGateway
from messaging.infrastructure import schemas
from messaging.infrastructure.event_dispatcher import EventDispatcher
from messaging.infrastructure.models import utcnow
from messaging.infrastructure.uow import UnitOfWork, UoWModel

# columns that may never be set to NULL through a partial update
REQUIRED_FIELDS = ("title", "type")


class ConversationInteractor:
    def __init__(
        self,
        uow: UnitOfWork,
        conversation_gateway: ConversationGateway,
        event_dispatcher: EventDispatcher,
    ):
        self.uow = uow
        self.conversation_gateway = conversation_gateway
        self.event_dispatcher = event_dispatcher

    async def get_conversation(self, conversation_id: str) -> schemas.Conversation:
        conversation = await self._load(conversation_id)
        return schemas.Conversation.model_validate(conversation)

    async def get_conversations(self, user_id: str) -> List[schemas.Conversation]:
        conversations = await self.conversation_gateway.get_all(user_id)
        return [
            schemas.Conversation.model_validate(conversation)
            for conversation in conversations
        ]

    async def create_conversation(
        self,
        title: str,
        type: ConversationType,
        participant_ids: List[str],
        created_by: str,
        options: Optional[ConversationOptions] = None,
    ) -> str:
        options = options or ConversationOptions()
        participant_ids = list(dict.fromkeys(participant_ids))
        if not participant_ids:
            raise ValidationFailedError("A conversation needs at least one participant")
        if created_by not in participant_ids:
            raise ValidationFailedError(
                "The creator must be a participant", created_by=created_by
            )
        if not title.strip():
            raise ValidationFailedError("Title must not be blank")

        conversation = self.conversation_gateway.create_conversation(
            title, ConversationType(type), participant_ids, created_by, options
        )
        await self.uow.commit()

        await self.event_dispatcher.dispatch(
            ConversationCreated(
                conversation_id=conversation.id, participant_ids=participant_ids
            )
        )
        return conversation.id

    async def update_conversation(
        self, conversation_id: str, fields: dict[str, Any], current_user_id: str
    ) -> schemas.Conversation:
        conversation = await self._load(conversation_id)
        self._ensure_participant(conversation, current_user_id)

        try:
            update = schemas.ConversationUpdate.model_validate(fields)
        except ValidationError as e:
            raise ValidationFailedError(
                "Invalid conversation update",
                errors=[
                    {"loc": list(error["loc"]), "msg": error["msg"]}
                    for error in e.errors()
                ],
            ) from e
        changes = update.model_dump(exclude_unset=True)
        for key in REQUIRED_FIELDS:
            if key in changes and changes[key] is None:
                changes.pop(key)

        self.conversation_gateway.update_conversation(conversation, changes, utcnow())
        await self.uow.commit()

        await self.event_dispatcher.dispatch(
            ConversationUpdated(
                conversation_id=conversation_id,
                participant_ids=conversation.participant_ids,
            )
        )
        return await self.get_conversation(conversation_id)

    async def delete_conversation(self, conversation_id: str, current_user_id: str) -> None:
        conversation = await self._load(conversation_id)
        if conversation.created_by != current_user_id:
            raise UnauthorizedError(
                "Only the creator can delete a conversation",
                conversation_id=conversation_id,
                user_id=current_user_id,
            )
        participant_ids = conversation.participant_ids

        self.conversation_gateway.delete_conversation(conversation_id)
        await self.uow.commit()

        await self.event_dispatcher.dispatch(
            ConversationDeleted(
                conversation_id=conversation_id, participant_ids=participant_ids
            )
        )

    async def add_participant(
        self,
        conversation_id: str,
        user_id: str,
        current_user_id: str,
        profile: Optional[ParticipantProfile] = None,
    ) -> schemas.Conversation:
        conversation = await self._load(conversation_id)
        self._ensure_participant(conversation, current_user_id)
        if user_id in conversation.participant_ids:
            raise ValidationFailedError(
                "User is already a participant",
                conversation_id=conversation_id,
                user_id=user_id,
            )

        self.conversation_gateway.add_participant(
            conversation_id, user_id, profile or ParticipantProfile(name=user_id), utcnow()
        )
        await self.uow.commit()

        await self.event_dispatcher.dispatch(
            ConversationUpdated(
                conversation_id=conversation_id,
                participant_ids=[*conversation.participant_ids, user_id],
            )
        )
        return await self.get_conversation(conversation_id)

    async def remove_participant(
        self, conversation_id: str, user_id: str, current_user_id: str
    ) -> schemas.Conversation:
        conversation = await self._load(conversation_id)
        self._ensure_participant(conversation, current_user_id)
        # members may leave; removing someone else is up to the creator
        if user_id != current_user_id and conversation.created_by != current_user_id:
            raise UnauthorizedError(
                "Only the creator can remove other participants",
                conversation_id=conversation_id,
                user_id=current_user_id,
            )
        participant_ids = conversation.participant_ids
        if user_id not in participant_ids:
            raise NotFoundError(
                "Participant not found", conversation_id=conversation_id, user_id=user_id
            )
        if len(participant_ids) == 1:
            raise ValidationFailedError(
                "Cannot remove the last participant", conversation_id=conversation_id
            )

        self.conversation_gateway.remove_participant(conversation_id, user_id)
        await self.uow.commit()

        # the removed user is notified too so their conversation list drops it
        await self.event_dispatcher.dispatch(
            ConversationUpdated(
                conversation_id=conversation_id, participant_ids=participant_ids
            )
        )
        return await self.get_conversation(conversation_id)

    async def update_settings(
        self,
        conversation_id: str,
        user_id: str,
        settings: schemas.ParticipantSettingsUpdate,
    ) -> schemas.ParticipantSettings:
        conversation = await self._load(conversation_id)
        participant = conversation.participants.get(user_id)
        if participant is None:
            raise NotFoundError(
                "Participant not found", conversation_id=conversation_id, user_id=user_id
            )

        changes = settings.model_dump(exclude_none=True)
        if changes:
            self.conversation_gateway.update_settings(participant, changes)
            await self.uow.commit()
            await self.event_dispatcher.dispatch(
                ConversationUpdated(conversation_id=conversation_id, participant_ids=[user_id])
            )
        return schemas.ParticipantSettings.model_validate(participant)

    async def set_presence(self, user_id: str, is_online: bool) -> None:
        conversations = await self.conversation_gateway.get_all(user_id)
        self.conversation_gateway.set_presence(user_id, is_online)
        await self.uow.commit()

        for conversation in conversations:
            await self.event_dispatcher.dispatch(
                ConversationUpdated(
                    conversation_id=conversation.id,
                    participant_ids=conversation.participant_ids,
                )
            )

    async def get_total_unread(self, user_id: str) -> int:
        return await self.conversation_gateway.total_unread(user_id)

    async def _load(self, conversation_id: str) -> UoWModel:
        conversation = await self.conversation_gateway.get_conversation(conversation_id)
        if not conversation:
            raise NotFoundError("Conversation not found", conversation_id=conversation_id)
        return conversation

    @staticmethod
    def _ensure_participant(conversation: UoWModel, user_id: str) -> None:
        if user_id not in conversation.participant_ids:
            raise UnauthorizedError(
                "User is not a participant",
                conversation_id=conversation.id,
                user_id=user_id,
            )
