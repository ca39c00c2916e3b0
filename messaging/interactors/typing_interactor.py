# messaging/interactors/typing_interactor.py
from typing import List, Optional

from messaging.domain.events import TypingChanged
from messaging.domain.exceptions import NotFoundError, UnauthorizedError
from messaging.gateways.typing_gateway import TypingGateway
from messaging.infrastructure import schemas
from messaging.infrastructure.event_dispatcher import EventDispatcher
from messaging.infrastructure.models import utcnow
from messaging.infrastructure.uow import UnitOfWork


class TypingInteractor:
    def __init__(
        self,
        uow: UnitOfWork,
        typing_gateway: TypingGateway,
        event_dispatcher: EventDispatcher,
    ):
        self.uow = uow
        self.typing_gateway = typing_gateway
        self.event_dispatcher = event_dispatcher

    async def set_typing(
        self, conversation_id: str, user_id: str, user_name: str, is_typing: bool
    ) -> bool:
        """Start or stop the typing indicator of one user.

        Starting refreshes the timestamp of an existing indicator. Returns
        whether watchers of the conversation were notified; a refresh or the
        stop of an absent indicator changes nothing they can see. Only
        participants may start typing, stopping is always allowed.
        """
        if is_typing:
            participant_ids = await self.typing_gateway.get_participant_ids(conversation_id)
            if participant_ids is None:
                raise NotFoundError("Conversation not found", conversation_id=conversation_id)
            if user_id not in participant_ids:
                raise UnauthorizedError(
                    "User is not a participant",
                    conversation_id=conversation_id,
                    user_id=user_id,
                )

        indicator = await self.typing_gateway.get_indicator(conversation_id, user_id)
        now = utcnow()
        changed = False

        if is_typing:
            if indicator is None:
                self.typing_gateway.start_typing(conversation_id, user_id, user_name, now)
                changed = True
            else:
                changed = indicator.user_name != user_name
                indicator.user_name = user_name
                indicator.timestamp = now
        elif indicator is not None:
            self.typing_gateway.stop_typing(indicator)
            changed = True

        if self.uow.has_changes:
            await self.uow.commit()
        if changed:
            await self.event_dispatcher.dispatch(
                TypingChanged(
                    conversation_id=conversation_id,
                    user_id=user_id,
                    user_name=user_name,
                    is_typing=is_typing,
                )
            )
        return changed

    async def get_typing(
        self, conversation_id: str, exclude_user_id: Optional[str] = None
    ) -> List[schemas.TypingIndicator]:
        indicators = await self.typing_gateway.get_all(conversation_id)
        return [
            schemas.TypingIndicator.model_validate(indicator)
            for indicator in indicators
            if indicator.user_id != exclude_user_id
        ]
