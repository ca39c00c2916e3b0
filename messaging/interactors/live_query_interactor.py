# messaging/interactors/live_query_interactor.py
from typing import List

from messaging.gateways.conversation_gateway import ConversationGateway
from messaging.gateways.message_gateway import MessageGateway
from messaging.gateways.typing_gateway import TypingGateway
from messaging.infrastructure import schemas
from messaging.infrastructure.database import Database
from messaging.infrastructure.subscriptions import (
    CONVERSATIONS,
    MESSAGES,
    TYPING,
    Callback,
    SubscriptionRegistry,
    Unsubscribe,
)
from messaging.infrastructure.uow import UnitOfWork


class LiveQueryInteractor:
    """Push-based views over conversations, messages and typing indicators.

    Every reload runs in a fresh session so observers always see committed
    state, never the identity map of a request in flight.
    """

    def __init__(self, database: Database, registry: SubscriptionRegistry):
        self.database = database
        self.registry = registry

    async def load_conversations(self, user_id: str) -> List[schemas.Conversation]:
        async with self.database.session() as session:
            gateway = ConversationGateway(session, UnitOfWork(session))
            conversations = await gateway.get_all(user_id)
            return [
                schemas.Conversation.model_validate(conversation)
                for conversation in conversations
            ]

    async def load_messages(self, conversation_id: str) -> List[schemas.Message]:
        async with self.database.session() as session:
            gateway = MessageGateway(session, UnitOfWork(session))
            messages = await gateway.get_all(conversation_id)
            return [schemas.Message.model_validate(message) for message in messages]

    async def load_typing(self, conversation_id: str) -> List[schemas.TypingIndicator]:
        async with self.database.session() as session:
            gateway = TypingGateway(session, UnitOfWork(session))
            indicators = await gateway.get_all(conversation_id)
            return [
                schemas.TypingIndicator.model_validate(indicator)
                for indicator in indicators
            ]

    async def subscribe_to_conversations(
        self, user_id: str, callback: Callback
    ) -> Unsubscribe:
        return await self.registry.subscribe(
            CONVERSATIONS, user_id, lambda: self.load_conversations(user_id), callback
        )

    async def subscribe_to_messages(
        self, conversation_id: str, callback: Callback
    ) -> Unsubscribe:
        return await self.registry.subscribe(
            MESSAGES, conversation_id, lambda: self.load_messages(conversation_id), callback
        )

    async def subscribe_to_typing(
        self, conversation_id: str, user_id: str, callback: Callback
    ) -> Unsubscribe:
        # one listener per conversation is shared, each observer drops its own record
        def without_own(indicators: List[schemas.TypingIndicator]):
            return callback([i for i in indicators if i.user_id != user_id])

        return await self.registry.subscribe(
            TYPING, conversation_id, lambda: self.load_typing(conversation_id), without_own
        )
