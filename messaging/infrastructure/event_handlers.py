# messaging/infrastructure/event_handlers.py
import json
from typing import Any

from messaging.domain.events import (
    ConversationCreated,
    ConversationDeleted,
    ConversationEvent,
    ConversationRead,
    ConversationUpdated,
    Event,
    MessageCreated,
    MessageDeleted,
    MessageEvent,
    MessageStatusUpdated,
    MessageUpdated,
    TypingChanged,
)
from messaging.infrastructure.subscriptions import (
    CONVERSATIONS,
    MESSAGES,
    TYPING,
    channel_for,
)


class EventHandlers:
    """Translates domain events into pub/sub change notifications.

    Channels are per resource: ``conversations:<user_id>`` for a user's
    conversation list, ``messages:<conversation_id>`` and
    ``typing:<conversation_id>`` for a conversation's message and typing feeds.
    """

    def __init__(self, redis_client):
        self.redis_client = redis_client

    async def publish(
        self, channels: list[str], event: Event, additional_data: dict[str, Any] | None = None
    ):
        payload = event.model_dump()
        payload["event"] = event.__class__.__name__
        if additional_data:
            payload.update(additional_data)

        message_json = json.dumps(payload, default=str)
        for channel_name in channels:
            await self.redis_client.publish(channel_name, message_json)

    @staticmethod
    def conversation_channels(event: ConversationEvent) -> list[str]:
        return [channel_for(CONVERSATIONS, user_id) for user_id in event.participant_ids]

    def message_channels(self, event: MessageEvent) -> list[str]:
        channels = [channel_for(MESSAGES, event.conversation_id)]
        if event.conversation_changed:
            channels.extend(self.conversation_channels(event))
        return channels

    async def publish_message_created(self, event: MessageCreated):
        await self.publish(self.message_channels(event), event)

    async def publish_message_updated(self, event: MessageUpdated):
        await self.publish(self.message_channels(event), event)

    async def publish_message_deleted(self, event: MessageDeleted):
        await self.publish(self.message_channels(event), event)

    async def publish_message_status_updated(self, event: MessageStatusUpdated):
        await self.publish([channel_for(MESSAGES, event.conversation_id)], event)

    async def publish_conversation_read(self, event: ConversationRead):
        channels = [channel_for(MESSAGES, event.conversation_id)]
        channels.extend(self.conversation_channels(event))
        await self.publish(channels, event)

    async def publish_conversation_created(self, event: ConversationCreated):
        await self.publish(self.conversation_channels(event), event)

    async def publish_conversation_updated(self, event: ConversationUpdated):
        await self.publish(self.conversation_channels(event), event)

    async def publish_conversation_deleted(self, event: ConversationDeleted):
        channels = self.conversation_channels(event)
        channels.append(channel_for(MESSAGES, event.conversation_id))
        channels.append(channel_for(TYPING, event.conversation_id))
        await self.publish(channels, event)

    async def publish_typing_changed(self, event: TypingChanged):
        await self.publish([channel_for(TYPING, event.conversation_id)], event)

    def register_with(self, dispatcher) -> None:
        for event_type, handler in (
            (ConversationCreated, self.publish_conversation_created),
            (ConversationUpdated, self.publish_conversation_updated),
            (ConversationDeleted, self.publish_conversation_deleted),
            (ConversationRead, self.publish_conversation_read),
            (MessageCreated, self.publish_message_created),
            (MessageUpdated, self.publish_message_updated),
            (MessageDeleted, self.publish_message_deleted),
            (MessageStatusUpdated, self.publish_message_status_updated),
            (TypingChanged, self.publish_typing_changed),
        ):
            dispatcher.register(event_type, handler)
