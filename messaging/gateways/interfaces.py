# messaging/gateways/interfaces.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional

from messaging.domain.entities import ConversationOptions, ParticipantProfile, SendOptions
from messaging.infrastructure import models
from messaging.infrastructure.uow import UoWModel


class IConversationGateway(ABC):
    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_all(self, user_id: str) -> List[UoWModel]:
        pass

    @abstractmethod
    def create_conversation(
        self,
        title: str,
        type: str,
        participant_ids: List[str],
        created_by: str,
        options: ConversationOptions,
    ) -> UoWModel:
        pass

    @abstractmethod
    def update_conversation(
        self, conversation: UoWModel, fields: dict[str, Any], now: datetime
    ) -> UoWModel:
        pass

    @abstractmethod
    def delete_conversation(self, conversation_id: str) -> None:
        pass

    @abstractmethod
    def add_participant(
        self, conversation_id: str, user_id: str, profile: ParticipantProfile, now: datetime
    ) -> UoWModel:
        pass

    @abstractmethod
    def remove_participant(self, conversation_id: str, user_id: str) -> None:
        pass

    @abstractmethod
    def update_settings(
        self, participant: models.ConversationParticipant, settings: dict[str, bool]
    ) -> None:
        pass

    @abstractmethod
    def set_presence(self, user_id: str, is_online: bool) -> None:
        pass

    @abstractmethod
    async def total_unread(self, user_id: str) -> int:
        pass

    @abstractmethod
    def record_message(
        self, conversation_id: str, message: models.Message, preview_length: int
    ) -> None:
        pass

    @abstractmethod
    def set_last_message(
        self,
        conversation_id: str,
        message: Optional[models.Message],
        preview_length: int,
        now: datetime,
    ) -> None:
        pass

    @abstractmethod
    def mark_caught_up(self, conversation_id: str, user_id: str, read_at: datetime) -> None:
        pass

    @abstractmethod
    def increment_unread(self, message: models.Message) -> None:
        pass

    @abstractmethod
    def decrement_unread_for(self, message: models.Message) -> None:
        pass


class IMessageGateway(ABC):
    @abstractmethod
    async def get_message(self, message_id: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_by_client_id(
        self, conversation_id: str, client_message_id: str
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_all(self, conversation_id: str) -> List[UoWModel]:
        pass

    @abstractmethod
    async def newest_visible(
        self, conversation_id: str, exclude_message_id: str
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def search(
        self,
        user_id: str,
        query: str,
        type: Optional[str] = None,
        priority: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[UoWModel]:
        pass

    @abstractmethod
    def create_message(
        self,
        conversation_id: str,
        content: str,
        sender_id: str,
        sender_name: str,
        sender_role: str,
        participant_ids: List[str],
        options: SendOptions,
        now: datetime,
    ) -> UoWModel:
        pass

    @abstractmethod
    def edit_message(self, message: UoWModel, content: str, now: datetime) -> None:
        pass

    @abstractmethod
    def soft_delete_message(
        self, message: UoWModel, placeholder: str, now: datetime
    ) -> None:
        pass

    @abstractmethod
    def mark_recipient_read(
        self, recipient: models.MessageRecipient, read_at: datetime
    ) -> None:
        pass

    @abstractmethod
    def mark_conversation_read(
        self, conversation_id: str, user_id: str, read_at: datetime
    ) -> None:
        pass

    @abstractmethod
    def increment_thread_count(self, message_id: str) -> None:
        pass

    @abstractmethod
    def add_reaction(
        self, message: UoWModel, user_id: str, user_name: str, emoji: str, now: datetime
    ) -> UoWModel:
        pass

    @abstractmethod
    def remove_reaction(self, reaction: models.MessageReaction) -> None:
        pass


class INotificationGateway(ABC):
    @abstractmethod
    def create_notification(self, **fields: Any) -> UoWModel:
        pass

    @abstractmethod
    async def get_for_user(self, user_id: str) -> List[UoWModel]:
        pass


class ITypingGateway(ABC):
    @abstractmethod
    async def get_indicator(self, conversation_id: str, user_id: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_all(self, conversation_id: str) -> List[UoWModel]:
        pass

    @abstractmethod
    async def get_participant_ids(self, conversation_id: str) -> Optional[List[str]]:
        pass

    @abstractmethod
    def start_typing(
        self, conversation_id: str, user_id: str, user_name: str, now: datetime
    ) -> UoWModel:
        pass

    @abstractmethod
    def stop_typing(self, indicator: UoWModel) -> None:
        pass
