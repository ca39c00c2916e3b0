# messaging/tests/unit/test_message_gateway.py
from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.dml import Update

from messaging.domain.entities import RecipientStatus, SendOptions
from messaging.gateways.message_gateway import MessageGateway
from messaging.infrastructure import models
from messaging.infrastructure.uow import UnitOfWork, UoWModel

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def mock_session():
    session = Mock(spec=AsyncSession)
    session.execute = AsyncMock()
    return session


@pytest.fixture
def mock_uow():
    uow = Mock(spec=UnitOfWork)
    uow.mappers = {}
    uow.commit = AsyncMock()
    uow.register_new = Mock(side_effect=lambda model: model)
    uow.register_dirty = Mock()
    uow.register_deleted = Mock()
    uow.register_statement = Mock()
    uow.new = {}
    return uow


@pytest.fixture
def message_gateway(mock_session, mock_uow):
    return MessageGateway(mock_session, mock_uow)


@pytest.fixture
def mock_message():
    message = Mock(spec=models.Message)
    message.id = "msg-1"
    message.content = "Test message"
    message.conversation_id = "conv-1"
    message.sender_id = "user-1"
    message.is_deleted = False
    message.created_at = NOW
    message.updated_at = NOW
    return message


class TestMessageGateway:
    def test_registers_mappers(self, message_gateway, mock_uow):
        assert {models.Message, models.MessageRecipient, models.MessageReaction} <= set(
            mock_uow.mappers
        )

    @pytest.mark.asyncio
    async def test_get_message_found(self, message_gateway, mock_session, mock_message):
        mock_result = Mock()
        mock_result.scalar_one_or_none.return_value = mock_message
        mock_session.execute.return_value = mock_result

        result = await message_gateway.get_message("msg-1")

        assert isinstance(result, UoWModel)
        assert result.content == "Test message"
        mock_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_message_not_found(self, message_gateway, mock_session):
        mock_result = Mock()
        mock_result.scalar_one_or_none.return_value = None
        mock_session.execute.return_value = mock_result

        assert await message_gateway.get_message("missing") is None

    @pytest.mark.asyncio
    async def test_get_all_wraps_rows(self, message_gateway, mock_session, mock_message):
        mock_result = Mock()
        mock_result.scalars.return_value.all.return_value = [mock_message]
        mock_session.execute.return_value = mock_result

        result = await message_gateway.get_all("conv-1")

        assert len(result) == 1
        assert result[0].id == "msg-1"

    def test_create_message_builds_recipient_rows(self, message_gateway, mock_uow):
        options = SendOptions(
            mentions=["user-2", "user-2"],
            reply_to_message_id="msg-0",
            client_message_id="client-1",
        )

        message = message_gateway.create_message(
            "conv-1", "Hello", "user-1", "One", "tenant", ["user-1", "user-2"], options, NOW
        )

        mock_uow.register_new.assert_called_once()
        assert message.mentions == ["user-2"]
        assert message.parent_message_id == message.reply_to_message_id == "msg-0"
        assert message.client_message_id == "client-1"
        assert message.thread_count == 0
        recipients = message.recipients
        assert recipients["user-1"].status == RecipientStatus.READ
        assert recipients["user-1"].read_at == NOW
        assert recipients["user-2"].status == RecipientStatus.SENT
        assert recipients["user-2"].read_at is None
        assert recipients["user-2"].delivered_at == NOW

    def test_edit_message(self, message_gateway, mock_message):
        message_gateway.edit_message(mock_message, "Edited", NOW)

        assert mock_message.content == "Edited"
        assert mock_message.is_edited is True
        assert mock_message.edited_at == NOW

    def test_soft_delete_message(self, message_gateway, mock_message):
        mock_message.attachments = [{"id": "a"}]

        message_gateway.soft_delete_message(mock_message, "[Message deleted]", NOW)

        assert mock_message.content == "[Message deleted]"
        assert mock_message.attachments == []
        assert mock_message.is_deleted is True
        assert mock_message.deleted_at == NOW

    def test_mark_recipient_read(self, message_gateway, mock_uow):
        recipient = models.MessageRecipient(user_id="user-2", status=RecipientStatus.SENT)

        message_gateway.mark_recipient_read(recipient, NOW)

        assert recipient.status == RecipientStatus.READ
        assert recipient.read_at == NOW
        mock_uow.register_dirty.assert_called_once_with(recipient)

    def test_counter_updates_are_registered_statements(self, message_gateway, mock_uow):
        message_gateway.mark_conversation_read("conv-1", "user-2", NOW)
        message_gateway.increment_thread_count("msg-1")

        assert mock_uow.register_statement.call_count == 2
        for call in mock_uow.register_statement.call_args_list:
            assert isinstance(call.args[0], Update)

    def test_add_and_remove_reaction(self, message_gateway, mock_uow, mock_message):
        reaction = message_gateway.add_reaction(mock_message, "user-2", "Two", "👍", NOW)

        assert reaction.message_id == "msg-1"
        assert reaction.emoji == "👍"
        assert mock_message.updated_at == NOW

        message_gateway.remove_reaction(reaction)
        mock_uow.register_deleted.assert_called_once_with(reaction)
