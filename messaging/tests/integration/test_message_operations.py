# messaging/tests/integration/test_message_operations.py
from datetime import timedelta

import pytest

from conftest import ALICE, BOB, CAROL
from messaging.domain.entities import SendOptions
from messaging.domain.events import MessageDeleted, MessageStatusUpdated, MessageUpdated
from messaging.domain.exceptions import (
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from messaging.infrastructure.models import utcnow

pytestmark = pytest.mark.asyncio


async def test_edit_refreshes_last_message_snapshot(
    fanout_interactor, message_interactor, conversation_id, fresh_state, event_dispatcher
):
    message_id = await fanout_interactor.send(conversation_id, "Rent is due fryday", ALICE, "Alice")

    edited = await message_interactor.edit_message(message_id, "Rent is due Friday", ALICE)

    assert edited.content == "Rent is due Friday"
    assert edited.is_edited is True
    assert edited.edited_at is not None
    conversation, _ = await fresh_state(conversation_id)
    assert conversation.last_message.content == "Rent is due Friday"
    assert event_dispatcher.of_type(MessageUpdated)[-1].conversation_changed is True


async def test_edit_of_older_message_keeps_snapshot(
    fanout_interactor, message_interactor, conversation_id, fresh_state, event_dispatcher
):
    older = await fanout_interactor.send(conversation_id, "first", ALICE, "Alice")
    await fanout_interactor.send(conversation_id, "second", BOB, "Bob")

    await message_interactor.edit_message(older, "first, edited", ALICE)

    conversation, messages = await fresh_state(conversation_id)
    assert conversation.last_message.content == "second"
    assert messages[0].content == "first, edited"
    assert event_dispatcher.of_type(MessageUpdated)[-1].conversation_changed is False


async def test_only_sender_may_edit_or_delete(
    fanout_interactor, message_interactor, conversation_id, fresh_state
):
    message_id = await fanout_interactor.send(conversation_id, "mine", ALICE, "Alice")

    with pytest.raises(UnauthorizedError):
        await message_interactor.edit_message(message_id, "hijacked", BOB)
    with pytest.raises(UnauthorizedError):
        await message_interactor.delete_message(message_id, BOB)

    _, messages = await fresh_state(conversation_id)
    assert messages[0].content == "mine"
    assert messages[0].is_deleted is False


async def test_edit_rejects_blank_and_deleted(
    fanout_interactor, message_interactor, conversation_id
):
    message_id = await fanout_interactor.send(conversation_id, "hello", ALICE, "Alice")

    with pytest.raises(ValidationFailedError):
        await message_interactor.edit_message(message_id, "  ", ALICE)

    await message_interactor.delete_message(message_id, ALICE)
    with pytest.raises(ValidationFailedError):
        await message_interactor.edit_message(message_id, "back", ALICE)


async def test_soft_delete_hides_message_and_repoints_snapshot(
    fanout_interactor, message_interactor, conversation_id, fresh_state, app_config
):
    kept = await fanout_interactor.send(conversation_id, "kept", ALICE, "Alice")
    removed = await fanout_interactor.send(
        conversation_id,
        "oops",
        ALICE,
        "Alice",
        options=SendOptions(
            attachments=[
                {
                    "id": "1_a.png",
                    "name": "a.png",
                    "type": "image",
                    "size": 10,
                    "url": "https://example.com/a.png",
                    "mime_type": "image/png",
                    "uploaded_at": "2024-01-01T00:00:00+00:00",
                    "uploaded_by": ALICE,
                }
            ]
        ),
    )

    deleted = await message_interactor.delete_message(removed, ALICE)

    assert deleted.is_deleted is True
    assert deleted.content == app_config.DELETED_MESSAGE_PLACEHOLDER
    assert deleted.attachments == []
    assert deleted.deleted_at is not None

    conversation, messages = await fresh_state(conversation_id)
    assert [m.id for m in messages] == [kept]
    assert conversation.last_message.id == kept
    assert conversation.message_count == 2
    assert conversation.unread_count[BOB] == 1


async def test_deleting_only_message_clears_snapshot(
    fanout_interactor, message_interactor, conversation_id, fresh_state, event_dispatcher
):
    message_id = await fanout_interactor.send(conversation_id, "solo", ALICE, "Alice")

    await message_interactor.delete_message(message_id, ALICE)

    conversation, messages = await fresh_state(conversation_id)
    assert conversation.last_message is None
    assert messages == []
    assert conversation.unread_count == {ALICE: 0, BOB: 0}
    assert event_dispatcher.of_type(MessageDeleted)[-1].conversation_changed is True


async def test_delete_is_idempotent(
    fanout_interactor, message_interactor, conversation_id, fresh_state, event_dispatcher
):
    message_id = await fanout_interactor.send(conversation_id, "twice", ALICE, "Alice")
    await fanout_interactor.send(conversation_id, "other", ALICE, "Alice")

    await message_interactor.delete_message(message_id, ALICE)
    again = await message_interactor.delete_message(message_id, ALICE)

    assert again.is_deleted is True
    conversation, _ = await fresh_state(conversation_id)
    # decremented once, not twice
    assert conversation.unread_count[BOB] == 1
    assert len(event_dispatcher.of_type(MessageDeleted)) == 1


async def test_mark_read_is_idempotent(
    fanout_interactor, message_interactor, conversation_id, event_dispatcher
):
    message_id = await fanout_interactor.send(conversation_id, "read me", ALICE, "Alice")

    first = await message_interactor.mark_read(message_id, BOB)
    second = await message_interactor.mark_read(message_id, BOB)

    assert first.recipients[BOB].status == "read"
    assert second.recipients[BOB].read_at == first.recipients[BOB].read_at
    assert len(event_dispatcher.of_type(MessageStatusUpdated)) == 1


async def test_mark_read_unknown_recipient_or_message(
    fanout_interactor, message_interactor, conversation_id
):
    message_id = await fanout_interactor.send(conversation_id, "hi", ALICE, "Alice")

    with pytest.raises(NotFoundError):
        await message_interactor.mark_read(message_id, CAROL)
    with pytest.raises(NotFoundError):
        await message_interactor.mark_read("missing", BOB)


async def test_reactions_add_and_remove(
    fanout_interactor, message_interactor, conversation_id, event_dispatcher
):
    message_id = await fanout_interactor.send(conversation_id, "New boiler installed", ALICE, "Alice")

    reaction_id = await message_interactor.add_reaction(message_id, BOB, "Bob", "🎉")

    message = await message_interactor.get_message(message_id)
    assert message.reactions[reaction_id].emoji == "🎉"
    assert message.reactions[reaction_id].user_name == "Bob"

    with pytest.raises(UnauthorizedError):
        await message_interactor.remove_reaction(message_id, reaction_id, ALICE)

    await message_interactor.remove_reaction(message_id, reaction_id, BOB)

    message = await message_interactor.get_message(message_id)
    assert message.reactions == {}
    assert len(event_dispatcher.of_type(MessageUpdated)) == 2

    with pytest.raises(NotFoundError):
        await message_interactor.remove_reaction(message_id, reaction_id, BOB)


async def test_cannot_react_to_deleted_message(
    fanout_interactor, message_interactor, conversation_id
):
    message_id = await fanout_interactor.send(conversation_id, "gone", ALICE, "Alice")
    await message_interactor.delete_message(message_id, ALICE)

    with pytest.raises(ValidationFailedError):
        await message_interactor.add_reaction(message_id, BOB, "Bob", "👍")


async def test_messages_listed_oldest_first(
    fanout_interactor, message_interactor, conversation_id
):
    for i in range(5):
        sender, name = (ALICE, "Alice") if i % 2 == 0 else (BOB, "Bob")
        await fanout_interactor.send(conversation_id, f"message {i}", sender, name)

    messages = await message_interactor.get_messages(conversation_id)

    assert [m.content for m in messages] == [f"message {i}" for i in range(5)]
    created = [m.created_at for m in messages]
    assert created == sorted(created)


async def test_search_scoped_to_callers_conversations(
    fanout_interactor, message_interactor, conversation_id, group_id
):
    await fanout_interactor.send(conversation_id, "The LEAK under the sink", ALICE, "Alice")
    await fanout_interactor.send(group_id, "Roof leak on floor 4", CAROL, "Carol")
    await fanout_interactor.send(
        group_id, "Water leak again", BOB, "Bob", options=SendOptions(priority="urgent")
    )
    await fanout_interactor.send(group_id, "All good now", ALICE, "Alice")

    carol_results = await message_interactor.search_messages(CAROL, "leak")
    assert [m.content for m in carol_results] == ["Water leak again", "Roof leak on floor 4"]

    bob_results = await message_interactor.search_messages(BOB, "leak")
    assert len(bob_results) == 3

    by_sender = await message_interactor.search_messages(BOB, "carol")
    assert [m.sender_name for m in by_sender] == ["Carol"]

    urgent = await message_interactor.search_messages(BOB, "leak", priority="urgent")
    assert [m.content for m in urgent] == ["Water leak again"]

    future = await message_interactor.search_messages(
        BOB, "leak", date_from=utcnow() + timedelta(days=1)
    )
    assert future == []


async def test_get_unknown_message(message_interactor):
    with pytest.raises(NotFoundError):
        await message_interactor.get_message("missing")


async def test_stored_timestamps_come_back_in_utc(
    fanout_interactor, conversation_id, fresh_state
):
    await fanout_interactor.send(conversation_id, "Rent is due", ALICE, "Alice")

    conversation, messages = await fresh_state(conversation_id)
    message = messages[0]
    for value in (
        message.created_at,
        message.recipients[BOB].delivered_at,
        conversation.last_activity_at,
        conversation.last_message.created_at,
        conversation.participants[BOB].joined_at,
    ):
        assert value.utcoffset() == timedelta(0)

    # aware values compare against the clock without raising
    assert message.created_at <= utcnow()
