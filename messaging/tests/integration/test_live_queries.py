# messaging/tests/integration/test_live_queries.py
import asyncio

import pytest

from conftest import ALICE, BOB, CAROL
from messaging.infrastructure.event_handlers import EventHandlers
from messaging.infrastructure.subscriptions import MESSAGES, SubscriptionRegistry
from messaging.interactors.live_query_interactor import LiveQueryInteractor

pytestmark = pytest.mark.asyncio


class Snapshots:
    """Collects pushed views and lets a test wait for the next ones."""

    def __init__(self):
        self.views = []

    def __call__(self, view):
        self.views.append(view)

    async def wait_for(self, count, timeout=2.0):
        async def _poll():
            while len(self.views) < count:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_poll(), timeout)
        return self.views[count - 1]


@pytest.fixture
async def registry(redis_client, test_logger):
    registry = SubscriptionRegistry(redis_client, test_logger)
    yield registry
    await registry.close()


@pytest.fixture
def live(database, registry):
    return LiveQueryInteractor(database, registry)


@pytest.fixture(autouse=True)
def publish_events(event_dispatcher, redis_client):
    handlers = EventHandlers(redis_client)
    handlers.register_with(event_dispatcher)


async def test_message_feed_follows_sends_and_deletes(
    live, fanout_interactor, message_interactor, conversation_id
):
    snapshots = Snapshots()
    await live.subscribe_to_messages(conversation_id, snapshots)
    assert await snapshots.wait_for(1) == []

    first = await fanout_interactor.send(conversation_id, "one", ALICE, "Alice")
    view = await snapshots.wait_for(2)
    assert [m.id for m in view] == [first]

    second = await fanout_interactor.send(conversation_id, "two", BOB, "Bob")
    view = await snapshots.wait_for(3)
    assert [m.id for m in view] == [first, second]

    await message_interactor.delete_message(first, ALICE)
    view = await snapshots.wait_for(4)
    assert [m.id for m in view] == [second]


async def test_conversation_feed_reflects_counters(
    live, fanout_interactor, conversation_id, group_id
):
    snapshots = Snapshots()
    await live.subscribe_to_conversations(BOB, snapshots)
    initial = await snapshots.wait_for(1)
    assert {c.id for c in initial} == {conversation_id, group_id}

    await fanout_interactor.send(group_id, "Fire drill at noon", ALICE, "Alice")

    view = await snapshots.wait_for(2)
    assert view[0].id == group_id
    assert view[0].unread_count[BOB] == 1
    assert view[0].last_message.content == "Fire drill at noon"

    await fanout_interactor.mark_conversation_read(group_id, BOB)
    view = await snapshots.wait_for(3)
    assert view[0].unread_count[BOB] == 0


async def test_conversation_feed_of_non_participant_is_untouched(
    live, fanout_interactor, conversation_id
):
    snapshots = Snapshots()
    await live.subscribe_to_conversations(CAROL, snapshots)
    await snapshots.wait_for(1)

    await fanout_interactor.send(conversation_id, "private", ALICE, "Alice")
    await asyncio.sleep(0.1)

    assert snapshots.views == [[]]


async def test_typing_feed_excludes_own_indicator(live, typing_interactor, group_id):
    alice_view = Snapshots()
    bob_view = Snapshots()
    await live.subscribe_to_typing(group_id, ALICE, alice_view)
    await live.subscribe_to_typing(group_id, BOB, bob_view)

    await typing_interactor.set_typing(group_id, BOB, "Bob", True)

    assert [i.user_id for i in await alice_view.wait_for(2)] == [BOB]
    assert await bob_view.wait_for(2) == []

    await typing_interactor.set_typing(group_id, BOB, "Bob", False)
    assert await alice_view.wait_for(3) == []


async def test_unsubscribe_releases_listener(live, registry, fanout_interactor, conversation_id):
    snapshots = Snapshots()
    unsubscribe = await live.subscribe_to_messages(conversation_id, snapshots)
    assert registry.is_listening(MESSAGES, conversation_id)

    await unsubscribe()
    await fanout_interactor.send(conversation_id, "nobody listens", ALICE, "Alice")
    await asyncio.sleep(0.1)

    assert len(snapshots.views) == 1
    assert not registry.is_listening(MESSAGES, conversation_id)


async def test_async_observer_receives_pushes(live, fanout_interactor, conversation_id):
    received = asyncio.Queue()

    async def observer(view):
        await received.put(view)

    await live.subscribe_to_messages(conversation_id, observer)
    assert await asyncio.wait_for(received.get(), 2.0) == []

    await fanout_interactor.send(conversation_id, "async hello", BOB, "Bob")

    view = await asyncio.wait_for(received.get(), 2.0)
    assert [m.content for m in view] == ["async hello"]
