# messaging/infrastructure/subscriptions.py
import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

from messaging.infrastructure.redis_client import RedisClient

CONVERSATIONS = "conversations"
MESSAGES = "messages"
TYPING = "typing"

Loader = Callable[[], Awaitable[Any]]
Callback = Callable[[Any], Any]
Unsubscribe = Callable[[], Awaitable[None]]


def channel_for(resource_type: str, resource_id: str) -> str:
    return f"{resource_type}:{resource_id}"


class Observer:
    def __init__(self, callback: Callback):
        self.callback = callback
        self.active = True

    async def notify(self, snapshot: Any) -> None:
        if not self.active:
            return
        result = self.callback(snapshot)
        if inspect.isawaitable(result):
            await result


class SubscriptionRegistry:
    """Observers keyed by (resource type, resource id).

    Each key owns exactly one consumer task listening on the key's pub/sub
    channel. Every change published there triggers one reload of the complete
    view, which is then pushed to all observers registered for the key.

    Loads and deliveries of one key run one at a time, so an observer whose
    first snapshot races a change still ends on the newest view.
    """

    def __init__(self, redis_client: RedisClient, logger: logging.Logger):
        self.redis_client = redis_client
        self.logger = logger
        self._observers: dict[tuple[str, str], list[Observer]] = defaultdict(list)
        self._loaders: dict[tuple[str, str], Loader] = {}
        self._consumers: dict[tuple[str, str], asyncio.Task] = {}
        self._delivery_locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock = asyncio.Lock()

    def observer_count(self, resource_type: str, resource_id: str) -> int:
        return len(self._observers.get((resource_type, resource_id), []))

    def is_listening(self, resource_type: str, resource_id: str) -> bool:
        task = self._consumers.get((resource_type, resource_id))
        return task is not None and not task.done()

    async def subscribe(
        self,
        resource_type: str,
        resource_id: str,
        loader: Loader,
        callback: Callback,
    ) -> Unsubscribe:
        key = (resource_type, resource_id)
        observer = Observer(callback)

        async with self._lock:
            if not self.is_listening(*key):
                pubsub = self.redis_client.pubsub()
                await pubsub.subscribe(channel_for(*key))
                self._consumers[key] = asyncio.create_task(
                    self._consume(key, pubsub)
                )
                self.logger.debug(f"Started listener for {channel_for(*key)}")
            self._loaders.setdefault(key, loader)
            self._observers[key].append(observer)
            delivery_lock = self._delivery_locks.setdefault(key, asyncio.Lock())

        async with delivery_lock:
            snapshot = await self._loaders.get(key, loader)()
            await self._deliver(observer, snapshot)

        async def unsubscribe() -> None:
            await self._remove(key, observer)

        return unsubscribe

    async def close(self) -> None:
        async with self._lock:
            consumers = list(self._consumers.values())
            self._consumers.clear()
            self._observers.clear()
            self._loaders.clear()
            self._delivery_locks.clear()
        for task in consumers:
            task.cancel()
        await asyncio.gather(*consumers, return_exceptions=True)

    async def _remove(self, key: tuple[str, str], observer: Observer) -> None:
        observer.active = False
        async with self._lock:
            observers = self._observers.get(key, [])
            if observer in observers:
                observers.remove(observer)
            if observers:
                return
            self._observers.pop(key, None)
            self._loaders.pop(key, None)
            self._delivery_locks.pop(key, None)
            task = self._consumers.pop(key, None)
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            self.logger.debug(f"Stopped listener for {channel_for(*key)}")

    async def _consume(self, key: tuple[str, str], pubsub) -> None:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                await self._push(key)
        except Exception:
            # observers stay registered, the next subscribe starts a new listener
            self.logger.exception(f"Listener for {channel_for(*key)} failed")
            async with self._lock:
                if self._consumers.get(key) is asyncio.current_task():
                    del self._consumers[key]
        finally:
            try:
                await pubsub.aclose()
            except Exception:
                self.logger.warning(f"Failed to close listener for {channel_for(*key)}")

    async def _push(self, key: tuple[str, str]) -> None:
        loader = self._loaders.get(key)
        delivery_lock = self._delivery_locks.get(key)
        if loader is None or delivery_lock is None:
            return
        async with delivery_lock:
            try:
                snapshot = await loader()
            except Exception:
                self.logger.exception(f"Failed to reload view for {channel_for(*key)}")
                return
            for observer in list(self._observers.get(key, [])):
                await self._deliver(observer, snapshot)

    async def _deliver(self, observer: Observer, snapshot: Any) -> None:
        try:
            await observer.notify(snapshot)
        except Exception:
            self.logger.exception("Subscription callback raised")
