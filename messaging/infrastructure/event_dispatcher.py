# messaging/infrastructure/event_dispatcher.py
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Optional

from messaging.domain.events import Event

Handler = Callable[[Event], Awaitable[None]]


class EventDispatcher:
    """Routes domain events to async handlers after a write has committed.

    Handlers registered for a base class such as ``ConversationEvent`` also
    receive every subclass. A failing handler is logged and its error
    propagates to the caller; handlers after it do not run.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.handlers: dict[type[Event], list[Handler]] = defaultdict(list)

    def register(self, event_type: type[Event], handler: Handler) -> None:
        self.handlers[event_type].append(handler)

    def unregister(self, event_type: type[Event], handler: Handler) -> None:
        handlers = self.handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event: Event) -> list[Handler]:
        # most specific class first
        return [
            handler
            for event_type in type(event).__mro__
            for handler in self.handlers.get(event_type, [])
        ]

    async def dispatch(self, event: Event) -> None:
        name = type(event).__name__
        handlers = self.handlers_for(event)
        self.logger.debug(f"Dispatching {name} to {len(handlers)} handlers")
        for handler in handlers:
            try:
                await handler(event)
            except Exception:
                self.logger.exception(
                    f"Handler {getattr(handler, '__qualname__', handler)} failed for {name}"
                )
                raise
