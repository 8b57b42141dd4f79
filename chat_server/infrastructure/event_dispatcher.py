# chat_server/infrastructure/event_dispatcher.py
import logging
from collections import defaultdict
from collections.abc import Callable

from chat_server.domain.events import Event


class EventDispatcher:
    """In-process bus between producers and their side effects.

    Events are dispatched after the producing write committed, so a failing
    handler is logged and the remaining handlers still run.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.handlers: dict[str, list[Callable]] = defaultdict(list)
        self.logger = logger or logging.getLogger("ChatAPI")

    def register(self, event_type: str, handler: Callable) -> None:
        self.handlers[event_type].append(handler)

    def register_all(self, event_types: list[str], handler: Callable) -> None:
        for event_type in event_types:
            self.register(event_type, handler)

    async def dispatch(self, event: Event) -> None:
        event_type = event.__class__.__name__
        for handler in list(self.handlers[event_type]):
            try:
                await handler(event)
            except Exception:
                self.logger.exception(
                    f"Handler {getattr(handler, '__qualname__', handler)!s} failed for {event_type}"
                )
