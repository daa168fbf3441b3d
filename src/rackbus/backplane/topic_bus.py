"""
Topic Bus

A Port whose events are demultiplexed to handlers keyed by a discriminant
field (``type`` by default).
"""

from collections.abc import Mapping
from typing import Any, Dict, FrozenSet, Hashable, Optional

from .port import Callback, Disposer, Port, callback_identity
from ..production.error_handler import ErrorSeverity, ProductionErrorHandler


_MISSING = object()


def read_discriminant(event: Any, key: str) -> Any:
    """Discriminant of event, or a private sentinel when it has none"""
    if isinstance(event, Mapping):
        return event.get(key, _MISSING)
    return getattr(event, key, _MISSING)


class TopicBus:
    """
    Routes each event published on ``port`` to the handlers registered for
    its discriminant value. Events whose value has no handlers, or that carry
    no discriminant at all, are dropped.
    """

    def __init__(self, key: str = "type", name: Optional[str] = None,
                 error_handler: Optional[ProductionErrorHandler] = None):
        self.key = key
        self.port = Port(name=name or f"topic-bus[{key}]", error_handler=error_handler)
        self._table: Dict[Hashable, Dict[Hashable, Callback]] = {}
        self.port.subscribe(self._dispatch)

    def route(self, value: Hashable, handler: Callback) -> Disposer:
        """Register handler for events whose discriminant equals value"""
        if not callable(handler):
            raise TypeError(f"Topic handler must be callable, got {type(handler).__name__}")

        self._table.setdefault(value, {})[callback_identity(handler)] = handler
        return Disposer(lambda: self.unroute(value, handler))

    def unroute(self, value: Hashable, handler: Callback):
        """Remove handler from value; the entry goes away with its last handler"""
        handlers = self._table.get(value)
        if handlers is None:
            return
        handlers.pop(callback_identity(handler), None)
        if not handlers:
            del self._table[value]

    def publish(self, event: Any):
        self.port.publish(event)

    def routed_values(self) -> FrozenSet[Hashable]:
        return frozenset(self._table)

    def handler_count(self, value: Hashable) -> int:
        return len(self._table.get(value, ()))

    def _dispatch(self, event: Any):
        value = read_discriminant(event, self.key)
        if value is _MISSING:
            return

        try:
            handlers = self._table.get(value)
        except TypeError:
            # unhashable discriminant can never match a route
            return
        if not handlers:
            return

        for handler in list(handlers.values()):
            try:
                handler(event)
            except Exception as e:
                self.port.error_handler.handle_error(
                    e, f"topic:{self.port.name}:{value}", ErrorSeverity.MEDIUM,
                    {'handler': repr(handler), 'event': repr(event)},
                )


def create_topic_bus(key: str = "type") -> TopicBus:
    return TopicBus(key)
