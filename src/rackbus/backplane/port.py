"""
Port

The atomic publish/subscribe primitive of the rack. A Port keeps a set of
subscriber callbacks and delivers every published event to all of them,
synchronously, in subscription order.
"""

import types
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional

from ..production.error_handler import (
    ErrorSeverity,
    ProductionErrorHandler,
    get_default_error_handler,
)


Callback = Callable[[Any], Any]


def callback_identity(callback: Callback) -> Hashable:
    """
    Identity key for a subscriber.

    Plain callables are keyed by id(). Bound methods are created afresh on
    every attribute access, so they are keyed by their owner and function
    instead; obj.method subscribed twice is still one subscriber.
    """
    owner = getattr(callback, "__self__", None)
    if owner is not None and not isinstance(owner, types.ModuleType):
        func = getattr(callback, "__func__", None)
        return (id(owner), id(func) if func is not None else getattr(callback, "__name__", None))
    return id(callback)


class Disposer:
    """Idempotent teardown handle returned by subscribe/connect/route"""

    def __init__(self, teardown: Callable[[], Any]):
        self._teardown: Optional[Callable[[], Any]] = teardown

    @property
    def disposed(self) -> bool:
        return self._teardown is None

    def dispose(self):
        """Run the teardown once; later calls do nothing"""
        teardown, self._teardown = self._teardown, None
        if teardown is not None:
            teardown()

    def __call__(self):
        self.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False


class CompositeDisposer(Disposer):
    """Disposes a group of disposers together"""

    def __init__(self, disposers: Iterable[Disposer]):
        self._children: List[Disposer] = list(disposers)
        super().__init__(self._dispose_children)

    def __len__(self) -> int:
        return len(self._children)

    def _dispose_children(self):
        for child in self._children:
            # Children disposed individually are skipped by their own guard
            child.dispose()


class Port:
    """
    One-to-many event endpoint.

    publish() iterates over a snapshot of the subscribers taken when the call
    starts, so callbacks may subscribe or unsubscribe (themselves or others)
    while an event is being delivered. A callback that raises is reported to
    the error handler and the remaining subscribers still receive the event.
    """

    def __init__(self, name: Optional[str] = None,
                 error_handler: Optional[ProductionErrorHandler] = None):
        self.name = name or f"port-{id(self):x}"
        self._error_handler = error_handler
        # identity key -> callback, in subscription order
        self._subscribers: Dict[Hashable, Callback] = {}

    @property
    def error_handler(self) -> ProductionErrorHandler:
        return self._error_handler or get_default_error_handler()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, callback) -> bool:
        return callback_identity(callback) in self._subscribers

    def __repr__(self) -> str:
        return f"<Port {self.name} subscribers={len(self._subscribers)}>"

    def subscribe(self, callback: Callback) -> Disposer:
        """Register a callback; returns a disposer that unsubscribes it"""
        if not callable(callback):
            raise TypeError(f"Port subscriber must be callable, got {type(callback).__name__}")

        self._subscribers[callback_identity(callback)] = callback
        return Disposer(lambda: self.unsubscribe(callback))

    def unsubscribe(self, callback: Callback) -> bool:
        """Remove a callback; returns False if it was not subscribed"""
        try:
            del self._subscribers[callback_identity(callback)]
        except KeyError:
            return False
        return True

    def clear(self):
        """Drop every subscriber"""
        self._subscribers.clear()

    def publish(self, event: Any):
        """Deliver event to every callback subscribed at the time of the call"""
        for callback in list(self._subscribers.values()):
            try:
                callback(event)
            except Exception as e:
                self.error_handler.handle_error(
                    e, f"port:{self.name}", ErrorSeverity.MEDIUM,
                    {'subscriber': repr(callback), 'event': repr(event)},
                )
