"""
Links

Directed subscriptions from a source Port to a sink, with optional filter,
map and observe stages. Also the fan-out helper and the map/filter adapters
that derive new Ports from existing ones.
"""

import logging
from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping, Optional, Union

from .port import Callback, CompositeDisposer, Disposer, Port

log = logging.getLogger(__name__)


class SinkConfigurationError(TypeError):
    """Raised when a link destination is neither a callable nor Port-shaped"""
    pass


@dataclass(frozen=True)
class CallbackSink:
    """Destination that is a plain callable"""
    callback: Callback

    def deliver(self, event: Any):
        self.callback(event)


@dataclass(frozen=True)
class PortSink:
    """Destination that is a Port (or anything with a callable publish)"""
    port: Any

    def deliver(self, event: Any):
        self.port.publish(event)


Sink = Union[CallbackSink, PortSink]


def as_sink(destination: Any) -> Sink:
    """Resolve a destination into a sink, failing fast on anything else"""
    if isinstance(destination, (CallbackSink, PortSink)):
        return destination
    if callable(destination):
        return CallbackSink(destination)
    if callable(getattr(destination, 'publish', None)):
        return PortSink(destination)
    raise SinkConfigurationError(
        f"Link destination must be a callable or a Port, got {type(destination).__name__}"
    )


@dataclass(frozen=True)
class LinkOptions:
    """Per-link stages, applied in order: filter, map, observe"""
    filter: Optional[Callable[[Any], bool]] = None
    map: Optional[Callable[[Any], Any]] = None
    observe: Optional[Callable[[Any], Any]] = None

    @classmethod
    def coerce(cls, options: Union['LinkOptions', Mapping[str, Any], None]) -> 'LinkOptions':
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, Mapping):
            known = {f.name for f in fields(cls)}
            unknown = set(options) - known
            if unknown:
                raise TypeError(f"Unknown link options: {', '.join(sorted(unknown))}")
            return cls(**options)
        raise TypeError(f"Link options must be LinkOptions or a mapping, got {type(options).__name__}")


class Link(Disposer):
    """
    A live connection from a source Port to a sink.

    Disposing the link only unsubscribes it from its source; neither the
    source nor the destination is touched otherwise.
    """

    def __init__(self, source: Port, sink: Sink, options: LinkOptions):
        self.source = source
        self.sink = sink
        self.options = options
        self._unsubscribe = source.subscribe(self._forward)
        super().__init__(self._unsubscribe.dispose)

    def _forward(self, event: Any):
        opts = self.options
        if opts.filter is not None and not opts.filter(event):
            return
        if opts.map is not None:
            event = opts.map(event)
        if opts.observe is not None:
            opts.observe(event)
        self.sink.deliver(event)

    def __repr__(self) -> str:
        state = "disposed" if self.disposed else "live"
        return f"<Link {self.source.name} -> {self.sink!r} {state}>"


def connect(source: Port, destination: Any,
            options: Union[LinkOptions, Mapping[str, Any], None] = None) -> Link:
    """
    Connect source to destination

    Args:
        source: Port to subscribe to
        destination: Callable or Port receiving the (filtered, mapped) events
        options: LinkOptions or a mapping with filter/map/observe keys

    Returns:
        The Link, which doubles as its disposer
    """
    sink = as_sink(destination)
    link = Link(source, sink, LinkOptions.coerce(options))
    log.debug(f"Connected {source.name} -> {sink!r}")
    return link


def tee(source: Port, *destinations: Any) -> CompositeDisposer:
    """Fan one source out to several destinations; one disposer tears down all"""
    sinks = [as_sink(d) for d in destinations]
    return CompositeDisposer(Link(source, sink, LinkOptions()) for sink in sinks)


class DerivedPort(Port):
    """Port fed by a link from an upstream port"""

    def __init__(self, upstream: Port, options: LinkOptions, name: Optional[str] = None):
        super().__init__(name=name or f"{upstream.name}~", error_handler=upstream._error_handler)
        self.upstream = upstream
        self._link = connect(upstream, self, options)

    def detach(self):
        """Stop receiving from the upstream port"""
        self._link.dispose()


def map_port(source: Port, map_fn: Callable[[Any], Any], name: Optional[str] = None) -> DerivedPort:
    """New Port carrying map_fn(event) for each event on source"""
    return DerivedPort(source, LinkOptions(map=map_fn), name=name)


def filter_port(source: Port, predicate: Callable[[Any], bool], name: Optional[str] = None) -> DerivedPort:
    """New Port carrying only the events of source that satisfy predicate"""
    return DerivedPort(source, LinkOptions(filter=predicate), name=name)
