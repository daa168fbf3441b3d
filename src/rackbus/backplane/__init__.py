"""
Backplane Module

Publish/subscribe ports and the adapters that wire rack modules together.
"""

from .port import Port, Disposer, CompositeDisposer
from .link import (
    CallbackSink,
    DerivedPort,
    Link,
    LinkOptions,
    PortSink,
    SinkConfigurationError,
    as_sink,
    connect,
    filter_port,
    map_port,
    tee,
)
from .topic_bus import TopicBus, create_topic_bus, read_discriminant

__all__ = [
    'Port',
    'Disposer',
    'CompositeDisposer',
    'CallbackSink',
    'DerivedPort',
    'Link',
    'LinkOptions',
    'PortSink',
    'SinkConfigurationError',
    'as_sink',
    'connect',
    'filter_port',
    'map_port',
    'tee',
    'TopicBus',
    'create_topic_bus',
    'read_discriminant',
]
