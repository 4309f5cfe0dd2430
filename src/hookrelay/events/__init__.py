"""Relay events: structured logging and Prometheus metrics."""

from src.hookrelay.events.emitter import (
    CompositeEventEmitter,
    EventEmitter,
    LoggingEventEmitter,
    NullEventEmitter,
)
from src.hookrelay.events.metrics import MetricsEventEmitter, RelayMetrics
from src.hookrelay.events.models import EventType, RelayEvent

__all__ = [
    "CompositeEventEmitter",
    "EventEmitter",
    "EventType",
    "LoggingEventEmitter",
    "MetricsEventEmitter",
    "NullEventEmitter",
    "RelayEvent",
    "RelayMetrics",
]
