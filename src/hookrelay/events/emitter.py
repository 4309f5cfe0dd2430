"""Event emitter implementations for relay observability.

- EventEmitter: abstract sink interface
- LoggingEventEmitter: emits events as log records
- CompositeEventEmitter: fans out to several sinks, isolating failures
- NullEventEmitter: discards events

Emitters must never raise into the pipeline: a broken sink loses the
event, not the hook.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from src.hookrelay.events.models import EventType, RelayEvent

logger = logging.getLogger(__name__)


class EventEmitter(ABC):
    """Abstract base class for relay event emitters."""

    @abstractmethod
    async def emit(self, event: RelayEvent) -> None:
        """Emit a relay event to the sink."""

    async def close(self) -> None:
        """Release sink resources. The default implementation does nothing."""


class LoggingEventEmitter(EventEmitter):
    """Event emitter that writes events as log records.

    The log level follows the event type: errors at ERROR, rejected
    hooks at WARNING, everything else at INFO. Event fields are passed
    as ``extra`` so log aggregators can filter on them.
    """

    def __init__(self, logger_name: Optional[str] = None):
        self._logger = logging.getLogger(logger_name) if logger_name else logger
        self._log_level_map = {
            EventType.HOOK_ACCEPTED: logging.INFO,
            EventType.HOOK_IGNORED: logging.INFO,
            EventType.HOOK_REJECTED: logging.WARNING,
            EventType.TRIGGER_SCHEDULED: logging.INFO,
            EventType.TRIGGER_DISPATCHED: logging.INFO,
            EventType.ERROR: logging.ERROR,
        }

    async def emit(self, event: RelayEvent) -> None:
        log_level = self._log_level_map.get(event.event_type, logging.INFO)
        if (
            event.event_type == EventType.TRIGGER_DISPATCHED
            and not event.details.get("success", True)
        ):
            log_level = logging.ERROR

        self._logger.log(
            log_level,
            "Relay event: %s for tag %s",
            event.event_type.value,
            event.tag or "<none>",
            extra=event.to_log_dict(),
        )


class CompositeEventEmitter(EventEmitter):
    """Event emitter that delegates to multiple child emitters.

    Each child is called independently; a failure in one is logged and
    does not stop the others.
    """

    def __init__(self, emitters: Optional[List[EventEmitter]] = None):
        self._emitters: List[EventEmitter] = list(emitters or [])

    async def emit(self, event: RelayEvent) -> None:
        for emitter in self._emitters:
            try:
                await emitter.emit(event)
            except Exception as e:
                logger.error(
                    "Failed to emit event to %s: %s",
                    type(emitter).__name__,
                    e,
                    extra={
                        "emitter_type": type(emitter).__name__,
                        "event_type": event.event_type.value,
                        "tag": event.tag,
                    },
                )

    async def close(self) -> None:
        for emitter in self._emitters:
            try:
                await emitter.close()
            except Exception as e:
                logger.error(
                    "Failed to close emitter %s: %s",
                    type(emitter).__name__,
                    e,
                )


class NullEventEmitter(EventEmitter):
    """Event emitter that discards all events."""

    async def emit(self, event: RelayEvent) -> None:
        pass
