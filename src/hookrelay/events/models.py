"""Relay event models for observability.

Every hook produces a short sequence of events: one validation decision,
then (for accepted hooks) either an error or a scheduled trigger followed
by a dispatch result. Events go to logs and Prometheus metrics through
the emitters in emitter.py and metrics.py.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events emitted by the relay.

    Attributes:
        HOOK_ACCEPTED: Hook matched repository and tag prefix.
        HOOK_IGNORED: Hook was well-formed but filtered out.
        HOOK_REJECTED: Hook payload was malformed.
        TRIGGER_SCHEDULED: Release resolved and trigger timer started.
        TRIGGER_DISPATCHED: Trigger fired; details carry success or failure.
        ERROR: A pipeline stage failed and the hook was dropped.
    """

    HOOK_ACCEPTED = "hook_accepted"
    HOOK_IGNORED = "hook_ignored"
    HOOK_REJECTED = "hook_rejected"
    TRIGGER_SCHEDULED = "trigger_scheduled"
    TRIGGER_DISPATCHED = "trigger_dispatched"
    ERROR = "error"


class RelayEvent(BaseModel):
    """Structured event emitted by the relay.

    Attributes:
        event_type: The category of event.
        tag: The pushed image tag, empty for malformed hooks.
        repository: The pushed repository, empty for malformed hooks.
        timestamp: When the event occurred (UTC).
        details: Additional context specific to the event type.

    Details Field Conventions:
        HOOK_IGNORED / HOOK_REJECTED: outcome, reason
        TRIGGER_SCHEDULED: delay_seconds, fire_at, release_id
        TRIGGER_DISPATCHED: success, error_message (on failure)
        ERROR: stage, error_type, error_message
    """

    event_type: EventType

    tag: str = ""

    repository: str = ""

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    details: Dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> Dict[str, Any]:
        """Flatten the event into a dict for the logging ``extra`` argument."""
        return {
            "event_type": self.event_type.value,
            "tag": self.tag,
            "repository": self.repository,
            "timestamp": self.timestamp.isoformat(),
            **self.details,
        }
