"""Hook pipeline connecting validation, resolution, scheduling and dispatch.

Receives decoded webhook bodies and drives them through:
validate → acknowledge → resolve release → compute delay → schedule trigger.

Two behaviours are configurable:
- strict_validation: malformed hooks get a 400 (strict) or a silent 200
- ack_before_processing: resolution runs after the response is sent
  (background task) or before it (awaited); the trigger itself is always
  delayed and fire-and-forget

Nothing after validation changes the response: downstream failures are
logged, counted, and dropped. Each hook is processed independently and
one hook's failure never touches another.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Set

from src.hookrelay.dispatcher import TriggerDispatcher
from src.hookrelay.errors import (
    DiagnosticFetchError,
    ReleaseFetchError,
)
from src.hookrelay.events.emitter import EventEmitter, NullEventEmitter
from src.hookrelay.events.models import EventType, RelayEvent
from src.hookrelay.resolver import ReleaseResolver
from src.hookrelay.schedule import (
    DEFAULT_SYNC_OFFSET,
    DEFAULT_SYNC_PERIOD,
    delay_until_next_trigger,
    utc_now,
)
from src.hookrelay.webhook.handler import HookValidator
from src.hookrelay.webhook.models import (
    InboundHook,
    ValidationOutcome,
    ValidationResult,
)

logger = logging.getLogger(__name__)


@dataclass
class HookResponse:
    """HTTP response for an inbound hook."""

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)


class HookPipeline:
    """Processes registry hooks into scheduled TaaS triggers.

    Attributes:
        validator: Filters hooks by shape, repository and tag prefix.
        resolver: Builds the trigger payload from TaaS and Akkeris.
        dispatcher: Fires the trigger after the computed delay.
        test_name: TaaS diagnostic to trigger.
        event_emitter: Sink for relay events.
        strict_validation: Reply 400 to malformed hooks when True.
        ack_before_processing: Resolve in the background when True.
        period: Deployment sync cycle length.
        offset: Grace offset after each cycle boundary.
    """

    def __init__(
        self,
        validator: HookValidator,
        resolver: ReleaseResolver,
        dispatcher: TriggerDispatcher,
        test_name: str,
        event_emitter: Optional[EventEmitter] = None,
        strict_validation: bool = True,
        ack_before_processing: bool = True,
        period: timedelta = DEFAULT_SYNC_PERIOD,
        offset: timedelta = DEFAULT_SYNC_OFFSET,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.validator = validator
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.test_name = test_name
        self.event_emitter = event_emitter or NullEventEmitter()
        self.strict_validation = strict_validation
        self.ack_before_processing = ack_before_processing
        self.period = period
        self.offset = offset
        self._clock = clock
        self._processing: Set[asyncio.Task] = set()

    @property
    def processing_count(self) -> int:
        """Number of accepted hooks still resolving in the background."""
        return len(self._processing)

    async def handle(self, payload: Any) -> HookResponse:
        """Validate a hook and start processing it.

        Args:
            payload: The decoded JSON body, or None if it was not JSON.

        Returns:
            HookResponse with 400 only for malformed hooks in strict mode,
            200 in every other case.
        """
        result = self.validator.validate(payload)
        await self._emit_validation(result)

        if result.outcome == ValidationOutcome.MALFORMED:
            if self.strict_validation:
                return HookResponse(
                    400, {"status": "rejected", "reason": result.reason}
                )
            return HookResponse(200, {"status": "ignored", "reason": result.reason})

        if not result.accepted:
            return HookResponse(200, {"status": "ignored", "reason": result.reason})

        hook = result.hook
        if self.ack_before_processing:
            task = asyncio.create_task(self.process(hook), name=f"hook:{hook.tag}")
            self._processing.add(task)
            task.add_done_callback(self._processing.discard)
        else:
            await self.process(hook)

        return HookResponse(200, {"status": "accepted", "tag": hook.tag})

    async def process(self, hook: InboundHook) -> bool:
        """Resolve the release and schedule the trigger for an accepted hook.

        Never raises: every failure is logged, emitted as an ERROR event,
        and ends processing for this hook only.

        Returns:
            True if a trigger was scheduled, False otherwise.
        """
        try:
            payload = await self.resolver.resolve(self.test_name)
        except DiagnosticFetchError as exc:
            await self._fail(hook, "diagnostic", exc)
            return False
        except ReleaseFetchError as exc:
            await self._fail(hook, "releases", exc)
            return False
        except Exception as exc:
            logger.exception(
                "Unexpected error resolving release",
                extra={"tag": hook.tag},
            )
            await self._fail(hook, "unknown", exc)
            return False

        try:
            now = self._clock()
            delay = delay_until_next_trigger(now, self.period, self.offset)
            logger.info(
                "Scheduling trigger for image %s on test %s...",
                hook.image,
                self.test_name,
                extra={"delay_seconds": delay.total_seconds()},
            )
            self.dispatcher.schedule(hook.tag, payload, delay)
        except Exception as exc:
            logger.exception(
                "Failed to schedule trigger",
                extra={"tag": hook.tag},
            )
            await self._fail(hook, "schedule", exc)
            return False

        await self._emit(
            EventType.TRIGGER_SCHEDULED,
            hook,
            delay_seconds=delay.total_seconds(),
            fire_at=(now + delay).isoformat(),
            release_id=payload.release.id,
        )
        return True

    async def shutdown(self) -> None:
        """Abandon in-flight work and pending triggers, then close the sink."""
        pending = list(self._processing)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        await self.dispatcher.shutdown()
        await self.event_emitter.close()

    async def _fail(self, hook: InboundHook, stage: str, exc: Exception) -> None:
        logger.error(
            "Dropping hook for image %s at %s stage: %s",
            hook.image,
            stage,
            exc,
            extra={"tag": hook.tag, "stage": stage},
        )
        await self._emit(
            EventType.ERROR,
            hook,
            stage=stage,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )

    async def _emit_validation(self, result: ValidationResult) -> None:
        if result.outcome == ValidationOutcome.ACCEPTED:
            event_type = EventType.HOOK_ACCEPTED
        elif result.outcome == ValidationOutcome.MALFORMED:
            event_type = EventType.HOOK_REJECTED
        else:
            event_type = EventType.HOOK_IGNORED
        await self._emit(
            event_type,
            result.hook,
            outcome=result.outcome.value,
            reason=result.reason,
        )

    async def _emit(
        self,
        event_type: EventType,
        hook: Optional[InboundHook],
        **details: Any,
    ) -> None:
        event = RelayEvent(
            event_type=event_type,
            tag=hook.tag if hook else "",
            repository=(hook.repo_name or "") if hook else "",
            details=details,
        )
        try:
            await self.event_emitter.emit(event)
        except Exception as e:
            logger.error("Failed to emit %s event: %s", event_type.value, e)
