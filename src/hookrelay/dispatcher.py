"""Delayed, fire-and-forget dispatch of TaaS test triggers.

A scheduled trigger is a plain asyncio task that sleeps for the computed
delay and then POSTs the release hook once. There is no cancellation API
and no persistence: triggers pending at shutdown or on a crash are lost.

The sleep function is injected so tests can drive the timer with a
virtual clock instead of waiting on the wall clock.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Optional, Set

from src.hookrelay.clients.models import TriggerPayload
from src.hookrelay.clients.taas import TaasClient
from src.hookrelay.errors import DispatchError
from src.hookrelay.events.emitter import EventEmitter, NullEventEmitter
from src.hookrelay.events.models import EventType, RelayEvent

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class TriggerDispatcher:
    """Schedules and fires TaaS release hooks.

    Attributes:
        taas_client: Client used to POST the release hook.
        test_name: Diagnostic name, used for log context only.
        repo_name: Watched image repository, used for log context only.
        event_emitter: Sink for dispatch events.
    """

    def __init__(
        self,
        taas_client: TaasClient,
        test_name: str,
        repo_name: str,
        event_emitter: Optional[EventEmitter] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.taas_client = taas_client
        self.test_name = test_name
        self.repo_name = repo_name
        self.event_emitter = event_emitter or NullEventEmitter()
        self._sleep = sleep
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        """Number of triggers scheduled but not yet fired."""
        return len(self._pending)

    def schedule(
        self, tag: str, payload: TriggerPayload, delay: timedelta
    ) -> asyncio.Task:
        """Schedule a one-shot trigger to fire after ``delay``.

        Must be called from within a running event loop. Returns
        immediately; the returned task is for observation only.
        """
        task = asyncio.create_task(
            self._fire_after(tag, payload, delay),
            name=f"trigger:{tag}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _fire_after(
        self, tag: str, payload: TriggerPayload, delay: timedelta
    ) -> None:
        await self._sleep(delay.total_seconds())
        try:
            await self.dispatch(tag, payload)
        except Exception:
            logger.exception(
                "Unexpected error dispatching trigger",
                extra={"tag": tag, "test_name": self.test_name},
            )

    async def dispatch(self, tag: str, payload: TriggerPayload) -> bool:
        """POST the release hook to TaaS once.

        Failures are logged and reported through the event emitter; they
        are never retried or raised.

        Returns:
            True if TaaS accepted the trigger, False otherwise.
        """
        logger.info(
            "Triggering TaaS test run for image %s:%s on test %s...",
            self.repo_name,
            tag,
            self.test_name,
        )
        try:
            await self.taas_client.trigger_release_hook(payload)
        except DispatchError as e:
            logger.error(
                "Failed to trigger test run: %s",
                e.message,
                extra={
                    "tag": tag,
                    "test_name": self.test_name,
                    "status_code": e.status_code,
                },
            )
            await self._emit(
                EventType.TRIGGER_DISPATCHED,
                tag,
                success=False,
                error_message=e.message,
            )
            await self._emit(
                EventType.ERROR,
                tag,
                stage="dispatch",
                error_type=type(e).__name__,
                error_message=e.message,
            )
            return False

        logger.info("Test run triggered successfully!", extra={"tag": tag})
        await self._emit(EventType.TRIGGER_DISPATCHED, tag, success=True)
        return True

    async def _emit(
        self, event_type: EventType, tag: str, **details: object
    ) -> None:
        await self.event_emitter.emit(
            RelayEvent(
                event_type=event_type,
                tag=tag,
                repository=self.repo_name,
                details=details,
            )
        )

    async def shutdown(self) -> None:
        """Abandon all pending triggers.

        Pending triggers are not persisted; dropping them here mirrors
        what a process restart does.
        """
        pending = list(self._pending)
        if pending:
            logger.warning(
                "Abandoning %d pending trigger(s) on shutdown", len(pending)
            )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
