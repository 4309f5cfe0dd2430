"""Unit tests for relay event emitters and metrics."""

import asyncio
import logging
from unittest.mock import AsyncMock

from prometheus_client import CollectorRegistry

from src.hookrelay.events import (
    CompositeEventEmitter,
    EventType,
    LoggingEventEmitter,
    MetricsEventEmitter,
    RelayEvent,
    RelayMetrics,
)


def run_async(coro):
    return asyncio.run(coro)


def _metrics():
    registry = CollectorRegistry()
    return registry, RelayMetrics(registry=registry)


class TestLoggingEventEmitter:
    def test_error_event_logged_at_error(self, caplog):
        event = RelayEvent(
            event_type=EventType.ERROR,
            tag="release-1",
            repository="akkeris/ui",
            details={"stage": "diagnostic"},
        )

        with caplog.at_level(logging.INFO):
            run_async(LoggingEventEmitter().emit(event))

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.stage == "diagnostic"
        assert record.event_type == "error"

    def test_failed_dispatch_logged_at_error(self, caplog):
        event = RelayEvent(
            event_type=EventType.TRIGGER_DISPATCHED,
            tag="release-1",
            details={"success": False},
        )

        with caplog.at_level(logging.INFO):
            run_async(LoggingEventEmitter().emit(event))

        assert caplog.records[-1].levelno == logging.ERROR

    def test_ignored_hook_logged_at_info(self, caplog):
        event = RelayEvent(event_type=EventType.HOOK_IGNORED, tag="latest")

        with caplog.at_level(logging.INFO):
            run_async(LoggingEventEmitter().emit(event))

        assert caplog.records[-1].levelno == logging.INFO


class TestCompositeEventEmitter:
    def test_failing_child_does_not_block_others(self):
        broken = AsyncMock()
        broken.emit.side_effect = RuntimeError("sink down")
        healthy = AsyncMock()
        event = RelayEvent(event_type=EventType.HOOK_ACCEPTED, tag="release-1")

        run_async(CompositeEventEmitter([broken, healthy]).emit(event))

        healthy.emit.assert_awaited_once_with(event)

    def test_close_reaches_every_child_despite_failures(self):
        broken = AsyncMock()
        broken.close.side_effect = RuntimeError("already closed")
        healthy = AsyncMock()

        run_async(CompositeEventEmitter([broken, healthy]).close())

        healthy.close.assert_awaited_once()


class TestMetricsEventEmitter:
    def test_counts_hook_outcomes(self):
        registry, metrics = _metrics()
        emitter = MetricsEventEmitter(metrics)

        async def emit_all():
            await emitter.emit(RelayEvent(event_type=EventType.HOOK_ACCEPTED))
            await emitter.emit(
                RelayEvent(
                    event_type=EventType.HOOK_IGNORED,
                    details={"outcome": "tag_prefix_mismatch"},
                )
            )
            await emitter.emit(
                RelayEvent(event_type=EventType.HOOK_REJECTED, details={"outcome": "malformed"})
            )

        run_async(emit_all())

        for outcome in ("accepted", "tag_prefix_mismatch", "malformed"):
            assert registry.get_sample_value(
                "hookrelay_hooks_received_total", {"outcome": outcome}
            ) == 1.0
        assert registry.get_sample_value(
            "hookrelay_hooks_received_total", {"outcome": "repo_mismatch"}
        ) == 0.0

    def test_records_schedule_delay(self):
        registry, metrics = _metrics()
        event = RelayEvent(
            event_type=EventType.TRIGGER_SCHEDULED, details={"delay_seconds": 210.0}
        )

        run_async(MetricsEventEmitter(metrics).emit(event))

        assert registry.get_sample_value("hookrelay_triggers_scheduled_total") == 1.0
        assert registry.get_sample_value("hookrelay_trigger_delay_seconds_sum") == 210.0

    def test_unknown_error_stage_is_bucketed(self):
        registry, metrics = _metrics()
        event = RelayEvent(event_type=EventType.ERROR, details={"stage": "mystery"})

        run_async(MetricsEventEmitter(metrics).emit(event))

        assert registry.get_sample_value(
            "hookrelay_pipeline_errors_total", {"stage": "unknown"}
        ) == 1.0

    def test_render_is_prometheus_text(self):
        _, metrics = _metrics()

        output = metrics.render().decode()

        assert "# TYPE hookrelay_hooks_received_total counter" in output
