"""Prometheus metrics for the relay.

Metrics Defined:
- hookrelay_hooks_received_total{outcome}: hooks by validation outcome
- hookrelay_triggers_scheduled_total: triggers whose timer was started
- hookrelay_triggers_dispatched_total{result}: fired triggers by result
- hookrelay_pipeline_errors_total{stage}: dropped hooks by failing stage
- hookrelay_trigger_delay_seconds: delay between scheduling and firing

Metrics live in an explicit CollectorRegistry owned by the application,
which keeps test apps isolated from each other. They are exposed at
`/metrics` by main.py.
"""

import logging
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from src.hookrelay.events.emitter import EventEmitter
from src.hookrelay.events.models import EventType, RelayEvent
from src.hookrelay.webhook.models import ValidationOutcome

logger = logging.getLogger(__name__)


# Delays are bounded by one sync period plus the offset (6 minutes default)
DELAY_BUCKETS = (15.0, 30.0, 60.0, 120.0, 180.0, 240.0, 300.0, 360.0, 600.0)

PIPELINE_STAGES = ("diagnostic", "releases", "schedule", "dispatch", "unknown")


class RelayMetrics:
    """Container for all relay Prometheus metrics.

    Attributes:
        registry: The Prometheus registry these metrics are registered in.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.hooks_received_total = Counter(
            "hookrelay_hooks_received_total",
            "Inbound registry hooks by validation outcome",
            labelnames=["outcome"],
            registry=self.registry,
        )

        self.triggers_scheduled_total = Counter(
            "hookrelay_triggers_scheduled_total",
            "Test triggers scheduled after release resolution",
            registry=self.registry,
        )

        self.triggers_dispatched_total = Counter(
            "hookrelay_triggers_dispatched_total",
            "Test triggers fired, by result",
            labelnames=["result"],
            registry=self.registry,
        )

        self.pipeline_errors_total = Counter(
            "hookrelay_pipeline_errors_total",
            "Accepted hooks dropped because a pipeline stage failed",
            labelnames=["stage"],
            registry=self.registry,
        )

        self.trigger_delay_seconds = Histogram(
            "hookrelay_trigger_delay_seconds",
            "Delay between scheduling a trigger and firing it",
            buckets=DELAY_BUCKETS,
            registry=self.registry,
        )

        for outcome in ValidationOutcome:
            self.hooks_received_total.labels(outcome=outcome.value)
        for result in ("success", "failure"):
            self.triggers_dispatched_total.labels(result=result)
        for stage in PIPELINE_STAGES:
            self.pipeline_errors_total.labels(stage=stage)

    def record_hook(self, outcome: str) -> None:
        self.hooks_received_total.labels(outcome=outcome).inc()

    def record_scheduled(self, delay_seconds: float) -> None:
        self.triggers_scheduled_total.inc()
        self.trigger_delay_seconds.observe(delay_seconds)

    def record_dispatched(self, success: bool) -> None:
        result = "success" if success else "failure"
        self.triggers_dispatched_total.labels(result=result).inc()

    def record_error(self, stage: str) -> None:
        if stage not in PIPELINE_STAGES:
            stage = "unknown"
        self.pipeline_errors_total.labels(stage=stage).inc()

    def render(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that updates Prometheus metrics from relay events."""

    def __init__(self, metrics: Optional[RelayMetrics] = None):
        self._metrics = metrics or RelayMetrics()

    @property
    def metrics(self) -> RelayMetrics:
        return self._metrics

    async def emit(self, event: RelayEvent) -> None:
        try:
            if event.event_type == EventType.HOOK_ACCEPTED:
                self._metrics.record_hook(ValidationOutcome.ACCEPTED.value)
            elif event.event_type in (EventType.HOOK_IGNORED, EventType.HOOK_REJECTED):
                self._metrics.record_hook(event.details.get("outcome", "malformed"))
            elif event.event_type == EventType.TRIGGER_SCHEDULED:
                self._metrics.record_scheduled(
                    float(event.details.get("delay_seconds", 0.0))
                )
            elif event.event_type == EventType.TRIGGER_DISPATCHED:
                self._metrics.record_dispatched(bool(event.details.get("success")))
            elif event.event_type == EventType.ERROR:
                self._metrics.record_error(event.details.get("stage", "unknown"))
        except Exception as e:
            logger.error(
                "Failed to update metrics for event %s: %s",
                event.event_type.value,
                e,
            )
