"""Unit tests for the HookPipeline.

Resolver and dispatcher are mocked so the tests can assert exactly which
downstream calls each kind of hook triggers, and that nothing after
validation changes the response.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.hookrelay.clients.models import (
    TriggerApp,
    TriggerPayload,
    TriggerRelease,
    TriggerSpace,
)
from src.hookrelay.errors import (
    DiagnosticFetchError,
    NoReleasesError,
    ReleaseFetchError,
)
from src.hookrelay.events.models import EventType
from src.hookrelay.pipeline import HookPipeline
from src.hookrelay.webhook.handler import HookValidator

NOW = datetime(2024, 3, 1, 17, 37, 30, tzinfo=timezone.utc)


def run_async(coro):
    return asyncio.run(coro)


def _make_hook(repo_name: str = "akkeris/ui", tag: str = "release-1.2.3") -> dict:
    return {"repository": {"repo_name": repo_name}, "push_data": {"tag": tag}}


def _make_payload(release_id: str = "r2") -> TriggerPayload:
    return TriggerPayload(
        action="create",
        app=TriggerApp(id="x", name="foo"),
        space=TriggerSpace(name="prod"),
        release=TriggerRelease(result="succeeded", id=release_id),
    )


@pytest.fixture
def deps():
    resolver = AsyncMock()
    resolver.resolve.return_value = _make_payload()
    dispatcher = MagicMock()
    dispatcher.shutdown = AsyncMock()
    event_emitter = AsyncMock()
    return {
        "resolver": resolver,
        "dispatcher": dispatcher,
        "event_emitter": event_emitter,
    }


def _pipeline(
    deps,
    strict_validation: bool = True,
    ack_before_processing: bool = False,
    clock: Optional[datetime] = NOW,
) -> HookPipeline:
    return HookPipeline(
        validator=HookValidator(repo_name="akkeris/ui", tag_prefix="release-"),
        resolver=deps["resolver"],
        dispatcher=deps["dispatcher"],
        test_name="ui-tests-taas",
        event_emitter=deps["event_emitter"],
        strict_validation=strict_validation,
        ack_before_processing=ack_before_processing,
        clock=lambda: clock,
    )


def _event_types(deps):
    return [call.args[0].event_type for call in deps["event_emitter"].emit.call_args_list]


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def test_accepted_hook_schedules_trigger(deps):
    response = run_async(_pipeline(deps).handle(_make_hook()))

    assert response.status_code == 200
    assert response.body["status"] == "accepted"
    deps["resolver"].resolve.assert_awaited_once_with("ui-tests-taas")
    deps["dispatcher"].schedule.assert_called_once_with(
        "release-1.2.3", _make_payload(), timedelta(minutes=3, seconds=30)
    )
    assert _event_types(deps) == [EventType.HOOK_ACCEPTED, EventType.TRIGGER_SCHEDULED]


def test_repo_mismatch_is_ignored_without_downstream_calls(deps):
    response = run_async(_pipeline(deps).handle(_make_hook(repo_name="other/app")))

    assert response.status_code == 200
    assert response.body["status"] == "ignored"
    deps["resolver"].resolve.assert_not_called()
    deps["dispatcher"].schedule.assert_not_called()
    assert _event_types(deps) == [EventType.HOOK_IGNORED]


def test_prefix_mismatch_is_ignored_without_downstream_calls(deps):
    response = run_async(_pipeline(deps).handle(_make_hook(tag="latest")))

    assert response.status_code == 200
    deps["resolver"].resolve.assert_not_called()
    deps["dispatcher"].schedule.assert_not_called()


def test_malformed_hook_is_400_in_strict_mode(deps):
    response = run_async(_pipeline(deps, strict_validation=True).handle({}))

    assert response.status_code == 400
    assert response.body["status"] == "rejected"
    deps["resolver"].resolve.assert_not_called()
    assert _event_types(deps) == [EventType.HOOK_REJECTED]


def test_malformed_hook_is_silent_200_in_lenient_mode(deps):
    response = run_async(_pipeline(deps, strict_validation=False).handle({}))

    assert response.status_code == 200
    assert response.body["status"] == "ignored"
    deps["resolver"].resolve.assert_not_called()
    deps["dispatcher"].schedule.assert_not_called()


def test_non_json_body_is_malformed(deps):
    response = run_async(_pipeline(deps).handle(None))

    assert response.status_code == 400


# ---------------------------------------------------------------------------
# Downstream failures
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "error,stage",
    [
        (DiagnosticFetchError("taas down"), "diagnostic"),
        (ReleaseFetchError("akkeris 500", status_code=500), "releases"),
        (NoReleasesError("No releases found for foo-prod"), "releases"),
        (RuntimeError("unexpected"), "unknown"),
    ],
)
def test_resolution_failure_still_returns_200(deps, error, stage):
    deps["resolver"].resolve.side_effect = error

    response = run_async(_pipeline(deps).handle(_make_hook()))

    assert response.status_code == 200
    deps["dispatcher"].schedule.assert_not_called()
    error_events = [
        call.args[0]
        for call in deps["event_emitter"].emit.call_args_list
        if call.args[0].event_type == EventType.ERROR
    ]
    assert len(error_events) == 1
    assert error_events[0].details["stage"] == stage
    assert error_events[0].details["error_type"] == type(error).__name__


def test_schedule_failure_is_contained(deps):
    deps["dispatcher"].schedule.side_effect = RuntimeError("no running loop")

    scheduled = run_async(_pipeline(deps).process(
        HookValidator("akkeris/ui", "release-").parse(_make_hook())
    ))

    assert scheduled is False
    assert EventType.ERROR in _event_types(deps)


def test_failing_event_sink_does_not_break_pipeline(deps):
    deps["event_emitter"].emit.side_effect = RuntimeError("sink down")

    response = run_async(_pipeline(deps).handle(_make_hook()))

    assert response.status_code == 200
    deps["dispatcher"].schedule.assert_called_once()


# ---------------------------------------------------------------------------
# Ack timing
# ---------------------------------------------------------------------------


def test_ack_before_processing_returns_before_resolution(deps):
    gate = {}

    async def slow_resolve(test_name):
        await gate["event"].wait()
        return _make_payload()

    deps["resolver"].resolve.side_effect = slow_resolve

    async def scenario():
        gate["event"] = asyncio.Event()
        pipeline = _pipeline(deps, ack_before_processing=True)
        response = await pipeline.handle(_make_hook())
        in_flight = pipeline.processing_count
        scheduled_before_ack = deps["dispatcher"].schedule.called

        gate["event"].set()
        while pipeline.processing_count:
            await asyncio.sleep(0)
        return response, in_flight, scheduled_before_ack

    response, in_flight, scheduled_before_ack = run_async(scenario())

    assert response.status_code == 200
    assert in_flight == 1
    assert scheduled_before_ack is False
    deps["dispatcher"].schedule.assert_called_once()


def test_ack_after_processing_schedules_before_returning(deps):
    response = run_async(_pipeline(deps, ack_before_processing=False).handle(_make_hook()))

    assert response.status_code == 200
    deps["dispatcher"].schedule.assert_called_once()


def test_background_failure_is_isolated_per_hook(deps):
    deps["resolver"].resolve.side_effect = [
        DiagnosticFetchError("first hook fails"),
        _make_payload("r9"),
    ]

    async def scenario():
        pipeline = _pipeline(deps, ack_before_processing=True)
        first = await pipeline.handle(_make_hook(tag="release-1"))
        second = await pipeline.handle(_make_hook(tag="release-2"))
        while pipeline.processing_count:
            await asyncio.sleep(0)
        return first, second

    first, second = run_async(scenario())

    assert first.status_code == second.status_code == 200
    deps["dispatcher"].schedule.assert_called_once()
    assert deps["dispatcher"].schedule.call_args.args[0] == "release-2"
    assert deps["dispatcher"].schedule.call_args.args[1].release.id == "r9"


def test_shutdown_cancels_in_flight_resolution(deps):
    async def never(test_name):
        await asyncio.Event().wait()

    deps["resolver"].resolve.side_effect = never

    async def scenario():
        pipeline = _pipeline(deps, ack_before_processing=True)
        await pipeline.handle(_make_hook())
        await asyncio.sleep(0)
        await pipeline.shutdown()
        return pipeline.processing_count

    assert run_async(scenario()) == 0
    deps["dispatcher"].shutdown.assert_awaited_once()
    deps["dispatcher"].schedule.assert_not_called()
    deps["event_emitter"].close.assert_awaited_once()
