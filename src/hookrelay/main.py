"""FastAPI application entry point for the hook relay.

This module wires the relay components together and exposes them over
HTTP:
- POST /hook     registry push webhook (200, or 400 for malformed hooks)
- GET  /health   liveness probe
- GET  /metrics  Prometheus metrics

Components are built once per application in the lifespan handler and
kept on ``app.state``; settings are immutable after startup.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry

from src.hookrelay.clients.akkeris import AkkerisClient
from src.hookrelay.clients.taas import TaasClient
from src.hookrelay.config import RelaySettings, load_settings, redact_secret
from src.hookrelay.dispatcher import SleepFunc, TriggerDispatcher
from src.hookrelay.errors import StartupConfigError
from src.hookrelay.events.emitter import CompositeEventEmitter, LoggingEventEmitter
from src.hookrelay.events.metrics import MetricsEventEmitter, RelayMetrics
from src.hookrelay.pipeline import HookPipeline
from src.hookrelay.resolver import ReleaseResolver
from src.hookrelay.schedule import utc_now
from src.hookrelay.webhook.handler import HookValidator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _log_configuration(settings: RelaySettings) -> None:
    """Log configuration values with the API token redacted."""
    logger.info("Hook relay configuration:")
    logger.info(f"  Akkeris API URL: {settings.akkeris_api_url}")
    logger.info(f"  Akkeris API Token: {redact_secret(settings.akkeris_api_token)}")
    logger.info(f"  Image Repo: {settings.ui_image_repo}")
    logger.info(f"  Image Tag Prefix: {settings.ui_image_tag_prefix}")
    logger.info(f"  TaaS URL: {settings.taas_url}")
    logger.info(f"  TaaS Test Name: {settings.taas_test_name}")
    logger.info(f"  Strict Validation: {settings.strict_validation}")
    logger.info(f"  Ack Before Processing: {settings.ack_before_processing}")
    logger.info(f"  Sync Period Seconds: {settings.sync_period_seconds}")
    logger.info(f"  Sync Offset Seconds: {settings.sync_offset_seconds}")
    logger.info(f"  HTTP Timeout Seconds: {settings.http_timeout_seconds}")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


def build_pipeline(
    settings: RelaySettings,
    taas_client: TaasClient,
    akkeris_client: AkkerisClient,
    metrics: RelayMetrics,
    sleep: SleepFunc = asyncio.sleep,
    clock: Callable[[], datetime] = utc_now,
) -> HookPipeline:
    """Wire all relay dependencies into a HookPipeline."""
    event_emitter = CompositeEventEmitter(
        [LoggingEventEmitter(), MetricsEventEmitter(metrics)]
    )

    validator = HookValidator(
        repo_name=settings.ui_image_repo,
        tag_prefix=settings.ui_image_tag_prefix,
    )
    resolver = ReleaseResolver(
        taas_client=taas_client,
        akkeris_client=akkeris_client,
    )
    dispatcher = TriggerDispatcher(
        taas_client=taas_client,
        test_name=settings.taas_test_name,
        repo_name=settings.ui_image_repo,
        event_emitter=event_emitter,
        sleep=sleep,
    )

    return HookPipeline(
        validator=validator,
        resolver=resolver,
        dispatcher=dispatcher,
        test_name=settings.taas_test_name,
        event_emitter=event_emitter,
        strict_validation=settings.strict_validation,
        ack_before_processing=settings.ack_before_processing,
        period=timedelta(seconds=settings.sync_period_seconds),
        offset=timedelta(seconds=settings.sync_offset_seconds),
        clock=clock,
    )


def create_app(
    settings: RelaySettings,
    taas_client: Optional[TaasClient] = None,
    akkeris_client: Optional[AkkerisClient] = None,
    sleep: SleepFunc = asyncio.sleep,
    clock: Callable[[], datetime] = utc_now,
    registry: Optional[CollectorRegistry] = None,
) -> FastAPI:
    """Create the relay application.

    Args:
        settings: Validated relay settings.
        taas_client: Optional TaaS client; built from settings if None.
        akkeris_client: Optional Akkeris client; built from settings if None.
        sleep: Sleep function for trigger timers (virtual clock in tests).
        clock: Current-time source for scheduling.
        registry: Optional Prometheus registry; a private one if None.

    Returns:
        FastAPI: The configured application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Hook relay starting up...")
        _log_configuration(settings)

        taas = taas_client or TaasClient(
            base_url=settings.taas_url,
            token=settings.akkeris_api_token,
            timeout=settings.http_timeout_seconds,
        )
        akkeris = akkeris_client or AkkerisClient(
            base_url=settings.akkeris_api_url,
            token=settings.akkeris_api_token,
            timeout=settings.http_timeout_seconds,
        )
        metrics = RelayMetrics(registry=registry)

        app.state.metrics = metrics
        app.state.pipeline = build_pipeline(
            settings, taas, akkeris, metrics, sleep=sleep, clock=clock
        )

        logger.info(f"Listening on port {settings.port}...")

        yield

        logger.info("Hook relay shutting down...")
        await app.state.pipeline.shutdown()
        await taas.close()
        await akkeris.close()
        logger.info("Hook relay shutdown complete")

    app = FastAPI(
        title="Hook Relay",
        description="Relays registry push hooks into scheduled TaaS test runs",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health():
        """Liveness probe endpoint."""
        return {"status": "healthy"}

    @app.get("/metrics")
    async def metrics(request: Request):
        """Prometheus metrics endpoint."""
        return Response(
            content=request.app.state.metrics.render(),
            media_type=CONTENT_TYPE_LATEST,
        )

    @app.post("/hook")
    async def hook(request: Request):
        """Registry push webhook receiver.

        Returns 400 only for malformed hooks in strict mode. Every other
        hook, including ones whose trigger later fails, gets a 200.
        """
        logger.info("POST /hook")
        try:
            payload = await request.json()
        except ValueError:
            payload = None

        response = await request.app.state.pipeline.handle(payload)
        return JSONResponse(status_code=response.status_code, content=response.body)

    return app


def run() -> None:
    """Console entry point: load settings, then serve with uvicorn."""
    import uvicorn

    try:
        settings = load_settings()
    except StartupConfigError as exc:
        configure_logging()
        logger.error(str(exc))
        sys.exit(1)

    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
