"""TaaS (test-as-a-service) API client.

Two endpoints are used:
- GET  /v1/diagnostic/{test_name}  - last-known state of a diagnostic
- POST /v1/releasehook             - start a test run for a release

The diagnostic lookup is unauthenticated; the release hook carries the
raw Akkeris token as its Authorization header.
"""

import logging
from urllib.parse import quote

from pydantic import ValidationError

from src.hookrelay.errors import DiagnosticFetchError, DispatchError

from .base import ApiClient
from .models import DiagnosticRecord, TriggerPayload

logger = logging.getLogger(__name__)


class TaasClient(ApiClient):
    """Async client for the TaaS diagnostic and release hook endpoints."""

    async def get_diagnostic(self, test_name: str) -> DiagnosticRecord:
        """Fetch the diagnostic record for a named test.

        Raises:
            DiagnosticFetchError: On transport failure, non-2xx status,
                or a body that is not a diagnostic record.
        """
        path = f"/v1/diagnostic/{quote(test_name, safe='')}"
        response = await self._request(
            "GET", path, DiagnosticFetchError, authenticated=False
        )
        data = self._decode_json(response, DiagnosticFetchError)

        try:
            record = DiagnosticRecord.model_validate(data)
        except ValidationError as e:
            raise DiagnosticFetchError(
                message=f"Unexpected diagnostic record for {test_name}: {e}",
                status_code=response.status_code,
                response_body=response.text,
                request_url=str(response.url),
            ) from e

        logger.debug(
            "Fetched diagnostic",
            extra={"test_name": test_name, "app": record.app, "space": record.space},
        )
        return record

    async def trigger_release_hook(self, payload: TriggerPayload) -> None:
        """POST a release hook to TaaS. The response body is ignored.

        Raises:
            DispatchError: On transport failure or non-2xx status.
        """
        await self._request(
            "POST",
            "/v1/releasehook",
            DispatchError,
            json_data=payload.model_dump(mode="json"),
        )
