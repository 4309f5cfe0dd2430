"""Akkeris controller API client (release listing only)."""

import logging
from typing import List
from urllib.parse import quote

from pydantic import TypeAdapter, ValidationError

from src.hookrelay.errors import ReleaseFetchError

from .base import ApiClient
from .models import Release

logger = logging.getLogger(__name__)

_RELEASE_LIST = TypeAdapter(List[Release])


class AkkerisClient(ApiClient):
    """Async client for the Akkeris controller API."""

    async def list_releases(self, app: str, space: str) -> List[Release]:
        """List the releases of ``{app}-{space}``, oldest first.

        Args:
            app: Akkeris app name.
            space: Akkeris space name.

        Returns:
            Releases in the order returned by Akkeris. The last entry is
            the most recent release.

        Raises:
            ReleaseFetchError: On transport failure, non-2xx status, or a
                body that is not a list of releases.
        """
        path = f"/apps/{quote(f'{app}-{space}', safe='')}/releases"
        response = await self._request("GET", path, ReleaseFetchError)
        data = self._decode_json(response, ReleaseFetchError)

        try:
            releases = _RELEASE_LIST.validate_python(data)
        except ValidationError as e:
            raise ReleaseFetchError(
                message=f"Unexpected release list for {app}-{space}: {e}",
                status_code=response.status_code,
                response_body=response.text,
                request_url=str(response.url),
            ) from e

        logger.debug(
            "Fetched releases",
            extra={"app": app, "space": space, "count": len(releases)},
        )
        return releases
