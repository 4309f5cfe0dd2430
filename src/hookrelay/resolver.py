"""Release resolution for test triggers.

Builds the TaaS release hook body for a diagnostic by merging two
lookups:

1. TaaS diagnostic record -> which app/space the test targets, plus the
   action/result/id of its last run
2. Akkeris release list for that app/space -> the current release id

The most recent release is the last entry of the list; Akkeris returns
releases oldest first and no timestamp check is done.
"""

import logging

from src.hookrelay.clients.akkeris import AkkerisClient
from src.hookrelay.clients.models import (
    TriggerApp,
    TriggerBuild,
    TriggerPayload,
    TriggerRelease,
    TriggerSpace,
)
from src.hookrelay.clients.taas import TaasClient
from src.hookrelay.errors import NoReleasesError

logger = logging.getLogger(__name__)


class ReleaseResolver:
    """Resolves a TaaS diagnostic into a ready-to-send TriggerPayload.

    Attributes:
        taas_client: Client for the TaaS diagnostic endpoint.
        akkeris_client: Client for the Akkeris release listing.
    """

    def __init__(self, taas_client: TaasClient, akkeris_client: AkkerisClient):
        self.taas_client = taas_client
        self.akkeris_client = akkeris_client

    async def resolve(self, test_name: str) -> TriggerPayload:
        """Build the trigger payload for a diagnostic.

        Args:
            test_name: Name of the TaaS diagnostic to trigger.

        Returns:
            TriggerPayload targeting the app's most recent release.

        Raises:
            DiagnosticFetchError: If the diagnostic cannot be fetched.
            ReleaseFetchError: If the release list cannot be fetched.
            NoReleasesError: If the app has no releases.
        """
        diagnostic = await self.taas_client.get_diagnostic(test_name)
        releases = await self.akkeris_client.list_releases(
            diagnostic.app, diagnostic.space
        )

        if not releases:
            raise NoReleasesError(
                message=f"No releases found for {diagnostic.app_space}",
            )

        current = releases[-1]
        logger.info(
            "Resolved current release",
            extra={
                "test_name": test_name,
                "app": diagnostic.app,
                "space": diagnostic.space,
                "release_id": current.id,
            },
        )

        return TriggerPayload(
            action=diagnostic.action,
            app=TriggerApp(id=diagnostic.id, name=diagnostic.app),
            space=TriggerSpace(name=diagnostic.space),
            release=TriggerRelease(result=diagnostic.result, id=current.id),
            build=TriggerBuild(id=""),
        )
