"""Async clients for the TaaS and Akkeris APIs."""

from src.hookrelay.clients.akkeris import AkkerisClient
from src.hookrelay.clients.base import ApiClient
from src.hookrelay.clients.models import (
    DiagnosticRecord,
    Release,
    TriggerApp,
    TriggerBuild,
    TriggerPayload,
    TriggerRelease,
    TriggerSpace,
)
from src.hookrelay.clients.taas import TaasClient

__all__ = [
    "AkkerisClient",
    "ApiClient",
    "DiagnosticRecord",
    "Release",
    "TaasClient",
    "TriggerApp",
    "TriggerBuild",
    "TriggerPayload",
    "TriggerRelease",
    "TriggerSpace",
]
