"""Error taxonomy for the hook relay.

Only StartupConfigError is fatal. Every other error is raised inside a
single hook's pipeline, logged at the pipeline boundary, and never
reported back to the webhook sender.
"""

from typing import Optional


class HookRelayError(Exception):
    """Base class for all hook relay errors."""


class StartupConfigError(HookRelayError):
    """Raised when the process cannot start because of invalid settings."""


class MalformedPayload(HookRelayError):
    """Raised when an inbound hook lacks the repository or tag fields."""


class DownstreamError(HookRelayError):
    """Raised when a call to a downstream API fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response, if any.
        response_body: Response body from the downstream API, if any.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class DiagnosticFetchError(DownstreamError):
    """Raised when the TaaS diagnostic record cannot be fetched or parsed."""


class ReleaseFetchError(DownstreamError):
    """Raised when the Akkeris release list cannot be fetched or parsed."""


class NoReleasesError(ReleaseFetchError):
    """Raised when the app has no releases to trigger a test run against."""


class DispatchError(DownstreamError):
    """Raised when the TaaS release hook POST fails."""
