"""Registry webhook models for the hook relay.

This module defines the inbound hook payload sent by the container
registry on every image push, and the result of validating it against
the configured repository and tag prefix.

Registry Webhook Payload Structure (only the fields the relay reads):
{
  "repository": {"repo_name": "akkeris/ui"},
  "push_data": {"tag": "release-1.2.3"}
}

The models use Pydantic for validation, consistent with the relay's
configuration approach in config.py.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HookRepository(BaseModel):
    """Repository section of a registry push hook."""

    model_config = ConfigDict(extra="ignore")

    repo_name: Optional[str] = Field(
        default=None,
        description="Full repository name, e.g. 'akkeris/ui'",
    )

    @field_validator("repo_name", mode="before")
    @classmethod
    def non_string_name_is_unknown(cls, v: Any) -> Optional[str]:
        # Non-string names compare as a repo mismatch, not a malformed hook
        return v if isinstance(v, str) else None


class HookPushData(BaseModel):
    """Push section of a registry push hook."""

    model_config = ConfigDict(extra="ignore")

    tag: str = Field(
        ...,
        min_length=1,
        description="The image tag that was pushed",
    )


class InboundHook(BaseModel):
    """Parsed registry push notification.

    Attributes:
        repository: The repository the image was pushed to.
        push_data: Push details, including the pushed tag.
    """

    model_config = ConfigDict(extra="ignore")

    repository: HookRepository

    push_data: HookPushData

    @property
    def repo_name(self) -> Optional[str]:
        return self.repository.repo_name

    @property
    def tag(self) -> str:
        return self.push_data.tag

    @property
    def image(self) -> str:
        """Image reference in format "{repo_name}:{tag}"."""
        return f"{self.repo_name}:{self.tag}"


class ValidationOutcome(str, Enum):
    """Decision categories for an inbound hook.

    Attributes:
        ACCEPTED: Repository and tag match; the hook triggers a test run.
        MALFORMED: Required fields are missing or of the wrong type.
        REPO_MISMATCH: Hook is for a repository the relay does not watch.
        TAG_PREFIX_MISMATCH: Tag lacks the required prefix.
    """

    ACCEPTED = "accepted"
    MALFORMED = "malformed"
    REPO_MISMATCH = "repo_mismatch"
    TAG_PREFIX_MISMATCH = "tag_prefix_mismatch"


class ValidationResult(BaseModel):
    """Outcome of validating a single inbound hook.

    Attributes:
        outcome: The decision category.
        reason: Human-readable explanation, suitable for logs.
        hook: The parsed hook, absent when the payload was malformed.
    """

    outcome: ValidationOutcome

    reason: str = ""

    hook: Optional[InboundHook] = None

    @property
    def accepted(self) -> bool:
        return self.outcome == ValidationOutcome.ACCEPTED
