"""Registry webhook validation for the hook relay.

This module provides the HookValidator class, which decides what to do
with each inbound push notification. Every payload falls into exactly
one category:

- malformed: `repository` or `push_data.tag` is missing or mistyped
- repo_mismatch: `repository.repo_name` is not the watched repository
- tag_prefix_mismatch: the pushed tag lacks the required prefix
- accepted: the push should trigger a test run

The validator only decides; mapping the decision to an HTTP status is the
pipeline's job (see pipeline.py), since that depends on strictness mode.
The inbound sender is not authenticated.
"""

import logging
from typing import Any

from pydantic import ValidationError

from src.hookrelay.errors import MalformedPayload

from .models import InboundHook, ValidationOutcome, ValidationResult

logger = logging.getLogger(__name__)


class HookValidator:
    """Validator for registry push hooks.

    Attributes:
        repo_name: The only repository whose pushes are relayed.
        tag_prefix: Required prefix for relayed image tags.
    """

    def __init__(self, repo_name: str, tag_prefix: str) -> None:
        self.repo_name = repo_name
        self.tag_prefix = tag_prefix

    def validate(self, payload: Any) -> ValidationResult:
        """Validate an inbound hook payload and log the decision.

        Args:
            payload: The decoded JSON request body.

        Returns:
            ValidationResult describing the decision. Never raises for
            bad input; malformed payloads become a MALFORMED result.
        """
        try:
            hook = self.parse(payload)
        except MalformedPayload as exc:
            logger.warning("Invalid hook payload: %s", exc)
            return ValidationResult(
                outcome=ValidationOutcome.MALFORMED,
                reason=str(exc),
            )

        if hook.repo_name != self.repo_name:
            logger.info(
                "Received valid hook, but repo did not match expected. "
                "Ignored webhook.",
                extra={"repo_name": hook.repo_name, "expected": self.repo_name},
            )
            return ValidationResult(
                outcome=ValidationOutcome.REPO_MISMATCH,
                reason=f"repository {hook.repo_name!r} is not {self.repo_name!r}",
                hook=hook,
            )

        if not hook.tag.startswith(self.tag_prefix):
            logger.info(
                "Received valid hook, but image tag did not match required "
                "prefix. Ignored webhook.",
                extra={"tag": hook.tag, "prefix": self.tag_prefix},
            )
            return ValidationResult(
                outcome=ValidationOutcome.TAG_PREFIX_MISMATCH,
                reason=f"tag {hook.tag!r} does not start with {self.tag_prefix!r}",
                hook=hook,
            )

        logger.info("Accepted hook for image %s", hook.image)
        return ValidationResult(outcome=ValidationOutcome.ACCEPTED, hook=hook)

    def parse(self, payload: Any) -> InboundHook:
        """Parse a raw payload into an InboundHook.

        Raises:
            MalformedPayload: If the payload is not an object or lacks
                `repository` or a non-empty string `push_data.tag`.
        """
        if not isinstance(payload, dict):
            raise MalformedPayload(
                f"expected a JSON object, got {type(payload).__name__}"
            )

        try:
            return InboundHook.model_validate(payload)
        except ValidationError as exc:
            fields = sorted(
                {".".join(str(part) for part in error["loc"]) for error in exc.errors()}
            )
            raise MalformedPayload(
                f"missing or invalid fields: {', '.join(fields)}"
            ) from exc

