"""Registry webhook handling for the hook relay.

This module parses registry push notifications and filters them by
repository name and tag prefix before any downstream work is done.
"""

from .handler import HookValidator
from .models import InboundHook, ValidationOutcome, ValidationResult

__all__ = [
    "HookValidator",
    "InboundHook",
    "ValidationOutcome",
    "ValidationResult",
]
