# navigator/errors.py
from __future__ import annotations

from typing import Dict, Optional


class NavigatorError(Exception):
    """Base class for failures the UI reports at the call site."""


class ValidationFailed(NavigatorError):
    """A required field is missing or malformed. Nothing was written."""

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.fields = fields or {}


class WriteFailed(NavigatorError):
    """The backend rejected an insert/update. Local form state should be kept for retry."""


class LookupMiss(NavigatorError):
    """An explicit lookup (profile by phone, hospital by profile...) found nothing."""


class ProfileResolutionFailed(NavigatorError):
    """The profile could not be read or created. No role is assumed."""
