"""
Error taxonomy.

Every failure is local to the user action that triggered it and propagates to the
caller (API route, CLI command). Backend SDK/HTTP errors are wrapped so callers only
need to know these types; the original exception stays available as `__cause__`.
"""

from __future__ import annotations

from typing import Literal


class SpotShareError(Exception):
    """Base class for all SpotShare errors."""


class Unauthenticated(SpotShareError):
    """An action that stamps ownership was attempted without a signed-in identity."""

    def __init__(self, message: str = "No authenticated user"):
        super().__init__(message)


class AuthFailure(SpotShareError):
    """Sign-in, sign-up, sign-out or password change was rejected."""


class PersistenceFailure(SpotShareError):
    """Row-store insert/select failed. Not retried automatically."""


class FeedFailure(SpotShareError):
    """Live subscription could not be set up."""


GeolocationReason = Literal["permission_denied", "timeout", "unavailable"]


class GeolocationFailure(SpotShareError):
    """Device position could not be acquired."""

    def __init__(self, reason: GeolocationReason, message: str | None = None):
        self.reason = reason
        super().__init__(message or f"Geolocation failed: {reason}")
