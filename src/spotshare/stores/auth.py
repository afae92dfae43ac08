"""
Auth store.

Thin state holder around the auth backend: tracks the signed-in user, a loading flag
and the last error message for the UI. Every failure is recorded in `error` and then
re-raised as `AuthFailure`.
"""

from __future__ import annotations

import logging

from spotshare.backend.base import AuthBackend, RowStore
from spotshare.core.errors import AuthFailure
from spotshare.core.time import to_iso, utc_now
from spotshare.domain.models import Identity, SubscriptionTier

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

_FRIENDLY_MESSAGES = {
    "User already registered": "An account with this email already exists",
}


class AuthStore:
    def __init__(self, backend: AuthBackend, rows: RowStore, *, profiles_collection: str = "profiles"):
        self._backend = backend
        self._rows = rows
        self._profiles = profiles_collection
        self.user: Identity | None = None
        self.loading = False
        self.error: str | None = None

    async def restore(self) -> Identity | None:
        """Pick up an existing session from the backend, if any."""
        self.user = await self._backend.current_identity()
        return self.user

    async def sign_in(self, email: str, password: str) -> Identity:
        self._start()
        try:
            self.user = await self._backend.sign_in_with_password(email, password)
        except Exception as exc:
            raise self._fail(exc, "Sign-in failed") from exc
        self.loading = False
        logger.info("Signed in %s", self.user.id)
        return self.user

    async def sign_up(self, email: str, password: str) -> Identity | None:
        self._start()
        name = email.split("@")[0]
        try:
            user = await self._backend.sign_up(email, password, {"name": name, "avatar_url": None})
        except Exception as exc:
            raise self._fail(exc, "Sign-up failed") from exc

        if user is not None:
            await self._create_profile(user, name)
        self.user = user
        self.loading = False
        return user

    async def _create_profile(self, user: Identity, name: str) -> None:
        now = to_iso(utc_now())
        try:
            await self._rows.insert(
                self._profiles,
                {
                    "id": user.id,
                    "email": user.email,
                    "name": name,
                    "subscription_status": SubscriptionTier.FREE.value,
                    "subscription_start_date": None,
                    "subscription_end_date": None,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        except Exception as exc:
            # The account exists either way; a missing profile reads as free tier.
            logger.error("Error creating profile for %s: %s", user.id, str(exc))

    async def sign_out(self) -> None:
        self._start()
        try:
            await self._backend.sign_out()
        except Exception as exc:
            raise self._fail(exc, "Sign-out failed") from exc
        self.user = None
        self.loading = False

    async def change_password(self, new_password: str, confirm_password: str) -> None:
        self.error = None
        if new_password != confirm_password:
            self.error = "Passwords do not match"
            raise AuthFailure(self.error)
        if len(new_password) < MIN_PASSWORD_LENGTH:
            self.error = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            raise AuthFailure(self.error)
        self._start()
        try:
            await self._backend.update_password(new_password)
        except Exception as exc:
            raise self._fail(exc, "Password change failed") from exc
        self.loading = False

    def clear_error(self) -> None:
        self.error = None

    def _start(self) -> None:
        self.loading = True
        self.error = None

    def _fail(self, exc: Exception, fallback: str) -> AuthFailure:
        raw = str(exc) or fallback
        self.error = _FRIENDLY_MESSAGES.get(raw, raw)
        self.loading = False
        logger.warning("%s: %s", fallback, raw)
        return AuthFailure(self.error)
