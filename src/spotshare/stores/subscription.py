"""
Subscription tier store.

Reads the billing state recorded on the user's profile row and exposes it through
the `TierOracle` interface the visibility store consumes. Anything it cannot read
is reported as free.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from spotshare.backend.base import RowStore
from spotshare.core.errors import PersistenceFailure
from spotshare.core.time import ensure_utc, utc_now
from spotshare.domain.models import Identity, SubscriptionTier

logger = logging.getLogger(__name__)


def tier_from_profile(profile: Mapping[str, Any] | None, *, now: datetime | None = None) -> SubscriptionTier:
    if not profile:
        return SubscriptionTier.FREE
    if str(profile.get("subscription_status") or "").lower() != SubscriptionTier.PREMIUM.value:
        return SubscriptionTier.FREE

    end = profile.get("subscription_end_date")
    if end:
        try:
            end_dt = end if isinstance(end, datetime) else datetime.fromisoformat(str(end).replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Unreadable subscription_end_date %r on profile %s; treating as free.", end, profile.get("id"))
            return SubscriptionTier.FREE
        if ensure_utc(end_dt) <= (now or utc_now()):
            return SubscriptionTier.FREE
    return SubscriptionTier.PREMIUM


class SubscriptionStore:
    def __init__(self, rows: RowStore, *, collection: str = "profiles"):
        self._rows = rows
        self._collection = collection
        self._tier = SubscriptionTier.FREE

    def current_tier(self) -> SubscriptionTier:
        return self._tier

    def set_tier(self, tier: SubscriptionTier) -> None:
        self._tier = tier

    async def refresh(self, identity: Identity | None) -> SubscriptionTier:
        """Reload the tier for `identity` (signed out means free)."""
        if identity is None:
            self._tier = SubscriptionTier.FREE
            return self._tier
        try:
            rows = await self._rows.select_all(self._collection, match={"id": identity.id})
        except Exception as exc:
            self._tier = SubscriptionTier.FREE
            raise PersistenceFailure(f"Could not load profile: {exc}") from exc
        self._tier = tier_from_profile(rows[0] if rows else None)
        logger.info("Subscription tier for %s: %s", identity.id, self._tier.value)
        return self._tier
