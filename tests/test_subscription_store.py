from datetime import datetime, timedelta, timezone

import pytest

from spotshare.core.errors import PersistenceFailure
from spotshare.domain.models import Identity, SubscriptionTier
from spotshare.stores.subscription import SubscriptionStore, tier_from_profile

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_tier_from_profile_variants():
    assert tier_from_profile(None) is SubscriptionTier.FREE
    assert tier_from_profile({"subscription_status": "free"}) is SubscriptionTier.FREE
    assert tier_from_profile({"subscription_status": "premium"}) is SubscriptionTier.PREMIUM
    assert tier_from_profile({"subscription_status": "PREMIUM"}) is SubscriptionTier.PREMIUM
    assert tier_from_profile({"subscription_status": "gold"}) is SubscriptionTier.FREE


def test_expired_premium_reads_as_free():
    expired = {"subscription_status": "premium", "subscription_end_date": (NOW - timedelta(days=1)).isoformat()}
    active = {"subscription_status": "premium", "subscription_end_date": "2026-04-01T00:00:00Z"}
    assert tier_from_profile(expired, now=NOW) is SubscriptionTier.FREE
    assert tier_from_profile(active, now=NOW) is SubscriptionTier.PREMIUM


@pytest.mark.asyncio
async def test_refresh_reads_profile(backend):
    await backend.insert("profiles", {"id": "u1", "subscription_status": "premium"})
    await backend.insert("profiles", {"id": "u2", "subscription_status": "free"})
    store = SubscriptionStore(backend)

    assert await store.refresh(Identity(id="u1")) is SubscriptionTier.PREMIUM
    assert store.current_tier() is SubscriptionTier.PREMIUM
    assert await store.refresh(Identity(id="u2")) is SubscriptionTier.FREE
    assert await store.refresh(Identity(id="missing")) is SubscriptionTier.FREE


@pytest.mark.asyncio
async def test_refresh_signed_out_is_free(backend):
    store = SubscriptionStore(backend)
    store.set_tier(SubscriptionTier.PREMIUM)
    assert await store.refresh(None) is SubscriptionTier.FREE


@pytest.mark.asyncio
async def test_refresh_failure_drops_to_free_and_raises(backend, monkeypatch):
    async def boom(*_args, **_kwargs):
        raise RuntimeError("profiles unavailable")

    store = SubscriptionStore(backend)
    store.set_tier(SubscriptionTier.PREMIUM)
    monkeypatch.setattr(backend, "select_all", boom)

    with pytest.raises(PersistenceFailure):
        await store.refresh(Identity(id="u1"))
    assert store.current_tier() is SubscriptionTier.FREE


def test_unreadable_end_date_reads_as_free():
    profile = {"id": "u1", "subscription_status": "premium", "subscription_end_date": "next tuesday"}
    assert tier_from_profile(profile, now=NOW) is SubscriptionTier.FREE


@pytest.mark.asyncio
async def test_refresh_with_unreadable_end_date_does_not_raise(backend):
    await backend.insert("profiles", {"id": "u1", "subscription_status": "premium", "subscription_end_date": "??"})
    store = SubscriptionStore(backend)

    assert await store.refresh(Identity(id="u1")) is SubscriptionTier.FREE
