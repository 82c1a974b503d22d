from datetime import timedelta

from market_intel.domain.models import MarketIntelligenceResult
from market_intel.infrastructure.cache.intelligence_cache import IntelligenceCache
from tests.factories import MID_SESSION


def test_empty_cache():
    cache = IntelligenceCache()
    assert cache.get(MID_SESSION) is None
    assert cache.last() is None
    assert cache.stored_at is None


def test_ttl_expiry():
    cache = IntelligenceCache(ttl_minutes=15)
    result = MarketIntelligenceResult(conditions=None)
    cache.set(result, MID_SESSION)

    assert cache.get(MID_SESSION + timedelta(minutes=14, seconds=59)) is result
    assert cache.get(MID_SESSION + timedelta(minutes=15)) is None
    # Stale value still available for replay
    assert cache.last() is result
    assert cache.stored_at == MID_SESSION


def test_clear():
    cache = IntelligenceCache()
    cache.set(MarketIntelligenceResult(conditions=None), MID_SESSION)
    cache.clear()
    assert cache.last() is None
    assert cache.get(MID_SESSION) is None
