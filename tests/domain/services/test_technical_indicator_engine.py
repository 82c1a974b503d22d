"""
Unit Tests for Technical Indicator Engine
"""

import pytest

from market_intel.domain.models import TrendStrength
from market_intel.domain.services.technical_indicator_engine import calculate_technical_indicators
from market_intel.infrastructure.market_data.types import NIFTY
from tests.factories import default_quotes, make_snapshot


class TestTechnicalIndicators:
    """Indicators from one NIFTY snapshot"""

    def test_trending_session(self):
        result = calculate_technical_indicators(default_quotes()[NIFTY])

        assert result.price_position == 75.0
        assert result.momentum == 0.81
        assert result.momentum_strength == 0.81
        assert result.volatility == 0.81
        assert result.rsi_approximation == 51.62
        assert result.trend_strength == TrendStrength.STRONG
        assert result.is_near_resistance is True
        assert result.volume_indicator == "normal"
        assert result.volume_ratio == 2.5
        assert result.mid_level == 24850.0
        assert result.price_action == "bullish"
        assert result.body_size == 100.0
        assert result.is_near_mid is True

    def test_flat_range_is_degenerate_but_defined(self):
        result = calculate_technical_indicators(make_snapshot(NIFTY, 100.0))

        assert result.price_position == 50.0
        assert result.momentum == 0.0
        assert result.volatility == 0.0
        assert result.rsi_approximation == 50.0
        assert result.trend_strength == TrendStrength.WEAK
        assert result.volume_indicator == "low"
        assert result.price_action == "neutral"

    @pytest.mark.parametrize("change,expected", [(15.0, 70.0), (-15.0, 30.0), (-2.0, 46.0)])
    def test_rsi_proxy_is_clamped(self, change, expected):
        snapshot = make_snapshot(NIFTY, 100.0, high=101.0, low=99.0, change_percent=change)
        assert calculate_technical_indicators(snapshot).rsi_approximation == expected

    def test_moderate_when_off_centre_without_momentum(self):
        snapshot = make_snapshot(NIFTY, 107.0, high=110.0, low=100.0, close=104.0, change_percent=0.1)
        result = calculate_technical_indicators(snapshot)
        assert result.price_position == 70.0
        assert result.trend_strength == TrendStrength.MODERATE

    def test_price_near_low_is_bearish_strong(self):
        snapshot = make_snapshot(
            NIFTY, 100.5, open=103.0, high=105.0, low=100.0, close=104.0, change_percent=-3.4,
        )
        result = calculate_technical_indicators(snapshot)
        assert result.price_position == 10.0
        assert result.trend_strength == TrendStrength.STRONG
        assert result.is_near_support is True
        assert result.is_near_resistance is False
        assert result.price_action == "bearish"
