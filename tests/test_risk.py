"""
Tests for Kelly allocation, risk position sizing and ATR trade setups.
"""

from unittest.mock import MagicMock

import pytest

from apex.core.exceptions import ApexConfigError, InsufficientDataError
from apex.risk.kelly import kelly_size
from apex.risk.position_sizer import RiskPositionSizer
from apex.risk.trade_setup import calculate_trade_setup
from tests.conftest import make_candles


@pytest.fixture
def mock_settings():
    settings = MagicMock()
    settings.risk_per_trade_pct = 2.0
    settings.max_position_pct = 50.0
    return settings


# =============================================================================
# KELLY
# =============================================================================


class TestKelly:
    """Tests for kelly_size."""

    def test_positive_edge_half_kelly(self):
        rec = kelly_size(0.6, 2.0, 10_000)

        # (2 * 0.6 - 0.4) / 2 = 0.4, halved = 0.2 (exactly the cap)
        assert rec.raw_kelly == pytest.approx(0.4)
        assert rec.fraction == pytest.approx(0.2)
        assert rec.percentage == 20.0
        assert rec.amount == 2000.0
        assert rec.kind == "Half-Kelly"
        assert rec.can_trade

    def test_no_edge_is_no_trade(self):
        rec = kelly_size(0.4, 1.0, 10_000)

        assert rec.raw_kelly == pytest.approx(-0.2)
        assert rec.fraction == 0.0
        assert rec.amount == 0.0
        assert rec.kind == "NO TRADE"
        assert not rec.can_trade

    def test_capped_at_max_allocation(self):
        rec = kelly_size(0.9, 3.0, 10_000)

        assert rec.fraction == pytest.approx(0.20)
        assert rec.amount == 2000.0

    def test_custom_multiplier(self):
        rec = kelly_size(0.55, 2.0, 10_000, kelly_multiplier=0.25)

        assert rec.fraction == pytest.approx(0.08125)
        assert rec.kind == "0.25x Kelly"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"win_probability": 1.2, "reward_risk": 2.0, "bankroll": 1000},
            {"win_probability": -0.1, "reward_risk": 2.0, "bankroll": 1000},
            {"win_probability": 0.5, "reward_risk": 0.0, "bankroll": 1000},
            {"win_probability": 0.5, "reward_risk": 2.0, "bankroll": -1},
            {"win_probability": 0.5, "reward_risk": 2.0, "bankroll": 1000, "kelly_multiplier": 0.0},
            {"win_probability": 0.5, "reward_risk": 2.0, "bankroll": 1000, "max_allocation": 1.5},
        ],
    )
    def test_invalid_inputs(self, kwargs):
        with pytest.raises(ApexConfigError):
            kelly_size(**kwargs)


# =============================================================================
# POSITION SIZER
# =============================================================================


class TestRiskPositionSizer:
    """Tests for RiskPositionSizer."""

    def test_basic_risk_sizing(self):
        result = RiskPositionSizer().size(10_000, 100.0, 95.0)

        # $100 at risk / $5 per share
        assert result.shares == 20
        assert result.risk_amount == pytest.approx(100.0)
        assert result.position_value == pytest.approx(2000.0)
        assert not result.capped
        assert result.can_trade

    def test_position_value_cap(self):
        result = RiskPositionSizer().size(10_000, 100.0, 99.0)

        # 100 shares by risk, 9500 / 100 = 95 by value
        assert result.shares == 95
        assert result.capped
        assert result.position_value == pytest.approx(9500.0)
        assert result.position_value <= 10_000 * 0.95

    def test_short_side_distance(self):
        result = RiskPositionSizer().size(10_000, 100.0, 105.0)
        assert result.shares == 20

    def test_zero_stop_distance_rejected(self):
        result = RiskPositionSizer().size(10_000, 100.0, 100.0)

        assert result.shares == 0
        assert not result.can_trade
        assert "equals entry" in result.rejection_reason

    def test_rounds_to_nothing(self):
        result = RiskPositionSizer().size(100, 500.0, 400.0)

        assert result.shares == 0
        assert not result.can_trade

    def test_non_positive_balance(self):
        assert not RiskPositionSizer().size(0, 100.0, 95.0).can_trade

    def test_uses_settings(self, mock_settings):
        sizer = RiskPositionSizer(settings=mock_settings)

        assert sizer.risk_pct == 2.0
        assert sizer.max_position_pct == 50.0
        result = sizer.size(10_000, 100.0, 95.0)
        # $200 risk -> 40 shares, value cap 5000 / 100 = 50
        assert result.shares == 40

    def test_constructor_overrides(self):
        sizer = RiskPositionSizer(risk_per_trade_pct=0.5, max_position_pct=20.0)
        result = sizer.size(10_000, 100.0, 99.0)

        assert result.shares == 20
        assert result.capped

    @pytest.mark.parametrize("risk,cap", [(0.0, 95.0), (101.0, 95.0), (1.0, 0.0), (1.0, 150.0)])
    def test_invalid_config(self, risk, cap):
        with pytest.raises(ApexConfigError):
            RiskPositionSizer(risk_per_trade_pct=risk, max_position_pct=cap)


# =============================================================================
# TRADE SETUP
# =============================================================================


class TestTradeSetup:
    """Tests for calculate_trade_setup."""

    def test_flat_candles(self):
        candles = make_candles([100.0] * 30, highs=[101.0] * 30, lows=[99.0] * 30)
        setup = calculate_trade_setup(100.0, candles, account_size=10_000)

        # ATR 2, swing low 99: min(99 - 1, 100 - 4) = 96
        assert setup.atr == pytest.approx(2.0)
        assert setup.stop_loss == 96.0
        assert setup.risk_per_share == pytest.approx(4.0)
        assert setup.shares == 25
        assert setup.target_1 == 108.0
        assert setup.target_2 == 112.0
        assert setup.target_3 == 120.0
        assert setup.kelly.fraction == pytest.approx(0.2)

    def test_needs_enough_candles(self):
        with pytest.raises(InsufficientDataError) as exc:
            calculate_trade_setup(100.0, make_candles([100.0] * 10), account_size=10_000)

        assert exc.value.required == 15
        assert exc.value.available == 10
