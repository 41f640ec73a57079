"""
Tests for the strategy selector.
"""

import logging

import pytest

from apex.core.enums import StrategyFamily, TimeframeClass
from apex.strategies.base import BaseStrategy
from apex.strategies.selector import StrategySelector, rank_signals
from tests.conftest import make_signal


class FixedScore(BaseStrategy):
    family = StrategyFamily.MOMENTUM
    LABELS = [(50, "BUY")]

    def __init__(self, id: str, score: int):
        super().__init__(bankroll=10_000.0)
        self.id = id
        self.name = id.title()
        self.fixed_score = score

    def _score(self, snapshot, context):
        return self.build(self.fixed_score, [])


class Exploding(BaseStrategy):
    id = "exploding"
    name = "Exploding"

    def _score(self, snapshot, context):
        raise RuntimeError("division by zero somewhere")


# =============================================================================
# RANKING
# =============================================================================


class TestRankSignals:
    """Tests for rank_signals."""

    def test_sorted_descending(self):
        signals = [make_signal(40, id="a"), make_signal(90, id="b"), make_signal(65, id="c")]
        assert [s.id for s in rank_signals(signals)] == ["b", "c", "a"]

    def test_zero_scores_dropped(self):
        signals = [make_signal(0, id="a"), make_signal(10, id="b")]
        assert [s.id for s in rank_signals(signals)] == ["b"]

    def test_ties_keep_input_order(self):
        signals = [make_signal(70, id="first"), make_signal(80, id="top"), make_signal(70, id="second")]
        assert [s.id for s in rank_signals(signals)] == ["top", "first", "second"]

    def test_empty(self):
        assert rank_signals([]) == []


# =============================================================================
# SELECTOR
# =============================================================================


class TestStrategySelector:
    """Tests for StrategySelector."""

    @pytest.fixture
    def selector(self):
        return StrategySelector(
            {
                TimeframeClass.SWING: [FixedScore("low", 30), Exploding(bankroll=1.0), FixedScore("high", 85)],
                TimeframeClass.INTRADAY: [FixedScore("intra", 55)],
            }
        )

    def test_select_ranks_actionable(self, selector, snapshot_factory):
        ranked = selector.select(snapshot_factory(), timeframe_class=TimeframeClass.SWING)
        assert [s.id for s in ranked] == ["high", "low"]

    def test_failing_scorer_becomes_neutral(self, selector, snapshot_factory, caplog):
        with caplog.at_level(logging.ERROR):
            signals = selector.evaluate_all(snapshot_factory(), timeframe_class=TimeframeClass.SWING)

        assert [s.id for s in signals] == ["low", "exploding", "high"]
        failed = signals[1]
        assert failed.score == 0
        assert "Scorer error" in failed.criteria[0].description
        assert "exploding" in caplog.text

    def test_timeframe_class_routing(self, selector, snapshot_factory):
        ranked = selector.select(snapshot_factory(), timeframe_class="intraday")
        assert [s.id for s in ranked] == ["intra"]

    def test_default_battery(self, snapshot_factory):
        selector = StrategySelector(bankroll=10_000.0)
        signals = selector.evaluate_all(snapshot_factory(), timeframe_class=TimeframeClass.SWING)

        assert len(signals) == len(selector.strategies[TimeframeClass.SWING])
        ranked = selector.select(snapshot_factory(), timeframe_class=TimeframeClass.SWING)
        assert all(a.score >= b.score for a, b in zip(ranked, ranked[1:]))
