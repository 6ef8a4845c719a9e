"""
Trendwave — Fibonacci Calculator Tests

Tests for:
- Retracement levels across a high/low range
- Extension levels from a high/low range
- Wave projections from wave 1 / wave 2 anchors (up and down)
- Display rounding
"""

import pytest


class TestRetracementLevels:

    def test_known_levels(self):
        from trendwave.engines.fibonacci import FibonacciCalculator
        from trendwave.models import FibonacciKind

        levels = FibonacciCalculator().levels(165, 100, FibonacciKind.RETRACEMENT).levels
        assert levels[0.382] == pytest.approx(140.17, abs=0.01)
        assert levels[0.618] == pytest.approx(124.83, abs=0.01)
        assert levels[0.5] == 132.5

    def test_ratio_set_and_kind(self):
        from trendwave.engines.fibonacci import RETRACEMENT_RATIOS, FibonacciCalculator
        from trendwave.models import FibonacciKind

        fib = FibonacciCalculator().levels(2.0, 1.0, FibonacciKind.RETRACEMENT)
        assert fib.kind == FibonacciKind.RETRACEMENT
        assert tuple(fib.ratios) == RETRACEMENT_RATIOS
        assert set(fib.levels) == set(RETRACEMENT_RATIOS)

    def test_levels_keep_full_precision(self):
        from trendwave.engines.fibonacci import FibonacciCalculator
        from trendwave.models import FibonacciKind

        levels = FibonacciCalculator().levels(1.0, 0.0, FibonacciKind.RETRACEMENT).levels
        assert levels[0.236] == pytest.approx(0.764, abs=1e-12)
        assert levels[0.786] == pytest.approx(0.214, abs=1e-12)


class TestExtensionLevels:

    def test_levels_from_range(self):
        from trendwave.engines.fibonacci import EXTENSION_RATIOS, FibonacciCalculator
        from trendwave.models import FibonacciKind

        fib = FibonacciCalculator().levels(200, 100, FibonacciKind.EXTENSION)
        assert fib.kind == FibonacciKind.EXTENSION
        assert tuple(fib.ratios) == EXTENSION_RATIOS
        assert fib.levels[1.618] == pytest.approx(261.8)

    def test_uptrend_projection(self):
        from trendwave.engines.fibonacci import FibonacciCalculator

        levels = FibonacciCalculator().extensions(100, 122, 110).levels
        assert levels[1.618] == pytest.approx(145.6, abs=0.1)
        assert levels[2.618] == pytest.approx(167.6, abs=0.1)

    def test_downtrend_projection(self):
        """Wave-1 length is subtracted when wave 1 falls."""
        from trendwave.engines.fibonacci import FibonacciCalculator

        levels = FibonacciCalculator().extensions(122, 100, 112).levels
        assert levels[1.618] == pytest.approx(112 - 22 * 1.618)
        assert all(price < 112 for price in levels.values())


class TestDisplayRounding:

    def test_round_for_display(self):
        from trendwave.engines.fibonacci import FibonacciCalculator, round_for_display
        from trendwave.models import FibonacciKind

        fib = FibonacciCalculator().levels(165, 100, FibonacciKind.RETRACEMENT)
        display = round_for_display(fib)
        assert display[0.382] == 140.17
        assert display[0.618] == 124.83
