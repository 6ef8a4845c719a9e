"""
Trendwave — Elliott Wave Pattern Analyzer

Rule-based detection of Elliott Wave structures from pivot sequences.
Deterministic analysis: identical candles always yield identical patterns
(same ids, waves and confidence).

Impulse:    6 consecutive pivots → waves 1-5, scored on four structural
            rules, Fibonacci proportions, and a fixed clarity share.
Corrective: 4 consecutive pivots → waves A-B-C, scored on the B retracement.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from trendwave.engines.fibonacci import FibonacciCalculator
from trendwave.engines.pivot_detector import PivotDetector
from trendwave.models import (
    Candle,
    CorrectiveLabel,
    CorrectiveValidation,
    FibonacciKind,
    FibonacciLevels,
    ImpulseLabel,
    ImpulseValidation,
    PatternKind,
    Pivot,
    PriceRange,
    TimeSpan,
    Wave,
    WaveDirection,
    WavePattern,
    WavePoint,
    WaveRelationships,
)

log = structlog.get_logger(__name__)

MIN_CANDLES_FOR_IMPULSE = 5
MIN_CANDLES_FOR_CORRECTION = 3
IMPULSE_PIVOTS = 6  # start + 5 wave ends
CORRECTIVE_PIVOTS = 4  # start + A, B, C ends


@dataclass(frozen=True)
class ScoringConstants:
    """Empirical confidence weights and tolerances."""

    # Impulse confidence = rules_weight * (rules passed / 4)
    #                    + fibonacci_weight * fibonacci score
    #                    + clarity_weight
    rules_weight: float = 0.4
    fibonacci_weight: float = 0.3
    clarity_weight: float = 0.3

    wave3_target_ratio: float = 1.618
    wave3_ratio_tolerance: float = 0.3
    wave3_ratio_share: float = 0.5
    wave2_ideal_range: tuple[float, float] = (0.382, 0.618)
    wave2_share: float = 0.25
    wave4_ideal_range: tuple[float, float] = (0.236, 0.5)
    wave4_share: float = 0.25

    wave2_max_retracement: float = 1.0
    alternation_min_difference: float = 0.1

    # Corrective: B must retrace inside the open interval, ideally the closed one
    wave_b_valid_range: tuple[float, float] = (0.3, 1.0)
    wave_b_ideal_range: tuple[float, float] = (0.382, 0.618)

    acceptance_threshold: float = 0.2


DEFAULT_SCORING = ScoringConstants()


class WavePatternAnalyzer:
    """Elliott Wave impulse and ABC detector.

    Usage:
        analyzer = WavePatternAnalyzer()
        impulses = analyzer.detect_impulse_waves(candles)
        corrections = analyzer.detect_corrective_waves(candles)
    """

    def __init__(
        self,
        pivot_detector: Optional[PivotDetector] = None,
        fibonacci: Optional[FibonacciCalculator] = None,
        scoring: ScoringConstants = DEFAULT_SCORING,
    ):
        self.pivots = pivot_detector or PivotDetector()
        self.fibonacci = fibonacci or FibonacciCalculator()
        self.scoring = scoring

    # ──────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────

    def detect_impulse_waves(self, candles: Sequence[Candle]) -> list[WavePattern]:
        """Sliding 6-pivot scan for 5-wave impulse patterns."""
        if not candles or len(candles) < MIN_CANDLES_FOR_IMPULSE:
            return []

        pivots = self.pivots.find_pivots(candles)
        if len(pivots) < IMPULSE_PIVOTS:
            return []

        patterns: list[WavePattern] = []
        for i in range(len(pivots) - IMPULSE_PIVOTS + 1):
            pattern = self._build_impulse(pivots[i:i + IMPULSE_PIVOTS])
            if pattern is not None and pattern.confidence > self.scoring.acceptance_threshold:
                patterns.append(pattern)
        return patterns

    def detect_corrective_waves(self, candles: Sequence[Candle]) -> list[WavePattern]:
        """Sliding 4-pivot scan for ABC corrections."""
        if not candles or len(candles) < MIN_CANDLES_FOR_CORRECTION:
            return []

        pivots = self.pivots.find_pivots(candles)
        if len(pivots) < CORRECTIVE_PIVOTS:
            return []

        patterns: list[WavePattern] = []
        for i in range(len(pivots) - CORRECTIVE_PIVOTS + 1):
            pattern = self._build_corrective(pivots[i:i + CORRECTIVE_PIVOTS])
            if pattern is not None and pattern.confidence > self.scoring.acceptance_threshold:
                patterns.append(pattern)
        return patterns

    def detect_all(self, candles: Sequence[Candle]) -> list[WavePattern]:
        """Impulse patterns followed by corrective patterns."""
        return self.detect_impulse_waves(candles) + self.detect_corrective_waves(candles)

    def extension_targets(self, pattern: WavePattern) -> Optional[FibonacciLevels]:
        """Wave-3 projections from the first two legs of an impulse."""
        if pattern.kind != PatternKind.IMPULSE:
            return None
        wave1, wave2 = pattern.waves[0], pattern.waves[1]
        return self.fibonacci.extensions(wave1.start.price, wave1.end.price, wave2.end.price)

    @staticmethod
    def wave_relationships(waves: Sequence[Wave]) -> WaveRelationships:
        if len(waves) < 5 or waves[0].length == 0:
            return WaveRelationships()

        wave1 = waves[0].length
        return WaveRelationships(
            wave3_to_wave1=waves[2].length / wave1,
            wave5_to_wave1=waves[4].length / wave1,
            wave2_retracement=waves[1].retracement or 0.0,
            wave4_retracement=waves[3].retracement or 0.0,
        )

    # ──────────────────────────────────────────
    # Impulse
    # ──────────────────────────────────────────

    def _build_impulse(self, pivots: Sequence[Pivot]) -> Optional[WavePattern]:
        labels = list(ImpulseLabel)
        waves = [self._wave(labels[i], pivots[i], pivots[i + 1]) for i in range(5)]

        # Retracement needs a non-zero preceding wave
        if waves[0].length == 0 or waves[2].length == 0:
            log.debug("wave.degenerate_window", kind="impulse", start_index=pivots[0].index)
            return None

        waves[1].retracement = waves[1].length / waves[0].length
        waves[3].retracement = waves[3].length / waves[2].length

        price_range = self._price_range(waves)
        relationships = self.wave_relationships(waves)
        validation = self._validate_impulse(waves)
        confidence = self._impulse_confidence(relationships, validation)

        return WavePattern(
            id=f"impulse_{self._epoch_ms(pivots[0])}",
            kind=PatternKind.IMPULSE,
            waves=waves,
            time_span=TimeSpan(start=waves[0].start.timestamp, end=waves[-1].end.timestamp),
            price_range=price_range,
            fibonacci_levels=self.fibonacci.levels(price_range.high, price_range.low, FibonacciKind.RETRACEMENT),
            fibonacci_relationships=relationships,
            confidence=confidence,
            validation=validation,
        )

    def _validate_impulse(self, waves: Sequence[Wave]) -> ImpulseValidation:
        s = self.scoring
        wave1, wave2, wave3, wave4, wave5 = waves
        retr2 = wave2.retracement or 0.0
        retr4 = wave4.retracement or 0.0

        if wave1.direction == WaveDirection.UP:
            no_overlap = wave4.end.price > wave1.end.price
        else:
            no_overlap = wave4.end.price < wave1.end.price

        return ImpulseValidation(
            wave2_retracement_valid=retr2 < s.wave2_max_retracement,
            wave4_no_overlap=no_overlap,
            wave3_not_shortest=wave3.length >= wave1.length and wave3.length >= wave5.length,
            alternation=abs(retr2 - retr4) > s.alternation_min_difference,
        )

    def _impulse_confidence(self, rel: WaveRelationships, validation: ImpulseValidation) -> float:
        s = self.scoring

        fib_score = 0.0
        if abs(rel.wave3_to_wave1 - s.wave3_target_ratio) < s.wave3_ratio_tolerance:
            fib_score += s.wave3_ratio_share
        if _within(rel.wave2_retracement, s.wave2_ideal_range):
            fib_score += s.wave2_share
        if _within(rel.wave4_retracement, s.wave4_ideal_range):
            fib_score += s.wave4_share

        confidence = (
            s.rules_weight * (validation.passed / 4)
            + s.fibonacci_weight * fib_score
            + s.clarity_weight
        )
        return _clamp(confidence)

    # ──────────────────────────────────────────
    # Corrective
    # ──────────────────────────────────────────

    def _build_corrective(self, pivots: Sequence[Pivot]) -> Optional[WavePattern]:
        labels = list(CorrectiveLabel)
        waves = [self._wave(labels[i], pivots[i], pivots[i + 1]) for i in range(3)]

        if waves[0].length == 0:
            log.debug("wave.degenerate_window", kind="corrective", start_index=pivots[0].index)
            return None

        waves[1].retracement = waves[1].length / waves[0].length

        price_range = self._price_range(waves)
        validation = self._validate_corrective(waves)
        confidence = self._corrective_confidence(waves, validation)

        return WavePattern(
            id=f"abc_{self._epoch_ms(pivots[0])}",
            kind=PatternKind.CORRECTIVE,
            waves=waves,
            time_span=TimeSpan(start=waves[0].start.timestamp, end=waves[-1].end.timestamp),
            price_range=price_range,
            fibonacci_levels=self.fibonacci.levels(price_range.high, price_range.low, FibonacciKind.RETRACEMENT),
            confidence=confidence,
            validation=validation,
        )

    def _validate_corrective(self, waves: Sequence[Wave]) -> CorrectiveValidation:
        wave_a, wave_b, wave_c = waves
        low, high = self.scoring.wave_b_valid_range
        retr_b = wave_b.retracement or 0.0

        if wave_a.direction == WaveDirection.DOWN:
            c_beyond_a = wave_c.end.price < wave_a.end.price
        else:
            c_beyond_a = wave_c.end.price > wave_a.end.price

        return CorrectiveValidation(
            wave_b_retracement_valid=low < retr_b < high,
            wave_c_extends_beyond_a=c_beyond_a,
        )

    def _corrective_confidence(self, waves: Sequence[Wave], validation: CorrectiveValidation) -> float:
        score = 0
        if validation.wave_b_retracement_valid:
            score += 1
        if len(waves) == 3:
            score += 1
        if _within(waves[1].retracement or 0.0, self.scoring.wave_b_ideal_range):
            score += 1
        return _clamp(score / 3)

    # ──────────────────────────────────────────
    # Private Helpers
    # ──────────────────────────────────────────

    @staticmethod
    def _wave(label, start: Pivot, end: Pivot) -> Wave:
        return Wave(
            label=label,
            start=WavePoint(timestamp=start.timestamp, price=start.price, index=start.index),
            end=WavePoint(timestamp=end.timestamp, price=end.price, index=end.index),
            direction=WaveDirection.UP if end.price > start.price else WaveDirection.DOWN,
        )

    @staticmethod
    def _price_range(waves: Sequence[Wave]) -> PriceRange:
        prices = [p for w in waves for p in (w.start.price, w.end.price)]
        return PriceRange(high=max(prices), low=min(prices))

    @staticmethod
    def _epoch_ms(pivot: Pivot) -> int:
        return int(pivot.timestamp.timestamp() * 1000)


def _within(value: float, bounds: tuple[float, float]) -> bool:
    low, high = bounds
    return low <= value <= high


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))
