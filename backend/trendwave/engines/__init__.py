# Analysis and alerting engines
from trendwave.engines.alert_engine import AlertEvaluator, CooldownLedger
from trendwave.engines.alert_monitor import AlertMonitor
from trendwave.engines.fibonacci import FibonacciCalculator
from trendwave.engines.overlay_engine import OverlayIndicatorCalculator
from trendwave.engines.pattern_alert_engine import PatternAlertOrchestrator
from trendwave.engines.pivot_detector import PivotDetector, PivotStrategy
from trendwave.engines.signal_engine import TradingSignalGenerator
from trendwave.engines.streaming_engine import IndicatorKey, IndicatorState, StreamingIndicatorEngine
from trendwave.engines.wave_engine import ScoringConstants, WavePatternAnalyzer

__all__ = [
    "AlertEvaluator",
    "AlertMonitor",
    "CooldownLedger",
    "FibonacciCalculator",
    "IndicatorKey",
    "IndicatorState",
    "OverlayIndicatorCalculator",
    "PatternAlertOrchestrator",
    "PivotDetector",
    "PivotStrategy",
    "ScoringConstants",
    "StreamingIndicatorEngine",
    "TradingSignalGenerator",
    "WavePatternAnalyzer",
]
