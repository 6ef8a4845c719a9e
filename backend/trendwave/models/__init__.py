"""
Trendwave — Pydantic Models

All domain records for the analysis and alerting core. Engines return these,
the notification layer forwards them, and chart overlays consume them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ──────────────────────────────────────────────
# Enums
# ──────────────────────────────────────────────

class PivotKind(str, Enum):
    """Local extremum type."""
    HIGH = "high"
    LOW = "low"


class WaveDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class PatternKind(str, Enum):
    """Elliott Wave pattern family."""
    IMPULSE = "impulse"
    CORRECTIVE = "corrective"


class FibonacciKind(str, Enum):
    RETRACEMENT = "retracement"
    EXTENSION = "extension"


class ImpulseLabel(str, Enum):
    """Wave labels of a 5-wave impulse."""
    ONE = "1"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"


class CorrectiveLabel(str, Enum):
    """Wave labels of an ABC correction."""
    A = "A"
    B = "B"
    C = "C"


# Closed variant: a wave is labelled either 1-5 or A/B/C, never anything else.
WaveLabel = Union[ImpulseLabel, CorrectiveLabel]


class IndicatorKind(str, Enum):
    """Indicators maintained by the streaming engine."""
    SMA = "sma"
    EMA = "ema"
    RSI = "rsi"
    BOLLINGER = "bollinger"
    MACD_SCALED_PERIOD = "macd_scaled_period"  # fast=period, slow=2*period
    STOCHASTIC = "stochastic"
    WILLIAMS_R = "williams_r"


class AlertCondition(str, Enum):
    # Threshold family
    PRICE_ABOVE = "price_above"
    PRICE_BELOW = "price_below"
    INDICATOR_ABOVE = "indicator_above"
    INDICATOR_BELOW = "indicator_below"
    RSI_ABOVE = "rsi_above"
    RSI_BELOW = "rsi_below"
    # Pattern family
    IMPULSE_DETECTED = "impulse_detected"
    CORRECTIVE_DETECTED = "corrective_detected"
    FIBONACCI_LEVEL_APPROACHED = "fibonacci_level_approached"
    WAVE_TARGET_REACHED = "wave_target_reached"


ABOVE_CONDITIONS = frozenset({
    AlertCondition.PRICE_ABOVE,
    AlertCondition.INDICATOR_ABOVE,
    AlertCondition.RSI_ABOVE,
})
BELOW_CONDITIONS = frozenset({
    AlertCondition.PRICE_BELOW,
    AlertCondition.INDICATOR_BELOW,
    AlertCondition.RSI_BELOW,
})


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TRIGGERED = "triggered"


class PatternAlertType(str, Enum):
    PATTERN_DETECTED = "pattern_detected"
    FIBONACCI_LEVEL = "fibonacci_level"
    WAVE_TARGET = "wave_target"


class SignalType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class SignalStrength(str, Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"


class StopLossType(str, Enum):
    FIXED = "FIXED"
    TRAILING = "TRAILING"
    ATR_BASED = "ATR_BASED"


class TrendAlignment(str, Enum):
    WITH = "WITH"
    AGAINST = "AGAINST"
    SIDEWAYS = "SIDEWAYS"


class VolatilityWindow(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# ──────────────────────────────────────────────
# Market Data Models
# ──────────────────────────────────────────────

class Candle(BaseModel):
    """Single OHLCV bar."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class PriceTick(BaseModel):
    """One streamed price update."""
    model_config = ConfigDict(frozen=True)

    symbol: str = ""
    price: float
    timestamp: datetime


# ──────────────────────────────────────────────
# Pattern Models
# ──────────────────────────────────────────────

class Pivot(BaseModel):
    """A local extremum used as a wave endpoint candidate."""
    timestamp: datetime
    price: float
    index: int
    kind: PivotKind


class WavePoint(BaseModel):
    timestamp: datetime
    price: float
    index: int


class Wave(BaseModel):
    """One leg of a wave pattern."""
    label: WaveLabel
    start: WavePoint
    end: WavePoint
    direction: WaveDirection
    retracement: Optional[float] = None

    @property
    def length(self) -> float:
        """Absolute price distance covered by the wave."""
        return abs(self.end.price - self.start.price)

    @property
    def is_impulse_leg(self) -> bool:
        return isinstance(self.label, ImpulseLabel)


class TimeSpan(BaseModel):
    start: datetime
    end: datetime


class PriceRange(BaseModel):
    high: float
    low: float


class FibonacciLevels(BaseModel):
    """Ratio → price mapping of a single kind (never mixed)."""
    kind: FibonacciKind
    ratios: list[float]
    levels: dict[float, float]


class WaveRelationships(BaseModel):
    """Length ratios between impulse waves."""
    wave3_to_wave1: float = 0.0
    wave5_to_wave1: float = 0.0
    wave2_retracement: float = 0.0
    wave4_retracement: float = 0.0


class ImpulseValidation(BaseModel):
    wave2_retracement_valid: bool = False
    wave4_no_overlap: bool = False
    wave3_not_shortest: bool = False
    alternation: bool = False

    @property
    def passed(self) -> int:
        return sum([
            self.wave2_retracement_valid,
            self.wave4_no_overlap,
            self.wave3_not_shortest,
            self.alternation,
        ])


class CorrectiveValidation(BaseModel):
    wave_b_retracement_valid: bool = False
    wave_c_extends_beyond_a: bool = False

    @property
    def passed(self) -> int:
        return sum([self.wave_b_retracement_valid, self.wave_c_extends_beyond_a])


_EXPECTED_WAVES = {PatternKind.IMPULSE: 5, PatternKind.CORRECTIVE: 3}


class WavePattern(BaseModel):
    """A detected impulse (5 waves) or corrective (3 waves) pattern."""
    id: str
    kind: PatternKind
    waves: list[Wave]
    time_span: TimeSpan
    price_range: PriceRange
    fibonacci_levels: FibonacciLevels
    fibonacci_relationships: Optional[WaveRelationships] = None
    confidence: float = Field(ge=0.0, le=1.0)
    validation: Union[ImpulseValidation, CorrectiveValidation]

    @model_validator(mode="after")
    def _check_wave_count(self) -> "WavePattern":
        expected = _EXPECTED_WAVES[self.kind]
        if len(self.waves) != expected:
            raise ValueError(f"{self.kind.value} pattern needs {expected} waves, got {len(self.waves)}")
        return self

    @property
    def last_wave(self) -> Wave:
        return self.waves[-1]


# ──────────────────────────────────────────────
# Indicator Models
# ──────────────────────────────────────────────

class IndicatorValue(BaseModel):
    """A streamed indicator result."""
    symbol: str
    kind: IndicatorKind
    period: int
    value: float
    timestamp: datetime


class BollingerBandsValue(BaseModel):
    upper: float
    middle: float
    lower: float
    std_dev: float


class BollingerSeries(BaseModel):
    """Full-series bands aligned to the input; None until the window fills."""
    upper: list[Optional[float]]
    middle: list[Optional[float]]
    lower: list[Optional[float]]


class MacdFixedPeriods(BaseModel):
    """Classic 12/26/9 MACD series (chart-overlay convention)."""
    fast: int = 12
    slow: int = 26
    signal_period: int = 9
    macd: list[Optional[float]]
    signal: list[Optional[float]]
    histogram: list[Optional[float]]


# ──────────────────────────────────────────────
# Trading Signal Models
# ──────────────────────────────────────────────

class MacroEntry(BaseModel):
    level: float
    reasoning: str
    timeframe: str
    wave_position: str


class MicroEntry(BaseModel):
    level: float
    reasoning: str
    confirmation_required: list[str]
    optimal_time_to_enter: str


class StopLoss(BaseModel):
    level: float
    percentage: float
    reasoning: str
    type: StopLossType


class TakeProfit(BaseModel):
    primary: float
    secondary: Optional[float] = None
    percentage: float
    fibonacci_level: float
    reasoning: str


class ExpectedMove(BaseModel):
    bullish_target: float
    bearish_target: float
    neutral_zone: tuple[float, float]


class TechnicalFactors(BaseModel):
    trend_alignment: TrendAlignment
    volume_confirmation: bool
    fibonacci_alignment: bool
    wave_count_validity: float
    momentum_divergence: bool = False


class TimeAnalysis(BaseModel):
    cycle_position: str
    volatility_window: VolatilityWindow
    market_session: str
    recommended_hold_time: str


class TradingSignal(BaseModel):
    """Entry, exit and risk plan derived from the strongest wave pattern."""
    id: str
    timestamp: datetime
    symbol: str
    current_price: float
    pattern_id: str

    signal_type: SignalType
    signal_strength: SignalStrength
    confidence: float = Field(ge=0.0, le=1.0)

    macro_entry: MacroEntry
    micro_entry: MicroEntry
    stop_loss: StopLoss
    take_profit: TakeProfit

    atr: float
    risk_reward_ratio: float
    expected_move: ExpectedMove
    technical_factors: TechnicalFactors
    time_analysis: TimeAnalysis


# ──────────────────────────────────────────────
# Alert Models
# ──────────────────────────────────────────────

class AlertBase(BaseModel):
    id: str
    symbol: str
    condition: AlertCondition
    target_value: float
    message: str = ""
    severity: AlertSeverity = AlertSeverity.INFO
    status: AlertStatus = AlertStatus.ACTIVE
    cooldown_seconds: Optional[int] = Field(default=None, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)
    triggered_at: Optional[datetime] = None
    triggered_value: Optional[float] = None

    def mark_triggered(self, value: float, at: Optional[datetime] = None) -> AlertBase:
        """Copy in TRIGGERED state. Cooldown gating does not read the status."""
        return self.model_copy(update={
            "status": AlertStatus.TRIGGERED,
            "triggered_at": at or datetime.now(timezone.utc),
            "triggered_value": value,
        })

    def reactivate(self) -> AlertBase:
        """Copy back in ACTIVE state with the trigger record cleared."""
        return self.model_copy(update={
            "status": AlertStatus.ACTIVE,
            "triggered_at": None,
            "triggered_value": None,
        })


class PriceAlert(AlertBase):
    alert_type: Literal["price"] = "price"


class IndicatorAlert(AlertBase):
    alert_type: Literal["indicator"] = "indicator"
    indicator_kind: IndicatorKind
    period: int


class PatternAlert(AlertBase):
    """Alert produced by the Elliott Wave pattern orchestrator."""
    alert_type: Literal["pattern"] = "pattern"
    pattern_alert_type: PatternAlertType
    pattern_kind: PatternKind
    pattern_id: str
    minimum_confidence: float
    fibonacci_level: Optional[float] = None
    wave_label: Optional[WaveLabel] = None
    expires_at: Optional[datetime] = None


Alert = Annotated[Union[PriceAlert, IndicatorAlert, PatternAlert], Field(discriminator="alert_type")]


class Notification(BaseModel):
    """Unread-by-default snapshot of a triggered alert."""
    id: str
    alert_id: str
    symbol: str
    message: str
    severity: AlertSeverity
    triggered_at: datetime
    current_value: float
    target_value: float
    condition: AlertCondition
    is_read: bool = False


class PatternAlertConfig(BaseModel):
    enabled: bool = True
    minimum_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    fibonacci_levels_to_watch: list[float] = Field(default_factory=lambda: [0.382, 0.5, 0.618, 0.786])
    cooldown_minutes: float = Field(default=30, ge=0)
