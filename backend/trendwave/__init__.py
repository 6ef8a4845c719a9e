"""
Trendwave — technical-analysis and alerting core.

Pivot and Elliott Wave detection with Fibonacci analysis, a streaming
indicator engine, and cooldown-aware alert evaluation with notifications.
"""

__version__ = "0.1.0"
