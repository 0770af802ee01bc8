"""
DocFlow Core Time — Public API
==============================
Injectable clock used to stamp lifecycle dates.
"""

from core.time.clock import Clock, FixedClock, SystemClock

__all__ = [
    "Clock",
    "SystemClock",
    "FixedClock",
]
