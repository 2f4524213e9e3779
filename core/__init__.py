"""
Core Module Package.

Infrastructure shared by the storage and directory packages.

Components:
- clock: UTC time abstraction
"""

from core.clock import ClockProtocol, FixedClock, SystemClock

__all__ = ["ClockProtocol", "FixedClock", "SystemClock"]
