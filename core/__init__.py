"""
Core Module Package.

Infrastructure shared by the feed layer and the reward engine.

Components:
- clock: UTC time abstraction and chain timestamp parsing
- fixed_point: exact-integer parsing and scaled ratios
- constants: chain accounts, precisions, default durations
"""

from .clock import (
    ClockProtocol,
    MockClock,
    SystemClock,
    millis_between,
    parse_chain_time,
    to_iso8601,
    whole_seconds_between,
)
from .fixed_point import (
    format_quantity,
    parse_exact,
    parse_scaled,
    scaled_ratio,
    to_display_float,
    try_parse_exact,
    try_parse_scaled,
)


__all__ = [
    "ClockProtocol",
    "MockClock",
    "SystemClock",
    "millis_between",
    "parse_chain_time",
    "to_iso8601",
    "whole_seconds_between",
    "format_quantity",
    "parse_exact",
    "parse_scaled",
    "scaled_ratio",
    "to_display_float",
    "try_parse_exact",
    "try_parse_scaled",
]
