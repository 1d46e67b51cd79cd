"""Utility helpers for reusable functionality."""

from .datetime import (
    EPOCH,
    ensure_utc,
    ensure_utc_naive,
    format_relative,
    get_app_timezone,
    in_app_timezone,
    now_utc,
    parse_iso,
    to_iso,
)

__all__ = [
    "EPOCH",
    "ensure_utc",
    "ensure_utc_naive",
    "format_relative",
    "get_app_timezone",
    "in_app_timezone",
    "now_utc",
    "parse_iso",
    "to_iso",
]
