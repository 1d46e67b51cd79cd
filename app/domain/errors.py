"""Errors raised by the notification digest components."""

from __future__ import annotations


class NotificationError(RuntimeError):
    """Base class for recoverable notification pipeline failures."""


class SourceUnavailable(NotificationError):
    """The event source could not be queried, failed, or timed out."""


class PersistenceFailure(NotificationError):
    """A read watermark could not be written to durable storage."""


class MalformedRow(ValueError):
    """A row returned by the event source lacks a required field."""

    def __init__(self, field_name: str, row_id: object | None = None) -> None:
        self.field_name = field_name
        self.row_id = row_id
        super().__init__(f"Like row {row_id!r} is missing '{field_name}'")


__all__ = [
    "MalformedRow",
    "NotificationError",
    "PersistenceFailure",
    "SourceUnavailable",
]
