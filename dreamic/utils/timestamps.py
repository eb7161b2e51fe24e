"""Conversions between aware datetimes and epoch milliseconds."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MILLISECOND = timedelta(milliseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    """Return ``value`` as whole milliseconds since the Unix epoch.

    Naive datetimes are interpreted as UTC. Sub-millisecond precision is
    truncated.
    """

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // _ONE_MILLISECOND


def from_epoch_millis(millis: int) -> datetime:
    """Return the aware UTC datetime ``millis`` milliseconds after the epoch.

    Raises ``ValueError`` when ``millis`` is outside the range ``datetime``
    can represent.
    """

    try:
        return EPOCH + timedelta(milliseconds=millis)
    except OverflowError as exc:
        raise ValueError(f"epoch milliseconds out of range: {millis}") from exc


def truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


def normalize_timestamp(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime at millisecond precision."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return truncate_to_millis(value)
