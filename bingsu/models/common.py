"""Helpers shared by the shop models."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch(value: datetime) -> float:
    """Datetime to epoch seconds; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def from_epoch(value: str | float | None) -> datetime | None:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def normalize_name(name: str) -> str:
    """Key-safe, case-insensitive form of an item name."""
    return "-".join(name.strip().lower().split())
