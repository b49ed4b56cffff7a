"""Derive hierarchical date facets from metadata entries."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable

from desksearch.index.fields import attribute
from desksearch.models import MetadataEntry


def to_utc(value: datetime) -> datetime:
    """Normalise to UTC; naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def decompose_date(key: str, value: datetime) -> Dict[str, str]:
    """Return the year, year/month and year/month/day attributes for a date."""
    moment = to_utc(value)
    prefix = attribute(key)
    return {
        f"{prefix}-year-month-day": f"{moment.year:04d}/{moment.month:02d}/{moment.day:02d}",
        f"{prefix}-year": f"{moment.year:04d}",
        f"{prefix}-year-month": f"{moment.year:04d}/{moment.month:02d}",
    }


def metadata_attributes(entries: Iterable[MetadataEntry]) -> Dict[str, str]:
    """Convert metadata into index attributes.

    String values are kept under ``attr_<key>`` unless empty. Date values only
    contribute their three derived hierarchy attributes. Entries without a key
    are ignored. Later entries with the same key replace earlier ones.
    """
    attributes: Dict[str, str] = {}
    for entry in entries:
        if not entry.key:
            continue
        if isinstance(entry.value, datetime):
            attributes.update(decompose_date(entry.key, entry.value))
        elif isinstance(entry.value, str) and entry.value.strip():
            attributes[attribute(entry.key)] = entry.value
    return attributes
