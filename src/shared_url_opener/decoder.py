from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from shared_url_opener.errors import DecodeError
from shared_url_opener.models import SharedRecord
from shared_url_opener.utils.datetime_utils import parse_datetime_utc

ID_FIELDS = ("doc_id", "id")
CREATED_AT_FIELDS = ("created_at", "timestamp")
EXPIRES_AT_FIELD = "expires_at"


def decode(raw: Any) -> SharedRecord:
    """Map a raw store record onto a :class:`SharedRecord`.

    ``id`` and ``expires_at`` are optional; ``url`` and a creation timestamp are
    required. Raises :class:`DecodeError` instead of letting malformed input
    escape as ``KeyError``/``TypeError``.
    """
    if not isinstance(raw, Mapping):
        raise DecodeError(f"record must be a mapping, got {type(raw).__name__}")

    url = raw.get("url")
    if not isinstance(url, str) or not url.strip():
        raise DecodeError("record is missing a non-empty 'url'")

    raw_created = _first_present(raw, CREATED_AT_FIELDS)
    if raw_created is None:
        raise DecodeError(f"record {url!r} is missing a creation timestamp")
    created_at = parse_datetime_utc(raw_created)
    if created_at is None:
        raise DecodeError(f"record {url!r} has an invalid creation timestamp: {raw_created!r}")

    raw_expires = raw.get(EXPIRES_AT_FIELD)
    expires_at = parse_datetime_utc(raw_expires)
    if raw_expires is not None and expires_at is None:
        raise DecodeError(f"record {url!r} has an invalid expiry timestamp: {raw_expires!r}")

    raw_id = _first_present(raw, ID_FIELDS)
    record_id = str(raw_id).strip() if raw_id is not None else None

    return SharedRecord(
        id=record_id or None,
        url=url,
        created_at=created_at,
        expires_at=expires_at,
    )


def _first_present(raw: Mapping[str, Any], fields: tuple[str, ...]) -> Any:
    for name in fields:
        value = raw.get(name)
        if value is not None:
            return value
    return None
