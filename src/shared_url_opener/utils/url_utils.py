from __future__ import annotations

from urllib.parse import unquote_to_bytes


class UrlDecodeError(ValueError):
    """Raised when a percent-encoded URL does not decode to valid UTF-8."""


def percent_decode(url: str) -> str:
    """Decode ``%XX`` escapes in ``url`` and interpret the bytes as UTF-8.

    Malformed escapes such as ``%zz`` are left untouched. Escapes that decode
    to invalid UTF-8 raise :class:`UrlDecodeError`.
    """
    raw = unquote_to_bytes(url)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise UrlDecodeError(f"URL is not valid percent-encoded UTF-8: {url}") from exc
