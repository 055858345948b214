from __future__ import annotations

from urllib.parse import quote

import pytest

from shared_url_opener.utils.url_utils import UrlDecodeError, percent_decode


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/path?q=1&r=two",
        "https://example.com/café/日本?q=über",
        "https://example.com/a b/c#frag",
    ],
)
def test_percent_decode_restores_encoded_url(url: str) -> None:
    assert percent_decode(quote(url, safe="")) == url


def test_percent_decode_leaves_plain_urls_alone() -> None:
    assert percent_decode("https://example.com/x") == "https://example.com/x"


def test_percent_decode_keeps_malformed_escapes_verbatim() -> None:
    assert percent_decode("https://example.com/100%zz") == "https://example.com/100%zz"


def test_percent_decode_rejects_invalid_utf8() -> None:
    with pytest.raises(UrlDecodeError):
        percent_decode("https://example.com/%C3%28")
