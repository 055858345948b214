from __future__ import annotations

import logging
import webbrowser

from shared_url_opener.errors import ActionError
from shared_url_opener.models import ActionRequest
from shared_url_opener.utils.url_utils import UrlDecodeError, percent_decode

from .base import ActionExecutor

logger = logging.getLogger(__name__)


class BrowserExecutor(ActionExecutor):
    def __init__(self, new_tab: bool = True) -> None:
        self.new_tab = new_tab

    def execute(self, request: ActionRequest) -> None:
        decoded_url = _decode(request.url)
        logger.info("Opening decoded URL: %s", decoded_url)
        try:
            opened = webbrowser.open(decoded_url, new=2 if self.new_tab else 0)
        except webbrowser.Error as exc:
            raise ActionError(f"Failed to open URL in browser: {exc}") from exc
        if not opened:
            raise ActionError(f"No browser accepted URL: {decoded_url}")


class DryRunExecutor(ActionExecutor):
    def __init__(self) -> None:
        self.opened: list[str] = []

    def execute(self, request: ActionRequest) -> None:
        decoded_url = _decode(request.url)
        self.opened.append(decoded_url)
        print(f"[DRY RUN] WOULD OPEN: {decoded_url}")


def _decode(url: str) -> str:
    try:
        return percent_decode(url)
    except UrlDecodeError as exc:
        raise ActionError(f"Failed to decode URL: {url}") from exc
