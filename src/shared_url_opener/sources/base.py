from __future__ import annotations

from abc import ABC, abstractmethod

from shared_url_opener.models import RawRecord


class RecordSource(ABC):
    """Yields raw shared URL records, either pushed by the store or polled from it.

    ``event_driven`` sources block inside :meth:`fetch` until something arrives
    (or the timeout passes); the watcher loop does not sleep between their
    cycles. Polling sources return immediately and are paced by the loop.
    """

    event_driven: bool = False

    def __init__(self, source_id: str) -> None:
        self.source_id = source_id

    def open(self) -> None:
        """Acquire connections or subscriptions before the first fetch."""

    @abstractmethod
    def fetch(self, timeout: float) -> list[RawRecord]:
        """Return the raw records observed since the previous call."""

    def close(self) -> None:
        """Release anything acquired by :meth:`open`."""
