from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from shared_url_opener.decoder import EXPIRES_AT_FIELD
from shared_url_opener.errors import ActionError
from shared_url_opener.models import SharedRecord

from .base import WriteBack

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_DAYS = 3


class FirestoreExpiryWriteBack(WriteBack):
    """Sets ``expires_at`` on a handled document so listeners skip its redelivery."""

    def __init__(
        self,
        client: Any,
        *,
        collection: str,
        expiry_days: int = DEFAULT_EXPIRY_DAYS,
    ) -> None:
        self.client = client
        self.collection = collection
        self.expiry = timedelta(days=expiry_days)

    def mark_processed(self, record: SharedRecord) -> bool:
        if record.id is None:
            logger.debug("Record %s has no document id; skipping write-back", record.url)
            return False

        expires_at = record.created_at + self.expiry
        try:
            self.client.collection(self.collection).document(record.id).update(
                {EXPIRES_AT_FIELD: expires_at}
            )
        except Exception as exc:  # noqa: BLE001
            raise ActionError(f"Failed to write back expiry for {record.id}: {exc}") from exc

        logger.debug("Marked %s as processed (expires %s)", record.id, expires_at.isoformat())
        return True
