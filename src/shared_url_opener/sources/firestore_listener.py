from __future__ import annotations

import logging
import queue
from datetime import datetime, timezone
from typing import Any

from shared_url_opener.config import AppConfig
from shared_url_opener.decoder import CREATED_AT_FIELDS, EXPIRES_AT_FIELD
from shared_url_opener.errors import FetchError
from shared_url_opener.models import RawRecord
from shared_url_opener.utils.datetime_utils import parse_datetime_utc

from .base import RecordSource
from .registry import register_source

logger = logging.getLogger(__name__)

_FORWARDED_CHANGES = {"ADDED", "MODIFIED"}


class FirestoreListenerSource(RecordSource):
    """Push transport backed by a Firestore real-time listener.

    The SDK invokes the snapshot callback on its own thread; the callback only
    enqueues raw records and :meth:`fetch` drains the queue on the watcher
    thread.

    Documents that already carry ``expires_at`` were handled before (usually by
    this process's write-back) and are dropped here. The first snapshot of a
    subscription lists every document in the collection, so only its newest
    document is forwarded, as a baseline.
    """

    event_driven = True

    def __init__(
        self,
        client: Any,
        *,
        collection: str,
        order_by: str = "timestamp",
        target_id: int = 42,
    ) -> None:
        super().__init__(source_id=f"firestore_listener:{collection}")
        self.client = client
        self.collection = collection
        self.order_by = order_by
        self.target_id = target_id
        self._queue: queue.Queue[RawRecord] = queue.Queue()
        self._watch: Any = None
        self._initial_snapshot_pending = False

    def open(self) -> None:
        if self._watch is not None:
            return
        self._initial_snapshot_pending = True
        self._watch = self.client.collection(self.collection).on_snapshot(self._on_snapshot)
        logger.info(
            "Listening for changes in collection %s (target %d)",
            self.collection,
            self.target_id,
        )

    def fetch(self, timeout: float) -> list[RawRecord]:
        if self._watch is None:
            try:
                self.open()
            except Exception as exc:  # noqa: BLE001
                raise FetchError(f"could not subscribe to {self.collection}: {exc}") from exc
        elif not self._watch.is_active:
            self.close()
            raise FetchError(f"listener on {self.collection} stopped; resubscribing")

        try:
            records = [self._queue.get(timeout=timeout)]
        except queue.Empty:
            return []

        while True:
            try:
                records.append(self._queue.get_nowait())
            except queue.Empty:
                return records

    def close(self) -> None:
        watch, self._watch = self._watch, None
        if watch is None:
            return
        try:
            watch.unsubscribe()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to unsubscribe from %s", self.collection)

    def _on_snapshot(self, snapshots: list[Any], changes: list[Any], read_time: Any) -> None:
        try:
            if self._initial_snapshot_pending:
                self._initial_snapshot_pending = False
                self._enqueue_baseline(snapshots)
                return

            for change in changes:
                self._enqueue_change(change)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to handle snapshot for %s", self.collection)

    def _enqueue_baseline(self, snapshots: list[Any]) -> None:
        if not snapshots:
            logger.info("Collection %s is empty", self.collection)
            return
        newest = max(snapshots, key=self._created_at)
        logger.debug("Initial snapshot of %d documents; newest is %s", len(snapshots), newest.id)
        self._queue.put(_to_raw(newest))

    def _enqueue_change(self, change: Any) -> None:
        kind = getattr(change.type, "name", str(change.type))
        document = change.document
        if kind not in _FORWARDED_CHANGES:
            logger.debug("Ignoring %s event for %s", kind, getattr(document, "id", None))
            return

        data = document.to_dict() or {}
        if data.get(EXPIRES_AT_FIELD) is not None:
            logger.debug("Ignoring %s event for already processed %s", kind, document.id)
            return

        self._queue.put(_to_raw(document, data))

    def _created_at(self, snapshot: Any) -> datetime:
        data = snapshot.to_dict() or {}
        for name in (self.order_by, *CREATED_AT_FIELDS):
            created_at = parse_datetime_utc(data.get(name))
            if created_at is not None:
                return created_at
        return datetime.min.replace(tzinfo=timezone.utc)


def _to_raw(snapshot: Any, data: dict[str, Any] | None = None) -> RawRecord:
    if data is None:
        data = snapshot.to_dict() or {}
    return {**data, "doc_id": snapshot.id}


def build_firestore_client(app_config: AppConfig) -> Any:
    from google.cloud import firestore

    settings = app_config.firestore
    if settings.credentials_path:
        return firestore.Client.from_service_account_json(
            settings.credentials_path,
            project=settings.project_id,
            database=settings.database,
        )
    return firestore.Client(project=settings.project_id, database=settings.database)


@register_source("firestore_listener")
def _build_firestore_listener_source(app_config: AppConfig) -> RecordSource:
    return FirestoreListenerSource(
        build_firestore_client(app_config),
        collection=app_config.source.collection,
        order_by=app_config.source.order_by,
        target_id=app_config.source.target_id,
    )
