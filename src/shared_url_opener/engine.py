"""Change detection for shared URL records.

The engine keeps no history: the poll transport only ever returns the newest
record, so "new" means "key differs from the last one seen". The push transport
may redeliver a document after the expiry write-back; a repeat of the same key
is collapsed here even if the source failed to filter it.

Without a store-assigned id the URL is the key, so the same URL shared twice in
a row is treated as one event. That limitation is accepted rather than guessed
around.

``observe`` mutates the state it is given and must be called from one thread.
"""

from __future__ import annotations

import logging

from shared_url_opener.models import ActionRequest, SharedRecord, WatcherState

logger = logging.getLogger(__name__)


def record_key(record: SharedRecord) -> str:
    return record.id if record.id is not None else record.url


def observe(record: SharedRecord, state: WatcherState) -> ActionRequest | None:
    key = record_key(record)

    if not state.has_completed_first_observation:
        state.last_seen_key = key
        state.has_completed_first_observation = True
        logger.info("Baseline record %s; not opening on first observation", key)
        return None

    if key == state.last_seen_key:
        logger.debug("Record %s already seen", key)
        return None

    state.last_seen_key = key
    return ActionRequest(url=record.url)
