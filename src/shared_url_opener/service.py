from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from shared_url_opener.actions import ActionExecutor, WriteBack
from shared_url_opener.decoder import decode
from shared_url_opener.engine import observe
from shared_url_opener.errors import DecodeError
from shared_url_opener.models import RawRecord, WatcherState
from shared_url_opener.sources import RecordSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CycleStats:
    fetched: int = 0
    decode_errors: int = 0
    baseline: int = 0
    duplicates: int = 0
    actioned: int = 0
    action_errors: int = 0
    written_back: int = 0
    fetch_failed: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class WatcherService:
    def __init__(
        self,
        *,
        source: RecordSource,
        executor: ActionExecutor,
        write_back: WriteBack | None = None,
        poll_interval_seconds: float = 5.0,
        retry_interval_seconds: float = 5.0,
        listen_timeout_seconds: float = 1.0,
    ) -> None:
        self.source = source
        self.executor = executor
        self.write_back = write_back
        self.poll_interval_seconds = poll_interval_seconds
        self.retry_interval_seconds = retry_interval_seconds
        self.listen_timeout_seconds = listen_timeout_seconds

    def run_once(self, state: WatcherState) -> CycleStats:
        stats = CycleStats()

        try:
            raw_records = self.source.fetch(timeout=self.listen_timeout_seconds)
        except Exception as exc:  # noqa: BLE001
            message = f"source {self.source.source_id} fetch failed: {exc}"
            logger.warning(message)
            stats.errors.append(message)
            stats.fetch_failed = True
            return stats

        for raw in raw_records:
            stats.fetched += 1
            self._process(raw, state, stats)

        return stats

    def run_forever(
        self,
        stop_event: threading.Event,
        state: WatcherState | None = None,
    ) -> WatcherState:
        state = state if state is not None else WatcherState()

        try:
            self.source.open()
        except Exception as exc:  # noqa: BLE001
            # fetch() retries the subscription on every cycle
            logger.warning("source %s failed to open: %s", self.source.source_id, exc)

        try:
            while not stop_event.is_set():
                stats = self.run_once(state)
                if stats.fetched or stats.errors:
                    _log_cycle(stats)

                if stats.fetch_failed:
                    stop_event.wait(self.retry_interval_seconds)
                elif not self.source.event_driven:
                    stop_event.wait(self.poll_interval_seconds)
        finally:
            self.source.close()
            logger.info("Watcher stopped; last seen key %s", state.last_seen_key)

        return state

    def _process(self, raw: RawRecord, state: WatcherState, stats: CycleStats) -> None:
        try:
            record = decode(raw)
        except DecodeError as exc:
            message = f"skipping malformed record from {self.source.source_id}: {exc}"
            logger.warning(message)
            stats.decode_errors += 1
            stats.errors.append(message)
            return

        was_initialized = state.has_completed_first_observation
        request = observe(record, state)
        if request is None:
            if was_initialized:
                stats.duplicates += 1
            else:
                stats.baseline += 1
            return

        logger.info("Received new URL: %s", record.url)
        stats.actioned += 1
        try:
            self.executor.execute(request)
        except Exception as exc:  # noqa: BLE001
            message = f"action failed for {record.url}: {exc}"
            logger.exception(message)
            stats.action_errors += 1
            stats.errors.append(message)

        if self.write_back is None:
            return
        try:
            if self.write_back.mark_processed(record):
                stats.written_back += 1
        except Exception as exc:  # noqa: BLE001
            message = f"write-back failed for {record.url}: {exc}"
            logger.exception(message)
            stats.errors.append(message)


def _log_cycle(stats: CycleStats) -> None:
    level = logging.INFO if stats.actioned or stats.errors else logging.DEBUG
    logger.log(
        level,
        "Cycle complete | fetched=%d actioned=%d duplicates=%d baseline=%d "
        "decode_errors=%d action_errors=%d written_back=%d errors=%d",
        stats.fetched,
        stats.actioned,
        stats.duplicates,
        stats.baseline,
        stats.decode_errors,
        stats.action_errors,
        stats.written_back,
        len(stats.errors),
    )
