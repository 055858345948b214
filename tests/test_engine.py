from __future__ import annotations

from datetime import datetime, timedelta, timezone

from shared_url_opener.engine import observe, record_key
from shared_url_opener.models import ActionRequest, SharedRecord, WatcherState

T1 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _record(url: str, record_id: str | None = None, created_at: datetime = T1) -> SharedRecord:
    return SharedRecord(id=record_id, url=url, created_at=created_at)


def test_key_prefers_document_id_and_falls_back_to_url() -> None:
    assert record_key(_record("http://x", "a")) == "a"
    assert record_key(_record("http://x")) == "http://x"


def test_first_observation_is_suppressed_but_recorded() -> None:
    state = WatcherState()

    assert observe(_record("http://x", "a"), state) is None
    assert state.last_seen_key == "a"
    assert state.has_completed_first_observation is True


def test_same_record_twice_then_new_record() -> None:
    state = WatcherState()
    first = _record("http://x", "a")

    assert observe(first, state) is None
    assert observe(first, state) is None
    assert observe(_record("http://y", "b"), state) == ActionRequest(url="http://y")
    assert state.last_seen_key == "b"


def test_distinct_keys_emit_one_request_each_after_the_first() -> None:
    state = WatcherState()
    records = [_record(f"http://site/{index}", f"id-{index}") for index in range(6)]

    requests = [observe(record, state) for record in records]

    assert requests[0] is None
    assert [request.url for request in requests[1:] if request] == [
        record.url for record in records[1:]
    ]


def test_repeated_key_is_idempotent() -> None:
    state = WatcherState()
    observe(_record("http://x", "a"), state)
    assert observe(_record("http://y", "b"), state) is not None

    for _ in range(5):
        assert observe(_record("http://y", "b"), state) is None


def test_write_back_update_to_same_document_is_a_duplicate() -> None:
    state = WatcherState()
    observe(_record("http://x", "a"), state)
    created = _record("http://y", "b")
    assert observe(created, state) is not None

    written_back = SharedRecord(
        id="b",
        url="http://y",
        created_at=T1,
        expires_at=T1 + timedelta(days=3),
    )
    assert observe(written_back, state) is None


def test_without_id_same_url_with_later_timestamp_is_a_duplicate() -> None:
    # Known limitation: without an id a re-shared identical URL is not new.
    state = WatcherState()

    assert observe(_record("http://x", created_at=T1), state) is None
    assert observe(_record("http://x", created_at=T1 + timedelta(minutes=5)), state) is None
    assert observe(_record("http://z", created_at=T1 + timedelta(minutes=6)), state) == ActionRequest(
        url="http://z"
    )


def test_timestamps_never_affect_the_decision() -> None:
    state = WatcherState()
    observe(_record("http://x", "a", created_at=T1), state)

    older = _record("http://y", "b", created_at=T1 - timedelta(days=30))
    assert observe(older, state) == ActionRequest(url="http://y")
