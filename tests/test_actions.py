from __future__ import annotations

import webbrowser
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from shared_url_opener.actions import BrowserExecutor, DryRunExecutor, FirestoreExpiryWriteBack
from shared_url_opener.errors import ActionError
from shared_url_opener.models import ActionRequest, SharedRecord

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_browser_executor_opens_decoded_url(monkeypatch: pytest.MonkeyPatch) -> None:
    opened: list[tuple[str, int]] = []

    def _fake_open(url: str, new: int = 0, autoraise: bool = True) -> bool:
        opened.append((url, new))
        return True

    monkeypatch.setattr("webbrowser.open", _fake_open)

    BrowserExecutor().execute(ActionRequest(url="https%3A%2F%2Fexample.com%2Fa%20b"))

    assert opened == [("https://example.com/a b", 2)]


def test_browser_executor_reports_launch_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("webbrowser.open", lambda *args, **kwargs: False)

    with pytest.raises(ActionError, match="No browser"):
        BrowserExecutor().execute(ActionRequest(url="https://example.com"))


def test_browser_executor_wraps_webbrowser_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def _raise(*args: Any, **kwargs: Any) -> bool:
        raise webbrowser.Error("could not locate runnable browser")

    monkeypatch.setattr("webbrowser.open", _raise)

    with pytest.raises(ActionError, match="runnable browser"):
        BrowserExecutor().execute(ActionRequest(url="https://example.com"))


def test_browser_executor_rejects_undecodable_url(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr("webbrowser.open", lambda url, *args, **kwargs: calls.append(url))

    with pytest.raises(ActionError, match="decode"):
        BrowserExecutor().execute(ActionRequest(url="https://example.com/%FF"))
    assert calls == []


def test_dry_run_executor_prints_decoded_url(capsys: pytest.CaptureFixture[str]) -> None:
    executor = DryRunExecutor()

    executor.execute(ActionRequest(url="https%3A%2F%2Fexample.com"))

    assert capsys.readouterr().out == "[DRY RUN] WOULD OPEN: https://example.com\n"
    assert executor.opened == ["https://example.com"]


class _FakeDocument:
    def __init__(self, store: dict[str, dict[str, Any]], doc_id: str, fail: bool) -> None:
        self._store = store
        self._doc_id = doc_id
        self._fail = fail

    def update(self, fields: dict[str, Any]) -> None:
        if self._fail:
            raise RuntimeError("permission denied")
        self._store.setdefault(self._doc_id, {}).update(fields)


class _FakeClient:
    def __init__(self, fail: bool = False) -> None:
        self.store: dict[str, dict[str, Any]] = {}
        self.fail = fail
        self.collection_names: list[str] = []

    def collection(self, name: str) -> "_FakeClient":
        self.collection_names.append(name)
        return self

    def document(self, doc_id: str) -> _FakeDocument:
        return _FakeDocument(self.store, doc_id, self.fail)


def test_write_back_sets_expiry_three_days_after_creation() -> None:
    client = _FakeClient()
    write_back = FirestoreExpiryWriteBack(client, collection="shared_urls")

    assert write_back.mark_processed(SharedRecord(id="abc", url="http://x", created_at=T0))
    assert client.collection_names == ["shared_urls"]
    assert client.store == {"abc": {"expires_at": T0 + timedelta(days=3)}}


def test_write_back_skips_records_without_id() -> None:
    client = _FakeClient()
    write_back = FirestoreExpiryWriteBack(client, collection="shared_urls")

    assert write_back.mark_processed(SharedRecord(url="http://x", created_at=T0)) is False
    assert client.store == {}


def test_write_back_failure_raises_action_error() -> None:
    write_back = FirestoreExpiryWriteBack(_FakeClient(fail=True), collection="shared_urls")

    with pytest.raises(ActionError, match="permission denied"):
        write_back.mark_processed(SharedRecord(id="abc", url="http://x", created_at=T0))
