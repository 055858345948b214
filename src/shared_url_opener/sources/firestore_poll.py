from __future__ import annotations

import logging
import os
from typing import Any

import requests

from shared_url_opener.config import AppConfig
from shared_url_opener.errors import FetchError
from shared_url_opener.models import RawRecord

from .base import RecordSource
from .registry import register_source

logger = logging.getLogger(__name__)

FIRESTORE_API_ROOT = "https://firestore.googleapis.com/v1"
DATASTORE_SCOPE = "https://www.googleapis.com/auth/datastore"


class FirestorePollSource(RecordSource):
    """Reads the newest document of a collection through the REST ``runQuery`` call.

    Only field values are returned; the document name is not used, so records
    from this source have no identity and are keyed by URL downstream.
    """

    def __init__(
        self,
        *,
        project_id: str,
        collection: str,
        order_by: str = "timestamp",
        database: str = "(default)",
        timeout_seconds: int = 30,
        api_key: str | None = None,
        session: Any = None,
    ) -> None:
        super().__init__(source_id=f"firestore_poll:{collection}")
        self.collection = collection
        self.order_by = order_by
        self.timeout_seconds = timeout_seconds
        self.api_key = api_key
        self.url = (
            f"{FIRESTORE_API_ROOT}/projects/{project_id}/databases/{database}"
            "/documents:runQuery"
        )
        self.session = session if session is not None else requests.Session()

    def build_query(self) -> dict[str, Any]:
        return {
            "structuredQuery": {
                "from": [{"collectionId": self.collection}],
                "orderBy": [
                    {
                        "field": {"fieldPath": self.order_by},
                        "direction": "DESCENDING",
                    }
                ],
                "limit": 1,
            }
        }

    def fetch(self, timeout: float) -> list[RawRecord]:
        params = {"key": self.api_key} if self.api_key else None
        try:
            response = self.session.post(
                self.url,
                json=self.build_query(),
                params=params,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise FetchError(f"runQuery on {self.collection} failed: {exc}") from exc
        except ValueError as exc:
            raise FetchError(f"runQuery on {self.collection} returned invalid JSON") from exc

        if not isinstance(payload, list):
            raise FetchError(
                f"runQuery on {self.collection} returned {type(payload).__name__}, expected a list"
            )

        records: list[RawRecord] = []
        for item in payload:
            document = item.get("document") if isinstance(item, dict) else None
            if not document:
                continue
            records.append(decode_fields(document.get("fields") or {}))
        return records

    def close(self) -> None:
        self.session.close()


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {name: decode_value(value) for name, value in fields.items()}


def decode_value(value: Any) -> Any:
    """Convert one typed REST value (``{"stringValue": "x"}``) to plain Python.

    Timestamps stay RFC 3339 strings; the record decoder parses them.
    """
    if not isinstance(value, dict) or not value:
        return None

    kind, inner = next(iter(value.items()))
    if kind == "nullValue":
        return None
    if kind in ("integerValue", "doubleValue"):
        # a bad number stays raw so the record decoder can reject it
        try:
            return int(inner) if kind == "integerValue" else float(inner)
        except (TypeError, ValueError):
            return inner
    if kind == "mapValue":
        return decode_fields(inner.get("fields") or {})
    if kind == "arrayValue":
        return [decode_value(item) for item in inner.get("values") or []]
    # stringValue, timestampValue, booleanValue, referenceValue, bytesValue
    return inner


def _build_session(credentials_path: str | None) -> Any:
    if not credentials_path:
        return requests.Session()

    from google.auth.transport.requests import AuthorizedSession
    from google.oauth2 import service_account

    credentials = service_account.Credentials.from_service_account_file(
        credentials_path,
        scopes=[DATASTORE_SCOPE],
    )
    return AuthorizedSession(credentials)


@register_source("firestore_poll")
def _build_firestore_poll_source(app_config: AppConfig) -> RecordSource:
    firestore = app_config.firestore
    api_key = os.getenv(firestore.api_key_env_var, "").strip() or None
    return FirestorePollSource(
        project_id=firestore.project_id,
        collection=app_config.source.collection,
        order_by=app_config.source.order_by,
        database=firestore.database,
        timeout_seconds=app_config.source.timeout_seconds,
        api_key=api_key,
        session=_build_session(firestore.credentials_path),
    )
