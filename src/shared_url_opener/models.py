from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

RawRecord = Mapping[str, Any]


@dataclass(slots=True, frozen=True)
class SharedRecord:
    url: str
    created_at: datetime
    id: str | None = None
    expires_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class ActionRequest:
    url: str


@dataclass(slots=True)
class WatcherState:
    last_seen_key: str | None = None
    has_completed_first_observation: bool = False
