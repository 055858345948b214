from __future__ import annotations

from abc import ABC, abstractmethod

from shared_url_opener.models import ActionRequest, SharedRecord


class ActionExecutor(ABC):
    @abstractmethod
    def execute(self, request: ActionRequest) -> None:
        """Carry out the side effect for a newly shared URL; raise ActionError on failure."""


class WriteBack(ABC):
    @abstractmethod
    def mark_processed(self, record: SharedRecord) -> bool:
        """Mark the stored record as handled. Return False when it cannot be addressed."""
