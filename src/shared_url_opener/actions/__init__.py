"""Side effects for newly shared URLs."""

from .base import ActionExecutor, WriteBack
from .browser import BrowserExecutor, DryRunExecutor
from .writeback import FirestoreExpiryWriteBack

__all__ = [
    "ActionExecutor",
    "BrowserExecutor",
    "DryRunExecutor",
    "FirestoreExpiryWriteBack",
    "WriteBack",
]
