from __future__ import annotations


class WatcherError(RuntimeError):
    """Base class for errors recovered inside a watch cycle."""


class FetchError(WatcherError):
    """Raised when a record source cannot be read (network, store unavailable)."""


class DecodeError(WatcherError):
    """Raised when a raw record cannot be mapped to a SharedRecord."""


class ActionError(WatcherError):
    """Raised when opening a URL or writing back the expiry marker fails."""
