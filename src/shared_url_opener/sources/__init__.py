"""Record sources and registry."""

from .base import RecordSource
from .firestore_listener import FirestoreListenerSource, build_firestore_client
from .firestore_poll import FirestorePollSource
from .registry import (
    SourceRegistrationError,
    create_source,
    register_source,
    registered_source_types,
)

__all__ = [
    "RecordSource",
    "FirestoreListenerSource",
    "FirestorePollSource",
    "SourceRegistrationError",
    "build_firestore_client",
    "create_source",
    "register_source",
    "registered_source_types",
]
