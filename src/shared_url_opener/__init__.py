"""Watch a shared Firestore collection and open newly shared URLs in the browser."""

__version__ = "0.1.0"
