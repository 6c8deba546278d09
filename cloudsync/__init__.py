"""WSGI HTTP API for managing WebDAV sync connections and tasks."""

__version__ = "0.1.0"
__all__ = ["__version__"]