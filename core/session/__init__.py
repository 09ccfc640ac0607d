# Path: core/session/__init__.py
# Purpose: Package initializer for library sessions.
# Layer: core/session.
# Details: Exposes the owner object that replaces module-level application state.

from .library_session import LibrarySession

__all__ = ["LibrarySession"]
