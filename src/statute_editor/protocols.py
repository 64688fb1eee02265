"""Protocols for dependency injection in the editor."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class StoreProtocol(Protocol):
    """The save endpoint and tree source an edit session talks to."""

    def save_statute(self, statute_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        """Persist ``{"tree", "deletedItems"}`` atomically.

        Returns ``{"success": True}`` on commit, ``{"error": ...}`` otherwise.
        """
        ...

    def load_statute(self, statute_id: int) -> dict[str, Any] | None:
        """Return the canonical tree as JSON, or None if the statute does not exist."""
        ...


@runtime_checkable
class DraftStoreProtocol(Protocol):
    """Local draft storage keyed by statute id."""

    def clear(self, statute_id: int) -> None:
        """Remove the draft for a statute, if any."""
        ...
