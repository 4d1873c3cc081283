"""Key-value store port."""

from typing import Protocol


class KeyValueStore(Protocol):
    """Port for durable string storage scoped to the client device."""

    def get(self, key: str) -> str | None:
        """Return the stored value or None."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        ...

    def clear(self) -> None:
        """Remove all keys."""
        ...
