"""In-memory key-value store."""

from page_telemetry.domain.ports.key_value_store import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Key-value store that lives for the lifetime of the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()
