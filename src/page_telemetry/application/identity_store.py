"""Device identity and display name persistence."""

import logging
import secrets
import string
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from page_telemetry.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "page_telemetry_device_id"
USER_NAME_KEY = "page_telemetry_user_name"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_device_id() -> str:
    """Create an id of the form device_<epoch ms>_<9 base36 chars>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"device_{int(time.time() * 1000)}_{suffix}"


class IdentityStore:
    """Resolves a stable device id and an optional user name."""

    def __init__(self, store: "KeyValueStore") -> None:
        self._store = store

    def get_device_id(self) -> str:
        """Return the persisted device id, creating it on first use."""
        device_id = self._store.get(DEVICE_ID_KEY)
        if not device_id:
            device_id = generate_device_id()
            self._store.set(DEVICE_ID_KEY, device_id)
            logger.info(f"Created new device id {device_id}")
        return device_id

    def get_user_name(self) -> str | None:
        return self._store.get(USER_NAME_KEY)

    def set_user_name(self, name: str) -> None:
        self._store.set(USER_NAME_KEY, name)

    def has_user_name(self) -> bool:
        return bool(self.get_user_name())
