"""Presence heartbeat contract (protocol)."""

from typing import Protocol


class PresenceHeartbeatProtocol(Protocol):
    """Protocol for periodic presence reporting."""

    async def start_live_tracking(self) -> None:
        """Send an immediate ping and start the recurring schedule."""
        ...

    async def send_ping(self) -> bool:
        """Send one ping if eligible.

        Returns:
            True if a ping was sent, False if the cycle was skipped.
        """
        ...

    def teardown(self) -> None:
        """Stop pinging and send a final inactive signal without waiting."""
        ...
