"""Last known BGP session status, as reported by ExaBGP state events."""

import threading
from typing import NamedTuple

from exabgpmon.protocol.exabgp import UNKNOWN_STATUS_REASON, PeerState


class PeerStatus(NamedTuple):
    """State and reason, always read and written together."""

    state: str
    reason: str


UNKNOWN_STATUS = PeerStatus(PeerState.UNKNOWN.value, UNKNOWN_STATUS_REASON)


class PeerStatusTracker:
    """
    Single-writer, multi-reader cache of the last peer status.

    The event decoder publishes on every state event; scrapes read from
    other tasks or threads. The pair is swapped as one tuple under a lock,
    so a reader never sees a new state with a stale reason.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status: PeerStatus | None = None

    def publish(self, state: str, reason: str) -> None:
        """Replace the last known status (last write wins)."""
        with self._lock:
            self._status = PeerStatus(state, reason)

    def snapshot(self) -> PeerStatus:
        """Return state and reason as one consistent pair."""
        with self._lock:
            if self._status is None:
                self._status = UNKNOWN_STATUS
            return self._status

    def get_status(self) -> str:
        """Last known session state."""
        return self.snapshot().state

    def get_status_reason(self) -> str:
        """Reason that came with the last known state."""
        return self.snapshot().reason


# Process-wide tracker used when none is injected
peer_status = PeerStatusTracker()


def get_status() -> str:
    """Last known session state of the process-wide tracker."""
    return peer_status.get_status()


def get_status_reason() -> str:
    """Last known reason of the process-wide tracker."""
    return peer_status.get_status_reason()
