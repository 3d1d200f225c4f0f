"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest
from exabgpmon.peer_status import PeerStatusTracker

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def data_dir() -> Path:
    """Directory holding captured ExaBGP output."""
    return DATA_DIR


@pytest.fixture
def tracker() -> PeerStatusTracker:
    """Return a fresh peer status tracker."""
    return PeerStatusTracker()


@pytest.fixture
def ipv4_announce_line() -> bytes:
    """Return an ipv4 unicast announce sent to 192.168.1.2."""
    return (
        b'{ "exabgp": "4.0.1", "time": 1554843223.5592246, "host" : "node1", '
        b'"pid" : 31372, "ppid" : 1, "counter": 11, "type": "update", '
        b'"neighbor": { "address": { "local": "192.168.1.184", "peer": "192.168.1.2" }, '
        b'"asn": { "local": 64496, "peer": 64496 } , "direction": "send", '
        b'"message": { "update": { "attribute": { "origin": "igp", "med": 100, '
        b'"local-preference": 100 }, "announce": { "ipv4 unicast": '
        b'{ "192.168.1.184": [ "192.168.88.2/32" ] } } } } } }'
    )


@pytest.fixture
def ipv4_withdraw_line() -> bytes:
    """Return an ipv4 unicast withdraw of five routes, four of them identical."""
    return (
        b'{ "exabgp": "4.0.1", "time": 1554987394.5413187, "host" : "node1", '
        b'"pid" : 14339, "ppid" : 1, "counter": 14, "type": "update", '
        b'"neighbor": { "address": { "local": "192.168.1.184", "peer": "192.168.1.158" }, '
        b'"asn": { "local": 64496, "peer": 64496 } , "direction": "send", '
        b'"message": { "update": { "withdraw": { "ipv4 unicast": '
        b'[ "0.0.0.0/0", "0.0.0.0/0", "0.0.0.0/0", "0.0.0.0/0", "192.168.88.0/24" ] } } } } }'
    )


def _make_line(
    event_type: str = "update",
    update: str | None = None,
    state: str | None = None,
    reason: str | None = None,
    direction: str = "send",
) -> bytes:
    """Build an API line around an update body or a state."""
    neighbor = [
        '"address": { "local": "192.168.1.184", "peer": "192.168.1.2" }',
        '"asn": { "local": 64496, "peer": 64511 }',
        f'"direction": "{direction}"',
    ]
    if update is not None:
        neighbor.append(f'"message": {{ "update": {update} }}')
    if state is not None:
        neighbor.append(f'"state": "{state}"')
    if reason is not None:
        neighbor.append(f'"reason": "{reason}"')
    return (
        '{ "exabgp": "4.2.11", "time": 1611234567.5, "host": "rs1", "pid": 42, '
        f'"ppid": 1, "counter": 7, "type": "{event_type}", '
        f'"neighbor": {{ {", ".join(neighbor)} }} }}'
    ).encode()


@pytest.fixture
def make_line():
    """Return a builder for API lines."""
    return _make_line

