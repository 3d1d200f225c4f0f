"""Decode captured ExaBGP output end to end."""

import pytest
from exabgpmon.peer_status import PeerStatusTracker
from exabgpmon.protocol.json_parser import parse_event
from exabgpmon.protocol.text_parser import rib_from_bytes, summaries_from_bytes


def read_lines(path):
    """Non-empty lines of a capture, without line endings."""
    return [line for line in path.read_bytes().split(b"\n") if line.strip()]


class TestJSONCorpus:
    """Test decoding captured API streams."""

    @pytest.mark.parametrize("name", ["exabgp.log", "exabgp.log.1"])
    def test_every_line_decodes(self, data_dir, name):
        """Test that every captured line yields an event."""
        tracker = PeerStatusTracker()
        lines = read_lines(data_dir / name)

        events = [parse_event(line, tracker=tracker) for line in lines]

        assert len(events) == len(lines)
        assert all(event.type for event in events)

    def test_event_types_in_order(self, data_dir):
        """Test that events come out in arrival order."""
        tracker = PeerStatusTracker()

        types = [
            parse_event(line, tracker=tracker).type
            for line in read_lines(data_dir / "exabgp.log")
        ]

        assert types[:5] == ["state", "open", "keepalive", "state", "update"]
        assert types[-3:] == ["notification", "state", "signal"]

    def test_final_peer_status(self, data_dir):
        """Test that the tracker holds the last state event of the capture."""
        tracker = PeerStatusTracker()

        for line in read_lines(data_dir / "exabgp.log"):
            parse_event(line, tracker=tracker)

        assert tracker.get_status() == "down"
        assert tracker.get_status_reason().startswith("peer reset")

    def test_mixed_route_shapes(self, data_dir):
        """Test the capture mixing string and object routes."""
        tracker = PeerStatusTracker()
        events = [
            parse_event(line, tracker=tracker)
            for line in read_lines(data_dir / "exabgp.log")
        ]
        event = next(e for e in events if e.counter == 22)

        announcement = event.announcements.ipv4_unicast["192.168.1.184"]
        assert announcement.nlri == ["10.0.0.0/24", "10.0.1.0/24", "10.0.2.0/24"]
        assert announcement.attributes.local_preference == 200
        assert announcement.attributes.cluster_list == ["3.3.3.3"]

    def test_control_bytes_repaired(self, data_dir):
        """Test the capture with control bytes inside string values."""
        tracker = PeerStatusTracker()

        events = [
            parse_event(line, tracker=tracker)
            for line in read_lines(data_dir / "exabgp.log.1")
        ]

        assert [e.type for e in events] == ["notification", "state", "update"]
        assert events[1].peer.reason == "notification received (6,4) shutdown by admin"
        assert events[2].host == "node"
        assert events[2].announcements.ipv4_unicast["192.168.1.184"].nlri == [
            "192.168.90.0/24"
        ]
        assert tracker.get_status_reason() == (
            "notification received (6,4) shutdown by admin"
        )


class TestTextCorpus:
    """Test decoding captured exabgpcli output."""

    def test_rib_dump(self, data_dir):
        """Test that the adj-rib capture yields one message per line."""
        ribs = rib_from_bytes((data_dir / "rib-out.txt").read_bytes())

        assert len(ribs) == 7
        assert [rib.family for rib in ribs].count("ipv4 unicast") == 5
        assert ribs[5].ipv6_unicast().nlri == "2001:db8:100::/48"
        assert ribs[6].ipv4_flow() is None

    def test_rib_dump_unicast_entries(self, data_dir):
        """Test decoding the unicast entries of the capture."""
        ribs = rib_from_bytes((data_dir / "rib-out.txt").read_bytes())

        first = ribs[0].ipv4_unicast()
        assert first.nlri == "192.168.88.248/29"
        assert first.attributes.med == 100

        listed = ribs[3].ipv4_unicast()
        assert listed.attributes.community == ["54591:123", "64512:1"]
        assert listed.attributes.as_path == [30740, 30740, 30740]

    def test_neighbor_summary(self, data_dir):
        """Test the neighbor summary capture."""
        summaries = summaries_from_bytes(
            (data_dir / "neighbor-summary.txt").read_bytes()
        )

        assert [(s.ip_address, s.asn, s.is_up) for s in summaries] == [
            ("127.0.0.1", 64496, True),
            ("192.168.1.2", 64511, False),
            ("2001:db8::2", 64511, True),
        ]
