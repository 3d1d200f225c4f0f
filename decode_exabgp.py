#!/usr/bin/env python3
"""Decode a captured ExaBGP JSON API log or exabgpcli adj-rib dump."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from exabgpmon.peer_status import PeerStatusTracker
from exabgpmon.protocol.exabgp import ExaBGPParseError
from exabgpmon.protocol.json_parser import parse_event
from exabgpmon.protocol.text_parser import rib_entry_from_string


def decode_json_line(line: bytes, tracker: PeerStatusTracker) -> None:
    """Decode and print one JSON API line."""
    event = parse_event(line, tracker=tracker)

    print(f"=== {event.type} (exabgp {event.version}, counter {event.counter}) ===")
    print(f"Peer: {event.peer.ip} AS{event.peer.asn} {event.peer.state}".rstrip())
    print(f"Local: {event.local.ip} AS{event.local.asn}")
    if event.direction:
        print(f"Direction: {event.direction}")
    if event.peer.reason:
        print(f"Reason: {event.peer.reason}")

    if event.announcements:
        for family, by_next_hop in (
            ("ipv4 unicast", event.announcements.ipv4_unicast),
            ("ipv6 unicast", event.announcements.ipv6_unicast),
        ):
            for next_hop, announcement in by_next_hop.items():
                print(f"Announce {family} via {next_hop}: {announcement.nlri}")
                print(f"  Attributes: {announcement.attributes.model_dump()}")
        for family, flows_by_next_hop in (
            ("ipv4 flow", event.announcements.ipv4_flow),
            ("ipv6 flow", event.announcements.ipv6_flow),
        ):
            for next_hop, flow_announcement in flows_by_next_hop.items():
                for flow in flow_announcement.flows:
                    print(f"Announce {family} via {next_hop}: {flow.string}")

    if event.withdrawals:
        for family, blocks in (
            ("ipv4 unicast", event.withdrawals.ipv4_unicast),
            ("ipv6 unicast", event.withdrawals.ipv6_unicast),
        ):
            for block in blocks:
                print(f"Withdraw {family}: {block.nlri}")
        for flow in event.withdrawals.ipv4_flow + event.withdrawals.ipv6_flow:
            print(f"Withdraw flow: {flow.string}")

    print(f"Last known status: {tracker.get_status()} ({tracker.get_status_reason()})")
    print()


def decode_rib_line(line: str) -> None:
    """Decode and print one adj-rib line."""
    rib = rib_entry_from_string(line)

    print(f"=== {rib.family} ===")
    print(f"Peer: {rib.peer_ip} AS{rib.peer_as}")
    print(f"Local: {rib.local_ip} AS{rib.local_as} router-id {rib.router_id}")

    if rib.family == "ipv4 unicast":
        entry = rib.ipv4_unicast()
    elif rib.family == "ipv6 unicast":
        entry = rib.ipv6_unicast()
    else:
        print(f"Details (not decoded): {rib.details}")
        print()
        return

    print(f"NLRI: {entry.nlri} next-hop {entry.next_hop}")
    print(f"Attributes: {entry.attributes.model_dump()}")
    print()


def main(path: str) -> int:
    """Decode every line of a file, reporting failures."""
    tracker = PeerStatusTracker()
    failures = 0

    with open(path, "rb") as f:
        for number, raw in enumerate(f, start=1):
            line = raw.rstrip(b"\r\n")
            if not line.strip():
                continue
            try:
                if line.lstrip().startswith(b"{"):
                    decode_json_line(line, tracker)
                else:
                    decode_rib_line(line.decode("utf-8", errors="replace"))
            except ExaBGPParseError as e:
                failures += 1
                print(f"Line {number}: {type(e).__name__}: {e}")
                print()

    print(f"{failures} line(s) failed to decode")
    return 1 if failures else 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(f"usage: {sys.argv[0]} <exabgp.log | rib-out.txt>", file=sys.stderr)
        sys.exit(2)
    sys.exit(main(sys.argv[1]))
