"""Gauge store for peer and route state.

Mirrors what the exporter publishes: one gauge per peer (1 up, 0 down) and
one gauge per route (1 announced, 0 withdrawn), each identified by a tuple
of label values.
"""

import threading
from collections.abc import Iterable, Sequence
from typing import NamedTuple

import structlog

from exabgpmon.models.attribute import Attribute
from exabgpmon.models.event import Event
from exabgpmon.models.rib import NeighborSummary
from exabgpmon.protocol.exabgp import (
    Direction,
    ExaBGPParseError,
    Family,
    PeerState,
)
from exabgpmon.protocol.text_parser import RIBMessage

logger = structlog.get_logger(__name__)

PEER_LABELS = ("peer_ip", "peer_asn")
ROUTE_LABELS = (
    "peer_ip",
    "peer_asn",
    "local_ip",
    "local_asn",
    "nlri",
    "family",
    "med",
    "local_preference",
    "as_path",
    "communities",
)


class GaugeSample(NamedTuple):
    """One gauge value with its labels."""

    name: str
    labels: dict[str, str]
    value: float


def _route_labels(
    peer_ip: str,
    peer_asn: int,
    local_ip: str,
    local_asn: int,
    nlri: str,
    family: str,
    attributes: Attribute,
) -> tuple[str, ...]:
    return (
        peer_ip,
        str(peer_asn),
        local_ip,
        str(local_asn),
        nlri,
        family,
        str(attributes.med),
        str(attributes.local_preference),
        " ".join(str(asn) for asn in attributes.as_path),
        " ".join(attributes.community),
    )


class RouteGauges:
    """
    Thread-safe store of peer and route gauges.

    The stream runner updates it event by event; the standalone runner
    replaces it wholesale after each scrape. Readers get copies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._peers: dict[tuple[str, ...], float] = {}
        self._routes: dict[tuple[str, ...], float] = {}
        self._exabgp_up = 0.0

    def set_exabgp_up(self, value: float) -> None:
        """Record whether ExaBGP itself answered."""
        with self._lock:
            self._exabgp_up = value

    @property
    def exabgp_up(self) -> float:
        with self._lock:
            return self._exabgp_up

    def observe_event(self, event: Event) -> None:
        """
        Apply one decoded event.

        Every event sets the peer gauge. Routes are only tracked for
        updates ExaBGP sent, since those reflect what we advertise.

        Args:
            event: Decoded ExaBGP event
        """
        peer_key = (event.peer.ip, str(event.peer.asn))
        peer_value = 0.0 if event.peer.state == PeerState.DOWN.value else 1.0

        with self._lock:
            self._peers[peer_key] = peer_value

            if event.direction != Direction.SEND.value:
                return

            if event.announcements is not None:
                for family, by_next_hop in (
                    (Family.IPV4_UNICAST, event.announcements.ipv4_unicast),
                    (Family.IPV6_UNICAST, event.announcements.ipv6_unicast),
                ):
                    for announcement in by_next_hop.values():
                        self._set_routes(
                            event,
                            family,
                            announcement.attributes,
                            announcement.nlri,
                            1.0,
                        )

            if event.withdrawals is not None:
                for family, blocks in (
                    (Family.IPV4_UNICAST, event.withdrawals.ipv4_unicast),
                    (Family.IPV6_UNICAST, event.withdrawals.ipv6_unicast),
                ):
                    for block in blocks:
                        self._set_routes(
                            event, family, block.attributes, block.nlri, 0.0
                        )

    def _set_routes(
        self,
        event: Event,
        family: Family,
        attributes: Attribute,
        nlri: Iterable[str],
        value: float,
    ) -> None:
        for prefix in nlri:
            key = _route_labels(
                event.peer.ip,
                event.peer.asn,
                event.local.ip,
                event.local.asn,
                prefix,
                family.value,
                attributes,
            )
            self._routes[key] = value

    def observe_rib(
        self, ribs: Sequence[RIBMessage], summaries: Sequence[NeighborSummary]
    ) -> int:
        """
        Replace all gauges with the result of one exabgpcli scrape.

        Entries of families other than ipv4/ipv6 unicast, and entries whose
        details do not parse, are logged and skipped.

        Args:
            ribs: Parsed ``show adj-rib out extensive`` lines
            summaries: Parsed ``show neighbor summary`` rows

        Returns:
            Number of RIB entries skipped
        """
        peers = {
            (s.ip_address, str(s.asn)): 1.0 if s.is_up else 0.0 for s in summaries
        }

        routes: dict[tuple[str, ...], float] = {}
        skipped = 0
        for rib in ribs:
            try:
                if rib.family == Family.IPV4_UNICAST.value:
                    entry = rib.ipv4_unicast()
                elif rib.family == Family.IPV6_UNICAST.value:
                    entry = rib.ipv6_unicast()
                else:
                    logger.error("unable_to_handle_family", family=rib.family)
                    skipped += 1
                    continue
            except ExaBGPParseError as e:
                logger.error(
                    "rib_entry_parse_error",
                    peer=rib.peer_ip,
                    family=rib.family,
                    error=str(e),
                )
                skipped += 1
                continue

            key = _route_labels(
                rib.peer_ip,
                rib.peer_as,
                rib.local_ip,
                rib.local_as,
                entry.nlri,
                rib.family,
                entry.attributes,
            )
            routes[key] = 1.0

        with self._lock:
            self._peers = peers
            self._routes = routes

        return skipped

    def clear(self) -> None:
        """Drop all peer and route gauges."""
        with self._lock:
            self._peers = {}
            self._routes = {}

    def peer_value(self, peer_ip: str, peer_asn: int) -> float | None:
        """Current peer gauge, None if never seen."""
        with self._lock:
            return self._peers.get((peer_ip, str(peer_asn)))

    def route_value(self, **labels: object) -> float | None:
        """
        Current route gauge, None if never seen.

        Args:
            **labels: Every name in ROUTE_LABELS
        """
        key = tuple(str(labels[name]) for name in ROUTE_LABELS)
        with self._lock:
            return self._routes.get(key)

    def samples(self) -> list[GaugeSample]:
        """Snapshot of every gauge."""
        with self._lock:
            peers = list(self._peers.items())
            routes = list(self._routes.items())
            exabgp_up = self._exabgp_up

        result = [GaugeSample("exabgp_up", {}, exabgp_up)]
        result.extend(
            GaugeSample("exabgp_state_peer", dict(zip(PEER_LABELS, key)), value)
            for key, value in peers
        )
        result.extend(
            GaugeSample("exabgp_state_route", dict(zip(ROUTE_LABELS, key)), value)
            for key, value in routes
        )
        return result

    def log_summary(self) -> None:
        """Log gauge counts."""
        with self._lock:
            peers_up = sum(1 for v in self._peers.values() if v)
            routes_active = sum(1 for v in self._routes.values() if v)
            logger.info(
                "gauge_summary",
                exabgp_up=self._exabgp_up,
                peers=len(self._peers),
                peers_up=peers_up,
                routes=len(self._routes),
                routes_active=routes_active,
            )
