"""Statistics tracking for ExaBGP peers and routes."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from exabgpmon.models.event import Event

logger = structlog.get_logger(__name__)


@dataclass
class PeerStats:
    """Statistics for a single BGP peer."""

    peer_ip: str
    events: int = 0
    updates: int = 0
    announced_routes: int = 0
    withdrawn_routes: int = 0
    ipv4_routes: int = 0
    ipv6_routes: int = 0
    flow_routes: int = 0
    state_changes: int = 0
    errors: int = 0
    last_update: datetime = field(default_factory=datetime.utcnow)

    def increment_event(self, event_type: str) -> None:
        """
        Increment event counter and the per-type counters.

        Args:
            event_type: ExaBGP event type (update, state, ...)
        """
        self.events += 1
        if event_type == "update":
            self.updates += 1
        elif event_type == "state":
            self.state_changes += 1
        self.last_update = datetime.utcnow()

    def increment_routes(
        self, family: str, count: int, withdrawn: bool = False
    ) -> None:
        """
        Add routes of one family to the route counters.

        Args:
            family: ExaBGP family (ipv4 unicast, ipv6 unicast, ipv4 flow, ipv6 flow)
            count: Number of routes or flows
            withdrawn: Whether the routes were withdrawn
        """
        if withdrawn:
            self.withdrawn_routes += count
        else:
            self.announced_routes += count

        if family.endswith("flow"):
            self.flow_routes += count
        elif family.startswith("ipv4"):
            self.ipv4_routes += count
        elif family.startswith("ipv6"):
            self.ipv6_routes += count

        self.last_update = datetime.utcnow()

    def increment_error(self) -> None:
        """Increment error counter."""
        self.errors += 1
        self.last_update = datetime.utcnow()

    def has_activity(self) -> bool:
        """Whether anything was counted since the last reset."""
        return self.events > 0 or self.errors > 0

    def reset(self) -> None:
        """Reset all counters (for periodic reporting)."""
        self.events = 0
        self.updates = 0
        self.announced_routes = 0
        self.withdrawn_routes = 0
        self.ipv4_routes = 0
        self.ipv6_routes = 0
        self.flow_routes = 0
        self.state_changes = 0
        self.errors = 0
        self.last_update = datetime.utcnow()


class StatisticsCollector:
    """Collect and report statistics for all peers."""

    def __init__(self, log_interval: float = 10.0) -> None:
        """
        Initialize statistics collector.

        Args:
            log_interval: Interval in seconds between log outputs (default: 10.0)
        """
        self.log_interval = log_interval
        self.lines_received = 0
        self.parse_failures = 0
        self.scrapes = 0
        self._stats: dict[str, PeerStats] = {}
        self._logging_task: asyncio.Task[None] | None = None
        self._running = False

    def get_peer_stats(self, peer_ip: str) -> PeerStats:
        """
        Get statistics for a peer (creates if doesn't exist).

        Args:
            peer_ip: BGP peer IP address

        Returns:
            PeerStats for the peer
        """
        if peer_ip not in self._stats:
            self._stats[peer_ip] = PeerStats(peer_ip=peer_ip)
        return self._stats[peer_ip]

    def increment_received(self) -> None:
        """Count one input line from the event stream."""
        self.lines_received += 1

    def increment_scrapes(self) -> None:
        """Count one exabgpcli scrape."""
        self.scrapes += 1

    def increment_parse_failure(self, peer_ip: str | None = None) -> None:
        """
        Count input that could not be decoded.

        Args:
            peer_ip: Peer the input belonged to, when known
        """
        self.parse_failures += 1
        if peer_ip:
            self.get_peer_stats(peer_ip).increment_error()

    def record_event(self, event: Event) -> None:
        """
        Count a decoded event and the routes it carries.

        Args:
            event: Decoded ExaBGP event
        """
        stats = self.get_peer_stats(event.peer.ip)
        stats.increment_event(event.type)

        if event.announcements is not None:
            for family, by_next_hop in (
                ("ipv4 unicast", event.announcements.ipv4_unicast),
                ("ipv6 unicast", event.announcements.ipv6_unicast),
            ):
                for announcement in by_next_hop.values():
                    stats.increment_routes(family, len(announcement.nlri))
            for family, flows_by_next_hop in (
                ("ipv4 flow", event.announcements.ipv4_flow),
                ("ipv6 flow", event.announcements.ipv6_flow),
            ):
                for flow_announcement in flows_by_next_hop.values():
                    stats.increment_routes(family, len(flow_announcement.flows))

        if event.withdrawals is not None:
            for family, blocks in (
                ("ipv4 unicast", event.withdrawals.ipv4_unicast),
                ("ipv6 unicast", event.withdrawals.ipv6_unicast),
            ):
                for block in blocks:
                    stats.increment_routes(family, len(block.nlri), withdrawn=True)
            stats.increment_routes(
                "ipv4 flow", len(event.withdrawals.ipv4_flow), withdrawn=True
            )
            stats.increment_routes(
                "ipv6 flow", len(event.withdrawals.ipv6_flow), withdrawn=True
            )

    def remove_peer(self, peer_ip: str) -> None:
        """
        Remove peer statistics.

        Args:
            peer_ip: BGP peer IP address
        """
        if peer_ip in self._stats:
            del self._stats[peer_ip]

    async def start(self) -> None:
        """Start periodic statistics logging."""
        if self._running:
            return

        self._running = True
        self._logging_task = asyncio.create_task(self._periodic_logging())
        logger.info("statistics_collector_started", interval_seconds=self.log_interval)

    async def stop(self) -> None:
        """Stop periodic statistics logging."""
        self._running = False

        if self._logging_task:
            self._logging_task.cancel()
            try:
                await self._logging_task
            except asyncio.CancelledError:
                pass
            self._logging_task = None

        logger.info("statistics_collector_stopped")

    def log_stats(self) -> None:
        """Log totals and per-peer counters, then reset the per-peer counters."""
        logger.info(
            "stream_stats",
            lines_received=self.lines_received,
            parse_failures=self.parse_failures,
            scrapes=self.scrapes,
        )

        for peer_ip, stats in self._stats.items():
            # Only log if there's been activity
            if not stats.has_activity():
                continue

            logger.info(
                "peer_stats",
                peer=peer_ip,
                events=stats.events,
                updates=stats.updates,
                announced=stats.announced_routes,
                withdrawn=stats.withdrawn_routes,
                ipv4=stats.ipv4_routes,
                ipv6=stats.ipv6_routes,
                flow=stats.flow_routes,
                state_changes=stats.state_changes,
                errors=stats.errors,
                events_per_sec=int(stats.events / self.log_interval),
            )

            stats.reset()

    async def _periodic_logging(self) -> None:
        """Periodically log statistics for all peers."""
        while self._running:
            try:
                await asyncio.sleep(self.log_interval)
                self.log_stats()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("stats_logging_error", error=str(e), exc_info=True)
