"""Stream mode: read ExaBGP JSON API events from stdin using asyncio."""

import asyncio
import sys

import structlog

from exabgpmon.config import settings
from exabgpmon.models.event import Event
from exabgpmon.monitoring.gauges import RouteGauges
from exabgpmon.monitoring.sentry_helper import (
    capture_parse_error,
    log_peer_state_change,
)
from exabgpmon.monitoring.stats import StatisticsCollector
from exabgpmon.peer_status import PeerStatusTracker, peer_status
from exabgpmon.protocol.exabgp import (
    DecodeError,
    EventType,
    ExaBGPParseError,
    PeerState,
    SchemaError,
)
from exabgpmon.protocol.json_parser import parse_event

logger = structlog.get_logger(__name__)


async def open_stdin_reader(limit: int) -> asyncio.StreamReader:
    """
    Wrap stdin in an asyncio stream reader.

    Args:
        limit: Buffer limit, i.e. the longest line that can be read

    Returns:
        Stream reader fed from stdin
    """
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


class EventStreamProcessor:
    """Decode ExaBGP API lines one at a time, in arrival order."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        gauges: RouteGauges,
        stats_collector: StatisticsCollector,
        tracker: PeerStatusTracker | None = None,
    ) -> None:
        """
        Initialize the processor.

        Args:
            reader: Line-oriented input (stdin when embedded in ExaBGP)
            gauges: Gauge store updated with every decoded event
            stats_collector: Statistics collector for monitoring
            tracker: Peer status tracker (defaults to the process-wide one)
        """
        self.reader = reader
        self.gauges = gauges
        self.stats_collector = stats_collector
        self.tracker = tracker if tracker is not None else peer_status

    def handle_line(self, line: bytes) -> Event | None:
        """
        Decode one line and apply it to the gauges.

        Undecodable lines are counted and reported, never raised: one bad
        line must not stop the stream.

        Args:
            line: One API line without the trailing newline

        Returns:
            Decoded event, or None if the line was skipped
        """
        self.stats_collector.increment_received()

        try:
            event = parse_event(line, tracker=self.tracker)
        except ExaBGPParseError as e:
            peer_ip = e.event.peer.ip if e.event is not None else None
            if isinstance(e, DecodeError):
                error_type = "event_decode_error"
            elif isinstance(e, SchemaError):
                error_type = "event_schema_error"
            else:
                error_type = "event_parse_error"
            self.stats_collector.increment_parse_failure(peer_ip)
            capture_parse_error(
                error_type=error_type,
                source="stream",
                error_message=str(e),
                line=line,
                exception=e,
                peer_ip=peer_ip,
            )
            return None

        logger.debug(
            "event_parsed",
            type=event.type,
            peer=event.peer.ip,
            direction=event.direction,
            counter=event.counter,
        )

        if event.type == EventType.STATE.value:
            log_peer_state_change(
                event.peer.ip, event.peer.asn, event.peer.state, event.peer.reason
            )

        self.stats_collector.record_event(event)
        self.gauges.observe_event(event)

        if (
            event.type == EventType.STATE.value
            and event.peer.state == PeerState.DOWN.value
        ):
            self.stats_collector.remove_peer(event.peer.ip)
        return event

    async def run(self) -> None:
        """
        Process lines until EOF.

        The only await is the line read. A line over the reader limit is
        counted and skipped; only an OS level read error ends the loop.
        """
        logger.info("event_stream_started")
        while True:
            try:
                line = await self.reader.readline()
            except ValueError as e:
                # The reader already dropped the oversized chunk
                self.stats_collector.increment_received()
                self.stats_collector.increment_parse_failure()
                capture_parse_error(
                    error_type="event_line_too_long",
                    source="stream",
                    error_message=str(e),
                    exception=e,
                )
                continue
            except OSError as e:
                logger.error("event_stream_read_error", error=str(e), exc_info=True)
                break

            if not line:
                logger.info("event_stream_closed")
                break

            line = line.rstrip(b"\r\n")
            if not line.strip():
                continue

            self.handle_line(line)

        self.gauges.log_summary()


async def run_stream(
    reader: asyncio.StreamReader | None = None,
    gauges: RouteGauges | None = None,
    stats_collector: StatisticsCollector | None = None,
) -> None:
    """
    Run stream mode (main entry point for asyncio).

    Args:
        reader: Optional input reader (for testing, defaults to stdin)
        gauges: Optional gauge store (for testing)
        stats_collector: Optional statistics collector (for testing)
    """
    if reader is None:
        reader = await open_stdin_reader(settings.stream_line_limit)

    if gauges is None:
        gauges = RouteGauges()
    # Events only arrive while ExaBGP runs us
    gauges.set_exabgp_up(1.0)

    if stats_collector is None:
        stats_collector = StatisticsCollector(log_interval=settings.stats_log_interval)
    await stats_collector.start()

    processor = EventStreamProcessor(reader, gauges, stats_collector)

    try:
        await processor.run()
    except asyncio.CancelledError:
        logger.info("event_stream_cancelled")
    finally:
        await stats_collector.stop()
        stats_collector.log_stats()
