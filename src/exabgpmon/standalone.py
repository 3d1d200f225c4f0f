"""Standalone mode: poll exabgpcli and decode its text output."""

import asyncio
from collections.abc import Sequence

import structlog

from exabgpmon.config import settings
from exabgpmon.monitoring.gauges import RouteGauges
from exabgpmon.monitoring.sentry_helper import capture_parse_error, log_cli_error
from exabgpmon.monitoring.stats import StatisticsCollector
from exabgpmon.protocol.exabgp import ParseError
from exabgpmon.protocol.text_parser import rib_from_bytes, summaries_from_bytes

logger = structlog.get_logger(__name__)

SHOW_ADJ_RIB_SUBCOMMAND = ("show", "adj-rib", "out", "extensive")
SHOW_SUMMARY_SUBCOMMAND = ("show", "neighbor", "summary")


class ExaBGPCLIError(Exception):
    """exabgpcli could not be run, failed, or timed out."""

    def __init__(
        self, message: str, output: bytes = b"", returncode: int | None = None
    ) -> None:
        super().__init__(message)
        self.output = output
        self.returncode = returncode


class ExaBGPCLI:
    """Runs exabgpcli subcommands."""

    def __init__(self, command: str, root: str, timeout: float = 10.0) -> None:
        """
        Initialize the CLI wrapper.

        Args:
            command: exabgpcli executable
            root: Value of --root passed to exabgpcli
            timeout: Seconds to wait for one invocation
        """
        self.command = command
        self.root = root
        self.timeout = timeout

    def argv(self, subcommand: Sequence[str]) -> list[str]:
        """Full argument vector for a subcommand."""
        return [self.command, "--root", self.root, *subcommand]

    async def run(self, subcommand: Sequence[str]) -> bytes:
        """
        Run one subcommand and return its stdout.

        Args:
            subcommand: e.g. ("show", "neighbor", "summary")

        Returns:
            Captured stdout

        Raises:
            ExaBGPCLIError: If the process cannot start, exits non-zero or
                does not finish within the timeout
        """
        argv = self.argv(subcommand)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExaBGPCLIError(f"Unable to run {argv[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self.timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise ExaBGPCLIError(
                f"{' '.join(argv)} timed out after {self.timeout}s"
            ) from e

        if proc.returncode != 0:
            raise ExaBGPCLIError(
                f"{' '.join(argv)} exited with {proc.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}",
                output=stdout,
                returncode=proc.returncode,
            )
        return stdout

    async def show_neighbor_summary(self) -> bytes:
        """Output of ``show neighbor summary``."""
        return await self.run(SHOW_SUMMARY_SUBCOMMAND)

    async def show_adj_rib_out(self) -> bytes:
        """Output of ``show adj-rib out extensive``."""
        return await self.run(SHOW_ADJ_RIB_SUBCOMMAND)


class StandaloneCollector:
    """Periodically scrape exabgpcli into the gauge store."""

    def __init__(
        self,
        cli: ExaBGPCLI,
        gauges: RouteGauges,
        stats_collector: StatisticsCollector,
        interval: float = 15.0,
    ) -> None:
        """
        Initialize the collector.

        Args:
            cli: exabgpcli wrapper
            gauges: Gauge store replaced after every scrape
            stats_collector: Statistics collector for monitoring
            interval: Seconds between scrapes
        """
        self.cli = cli
        self.gauges = gauges
        self.stats_collector = stats_collector
        self.interval = interval
        self._scrape_task: asyncio.Task[None] | None = None
        self._running = False

    async def scrape(self) -> bool:
        """
        Run one scrape: neighbor summary, then the adj-rib.

        A failing command marks ExaBGP down; any unparsable line aborts
        the scrape. Either way the previous gauges are dropped.

        Returns:
            True if the gauges were refreshed
        """
        self.stats_collector.increment_scrapes()

        try:
            summary_output = await self.cli.show_neighbor_summary()
        except ExaBGPCLIError as e:
            return self._cli_failed(SHOW_SUMMARY_SUBCOMMAND, e)
        self.gauges.set_exabgp_up(1.0)

        try:
            summaries = summaries_from_bytes(summary_output)
        except ParseError as e:
            return self._parse_failed("neighbor-summary", e)

        try:
            rib_output = await self.cli.show_adj_rib_out()
        except ExaBGPCLIError as e:
            return self._cli_failed(SHOW_ADJ_RIB_SUBCOMMAND, e)

        try:
            ribs = rib_from_bytes(rib_output)
        except ParseError as e:
            return self._parse_failed("adj-rib", e)

        skipped = self.gauges.observe_rib(ribs, summaries)
        logger.info(
            "rib_scraped",
            peers=len(summaries),
            routes=len(ribs) - skipped,
            skipped=skipped,
        )
        return True

    def _cli_failed(self, subcommand: Sequence[str], error: ExaBGPCLIError) -> bool:
        self.gauges.set_exabgp_up(0.0)
        self.gauges.clear()
        self.stats_collector.increment_parse_failure()
        log_cli_error(
            " ".join(self.cli.argv(subcommand)), str(error), error.returncode
        )
        return False

    def _parse_failed(self, source: str, error: ParseError) -> bool:
        self.gauges.clear()
        self.stats_collector.increment_parse_failure()
        capture_parse_error(
            error_type="rib_parse_error",
            source=source,
            error_message=str(error),
            exception=error,
        )
        return False

    async def start(self) -> None:
        """Start periodic scraping."""
        if self._running:
            return

        self._running = True
        self._scrape_task = asyncio.create_task(self._periodic_scrape())
        logger.info("standalone_collector_started", interval_seconds=self.interval)

    async def stop(self) -> None:
        """Stop periodic scraping."""
        self._running = False

        if self._scrape_task:
            self._scrape_task.cancel()
            try:
                await self._scrape_task
            except asyncio.CancelledError:
                pass
            self._scrape_task = None

        logger.info("standalone_collector_stopped")

    async def _periodic_scrape(self) -> None:
        while self._running:
            try:
                await self.scrape()
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("scrape_error", error=str(e), exc_info=True)
                await asyncio.sleep(self.interval)


async def run_standalone(
    cli: ExaBGPCLI | None = None,
    gauges: RouteGauges | None = None,
    stats_collector: StatisticsCollector | None = None,
) -> None:
    """
    Run standalone mode (main entry point for asyncio).

    Args:
        cli: Optional exabgpcli wrapper (for testing)
        gauges: Optional gauge store (for testing)
        stats_collector: Optional statistics collector (for testing)
    """
    if cli is None:
        cli = ExaBGPCLI(
            settings.exabgp_cli_command,
            settings.exabgp_root,
            timeout=settings.exabgp_cli_timeout,
        )
    if gauges is None:
        gauges = RouteGauges()
    if stats_collector is None:
        stats_collector = StatisticsCollector(log_interval=settings.stats_log_interval)

    collector = StandaloneCollector(
        cli, gauges, stats_collector, interval=settings.scrape_interval
    )

    await stats_collector.start()
    try:
        await collector.start()
        # Keep running until interrupted
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        logger.info("standalone_cancelled")
    finally:
        await collector.stop()
        await stats_collector.stop()
