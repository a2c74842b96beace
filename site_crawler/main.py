"""
Command-line entry point for the site crawler.
"""

import sys
import signal
import argparse
from typing import List, Optional

from site_crawler.utils.logging import get_logger, setup_logging
from site_crawler.utils.errors import SiteCrawlerError, handle_error
from site_crawler.concurrent.controller import CrawlController
from site_crawler.concurrent.models import CrawlOptions, CrawlReport, SchedulerConfig
from site_crawler.crawlers.fetcher import LinkFetcher
from site_crawler.crawlers.http_client import HTTPClient
from site_crawler.crawlers.links import LinkFilter, LinkFilterOptions, normalise_extensions
from site_crawler.services.progress_display import ProgressDisplay
from site_crawler.services.report_generator import OUTPUT_FORMATS, ReportGenerator
from config import ConfigManager, SystemConfig


logger = get_logger(__name__)


class SiteCrawlerApp:
    """Wires configuration, fetcher, controller and output together."""

    def __init__(self, config: SystemConfig):
        self.config = config
        self.controller: Optional[CrawlController] = None
        self.display: Optional[ProgressDisplay] = None
        self.received_signal: Optional[int] = None
        self._crawling = False

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum: int, frame) -> None:
        """Stop a running crawl, or abort startup and output with KeyboardInterrupt."""
        self.received_signal = signum
        if self.controller is None or not self._crawling:
            raise KeyboardInterrupt
        logger.info(f"Received signal {signum}, stopping crawl")
        self.controller.interrupt(signum)

    def build_fetcher(self) -> LinkFetcher:
        crawler_config = self.config.crawler
        link_filter = LinkFilter(LinkFilterOptions(
            same_subdomain=crawler_config.same_subdomain,
            distinct=True,
            ignore_fragments=crawler_config.ignore_fragments,
            ignored_extensions=normalise_extensions(crawler_config.ignored_extensions),
            ignored_paths=[p for p in crawler_config.ignored_paths if p],
        ))
        client = HTTPClient(timeout=float(crawler_config.request_deadline))
        return LinkFetcher(client=client, link_filter=link_filter)

    def build_controller(self, fetcher) -> CrawlController:
        crawler_config = self.config.crawler
        interactive = self.config.output.interactive

        if interactive:
            self.display = ProgressDisplay(max_workers=crawler_config.max_workers)

        return CrawlController(
            fetcher,
            scheduler_config=SchedulerConfig(
                max_workers=crawler_config.max_workers,
                report_state=interactive,
            ),
            options=CrawlOptions(
                poll_interval=crawler_config.poll_interval,
                at_most_once=crawler_config.at_most_once,
                interactive=interactive,
            ),
            observer=self.display,
        )

    def run(self) -> int:
        """
        Crawl the configured URL and emit results.

        Returns:
            Process exit code
        """
        generator = ReportGenerator(self.config.output.format)
        fetcher = self.build_fetcher()

        logger.info(
            f"crawler initialised url={self.config.crawler.url} "
            f"workers={self.config.crawler.max_workers} deadline={self.config.crawler.request_deadline}s"
        )

        try:
            self.controller = self.build_controller(fetcher)
            self._crawling = True
            report = self._crawl()
        finally:
            self._crawling = False
            fetcher.close()

        if report.interrupted:
            signum = self.controller.interrupt_signal or signal.SIGINT
            return 128 + int(signum)

        generator.write(report, self.config.output.file)
        return 0

    def _crawl(self) -> CrawlReport:
        if self.display is None:
            return self.controller.crawl(self.config.crawler.url)
        with self.display:
            return self.controller.crawl(self.config.crawler.url)


def create_cli_parser() -> argparse.ArgumentParser:
    """Create command-line interface parser."""
    parser = argparse.ArgumentParser(
        prog='site-crawler',
        description='Site Crawler - concurrent same-site link crawler',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --url https://example.com                 # Crawl and print links
  %(prog)s --url https://example.com -f json -o out  # Write out.json
  %(prog)s --url https://example.com --workers 8 -i  # Live progress view
  %(prog)s --url https://example.com --ext jpg,pdf --paths blog/,help/
        """
    )

    parser.add_argument('--config', '-c', type=str,
                        help='Path to configuration file (default: crawler.json)')
    parser.add_argument('--url', type=str, help='URL to crawl')
    parser.add_argument('--workers', type=int, help='Number of worker threads')
    parser.add_argument('--deadline', type=int, help='HTTP request deadline in seconds')

    parser.add_argument('--format', '-f', type=str, choices=list(OUTPUT_FORMATS),
                        help='Output format (default: text)')
    parser.add_argument('--output', '-o', type=str, help='Output filename (default: stdout)')
    parser.add_argument('--interactive', '-i', action='store_true', default=None,
                        help='Show a live per-worker progress view')

    parser.add_argument('--no-fragments', dest='ignore_fragments', action='store_false', default=None,
                        help='Keep URLs containing fragments')
    parser.add_argument('--ext', type=str,
                        help='Ignore URLs ending in these comma-separated extensions (e.g. jpg,pdf)')
    parser.add_argument('--paths', type=str,
                        help='Ignore URLs containing these comma-separated strings')
    parser.add_argument('--at-most-once', action='store_true', default=None,
                        help='Never fetch a URL twice, even under racing dispatches')

    parser.add_argument('--log-level', type=str,
                        choices=['TRACE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Override log level from configuration')
    parser.add_argument('-v', dest='verbosity', action='count', default=0,
                        help='-v for DEBUG, -vv for TRACE logging')
    parser.add_argument('--json-log', action='store_true', default=None,
                        help='Emit logs as JSON lines')

    return parser


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


def apply_cli_overrides(config: SystemConfig, args: argparse.Namespace) -> SystemConfig:
    """Apply command-line flags on top of file and environment configuration."""
    if args.url is not None:
        config.crawler.url = args.url
    if args.workers is not None:
        config.crawler.max_workers = args.workers
    if args.deadline is not None:
        config.crawler.request_deadline = args.deadline
    if args.ignore_fragments is not None:
        config.crawler.ignore_fragments = args.ignore_fragments
    if args.ext is not None:
        config.crawler.ignored_extensions = _split_list(args.ext)
    if args.paths is not None:
        config.crawler.ignored_paths = _split_list(args.paths)
    if args.at_most_once is not None:
        config.crawler.at_most_once = args.at_most_once

    if args.format is not None:
        config.output.format = args.format
    if args.output is not None:
        config.output.file = args.output
    if args.interactive is not None:
        config.output.interactive = args.interactive

    if args.verbosity >= 2:
        config.log_level = 'TRACE'
    elif args.verbosity == 1:
        config.log_level = 'DEBUG'
    elif args.log_level:
        config.log_level = args.log_level
    if args.json_log is not None:
        config.json_log = args.json_log

    return config


def run(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, run the crawl and return the exit code."""
    parser = create_cli_parser()
    args = parser.parse_args(argv)

    try:
        manager = ConfigManager(args.config or "crawler.json")
        config = apply_cli_overrides(manager.load_config(), args)
        manager.validate_current()
        setup_logging(config.log_level, json_format=config.json_log, log_file=config.log_file)
    except SiteCrawlerError as e:
        print(f"configuration error: {e.message}", file=sys.stderr)
        return 1

    app = SiteCrawlerApp(config)
    try:
        return app.run()
    except SiteCrawlerError as e:
        handle_error(e, logger, {"url": config.crawler.url}, reraise=False)
        return 1
    except KeyboardInterrupt:
        signum = app.received_signal or signal.SIGINT
        logger.info(f"Interrupted by signal {int(signum)} outside the crawl")
        return 128 + int(signum)


def main():
    """Main entry point with command-line interface."""
    sys.exit(run())


if __name__ == "__main__":
    main()
