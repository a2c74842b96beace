"""
Crawl controller: feeds a self-expanding URL frontier to the task scheduler
and decides when the crawl has nothing left to do.
"""

import threading
from datetime import datetime
from typing import List, Optional

from site_crawler.utils.logging import get_logger
from site_crawler.crawlers.fetcher import FetchResult
from site_crawler.crawlers.links import sanitise_url
from .models import CrawlOptions, CrawlReport, CrawlResult, ResultCollector, SchedulerConfig
from .scheduler import TaskScheduler
from .thread_safe import ThreadSafeCounter, ThreadSafeSet


logger = get_logger(__name__)


class CrawlObserver:
    """Receives progress from a running crawl. Every hook is optional."""

    def on_progress(self, worker_id: int, url: str) -> None:
        """Called when a worker starts a URL (only with report_state)."""
        pass

    def on_tick(self, completed: int, discovered: int) -> None:
        """Called on every termination check."""
        pass


class CrawlController:
    """
    Owns the discovered and completed sets and the result list.

    ``handle`` runs concurrently on every worker; all state it touches is
    lock-protected. A crawl is finished when every discovered URL has been
    completed and no dispatched URL is still queued or being handled.
    """

    def __init__(
        self,
        fetcher,
        scheduler_config: Optional[SchedulerConfig] = None,
        options: Optional[CrawlOptions] = None,
        observer: Optional[CrawlObserver] = None
    ):
        """
        Initialize the crawl controller.

        Args:
            fetcher: Object with ``fetch(url) -> FetchResult``
            scheduler_config: Worker count and progress-reporting flag
            options: Poll interval, at-most-once fetching, interactive mode
            observer: Optional progress observer
        """
        self.fetcher = fetcher
        self.options = options or CrawlOptions()
        self.observer = observer

        self.scheduler = TaskScheduler(scheduler_config)
        self.scheduler.configure()
        self.scheduler.set_handler(self.handle)

        self.discovered = ThreadSafeSet()
        self.completed = ThreadSafeSet()
        self._claimed = ThreadSafeSet()
        self._results = ResultCollector()
        self._failed = ThreadSafeCounter()

        # Dispatched but not yet handled; set _wakeup when it reaches zero
        self._outstanding = ThreadSafeCounter()
        self._wakeup = threading.Event()
        self._stop_requested = threading.Event()
        self.interrupt_signal: Optional[int] = None

        self._started_at: Optional[datetime] = None

    def crawl(self, url: str) -> CrawlReport:
        """
        Crawl from a seed URL until quiescence or interruption.

        Args:
            url: Seed URL

        Returns:
            Report with every result record

        Raises:
            ValidationError: If the seed URL is not an absolute http(s) URL
        """
        seed = sanitise_url(url)
        self._started_at = datetime.now()

        logger.debug(f"crawler ready, starting input={seed}")

        self.discovered.add(seed)
        self.scheduler.start()
        try:
            self._dispatch([seed])
            self._run()
        finally:
            self.scheduler.stop()
        logger.debug(f"scheduler stats {self.scheduler.get_stats()}")

        report = self._build_report(seed)
        logger.info(
            f"Crawl finished: {report.completed}/{report.discovered} pages, "
            f"{len(report.results)} results, {report.failed} failures "
            f"in {report.execution_time:.2f}s"
        )
        return report

    def handle(self, url: str) -> None:
        """
        Scheduler handler: process one dispatched URL.

        Never raises; an unexpected error is logged and the URL still counts
        as completed.
        """
        try:
            self._process(url)
        except Exception as e:
            self.completed.add(url)
            self._failed.increment()
            logger.error(f"Unexpected error handling {url}: {str(e)}", exc_info=True)
        finally:
            if self._outstanding.decrement() == 0:
                self._wakeup.set()

    def _process(self, url: str) -> None:
        # Not atomic with the insert below; a racing duplicate may fetch twice
        if self.completed.has(url):
            return

        if self.options.at_most_once and not self._claimed.add(url):
            return

        result: FetchResult = self.fetcher.fetch(url)
        self.completed.add(url)

        if not result.ok:
            self._failed.increment()
            if not self.options.interactive:
                logger.error(
                    f"[{self.completed.size()}/{self.discovered.size()}] "
                    f"status={result.status or result.status_code} input={url} error={result.error}"
                )
            return

        self._results.add_result(CrawlResult(
            url=url,
            status_code=result.status_code,
            links=list(result.links),
        ))

        new_links = self.completed.difference(result.links)

        self.discovered.add_all(new_links)
        if not self.options.interactive:
            logger.debug(
                f"task complete status={result.status_code} input={url} "
                f"visited={self.completed.size()} total={self.discovered.size()} new={len(new_links)}"
            )

        self._dispatch(new_links)

    def _dispatch(self, urls: List[str]) -> None:
        if not urls:
            return
        self._outstanding.increment(len(urls))
        accepted = self.scheduler.dispatch(urls)
        if accepted < len(urls):
            # Scheduler already stopped; these will never be handled
            if self._outstanding.decrement(len(urls) - accepted) == 0:
                self._wakeup.set()

    def _run(self) -> None:
        """Termination loop: wake on the poll interval or when work drains."""
        while True:
            self._wakeup.wait(self.options.poll_interval)
            self._wakeup.clear()

            self._forward_progress()

            completed, discovered = self.completed.size(), self.discovered.size()
            if self.observer is not None:
                self.observer.on_tick(completed, discovered)

            if self._stop_requested.is_set():
                logger.warning(f"Crawl interrupted at {completed}/{discovered} pages")
                return

            if self.is_quiescent():
                return

    def _forward_progress(self) -> None:
        progress = self.scheduler.progress
        if progress is None:
            return
        events = progress.drain()
        if self.observer is None:
            return
        for worker_id, url in events:
            self.observer.on_progress(worker_id, url)

    def is_quiescent(self) -> bool:
        """True when every discovered URL is completed and nothing is in flight."""
        if self._outstanding.get_value() > 0:
            return False
        return self.completed.size() >= self.discovered.size()

    def interrupt(self, signum: Optional[int] = None) -> None:
        """
        Stop the crawl early in response to an external signal.

        Safe to call from a signal handler; the crawl thread notices on its
        next wakeup, stops the scheduler and marks the report interrupted.
        """
        self.interrupt_signal = signum
        self._stop_requested.set()
        self._wakeup.set()

    @property
    def results(self) -> List[CrawlResult]:
        return self._results.get_all_results()

    @property
    def outstanding(self) -> int:
        return self._outstanding.get_value()

    def _build_report(self, seed: str) -> CrawlReport:
        return CrawlReport(
            seed=seed,
            results=self._results.get_all_results(),
            discovered=self.discovered.size(),
            completed=self.completed.size(),
            failed=self._failed.get_value(),
            started_at=self._started_at or datetime.now(),
            completed_at=datetime.now(),
            interrupted=self._stop_requested.is_set(),
        )


def crawl_site(fetcher, url: str, max_workers: int = 2, options: Optional[CrawlOptions] = None,
               observer: Optional[CrawlObserver] = None) -> CrawlReport:
    """Convenience wrapper: build a controller and crawl ``url``."""
    controller = CrawlController(
        fetcher,
        scheduler_config=SchedulerConfig(max_workers=max_workers, report_state=observer is not None),
        options=options,
        observer=observer,
    )
    return controller.crawl(url)
