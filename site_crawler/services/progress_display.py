"""
Live terminal view of a running crawl for interactive mode.
"""

from typing import Dict, Optional

from rich.console import Console
from rich.live import Live
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from site_crawler.concurrent.controller import CrawlObserver


SPINNER_SEQUENCE = ["⣾", "⣽", "⣻", "⢿", "⡿", "⣟", "⣯", "⣷"]


class ProgressDisplay(CrawlObserver):
    """One spinner row per worker plus a completed/discovered bar."""

    def __init__(self, max_workers: int, console: Optional[Console] = None, refresh_per_second: float = 5.0):
        self.max_workers = max_workers
        self.console = console or Console(stderr=True)
        self.refresh_per_second = refresh_per_second

        self.current: Dict[int, str] = {}
        self.completed = 0
        self.discovered = 0
        self._frame = 0
        self._live: Optional[Live] = None

    def on_progress(self, worker_id: int, url: str) -> None:
        self.current[worker_id] = url

    def on_tick(self, completed: int, discovered: int) -> None:
        self.completed = completed
        self.discovered = discovered
        self._frame += 1
        if self._live is not None:
            self._live.update(self.render())

    def render(self) -> Table:
        layout = Table.grid(expand=True)
        layout.add_column()

        total = max(self.discovered, 1)
        bar = Table.grid(padding=(0, 1))
        bar.add_column()
        bar.add_column(no_wrap=True)
        bar.add_row(
            ProgressBar(total=total, completed=min(self.completed, total)),
            Text(f"{self.completed}/{self.discovered}"),
        )
        layout.add_row(bar)

        spinner = SPINNER_SEQUENCE[self._frame % len(SPINNER_SEQUENCE)]
        for worker_id in range(self.max_workers):
            url = self.current.get(worker_id, "waiting")
            layout.add_row(Text(f"{spinner} worker {worker_id}: {url}", overflow="ellipsis", no_wrap=True))

        return layout

    def start(self) -> None:
        self._live = Live(self.render(), console=self.console,
                          refresh_per_second=self.refresh_per_second, transient=True)
        self._live.start()

    def stop(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
