"""
Data models for the concurrent crawler framework.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from site_crawler.utils.errors import ConfigurationError


class WorkerState(Enum):
    """Worker thread state."""
    STARTING = "starting"
    IDLE = "idle"
    WORKING = "working"
    STOPPED = "stopped"


@dataclass
class SchedulerConfig:
    """Configuration for the task scheduler."""
    max_workers: int = 2
    report_state: bool = False
    # Seconds the dispatch loop waits on the availability pool before re-checking for shutdown
    acquire_timeout: float = 0.1
    # Seconds stop() waits for each worker to acknowledge shutdown
    shutdown_timeout: float = 30.0

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """
        Validate configuration parameters.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        errors = []

        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            errors.append("max_workers must be a positive integer")

        if self.acquire_timeout <= 0:
            errors.append("acquire_timeout must be positive")

        if self.shutdown_timeout <= 0:
            errors.append("shutdown_timeout must be positive")

        if errors:
            raise ConfigurationError(
                "Scheduler configuration validation failed",
                {"errors": errors}
            )


@dataclass
class CrawlOptions:
    """Options consumed by the crawl controller."""
    poll_interval: float = 0.2
    at_most_once: bool = False
    # Suppresses per-task log lines while a live display owns the terminal
    interactive: bool = False

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ConfigurationError(
                "Crawl options validation failed",
                {"errors": ["poll_interval must be positive"]}
            )


@dataclass
class WorkerStatus:
    """Status information for a worker thread."""
    worker_id: int
    state: WorkerState = WorkerState.STARTING
    current_task: Optional[Any] = None
    tasks_completed: int = 0
    last_activity: datetime = field(default_factory=datetime.now)

    def update_activity(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = datetime.now()

    def start_task(self, task: Any) -> None:
        """Mark worker as working on a task."""
        self.state = WorkerState.WORKING
        self.current_task = task
        self.update_activity()

    def complete_task(self) -> None:
        """Mark the current task as finished."""
        self.state = WorkerState.IDLE
        self.current_task = None
        self.tasks_completed += 1
        self.update_activity()


@dataclass(frozen=True)
class CrawlResult:
    """Record of one successfully fetched page."""
    url: str
    status_code: int
    links: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def link_count(self) -> int:
        return len(self.links)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"url": self.url, "status": self.status_code}
        if self.error:
            data["error"] = self.error
        data["count"] = self.link_count
        if self.links:
            data["links"] = list(self.links)
        return data


@dataclass
class CrawlReport:
    """Overall outcome of a crawl."""
    seed: str
    results: List[CrawlResult]
    discovered: int
    completed: int
    failed: int
    started_at: datetime
    completed_at: datetime
    interrupted: bool = False

    @property
    def execution_time(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


class ResultCollector:
    """Thread-safe, append-only collector for crawl results."""

    def __init__(self):
        self._results: List[CrawlResult] = []
        self._lock = threading.Lock()

    def add_result(self, result: CrawlResult) -> None:
        """
        Add a crawl result to the collection.

        Args:
            result: Result to append
        """
        with self._lock:
            self._results.append(result)

    def get_all_results(self) -> List[CrawlResult]:
        """Return a copy of every collected result in append order."""
        with self._lock:
            return self._results.copy()

    def get_results_count(self) -> int:
        """Get number of collected results."""
        with self._lock:
            return len(self._results)

    def __len__(self) -> int:
        return self.get_results_count()
