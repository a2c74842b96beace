"""
Task scheduler for the concurrent crawler.

Runs a caller-supplied handler against a growing stream of tasks with a
fixed number of worker threads. The scheduler knows nothing about URLs and
does not deduplicate: every dispatched value is handed to exactly one
worker invocation while the scheduler is running.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from site_crawler.utils.logging import get_logger, trace
from site_crawler.utils.errors import SchedulerError
from .models import SchedulerConfig, WorkerState
from .thread_pool import AvailabilityPool, WorkerThread
from .thread_safe import NO_TASK, ProgressChannel, TaskQueue, ThreadSafeCounter


logger = get_logger(__name__)


class TaskScheduler:
    """Worker-pool scheduler with a single dispatch thread."""

    def __init__(self, config: Optional[SchedulerConfig] = None):
        """
        Initialize task scheduler.

        Args:
            config: Scheduler configuration; workers are built by ``configure``
        """
        self.config = config or SchedulerConfig()

        self._queue = TaskQueue()
        self._pool: Optional[AvailabilityPool] = None
        self._workers: List[WorkerThread] = []
        self._handler: Optional[Callable[[Any], None]] = None
        self.progress: Optional[ProgressChannel] = None

        self._dispatch_thread: Optional[threading.Thread] = None
        self._quitting = threading.Event()
        self._configured = False
        self._started = False
        self._lock = threading.RLock()

        # Statistics
        self._tasks_dispatched = ThreadSafeCounter()
        self._tasks_handed_off = ThreadSafeCounter()
        self._tasks_abandoned = ThreadSafeCounter()
        self._started_at: Optional[datetime] = None

    def configure(self, max_workers: Optional[int] = None, report_state: Optional[bool] = None) -> "TaskScheduler":
        """
        Size the pool. Must be called exactly once, before ``set_handler``.

        Args:
            max_workers: Number of workers (defaults to config.max_workers)
            report_state: Whether workers publish progress events

        Raises:
            ConfigurationError: If the worker count is invalid
            SchedulerError: If the scheduler is already configured
        """
        with self._lock:
            if self._configured:
                raise SchedulerError("Scheduler is already configured")

            if max_workers is not None or report_state is not None:
                self.config = SchedulerConfig(
                    max_workers=self.config.max_workers if max_workers is None else max_workers,
                    report_state=self.config.report_state if report_state is None else report_state,
                    acquire_timeout=self.config.acquire_timeout,
                    shutdown_timeout=self.config.shutdown_timeout,
                )

            self._pool = AvailabilityPool(self.config.max_workers)
            self.progress = ProgressChannel(capacity=self.config.max_workers * 4)
            self._configured = True

            logger.debug(
                f"Scheduler configured with max_workers={self.config.max_workers}, "
                f"report_state={self.config.report_state}"
            )
            return self

    def set_handler(self, handler: Callable[[Any], None]) -> "TaskScheduler":
        """
        Bind the function every worker invokes per task and build the workers.

        Raises:
            SchedulerError: If called before ``configure`` or after ``start``
        """
        with self._lock:
            if not self._configured:
                raise SchedulerError("Scheduler must be configured before a handler is set")
            if self._started:
                raise SchedulerError("Cannot change handler of a running scheduler")

            self._handler = handler
            self._workers = [
                WorkerThread(
                    worker_id=i,
                    handler=handler,
                    availability_pool=self._pool,
                    progress=self.progress,
                    report_state=self.config.report_state,
                )
                for i in range(self.config.max_workers)
            ]
            return self

    def dispatch(self, tasks: Iterable[Any]) -> int:
        """
        Append tasks to the input queue. Safe from any thread; never blocks.

        Args:
            tasks: Tasks to enqueue

        Returns:
            Number of tasks accepted (0 after ``stop``)
        """
        added = self._queue.put_many(tasks)
        if added:
            self._tasks_dispatched.increment(added)
        return added

    def start(self) -> None:
        """
        Launch every worker and the dispatch loop.

        Raises:
            SchedulerError: If no handler is bound or the scheduler was started before
        """
        with self._lock:
            if self._handler is None:
                logger.error("scheduler missing handler")
                raise SchedulerError("scheduler missing handler")
            if self._started:
                raise SchedulerError("Scheduler already started")

            self._started = True
            self._started_at = datetime.now()

            for worker in self._workers:
                worker.start()

            self._dispatch_thread = threading.Thread(
                target=self._run,
                name="SchedulerDispatch",
                daemon=True
            )
            self._dispatch_thread.start()

            logger.info(f"Scheduler started with {len(self._workers)} workers")

    def stop(self) -> Dict[str, Any]:
        """
        Stop dispatching and shut every worker down.

        Workers busy in a handler finish that task first. Returns once every
        worker has acknowledged shutdown (or its timeout expired).

        Returns:
            Dictionary with shutdown statistics
        """
        with self._lock:
            self._quitting.set()
            abandoned = self._queue.close()
            if abandoned:
                self._tasks_abandoned.increment(abandoned)

            if self._dispatch_thread is not None:
                self._dispatch_thread.join(timeout=self.config.shutdown_timeout)

            results: Dict[int, bool] = {}
            if self._workers:
                # Signal every worker concurrently and collect acknowledgments
                with ThreadPoolExecutor(max_workers=len(self._workers),
                                        thread_name_prefix="SchedulerStop") as executor:
                    futures = {
                        worker.worker_id: executor.submit(worker.shutdown, self.config.shutdown_timeout)
                        for worker in self._workers
                    }
                    results = {worker_id: future.result() for worker_id, future in futures.items()}

            acknowledged = sum(1 for ok in results.values() if ok)
            logger.info(
                f"Scheduler stopped: {acknowledged}/{len(self._workers)} workers acknowledged, "
                f"{self._tasks_abandoned.get_value()} queued tasks abandoned"
            )

            return {
                "workers_acknowledged": acknowledged,
                "workers_total": len(self._workers),
                "tasks_abandoned": self._tasks_abandoned.get_value(),
            }

    def _run(self) -> None:
        """Dispatch loop: pop a task, wait for an idle worker, hand it over."""
        logger.debug("Dispatch loop started")

        while not self._quitting.is_set():
            task = self._queue.pop()
            if task is NO_TASK:
                # Queue closed
                break

            worker = None
            while worker is None and not self._quitting.is_set():
                worker = self._pool.acquire(timeout=self.config.acquire_timeout)

            if worker is None:
                self._tasks_abandoned.increment()
                break

            trace(logger, f"scheduler got worker id={worker.worker_id}")
            try:
                worker.assign(task)
                self._tasks_handed_off.increment()
            except SchedulerError as e:
                # Only a worker that exited can refuse a task
                self._tasks_abandoned.increment()
                logger.warning(f"Dropped task {task}: {e.message}")

        logger.debug("Dispatch loop stopped")

    def is_running(self) -> bool:
        return self._started and not self._quitting.is_set()

    def get_worker_states(self) -> Dict[int, WorkerState]:
        return {worker.worker_id: worker.status.state for worker in self._workers}

    def get_stats(self) -> Dict[str, Any]:
        """
        Get scheduler statistics.

        Returns:
            Dictionary with queue and worker counts
        """
        states = self.get_worker_states()
        queue_stats = self._queue.get_stats()
        return {
            "max_workers": self.config.max_workers,
            "pending_tasks": queue_stats["size"],
            "queue_closed": queue_stats["closed"],
            "tasks_dispatched": self._tasks_dispatched.get_value(),
            "tasks_handed_off": self._tasks_handed_off.get_value(),
            "tasks_abandoned": self._tasks_abandoned.get_value(),
            "idle_workers": self._pool.size() if self._pool else 0,
            "busy_workers": sum(1 for s in states.values() if s == WorkerState.WORKING),
            "progress_events_dropped": self.progress.dropped if self.progress else 0,
            "uptime_seconds": (datetime.now() - self._started_at).total_seconds() if self._started_at else 0.0,
        }
