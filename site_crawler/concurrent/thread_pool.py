"""
Worker threads and the availability pool they publish themselves to.
"""

import queue
import threading
from collections import deque
from typing import Any, Callable, Deque, Optional, Set

from site_crawler.utils.logging import get_logger, trace
from site_crawler.utils.errors import SchedulerError
from .models import WorkerStatus, WorkerState
from .thread_safe import ProgressChannel


logger = get_logger(__name__)

# Wakes a worker blocked on its handoff slot during shutdown
_SHUTDOWN = object()


class AvailabilityPool:
    """
    Bounded registry of idle workers.

    A worker inserts itself when idle and is removed exactly once when it is
    handed a task; inserting a worker that is already present is an error.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self._idle: Deque["WorkerThread"] = deque()
        self._members: Set[int] = set()
        self._condition = threading.Condition(threading.Lock())

    def release(self, worker: "WorkerThread") -> None:
        """
        Register an idle worker.

        Raises:
            SchedulerError: If the worker is already registered or the pool is full
        """
        with self._condition:
            if worker.worker_id in self._members:
                raise SchedulerError(
                    f"Worker {worker.worker_id} is already in the availability pool"
                )
            if len(self._idle) >= self.capacity:
                raise SchedulerError("Availability pool is full")
            self._idle.append(worker)
            self._members.add(worker.worker_id)
            self._condition.notify()

    def acquire(self, timeout: Optional[float] = None) -> Optional["WorkerThread"]:
        """
        Remove and return an idle worker, waiting for one if necessary.

        Args:
            timeout: Maximum seconds to wait; None waits forever

        Returns:
            An idle worker, or None on timeout
        """
        with self._condition:
            if not self._condition.wait_for(lambda: len(self._idle) > 0, timeout):
                return None
            worker = self._idle.popleft()
            self._members.discard(worker.worker_id)
            return worker

    def size(self) -> int:
        with self._condition:
            return len(self._idle)

    def __len__(self) -> int:
        return self.size()


class WorkerThread(threading.Thread):
    """Long-lived worker that runs the handler for one task at a time."""

    def __init__(
        self,
        worker_id: int,
        handler: Callable[[Any], None],
        availability_pool: AvailabilityPool,
        progress: Optional[ProgressChannel] = None,
        report_state: bool = False
    ):
        """
        Initialize worker thread.

        Args:
            worker_id: Integer identity of this worker
            handler: Function invoked once per handed-off task
            availability_pool: Pool the worker registers in while idle
            progress: Channel receiving ``(worker_id, task)`` when a task starts
            report_state: Whether to publish progress events
        """
        super().__init__(name=f"CrawlerWorker-{worker_id}", daemon=True)

        self.worker_id = worker_id
        self.handler = handler
        self.availability_pool = availability_pool
        self.progress = progress
        self.report_state = report_state

        self.status = WorkerStatus(worker_id=worker_id)

        # Single-task handoff slot and shutdown signal
        self._slot: "queue.Queue[Any]" = queue.Queue()
        self._shutdown_event = threading.Event()
        self._intake_lock = threading.Lock()
        self._intake_closed = False

    def assign(self, task: Any) -> None:
        """
        Hand a task to this worker.

        Raises:
            SchedulerError: If the worker has already shut down
        """
        with self._intake_lock:
            if self._intake_closed:
                raise SchedulerError(f"Worker {self.worker_id} is no longer accepting tasks")
            self._slot.put(task)

    def request_shutdown(self) -> None:
        """Signal the worker to exit on its next idle cycle."""
        self._shutdown_event.set()
        self._slot.put(_SHUTDOWN)

    def run(self) -> None:
        """Main worker loop: publish to the pool, then wait for a task or shutdown."""
        try:
            while not self._shutdown_event.is_set():
                self.status.state = WorkerState.IDLE
                self.status.update_activity()
                trace(logger, f"worker waiting id={self.worker_id}")
                self.availability_pool.release(self)

                task = self._slot.get()
                if task is _SHUTDOWN or self._shutdown_event.is_set():
                    break

                self._run_task(task)

        except Exception as e:
            # Handlers are expected to report their own errors; anything escaping is fatal here
            logger.error(f"Fatal error in worker {self.worker_id}: {str(e)}", exc_info=True)

        finally:
            with self._intake_lock:
                self._intake_closed = True
            self.status.state = WorkerState.STOPPED
            self.status.current_task = None
            self.status.update_activity()
            logger.debug(f"Worker {self.worker_id} stopped")

    def _run_task(self, task: Any) -> None:
        trace(logger, f"worker start task id={self.worker_id} task={task}")
        self.status.start_task(task)

        if self.report_state and self.progress is not None:
            self.progress.publish(self.worker_id, task)

        self.handler(task)

        self.status.complete_task()
        trace(logger, f"worker end task id={self.worker_id}")

    def shutdown(self, timeout: float = 5.0) -> bool:
        """
        Signal shutdown and wait for the worker to acknowledge by exiting.

        Args:
            timeout: Maximum time to wait for shutdown

        Returns:
            True if the worker exited within timeout
        """
        self.request_shutdown()
        return self.wait_stopped(timeout)

    def wait_stopped(self, timeout: float) -> bool:
        if not self.is_alive() and self.ident is None:
            # Never started
            return True

        self.join(timeout=timeout)

        if self.is_alive():
            logger.warning(f"Worker {self.worker_id} did not shutdown within timeout")
            return False
        return True

    def is_accepting(self) -> bool:
        with self._intake_lock:
            return not self._intake_closed
