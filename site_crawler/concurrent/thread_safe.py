"""
Thread-safe data structures shared between crawler workers.
"""

import threading
from collections import deque
from typing import Any, Deque, Hashable, Iterable, Iterator, List, Optional, Set, Tuple


# Returned by TaskQueue.pop when no task is available; tasks themselves may be None
NO_TASK = object()


class ThreadSafeCounter:
    """Thread-safe counter with atomic operations."""

    def __init__(self, initial_value: int = 0):
        """
        Initialize counter with initial value.

        Args:
            initial_value: Starting value for the counter
        """
        self._value = initial_value
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        """
        Atomically increment counter and return new value.

        Args:
            amount: Amount to increment by (default: 1)

        Returns:
            New counter value after increment
        """
        with self._lock:
            self._value += amount
            return self._value

    def decrement(self, amount: int = 1) -> int:
        """
        Atomically decrement counter and return new value.

        Args:
            amount: Amount to decrement by (default: 1)

        Returns:
            New counter value after decrement
        """
        with self._lock:
            self._value -= amount
            return self._value

    def get_value(self) -> int:
        """Get current counter value."""
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"ThreadSafeCounter(value={self.get_value()})"


class ThreadSafeSet:
    """
    Deduplicating set safe for concurrent readers and writers.

    Every operation, including the copy taken by ``snapshot``, runs under the
    same lock, so iteration never observes a set that is being resized.
    """

    def __init__(self, initial_items: Optional[Iterable[Hashable]] = None):
        """
        Initialize thread-safe set.

        Args:
            initial_items: Optional initial items for the set
        """
        self._set: Set[Hashable] = set(initial_items) if initial_items else set()
        self._lock = threading.RLock()

    def add(self, item: Hashable) -> bool:
        """
        Add item to set.

        Args:
            item: Item to add

        Returns:
            True if item was added (wasn't already present)
        """
        with self._lock:
            if item not in self._set:
                self._set.add(item)
                return True
            return False

    def add_all(self, items: Iterable[Hashable]) -> int:
        """
        Add multiple items under a single lock acquisition.

        Args:
            items: Items to add

        Returns:
            Number of new items added
        """
        with self._lock:
            old_size = len(self._set)
            self._set.update(items)
            return len(self._set) - old_size

    def has(self, item: Hashable) -> bool:
        """
        Check if item is in set.

        Args:
            item: Item to check

        Returns:
            True if item is in set
        """
        with self._lock:
            return item in self._set

    def __contains__(self, item: Hashable) -> bool:
        """Support 'in' operator."""
        return self.has(item)

    def size(self) -> int:
        """
        Get set size.

        The value may be stale as soon as it is returned when writers are active.
        """
        with self._lock:
            return len(self._set)

    def __len__(self) -> int:
        return self.size()

    def snapshot(self) -> List[Hashable]:
        """
        Copy all elements at one point in time.

        Returns:
            List containing every item present when the lock was held
        """
        with self._lock:
            return list(self._set)

    def difference(self, items: Iterable[Hashable]) -> List[Hashable]:
        """
        Return the items not present in this set, keeping their order.

        Args:
            items: Candidate items

        Returns:
            Items absent from the set
        """
        with self._lock:
            return [item for item in items if item not in self._set]

    def __iter__(self) -> Iterator[Hashable]:
        """Iterate over a snapshot of the set."""
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"ThreadSafeSet(size={self.size()})"


class TaskQueue:
    """
    Unbounded FIFO of pending tasks.

    Many producers append with ``put_many``; one consumer drains with ``pop``,
    which sleeps on a condition until work arrives or the queue is closed.
    """

    def __init__(self):
        self._items: Deque[Any] = deque()
        self._condition = threading.Condition(threading.Lock())
        self._closed = False
        self._put_count = 0
        self._get_count = 0

    def put_many(self, items: Iterable[Any]) -> int:
        """
        Append items to the tail of the queue. Never blocks on consumers.

        Args:
            items: Items to append

        Returns:
            Number of items appended (0 once the queue is closed)
        """
        with self._condition:
            if self._closed:
                return 0
            before = len(self._items)
            self._items.extend(items)
            added = len(self._items) - before
            if added:
                self._put_count += added
                self._condition.notify()
            return added

    def pop(self, timeout: Optional[float] = None) -> Any:
        """
        Remove and return the head item.

        Args:
            timeout: Maximum seconds to wait for an item; None waits forever

        Returns:
            The head item, or ``NO_TASK`` on timeout or once the queue is closed
        """
        with self._condition:
            if not self._condition.wait_for(lambda: self._items or self._closed, timeout):
                return NO_TASK
            if self._closed:
                return NO_TASK
            self._get_count += 1
            return self._items.popleft()

    def close(self) -> int:
        """
        Close the queue, wake all waiters and drop pending items.

        Returns:
            Number of items abandoned
        """
        with self._condition:
            self._closed = True
            abandoned = len(self._items)
            self._items.clear()
            self._condition.notify_all()
            return abandoned

    @property
    def closed(self) -> bool:
        with self._condition:
            return self._closed

    def size(self) -> int:
        with self._condition:
            return len(self._items)

    def __len__(self) -> int:
        return self.size()

    def get_stats(self) -> dict:
        """Get queue statistics."""
        with self._condition:
            return {
                "size": len(self._items),
                "closed": self._closed,
                "put_count": self._put_count,
                "get_count": self._get_count,
            }


class ProgressChannel:
    """
    Bounded side channel of ``(worker_id, task)`` events.

    ``publish`` never blocks: when the buffer is full the oldest event is
    dropped, so a slow or absent observer cannot stall a worker.
    """

    def __init__(self, capacity: int):
        self._events: Deque[Tuple[int, Any]] = deque(maxlen=max(1, capacity))
        self._condition = threading.Condition(threading.Lock())
        self._dropped = 0

    def publish(self, worker_id: int, task: Any) -> None:
        with self._condition:
            if len(self._events) == self._events.maxlen:
                self._dropped += 1
            self._events.append((worker_id, task))
            self._condition.notify()

    def get(self, timeout: Optional[float] = None) -> Optional[Tuple[int, Any]]:
        """
        Take the oldest buffered event.

        Args:
            timeout: Maximum seconds to wait; None waits forever

        Returns:
            ``(worker_id, task)`` or None on timeout
        """
        with self._condition:
            if not self._condition.wait_for(lambda: len(self._events) > 0, timeout):
                return None
            return self._events.popleft()

    def drain(self) -> List[Tuple[int, Any]]:
        """Take every buffered event without waiting."""
        with self._condition:
            events = list(self._events)
            self._events.clear()
            return events

    @property
    def dropped(self) -> int:
        with self._condition:
            return self._dropped
