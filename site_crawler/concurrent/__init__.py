"""
Concurrent crawling framework.

Main Components:
- TaskScheduler: fixed worker pool fed by a growing task queue
- WorkerThread / AvailabilityPool: worker lifecycle and idle-worker handoff
- ThreadSafeSet: deduplicating set shared between workers
- CrawlController: frontier expansion and crawl termination
"""

from .models import (
    SchedulerConfig,
    CrawlOptions,
    WorkerState,
    WorkerStatus,
    CrawlResult,
    CrawlReport,
    ResultCollector
)

from .thread_safe import (
    ThreadSafeCounter,
    ThreadSafeSet,
    TaskQueue,
    ProgressChannel
)

from .thread_pool import AvailabilityPool, WorkerThread
from .scheduler import TaskScheduler
from .controller import CrawlController, CrawlObserver, crawl_site

__all__ = [
    # Models
    'SchedulerConfig',
    'CrawlOptions',
    'WorkerState',
    'WorkerStatus',
    'CrawlResult',
    'CrawlReport',
    'ResultCollector',

    # Thread-safe utilities
    'ThreadSafeCounter',
    'ThreadSafeSet',
    'TaskQueue',
    'ProgressChannel',

    # Main components
    'AvailabilityPool',
    'WorkerThread',
    'TaskScheduler',
    'CrawlController',
    'CrawlObserver',
    'crawl_site'
]
