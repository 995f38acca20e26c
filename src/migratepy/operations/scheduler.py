"""Concurrency-limited scheduler with rate limit aware retries.

Records are admitted in input order, at most ``concurrency`` at a time, and
handed to a handler running on a thread pool. Each task ends in one of:

- completed: the handler returned a value
- failed: the handler returned None or raised a per-record error
  (``ReconciliationError`` or a non-throttle ``APIError``); not retried
- throttled: the handler raised ``RateLimitError``; the same work item goes
  back on the admission queue and admissions pause for the cooldown

Any other exception is fatal: admission stops, running tasks finish, and
the exception is re-raised from ``run``.
"""

import threading
import time
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from ..core.config import DEFAULT_CONCURRENCY
from ..core.exceptions import APIError, RateLimitError, ReconciliationError
from ..utils.logging_utils import get_logger
from .backoff import ThrottleBackoff

logger = get_logger(__name__)

T = TypeVar("T")

# Errors that fail one record without stopping the run
RECORD_ERRORS: tuple[type[Exception], ...] = (ReconciliationError, APIError)


class TaskState(str, Enum):
    """Lifecycle of one scheduled record."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    THROTTLED = "throttled"


@dataclass
class WorkItem(Generic[T]):
    """A record travelling through the scheduler.

    Attributes:
        record_number: 1-based position in the input stream
        payload: The record handed to the handler
        attempts: How many times the record was throttled so far
        state: Current lifecycle state
    """

    record_number: int
    payload: T
    attempts: int = 0
    state: TaskState = TaskState.PENDING


@dataclass
class ProgressCounters:
    """Run totals shared by all worker threads.

    Attributes:
        submitted: Records admitted from the input stream (retries excluded)
        completed: Records whose handler returned a value
        failed: Records that ended in a per-record failure
        retried: Re-admissions caused by rate limiting
    """

    submitted: int = 0
    completed: int = 0
    failed: int = 0
    retried: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def increment(self, name: str) -> int:
        """Atomically add one to a counter and return its new value."""
        with self._lock:
            value = getattr(self, name) + 1
            setattr(self, name, value)
            return value

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "submitted": self.submitted,
                "completed": self.completed,
                "failed": self.failed,
                "retried": self.retried,
            }


_DRAINED = object()


class MigrationScheduler(Generic[T]):
    """Runs a handler over a record stream with bounded concurrency.

    One condition variable guards the running count, the pause deadline,
    the retry queue and the fatal error, so a pause observed by one task
    blocks every later admission.
    """

    def __init__(
        self,
        handler: Callable[[T, int], Any],
        concurrency: int = DEFAULT_CONCURRENCY,
        backoff: ThrottleBackoff | None = None,
    ):
        """Initialize the scheduler.

        Args:
            handler: Called as ``handler(record, record_number)`` on a worker
                thread; returns None when the record could not be processed
            concurrency: Maximum number of records processed at once
            backoff: Cooldown policy for rate limit errors
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.handler = handler
        self.concurrency = concurrency
        self.backoff = backoff or ThrottleBackoff()
        self.counters = ProgressCounters()

        self._cond = threading.Condition()
        self._running = 0
        self._paused_until = 0.0
        self._retry_queue: deque[WorkItem[T]] = deque()
        self._fatal: BaseException | None = None

    @property
    def paused(self) -> bool:
        """Whether admissions are currently held back by a cooldown."""
        with self._cond:
            return self._paused_until > time.monotonic()

    def run(self, records: Iterable[T]) -> ProgressCounters:
        """Process every record and wait until all of them have finished.

        The record iterator is only advanced once a slot is free, so at most
        ``concurrency`` records are held in memory at a time.

        Args:
            records: The input stream

        Returns:
            ProgressCounters: Final totals

        Raises:
            Exception: The first fatal task error, or any error raised by the
                record iterator, after running tasks have finished
        """
        record_iter: Iterator[T] = iter(records)
        exhausted = False
        record_number = 0

        with ThreadPoolExecutor(
            max_workers=self.concurrency, thread_name_prefix="migrate-worker"
        ) as executor:
            while True:
                with self._cond:
                    admitted = self._wait_for_admission(exhausted)
                    if admitted is _DRAINED:
                        break
                    self._running += 1

                if admitted is None:
                    try:
                        payload = next(record_iter)
                    except StopIteration:
                        exhausted = True
                        self._release_slot()
                        continue
                    except BaseException:
                        self._release_slot()
                        raise
                    record_number += 1
                    item: WorkItem[T] = WorkItem(record_number, payload)
                    self.counters.increment("submitted")
                else:
                    item = admitted

                item.state = TaskState.RUNNING
                executor.submit(self._run_task, item)

        if self._fatal is not None:
            raise self._fatal

        logger.debug(
            f"Scheduler drained: {self.counters.snapshot()}",
            extra={"operation": "drain"},
        )
        return self.counters

    def _wait_for_admission(self, exhausted: bool) -> Any:
        """Block until a slot may be used.

        Must be called with the condition held.

        Returns:
            A retry WorkItem to re-admit, None to pull a fresh record, or
            _DRAINED when nothing is left to do
        """
        while True:
            if self._fatal is not None:
                if self._running == 0:
                    return _DRAINED
                self._cond.wait()
                continue

            remaining = self._paused_until - time.monotonic()
            if remaining > 0:
                self._cond.wait(timeout=remaining)
                continue

            if self._running >= self.concurrency:
                self._cond.wait()
                continue

            if self._retry_queue:
                return self._retry_queue.popleft()

            if not exhausted:
                return None

            if self._running == 0:
                return _DRAINED

            self._cond.wait()

    def _release_slot(self) -> None:
        with self._cond:
            self._running -= 1
            self._cond.notify_all()

    def _run_task(self, item: WorkItem[T]) -> None:
        try:
            result = self.handler(item.payload, item.record_number)
        except RateLimitError as e:
            self._requeue_throttled(item, e)
        except RECORD_ERRORS as e:
            item.state = TaskState.FAILED
            self.counters.increment("failed")
            logger.error(
                f"({item.record_number}) Record failed: {e}",
                extra={"record_number": item.record_number},
            )
        except Exception as e:
            item.state = TaskState.FAILED
            logger.error(
                f"({item.record_number}) Fatal error, stopping migration: {e}",
                extra={"record_number": item.record_number},
                exc_info=True,
            )
            with self._cond:
                if self._fatal is None:
                    self._fatal = e
        else:
            if result is None:
                item.state = TaskState.FAILED
                self.counters.increment("failed")
            else:
                item.state = TaskState.COMPLETED
                self.counters.increment("completed")
        finally:
            self._release_slot()

    def _requeue_throttled(self, item: WorkItem[T], error: RateLimitError) -> None:
        cooldown = self.backoff.cooldown_for(error)

        with self._cond:
            item.state = TaskState.THROTTLED
            item.attempts += 1
            self._retry_queue.append(item)
            self._paused_until = max(self._paused_until, time.monotonic() + cooldown)
            self._cond.notify_all()

        self.counters.increment("retried")
        logger.warning(
            f"({item.record_number}) Rate limited, pausing new work for "
            f"{cooldown:.1f}s before retrying",
            extra={"record_number": item.record_number, "retry_after": cooldown},
        )
