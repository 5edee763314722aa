"""
Supervised execution of detached background work.

A request handler admits the work, hands it to the supervisor and returns.
Each task receives a ``TaskContext`` with a deadline and a cancellation flag.
Long-running code calls ``ctx.raise_if_cancelled()`` between stages and
sleeps through ``ctx.sleep()``, so a cancelled or expired task stops at the
next checkpoint with ``TaskCancelledError``. The task's ``on_failure``
callback then records the failure on the owning document.
"""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Optional

from .exceptions import TaskCancelledError

logger = logging.getLogger(__name__)


class TaskContext:
    """Cancellation flag and deadline for one supervised task."""

    def __init__(self, name: str, timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self._clock = clock
        self._cancelled = threading.Event()
        self.deadline = clock() + timeout if timeout else None

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise TaskCancelledError(f"Task '{self.name}' was cancelled")
        if self.expired:
            raise TaskCancelledError(f"Task '{self.name}' exceeded its deadline")

    def sleep(self, seconds: float) -> None:
        """Sleeps up to ``seconds``, waking early if the task is cancelled."""
        if self.deadline is not None:
            seconds = max(0.0, min(seconds, self.deadline - self._clock()))
        self._cancelled.wait(seconds)
        self.raise_if_cancelled()


class TaskSupervisor:
    """
    Runs tasks on a thread pool and keeps every failure inside the task.

    Tasks are keyed (e.g. "process:<video_id>") so a running task can be
    cancelled. Submitting a key that is still running does not stop the
    older run; ``cancel`` then targets the newer one.
    """

    def __init__(self, max_workers: int = 4, default_timeout: Optional[float] = None):
        self.default_timeout = default_timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="timeline-task")
        self._contexts: Dict[str, TaskContext] = {}
        self._lock = threading.Lock()

    def submit(
        self,
        key: str,
        fn: Callable[[TaskContext], None],
        on_failure: Optional[Callable[[Exception], None]] = None,
        timeout: Optional[float] = None,
    ) -> Future:
        ctx = TaskContext(key, timeout if timeout is not None else self.default_timeout)
        with self._lock:
            if key in self._contexts:
                logger.warning("Task %s is already running; tracking the newer run", key,
                               extra={"extra_fields": {"task": key}})
            self._contexts[key] = ctx
        return self._executor.submit(self._run, ctx, fn, on_failure)

    def cancel(self, key: str) -> bool:
        """Signals a running task to stop. Returns False if no such task is running."""
        with self._lock:
            ctx = self._contexts.get(key)
        if ctx is None:
            return False
        ctx.cancel()
        return True

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            for ctx in self._contexts.values():
                ctx.cancel()
        self._executor.shutdown(wait=wait)

    def _run(self, ctx: TaskContext, fn, on_failure) -> None:
        log_extra = {"extra_fields": {"task": ctx.name}}
        try:
            fn(ctx)
        except Exception as e:
            logger.error("Supervised task %s failed", ctx.name, exc_info=True, extra=log_extra)
            if on_failure is not None:
                try:
                    on_failure(e)
                except Exception:
                    logger.critical("Failure handler for task %s raised", ctx.name,
                                    exc_info=True, extra=log_extra)
        finally:
            with self._lock:
                if self._contexts.get(ctx.name) is ctx:
                    del self._contexts[ctx.name]
