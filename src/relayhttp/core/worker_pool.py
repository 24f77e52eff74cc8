"""
=============================================================================
WORKER POOL
=============================================================================

A fixed number of worker threads pulling connections off a bounded queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop                                                        │
    │       │  submit(handle, conn)                                        │
    │       ▼                                                              │
    │   ┌──────────────────────────────┐                                   │
    │   │  Queue (maxsize=queue_size)  │── full? submit() returns False    │
    │   └──────────────┬───────────────┘   and the caller answers 503      │
    │        ┌─────────┼─────────┐                                         │
    │        ▼         ▼         ▼                                         │
    │    Worker-0  Worker-1  Worker-2 ...                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Workers share nothing but the queue and whatever the submitted callables
close over (the frozen dispatcher), so the pool needs no lock.

Shutdown puts one None ("poison pill") per worker on the queue. Tasks
queued before it still run; each worker exits when it takes its pill.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional
import logging
import queue
import threading
import time


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A queued unit of work."""

    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """One worker thread. Runs tasks until it receives None."""

    def __init__(self, inbox: "queue.Queue[Optional[Task]]", worker_id: int):
        super().__init__(name=f"relayhttp-worker-{worker_id}", daemon=True)
        self.inbox = inbox
        self.worker_id = worker_id
        self.state = WorkerState.IDLE
        self.completed = 0
        self.failed = 0

    def run(self) -> None:
        logger.debug(f"Worker {self.worker_id} started")
        while True:
            task = self.inbox.get()
            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.inbox.task_done()
        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task) -> None:
        self.state = WorkerState.BUSY
        start_time = time.time()
        try:
            task.func(*task.args)
            self.completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s "
                f"(queued {start_time - task.submitted_at:.3f}s)"
            )
        except Exception as e:
            # A failing task must not take the worker down with it
            self.failed += 1
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
        finally:
            self.state = WorkerState.IDLE


class WorkerPool:
    """
    Fixed-size thread pool with a bounded queue.

        pool = WorkerPool(workers=4, queue_size=64)
        pool.start()
        if not pool.submit(handle, conn):
            reject(conn)          # queue full
        ...
        pool.shutdown()
    """

    def __init__(self, workers: int = 4, queue_size: int = 64):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.size = workers
        self._inbox: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._started = False
        self._closed = False

    def start(self) -> None:
        if self._started:
            return
        logger.info(f"Starting worker pool with {self.size} workers")
        for worker_id in range(self.size):
            worker = Worker(self._inbox, worker_id)
            self._workers.append(worker)
            worker.start()
        self._started = True

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Queue func(*args) without blocking.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._closed:
            raise RuntimeError("Worker pool is not running")
        try:
            self._inbox.put_nowait(Task(func=func, args=args))
        except queue.Full:
            return False
        return True

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and let the workers finish what is queued."""
        if not self._started or self._closed:
            return
        logger.info("Shutting down worker pool...")
        self._closed = True

        for _ in self._workers:
            self._inbox.put(None)

        if wait:
            for worker in self._workers:
                worker.join()

        logger.info("Worker pool shutdown complete")

    @property
    def queued(self) -> int:
        return self._inbox.qsize()

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state is WorkerState.BUSY)

    @property
    def stats(self) -> dict:
        return {
            "workers": len(self._workers),
            "busy": self.busy_workers,
            "queued": self.queued,
            "completed": sum(w.completed for w in self._workers),
            "failed": sum(w.failed for w in self._workers),
        }
