"""In-process priority job queue drained by worker threads.

Jobs are named units of work with a priority (lower runs first), a unique
id and an optional list of jobs that must finish before they are released.
Throttled or timed out jobs are retried with exponential backoff; any other
error fails the job. Handler errors never escape a worker: they are logged
and recorded on the job's ``JobResult``.
"""
import itertools
import logging
import queue
import threading
import time
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..config import settings
from ..riot_api import RateLimitedError, ApiTimeoutError

logger = logging.getLogger(__name__)


class JobName(str, Enum):
    UPDATE_SUMMONER = 'update-summoner-only'
    UPDATE_CHAMPION_DETAILS = 'update-champion-details'
    UPDATE_CHALLENGES_CONFIG = 'update-challenges-config'
    UPDATE_MASTERY = 'update-mastery'
    UPDATE_MATCHES = 'update-matches'
    UPDATE_CHALLENGES = 'update-challenges'
    RUN_CHALLENGES_COMPUTATION = 'run-challenges-computation'

    @property
    def priority(self) -> int:
        return PRIORITIES[self]


PRIORITIES = {
    JobName.UPDATE_SUMMONER: 1,
    JobName.UPDATE_CHAMPION_DETAILS: 2,
    JobName.UPDATE_CHALLENGES_CONFIG: 3,
    JobName.UPDATE_MASTERY: 4,
    JobName.UPDATE_MATCHES: 5,
    JobName.UPDATE_CHALLENGES: 20,
    JobName.RUN_CHALLENGES_COMPUTATION: 21,
}


class JobState(str, Enum):
    BLOCKED = 'blocked'        # waiting on dependencies
    WAITING = 'waiting'        # in the queue
    DELAYED = 'delayed'        # backing off before a retry
    ACTIVE = 'active'
    COMPLETED = 'completed'
    FAILED = 'failed'


class JobTimeoutError(Exception):
    """A job did not finish within the time the caller was willing to wait."""

    def __init__(self, job_id: str, timeout: Optional[float]):
        super().__init__(f"Job {job_id} did not finish within {timeout}s")
        self.job_id = job_id
        self.timeout = timeout


class QueueClosedError(Exception):
    pass


@dataclass
class JobResult:
    job_id: str
    name: JobName
    success: bool
    value: Any = None
    error: Optional[BaseException] = None
    attempts: int = 0


@dataclass
class QueueMetrics:
    counts: Dict[str, int]
    workers: int
    latency_ms_avg: float


class JobHandle:
    """Caller-side view of an enqueued job."""

    def __init__(self, job_id: str, name: JobName, payload: dict, priority: int,
                 depends_on: Iterable["JobHandle"] = ()):
        self.job_id = job_id
        self.name = name
        self.payload = payload
        self.priority = priority
        self.depends_on = list(depends_on)
        self.state = JobState.BLOCKED if self.depends_on else JobState.WAITING
        self.attempts = 0
        self.enqueued_at = time.monotonic()
        self.started_at: Optional[float] = None
        self._future: Future = Future()
        # Set by JobQueue under its lock; only the first result is kept
        self._recorded = False

    def __repr__(self):
        return f"<JobHandle(id={self.job_id}, state={self.state.value}, attempts={self.attempts})>"

    def done(self) -> bool:
        return self._future.done()

    def await_completion(self, timeout: Optional[float] = None) -> JobResult:
        """Block until the job finished and return its result.

        Raises:
            JobTimeoutError: the job is still pending after ``timeout`` seconds
        """
        try:
            return self._future.result(timeout=timeout)
        except FutureTimeoutError:
            raise JobTimeoutError(self.job_id, timeout)

    def add_done_callback(self, callback: Callable[["JobHandle"], None]) -> None:
        self._future.add_done_callback(lambda _: callback(self))

    def _finish(self, result: JobResult) -> None:
        self.state = JobState.COMPLETED if result.success else JobState.FAILED
        self._future.set_result(result)


class JobQueue:
    """Priority queue of named jobs executed by a pool of worker threads."""

    def __init__(
        self,
        handlers: Dict[JobName, Callable[[dict], Any]],
        concurrency: Optional[int] = None,
        max_attempts: Optional[int] = None,
        backoff: Optional[float] = None,
        autostart: bool = True,
    ):
        self.handlers = dict(handlers)
        self.concurrency = concurrency or settings.WORKER_CONCURRENCY
        self.max_attempts = max_attempts or settings.JOB_MAX_ATTEMPTS
        self.backoff = settings.JOB_BACKOFF_SECONDS if backoff is None else backoff

        self._queue: "queue.PriorityQueue" = queue.PriorityQueue()
        self._sequence = itertools.count()
        self._jobs: Dict[str, JobHandle] = {}
        self._timers: List[threading.Timer] = []
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._workers: List[threading.Thread] = []
        self._completed = 0
        self._failed = 0

        if autostart:
            self.start()

    def start(self) -> None:
        with self._lock:
            if self._workers:
                return
            for index in range(self.concurrency):
                worker = threading.Thread(target=self._work, name=f"job-worker-{index}", daemon=True)
                worker.start()
                self._workers.append(worker)
        logger.info(f"Started {self.concurrency} job worker(s)")

    def enqueue(
        self,
        name: JobName,
        payload: dict,
        priority: Optional[int] = None,
        job_id: Optional[str] = None,
        depends_on: Iterable[JobHandle] = (),
    ) -> JobHandle:
        """Add a job to the queue.

        Re-enqueuing the id of a job that has not finished yet returns the
        existing handle. A job with ``depends_on`` is only queued once all
        of those jobs finished, whether or not they succeeded.
        """
        if self._stopping.is_set():
            raise QueueClosedError("Queue is shut down")
        name = JobName(name)
        if name not in self.handlers:
            raise ValueError(f"No handler registered for job {name.value}")

        job_id = job_id or f"{name.value}-{int(time.time() * 1000)}-{next(self._sequence)}"
        dependencies = [dep for dep in depends_on if dep is not None]

        with self._lock:
            existing = self._jobs.get(job_id)
            if existing is not None and not existing.done():
                logger.debug(f"Job {job_id} already pending, reusing it")
                return existing
            handle = JobHandle(job_id, name, payload, name.priority if priority is None else priority, dependencies)
            self._jobs[job_id] = handle

        if not dependencies:
            self._release(handle)
            return handle

        remaining = {'count': len(dependencies)}
        remaining_lock = threading.Lock()

        def on_dependency_done(_):
            with remaining_lock:
                remaining['count'] -= 1
                ready = remaining['count'] == 0
            if ready:
                self._release(handle)

        for dependency in dependencies:
            dependency.add_done_callback(on_dependency_done)
        return handle

    def get(self, job_id: str) -> Optional[JobHandle]:
        with self._lock:
            return self._jobs.get(job_id)

    def metrics(self) -> QueueMetrics:
        """Job counts per state and the average age of active jobs."""
        counts = {state.value: 0 for state in JobState}
        now = time.monotonic()
        latencies = []
        with self._lock:
            for handle in self._jobs.values():
                if handle.done():
                    continue
                counts[handle.state.value] += 1
                if handle.state is JobState.ACTIVE:
                    latencies.append((now - handle.enqueued_at) * 1000)
            counts[JobState.COMPLETED.value] = self._completed
            counts[JobState.FAILED.value] = self._failed
            workers = sum(1 for worker in self._workers if worker.is_alive())

        return QueueMetrics(
            counts=counts,
            workers=workers,
            latency_ms_avg=sum(latencies) / len(latencies) if latencies else 0.0,
        )

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Stop the workers.

        With ``wait`` the workers first drain the jobs already queued, then exit.
        Jobs still blocked on a dependency or delayed for a retry, and with
        ``wait=False`` the ones left in the queue, fail with QueueClosedError.
        """
        if self._stopping.is_set():
            return
        self._stopping.set()
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()
        for _ in self._workers:
            self._queue.put((float('inf'), next(self._sequence), None))
        if wait:
            for worker in self._workers:
                worker.join(timeout)

        with self._lock:
            pending = [handle for handle in self._jobs.values() if not handle.done()]
        for handle in pending:
            if handle.state is not JobState.ACTIVE:
                self._record(handle, JobResult(handle.job_id, handle.name, False,
                                               error=QueueClosedError("Queue is shut down"),
                                               attempts=handle.attempts))
        logger.info("Job queue shut down")

    def _release(self, handle: JobHandle) -> None:
        if self._stopping.is_set():
            self._record(handle, JobResult(handle.job_id, handle.name, False,
                                           error=QueueClosedError("Queue is shut down"),
                                           attempts=handle.attempts))
            return
        handle.state = JobState.WAITING
        self._queue.put((handle.priority, next(self._sequence), handle))

    def _work(self) -> None:
        while True:
            _, _, handle = self._queue.get()
            if handle is None:
                break
            if handle._recorded:
                # Failed by shutdown(wait=False) while still queued
                continue
            self._run(handle)

    def _identifier(self, handle: JobHandle) -> str:
        payload = handle.payload or {}
        if payload.get('game_name'):
            return f"{payload['game_name']}#{payload.get('tag_line')}"
        return handle.job_id

    def _run(self, handle: JobHandle) -> None:
        handle.state = JobState.ACTIVE
        handle.attempts += 1
        handle.started_at = time.monotonic()
        identifier = self._identifier(handle)
        logger.info(f"[Worker] Start: {handle.name.value} ({identifier}) attempt {handle.attempts}")

        try:
            value = self.handlers[handle.name](handle.payload)
        except (RateLimitedError, ApiTimeoutError) as e:
            if handle.attempts < self.max_attempts and not self._stopping.is_set():
                delay = self._retry_delay(handle, e)
                logger.warning(f"[Worker] {handle.name.value} ({identifier}) {e.kind.value}, retrying in {delay:.1f}s")
                self._schedule_retry(handle, delay)
                return
            logger.error(f"[Worker] {handle.name.value} ({identifier}) gave up after {handle.attempts} attempt(s): {str(e)}")
            self._record(handle, JobResult(handle.job_id, handle.name, False, error=e, attempts=handle.attempts))
        except Exception as e:
            logger.error(f"[Worker] {handle.name.value} ({identifier}) failed: {str(e)}", exc_info=True)
            self._record(handle, JobResult(handle.job_id, handle.name, False, error=e, attempts=handle.attempts))
        else:
            self._record(handle, JobResult(handle.job_id, handle.name, True, value=value, attempts=handle.attempts))
        finally:
            logger.info(f"[Worker] Done:  {handle.name.value} ({identifier})")

    def _retry_delay(self, handle: JobHandle, error: Exception) -> float:
        delay = self.backoff * (2 ** (handle.attempts - 1))
        retry_after = getattr(error, 'retry_after', None)
        if retry_after is not None:
            delay = max(delay, retry_after)
        return delay

    def _schedule_retry(self, handle: JobHandle, delay: float) -> None:
        handle.state = JobState.DELAYED
        if delay <= 0:
            self._release(handle)
            return
        timer = threading.Timer(delay, self._release, args=(handle,))
        timer.daemon = True
        with self._lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()

    def _record(self, handle: JobHandle, result: JobResult) -> None:
        with self._lock:
            if handle._recorded:
                return
            handle._recorded = True
            if self._jobs.get(handle.job_id) is handle:
                del self._jobs[handle.job_id]
            if result.success:
                self._completed += 1
            else:
                self._failed += 1
        handle._finish(result)
