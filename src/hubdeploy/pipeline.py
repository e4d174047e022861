"""Job queue, dispatcher and result processor."""

from __future__ import annotations

import logging
import queue
import threading
import time
import uuid
from typing import Callable, Optional, Tuple

from .config import DeploymentConfig
from .executor import run_deployment
from .hooks import HandlerRegistry
from .models import CallbackData, DeploymentError, ExecutionResult, Job
from .results import ResultsStore
from .settings import settings

logger = logging.getLogger(__name__)

CALLBACK_CONTEXT = "Continuous integration by hubdeploy"
DESCRIPTION_OK = "deployed OK"
DESCRIPTION_ERROR = "deployed with error"

Runner = Callable[[DeploymentConfig], Tuple[uuid.UUID, bytes, Optional[DeploymentError]]]

_CLOSED = object()


class DeploymentPipeline:
    """Runs accepted jobs one at a time, in arrival order, and reports results.

    Two daemon threads are started: the dispatcher, which is the only
    consumer of the job queue and the only caller of the runner, and the
    result processor, which saves the output and sends the callback. The
    handoff between them holds a single result, so the dispatcher does not
    start the next job until the previous result has been taken.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        results_store: ResultsStore,
        server_url: str = "",
        queue_size: int | None = None,
        runner: Runner = run_deployment,
    ):
        self.registry = registry
        self.results_store = results_store
        self.server_url = server_url
        self.runner = runner
        self.jobs: queue.Queue = queue.Queue(maxsize=queue_size or settings.job_queue_size)
        self.results: queue.Queue = queue.Queue(maxsize=1)
        # Guards enqueueing against close(); notified whenever a slot frees up.
        self._state = threading.Condition()
        self._closed = False
        self._dispatcher: threading.Thread | None = None
        self._processor: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._dispatcher is not None and self._dispatcher.is_alive()

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> "DeploymentPipeline":
        if self._closed:
            raise RuntimeError("deployment pipeline is closed")
        if self._dispatcher is not None:
            return self
        self._dispatcher = threading.Thread(target=self._dispatch_loop, name="hubdeploy-dispatcher", daemon=True)
        self._processor = threading.Thread(target=self._process_loop, name="hubdeploy-processor", daemon=True)
        self._processor.start()
        self._dispatcher.start()
        return self

    def submit(self, job: Job, timeout: float | None = None) -> None:
        """Enqueues a job, blocking while the queue is full.

        Raises queue.Full when a timeout is given and expires, and
        RuntimeError when the pipeline is closed, including while waiting.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._state:
            while not self._closed and self.jobs.full():
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise queue.Full
                self._state.wait(remaining)
            if self._closed:
                raise RuntimeError("deployment pipeline is closed")
            self.jobs.put_nowait(job)

    def close(self, timeout: float | None = None) -> bool:
        """Stops accepting jobs and drops the ones not yet dispatched.

        The job being executed is allowed to finish; waits at most timeout
        seconds for it. Returns True when both threads have exited.
        """
        with self._state:
            if self._closed:
                return not self.running
            self._closed = True
            dropped = 0
            while True:
                try:
                    self.jobs.get_nowait()
                except queue.Empty:
                    break
                dropped += 1
            if self._dispatcher is not None:
                self.jobs.put_nowait(_CLOSED)
            self._state.notify_all()

        if dropped:
            logger.warning("shutting down, %d queued deployment(s) dropped", dropped)
        if self._dispatcher is None:
            return True
        self._dispatcher.join(timeout=timeout)
        if self._processor is not None and not self._dispatcher.is_alive():
            self._processor.join(timeout=timeout)
        stopped = not self.running and not (self._processor is not None and self._processor.is_alive())
        if not stopped:
            logger.warning("deployment still running after %ss, not waiting for it", timeout)
        return stopped

    def _dispatch_loop(self) -> None:
        while True:
            job = self.jobs.get()
            with self._state:
                self._state.notify_all()
            if job is _CLOSED:
                self.results.put(_CLOSED)
                return
            self.results.put(self.execute(job))

    def execute(self, job: Job) -> ExecutionResult:
        try:
            result_id, output, error = self.runner(job.deployment)
        except Exception as exc:  # noqa: BLE001
            logger.exception("deployment runner failure: %s", exc)
            result_id, output, error = uuid.uuid1(), b"", DeploymentError(str(exc))
        return ExecutionResult(
            id=result_id,
            output=output,
            handler_type=job.handler_type,
            callback_url=job.callback_url,
            error=error,
        )

    def _process_loop(self) -> None:
        while True:
            result = self.results.get()
            if result is _CLOSED:
                return
            try:
                self.process_result(result)
            except Exception as exc:  # noqa: BLE001
                logger.exception("%s> result processing failure: %s", result.id, exc)

    def process_result(self, result: ExecutionResult) -> None:
        logger.info("%s>  result:  %s", result.id, "OK" if result.error is None else result.error)

        self.results_store.save(result.id, result.output)

        handler = self.registry.get(result.handler_type)
        if handler is None:
            logger.critical(
                "*** INTERNAL ERROR ***: got result for unregistered deployment type %r",
                result.handler_type,
            )
            return

        handler.callback(
            CallbackData(
                id=result.id,
                callback_url=result.callback_url,
                description=DESCRIPTION_OK if result.error is None else DESCRIPTION_ERROR,
                context=CALLBACK_CONTEXT,
                results_url=self.results_store.results_url(self.server_url, result.id),
                error=result.error,
            )
        )
