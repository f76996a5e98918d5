"""Message channel between the request broker and a solver worker process."""

import logging
import multiprocessing
import queue
import threading
from collections.abc import Callable
from time import monotonic
from typing import Any, Protocol

from wordsolver.errors import ServiceUnavailable, SolverError
from wordsolver.protocol import READY_ID, WorkerRequest
from wordsolver.solver.config import SolverConfig
from wordsolver.solver.service import serve

logger = logging.getLogger(__name__)


class Channel(Protocol):
    """Transport used by the request broker to reach the solver service."""

    def send(self, message: WorkerRequest) -> None:
        """Send a request.  Raises `ServiceUnavailable` if the channel is closed or broken."""
        ...

    def close(self) -> None:
        """Tear down the transport.  Must be idempotent."""
        ...


class ProcessChannel:
    """Runs the solver service in a worker process, connected by a pair of queues.

    A daemon listener thread reads responses and passes each one to `on_message`.  If the worker
    process dies, `on_failure` is called once with a `ServiceUnavailable` error and the listener
    stops.
    """

    def __init__(
        self,
        config: SolverConfig,
        *,
        on_message: Callable[[Any], None],
        on_failure: Callable[[SolverError], None],
    ) -> None:
        self.config = config
        self._on_message = on_message
        self._on_failure = on_failure
        self._closing = threading.Event()

        ctx = multiprocessing.get_context(config.start_method)
        self._requests = ctx.Queue()
        self._responses = ctx.Queue()
        self._process = ctx.Process(
            target=serve,
            args=(self._requests, self._responses, config.model_dump()),
            name="wordsolver-worker",
            daemon=True,
        )
        self._listener = threading.Thread(
            target=self._listen,
            name="wordsolver-listener",
            daemon=True,
        )

    @property
    def pid(self) -> int | None:
        """Process id of the worker, or None if it has not been started."""
        return self._process.pid

    def is_alive(self) -> bool:
        """Whether the worker process is running."""
        return self._process.is_alive()

    def start(self) -> None:
        """Start the worker process and wait until it reports that it is ready.

        Raises:
            ServiceUnavailable: If the process cannot be started or does not become ready.
        """
        try:
            self._process.start()
        except OSError as e:
            raise ServiceUnavailable(f"Could not start solver worker: {e}") from e

        deadline = monotonic() + self.config.start_timeout
        while True:
            try:
                message = self._responses.get(timeout=self.config.poll_interval)
            except queue.Empty:
                if not self._process.is_alive():
                    self.close()
                    raise ServiceUnavailable(
                        f"Solver worker exited during start-up (exit code {self._process.exitcode})"
                    ) from None
                if monotonic() > deadline:
                    self.close()
                    raise ServiceUnavailable(
                        f"Solver worker not ready after {self.config.start_timeout} seconds"
                    ) from None
                continue
            if isinstance(message, dict) and message.get("id") == READY_ID:
                break
            logger.warning("Unexpected message from worker during start-up: %r", message)

        logger.info("Solver worker %d started.", self._process.pid)
        self._listener.start()

    def send(self, message: WorkerRequest) -> None:
        if self._closing.is_set():
            raise ServiceUnavailable("Solver channel is closed")
        try:
            self._requests.put(message)
        except (ValueError, OSError) as e:
            raise ServiceUnavailable(f"Could not send to solver worker: {e}") from e

    def _listen(self) -> None:
        while not self._closing.is_set():
            try:
                message = self._responses.get(timeout=self.config.poll_interval)
            except queue.Empty:
                if self._process.is_alive() or self._closing.is_set():
                    continue
                self._fail(f"Solver worker exited (exit code {self._process.exitcode})")
                return
            except (EOFError, OSError, ValueError) as e:
                if not self._closing.is_set():
                    self._fail(f"Solver channel broken: {e}")
                return

            try:
                self._on_message(message)
            except Exception:
                logger.exception("Error handling solver response %r", message)

    def _fail(self, reason: str) -> None:
        logger.error(reason)
        self._on_failure(ServiceUnavailable(reason))

    def close(self) -> None:
        """Stop the worker, asking it to exit first and terminating it if it does not."""
        if self._closing.is_set():
            return
        self._closing.set()

        if self._process.pid is not None:
            try:
                self._requests.put(None)
            except (ValueError, OSError):
                pass  # queue already closed; the worker is terminated below
            self._process.join(self.config.shutdown_timeout)
            if self._process.is_alive():
                logger.warning("Solver worker %d did not exit; terminating.", self._process.pid)
                self._process.terminate()
                self._process.join()

        if self._listener.is_alive() and self._listener is not threading.current_thread():
            self._listener.join()

        for q in (self._requests, self._responses):
            q.cancel_join_thread()
            q.close()
        logger.info("Solver channel closed.")
