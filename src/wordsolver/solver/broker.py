"""Request broker: id-correlated, awaitable calls over the solver message channel."""

import asyncio
import itertools
import logging
import threading
from collections.abc import Iterable
from concurrent.futures import Future, InvalidStateError
from typing import Any

from wordsolver.errors import Cancelled, ServiceUnavailable, SolverError
from wordsolver.protocol import CANCEL_TASK, FIND_WORDS_TASK, make_request
from wordsolver.solver.channel import Channel, ProcessChannel
from wordsolver.solver.config import SolverConfig
from wordsolver.solver.config import config as default_config

logger = logging.getLogger(__name__)


class PendingCall(Future):
    """Handle for one outstanding call; completes when the response with its id arrives.

    Cancelling the handle (`cancel()`) cancels the call in the broker as well.
    """

    def __init__(self, request_id: int) -> None:
        super().__init__()
        self.request_id = request_id


def _settle(future: Future, *, result: Any = None, error: BaseException | None = None) -> None:
    """Complete a future, unless the caller has already cancelled it."""
    try:
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)
    except InvalidStateError:
        logger.debug("Dropping outcome for an already completed call")


class RequestBroker:
    """Turns the solver service's message channel into individually awaitable calls.

    Each call gets a fresh id from a monotonically increasing counter and a `PendingCall` entry in
    the pending table.  Responses are routed to the entry with the same id, which is removed
    exactly once.  Responses for unknown or already-completed ids are discarded.

    The background worker is started by `start()` (or by the first call) and must be stopped
    with `close()`, or by using the broker as a context manager:

        with RequestBroker() as broker:
            words = broker.find_words(["c", "a", "t"], "en", "animals").result()
    """

    def __init__(self, config: SolverConfig | None = None, *, channel: Channel | None = None):
        """Create a broker.

        Args:
            config (SolverConfig | None): Solver configuration; the module default if None.
            channel (Channel | None): Transport to use.  If None, `start()` launches a worker
                process.  A channel given here must deliver responses to `handle_message` and
                report transport failures to `handle_failure`.
        """
        self.config = config or default_config
        self._channel = channel
        self._pending: dict[int, PendingCall] = {}
        self._lock = threading.Lock()
        self._start_lock = threading.Lock()
        self._ids = itertools.count(1)
        self._failure: SolverError | None = None
        self._closed = False

    def __enter__(self) -> "RequestBroker":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def pending_count(self) -> int:
        """Number of calls still waiting for a response."""
        with self._lock:
            return len(self._pending)

    @property
    def closed(self) -> bool:
        """Whether `close()` has been called."""
        return self._closed

    def start(self) -> "RequestBroker":
        """Start the worker process, if it is not running yet.

        Raises:
            ServiceUnavailable: If the broker is closed or the worker cannot be started.
        """
        with self._start_lock:
            error = self._unavailable()
            if error is not None:
                raise error
            if self._channel is None:
                channel = ProcessChannel(
                    self.config,
                    on_message=self.handle_message,
                    on_failure=self.handle_failure,
                )
                try:
                    channel.start()
                except ServiceUnavailable as e:
                    with self._lock:
                        self._failure = e
                    raise
                self._channel = channel
        return self

    def _unavailable(self) -> ServiceUnavailable | None:
        if self._closed:
            return ServiceUnavailable("Request broker is closed")
        if self._failure is not None:
            return ServiceUnavailable(f"Solver service unavailable: {self._failure}")
        return None

    def call(self, task: str, payload: Any = None) -> PendingCall:
        """Send a request to the solver service.

        Never raises: if the service is unavailable, the returned handle is already failed with
        `ServiceUnavailable`.

        Args:
            task (str): Name of the task to run.
            payload (Any): Task payload; must be pickleable.

        Returns:
            A PendingCall that resolves with the task result or fails with a SolverError.
        """
        if self._channel is None:
            try:
                self.start()
            except ServiceUnavailable as e:
                future = PendingCall(-1)
                future.set_exception(e)
                return future

        with self._lock:
            error = self._unavailable()
            request_id = -1 if error is not None else next(self._ids)
            future = PendingCall(request_id)
            if error is None:
                self._pending[request_id] = future
        if error is not None:
            future.set_exception(error)
            return future

        future.add_done_callback(self._on_done)
        channel = self._channel
        assert channel is not None
        try:
            channel.send(make_request(request_id, task, payload))
        except ServiceUnavailable as e:
            self._reject(request_id, e)
        return future

    def find_words(
        self,
        letters: Iterable[str],
        lang: str = "en",
        category: str | None = None,
        min_len: int | None = None,
    ) -> PendingCall:
        """Find the words of a dictionary that can be formed from the given letters.

        Args:
            letters (Iterable[str]): Available letters.
            lang (str): Language code, e.g. "en" or "ar".
            category (str | None): Word-list category; `config.default_category` if None.
            min_len (int | None): Minimum word length; `config.default_min_len` if None.

        Returns:
            A PendingCall resolving with the matching words in dictionary order.  An empty list
            means no word matched; failures are reported as SolverError exceptions.
        """
        payload = {
            "letters": list(letters),
            "lang": lang,
            "category": category if category is not None else self.config.default_category,
            "minLen": min_len if min_len is not None else self.config.default_min_len,
        }
        return self.call(FIND_WORDS_TASK, payload)

    async def find_words_async(
        self,
        letters: Iterable[str],
        lang: str = "en",
        category: str | None = None,
        min_len: int | None = None,
    ) -> list[str]:
        """Asyncio version of `find_words`.  Cancelling the awaiting task cancels the call."""
        return await asyncio.wrap_future(self.find_words(letters, lang, category, min_len))

    def cancel(self, request_id: int) -> bool:
        """Cancel a pending call.

        The call fails with `Cancelled`, and the service is told to skip the request if it has
        not started on it yet.

        Returns:
            True if the call was pending, False if it had already completed or is unknown.
        """
        with self._lock:
            future = self._pending.pop(request_id, None)
        if future is None:
            return False
        self._send_cancel(request_id)
        _settle(future, error=Cancelled(f"Request {request_id} cancelled"))
        return True

    def _on_done(self, future: Future) -> None:
        # Only acts when the caller cancelled the handle itself
        if not future.cancelled() or not isinstance(future, PendingCall):
            return
        with self._lock:
            removed = self._pending.pop(future.request_id, None) is not None
        if removed:
            self._send_cancel(future.request_id)

    def _send_cancel(self, request_id: int) -> None:
        channel = self._channel
        if channel is None or self._unavailable() is not None:
            return
        try:
            channel.send(make_request(request_id, CANCEL_TASK))
        except ServiceUnavailable as e:
            logger.debug("Could not send cancel for request %d: %s", request_id, e)

    def _reject(self, request_id: int, error: SolverError) -> None:
        with self._lock:
            future = self._pending.pop(request_id, None)
        if future is not None:
            _settle(future, error=error)

    def handle_message(self, message: Any) -> None:
        """Route a response from the channel to its pending call.

        Responses with an unknown id (never sent, already answered, or cancelled) and malformed
        messages are discarded.
        """
        if not isinstance(message, dict):
            logger.debug("Discarding malformed response %r", message)
            return
        request_id = message.get("id")
        kind = message.get("type")
        if kind not in ("result", "error") or not isinstance(request_id, int):
            logger.debug("Discarding malformed response %r", message)
            return

        with self._lock:
            future = self._pending.pop(request_id, None)
        if future is None:
            logger.debug("Discarding response for unknown request id %d", request_id)
            return

        if kind == "result":
            _settle(future, result=message.get("payload"))
        else:
            _settle(future, error=SolverError.from_descriptor(message.get("payload")))

    def handle_failure(self, error: SolverError) -> None:
        """Fail every pending call after the channel or the worker broke.

        Later calls fail immediately with `ServiceUnavailable`; a new broker is needed to
        resume.
        """
        with self._lock:
            if self._failure is None:
                self._failure = error
            pending, self._pending = self._pending, {}
        logger.error("Solver service failed (%s); rejecting %d pending calls", error, len(pending))
        for future in pending.values():
            _settle(future, error=ServiceUnavailable(str(error)))

    def close(self) -> None:
        """Reject every pending call with `Cancelled` and stop the worker.  Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending, self._pending = self._pending, {}
        for future in pending.values():
            _settle(future, error=Cancelled("Request broker closed"))
        with self._start_lock:
            if self._channel is not None:
                self._channel.close()
        if pending:
            logger.info("Request broker closed; cancelled %d pending calls", len(pending))
