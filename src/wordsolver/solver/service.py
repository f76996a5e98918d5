"""Solver service: the worker-side end of the message channel."""

import logging
import multiprocessing
import os
import queue
import traceback
from collections import deque
from collections.abc import Callable
from multiprocessing.queues import Queue
from typing import Any

from wordsolver.dictionary import DictionaryKey, DictionaryStore
from wordsolver.errors import Cancelled, InvalidRequest, SolverError
from wordsolver.protocol import (
    CANCEL_TASK,
    FIND_WORDS_TASK,
    READY_ID,
    FindWordsPayload,
    WorkerResponse,
    make_error,
    make_result,
    parse_payload,
)
from wordsolver.solver.config import SolverConfig
from wordsolver.solver.matcher import find_words, make_letter_bag

logger = logging.getLogger(__name__)

PARENT_CHECK_INTERVAL = 1.0
"""Seconds between checks that the caller process is still alive while the worker is idle."""


class SolverService:
    """Answers solve requests, loading each dictionary once on first use.

    A service handles one request at a time and owns every DictionaryStore it loads.  `solve`
    never raises: every failure is turned into an error response for the offending request.
    """

    def __init__(self, config: SolverConfig) -> None:
        self.config = config
        self._stores: dict[DictionaryKey, DictionaryStore] = {}
        self._tasks: dict[str, Callable[[Any], Any]] = {
            FIND_WORDS_TASK: self._find_words_task,
        }

    @property
    def loaded_keys(self) -> list[DictionaryKey]:
        """Keys of the dictionaries loaded so far, in load order."""
        return list(self._stores)

    def load(self, language: str, category: str) -> DictionaryStore:
        """Return the store for a language and category, loading it on first use.

        Failed loads are not remembered, so a word list added later can still be loaded.

        Raises:
            DictionaryUnavailable: If there is no readable word list for the key.
        """
        key = DictionaryKey(language, category)
        store = self._stores.get(key)
        if store is None:
            store = DictionaryStore.load(language, category, data_dir=self.config.data_dir)
            self._stores[key] = store
        return store

    def find_words(self, letters: list[str], lang: str, category: str, min_len: int) -> list[str]:
        """Find the words of a dictionary that can be formed from the given letters."""
        store = self.load(lang, category)
        bag = make_letter_bag(letters, lang)
        return find_words(store, bag, min_len)

    def _find_words_task(self, payload: Any) -> list[str]:
        args: FindWordsPayload = parse_payload(FindWordsPayload, payload)
        return self.find_words(args.letters, args.lang, args.category, args.min_len)

    def solve(self, request: Any) -> WorkerResponse:
        """Run one request and return its response.

        Args:
            request: A WorkerRequest dict.  Anything else is answered with `InvalidRequest`.

        Returns:
            A result or error response carrying the request's id.
        """
        request_id = request.get("id") if isinstance(request, dict) else None
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            logger.warning("Discarding request without a valid id: %r", request)
            return make_error(-1, InvalidRequest("Request has no integer 'id'"))

        task = request.get("task")
        task_fn = self._tasks.get(task) if isinstance(task, str) else None
        if task_fn is None:
            logger.error("Unknown task %r for request %d", task, request_id)
            return make_error(request_id, InvalidRequest(f"Unknown task: {task}"))

        try:
            return make_result(request_id, task_fn(request.get("payload")))
        except SolverError as e:
            logger.info("Request %d (%s) failed: %s: %s", request_id, task, e.kind, e)
            return make_error(request_id, e)
        except Exception as e:
            logger.error(
                "Error executing task '%s' for request %d:\n%s",
                task,
                request_id,
                traceback.format_exc(),
            )
            return make_error(request_id, SolverError(f"{type(e).__name__}: {e}"))


def serve(requests: Queue, responses: Queue, config_data: dict[str, Any]) -> None:
    """Main loop of the worker process.

    Reads requests until a `None` sentinel arrives and answers each one on `responses`.  Before
    each solve, every request already waiting on the queue is read, so that cancel messages are
    seen before the requests they cancel are started.

    Args:
        requests (Queue): Inbound WorkerRequest messages.
        responses (Queue): Outbound WorkerResponse messages.
        config_data (dict): `SolverConfig.model_dump()` of the caller's configuration.
    """
    config = SolverConfig.model_validate(config_data)
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [worker %(process)d] %(levelname)s %(name)s: %(message)s",
    )
    service = SolverService(config)
    responses.put({"id": READY_ID, "type": "ready", "payload": os.getpid()})
    logger.info("Solver worker %d initialized.", os.getpid())

    backlog: deque[Any] = deque()
    cancelled: set[int] = set()
    stopping = False

    def take(message: Any) -> None:
        nonlocal stopping
        if message is None:
            stopping = True
        elif isinstance(message, dict) and message.get("task") == CANCEL_TASK:
            if isinstance(message.get("id"), int):
                cancelled.add(message["id"])
        else:
            backlog.append(message)

    while True:
        if not backlog:
            take(_next_message(requests))
        # Drain whatever else is already queued, picking up cancellations
        while not stopping:
            try:
                take(requests.get_nowait())
            except queue.Empty:
                break
        if stopping:
            break
        if not backlog:
            continue

        request = backlog.popleft()
        request_id = request.get("id") if isinstance(request, dict) else None
        if isinstance(request_id, int) and request_id in cancelled:
            responses.put(make_error(request_id, Cancelled(f"Request {request_id} cancelled")))
        else:
            responses.put(service.solve(request))
        if cancelled and isinstance(request_id, int):
            # Requests arrive in id order, so older cancellations can no longer apply
            cancelled.difference_update([i for i in cancelled if i <= request_id])

    if backlog:
        logger.info("Dropping %d unstarted requests on shutdown.", len(backlog))
    logger.info("Solver worker %d stopped.", os.getpid())


def _next_message(requests: Queue) -> Any:
    """Block until a message arrives; return the `None` sentinel if the caller process died."""
    while True:
        try:
            return requests.get(timeout=PARENT_CHECK_INTERVAL)
        except queue.Empty:
            parent = multiprocessing.parent_process()
            if parent is not None and not parent.is_alive():
                logger.warning("Caller process exited; stopping worker.")
                return None
