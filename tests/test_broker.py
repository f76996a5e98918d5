import asyncio
import random

import pytest

from wordsolver.errors import (
    Cancelled,
    DictionaryUnavailable,
    InvalidRequest,
    ServiceUnavailable,
    SolverError,
)
from wordsolver.protocol import CANCEL_TASK, FIND_WORDS_TASK
from wordsolver.solver.broker import RequestBroker


class RecordingChannel:
    """In-memory channel: records sent requests; tests feed responses to the broker by hand."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self.broken = False

    def send(self, message: dict) -> None:
        if self.broken:
            raise ServiceUnavailable("channel broken")
        self.sent.append(message)

    def close(self) -> None:
        self.closed = True

    def requests(self) -> list[dict]:
        return [m for m in self.sent if m["task"] != CANCEL_TASK]

    def cancels(self) -> list[int]:
        return [m["id"] for m in self.sent if m["task"] == CANCEL_TASK]


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def broker(config, channel):
    broker = RequestBroker(config, channel=channel)
    yield broker
    broker.close()


def result(request_id, words):
    return {"id": request_id, "type": "result", "payload": words}


def error(request_id, exc):
    return {"id": request_id, "type": "error", "payload": exc.to_descriptor()}


def test_find_words_message(broker, channel):
    call = broker.find_words(["l", "e", "t"], "en", "general", 3)
    assert channel.sent == [
        {
            "id": call.request_id,
            "task": FIND_WORDS_TASK,
            "payload": {
                "letters": ["l", "e", "t"],
                "lang": "en",
                "category": "general",
                "minLen": 3,
            },
        }
    ]
    assert broker.pending_count == 1
    assert not call.done()


def test_find_words_defaults(broker, channel, config):
    broker.find_words("abc")
    payload = channel.sent[0]["payload"]
    assert payload["letters"] == ["a", "b", "c"]
    assert payload["lang"] == "en"
    assert payload["category"] == config.default_category
    assert payload["minLen"] == config.default_min_len


def test_ids_are_unique_and_increasing(broker, channel):
    calls = [broker.call(FIND_WORDS_TASK, {}) for _ in range(5)]
    ids = [c.request_id for c in calls]
    assert ids == sorted(set(ids))
    assert [m["id"] for m in channel.sent] == ids


def test_result_resolves_call(broker):
    call = broker.find_words("letr")
    broker.handle_message(result(call.request_id, ["let", "rel"]))
    assert call.result(timeout=1) == ["let", "rel"]
    assert broker.pending_count == 0


def test_empty_result_is_distinct_from_error(broker):
    call = broker.find_words("zzz")
    broker.handle_message(result(call.request_id, []))
    assert call.result(timeout=1) == []
    assert call.exception(timeout=1) is None


@pytest.mark.parametrize("exc", [DictionaryUnavailable("x"), InvalidRequest("y"), SolverError("z")])
def test_error_rejects_call(broker, exc):
    call = broker.find_words("letr")
    broker.handle_message(error(call.request_id, exc))
    with pytest.raises(type(exc)):
        call.result(timeout=1)
    assert broker.pending_count == 0


def test_concurrent_calls_resolve_by_id_in_any_order(broker):
    calls = [broker.find_words([str(i)]) for i in range(20)]
    shuffled = calls[:]
    random.Random(7).shuffle(shuffled)
    for call in shuffled:
        broker.handle_message(result(call.request_id, [f"word-{call.request_id}"]))
    for call in calls:
        assert call.result(timeout=1) == [f"word-{call.request_id}"]


def test_error_for_one_call_leaves_others_pending(broker):
    ok, bad = broker.find_words("letr"), broker.find_words("letr", lang="fr")
    broker.handle_message(error(bad.request_id, DictionaryUnavailable("no fr")))
    assert isinstance(bad.exception(timeout=1), DictionaryUnavailable)
    assert not ok.done()
    broker.handle_message(result(ok.request_id, ["let"]))
    assert ok.result(timeout=1) == ["let"]


@pytest.mark.parametrize(
    "message",
    [
        None,
        "junk",
        {"type": "result", "payload": []},
        {"id": "1", "type": "result", "payload": []},
        {"id": 1, "type": "progress", "payload": []},
        {"id": 999, "type": "result", "payload": []},
        {"id": 999, "type": "error", "payload": "boom"},
    ],
)
def test_unknown_and_malformed_responses_are_discarded(broker, message):
    call = broker.find_words("letr")
    broker.handle_message(message)
    assert not call.done()
    assert broker.pending_count == 1


def test_duplicate_response_is_discarded(broker):
    call = broker.find_words("letr")
    broker.handle_message(result(call.request_id, ["let"]))
    broker.handle_message(result(call.request_id, ["rel"]))
    broker.handle_message(error(call.request_id, InvalidRequest("late")))
    assert call.result(timeout=1) == ["let"]


def test_abandoned_call_response_is_harmless(broker):
    broker.find_words("letr")  # caller never looks at the handle
    broker.handle_message(result(1, ["let"]))
    assert broker.pending_count == 0


def test_cancel_by_id(broker, channel):
    call = broker.find_words("letr")
    assert broker.cancel(call.request_id)
    assert isinstance(call.exception(timeout=1), Cancelled)
    assert channel.cancels() == [call.request_id]
    assert broker.pending_count == 0
    # the worker's eventual answer is discarded
    broker.handle_message(error(call.request_id, Cancelled("skipped")))
    assert not broker.cancel(call.request_id)


def test_cancelling_the_handle_cancels_the_call(broker, channel):
    call = broker.find_words("letr")
    assert call.cancel()
    assert channel.cancels() == [call.request_id]
    assert broker.pending_count == 0
    broker.handle_message(result(call.request_id, ["let"]))
    assert call.cancelled()


def test_cancel_unknown_id(broker, channel):
    assert not broker.cancel(42)
    assert channel.cancels() == []


def test_failure_rejects_pending_and_later_calls(broker, channel):
    calls = [broker.find_words("letr") for _ in range(3)]
    broker.handle_failure(ServiceUnavailable("worker died"))
    for call in calls:
        assert isinstance(call.exception(timeout=1), ServiceUnavailable)
    assert broker.pending_count == 0

    later = broker.find_words("letr")
    assert isinstance(later.exception(timeout=1), ServiceUnavailable)
    assert len(channel.requests()) == 3


def test_send_failure_rejects_that_call(broker, channel):
    channel.broken = True
    call = broker.find_words("letr")
    assert isinstance(call.exception(timeout=1), ServiceUnavailable)
    assert broker.pending_count == 0


def test_close_cancels_pending_calls(broker, channel):
    calls = [broker.find_words("letr") for _ in range(3)]
    assert not broker.closed
    broker.close()
    assert channel.closed
    assert broker.closed
    for call in calls:
        assert isinstance(call.exception(timeout=1), Cancelled)
    assert broker.pending_count == 0
    # responses arriving after teardown are dropped
    broker.handle_message(result(calls[0].request_id, ["let"]))


def test_calls_after_close_fail_fast(broker, channel):
    broker.close()
    broker.close()
    call = broker.find_words("letr")
    assert isinstance(call.exception(timeout=1), ServiceUnavailable)
    assert channel.sent == []
    with pytest.raises(ServiceUnavailable):
        broker.start()


def test_done_callback_may_reenter_broker(broker, channel):
    first = broker.find_words("letr")
    follow_ups = []
    first.add_done_callback(lambda _: follow_ups.append(broker.find_words("tree")))
    broker.handle_message(result(first.request_id, ["let"]))
    assert len(follow_ups) == 1
    assert broker.pending_count == 1


def test_find_words_async(broker, channel):
    async def scenario():
        task = asyncio.ensure_future(broker.find_words_async("letr"))
        await asyncio.sleep(0)
        broker.handle_message(result(channel.sent[0]["id"], ["let", "rel"]))
        return await asyncio.wait_for(task, timeout=1)

    assert asyncio.run(scenario()) == ["let", "rel"]


def test_find_words_async_cancellation(broker, channel):
    async def scenario():
        task = asyncio.ensure_future(broker.find_words_async("letr"))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert broker.pending_count == 0
    assert channel.cancels() == [1]
