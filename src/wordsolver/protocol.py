"""Messages exchanged between the request broker and the solver service.

Messages are plain dicts so that they can be pickled onto `multiprocessing` queues:

* caller -> service: `{"id": int, "task": str, "payload": Any}`
* service -> caller: `{"id": int, "type": "result" | "error", "payload": Any}`

A `"result"` payload for `find-words-from-letters` is the list of matching words; an `"error"`
payload is an `ErrorDescriptor`.
"""

from typing import Any, Literal, TypedDict

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wordsolver.errors import ErrorDescriptor, InvalidRequest, SolverError

FIND_WORDS_TASK = "find-words-from-letters"
"""Task name for finding words that can be formed from a bag of letters."""

CANCEL_TASK = "cancel"
"""Task name asking the service to skip a request it has not started yet."""

READY_ID = 0
"""Id of the message the worker sends once it is ready; request ids start at 1."""


class WorkerRequest(TypedDict):
    """Message sent from the broker to the solver service."""

    id: int
    """Correlation id, unique among outstanding requests."""
    task: str
    """Name of the task to run."""
    payload: Any
    """Task-specific payload."""


class WorkerResponse(TypedDict):
    """Message sent from the solver service back to the broker."""

    id: int
    """Correlation id of the request being answered."""
    type: Literal["result", "error", "ready"]
    """Whether the request succeeded; "ready" is only sent once, at worker start-up."""
    payload: Any
    """Task result, or an ErrorDescriptor."""


class FindWordsPayload(BaseModel):
    """Payload of a `find-words-from-letters` request."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    letters: list[str]
    """Available letters, usually one character each."""

    lang: str = Field(min_length=1)
    """Language code, e.g. "en" or "ar"."""

    category: str = Field(min_length=1)
    """Word-list category."""

    min_len: int = Field(default=2, ge=0, alias="minLen")
    """Minimum length of the words to return."""


def parse_payload(model: type[BaseModel], payload: Any) -> Any:
    """Validate a task payload, raising `InvalidRequest` if it does not fit the model."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(map(str, err['loc'])) or 'payload'}: {err['msg']}" for err in e.errors()
        )
        raise InvalidRequest(f"Invalid payload: {errors}") from e


def make_request(request_id: int, task: str, payload: Any = None) -> WorkerRequest:
    """Build a request message."""
    return {"id": request_id, "task": task, "payload": payload}


def make_result(request_id: int, result: Any) -> WorkerResponse:
    """Build a successful response message."""
    return {"id": request_id, "type": "result", "payload": result}


def make_error(request_id: int, error: SolverError) -> WorkerResponse:
    """Build an error response message."""
    descriptor: ErrorDescriptor = error.to_descriptor()
    return {"id": request_id, "type": "error", "payload": descriptor}
