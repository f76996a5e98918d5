"""Error taxonomy shared by the solver service and the request broker.

Errors cross the process boundary as plain `ErrorDescriptor` dicts, so each exception class
carries a `kind` tag used to rebuild the right exception on the caller's side.
"""

from typing import TypedDict


class ErrorDescriptor(TypedDict):
    """Wire representation of a solver error."""

    kind: str
    """Name of the error class, e.g. "InvalidRequest"."""
    message: str
    """Human-readable description of the error."""


class SolverError(Exception):
    """Base class for all errors reported by the word solver."""

    kind = "SolverError"

    def to_descriptor(self) -> ErrorDescriptor:
        """Return the wire representation of this error."""
        return {"kind": self.kind, "message": str(self)}

    @staticmethod
    def from_descriptor(descriptor: object) -> "SolverError":
        """Rebuild an exception from a wire error payload.

        Unknown kinds, and payloads that are bare strings, become a plain `SolverError`.
        """
        if isinstance(descriptor, dict):
            kind = descriptor.get("kind")
            message = str(descriptor.get("message", ""))
        else:
            kind = None
            message = str(descriptor)
        error_cls = ERROR_KINDS.get(kind, SolverError) if isinstance(kind, str) else SolverError
        return error_cls(message)


class DictionaryUnavailable(SolverError):
    """No word list exists (or could be read) for the requested language and category."""

    kind = "DictionaryUnavailable"


class InvalidRequest(SolverError):
    """The request or its payload is malformed."""

    kind = "InvalidRequest"


class ServiceUnavailable(SolverError):
    """The background worker failed to start, died, or the broker is no longer usable."""

    kind = "ServiceUnavailable"


class Cancelled(SolverError):
    """The call was cancelled by the caller, or the broker was closed while it was pending."""

    kind = "Cancelled"


ERROR_KINDS: dict[str, type[SolverError]] = {
    cls.kind: cls
    for cls in (SolverError, DictionaryUnavailable, InvalidRequest, ServiceUnavailable, Cancelled)
}
"""Maps wire `kind` tags to exception classes."""
