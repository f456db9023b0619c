"""
Classification of Qdrant transport failures.

Structured information (HTTP status codes, httpx exception types) is used
when the client exposes it; otherwise the error text is matched against
known markers. Callers only ever see the StoreErrorKind.
"""

from typing import Iterator

import httpx
from qdrant_client.http.exceptions import UnexpectedResponse

from ..exceptions import StoreErrorKind, VectorStoreError

UNAUTHORIZED_MARKERS = ("unauthorized", "forbidden", "invalid api key")
UNREACHABLE_MARKERS = (
    "econnrefused",
    "etimedout",
    "connection refused",
    "timed out",
    "name or service not known",
)
ALREADY_EXISTS_MARKERS = ("already exists",)

UNAUTHORIZED_MESSAGE = "Failed to authenticate with Qdrant. Please check your API key."
UNREACHABLE_MESSAGE = "Failed to connect to Qdrant. Please check your QDRANT_URL."


def _cause_chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    pending = [exc]
    while pending:
        current = pending.pop(0)
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        # ResponseHandlingException keeps the wrapped failure on .source
        source = getattr(current, "source", None)
        if isinstance(source, BaseException):
            pending.append(source)
        pending.append(current.__cause__ or current.__context__)


def _classify_structured(exc: BaseException) -> StoreErrorKind:
    for err in _cause_chain(exc):
        if isinstance(err, UnexpectedResponse):
            if err.status_code in (401, 403):
                return StoreErrorKind.UNAUTHORIZED
            if err.status_code == 409:
                return StoreErrorKind.ALREADY_EXISTS
        if isinstance(err, (httpx.TransportError, ConnectionRefusedError, TimeoutError)):
            return StoreErrorKind.UNREACHABLE
    return StoreErrorKind.UNKNOWN


def _classify_text(text: str) -> StoreErrorKind:
    lowered = text.lower()
    if any(marker in lowered for marker in UNAUTHORIZED_MARKERS):
        return StoreErrorKind.UNAUTHORIZED
    if any(marker in lowered for marker in UNREACHABLE_MARKERS):
        return StoreErrorKind.UNREACHABLE
    if any(marker in lowered for marker in ALREADY_EXISTS_MARKERS):
        return StoreErrorKind.ALREADY_EXISTS
    return StoreErrorKind.UNKNOWN


def classify_store_error(exc: BaseException) -> StoreErrorKind:
    """Map a raw Qdrant client failure onto a StoreErrorKind."""
    if isinstance(exc, VectorStoreError):
        return exc.kind

    kind = _classify_structured(exc)
    if kind is not StoreErrorKind.UNKNOWN:
        return kind

    # UnexpectedResponse puts the response body into str(); include the chain too
    text = " ".join(str(err) for err in _cause_chain(exc))
    return _classify_text(text)


def store_error_message(kind: StoreErrorKind, exc: BaseException, operation: str) -> str:
    """User-facing message for a classified failure."""
    if kind is StoreErrorKind.UNAUTHORIZED:
        return UNAUTHORIZED_MESSAGE
    if kind is StoreErrorKind.UNREACHABLE:
        return UNREACHABLE_MESSAGE
    return f"Failed to {operation}: {exc}"


def to_store_error(exc: BaseException, operation: str) -> VectorStoreError:
    """Wrap a raw client failure into a classified VectorStoreError."""
    if isinstance(exc, VectorStoreError):
        return exc
    kind = classify_store_error(exc)
    return VectorStoreError(
        kind,
        store_error_message(kind, exc, operation),
        details={"operation": operation, "error_type": type(exc).__name__},
        original_error=exc
    )
