"""
Unit tests for Qdrant failure classification.
"""

import httpx
import pytest
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from ragdocs_mcp.core.classification import (
    UNAUTHORIZED_MESSAGE,
    UNREACHABLE_MESSAGE,
    classify_store_error,
    to_store_error,
)
from ragdocs_mcp.exceptions import StoreErrorKind, VectorStoreError


def _unexpected(status_code: int, body: str = "") -> UnexpectedResponse:
    return UnexpectedResponse(
        status_code=status_code,
        reason_phrase="",
        content=body.encode(),
        headers=httpx.Headers(),
    )


class TestTextClassification:
    """Classification from error text alone."""

    def test_unauthorized(self):
        assert classify_store_error(Exception("Request failed: unauthorized")) is StoreErrorKind.UNAUTHORIZED

    @pytest.mark.parametrize("text", ["connect ECONNREFUSED 127.0.0.1:6333", "ETIMEDOUT while connecting"])
    def test_unreachable(self, text):
        assert classify_store_error(Exception(text)) is StoreErrorKind.UNREACHABLE

    def test_already_exists(self):
        err = Exception("Wrong input: Collection `docs` already exists!")
        assert classify_store_error(err) is StoreErrorKind.ALREADY_EXISTS

    def test_other_text_is_unknown(self):
        assert classify_store_error(Exception("disk quota exceeded")) is StoreErrorKind.UNKNOWN


class TestStructuredClassification:
    """Classification from status codes and exception types."""

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_status_codes(self, status):
        assert classify_store_error(_unexpected(status)) is StoreErrorKind.UNAUTHORIZED

    def test_conflict_status(self):
        assert classify_store_error(_unexpected(409)) is StoreErrorKind.ALREADY_EXISTS

    def test_httpx_connect_error(self):
        assert classify_store_error(httpx.ConnectError("boom")) is StoreErrorKind.UNREACHABLE

    def test_response_handling_exception(self):
        err = ResponseHandlingException(httpx.ReadTimeout("read timeout"))
        assert classify_store_error(err) is StoreErrorKind.UNREACHABLE

    def test_response_parse_failure_is_unknown(self):
        err = ResponseHandlingException(ValueError("1 validation error for CollectionsResponse"))
        assert classify_store_error(err) is StoreErrorKind.UNKNOWN

    def test_response_parse_failure_keeps_text(self):
        err = ResponseHandlingException(ValueError("1 validation error for CollectionsResponse"))

        store_error = to_store_error(err, "initialize Qdrant collection")

        assert store_error.kind is StoreErrorKind.UNKNOWN
        assert "1 validation error for CollectionsResponse" in store_error.message

    def test_cause_chain_is_inspected(self):
        try:
            try:
                raise ConnectionRefusedError("refused")
            except ConnectionRefusedError as inner:
                raise RuntimeError("wrapped") from inner
        except RuntimeError as outer:
            assert classify_store_error(outer) is StoreErrorKind.UNREACHABLE

    def test_server_error_body_is_unknown(self):
        assert classify_store_error(_unexpected(500, "internal")) is StoreErrorKind.UNKNOWN


class TestToStoreError:
    """Messages attached to classified errors."""

    def test_unauthorized_message_points_at_api_key(self):
        err = to_store_error(Exception("unauthorized"), "initialize Qdrant collection")
        assert err.kind is StoreErrorKind.UNAUTHORIZED
        assert err.message == UNAUTHORIZED_MESSAGE
        assert "API key" in err.message

    def test_unreachable_message_points_at_url(self):
        err = to_store_error(Exception("ECONNREFUSED"), "initialize Qdrant collection")
        assert err.message == UNREACHABLE_MESSAGE
        assert "QDRANT_URL" in err.message

    def test_unknown_preserves_original_text(self):
        original = Exception("shard 3 is in a bad state")
        err = to_store_error(original, "initialize Qdrant collection")
        assert err.kind is StoreErrorKind.UNKNOWN
        assert "shard 3 is in a bad state" in err.message
        assert err.original_error is original

    def test_existing_store_error_passes_through(self):
        existing = VectorStoreError(StoreErrorKind.UNREACHABLE, "down")
        assert to_store_error(existing, "anything") is existing
