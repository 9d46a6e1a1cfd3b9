"""Tests for structlog processors."""

from discussion_engine.core.context import RequestContext
from discussion_engine.core.logging import add_context_processor, filter_sensitive_data


class TestFilterSensitiveData:
    """Tokens and secrets never reach the log output verbatim."""

    def test_masks_token_fields(self) -> None:
        event = filter_sensitive_data(
            None, "info", {"event": "x", "access_token": "abcdefghij"}
        )

        assert event["access_token"] == "ab******ij"
        assert event["event"] == "x"

    def test_short_values_fully_masked(self) -> None:
        event = filter_sensitive_data(None, "info", {"secret": "abc"})

        assert event["secret"] == "***"

    def test_nested_dicts(self) -> None:
        event = filter_sensitive_data(
            None, "info", {"headers": {"authorization": "Bearer xyz123"}}
        )

        assert event["headers"]["authorization"].startswith("Be")
        assert "xyz" not in event["headers"]["authorization"]


def test_context_processor_adds_request_and_user() -> None:
    with RequestContext(request_id="req-1", user_id="u1", role="admin"):
        event = add_context_processor(None, "info", {"event": "comment_created"})

    assert event["request_id"] == "req-1"
    assert event["user_id"] == "u1"
