"""Tests for log processors and request context."""

from learnhub.core.context import (
    PurchaseContext,
    clear_context,
    get_context,
    get_purchase_reference,
    set_request_id,
)
from learnhub.core.logging import add_context_processor, filter_sensitive_data


class TestFilterSensitiveData:
    """Tests for secret masking."""

    def test_masks_secret_keys(self) -> None:
        event = filter_sensitive_data(
            None,
            "info",
            {"event": "payment_event_received", "signature": "abcdef123456", "api_key": "xy"},
        )

        assert event["signature"] == "ab********56"
        assert event["api_key"] == "***"
        assert event["event"] == "payment_event_received"

    def test_masks_nested_values(self) -> None:
        event = filter_sensitive_data(None, "info", {"headers": {"authorization": "Bearer abc"}})

        assert event["headers"]["authorization"].startswith("Be")
        assert "abc" not in event["headers"]["authorization"]


class TestContext:
    """Tests for contextvar-backed request context."""

    def test_purchase_context_binds_reference(self) -> None:
        clear_context()
        with PurchaseContext("pur_123"):
            assert get_purchase_reference() == "pur_123"
            event = add_context_processor(None, "info", {"event": "x"})
            assert event["purchase_reference"] == "pur_123"

        assert get_purchase_reference() is None

    def test_request_id_in_context(self) -> None:
        clear_context()
        set_request_id("req-1")

        assert get_context()["request_id"] == "req-1"
        clear_context()

    def test_nested_purchase_context_restores_outer(self) -> None:
        clear_context()
        with PurchaseContext("pur_outer"):
            with PurchaseContext("pur_inner"):
                assert get_purchase_reference() == "pur_inner"
            assert get_purchase_reference() == "pur_outer"

    def test_clear_context_drops_unset_fields(self) -> None:
        set_request_id("req-2")
        clear_context()

        assert get_context() == {}
