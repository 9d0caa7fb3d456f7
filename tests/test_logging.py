"""
Tests for the logging module.
"""

import pytest
import structlog

from dealroom.logging import (
    REDACTED,
    add_context_info,
    get_deal_id,
    get_identity_id,
    get_logger,
    get_negotiation_id,
    get_trace_id,
    logging_context,
    redact_secrets,
)


class TestLoggingContext:
    """Test logging context management."""

    def test_logging_context_sets_values(self):
        """Test that logging context sets values correctly."""
        with logging_context(trace_id="trace_123", identity_id="uid_1", deal_id="deal_9"):
            assert get_trace_id() == "trace_123"
            assert get_identity_id() == "uid_1"
            assert get_deal_id() == "deal_9"

    def test_logging_context_restores_values(self):
        """Test that context is restored after exiting."""
        with logging_context(deal_id="outer"):
            assert get_deal_id() == "outer"

            with logging_context(deal_id="inner"):
                assert get_deal_id() == "inner"

            assert get_deal_id() == "outer"

        assert get_deal_id() is None

    def test_logging_context_partial_values(self):
        """Test that partial context values work."""
        with logging_context(identity_id="uid_only"):
            assert get_identity_id() == "uid_only"
            assert get_trace_id() is None
            assert get_deal_id() is None

    def test_context_restored_after_exception(self):
        try:
            with logging_context(trace_id="boom"):
                raise RuntimeError("fail")
        except RuntimeError:
            pass
        assert get_trace_id() is None

    def test_none_keeps_outer_value(self):
        with logging_context(deal_id="outer"):
            with logging_context(deal_id=None, negotiation_id="neg_1"):
                assert get_deal_id() == "outer"
                assert get_negotiation_id() == "neg_1"
            assert get_negotiation_id() is None

    def test_unknown_key_rejected(self):
        with pytest.raises(TypeError):
            with logging_context(tenant_id="t1"):
                pass


class TestContextProcessor:
    """Test the structlog processor that injects context IDs."""

    def test_adds_set_ids_only(self):
        with logging_context(identity_id="uid_1", deal_id="deal_9"):
            event = add_context_info(None, "info", {"event": "negotiation.submitting"})

        assert event["identity_id"] == "uid_1"
        assert event["deal_id"] == "deal_9"
        assert "trace_id" not in event

    def test_no_context_leaves_event_untouched(self):
        event = add_context_info(None, "info", {"event": "x"})
        assert event == {"event": "x"}

    def test_explicit_binding_wins(self):
        with logging_context(negotiation_id="from_context"):
            event = add_context_info(None, "info", {"negotiation_id": "bound"})
        assert event["negotiation_id"] == "bound"


class TestRedaction:
    def test_masks_credentials(self):
        event = redact_secrets(None, "info", {"event": "session.sign_in", "email": "a@b.co", "password": "hunter2"})

        assert event["password"] == REDACTED
        assert event["email"] == "a@b.co"

    def test_leaves_other_keys(self):
        assert redact_secrets(None, "info", {"event": "x", "deal_id": "d1"}) == {"event": "x", "deal_id": "d1"}


class TestGetLogger:
    def test_returns_bindable_logger(self):
        logger = get_logger(__name__)
        bound = logger.bind(deal_id="d1")
        assert bound is not None
        assert structlog.is_configured()
