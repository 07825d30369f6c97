"""Tests for logging setup and audit entries."""

from unittest.mock import patch

import pytest
import structlog

from recurring_billing.logging import log_transition_event, setup_logging
from recurring_billing.settings import BillingEngineSettings, set_settings


@pytest.mark.unit
class TestSetupLogging:
    @patch("recurring_billing.logging.structlog.configure")
    def test_json_renderer_by_default(self, mock_configure):
        setup_logging()

        processors = mock_configure.call_args.kwargs["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    @patch("recurring_billing.logging.structlog.configure")
    def test_console_renderer(self, mock_configure):
        set_settings(BillingEngineSettings(_env_file=None, log_format="console"))

        setup_logging()

        processors = mock_configure.call_args.kwargs["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)


@pytest.mark.unit
class TestTransitionAudit:
    def test_transition_written_to_audit_logger(self):
        with patch("recurring_billing.logging.structlog.get_logger") as mock_get_logger:
            log_transition_event(
                "subscription", "sub_1", "ACTIVE", "RETRY", reason="retry_scheduled", attempt=1
            )

        mock_get_logger.assert_called_once_with("audit")
        mock_get_logger.return_value.info.assert_called_once_with(
            "subscription.transition",
            audit_resource_type="subscription",
            audit_resource_id="sub_1",
            from_status="ACTIVE",
            to_status="RETRY",
            reason="retry_scheduled",
            actor="system",
            attempt=1,
        )
