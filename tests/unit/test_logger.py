"""
Unit tests for logger utilities.

Tests ContextAwareLogger, AzureQueueHandler and configure_logging. The Azure
queue clients are the only things mocked.
"""

import json
import logging
import sys
from unittest.mock import MagicMock, Mock, patch

import pytest

from consent_exchange_core.exceptions import set_correlation_id
from consent_exchange_core.utils.logger import (
    AzureQueueHandler,
    ContextAwareLogger,
    CorrelationIdFilter,
    configure_logging,
    get_logger,
    reset_logging,
)

CONNECTION_STRING = "DefaultEndpointsProtocol=https;AccountName=test;AccountKey=dGVzdA==;"


def make_record(msg="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="consent_exchange.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextAwareLogger:
    def setup_method(self):
        self.mock_logger = Mock(spec=logging.Logger)
        self.context_logger = ContextAwareLogger(self.mock_logger)

    def test_no_extras(self):
        self.context_logger.info("Test message")

        self.mock_logger.info.assert_called_once_with("Test message", extra={})

    def test_extras_are_folded_into_message(self):
        self.context_logger.warning("Consent approved", extra={"consent_id": "c-1", "count": 2})

        self.mock_logger.warning.assert_called_once_with(
            "Consent approved | consent_id=c-1 | count=2",
            extra={"consent_id": "c-1", "count": 2},
        )

    def test_reserved_record_fields_are_not_passed_as_extra(self):
        """LogRecord refuses to overwrite its own attributes such as ``name``."""
        self.context_logger.info("Seeker loaded", extra={"name": "Acme", "seeker_id": "s-1"})

        self.mock_logger.info.assert_called_once_with(
            "Seeker loaded | name=Acme | seeker_id=s-1", extra={"seeker_id": "s-1"}
        )

    def test_other_kwargs_pass_through(self):
        error = RuntimeError("boom")

        self.context_logger.error("Failed", exc_info=error)

        self.mock_logger.error.assert_called_once_with("Failed", extra={}, exc_info=error)

    def test_set_level(self):
        self.context_logger.set_level(logging.DEBUG)

        self.mock_logger.setLevel.assert_called_once_with(logging.DEBUG)


class TestCorrelationIdFilter:
    def test_adds_current_correlation_id(self):
        set_correlation_id("corr-42")
        record = make_record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "corr-42"


class TestAzureQueueHandler:
    def test_without_connection_string(self, monkeypatch):
        monkeypatch.delenv("AzureWebJobsStorage", raising=False)

        with patch("consent_exchange_core.utils.logger.QueueServiceClient") as service_client:
            handler = AzureQueueHandler(queue_name="logs-queue")
            handler.emit(make_record())
            handler.flush()

        service_client.from_connection_string.assert_not_called()
        assert len(handler.log_buffer) == 1

    @patch("consent_exchange_core.utils.logger.QueueServiceClient")
    def test_creates_missing_queue(self, service_client):
        service = MagicMock()
        service.list_queues.return_value = []
        service_client.from_connection_string.return_value = service

        AzureQueueHandler(queue_name="logs-queue", connection_string=CONNECTION_STRING)

        service.create_queue.assert_called_once_with("logs-queue")

    @patch("consent_exchange_core.utils.logger.QueueClient")
    @patch("consent_exchange_core.utils.logger.QueueServiceClient")
    def test_flushes_when_batch_is_full(self, service_client, queue_client):
        existing = Mock()
        existing.name = "logs-queue"
        service_client.from_connection_string.return_value.list_queues.return_value = [existing]
        client = MagicMock()
        queue_client.from_connection_string.return_value = client

        handler = AzureQueueHandler(
            queue_name="logs-queue", connection_string=CONNECTION_STRING, batch_size=2
        )
        handler.emit(make_record("first", consent_id="c-1"))
        client.send_message.assert_not_called()
        handler.emit(make_record("second"))

        assert client.send_message.call_count == 2
        sent = json.loads(client.send_message.call_args_list[0].args[0])
        assert sent["message"] == "first"
        assert sent["level"] == "INFO"
        assert sent["context"] == {"consent_id": "c-1"}
        assert handler.log_buffer == []

    @patch("consent_exchange_core.utils.logger.QueueClient")
    @patch("consent_exchange_core.utils.logger.QueueServiceClient")
    def test_close_flushes_remaining(self, service_client, queue_client):
        service_client.from_connection_string.return_value.list_queues.return_value = []
        client = MagicMock()
        queue_client.from_connection_string.return_value = client

        handler = AzureQueueHandler(connection_string=CONNECTION_STRING, batch_size=10)
        handler.emit(make_record())
        handler.close()

        client.send_message.assert_called_once()

    def test_exception_details_in_entry(self, monkeypatch):
        monkeypatch.delenv("AzureWebJobsStorage", raising=False)
        handler = AzureQueueHandler(connection_string="")
        try:
            raise ValueError("bad key")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        entry = handler.build_entry(record)

        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad key"


class TestConfigureLogging:
    def test_console_only(self):
        logger = configure_logging("unit", log_level="DEBUG", enable_queue=False)

        handlers = logger.logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert logger.logger.level == logging.DEBUG
        assert get_logger() is logger

    @patch("consent_exchange_core.utils.logger.QueueClient")
    @patch("consent_exchange_core.utils.logger.QueueServiceClient")
    def test_queue_handler_attached(self, service_client, queue_client):
        service_client.from_connection_string.return_value.list_queues.return_value = []

        logger = configure_logging(
            "unit", enable_queue=True, connection_string=CONNECTION_STRING, queue_batch_size=50
        )

        queue_handlers = [h for h in logger.logger.handlers if isinstance(h, AzureQueueHandler)]
        assert len(queue_handlers) == 1
        assert queue_handlers[0].batch_size == 50

        # Flush while the queue client is still patched
        reset_logging()

    def test_reconfigure_replaces_handlers(self):
        configure_logging("unit", enable_queue=False)
        logger = configure_logging("unit", enable_queue=False)

        assert len(logger.logger.handlers) == 1

    @pytest.mark.parametrize("level,expected", [("WARNING", logging.WARNING), (logging.ERROR, logging.ERROR)])
    def test_fallback_logger_level(self, level, expected):
        assert get_logger(level).logger.level == expected
