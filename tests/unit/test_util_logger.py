"""
Structured logger tests.
"""

import json
import logging

import pytest

from util_logger import ComponentType, JSONFormatter, LoggerFactory, log_exceptions


def test_context_stamped_on_records(caplog):
    logger = LoggerFactory.create_with_context(
        ComponentType.SERVICE, "LoggerTest.Context", granule_id="G1", action="move"
    )
    with caplog.at_level(logging.INFO, logger=logger.logger.name):
        logger.info("moving")

    dims = caplog.records[-1].custom_dimensions
    assert dims["granule_id"] == "G1"
    assert dims["action"] == "move"
    assert dims["component_type"] == "service"
    assert dims["component_name"] == "LoggerTest.Context"
    assert "execution_arn" not in dims


def test_each_call_gets_its_own_context(caplog):
    reingest = LoggerFactory.create_with_context(
        ComponentType.SERVICE, "LoggerTest.PerCall", granule_id="G1", action="reingest"
    )
    cached = len(LoggerFactory._loggers)
    move = LoggerFactory.create_with_context(
        ComponentType.SERVICE, "LoggerTest.PerCall", granule_id="G2", action="move"
    )

    with caplog.at_level(logging.INFO, logger="service.LoggerTest.PerCall"):
        reingest.info("first")
        move.info("second")

    first, second = caplog.records[-2:]
    assert (first.custom_dimensions["granule_id"], first.custom_dimensions["action"]) == ("G1", "reingest")
    assert (second.custom_dimensions["granule_id"], second.custom_dimensions["action"]) == ("G2", "move")
    assert len(LoggerFactory._loggers) == cached
    assert reingest.logger is move.logger
    assert len(move.logger.handlers) == 1


def test_call_extra_dimensions_merged_with_context(caplog):
    logger = LoggerFactory.create_with_context(
        ComponentType.SERVICE, "LoggerTest.Extra", execution_arn="arn:exec:1"
    )
    with caplog.at_level(logging.INFO, logger=logger.logger.name):
        logger.info("event", extra={"custom_dimensions": {"pdr_name": "d.PDR"}})

    dims = caplog.records[-1].custom_dimensions
    assert dims["execution_arn"] == "arn:exec:1"
    assert dims["pdr_name"] == "d.PDR"


def test_same_name_returns_same_logger():
    first = LoggerFactory.create_logger(ComponentType.ADAPTER, "LoggerTest.Cached")
    second = LoggerFactory.create_logger(ComponentType.ADAPTER, "LoggerTest.Cached")
    assert first is second
    assert len(first.handlers) == 1


def test_json_formatter_includes_dimensions():
    record = logging.LogRecord("service.x", logging.WARNING, __file__, 1, "stale %s", ("event",), None)
    record.custom_dimensions = {"granule_id": "G1"}

    payload = json.loads(JSONFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "stale event"
    assert payload["customDimensions"] == {"granule_id": "G1"}


def test_log_exceptions_logs_and_reraises(caplog):
    logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "LoggerTest.Decorated")

    @log_exceptions(logger=logger)
    def explode():
        raise KeyError("boom")

    with caplog.at_level(logging.ERROR, logger=logger.name):
        with pytest.raises(KeyError):
            explode()

    assert caplog.records[-1].custom_dimensions["exception_type"] == "KeyError"
