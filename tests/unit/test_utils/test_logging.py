"""Unit tests for structlog setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from cmdbwalk.utils.logging import setup_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


def _last_json_line(out: str) -> dict:
    lines = [line for line in out.splitlines() if line.strip()]
    return json.loads(lines[-1])


def test_events_carry_instance(capsys):
    setup_logging("INFO", "json", instance="https://dev12345.service-now.com")

    structlog.get_logger("cmdbwalk.test_logging.instance").info("walk_started", root="abc")

    record = _last_json_line(capsys.readouterr().out)
    assert record["event"] == "walk_started"
    assert record["root"] == "abc"
    assert record["sn_instance"] == "https://dev12345.service-now.com"
    assert record["level"] == "info"


def test_instance_is_omitted_when_not_configured(capsys):
    setup_logging("INFO", "json")

    structlog.get_logger("cmdbwalk.test_logging.bare").info("walk_started")

    record = _last_json_line(capsys.readouterr().out)
    assert "sn_instance" not in record


def test_level_filters_debug_events(capsys):
    setup_logging("WARNING", "json", instance="https://dev12345.service-now.com")

    structlog.get_logger("cmdbwalk.test_logging.level").debug("request_throttled", waited_ms=5)

    assert capsys.readouterr().out == ""
