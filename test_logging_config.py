"""Tests for connection-aware log records."""

import logging

from relay.logging_config import ConnectionIdFilter, SafeFormatter, connection_id_var


def _record():
    return logging.LogRecord("relay.test", logging.INFO, __file__, 1, "hello", None, None)


def test_filter_adds_current_connection_id():
    token = connection_id_var.set("c1")
    try:
        record = _record()
        assert ConnectionIdFilter().filter(record) is True
        assert record.connection_id == "c1"
    finally:
        connection_id_var.reset(token)


def test_formatter_tolerates_missing_connection_id():
    formatter = SafeFormatter("[%(connection_id)s] %(message)s")
    assert formatter.format(_record()) == "[-] hello"
