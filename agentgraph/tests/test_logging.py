"""
Tests for shared/logging_config.py - execution-ID tagging and file output.
"""

import logging
import os

import pytest

from agentgraph.shared.config import AppConfig
from agentgraph.shared.logging_config import (
    ExecutionIDFilter, LOG_FORMAT, configure_logging, execution_id_ctx,
)


@pytest.fixture
def clean_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_filters, saved_level = root.handlers[:], root.filters[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers, root.filters = saved_handlers, saved_filters
    root.setLevel(saved_level)


class TestExecutionIDFilter:
    def test_default_placeholder(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        ExecutionIDFilter().filter(record)
        assert record.execution_id == "-"

    def test_uses_context_var(self):
        token = execution_id_ctx.set("EXE-test")
        try:
            record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
            ExecutionIDFilter().filter(record)
            assert record.execution_id == "EXE-test"
        finally:
            execution_id_ctx.reset(token)


class TestConfigureLogging:
    def test_file_handler_written(self, tmp_dir, clean_root_logger):
        configure_logging(AppConfig(log_file_dir=tmp_dir, log_level="DEBUG"))
        token = execution_id_ctx.set("EXE-file")
        try:
            logging.getLogger("agentgraph.test").info("hello from test")
        finally:
            execution_id_ctx.reset(token)
        for handler in clean_root_logger.handlers:
            handler.flush()

        files = [f for f in os.listdir(tmp_dir) if f.startswith("agentgraph_")]
        assert len(files) == 1
        with open(os.path.join(tmp_dir, files[0]), encoding="utf-8") as f:
            text = f.read()
        assert "[EXE-file] agentgraph.test:hello from test" in text

    def test_formatter_installed(self, clean_root_logger):
        configure_logging(AppConfig())
        assert clean_root_logger.handlers
        assert all(h.formatter._fmt == LOG_FORMAT for h in clean_root_logger.handlers)
