"""
Logging setup: execution-ID tagging via ContextVar, console + optional file handler.
"""

import contextvars
import logging
import os
from datetime import datetime

from .config import AppConfig

LOG_FORMAT = "%(asctime)s %(levelname)s [%(execution_id)s] %(name)s:%(message)s"

# ── Execution ID tracking via ContextVar ──────────────────────────────────────
execution_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar("execution_id", default="-")


class ExecutionIDFilter(logging.Filter):
    """Injects the current execution ID into every log record."""
    def filter(self, record):
        record.execution_id = execution_id_ctx.get("-")
        return True


def configure_logging(config: AppConfig) -> None:
    """Install the execution-ID formatter on the root logger (idempotent)."""
    log_level = getattr(logging, config.log_level, logging.INFO)
    eid_filter = ExecutionIDFilter()
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addFilter(eid_filter)

    # If root has no handlers yet, add a console handler
    if not root_logger.handlers:
        console = logging.StreamHandler()
        console.setLevel(log_level)
        root_logger.addHandler(console)

    for handler in root_logger.handlers:
        handler.setFormatter(formatter)
        handler.addFilter(eid_filter)

    # Add timestamped file handler if LOG_FILE_DIR is set
    if config.log_file_dir:
        os.makedirs(config.log_file_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        log_file = os.path.join(config.log_file_dir, f"agentgraph_{timestamp}.log")
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(eid_filter)
        root_logger.addHandler(file_handler)
        logging.getLogger(__name__).info(f"Logging to file: {log_file}")
