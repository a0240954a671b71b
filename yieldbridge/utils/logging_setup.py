"""
Category logging for YieldBridge.

Every module logs through one of four category loggers, chosen from its
module path:

    system  - startup, shutdown, config, CLI
    wallet  - provider connections, keystore changes, session restore
    chain   - chain clients, bridge relay, HTTP calls
    txn     - orchestrator operations and the transaction ledger

Each category gets its own JSON-lines file under ``{log_dir}/{date}/``,
written from a background QueueListener so the event loop never blocks on
disk. Every line carries the operation ID bound by ``operation_scope``
(the transaction id while a chain call is in flight).
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import re
import sys
from datetime import datetime
from pathlib import Path
from queue import Queue
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from .trace_context import get_operation_id


ROOT_LOGGER = "yieldbridge"

CATEGORIES = ["system", "wallet", "chain", "txn"]

# File-name suffix per category
CATEGORY_SUFFIXES = {
    "system": "sys",
    "wallet": "wal",
    "chain": "chn",
    "txn": "txn",
}

# First matching prefix wins
MODULE_ROUTING: List[Tuple[str, str]] = [
    ("yieldbridge.infrastructure.adapters.wallets", "wallet"),
    ("yieldbridge.application.wallet_manager", "wallet"),
    ("yieldbridge.infrastructure.adapters.chains", "chain"),
    ("yieldbridge.application.orchestrator", "txn"),
    ("yieldbridge.application.transaction_ledger", "txn"),
    ("yieldbridge.domain.services", "txn"),
]

_state: Dict[str, object] = {
    "run_number": None,      # Shared by all category files of one process
    "timezone": None,        # ZoneInfo, or None for local time
    "verbose": False,
}
_listeners: List[logging.handlers.QueueListener] = []


def get_category_for_module(module_name: str) -> str:
    """Category for a module path; anything unrouted logs as ``system``."""
    for prefix, category in MODULE_ROUTING:
        if module_name.startswith(prefix):
            return category
    return "system"


def get_logger(module_name: str) -> logging.Logger:
    """
    Logger for ``module_name`` (usually ``__name__``).

    Example:
        logger = get_logger(__name__)
        logger.info("Connecting custody...")
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{get_category_for_module(module_name)}")


# -----------------------------------------------------------------------------
# Timestamps and verbosity
# -----------------------------------------------------------------------------

def set_log_timezone(tz: Optional[str] = None) -> None:
    """Use ``tz`` (e.g. "UTC", "Europe/Zurich") for log timestamps; None or "local" for local time."""
    _state["timezone"] = None if tz is None or tz.lower() == "local" else ZoneInfo(tz)


def get_log_timezone() -> Optional[ZoneInfo]:
    return _state["timezone"]  # type: ignore[return-value]


def get_current_timestamp() -> str:
    return datetime.now(get_log_timezone()).isoformat()


def set_verbose_mode(enabled: bool) -> None:
    _state["verbose"] = bool(enabled)


def is_verbose_mode() -> bool:
    return bool(_state["verbose"])


# -----------------------------------------------------------------------------
# Formatters
# -----------------------------------------------------------------------------

class OperationIdFilter(logging.Filter):
    """Stamp the caller's operation ID on the record before it crosses the queue."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "operation_id"):
            record.operation_id = get_operation_id()
        return True


def _operation_id(record: logging.LogRecord) -> str:
    return getattr(record, "operation_id", None) or get_operation_id()


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line: ``ts``, ``level``, ``cat``, ``op``, ``msg``.

    ``extra={"data": {...}}`` is copied under ``data``; exceptions are
    rendered under ``exception``. Non-JSON values (Decimal amounts,
    datetimes) fall back to ``str``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": get_current_timestamp(),
            "level": record.levelname,
            "cat": record.name.rpartition(".")[2] if record.name.startswith(ROOT_LOGGER) else "system",
            "op": _operation_id(record),
            "msg": record.getMessage(),
        }
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """``[LEVEL  ] [op] message``, colored when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        level = f"[{record.levelname:7}]"
        if self.use_colors:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"
        return f"{level} [{_operation_id(record)}] {record.getMessage()}"


# -----------------------------------------------------------------------------
# Run numbers
# -----------------------------------------------------------------------------

def _next_run_number(log_dir: str, env: str, date_str: str) -> int:
    """One past the highest ``yieldbridge_{env}_*_{date}_{N}.log`` already on disk."""
    day_dir = Path(log_dir) / date_str
    if not day_dir.is_dir():
        return 1
    pattern = re.compile(
        rf"^{ROOT_LOGGER}_{re.escape(env)}_[a-z]+_{re.escape(date_str)}_(\d+)\.log$"
    )
    runs = [int(m.group(1)) for m in map(pattern.match, os.listdir(day_dir)) if m]
    return max(runs, default=0) + 1


def reset_session_run_number() -> None:
    """Forget the run number so the next setup picks a fresh one."""
    _state["run_number"] = None


# -----------------------------------------------------------------------------
# Setup / teardown
# -----------------------------------------------------------------------------

def setup_category_logging(
    env: str,
    log_dir: str = "./logs",
    level: str = "INFO",
    console: bool = False,
    verbose: bool = False,
) -> Dict[str, logging.Logger]:
    """
    Attach a file (and optionally console) handler to every category logger.

    Files: ``{log_dir}/{date}/yieldbridge_{env}_{suffix}_{date}_{run}.log``.
    Calling it again replaces the previous handlers.

    Args:
        env: Environment name (dev/demo/prod), part of the file name.
        log_dir: Base directory.
        level: File log level.
        console: Also log WARNING+ (everything when verbose) to stderr.
        verbose: Force DEBUG level.

    Returns:
        Category name -> configured logger.
    """
    reset_logging(keep_run_number=True)
    set_verbose_mode(verbose)
    file_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    date_str = datetime.now().strftime("%Y-%m-%d")
    day_dir = Path(log_dir) / date_str
    day_dir.mkdir(parents=True, exist_ok=True)
    if _state["run_number"] is None:
        _state["run_number"] = _next_run_number(log_dir, env, date_str)
    run_number = _state["run_number"]

    loggers: Dict[str, logging.Logger] = {}
    for category in CATEGORIES:
        logger = logging.getLogger(f"{ROOT_LOGGER}.{category}")
        logger.setLevel(file_level)
        logger.propagate = False

        path = day_dir / f"{ROOT_LOGGER}_{env}_{CATEGORY_SUFFIXES[category]}_{date_str}_{run_number}.log"
        file_handler = logging.FileHandler(str(path), mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(file_level)

        log_queue: Queue = Queue(-1)
        queue_handler = logging.handlers.QueueHandler(log_queue)
        queue_handler.addFilter(OperationIdFilter())
        logger.addHandler(queue_handler)
        listener = logging.handlers.QueueListener(log_queue, file_handler, respect_handler_level=True)
        listener.start()
        _listeners.append(listener)

        if console:
            stream = logging.StreamHandler(sys.stderr)
            stream.setFormatter(ConsoleFormatter(use_colors=sys.stderr.isatty()))
            stream.setLevel(logging.DEBUG if verbose else logging.WARNING)
            logger.addHandler(stream)

        loggers[category] = logger
    return loggers


def flush_all_loggers() -> None:
    """Flush every handler attached to the category loggers."""
    for category in CATEGORIES:
        for handler in logging.getLogger(f"{ROOT_LOGGER}.{category}").handlers:
            handler.flush()


def shutdown_logging() -> None:
    """Stop the queue listeners; queued records are written out first."""
    while _listeners:
        listener = _listeners.pop()
        listener.stop()
        for handler in listener.handlers:
            handler.close()


def reset_logging(keep_run_number: bool = False) -> None:
    """
    Undo ``setup_category_logging``: stop listeners, detach handlers and let
    the category loggers propagate to the root logger again.
    """
    shutdown_logging()
    for category in CATEGORIES:
        logger = logging.getLogger(f"{ROOT_LOGGER}.{category}")
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
    if not keep_run_number:
        reset_session_run_number()
