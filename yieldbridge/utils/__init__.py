"""Utility modules."""

from .logging_setup import (
    setup_category_logging,
    flush_all_loggers,
    shutdown_logging,
    reset_logging,
    reset_session_run_number,
    set_log_timezone,
    get_log_timezone,
    get_current_timestamp,
    get_logger,
    set_verbose_mode,
    is_verbose_mode,
)
from .trace_context import (
    get_operation_id,
    set_operation_id,
    clear_operation_id,
    operation_scope,
    generate_operation_id,
)
from .timezone import now_utc, to_utc, parse_chain_timestamp

__all__ = [
    # Logging setup
    "setup_category_logging",
    "flush_all_loggers",
    "shutdown_logging",
    "reset_logging",
    "reset_session_run_number",
    "set_log_timezone",
    "get_log_timezone",
    "get_current_timestamp",
    "get_logger",
    "set_verbose_mode",
    "is_verbose_mode",
    # Trace context
    "get_operation_id",
    "set_operation_id",
    "clear_operation_id",
    "operation_scope",
    "generate_operation_id",
    # Time
    "now_utc",
    "to_utc",
    "parse_chain_timestamp",
]
