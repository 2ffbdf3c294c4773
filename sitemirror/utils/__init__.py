"""Utilities (logging, retry, file helpers)"""
from .logging import log, vlog, warn, error, set_verbose, set_log_file
from .retry import retried
from .file_utils import local_size, apply_timestamps

__all__ = [
    "log", "vlog", "warn", "error", "set_verbose", "set_log_file",
    "retried",
    "local_size", "apply_timestamps",
]
