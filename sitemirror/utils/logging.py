"""
Logging utilities for sitemirror
"""
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

_verbose = False
_log_file: Optional[Path] = None


def set_verbose(verbose: bool):
    """Set the verbose flag"""
    global _verbose
    _verbose = verbose


def set_log_file(path: Optional[Path]):
    """Tee every logged line into *path* (append). None disables the file sink."""
    global _log_file
    _log_file = Path(path) if path else None
    if _log_file is not None:
        _log_file.parent.mkdir(parents=True, exist_ok=True)


def _emit(line: str, stream):
    print(line, file=stream, flush=True)
    if _log_file is None:
        return
    try:
        with _log_file.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as exc:
        print(f"⚠  cannot write log file {_log_file}: {exc}", file=sys.stderr, flush=True)


def log(msg: str):
    """Log a message with timestamp"""
    ts = datetime.now().strftime("%H:%M:%S")
    _emit(f"[{ts}] {msg}", sys.stdout)


def vlog(msg: str):
    """Log a verbose message (only if verbose mode is enabled)"""
    if _verbose:
        log(msg)


def warn(msg: str):
    """Log a warning message"""
    log(f"⚠  {msg}")


def error(msg: str):
    """Log an error message to stderr"""
    ts = datetime.now().strftime("%H:%M:%S")
    _emit(f"[{ts}] ✖  {msg}", sys.stderr)
