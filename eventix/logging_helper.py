"""
Logging helper module for terminal-first logging.
Output goes to stdout with formatted prefixes, and optionally to a log file.

Unlike an application log, the engine is usually embedded in a caller's
process, so output is gated by a level (default: warn) and file output is
only enabled when a log directory is configured.
"""

import os
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

LEVELS = {"debug": 10, "info": 20, "warn": 30, "error": 40, "off": 100}
DEFAULT_LEVEL = "warn"

_lock = threading.Lock()
_level = LEVELS.get(os.environ.get("EVENTIX_LOG_LEVEL", DEFAULT_LEVEL).lower(), LEVELS[DEFAULT_LEVEL])
_log_file = None
_log_file_path: Optional[Path] = None


def _open_log_file(log_dir: str) -> None:
    global _log_file, _log_file_path
    if _log_file is not None:
        _log_file.close()
    directory = Path(log_dir).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    # Create log file with timestamp
    _log_file_path = directory / f"eventix_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    _log_file = open(_log_file_path, 'a', encoding='utf-8')


if os.environ.get("EVENTIX_LOG_DIR"):
    _open_log_file(os.environ["EVENTIX_LOG_DIR"])


def _log(level: str, message: str):
    """Write message to stdout and the log file (if any) when level is enabled."""
    if LEVELS[level] < _level:
        return
    with _lock:
        print(message, file=sys.stdout)
        if _log_file is not None:
            _log_file.write(message + '\n')
            _log_file.flush()


class Log:
    """Simple logging class that outputs to stdout and log file with formatted prefixes."""

    @staticmethod
    def configure(level: Optional[str] = None, log_dir: Optional[str] = None):
        """
        Set the minimum level and/or start writing to a log file in log_dir.

        Args:
            level: One of debug, info, warn, error, off
            log_dir: Directory for the timestamped log file
        """
        global _level
        if level is not None:
            if level.lower() not in LEVELS:
                raise ValueError(f"Invalid log level: {level}")
            _level = LEVELS[level.lower()]
        if log_dir:
            with _lock:
                _open_log_file(log_dir)

    @staticmethod
    def section(title: str):
        """Print a section header: blank line + '===== TITLE ====='"""
        _log("info", "")
        _log("info", f"===== {title} =====")

    @staticmethod
    def debug(message: str):
        """Print a debug message: '[DEBUG] message'"""
        _log("debug", f"[DEBUG] {message}")

    @staticmethod
    def info(message: str):
        """Print an info message: '[INFO] message'"""
        _log("info", f"[INFO] {message}")

    @staticmethod
    def warn(message: str):
        """Print a warning message: '[WARN] message'"""
        _log("warn", f"[WARN] {message}")

    @staticmethod
    def error(message: str):
        """Print an error message: '[ERROR] message'"""
        _log("error", f"[ERROR] {message}")

    @staticmethod
    def kv(pairs: dict, level: str = "debug"):
        """
        Print key-value pairs: '[KV] key=value | key2=value2'

        Args:
            pairs: Dictionary of key-value pairs to print
            level: Level the record is emitted at
        """
        kv_string = " | ".join([f"{k}={v}" for k, v in pairs.items()])
        _log(level, f"[KV] {kv_string}")

    @staticmethod
    def get_log_path() -> Optional[str]:
        """Get the path to the current log file, if file logging is enabled."""
        return str(_log_file_path) if _log_file_path is not None else None
