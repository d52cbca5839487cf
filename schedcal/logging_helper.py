"""
Logging helper module for terminal-first logging.
All output goes to stdout with formatted prefixes, and also to a log file.

The log file is opened on first write so that importing the package does not
touch the filesystem. Set SCHEDCAL_LOG_DIR to redirect it.
"""

import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

# Get project root directory
_project_root = Path(__file__).parent.parent

_log_file: Optional[TextIO] = None
_log_file_path: Optional[Path] = None
_lock = threading.Lock()


def _log_dir() -> Path:
    override = os.environ.get("SCHEDCAL_LOG_DIR")
    if override:
        return Path(override)
    return _project_root / "logs"


def _open_log_file() -> TextIO:
    global _log_file, _log_file_path
    if _log_file is None:
        log_dir = _log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        # Create log file with timestamp
        _log_file_path = log_dir / f"schedcal_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        _log_file = open(_log_file_path, 'a', encoding='utf-8')
    return _log_file


def _log(message: str):
    """Write message to both stdout and log file."""
    # Sync workers log from several threads; keep lines whole.
    with _lock:
        print(message)
        log_file = _open_log_file()
        log_file.write(message + '\n')
        log_file.flush()


class Log:
    """Simple logging class that outputs to stdout and log file with formatted prefixes."""

    @staticmethod
    def section(title: str):
        """Print a section header: blank line + '===== TITLE ====='"""
        _log("")
        _log(f"===== {title} =====")

    @staticmethod
    def info(message: str):
        """Print an info message: '[INFO] message'"""
        _log(f"[INFO] {message}")

    @staticmethod
    def warn(message: str):
        """Print a warning message: '[WARN] message'"""
        _log(f"[WARN] {message}")

    @staticmethod
    def error(message: str):
        """Print an error message: '[ERROR] message'"""
        _log(f"[ERROR] {message}")

    @staticmethod
    def kv(pairs: dict):
        """
        Print key-value pairs: '[KV] key=value | key2=value2'

        Args:
            pairs: Dictionary of key-value pairs to print
        """
        kv_string = " | ".join([f"{k}={v}" for k, v in pairs.items()])
        _log(f"[KV] {kv_string}")

    @staticmethod
    def get_log_path() -> str:
        """Get the path to the current log file, opening it if needed."""
        with _lock:
            _open_log_file()
        return str(_log_file_path)

