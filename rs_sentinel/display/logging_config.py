"""Logging configuration setup."""

import copy
import logging
import logging.config
import os
import re
import sys
from datetime import datetime
from typing import Optional, Set, Tuple

from rs_sentinel.constants import LOG_DIR

# ── Token redaction filter ───────────────────────────────────────────────

_REDACTED = "***REDACTED***"

# Places a bearer token can show up in a log line: an Authorization
# header, a ``"token": "..."`` JSON field, or a ``token=...`` query pair.
_TOKEN_PATTERNS = (
    (re.compile(r"(Bearer\s+)[^\s\"',;]+", re.IGNORECASE), r"\1" + _REDACTED),
    (re.compile(r"""(["']token["']\s*:\s*["'])[^"']*(["'])"""), r"\1" + _REDACTED + r"\2"),
    (re.compile(r"(\btoken=)[^&\s]+"), r"\1" + _REDACTED),
)


class SecretRedactionFilter(logging.Filter):
    """Logging filter that scrubs bearer tokens and configured secrets.

    Request tokens are matched by shape, so nothing per request is kept.
    :meth:`register` is for the handful of fixed secrets the process is
    configured with (for example TIP credential headers).
    """

    def __init__(self) -> None:
        super().__init__()
        self._secrets: Set[str] = set()
        self._pattern: Optional["re.Pattern[str]"] = None

    def register(self, value: str) -> None:
        """Register a configured secret value for redaction."""
        if not value or len(value) < 8 or value in self._secrets:
            return
        self._secrets.add(value)
        # Longest first so overlapping secrets redact completely
        escaped = sorted((re.escape(s) for s in self._secrets), key=len, reverse=True)
        self._pattern = re.compile("|".join(escaped))

    def clear(self) -> None:
        self._secrets.clear()
        self._pattern = None

    def redact(self, text: str) -> str:
        for pattern, replacement in _TOKEN_PATTERNS:
            text = pattern.sub(replacement, text)
        if self._pattern is not None:
            text = self._pattern.sub(_REDACTED, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.redact(record.msg)
        if isinstance(record.args, dict):
            record.args = {
                k: self.redact(v) if isinstance(v, str) else v for k, v in record.args.items()
            }
        elif isinstance(record.args, tuple):
            record.args = tuple(self.redact(a) if isinstance(a, str) else a for a in record.args)
        return True


# Module-level singleton so the runtime can register configured secrets.
secret_redaction_filter = SecretRedactionFilter()

_APP_LOGGERS = (
    "rs_sentinel",
    "rs_sentinel.auth",
    "rs_sentinel.catalogue",
    "rs_sentinel.authz",
    "rs_sentinel.config",
    "rs_sentinel.query",
)

BASE_LOG_CFG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple_file": {
            "format": ("%(asctime)s - %(name)30s:%(lineno)-4d - " "%(levelname)-7s - %(message)s"),
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "file_handler": {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "simple_file",
            "filename": "temp_log_name.log",
            "encoding": "utf-8",
        },
    },
    "loggers": {
        "httpx": {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": "WARNING",
        },
        "httpcore": {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": "WARNING",
        },
    },
    "root": {
        "handlers": ["file_handler"],
        "level": "WARNING",
    },
}


def setup_logging(log_lvl_str: str, *, quiet: bool = False) -> Tuple[str, str]:
    """
    Set up the logging system.

    Writes to a timestamped file under ``LOG_DIR`` and applies the
    requested level to every ``rs_sentinel`` logger.

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        quiet: If *True*, suppress the ``print()`` status lines.

    Returns:
        A tuple of (log_file_path, validated_log_level).
    """
    log_lvl_valid = log_lvl_str.upper()
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if log_lvl_valid not in valid_levels:
        if not quiet:
            print(f"Warning: invalid log level '{log_lvl_str}'. Using 'INFO'.")
        log_lvl_valid = "INFO"

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    os.makedirs(LOG_DIR, exist_ok=True)
    log_fpath = os.path.join(LOG_DIR, f"rs_sentinel_{ts}_{log_lvl_valid}.log")

    log_cfg: dict = copy.deepcopy(BASE_LOG_CFG)
    log_cfg["handlers"]["file_handler"]["filename"] = log_fpath

    for name in _APP_LOGGERS:
        log_cfg["loggers"][name] = {
            "handlers": ["file_handler"],
            "propagate": False,
            "level": log_lvl_valid,
        }

    # Request lines from httpx are only useful while debugging
    http_level = "INFO" if log_lvl_valid == "DEBUG" else "WARNING"
    log_cfg["loggers"]["httpx"]["level"] = http_level
    log_cfg["root"]["level"] = log_lvl_valid if log_lvl_valid == "DEBUG" else "WARNING"

    try:
        logging.config.dictConfig(log_cfg)
        for handler in logging.root.handlers:
            handler.addFilter(secret_redaction_filter)
        if not quiet:
            print(f"Logging initialized. File log level: {log_lvl_valid}, log file: {log_fpath}")
    except (ValueError, TypeError, AttributeError, ImportError) as e_log_cfg:
        if not quiet:
            print(f"Error applying logging configuration: {e_log_cfg}", file=sys.stderr)

    return log_fpath, log_lvl_valid
