import json
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Optional


DEFAULT_TIMEOUT = 10.0
DEFAULT_CONCURRENCY = 4


def is_tty() -> bool:
    try:
        return sys.stdout.isatty()
    except Exception:
        return False


def json_line(obj: dict) -> str:
    return json.dumps(obj, separators=(",", ":"))


def _resolve_bin(env_var: str, default: str) -> str:
    """Resolve a binary path. Honors the env override, falls back to PATH lookup."""
    prefer = os.getenv(env_var, default).strip() or default
    if os.path.sep in prefer:
        return prefer
    which = shutil.which(prefer)
    return which or prefer


def resolve_systemctl_bin() -> str:
    return _resolve_bin("SYSTOGGLE_SYSTEMCTL", "systemctl")


def resolve_elevate_bin() -> str:
    return _resolve_bin("SYSTOGGLE_ELEVATE", "pkexec")


def _env_number(env_var: str, default: float) -> float:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logging.getLogger(__name__).warning("ignoring %s=%r (not a number)", env_var, raw)
        return default
    return value if value > 0 else default


def command_timeout() -> float:
    """Seconds allowed for one enable/disable command, privilege prompt included."""
    return _env_number("SYSTOGGLE_TIMEOUT", DEFAULT_TIMEOUT)


def apply_concurrency() -> int:
    return int(_env_number("SYSTOGGLE_CONCURRENCY", DEFAULT_CONCURRENCY))


def setup_logging(debug: bool = False, log_file: Optional[Path] = None, quiet: bool = False) -> None:
    """Configure the package logger.

    `quiet` is for the dashboard: without a log file nothing may reach the
    terminal, so records are dropped.
    """
    logger = logging.getLogger("systoggle")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    handler: logging.Handler
    if log_file is not None:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    elif quiet:
        handler = logging.NullHandler()
    else:
        handler = logging.StreamHandler(sys.stderr)
        if not debug:
            handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
