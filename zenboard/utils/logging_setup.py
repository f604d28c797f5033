# Rev 0.3.0

"""zenboard logging (Rev 0.3.0)
- One root configuration per process; calling setup_logging() again swaps the
  handlers it installed earlier instead of stacking duplicates
- Rotating file under $XDG_STATE_HOME/zenboard/logs (5 MB x 7) + stdout
- Level from ZENBOARD_LOG_LEVEL unless passed explicitly
- Uncaught exceptions, warnings.warn() and Qt messages all end up in the log
"""
from __future__ import annotations
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

APP_NAME = "zenboard"
FMT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"
MAX_BYTES = 5_000_000
BACKUPS = 7

_installed: List[logging.Handler] = []


def get_logger(name: str) -> logging.Logger:
    """Module logger under the app namespace, e.g. get_logger("tracking") -> zenboard.tracking."""
    if name == APP_NAME or name.startswith(APP_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_NAME}.{name}")


def log_dir(app_name: str = APP_NAME) -> Path:
    base = Path(os.environ.get("XDG_STATE_HOME") or Path.home() / ".local" / "state")
    d = base / app_name / "logs"
    d.mkdir(parents=True, exist_ok=True)
    return d


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.environ.get("ZENBOARD_LOG_LEVEL") or "INFO").upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def _route_qt_messages() -> None:
    try:
        from PySide6.QtCore import QtMsgType, qInstallMessageHandler
    except ImportError:
        return
    levels = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }
    qt_log = get_logger("qt")

    def handler(msg_type, _context, message):
        qt_log.log(levels.get(msg_type, logging.INFO), message)

    qInstallMessageHandler(handler)


def _log_uncaught(exctype, value, tb) -> None:
    if issubclass(exctype, KeyboardInterrupt):
        sys.__excepthook__(exctype, value, tb)
        return
    get_logger("unhandled").critical("Uncaught exception", exc_info=(exctype, value, tb))
    sys.__excepthook__(exctype, value, tb)


def teardown_logging() -> None:
    """Detach and close the handlers installed by setup_logging()."""
    root = logging.getLogger()
    while _installed:
        h = _installed.pop()
        root.removeHandler(h)
        h.close()


def setup_logging(app_name: str = APP_NAME, level: Optional[str] = None) -> Path:
    teardown_logging()
    lvl = _resolve_level(level)
    logfile = log_dir(app_name) / f"{app_name}.log"
    formatter = logging.Formatter(FMT, DATEFMT)

    handlers: List[logging.Handler] = [
        RotatingFileHandler(logfile, maxBytes=MAX_BYTES, backupCount=BACKUPS, encoding="utf-8"),
        logging.StreamHandler(sys.stdout),
    ]
    root = logging.getLogger()
    root.setLevel(lvl)
    for h in handlers:
        h.setFormatter(formatter)
        h.setLevel(lvl)
        root.addHandler(h)
        _installed.append(h)

    logging.captureWarnings(True)
    sys.excepthook = _log_uncaught
    _route_qt_messages()

    get_logger("logging").info("Logging at %s -> %s", logging.getLevelName(lvl), logfile)
    return logfile
