"""
Console logging on stdout, plus daily logs via TimedRotatingFileHandler (midnight)
when a log directory is configured.
Log: tick results, failure streak start/progress/recovery, poweroff, errors, start/stop.
"""
import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_path: Optional[str] = None) -> logging.Logger:
    """
    Configure root logger with stdout and, if log_path is set, a daily rotating
    file '<log_path>/pingoff.log'. Returns the app logger ('pingoff').
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_path:
        log_dir = Path(log_path)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = TimedRotatingFileHandler(log_dir / "pingoff.log", when="midnight", backupCount=30, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(logging.INFO)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    logger = logging.getLogger("pingoff")
    logger.setLevel(logging.DEBUG)
    return logger
