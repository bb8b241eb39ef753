# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Logging bootstrap.

Handlers, levels and rotation are declared in etc/logging.conf; the only
thing decided here is where log/app.log lives.  ``LOG_DIR`` overrides the
default directory (containers usually point it at a mounted volume).

    from core.logger import logger
"""

import configparser
import logging
import logging.config
import os
from pathlib import Path

LOGGER_NAME = "eservice"

_ETC_DIR = Path(__file__).resolve().parents[2] / "etc"


def _log_dir() -> Path:
    configured = os.environ.get("LOG_DIR")
    if configured:
        return Path(configured)
    return _ETC_DIR.parent / "log"


def setup_logging(conf_path: Path = _ETC_DIR / "logging.conf") -> logging.Logger:
    """Apply *conf_path* and return the application logger."""
    log_dir = _log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    # fileConfig eval()s the handler args, so the path goes in as a quoted
    # literal with its backslashes escaped.
    log_file = str(log_dir / "app.log").replace("\\", "\\\\")
    text = conf_path.read_text(encoding="utf-8").replace("%(log_file)s", log_file)

    # Raw parser: format strings like %(asctime)s must survive untouched
    parser = configparser.RawConfigParser()
    parser.read_string(text)
    logging.config.fileConfig(parser, disable_existing_loggers=False)

    return logging.getLogger(LOGGER_NAME)


logger = setup_logging()
