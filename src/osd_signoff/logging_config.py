"""
Logging Configuration for OSD Sign-Off

Console and rotating-file handlers on the root logger, driven by the
`logging` section of settings.yaml.

The service runs inside Werkzeug and pulls in Pillow, the Google API
client and SQLAlchemy, all of which log on their own. Their levels are
pinned through `logging.quiet_loggers` so a busy dock does not bury the
sign-off log under one line per HTTP request or PNG chunk.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, List, Optional

from .config_loader import config

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Used when settings.yaml has no logging.quiet_loggers section
DEFAULT_QUIET_LOGGERS = {
    'werkzeug': 'WARNING',
    'PIL': 'WARNING',
    'googleapiclient.discovery_cache': 'ERROR',
    'sqlalchemy.engine': 'WARNING',
}


def _level(name: str) -> int:
    return getattr(logging, str(name).upper())


def _build_handlers(
    logging_config: Dict,
    formatter: logging.Formatter,
    log_file: Optional[str],
    log_dir: Optional[str]
) -> List[logging.Handler]:
    handlers = []
    handler_config = logging_config.get('handlers', {}) or {}

    console_config = handler_config.get('console', {}) or {}
    if console_config.get('enabled', True):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(_level(console_config.get('level', 'INFO')))
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_config = handler_config.get('file', {}) or {}
    if file_config.get('enabled', True):
        logs_dir = Path(log_dir or config.get('paths.logs', './logs'))
        logs_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            logs_dir / (log_file or file_config.get('filename', 'osd_signoff.log')),
            maxBytes=file_config.get('max_bytes', 10485760),  # 10MB
            backupCount=file_config.get('backup_count', 5),
            encoding='utf-8'
        )
        file_handler.setLevel(_level(file_config.get('level', 'DEBUG')))
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    return handlers


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None
) -> None:
    """
    Configure application-wide logging.

    Replaces any handlers already on the root logger, so calling it twice
    (CLI then server) does not duplicate output.

    Args:
        log_level: Override config log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Override config log filename
        log_dir: Override paths.logs
    """
    logging_config = config.get_section('logging')

    level = log_level or logging_config.get('level', 'INFO')
    formatter = logging.Formatter(
        logging_config.get('format', DEFAULT_FORMAT),
        datefmt=logging_config.get('date_format', '%Y-%m-%d %H:%M:%S')
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(_level(level))
    root_logger.handlers.clear()

    handlers = _build_handlers(logging_config, formatter, log_file, log_dir)
    for handler in handlers:
        root_logger.addHandler(handler)

    quiet_loggers = logging_config.get('quiet_loggers') or DEFAULT_QUIET_LOGGERS
    for name, quiet_level in quiet_loggers.items():
        logging.getLogger(name).setLevel(_level(quiet_level))

    logger = logging.getLogger(__name__)
    logger.info(
        f"Logging initialized: level={level}, "
        f"handlers={[type(h).__name__ for h in handlers]}, "
        f"quiet={sorted(quiet_loggers)}"
    )
