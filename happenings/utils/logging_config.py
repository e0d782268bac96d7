"""Logging configuration for the application."""

import logging
import os
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ('sqlalchemy.engine', 'uvicorn.access')


def setup_logging(level=None):
    """
    Send application logs to stdout.

    The level comes from ``level``, then LOG_LEVEL, then INFO. Calling this
    again only adjusts levels; it never stacks a second handler.
    """
    level = (level or os.environ.get('LOG_LEVEL') or 'INFO').upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not any(getattr(h, 'stream', None) is sys.stdout for h in root_logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Unreadable schedules and override writes are reported at INFO/WARNING
    logging.getLogger('happenings').setLevel(level)
