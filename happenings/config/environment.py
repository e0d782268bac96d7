"""Environment configuration module.

Import this before any module that reads environment variables: it loads
``.env`` (python-dotenv) once and decides whether the process runs as
development or production.

Usage:
    from happenings.config.environment import ENVIRONMENT, IS_PRODUCTION_ENVIRONMENT

In production the variables come from the platform; ``.env`` is only a
convenience for local runs and never overrides values already set.
"""

import os
import logging
from dotenv import load_dotenv

load_dotenv()

VALID_ENVIRONMENTS = ('development', 'production')

_requested = os.environ.get('ENVIRONMENT', '').strip().lower()
if _requested not in VALID_ENVIRONMENTS:
    logging.warning(
        f"ENVIRONMENT='{_requested}' is not one of {', '.join(VALID_ENVIRONMENTS)}; "
        "running as development"
    )
    _requested = 'development'

ENVIRONMENT = _requested
IS_PRODUCTION_ENVIRONMENT = ENVIRONMENT == 'production'

__all__ = ['ENVIRONMENT', 'IS_PRODUCTION_ENVIRONMENT']
