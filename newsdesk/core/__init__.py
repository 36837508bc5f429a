"""
Newsdesk Core
=============

Configuration, errors, logging, date handling and template helpers shared
by every module.
"""

from .config import Config, get_config_value, validate_config
from .errors import (NewsdeskError, ConfigurationError, BackendError, PermissionDeniedError,
                     AuthenticationError)
from .logging_service import LoggingService
from .dates import FirestoreTimestamp, EpochMillis, to_datetime, to_rfc3339
from .helpers import slugify, truncate_text, generate_unique_id, format_date, format_change

__all__ = [
    'Config', 'get_config_value', 'validate_config',
    'NewsdeskError', 'ConfigurationError', 'BackendError', 'PermissionDeniedError',
    'AuthenticationError',
    'LoggingService',
    'FirestoreTimestamp', 'EpochMillis', 'to_datetime', 'to_rfc3339',
    'slugify', 'truncate_text', 'generate_unique_id', 'format_date', 'format_change',
]
