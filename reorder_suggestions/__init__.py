from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    ReorderError, ConfigError, DatabaseError, OrderError, CooldownActiveError,
    SupplierError, ProductError
)

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'ReorderError',
    'ConfigError',
    'DatabaseError',
    'OrderError',
    'CooldownActiveError',
    'SupplierError',
    'ProductError'
]
