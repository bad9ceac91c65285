"""
Core module initialization.
Exports configuration and the error taxonomy.
"""

from table_orders.core.config import get_settings, Settings, EnvironmentMode
from table_orders.core.exceptions import (
    OrderEngineError,
    NotFound,
    ReferenceNotFound,
    InvalidInput,
    Conflict,
    InsufficientStock,
    InvalidState,
    InternalFailure,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "OrderEngineError",
    "NotFound",
    "ReferenceNotFound",
    "InvalidInput",
    "Conflict",
    "InsufficientStock",
    "InvalidState",
    "InternalFailure",
]
