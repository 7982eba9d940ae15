"""
Shared layer

Error taxonomy and runtime configuration.
"""

from .config import ForageSettings, get_settings
from .error_handler import ErrorCode, ForageError

__all__ = [
    "ForageSettings",
    "get_settings",
    "ErrorCode",
    "ForageError",
]
