# Common utilities and shared modules
"""
Shared components used by both the kit engine and the kit content modules:
- Data models (Pydantic schemas)
- Error taxonomy
- Logging configuration
- Project configuration
"""

from .config import settings, PROJECT_ROOT, CONFIG_DIR, DATA_DIR
from .errors import (
    AcquisitionError,
    ConfigurationError,
    RateLimitExceeded,
    StarterKitError,
)
from .logging import setup_logging

__all__ = [
    "settings",
    "PROJECT_ROOT",
    "CONFIG_DIR",
    "DATA_DIR",
    "AcquisitionError",
    "ConfigurationError",
    "RateLimitExceeded",
    "StarterKitError",
    "setup_logging",
]
