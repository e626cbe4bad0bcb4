# ipguard/config/models/__init__.py
from ipguard.config.models.core import LoggingConfig
from ipguard.config.models.security import (
    BlockingConfig,
    SecurityConfig,
    WhitelistConfig,
)

__all__ = [
    "LoggingConfig",
    "BlockingConfig",
    "SecurityConfig",
    "WhitelistConfig",
]
