"""SGP-RP core module.

Shared components used across all services:
- Configuration management
- Settings accessor
"""

from sgprp.core.config import (
    ConfigValidationError,
    DatabaseSettings,
    Environment,
    RecoverySettings,
    RegistrationSettings,
    SecuritySettings,
    Settings,
)
from sgprp.core.settings import (
    clear_settings_cache,
    get_settings,
    get_settings_safe,
)

__all__ = [
    "ConfigValidationError",
    "DatabaseSettings",
    "Environment",
    "RecoverySettings",
    "RegistrationSettings",
    "SecuritySettings",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    "get_settings_safe",
]
