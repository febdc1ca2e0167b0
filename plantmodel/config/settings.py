"""
Configuration and Feature Flags for Plant Model Persistence

This module provides feature flags and default values used by the converters,
persistors and the model manager. Flags are controlled via environment
variables for safe toggling without code changes.

Usage:
    from plantmodel.config.settings import is_enabled, get_default

    if is_enabled('atomic_file_writes'):
        # Write to a temporary file, then replace the target
        ...

    offset_x = get_default('label_offset_x')

Environment Variables:
    PLANTMODEL_ATOMIC_WRITES=true/false      - Write files via temp file + os.replace
    PLANTMODEL_SORT_LEGACY_OUTPUT=true/false - Sort legacy output by component name
    PLANTMODEL_DEFAULT_SCALE=<float>         - Default layout scale (mm per pixel)
"""

import logging
import os
from typing import Any, Dict

logger = logging.getLogger(__name__)


# Feature flags with environment variable overrides
FEATURE_FLAGS: Dict[str, bool] = {
    # Temp file + os.replace for every persistor
    'atomic_file_writes': os.getenv('PLANTMODEL_ATOMIC_WRITES', 'true').lower() == 'true',

    # Legacy .opentcs files list components sorted by name within each kind
    'sort_legacy_output': os.getenv('PLANTMODEL_SORT_LEGACY_OUTPUT', 'true').lower() == 'true',
}


# Fallback values used when a document or overlay does not provide one
DEFAULTS: Dict[str, Any] = {
    'scale': float(os.getenv('PLANTMODEL_DEFAULT_SCALE', '50.0')),
    'label_offset_x': -10,
    'label_offset_y': -20,
    'color': '#FF0000',
    'layout_name': 'VLayout',
}


def _lookup(table: Dict[str, Any], name: str, what: str, plural: str) -> Any:
    """Value of name in table; KeyError listing the known names otherwise."""
    if name not in table:
        raise KeyError(f"Unknown {what}: '{name}'. Available {plural}: {', '.join(table)}")
    return table[name]


def is_enabled(flag: str) -> bool:
    """Whether a feature flag is on.

    Raises:
        KeyError: If flag name is not recognized
    """
    return _lookup(FEATURE_FLAGS, flag, "feature flag", "flags")


def get_all_flags() -> Dict[str, bool]:
    """Snapshot of all flags, e.g. to restore them after a test."""
    return dict(FEATURE_FLAGS)


def set_flag(flag: str, enabled: bool) -> None:
    """Override a flag at runtime. Tests use this; deployments use the environment.

    Raises:
        KeyError: If flag name is not recognized
    """
    _lookup(FEATURE_FLAGS, flag, "feature flag", "flags")
    FEATURE_FLAGS[flag] = bool(enabled)
    logger.debug(f"Feature flag '{flag}' set to {FEATURE_FLAGS[flag]}")


def get_default(name: str) -> Any:
    """
    Look up a fallback value.

    Args:
        name: Default name (e.g., 'label_offset_x', 'scale')

    Returns:
        The configured default

    Raises:
        KeyError: If the default name is not recognized
    """
    return _lookup(DEFAULTS, name, "default", "defaults")
