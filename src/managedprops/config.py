"""
Framework configuration for managed properties.

Holds library-wide defaults for history bounds, reference evaluation and
persistence behaviour. Components take an explicit value when given one and
fall back to the values here otherwise.

Environment overrides are read once when a FrameworkConfig is created:

    MANAGEDPROPS_HISTORY_LIMIT          int, <= 0 disables the bound
    MANAGEDPROPS_MAX_REFERENCE_DEPTH    int
    MANAGEDPROPS_MISSING_REFERENCES     keep | empty | fail
    MANAGEDPROPS_SAVING_DEFAULTS        1/true/yes
    MANAGEDPROPS_DISABLE_VALUE_CACHE    1/true/yes
"""

from dataclasses import dataclass
from enum import Enum
import logging
import os

logger = logging.getLogger(__name__)

_TRUTHY = ('1', 'true', 'yes')


class MissingReferencePolicy(Enum):
    """What a reference to a missing property (without inline default) expands to."""
    KEEP = "keep"    # leave the placeholder text as written
    EMPTY = "empty"  # substitute the empty string
    FAIL = "fail"    # raise UnresolvedReferenceError


def _env_flag(name: str) -> bool:
    return os.getenv(name, '').lower() in _TRUTHY


def _env_int(name: str, fallback: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return fallback
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}")
        return fallback


@dataclass
class FrameworkConfig:
    """
    Library-wide defaults.

    history_limit: maximum number of entries kept per change history;
        zero or negative keeps every entry.
    max_reference_depth: longest resolution path the evaluator follows before
        failing with ReferenceDepthError.
    missing_reference_policy: expansion of unresolved references.
    auto_trim: strip surrounding whitespace from raw values read through a manager.
    saving_defaults: persist values equal to their default.
    auto_load: load the backing file on first access instead of requiring an
        explicit load().
    disable_value_cache: bypass the token cache of evaluated values.
    """

    history_limit: int = 100
    max_reference_depth: int = 64
    missing_reference_policy: MissingReferencePolicy = MissingReferencePolicy.KEEP
    auto_trim: bool = True
    saving_defaults: bool = False
    auto_load: bool = True
    disable_value_cache: bool = False

    def __post_init__(self):
        """Apply environment variable overrides."""
        self.history_limit = _env_int('MANAGEDPROPS_HISTORY_LIMIT', self.history_limit)
        self.max_reference_depth = _env_int('MANAGEDPROPS_MAX_REFERENCE_DEPTH', self.max_reference_depth)

        policy = os.getenv('MANAGEDPROPS_MISSING_REFERENCES', '').strip().lower()
        if policy:
            try:
                self.missing_reference_policy = MissingReferencePolicy(policy)
            except ValueError:
                logger.warning(f"Ignoring unknown MANAGEDPROPS_MISSING_REFERENCES={policy!r}")

        if _env_flag('MANAGEDPROPS_SAVING_DEFAULTS'):
            self.saving_defaults = True
        if _env_flag('MANAGEDPROPS_DISABLE_VALUE_CACHE'):
            self.disable_value_cache = True


_framework_config: FrameworkConfig = FrameworkConfig()


def get_framework_config() -> FrameworkConfig:
    """
    Get the global framework configuration.

    Example:
        >>> from managedprops.config import get_framework_config
        >>> get_framework_config().history_limit = 500
    """
    return _framework_config


def set_framework_config(config: FrameworkConfig) -> None:
    """Replace the global framework configuration."""
    global _framework_config
    _framework_config = config


def reset_framework_config() -> FrameworkConfig:
    """Restore a fresh FrameworkConfig (environment overrides re-read)."""
    global _framework_config
    _framework_config = FrameworkConfig()
    return _framework_config
