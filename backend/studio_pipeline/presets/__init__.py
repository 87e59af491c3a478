"""
Preset system: named transformation recipes and their parameter schemas.

Presets are pure data with no side effects. The registry validates
caller-supplied overrides and computes effective parameters.
"""

from .errors import (
    PresetError,
    PresetNotFoundError,
    DuplicatePresetError,
)
from .models import (
    PresetCategory,
    ParameterType,
    ParameterSpec,
    PresetDefinition,
)
from .catalog import BUILTIN_PRESETS
from .registry import PresetRegistry, ValidationResult

__all__ = [
    # Errors
    "PresetError",
    "PresetNotFoundError",
    "DuplicatePresetError",
    # Models
    "PresetCategory",
    "ParameterType",
    "ParameterSpec",
    "PresetDefinition",
    "BUILTIN_PRESETS",
    # Registry
    "PresetRegistry",
    "ValidationResult",
]
