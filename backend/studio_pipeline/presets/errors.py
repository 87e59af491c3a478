"""
Preset-specific error types.

All errors inherit from PresetError for easy catching.
Errors are explicit and provide actionable messages.
"""

from ..jobs.models import ErrorCategory


class PresetError(Exception):
    """Base exception for all preset failures."""

    category = ErrorCategory.PROCESSING


class PresetNotFoundError(PresetError):
    """Raised when a referenced preset does not exist in the registry."""

    def __init__(self, preset_id: str):
        self.preset_id = preset_id
        super().__init__(f"Unknown preset: {preset_id}")


class DuplicatePresetError(PresetError):
    """Raised when two catalog entries share an id."""

    def __init__(self, preset_id: str):
        self.preset_id = preset_id
        super().__init__(f"Preset with ID '{preset_id}' already exists")
