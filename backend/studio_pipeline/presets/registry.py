"""
In-memory preset registry and parameter validator.

The registry is loaded once from the built-in catalog (or an explicit
list) and is read-only afterwards. Concurrent readers need no locking.

Validation collects every violation rather than stopping at the first,
so a caller sees the full list of problems in one response.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .catalog import BUILTIN_PRESETS
from .errors import DuplicatePresetError, PresetNotFoundError
from .models import ParameterSpec, ParameterType, PresetDefinition

logger = logging.getLogger(__name__)


class ValidationResult(BaseModel):
    """Outcome of validating supplied parameters against a preset schema."""

    model_config = ConfigDict(extra="forbid")

    valid: bool
    errors: List[str] = Field(default_factory=list)


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_number(value: Any) -> bool:
    # bool is an int subclass; True must never pass as 1
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _normalize_number(value: Any, spec: ParameterSpec) -> Any:
    """Integral floats (JSON 4.0) become ints for numeric and numeric-option parameters."""
    if not isinstance(value, float) or not value.is_integer():
        return value
    numeric_options = spec.options is not None and any(_is_number(o) for o in spec.options)
    if spec.is_numeric or numeric_options:
        return int(value)
    return value


def _matches_option(value: Any, option: Any) -> bool:
    if isinstance(value, bool) or isinstance(option, bool):
        return isinstance(value, bool) and isinstance(option, bool) and value == option
    if _is_number(value) and _is_number(option):
        return value == option
    return type(value) is type(option) and value == option


def _check_parameter(key: str, value: Any, spec: ParameterSpec) -> List[str]:
    errors: List[str] = []

    if spec.type == ParameterType.BOOLEAN:
        if not isinstance(value, bool):
            errors.append(f"{key} must be a boolean")
        return errors

    if spec.type == ParameterType.STRING and not isinstance(value, str):
        errors.append(f"{key} must be a string")
        return errors

    if spec.is_numeric:
        if not _is_number(value):
            errors.append(f"{key} must be a number")
            return errors
        if not math.isfinite(value):
            errors.append(f"{key} must be a finite number")
            return errors
        if spec.min is not None and value < spec.min:
            errors.append(f"{key} must be >= {_format_number(spec.min)}")
        if spec.max is not None and value > spec.max:
            errors.append(f"{key} must be <= {_format_number(spec.max)}")

    if spec.options is not None:
        if not any(_matches_option(value, option) for option in spec.options):
            allowed = ", ".join(str(option) for option in spec.options)
            errors.append(f"{key} must be one of: {allowed}")

    return errors


class PresetRegistry:
    """
    Read-only catalog of preset definitions.

    Lookups by unknown id return None; require_preset raises instead.
    """

    def __init__(self, presets: Optional[Iterable[PresetDefinition]] = None):
        """
        Load the registry.

        Args:
            presets: Definitions to load (defaults to the built-in catalog)

        Raises:
            DuplicatePresetError: If two definitions share an id
        """
        if presets is None:
            presets = BUILTIN_PRESETS

        self._presets: Dict[str, PresetDefinition] = {}
        for preset in presets:
            if preset.id in self._presets:
                raise DuplicatePresetError(preset.id)
            self._presets[preset.id] = preset

        logger.debug(f"[Presets] Loaded {len(self._presets)} preset definitions")

    def get_preset_definition(self, preset_id: str) -> Optional[PresetDefinition]:
        return self._presets.get(preset_id)

    def require_preset(self, preset_id: str) -> PresetDefinition:
        """
        Get a preset definition, raising if it does not exist.

        Raises:
            PresetNotFoundError: If preset_id is not in the catalog
        """
        preset = self._presets.get(preset_id)
        if preset is None:
            raise PresetNotFoundError(preset_id)
        return preset

    def list_presets(self) -> List[PresetDefinition]:
        return list(self._presets.values())

    def get_default_parameters(self, preset_id: str) -> Optional[Dict[str, Any]]:
        """Return a fresh dict of parameter defaults, or None for an unknown preset."""
        preset = self._presets.get(preset_id)
        if preset is None:
            return None
        return preset.default_parameters()

    def validate_parameters(
        self,
        preset_id: str,
        supplied: Optional[Mapping[str, Any]],
    ) -> ValidationResult:
        """
        Validate caller-supplied overrides against a preset schema.

        Every key in supplied is checked. Keys not supplied fall back to
        defaults and are not validated.

        Args:
            preset_id: Preset to validate against
            supplied: Parameter overrides (None or empty is always valid
                for a known preset)

        Returns:
            ValidationResult listing every violation found
        """
        preset = self._presets.get(preset_id)
        if preset is None:
            return ValidationResult(valid=False, errors=[f"Unknown preset: {preset_id}"])

        errors: List[str] = []
        for key, value in (supplied or {}).items():
            spec = preset.parameters.get(key)
            if spec is None:
                errors.append(f"Unknown parameter: {key}")
                continue
            errors.extend(_check_parameter(key, value, spec))

        return ValidationResult(valid=not errors, errors=errors)

    def effective_parameters(
        self,
        preset_id: str,
        supplied: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        """
        Merge preset defaults with supplied overrides (supplied wins per key).

        Integral floats for numeric parameters are stored as ints, so 4.0
        from a JSON body behaves exactly like 4.

        Raises:
            PresetNotFoundError: If preset_id is not in the catalog
        """
        preset = self.require_preset(preset_id)
        params = preset.default_parameters()
        for key, value in (supplied or {}).items():
            spec = preset.parameters.get(key)
            params[key] = _normalize_number(value, spec) if spec is not None else value
        return params
