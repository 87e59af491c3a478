"""
Preset data models.

A preset is a named, categorized transformation recipe with a typed
parameter schema. Presets are pure data: they carry defaults and
constraints but never execute anything.

All models are frozen. The registry is immutable after construction.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PresetCategory(str, Enum):
    """Transformation family. Drives dispatch, output category and report wording."""

    ANALYSIS = "ANALYSIS"
    MASTERING = "MASTERING"
    CONVERSION = "CONVERSION"
    MIXING = "MIXING"
    EDITING = "EDITING"


class ParameterType(str, Enum):
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"


ParameterValue = Union[bool, int, float, str]


class ParameterSpec(BaseModel):
    """
    Constraints for a single preset parameter.

    min/max are inclusive. options is an exact-match allow-list.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    default: ParameterValue
    min: Optional[float] = None
    max: Optional[float] = None
    options: Optional[List[ParameterValue]] = None
    type: Optional[ParameterType] = None
    unit: Optional[str] = None

    @property
    def is_numeric(self) -> bool:
        return (
            self.type == ParameterType.NUMBER
            or self.min is not None
            or self.max is not None
        )


class PresetDefinition(BaseModel):
    """
    A named transformation recipe.

    output_suffix and output_mime_type name the placeholder outputs created
    when a run produces no files. stems lists the per-stem outputs of
    separation presets, in priority order.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str
    category: PresetCategory
    description: Optional[str] = None
    parameters: Dict[str, ParameterSpec] = Field(default_factory=dict)

    output_suffix: str = "_processed"
    output_mime_type: str = "audio/wav"
    stems: List[str] = Field(default_factory=list)

    def default_parameters(self) -> Dict[str, Any]:
        return {key: spec.default for key, spec in self.parameters.items()}

    @property
    def produces_final_assets(self) -> bool:
        """Mastering presets deliver FINAL assets; everything else is DERIVED."""
        return self.id.startswith("master")
