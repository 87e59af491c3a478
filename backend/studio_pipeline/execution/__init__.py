"""
Transformation execution.

The dispatcher chooses between live strategies (FFmpeg via AudioTool) and
the simulator, per job. Strategies are registered by preset category.
"""

from .errors import (
    ExecutionError,
    InputNotFoundError,
    ToolNotFoundError,
    ToolExecutionError,
    ToolTimeoutError,
    OutputWriteError,
    TransformationError,
    UnsupportedFormatError,
)
from .base import (
    OutputFile,
    TransformationResult,
    TransformationContext,
    TransformationStrategy,
    mime_type_for,
)
from .audio_tool import AudioTool
from .simulated import SimulatedExecutor
from .strategies import (
    AnalysisStrategy,
    MasteringStrategy,
    ConversionStrategy,
    MixingStrategy,
    default_strategies,
)
from .dispatcher import TransformationDispatcher

__all__ = [
    # Errors
    "ExecutionError",
    "InputNotFoundError",
    "ToolNotFoundError",
    "ToolExecutionError",
    "ToolTimeoutError",
    "OutputWriteError",
    "TransformationError",
    "UnsupportedFormatError",
    # Results
    "OutputFile",
    "TransformationResult",
    "TransformationContext",
    "TransformationStrategy",
    "mime_type_for",
    # Executors
    "AudioTool",
    "SimulatedExecutor",
    "AnalysisStrategy",
    "MasteringStrategy",
    "ConversionStrategy",
    "MixingStrategy",
    "default_strategies",
    "TransformationDispatcher",
]
