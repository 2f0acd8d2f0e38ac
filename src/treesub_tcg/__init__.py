"""treesub-tcg package."""

from .checkpoint import CheckpointRecord, CheckpointStore
from .context import RunContext, Toolchain, build_context
from .driver import PipelineDriver, PipelineOutcome
from .executor import StepExecutor, StepResult
from .stages import STAGES, Stage, build_stages
from .validate import ValidationResult, validate_outputs

__all__ = [
    "CheckpointRecord",
    "CheckpointStore",
    "PipelineDriver",
    "PipelineOutcome",
    "RunContext",
    "STAGES",
    "Stage",
    "StepExecutor",
    "StepResult",
    "Toolchain",
    "ValidationResult",
    "build_context",
    "build_stages",
    "validate_outputs",
]

__version__ = "0.3.0"
