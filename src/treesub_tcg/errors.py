from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error that ends a run with exit status 1."""


class PrerequisiteError(PipelineError):
    pass


class OptionValidationError(PipelineError, ValueError):
    pass


class StageExecutionError(PipelineError):
    pass


class CheckpointError(PipelineError):
    pass
