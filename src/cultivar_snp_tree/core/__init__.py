"""Core functionality for the cultivar SNP phylogeny pipeline."""

from .exceptions import (
    PipelineError,
    ConfigurationError,
    PreconditionError,
    DataError,
    ValidationError,
    ToolError,
    MergeStageError,
)
from .steps import Step, PIPELINE_STEPS, StepSelection, select_steps
from .types import CHROMOSOMES, CultivarList, OutputLayout

__all__ = [
    "PipelineError",
    "ConfigurationError",
    "PreconditionError",
    "DataError",
    "ValidationError",
    "ToolError",
    "MergeStageError",
    "Step",
    "PIPELINE_STEPS",
    "StepSelection",
    "select_steps",
    "CHROMOSOMES",
    "CultivarList",
    "OutputLayout",
]
