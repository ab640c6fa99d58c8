"""
Models package for cellmark

Contains data structures and type definitions for the compilation pipeline.
"""

from .state import ProgramState, PipelineState, CompileStage, pipeline
from .cells import (
    CellRecord,
    SubComponent,
    CompileMode,
    CompileOptions,
    RawResult,
    ComponentResult,
    RenderedResult,
    CompileResult,
)

__all__ = [
    "ProgramState",
    "PipelineState",
    "CompileStage",
    "pipeline",
    "CellRecord",
    "SubComponent",
    "CompileMode",
    "CompileOptions",
    "RawResult",
    "ComponentResult",
    "RenderedResult",
    "CompileResult",
]
