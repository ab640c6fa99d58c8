"""
cellmark - Extended-markdown compiler with embedded cells

Compiles markdown with frontmatter and embedded cell fences into a rendered
document, a root component plus metadata, or a diagnostic tree dump.
"""

__version__ = "1.0.0"

from .compiler import Compiler, compile, subComponents_build
from .engine import DocumentCompiler, FrontmatterConfig, CompiledDocument
from .renderer import HTMLRenderer
from .errors import (
    CompileError,
    FrontmatterParseError,
    OrphanPlaceholderError,
    DocumentCompileError,
    RenderError,
)
from .log import LOG, LOG_error, state_connectToLogger, state_disconnectFromLogger

__all__ = [
    "Compiler",
    "compile",
    "subComponents_build",
    "DocumentCompiler",
    "FrontmatterConfig",
    "CompiledDocument",
    "HTMLRenderer",
    "CompileError",
    "FrontmatterParseError",
    "OrphanPlaceholderError",
    "DocumentCompileError",
    "RenderError",
    "LOG",
    "LOG_error",
    "state_connectToLogger",
    "state_disconnectFromLogger",
    "__version__",
]
