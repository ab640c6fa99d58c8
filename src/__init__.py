"""
cellmark - Extended-markdown compiler with embedded cells

Compiles markdown documents carrying YAML frontmatter and embedded cell
fences into rendered HTML, a root component with extracted metadata, or a
diagnostic dump of the intermediate trees.
"""

__version__ = "1.0.0"
__author__ = "Rudolph Pienaar"
__email__ = "rudolph.pienaar@gmail.com"

from .lib import (
    Compiler,
    compile,
    CompileError,
    FrontmatterParseError,
    OrphanPlaceholderError,
    DocumentCompileError,
    RenderError,
    LOG,
    state_connectToLogger,
)
from .models import CompileMode, CompileOptions

__all__ = [
    "Compiler",
    "compile",
    "CompileMode",
    "CompileOptions",
    "CompileError",
    "FrontmatterParseError",
    "OrphanPlaceholderError",
    "DocumentCompileError",
    "RenderError",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
