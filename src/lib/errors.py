"""
Exceptions raised while compiling a cellmark document

Every error aborts the compile call it occurs in; none is recovered locally.
"""

from typing import Optional


class CompileError(Exception):
    """Base class for all cellmark compile failures"""
    pass


class FrontmatterParseError(CompileError):
    """Raised when the frontmatter block is not valid structured data"""

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(f"Invalid frontmatter: {message}")


class OrphanPlaceholderError(CompileError):
    """
    Raised when extracted cells and their placeholders do not pair up

    Signals broken wiring between the cell extractor and the cell inserter,
    never a problem with the input document.
    """

    def __init__(self, cell_id: Optional[str], message: str) -> None:
        self.cell_id = cell_id
        super().__init__(f"Placeholder {cell_id!r}: {message}")


class DocumentCompileError(CompileError):
    """Raised when the markdown engine rejects the document"""
    pass


class RenderError(CompileError):
    """Raised when the renderer fails on a compiled document"""
    pass
