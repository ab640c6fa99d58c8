"""
Cell and compile data models

Type-safe structures for extracted cells, derived sub-components, compile
options and the three mode-shaped compile results.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union


@dataclass
class CellRecord:
    """
    One embedded cell extracted from the markdown tree

    Attributes:
        id: Identifier unique within one compile call (e.g., "cell-0")
        body: Raw cell source, without the fence's trailing newline
        lang: Optional language word following the cell marker in the fence info
        line: 1-based source line of the opening fence (0 if unknown)

    Example:
        For source "```cell python\\nprint(1)\\n```" on line 3:
        CellRecord(id="cell-0", body="print(1)", lang="python", line=3)
    """
    id: str
    body: str
    lang: str = ""
    line: int = 0


@dataclass(frozen=True)
class SubComponent:
    """
    Standalone artifact built from one extracted cell

    Attributes:
        path: Path derived from the cell id (e.g., "./cell-0.svelte")
        code: The cell body
        sourceMap: Source map for code (empty, cells are copied verbatim)
        lang: Language of the originating cell, used for highlighting
    """
    path: str
    code: str
    sourceMap: str = ""
    lang: str = ""


class CompileMode(str, Enum):
    """Output shape selected by CompileOptions.mode"""

    MDSVEX_INPUT = "mdsvex_input"
    MDSVEX = "mdsvex"
    FULL = "full"

    @classmethod
    def mode_parse(cls, value: Union[str, "CompileMode", None]) -> "CompileMode":
        """
        Map a mode name to a CompileMode.

        Any name other than "mdsvex_input" and "mdsvex" selects FULL.
        """
        if isinstance(value, cls):
            return value
        for mode in (cls.MDSVEX_INPUT, cls.MDSVEX):
            if value == mode.value:
                return mode
        return cls.FULL


@dataclass
class CompileOptions:
    """
    Options for one compile call

    Attributes:
        mode: Output shape (see CompileMode)
        diagnostics: Diagnostic strategy names for MDSVEX_INPUT mode
                     (None selects appsettings.diagnostics)
        verbosity: Logging verbosity level for this call
    """
    mode: CompileMode = CompileMode.FULL
    diagnostics: Optional[Tuple[str, ...]] = None
    verbosity: int = 1

    def __post_init__(self) -> None:
        self.mode = CompileMode.mode_parse(self.mode)
        if self.diagnostics is not None:
            from ..lib.diagnostics import DIAGNOSTIC_STRATEGIES

            self.diagnostics = tuple(self.diagnostics)
            unknown = [name for name in self.diagnostics if name not in DIAGNOSTIC_STRATEGIES]
            if unknown:
                raise ValueError(f"Unknown diagnostic strategies: {', '.join(unknown)}")

    @classmethod
    def options_coerce(
        cls, options: Union["CompileOptions", Mapping[str, Any], None]
    ) -> "CompileOptions":
        """Build CompileOptions from None, a mapping, or an existing instance"""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls(
            mode=CompileMode.mode_parse(options.get("mode")),
            diagnostics=options.get("diagnostics"),
            verbosity=options.get("verbosity", 1),
        )


@dataclass
class RawResult:
    """MDSVEX_INPUT result: diagnostic dump of the intermediate trees"""
    text: str


@dataclass
class ComponentResult:
    """MDSVEX result: compiled root component source plus its frontmatter"""
    code: str
    frontMatter: Dict[str, Any]


@dataclass
class RenderedResult:
    """FULL result: rendered document, its frontmatter and the sub-components"""
    html: str
    frontMatter: Dict[str, Any]
    subComponents: List[SubComponent] = field(default_factory=list)


CompileResult = Union[RawResult, ComponentResult, RenderedResult]
