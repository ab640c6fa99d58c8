"""
Compiler for cellmark documents

Entry point of the compile pipeline. Each call builds a fresh PipelineState,
wires the frontmatter hook, the cell extractor and the cell inserter into
one DocumentCompiler run, then packages the result for the requested mode:

    mdsvex_input  -> RawResult(text)              diagnostic dump of both trees
    mdsvex        -> ComponentResult(code, ...)   compiled root, no rendering
    full          -> RenderedResult(html, ...)    sub-components built and rendered

Example:
    >>> result = asyncio.run(compile("---\\ntitle: Hi\\n---\\n# Head\\n"))
    >>> result.frontMatter
    {'title': 'Hi'}
"""

import inspect
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from .diagnostics import DiagnosticRecorder
from .engine import CompiledDocument, DocumentCompiler, FrontmatterConfig
from .extractor import cell_extractor
from .frontmatter import frontMatter_extractor
from .inserter import cell_inserter
from .log import LOG, LOG_error, state_connectToLogger, state_disconnectFromLogger
from .renderer import HTMLRenderer
from ..config import appsettings, AppSettings
from ..models.cells import (
    CellRecord,
    CompileMode,
    CompileOptions,
    CompileResult,
    ComponentResult,
    RawResult,
    RenderedResult,
    SubComponent,
)
from ..models.state import CompileStage, PipelineState


def subComponents_build(
    cells: List[CellRecord], settings: AppSettings = appsettings
) -> List[SubComponent]:
    """Build one sub-component per extracted cell, in document order"""
    return [
        SubComponent(
            path=settings.componentPath_make(cell.id),
            code=cell.body,
            sourceMap="",
            lang=cell.lang,
        )
        for cell in cells
    ]


class Compiler:
    """
    Compiles extended-markdown documents in one of three modes

    Responsibilities:
    - Create per-call PipelineState
    - Register the extraction transforms with the document compiler
    - Dispatch on CompileMode and package the mode's result
    - Log and re-raise every failure unchanged
    """

    def __init__(
        self,
        document_compiler: Optional[DocumentCompiler] = None,
        renderer: Optional[Any] = None,
        settings: AppSettings = appsettings,
    ) -> None:
        """
        Initialize compiler

        Args:
            document_compiler: Markdown engine (default: DocumentCompiler())
            renderer: Object with render(root, subComponents, frontMatter, options)
                      returning str or an awaitable of str (default: HTMLRenderer)
            settings: Application settings
        """
        self.document_compiler = document_compiler or DocumentCompiler()
        self.renderer = renderer or HTMLRenderer(settings)
        self.settings = settings

        self.modeHandlers: Dict[
            CompileMode, Callable[[str, PipelineState, CompileOptions], Awaitable[CompileResult]]
        ] = {
            CompileMode.MDSVEX_INPUT: self.raw_compile,
            CompileMode.MDSVEX: self.component_compile,
            CompileMode.FULL: self.rendered_compile,
        }

    def frontMatter_config(self, state: PipelineState) -> FrontmatterConfig:
        return FrontmatterConfig(
            parse=frontMatter_extractor(state, self.settings.frontmatter_type),
            marker=self.settings.frontmatter_marker,
            type=self.settings.frontmatter_type,
        )

    async def document_compile(
        self,
        source: str,
        state: PipelineState,
        remarkExtra: Optional[List[Callable]] = None,
        rehypeExtra: Optional[List[Callable]] = None,
    ) -> CompiledDocument:
        """
        Run the markdown engine with the extraction transforms registered.

        Args:
            source: Markdown document text
            state: PipelineState of this call
            remarkExtra: Markdown-tree plugins to run after the cell extractor
            rehypeExtra: Hypertext-tree plugins to run after the cell inserter

        Returns:
            CompiledDocument from the engine
        """
        state.stage_advance(CompileStage.PARSING)
        LOG("Compiling markdown document...", level=2)

        root = await self.document_compiler.compile(
            source,
            remarkPlugins=[cell_extractor(state, self.settings), *(remarkExtra or [])],
            rehypePlugins=[cell_inserter(state, self.settings), *(rehypeExtra or [])],
            frontmatter=self.frontMatter_config(state),
        )

        LOG(f"Document compiled: {len(state.cells)} cells", level=2)
        return root

    async def raw_compile(
        self, source: str, state: PipelineState, options: CompileOptions
    ) -> RawResult:
        names = options.diagnostics
        if names is None:
            names = tuple(self.settings.diagnostics)
        recorder = DiagnosticRecorder(names)
        remark, rehype = recorder.plugins_get()

        await self.document_compile(source, state, remark, rehype)

        state.stage_advance(CompileStage.DONE_RAW)
        return RawResult(text=recorder.text_get())

    async def component_compile(
        self, source: str, state: PipelineState, options: CompileOptions
    ) -> ComponentResult:
        root = await self.document_compile(source, state)

        state.stage_advance(CompileStage.DONE_COMPONENT)
        return ComponentResult(code=root.code, frontMatter=state.frontMatter)

    async def rendered_compile(
        self, source: str, state: PipelineState, options: CompileOptions
    ) -> RenderedResult:
        root = await self.document_compile(source, state)
        subComponents = subComponents_build(state.cells, self.settings)

        state.stage_advance(CompileStage.RENDERING)
        html = self.renderer.render(root, subComponents, state.frontMatter, options)
        if inspect.isawaitable(html):
            html = await html

        state.stage_advance(CompileStage.DONE_RENDERED)
        return RenderedResult(html=html, frontMatter=state.frontMatter, subComponents=subComponents)

    async def compile(
        self,
        source: str,
        options: Union[CompileOptions, Mapping[str, Any], None] = None,
        state: Optional[PipelineState] = None,
    ) -> CompileResult:
        """
        Compile a document in the mode selected by options.

        Args:
            source: Markdown document text
            options: CompileOptions, a mapping with the same keys, or None
            state: Fresh PipelineState to use (default: a new one); it must
                   not be reused across calls

        Returns:
            RawResult, ComponentResult or RenderedResult depending on mode

        Raises:
            CompileError: Any failure, after it is logged; never a partial result
            ValueError: Invalid options, after it is logged
        """
        fresh = state is None
        if fresh:
            state = PipelineState()
        token = state_connectToLogger(state)

        try:
            options = CompileOptions.options_coerce(options)
            if fresh:
                state.verbosity = options.verbosity

            handler = self.modeHandlers[options.mode]
            LOG(f"Compile mode: {options.mode.value}", level=2)
            return await handler(source, state, options)
        except Exception as e:
            stage = state.stage
            state.stage_fail(e)
            LOG_error(f"Compilation failed in stage {stage.value}: {e}", e)
            raise
        finally:
            state_disconnectFromLogger(token)


async def compile(
    input: str, options: Union[CompileOptions, Mapping[str, Any], None] = None
) -> CompileResult:
    """
    Compile an extended-markdown document.

    Args:
        input: Markdown document text
        options: {"mode": "mdsvex_input" | "mdsvex" | other} or CompileOptions

    Returns:
        Mode-shaped result object
    """
    return await Compiler().compile(input, options)
