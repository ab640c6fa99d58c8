"""
State models and pipeline helper

Defines PipelineState, the per-call record shared by the extraction
transforms, ProgramState for the CLI's functional pipeline, and the
pipeline() helper for composing transformation stages.
"""

import secrets
from enum import Enum
from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, List, Dict, Callable, TYPE_CHECKING
from dataclasses import dataclass, field

if TYPE_CHECKING:
    from .cells import CellRecord, CompileResult


PS = TypeVar("PS", bound="ProgramState")


class CompileStage(str, Enum):
    """Stages one compile call moves through"""

    IDLE = "idle"
    PARSING = "parsing"
    EXTRACTING = "extracting"
    CONVERTING = "converting"
    INSERTING = "inserting"
    RENDERING = "rendering"
    DONE_RAW = "done_raw"
    DONE_COMPONENT = "done_component"
    DONE_RENDERED = "done_rendered"
    FAILED = "failed"


TERMINAL_STAGES = frozenset(
    {
        CompileStage.DONE_RAW,
        CompileStage.DONE_COMPONENT,
        CompileStage.DONE_RENDERED,
        CompileStage.FAILED,
    }
)

STAGE_TRANSITIONS: Dict[CompileStage, frozenset] = {
    CompileStage.IDLE: frozenset({CompileStage.PARSING}),
    CompileStage.PARSING: frozenset({CompileStage.EXTRACTING}),
    CompileStage.EXTRACTING: frozenset({CompileStage.CONVERTING}),
    CompileStage.CONVERTING: frozenset({CompileStage.INSERTING}),
    CompileStage.INSERTING: frozenset(
        {CompileStage.DONE_RAW, CompileStage.DONE_COMPONENT, CompileStage.RENDERING}
    ),
    CompileStage.RENDERING: frozenset({CompileStage.DONE_RENDERED}),
}


@dataclass
class PipelineState:
    """
    Mutable record shared by the transforms of a single compile call.

    One instance is created per compile call and handed to the frontmatter
    parse hook, the cell extractor and the cell inserter by closure. It is
    never shared between calls, so concurrent compiles need no locking.

    Attributes:
        frontMatter: Parsed frontmatter mapping ({} when the document has none)
        cells: Extracted cells in document order
        resolved: Ids of the placeholders the inserter has replaced
        stage: Current CompileStage
        error: Exception that moved the call to FAILED, if any
        verbosity: Logging verbosity level for this call
        nonce: Random token stamped on this call's placeholders
    """

    frontMatter: Dict[str, Any] = field(default_factory=dict)
    cells: List["CellRecord"] = field(default_factory=list)
    resolved: List[str] = field(default_factory=list)
    stage: CompileStage = field(default=CompileStage.IDLE)
    error: Optional[BaseException] = field(default=None)
    verbosity: int = field(default=1)
    frontMatterSeen: bool = field(default=False)
    nonce: str = field(default_factory=lambda: secrets.token_hex(8))
    _idCounter: int = field(default=0, repr=False)

    def cellIds_get(self) -> List[str]:
        return [cell.id for cell in self.cells]

    def cellId_next(self, prefix: str) -> str:
        """
        Generate a cell id not used by any cell recorded so far.

        Args:
            prefix: Id prefix (e.g., "cell-")

        Returns:
            Fresh id such as "cell-0", "cell-1", ...
        """
        taken = set(self.cellIds_get())
        while True:
            cell_id = f"{prefix}{self._idCounter}"
            self._idCounter += 1
            if cell_id not in taken:
                return cell_id

    def stage_advance(self, stage: CompileStage) -> None:
        """
        Move to the next stage of the compile state machine.

        Raises:
            ValueError: If the transition is not allowed from the current stage
        """
        if self.stage in TERMINAL_STAGES:
            raise ValueError(f"Compile already finished in stage {self.stage.value}")
        if stage is CompileStage.FAILED:
            self.stage = stage
            return
        allowed = STAGE_TRANSITIONS.get(self.stage, frozenset())
        if stage not in allowed:
            raise ValueError(f"Illegal stage transition: {self.stage.value} -> {stage.value}")
        self.stage = stage

    def stage_fail(self, error: BaseException) -> None:
        """Record the triggering error and enter the FAILED stage"""
        self.error = error
        if self.stage not in TERMINAL_STAGES:
            self.stage = CompileStage.FAILED


@dataclass
class ProgramState:
    """
    Central state container for the CLI pipeline (state bus pattern).

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, inputFile, mode, diagnostics
        - env_check: inputSourceFile, outputSubdirPath, envOK
        - source_compile: compileResult
        - outputs_write: outputFiles
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Directory containing the source markdown file
        outputdir: Base output directory for compiled files
        verbosity: Logging verbosity level (1-3)
        inputFile: Input filename (relative to inputdir)
        mode: Compile mode name (mdsvex_input, mdsvex or full)
        diagnostics: Comma separated diagnostic strategy names
        outputSubdir: Subdirectory within outputdir for output
        envOK: Environment validation passed
        inputSourceFile: Resolved path to the input file
        outputSubdirPath: Final output directory (outputdir + outputSubdir)
        compileResult: Result object returned by compile()
        outputFiles: Files written by outputs_write
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    inputFile: str = field(default="")
    mode: str = field(default="full")
    diagnostics: Optional[str] = field(default=None)
    outputSubdir: str = field(default=".")

    # Pipeline state
    envOK: bool = field(default=False)
    inputSourceFile: Path = field(default=Path("/"))
    outputSubdirPath: Path = field(default=Path("/"))
    compileResult: Optional["CompileResult"] = field(default=None)
    outputFiles: List[Path] = field(default_factory=list)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        Args:
            options: Parsed CLI arguments (inputFile, mode, etc.)
            inputdir: Directory containing source files
            outputdir: Directory for compilation output

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        options_dict = vars(options)

        import dataclasses
        valid_fields = {f.name for f in dataclasses.fields(cls)}

        # Drop argparse entries that are not ProgramState fields
        filtered_options = {k: v for k, v in options_dict.items() if k in valid_fields}

        merged_args = {**filtered_options, "inputdir": inputdir, "outputdir": outputdir}

        return cls(**merged_args)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            source_compile,
            outputs_write,
            results_report
        )

    This is equivalent to:
        results_report(outputs_write(source_compile(env_check(initial_state))))
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
