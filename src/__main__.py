#!/usr/bin/env python3
"""
cellmark - Extended-markdown compiler with embedded cells

Compiles a markdown document with YAML frontmatter and embedded cell fences
into one of three outputs.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Modes:
    full          Rendered index.html plus one file per extracted cell
    mdsvex        component.svelte (compiled root) plus frontmatter.json
    mdsvex_input  diagnostics.txt, a dump of the intermediate trees

Usage:
    cellmark inputdir/ outputdir/ --inputFile notebook.md

Examples:
    # Rendered document
    cellmark . output/ --inputFile notebook.md

    # Root component only
    cellmark . output/ --inputFile notebook.md --mode mdsvex

    # Tree dump, hypertext only
    cellmark . output/ --inputFile notebook.md --mode mdsvex_input --diagnostics hypertext

    # Verbose output
    cellmark . output/ --inputFile notebook.md -vv
"""

import sys
import json
import asyncio
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .lib import compile, CompileError, __version__, LOG, state_connectToLogger
from .models import (
    ProgramState,
    pipeline,
    CompileMode,
    CompileOptions,
    RawResult,
    ComponentResult,
    RenderedResult,
)


DISPLAY_TITLE = r"""
  cellmark
  --------
  Extended-markdown compiler
"""

# Define CLI arguments
parser = ArgumentParser(
    description="cellmark - Extended-markdown compiler with embedded cells",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--inputFile", required=True, type=str, help="Input markdown file (relative to inputdir)"
)

parser.add_argument(
    "--mode",
    default=CompileMode.FULL.value,
    choices=[mode.value for mode in CompileMode],
    type=str,
    help="Output shape",
)

parser.add_argument(
    "--diagnostics",
    default=None,
    type=str,
    help="Comma separated diagnostic strategies for mdsvex_input mode",
)

parser.add_argument(
    "--outputSubdir",
    default=".",
    type=str,
    help="Subdirectory within outputdir for the compiled output",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and resolve all file paths.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - inputSourceFile: Resolved path to the markdown input
            - outputSubdirPath: Created output directory path
            - envOK: True if environment is valid

    Exits:
        1 if the input file is not found
    """

    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    input_file = state.inputdir / state.inputFile

    if not input_file.is_file():
        print(f"Error: Input file not found: {input_file}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.inputSourceFile = input_file
    LOG(f"Input file: {input_file}", level=2)

    state.outputSubdirPath = state.outputdir / state.outputSubdir
    state.outputSubdirPath.mkdir(parents=True, exist_ok=True)
    LOG(f"Output directory: {state.outputSubdirPath}", level=2)

    state.envOK = True
    return state


def source_compile(inputstate: ProgramState) -> ProgramState:
    """
    Read the markdown source and compile it in the requested mode.

    Args:
        inputstate: Program state with inputSourceFile set

    Returns:
        ProgramState with added field:
            - compileResult: RawResult, ComponentResult or RenderedResult

    Exits:
        1 if the file cannot be read or compilation fails
    """

    state = inputstate.copy()

    LOG("Reading source file...", level=1)

    try:
        source = state.inputSourceFile.read_text(encoding="utf-8")
        LOG(f"Read {len(source)} characters from {state.inputSourceFile.name}", level=2)
    except OSError as e:
        print(f"Error reading input file: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        diagnostics = None
        if state.diagnostics:
            diagnostics = tuple(name.strip() for name in state.diagnostics.split(",") if name.strip())
        options = CompileOptions(mode=state.mode, diagnostics=diagnostics, verbosity=state.verbosity)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    LOG(f"Compiling ({options.mode.value})...", level=1)
    try:
        state.compileResult = asyncio.run(compile(source, options))
    except CompileError as e:
        print(f"Compilation error: {e}", file=sys.stderr)
        sys.exit(1)

    return state


def outputs_write(inputstate: ProgramState) -> ProgramState:
    """
    Write the compile result to the output directory.

    Args:
        inputstate: Program state with compileResult populated

    Returns:
        ProgramState with added field:
            - outputFiles: Paths of all files written

    Exits:
        1 if compileResult is None
    """
    state = inputstate.copy()
    result = state.compileResult
    outdir = state.outputSubdirPath
    files: list[Path] = []

    if result is None:
        print("Error: No compile result available", file=sys.stderr)
        sys.exit(1)

    if isinstance(result, RawResult):
        files.append(outdir / "diagnostics.txt")
        files[-1].write_text(result.text, encoding="utf-8")

    elif isinstance(result, ComponentResult):
        files.append(outdir / "component.svelte")
        files[-1].write_text(result.code, encoding="utf-8")
        files.append(outdir / "frontmatter.json")
        files[-1].write_text(json.dumps(result.frontMatter, indent=2, default=str), encoding="utf-8")

    elif isinstance(result, RenderedResult):
        files.append(outdir / "index.html")
        files[-1].write_text(result.html, encoding="utf-8")
        for component in result.subComponents:
            files.append(outdir / component.path)
            files[-1].write_text(component.code, encoding="utf-8")

    for path in files:
        LOG(f"Wrote {path}", level=2)

    state.outputFiles = files
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display compilation results to user.

    Args:
        inputstate: Program state with outputFiles populated

    Returns:
        ProgramState unchanged (terminal pipeline stage)
    """
    state: ProgramState = inputstate.copy()

    if state.verbosity >= 1:
        LOG("\n✓ Compilation successful!", level=1)
        LOG(f"  Mode:  {state.mode}", level=1)
        for path in state.outputFiles:
            LOG(f"  Output: {path}", level=1)
    return state


@chris_plugin(
    parser=parser,
    title="cellmark - Extended-markdown compiler",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - compile a cellmark document.

    Orchestrates the CLI pipeline:
        1. env_check: Validate paths and environment
        2. source_compile: Read and compile the markdown source
        3. outputs_write: Write the mode's output files
        4. results_report: Display results to user

    Args:
        options: CLI arguments from argparse
        inputdir: Directory containing the markdown source
        outputdir: Directory where output will be written
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, source_compile, outputs_write, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
