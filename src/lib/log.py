"""
Centralized logging using Loguru with context-aware verbosity.

This module provides a LOG() function that respects the current state's
verbosity level without requiring explicit state passing.

Features:
- Context-aware logging tied to PipelineState / ProgramState verbosity
- Rich formatting with timestamps, colors, and metadata
- Task-safe using contextvars (concurrent compiles keep their own state)
- Works throughout lib modules without passing state

Usage:
    from lib.log import LOG, LOG_error, state_connectToLogger, state_disconnectFromLogger

    # At start of a compile call:
    token = state_connectToLogger(state)

    # Anywhere in that context:
    LOG("This message appears if verbosity >= 1", level=1)
    LOG("Debug details appear if verbosity >= 2", level=2)

    # Failures are always reported:
    LOG_error("Compilation failed", exc)

    # When the call ends:
    state_disconnectFromLogger(token)
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar, Token
import sys

# Context variable to hold the current state
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

# Configure loguru with cellmark-specific format
logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()  # Remove default handler
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> Token:
    """
    Connect a state object to the logging context.

    Call this at the start of each compile call to make the state's
    verbosity setting available to LOG() calls throughout that context.
    Each asyncio task runs in a copy of the context, so concurrent
    compiles never see each other's state.

    Args:
        state: PipelineState or ProgramState instance with verbosity attribute

    Returns:
        Token for state_disconnectFromLogger()
    """
    return _program_state.set(state)


def state_disconnectFromLogger(token: Token) -> None:
    """Restore the state that was connected before state_connectToLogger()"""
    _program_state.reset(token)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if current state's verbosity allows.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=debug)
        **kwargs: Additional loguru metadata

    Example:
        LOG("Extracted 3 cells", level=2)
    """
    state = _program_state.get()

    if state and hasattr(state, 'verbosity') and state.verbosity >= level:
        logger.opt(depth=1).debug(message, **kwargs)


def LOG_error(message: str, exc: Optional[BaseException] = None) -> None:
    """
    Report a failure on the diagnostic channel, regardless of verbosity.

    Args:
        message: Description of what failed
        exc: The exception that caused the failure; its traceback is attached
    """
    logger.opt(depth=1, exception=exc).error(message)
