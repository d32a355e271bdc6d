#!/usr/bin/env python3
"""
Unified error handling for pkgforge.

Provides the structured error hierarchy used by the build driver, the
engines and the descriptor loaders, plus a Rich based handler that renders
errors for the operator and records them in the log stream.

Error categories:
- CONFIGURATION: fatal pre-flight problems (missing version, unknown engine)
- EXECUTION: retryable remote command failures
- RETRY: retry budget exhausted (attempts or wall-clock deadline)
- BACKEND: engine start/ship/retrieve/teardown failures
- BUILD: project operation failures (fetch, render, manifest)
"""

import logging
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.traceback import Traceback


class ErrorCategory(Enum):
    """Error category enumeration."""

    CONFIGURATION = "configuration"
    EXECUTION = "execution"
    RETRY = "retry"
    BACKEND = "backend"
    BUILD = "build"


@dataclass
class ErrorContext:
    """Where an error happened."""

    operation: str
    phase: Optional[str] = None
    component: Optional[str] = None
    engine: Optional[str] = None
    platform: Optional[str] = None
    project: Optional[str] = None
    file_path: Optional[str] = None
    additional_info: Optional[Dict[str, Any]] = None


class PkgForgeError(Exception):
    """Base class for all pkgforge errors.

    Attributes:
        message: Human readable message.
        category: ErrorCategory of the failure.
        context: Optional ErrorContext.
        recoverable: Whether retrying the operation may succeed.
        suggestions: Hints displayed to the operator.
        cause: Underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        context: Optional[ErrorContext] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.cause = cause


class ConfigurationError(PkgForgeError):
    """Fatal pre-flight configuration problem."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.CONFIGURATION, recoverable=False, **kwargs)


class TransientExecutionError(PkgForgeError):
    """A dispatched command failed; retrying may succeed."""

    def __init__(self, message: str, command: Optional[str] = None, **kwargs):
        super().__init__(message, ErrorCategory.EXECUTION, recoverable=True, **kwargs)
        self.command = command


class RetryExhaustedError(PkgForgeError):
    """Every attempt of a retried operation failed."""

    def __init__(self, message: str, attempts: int = 0, **kwargs):
        super().__init__(message, ErrorCategory.RETRY, recoverable=False, **kwargs)
        self.attempts = attempts


class RetryTimeoutError(RetryExhaustedError):
    """The wall-clock budget of a retried operation elapsed."""


class BackendError(PkgForgeError):
    """An engine failed to start, ship, retrieve or tear down."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.BACKEND, recoverable=False, **kwargs)


class BuildError(PkgForgeError):
    """A project operation (fetch, render, manifest) failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.BUILD, recoverable=False, **kwargs)


_CATEGORY_STYLE = {
    ErrorCategory.CONFIGURATION: ("⚙️", "Configuration Error", "red"),
    ErrorCategory.EXECUTION: ("💥", "Execution Error", "red"),
    ErrorCategory.RETRY: ("🔁", "Retry Exhausted", "red"),
    ErrorCategory.BACKEND: ("🖥️", "Backend Error", "red"),
    ErrorCategory.BUILD: ("🔨", "Build Error", "red"),
}


class ErrorHandler:
    """Renders errors on a Rich console and records them in the log."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)

    def handle_error(
        self,
        error: BaseException,
        context: Optional[ErrorContext] = None,
        show_traceback: Optional[bool] = None,
    ) -> None:
        """Display an error and log it with its traceback.

        Args:
            error: The exception to report.
            context: Context used when the error does not carry one.
            show_traceback: Print the Rich traceback; defaults to verbose.
        """
        if show_traceback is None:
            show_traceback = self.verbose

        if isinstance(error, PkgForgeError):
            panel = self._panel_for_pkgforge_error(error, context)
        else:
            panel = self._panel_for_generic_error(error, context)

        self.logger.error(
            "%s: %s", type(error).__name__, error, exc_info=(type(error), error, error.__traceback__)
        )
        self.console.print(panel)

        if show_traceback and error.__traceback__ is not None:
            self.console.print(
                Traceback.from_exception(type(error), error, error.__traceback__)
            )

    def _panel_for_pkgforge_error(
        self, error: PkgForgeError, context: Optional[ErrorContext]
    ) -> Panel:
        emoji, title, style = _CATEGORY_STYLE[error.category]
        body = Text(error.message, style="bold")

        ctx = error.context or context
        if ctx is not None:
            body.append("\n")
            for field_name, value in ctx.__dict__.items():
                if value is None:
                    continue
                body.append(f"\n{field_name}: ", style="dim")
                body.append(str(value))

        if error.cause is not None:
            body.append("\n\ncaused by: ", style="dim")
            body.append(f"{type(error.cause).__name__}: {error.cause}")

        if error.suggestions:
            body.append("\n\n💡 Suggestions:", style="cyan")
            for suggestion in error.suggestions:
                body.append(f"\n  • {suggestion}")

        return Panel(body, title=f"{emoji} {title}", border_style=style)

    def _panel_for_generic_error(
        self, error: BaseException, context: Optional[ErrorContext]
    ) -> Panel:
        body = Text(str(error) or repr(error), style="bold")
        if context is not None:
            body.append(f"\n\noperation: {context.operation}", style="dim")
            if context.phase:
                body.append(f"\nphase: {context.phase}", style="dim")
        if self.verbose:
            body.append("\n\n")
            body.append("".join(traceback.format_exception_only(type(error), error)).strip())
        return Panel(body, title=f"❌ {type(error).__name__}", border_style="red")


_error_handler: Optional[ErrorHandler] = None


def set_error_handler(handler: Optional[ErrorHandler]) -> None:
    """Install the handler used by handle_error()."""
    global _error_handler
    _error_handler = handler


def get_error_handler() -> Optional[ErrorHandler]:
    """Return the installed handler, if any."""
    return _error_handler


def handle_error(
    error: BaseException,
    context: Optional[ErrorContext] = None,
    show_traceback: Optional[bool] = None,
) -> None:
    """Report an error through the installed handler, or plain logging."""
    if _error_handler is not None:
        _error_handler.handle_error(error, context=context, show_traceback=show_traceback)
        return
    logging.error(
        "%s: %s", type(error).__name__, error, exc_info=(type(error), error, error.__traceback__)
    )


def create_error_context(operation: str, **kwargs) -> ErrorContext:
    """Convenience constructor for ErrorContext."""
    return ErrorContext(operation=operation, **kwargs)
