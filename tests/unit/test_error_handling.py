#!/usr/bin/env python3
"""
Unit tests for pkgforge unified error handling system.

Tests the error types, context management, Rich console rendering and
the module level handler.
"""

import io
import logging
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from pkgforge.core.errors import (
    BackendError,
    BuildError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    ErrorHandler,
    PkgForgeError,
    RetryExhaustedError,
    RetryTimeoutError,
    TransientExecutionError,
    create_error_context,
    get_error_handler,
    handle_error,
    set_error_handler,
)


def recording_console():
    return Console(file=io.StringIO(), width=120, force_terminal=False)


@pytest.mark.unit
class TestErrorContext:
    """Test error context data structure."""

    def test_error_context_creation(self):
        context = ErrorContext(operation="run", phase="remote_build", engine="docker")

        assert context.operation == "run"
        assert context.phase == "remote_build"
        assert context.engine == "docker"
        assert context.platform is None
        assert context.additional_info is None

    def test_create_error_context(self):
        context = create_error_context("teardown", platform="el-9", project="demo")

        assert isinstance(context, ErrorContext)
        assert context.operation == "teardown"
        assert context.platform == "el-9"
        assert context.project == "demo"


@pytest.mark.unit
class TestErrorTypes:
    """Test the error hierarchy."""

    @pytest.mark.parametrize("error_class, category, recoverable", [
        (ConfigurationError, ErrorCategory.CONFIGURATION, False),
        (TransientExecutionError, ErrorCategory.EXECUTION, True),
        (RetryExhaustedError, ErrorCategory.RETRY, False),
        (BackendError, ErrorCategory.BACKEND, False),
        (BuildError, ErrorCategory.BUILD, False),
    ])
    def test_categories(self, error_class, category, recoverable):
        error = error_class("boom")

        assert isinstance(error, PkgForgeError)
        assert error.category == category
        assert error.recoverable is recoverable
        assert str(error) == "boom"
        assert error.suggestions == []

    def test_retry_errors_carry_attempts(self):
        error = RetryTimeoutError("too slow", attempts=2)

        assert isinstance(error, RetryExhaustedError)
        assert error.attempts == 2
        assert error.category == ErrorCategory.RETRY

    def test_transient_error_carries_command(self):
        assert TransientExecutionError("failed", command="make").command == "make"

    def test_cause_and_suggestions(self):
        cause = OSError("disk full")
        error = BuildError("write failed", cause=cause, suggestions=["free space"])

        assert error.cause is cause
        assert error.suggestions == ["free space"]


@pytest.mark.unit
class TestErrorHandler:
    """Test the Rich error handler."""

    def test_pkgforge_error_panel(self):
        console = recording_console()
        handler = ErrorHandler(console=console)
        error = ConfigurationError(
            "Project requires a version set, all is lost.",
            context=create_error_context("validate", project="demo"),
            suggestions=["Set version in the project descriptor"],
        )

        handler.handle_error(error)

        output = console.file.getvalue()
        assert "Configuration Error" in output
        assert "Project requires a version set, all is lost." in output
        assert "project: demo" in output
        assert "Set version in the project descriptor" in output

    def test_context_argument_used_when_error_has_none(self):
        console = recording_console()
        handler = ErrorHandler(console=console)

        handler.handle_error(
            BackendError("rsync failed"),
            context=create_error_context("run", phase="ship_workdir"),
        )

        assert "phase: ship_workdir" in console.file.getvalue()

    def test_cause_rendered(self):
        console = recording_console()
        handler = ErrorHandler(console=console)

        handler.handle_error(BuildError("fetch failed", cause=OSError("no route")))

        assert "caused by: OSError: no route" in console.file.getvalue()

    def test_generic_exception_panel(self):
        console = recording_console()
        handler = ErrorHandler(console=console)

        handler.handle_error(KeyError("platform"), context=create_error_context("run"))

        output = console.file.getvalue()
        assert "KeyError" in output
        assert "operation: run" in output

    def test_errors_are_logged(self, caplog):
        handler = ErrorHandler(console=recording_console())

        with caplog.at_level(logging.ERROR, logger="pkgforge.core.errors"):
            handler.handle_error(BackendError("docker cp failed"))

        assert "docker cp failed" in caplog.text

    def test_traceback_shown_when_verbose(self):
        console = recording_console()
        handler = ErrorHandler(console=console, verbose=True)

        try:
            raise BackendError("ssh refused")
        except BackendError as e:
            handler.handle_error(e)

        assert "Traceback" in console.file.getvalue()


@pytest.mark.unit
class TestGlobalHandler:
    """Test the module level handler functions."""

    def test_set_and_get(self):
        handler = ErrorHandler(console=recording_console())

        set_error_handler(handler)

        assert get_error_handler() is handler

    def test_handle_error_delegates(self):
        handler = MagicMock()
        set_error_handler(handler)
        error = BuildError("boom")
        context = create_error_context("run")

        handle_error(error, context=context)

        handler.handle_error.assert_called_once_with(error, context=context, show_traceback=None)

    def test_handle_error_without_handler_logs(self, caplog):
        set_error_handler(None)

        with caplog.at_level(logging.ERROR):
            handle_error(BuildError("render failed"))

        assert "render failed" in caplog.text
