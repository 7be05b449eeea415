"""
Custom exceptions for the cultivar SNP phylogeny pipeline.

This module defines the exception hierarchy used throughout the application.
Every fatal condition the CLI reports maps onto one of these classes so the
user sees a specific message and remediation hint.
"""

from typing import Optional, Any, Dict, List, Sequence


class PipelineError(Exception):
    """Base exception class for all pipeline errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
    ):
        """
        Initialize PipelineError.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            details: Optional additional error details
            hint: Optional remediation hint shown to the user
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.hint = hint

    def __str__(self) -> str:
        """Return string representation of the error."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.details:
            result += f" (Details: {self.details})"
        return result


class ConfigurationError(PipelineError):
    """Raised when there's a configuration-related error."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs
    ):
        """
        Initialize ConfigurationError.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            config_value: Invalid configuration value
            **kwargs: Additional arguments passed to parent
        """
        details = kwargs.setdefault("details", {})
        if config_key:
            details["config_key"] = config_key
        if config_value is not None:
            details["config_value"] = str(config_value)

        super().__init__(message, **kwargs)
        self.config_key = config_key
        self.config_value = config_value


class PreconditionError(PipelineError):
    """Raised when an expected upstream directory or file is absent."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        details = kwargs.setdefault("details", {})
        if path:
            details["path"] = path

        super().__init__(message, **kwargs)
        self.path = path


class DataError(PipelineError):
    """Raised when there's a data-related error."""

    def __init__(
        self,
        message: str,
        data_type: Optional[str] = None,
        data_source: Optional[str] = None,
        **kwargs
    ):
        """
        Initialize DataError.

        Args:
            message: Error message
            data_type: Type of data that caused the error
            data_source: Source of the problematic data
            **kwargs: Additional arguments passed to parent
        """
        details = kwargs.setdefault("details", {})
        if data_type:
            details["data_type"] = data_type
        if data_source:
            details["data_source"] = data_source

        super().__init__(message, **kwargs)
        self.data_type = data_type
        self.data_source = data_source


class ValidationError(PipelineError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        **kwargs
    ):
        details = kwargs.setdefault("details", {})
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            details["field_value"] = str(field_value)

        super().__init__(message, **kwargs)
        self.field_name = field_name
        self.field_value = field_value


class ToolError(PipelineError):
    """Raised when an external tool exits non-zero or cannot be started."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        log_file: Optional[str] = None,
        **kwargs
    ):
        """
        Initialize ToolError.

        Args:
            message: Error message
            command: Command line that failed
            returncode: Exit status of the tool, None if it never started
            log_file: Path of the captured stderr log
            **kwargs: Additional arguments passed to parent
        """
        details = kwargs.setdefault("details", {})
        if command:
            details["command"] = " ".join(str(part) for part in command)
        if returncode is not None:
            details["returncode"] = returncode
        if log_file:
            details["log_file"] = log_file

        super().__init__(message, **kwargs)
        self.command = list(command) if command else []
        self.returncode = returncode
        self.log_file = log_file


class MergeStageError(PipelineError):
    """Raised when one or more chromosome merge tasks fail."""

    def __init__(
        self,
        message: str,
        failed_chromosomes: Optional[List[str]] = None,
        errors: Optional[Dict[str, str]] = None,
        **kwargs
    ):
        details = kwargs.setdefault("details", {})
        if failed_chromosomes:
            details["failed_chromosomes"] = list(failed_chromosomes)

        super().__init__(message, **kwargs)
        self.failed_chromosomes = list(failed_chromosomes or [])
        self.errors = dict(errors or {})
