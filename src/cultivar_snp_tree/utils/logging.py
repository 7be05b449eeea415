"""
Logging utilities for the cultivar SNP phylogeny pipeline.

This module provides centralized logging configuration using loguru,
a mixin for class-bound loggers and a decorator that times pipeline stages.
"""

import sys
import time
import functools
from pathlib import Path
from typing import Optional, Dict, Any
from loguru import logger


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    rotation: str = "10 MB",
    retention: str = "1 month",
    compression: str = "gz",
) -> None:
    """
    Setup centralized logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        format_string: Custom format string
        rotation: Log rotation interval
        retention: Log retention period
        compression: Compression format for rotated logs
    """
    # Remove default logger
    logger.remove()

    if format_string is None:
        format_string = (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{name}:{function}:{line} | "
            "{message}"
        )

    logger.add(
        sys.stderr,
        format=format_string,
        level=level,
        colorize=True,
    )

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=format_string,
            level=level,
            rotation=rotation,
            retention=retention,
            compression=compression,
            enqueue=True,
        )

        error_file = log_file.parent / f"{log_file.stem}_errors.log"
        logger.add(
            error_file,
            format=format_string,
            level="ERROR",
            rotation=rotation,
            retention=retention,
            compression=compression,
            enqueue=True,
        )

    logger.debug("Logging system initialized")


def log_stage_start(stage: str, inputs: Dict[str, Any]) -> None:
    """
    Log the start of a pipeline stage.

    Args:
        stage: Stage name
        inputs: Input description
    """
    logger.bind(stage=stage, inputs=inputs).info(f"Starting {stage} stage")


def log_error_with_context(
    error: Exception,
    context: Dict[str, Any],
    stage: Optional[str] = None
) -> None:
    """
    Log error with additional context.

    Args:
        error: Exception that occurred
        context: Additional context information
        stage: Optional stage name
    """
    logger.bind(
        error_type=type(error).__name__,
        context=context,
        stage=stage,
    ).error(f"Error in {stage or 'operation'}: {error}")


class LoggerMixin:
    """Mixin class to add logging capabilities to any class."""

    @property
    def logger(self):
        """Get logger instance with class name."""
        return logger.bind(class_name=self.__class__.__name__)


def performance_monitor(func):
    """
    Decorator to monitor function performance.

    Args:
        func: Function to monitor

    Returns:
        Wrapped function with performance monitoring
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            log_error_with_context(
                e,
                {
                    "function": func.__name__,
                    "execution_time": time.time() - start_time,
                },
            )
            raise

        logger.info(f"Performance: {func.__name__} executed in {time.time() - start_time:.3f}s")
        return result

    return wrapper
