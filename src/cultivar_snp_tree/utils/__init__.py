"""Utility functions for the cultivar SNP phylogeny pipeline."""

from .logging import setup_logging, LoggerMixin, performance_monitor
from .tools import ToolRunner
from .concurrent import ChromosomeTaskGroup, ExecutorType

__all__ = [
    "setup_logging",
    "LoggerMixin",
    "performance_monitor",
    "ToolRunner",
    "ChromosomeTaskGroup",
    "ExecutorType",
]
