"""Configuration management for the cultivar SNP phylogeny pipeline."""

from .settings import Settings, RuntimeEnvironment, ExecutionMode, load_settings

__all__ = ["Settings", "RuntimeEnvironment", "ExecutionMode", "load_settings"]
