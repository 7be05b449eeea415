"""
Configuration settings for the cultivar SNP phylogeny pipeline.

This module provides centralized configuration management using
pydantic-settings. Values come, in increasing precedence, from field
defaults, environment variables with the ``CULTIVAR_SNP_TREE_`` prefix, a
``key=value`` configuration file and finally command-line overrides.

The execution environment (local workstation vs. batch scheduler) is resolved
once into a :class:`RuntimeEnvironment` and passed explicitly to the stages.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List, Mapping

from dotenv import dotenv_values
from loguru import logger
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.exceptions import ConfigurationError
from ..core.types import CHROMOSOMES, PathLike


DEFAULT_CONFIG_FILE = "pipeline.conf"
SCHEDULER_WORKDIR_VARIABLES = ("PBS_O_WORKDIR", "SLURM_SUBMIT_DIR")


class ExecutionMode(str, Enum):
    """Where the pipeline is running."""

    LOCAL = "local"
    CLUSTER = "cluster"


class LoggingSettings(BaseModel):
    """Logging configuration."""

    format: str = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
    log_file: Optional[Path] = None
    rotation: str = "10 MB"
    retention: str = "1 month"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CULTIVAR_SNP_TREE_",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
        validate_assignment=True,
    )

    # Workflow options
    threads: int = Field(default=4, ge=1)
    subsample_size: int = Field(default=10000, ge=0)
    subsample_seed: Optional[int] = None
    merge_workers: int = Field(default=len(CHROMOSOMES), ge=1)
    merge_executor: str = "process"

    # Input naming convention inside splitchromosomefiles/
    split_vcf_pattern: str = "{cultivar}_{chromosome}.vcf.gz"

    # External tools (resolved on PATH unless an install path is given)
    bcftools: str = "bcftools"
    bgzip: str = "bgzip"
    tabix: str = "tabix"
    raxml: str = "raxml-ng"
    vcf2phylip: str = "vcf2phylip.py"
    alignment_converter: str = "builtin"

    # Tree-search options passed verbatim to the tree builder
    raxml_options: str = "--model GTR+G --bs-trees 100 --seed 12345"

    # Batch-scheduler environment, e.g. "bcftools/1.17 raxml-ng/1.2.0"
    cluster_modules: str = ""

    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("merge_executor")
    @classmethod
    def validate_executor(cls, value: str) -> str:
        value = value.lower()
        if value not in ("process", "thread"):
            raise ValueError("merge_executor must be 'process' or 'thread'")
        return value

    @field_validator("alignment_converter")
    @classmethod
    def validate_converter(cls, value: str) -> str:
        value = value.lower()
        if value not in ("builtin", "vcf2phylip"):
            raise ValueError("alignment_converter must be 'builtin' or 'vcf2phylip'")
        return value

    @field_validator("split_vcf_pattern")
    @classmethod
    def validate_pattern(cls, value: str) -> str:
        if "{cultivar}" not in value or "{chromosome}" not in value:
            raise ValueError("split_vcf_pattern must contain {cultivar} and {chromosome}")
        return value

    @property
    def module_list(self) -> List[str]:
        """Environment modules to load on the cluster, space or comma separated."""
        return self.cluster_modules.replace(",", " ").split()

    def update_config(self, **updates: Any) -> None:
        """Apply non-None overrides, e.g. from command-line flags."""
        for key, value in updates.items():
            if value is None:
                continue
            if key not in type(self).model_fields:
                raise ConfigurationError(f"Unknown configuration key: {key}", config_key=key)
            setattr(self, key, value)

    def get_tool_config(self) -> Dict[str, str]:
        """Get external tool commands as dictionary."""
        return {
            "bcftools": self.bcftools,
            "bgzip": self.bgzip,
            "tabix": self.tabix,
            "raxml": self.raxml,
            "vcf2phylip": self.vcf2phylip,
        }


def read_config_file(path: PathLike) -> Dict[str, str]:
    """
    Parse a ``key=value`` configuration file.

    Keys are case-insensitive; keys that are not settings fields are logged
    and ignored so tool-specific extras do not break older pipelines.
    """
    known = set(Settings.model_fields)
    values: Dict[str, str] = {}
    for key, value in dotenv_values(path).items():
        if value is None:
            continue
        key = key.strip().lower()
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key '{key}' in {path}")
            continue
        values[key] = value
    logger.debug(f"Read {len(values)} configuration values from {path}")
    return values


def load_settings(
    config_file: Optional[PathLike] = None,
    search_dir: Optional[PathLike] = None,
    **overrides: Any,
) -> Settings:
    """
    Load settings from a ``key=value`` configuration file.

    Args:
        config_file: Explicit configuration file; must exist
        search_dir: Directory searched for ``pipeline.conf`` when no file is given
        **overrides: Values that take precedence over the file (None is ignored)

    Raises:
        ConfigurationError: If the file is missing or holds invalid values
    """
    if config_file is not None:
        path = Path(config_file)
        if not path.is_file():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                config_key="config",
                config_value=path,
                hint=f"Create a key=value file (see {DEFAULT_CONFIG_FILE}.example) or drop --config.",
            )
    else:
        candidate = Path(search_dir or Path.cwd()) / DEFAULT_CONFIG_FILE
        path = candidate if candidate.is_file() else None

    file_values = read_config_file(path) if path is not None else {}

    try:
        settings = Settings(**file_values)
        settings.update_config(**overrides)
    except ValueError as e:
        # pydantic's ValidationError subclasses ValueError
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            config_key="config",
            config_value=path,
            hint="Check the key=value entries of the configuration file.",
        ) from e

    return settings


class RuntimeEnvironment(BaseModel):
    """Execution environment resolved once at startup."""

    mode: ExecutionMode = ExecutionMode.LOCAL
    work_dir: Path
    modules: List[str] = Field(default_factory=list)

    @property
    def is_cluster(self) -> bool:
        return self.mode == ExecutionMode.CLUSTER

    @classmethod
    def resolve(
        cls,
        mode: ExecutionMode,
        settings: Settings,
        script_location: Optional[PathLike] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "RuntimeEnvironment":
        """
        Resolve the working directory for the given mode.

        Cluster runs take it from the scheduler's submit-directory variable;
        local runs use ``script_location`` (the directory of the cultivar
        list) or the current directory.

        Raises:
            ConfigurationError: In cluster mode without a scheduler variable
        """
        environ = os.environ if environ is None else environ
        mode = ExecutionMode(mode)

        if mode == ExecutionMode.CLUSTER:
            for variable in SCHEDULER_WORKDIR_VARIABLES:
                if environ.get(variable):
                    return cls(
                        mode=mode,
                        work_dir=Path(environ[variable]),
                        modules=settings.module_list,
                    )
            raise ConfigurationError(
                "Cluster mode requested but no scheduler working directory is set",
                config_key="environment",
                config_value=mode.value,
                hint=f"Submit through the scheduler (sets {' or '.join(SCHEDULER_WORKDIR_VARIABLES)}) "
                     "or use --environment local.",
            )

        work_dir = Path(script_location) if script_location else Path.cwd()
        return cls(mode=mode, work_dir=work_dir.resolve())
