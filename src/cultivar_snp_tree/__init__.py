"""
Cultivar SNP Phylogeny Pipeline
===============================

Builds a maximum-likelihood phylogeny of plant cultivars from per-cultivar,
per-chromosome variant call files.

Stages, run in this order:
    merge: merge and filter each chromosome's VCFs (chromosomes in parallel)
    assemble: concatenate chr01..chr12 into one genome-wide SNP VCF
    align: draw a random SNP subsample and convert it to a FASTA alignment
    tree: run a bootstrapped RAxML-NG tree search

Example:
    >>> from cultivar_snp_tree import select_steps
    >>> [step.value for step in select_steps(start="assemble", stop="align")]
    ['assemble', 'align']
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("cultivar-snp-tree")
except PackageNotFoundError:
    __version__ = "unknown"

from .core.exceptions import (
    PipelineError,
    ConfigurationError,
    PreconditionError,
    DataError,
    MergeStageError,
)
from .core.steps import Step, select_steps
from .config.settings import load_settings

__all__ = [
    "__version__",
    "PipelineError",
    "ConfigurationError",
    "PreconditionError",
    "DataError",
    "MergeStageError",
    "Step",
    "select_steps",
    "load_settings",
]
