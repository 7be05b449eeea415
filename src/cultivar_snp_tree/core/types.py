"""
Type definitions for the cultivar SNP phylogeny pipeline.

This module defines the core data structures shared between stages: the
fixed chromosome set, the cultivar list, the on-disk output layout and the
result objects each stage hands back to the orchestrator.
"""

from typing import Dict, List, Optional, Tuple, Union, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from datetime import datetime

from .exceptions import DataError


PathLike = Union[str, Path]

CHROMOSOMES: Tuple[str, ...] = tuple(f"chr{index:02d}" for index in range(1, 13))

SPLIT_DIR_NAME = "splitchromosomefiles"
MERGED_DIR_NAME = "mergedchromosomefiles"
ALIGNMENT_DIR_NAME = "alignmentfiles"


@dataclass(frozen=True)
class CultivarList:
    """Ordered, immutable list of cultivar (sample) identifiers."""

    names: Tuple[str, ...]
    source: Optional[Path] = None

    def __post_init__(self):
        if not self.names:
            raise DataError(
                "Cultivar list is empty",
                data_type="cultivar_list",
                data_source=str(self.source) if self.source else None,
            )
        seen = set()
        duplicates = []
        for name in self.names:
            if name in seen:
                duplicates.append(name)
            seen.add(name)
        if duplicates:
            raise DataError(
                f"Duplicate cultivar identifiers: {', '.join(sorted(set(duplicates)))}",
                data_type="cultivar_list",
                data_source=str(self.source) if self.source else None,
            )

    @classmethod
    def from_file(cls, path: PathLike) -> "CultivarList":
        """Read one identifier per line; blank lines and '#' comments are ignored."""
        path = Path(path)
        if not path.is_file():
            raise DataError(
                f"Cultivar list file not found: {path}",
                data_type="cultivar_list",
                data_source=str(path),
                hint="Pass the path of a text file with one cultivar identifier per line.",
            )
        names = []
        with open(path, "r", encoding="utf-8") as handle:
            for line in handle:
                name = line.strip()
                if not name or name.startswith("#"):
                    continue
                names.append(name)
        return cls(names=tuple(names), source=path)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class OutputLayout:
    """Fixed directory layout under the output root."""

    root: Path

    @property
    def split_dir(self) -> Path:
        return self.root / SPLIT_DIR_NAME

    @property
    def merged_dir(self) -> Path:
        return self.root / MERGED_DIR_NAME

    @property
    def alignment_dir(self) -> Path:
        return self.root / ALIGNMENT_DIR_NAME

    @property
    def merge_log_dir(self) -> Path:
        return self.merged_dir / "logs"

    def split_vcf(self, cultivar: str, chromosome: str, pattern: str) -> Path:
        """Input VCF for one cultivar and chromosome."""
        return self.split_dir / pattern.format(cultivar=cultivar, chromosome=chromosome)

    def merged_vcf(self, chromosome: str) -> Path:
        """Cleaned, bgzip-compressed VCF for one chromosome."""
        return self.merged_dir / f"{chromosome}.snps.vcf.gz"

    def merged_index(self, chromosome: str) -> Path:
        return self.merged_dir / f"{chromosome}.snps.vcf.gz.tbi"

    @property
    def assembled_vcf(self) -> Path:
        return self.merged_dir / "allchromosomes.snps.vcf"

    @property
    def subsampled_vcf(self) -> Path:
        return self.alignment_dir / "subsample.snps.vcf"

    @property
    def alignment_fasta(self) -> Path:
        return self.alignment_dir / "subsample.snps.fasta"

    @property
    def tree_prefix(self) -> Path:
        return self.alignment_dir / "tree"

    def tree_artifact(self, suffix: str) -> Path:
        """RAxML-NG artifact, e.g. ``bestTree`` -> ``tree.raxml.bestTree``."""
        return self.alignment_dir / f"tree.raxml.{suffix}"

    @property
    def tree_error_sentinel(self) -> Path:
        return self.tree_artifact("error")


@dataclass
class TaskResult:
    """Result of one parallel chromosome task."""

    task_id: str
    success: bool
    output: Optional[Path] = None
    error: Optional[str] = None
    execution_time: float = 0.0
    records_kept: int = 0
    records_rejected: int = 0


@dataclass
class SubsampleResult:
    """Outcome of a subsampling run."""

    output: Path
    requested: int
    available: int
    written: int
    seed: Optional[int] = None

    @property
    def truncated(self) -> bool:
        """True when fewer records existed than were requested."""
        return self.requested > self.available


@dataclass
class TreeBuildResult:
    """Outcome of the tree-building stage."""

    success: bool
    returncode: Optional[int]
    best_tree: Optional[Path] = None
    artifacts: List[Path] = field(default_factory=list)
    error_sentinel: Optional[Path] = None
    log_file: Optional[Path] = None
    message: Optional[str] = None


@dataclass
class PipelineRunResult:
    """Summary of a full pipeline invocation."""

    steps_run: List[str] = field(default_factory=list)
    steps_skipped: List[str] = field(default_factory=list)
    outputs: Dict[str, Path] = field(default_factory=dict)
    merge_results: List[TaskResult] = field(default_factory=list)
    subsample: Optional[SubsampleResult] = None
    tree: Optional[TreeBuildResult] = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def tree_failed(self) -> bool:
        """True when the tree stage ran and left its error sentinel."""
        return self.tree is not None and not self.tree.success
