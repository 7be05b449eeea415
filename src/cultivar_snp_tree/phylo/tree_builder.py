"""
Maximum-likelihood tree building with RAxML-NG.

This is the terminal stage. A failed tree search is recorded, not raised:
the empty ``tree.raxml.error`` sentinel is written next to the logs so the
run still finishes and a human can inspect what went wrong.
"""

import shlex
from pathlib import Path
from typing import List, Optional

from ..core.exceptions import ToolError
from ..core.types import OutputLayout, PathLike, TreeBuildResult
from ..utils.logging import LoggerMixin, performance_monitor
from ..utils.tools import ToolRunner


ARTIFACT_SUFFIXES = ("bestTree", "bootstraps", "support", "bestModel", "log")


class TreeBuilder(LoggerMixin):
    """Runs a bootstrapped ML tree search on the alignment."""

    def __init__(
        self,
        layout: OutputLayout,
        runner: ToolRunner,
        raxml: str = "raxml-ng",
        options: str = "--model GTR+G --bs-trees 100 --seed 12345",
        threads: int = 1,
    ):
        self.layout = layout
        self.runner = runner
        self.raxml = raxml
        self.options = options
        self.threads = threads

    def build_command(self, fasta_path: PathLike) -> List[str]:
        """RAxML-NG command line; configured options are appended verbatim."""
        return [
            self.raxml,
            "--all",
            "--msa", str(fasta_path),
            "--msa-format", "FASTA",
            "--threads", str(self.threads),
            "--prefix", str(self.layout.tree_prefix),
            "--redo",
            *shlex.split(self.options),
        ]

    @performance_monitor
    def build(self, fasta_path: Optional[PathLike] = None) -> TreeBuildResult:
        """
        Run the tree search.

        Returns:
            A result whose ``success`` is False when the error sentinel was written
        """
        fasta_path = Path(fasta_path or self.layout.alignment_fasta)
        sentinel = self.layout.tree_error_sentinel
        stdout_log = self.layout.alignment_dir / "tree.stdout.log"
        stderr_log = self.layout.alignment_dir / "tree.stderr.log"
        self.layout.alignment_dir.mkdir(parents=True, exist_ok=True)

        if sentinel.exists():
            sentinel.unlink()

        command = self.build_command(fasta_path)
        self.logger.info(f"Building tree from {fasta_path.name} with {self.threads} threads")

        try:
            returncode = self.runner.run(command, log_file=stderr_log, stdout_file=stdout_log)
        except ToolError as e:
            return self._record_failure(e.returncode, str(e), stderr_log)

        best_tree = self.layout.tree_artifact("bestTree")
        if not best_tree.is_file():
            return self._record_failure(
                returncode,
                f"{self.raxml} exited cleanly but wrote no {best_tree.name}",
                stderr_log,
            )

        artifacts = [
            self.layout.tree_artifact(suffix)
            for suffix in ARTIFACT_SUFFIXES
            if self.layout.tree_artifact(suffix).is_file()
        ]
        self.logger.info(f"Best tree written to {best_tree}")
        return TreeBuildResult(
            success=True,
            returncode=returncode,
            best_tree=best_tree,
            artifacts=artifacts,
            log_file=self.layout.tree_artifact("log"),
        )

    def _record_failure(self, returncode: Optional[int], message: str, log_file: Path) -> TreeBuildResult:
        sentinel = self.layout.tree_error_sentinel
        sentinel.touch()
        self.logger.error(f"Tree building failed: {message}. Sentinel written to {sentinel}")
        return TreeBuildResult(
            success=False,
            returncode=returncode,
            error_sentinel=sentinel,
            log_file=log_file,
            message=message,
        )
