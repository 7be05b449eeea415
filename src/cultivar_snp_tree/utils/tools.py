"""
External tool invocation.

Every third-party binary (bcftools, bgzip, tabix, raxml-ng, vcf2phylip) is
run through :class:`ToolRunner`, which captures stderr into a per-call log
file, loads environment modules on a cluster, and converts non-zero exits
into :class:`ToolError`.
"""

import shlex
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from ..core.exceptions import ToolError
from ..core.types import PathLike


class ToolRunner:
    """Runs external commands with consistent logging and error handling."""

    def __init__(self, modules: Optional[Sequence[str]] = None):
        """
        Initialize the runner.

        Args:
            modules: Environment modules loaded before each command
                (cluster execution); empty for local runs
        """
        self.modules = list(modules or [])

    def build_command(self, cmd: Sequence[PathLike]) -> List[str]:
        """Return the argv actually executed, wrapped for module loading if needed."""
        argv = [str(part) for part in cmd]
        if not self.modules:
            return argv
        script = f"module load {' '.join(self.modules)} && exec {shlex.join(argv)}"
        return ["bash", "-lc", script]

    def check_available(self, executable: str) -> bool:
        """True if the executable can be found (always assumed under modules)."""
        return bool(self.modules) or shutil.which(executable) is not None

    def run(
        self,
        cmd: Sequence[PathLike],
        log_file: Optional[PathLike] = None,
        stdout_file: Optional[PathLike] = None,
        cwd: Optional[PathLike] = None,
    ) -> int:
        """
        Run a command to completion.

        Args:
            cmd: Command and arguments
            log_file: File receiving the command's stderr
            stdout_file: File receiving the command's stdout
            cwd: Working directory

        Returns:
            The exit status (always 0; failures raise)

        Raises:
            ToolError: If the command is missing or exits non-zero
        """
        argv = self.build_command(cmd)
        tool = str(cmd[0])
        if not self.check_available(tool):
            raise ToolError(
                f"{tool} command not found",
                command=argv,
                hint=f"Install {tool} or set its install path in the configuration file.",
            )

        logger.debug(f"Running: {shlex.join(argv)}")
        stderr_handle = stdout_handle = None
        try:
            if log_file is not None:
                Path(log_file).parent.mkdir(parents=True, exist_ok=True)
                stderr_handle = open(log_file, "w", encoding="utf-8")
            if stdout_file is not None:
                stdout_handle = open(stdout_file, "w", encoding="utf-8")
            result = subprocess.run(
                argv,
                stdout=stdout_handle if stdout_handle else subprocess.DEVNULL,
                stderr=stderr_handle if stderr_handle else subprocess.PIPE,
                text=True,
                cwd=str(cwd) if cwd else None,
            )
        except FileNotFoundError as e:
            raise ToolError(f"{tool} command not found", command=argv) from e
        finally:
            if stderr_handle:
                stderr_handle.close()
            if stdout_handle:
                stdout_handle.close()

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            message = f"{tool} exited with status {result.returncode}"
            if stderr:
                message += f": {stderr.splitlines()[-1]}"
            raise ToolError(
                message,
                command=argv,
                returncode=result.returncode,
                log_file=str(log_file) if log_file else None,
            )
        return result.returncode
