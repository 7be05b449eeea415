"""Concatenate the per-chromosome SNP VCFs into one genome-wide VCF."""

from pathlib import Path
from typing import Sequence

from ..core.exceptions import DataError
from ..core.types import CHROMOSOMES, OutputLayout
from ..utils.logging import LoggerMixin, performance_monitor
from ..utils.tools import ToolRunner
from .vcf import atomic_output


class Assembler(LoggerMixin):
    """Joins chr01..chr12 in fixed order with ``bcftools concat``."""

    def __init__(self, layout: OutputLayout, runner: ToolRunner, bcftools: str = "bcftools"):
        self.layout = layout
        self.runner = runner
        self.bcftools = bcftools

    @performance_monitor
    def assemble(self, chromosomes: Sequence[str] = CHROMOSOMES) -> Path:
        """
        Build ``allchromosomes.snps.vcf``.

        Raises:
            DataError: If any per-chromosome VCF or its index is missing
            ToolError: If bcftools fails
        """
        ordered = sorted(chromosomes)
        inputs = [self.layout.merged_vcf(chromosome) for chromosome in ordered]
        indexes = [self.layout.merged_index(chromosome) for chromosome in ordered]
        missing = [path.name for path in inputs + indexes if not path.is_file()]
        if missing:
            raise DataError(
                f"Cannot assemble: missing merged VCF(s) or index(es) {', '.join(missing)}",
                data_type="merged_vcf",
                data_source=str(self.layout.merged_dir),
                hint="Re-run the merge step for the listed chromosomes.",
            )

        output = self.layout.assembled_vcf
        self.logger.info(f"Concatenating {len(inputs)} chromosome VCFs into {output.name}")
        with atomic_output(output) as tmp_path:
            self.runner.run(
                [self.bcftools, "concat", "-Ov", "-o", tmp_path, *inputs],
                log_file=self.layout.merge_log_dir / "concat.log",
            )
        return output
