"""
Pipeline orchestrator.

Runs the selected stages strictly in order: merge, assemble, align, tree.
Configuration and preconditions are checked before any stage starts; an
error in an early stage stops the run before later stages can read
incomplete data. The tree stage is terminal and records its own failures.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from loguru import logger
from rich.console import Console

from .config.settings import Settings, RuntimeEnvironment
from .core.exceptions import PreconditionError
from .core.steps import PIPELINE_STEPS, Step, StepSelection
from .core.types import CHROMOSOMES, CultivarList, OutputLayout, PipelineRunResult
from .genomics.alignment import AlignmentConverter
from .genomics.assemble import Assembler
from .genomics.merge import ChromosomeMerger
from .genomics.subsample import subsample_vcf
from .phylo.tree_builder import TreeBuilder
from .utils.concurrent import ExecutorType
from .utils.logging import LoggerMixin, log_stage_start
from .utils.tools import ToolRunner


STEP_TITLES: Dict[Step, str] = {
    Step.MERGE: "Merging and filtering chromosome VCFs",
    Step.ASSEMBLE: "Assembling genome-wide SNP VCF",
    Step.ALIGN: "Subsampling SNPs and building alignment",
    Step.TREE: "Building maximum-likelihood tree",
}


@dataclass
class PipelineJobConfig:
    """Inputs of one pipeline invocation."""

    cultivar_list: Path
    output_dir: Path
    selection: StepSelection
    settings: Settings
    environment: RuntimeEnvironment

    def __post_init__(self):
        self.cultivar_list = Path(self.cultivar_list)
        self.output_dir = Path(self.output_dir)


class SnpTreePipeline(LoggerMixin):
    """Coordinates the four stages over the fixed output layout."""

    def __init__(
        self,
        job: PipelineJobConfig,
        runner: Optional[ToolRunner] = None,
        console: Optional[Console] = None,
    ):
        self.job = job
        self.settings = job.settings
        self.selection = job.selection
        self.layout = OutputLayout(job.output_dir)
        self.runner = runner or ToolRunner(modules=job.environment.modules)
        self.console = console or Console(stderr=True)
        self.cultivars = CultivarList.from_file(job.cultivar_list)

        self._stages: Dict[Step, Callable[[PipelineRunResult], None]] = {
            Step.MERGE: self.run_merge,
            Step.ASSEMBLE: self.run_assemble,
            Step.ALIGN: self.run_align,
            Step.TREE: self.run_tree,
        }

    def required_inputs(self) -> List[Path]:
        """Paths that must exist before the first selected step can run."""
        first = self.selection.first
        if first == Step.MERGE:
            return [self.layout.split_dir]
        if first == Step.ASSEMBLE:
            return [self.layout.merged_dir]
        if first == Step.ALIGN:
            return [self.layout.merged_dir, self.layout.assembled_vcf]
        return [self.layout.alignment_dir, self.layout.alignment_fasta]

    def check_preconditions(self) -> None:
        """
        Verify upstream inputs before any stage runs.

        Raises:
            PreconditionError: If a required directory or file is absent
        """
        for path in self.required_inputs():
            if not path.exists():
                raise PreconditionError(
                    f"Required input for step '{self.selection.first.value}' not found: {path}",
                    path=str(path),
                    hint=self._precondition_hint(),
                )

    def _precondition_hint(self) -> str:
        first = self.selection.first
        if first == Step.MERGE:
            return (f"Place one VCF per cultivar per chromosome in {self.layout.split_dir} "
                    f"named like {self.settings.split_vcf_pattern}, or pass --output-dir.")
        previous = PIPELINE_STEPS[PIPELINE_STEPS.index(first) - 1]
        return f"Run the '{previous.value}' step first, or start from an earlier step."

    def describe(self) -> List[str]:
        """Human-readable plan, used by --dry-run."""
        lines = [
            f"Cultivars: {len(self.cultivars)} from {self.job.cultivar_list}",
            f"Output root: {self.layout.root}",
            f"Environment: {self.job.environment.mode.value} (work dir {self.job.environment.work_dir})",
            "Tools: " + ", ".join(f"{name}={command}" for name, command in self.settings.get_tool_config().items()),
        ]
        for step in PIPELINE_STEPS:
            state = "run" if step in self.selection else "skip"
            lines.append(f"  [{state}] {step.value}: {STEP_TITLES[step]}")
        return lines

    def run(self) -> PipelineRunResult:
        """
        Execute the selected steps in order.

        Raises:
            PipelineError: On any configuration, precondition, data or merge failure
        """
        self.check_preconditions()
        result = PipelineRunResult()

        for step in PIPELINE_STEPS:
            if step not in self.selection:
                self.logger.debug(f"Skipping step {step.value}")
                result.steps_skipped.append(step.value)
                continue

            self.console.rule(f"[bold blue]{step.value}[/bold blue]: {STEP_TITLES[step]}")
            log_stage_start(step.value, {"output_root": str(self.layout.root)})
            self._stages[step](result)
            result.steps_run.append(step.value)

        result.finished_at = datetime.now()
        return result

    def run_merge(self, result: PipelineRunResult) -> None:
        merger = ChromosomeMerger(
            layout=self.layout,
            cultivars=self.cultivars,
            runner=self.runner,
            split_vcf_pattern=self.settings.split_vcf_pattern,
            bcftools=self.settings.bcftools,
            bgzip=self.settings.bgzip,
            tabix=self.settings.tabix,
            executor_type=ExecutorType(self.settings.merge_executor),
            max_workers=self.settings.merge_workers,
        )
        result.merge_results = merger.merge_all(CHROMOSOMES)
        for chromosome in CHROMOSOMES:
            result.outputs[f"merged_{chromosome}"] = self.layout.merged_vcf(chromosome)

    def run_assemble(self, result: PipelineRunResult) -> None:
        assembler = Assembler(self.layout, self.runner, bcftools=self.settings.bcftools)
        result.outputs["assembled_vcf"] = assembler.assemble(CHROMOSOMES)

    def run_align(self, result: PipelineRunResult) -> None:
        self.layout.alignment_dir.mkdir(parents=True, exist_ok=True)
        result.subsample = subsample_vcf(
            self.layout.assembled_vcf,
            self.layout.subsampled_vcf,
            size=self.settings.subsample_size,
            seed=self.settings.subsample_seed,
        )
        result.outputs["subsampled_vcf"] = self.layout.subsampled_vcf

        converter = AlignmentConverter(
            backend=self.settings.alignment_converter,
            runner=self.runner,
            vcf2phylip=self.settings.vcf2phylip,
        )
        result.outputs["alignment_fasta"] = converter.convert(
            self.layout.subsampled_vcf, self.layout.alignment_fasta
        )

    def run_tree(self, result: PipelineRunResult) -> None:
        builder = TreeBuilder(
            layout=self.layout,
            runner=self.runner,
            raxml=self.settings.raxml,
            options=self.settings.raxml_options,
            threads=self.settings.threads,
        )
        result.tree = builder.build(self.layout.alignment_fasta)
        if result.tree.success:
            result.outputs["best_tree"] = result.tree.best_tree
        else:
            result.outputs["tree_error_sentinel"] = result.tree.error_sentinel
            logger.warning("Tree stage failed; see the error sentinel and logs in alignmentfiles/")
