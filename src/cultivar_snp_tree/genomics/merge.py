"""
Chromosome merging stage.

For each chromosome, all cultivars' VCFs are merged into one multi-sample
VCF, filtered to clean SNP sites, then bgzip-compressed and tabix-indexed.
Chromosomes are processed in parallel, one worker process each.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

from loguru import logger

from ..core.exceptions import DataError, PipelineError
from ..core.types import CHROMOSOMES, CultivarList, OutputLayout, TaskResult
from ..utils.concurrent import ChromosomeTaskGroup, ExecutorType
from ..utils.logging import LoggerMixin, performance_monitor
from ..utils.tools import ToolRunner
from .vcf import filter_vcf_file


# Uncalled sites, indels, singletons, near-fixed sites and sites with any
# missing genotype are removed before the line-level artifact filter.
VIEW_FILTER_ARGS: Tuple[str, ...] = (
    "-U",
    "-V", "indels",
    "-c", "2:minor",
    "-Q", "0.99",
    "-g", "^miss",
)


@dataclass(frozen=True)
class MergeJob:
    """Everything one chromosome task needs; picklable for worker processes."""

    layout: OutputLayout
    cultivars: Tuple[str, ...]
    split_vcf_pattern: str
    bcftools: str
    bgzip: str
    tabix: str
    runner: ToolRunner

    def input_files(self, chromosome: str) -> List[Path]:
        return [
            self.layout.split_vcf(cultivar, chromosome, self.split_vcf_pattern)
            for cultivar in self.cultivars
        ]


def _merged_tmp(job: MergeJob, chromosome: str, label: str) -> Path:
    return job.layout.merged_dir / f".{chromosome}.{label}.tmp.vcf"


def _log(job: MergeJob, chromosome: str, tool: str) -> Path:
    return job.layout.merge_log_dir / f"{chromosome}.{tool}.log"


def _remove(paths) -> None:
    for path in paths:
        if path.exists():
            path.unlink()


def merge_chromosome(chromosome: str, job: MergeJob) -> TaskResult:
    """
    Merge, filter, compress and index one chromosome.

    Domain failures (missing inputs, tool errors) are returned as a failed
    :class:`TaskResult` so the task group can report every chromosome.
    Outputs of an earlier run are removed first, and a failed task leaves
    no compressed VCF or index behind.
    """
    start_time = time.time()
    merged = _merged_tmp(job, chromosome, "merged")
    filtered = _merged_tmp(job, chromosome, "filtered")
    output_gz = job.layout.merged_vcf(chromosome)
    plain = output_gz.with_suffix("")
    finals = (output_gz, job.layout.merged_index(chromosome), plain)

    _remove(finals)

    try:
        inputs = job.input_files(chromosome)
        missing = [path for path in inputs if not path.is_file()]
        if missing:
            raise DataError(
                f"{len(missing)} input VCF(s) missing for {chromosome}: "
                + ", ".join(path.name for path in missing),
                data_type="split_vcf",
                data_source=str(job.layout.split_dir),
            )

        job.layout.merge_log_dir.mkdir(parents=True, exist_ok=True)

        if len(inputs) == 1:
            # bcftools merge needs at least two files
            job.runner.run(
                [job.bcftools, "view", "-Ov", "-o", merged, inputs[0]],
                log_file=_log(job, chromosome, "merge"),
            )
        else:
            file_list = job.layout.merge_log_dir / f"{chromosome}.filelist.txt"
            file_list.write_text("".join(f"{path}\n" for path in inputs), encoding="utf-8")
            job.runner.run(
                [job.bcftools, "merge", "--file-list", file_list, "-Ov", "-o", merged],
                log_file=_log(job, chromosome, "merge"),
            )

        job.runner.run(
            [job.bcftools, "view", *VIEW_FILTER_ARGS, "-Ov", "-o", filtered, merged],
            log_file=_log(job, chromosome, "view"),
        )

        kept, rejected = filter_vcf_file(filtered, plain)

        job.runner.run([job.bgzip, "-f", plain], log_file=_log(job, chromosome, "bgzip"))
        job.runner.run(
            [job.tabix, "-f", "-p", "vcf", output_gz],
            log_file=_log(job, chromosome, "tabix"),
        )
    except PipelineError as e:
        _remove(finals)
        return TaskResult(
            task_id=chromosome,
            success=False,
            error=str(e),
            execution_time=time.time() - start_time,
        )
    finally:
        _remove((merged, filtered))

    return TaskResult(
        task_id=chromosome,
        success=True,
        output=output_gz,
        execution_time=time.time() - start_time,
        records_kept=kept,
        records_rejected=rejected,
    )


class ChromosomeMerger(LoggerMixin):
    """Runs :func:`merge_chromosome` for every chromosome behind one barrier."""

    def __init__(
        self,
        layout: OutputLayout,
        cultivars: CultivarList,
        runner: ToolRunner,
        split_vcf_pattern: str = "{cultivar}_{chromosome}.vcf.gz",
        bcftools: str = "bcftools",
        bgzip: str = "bgzip",
        tabix: str = "tabix",
        executor_type: ExecutorType = ExecutorType.PROCESS,
        max_workers: int = len(CHROMOSOMES),
    ):
        self.job = MergeJob(
            layout=layout,
            cultivars=tuple(cultivars),
            split_vcf_pattern=split_vcf_pattern,
            bcftools=bcftools,
            bgzip=bgzip,
            tabix=tabix,
            runner=runner,
        )
        self.task_group = ChromosomeTaskGroup(
            executor_type=executor_type,
            max_workers=max_workers,
            description="chromosome merges",
        )

    @performance_monitor
    def merge_all(self, chromosomes: Sequence[str] = CHROMOSOMES) -> List[TaskResult]:
        """
        Merge every chromosome in parallel.

        Raises:
            MergeStageError: If any chromosome failed
        """
        self.job.layout.merged_dir.mkdir(parents=True, exist_ok=True)
        self.logger.info(
            f"Merging {len(self.job.cultivars)} cultivars across {len(chromosomes)} chromosomes"
        )
        results = self.task_group.run_all_or_raise(merge_chromosome, chromosomes, self.job)
        for result in results:
            logger.debug(
                f"{result.task_id}: kept {result.records_kept} SNPs, "
                f"rejected {result.records_rejected} artifacts"
            )
        return results
