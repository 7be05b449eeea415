"""
Concurrent processing utilities.

A task group launches one unit of work per chromosome, waits for all of
them (a single barrier), and records every unit's outcome. The stage only
proceeds when all units succeeded; otherwise it fails with the full list of
failed chromosomes. There is no cancellation: once launched, every task runs
to completion or failure.
"""

import time
from concurrent.futures import ThreadPoolExecutor, ProcessPoolExecutor, as_completed
from enum import Enum
from typing import Any, Callable, Dict, List, Sequence

from loguru import logger

from ..core.exceptions import MergeStageError
from ..core.types import TaskResult


class ExecutorType(str, Enum):
    """Types of parallel executors."""

    THREAD = "thread"
    PROCESS = "process"


class ChromosomeTaskGroup:
    """
    Run one task per chromosome in parallel and aggregate their status.

    ``func`` is called as ``func(chromosome, *args)`` and must return a
    :class:`TaskResult`. With the process executor, ``func`` and ``args``
    must be picklable.
    """

    def __init__(
        self,
        executor_type: ExecutorType = ExecutorType.PROCESS,
        max_workers: int = 12,
        description: str = "chromosome tasks",
    ):
        self.executor_type = ExecutorType(executor_type)
        self.max_workers = max_workers
        self.description = description

    def _executor(self, worker_count: int):
        if self.executor_type == ExecutorType.PROCESS:
            return ProcessPoolExecutor(max_workers=worker_count)
        return ThreadPoolExecutor(max_workers=worker_count)

    def run(self, func: Callable[..., TaskResult], chromosomes: Sequence[str], *args: Any) -> List[TaskResult]:
        """
        Launch all tasks, block until every one has finished, return results
        in the order of ``chromosomes``.
        """
        chromosomes = list(chromosomes)
        if not chromosomes:
            return []

        worker_count = min(self.max_workers, len(chromosomes))
        logger.info(
            f"Launching {len(chromosomes)} {self.description} "
            f"({worker_count} {self.executor_type.value} workers)"
        )

        results: Dict[str, TaskResult] = {}
        start_time = time.time()
        with self._executor(worker_count) as executor:
            futures = {executor.submit(func, chromosome, *args): chromosome for chromosome in chromosomes}

            for future in as_completed(futures):
                chromosome = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    result = TaskResult(task_id=chromosome, success=False, error=f"{type(e).__name__}: {e}")

                results[chromosome] = result
                if result.success:
                    logger.info(f"{chromosome} finished in {result.execution_time:.1f}s "
                                f"({len(results)}/{len(chromosomes)})")
                else:
                    logger.error(f"{chromosome} failed: {result.error} ({len(results)}/{len(chromosomes)})")

        logger.info(f"All {self.description} finished in {time.time() - start_time:.1f}s")
        return [results[chromosome] for chromosome in chromosomes]

    def run_all_or_raise(self, func: Callable[..., TaskResult], chromosomes: Sequence[str], *args: Any) -> List[TaskResult]:
        """
        Like :meth:`run`, but raise if any task failed.

        Raises:
            MergeStageError: Listing every failed chromosome
        """
        results = self.run(func, chromosomes, *args)
        failed = [result for result in results if not result.success]
        if failed:
            names = [result.task_id for result in failed]
            raise MergeStageError(
                f"{len(failed)} of {len(results)} {self.description} failed: {', '.join(names)}",
                failed_chromosomes=names,
                errors={result.task_id: result.error or "unknown error" for result in failed},
                hint="See the per-chromosome logs in mergedchromosomefiles/logs/.",
            )
        return results
