"""
Tests for the chromosome task group.
"""

import pytest

from cultivar_snp_tree.core.exceptions import MergeStageError
from cultivar_snp_tree.core.types import CHROMOSOMES, TaskResult
from cultivar_snp_tree.utils.concurrent import ChromosomeTaskGroup, ExecutorType


def succeed(chromosome, suffix):
    return TaskResult(task_id=chromosome, success=True, error=None, records_kept=len(suffix))


def fail_some(chromosome, bad):
    if chromosome in bad:
        return TaskResult(task_id=chromosome, success=False, error="bcftools exited with status 1")
    return TaskResult(task_id=chromosome, success=True)


def explode(chromosome):
    if chromosome == "chr03":
        raise RuntimeError("worker crashed")
    return TaskResult(task_id=chromosome, success=True)


@pytest.fixture
def task_group():
    return ChromosomeTaskGroup(executor_type=ExecutorType.THREAD, max_workers=4)


@pytest.mark.unit
class TestChromosomeTaskGroup:
    """Tests for ChromosomeTaskGroup."""

    def test_results_in_input_order(self, task_group):
        results = task_group.run(succeed, CHROMOSOMES, "xyz")

        assert [result.task_id for result in results] == list(CHROMOSOMES)
        assert all(result.records_kept == 3 for result in results)

    def test_empty_input(self, task_group):
        assert task_group.run(succeed, [], "") == []

    def test_exception_becomes_failed_result(self, task_group):
        results = task_group.run(explode, CHROMOSOMES)

        failed = [result for result in results if not result.success]
        assert [result.task_id for result in failed] == ["chr03"]
        assert "worker crashed" in failed[0].error
        assert sum(result.success for result in results) == len(CHROMOSOMES) - 1

    def test_raise_lists_every_failure(self, task_group):
        with pytest.raises(MergeStageError) as exc_info:
            task_group.run_all_or_raise(fail_some, CHROMOSOMES, {"chr05", "chr11"})

        error = exc_info.value
        assert error.failed_chromosomes == ["chr05", "chr11"]
        assert set(error.errors) == {"chr05", "chr11"}

