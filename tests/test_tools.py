"""
Tests for external tool invocation.
"""

import pytest

from cultivar_snp_tree.core.exceptions import ToolError
from cultivar_snp_tree.utils.tools import ToolRunner


@pytest.mark.unit
class TestToolRunner:
    """Tests for ToolRunner."""

    def test_local_command_is_unchanged(self):
        assert ToolRunner().build_command(["bcftools", "view", 3]) == ["bcftools", "view", "3"]

    def test_cluster_command_loads_modules(self):
        runner = ToolRunner(modules=["bcftools/1.17", "raxml-ng/1.2.0"])

        argv = runner.build_command(["bcftools", "view", "my file.vcf"])

        assert argv == [
            "bash", "-lc",
            "module load bcftools/1.17 raxml-ng/1.2.0 && exec bcftools view 'my file.vcf'",
        ]
        assert runner.check_available("bcftools")

    def test_stdout_and_stderr_captured(self, temp_dir):
        log_file = temp_dir / "logs" / "tool.log"
        stdout_file = temp_dir / "tool.out"

        returncode = ToolRunner().run(
            ["sh", "-c", "echo result; echo progress >&2"],
            log_file=log_file,
            stdout_file=stdout_file,
        )

        assert returncode == 0
        assert stdout_file.read_text() == "result\n"
        assert log_file.read_text() == "progress\n"

    def test_non_zero_exit_raises(self, temp_dir):
        log_file = temp_dir / "tool.log"

        with pytest.raises(ToolError) as exc_info:
            ToolRunner().run(["sh", "-c", "echo broken >&2; exit 3"], log_file=log_file)

        assert exc_info.value.returncode == 3
        assert exc_info.value.log_file == str(log_file)
        assert "broken" in log_file.read_text()

    def test_stderr_in_message_without_log_file(self):
        with pytest.raises(ToolError, match="no such region"):
            ToolRunner().run(["sh", "-c", "echo 'no such region' >&2; exit 1"])

    def test_missing_tool(self):
        with pytest.raises(ToolError, match="not found") as exc_info:
            ToolRunner().run(["surely-not-an-installed-tool", "--help"])

        assert exc_info.value.returncode is None
        assert exc_info.value.hint
