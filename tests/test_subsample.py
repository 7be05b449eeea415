"""
Tests for random VCF subsampling.
"""

import random

import pytest

from cultivar_snp_tree.core.exceptions import DataError, ValidationError
from cultivar_snp_tree.genomics.subsample import reservoir_sample, split_header, subsample_vcf

from conftest import vcf_record, write_vcf


def body_lines(path):
    return [line for line in path.read_text().splitlines(keepends=True) if not line.startswith("#")]


def header_lines(path):
    return [line for line in path.read_text().splitlines(keepends=True) if line.startswith("#")]


@pytest.fixture
def snp_vcf(temp_dir):
    """A VCF with 50 records spread over two chromosomes."""
    records = [
        vcf_record(chrom, pos, "A", "G", "0/0", "1/1")
        for chrom in ("chr01", "chr02")
        for pos in range(1, 26)
    ]
    return write_vcf(temp_dir / "all.vcf", ["s1", "s2"], records)


@pytest.mark.unit
class TestReservoirSample:
    """Tests for reservoir_sample."""

    def test_returns_requested_count_in_order(self):
        lines = [f"line{index:03d}\n" for index in range(200)]

        chosen, seen = reservoir_sample(lines, 20, random.Random(1))

        assert seen == 200
        assert len(chosen) == 20
        assert len(set(chosen)) == 20
        assert chosen == sorted(chosen)

    def test_smaller_input_returns_everything(self):
        chosen, seen = reservoir_sample(["a\n", "b\n"], 5, random.Random(1))

        assert chosen == ["a\n", "b\n"]
        assert seen == 2

    def test_zero_size(self):
        chosen, seen = reservoir_sample(["a\n", "b\n"], 0, random.Random(1))

        assert chosen == []
        assert seen == 2

    def test_every_line_can_be_drawn(self):
        lines = [f"{index}\n" for index in range(10)]
        drawn = set()
        for seed in range(200):
            chosen, _ = reservoir_sample(lines, 2, random.Random(seed))
            drawn.update(chosen)

        assert drawn == set(lines)


@pytest.mark.unit
class TestSplitHeader:
    """Tests for split_header."""

    def test_header_ends_at_column_line(self):
        lines = ["##a\n", "##b\n", "#CHROM\tPOS\n", "chr01\t1\n"]

        header, body = split_header(lines)

        assert header == lines[:3]
        assert list(body) == ["chr01\t1\n"]

    def test_missing_column_line(self):
        with pytest.raises(DataError):
            split_header(["##a\n", "chr01\t1\n"])


@pytest.mark.unit
class TestSubsampleVcf:
    """Tests for subsample_vcf."""

    def test_count_header_and_verbatim_lines(self, snp_vcf, temp_dir):
        output = temp_dir / "sub.vcf"

        result = subsample_vcf(snp_vcf, output, size=10, seed=42)

        assert result.written == 10
        assert result.available == 50
        assert not result.truncated
        assert header_lines(output) == header_lines(snp_vcf)
        chosen = body_lines(output)
        original = body_lines(snp_vcf)
        assert len(chosen) == 10
        assert all(line in original for line in chosen)
        indices = [original.index(line) for line in chosen]
        assert indices == sorted(indices)

    def test_same_seed_is_reproducible(self, snp_vcf, temp_dir):
        first = subsample_vcf(snp_vcf, temp_dir / "a.vcf", size=10, seed=3)
        second = subsample_vcf(snp_vcf, temp_dir / "b.vcf", size=10, seed=3)

        assert body_lines(first.output) == body_lines(second.output)

    def test_different_seeds_differ(self, snp_vcf, temp_dir):
        draws = {
            tuple(body_lines(subsample_vcf(snp_vcf, temp_dir / f"{seed}.vcf", size=10, seed=seed).output))
            for seed in range(5)
        }

        assert len(draws) > 1

    @pytest.mark.parametrize("size", [50, 51, 1000])
    def test_size_at_or_above_available_writes_everything(self, snp_vcf, temp_dir, size):
        output = temp_dir / "sub.vcf"

        result = subsample_vcf(snp_vcf, output, size=size, seed=1)

        assert result.written == 50
        assert result.truncated == (size > 50)
        assert output.read_text() == snp_vcf.read_text()

    def test_zero_size_writes_header_only(self, snp_vcf, temp_dir):
        output = temp_dir / "sub.vcf"

        result = subsample_vcf(snp_vcf, output, size=0)

        assert result.written == 0
        assert body_lines(output) == []
        assert header_lines(output) == header_lines(snp_vcf)

    def test_negative_size_rejected(self, snp_vcf, temp_dir):
        output = temp_dir / "sub.vcf"

        with pytest.raises(ValidationError):
            subsample_vcf(snp_vcf, output, size=-1)
        assert not output.exists()

    def test_gzip_input(self, temp_dir):
        source = write_vcf(temp_dir / "in.vcf.gz", ["s1"], [vcf_record("chr01", 1, "A", "G", "1/1")])

        result = subsample_vcf(source, temp_dir / "sub.vcf", size=5, seed=0)

        assert result.written == 1
