"""
Test configuration and fixtures for the cultivar SNP phylogeny pipeline.

This module provides common fixtures: temporary directories, synthetic VCF
writers, and a FakeToolRunner that emulates the external tools closely
enough for the orchestration logic to be exercised without them.
"""

import gzip
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional, Sequence, Tuple

import pytest
from Bio import SeqIO

from cultivar_snp_tree.config.settings import ExecutionMode, RuntimeEnvironment, Settings
from cultivar_snp_tree.core.exceptions import ToolError
from cultivar_snp_tree.core.types import CHROMOSOMES, OutputLayout


VCF_META = [
    "##fileformat=VCFv4.2",
    '##FILTER=<ID=PASS,Description="All filters passed">',
    '##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">',
] + [f"##contig=<ID={chromosome}>" for chromosome in CHROMOSOMES]

FIXED_COLUMNS = ["#CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO", "FORMAT"]


def vcf_record(chrom: str, pos: int, ref: str, alt: str, *genotypes: str) -> str:
    """One VCF body line with a GT-only FORMAT column."""
    fields = [chrom, str(pos), ".", ref, alt, "50", "PASS", ".", "GT", *genotypes]
    return "\t".join(fields) + "\n"


def vcf_text(samples: Sequence[str], records: Sequence[str] = (), meta: Sequence[str] = VCF_META) -> str:
    """Complete VCF text with header and the given body lines."""
    header = "".join(f"{line}\n" for line in meta)
    header += "\t".join(FIXED_COLUMNS + list(samples)) + "\n"
    return header + "".join(records)


def write_vcf(path: Path, samples: Sequence[str], records: Sequence[str] = ()) -> Path:
    """Write a VCF, gzip-compressed when the name ends in .gz."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = vcf_text(samples, records)
    if path.suffix == ".gz":
        with gzip.open(path, "wt", encoding="utf-8") as handle:
            handle.write(text)
    else:
        path.write_text(text, encoding="utf-8")
    return path


def read_text(path: Path) -> str:
    if path.suffix == ".gz":
        with gzip.open(path, "rt", encoding="utf-8") as handle:
            return handle.read()
    return path.read_text(encoding="utf-8")


def _split(text: str) -> Tuple[List[str], List[str], List[str]]:
    """(meta lines, sample names, body lines)"""
    meta, samples, body = [], [], []
    for line in text.splitlines(keepends=True):
        if line.startswith("##"):
            meta.append(line)
        elif line.startswith("#CHROM"):
            samples = line.rstrip("\n").split("\t")[9:]
        elif line.strip():
            body.append(line)
    return meta, samples, body


class FakeToolRunner:
    """
    Stand-in for ToolRunner that emulates bcftools, bgzip, tabix and raxml-ng.

    ``fail`` decides, per command line, whether to raise ToolError instead.
    Every command line is recorded in ``calls``.
    """

    def __init__(self, fail: Optional[Callable[[List[str]], bool]] = None):
        self.fail = fail
        self.modules: List[str] = []
        self.calls: List[List[str]] = []

    def run(self, cmd, log_file=None, stdout_file=None, cwd=None) -> int:
        argv = [str(part) for part in cmd]
        self.calls.append(argv)
        if log_file is not None:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            Path(log_file).write_text("", encoding="utf-8")
        if self.fail and self.fail(argv):
            raise ToolError(f"{argv[0]} exited with status 1", command=argv, returncode=1,
                            log_file=str(log_file) if log_file else None)

        tool = os.path.basename(argv[0])
        if tool == "bcftools" and argv[1] == "merge":
            self._merge(argv)
        elif tool == "bcftools" and argv[1] == "view":
            self._view(argv)
        elif tool == "bcftools" and argv[1] == "concat":
            self._concat(argv)
        elif tool == "bgzip":
            self._bgzip(argv)
        elif tool == "tabix":
            Path(argv[-1] + ".tbi").write_bytes(b"")
        elif tool == "raxml-ng":
            self._raxml(argv, stdout_file)
        elif tool == "vcf2phylip.py":
            self._vcf2phylip(argv)
        else:
            raise ToolError(f"{tool} command not found", command=argv)
        return 0

    def tools_called(self) -> List[str]:
        return [" ".join([os.path.basename(call[0])] + call[1:2]) for call in self.calls]

    @staticmethod
    def _output(argv: List[str]) -> Path:
        return Path(argv[argv.index("-o") + 1])

    def _merge(self, argv: List[str]) -> None:
        file_list = Path(argv[argv.index("--file-list") + 1])
        inputs = [Path(line) for line in file_list.read_text().split()]
        meta: List[str] = []
        samples: List[str] = []
        sites: Dict[Tuple[str, int], List[str]] = {}
        genotypes: Dict[Tuple[str, int], Dict[str, str]] = {}
        for path in inputs:
            file_meta, file_samples, body = _split(read_text(path))
            meta = meta or file_meta
            samples.extend(file_samples)
            for line in body:
                fields = line.rstrip("\n").split("\t")
                key = (fields[0], int(fields[1]))
                sites.setdefault(key, fields[:9])
                for sample, value in zip(file_samples, fields[9:]):
                    genotypes.setdefault(key, {})[sample] = value
        lines = [
            "\t".join(sites[key] + [genotypes[key].get(sample, "./.") for sample in samples]) + "\n"
            for key in sorted(sites)
        ]
        text = "".join(meta) + "\t".join(FIXED_COLUMNS + samples) + "\n" + "".join(lines)
        self._output(argv).write_text(text, encoding="utf-8")

    def _view(self, argv: List[str]) -> None:
        meta, samples, body = _split(read_text(Path(argv[-1])))
        if "-g" in argv:
            kept = []
            for line in body:
                fields = line.rstrip("\n").split("\t")
                ref, alts = fields[3], fields[4].split(",")
                if any("." in gt for gt in fields[9:]):
                    continue
                if any(len(alt) != len(ref) for alt in alts if not alt.startswith("<")):
                    continue
                kept.append(line)
            body = kept
        text = "".join(meta) + "\t".join(FIXED_COLUMNS + samples) + "\n" + "".join(body)
        self._output(argv).write_text(text, encoding="utf-8")

    def _concat(self, argv: List[str]) -> None:
        output = self._output(argv)
        inputs = [Path(arg) for arg in argv[argv.index("-o") + 2:]]
        meta: List[str] = []
        samples: List[str] = []
        body: List[str] = []
        for path in inputs:
            file_meta, file_samples, file_body = _split(read_text(path))
            meta = meta or file_meta
            samples = samples or file_samples
            body.extend(file_body)
        text = "".join(meta) + "\t".join(FIXED_COLUMNS + samples) + "\n" + "".join(body)
        output.write_text(text, encoding="utf-8")

    def _bgzip(self, argv: List[str]) -> None:
        source = Path(argv[-1])
        with open(source, "rb") as plain, gzip.open(f"{source}.gz", "wb") as packed:
            shutil.copyfileobj(plain, packed)
        source.unlink()

    def _raxml(self, argv: List[str], stdout_file) -> None:
        prefix = argv[argv.index("--prefix") + 1]
        msa = Path(argv[argv.index("--msa") + 1])
        names = [record.id for record in SeqIO.parse(str(msa), "fasta")]
        Path(f"{prefix}.raxml.bestTree").write_text(f"({','.join(names)});\n")
        Path(f"{prefix}.raxml.bootstraps").write_text(f"({','.join(names)});\n" * 3)
        Path(f"{prefix}.raxml.log").write_text("RAxML-NG fake run\n")
        if stdout_file:
            Path(stdout_file).write_text("done\n")

    def _vcf2phylip(self, argv: List[str]) -> None:
        source = Path(argv[argv.index("-i") + 1])
        folder = Path(argv[argv.index("--output-folder") + 1])
        _, samples, body = _split(read_text(source))
        stem = source.name[:-4] if source.name.endswith(".vcf") else source.stem
        text = "".join(f">{sample}\n{'N' * len(body)}\n" for sample in samples)
        (folder / f"{stem}.min1.fasta").write_text(text)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def layout(temp_dir: Path) -> OutputLayout:
    return OutputLayout(temp_dir)


@pytest.fixture
def fake_runner() -> FakeToolRunner:
    return FakeToolRunner()


@pytest.fixture
def cultivars() -> Tuple[str, ...]:
    return ("Nipponbare", "IR64", "Kasalath")


@pytest.fixture
def cultivar_list_file(temp_dir: Path, cultivars: Tuple[str, ...]) -> Path:
    path = temp_dir / "cultivars.txt"
    path.write_text("\n".join(cultivars) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def split_inputs(layout: OutputLayout, cultivars: Tuple[str, ...]) -> OutputLayout:
    """
    One input VCF per cultivar per chromosome.

    chr01 holds a single segregating SNP (A>G: 0/0, 1/1, 0/1); every other
    chromosome has a header-only file.
    """
    calls = {"Nipponbare": "0/0", "IR64": "1/1", "Kasalath": "0/1"}
    pattern = Settings().split_vcf_pattern
    for cultivar in cultivars:
        for chromosome in CHROMOSOMES:
            records = []
            if chromosome == "chr01":
                records.append(vcf_record("chr01", 1000, "A", "G", calls[cultivar]))
            write_vcf(layout.split_vcf(cultivar, chromosome, pattern), [cultivar], records)
    return layout


@pytest.fixture
def test_settings() -> Settings:
    """Settings that keep merge tasks in-process so FakeToolRunner can be shared."""
    return Settings(merge_executor="thread", threads=2, subsample_seed=7)


@pytest.fixture
def local_environment(temp_dir: Path) -> RuntimeEnvironment:
    return RuntimeEnvironment(mode=ExecutionMode.LOCAL, work_dir=temp_dir)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep host configuration out of the tests."""
    for key in list(os.environ):
        if key.startswith("CULTIVAR_SNP_TREE_") or key in ("PBS_O_WORKDIR", "SLURM_SUBMIT_DIR"):
            monkeypatch.delenv(key, raising=False)


# Test markers for different test categories
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "external: mark test as requiring bcftools/tabix/raxml-ng")
