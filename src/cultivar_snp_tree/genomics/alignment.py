"""
VCF to FASTA alignment conversion.

The built-in converter writes one sequence per sample, one column per
record. Homozygous calls become the called base, heterozygous calls the
IUPAC ambiguity code of their bases, and missing or non-nucleotide calls
``N``. Sequence ids are the sample names in VCF column order.

The ``vcf2phylip`` backend delegates to the external vcf2phylip.py script
with FASTA output, then moves its result onto the canonical path.
"""

import os
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from ..core.exceptions import DataError, ToolError
from ..core.types import PathLike
from ..utils.logging import LoggerMixin, performance_monitor
from ..utils.tools import ToolRunner
from .vcf import SNP_BASES, VcfRecord, atomic_output, iter_records, open_vcf, read_sample_names


IUPAC_CODES: Dict[FrozenSet[str], str] = {
    frozenset("A"): "A",
    frozenset("C"): "C",
    frozenset("G"): "G",
    frozenset("T"): "T",
    frozenset("AG"): "R",
    frozenset("CT"): "Y",
    frozenset("CG"): "S",
    frozenset("AT"): "W",
    frozenset("GT"): "K",
    frozenset("AC"): "M",
    frozenset("CGT"): "B",
    frozenset("AGT"): "D",
    frozenset("ACT"): "H",
    frozenset("ACG"): "V",
    frozenset("ACGT"): "N",
}

MISSING = "N"


def genotype_to_base(record: VcfRecord, genotype: Tuple[Optional[int], ...]) -> str:
    """Alignment character for one sample's genotype at one record."""
    bases = set()
    for call in genotype:
        allele = record.allele(call)
        if allele is None:
            return MISSING
        allele = allele.upper()
        if len(allele) != 1 or allele not in SNP_BASES:
            return MISSING
        bases.add(allele)
    if not bases:
        return MISSING
    return IUPAC_CODES[frozenset(bases)]


def vcf_to_sequences(vcf_path: PathLike) -> List[SeqRecord]:
    """
    Build one SeqRecord per sample from a VCF.

    Raises:
        DataError: If a record's sample count does not match the header
    """
    samples = read_sample_names(vcf_path)
    columns: List[List[str]] = [[] for _ in samples]

    with open_vcf(vcf_path) as handle:
        for record in iter_records(handle):
            if len(record.genotypes) != len(samples):
                raise DataError(
                    f"{record.chrom}:{record.pos} has {len(record.genotypes)} genotypes "
                    f"for {len(samples)} samples",
                    data_type="vcf_record",
                    data_source=str(vcf_path),
                )
            for column, genotype in zip(columns, record.genotypes):
                column.append(genotype_to_base(record, genotype))

    return [
        SeqRecord(Seq("".join(column)), id=sample, description="")
        for sample, column in zip(samples, columns)
    ]


class AlignmentConverter(LoggerMixin):
    """Turns the subsampled VCF into a FASTA alignment."""

    def __init__(
        self,
        backend: str = "builtin",
        runner: Optional[ToolRunner] = None,
        vcf2phylip: str = "vcf2phylip.py",
    ):
        self.backend = backend
        self.runner = runner or ToolRunner()
        self.vcf2phylip = vcf2phylip

    @performance_monitor
    def convert(self, vcf_path: PathLike, fasta_path: PathLike) -> Path:
        """Write the alignment for ``vcf_path`` to ``fasta_path``."""
        vcf_path = Path(vcf_path)
        fasta_path = Path(fasta_path)
        if self.backend == "vcf2phylip":
            return self._convert_external(vcf_path, fasta_path)

        records = vcf_to_sequences(vcf_path)
        with atomic_output(fasta_path) as tmp_path:
            with open(tmp_path, "w", encoding="utf-8") as handle:
                SeqIO.write(records, handle, "fasta")

        length = len(records[0].seq) if records else 0
        self.logger.info(f"Wrote alignment of {len(records)} sequences x {length} sites to {fasta_path}")
        return fasta_path

    def _convert_external(self, vcf_path: Path, fasta_path: Path) -> Path:
        output_dir = fasta_path.parent
        output_dir.mkdir(parents=True, exist_ok=True)
        self.runner.run(
            [
                self.vcf2phylip,
                "-i", vcf_path,
                "-m", "1",
                "-p",
                "-f",
                "--output-folder", output_dir,
            ],
            log_file=output_dir / "vcf2phylip.log",
        )

        stem = vcf_path.name[:-4] if vcf_path.name.endswith(".vcf") else vcf_path.stem
        produced = output_dir / f"{stem}.min1.fasta"
        if not produced.is_file():
            raise ToolError(
                f"vcf2phylip finished but {produced.name} was not written",
                command=[self.vcf2phylip, "-i", str(vcf_path)],
            )
        os.replace(produced, fasta_path)
        self.logger.info(f"vcf2phylip alignment moved to {fasta_path}")
        return fasta_path
