"""
Minimal VCF reading and the SNP artifact filter.

Records are parsed only as far as the filters and the alignment converter
need: position columns, REF, the ALT list and the GT subfield of every
sample. Lines are always written back verbatim.
"""

import gzip
import os
import re
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, TextIO, Tuple

from ..core.exceptions import DataError
from ..core.types import PathLike


COLUMN_HEADER_PREFIX = "#CHROM"
NON_REF = "<NON_REF>"
NUCLEOTIDES = frozenset("ACGTN")
SNP_BASES = frozenset("ACGT")

# Allele indices whose homozygous calls need explicit support in the ALT list
CHECKED_ALT_INDICES = (2, 3, 4)

_GT_SPLIT = re.compile(r"[/|]")


@dataclass(frozen=True)
class VcfRecord:
    """A parsed VCF body line."""

    chrom: str
    pos: int
    ref: str
    alts: Tuple[str, ...]
    genotypes: Tuple[Tuple[Optional[int], ...], ...]
    line: str

    @classmethod
    def parse(cls, line: str) -> "VcfRecord":
        """
        Parse one tab-separated record line.

        Raises:
            DataError: If the line has fewer than the eight fixed columns
        """
        fields = line.rstrip("\r\n").split("\t")
        if len(fields) < 8:
            raise DataError(
                f"Malformed VCF record with {len(fields)} columns: {line[:80]!r}",
                data_type="vcf_record",
            )
        try:
            pos = int(fields[1])
        except ValueError as e:
            raise DataError(f"Non-integer POS in VCF record: {fields[1]!r}", data_type="vcf_record") from e

        alts = tuple(fields[4].split(","))
        genotypes: Tuple[Tuple[Optional[int], ...], ...] = ()
        if len(fields) > 9:
            format_keys = fields[8].split(":")
            if "GT" in format_keys:
                gt_index = format_keys.index("GT")
                genotypes = tuple(
                    _parse_genotype(sample.split(":"), gt_index) for sample in fields[9:]
                )

        return cls(
            chrom=fields[0],
            pos=pos,
            ref=fields[3],
            alts=alts,
            genotypes=genotypes,
            line=line,
        )

    def allele(self, index: Optional[int]) -> Optional[str]:
        """Allele string for a GT index; None for a missing call."""
        if index is None:
            return None
        if index == 0:
            return self.ref
        if index <= len(self.alts):
            return self.alts[index - 1]
        return None


def _parse_genotype(sample_fields: List[str], gt_index: int) -> Tuple[Optional[int], ...]:
    if gt_index >= len(sample_fields):
        return (None,)
    calls = []
    for allele in _GT_SPLIT.split(sample_fields[gt_index]):
        calls.append(int(allele) if allele.isdigit() else None)
    return tuple(calls)


def _is_homozygous_for(genotype: Tuple[Optional[int], ...], allele_index: int) -> bool:
    return bool(genotype) and all(call == allele_index for call in genotype)


def is_clean_snp(record: VcfRecord) -> bool:
    """
    Decide whether a record is a genuine single-nucleotide site.

    A record is rejected when
      * REF is not exactly one base;
      * ALT carries no real allele (``.``) or only ``<NON_REF>``;
      * any genotype calls an allele index beyond the ALT list;
      * any sample is homozygous for allele 2, 3 or 4 while the ALT list is
        too short to hold that allele or holds something other than a single
        base at that position. Such calls are multi-nucleotide
        polymorphisms or gVCF artifacts dressed up as SNPs.
    """
    if len(record.ref) != 1 or record.ref.upper() not in NUCLEOTIDES:
        return False

    if record.alts in ((".",), (NON_REF,)):
        return False

    called = [call for genotype in record.genotypes for call in genotype if call is not None]
    if any(call > len(record.alts) for call in called):
        return False

    for allele_index in CHECKED_ALT_INDICES:
        if not any(_is_homozygous_for(genotype, allele_index) for genotype in record.genotypes):
            continue
        if len(record.alts) < allele_index:
            return False
        alt = record.alts[allele_index - 1]
        if len(alt) != 1 or alt.upper() not in SNP_BASES:
            return False

    return True


@contextmanager
def open_vcf(path: PathLike, mode: str = "r") -> Iterator[TextIO]:
    """Open a plain or gzip/bgzip-compressed VCF as text."""
    path = Path(path)
    if path.suffix == ".gz":
        handle = gzip.open(path, mode + "t", encoding="utf-8")
    else:
        handle = open(path, mode, encoding="utf-8")
    try:
        yield handle
    finally:
        handle.close()


@contextmanager
def atomic_output(path: PathLike) -> Iterator[Path]:
    """
    Yield a temporary sibling path that is renamed onto ``path`` on success.

    On error the temporary file is removed and ``path`` is left untouched.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        yield tmp_path
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def iter_records(lines: Iterable[str]) -> Iterator[VcfRecord]:
    """Parse body lines, skipping header lines."""
    for line in lines:
        if line.startswith("#") or not line.strip():
            continue
        yield VcfRecord.parse(line)


def filter_vcf_lines(lines: Iterable[str]) -> Iterator[Tuple[str, bool]]:
    """
    Run the artifact filter over VCF text.

    Yields ``(line, kept)`` for every input line; header lines are always kept.
    """
    for line in lines:
        if line.startswith("#"):
            yield line, True
        elif not line.strip():
            continue
        else:
            yield line, is_clean_snp(VcfRecord.parse(line))


def filter_vcf_file(input_path: PathLike, output_path: PathLike) -> Tuple[int, int]:
    """
    Write the records of ``input_path`` that pass :func:`is_clean_snp`.

    Returns:
        (records kept, records rejected)
    """
    kept = rejected = 0
    with open_vcf(input_path) as source, atomic_output(output_path) as tmp_path:
        with open(tmp_path, "w", encoding="utf-8") as sink:
            for line, keep in filter_vcf_lines(source):
                if keep:
                    sink.write(line)
                    if not line.startswith("#"):
                        kept += 1
                else:
                    rejected += 1
    return kept, rejected


def read_sample_names(path: PathLike) -> List[str]:
    """
    Sample columns of a VCF's ``#CHROM`` line.

    Raises:
        DataError: If the file has no column header line
    """
    with open_vcf(path) as handle:
        for line in handle:
            if line.startswith(COLUMN_HEADER_PREFIX):
                return line.rstrip("\r\n").split("\t")[9:]
            if not line.startswith("#"):
                break
    raise DataError(
        f"No {COLUMN_HEADER_PREFIX} header line in {path}",
        data_type="vcf",
        data_source=str(path),
    )
