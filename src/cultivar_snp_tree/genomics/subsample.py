"""
Random subsampling of VCF records.

The header is copied verbatim; ``N`` body lines are chosen uniformly at
random without replacement and written verbatim in their original order.
The body is streamed through a reservoir, so memory grows with ``N``, not
with the size of the input.

When fewer than ``N`` records exist, all of them are written and a warning
is logged; this is not an error.
"""

import random
from itertools import chain
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from loguru import logger

from ..core.exceptions import DataError, ValidationError
from ..core.types import PathLike, SubsampleResult
from .vcf import COLUMN_HEADER_PREFIX, atomic_output, open_vcf


def split_header(lines: Iterable[str]) -> Tuple[List[str], Iterator[str]]:
    """
    Split VCF text at the ``#CHROM`` column-header line.

    Returns:
        (header lines including ``#CHROM``, iterator over the body lines)

    Raises:
        DataError: If no ``#CHROM`` line precedes the first record
    """
    iterator = iter(lines)
    header: List[str] = []
    for line in iterator:
        header.append(line)
        if line.startswith(COLUMN_HEADER_PREFIX):
            return header, iterator
        if not line.startswith("#"):
            break
    raise DataError(
        f"VCF header has no {COLUMN_HEADER_PREFIX} line",
        data_type="vcf_header",
    )


def reservoir_sample(lines: Iterable[str], size: int, rng: random.Random) -> Tuple[List[str], int]:
    """
    Choose ``size`` lines uniformly without replacement, preserving order.

    Returns:
        (chosen lines in input order, number of lines seen)
    """
    reservoir: List[Tuple[int, str]] = []
    seen = 0
    for line in lines:
        if len(reservoir) < size:
            reservoir.append((seen, line))
        elif size > 0:
            slot = rng.randint(0, seen)
            if slot < size:
                reservoir[slot] = (seen, line)
        seen += 1
    reservoir.sort(key=lambda item: item[0])
    return [line for _, line in reservoir], seen


def subsample_vcf(
    input_path: PathLike,
    output_path: PathLike,
    size: int,
    seed: Optional[int] = None,
) -> SubsampleResult:
    """
    Write a VCF with the header of ``input_path`` and ``min(size, records)``
    randomly chosen record lines.

    Args:
        input_path: Source VCF (plain or gzip)
        output_path: Destination VCF
        size: Number of records requested
        seed: Seed for reproducible draws; None draws from system entropy

    Raises:
        ValidationError: If ``size`` is negative
        DataError: If the input has no ``#CHROM`` header line
    """
    if size < 0:
        raise ValidationError("Subsample size must be non-negative", field_name="size", field_value=size)

    rng = random.Random(seed)
    with open_vcf(input_path) as source:
        header, body = split_header(source)
        chosen, available = reservoir_sample(_records_only(body), size, rng)

    with atomic_output(output_path) as tmp_path:
        with open(tmp_path, "w", encoding="utf-8") as sink:
            sink.writelines(chain(header, chosen))

    if size > available:
        logger.warning(
            f"Requested {size} SNPs but only {available} are available; writing all of them"
        )
    logger.info(f"Subsampled {len(chosen)} of {available} SNP records into {output_path}")

    return SubsampleResult(
        output=Path(output_path),
        requested=size,
        available=available,
        written=len(chosen),
        seed=seed,
    )


def _records_only(lines: Iterable[str]) -> Iterator[str]:
    for line in lines:
        if line.startswith("#") or not line.strip():
            continue
        yield line
