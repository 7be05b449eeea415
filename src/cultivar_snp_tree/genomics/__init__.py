"""VCF merging, filtering, subsampling and alignment conversion."""

from .vcf import VcfRecord, is_clean_snp, filter_vcf_file
from .merge import ChromosomeMerger, merge_chromosome
from .assemble import Assembler
from .subsample import subsample_vcf, split_header
from .alignment import AlignmentConverter

__all__ = [
    "VcfRecord",
    "is_clean_snp",
    "filter_vcf_file",
    "ChromosomeMerger",
    "merge_chromosome",
    "Assembler",
    "subsample_vcf",
    "split_header",
    "AlignmentConverter",
]
