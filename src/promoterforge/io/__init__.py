"""Input/output handlers for PromoterForge.

- GTF/GFF/GFF3: annotation files parsed into feature records
- FASTA: indexed genome access and promoter output

Example:
    >>> from promoterforge.io import IndexedGenome, read_annotation
    >>> records = read_annotation("genes.gff3", "gff3")
    >>> genome = IndexedGenome("genome.fa")
"""

from promoterforge.io.fasta import (
    FastaWriter,
    IndexedGenome,
    build_fasta_index,
    write_promoters,
)
from promoterforge.io.gff import AnnotationParser, iter_annotation, read_annotation

__all__ = [
    "AnnotationParser",
    "FastaWriter",
    "IndexedGenome",
    "build_fasta_index",
    "iter_annotation",
    "read_annotation",
    "write_promoters",
]
