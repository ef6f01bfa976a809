"""PromoterForge: upstream promoter sequence extraction.

PromoterForge reads a genome FASTA file and its GTF/GFF annotation and
writes, for every protein-coding gene, the sequence immediately upstream
of its transcription start site.

Example:
    >>> import promoterforge
    >>> promoterforge.__version__
    '0.1.0'

Modules:
    core: Data models, strand resolution, locus consolidation, windows, extraction
    io: Annotation parsing, indexed FASTA access and FASTA output
    parallel: Worker pool for per-gene extraction
    pipeline: End-to-end orchestration
    utils: Logging and sequence utilities
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
