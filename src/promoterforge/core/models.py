"""Core data models for promoter extraction.

All coordinates in this module are 1-based and inclusive on both ends,
matching GTF/GFF3 files. An empty interval is written as
``start == end + 1``.

Models:
    Strand: Strand of a feature (+, - or undetermined).
    FeatureRecord: One normalized annotation line.
    GeneLocus: A gene collapsed from all of its feature records.
    UpstreamWindow: The clipped interval upstream of a gene's TSS.
    SequenceIndexEntry: Byte layout of one sequence in a FASTA file.
    ExtractedPromoter: An oriented promoter sequence labelled by gene.

Example:
    >>> from promoterforge.core.models import FeatureRecord, Strand
    >>> rec = FeatureRecord("chr1", 100, 900, Strand.PLUS, "gene",
    ...                     "protein_coding", "RefSeq", gene_id="G1")
    >>> rec.length
    801
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import attrs

# =============================================================================
# Strand
# =============================================================================

# Symbols seen in the strand column of GTF/GFF files and in other tools
_STRAND_ALIASES = {
    "+": "+",
    "plus": "+",
    "-": "-",
    "minus": "-",
    ".": ".",
    "*": ".",
    "?": ".",
    "": ".",
    "unknown": ".",
}


class Strand(Enum):
    """Strand of a genomic feature."""

    PLUS = "+"
    MINUS = "-"
    UNKNOWN = "."

    @classmethod
    def parse(cls, value: Strand | str) -> Strand:
        """Parse a strand symbol.

        Args:
            value: A Strand or one of ``+``, ``-``, ``.``, ``*``, ``?``,
                ``plus``, ``minus`` (case-insensitive).

        Returns:
            The matching Strand.

        Raises:
            ValueError: If the symbol is not recognized.
        """
        if isinstance(value, cls):
            return value
        symbol = _STRAND_ALIASES.get(str(value).strip().lower())
        if symbol is None:
            raise ValueError(f"Unrecognized strand symbol: {value!r}")
        return cls(symbol)

    @property
    def is_determined(self) -> bool:
        """True for PLUS and MINUS."""
        return self is not Strand.UNKNOWN

    def __str__(self) -> str:
        return self.value


def _check_interval(instance: Any, attribute: attrs.Attribute, value: int) -> None:
    if value < instance.start:
        raise ValueError(
            f"end ({value}) must be >= start ({instance.start}) "
            f"for {type(instance).__name__}"
        )


def _positive(instance: Any, attribute: attrs.Attribute, value: int) -> None:
    if value < 1:
        raise ValueError(f"{attribute.name} must be >= 1 (1-based), got {value}")


# =============================================================================
# Annotation Records
# =============================================================================


@attrs.frozen(slots=True)
class FeatureRecord:
    """One annotation entry after parsing.

    Attributes:
        sequence_name: Chromosome/contig identifier.
        start: Start position (1-based, inclusive).
        end: End position (1-based, inclusive).
        strand: Feature strand; may be UNKNOWN until resolved.
        feature_type: Feature type column (e.g. "gene").
        gene_biotype: Gene biotype (e.g. "protein_coding"), "" if absent.
        source: Source column of the annotation.
        gene_id: Gene identifier, None if the line carries none.
        attributes: Raw attribute column, kept for diagnostics.
    """

    sequence_name: str
    start: int = attrs.field(validator=_positive)
    end: int = attrs.field(validator=_check_interval)
    strand: Strand = attrs.field(converter=Strand.parse)
    feature_type: str
    gene_biotype: str = ""
    source: str = ""
    gene_id: str | None = None
    attributes: dict[str, str] = attrs.field(
        factory=dict, eq=False, repr=False
    )

    @property
    def length(self) -> int:
        """Feature length in base pairs."""
        return self.end - self.start + 1


# =============================================================================
# Gene Loci
# =============================================================================


def _resolved(instance: Any, attribute: attrs.Attribute, value: Strand) -> None:
    if not value.is_determined:
        raise ValueError(
            f"GeneLocus {instance.gene_id} cannot carry an undetermined strand"
        )


@attrs.frozen(slots=True)
class GeneLocus:
    """A gene collapsed from all records sharing its gene_id.

    Attributes:
        gene_id: Unique gene identifier.
        sequence_name: Chromosome/contig identifier.
        start: Leftmost position (1-based, inclusive).
        end: Rightmost position (1-based, inclusive).
        strand: PLUS or MINUS.
    """

    gene_id: str
    sequence_name: str
    start: int = attrs.field(validator=_positive)
    end: int = attrs.field(validator=_check_interval)
    strand: Strand = attrs.field(converter=Strand.parse, validator=_resolved)

    @property
    def length(self) -> int:
        """Gene length in base pairs."""
        return self.end - self.start + 1

    @property
    def tss(self) -> int:
        """Transcription start site (strand-aware)."""
        return self.start if self.strand is Strand.PLUS else self.end


@attrs.frozen(slots=True)
class UpstreamWindow:
    """Interval upstream of a gene's TSS, clipped to the sequence.

    An empty window has ``window_start == window_end + 1``.
    """

    sequence_name: str
    window_start: int
    window_end: int
    strand: Strand
    gene_id: str

    @property
    def length(self) -> int:
        """Window length in base pairs (0 for an empty window)."""
        return self.window_end - self.window_start + 1

    @property
    def is_empty(self) -> bool:
        """True if the window covers no bases."""
        return self.length == 0

    def __str__(self) -> str:
        return (
            f"{self.sequence_name}:{self.window_start}-{self.window_end}"
            f"({self.strand})"
        )


# =============================================================================
# Genome Index
# =============================================================================


@attrs.frozen(slots=True)
class SequenceIndexEntry:
    """Location of one sequence inside a FASTA file (as in a .fai line).

    Attributes:
        sequence_name: Sequence identifier.
        length: Number of bases.
        offset: Byte offset of the first base.
        line_bases: Bases per full line.
        line_width: Bytes per full line, including the line terminator.
    """

    sequence_name: str
    length: int
    offset: int
    line_bases: int
    line_width: int


# =============================================================================
# Output
# =============================================================================


@attrs.frozen(slots=True)
class ExtractedPromoter:
    """A promoter sequence oriented 5'->3' relative to its gene.

    Attributes:
        gene_id: Gene identifier, used verbatim as the output label.
        sequence: Nucleotide sequence (possibly empty).
        window: The window the sequence was read from.
    """

    gene_id: str
    sequence: str
    window: UpstreamWindow | None = attrs.field(default=None, eq=False)

    @property
    def length(self) -> int:
        """Sequence length in base pairs."""
        return len(self.sequence)
