"""Nucleotide sequence utilities.

- Complement and reverse complement (case preserving)
- Detection of symbols outside the standard alphabet

Only A, C, G, T and N are complemented. Any other symbol is kept as
itself, so reverse_complement stays an involution on every input.

Example:
    >>> from promoterforge.utils.sequences import reverse_complement
    >>> reverse_complement("AAcgN")
    'NcgTT'
"""

# =============================================================================
# Constants
# =============================================================================

STANDARD_SYMBOLS = frozenset("ACGTNacgtn")

COMPLEMENT_TABLE = str.maketrans("ACGTNacgtn", "TGCANtgcan")


# =============================================================================
# Complement and Reverse Complement
# =============================================================================


def complement(sequence: str) -> str:
    """Get the complement of a DNA sequence.

    Args:
        sequence: DNA sequence string.

    Returns:
        Complement sequence; non-standard symbols are unchanged.
    """
    return sequence.translate(COMPLEMENT_TABLE)


def reverse_complement(sequence: str) -> str:
    """Get the reverse complement of a DNA sequence.

    Args:
        sequence: DNA sequence string.

    Returns:
        Reverse complement sequence.
    """
    return complement(sequence)[::-1]


def find_nonstandard_symbols(sequence: str) -> set[str]:
    """Return symbols of sequence outside ACGTN (either case)."""
    return set(sequence) - STANDARD_SYMBOLS

