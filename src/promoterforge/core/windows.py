"""Upstream window computation.

The promoter window of a gene ends right before its TSS. It is taken
from the left of a plus-strand gene and from the right of a
minus-strand gene. Windows are truncated at the sequence boundaries and
never wrap; a gene sitting at the boundary gets an empty window.

Example:
    >>> from promoterforge.core.models import GeneLocus
    >>> from promoterforge.core.windows import compute_upstream_window
    >>> locus = GeneLocus("G1", "chr1", 500, 900, "+")
    >>> window = compute_upstream_window(locus, 1000, 2000)
    >>> window.window_start, window.window_end, window.length
    (1, 499, 499)
"""

from __future__ import annotations

from promoterforge.core.models import GeneLocus, Strand, UpstreamWindow
from promoterforge.errors import InvalidConfiguration, RangeOutOfBounds


def validate_width(width: int) -> int:
    """Check a promoter width argument.

    Raises:
        InvalidConfiguration: If width is not a non-negative integer.
    """
    if isinstance(width, bool) or not isinstance(width, int):
        raise InvalidConfiguration(
            f"promotor_width must be an integer, got {width!r}"
        )
    if width < 0:
        raise InvalidConfiguration(f"promotor_width must be >= 0, got {width}")
    return width


def compute_upstream_window(
    locus: GeneLocus,
    width: int,
    sequence_length: int,
) -> UpstreamWindow:
    """Compute the clipped window upstream of a gene.

    Args:
        locus: Gene locus (1-based, inclusive).
        width: Requested window width in base pairs.
        sequence_length: Length of the locus' sequence.

    Returns:
        UpstreamWindow, possibly shorter than width or empty.

    Raises:
        InvalidConfiguration: If width is negative or sequence_length < 1.
        RangeOutOfBounds: If the locus extends past the sequence end.
    """
    validate_width(width)
    if sequence_length < 1:
        raise InvalidConfiguration(
            f"sequence_length must be >= 1, got {sequence_length} "
            f"for {locus.sequence_name}"
        )
    if locus.end > sequence_length:
        raise RangeOutOfBounds(
            f"Gene {locus.gene_id} ends at {locus.end}, past the end of "
            f"{locus.sequence_name} ({sequence_length} bp)",
            gene_id=locus.gene_id,
        )

    if locus.strand is Strand.PLUS:
        window_end = locus.start - 1
        window_start = max(1, locus.start - width)
    else:
        window_start = locus.end + 1
        window_end = min(sequence_length, locus.end + width)

    return UpstreamWindow(
        sequence_name=locus.sequence_name,
        window_start=window_start,
        window_end=window_end,
        strand=locus.strand,
        gene_id=locus.gene_id,
    )
