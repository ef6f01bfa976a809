"""Utility functions for PromoterForge.

- Sequence manipulation (reverse complement, alphabet checks)
- Logging configuration

Example:
    >>> from promoterforge.utils import reverse_complement
    >>> reverse_complement("ATGC")
    'GCAT'
"""

from promoterforge.utils.sequences import (
    complement,
    find_nonstandard_symbols,
    reverse_complement,
)

__all__ = [
    "complement",
    "find_nonstandard_symbols",
    "reverse_complement",
]
