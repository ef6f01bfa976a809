"""Exception taxonomy for PromoterForge.

Configuration and I/O setup errors are fatal and abort a run before any
extraction happens. Per-gene data errors (inconsistent loci, unknown
sequences, out-of-range windows) are caught by the pipeline, recorded in
the run report and never stop extraction of the remaining genes.

Example:
    >>> from promoterforge.errors import InvalidConfiguration
    >>> raise InvalidConfiguration("promotor_width must be >= 0, got -5")
"""

from __future__ import annotations

from pathlib import Path


class PromoterForgeError(Exception):
    """Base class for all PromoterForge errors.

    Attributes:
        path: File the error refers to, if any.
        gene_id: Gene the error refers to, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
        gene_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None
        self.gene_id = gene_id


# =============================================================================
# Fatal Errors
# =============================================================================


class InvalidConfiguration(PromoterForgeError, ValueError):
    """Raised for bad width, strand, format or filter arguments."""


class MissingRequiredField(PromoterForgeError):
    """Raised when retained annotation records lack a required field."""


class AnnotationParseError(PromoterForgeError):
    """Raised when an annotation file cannot be parsed."""


class IndexBuildError(PromoterForgeError):
    """Raised when a genome index cannot be built, loaded or trusted."""


class WriteError(PromoterForgeError):
    """Raised when the output sequence file cannot be written."""


class RunCancelled(PromoterForgeError):
    """Raised when a run is aborted between genes."""


# =============================================================================
# Per-Gene Errors
# =============================================================================


class InconsistentGeneLocus(PromoterForgeError):
    """Raised when records of one gene disagree on sequence or strand."""


class UnknownSequenceName(PromoterForgeError, KeyError):
    """Raised when a sequence name is not present in the genome index."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class RangeOutOfBounds(PromoterForgeError, ValueError):
    """Raised when a requested range extends past a sequence boundary."""


class InvalidRange(PromoterForgeError, ValueError):
    """Raised when a requested range has start > end + 1."""


#: Errors that only invalidate a single gene and are recorded, not raised.
PER_GENE_ERRORS: tuple[type[PromoterForgeError], ...] = (
    InconsistentGeneLocus,
    UnknownSequenceName,
    RangeOutOfBounds,
    InvalidRange,
)
