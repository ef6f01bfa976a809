"""Strand-aware extraction of upstream promoter sequences.

For each gene locus the upstream window is computed, read from the
indexed genome and, for minus-strand genes, reverse-complemented so that
every promoter reads 5'->3' towards its TSS.

Key components:
- PromoterExtractor: per-locus extraction and worker-pool fan-out
- ExtractionResult: promoters plus per-gene failures and warnings

Example:
    >>> from promoterforge.core.extract import PromoterExtractor
    >>> from promoterforge.io.fasta import IndexedGenome
    >>> with IndexedGenome("genome.fa") as genome:
    ...     extractor = PromoterExtractor(genome, width=1000)
    ...     result = extractor.extract_all(loci)
    >>> print(len(result.promoters), "promoters,", result.n_skipped, "skipped")
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Sequence

import attrs

from promoterforge.core.models import ExtractedPromoter, GeneLocus, Strand
from promoterforge.core.windows import compute_upstream_window, validate_width
from promoterforge.errors import PER_GENE_ERRORS, PromoterForgeError, RangeOutOfBounds
from promoterforge.parallel.executor import ParallelExecutor
from promoterforge.utils.logging import ProgressLogger
from promoterforge.utils.sequences import find_nonstandard_symbols, reverse_complement

if TYPE_CHECKING:
    from promoterforge.io.fasta import IndexedGenome

logger = logging.getLogger(__name__)


# =============================================================================
# Result Containers
# =============================================================================


@attrs.frozen(slots=True)
class SkippedGene:
    """A gene whose promoter could not be extracted."""

    gene_id: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return {"gene_id": self.gene_id, "reason": self.reason}


@attrs.frozen(slots=True)
class SymbolWarning:
    """Non-standard symbols met while reverse-complementing a promoter."""

    gene_id: str
    symbols: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return {"gene_id": self.gene_id, "symbols": self.symbols}


@attrs.define(slots=True)
class ExtractionResult:
    """Outcome of extracting promoters for a set of loci.

    Attributes:
        promoters: One promoter per successful locus, in locus order.
        skipped: Loci that failed with a per-gene error.
        warnings: Non-standard symbol warnings.
    """

    promoters: list[ExtractedPromoter] = attrs.Factory(list)
    skipped: list[SkippedGene] = attrs.Factory(list)
    warnings: list[SymbolWarning] = attrs.Factory(list)

    @property
    def n_skipped(self) -> int:
        """Number of loci that were skipped."""
        return len(self.skipped)

    @property
    def n_empty(self) -> int:
        """Number of promoters with an empty window."""
        return sum(1 for p in self.promoters if not p.sequence)


# =============================================================================
# Extractor
# =============================================================================


class PromoterExtractor:
    """Extract oriented upstream sequences from an indexed genome.

    The genome is only read, so one extractor can serve many worker
    threads.

    Attributes:
        genome: Indexed genome to read from.
        width: Requested promoter width in base pairs.
    """

    def __init__(self, genome: IndexedGenome, width: int) -> None:
        """Initialize the extractor.

        Args:
            genome: IndexedGenome (or any object with fetch/get_length).
            width: Promoter width; 0 yields empty promoters.

        Raises:
            InvalidConfiguration: If width is negative.
        """
        self.genome = genome
        self.width = validate_width(width)

    def extract(self, locus: GeneLocus) -> tuple[ExtractedPromoter, SymbolWarning | None]:
        """Extract the promoter of one gene.

        Args:
            locus: Gene locus.

        Returns:
            Tuple of (promoter, symbol warning or None).

        Raises:
            UnknownSequenceName: If the locus' sequence is not in the genome.
            RangeOutOfBounds: If the locus lies outside its sequence or the
                sequence is empty.
            IndexBuildError: If the genome file does not match its index.
        """
        sequence_length = self.genome.get_length(locus.sequence_name)
        if sequence_length == 0:
            raise RangeOutOfBounds(
                f"Gene {locus.gene_id} lies on {locus.sequence_name}, "
                "which has no bases",
                gene_id=locus.gene_id,
            )
        window = compute_upstream_window(locus, self.width, sequence_length)
        sequence = self.genome.fetch(
            window.sequence_name, window.window_start, window.window_end
        )

        warning = None
        if locus.strand is Strand.MINUS:
            odd = find_nonstandard_symbols(sequence)
            if odd:
                warning = SymbolWarning(locus.gene_id, "".join(sorted(odd)))
                logger.warning(
                    f"Promoter of {locus.gene_id} contains non-standard symbols "
                    f"{warning.symbols!r}; kept as-is in the reverse complement"
                )
            sequence = reverse_complement(sequence)

        promoter = ExtractedPromoter(
            gene_id=locus.gene_id, sequence=sequence, window=window
        )
        return promoter, warning

    def extract_all(
        self,
        loci: Sequence[GeneLocus],
        executor: ParallelExecutor | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ExtractionResult:
        """Extract promoters for many loci.

        Per-gene errors are recorded and skipped. Any other error aborts
        the whole run.

        Args:
            loci: Gene loci in output order.
            executor: Worker pool; serial if None.
            cancel_event: Stops the run between genes once set; used in
                place of the executor's own event for this call only.

        Returns:
            ExtractionResult with promoters in the order of loci.

        Raises:
            IndexBuildError: If the genome index turns out to be corrupt.
            RunCancelled: If the executor was cancelled.
        """
        if executor is None:
            executor = ParallelExecutor(n_workers=1)
        own_event = executor.cancel_event
        if cancel_event is not None:
            executor.cancel_event = cancel_event

        progress = ProgressLogger(
            logger, total=len(loci), interval=5000, description="Extracting promoters"
        )
        user_callback = executor.progress_callback

        def on_progress(completed: int, total: int, task_id: str) -> None:
            progress.update()
            if user_callback is not None:
                user_callback(completed, total, task_id)

        executor.progress_callback = on_progress
        try:
            results, stats = executor.map_items(
                self.extract,
                list(loci),
                task_ids=[locus.gene_id for locus in loci],
            )
        finally:
            executor.progress_callback = user_callback
            executor.cancel_event = own_event

        extraction = ExtractionResult()
        for task in results:
            if task.success:
                promoter, warning = task.result
                extraction.promoters.append(promoter)
                if warning is not None:
                    extraction.warnings.append(warning)
            elif isinstance(task.exception, PER_GENE_ERRORS):
                logger.warning(f"Skipping gene {task.task_id}: {task.error}")
                extraction.skipped.append(SkippedGene(task.task_id, task.error or ""))
            elif isinstance(task.exception, PromoterForgeError):
                raise task.exception
            else:
                raise RuntimeError(
                    f"Unexpected error extracting {task.task_id}: {task.error}"
                ) from task.exception

        logger.info(
            f"Extracted {len(extraction.promoters)} promoters "
            f"({extraction.n_empty} empty, {extraction.n_skipped} skipped) "
            f"in {stats.total_duration:.1f}s"
        )
        return extraction
