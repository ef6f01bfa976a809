"""Gene locus consolidation.

Filters annotation records down to qualifying genes and collapses all
records sharing a gene_id into a single GeneLocus. A gene whose records
disagree on sequence name or strand is rejected and reported; the other
genes are unaffected.

Example:
    >>> from promoterforge.core.loci import consolidate_loci
    >>> result = consolidate_loci(records, sources={"RefSeq"})
    >>> print(len(result.loci), "genes,", len(result.dropped), "dropped")
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Collection, Iterable

import attrs

from promoterforge.core.models import FeatureRecord, GeneLocus
from promoterforge.errors import (
    InconsistentGeneLocus,
    InvalidConfiguration,
    MissingRequiredField,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

FEATURE_GENE = "gene"
BIOTYPE_PROTEIN_CODING = "protein_coding"


# =============================================================================
# Result Containers
# =============================================================================


@attrs.frozen(slots=True)
class DroppedGene:
    """A gene rejected during consolidation."""

    gene_id: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return {"gene_id": self.gene_id, "reason": self.reason}


@attrs.define(slots=True)
class ConsolidationResult:
    """Outcome of consolidating annotation records.

    Attributes:
        loci: One GeneLocus per valid gene, sorted by gene_id.
        dropped: Rejected genes, sorted by gene_id.
        n_retained_records: Records that passed the filters.
    """

    loci: list[GeneLocus] = attrs.Factory(list)
    dropped: list[DroppedGene] = attrs.Factory(list)
    n_retained_records: int = 0

    @property
    def n_dropped(self) -> int:
        """Number of rejected genes."""
        return len(self.dropped)

    @property
    def dropped_ids(self) -> list[str]:
        """Identifiers of rejected genes."""
        return [d.gene_id for d in self.dropped]


# =============================================================================
# Filtering
# =============================================================================


def filter_records(
    records: Iterable[FeatureRecord],
    feature_type: str = FEATURE_GENE,
    gene_biotype: str = BIOTYPE_PROTEIN_CODING,
    sources: Collection[str] | None = None,
) -> list[FeatureRecord]:
    """Keep records matching feature type, biotype and source allow-set.

    Args:
        records: Annotation records.
        feature_type: Required feature type.
        gene_biotype: Required gene biotype.
        sources: Allowed sources; None disables the source filter.

    Returns:
        Matching records in input order.
    """
    allowed = None if sources is None else frozenset(sources)
    return [
        record
        for record in records
        if record.feature_type == feature_type
        and record.gene_biotype == gene_biotype
        and (allowed is None or record.source in allowed)
    ]


# =============================================================================
# Consolidation
# =============================================================================


def collapse_gene(gene_id: str, records: list[FeatureRecord]) -> GeneLocus:
    """Collapse the records of one gene into a GeneLocus.

    Args:
        gene_id: Gene identifier shared by all records.
        records: Non-empty list of the gene's records.

    Returns:
        GeneLocus spanning all records.

    Raises:
        InconsistentGeneLocus: If records disagree on sequence or strand,
            or the strand is still undetermined.
    """
    sequence_names = {r.sequence_name for r in records}
    if len(sequence_names) > 1:
        raise InconsistentGeneLocus(
            f"Gene {gene_id} spans multiple sequences: "
            f"{', '.join(sorted(sequence_names))}",
            gene_id=gene_id,
        )

    strands = {r.strand for r in records}
    if len(strands) > 1:
        raise InconsistentGeneLocus(
            f"Gene {gene_id} has conflicting strands: "
            f"{', '.join(sorted(s.value for s in strands))}",
            gene_id=gene_id,
        )

    (strand,) = strands
    if not strand.is_determined:
        raise InconsistentGeneLocus(
            f"Gene {gene_id} has an unresolved strand", gene_id=gene_id
        )

    return GeneLocus(
        gene_id=gene_id,
        sequence_name=records[0].sequence_name,
        start=min(r.start for r in records),
        end=max(r.end for r in records),
        strand=strand,
    )


def consolidate_loci(
    records: Iterable[FeatureRecord],
    *,
    feature_type: str = FEATURE_GENE,
    gene_biotype: str = BIOTYPE_PROTEIN_CODING,
    sources: Collection[str] | None = None,
) -> ConsolidationResult:
    """Build one GeneLocus per qualifying gene.

    Args:
        records: Strand-resolved annotation records.
        feature_type: Feature type filter; must be "gene".
        gene_biotype: Gene biotype filter.
        sources: Allowed annotation sources; None accepts every source.

    Returns:
        ConsolidationResult with loci and dropped genes.

    Raises:
        InvalidConfiguration: If feature_type is not "gene".
        MissingRequiredField: If a retained record has no gene_id.
    """
    if feature_type != FEATURE_GENE:
        raise InvalidConfiguration(
            f"feature_type must be '{FEATURE_GENE}', got {feature_type!r}"
        )

    retained = filter_records(records, feature_type, gene_biotype, sources)

    missing = sum(1 for r in retained if not r.gene_id)
    if missing:
        raise MissingRequiredField(
            f"{missing} retained '{feature_type}' records have no 'gene_id'; "
            "it is required to collapse features into gene loci"
        )

    groups: dict[str, list[FeatureRecord]] = defaultdict(list)
    for record in retained:
        groups[record.gene_id].append(record)

    result = ConsolidationResult(n_retained_records=len(retained))
    for gene_id in sorted(groups):
        try:
            result.loci.append(collapse_gene(gene_id, groups[gene_id]))
        except InconsistentGeneLocus as e:
            logger.warning(f"Dropping gene: {e}")
            result.dropped.append(DroppedGene(gene_id=gene_id, reason=str(e)))

    logger.info(
        f"Consolidated {len(retained)} records into {len(result.loci)} gene loci "
        f"({result.n_dropped} dropped)"
    )
    return result
