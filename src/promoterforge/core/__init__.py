"""Core promoter extraction logic for PromoterForge.

This module contains the data structures and algorithms between parsed
annotation records and extracted promoter sequences:

- Feature, locus, window and promoter models
- Strand resolution
- Gene locus consolidation
- Upstream window computation
- Strand-aware extraction

Example:
    >>> from promoterforge.core import consolidate_loci, compute_upstream_window
    >>> result = consolidate_loci(records)
"""

from promoterforge.core.extract import ExtractionResult, PromoterExtractor
from promoterforge.core.loci import ConsolidationResult, DroppedGene, consolidate_loci
from promoterforge.core.models import (
    ExtractedPromoter,
    FeatureRecord,
    GeneLocus,
    SequenceIndexEntry,
    Strand,
    UpstreamWindow,
)
from promoterforge.core.strand import resolve_strands
from promoterforge.core.windows import compute_upstream_window

__all__: list[str] = [
    # Models
    "ExtractedPromoter",
    "FeatureRecord",
    "GeneLocus",
    "SequenceIndexEntry",
    "Strand",
    "UpstreamWindow",
    # Pipeline stages
    "ConsolidationResult",
    "DroppedGene",
    "ExtractionResult",
    "PromoterExtractor",
    "compute_upstream_window",
    "consolidate_loci",
    "resolve_strands",
]
