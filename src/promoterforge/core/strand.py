"""Strand resolution for annotation records.

Annotation files sometimes leave the strand column undetermined (``.``
in GFF3, ``*`` in other tools). Extraction needs a strand for every gene,
so undetermined strands are replaced by a caller-chosen default. No
attempt is made to infer a strand from neighbouring features.

Example:
    >>> from promoterforge.core.strand import resolve_strands
    >>> resolved = resolve_strands(records, default_strand="+")
"""

from __future__ import annotations

import logging
from typing import Iterable

import attrs

from promoterforge.core.models import FeatureRecord, Strand
from promoterforge.errors import InvalidConfiguration

logger = logging.getLogger(__name__)


def parse_default_strand(default_strand: Strand | str) -> Strand:
    """Validate a default strand argument.

    Args:
        default_strand: "+", "-" or a determined Strand.

    Returns:
        The Strand to use as fallback.

    Raises:
        InvalidConfiguration: If the value is not PLUS or MINUS.
    """
    try:
        strand = Strand.parse(default_strand)
    except ValueError as e:
        raise InvalidConfiguration(
            f"default_strand must be '+' or '-', got {default_strand!r}"
        ) from e

    if not strand.is_determined:
        raise InvalidConfiguration(
            f"default_strand must be '+' or '-', got {default_strand!r}"
        )
    return strand


def count_unstranded(records: Iterable[FeatureRecord]) -> int:
    """Count records whose strand is undetermined."""
    return sum(1 for record in records if not record.strand.is_determined)


def resolve_strands(
    records: Iterable[FeatureRecord],
    default_strand: Strand | str,
) -> list[FeatureRecord]:
    """Replace every undetermined strand by a default.

    Args:
        records: Annotation records.
        default_strand: Fallback strand ("+" or "-").

    Returns:
        New list of records with no UNKNOWN strand. Input records are
        not modified.

    Raises:
        InvalidConfiguration: If default_strand is not "+" or "-".
    """
    strand = parse_default_strand(default_strand)
    records = list(records)

    has_determined = any(record.strand.is_determined for record in records)
    n_unknown = count_unstranded(records)

    if not has_determined and records:
        logger.info(
            f"Annotation carries no strand information; "
            f"assigning '{strand}' to all {len(records)} records"
        )
    elif n_unknown:
        logger.info(
            f"Replacing undetermined strand by '{strand}' "
            f"for {n_unknown} of {len(records)} records"
        )

    if n_unknown == 0:
        return records

    return [
        record
        if record.strand.is_determined
        else attrs.evolve(record, strand=strand)
        for record in records
    ]
