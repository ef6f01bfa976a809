"""Promoter extraction pipeline.

Wires the annotation parser, strand resolver, locus consolidator,
indexed genome and extractor into one batch run that writes a FASTA
file with one upstream sequence per gene.

Key components:
- PromoterPipeline: orchestration of one run
- RunReport: summary of written, dropped and skipped genes
- extract_upstream_promoter_seqs: one-call convenience function

Example:
    >>> from promoterforge.pipeline import extract_upstream_promoter_seqs
    >>> report = extract_upstream_promoter_seqs(
    ...     organism="Arabidopsis lyrata",
    ...     genome_file="Aly_genome.fa",
    ...     annotation_file="Aly.gff",
    ...     annotation_format="gff",
    ...     promotor_width=1000,
    ... )
    >>> report.output_path.name
    'Arabidopsis_lyrata_all_genes_promotor_seqs_1000.fa'
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Collection

import attrs

from promoterforge.config import Config, ExtractionConfig, ParallelConfig
from promoterforge.core.extract import PromoterExtractor, SkippedGene, SymbolWarning
from promoterforge.core.loci import DroppedGene, consolidate_loci
from promoterforge.core.strand import count_unstranded, resolve_strands
from promoterforge.errors import InvalidConfiguration, WriteError
from promoterforge.io.fasta import IndexedGenome, write_promoters
from promoterforge.io.gff import AnnotationParser, validate_format
from promoterforge.parallel.executor import ParallelExecutor, get_optimal_workers
from promoterforge.utils.logging import Timer

logger = logging.getLogger(__name__)


def default_output_path(
    organism: str, promotor_width: int, directory: Path | str | None = None
) -> Path:
    """Default output file for a run.

    Returns:
        ``<directory>/<organism_with_underscores>_all_genes_promotor_seqs_<width>.fa``,
        with the current directory as default.
    """
    directory = Path.cwd() if directory is None else Path(directory)
    name = organism.strip().replace(" ", "_")
    return directory / f"{name}_all_genes_promotor_seqs_{promotor_width}.fa"


# =============================================================================
# Run Report
# =============================================================================


@attrs.define(slots=True)
class RunReport:
    """Summary of one pipeline run.

    Attributes:
        output_path: FASTA file that was written.
        organism: Organism label.
        promotor_width: Requested width.
        n_records: Annotation records parsed.
        n_unstranded: Records whose strand was replaced by the default.
        n_loci: Gene loci after consolidation.
        n_written: Promoters written.
        n_empty: Written promoters with an empty window.
        dropped: Genes rejected during consolidation.
        skipped: Genes that failed during extraction.
        warnings: Non-standard symbol warnings.
    """

    output_path: Path
    organism: str
    promotor_width: int
    n_records: int = 0
    n_unstranded: int = 0
    n_loci: int = 0
    n_written: int = 0
    n_empty: int = 0
    dropped: list[DroppedGene] = attrs.Factory(list)
    skipped: list[SkippedGene] = attrs.Factory(list)
    warnings: list[SymbolWarning] = attrs.Factory(list)

    @property
    def n_dropped(self) -> int:
        """Number of genes rejected during consolidation."""
        return len(self.dropped)

    @property
    def n_skipped(self) -> int:
        """Number of genes skipped during extraction."""
        return len(self.skipped)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "output_path": str(self.output_path),
            "organism": self.organism,
            "promotor_width": self.promotor_width,
            "n_records": self.n_records,
            "n_unstranded": self.n_unstranded,
            "n_loci": self.n_loci,
            "n_written": self.n_written,
            "n_empty": self.n_empty,
            "n_dropped": self.n_dropped,
            "n_skipped": self.n_skipped,
            "dropped": [d.to_dict() for d in self.dropped],
            "skipped": [s.to_dict() for s in self.skipped],
            "warnings": [w.to_dict() for w in self.warnings],
        }

    def write_json(self, path: Path | str) -> Path:
        """Write the report as JSON.

        Raises:
            WriteError: On I/O failure.
        """
        path = Path(path)
        try:
            with open(path, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
                f.write("\n")
        except OSError as e:
            raise WriteError(f"Cannot write report {path}: {e}", path=path) from e
        return path


# =============================================================================
# Main Pipeline
# =============================================================================


class PromoterPipeline:
    """Extract upstream promoter sequences for all qualifying genes.

    Stages run in order: parse annotation, resolve strands, consolidate
    gene loci, open the genome index, extract promoters on a worker pool
    and write the FASTA output. Per-gene problems are collected in the
    RunReport; configuration and I/O problems abort the run.

    Example:
        >>> pipeline = PromoterPipeline(Config())
        >>> report = pipeline.run(
        ...     organism="Arabidopsis thaliana",
        ...     genome_file="TAIR10.fa",
        ...     annotation_file="TAIR10.gtf",
        ...     annotation_format="gtf",
        ... )
    """

    def __init__(
        self,
        config: Config | None = None,
        cancel_event: threading.Event | None = None,
        progress_callback: Callable[[int, int, str], None] | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Run configuration (defaults if None).
            cancel_event: Set it to abort the run between genes.
            progress_callback: Called with (completed, total, gene_id).
        """
        self.config = config or Config()
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self.progress_callback = progress_callback

    def cancel(self) -> None:
        """Abort the run at the next gene boundary; nothing is written."""
        self.cancel_event.set()

    def run(
        self,
        organism: str,
        genome_file: Path | str,
        annotation_file: Path | str,
        annotation_format: str,
        output_path: Path | str | None = None,
    ) -> RunReport:
        """Run the pipeline.

        Args:
            organism: Organism name, used for the default output name.
            genome_file: Genome FASTA file.
            annotation_file: Annotation file.
            annotation_format: "gtf", "gff" or "gff3".
            output_path: Output FASTA path (default derived from organism).

        Returns:
            RunReport for the run.

        Raises:
            InvalidConfiguration: For bad arguments, before any work.
            AnnotationParseError: If the annotation cannot be parsed.
            MissingRequiredField: If gene records lack gene_id.
            IndexBuildError: If the genome cannot be indexed or is corrupt.
            WriteError: If the output cannot be written.
            RunCancelled: If the run was cancelled; no output is written.
        """
        extraction_cfg = self.config.extraction
        width = extraction_cfg.promotor_width
        if width < 1:
            raise InvalidConfiguration(f"promotor_width must be >= 1, got {width}")
        annotation_format = validate_format(annotation_format)

        genome_file = Path(genome_file)
        annotation_file = Path(annotation_file)
        if not genome_file.exists():
            raise InvalidConfiguration(
                f"Please provide a valid path to the genome assembly file: {genome_file}",
                path=genome_file,
            )
        if not annotation_file.exists():
            raise InvalidConfiguration(
                f"Please provide a valid path to the annotation file: {annotation_file}",
                path=annotation_file,
            )

        output = (
            default_output_path(organism, width)
            if output_path is None
            else Path(output_path)
        )
        report = RunReport(output_path=output, organism=organism, promotor_width=width)

        logger.info(
            f"Starting extraction of upstream promotor sequences of length {width} "
            f"for all {organism} genes"
        )

        with Timer("Importing annotation", logger):
            logger.info(f"Importing annotation file {annotation_file} ({annotation_format})")
            records = list(
                AnnotationParser(annotation_file, annotation_format).iter_records()
            )
        report.n_records = len(records)

        report.n_unstranded = count_unstranded(records)
        records = resolve_strands(records, extraction_cfg.default_strand)

        with Timer("Consolidating gene loci", logger):
            consolidation = consolidate_loci(
                records,
                feature_type=extraction_cfg.feature_type,
                gene_biotype=extraction_cfg.gene_biotype,
                sources=extraction_cfg.sources,
            )
        del records
        report.n_loci = len(consolidation.loci)
        report.dropped = consolidation.dropped

        with IndexedGenome(genome_file) as genome:
            executor = ParallelExecutor(
                n_workers=get_optimal_workers(self.config.parallel.max_workers),
                backend=self.config.parallel.backend,
                progress_callback=self.progress_callback,
                cancel_event=self.cancel_event,
            )
            extractor = PromoterExtractor(genome, width)
            with Timer("Extracting promoters", logger):
                extraction = extractor.extract_all(consolidation.loci, executor)

        report.skipped = extraction.skipped
        report.warnings = extraction.warnings
        report.n_empty = extraction.n_empty

        logger.info(f"Storing promotor seqs of all {organism} genes at {output}")
        write_promoters(extraction.promoters, output, line_width=extraction_cfg.line_width)
        report.n_written = len(extraction.promoters)

        if report.n_dropped or report.n_skipped:
            logger.warning(
                f"{report.n_dropped} genes dropped during consolidation, "
                f"{report.n_skipped} skipped during extraction"
            )
        return report


# =============================================================================
# Convenience Functions
# =============================================================================


def extract_upstream_promoter_seqs(
    organism: str,
    genome_file: Path | str,
    annotation_file: Path | str,
    annotation_format: str,
    promotor_width: int,
    default_strand: str = "+",
    output_path: Path | str | None = None,
    sources: Collection[str] | None = None,
    gene_biotype: str = "protein_coding",
    workers: int = 1,
) -> RunReport:
    """Retrieve all upstream promoter sequences of a genome.

    Args:
        organism: Organism name (label for the default output file).
        genome_file: Genome FASTA file.
        annotation_file: Annotation file.
        annotation_format: "gtf", "gff" or "gff3".
        promotor_width: Bases upstream of each TSS.
        default_strand: Strand assigned to unstranded features.
        output_path: Output FASTA path.
        sources: Allowed annotation sources (None = all).
        gene_biotype: Required gene biotype.
        workers: Number of worker threads (0 = one per CPU).

    Returns:
        RunReport for the run.
    """
    config = Config(
        extraction=ExtractionConfig(
            promotor_width=promotor_width,
            default_strand=default_strand,
            gene_biotype=gene_biotype,
            sources=sources,
        ),
        parallel=ParallelConfig(max_workers=workers),
    )
    return PromoterPipeline(config).run(
        organism=organism,
        genome_file=genome_file,
        annotation_file=annotation_file,
        annotation_format=annotation_format,
        output_path=output_path,
    )
