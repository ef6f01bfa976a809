"""Command-line interface for PromoterForge.

This module provides the main entry point for the promoterforge CLI tool.
It uses Click to define commands and rich for console output.

Commands:
    extract: Extract upstream promoter sequences of all protein-coding genes

Example:
    $ promoterforge --help
    $ promoterforge extract --genome genome.fa --annotation genes.gff \\
        --format gff --organism "Arabidopsis lyrata" --width 1000
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import attrs
import click
from rich.console import Console
from rich.markup import escape

from promoterforge import __version__

# Initialize rich console for pretty output
console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="promoterforge")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write a debug log to this file.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool, log_file: Optional[Path]) -> None:
    """PromoterForge: extract upstream promoter sequences from a genome.

    Given a genome FASTA file and its GTF/GFF annotation, PromoterForge
    writes the sequence upstream of the transcription start site of every
    protein-coding gene to a FASTA file.
    """
    from promoterforge.utils.logging import setup_logging

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    verbosity = 0 if quiet else (2 if verbose else 1)
    setup_logging(verbosity=verbosity, log_file=log_file)


# =============================================================================
# extract command
# =============================================================================


@main.command()
@click.option(
    "--genome",
    "-g",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Reference genome FASTA file (indexed on the fly if needed).",
)
@click.option(
    "--annotation",
    "-a",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Annotation file of the genome assembly.",
)
@click.option(
    "--format",
    "annotation_format",
    type=click.Choice(["gtf", "gff", "gff3"], case_sensitive=False),
    required=True,
    help="Format of the annotation file.",
)
@click.option(
    "--organism",
    type=str,
    required=True,
    help="Scientific name of the organism (used for the default output name).",
)
@click.option(
    "--width",
    "-w",
    type=click.IntRange(min=1),
    default=None,
    help="Promoter width in bp upstream of the TSS [default: 1000].",
)
@click.option(
    "--default-strand",
    type=click.Choice(["+", "-"]),
    default=None,
    help="Strand assigned to unstranded features [default: +].",
)
@click.option(
    "--source",
    "sources",
    type=str,
    multiple=True,
    help="Allowed annotation source (column 2). Repeat for several; default all.",
)
@click.option(
    "--biotype",
    type=str,
    default=None,
    help="Required gene biotype [default: protein_coding].",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output FASTA file [default: <organism>_all_genes_promotor_seqs_<width>.fa].",
)
@click.option(
    "-j",
    "--workers",
    type=click.IntRange(min=0),
    default=None,
    help="Number of parallel workers, 0 for one per CPU [default: 1].",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="TOML configuration file; command-line options override it.",
)
@click.option(
    "-r",
    "--report",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write a JSON run report (dropped and skipped genes).",
)
@click.pass_context
def extract(
    ctx: click.Context,
    genome: Path,
    annotation: Path,
    annotation_format: str,
    organism: str,
    width: Optional[int],
    default_strand: Optional[str],
    sources: tuple[str, ...],
    biotype: Optional[str],
    output: Optional[Path],
    workers: Optional[int],
    config_path: Optional[Path],
    report: Optional[Path],
) -> None:
    """Extract upstream promoter sequences of all genes.

    \b
    Steps performed:
    1. Parse the annotation and assign a default strand where missing
    2. Collapse gene features into one locus per gene_id
    3. Index the genome FASTA (.fai) if no index exists
    4. Extract the upstream window of each gene (reverse complement on -)
    5. Write one FASTA record per gene, labelled by gene_id

    \b
    Examples:
        $ promoterforge extract -g Aly.fa -a Aly.gff --format gff \\
            --organism "Arabidopsis lyrata" -w 1000

        $ promoterforge extract -g genome.fa -a genes.gtf --format gtf \\
            --organism "Zea mays" --source Gramene -j 8 -o promoters.fa
    """
    from promoterforge.config import Config
    from promoterforge.errors import PromoterForgeError
    from promoterforge.parallel.executor import create_progress_bar
    from promoterforge.pipeline import PromoterPipeline

    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    try:
        config = Config.load(config_path)

        overrides = {}
        if width is not None:
            overrides["promotor_width"] = width
        if default_strand is not None:
            overrides["default_strand"] = default_strand
        if sources:
            overrides["sources"] = sources
        if biotype is not None:
            overrides["gene_biotype"] = biotype
        config.extraction = attrs.evolve(config.extraction, **overrides)
        if workers is not None:
            config.parallel = attrs.evolve(config.parallel, max_workers=workers)

        if not quiet:
            console.print(f"[blue]Organism:[/blue] {organism}")
            console.print(f"[blue]Genome:[/blue] {genome}")
            console.print(f"[blue]Annotation:[/blue] {annotation} ({annotation_format})")
            console.print(f"[blue]Promoter width:[/blue] {config.extraction.promotor_width} bp")

        progress = None
        progress_callback = None
        if not quiet:
            progress = create_progress_bar()
            task_id = progress.add_task("Extracting promoters...", total=None)

            def progress_callback(completed: int, total: int, gene_id: str) -> None:
                progress.update(task_id, completed=completed, total=total)

        pipeline = PromoterPipeline(config, progress_callback=progress_callback)
        if progress is not None:
            progress.start()
        try:
            run_report = pipeline.run(
                organism=organism,
                genome_file=genome,
                annotation_file=annotation,
                annotation_format=annotation_format.lower(),
                output_path=output,
            )
        finally:
            if progress is not None:
                progress.stop()

        if report:
            run_report.write_json(report)
            if not quiet:
                console.print(f"[green]Wrote run report:[/green] {report}")

        if not quiet:
            console.print("")
            console.print("[bold]Extraction Summary:[/bold]")
            console.print(f"  Annotation records:    {run_report.n_records:,}")
            console.print(f"  Gene loci:             {run_report.n_loci:,}")
            console.print(f"  Promoters written:     {run_report.n_written:,}")
            console.print(f"  Empty windows:         {run_report.n_empty:,}")
            console.print(f"  Dropped (inconsistent): {run_report.n_dropped:,}")
            console.print(f"  Skipped (extraction):  {run_report.n_skipped:,}")
            console.print("")
            console.print(f"[green]Wrote promoters:[/green] {run_report.output_path}")

    except PromoterForgeError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        if verbose:
            console.print_exception()
        raise SystemExit(1)


if __name__ == "__main__":
    main()
