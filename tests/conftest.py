"""Pytest configuration and shared fixtures for PromoterForge tests.

Fixtures are organized by category:

- FASTA fixtures: synthetic genomes written with 80-column lines
- Annotation fixtures: small GFF3/GTF files covering the filter and
  consolidation edge cases
"""

from pathlib import Path
from typing import Callable

import numpy as np
import pytest

# =============================================================================
# Helpers
# =============================================================================


def write_fasta(path: Path, sequences: dict[str, str], line_width: int = 80) -> Path:
    """Write sequences to a FASTA file with fixed-width lines."""
    with open(path, "w") as f:
        for name, seq in sequences.items():
            f.write(f">{name}\n")
            for i in range(0, len(seq), line_width):
                f.write(seq[i : i + line_width] + "\n")
    return path


def write_lines(path: Path, lines: list[str]) -> Path:
    """Write annotation lines, one per row."""
    path.write_text("\n".join(lines) + "\n")
    return path


def gff3_line(
    seqid: str,
    source: str,
    ftype: str,
    start: int,
    end: int,
    strand: str,
    attributes: str,
) -> str:
    """Format one GFF3 line."""
    return f"{seqid}\t{source}\t{ftype}\t{start}\t{end}\t.\t{strand}\t.\t{attributes}"


# =============================================================================
# FASTA Fixtures
# =============================================================================


@pytest.fixture
def genome_sequences() -> dict[str, str]:
    """Reproducible sequences for a two-chromosome genome.

    - chr1: 2000 bp
    - chr2: 500 bp, with a soft-masked (lowercase) stretch at 101-150
    """
    np.random.seed(42)
    chr1 = "".join(np.random.choice(list("ACGT"), 2000))
    chr2 = "".join(np.random.choice(list("ACGT"), 500))
    chr2 = chr2[:100] + chr2[100:150].lower() + chr2[150:]
    return {"chr1": chr1, "chr2": chr2}


@pytest.fixture
def synthetic_fasta(tmp_path: Path, genome_sequences: dict[str, str]) -> Path:
    """FASTA file of genome_sequences (80-character lines)."""
    return write_fasta(tmp_path / "test_genome.fa", genome_sequences)


@pytest.fixture
def fasta_factory(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing arbitrary FASTA files into tmp_path."""

    def make(name: str, sequences: dict[str, str], line_width: int = 80) -> Path:
        return write_fasta(tmp_path / name, sequences, line_width)

    return make


# =============================================================================
# Annotation Fixtures
# =============================================================================


@pytest.fixture
def gff3_lines() -> list[str]:
    """Annotation lines covering every consolidation outcome.

    - G1: chr1 + 500-900 (gene and mRNA line)
    - G2: chr1 - 1500-2000, touches the chromosome end
    - G3: gene lines on chr1 and chr2 -> inconsistent, dropped
    - G4: chr2 - 100-200
    - G5: lncRNA -> filtered out
    - G6: chr1 + 1000-1100 from source "Other"
    - G7: on chrX, absent from the genome -> skipped
    """
    pc = "gene_biotype=protein_coding"
    return [
        "##gff-version 3",
        "#!genome-build test",
        gff3_line("chr1", "RefSeq", "gene", 500, 900, "+", f"ID=gene:G1;gene_id=G1;{pc}"),
        gff3_line("chr1", "RefSeq", "mRNA", 500, 900, "+", f"ID=tx1;Parent=gene:G1;gene_id=G1;{pc}"),
        gff3_line("chr1", "RefSeq", "gene", 1500, 2000, "-", f"ID=G2;gene_id=G2;{pc}"),
        gff3_line("chr1", "RefSeq", "gene", 100, 200, "+", f"gene_id=G3;{pc}"),
        gff3_line("chr2", "RefSeq", "gene", 300, 350, "+", f"gene_id=G3;{pc}"),
        gff3_line("chr2", "RefSeq", "gene", 100, 200, "-", f"gene_id=G4;{pc}"),
        gff3_line("chr2", "RefSeq", "gene", 10, 50, "+", "gene_id=G5;gene_biotype=lncRNA"),
        gff3_line("chr1", "Other", "gene", 1000, 1100, "+", f"gene_id=G6;{pc}"),
        gff3_line("chrX", "RefSeq", "gene", 10, 20, "+", f"gene_id=G7;{pc}"),
    ]


@pytest.fixture
def synthetic_gff3(tmp_path: Path, gff3_lines: list[str]) -> Path:
    """GFF3 file of gff3_lines."""
    return write_lines(tmp_path / "annotation.gff3", gff3_lines)


@pytest.fixture
def synthetic_gtf(tmp_path: Path) -> Path:
    """Small GTF file with gene, transcript and exon lines."""
    lines = [
        "#!genome-build test",
        'chr1\tensembl\tgene\t500\t900\t.\t+\t.\tgene_id "G1"; gene_biotype "protein_coding";',
        'chr1\tensembl\ttranscript\t500\t900\t.\t+\t.\tgene_id "G1"; transcript_id "T1"; '
        'gene_biotype "protein_coding"; tag "basic"; tag "CCDS";',
        'chr1\tensembl\texon\t500\t600\t.\t+\t.\tgene_id "G1"; transcript_id "T1"; exon_number "1";',
        'chr2\tensembl\tgene\t100\t200\t.\t-\t.\tgene_id "G4"; gene_type "protein_coding";',
    ]
    return write_lines(tmp_path / "annotation.gtf", lines)


@pytest.fixture
def unstranded_gff3(tmp_path: Path) -> Path:
    """GFF3 file in which no feature carries a strand."""
    pc = "gene_biotype=protein_coding"
    lines = [
        "##gff-version 3",
        gff3_line("chr1", "RefSeq", "gene", 500, 900, ".", f"gene_id=G1;{pc}"),
        gff3_line("chr2", "RefSeq", "gene", 100, 200, ".", f"gene_id=G4;{pc}"),
    ]
    return write_lines(tmp_path / "unstranded.gff3", lines)
