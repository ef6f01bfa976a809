"""FASTA file handling for genome sequences.

This module provides random access to genome sequences stored in FASTA
format, using pyfaidx and its ``.fai`` index, and writes extracted
promoter sequences back to FASTA.

Features:
    - Build or reuse a .fai index (pyfaidx, samtools as fallback)
    - O(window) random access by sequence name and 1-based range
    - Coordinate validation with typed errors
    - Atomic FASTA output

Example:
    >>> from promoterforge.io.fasta import IndexedGenome
    >>> with IndexedGenome("genome.fa") as genome:
    ...     seq = genome.fetch("chr1", 1000, 2000)
    >>> len(seq)
    1001
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, TextIO

import pyfaidx

from promoterforge.core.models import ExtractedPromoter, SequenceIndexEntry
from promoterforge.errors import (
    IndexBuildError,
    InvalidRange,
    RangeOutOfBounds,
    UnknownSequenceName,
    WriteError,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_LINE_WIDTH = 80
DEFAULT_READ_AHEAD = 10000


# =============================================================================
# Index Building
# =============================================================================


def get_fai_path(fasta_path: Path | str) -> Path:
    """Return path of the .fai index belonging to a FASTA file."""
    path = Path(fasta_path)
    return path.with_suffix(path.suffix + ".fai")


def is_samtools_installed() -> bool:
    """Check whether samtools is available on PATH."""
    return shutil.which("samtools") is not None


def _run_samtools_faidx(fasta_path: Path) -> None:
    if not is_samtools_installed():
        raise IndexBuildError(
            "samtools not found in PATH; cannot index "
            f"{fasta_path} without it",
            path=fasta_path,
        )
    try:
        subprocess.run(
            ["samtools", "faidx", str(fasta_path)],
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as e:
        raise IndexBuildError(
            f"samtools faidx failed for {fasta_path}: {e.stderr.strip()}",
            path=fasta_path,
        ) from e


def build_fasta_index(fasta_path: Path | str, force: bool = False) -> Path:
    """Create the .fai index for a FASTA file.

    pyfaidx writes the index; if it cannot, ``samtools faidx`` is tried.

    Args:
        fasta_path: Path to an uncompressed (or bgzipped) FASTA file.
        force: Rebuild even if an index already exists.

    Returns:
        Path to the .fai index.

    Raises:
        IndexBuildError: If the FASTA is missing or no index can be built.
    """
    path = Path(fasta_path)
    if not path.exists():
        raise IndexBuildError(f"Genome file not found: {path}", path=path)

    fai_path = get_fai_path(path)
    if fai_path.exists() and not force:
        logger.debug(f"Using existing index {fai_path}")
        return fai_path

    logger.info(f"Generating genome index file for {path}")
    try:
        faidx = pyfaidx.Faidx(str(path), build_index=True, rebuild=force)
        faidx.close()
    except (pyfaidx.FastaIndexingError, OSError) as e:
        logger.warning(f"pyfaidx could not index {path.name} ({e}); trying samtools")
        if path.suffix == ".gz" and not is_samtools_installed():
            raise IndexBuildError(
                f"Could not index {path}. Could it be that the file is gzip "
                "compressed? Please decompress it (or bgzip it) before use.",
                path=path,
            ) from e
        _run_samtools_faidx(path)

    if not fai_path.exists():
        raise IndexBuildError(f"No index was written for {path}", path=path)
    return fai_path


# =============================================================================
# Main Reader Class
# =============================================================================


class IndexedGenome:
    """Indexed FASTA access using pyfaidx.

    The index is built once (or loaded from an existing .fai) and then only
    read. One instance can be shared by many worker threads; reads go
    through a lock because pyfaidx's read-ahead buffer is not thread-safe.

    Attributes:
        path: Path to the FASTA file.
        fai_path: Path to the .fai index file.

    Example:
        >>> genome = IndexedGenome("genome.fa")
        >>> genome.sequence_lengths["chr1"]
        30427671
        >>> genome.fetch("chr1", 1, 10)
        'CCCTAAACCC'
    """

    def __init__(
        self,
        fasta_path: Path | str,
        read_ahead: int = DEFAULT_READ_AHEAD,
    ) -> None:
        """Open a genome, building its index if needed.

        Args:
            fasta_path: Path to FASTA file.
            read_ahead: pyfaidx read-ahead buffer in bases.

        Raises:
            IndexBuildError: If the file is missing or cannot be indexed.
        """
        self.path = Path(fasta_path)
        if not self.path.exists():
            raise IndexBuildError(f"Genome file not found: {self.path}", path=self.path)

        self.fai_path = build_fasta_index(self.path)
        self._fasta: pyfaidx.Fasta | None = None
        self._lock = threading.Lock()
        self._index: Mapping[str, SequenceIndexEntry] = MappingProxyType({})
        self._open(read_ahead)

    def _open(self, read_ahead: int) -> None:
        try:
            self._fasta = pyfaidx.Fasta(
                str(self.path),
                sequence_always_upper=False,  # keep soft-masking
                read_ahead=read_ahead,
                rebuild=False,
            )
        except (pyfaidx.FastaIndexingError, OSError) as e:
            raise IndexBuildError(
                f"Could not open indexed genome {self.path}: {e}", path=self.path
            ) from e

        entries = {}
        for name, record in self._fasta.faidx.index.items():
            entries[name] = SequenceIndexEntry(
                sequence_name=name,
                length=record.rlen,
                offset=record.offset,
                line_bases=record.lenc,
                line_width=record.lenb,
            )
        self._index = MappingProxyType(entries)

        logger.info(
            f"Opened genome {self.path.name}: "
            f"{len(self._index)} sequences, {self.total_length:,} bp total"
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def index(self) -> Mapping[str, SequenceIndexEntry]:
        """Read-only {sequence_name: SequenceIndexEntry} mapping."""
        return self._index

    @property
    def sequence_lengths(self) -> dict[str, int]:
        """Return {sequence_name: length} mapping."""
        return {name: entry.length for name, entry in self._index.items()}

    @property
    def sequence_names(self) -> list[str]:
        """Sequence names in file order."""
        return list(self._index)

    @property
    def total_length(self) -> int:
        """Total genome size in bases."""
        return sum(entry.length for entry in self._index.values())

    def get_length(self, sequence_name: str) -> int:
        """Get the length of a sequence.

        Raises:
            UnknownSequenceName: If the sequence is not indexed.
        """
        return self._entry(sequence_name).length

    def _entry(self, sequence_name: str) -> SequenceIndexEntry:
        try:
            return self._index[sequence_name]
        except KeyError:
            raise UnknownSequenceName(
                f"Unknown sequence '{sequence_name}' in {self.path.name}",
                path=self.path,
            ) from None

    # -------------------------------------------------------------------------
    # Retrieval
    # -------------------------------------------------------------------------

    def fetch(self, sequence_name: str, start: int, end: int) -> str:
        """Get the sequence of a 1-based, inclusive range.

        ``start == end + 1`` denotes an empty range and returns "".

        Args:
            sequence_name: Sequence/chromosome name.
            start: Start position (1-based, inclusive).
            end: End position (1-based, inclusive).

        Returns:
            Sequence string of exactly ``end - start + 1`` symbols, case
            preserved.

        Raises:
            UnknownSequenceName: If the sequence is not indexed.
            RangeOutOfBounds: If start < 1 or end exceeds the sequence.
            InvalidRange: If start > end + 1 within the sequence.
            IndexBuildError: If the file does not match its index.
        """
        if self._fasta is None:
            raise RuntimeError("Genome file not opened")

        entry = self._entry(sequence_name)

        if start < 1 or end > entry.length:
            raise RangeOutOfBounds(
                f"Range {sequence_name}:{start}-{end} outside of "
                f"1-{entry.length}"
            )
        if start > end + 1:
            raise InvalidRange(
                f"Invalid range {sequence_name}:{start}-{end} (start > end)"
            )
        if start == end + 1:
            return ""

        try:
            with self._lock:
                sequence = str(self._fasta.get_seq(sequence_name, start, end))
        except pyfaidx.FetchError as e:
            raise IndexBuildError(
                f"Index for {self.path} does not match the file: {e}",
                path=self.path,
            ) from e

        expected = end - start + 1
        if len(sequence) != expected:
            raise IndexBuildError(
                f"Short read from {self.path} at {sequence_name}:{start}-{end} "
                f"({len(sequence)} of {expected} bases); the index may be stale",
                path=self.path,
            )
        return sequence

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def __enter__(self) -> IndexedGenome:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the FASTA file."""
        if self._fasta is not None:
            self._fasta.close()
            self._fasta = None

    def __contains__(self, sequence_name: str) -> bool:
        return sequence_name in self._index

    def __len__(self) -> int:
        return len(self._index)


# =============================================================================
# FASTA Writer
# =============================================================================


class FastaWriter:
    """Write labelled sequences to a FASTA file.

    Output goes to a temporary file next to the target, which replaces the
    target on a clean close. If the block raises, the temporary file is
    removed and the target is left untouched.

    Example:
        >>> with FastaWriter("promoters.fa") as writer:
        ...     for promoter in promoters:
        ...         writer.write(promoter.gene_id, promoter.sequence)
    """

    def __init__(
        self,
        output_path: Path | str,
        line_width: int = DEFAULT_LINE_WIDTH,
    ) -> None:
        """Open a temporary output file.

        Args:
            output_path: Final FASTA path.
            line_width: Bases per sequence line.

        Raises:
            WriteError: If the output directory is not writable.
        """
        if line_width < 1:
            raise ValueError(f"line_width must be >= 1, got {line_width}")

        self.path = Path(output_path)
        self.line_width = line_width
        self.n_written = 0

        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            self._tmp_path = Path(tmp_name)
            self._file: TextIO | None = os.fdopen(fd, "w")
        except OSError as e:
            raise WriteError(f"Cannot write to {self.path}: {e}", path=self.path) from e

    def __enter__(self) -> FastaWriter:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, *args: Any) -> None:
        """Commit on success, discard on error."""
        if exc_type is None:
            self.close()
        else:
            self.discard()

    def write(self, label: str, sequence: str) -> None:
        """Write one record. An empty sequence writes the header only."""
        if self._file is None:
            raise RuntimeError("FASTA writer is closed")
        try:
            self._file.write(f">{label}\n")
            for i in range(0, len(sequence), self.line_width):
                self._file.write(sequence[i : i + self.line_width] + "\n")
        except OSError as e:
            raise WriteError(f"Failed writing {self.path}: {e}", path=self.path) from e
        self.n_written += 1

    def write_promoters(self, promoters: Iterable[ExtractedPromoter]) -> None:
        """Write extracted promoters labelled by gene_id."""
        for promoter in promoters:
            self.write(promoter.gene_id, promoter.sequence)

    def close(self) -> None:
        """Flush and move the temporary file into place."""
        if self._file is None:
            return
        try:
            self._file.close()
            self._file = None
            os.replace(self._tmp_path, self.path)
        except OSError as e:
            self.discard()
            raise WriteError(f"Failed writing {self.path}: {e}", path=self.path) from e

    def discard(self) -> None:
        """Drop everything written so far."""
        if self._file is not None:
            self._file.close()
            self._file = None
        self._tmp_path.unlink(missing_ok=True)


# =============================================================================
# Convenience Functions
# =============================================================================


def write_promoters(
    promoters: Iterable[ExtractedPromoter],
    output_path: Path | str,
    line_width: int = DEFAULT_LINE_WIDTH,
) -> Path:
    """Write promoters to a FASTA file.

    Args:
        promoters: Promoters in output order.
        output_path: Output file path.
        line_width: Bases per sequence line.

    Returns:
        The output path.

    Raises:
        WriteError: On I/O failure; no partial file is left behind.
    """
    with FastaWriter(output_path, line_width=line_width) as writer:
        writer.write_promoters(promoters)
    logger.info(f"Wrote {writer.n_written} sequences to {writer.path}")
    return writer.path


def iter_fasta(path: Path | str) -> Iterator[tuple[str, str]]:
    """Iterate over (label, sequence) records of a small FASTA file.

    Reads the whole file line by line; meant for output files, not
    genomes.
    """
    label: str | None = None
    chunks: list[str] = []
    with open(path) as f:
        for line in f:
            line = line.rstrip("\r\n")
            if line.startswith(">"):
                if label is not None:
                    yield label, "".join(chunks)
                label = line[1:].split()[0] if line[1:].strip() else ""
                chunks = []
            elif line:
                chunks.append(line)
    if label is not None:
        yield label, "".join(chunks)
