"""Tests for FASTA genome access and promoter output."""

import sys
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from promoterforge.core.models import ExtractedPromoter
from promoterforge.errors import (
    IndexBuildError,
    InvalidRange,
    RangeOutOfBounds,
    UnknownSequenceName,
    WriteError,
)
from promoterforge.io.fasta import (
    FastaWriter,
    IndexedGenome,
    build_fasta_index,
    get_fai_path,
    iter_fasta,
    write_promoters,
)


class TestBuildFastaIndex:
    """Tests for index creation."""

    def test_creates_fai(self, synthetic_fasta):
        fai = build_fasta_index(synthetic_fasta)
        assert fai == get_fai_path(synthetic_fasta)
        assert fai.exists()
        lines = fai.read_text().splitlines()
        assert [line.split("\t")[0] for line in lines] == ["chr1", "chr2"]

    def test_existing_index_reused(self, synthetic_fasta):
        fai = build_fasta_index(synthetic_fasta)
        mtime = fai.stat().st_mtime_ns
        assert build_fasta_index(synthetic_fasta) == fai
        assert fai.stat().st_mtime_ns == mtime

    def test_missing_file(self, tmp_path):
        with pytest.raises(IndexBuildError, match="not found"):
            build_fasta_index(tmp_path / "missing.fa")

    def test_fai_path(self, tmp_path):
        assert get_fai_path(tmp_path / "genome.fa").name == "genome.fa.fai"


class TestIndexedGenome:
    """Tests for IndexedGenome."""

    @pytest.fixture
    def genome(self, synthetic_fasta):
        with IndexedGenome(synthetic_fasta) as genome:
            yield genome

    def test_open_builds_index(self, synthetic_fasta):
        with IndexedGenome(synthetic_fasta) as genome:
            assert genome.fai_path.exists()
            assert len(genome) == 2

    def test_sequence_lengths(self, genome):
        assert genome.sequence_lengths == {"chr1": 2000, "chr2": 500}
        assert genome.sequence_names == ["chr1", "chr2"]
        assert genome.total_length == 2500
        assert genome.get_length("chr2") == 500
        assert "chr1" in genome
        assert "chrX" not in genome

    def test_index_entries(self, genome):
        entry = genome.index["chr1"]
        assert entry.length == 2000
        assert entry.offset == len(">chr1\n")
        assert entry.line_bases == 80
        assert entry.line_width == 81

    def test_index_is_read_only(self, genome):
        with pytest.raises(TypeError):
            genome.index["chr3"] = genome.index["chr1"]

    @pytest.mark.parametrize(
        "name,start,end",
        [
            ("chr1", 1, 1),
            ("chr1", 1, 80),
            ("chr1", 80, 81),
            ("chr1", 75, 245),
            ("chr1", 1, 2000),
            ("chr1", 1999, 2000),
            ("chr2", 90, 160),
            ("chr2", 401, 500),
        ],
    )
    def test_fetch_matches_source(self, genome, genome_sequences, name, start, end):
        """Test that fetch returns exactly the bases of the range."""
        seq = genome.fetch(name, start, end)
        assert seq == genome_sequences[name][start - 1 : end]
        assert len(seq) == end - start + 1

    def test_fetch_preserves_case(self, genome, genome_sequences):
        seq = genome.fetch("chr2", 101, 150)
        assert seq == genome_sequences["chr2"][100:150]
        assert seq.islower()

    def test_fetch_empty_range(self, genome):
        """Test that start == end + 1 returns an empty string."""
        assert genome.fetch("chr1", 1, 0) == ""
        assert genome.fetch("chr1", 2001, 2000) == ""
        assert genome.fetch("chr2", 250, 249) == ""

    def test_fetch_unknown_sequence(self, genome):
        with pytest.raises(UnknownSequenceName, match="chrX"):
            genome.fetch("chrX", 1, 10)

    def test_unknown_sequence_is_key_error(self, genome):
        with pytest.raises(KeyError):
            genome.get_length("chrX")

    def test_fetch_start_before_one(self, genome):
        with pytest.raises(RangeOutOfBounds):
            genome.fetch("chr1", 0, 10)

    def test_fetch_past_end(self, genome):
        with pytest.raises(RangeOutOfBounds, match="1-2000"):
            genome.fetch("chr1", 1990, 2001)

    def test_fetch_inverted_range(self, genome):
        with pytest.raises(InvalidRange):
            genome.fetch("chr1", 100, 50)

    def test_bounds_checked_before_order(self, genome):
        """Test that an inverted range outside the sequence is out of bounds."""
        with pytest.raises(RangeOutOfBounds):
            genome.fetch("chr1", 0, -5)
        with pytest.raises(RangeOutOfBounds):
            genome.fetch("chr1", 2500, 2100)

    def test_concurrent_fetch(self, genome, genome_sequences):
        """Test that one genome can serve many threads."""
        ranges = [("chr1", s, s + 149) for s in range(1, 1800, 37)]
        ranges += [("chr2", s, s + 49) for s in range(1, 450, 13)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda r: genome.fetch(*r), ranges))
        for (name, start, end), seq in zip(ranges, results):
            assert seq == genome_sequences[name][start - 1 : end]

    def test_concurrent_fetch_large_genome(self, fasta_factory):
        """Test threaded reads on contigs much longer than the read-ahead buffer."""
        rng = np.random.default_rng(7)
        sequences = {
            f"chr{i}": "".join(rng.choice(list("ACGT"), 100_000)) for i in range(1, 5)
        }
        path = fasta_factory("large.fa", sequences)
        ranges = []
        for _ in range(20_000):
            name = f"chr{rng.integers(1, 5)}"
            start = int(rng.integers(1, 99_000))
            ranges.append((name, start, start + int(rng.integers(0, 1000))))

        interval = sys.getswitchinterval()
        sys.setswitchinterval(1e-6)
        try:
            with IndexedGenome(path) as genome:
                with ThreadPoolExecutor(max_workers=16) as pool:
                    results = list(pool.map(lambda r: genome.fetch(*r), ranges))
        finally:
            sys.setswitchinterval(interval)

        for (name, start, end), seq in zip(ranges, results):
            assert seq == sequences[name][start - 1 : end]

    def test_missing_file(self, tmp_path):
        with pytest.raises(IndexBuildError):
            IndexedGenome(tmp_path / "missing.fa")

    def test_uneven_line_lengths(self, tmp_path):
        """Test that a FASTA with ragged lines cannot be indexed."""
        path = tmp_path / "ragged.fa"
        path.write_text(">chr1\nACGTACGT\nACG\nACGTACGT\n")
        with pytest.raises(IndexBuildError):
            with IndexedGenome(path):
                pass

    def test_custom_line_width(self, fasta_factory, genome_sequences):
        path = fasta_factory("wide.fa", genome_sequences, line_width=60)
        with IndexedGenome(path) as genome:
            assert genome.index["chr1"].line_bases == 60
            assert genome.fetch("chr1", 55, 130) == genome_sequences["chr1"][54:130]


class TestFastaWriter:
    """Tests for FASTA output."""

    def test_write_wrapped(self, tmp_path):
        out = tmp_path / "out.fa"
        with FastaWriter(out, line_width=4) as writer:
            writer.write("G1", "ACGTACGTAC")
        assert out.read_text() == ">G1\nACGT\nACGT\nAC\n"
        assert writer.n_written == 1

    def test_empty_sequence_header_only(self, tmp_path):
        out = tmp_path / "out.fa"
        with FastaWriter(out) as writer:
            writer.write("G2", "")
            writer.write("G3", "AC")
        assert out.read_text() == ">G2\n>G3\nAC\n"

    def test_error_leaves_no_output(self, tmp_path):
        """Test that a failed write block leaves nothing behind."""
        out = tmp_path / "out.fa"
        with pytest.raises(RuntimeError):
            with FastaWriter(out) as writer:
                writer.write("G1", "ACGT")
                raise RuntimeError("boom")
        assert not out.exists()
        assert list(tmp_path.iterdir()) == []

    def test_existing_output_kept_on_error(self, tmp_path):
        out = tmp_path / "out.fa"
        out.write_text(">old\nAAAA\n")
        with pytest.raises(RuntimeError):
            with FastaWriter(out) as writer:
                writer.write("G1", "ACGT")
                raise RuntimeError("boom")
        assert out.read_text() == ">old\nAAAA\n"

    def test_missing_directory(self, tmp_path):
        with pytest.raises(WriteError):
            FastaWriter(tmp_path / "no" / "such" / "dir" / "out.fa")

    def test_write_after_close(self, tmp_path):
        writer = FastaWriter(tmp_path / "out.fa")
        writer.close()
        with pytest.raises(RuntimeError, match="closed"):
            writer.write("G1", "A")

    def test_invalid_line_width(self, tmp_path):
        with pytest.raises(ValueError):
            FastaWriter(tmp_path / "out.fa", line_width=0)


class TestWritePromoters:
    """Tests for write_promoters and iter_fasta."""

    def test_labels_and_order_preserved(self, tmp_path):
        promoters = [
            ExtractedPromoter("G2", "A" * 100),
            ExtractedPromoter("G1", ""),
            ExtractedPromoter("gene:X.1", "acgtN"),
        ]
        out = write_promoters(promoters, tmp_path / "promoters.fa")
        records = list(iter_fasta(out))
        assert records == [("G2", "A" * 100), ("G1", ""), ("gene:X.1", "acgtN")]

    def test_default_line_width(self, tmp_path):
        out = write_promoters([ExtractedPromoter("G1", "C" * 170)], tmp_path / "p.fa")
        lines = out.read_text().splitlines()
        assert [len(line) for line in lines[1:]] == [80, 80, 10]

    def test_iter_fasta_label_first_token(self, tmp_path):
        path = tmp_path / "x.fa"
        path.write_text(">G1 some description\nACGT\nAC\n")
        assert list(iter_fasta(path)) == [("G1", "ACGTAC")]
