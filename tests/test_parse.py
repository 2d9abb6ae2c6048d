"""Tests for the chain file parser."""

import gzip
import io

import pytest

import liftchain as lc
import conftest

BASIC_CHAIN = (
    "chain 200000 chr25 100000 + 2000 8000 chr1 500000 + 12000 18500 1\n"
    "500\t0\t200\n"
    "800\t300\t600\n"
    "4400\n"
    "\n"
    "chain 100 chr25 100000 + 10000 12000 chrX 200000 - 5000 7000 2\n"
    "2000\n"
)

GOLDEN_CHAIN = (
    "chain 12789731909 chrX 149249818 + 400030 149249818 chrX 153692391 + 498000 153692391 8\n"
    "2674\t0\t1345\n"
    "213\t0\t202\n"
    "363\t2\t2\n"
    "16\t1\t1\n"
    "914\t1\t1\n"
    "45\t2\t0\n"
    "8\n"
)


def _hdr(**kw):
    hdr = dict(score=1, t_chrom="chr1", t_size=1000, t_strand="+", t_start=0, t_end=100,
               q_chrom="chr2", q_size=1000, q_strand="+", q_start=0, q_end=100, chain_id=1)
    hdr.update(kw)
    return hdr


# ===================================================================
# Well-formed input
# ===================================================================

class TestReadChains:
    """Tests for read_chains / Liftover.read."""

    def test_basic_fields(self):
        """Header fields and blocks are parsed in file order."""
        chains = list(lc.read_chains(io.StringIO(BASIC_CHAIN)))
        assert len(chains) == 2

        first = chains[0]
        assert first.header.score == 200000
        assert first.header.target == lc.ChainSide(
            "chr25", 100000, lc.SequenceOrientation.FORWARD, 2000, 8000)
        assert first.header.query == lc.ChainSide(
            "chr1", 500000, lc.SequenceOrientation.FORWARD, 12000, 18500)
        assert first.header.id == "1"
        assert first.blocks == (lc.AlignmentBlock(500, 0, 200), lc.AlignmentBlock(800, 300, 600))
        assert first.last_block == 4400
        assert first.num_blocks == 3

        second = chains[1]
        assert second.header.query.orientation is lc.SequenceOrientation.REVERSE
        assert second.blocks == ()
        assert second.last_block == 2000

    def test_block_walk(self):
        """iter_blocks accumulates sizes and gaps from the header starts."""
        chain = next(lc.read_chains(io.StringIO(BASIC_CHAIN)))
        assert list(chain.iter_blocks()) == [
            (2000, 12000, 500),
            (2500, 12700, 800),
            (3600, 14100, 4400),
        ]

    def test_golden_header_trace(self):
        """Cumulative offsets match manual summation of sizes and gaps."""
        chain = next(lc.read_chains(io.StringIO(GOLDEN_CHAIN)))
        walk = list(chain.iter_blocks())
        assert [t0 for t0, _, _ in walk] == [
            400030, 402704, 402917, 403282, 403299, 404214, 404261]
        assert [q0 for _, q0, _ in walk] == [
            498000, 502019, 502434, 502799, 502816, 503731, 503776]
        assert chain.header.score == 12789731909
        assert (chain.target.end, chain.query.end) == (149249818, 153692391)
        assert chain.header.id == "8"

    def test_space_separated_blocks(self):
        """Ensembl-style files separate block fields with spaces."""
        text = BASIC_CHAIN.replace("\t", " ")
        assert list(lc.read_chains(io.StringIO(text))) == list(lc.read_chains(io.StringIO(BASIC_CHAIN)))

    def test_comments_and_blank_lines(self):
        text = "#comment\n\n\n" + BASIC_CHAIN + "\n# trailing comment\n\n"
        assert len(list(lc.read_chains(io.StringIO(text)))) == 2

    def test_crlf_line_endings(self):
        text = BASIC_CHAIN.replace("\n", "\r\n")
        assert len(list(lc.read_chains(io.StringIO(text)))) == 2

    def test_empty_stream(self):
        """No chains is a valid, empty liftover."""
        lo = lc.Liftover.read(io.StringIO(""))
        assert len(lo) == 0
        lo = lc.Liftover.read(io.StringIO("# only a comment\n\n"))
        assert len(lo) == 0

    def test_missing_id(self):
        text = "chain 5 chr1 100 + 0 10 chr1 100 + 0 10\n10\n"
        chain = next(lc.read_chains(io.StringIO(text)))
        assert chain.header.id == ""

    def test_id_keeps_rest_of_line(self):
        text = "chain 5 chr1 100 + 0 10 chr1 100 + 0 10 some free text\n10\n"
        chain = next(lc.read_chains(io.StringIO(text)))
        assert chain.header.id == "some free text"

    def test_binary_stream(self):
        lo = lc.Liftover.read(io.BytesIO(BASIC_CHAIN.encode()))
        assert len(lo) == 2

    def test_gzip_stream(self):
        lo = lc.Liftover.read(io.BytesIO(gzip.compress(BASIC_CHAIN.encode())))
        assert len(lo) == 2

    def test_multi_member_gzip_file(self, tmp_path):
        """Concatenated gzip members are read through to the end."""
        first, second = BASIC_CHAIN.split("\n\n")
        path = tmp_path / "two.chain.gz"
        path.write_bytes(gzip.compress((first + "\n\n").encode()) + gzip.compress(second.encode()))
        lo = lc.load_chain(str(path))
        assert len(lo) == 2

    def test_load_chain_from_path(self, tmp_path):
        path = conftest.write_chain(tmp_path, [
            (_hdr(q_end=110), [(40, 10, 20), (50,)]),
            (_hdr(t_chrom="chr3", chain_id=2), [(100,)]),
        ])
        lo = lc.load_chain(path)
        assert isinstance(lo, lc.Liftover)
        assert [c.header.id for c in lo] == ["1", "2"]
        assert lo.target_names() == ["chr1", "chr3"]
        assert lo.query_names() == ["chr2"]

    def test_load_chain_indexed(self, tmp_path):
        path = conftest.write_chain(tmp_path, [(_hdr(), [(100,)])])
        idx = lc.load_chain(path, indexed=True)
        assert isinstance(idx, lc.LiftoverIndexed)
        assert idx.chromosome_size("chr1") == 1000

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            lc.load_chain(str(tmp_path / "nope.chain"))

    def test_directory_is_not_a_chain_file(self, tmp_path):
        with pytest.raises(ValueError, match="not a regular file"):
            lc.open_chain_file(tmp_path)

    def test_write_round_trip(self):
        """Serialised chains parse back to the same liftover."""
        lo = lc.Liftover.read(io.StringIO(BASIC_CHAIN))
        out = io.StringIO()
        lo.write(out)
        assert lc.Liftover.read(io.StringIO(out.getvalue())) == lo
        assert str(lo).startswith(
            "chain 200000 chr25 100000 + 2000 8000 chr1 500000 + 12000 18500 1\n500\t0\t200\n")

    def test_debug_display(self):
        chain = next(lc.read_chains(io.StringIO(GOLDEN_CHAIN)))
        lines = chain.to_debug_display().splitlines()
        assert lines[1].endswith("400030 498000 -> 402704 502019")
        assert lines[-1].endswith("404261 503776 -> 404269 503784")


# ===================================================================
# Malformed input
# ===================================================================

class TestMalformed:
    """Every structural problem raises ChainFormatError and nothing is returned."""

    @pytest.mark.parametrize("text", [
        "notchain 1 chr1 100 + 0 10 chr1 100 + 0 10 1\n10\n",
        "# comment\n10\n",
        "Chain 1 chr1 100 + 0 10 chr1 100 + 0 10 1\n10\n",
    ])
    def test_bad_header_token(self, text):
        with pytest.raises(lc.ChainFormatError, match="expected a 'chain' header"):
            lc.Liftover.read(io.StringIO(text))

    def test_missing_terminal_block_at_eof(self):
        text = "chain 1 chr1 100 + 0 20 chr1 100 + 0 20 1\n10\t0\t0\n"
        with pytest.raises(lc.ChainFormatError, match="no terminal block line"):
            lc.Liftover.read(io.StringIO(text))

    def test_missing_terminal_block_before_blank(self):
        text = "chain 1 chr1 100 + 0 20 chr1 100 + 0 20 1\n10\t0\t0\n\n"
        with pytest.raises(lc.ChainFormatError, match="terminal single-field"):
            lc.Liftover.read(io.StringIO(text))

    def test_missing_terminal_block_before_next_chain(self):
        text = ("chain 1 chr1 100 + 0 20 chr1 100 + 0 20 1\n10\t0\t0\n"
                "chain 1 chr1 100 + 0 10 chr1 100 + 0 10 2\n10\n")
        with pytest.raises(lc.ChainFormatError, match="expected 1 or 3 fields"):
            lc.Liftover.read(io.StringIO(text))

    @pytest.mark.parametrize("text", [
        "chain x chr1 100 + 0 10 chr1 100 + 0 10 1\n10\n",
        "chain 1 chr1 1e2 + 0 10 chr1 100 + 0 10 1\n10\n",
        "chain 1 chr1 100 + 0 10 chr1 100 + 0 10 1\nten\n",
        "chain 1 chr1 100 + 0 20 chr1 100 + 0 20 1\n10\t0\tx\n10\n",
        "chain 1 chr1 100 + 0 10 chr1 100 + 0 10 1\n1_0\n",
    ])
    def test_bad_integer(self, text):
        with pytest.raises(lc.ChainFormatError, match="invalid"):
            lc.Liftover.read(io.StringIO(text))

    @pytest.mark.parametrize("strand", ["*", ".", "++"])
    def test_bad_strand(self, strand):
        text = f"chain 1 chr1 100 + 0 10 chr1 100 {strand} 0 10 1\n10\n"
        with pytest.raises(lc.ChainFormatError, match="invalid query strand"):
            lc.Liftover.read(io.StringIO(text))

    def test_wrong_field_count(self):
        text = "chain 1 chr1 100 + 0 20 chr1 100 + 0 20 1\n10\t0\n10\n"
        with pytest.raises(lc.ChainFormatError, match="expected 1 or 3 fields"):
            lc.Liftover.read(io.StringIO(text))

    def test_short_header(self):
        text = "chain 1 chr1 100 + 0 10 chr1 100 +\n10\n"
        with pytest.raises(lc.ChainFormatError, match="at least 12 fields"):
            lc.Liftover.read(io.StringIO(text))

    def test_negative_target_gap_rejected(self):
        text = "chain 1 chr1 100 + 0 15 chr1 100 + 0 25 1\n10\t-5\t5\n10\n"
        with pytest.raises(lc.ChainFormatError, match="negative gap"):
            lc.Liftover.read(io.StringIO(text))

    def test_zero_block_rejected(self):
        text = "chain 1 chr1 100 + 0 10 chr1 100 + 0 10 1\n0\t0\t0\n10\n"
        with pytest.raises(lc.ChainFormatError, match="invalid block size"):
            lc.Liftover.read(io.StringIO(text))

    def test_block_walk_past_header_end(self):
        text = "chain 1 chr1 100 + 0 20 chr1 100 + 0 30 1\n10\t5\t5\n10\n"
        with pytest.raises(lc.ChainFormatError, match="run past the header end") as exc:
            lc.Liftover.read(io.StringIO(text))
        assert exc.value.lineno == 3

    def test_block_walk_short_of_header_end(self):
        """A header end beyond the last block is kept as recorded."""
        text = "chain 1 chr1 100 + 0 90 chr1 100 + 0 95 1\n10\t5\t5\n10\n"
        chain = next(lc.read_chains(io.StringIO(text)))
        assert chain.target.end == 90
        assert list(chain.iter_blocks())[-1] == (15, 15, 10)

    def test_interval_out_of_range(self):
        text = "chain 1 chr1 100 + 90 110 chr1 100 + 0 20 1\n20\n"
        with pytest.raises(lc.ChainFormatError, match="out of range"):
            lc.Liftover.read(io.StringIO(text))

    def test_inconsistent_chromosome_size(self):
        text = ("chain 1 chr1 100 + 0 10 chr2 100 + 0 10 1\n10\n\n"
                "chain 1 chr1 200 + 0 10 chr2 100 + 0 10 2\n10\n")
        with pytest.raises(lc.ChainFormatError, match="differs from previous"):
            lc.Liftover.read(io.StringIO(text))

    def test_invalid_utf8(self):
        data = b"chain 1 chr\xff 100 + 0 10 chr1 100 + 0 10 1\n10\n"
        with pytest.raises(lc.ChainFormatError, match="UTF-8"):
            lc.Liftover.read(io.BytesIO(data))

    def test_error_reports_line_number(self):
        text = "# header\n\nchain 1 chr1 100 + 0 20 chr1 100 + 0 20 1\n10\t0\n10\n"
        with pytest.raises(lc.ChainFormatError) as excinfo:
            lc.Liftover.read(io.StringIO(text), source="bad.chain")
        assert excinfo.value.lineno == 4
        assert "bad.chain, line 4" in str(excinfo.value)

    def test_format_error_is_value_error(self):
        assert issubclass(lc.ChainFormatError, ValueError)

    def test_io_error_propagates(self):
        class Broken(io.RawIOBase):
            def readable(self):
                return True

            def readinto(self, b):
                raise OSError("disk on fire")

        with pytest.raises(OSError, match="disk on fire"):
            lc.Liftover.read(Broken())
