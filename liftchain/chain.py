"""Chain records parsed from UCSC ``.over.chain`` files.

A chain links an interval of one assembly (the *target*, lifted from) to an
interval of another (the *query*, lifted to) through a run of ungapped
alignment blocks. Chain-format naming is kept: target fields come first in
the header line, query fields second.

See http://genome.ucsc.edu/goldenPath/help/chain.html
"""

from dataclasses import dataclass

from .location import SequenceOrientation


@dataclass(frozen=True)
class ChainSide:
    """One side of a chain: chromosome, its full size and the aligned span.

    ``start``/``end`` are expressed on the strand given by ``orientation``,
    exactly as recorded in the file.
    """

    name: str
    size: int
    orientation: SequenceOrientation
    start: int
    end: int

    def __len__(self):
        return self.end - self.start

    def to_strand(self, position):
        """Convert a forward-strand position into this side's strand."""
        if self.orientation.is_reverse:
            return self.size - position - 1
        return position

    def span_to_strand(self, start, end):
        """Convert a forward-strand half-open span into this side's strand."""
        if self.orientation.is_reverse:
            return self.size - end, self.size - start
        return start, end

    def forward_span(self):
        """The aligned span in forward-strand coordinates."""
        return self.span_to_strand(self.start, self.end)


@dataclass(frozen=True)
class ChainHeader:
    score: int
    target: ChainSide
    query: ChainSide
    id: str

    @property
    def relative_orientation(self):
        """Orientation of the query side relative to the target side."""
        return self.target.orientation.compose(self.query.orientation)

    def __str__(self):
        t, q = self.target, self.query
        fields = [
            "chain", str(self.score),
            t.name, str(t.size), t.orientation.token, str(t.start), str(t.end),
            q.name, str(q.size), q.orientation.token, str(q.start), str(q.end),
        ]
        if self.id:
            fields.append(self.id)
        return " ".join(fields)


@dataclass(frozen=True)
class AlignmentBlock:
    """Ungapped block ``size`` followed by gaps ``dt`` (target) and ``dq`` (query)."""

    size: int
    dt: int
    dq: int

    def __str__(self):
        return f"{self.size}\t{self.dt}\t{self.dq}"


@dataclass(frozen=True)
class Chain:
    header: ChainHeader
    blocks: tuple
    last_block: int

    @property
    def target(self):
        return self.header.target

    @property
    def query(self):
        return self.header.query

    @property
    def num_blocks(self):
        return len(self.blocks) + 1

    def iter_blocks(self):
        """Yield ``(t0, q0, size)`` for every block, trailing block included.

        ``t0``/``q0`` are the block starts on the target/query strands, obtained
        by walking sizes and gaps from the header's start offsets.
        """
        t0 = self.header.target.start
        q0 = self.header.query.start
        for block in self.blocks:
            yield t0, q0, block.size
            t0 += block.size + block.dt
            q0 += block.size + block.dq
        yield t0, q0, self.last_block

    def __str__(self):
        lines = [str(self.header)]
        lines.extend(str(block) for block in self.blocks)
        lines.append(str(self.last_block))
        return "\n".join(lines) + "\n"

    def to_debug_display(self):
        """Render the chain with the cumulative target/query offsets of every block.

        Each block line is followed by the offsets before and after the
        block-plus-gap step, which makes hand-checking a chain easy.
        """
        lines = [str(self.header)]
        t0 = self.header.target.start
        q0 = self.header.query.start
        for block in self.blocks:
            t1 = t0 + block.size + block.dt
            q1 = q0 + block.size + block.dq
            lines.append(f"\t{block}\t\t|\t\t{t0} {q0} -> {t1} {q1}")
            t0, q0 = t1, q1
        lines.append(f"{self.last_block}\t\t\t\t|\t\t{t0} {q0} -> "
                     f"{t0 + self.last_block} {q0 + self.last_block}")
        return "\n".join(lines) + "\n"
