"""Coordinate liftover through a set of parsed chains.

Two read paths share one mapping algorithm:

- :class:`Liftover` keeps the parsed chains in file order and answers
  queries by scanning every chain.
- :class:`LiftoverIndexed` is built once from a :class:`Liftover` and
  answers the same queries through per-chromosome sorted block arrays.

Both return identical results for every query; the index only changes how
candidate blocks are found.

Mapping rules
-------------
Inside a block with target start ``t0`` and query start ``q0`` (both on
their chain's strands), target offset ``p`` maps to ``q0 + (p - t0)``. When
the query side is on the ``-`` strand the result is converted back to the
forward strand (``size - q - 1`` for a point, ``[size - b, size - a)`` for a
span). Positions in gaps map to nothing. A range overlapping several blocks
is split into one fragment per block; fragments are never merged. For a
reverse query side the fragments of a chain are emitted in reverse block
order so they ascend in forward-strand query coordinates.
"""

import logging
from pathlib import Path

import numpy as np

from ._shared import _progress_context, _report
from .location import GenomePosition, GenomeRange
from .parse import open_chain_file, read_chains

_logger = logging.getLogger(__name__)

_SIDES = ("target", "query")


# ===================================================================
# Per-block transforms (shared by both read paths)
# ===================================================================

def _lift_point(chain, t0, q0, p, orientation):
    """Map strand offset *p* inside the block starting at ``(t0, q0)``."""
    query = chain.header.query
    q = q0 + (p - t0)
    if query.orientation.is_reverse:
        q = query.size - q - 1
    return GenomePosition(query.name, q,
                          orientation.compose(chain.header.relative_orientation))


def _lift_span(chain, t0, q0, size, a, b, orientation):
    """Map the part of strand span ``[a, b)`` inside a block, or ``None``."""
    lo = max(a, t0)
    hi = min(b, t0 + size)
    if lo >= hi:
        return None
    query = chain.header.query
    start = q0 + (lo - t0)
    end = start + (hi - lo)
    if query.orientation.is_reverse:
        start, end = query.size - end, query.size - start
    return GenomeRange(query.name, start, end,
                       orientation.compose(chain.header.relative_orientation))


def _chain_map(chain, position):
    target = chain.header.target
    if target.name != position.name:
        return None
    p = target.to_strand(position.position)
    if not target.start <= p < target.end:
        return None
    for t0, q0, size in chain.iter_blocks():
        if p < t0:
            break
        if p < t0 + size:
            return _lift_point(chain, t0, q0, p, position.orientation)
    return None


def _chain_map_range(chain, rng):
    target = chain.header.target
    if target.name != rng.name:
        return []
    a, b = target.span_to_strand(rng.start, rng.end)
    if a >= b or b <= target.start or a >= target.end:
        return []
    fragments = []
    for t0, q0, size in chain.iter_blocks():
        if t0 >= b:
            break
        fragment = _lift_span(chain, t0, q0, size, a, b, rng.orientation)
        if fragment is not None:
            fragments.append(fragment)
    if chain.header.query.orientation.is_reverse:
        fragments.reverse()
    return fragments


# ===================================================================
# Chain store
# ===================================================================

class Liftover:
    """An immutable, ordered collection of chains parsed from one chain file.

    Queries scan every chain; use :meth:`indexed` for large chain sets.
    """

    __slots__ = ("_chains",)

    def __init__(self, chains=()):
        self._chains = tuple(chains)

    @classmethod
    def read(cls, stream, source=None):
        """Parse a chain-format stream (text or binary, gzip sniffed)."""
        return cls(read_chains(stream, source=source))

    @classmethod
    def read_file(cls, path):
        """Parse a chain file from disk, gzip-compressed or not."""
        with open_chain_file(path) as f:
            return cls.read(f, source=str(path))

    @property
    def chains(self):
        return self._chains

    def __len__(self):
        return len(self._chains)

    def __iter__(self):
        return iter(self._chains)

    def __eq__(self, other):
        if not isinstance(other, Liftover):
            return NotImplemented
        return self._chains == other._chains

    def __hash__(self):
        return hash(self._chains)

    def __repr__(self):
        return f"Liftover({len(self._chains)} chains)"

    def __str__(self):
        return "\n".join(str(chain) for chain in self._chains)

    def write(self, stream):
        """Write the chains back out in chain format, one blank line after each."""
        for chain in self._chains:
            stream.write(str(chain))
            stream.write("\n")

    def target_names(self):
        return list(dict.fromkeys(c.header.target.name for c in self._chains))

    def query_names(self):
        return list(dict.fromkeys(c.header.query.name for c in self._chains))

    def chromosome_sizes(self, side="target"):
        """Return ``{name: size}`` for one side of the chains."""
        if side not in _SIDES:
            raise ValueError(f"side must be one of {list(_SIDES)}, got '{side}'")
        sizes = {}
        for chain in self._chains:
            chain_side = getattr(chain.header, side)
            sizes.setdefault(chain_side.name, chain_side.size)
        return sizes

    def map_with_chains(self, position):
        """Like :meth:`map`, pairing each result with its chain's parse index."""
        matches = []
        for i, chain in enumerate(self._chains):
            lifted = _chain_map(chain, position)
            if lifted is not None:
                matches.append((i, lifted))
        return matches

    def map_range_with_chains(self, rng):
        """Like :meth:`map_range`, pairing each fragment with its chain's parse index."""
        fragments = []
        for i, chain in enumerate(self._chains):
            fragments.extend((i, f) for f in _chain_map_range(chain, rng))
        return fragments

    def map(self, position):
        """Map one position. Returns a possibly empty list, in chain order."""
        return [lifted for _, lifted in self.map_with_chains(position)]

    def map_range(self, rng):
        """Map a half-open range into per-block fragments, in chain order."""
        return [fragment for _, fragment in self.map_range_with_chains(rng)]

    def indexed(self, progress=None):
        """Build a fresh :class:`LiftoverIndexed` over these chains."""
        return LiftoverIndexed(self, progress=progress)


# ===================================================================
# Chain index
# ===================================================================

class _ChromIndex:
    """Blocks on one target chromosome, sorted by forward-strand start."""

    __slots__ = ("size", "starts", "ends", "max_ends", "chain_idx", "block_idx", "t0", "q0")

    def __init__(self, size, rows):
        self.size = size
        data = np.array(rows, dtype=np.int64).reshape(-1, 7)
        order = np.argsort(data[:, 0], kind="stable")
        data = data[order]
        self.starts = data[:, 0].copy()
        self.ends = data[:, 1].copy()
        self.max_ends = np.maximum.accumulate(self.ends) if len(data) else self.ends
        self.chain_idx = data[:, 2].copy()
        self.block_idx = data[:, 3].copy()
        self.t0 = data[:, 4].copy()
        self.q0 = data[:, 5].copy()

    def __len__(self):
        return len(self.starts)

    def overlapping(self, start, end):
        """Indices of blocks overlapping ``[start, end)``, by (chain, block) order."""
        # max_ends is non-decreasing: everything before lo ends at or before start.
        lo = int(np.searchsorted(self.max_ends, start, side="right"))
        hi = int(np.searchsorted(self.starts, end, side="left"))
        if lo >= hi:
            return []
        candidates = np.arange(lo, hi)
        candidates = candidates[self.ends[lo:hi] > start]
        if len(candidates) > 1:
            keys = np.lexsort((self.block_idx[candidates], self.chain_idx[candidates]))
            candidates = candidates[keys]
        return candidates.tolist()


class LiftoverIndexed:
    """Read-only spatial index over the chains of a :class:`Liftover`.

    Blocks are grouped by target chromosome and sorted by start; a running
    maximum of block ends bounds the binary search, so a lookup costs
    ``O(log n + k)``. The index never changes after construction; build a new
    one if the chain set changes.
    """

    def __init__(self, liftover, progress=None):
        self._chains = liftover.chains
        rows_by_chrom = {}
        sizes = {}
        n_chains = len(self._chains)
        with _progress_context(progress, total=n_chains, desc="Indexing") as cb:
            for ci, chain in enumerate(self._chains):
                target = chain.header.target
                sizes.setdefault(target.name, target.size)
                rows = rows_by_chrom.setdefault(target.name, [])
                for bi, (t0, q0, size) in enumerate(chain.iter_blocks()):
                    start, end = target.span_to_strand(t0, t0 + size)
                    rows.append((start, end, ci, bi, t0, q0, size))
                _report(cb, ci + 1, n_chains)
        self._chromosomes = {
            name: _ChromIndex(sizes[name], rows) for name, rows in rows_by_chrom.items()
        }
        _logger.debug(
            "Indexed %d blocks on %d target chromosomes",
            len(self), len(self._chromosomes),
        )

    @property
    def chains(self):
        return self._chains

    def __len__(self):
        return sum(len(idx) for idx in self._chromosomes.values())

    def __repr__(self):
        return (f"LiftoverIndexed({len(self._chains)} chains, "
                f"{len(self._chromosomes)} chromosomes)")

    def chromosomes(self):
        return list(self._chromosomes)

    def chromosome_size(self, name):
        """Size of target chromosome *name*; ``KeyError`` if no chain covers it."""
        return self._chromosomes[name].size

    def map_with_chains(self, position):
        idx = self._chromosomes.get(position.name)
        if idx is None:
            return []
        matches = []
        p = position.position
        for i in idx.overlapping(p, p + 1):
            ci = int(idx.chain_idx[i])
            chain = self._chains[ci]
            strand_p = chain.header.target.to_strand(p)
            matches.append((ci, _lift_point(chain, int(idx.t0[i]), int(idx.q0[i]),
                                            strand_p, position.orientation)))
        return matches

    def map_range_with_chains(self, rng):
        idx = self._chromosomes.get(rng.name)
        if idx is None or rng.is_empty():
            return []
        fragments = []
        group = []
        group_chain = None
        for i in idx.overlapping(rng.start, rng.end):
            ci = int(idx.chain_idx[i])
            if ci != group_chain:
                _flush_group(fragments, group, group_chain, self._chains)
                group = []
                group_chain = ci
            chain = self._chains[ci]
            a, b = chain.header.target.span_to_strand(rng.start, rng.end)
            size = int(idx.ends[i] - idx.starts[i])
            fragment = _lift_span(chain, int(idx.t0[i]), int(idx.q0[i]), size, a, b,
                                  rng.orientation)
            group.append(fragment)
        _flush_group(fragments, group, group_chain, self._chains)
        return fragments

    def map(self, position):
        """Map one position. Same result as :meth:`Liftover.map`."""
        return [lifted for _, lifted in self.map_with_chains(position)]

    def map_range(self, rng):
        """Map a half-open range. Same result as :meth:`Liftover.map_range`."""
        return [fragment for _, fragment in self.map_range_with_chains(rng)]


def _flush_group(fragments, group, chain_index, chains):
    if not group:
        return
    if chains[chain_index].header.query.orientation.is_reverse:
        group.reverse()
    fragments.extend((chain_index, f) for f in group)


# ===================================================================
# Loading
# ===================================================================

def load_chain(file, indexed=False, progress=None):
    """Load a chain file into a :class:`Liftover`.

    Parameters
    ----------
    file : str, os.PathLike or file object
        Path to a (possibly gzip-compressed) chain file, or an open stream.
    indexed : bool, optional
        If ``True``, return the :class:`LiftoverIndexed` built from the chains.
    progress : bool, str or callable, optional
        Progress reporting for index construction; see ``CONFIG['progress']``.

    Returns
    -------
    Liftover or LiftoverIndexed

    Raises
    ------
    ChainFormatError
        If the chain data is malformed.
    FileNotFoundError
        If *file* is a path that does not exist.

    Examples
    --------
    >>> import io
    >>> import liftchain as lc
    >>> text = "chain 1 chr1 100 + 0 10 chr1 100 + 0 10 1\\n10\\n"
    >>> lo = lc.load_chain(io.StringIO(text))
    >>> lo.map(lc.GenomePosition("chr1", 3))
    [GenomePosition(name='chr1', position=3, orientation=<SequenceOrientation.FORWARD: '+'>)]
    """
    if isinstance(file, (str, Path)) or hasattr(file, "__fspath__"):
        liftover = Liftover.read_file(file)
    else:
        liftover = Liftover.read(file)
    if indexed:
        return liftover.indexed(progress=progress)
    return liftover

