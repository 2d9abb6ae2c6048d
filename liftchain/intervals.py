"""DataFrame interface: chain tables and liftover of interval/position tables.

Column convention: ``chromsrc``/``startsrc``/``endsrc``/``strandsrc`` describe
the side lifted *from* (the chain-format target), ``chrom``/``start``/``end``/
``strand`` the side lifted *to* (the chain-format query). All coordinates are
0-based, forward-strand; strands are ``0`` for ``+`` and ``1`` for ``-``.
"""

import pandas as pd

from .location import GenomePosition, GenomeRange

_EMPTY_CHAIN_COLS = [
    "chrom", "start", "end", "strand",
    "chromsrc", "startsrc", "endsrc", "strandsrc",
    "chain_id", "score",
]

_STR_COLS = ("chrom", "chromsrc", "chain_id")


def _empty_df(cols):
    return pd.DataFrame({
        c: pd.Series(dtype="object" if c in _STR_COLS else "int64")
        for c in cols
    })


def _strand_code(orientation):
    return 1 if orientation.is_reverse else 0


def _require_columns(df, required, what):
    if df is None:
        raise ValueError(f"{what} is required")
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"{what} is missing required columns: {missing}")


# ===================================================================
# Chain table
# ===================================================================

def chains_to_df(liftover):
    """Return one row per alignment block of *liftover*.

    Parameters
    ----------
    liftover : Liftover or LiftoverIndexed

    Returns
    -------
    pandas.DataFrame
        Columns ``chrom, start, end, strand, chromsrc, startsrc, endsrc,
        strandsrc, chain_id, score``, in chain then block order.

    Examples
    --------
    >>> import io
    >>> import liftchain as lc
    >>> lo = lc.load_chain(io.StringIO(
    ...     "chain 7 chrA 100 + 0 30 chrB 200 - 10 45 x\\n10 5 10\\n15\\n"))
    >>> lc.chains_to_df(lo)[["chrom", "start", "end", "startsrc", "endsrc"]]
      chrom  start  end  startsrc  endsrc
    0  chrB    180  190         0      10
    1  chrB    155  170        15      30
    """
    blocks = []
    for chain in liftover.chains:
        target = chain.header.target
        query = chain.header.query
        for t0, q0, size in chain.iter_blocks():
            startsrc, endsrc = target.span_to_strand(t0, t0 + size)
            start, end = query.span_to_strand(q0, q0 + size)
            blocks.append({
                "chrom": query.name,
                "start": start,
                "end": end,
                "strand": _strand_code(query.orientation),
                "chromsrc": target.name,
                "startsrc": startsrc,
                "endsrc": endsrc,
                "strandsrc": _strand_code(target.orientation),
                "chain_id": chain.header.id,
                "score": chain.header.score,
            })
    if not blocks:
        return _empty_df(_EMPTY_CHAIN_COLS)
    return pd.DataFrame(blocks)[_EMPTY_CHAIN_COLS]


# ===================================================================
# Liftover of tables
# ===================================================================

def _canonic_merge(df):
    """Merge abutting lifted fragments of the same intervalID and chain."""
    if df.empty:
        return df

    merged = []
    prev = None
    for row in df.to_dict(orient="records"):
        if (prev is not None and
                prev["intervalID"] == row["intervalID"] and
                prev["_chain"] == row["_chain"] and
                prev["chrom"] == row["chrom"] and
                prev["end"] == row["start"]):
            prev["end"] = row["end"]
        else:
            if prev is not None:
                merged.append(prev)
            prev = row
    if prev is not None:
        merged.append(prev)

    return pd.DataFrame(merged)


def liftover_intervals(intervals, liftover, include_metadata=False, canonic=False):
    """Lift intervals from the chain target assembly to the query assembly.

    Each source interval maps to one fragment per overlapping alignment block
    of every chain covering it; an interval spanning a chain gap therefore
    yields several rows. ``intervalID`` links each row to its source row.

    Parameters
    ----------
    intervals : pandas.DataFrame
        Must contain ``chrom``, ``start`` and ``end`` (0-based, half-open).
    liftover : Liftover or LiftoverIndexed
    include_metadata : bool, optional
        Add ``score`` (chain alignment score) and ``strand`` (0/1 relative
        orientation) columns. Default ``False``.
    canonic : bool, optional
        Merge fragments of the same source interval and chain that abut in
        lifted coordinates. Default ``False`` keeps every block fragment.

    Returns
    -------
    pandas.DataFrame
        Columns ``chrom, start, end, intervalID, chain_id`` (plus ``score``,
        ``strand``). Rows follow source order, then chain order, then
        fragment order. Unmapped intervals are absent.

    Raises
    ------
    ValueError
        If *intervals* is ``None`` or lacks a required column, or a row holds
        an invalid range.
    """
    _require_columns(intervals, ("chrom", "start", "end"), "intervals")
    cols = ["chrom", "start", "end", "intervalID", "chain_id"]
    if include_metadata:
        cols += ["score", "strand"]

    chains = liftover.chains
    rows = []
    records = zip(intervals["chrom"], intervals["start"], intervals["end"])
    for interval_id, (chrom, start, end) in enumerate(records):
        rng = GenomeRange(str(chrom), int(start), int(end))
        for ci, fragment in liftover.map_range_with_chains(rng):
            header = chains[ci].header
            row = {
                "chrom": fragment.name,
                "start": fragment.start,
                "end": fragment.end,
                "intervalID": interval_id,
                "chain_id": header.id,
                "_chain": ci,
            }
            if include_metadata:
                row["score"] = header.score
                row["strand"] = _strand_code(fragment.orientation)
            rows.append(row)

    if not rows:
        return _empty_df(cols)

    result = pd.DataFrame(rows)
    if canonic:
        result = _canonic_merge(result)
    return result[cols].reset_index(drop=True)


def liftover_positions(positions, liftover, include_metadata=False):
    """Lift single positions (``chrom``, ``pos`` columns) through the chains.

    Returns a DataFrame with ``chrom, pos, intervalID, chain_id`` (plus
    ``score``, ``strand`` when *include_metadata*). A position that falls in
    a gap or outside every chain has no row; one covered by several chains
    has one row per chain.
    """
    _require_columns(positions, ("chrom", "pos"), "positions")
    cols = ["chrom", "pos", "intervalID", "chain_id"]
    if include_metadata:
        cols += ["score", "strand"]

    chains = liftover.chains
    rows = []
    for interval_id, (chrom, pos) in enumerate(zip(positions["chrom"], positions["pos"])):
        for ci, lifted in liftover.map_with_chains(GenomePosition(str(chrom), int(pos))):
            header = chains[ci].header
            row = {
                "chrom": lifted.name,
                "pos": lifted.position,
                "intervalID": interval_id,
                "chain_id": header.id,
            }
            if include_metadata:
                row["score"] = header.score
                row["strand"] = _strand_code(lifted.orientation)
            rows.append(row)

    if not rows:
        return _empty_df(cols)
    return pd.DataFrame(rows)[cols]
