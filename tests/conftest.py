import os

import numpy as np
import pytest

import liftchain as lc

CHROM_SIZE = 5000


def write_chain(tmpdir, entries, name="test.chain", sep="\t"):
    """Write a chain file from a list of (header_dict, blocks) tuples.

    header_dict keys: score, t_chrom, t_size, t_strand, t_start, t_end,
                      q_chrom, q_size, q_strand, q_start, q_end, chain_id
    blocks: list of tuples (size,) or (size, dt, dq)
    """
    path = os.path.join(tmpdir, name)
    with open(path, "w") as f:
        for hdr, blocks in entries:
            f.write(
                f"chain {hdr['score']} "
                f"{hdr['t_chrom']} {hdr['t_size']} {hdr['t_strand']} {hdr['t_start']} {hdr['t_end']} "
                f"{hdr['q_chrom']} {hdr['q_size']} {hdr['q_strand']} {hdr['q_start']} {hdr['q_end']} "
                f"{hdr['chain_id']}\n"
            )
            for blk in blocks:
                f.write(sep.join(str(v) for v in blk) + "\n")
            f.write("\n")
    return path


def make_chain(t, q, blocks, last_block, score=1, chain_id="1"):
    """Build a Chain directly; *t*/*q* are (name, size, strand, start, end)."""
    def side(fields):
        name, size, strand, start, end = fields
        return lc.ChainSide(name, size, lc.SequenceOrientation.from_token(strand), start, end)

    header = lc.ChainHeader(score, side(t), side(q), chain_id)
    return lc.Chain(header, tuple(lc.AlignmentBlock(*b) for b in blocks), last_block)


def random_liftover(rng, n_chains=40, chroms=("chr1", "chr2", "chr3"),
                    p_reverse=0.4, p_target_reverse=0.1):
    """Random but valid chain set: overlapping chains, both query strands."""
    chains = []
    for i in range(n_chains):
        t_name = str(rng.choice(chroms))
        q_name = str(rng.choice(chroms))
        t_strand = "-" if rng.random() < p_target_reverse else "+"
        q_strand = "-" if rng.random() < p_reverse else "+"
        n_blocks = int(rng.integers(1, 8))
        sizes = [int(v) for v in rng.integers(1, 60, n_blocks)]
        dts = [int(v) for v in rng.integers(0, 40, n_blocks - 1)]
        dqs = [int(v) for v in rng.integers(0, 40, n_blocks - 1)]
        t_len = sum(sizes) + sum(dts)
        q_len = sum(sizes) + sum(dqs)
        t_start = int(rng.integers(0, CHROM_SIZE - t_len))
        q_start = int(rng.integers(0, CHROM_SIZE - q_len))
        chains.append(make_chain(
            (t_name, CHROM_SIZE, t_strand, t_start, t_start + t_len),
            (q_name, CHROM_SIZE, q_strand, q_start, q_start + q_len),
            list(zip(sizes[:-1], dts, dqs)),
            sizes[-1],
            score=int(rng.integers(1, 10**6)),
            chain_id=str(i + 1),
        ))
    return lc.Liftover(chains)


def brute_force_map(liftover, position):
    """Per-base reference mapper: expands every block of every chain."""
    out = []
    for chain in liftover.chains:
        t, q = chain.header.target, chain.header.query
        if t.name != position.name:
            continue
        for t0, q0, size in chain.iter_blocks():
            for k in range(size):
                tf = t.to_strand(t0 + k)
                if tf == position.position:
                    out.append((q.name, q.to_strand(q0 + k)))
    return out


@pytest.fixture
def rng():
    return np.random.default_rng(42)
