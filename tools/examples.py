"""
Run a few liftchain examples on a small in-memory chain set.

Usage:
    python tools/examples.py [path/to/file.over.chain[.gz]]
"""

import io
import sys

import pandas as pd

import liftchain as lc

EXAMPLE_CHAINS = """\
chain 1000 chr1 1000 + 0 300 chr2 1000 + 0 250 1
100\t100\t50
100

chain 500 chr1 1000 + 400 500 chr3 2000 - 0 100 2
100
"""


def main():
    if len(sys.argv) > 1:
        liftover = lc.load_chain(sys.argv[1], indexed=True, progress=True)
    else:
        liftover = lc.load_chain(io.StringIO(EXAMPLE_CHAINS), indexed=True)

    print(liftover)
    print("Chain blocks:")
    print(lc.chains_to_df(liftover))

    print("chr1:50 ->", liftover.map(lc.GenomePosition("chr1", 50)))
    print("chr1:50-250 ->", liftover.map_range(lc.GenomeRange.parse("chr1:50-250")))
    print("chr1:410-420 ->", liftover.map_range(lc.GenomeRange.parse("chr1:410-420")))

    intervals = pd.DataFrame({"chrom": ["chr1", "chr1"], "start": [50, 400], "end": [250, 450]})
    print("liftover_intervals:")
    print(lc.liftover_intervals(intervals, liftover, include_metadata=True))


if __name__ == "__main__":
    main()
