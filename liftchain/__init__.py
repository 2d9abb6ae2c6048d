"""
liftchain - genome coordinate liftover through UCSC chain files
"""

__version__ = '0.1.0'

from . import _shared
from ._shared import CONFIG
from .batch import map_positions, map_ranges
from .chain import AlignmentBlock, Chain, ChainHeader, ChainSide
from .intervals import chains_to_df, liftover_intervals, liftover_positions
from .liftover import Liftover, LiftoverIndexed, load_chain
from .location import GenomePosition, GenomeRange, SequenceOrientation
from .parse import ChainFormatError, open_chain_file, read_chains

__all__ = [
    'CONFIG',

    # Locations
    'SequenceOrientation',
    'GenomePosition',
    'GenomeRange',

    # Chain records
    'ChainSide',
    'ChainHeader',
    'AlignmentBlock',
    'Chain',

    # Parsing
    'ChainFormatError',
    'read_chains',
    'open_chain_file',
    'load_chain',

    # Mapping
    'Liftover',
    'LiftoverIndexed',
    'map_positions',
    'map_ranges',

    # DataFrame interface
    'chains_to_df',
    'liftover_intervals',
    'liftover_positions',
]
