"""Chain file parser.

Reads UCSC ``.over.chain`` text (optionally gzip-compressed) into
:class:`~liftchain.chain.Chain` records. A file holds zero or more chains,
separated by blank lines, possibly with ``#`` comment lines in between::

    chain 4900 chrY 58368225 + 25985403 25985638 chr5 151006098 - 43257292 43257528 1
    9       1       0
    10      0       5
    48

The header is followed by ``size dt dq`` lines and a final ``size`` line.
UCSC separates block fields with tabs, Ensembl with spaces; both are
accepted.
"""

import gzip
import io
import logging
import re
from pathlib import Path

from .chain import AlignmentBlock, Chain, ChainHeader, ChainSide
from .location import SequenceOrientation

_logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^-?[0-9]+$")
_GZIP_MAGIC = b"\x1f\x8b"


class ChainFormatError(ValueError):
    """Malformed chain data. Raised at parse time; no partial result is kept."""

    def __init__(self, message, source=None, lineno=None):
        self.source = source
        self.lineno = lineno
        if lineno is not None:
            message = f"Chain file {source}, line {lineno}: {message}"
        elif source is not None:
            message = f"Chain file {source}: {message}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Stream helpers
# ---------------------------------------------------------------------------

def _is_binary(stream):
    if isinstance(stream, (io.RawIOBase, io.BufferedIOBase)):
        return True
    return "b" in getattr(stream, "mode", "")


def _maybe_decompress(stream):
    """Return *stream*, wrapped in a gzip reader if it starts with the gzip magic."""
    if hasattr(stream, "peek"):
        head = stream.peek(2)[:2]
    elif stream.seekable():
        offset = stream.tell()
        head = stream.read(2)
        stream.seek(offset)
    else:
        stream = io.BufferedReader(stream)
        head = stream.peek(2)[:2]
    if head == _GZIP_MAGIC:
        return gzip.GzipFile(fileobj=stream, mode="rb")
    return stream


def open_chain_file(path):
    """Open a chain file for binary reading, decompressing gzip transparently.

    Multi-member gzip files (as distributed by UCSC and Ensembl) are read
    through to the end.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If *path* is not a regular file.
    """
    chain_path = Path(path)
    if not chain_path.exists():
        raise FileNotFoundError(f"Chain file does not exist: {path}")
    if not chain_path.is_file():
        raise ValueError(f"Chain path is not a regular file: {path}")
    f = open(chain_path, "rb")
    if f.peek(2)[:2] == _GZIP_MAGIC:
        f.close()
        return gzip.open(chain_path, "rb")
    return f


def _iter_lines(stream, source):
    for lineno, raw in enumerate(stream, start=1):
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ChainFormatError("input is not valid UTF-8 text", source, lineno) from exc
        yield lineno, raw.rstrip("\r\n")


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------

def _parse_int(token, what, source, lineno):
    if not _INT_RE.match(token):
        raise ChainFormatError(f"invalid {what} {token!r}", source, lineno)
    return int(token)


def _parse_side(fields, which, source, lineno):
    name, size, strand, start, end = fields
    size = _parse_int(size, f"{which} chromosome size", source, lineno)
    try:
        orientation = SequenceOrientation.from_token(strand)
    except ValueError as exc:
        raise ChainFormatError(f"invalid {which} strand {strand!r}", source, lineno) from exc
    start = _parse_int(start, f"{which} start", source, lineno)
    end = _parse_int(end, f"{which} end", source, lineno)
    if start < 0 or end < start or end > size:
        raise ChainFormatError(
            f"{which} interval [{start}, {end}) out of range for chromosome "
            f"{name} of size {size}", source, lineno
        )
    return ChainSide(name, size, orientation, start, end)


def _parse_header(line, source, lineno):
    fields = line.split(None, 12)
    if fields[0] != "chain":
        raise ChainFormatError(
            f"expected a 'chain' header line, got {fields[0]!r}", source, lineno
        )
    if len(fields) < 12:
        raise ChainFormatError(
            f"expected at least 12 fields in chain header, got {len(fields)}",
            source, lineno
        )
    score = _parse_int(fields[1], "score", source, lineno)
    target = _parse_side(fields[2:7], "target", source, lineno)
    query = _parse_side(fields[7:12], "query", source, lineno)
    chain_id = fields[12].strip() if len(fields) == 13 else ""
    return ChainHeader(score, target, query, chain_id)


def _split_block_line(line):
    # UCSC uses tabs here (though not in the header), Ensembl uses spaces.
    separator = " " if " " in line else "\t"
    return [part.strip() for part in line.split(separator)]


def _read_blocks(header, lines, source, header_lineno):
    """Consume block lines up to and including the terminal one-field line."""
    blocks = []
    for lineno, line in lines:
        data = line.strip()
        if not data:
            raise ChainFormatError(
                "chain ended without a terminal single-field block line",
                source, lineno
            )
        parts = _split_block_line(data)
        if len(parts) == 1:
            last_block = _parse_int(parts[0], "block size", source, lineno)
            if last_block <= 0:
                raise ChainFormatError(f"invalid block size {last_block}", source, lineno)
            chain = Chain(header, tuple(blocks), last_block)
            _check_walk(chain, source, lineno)
            return chain
        if len(parts) != 3:
            raise ChainFormatError(
                f"expected 1 or 3 fields in block line, got {len(parts)}", source, lineno
            )
        size = _parse_int(parts[0], "block size", source, lineno)
        dt = _parse_int(parts[1], "target gap", source, lineno)
        dq = _parse_int(parts[2], "query gap", source, lineno)
        if size <= 0:
            raise ChainFormatError(f"invalid block size {size}", source, lineno)
        if dt < 0 or dq < 0:
            raise ChainFormatError(f"negative gap values ({dt}, {dq})", source, lineno)
        blocks.append(AlignmentBlock(size, dt, dq))
    raise ChainFormatError(
        f"unexpected end of input: chain starting at line {header_lineno} "
        "has no terminal block line", source
    )


def _check_walk(chain, source, lineno):
    # Blocks may stop short of the header end; they may not run past it.
    t_end = q_end = None
    for t0, q0, size in chain.iter_blocks():
        t_end, q_end = t0 + size, q0 + size
    if t_end > chain.target.end or q_end > chain.query.end:
        raise ChainFormatError(
            f"alignment blocks run past the header end: blocks reach target "
            f"{t_end}, query {q_end}; header ends at target {chain.target.end}, "
            f"query {chain.query.end}",
            source, lineno
        )


def _check_size(sizes, side, source, lineno):
    known = sizes.setdefault(side.name, side.size)
    if known != side.size:
        raise ChainFormatError(
            f"chromosome {side.name} size ({side.size}) differs from previous ({known})",
            source, lineno
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def read_chains(stream, source=None):
    """Yield :class:`Chain` records from a chain-format stream, in file order.

    Parameters
    ----------
    stream : binary or text stream, or any iterable of lines
        Binary input is sniffed for the gzip magic and decompressed if needed.
    source : str, optional
        Name used in error messages. Defaults to ``stream.name`` when present.

    Raises
    ------
    ChainFormatError
        On the first malformed header, numeric or strand field, block line,
        or truncated chain.
    """
    if source is None:
        source = getattr(stream, "name", "<stream>")
    if _is_binary(stream):
        stream = _maybe_decompress(stream)

    lines = _iter_lines(stream, source)
    target_sizes = {}
    query_sizes = {}
    count = 0
    for lineno, line in lines:
        if not line.strip() or line.startswith("#"):
            continue
        header = _parse_header(line.strip(), source, lineno)
        _check_size(target_sizes, header.target, source, lineno)
        _check_size(query_sizes, header.query, source, lineno)
        yield _read_blocks(header, lines, source, lineno)
        count += 1
    _logger.debug("Read %d chains from %s", count, source)
