"""Genomic locations: strand orientation, single positions and half-open ranges.

All coordinates are 0-based offsets on the forward strand of the named
chromosome. The orientation attached to a location is a tag describing the
strand it refers to; it never changes the numeric coordinates.
"""

import enum
import functools
import re
from dataclasses import dataclass

_RANGE_RE = re.compile(r"^(?P<name>[^:\s]+):(?P<start>[0-9][0-9,]*)-(?P<end>[0-9][0-9,]*)$")


@functools.total_ordering
class SequenceOrientation(enum.Enum):
    """Strand relationship between two sequences (``+`` or ``-``)."""

    FORWARD = "+"
    REVERSE = "-"

    @classmethod
    def from_token(cls, token):
        """Parse a chain-file strand token (``"+"`` or ``"-"``)."""
        if token == "+":
            return cls.FORWARD
        if token == "-":
            return cls.REVERSE
        raise ValueError(f"Invalid sequence orientation: {token!r}")

    @property
    def token(self):
        return self.value

    @property
    def is_reverse(self):
        return self is SequenceOrientation.REVERSE

    def flip(self):
        if self is SequenceOrientation.FORWARD:
            return SequenceOrientation.REVERSE
        return SequenceOrientation.FORWARD

    def compose(self, other):
        """Orientation obtained by applying *other* on top of this one."""
        return self.flip() if other.is_reverse else self

    def __lt__(self, other):
        if not isinstance(other, SequenceOrientation):
            return NotImplemented
        return self.value < other.value


@dataclass(frozen=True, order=True)
class GenomePosition:
    """A single base: chromosome name and 0-based offset."""

    name: str
    position: int
    orientation: SequenceOrientation = SequenceOrientation.FORWARD

    def __post_init__(self):
        if self.position < 0:
            raise ValueError(f"Position must be non-negative, got {self.position}")

    def __str__(self):
        return f"{self.name}:{self.position}"


@dataclass(frozen=True, order=True)
class GenomeRange:
    """A half-open interval ``[start, end)`` on a named chromosome."""

    name: str
    start: int
    end: int
    orientation: SequenceOrientation = SequenceOrientation.FORWARD

    def __post_init__(self):
        if self.start < 0:
            raise ValueError(f"Range start must be non-negative, got {self.start}")
        if self.end < self.start:
            raise ValueError(
                f"Range end ({self.end}) must not precede its start ({self.start})"
            )

    @classmethod
    def from_position(cls, position):
        return cls(position.name, position.position, position.position + 1,
                   position.orientation)

    @classmethod
    def parse(cls, text, orientation=SequenceOrientation.FORWARD):
        """Parse ``"chr1:100-200"`` (0-based, half-open; commas allowed)."""
        match = _RANGE_RE.match(text.strip())
        if match is None:
            raise ValueError(f"Invalid genome range: {text!r}")
        start = int(match.group("start").replace(",", ""))
        end = int(match.group("end").replace(",", ""))
        return cls(match.group("name"), start, end, orientation)

    def __len__(self):
        return self.end - self.start

    def is_empty(self):
        return self.end == self.start

    def contains(self, position):
        return self.start <= position < self.end

    def __str__(self):
        return f"{self.name}:{self.start}-{self.end}"
