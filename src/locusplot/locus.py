from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import ConfigError

_LOCUS_RE = re.compile(r"^\s*([^:\s]+)\s*:\s*([\d,]+)\s*-\s*([\d,]+)\s*$")


@dataclass(frozen=True)
class Locus:
    """A chromosome interval, 1-based and closed (genome-browser style).

    All tables loaded by locusplot use the same convention, so the overlap
    test is a plain inclusive comparison.
    """

    chrom: str
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1:
            raise ValueError(f"Locus start must be >= 1; got {self.start}")
        if self.end < self.start:
            raise ValueError(f"Locus end < start: {self.start}-{self.end}")

    @classmethod
    def parse(cls, text: str) -> "Locus":
        """Parse ``chr7:106,692,877-107,374,371`` (commas optional)."""
        m = _LOCUS_RE.match(str(text))
        if m is None:
            raise ConfigError(f"Cannot parse locus {text!r}; expected 'chrom:start-end'")
        chrom, s, e = m.groups()
        try:
            return cls(chrom, int(s.replace(",", "")), int(e.replace(",", "")))
        except ValueError as err:
            raise ConfigError(f"Invalid locus {text!r}: {err}") from err

    @property
    def width(self) -> int:
        return self.end - self.start + 1

    @property
    def center(self) -> float:
        return (self.start + self.end) / 2.0

    def overlaps(self, chrom: str, start: int, end: int) -> bool:
        """True when ``chrom:start-end`` shares at least one base with the locus."""
        return chrom == self.chrom and start <= self.end and end >= self.start

    def contains(self, chrom: str, start: int, end: int) -> bool:
        return chrom == self.chrom and start >= self.start and end <= self.end

    def zoom(self, factor: float) -> "Locus":
        """Zoom around the center; factor > 1 zooms in, < 1 zooms out."""
        if factor <= 0:
            raise ValueError("zoom factor must be positive")
        half = max(self.width / float(factor) / 2.0, 0.5)
        start = max(1, int(round(self.center - half)))
        end = max(start, int(round(self.center + half)))
        return Locus(self.chrom, start, end)

    def shift(self, bp: int) -> "Locus":
        start = max(1, self.start + int(bp))
        return Locus(self.chrom, start, start + self.end - self.start)

    def expand(self, bp: int) -> "Locus":
        return Locus(self.chrom, max(1, self.start - int(bp)), self.end + int(bp))

    def __str__(self) -> str:
        return f"{self.chrom}:{self.start}-{self.end}"
