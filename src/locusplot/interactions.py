from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from .errors import FormatError
from .fetch import DEFAULT_TIMEOUT, resolve_source
from .locus import Locus
from .peaks import read_intervals

logger = logging.getLogger(__name__)

BEDPE_COLUMNS = ["chrom1", "start1", "end1", "chrom2", "start2", "end2", "name", "score", "strand1", "strand2"]
DEFAULT_SEPARATOR = "_"


def gene_labels(names: pd.Series, separator: str = DEFAULT_SEPARATOR) -> pd.Series:
    """Prefix of each compound name before the first ``separator``.

    ``"PRKAR2B_chr7:106505000"`` -> ``"PRKAR2B"``. A name without the
    separator is its own label.
    """
    if not separator:
        raise ValueError("separator must be a non-empty string")
    return names.astype(str).str.split(separator, n=1, regex=False).str[0].str.strip()


def parse_bedpe(path: str | Path, *, separator: str = DEFAULT_SEPARATOR) -> pd.DataFrame:
    """Parse a BEDPE file into an interaction table with a derived ``gene`` column.

    Raises:
        FormatError: fewer than 7 columns, bad coordinates, or a name whose
            prefix is empty.
    """

    df = read_intervals(path, BEDPE_COLUMNS, min_columns=7)
    df["name"] = df["name"].fillna("").astype(str)
    genes = gene_labels(df["name"], separator)
    empty = genes == ""
    if empty.any():
        bad = df.index[empty][0]
        raise FormatError(f"Cannot derive a gene label from name {df.at[bad, 'name']!r} at row {bad} of {path}")
    df["gene"] = genes

    if "score" in df.columns:
        df["score"] = pd.to_numeric(df["score"], errors="coerce").fillna(1.0).astype(np.float64)
    else:
        df["score"] = 1.0
    return df


def read_bedpe(
    source: str | Path,
    *,
    separator: str = DEFAULT_SEPARATOR,
    cache_dir: str | Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> pd.DataFrame:
    path = resolve_source(source, cache_dir=cache_dir, timeout=timeout)
    df = parse_bedpe(path, separator=separator)
    logger.info("read %d interactions (%d genes) from %s", len(df), df["gene"].nunique(), path)
    return df


def filter_by_gene(df: pd.DataFrame, gene: str) -> pd.DataFrame:
    out = df.loc[df["gene"] == gene]
    logger.debug("%d/%d interactions linked to %s", len(out), len(df), gene)
    return out


def on_chromosome(df: pd.DataFrame, chrom: str) -> pd.DataFrame:
    """Interactions with both anchors on ``chrom``."""
    return df.loc[(df["chrom1"] == chrom) & (df["chrom2"] == chrom)]


def anchor_midpoints(df: pd.DataFrame) -> tuple[np.ndarray, np.ndarray]:
    left = (df["start1"].to_numpy(dtype=np.float64) + df["end1"].to_numpy(dtype=np.float64)) / 2.0
    right = (df["start2"].to_numpy(dtype=np.float64) + df["end2"].to_numpy(dtype=np.float64)) / 2.0
    return np.minimum(left, right), np.maximum(left, right)


def in_window(df: pd.DataFrame, locus: Locus, *, both_anchors: bool = True) -> pd.DataFrame:
    """Interactions on the locus chromosome touching the window.

    With ``both_anchors`` every anchor must overlap the locus; otherwise one
    overlapping anchor is enough (arcs leave the window).
    """

    df = on_chromosome(df, locus.chrom)
    a1 = (df["start1"] <= locus.end) & (df["end1"] >= locus.start)
    a2 = (df["start2"] <= locus.end) & (df["end2"] >= locus.start)
    return df.loc[(a1 & a2) if both_anchors else (a1 | a2)]
