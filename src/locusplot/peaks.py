from __future__ import annotations

import gzip
import logging
from pathlib import Path

import numpy as np
import pandas as pd

from .errors import FormatError
from .fetch import DEFAULT_TIMEOUT, resolve_source
from .locus import Locus

logger = logging.getLogger(__name__)

# BED6 followed by the narrowPeak extras.
PEAK_COLUMNS = [
    "chrom",
    "start",
    "end",
    "name",
    "score",
    "strand",
    "signal_value",
    "p_value",
    "q_value",
    "peak",
]


def _is_header(line: str) -> bool:
    return line.startswith(("#", "track", "browser"))


def _count_header_lines(path: Path) -> int:
    opener = gzip.open if path.suffix == ".gz" else open
    n = 0
    try:
        with opener(path, "rt") as fh:
            for line in fh:
                if not _is_header(line):
                    break
                n += 1
    except (OSError, UnicodeDecodeError) as e:
        raise FormatError(f"Cannot read {path}: {e}") from e
    return n


def read_intervals(path: str | Path, columns: list[str], *, min_columns: int) -> pd.DataFrame:
    """Read a headerless BED-like table, skipping leading track/browser/comment lines.

    Start columns (those named ``start*``) are shifted from 0-based half-open
    to 1-based closed.
    """

    path = Path(path)
    try:
        df = pd.read_csv(
            path,
            sep="\t",
            header=None,
            dtype=str,
            quoting=3,
            compression="infer",
            skiprows=_count_header_lines(path),
        )
    except pd.errors.EmptyDataError as e:
        raise FormatError(f"No records in {path}") from e
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        raise FormatError(f"Cannot parse {path}: {e}") from e

    if df.empty:
        raise FormatError(f"No records in {path}")
    if df.shape[1] < min_columns:
        raise FormatError(f"Expected at least {min_columns} columns in {path}; found {df.shape[1]}")

    n = min(df.shape[1], len(columns))
    df = df.iloc[:, :n]
    df.columns = columns[:n]

    coord_cols = [c for c in df.columns if c.startswith(("start", "end"))]
    try:
        for c in coord_cols:
            df[c] = df[c].astype(np.int64)
    except (TypeError, ValueError) as e:
        raise FormatError(f"Non-integer coordinates in {path}: {e}") from e

    for c in coord_cols:
        if c.startswith("start"):
            df[c] = df[c] + 1

    for s in [c for c in coord_cols if c.startswith("start")]:
        e = "end" + s[len("start"):]
        if e in df.columns and (df[e] < df[s]).any():
            bad = df.index[df[e] < df[s]][0]
            raise FormatError(f"Invalid interval with end<start at row {bad} of {path}")
    return df


def read_peaks(
    source: str | Path,
    *,
    cache_dir: str | Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> pd.DataFrame:
    """Load a BED3+ or narrowPeak file into a peak table."""
    path = resolve_source(source, cache_dir=cache_dir, timeout=timeout)
    df = read_intervals(path, PEAK_COLUMNS, min_columns=3)
    for c in ("score", "signal_value", "p_value", "q_value", "peak"):
        if c in df.columns:
            df[c] = pd.to_numeric(df[c], errors="coerce")
    logger.info("read %d peaks from %s", len(df), path)
    return df


def overlap_mask(df: pd.DataFrame, locus: Locus) -> pd.Series:
    return (df["chrom"] == locus.chrom) & (df["start"] <= locus.end) & (df["end"] >= locus.start)


def subset_by_overlap(df: pd.DataFrame, locus: Locus) -> pd.DataFrame:
    """Rows overlapping ``locus`` by at least one base; index is preserved."""
    out = df.loc[overlap_mask(df, locus)]
    logger.debug("%d/%d intervals overlap %s", len(out), len(df), locus)
    return out
