from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from .errors import FormatError
from .fetch import DEFAULT_TIMEOUT, resolve_source
from .peaks import read_intervals

logger = logging.getLogger(__name__)

UCSC_CYTOBAND_URL = "https://hgdownload.soe.ucsc.edu/goldenPath/{genome}/database/cytoBandIdeo.txt.gz"

CYTOBAND_COLUMNS = ["chrom", "start", "end", "name", "stain"]

BAND_COLORS = {
    "gneg": "#FFFFFF",
    "gpos25": "#D9D9D9",
    "gpos33": "#C0C0C0",
    "gpos50": "#A6A6A6",
    "gpos66": "#8C8C8C",
    "gpos75": "#737373",
    "gpos100": "#595959",
    "gvar": "#BFBFBF",
    "stalk": "#A0A0FF",
    "acen": "#CC3333",
}


def band_color(stain: str) -> str:
    return BAND_COLORS.get(str(stain or "").lower(), "#CCCCCC")


def cytoband_url(genome: str) -> str:
    return UCSC_CYTOBAND_URL.format(genome=genome)


def read_cytobands(
    source: str | Path,
    *,
    cache_dir: str | Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> pd.DataFrame:
    """Load a UCSC cytoBand / cytoBandIdeo table (chrom, start, end, name, stain)."""
    path = resolve_source(source, cache_dir=cache_dir, timeout=timeout)
    df = read_intervals(path, CYTOBAND_COLUMNS, min_columns=3)
    for c in ("name", "stain"):
        if c not in df.columns:
            df[c] = ""
        df[c] = df[c].fillna("").astype(str)
    logger.info("read %d cytobands from %s", len(df), path)
    return df


def chromosome_bands(cytobands: pd.DataFrame, chrom: str) -> pd.DataFrame:
    bands = cytobands.loc[cytobands["chrom"] == chrom].sort_values("start", kind="mergesort")
    if bands.empty:
        raise FormatError(f"No cytobands for {chrom!r}")
    return bands.reset_index(drop=True)
