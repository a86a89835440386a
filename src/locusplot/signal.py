from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd
from scipy.stats import binned_statistic

from .errors import FetchError, FormatError
from .fetch import DEFAULT_TIMEOUT, resolve_source
from .locus import Locus

logger = logging.getLogger(__name__)

BIGWIG_SUFFIXES = {".bw", ".bigwig"}
SIGNAL_COLUMNS = ["start", "end", "value"]
AGGREGATIONS = ("mean", "max", "min", "sum")


def _signal_kind(path: Path) -> str:
    return "bigwig" if path.suffix.lower() in BIGWIG_SUFFIXES else "bedgraph"


def _read_bedgraph(path: str | Path) -> pd.DataFrame:
    try:
        df = pd.read_csv(
            path,
            sep="\t",
            header=None,
            comment="#",
            usecols=[0, 1, 2, 3],
            names=["chrom", "start", "end", "value"],
            dtype={"chrom": str, "start": np.int64, "end": np.int64, "value": np.float64},
            compression="infer",
        )
    except pd.errors.EmptyDataError as e:
        raise FormatError(f"Signal file is empty: {path}") from e
    except (pd.errors.ParserError, ValueError) as e:
        raise FormatError(f"Cannot parse bedGraph {path}: {e}") from e
    if df.empty:
        raise FormatError(f"Signal file is empty: {path}")
    if (df["end"] <= df["start"]).any():
        bad = df.index[df["end"] <= df["start"]][0]
        raise FormatError(f"Invalid interval with end<=start at row {bad}")
    return df


def _fetch_bigwig(path: Path, locus: Locus) -> pd.DataFrame:
    try:
        import pyBigWig  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError(
            "Reading bigWig files requires the optional dependency 'pyBigWig'. "
            "Install with: pip install 'locusplot[bigwig]' (or pip install pyBigWig)."
        ) from e

    bw = pyBigWig.open(str(path))
    try:
        chroms = bw.chroms()
        if locus.chrom not in chroms:
            preview = ", ".join(list(chroms.keys())[:10])
            raise FormatError(
                f"Chrom {locus.chrom!r} not found in bigWig {path}. "
                f"First contigs: {preview}{'...' if len(chroms) > 10 else ''}"
            )
        end = min(locus.end, int(chroms[locus.chrom]))
        intervals = bw.intervals(locus.chrom, locus.start - 1, end) or ()
    finally:
        try:
            bw.close()
        except Exception:
            pass

    if not intervals:
        return pd.DataFrame(columns=SIGNAL_COLUMNS).astype({"start": np.int64, "end": np.int64, "value": np.float64})
    arr = np.asarray(intervals, dtype=np.float64)
    return pd.DataFrame(
        {
            "start": arr[:, 0].astype(np.int64) + 1,
            "end": arr[:, 1].astype(np.int64),
            "value": arr[:, 2],
        }
    )


@dataclass(frozen=True)
class SignalFile:
    """Reference to a coverage file, read lazily at render time.

    bedGraph and bigWig both store 0-based half-open intervals; ``fetch``
    returns 1-based closed ``start``/``end`` like every other table here.
    """

    path: Path
    kind: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        if not self.kind:
            object.__setattr__(self, "kind", _signal_kind(self.path))
        if self.kind not in {"bigwig", "bedgraph"}:
            raise ValueError(f"Unknown signal kind {self.kind!r}; expected 'bigwig' or 'bedgraph'")

    def exists(self) -> bool:
        return self.path.exists()

    def fetch(self, locus: Locus) -> pd.DataFrame:
        """Signal intervals overlapping ``locus`` as (start, end, value)."""
        if not self.exists():
            raise FetchError(f"No such signal file: {self.path}")
        if self.kind == "bigwig":
            return _fetch_bigwig(self.path, locus)

        df = _read_bedgraph(self.path)
        df = df[(df["chrom"] == locus.chrom) & (df["end"] >= locus.start) & (df["start"] < locus.end)]
        out = df[SIGNAL_COLUMNS].reset_index(drop=True)
        out["start"] = out["start"] + 1
        return out


def load_signal(
    source: str | Path,
    *,
    cache_dir: str | Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> SignalFile:
    """Download (if remote) a coverage file and return a lazy reference to it."""
    path = resolve_source(source, cache_dir=cache_dir, timeout=timeout)
    sig = SignalFile(path)
    logger.info("registered %s signal %s", sig.kind, path)
    return sig


def aggregate_windows(
    signal: pd.DataFrame,
    locus: Locus,
    n_windows: int,
    *,
    agg: str = "mean",
    fill: float = 0.0,
) -> pd.DataFrame:
    """Summarise a signal table into ``n_windows`` equal windows across ``locus``.

    ``mean`` is length-weighted by the covered bases of each interval; the
    other aggregations use interval midpoints. Empty windows get ``fill``.

    Returns:
        DataFrame with one row per window: start, end, value.
    """

    agg_l = str(agg).lower()
    if agg_l not in AGGREGATIONS:
        raise ValueError(f"Unknown agg={agg!r}; expected one of {', '.join(AGGREGATIONS)}")
    n = int(n_windows)
    if n <= 0:
        raise ValueError("n_windows must be positive")

    edges = np.linspace(locus.start, locus.end + 1, n + 1)
    starts = np.floor(edges[:-1]).astype(np.int64)
    ends = np.maximum(np.floor(edges[1:]).astype(np.int64) - 1, starts)

    if signal.empty:
        return pd.DataFrame({"start": starts, "end": ends, "value": np.full(n, float(fill))})

    s = signal["start"].to_numpy(dtype=np.float64)
    e = signal["end"].to_numpy(dtype=np.float64)
    v = signal["value"].to_numpy(dtype=np.float64)
    mid = np.clip((s + e) / 2.0, edges[0], np.nextafter(edges[-1], edges[0]))

    if agg_l == "mean":
        length = np.maximum(np.minimum(e, locus.end) - np.maximum(s, locus.start) + 1, 0)
        total, _, _ = binned_statistic(mid, v * length, statistic="sum", bins=edges)
        covered, _, _ = binned_statistic(mid, length, statistic="sum", bins=edges)
        y = np.full(n, float(fill), dtype=np.float64)
        m = covered > 0
        y[m] = total[m] / covered[m]
    else:
        y, _, _ = binned_statistic(mid, v, statistic=agg_l, bins=edges)
        y = np.where(np.isfinite(y), y, float(fill))
        if agg_l == "sum":
            counts, _, _ = binned_statistic(mid, v, statistic="count", bins=edges)
            y = np.where(counts > 0, y, float(fill))

    return pd.DataFrame({"start": starts, "end": ends, "value": y})
