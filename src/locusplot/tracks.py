"""Track types for stacked locus plots.

Each track wraps one dataset plus a bag of display parameters. The renderer
merges the bag with the class defaults and any global style, then hands the
result to ``plot_ax`` together with the matplotlib axis for the panel.
"""

from __future__ import annotations

import abc
import logging
from collections.abc import Mapping
from typing import Any, ClassVar

import matplotlib.axes
import numpy as np
import pandas as pd
from matplotlib import patches
from matplotlib import path as mpath
from matplotlib.ticker import MaxNLocator

from .cytobands import band_color, chromosome_bands
from .errors import FormatError, RenderConfigError
from .interactions import anchor_midpoints, in_window
from .locus import Locus
from .peaks import subset_by_overlap
from .signal import SignalFile, aggregate_windows

logger = logging.getLogger(__name__)

# Keys understood by every track; global style may override them.
COMMON_DEFAULTS: dict[str, Any] = {
    "background": "white",
    "background_title": "lightgray",
    "col_title": "white",
    "fontsize_title": 9,
    "col_axis": "black",
    "show_title": True,
}

COLLAPSE_MODES = ("none", "gene", "meta", "longest", "shortest")
LABEL_MODES = ("symbol", "gene", "transcript", "none")
DATA_TYPES = ("polygon", "histogram", "line", "points")


def _clear_axis(ax: matplotlib.axes.Axes) -> None:
    ax.set_yticks([])
    ax.set_xticks([])
    for side in ("top", "right", "bottom", "left"):
        ax.spines[side].set_visible(False)


def _merge_intervals(intervals: list[tuple[int, int]]) -> list[tuple[int, int]]:
    merged: list[tuple[int, int]] = []
    for s, e in sorted(intervals):
        if merged and s <= merged[-1][1] + 1:
            merged[-1] = (merged[-1][0], max(merged[-1][1], e))
        else:
            merged.append((s, e))
    return merged


def pack_rows(spans: list[tuple[float, float]], *, gap: float = 0.0) -> list[int]:
    """Greedy row assignment so that no two spans in a row come within ``gap``.

    Spans are processed by start position; each goes in the first row whose
    last end (plus ``gap``) lies before it.
    """

    order = sorted(range(len(spans)), key=lambda i: (spans[i][0], spans[i][1]))
    row_ends: list[float] = []
    rows = [0] * len(spans)
    for i in order:
        s, e = spans[i]
        for r, last in enumerate(row_ends):
            if s > last + gap:
                rows[i] = r
                row_ends[r] = e
                break
        else:
            rows[i] = len(row_ends)
            row_ends.append(e)
    return rows


def format_position(pos: float, span: float) -> str:
    if span >= 2_000_000:
        return f"{pos / 1e6:,.1f} Mb"
    if span >= 20_000:
        return f"{pos / 1e3:,.0f} kb"
    return f"{pos:,.0f}"


class Track(abc.ABC):
    """A single horizontal layer of a locus plot.

    Subclasses set ``kind``, ``defaults`` and ``default_size`` and implement
    ``plot_ax``. Display parameters passed as keyword arguments (or later via
    ``set_params``) win over global style, which wins over the defaults.
    Global style only reaches the keys in ``COMMON_DEFAULTS``; track-specific
    options such as ``collapse`` must be set on the track, where ``validate``
    sees them. Unknown keys are carried along and ignored.
    """

    kind: ClassVar[str] = "track"
    defaults: ClassVar[dict[str, Any]] = {}
    default_size: ClassVar[float] = 1.0
    # False for tracks whose x-axis is not the locus window (e.g. ideograms).
    locus_axis: ClassVar[bool] = True

    def __init__(self, *, name: str = "", genome: str | None = None, **params: Any):
        self.name = name
        self.genome = genome
        self.params: dict[str, Any] = dict(params)

    def set_params(self, **params: Any) -> "Track":
        self.params.update(params)
        return self

    def display_params(self, style: Mapping[str, Any] | None = None) -> dict[str, Any]:
        merged = {**COMMON_DEFAULTS, **self.defaults}
        if style:
            merged.update({k: v for k, v in style.items() if k in COMMON_DEFAULTS})
        merged.update(self.params)
        return merged

    def validate(self, locus: Locus) -> None:
        """Raise RenderConfigError if the track cannot be drawn at ``locus``."""

    @abc.abstractmethod
    def plot_ax(self, ax: matplotlib.axes.Axes, locus: Locus, params: Mapping[str, Any]) -> None:
        """Draw the track onto ``ax`` for the window ``locus``."""

    def describe(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": self.name, "genome": self.genome, "params": dict(self.params)}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, genome={self.genome!r})"


class IdeogramTrack(Track):
    """Whole-chromosome cytoband diagram with the current window boxed in red."""

    kind = "ideogram"
    default_size = 1.0
    locus_axis = False
    defaults = {
        "col_locus": "red",
        "lwd_locus": 1.5,
        "band_height": 0.5,
        "show_id": True,
        "fontsize": 8,
        "show_title": False,
    }

    def __init__(self, cytobands: pd.DataFrame, chrom: str | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.cytobands = cytobands
        self.chrom = chrom

    def _bands(self, locus: Locus) -> pd.DataFrame:
        chrom = self.chrom or locus.chrom
        if chrom != locus.chrom:
            raise RenderConfigError(f"Ideogram is for {chrom} but the locus is on {locus.chrom}")
        try:
            return chromosome_bands(self.cytobands, chrom)
        except FormatError as e:
            raise RenderConfigError(str(e)) from e

    def validate(self, locus: Locus) -> None:
        self._bands(locus)

    def plot_ax(self, ax: matplotlib.axes.Axes, locus: Locus, params: Mapping[str, Any]) -> None:
        bands = self._bands(locus)
        chrom_len = float(bands["end"].max())
        h = float(params["band_height"])
        y0, y1 = 0.5 - h / 2.0, 0.5 + h / 2.0

        for row in bands.itertuples(index=False):
            x0, x1 = float(row.start - 1), float(row.end)
            if str(row.stain).lower() == "acen":
                # Centromere halves point towards each other.
                is_p_arm = str(row.name).lower().startswith("p")
                tip = (x1, 0.5) if is_p_arm else (x0, 0.5)
                base = [(x0, y0), (x0, y1)] if is_p_arm else [(x1, y0), (x1, y1)]
                verts = [base[0], base[1], tip, base[0]]
                codes = [mpath.Path.MOVETO, mpath.Path.LINETO, mpath.Path.LINETO, mpath.Path.CLOSEPOLY]
                ax.add_patch(
                    patches.PathPatch(
                        mpath.Path(verts, codes), facecolor=band_color("acen"), edgecolor="none", lw=0, zorder=0.5
                    )
                )
            else:
                ax.add_patch(
                    patches.Rectangle(
                        (x0, y0), x1 - x0, h, facecolor=band_color(row.stain), edgecolor="none", zorder=0.5
                    )
                )

        ax.add_patch(patches.Rectangle((0, y0), chrom_len, h, fill=False, edgecolor="black", linewidth=0.4, zorder=0.6))
        ax.add_patch(
            patches.Rectangle(
                (locus.start - 1, y0 - 0.1),
                max(locus.width, chrom_len * 0.002),
                h + 0.2,
                fill=False,
                edgecolor=params["col_locus"],
                linewidth=float(params["lwd_locus"]),
                zorder=0.7,
            )
        )
        ax.set_xlim(-0.01 * chrom_len, chrom_len * 1.01)
        ax.set_ylim(0, 1)
        if params["show_id"]:
            ax.text(
                -0.015 * chrom_len,
                0.5,
                locus.chrom,
                ha="right",
                va="center",
                fontsize=params["fontsize"],
                clip_on=False,
            )
        _clear_axis(ax)


class GenomeAxisTrack(Track):
    """Coordinate ruler for the window."""

    kind = "axis"
    default_size = 1.0
    defaults = {
        "col": "darkgray",
        "fontsize": 8,
        "n_ticks": 6,
        "add_scale": False,
        "show_title": False,
    }

    def plot_ax(self, ax: matplotlib.axes.Axes, locus: Locus, params: Mapping[str, Any]) -> None:
        col = params["col"]
        fs = params["fontsize"]
        ax.set_ylim(0, 1)
        _clear_axis(ax)

        if params["add_scale"]:
            # Scale bar of roughly a tenth of the window, rounded to one significant digit.
            raw = locus.width / 10.0
            mag = 10 ** int(np.floor(np.log10(raw)))
            length = int(round(raw / mag) * mag)
            x0 = locus.center - length / 2.0
            ax.plot([x0, x0 + length], [0.5, 0.5], color=col, linewidth=1.5)
            ax.text(locus.center, 0.65, format_position(length, length * 10), ha="center", va="bottom", fontsize=fs)
            return

        ax.axhline(0.5, color=col, linewidth=1.2)
        ticks = MaxNLocator(nbins=int(params["n_ticks"])).tick_values(locus.start, locus.end)
        ticks = [t for t in ticks if locus.start <= t <= locus.end]
        for t in ticks:
            ax.plot([t, t], [0.5, 0.65], color=col, linewidth=1.0)
            ax.text(t, 0.7, format_position(t, locus.width), ha="center", va="bottom", fontsize=fs, color="black")


class GeneRegionTrack(Track):
    """Gene models: exons as boxes joined by intron lines, stacked into rows."""

    kind = "gene_region"
    default_size = 2.0
    defaults = {
        "fill": "#FFD58A",
        "col": "#808080",
        "collapse": "none",
        "label": "symbol",
        "fontsize_group": 7,
        "exon_height": 0.6,
        "show_strand": True,
        "row_gap": 0.02,
    }

    def __init__(self, models: pd.DataFrame, **kwargs: Any):
        super().__init__(**kwargs)
        self.models = models

    def validate(self, locus: Locus) -> None:
        params = self.display_params()
        if params["collapse"] not in COLLAPSE_MODES:
            raise RenderConfigError(f"Unknown collapse={params['collapse']!r}; expected one of {COLLAPSE_MODES}")
        if params["label"] not in LABEL_MODES:
            raise RenderConfigError(f"Unknown label={params['label']!r}; expected one of {LABEL_MODES}")

    def shapes(self, locus: Locus, collapse: str = "none") -> list[dict[str, Any]]:
        """Gene-model shapes overlapping ``locus`` after transcript collapsing.

        Each shape is a dict with ``gene``, ``transcript``, ``symbol``,
        ``strand``, ``start``, ``end`` and a sorted list of ``exons``.
        """

        models = self.models
        if models.empty:
            return []
        models = models.loc[models["chrom"] == locus.chrom]

        shapes = []
        for (gene, tx), grp in models.groupby(["gene", "transcript"], sort=False):
            exons = sorted(zip(grp["start"].astype(int), grp["end"].astype(int)))
            shapes.append(
                {
                    "gene": gene,
                    "transcript": tx,
                    "symbol": grp["symbol"].iloc[0],
                    "strand": grp["strand"].iloc[0],
                    "start": exons[0][0],
                    "end": max(e for _, e in exons),
                    "exons": exons,
                }
            )

        if collapse != "none":
            by_gene: dict[str, list[dict[str, Any]]] = {}
            for sh in shapes:
                by_gene.setdefault(sh["gene"], []).append(sh)
            collapsed = []
            for gene, group in by_gene.items():
                if collapse in ("longest", "shortest"):
                    pick = max if collapse == "longest" else min
                    collapsed.append(pick(group, key=lambda sh: (sh["end"] - sh["start"], sh["transcript"])))
                    continue
                start = min(sh["start"] for sh in group)
                end = max(sh["end"] for sh in group)
                if collapse == "gene":
                    exons = [(start, end)]
                else:
                    exons = _merge_intervals([ex for sh in group for ex in sh["exons"]])
                collapsed.append(
                    {
                        "gene": gene,
                        "transcript": gene,
                        "symbol": group[0]["symbol"],
                        "strand": group[0]["strand"],
                        "start": start,
                        "end": end,
                        "exons": exons,
                    }
                )
            shapes = collapsed

        return [sh for sh in shapes if locus.overlaps(locus.chrom, sh["start"], sh["end"])]

    def plot_ax(self, ax: matplotlib.axes.Axes, locus: Locus, params: Mapping[str, Any]) -> None:
        shapes = self.shapes(locus, params["collapse"])
        _clear_axis(ax)
        if not shapes:
            ax.set_ylim(0, 1)
            return

        gap = float(params["row_gap"]) * locus.width
        rows = pack_rows([(sh["start"], sh["end"]) for sh in shapes], gap=gap)
        n_rows = max(rows) + 1
        h = float(params["exon_height"])
        label_mode = params["label"]

        for sh, r in zip(shapes, rows):
            y = -1.5 * r
            ax.plot([sh["start"], sh["end"]], [y, y], color=params["col"], linewidth=0.8, zorder=1)
            for s, e in sh["exons"]:
                ax.add_patch(
                    patches.Rectangle(
                        (s - 0.5, y - h / 2.0),
                        e - s + 1,
                        h,
                        facecolor=params["fill"],
                        edgecolor=params["col"],
                        linewidth=0.5,
                        zorder=2,
                    )
                )
            if params["show_strand"] and sh["strand"] in ("+", "-"):
                n = max(int((sh["end"] - sh["start"]) / (locus.width / 40.0)), 1)
                xs = np.linspace(sh["start"], sh["end"], n + 2)[1:-1]
                ax.plot(
                    xs,
                    np.full(len(xs), y),
                    linestyle="none",
                    marker=">" if sh["strand"] == "+" else "<",
                    markersize=2.5,
                    color=params["col"],
                    zorder=1.5,
                )
            if label_mode != "none":
                text = sh["symbol"] if label_mode == "symbol" else sh[label_mode]
                x = min(max((sh["start"] + sh["end"]) / 2.0, locus.start), locus.end)
                ax.text(
                    x,
                    y - h / 2.0 - 0.05,
                    str(text),
                    ha="center",
                    va="top",
                    fontsize=params["fontsize_group"],
                    clip_on=True,
                )

        ax.set_ylim(-1.5 * (n_rows - 1) - 1.2, 0.8)


class AnnotationTrack(Track):
    """Generic interval boxes (peaks, enhancers, regions of interest)."""

    kind = "annotation"
    default_size = 1.0
    defaults = {
        "fill": "lightblue",
        "col": "none",
        "stacking": "squish",
        "box_height": 0.6,
        "show_feature_id": False,
        "fontsize": 6,
    }

    def __init__(self, intervals: pd.DataFrame, **kwargs: Any):
        super().__init__(**kwargs)
        self.intervals = intervals

    def validate(self, locus: Locus) -> None:
        stacking = self.display_params()["stacking"]
        if stacking not in ("dense", "squish"):
            raise RenderConfigError(f"Unknown stacking={stacking!r}; expected 'dense' or 'squish'")

    def plot_ax(self, ax: matplotlib.axes.Axes, locus: Locus, params: Mapping[str, Any]) -> None:
        df = subset_by_overlap(self.intervals, locus)
        _clear_axis(ax)
        if df.empty:
            ax.set_ylim(0, 1)
            return

        spans = list(zip(df["start"].astype(float), df["end"].astype(float)))
        rows = [0] * len(spans) if params["stacking"] == "dense" else pack_rows(spans)
        h = float(params["box_height"])
        for (s, e), r, name in zip(spans, rows, df.get("name", pd.Series([""] * len(df)))):
            y = -1.0 * r
            ax.add_patch(
                patches.Rectangle(
                    (s - 0.5, y - h / 2.0), e - s + 1, h, facecolor=params["fill"], edgecolor=params["col"], linewidth=0.5
                )
            )
            if params["show_feature_id"] and isinstance(name, str) and name:
                ax.text((s + e) / 2.0, y, name, ha="center", va="center", fontsize=params["fontsize"], clip_on=True)
        ax.set_ylim(-1.0 * max(rows) - 0.6, 0.6)


class DataTrack(Track):
    """Quantitative signal (coverage) drawn as polygon, histogram, line or points."""

    kind = "data"
    default_size = 1.5
    defaults = {
        "type": "polygon",
        "fill": "#0080FF",
        "col": "#0080FF",
        "alpha": 1.0,
        "ylim": None,
        "window": None,
        "aggregation": "mean",
        "baseline": 0.0,
        "col_baseline": None,
        "fontsize": 7,
    }

    def __init__(self, signal: SignalFile | pd.DataFrame, **kwargs: Any):
        super().__init__(**kwargs)
        self.signal = signal

    def validate(self, locus: Locus) -> None:
        params = self.display_params()
        if params["type"] not in DATA_TYPES:
            raise RenderConfigError(f"Unknown type={params['type']!r}; expected one of {DATA_TYPES}")
        if isinstance(self.signal, SignalFile) and not self.signal.exists():
            raise RenderConfigError(f"Coverage file for track {self.name!r} not found: {self.signal.path}")

    def values(self, locus: Locus, params: Mapping[str, Any] | None = None) -> pd.DataFrame:
        params = params if params is not None else self.display_params()
        if isinstance(self.signal, SignalFile):
            df = self.signal.fetch(locus)
        else:
            df = self.signal
            if "chrom" in df.columns:
                df = df.loc[df["chrom"] == locus.chrom]
            df = df.loc[(df["start"] <= locus.end) & (df["end"] >= locus.start), ["start", "end", "value"]]
        if params["window"]:
            df = aggregate_windows(df, locus, int(params["window"]), agg=params["aggregation"])
        return df.sort_values("start", kind="mergesort").reset_index(drop=True)

    def plot_ax(self, ax: matplotlib.axes.Axes, locus: Locus, params: Mapping[str, Any]) -> None:
        df = self.values(locus, params)
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)
        ax.spines["bottom"].set_visible(False)
        ax.set_xticks([])
        ax.tick_params(axis="y", labelsize=params["fontsize"], length=2)

        base = float(params["baseline"])
        if df.empty:
            ax.set_ylim(params["ylim"] or (0, 1))
            return

        s = df["start"].to_numpy(dtype=np.float64)
        e = df["end"].to_numpy(dtype=np.float64)
        v = df["value"].to_numpy(dtype=np.float64)
        kind = params["type"]

        if kind == "polygon":
            x = np.column_stack([s - 0.5, e + 0.5]).ravel()
            y = np.repeat(v, 2)
            ax.fill_between(x, y, base, facecolor=params["fill"], edgecolor=params["col"], linewidth=0.4, alpha=params["alpha"])
        elif kind == "histogram":
            ax.bar(s - 0.5, v - base, width=e - s + 1, bottom=base, align="edge", color=params["fill"], edgecolor=params["col"], linewidth=0.2, alpha=params["alpha"])
        elif kind == "line":
            ax.plot((s + e) / 2.0, v, color=params["col"], linewidth=0.8, alpha=params["alpha"])
        else:
            ax.scatter((s + e) / 2.0, v, s=4, color=params["col"], alpha=params["alpha"])

        if params["col_baseline"]:
            ax.axhline(base, color=params["col_baseline"], linewidth=0.5)

        if params["ylim"] is not None:
            ax.set_ylim(params["ylim"])
        else:
            lo = min(float(np.nanmin(v)), base)
            hi = max(float(np.nanmax(v)), base)
            if hi == lo:
                hi = lo + 1.0
            ax.set_ylim(lo, hi + 0.05 * (hi - lo))
        ax.yaxis.set_major_locator(MaxNLocator(nbins=3))


class InteractionTrack(Track):
    """Arcs between the anchor midpoints of pairwise interactions.

    Arc height scales with |score|. Positive scores bend upwards, negative
    scores downwards; ``invert_scores`` flips the sign at display time only.
    """

    kind = "interaction"
    default_size = 1.5
    defaults = {
        "col_interactions": "red",
        "col_interactions_negative": None,
        "linewidth": 1.0,
        "plot_anchors": True,
        "col_anchors_fill": "lightblue",
        "col_anchors_line": "black",
        "anchor_height": 0.1,
        "plot_outside": False,
        "invert_scores": False,
        "max_score": None,
        "n_points": 100,
    }

    def __init__(self, interactions: pd.DataFrame, **kwargs: Any):
        super().__init__(**kwargs)
        self.interactions = interactions

    def visible(self, locus: Locus, params: Mapping[str, Any] | None = None) -> pd.DataFrame:
        params = params if params is not None else self.display_params()
        df = in_window(self.interactions, locus, both_anchors=not params["plot_outside"])
        if params["invert_scores"]:
            df = df.assign(score=-df["score"])
        return df

    def plot_ax(self, ax: matplotlib.axes.Axes, locus: Locus, params: Mapping[str, Any]) -> None:
        df = self.visible(locus, params)
        _clear_axis(ax)
        ah = float(params["anchor_height"])
        if df.empty:
            ax.set_ylim(-ah, 1)
            return

        scores = df["score"].to_numpy(dtype=np.float64)
        max_score = params["max_score"] or float(np.max(np.abs(scores))) or 1.0
        heights = np.clip(np.abs(scores) / float(max_score), 0.05, 1.0)
        left, right = anchor_midpoints(df)
        theta = np.linspace(0.0, np.pi, int(params["n_points"]))
        neg_col = params["col_interactions_negative"] or params["col_interactions"]

        for l, r, h, sc in zip(left, right, heights, scores):
            half = (r - l) / 2.0
            sign = -1.0 if sc < 0 else 1.0
            x = (l + r) / 2.0 - half * np.cos(theta)
            y = sign * (ah / 2.0 + h * np.sin(theta) * (1.0 - ah / 2.0))
            ax.plot(x, y, color=neg_col if sign < 0 else params["col_interactions"], linewidth=params["linewidth"])

        if params["plot_anchors"]:
            anchors = pd.concat(
                [
                    df[["start1", "end1"]].set_axis(["start", "end"], axis=1),
                    df[["start2", "end2"]].set_axis(["start", "end"], axis=1),
                ]
            ).drop_duplicates()
            for s, e in anchors.itertuples(index=False):
                ax.add_patch(
                    patches.Rectangle(
                        (s - 0.5, -ah / 2.0),
                        e - s + 1,
                        ah,
                        facecolor=params["col_anchors_fill"],
                        edgecolor=params["col_anchors_line"],
                        linewidth=0.4,
                        zorder=3,
                    )
                )

        lower = -1.05 if (scores < 0).any() else -ah
        upper = 1.05 if (scores > 0).any() else ah
        ax.set_ylim(lower, upper)
