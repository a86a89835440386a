from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import matplotlib
import matplotlib.axes
import matplotlib.figure
import matplotlib.pyplot as plt

from .errors import RenderConfigError
from .locus import Locus
from .reporting import ensure_dir
from .tracks import Track

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("pdf", "svg", "png")

# Keeps vector output free of timestamps and random ids so that identical
# inputs give identical bytes.
_SAVE_METADATA: dict[str, dict[str, Any]] = {
    "pdf": {"CreationDate": None},
    "svg": {"Date": None},
    "png": {"Software": None},
}
_SAVE_RC = {"svg.hashsalt": "locusplot", "svg.fonttype": "path"}


@dataclass(frozen=True)
class Highlight:
    """A shaded coordinate range drawn behind every locus-aligned panel."""

    start: int
    end: int
    color: str = "#FFE3E6"
    alpha: float = 0.6


def validate_render(
    tracks: Sequence[Track],
    locus: Locus,
    sizes: Sequence[float] | None = None,
) -> list[float]:
    """Check a render configuration without drawing anything.

    Returns:
        The per-track relative heights (track defaults when ``sizes`` is None).

    Raises:
        RenderConfigError: empty track list, sizes/tracks length mismatch,
            non-positive sizes, mixed genome builds, or a track that cannot
            resolve its data at ``locus``.
    """

    tracks = list(tracks)
    if not tracks:
        raise RenderConfigError("Nothing to render: the track list is empty")

    if sizes is None:
        sizes = [float(t.default_size) for t in tracks]
    else:
        sizes = [float(s) for s in sizes]
    if len(sizes) != len(tracks):
        raise RenderConfigError(f"Got {len(tracks)} tracks but {len(sizes)} sizes")
    if any(not math.isfinite(s) or s <= 0 for s in sizes):
        raise RenderConfigError(f"Track sizes must be positive numbers; got {sizes}")

    genomes = sorted({t.genome for t in tracks if t.genome})
    if len(genomes) > 1:
        raise RenderConfigError(f"Tracks use different genome builds: {', '.join(genomes)}")

    for t in tracks:
        t.validate(locus)
    return sizes


def _draw_title(ax: matplotlib.axes.Axes, track: Track, params: Mapping[str, Any]) -> None:
    ax.set_xticks([])
    ax.set_yticks([])
    for side in ("top", "right", "bottom", "left"):
        ax.spines[side].set_visible(False)
    if not (params["show_title"] and track.name):
        ax.set_facecolor("none")
        return
    ax.set_facecolor(params["background_title"])
    ax.text(
        0.5,
        0.5,
        track.name,
        rotation=90,
        ha="center",
        va="center",
        color=params["col_title"],
        fontsize=params["fontsize_title"],
        fontweight="bold",
        transform=ax.transAxes,
        clip_on=True,
    )


def plot_tracks(
    tracks: Sequence[Track],
    locus: Locus,
    *,
    sizes: Sequence[float] | None = None,
    style: Mapping[str, Any] | None = None,
    highlights: Sequence[Highlight] | None = None,
    title: str | None = None,
    width: float = 10.0,
    height: float | None = None,
    hspace: float = 0.08,
) -> matplotlib.figure.Figure:
    """Stack ``tracks`` top to bottom over ``locus`` and return the figure.

    Panel heights are proportional to ``sizes``. Each panel has a title cell
    on the left whose width is the ``title_width`` style key (a fraction of
    the figure). Global ``style`` keys (see ``tracks.COMMON_DEFAULTS``)
    override track defaults but not parameters set explicitly on a track.

    The configuration is validated before any figure is created. If a track
    fails while drawing, the figure is closed before the error propagates.
    """

    tracks = list(tracks)
    sizes = validate_render(tracks, locus, sizes)
    style = dict(style or {})
    title_width = float(style.get("title_width", 0.08))
    if not 0.0 < title_width < 1.0:
        raise RenderConfigError(f"title_width must be in (0, 1); got {title_width}")

    if height is None:
        height = 0.6 * sum(sizes) + (0.4 if title else 0.0)

    fig = plt.figure(figsize=(width, height), facecolor=style.get("background", "white"))
    gs = fig.add_gridspec(
        nrows=len(tracks),
        ncols=2,
        width_ratios=[title_width, 1.0 - title_width],
        height_ratios=sizes,
        hspace=hspace,
        wspace=0.02,
    )

    try:
        for i, track in enumerate(tracks):
            params = track.display_params(style)
            title_ax = fig.add_subplot(gs[i, 0], label=f"title:{i}")
            ax = fig.add_subplot(gs[i, 1], label=f"track:{i}:{track.kind}")
            ax.set_facecolor(params["background"])
            _draw_title(title_ax, track, params)

            if track.locus_axis:
                ax.set_xlim(locus.start - 0.5, locus.end + 0.5)
            track.plot_ax(ax, locus, params)
            ax.tick_params(colors=params["col_axis"])
            ax.spines["left"].set_color(params["col_axis"])

            if track.locus_axis:
                ax.set_xlim(locus.start - 0.5, locus.end + 0.5)
                for h in highlights or ():
                    ax.axvspan(h.start - 0.5, h.end + 0.5, color=h.color, alpha=h.alpha, zorder=0, linewidth=0)

        if title:
            fig.suptitle(title, fontsize=style.get("fontsize_main", 12))
    except BaseException:
        plt.close(fig)
        raise

    logger.debug("rendered %d tracks at %s", len(tracks), locus)
    return fig


def _output_format(path: Path) -> str:
    fmt = path.suffix.lower().lstrip(".")
    if fmt not in OUTPUT_FORMATS:
        raise RenderConfigError(f"Unsupported output format {path.suffix!r}; expected one of {OUTPUT_FORMATS}")
    return fmt


def save_figure(fig: matplotlib.figure.Figure, path: str | Path, *, dpi: int = 200) -> Path:
    """Write ``fig`` as PDF, SVG or PNG (chosen by suffix) with reproducible bytes."""
    path = Path(path)
    fmt = _output_format(path)
    ensure_dir(path.parent)
    with matplotlib.rc_context(_SAVE_RC):
        fig.savefig(path, format=fmt, dpi=dpi, metadata=_SAVE_METADATA[fmt], facecolor=fig.get_facecolor())
    logger.info("wrote %s", path)
    return path


def render_to_file(
    tracks: Sequence[Track],
    locus: Locus,
    path: str | Path,
    *,
    dpi: int = 200,
    **kwargs: Any,
) -> Path:
    """``plot_tracks`` then ``save_figure``; the figure is closed afterwards."""
    _output_format(Path(path))
    fig = plot_tracks(tracks, locus, **kwargs)
    try:
        return save_figure(fig, path, dpi=dpi)
    finally:
        plt.close(fig)


def show_tracks(tracks: Sequence[Track], locus: Locus, **kwargs: Any) -> matplotlib.figure.Figure:
    fig = plot_tracks(tracks, locus, **kwargs)
    plt.show()
    return fig
