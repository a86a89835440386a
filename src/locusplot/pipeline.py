from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from .annotation import load_gene_annotation
from .config import WalkthroughConfig
from .cytobands import cytoband_url, read_cytobands
from .interactions import filter_by_gene, read_bedpe
from .locus import Locus
from .peaks import read_peaks
from .render import Highlight, render_to_file
from .reporting import ensure_dir, write_json
from .signal import load_signal
from .tracks import (
    AnnotationTrack,
    DataTrack,
    GeneRegionTrack,
    GenomeAxisTrack,
    IdeogramTrack,
    InteractionTrack,
    Track,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slide:
    name: str
    path: Path
    locus: Locus
    tracks: tuple[str, ...]
    sizes: tuple[float, ...]


@dataclass(frozen=True)
class WalkthroughOutputs:
    out_dir: Path
    slides: tuple[Slide, ...]
    manifest_path: Path


@dataclass
class LoadedData:
    models: pd.DataFrame
    cytobands: pd.DataFrame
    signals: list[DataTrack]
    peaks: list[AnnotationTrack]
    interactions: list[InteractionTrack]


def load_walkthrough_data(config: WalkthroughConfig) -> LoadedData:
    """Fetch and parse every input named by ``config`` and wrap the per-file ones in tracks."""
    opts = {"cache_dir": config.cache_dir, "timeout": config.timeout}

    models = load_gene_annotation(config.annotation, types=config.gene_types, **opts)
    cytobands = read_cytobands(config.cytobands or cytoband_url(config.genome), **opts)

    signals = []
    for src in config.signals:
        color = src.color or DataTrack.defaults["fill"]
        signals.append(
            DataTrack(load_signal(src.source, **opts), name=src.name, genome=config.genome, fill=color, col=color)
        )

    peaks = []
    for src in config.peaks:
        # each render subsets to its own window, including the zoom slide
        df = read_peaks(src.source, **opts)
        peaks.append(
            AnnotationTrack(df, name=src.name, genome=config.genome, fill=src.color or AnnotationTrack.defaults["fill"])
        )

    interactions = []
    for src in config.interactions:
        df = read_bedpe(src.source, separator=config.separator, **opts)
        interactions.append(
            InteractionTrack(
                df,
                name=src.name,
                genome=config.genome,
                invert_scores=src.invert_scores,
                col_interactions=src.color or InteractionTrack.defaults["col_interactions"],
            )
        )

    return LoadedData(models, cytobands, signals, peaks, interactions)


def gene_locus(models: pd.DataFrame, symbol: str) -> Locus | None:
    rows = models.loc[models["symbol"] == symbol]
    if rows.empty:
        return None
    return Locus(str(rows["chrom"].iloc[0]), int(rows["start"].min()), int(rows["end"].max()))


def zoom_locus(gene: Locus, interactions: list[pd.DataFrame], *, pad: float = 0.05) -> Locus:
    """Smallest window holding the gene and every same-chromosome anchor linked to it, plus padding."""
    start, end = gene.start, gene.end
    for df in interactions:
        df = df.loc[(df["chrom1"] == gene.chrom) & (df["chrom2"] == gene.chrom)]
        if df.empty:
            continue
        start = min(start, int(df["start1"].min()), int(df["start2"].min()))
        end = max(end, int(df["end1"].max()), int(df["end2"].max()))
    margin = int((end - start + 1) * pad)
    return Locus(gene.chrom, max(1, start - margin), end + margin)


def _slide(
    name: str,
    tracks: list[Track],
    sizes: list[float],
    locus: Locus,
    out_dir: Path,
    config: WalkthroughConfig,
    **kwargs,
) -> Slide:
    path = out_dir / f"{name}.{config.out_format}"
    render_to_file(tracks, locus, path, sizes=sizes, style=config.style, width=config.width, **kwargs)
    return Slide(
        name=name,
        path=path,
        locus=locus,
        tracks=tuple(t.name or t.kind for t in tracks),
        sizes=tuple(float(s) for s in sizes),
    )


def run_walkthrough(config: WalkthroughConfig, out_dir: str | Path) -> WalkthroughOutputs:
    """Render the tutorial's slide sequence.

    1. ideogram, axis and gene models with weights [1, 1, 2]
    2. the same with transcripts collapsed per gene (display parameter edit)
    3. plus coverage signals and peaks
    4. plus interactions
    5. zoomed onto ``zoom_gene`` with only its interactions
    """

    out_dir = ensure_dir(out_dir)
    data = load_walkthrough_data(config)
    locus = config.locus
    genome = config.genome

    ideogram = IdeogramTrack(data.cytobands, chrom=locus.chrom, genome=genome)
    axis = GenomeAxisTrack(genome=genome)
    genes = GeneRegionTrack(data.models, name="Genes", genome=genome, label="symbol")

    slides = []
    base = [ideogram, axis, genes]
    base_sizes = [1.0, 1.0, 2.0]
    slides.append(_slide("01_genes", base, base_sizes, locus, out_dir, config))

    genes.set_params(collapse="meta")
    slides.append(_slide("02_genes_collapsed", base, base_sizes, locus, out_dir, config))

    with_signal = base + data.signals + data.peaks
    signal_sizes = base_sizes + [1.5] * len(data.signals) + [0.75] * len(data.peaks)
    if data.signals or data.peaks:
        slides.append(_slide("03_signals", with_signal, signal_sizes, locus, out_dir, config))

    full = with_signal + data.interactions
    full_sizes = signal_sizes + [1.5] * len(data.interactions)
    if data.interactions:
        slides.append(_slide("04_interactions", full, full_sizes, locus, out_dir, config))

    if config.zoom_gene:
        gene = gene_locus(data.models, config.zoom_gene)
        if gene is None:
            logger.warning("zoom gene %s not found in the annotation; skipping zoom slide", config.zoom_gene)
        else:
            linked = [filter_by_gene(t.interactions, config.zoom_gene) for t in data.interactions]
            zoomed = [
                InteractionTrack(df, name=t.name, genome=genome, **t.params)
                for t, df in zip(data.interactions, linked)
            ]
            window = zoom_locus(gene, linked)
            tracks = base + data.signals + data.peaks + zoomed
            slides.append(
                _slide(
                    "05_zoom",
                    tracks,
                    signal_sizes + [1.5] * len(zoomed),
                    window,
                    out_dir,
                    config,
                    highlights=[Highlight(gene.start, gene.end)],
                    title=f"{config.zoom_gene} ({window})",
                )
            )

    manifest = {
        "config": config.to_dict(),
        "n_gene_records": int(len(data.models)),
        "n_genes": int(data.models["gene"].nunique()) if not data.models.empty else 0,
        "slides": [
            {"name": s.name, "path": str(s.path), "locus": str(s.locus), "tracks": list(s.tracks), "sizes": list(s.sizes)}
            for s in slides
        ],
        "tracks": [t.describe() for t in full],
    }
    manifest_path = write_json(manifest, out_dir / "manifest.json")

    return WalkthroughOutputs(out_dir=Path(out_dir), slides=tuple(slides), manifest_path=manifest_path)
