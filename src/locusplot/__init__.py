"""locusplot: stacked genomic locus figures.

Load GTF / BED / bedGraph / bigWig / BEDPE files, wrap them in tracks
(ideogram, axis, gene models, annotations, signal, interactions) and render
them as one figure over a chromosome window.
"""

from .annotation import filter_annotation, load_gene_annotation, read_gtf
from .errors import ConfigError, FetchError, FormatError, LocusPlotError, RenderConfigError
from .interactions import filter_by_gene, read_bedpe
from .locus import Locus
from .peaks import read_peaks, subset_by_overlap
from .render import Highlight, plot_tracks, render_to_file, save_figure
from .signal import SignalFile, load_signal
from .tracks import (
    AnnotationTrack,
    DataTrack,
    GeneRegionTrack,
    GenomeAxisTrack,
    IdeogramTrack,
    InteractionTrack,
    Track,
)

__all__ = [
    "AnnotationTrack",
    "ConfigError",
    "DataTrack",
    "FetchError",
    "FormatError",
    "GeneRegionTrack",
    "GenomeAxisTrack",
    "Highlight",
    "IdeogramTrack",
    "InteractionTrack",
    "Locus",
    "LocusPlotError",
    "RenderConfigError",
    "SignalFile",
    "Track",
    "filter_annotation",
    "filter_by_gene",
    "load_gene_annotation",
    "load_signal",
    "plot_tracks",
    "read_bedpe",
    "read_gtf",
    "read_peaks",
    "render_to_file",
    "save_figure",
    "subset_by_overlap",
]
