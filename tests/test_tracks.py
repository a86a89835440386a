import matplotlib.pyplot as plt
import pandas as pd
import pytest

from locusplot.annotation import load_gene_annotation
from locusplot.errors import RenderConfigError
from locusplot.interactions import read_bedpe
from locusplot.locus import Locus
from locusplot.tracks import (
    AnnotationTrack,
    DataTrack,
    GeneRegionTrack,
    IdeogramTrack,
    InteractionTrack,
    pack_rows,
)

LOCUS = Locus.parse("chr7:106692877-107374371")


def test_pack_rows_never_overlaps():
    spans = [(1, 10), (5, 20), (11, 15), (21, 30), (2, 3)]
    rows = pack_rows(spans)
    for i, (s1, e1) in enumerate(spans):
        for j, (s2, e2) in enumerate(spans):
            if i < j and rows[i] == rows[j]:
                assert e1 < s2 or e2 < s1
    assert max(rows) == 1


def test_display_params_precedence():
    track = GeneRegionTrack(pd.DataFrame(), fill="blue")
    assert track.display_params()["fill"] == "blue"
    assert track.display_params({"background": "ivory"})["background"] == "ivory"
    assert track.display_params({"background_title": "red", "fill": "red"})["fill"] == "blue"
    # track-specific keys are not global style
    assert track.display_params({"col": "green"})["col"] == GeneRegionTrack.defaults["col"]
    assert track.display_params({"collapse": "bogus"})["collapse"] == "none"
    assert "not_a_key" not in track.display_params({"not_a_key": 1})

    track.set_params(collapse="meta", fill="orange")
    assert track.params == {"fill": "orange", "collapse": "meta"}
    assert track.display_params()["collapse"] == "meta"


def test_collapse_modes(synth_paths):
    models = load_gene_annotation(synth_paths["annotation"])
    track = GeneRegionTrack(models)

    def prkar2b(mode):
        return [sh for sh in track.shapes(LOCUS, mode) if sh["symbol"] == "PRKAR2B"]

    assert len(prkar2b("none")) == 2

    (meta,) = prkar2b("meta")
    assert meta["exons"] == [
        (106685094, 106685500),
        (106700100, 106700400),
        (106720000, 106720180),
        (106790000, 106802256),
    ]

    (gene,) = prkar2b("gene")
    assert gene["exons"] == [(106685094, 106802256)]

    (longest,) = prkar2b("longest")
    assert longest["transcript"] == "ENST00000265717.4"
    (shortest,) = prkar2b("shortest")
    assert shortest["transcript"] == "ENST00000470347.1"

    symbols = {sh["symbol"] for sh in track.shapes(LOCUS)}
    assert "NRCAM" not in symbols
    assert "PUS7" not in symbols


def test_unknown_collapse_mode_fails_validation():
    track = GeneRegionTrack(pd.DataFrame(), collapse="everything")
    with pytest.raises(RenderConfigError):
        track.validate(LOCUS)


def test_interaction_score_sign_is_display_only(synth_paths):
    df = read_bedpe(synth_paths["validated"])
    track = InteractionTrack(df)
    assert (track.visible(LOCUS)["score"] > 0).all()

    track.set_params(invert_scores=True)
    assert (track.visible(LOCUS)["score"] < 0).all()
    assert (df["score"] > 0).all()


def test_interaction_track_draws_arcs_below_when_inverted(synth_paths):
    df = read_bedpe(synth_paths["predicted"])
    track = InteractionTrack(df, invert_scores=True)
    fig, ax = plt.subplots()
    track.plot_ax(ax, LOCUS, track.display_params())
    lo, hi = ax.get_ylim()
    assert lo < -0.5
    assert hi < 0.5
    assert len(ax.lines) == len(track.visible(LOCUS))


def test_ideogram_requires_bands_for_locus_chrom(synth_paths):
    from locusplot.cytobands import read_cytobands

    bands = read_cytobands(synth_paths["cytobands"])
    IdeogramTrack(bands).validate(LOCUS)
    with pytest.raises(RenderConfigError):
        IdeogramTrack(bands).validate(Locus("chr1", 1, 100))
    with pytest.raises(RenderConfigError):
        IdeogramTrack(bands, chrom="chr8").validate(LOCUS)


def test_data_track_window_aggregation(synth_paths):
    from locusplot.signal import SignalFile

    track = DataTrack(SignalFile(synth_paths["signal_a"]), window=50, aggregation="max")
    values = track.values(LOCUS)
    assert len(values) == 50
    assert values["start"].iloc[0] == LOCUS.start
    assert values["end"].iloc[-1] == LOCUS.end


def test_data_track_from_dataframe_and_types():
    df = pd.DataFrame({"chrom": "chr1", "start": [1, 11, 21], "end": [10, 20, 30], "value": [1.0, 3.0, 2.0]})
    locus = Locus("chr1", 1, 30)
    for kind in ("polygon", "histogram", "line", "points"):
        track = DataTrack(df, type=kind)
        track.validate(locus)
        fig, ax = plt.subplots()
        track.plot_ax(ax, locus, track.display_params())
        assert ax.get_ylim()[1] >= 3.0

    with pytest.raises(RenderConfigError):
        DataTrack(df, type="heatmap").validate(locus)


def test_annotation_track_dense_vs_squish():
    df = pd.DataFrame({"chrom": "chr1", "start": [10, 15, 40], "end": [30, 35, 50], "name": ["a", "b", "c"]})
    locus = Locus("chr1", 1, 60)
    for stacking, rows in (("dense", 1), ("squish", 2)):
        track = AnnotationTrack(df, stacking=stacking)
        fig, ax = plt.subplots()
        track.plot_ax(ax, locus, track.display_params())
        assert len(ax.patches) == 3
        assert ax.get_ylim()[0] == pytest.approx(-1.0 * (rows - 1) - 0.6)

    with pytest.raises(RenderConfigError):
        AnnotationTrack(df, stacking="full").validate(locus)
