import pandas as pd
import pytest

from locusplot.errors import FormatError
from locusplot.interactions import (
    filter_by_gene,
    gene_labels,
    in_window,
    on_chromosome,
    parse_bedpe,
    read_bedpe,
)
from locusplot.locus import Locus

BEDPE = (
    "chr7\t106700000\t106702000\tchr7\t106900000\t106902000\tPRKAR2B_e1\t0.8\n"
    "chr7\t106700000\t106702000\tchr7\t107100000\t107102000\tPRKAR2B_e2\t0.3\n"
    "chr7\t106950000\t106952000\tchr7\t107000000\t107002000\tKCP_e1\t0.5\n"
    "chr7\t106950000\t106952000\tchr3\t1000\t3000\tKCP_trans\t0.1\n"
    "chr7\t105000000\t105002000\tchr7\t106950000\t106952000\tPUS7\t.\n"
)


@pytest.fixture
def bedpe_path(tmp_path):
    p = tmp_path / "links.bedpe"
    p.write_text(BEDPE)
    return p


def test_gene_labels_take_prefix():
    names = pd.Series(["PRKAR2B_chr7:1-2", "KCP_a_b", "SOLO"])
    assert list(gene_labels(names)) == ["PRKAR2B", "KCP", "SOLO"]
    assert list(gene_labels(pd.Series(["A:1", "B:2"]), separator=":")) == ["A", "B"]


def test_parse_bedpe(bedpe_path):
    df = parse_bedpe(bedpe_path)
    assert len(df) == 5
    assert list(df["gene"]) == ["PRKAR2B", "PRKAR2B", "KCP", "KCP", "PUS7"]
    assert (df["gene"].str.len() > 0).all()
    assert df.loc[0, "start1"] == 106700001
    assert df.loc[4, "score"] == 1.0


def test_filter_by_gene_prkar2b(bedpe_path):
    df = read_bedpe(bedpe_path)
    out = filter_by_gene(df, "PRKAR2B")
    assert len(out) <= len(df)
    assert len(out) == 2
    assert set(out["gene"]) == {"PRKAR2B"}
    assert filter_by_gene(df, "NOPE").empty


def test_filter_on_synthetic_links(synth_paths):
    df = read_bedpe(synth_paths["predicted"])
    out = filter_by_gene(df, "PRKAR2B")
    assert 0 < len(out) <= len(df)
    assert (out["gene"] == "PRKAR2B").all()


def test_empty_label_is_format_error(tmp_path):
    p = tmp_path / "bad.bedpe"
    p.write_text("chr1\t1\t2\tchr1\t5\t6\t_orphan\t1\n")
    with pytest.raises(FormatError):
        parse_bedpe(p)


def test_too_few_columns_is_format_error(tmp_path):
    p = tmp_path / "bad.bedpe"
    p.write_text("chr1\t1\t2\tchr1\t5\t6\n")
    with pytest.raises(FormatError):
        parse_bedpe(p)


def test_window_selection(bedpe_path):
    df = parse_bedpe(bedpe_path)
    assert len(on_chromosome(df, "chr7")) == 4

    locus = Locus("chr7", 106692877, 107374371)
    inside = in_window(df, locus)
    assert list(inside["name"]) == ["PRKAR2B_e1", "PRKAR2B_e2", "KCP_e1"]
    touching = in_window(df, locus, both_anchors=False)
    assert list(touching["name"]) == ["PRKAR2B_e1", "PRKAR2B_e2", "KCP_e1", "PUS7"]
