import gzip

import pytest

from locusplot.annotation import (
    filter_annotation,
    load_gene_annotation,
    parse_gtf,
    read_gtf,
    record_type,
    to_gene_models,
)
from locusplot.errors import FetchError, FormatError
from locusplot.fetch import cache_path_for

GTF = (
    "#!genome-build test\n"
    'chr1\tT\tgene\t100\t900\t.\t+\t.\tgene_id "G1"; gene_type "protein_coding"; gene_name "ALPHA";\n'
    'chr1\tT\texon\t100\t200\t.\t+\t.\tgene_id "G1"; transcript_id "T1"; gene_type "protein_coding"; '
    'transcript_type "protein_coding"; gene_name "ALPHA";\n'
    'chr1\tT\texon\t800\t900\t.\t+\t.\tgene_id "G1"; transcript_id "T1"; gene_type "protein_coding"; '
    'transcript_type "protein_coding"; gene_name "ALPHA";\n'
    'chr1\tT\texon\t300\t350\t.\t+\t.\tgene_id "G1"; transcript_id "T2"; gene_type "protein_coding"; '
    'transcript_type "retained_intron"; gene_name "ALPHA";\n'
    'chr1\tT\texon\t1000\t1100\t.\t-\t.\tgene_id "G2"; transcript_id "T3"; gene_type "lincRNA"; '
    'transcript_type "lincRNA"; gene_name "BETA";\n'
    'chr1\tT\texon\t2000\t2050\t.\t+\t.\tgene_id "G3"; transcript_id "T4"; gene_type "miRNA"; '
    'transcript_type "miRNA"; gene_name "GAMMA";\n'
)


def _write(tmp_path, text, name="a.gtf"):
    p = tmp_path / name
    p.write_text(text)
    return p


def test_parse_gtf_extracts_attributes(tmp_path):
    df = parse_gtf(_write(tmp_path, GTF))
    assert len(df) == 6
    assert list(df["feature"]) == ["gene", "exon", "exon", "exon", "exon", "exon"]
    assert df.loc[1, "transcript_id"] == "T1"
    assert df.loc[1, "gene_name"] == "ALPHA"
    assert df["start"].dtype.kind == "i"
    # gene rows have no transcript attributes
    assert df.loc[0, "transcript_id"] != df.loc[0, "transcript_id"]


def test_filter_keeps_only_accepted_types(tmp_path):
    df = parse_gtf(_write(tmp_path, GTF))
    for types in [("protein_coding", "lincRNA"), ("lincRNA",), ("miRNA", "protein_coding"), ("nothing",)]:
        out = filter_annotation(df, types=types)
        assert set(out["feature"]) <= {"exon"}
        assert set(record_type(out)) <= set(types)
        assert set(out.index) <= set(df.index)

    out = filter_annotation(df)
    assert sorted(out["transcript_id"]) == ["T1", "T1", "T3"]


def test_ensembl_biotype_names(tmp_path):
    text = (
        'chr2\tE\texon\t5\t50\t.\t+\t.\tgene_id "E1"; transcript_id "ET1"; '
        'gene_biotype "protein_coding"; transcript_biotype "protein_coding"; gene_name "X";\n'
    )
    df = parse_gtf(_write(tmp_path, text))
    assert df.loc[0, "gene_type"] == "protein_coding"
    assert len(filter_annotation(df)) == 1


def test_to_gene_models_columns(tmp_path):
    models = to_gene_models(filter_annotation(parse_gtf(_write(tmp_path, GTF))))
    assert list(models.columns) == ["chrom", "start", "end", "strand", "feature", "gene", "transcript", "symbol", "type"]
    assert set(models["symbol"]) == {"ALPHA", "BETA"}
    assert list(models["start"]) == sorted(models["start"])


def test_load_gene_annotation_on_synthetic_gtf(synth_paths):
    models = load_gene_annotation(synth_paths["annotation"])
    assert set(models["type"]) <= {"protein_coding", "lincRNA"}
    assert "PRKAR2B" in set(models["symbol"])
    assert "MIR4653" not in set(models["symbol"])
    assert models.loc[models["symbol"] == "PRKAR2B", "transcript"].nunique() == 2


def test_read_gtf_from_file_url(tmp_path):
    p = _write(tmp_path, GTF)
    df = read_gtf(p.as_uri(), cache_dir=tmp_path / "cache")
    assert len(df) == 6
    assert cache_path_for(p.as_uri(), tmp_path / "cache").exists()


def test_wrong_column_count_is_format_error(tmp_path):
    p = _write(tmp_path, "chr1\tT\texon\t1\t10\t.\t+\t.\n")
    with pytest.raises(FormatError):
        parse_gtf(p)


def test_non_integer_coordinates_is_format_error(tmp_path):
    p = _write(tmp_path, 'chr1\tT\texon\tone\t10\t.\t+\t.\tgene_id "G";\n')
    with pytest.raises(FormatError):
        parse_gtf(p)


def test_empty_gtf_is_format_error(tmp_path):
    with pytest.raises(FormatError):
        parse_gtf(_write(tmp_path, "#only a comment\n"))


def test_missing_source_is_fetch_error(tmp_path):
    with pytest.raises(FetchError):
        read_gtf(tmp_path / "nope.gtf")


def test_gzipped_gtf(tmp_path):
    p = tmp_path / "a.gtf.gz"
    with gzip.open(p, "wt") as fh:
        fh.write(GTF)
    models = load_gene_annotation(p)
    assert set(models["symbol"]) == {"ALPHA", "BETA"}
    assert len(models) == 3
