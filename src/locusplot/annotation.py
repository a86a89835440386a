from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import numpy as np
import pandas as pd

from .errors import FormatError
from .fetch import DEFAULT_TIMEOUT, resolve_source

logger = logging.getLogger(__name__)

GENCODE_V19_GTF_URL = (
    "https://ftp.ebi.ac.uk/pub/databases/gencode/Gencode_human/release_19/gencode.v19.annotation.gtf.gz"
)

DEFAULT_FEATURES = ("exon",)
DEFAULT_TYPES = ("protein_coding", "lincRNA")

GTF_COLUMNS = ["chrom", "source", "feature", "start", "end", "score", "strand", "frame", "attributes"]

# GENCODE uses *_type, Ensembl uses *_biotype.
_ATTRIBUTE_KEYS = (
    "gene_id",
    "transcript_id",
    "gene_name",
    "gene_type",
    "gene_biotype",
    "transcript_type",
    "transcript_biotype",
)

GENE_MODEL_COLUMNS = ["chrom", "start", "end", "strand", "feature", "gene", "transcript", "symbol", "type"]


def _extract_attributes(attributes: pd.Series) -> pd.DataFrame:
    out = {}
    for key in _ATTRIBUTE_KEYS:
        out[key] = attributes.str.extract(rf'(?:^|;)\s*{key}\s+"([^"]*)"', expand=False)
    attrs = pd.DataFrame(out, index=attributes.index)
    attrs["gene_type"] = attrs["gene_type"].fillna(attrs.pop("gene_biotype"))
    attrs["transcript_type"] = attrs["transcript_type"].fillna(attrs.pop("transcript_biotype"))
    return attrs


def parse_gtf(path: str | Path) -> pd.DataFrame:
    """Parse a GTF file (optionally gzipped) into one row per record.

    Returns a DataFrame with the eight fixed GTF columns plus ``gene_id``,
    ``transcript_id``, ``gene_name``, ``gene_type`` and ``transcript_type``
    pulled out of the attribute column.

    Raises:
        FormatError: rows that are not 9 tab-separated fields or carry
            non-integer coordinates.
    """

    try:
        df = pd.read_csv(
            path,
            sep="\t",
            header=None,
            comment="#",
            dtype=str,
            quoting=3,
            compression="infer",
        )
    except pd.errors.EmptyDataError as e:
        raise FormatError(f"GTF file is empty: {path}") from e
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        raise FormatError(f"Cannot parse GTF {path}: {e}") from e

    if df.shape[1] != len(GTF_COLUMNS):
        raise FormatError(f"Expected {len(GTF_COLUMNS)} columns in GTF {path}; found {df.shape[1]}")
    df.columns = GTF_COLUMNS
    if df[["chrom", "feature", "start", "end", "attributes"]].isna().any().any():
        bad = df.index[df[["chrom", "feature", "start", "end", "attributes"]].isna().any(axis=1)][0]
        raise FormatError(f"Missing required GTF field at row {bad} of {path}")

    try:
        df["start"] = df["start"].astype(np.int64)
        df["end"] = df["end"].astype(np.int64)
    except (TypeError, ValueError) as e:
        raise FormatError(f"Non-integer coordinates in GTF {path}: {e}") from e
    if (df["end"] < df["start"]).any():
        bad = df.index[df["end"] < df["start"]][0]
        raise FormatError(f"Invalid GTF record with end<start at row {bad}")

    attrs = _extract_attributes(df["attributes"])
    return pd.concat([df.drop(columns=["attributes"]), attrs], axis=1)


def read_gtf(
    source: str | Path,
    *,
    cache_dir: str | Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> pd.DataFrame:
    """Fetch (if remote) and parse a GTF."""
    path = resolve_source(source, cache_dir=cache_dir, timeout=timeout)
    df = parse_gtf(path)
    logger.info("read %d GTF records from %s", len(df), path)
    return df


def record_type(df: pd.DataFrame) -> pd.Series:
    """Per-row biotype: the transcript type, falling back to the gene type."""
    return df["transcript_type"].fillna(df["gene_type"])


def filter_annotation(
    df: pd.DataFrame,
    *,
    features: Iterable[str] = DEFAULT_FEATURES,
    types: Iterable[str] = DEFAULT_TYPES,
) -> pd.DataFrame:
    """Keep records whose feature and biotype are both in the accepted sets."""
    features = set(features)
    types = set(types)
    keep = df["feature"].isin(features) & record_type(df).isin(types)
    out = df.loc[keep].copy()
    logger.debug("annotation filter kept %d/%d records", len(out), len(df))
    return out


def to_gene_models(df: pd.DataFrame) -> pd.DataFrame:
    """Reshape parsed GTF records into the flat gene-model table.

    Columns: chrom, start, end, strand, feature, gene, transcript, symbol, type.
    Records without a transcript id are their own transcript (gene-level rows).
    """

    if df.empty:
        return pd.DataFrame(columns=GENE_MODEL_COLUMNS)

    out = pd.DataFrame(
        {
            "chrom": df["chrom"].astype(str),
            "start": df["start"].astype(np.int64),
            "end": df["end"].astype(np.int64),
            "strand": df["strand"].fillna("*").replace(".", "*"),
            "feature": df["feature"],
            "gene": df["gene_id"],
            "transcript": df["transcript_id"].fillna(df["gene_id"]),
            "symbol": df["gene_name"].fillna(df["gene_id"]),
            "type": record_type(df),
        }
    )
    return out.sort_values(["chrom", "start", "end"], kind="mergesort").reset_index(drop=True)


def load_gene_annotation(
    source: str | Path,
    *,
    features: Iterable[str] = DEFAULT_FEATURES,
    types: Iterable[str] = DEFAULT_TYPES,
    cache_dir: str | Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> pd.DataFrame:
    """Read, filter and reshape a GTF into gene models ready for a GeneRegionTrack."""
    features = tuple(features)
    df = read_gtf(source, cache_dir=cache_dir, timeout=timeout)
    models = to_gene_models(filter_annotation(df, features=features, types=types))
    logger.info(
        "kept %d %s records across %d genes",
        len(models),
        "/".join(sorted(set(features))),
        models["gene"].nunique() if not models.empty else 0,
    )
    return models
