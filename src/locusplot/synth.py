from __future__ import annotations

from pathlib import Path

import numpy as np

from .config import DEFAULT_GENOME, DEFAULT_LOCUS
from .locus import Locus
from .reporting import ensure_dir, write_json

# hg19 chr7 length; the bands below are a coarse stand-in for the real table.
CHR7_LENGTH = 159_138_663
CHR7_BANDS = [
    (0, 28_800_000, "p21", "gpos100"),
    (28_800_000, 43_300_000, "p14", "gneg"),
    (43_300_000, 58_054_331, "p11.2", "gpos50"),
    (58_054_331, 59_554_331, "p11.1", "acen"),
    (59_554_331, 61_054_331, "q11.1", "acen"),
    (61_054_331, 77_500_000, "q11.2", "gneg"),
    (77_500_000, 98_000_000, "q21", "gpos100"),
    (98_000_000, 107_400_000, "q22", "gneg"),
    (107_400_000, 127_100_000, "q31", "gpos75"),
    (127_100_000, 146_600_000, "q33", "gneg"),
    (146_600_000, CHR7_LENGTH, "q36", "gpos25"),
]

# gene, symbol, type, strand, transcripts as lists of 1-based (start, end) exons
SYNTH_GENES = [
    (
        "ENSG00000005249.8",
        "PRKAR2B",
        "protein_coding",
        "+",
        {
            "ENST00000265717.4": [(106_685_094, 106_685_500), (106_720_000, 106_720_180), (106_790_000, 106_802_256)],
            "ENST00000470347.1": [(106_700_100, 106_700_400), (106_720_000, 106_720_180)],
        },
    ),
    (
        "ENSG00000105851.6",
        "PIK3CG",
        "protein_coding",
        "+",
        {"ENST00000359195.3": [(106_505_000, 106_506_000), (106_545_000, 106_547_000)]},
    ),
    (
        "ENSG00000128594.3",
        "LRRC17",
        "protein_coding",
        "+",
        {"ENST00000339431.4": [(102_553_000, 102_554_000), (102_560_000, 102_561_500)]},
    ),
    (
        "ENSG00000091129.15",
        "NRCAM",
        "protein_coding",
        "-",
        {
            "ENST00000379028.3": [(107_788_000, 107_789_500), (107_820_000, 107_820_300), (107_880_000, 107_880_600)],
        },
    ),
    (
        "ENSG00000091127.9",
        "PUS7",
        "protein_coding",
        "-",
        {"ENST00000356362.2": [(105_080_000, 105_081_000), (105_100_000, 105_101_000)]},
    ),
    (
        "ENSG00000135253.8",
        "KCP",
        "protein_coding",
        "-",
        {"ENST00000275327.3": [(106_900_000, 106_901_000), (106_950_000, 106_952_000)]},
    ),
    (
        "ENSG00000231721.2",
        "LINC-PINT",
        "lincRNA",
        "-",
        {"ENST00000428668.1": [(107_100_000, 107_100_800), (107_150_000, 107_151_200)]},
    ),
    (
        "ENSG00000207649.1",
        "MIR4653",
        "miRNA",
        "+",
        {"ENST00000384922.1": [(107_200_000, 107_200_080)]},
    ),
    (
        "ENSG00000233098.1",
        "HMGN1P18",
        "processed_pseudogene",
        "+",
        {"ENST00000433256.1": [(107_250_000, 107_250_500)]},
    ),
]


def _gene_span(transcripts: dict[str, list[tuple[int, int]]]) -> tuple[int, int]:
    starts = [s for exons in transcripts.values() for s, _ in exons]
    ends = [e for exons in transcripts.values() for _, e in exons]
    return min(starts), max(ends)


def make_synthetic_gtf_lines(chrom: str = "chr7") -> list[str]:
    """GTF gene/transcript/exon lines for ``SYNTH_GENES`` (GENCODE attribute style)."""
    lines = ["##description: locusplot synthetic annotation\n"]
    for gene_id, symbol, gtype, strand, transcripts in SYNTH_GENES:
        start, end = _gene_span(transcripts)
        gattr = f'gene_id "{gene_id}"; gene_type "{gtype}"; gene_name "{symbol}";'
        lines.append(f"{chrom}\tSYNTH\tgene\t{start}\t{end}\t.\t{strand}\t.\t{gattr}\n")
        for tx_id, exons in transcripts.items():
            tattr = (
                f'gene_id "{gene_id}"; transcript_id "{tx_id}"; gene_type "{gtype}"; '
                f'gene_name "{symbol}"; transcript_type "{gtype}";'
            )
            lines.append(
                f"{chrom}\tSYNTH\ttranscript\t{exons[0][0]}\t{exons[-1][1]}\t.\t{strand}\t.\t{tattr}\n"
            )
            for n, (s, e) in enumerate(exons, start=1):
                lines.append(f"{chrom}\tSYNTH\texon\t{s}\t{e}\t.\t{strand}\t.\t{tattr} exon_number {n};\n")
    return lines


def make_synthetic_signal(locus: Locus, *, binsize: int = 2_000, seed: int = 0, peaks: int = 6) -> list[str]:
    """A bedGraph of smooth background plus a handful of Gaussian bumps."""
    rng = np.random.default_rng(int(seed))
    starts = np.arange(locus.start - 1, locus.end, binsize, dtype=np.int64)
    ends = np.minimum(starts + binsize, locus.end)
    x = (starts + ends) / 2.0
    y = 0.3 + 0.1 * rng.random(len(x))
    centers = rng.uniform(locus.start, locus.end, size=int(peaks))
    for c in centers:
        y += rng.uniform(2.0, 8.0) * np.exp(-0.5 * ((x - c) / (locus.width / 150.0)) ** 2)
    return [f"{locus.chrom}\t{int(s)}\t{int(e)}\t{float(v):.4f}\n" for s, e, v in zip(starts, ends, y)]


def make_synthetic_peaks(locus: Locus, *, n: int = 25, seed: int = 0) -> list[str]:
    """narrowPeak rows; a few fall outside the locus so overlap filtering has work to do."""
    rng = np.random.default_rng(int(seed) + 1)
    lo = max(0, locus.start - locus.width // 4)
    hi = locus.end + locus.width // 4
    starts = np.sort(rng.integers(lo, hi, size=int(n)))
    lines = ["track type=narrowPeak name=synthetic\n"]
    for i, s in enumerate(starts):
        width = int(rng.integers(200, 1_500))
        score = int(rng.integers(100, 1000))
        sig = float(rng.uniform(2, 30))
        lines.append(
            f"{locus.chrom}\t{int(s)}\t{int(s) + width}\tpeak_{i}\t{score}\t."
            f"\t{sig:.3f}\t{sig / 2:.3f}\t{sig / 3:.3f}\t{width // 2}\n"
        )
    for i, s in enumerate((max(0, locus.start - 6_000), locus.end + 5_000), start=len(starts)):
        lines.append(f"{locus.chrom}\t{s}\t{s + 500}\tpeak_{i}\t500\t.\t5.000\t2.500\t1.667\t250\n")
    return lines


def make_synthetic_interactions(
    locus: Locus,
    genes: list[tuple[str, int]],
    *,
    n_per_gene: int = 4,
    seed: int = 0,
    tag: str = "pred",
) -> list[str]:
    """BEDPE links from each gene's TSS to random enhancers, named ``GENE_<tag><i>``."""
    rng = np.random.default_rng(int(seed) + 2)
    lines = []
    for symbol, tss in genes:
        for i in range(int(n_per_gene)):
            enh = int(rng.integers(locus.start, locus.end - 2_000))
            a1 = (tss - 1_000, tss + 1_000)
            a2 = (enh, enh + 2_000)
            left, right = sorted([a1, a2])
            score = float(rng.uniform(0.1, 1.0))
            lines.append(
                f"{locus.chrom}\t{left[0]}\t{left[1]}\t{locus.chrom}\t{right[0]}\t{right[1]}"
                f"\t{symbol}_{tag}{i}\t{score:.4f}\t.\t.\n"
            )
    return lines


def make_synthetic_cytobands(chrom: str = "chr7") -> list[str]:
    return [f"{chrom}\t{s}\t{e}\t{name}\t{stain}\n" for s, e, name, stain in CHR7_BANDS]


def synth_dataset(
    out_dir: str | Path,
    *,
    locus: str | Locus = DEFAULT_LOCUS,
    genome: str = DEFAULT_GENOME,
    seed: int = 0,
) -> dict[str, Path]:
    """Write a small offline dataset plus a walkthrough config pointing at it.

    Files: annotation.gtf, cytoBandIdeo.txt, signal_a/b.bedGraph, peaks.narrowPeak,
    predicted.bedpe, validated.bedpe, config.json.
    """

    out_dir = ensure_dir(out_dir)
    locus = locus if isinstance(locus, Locus) else Locus.parse(locus)

    gtf_path = out_dir / "annotation.gtf"
    gtf_path.write_text("".join(make_synthetic_gtf_lines(locus.chrom)))

    cyto_path = out_dir / "cytoBandIdeo.txt"
    cyto_path.write_text("".join(make_synthetic_cytobands(locus.chrom)))

    signal_a = out_dir / "signal_a.bedGraph"
    signal_a.write_text("".join(make_synthetic_signal(locus, seed=seed)))
    signal_b = out_dir / "signal_b.bedGraph"
    signal_b.write_text("".join(make_synthetic_signal(locus, seed=seed + 10)))

    peaks_path = out_dir / "peaks.narrowPeak"
    peaks_path.write_text("".join(make_synthetic_peaks(locus, seed=seed)))

    # Promoter anchors are kept inside the window so every link is drawable.
    tss = []
    for _, symbol, gtype, strand, txs in SYNTH_GENES:
        start, end = _gene_span(txs)
        if gtype != "protein_coding" or not locus.overlaps(locus.chrom, start, end):
            continue
        pos = start if strand == "+" else end
        tss.append((symbol, int(min(max(pos, locus.start + 1_000), locus.end - 1_000))))
    predicted = out_dir / "predicted.bedpe"
    predicted.write_text("".join(make_synthetic_interactions(locus, tss, seed=seed, tag="pred")))
    validated = out_dir / "validated.bedpe"
    validated.write_text(
        "".join(make_synthetic_interactions(locus, tss, n_per_gene=2, seed=seed + 5, tag="val"))
    )

    config = {
        "genome": genome,
        "locus": str(locus),
        "zoom_gene": "PRKAR2B",
        "annotation": gtf_path.name,
        "cytobands": cyto_path.name,
        "signals": [
            {"name": "Signal A", "source": signal_a.name, "color": "#1F78B4"},
            {"name": "Signal B", "source": signal_b.name, "color": "#33A02C"},
        ],
        "peaks": [{"name": "Peaks", "source": peaks_path.name, "color": "#6A3D9A"}],
        "interactions": [
            {"name": "Predicted", "source": predicted.name, "color": "#E31A1C"},
            {"name": "Validated", "source": validated.name, "color": "#FF7F00", "invert_scores": True},
        ],
        "out_format": "pdf",
    }
    config_path = write_json(config, out_dir / "config.json")

    return {
        "annotation": gtf_path,
        "cytobands": cyto_path,
        "signal_a": signal_a,
        "signal_b": signal_b,
        "peaks": peaks_path,
        "predicted": predicted,
        "validated": validated,
        "config": config_path,
    }
