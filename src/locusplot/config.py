from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from .annotation import DEFAULT_TYPES, GENCODE_V19_GTF_URL
from .errors import ConfigError
from .fetch import DEFAULT_CACHE_DIR, DEFAULT_TIMEOUT, is_url
from .interactions import DEFAULT_SEPARATOR
from .locus import Locus
from .render import OUTPUT_FORMATS

DEFAULT_GENOME = "hg19"
DEFAULT_LOCUS = "chr7:106692877-107374371"
DEFAULT_ZOOM_GENE = "PRKAR2B"


@dataclass(frozen=True)
class TrackSource:
    """One input file for the walkthrough plus how to label and colour it."""

    name: str
    source: str
    color: str | None = None
    invert_scores: bool = False


@dataclass(frozen=True)
class WalkthroughConfig:
    genome: str = DEFAULT_GENOME
    locus: Locus = field(default_factory=lambda: Locus.parse(DEFAULT_LOCUS))
    zoom_gene: str | None = DEFAULT_ZOOM_GENE
    annotation: str = GENCODE_V19_GTF_URL
    # None means the UCSC cytoBandIdeo table for ``genome``.
    cytobands: str | None = None
    signals: tuple[TrackSource, ...] = ()
    peaks: tuple[TrackSource, ...] = ()
    interactions: tuple[TrackSource, ...] = ()
    gene_types: tuple[str, ...] = DEFAULT_TYPES
    separator: str = DEFAULT_SEPARATOR
    cache_dir: Path = DEFAULT_CACHE_DIR
    timeout: float = DEFAULT_TIMEOUT
    out_format: str = "pdf"
    width: float = 10.0
    style: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["locus"] = str(self.locus)
        d["cache_dir"] = str(self.cache_dir)
        return d


def _resolve(source: str, base_dir: Path | None) -> str:
    if base_dir is None or is_url(source) or Path(source).is_absolute():
        return str(source)
    return str(base_dir / source)


def _track_sources(items: Any, key: str, base_dir: Path | None) -> tuple[TrackSource, ...]:
    if not isinstance(items, list):
        raise ConfigError(f"{key!r} must be a list of {{name, source}} objects")
    out = []
    allowed = {f.name for f in fields(TrackSource)}
    for i, item in enumerate(items):
        if not isinstance(item, dict) or "source" not in item:
            raise ConfigError(f"{key}[{i}] must be an object with at least a 'source' key")
        unknown = set(item) - allowed
        if unknown:
            raise ConfigError(f"Unknown keys in {key}[{i}]: {', '.join(sorted(unknown))}")
        name = item.get("name") or Path(str(item["source"])).name
        out.append(
            TrackSource(
                name=str(name),
                source=_resolve(str(item["source"]), base_dir),
                color=item.get("color"),
                invert_scores=bool(item.get("invert_scores", False)),
            )
        )
    return tuple(out)


def config_from_dict(d: dict[str, Any], *, base_dir: str | Path | None = None) -> WalkthroughConfig:
    """Build a config from a parsed JSON object.

    Relative file paths resolve against ``base_dir`` (the config file's
    directory when loaded with ``load_config``).
    """

    if not isinstance(d, dict):
        raise ConfigError("Config must be a JSON object")
    known = {f.name for f in fields(WalkthroughConfig)}
    unknown = set(d) - known
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    base = Path(base_dir) if base_dir is not None else None
    kw: dict[str, Any] = {}
    for key in ("genome", "zoom_gene", "separator"):
        if key in d:
            kw[key] = d[key] if d[key] is None else str(d[key])
    if "locus" in d:
        kw["locus"] = Locus.parse(d["locus"])
    if "annotation" in d:
        kw["annotation"] = _resolve(str(d["annotation"]), base)
    if d.get("cytobands"):
        kw["cytobands"] = _resolve(str(d["cytobands"]), base)
    for key in ("signals", "peaks", "interactions"):
        if key in d:
            kw[key] = _track_sources(d[key], key, base)
    if "gene_types" in d:
        kw["gene_types"] = tuple(str(t) for t in d["gene_types"])
    if "cache_dir" in d:
        kw["cache_dir"] = Path(_resolve(str(d["cache_dir"]), base))
    try:
        if "timeout" in d:
            kw["timeout"] = float(d["timeout"])
        if "width" in d:
            kw["width"] = float(d["width"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric config value: {e}") from e
    if "out_format" in d:
        fmt = str(d["out_format"]).lower()
        if fmt not in OUTPUT_FORMATS:
            raise ConfigError(f"out_format must be one of {OUTPUT_FORMATS}; got {fmt!r}")
        kw["out_format"] = fmt
    if "style" in d:
        if not isinstance(d["style"], dict):
            raise ConfigError("'style' must be an object")
        kw["style"] = dict(d["style"])

    if kw.get("separator", DEFAULT_SEPARATOR) == "":
        raise ConfigError("separator must not be empty")
    if kw.get("timeout", DEFAULT_TIMEOUT) <= 0:
        raise ConfigError("timeout must be positive")
    return WalkthroughConfig(**kw)


def load_config(path: str | Path) -> WalkthroughConfig:
    path = Path(path)
    try:
        d = json.loads(path.read_text())
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config {path} is not valid JSON: {e}") from e
    return config_from_dict(d, base_dir=path.parent)
