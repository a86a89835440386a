import json

import pytest

from locusplot.config import WalkthroughConfig, config_from_dict, load_config
from locusplot.errors import ConfigError


def test_defaults():
    config = WalkthroughConfig()
    assert config.genome == "hg19"
    assert str(config.locus) == "chr7:106692877-107374371"
    assert config.zoom_gene == "PRKAR2B"
    assert config.gene_types == ("protein_coding", "lincRNA")
    assert config.separator == "_"


def test_load_config_resolves_relative_paths(synth_paths):
    config = load_config(synth_paths["config"])
    base = synth_paths["config"].parent
    assert config.annotation == str(base / "annotation.gtf")
    assert [s.name for s in config.interactions] == ["Predicted", "Validated"]
    assert config.interactions[1].invert_scores
    assert not config.interactions[0].invert_scores
    assert config.signals[0].source == str(base / "signal_a.bedGraph")


def test_urls_are_not_resolved(tmp_path):
    config = config_from_dict({"annotation": "https://example.org/a.gtf.gz"}, base_dir=tmp_path)
    assert config.annotation == "https://example.org/a.gtf.gz"


@pytest.mark.parametrize(
    "bad",
    [
        {"colour": "red"},
        {"locus": "chr7:200-100"},
        {"out_format": "jpeg"},
        {"timeout": "soon"},
        {"timeout": 0},
        {"separator": ""},
        {"signals": {"source": "a.bw"}},
        {"signals": [{"name": "no source"}]},
        {"peaks": [{"source": "p.bed", "shape": "box"}]},
        {"style": ["not", "a", "mapping"]},
    ],
)
def test_invalid_config(bad):
    with pytest.raises(ConfigError):
        config_from_dict(bad)


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.json")
    p = tmp_path / "broken.json"
    p.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config(p)


def test_to_dict_is_json_serialisable(synth_paths):
    d = load_config(synth_paths["config"]).to_dict()
    assert json.loads(json.dumps(d))["locus"] == "chr7:106692877-107374371"
