import json

import pytest

from locusplot.cli import main


def test_demo_writes_slides(tmp_path, capsys):
    out_dir = tmp_path / "out"
    main(["demo", "--data_dir", str(tmp_path / "data"), "--out_dir", str(out_dir), "-q"])
    assert capsys.readouterr().out == ""

    manifest = json.loads((out_dir / "manifest.json").read_text())
    assert len(manifest["slides"]) == 5
    assert (out_dir / "05_zoom.pdf").exists()


def test_synth_then_render(tmp_path, capsys):
    data_dir = tmp_path / "data"
    main(["synth", "--out_dir", str(data_dir)])
    assert "config" in capsys.readouterr().out

    main(["render", "--config", str(data_dir / "config.json"), "--out_dir", str(tmp_path / "out")])
    assert "01_genes" in capsys.readouterr().out


def test_missing_config_exits_with_error(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["render", "--config", str(tmp_path / "nope.json"), "-q"])
    assert exc.value.code == 1
    assert "locusplot: error:" in capsys.readouterr().err


def test_bad_input_file_exits_with_error(tmp_path, capsys):
    config = {"annotation": str(tmp_path / "missing.gtf"), "cytobands": str(tmp_path / "bands.txt")}
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config))
    with pytest.raises(SystemExit) as exc:
        main(["render", "--config", str(path), "--out_dir", str(tmp_path / "out"), "-q"])
    assert exc.value.code == 1
    assert "missing.gtf" in capsys.readouterr().err
