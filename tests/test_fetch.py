import urllib.error

import pytest

from locusplot import fetch
from locusplot.errors import FetchError
from locusplot.cytobands import cytoband_url
from locusplot.fetch import cache_path_for, download_url, is_url, resolve_source


def test_is_url():
    assert is_url("https://example.org/a.gtf.gz")
    assert is_url("ftp://example.org/a.gtf.gz")
    assert is_url("file:///tmp/a.bed")
    assert not is_url("data/a.bed")
    assert not is_url("/abs/a.bed")


def test_download_file_url_and_cache_reuse(tmp_path):
    src = tmp_path / "src.txt"
    src.write_text("one")
    dest = tmp_path / "cache" / "copy.txt"

    assert download_url(src.as_uri(), dest) == dest
    assert dest.read_text() == "one"

    src.write_text("two")
    download_url(src.as_uri(), dest)
    assert dest.read_text() == "one"
    download_url(src.as_uri(), dest, overwrite=True)
    assert dest.read_text() == "two"
    assert not dest.with_suffix(".txt.tmp").exists()


def test_unreachable_url_is_fetch_error(tmp_path):
    with pytest.raises(FetchError):
        download_url((tmp_path / "missing.txt").as_uri(), tmp_path / "out.txt")
    assert not (tmp_path / "out.txt").exists()


def test_timeout_is_fetch_error(tmp_path, monkeypatch):
    def slow(url, timeout=None):
        raise TimeoutError("timed out")

    monkeypatch.setattr(fetch.urllib.request, "urlopen", slow)
    with pytest.raises(FetchError, match="timed out"):
        download_url("https://example.org/a.gtf", tmp_path / "a.gtf", timeout=0.01)


def test_http_error_is_fetch_error(tmp_path, monkeypatch):
    def not_found(url, timeout=None):
        raise urllib.error.HTTPError(url, 404, "Not Found", {}, None)

    monkeypatch.setattr(fetch.urllib.request, "urlopen", not_found)
    with pytest.raises(FetchError, match="404"):
        download_url("https://example.org/a.gtf", tmp_path / "a.gtf")


def test_resolve_source(tmp_path):
    local = tmp_path / "x.bed"
    local.write_text("chr1\t0\t1\n")
    assert resolve_source(local) == local
    assert resolve_source(str(local)) == local

    cached = resolve_source(local.as_uri(), cache_dir=tmp_path / "c")
    assert cached == cache_path_for(local.as_uri(), tmp_path / "c")
    assert cached.name == "x.bed"
    assert cached.read_text() == local.read_text()

    with pytest.raises(FetchError):
        resolve_source(tmp_path / "missing.bed")


def test_cache_path_is_keyed_on_full_url(tmp_path):
    hg19 = cache_path_for(cytoband_url("hg19"), tmp_path)
    hg38 = cache_path_for(cytoband_url("hg38"), tmp_path)
    assert hg19.name == hg38.name
    assert hg19 != hg38
    assert cache_path_for(cytoband_url("hg19"), tmp_path) == hg19
    assert hg19.parent.parent == tmp_path


def test_same_file_name_from_two_urls_does_not_collide(tmp_path):
    a = tmp_path / "a" / "bands.txt"
    b = tmp_path / "b" / "bands.txt"
    for p, text in ((a, "hg19"), (b, "hg38")):
        p.parent.mkdir()
        p.write_text(text)

    cache = tmp_path / "cache"
    assert resolve_source(a.as_uri(), cache_dir=cache).read_text() == "hg19"
    assert resolve_source(b.as_uri(), cache_dir=cache).read_text() == "hg38"
