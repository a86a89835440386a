import pytest

from locusplot.errors import ConfigError
from locusplot.locus import Locus


def test_parse_plain_and_commas():
    a = Locus.parse("chr7:106692877-107374371")
    b = Locus.parse("chr7:106,692,877-107,374,371")
    assert a == b == Locus("chr7", 106692877, 107374371)
    assert str(a) == "chr7:106692877-107374371"
    assert a.width == 107374371 - 106692877 + 1


@pytest.mark.parametrize("text", ["chr7", "chr7:10", "chr7:a-b", "chr7:200-100", ""])
def test_parse_rejects_bad_strings(text):
    with pytest.raises(ConfigError):
        Locus.parse(text)


def test_overlap_is_inclusive():
    locus = Locus("chr1", 100, 200)
    assert locus.overlaps("chr1", 200, 300)
    assert locus.overlaps("chr1", 50, 100)
    assert locus.overlaps("chr1", 120, 130)
    assert not locus.overlaps("chr1", 201, 300)
    assert not locus.overlaps("chr1", 10, 99)
    assert not locus.overlaps("chr2", 120, 130)


def test_zoom_and_shift():
    locus = Locus("chr1", 1001, 2000)
    zin = locus.zoom(2)
    assert zin.chrom == "chr1"
    assert zin.width < locus.width
    assert locus.start <= zin.start and zin.end <= locus.end

    zout = locus.zoom(0.5)
    assert zout.width > locus.width

    moved = locus.shift(500)
    assert (moved.start, moved.end) == (1501, 2500)
    assert locus.shift(-5000).start == 1
