import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402

from locusplot.synth import synth_dataset  # noqa: E402


@pytest.fixture
def synth_paths(tmp_path):
    return synth_dataset(tmp_path / "synth", seed=0)


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close("all")
