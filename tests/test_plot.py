import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402

from conflict_explainer import plot, problems  # noqa: E402
from conflict_explainer.compression import compress  # noqa: E402
from conflict_explainer.problems_graph import build_problems_graph  # noqa: E402


@pytest.fixture
def pubgrub_graph():
    records, index = problems.create_pubgrub()
    return build_problems_graph(records, index=index)


def test_plot_problems_graph(pubgrub_graph):
    fig, ax = plot.plot_problems_graph(pubgrub_graph)
    assert fig is ax.figure
    plt.close(fig)


def test_plot_compressed_graph(pubgrub_graph):
    fig, ax = plot.plot_compressed_graph(compress(pubgrub_graph), scale=5)
    assert len(plt.get_fignums()) >= 1
    plt.close(fig)


def test_plot_single_node():
    fig, _ = plot.plot_compressed_graph(compress(build_problems_graph([])))
    plt.close(fig)
