from typing import TypeVar

import matplotlib.pyplot as plt
import networkx as nx

from .compression import CompressedNode, CompressedProblemsGraph, DependencyList
from .problems_graph import Node, PackageNode, ProblemsGraph, RootNode

N = TypeVar("N")
E = TypeVar("E")


def plot_dag(
    graph: nx.DiGraph,
    node_labels: dict[N, str] | None = None,
    edge_labels: dict[E, str] | None = None,
    scale: float | None = None,
):
    fig, ax = plt.subplots(figsize=(10, 6), dpi=300)

    if scale is None:
        scale = min(200 / max(len(graph), 1), 10)

    # Position using levels
    pos = {}
    for level, nodes in enumerate(nx.topological_generations(graph)):
        if node_labels is not None:
            nodes = sorted(nodes, key=lambda n: node_labels.get(n, ""))
        length = max(len(nodes) - 1, 1)
        pos.update({node: (j / length, -level - 0.2 * (j % 2)) for j, node in enumerate(nodes)})

    options = {"node_size": 100 * scale, "alpha": 0.5}
    nx.draw_networkx_nodes(graph, pos, node_color="blue", **options, ax=ax)
    nx.draw_networkx_edges(graph, pos, **options, ax=ax)

    if node_labels is not None:
        nx.draw_networkx_labels(
            graph, pos, {n: node_labels.get(n, "unknown") for n in graph.nodes}, font_size=scale, ax=ax
        )
    if edge_labels is not None:
        nx.draw_networkx_edge_labels(
            graph, pos, {e: edge_labels.get(e, "") for e in graph.edges}, font_size=scale, ax=ax
        )

    fig.tight_layout()
    ax.set_axis_off()
    return fig, ax


def plot_problems_graph(pbs: ProblemsGraph, **kwargs):
    def node_name(n: Node) -> str:
        if isinstance(n, RootNode):
            return "root"
        elif isinstance(n, PackageNode):
            return f"{n.name}-{n.version}"
        else:
            return str(n)

    # Parallel edges are drawn once with all their dependencies
    g = nx.DiGraph(pbs.networkx_graph())
    node_labels = {n: node_name(pbs.node(n)) for n in g.nodes}
    edge_labels = {(a, b): ", ".join(pbs.edge_dependencies(a, b)) for a, b in g.edges}
    return plot_dag(g, node_labels=node_labels, edge_labels=edge_labels, **kwargs)


def plot_compressed_graph(cp: CompressedProblemsGraph, **kwargs):
    def node_name(n: CompressedNode) -> str:
        if isinstance(n, RootNode):
            return "root"
        elif len(n) == 1:
            return f"{n.name()} {n.versions_trunc()}"
        else:
            return f"{n.name()}-[{n.versions_trunc()}]"

    def edge_name(e: DependencyList) -> str:
        if len(e) == 1:
            return f"{e.name()} {e.versions_trunc()}"
        else:
            return f"{e.name()}-[{e.versions_trunc()}]"

    g = cp.networkx_graph()
    node_labels = {n: node_name(cp.node(n)) for n in g.nodes}
    edge_labels = {e: edge_name(cp.edge(*e)) for e in g.edges}
    return plot_dag(g, node_labels=node_labels, edge_labels=edge_labels, **kwargs)
