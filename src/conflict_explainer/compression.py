from __future__ import annotations

import itertools
import logging
import typing as T

import networkx as nx

from .conflicts import ConflictMap
from .problems_graph import (
    ConstraintNode,
    Node,
    NodeId,
    PackageNode,
    ProblemsGraph,
    ProblemsGraphError,
    RootNode,
    UnresolvedDependencyNode,
)
from .records import DependencyInfo
from .utils import repr_trunc, unique

log = logging.getLogger(__name__)

GroupId = T.NewType("GroupId", int)

E = T.TypeVar("E", bound=T.Hashable)
N = T.TypeVar("N", bound=T.Hashable)


################
#  List nodes  #
################


class NamedList(T.Generic[E]):
    """An ordered set of elements sharing the same name.

    Insertion order is kept and duplicates are ignored.
    """

    def __init__(self, items: T.Iterable[E] = ()) -> None:
        self._items: dict[E, None] = dict.fromkeys(items)

    def add(self, item: E) -> None:
        self._items[item] = None

    def name(self) -> str:
        if len(self._items) == 0:
            raise ValueError(f"An empty {type(self).__name__} has no name")
        return self._item_name(next(iter(self._items)))

    def versions(self) -> list[str]:
        return [self._item_version(e) for e in self._items]

    def build_strings(self) -> list[str]:
        return [self._item_build_string(e) for e in self._items]

    def versions_and_build_strings(self) -> list[str]:
        return [
            " ".join(s for s in (self._item_version(e), self._item_build_string(e)) if s) for e in self._items
        ]

    def versions_trunc(
        self, sep: str = "|", etc: str = "...", threshold: int = 5, remove_duplicates: bool = True
    ) -> str:
        return repr_trunc(self.versions(), sep, etc, threshold, remove_duplicates)

    def build_strings_trunc(
        self, sep: str = "|", etc: str = "...", threshold: int = 5, remove_duplicates: bool = True
    ) -> str:
        return repr_trunc(self.build_strings(), sep, etc, threshold, remove_duplicates)

    def versions_and_build_strings_trunc(
        self, sep: str = "|", etc: str = "...", threshold: int = 5, remove_duplicates: bool = True
    ) -> str:
        return repr_trunc(self.versions_and_build_strings(), sep, etc, threshold, remove_duplicates)

    @staticmethod
    def _item_name(item: E) -> str:
        return item.name

    @staticmethod
    def _item_version(item: E) -> str:
        return item.version

    @staticmethod
    def _item_build_string(item: E) -> str:
        return item.build_string

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return len(self._items) > 0

    def __iter__(self) -> T.Iterator[E]:
        return iter(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return list(self._items) == list(other._items)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._items)!r})"


class PackageListNode(NamedList[PackageNode]):
    pass


class UnresolvedDependencyListNode(NamedList[UnresolvedDependencyNode]):
    pass


class ConstraintListNode(NamedList[ConstraintNode]):
    pass


class DependencyList(NamedList[str]):
    """The dependency strings of an edge, all on the same package name."""

    @staticmethod
    def _item_name(item: str) -> str:
        return DependencyInfo.parse(item).name

    @staticmethod
    def _item_version(item: str) -> str:
        return DependencyInfo.parse(item).version

    @staticmethod
    def _item_build_string(item: str) -> str:
        return DependencyInfo.parse(item).build


CompressedNode = T.Union[RootNode, PackageListNode, UnresolvedDependencyListNode, ConstraintListNode]

_LIST_TYPES: dict[str, type[NamedList]] = {
    "package": PackageListNode,
    "unresolved": UnresolvedDependencyListNode,
    "constraint": ConstraintListNode,
}


def node_variant(node: Node | CompressedNode) -> str:
    if isinstance(node, RootNode):
        return "root"
    if isinstance(node, (PackageNode, PackageListNode)):
        return "package"
    if isinstance(node, (UnresolvedDependencyNode, UnresolvedDependencyListNode)):
        return "unresolved"
    if isinstance(node, (ConstraintNode, ConstraintListNode)):
        return "constraint"
    raise TypeError(f"Unknown node type {type(node).__name__}")


def node_name(node: Node | CompressedNode) -> str:
    return node.name() if isinstance(node, NamedList) else node.name


def node_members(node: Node | CompressedNode) -> list[Node]:
    return list(node) if isinstance(node, NamedList) else [node]


##############################
#  Compressed problem graph  #
##############################


class CompressedProblemsGraph:
    """A problems graph where interchangeable nodes are merged into list nodes.

    Not meant to be modified after construction.
    """

    def __init__(
        self,
        graph: nx.DiGraph,
        root: GroupId,
        conflicts: ConflictMap[GroupId],
        groups: dict[NodeId, GroupId],
        not_installable: T.Iterable[GroupId] = (),
    ) -> None:
        self._graph = graph
        self._root = root
        self._conflicts = conflicts
        self._groups = groups
        self._not_installable = dict.fromkeys(not_installable)

    @staticmethod
    def from_problems_graph(
        pbs: ProblemsGraph | CompressedProblemsGraph, merge_criteria: MergeCriteria | None = None
    ) -> CompressedProblemsGraph:
        return compress(pbs, merge_criteria)

    def root_node(self) -> GroupId:
        return self._root

    def conflicts(self) -> ConflictMap[GroupId]:
        return self._conflicts

    def not_installable(self) -> list[GroupId]:
        return list(self._not_installable)

    def node(self, grp_id: GroupId) -> CompressedNode:
        return self._graph.nodes[grp_id]["data"]

    def nodes(self) -> list[GroupId]:
        return list(self._graph.nodes)

    def successors(self, grp_id: GroupId) -> list[GroupId]:
        return list(self._graph.successors(grp_id))

    def predecessors(self, grp_id: GroupId) -> list[GroupId]:
        return list(self._graph.predecessors(grp_id))

    def edge(self, from_id: GroupId, to_id: GroupId) -> DependencyList:
        return self._graph.edges[from_id, to_id]["data"]

    def edge_dependencies(self, from_id: GroupId, to_id: GroupId) -> list[str]:
        return list(self.edge(from_id, to_id))

    def edges(self) -> dict[tuple[GroupId, GroupId], DependencyList]:
        return {(a, b): attr["data"] for (a, b), attr in self._graph.edges.items()}

    def graph(self) -> tuple[dict[GroupId, CompressedNode], dict[tuple[GroupId, GroupId], DependencyList]]:
        return {n: self.node(n) for n in self._graph.nodes}, self.edges()

    def networkx_graph(self) -> nx.DiGraph:
        return self._graph

    def group_of(self, node_id: NodeId) -> GroupId:
        """Return the group in which a node of the original graph was merged."""
        return self._groups[node_id]

    def __len__(self) -> int:
        return len(self._graph)


#################################
#  Graph compression algorithm  #
#################################


AnyProblemsGraph = T.Union[ProblemsGraph, CompressedProblemsGraph]
MergeCriteria = T.Callable[[AnyProblemsGraph, T.Any, T.Any], bool]


def compatibility_graph(nodes: T.Sequence[N], compatible: T.Callable[[N, N], bool]) -> nx.Graph:
    graph = nx.Graph()
    graph.add_nodes_from(nodes)
    graph.add_edges_from((n1, n2) for n1, n2 in itertools.combinations(nodes, 2) if compatible(n1, n2))
    return graph


def greedy_clique_partition(graph: nx.Graph) -> list[list[N]]:
    graph = graph.copy()
    cliques = []
    while len(graph) > 0:
        max_clique = max(nx.find_cliques(graph), key=len)
        cliques.append(max_clique)
        graph.remove_nodes_from(max_clique)
    return cliques


def split_by(nodes: T.Iterable[N], key: T.Callable[[N], T.Hashable]) -> list[list[N]]:
    """Partition nodes by key, in order of first appearance."""
    parts: dict[T.Hashable, list[N]] = {}
    for n in nodes:
        parts.setdefault(key(n), []).append(n)
    return list(parts.values())


def topological_order(graph: nx.DiGraph) -> list[T.Any]:
    try:
        return list(nx.topological_sort(graph))
    except nx.NetworkXUnfeasible as e:
        raise ProblemsGraphError(f"Cycle detected in the problems graph: {nx.find_cycle(graph)}") from e


def merge_node_indices(g: AnyProblemsGraph, merge_criteria: MergeCriteria | None = None) -> list[list[T.Any]]:
    """Partition the nodes of a problems graph into groups of interchangeable nodes.

    Nodes in a group have the same type and name, the same parent groups, the same children
    groups, and conflict with the same groups.
    Nodes reported as not installable are only grouped together.
    Nodes in conflict with one another are never in the same group.
    The partition is refined until it is stable.
    Groups are sorted by the insertion order of their first node.
    """
    graph = g.networkx_graph()
    conflicts = g.conflicts()
    not_installable = set(g.not_installable())
    # Leaves first
    visit_order = topological_order(graph)[::-1]
    position = {n: i for i, n in enumerate(graph.nodes)}

    def compatible(n1, n2) -> bool:
        return (not conflicts.has_conflict(n1, n2)) and (merge_criteria is None or merge_criteria(g, n1, n2))

    def compatible_partition(nodes: list) -> list[list]:
        if len(nodes) == 1 or all(compatible(a, b) for a, b in itertools.combinations(nodes, 2)):
            return [nodes]
        cliques = greedy_clique_partition(compatibility_graph(nodes, compatible))
        visit_rank = {n: i for i, n in enumerate(nodes)}
        return [sorted(c, key=visit_rank.__getitem__) for c in cliques]

    def node_kind(n) -> tuple[str, bool, str]:
        node = g.node(n)
        name = "" if isinstance(node, RootNode) else node_name(node)
        return node_variant(node), n in not_installable, name

    groups = split_by(visit_order, key=node_kind)
    while True:
        group_of = {n: i for i, grp in enumerate(groups) for n in grp}

        def signature(n) -> tuple[frozenset, frozenset, frozenset]:
            return (
                frozenset(group_of[p] for p in graph.predecessors(n)),
                frozenset(group_of[c] for c in graph.successors(n)),
                frozenset(group_of[c] for c in conflicts.conflicts(n)),
            )

        refined = [sub for grp in groups for sub in split_by(grp, key=signature)]
        refined = [clique for grp in refined for clique in compatible_partition(grp)]
        if len(refined) == len(groups):
            break
        groups = refined

    groups = [sorted(grp, key=position.__getitem__) for grp in groups]
    groups.sort(key=lambda grp: position[grp[0]])
    return groups


def _make_node(nodes: T.Sequence[Node | CompressedNode]) -> CompressedNode:
    variant = node_variant(nodes[0])
    if variant == "root":
        return RootNode()
    return _LIST_TYPES[variant](itertools.chain.from_iterable(node_members(n) for n in nodes))


def compress(g: AnyProblemsGraph, merge_criteria: MergeCriteria | None = None) -> CompressedProblemsGraph:
    """Merge interchangeable nodes of a problems graph.

    A compressed graph can be compressed again, its list nodes are then merged together.
    """
    groups = merge_node_indices(g, merge_criteria)
    group_of = {n: GroupId(i) for i, grp in enumerate(groups) for n in grp}

    graph = nx.DiGraph()
    for grp_id, grp in enumerate(groups):
        graph.add_node(GroupId(grp_id), data=_make_node([g.node(n) for n in grp]))

    old_graph = g.networkx_graph()
    for a in old_graph.nodes:
        for b in old_graph.successors(a):
            grp_a, grp_b = group_of[a], group_of[b]
            if not graph.has_edge(grp_a, grp_b):
                graph.add_edge(grp_a, grp_b, data=DependencyList())
            for dep in g.edge_dependencies(a, b):
                graph.edges[grp_a, grp_b]["data"].add(dep)

    conflicts: ConflictMap[GroupId] = ConflictMap()
    for a, b in g.conflicts().pairs():
        conflicts.add(group_of[a], group_of[b])

    log.debug("Compressed problems graph from %d to %d nodes", len(old_graph), len(graph))
    return CompressedProblemsGraph(
        graph=graph,
        root=group_of[g.root_node()],
        conflicts=conflicts,
        groups=group_of,
        not_installable=unique(group_of[n] for n in g.not_installable()),
    )
