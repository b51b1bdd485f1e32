from __future__ import annotations

import dataclasses
import logging
import typing as T

import networkx as nx

from .conflicts import ConflictMap
from .records import DependencyInfo, PackageInfo, RuleConflict, RuleKind
from .utils import Counter

log = logging.getLogger(__name__)

NodeId = T.NewType("NodeId", int)


class ProblemsGraphError(RuntimeError):
    """Raised when the solver output breaks an invariant of the problems graph."""


####################
#  Node variants   #
####################


@dataclasses.dataclass(frozen=True)
class RootNode:
    name: T.ClassVar[str] = "root"


@dataclasses.dataclass(frozen=True)
class PackageNode(PackageInfo):
    @classmethod
    def from_info(cls, info: PackageInfo) -> PackageNode:
        return cls(**{f.name: getattr(info, f.name) for f in dataclasses.fields(PackageInfo)})


@dataclasses.dataclass(frozen=True)
class _DependencyNode:
    spec: str

    @property
    def info(self) -> DependencyInfo:
        return DependencyInfo.parse(self.spec)

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def version(self) -> str:
        return self.info.version

    @property
    def build_string(self) -> str:
        return self.info.build

    def __str__(self) -> str:
        return self.spec


class UnresolvedDependencyNode(_DependencyNode):
    """A dependency that no package provides."""


class ConstraintNode(_DependencyNode):
    """A run constraint of a package, conflicting with another package."""


Node = T.Union[RootNode, PackageNode, UnresolvedDependencyNode, ConstraintNode]


################
#  The graph   #
################


class ProblemsGraph:
    """Graph of the packages and dependencies involved in a failed solve.

    Nodes are addressed by integer ids, never reused.
    Edges go from a node to what it requires and are keyed by the dependency string, so that
    the same pair of nodes can be related by different dependencies.
    """

    def __init__(self) -> None:
        self._graph = nx.MultiDiGraph()
        self._conflicts: ConflictMap[NodeId] = ConflictMap()
        self._not_installable: dict[NodeId, None] = {}
        self._counter = Counter()
        self._root = self.add_node(RootNode())

    def add_node(self, node: Node) -> NodeId:
        node_id = NodeId(self._counter())
        self._graph.add_node(node_id, data=node)
        return node_id

    def add_edge(self, from_id: NodeId, to_id: NodeId, dependency: str) -> None:
        self._graph.add_edge(from_id, to_id, key=dependency, data=dependency)

    def add_conflict(self, a: NodeId, b: NodeId) -> bool:
        return self._conflicts.add(a, b)

    def remove_node(self, node_id: NodeId) -> None:
        if node_id == self._root:
            raise ProblemsGraphError("The root node cannot be removed")
        self._conflicts.remove(node_id)
        self._not_installable.pop(node_id, None)
        self._graph.remove_node(node_id)

    def add_not_installable(self, node_id: NodeId) -> None:
        self._not_installable[node_id] = None

    def root_node(self) -> NodeId:
        return self._root

    def conflicts(self) -> ConflictMap[NodeId]:
        return self._conflicts

    def not_installable(self) -> list[NodeId]:
        """Nodes the solver reported as not installable by themselves."""
        return list(self._not_installable)

    def node(self, node_id: NodeId) -> Node:
        return self._graph.nodes[node_id]["data"]

    def nodes(self) -> list[NodeId]:
        return list(self._graph.nodes)

    def successors(self, node_id: NodeId) -> list[NodeId]:
        return list(self._graph.successors(node_id))

    def predecessors(self, node_id: NodeId) -> list[NodeId]:
        return list(self._graph.predecessors(node_id))

    def edge_dependencies(self, from_id: NodeId, to_id: NodeId) -> list[str]:
        return list(self._graph.get_edge_data(from_id, to_id, default={}))

    def edges(self) -> list[tuple[NodeId, NodeId, str]]:
        return list(self._graph.edges(keys=True))

    def graph(self) -> tuple[dict[NodeId, Node], list[tuple[NodeId, NodeId, str]]]:
        return {n: self.node(n) for n in self._graph.nodes}, self.edges()

    def networkx_graph(self) -> nx.MultiDiGraph:
        return self._graph

    def copy(self) -> ProblemsGraph:
        other = ProblemsGraph.__new__(ProblemsGraph)
        other._graph = self._graph.copy()
        other._conflicts = self._conflicts.copy()
        other._not_installable = dict(self._not_installable)
        other._counter = Counter(self._counter.cnt)
        other._root = self._root
        return other

    def __len__(self) -> int:
        return len(self._graph)


#########################################
#  Construction from the solver output  #
#########################################


class PackageIndex(T.Protocol):
    def select_packages(self, dep_id: int | None, dep: str) -> T.Sequence[PackageInfo] | None:
        """Return the packages matching a dependency, or None if it is not known."""


@dataclasses.dataclass
class DictPackageIndex:
    packages: dict[str, list[PackageInfo]] = dataclasses.field(default_factory=dict)

    def select_packages(self, dep_id: int | None, dep: str) -> T.Sequence[PackageInfo] | None:
        return self.packages.get(dep)


@dataclasses.dataclass
class ProblemsGraphBuilder:
    index: PackageIndex | None = None
    pbs: ProblemsGraph = dataclasses.field(default_factory=ProblemsGraph)
    node_ids: dict[tuple[str, T.Hashable], NodeId] = dataclasses.field(default_factory=dict)

    def add_record(self, record: RuleConflict) -> None:
        handler = getattr(self, f"add_{record.type.name.lower()}", None)
        if handler is not None:
            handler(record)
        elif record.type == RuleKind.UNKNOWN:
            log.warning("Problem type not implemented %s: %s", record.type.name, record.description)
        else:
            log.debug("Ignoring problem of type %s: %s", record.type.name, record.description)

    def finalize(self) -> ProblemsGraph:
        graph = self.pbs.networkx_graph()
        reachable = nx.descendants(graph, self.pbs.root_node())
        unreachable = [n for n in graph.nodes if n != self.pbs.root_node() and n not in reachable]
        for node_id in unreachable:
            self.pbs.remove_node(node_id)
        if unreachable:
            log.debug("Pruned %d nodes not reachable from the root", len(unreachable))
        return self.pbs

    ##############
    #  Handlers  #
    ##############

    def add_job(self, record: RuleConflict) -> None:
        # A top level requirement
        self.add_dependency_edges(self.pbs.root_node(), record)

    add_pkg = add_job

    def add_pkg_requires(self, record: RuleConflict) -> None:
        # Not all dependencies of a package appear, only enough to explain the problem
        self.add_dependency_edges(self.add_package(self.expect_source(record)), record)

    def add_job_nothing_provides_dep(self, record: RuleConflict) -> None:
        # A top level dependency does not exist, could be a wrong name or a missing channel
        dep = self.expect_dep(record)
        self.pbs.add_edge(self.pbs.root_node(), self.add_unresolved(dep), dep)

    add_job_unknown_package = add_job_nothing_provides_dep

    def add_pkg_nothing_provides_dep(self, record: RuleConflict) -> None:
        dep = self.expect_dep(record)
        self.pbs.add_edge(self.add_package(self.expect_source(record)), self.add_unresolved(dep), dep)

    def add_pkg_conflicts(self, record: RuleConflict) -> None:
        src_id = self.add_package(self.expect_source(record))
        tgt_id = self.add_package(self.expect_target(record))
        if src_id == tgt_id:
            log.debug("Ignoring conflict of %s with itself", record.source)
            return
        self.pbs.add_conflict(src_id, tgt_id)

    add_pkg_same_name = add_pkg_conflicts
    add_pkg_obsoletes = add_pkg_conflicts
    add_pkg_implicit_obsoletes = add_pkg_conflicts
    add_pkg_installed_obsoletes = add_pkg_conflicts

    def add_pkg_self_conflict(self, record: RuleConflict) -> None:
        if record.target is None:
            self.add_package(self.expect_source(record))
        else:
            self.add_pkg_conflicts(record)

    def add_pkg_constrains(self, record: RuleConflict) -> None:
        # The conflict is between the target and a constraint child of the source
        src_id = self.add_package(self.expect_source(record))
        tgt_id = self.add_package(self.expect_target(record))
        dep = self.expect_dep(record)
        cons_id = self.add_constraint(dep)
        self.pbs.add_edge(src_id, cons_id, dep)
        self.pbs.add_conflict(cons_id, tgt_id)

    def add_pkg_not_installable(self, record: RuleConflict) -> None:
        self.pbs.add_not_installable(self.add_package(self.expect_source(record)))

    #############
    #  Helpers  #
    #############

    def add_dependency_edges(self, from_id: NodeId, record: RuleConflict) -> None:
        dep = self.expect_dep(record)
        candidates = None
        if self.index is not None:
            candidates = self.index.select_packages(record.dep_id, dep)
        if candidates is None and record.target is not None:
            candidates = [record.target]
        if candidates is None:
            # Unknown, not missing
            log.debug("No candidates known for dependency %s of problem %s", dep, record.type.name)
            return

        if len(candidates) == 0:
            self.pbs.add_edge(from_id, self.add_unresolved(dep), dep)
            return
        for pkg in candidates:
            to_id = self.add_package(pkg)
            if to_id == from_id:
                log.debug("Ignoring dependency %s of %s on itself", dep, pkg)
                continue
            self.pbs.add_edge(from_id, to_id, dep)

    def add_package(self, info: PackageInfo) -> NodeId:
        return self._add(("package", info.key), lambda: PackageNode.from_info(info))

    def add_unresolved(self, dep: str) -> NodeId:
        return self._add(("unresolved", dep), lambda: UnresolvedDependencyNode(dep))

    def add_constraint(self, dep: str) -> NodeId:
        return self._add(("constraint", dep), lambda: ConstraintNode(dep))

    def _add(self, key: tuple[str, T.Hashable], make: T.Callable[[], Node]) -> NodeId:
        if (node_id := self.node_ids.get(key)) is None:
            node_id = self.node_ids[key] = self.pbs.add_node(make())
        return node_id

    @staticmethod
    def expect_source(record: RuleConflict) -> PackageInfo:
        if record.source is None:
            raise ProblemsGraphError(f"Problem of type {record.type.name} has no source package: {record!r}")
        return record.source

    @staticmethod
    def expect_target(record: RuleConflict) -> PackageInfo:
        if record.target is None:
            raise ProblemsGraphError(f"Problem of type {record.type.name} has no target package: {record!r}")
        return record.target

    @staticmethod
    def expect_dep(record: RuleConflict) -> str:
        if not record.dep:
            raise ProblemsGraphError(f"Problem of type {record.type.name} has no dependency: {record!r}")
        return record.dep


def build_problems_graph(
    records: T.Iterable[RuleConflict], index: PackageIndex | None = None
) -> ProblemsGraph:
    builder = ProblemsGraphBuilder(index=index)
    for record in records:
        builder.add_record(record)
    return builder.finalize()


def simplify_conflicts(pbs: ProblemsGraph) -> ProblemsGraph:
    """Remove conflicts between versions of a package that are alternatives for the same parents.

    Such conflicts only state that a single version of a package can be installed.
    They are already conveyed by the alternatives and prevent the versions from being merged.
    """
    out = pbs.copy()
    conflicts = out.conflicts()
    for a, b in list(conflicts.pairs()):
        node_a, node_b = out.node(a), out.node(b)
        if (
            isinstance(node_a, PackageNode)
            and isinstance(node_b, PackageNode)
            and node_a.name == node_b.name
            and set(out.predecessors(a)) == set(out.predecessors(b))
        ):
            log.debug("Removing conflict between alternatives %s and %s", node_a, node_b)
            conflicts.discard(a, b)
    return out
