from __future__ import annotations

import dataclasses
import enum
import typing as T

from .compression import (
    CompressedNode,
    CompressedProblemsGraph,
    ConstraintListNode,
    DependencyList,
    GroupId,
    MergeCriteria,
    PackageListNode,
    UnresolvedDependencyListNode,
    compress,
    node_name,
)
from .conflicts import ConflictMap
from .params import GraphicsParams
from .problems_graph import PackageIndex, build_problems_graph, simplify_conflicts
from .records import RuleConflict
from .utils import repr_trunc, unique, version_key

NO_INFORMATION_MESSAGE = "Could not solve the environment, but no information is available on the conflicts."


############################
#  Error message crafting  #
############################


class ExplanationType(enum.Enum):
    # A single node with no ancestors or successors.
    standalone = enum.auto()
    # A root node with no ancestors and at least one successor.
    root = enum.auto()
    # A leaf node with at least one ancestors and no successor.
    leaf = enum.auto()
    # A node that has already been visited, in a DAG in must have at least one ancestor.
    visited = enum.auto()
    # Indicate the begining of a dependency split (multiple edges with same dependencies).
    split = enum.auto()
    # A regular node with at least one ancestor and at least one successor.
    diving = enum.auto()

    @classmethod
    def from_position(cls, has_predecessors: bool, has_successors: bool, is_visited: bool) -> ExplanationType:
        if not has_successors:
            return cls.leaf if has_predecessors else cls.standalone
        elif is_visited:
            return cls.visited
        else:
            return cls.diving if has_predecessors else cls.root


@dataclasses.dataclass
class ExplanationNode:
    grp_id: GroupId | None
    grp_id_from: GroupId | None
    dep_from: DependencyList | None
    type: ExplanationType
    in_split: bool
    status: bool
    tree_position: list[bool]

    @property
    def depth(self) -> int:
        return len(self.tree_position)

    @property
    def is_root(self) -> bool:
        return self.depth == 0


@dataclasses.dataclass
class GraphWalker:
    graph: CompressedProblemsGraph
    leaf_status: T.Callable[[GroupId], bool]
    split_sort_key: T.Callable[[GroupId], T.Any] = lambda g: g
    installable: T.Callable[[GroupId], bool] = lambda g: True

    def successors_per_dep(self, grp_id: GroupId) -> dict[tuple[str, ...], list[GroupId]]:
        successors: dict[tuple[str, ...], list[GroupId]] = {}
        for s in self.graph.successors(grp_id):
            successors.setdefault(tuple(self.graph.edge(grp_id, s)), []).append(s)
        return successors

    def visit(self, root: GroupId) -> list[ExplanationNode]:
        return self.visit_node(
            grp_id=root,
            grp_id_from=None,
            tree_position=[],
            in_split=False,
            visited_nodes={},
        )

    def visit_split(
        self,
        grp_id_from: GroupId,
        children: list[GroupId],
        tree_position: list[bool],
        visited_nodes: dict[GroupId, bool],
    ) -> list[ExplanationNode]:
        children = sorted(children, key=self.split_sort_key)
        # Split node is prepended dynamically
        path: list[ExplanationNode] = [
            ExplanationNode(
                grp_id=None,
                grp_id_from=grp_id_from,
                dep_from=self.graph.edge(grp_id_from, children[0]),
                tree_position=tree_position,
                type=ExplanationType.split,
                in_split=True,
                status=False,  # Placeholder
            )
        ]
        for i, c in enumerate(children):
            child_path = self.visit_node(
                grp_id=c,
                grp_id_from=grp_id_from,
                tree_position=tree_position + [(i == len(children) - 1)],
                in_split=True,
                visited_nodes=visited_nodes,
            )
            path.extend(child_path)
            # If there are any valid option in the split, the split is iself valid
            path[0].status |= child_path[0].status
        return path

    def visit_node(
        self,
        grp_id: GroupId,
        grp_id_from: GroupId | None,
        tree_position: list[bool],
        in_split: bool,
        visited_nodes: dict[GroupId, bool],
    ) -> list[ExplanationNode]:
        successors = self.successors_per_dep(grp_id)
        depth = len(tree_position)

        explanation = ExplanationType.from_position(
            has_predecessors=(depth > 0),
            has_successors=(len(successors) > 0),
            is_visited=(grp_id in visited_nodes),
        )

        current = ExplanationNode(
            grp_id=grp_id,
            grp_id_from=grp_id_from,
            dep_from=None if grp_id_from is None else self.graph.edge(grp_id_from, grp_id),
            type=explanation,
            in_split=in_split,
            tree_position=tree_position,
            status=self.installable(grp_id),  # Dependencies are accounted for later
        )

        if len(successors) == 0:
            current.status = self.leaf_status(grp_id)
            visited_nodes[grp_id] = current.status
            return [current]
        if grp_id in visited_nodes:
            current.status = visited_nodes[grp_id]
            return [current]

        path: list[ExplanationNode] = [current]
        for i, children in enumerate(successors.values()):
            is_last = i == len(successors) - 1
            if len(children) > 1:
                child_path = self.visit_split(
                    children=children,
                    grp_id_from=grp_id,
                    tree_position=tree_position + [is_last],
                    visited_nodes=visited_nodes,
                )
            else:
                child_path = self.visit_node(
                    grp_id=children[0],
                    grp_id_from=grp_id,
                    tree_position=tree_position + [is_last],
                    in_split=False,
                    visited_nodes=visited_nodes,
                )
            # All dependencies need to be valid for a parent to be valid
            current.status &= child_path[0].status
            path.extend(child_path)

        visited_nodes[grp_id] = current.status
        return path


@dataclasses.dataclass
class Names:
    graph: CompressedProblemsGraph
    params: GraphicsParams = dataclasses.field(default_factory=GraphicsParams)

    def ranges_repr(self, name: str, ranges: T.Iterable[str]) -> str:
        ranges = [r for r in ranges if r]
        if self.params.remove_duplicates:
            ranges = unique(ranges)
        if len(ranges) == 0:
            return name
        if len(ranges) == 1:
            return f"{name} {ranges[0]}"
        return f"{name} [{repr_trunc(ranges, **self.params.trunc_options)}]"

    def group_name(self, grp_id: GroupId) -> str:
        return node_name(self.graph.node(grp_id))

    def group_repr(self, grp_id: GroupId) -> str:
        node: CompressedNode = self.graph.node(grp_id)
        if not isinstance(node, PackageListNode):
            return self.ranges_repr(node.name(), node.versions_and_build_strings())
        versions = unique(node.versions())
        if len(versions) > 1:
            return f"{node.name()} [{node.versions_trunc(**self.params.trunc_options)}]"
        if len(unique(node.build_strings())) > 1:
            return f"{node.name()} {versions[0]} [{node.build_strings_trunc(**self.params.trunc_options)}]"
        return f"{node.name()} {versions[0]}"

    def dep_repr(self, deps: DependencyList) -> str:
        return self.ranges_repr(deps.name(), deps.versions_and_build_strings())


@dataclasses.dataclass
class ProblemExplainer:
    names: Names
    conflicts: ConflictMap[GroupId]
    params: GraphicsParams = dataclasses.field(default_factory=GraphicsParams)

    def explain(self, path: T.Sequence[ExplanationNode]) -> str:
        message: list[str] = []
        for i, self.node in enumerate(path):
            if i == len(path) - 1:
                term = "."
            elif self.node.type in [ExplanationType.leaf, ExplanationType.visited]:
                term = ";"
            else:
                term = ""

            if self.node.depth > 0:
                pos = self.node.tree_position
                message += [self.params.indent[j == len(pos) - 1][is_last] for j, is_last in enumerate(pos)]
            message += [
                *getattr(self, f"explain_{self.node.type.name}")(),
                term,
                "\n",
            ]

        message.pop()  # Last line break
        return "".join(message)

    def color(self, msg: str) -> str:
        palette = self.params.palette
        return palette.available(msg) if self.node.status else palette.unavailable(msg)

    @property
    def dep_repr(self) -> str:
        return self.color(self.names.dep_repr(self.node.dep_from))

    @property
    def grp_repr(self) -> str:
        return self.color(self.names.group_repr(self.node.grp_id))

    @property
    def pkg_repr(self) -> str:
        return self.grp_repr if self.node.in_split else self.dep_repr

    @property
    def conflicts_repr(self) -> str:
        grp_ids = sorted(self.conflicts.conflicts(self.node.grp_id))
        return ", ".join(self.params.palette.unavailable(self.names.group_repr(g)) for g in grp_ids)

    @property
    def conflict_note(self) -> str:
        if not self.conflicts.in_conflict(self.node.grp_id):
            return ""
        return f" (in conflict with {self.conflicts_repr})"

    def explain_standalone(self) -> tuple[str, ...]:
        return (NO_INFORMATION_MESSAGE.rstrip("."),)

    def explain_root(self) -> tuple[str, ...]:
        return ("The following packages are incompatible",)

    def explain_diving(self) -> tuple[str, ...]:
        if self.node.depth == 1:
            return (
                self.pkg_repr,
                self.conflict_note,
                " is installable and it requires" if self.node.status else " is uninstallable because it requires",
            )
        return (self.pkg_repr, self.conflict_note, ", which requires")

    def explain_split(self) -> tuple[str, ...]:
        if self.node.depth == 1:
            return (
                self.dep_repr,
                " is installable with the potential" if self.node.status else " is uninstallable with no viable",
                " options",
            )
        return (
            self.dep_repr,
            " with ",
            "the potential" if self.node.status else "no viable",
            " options",
        )

    def explain_leaf(self) -> tuple[str, ...]:
        node = self.names.graph.node(self.node.grp_id)
        if isinstance(node, UnresolvedDependencyListNode):
            return (
                self.pkg_repr,
                " does not exist" if self.node.depth == 1 else ", which does not exist",
                " (perhaps a typo or a missing channel)",
            )
        elif self.node.grp_id in self.names.graph.not_installable():
            return (
                self.pkg_repr,
                " is not installable" if self.node.depth == 1 else ", which is not installable",
                self.conflict_note,
            )
        elif self.node.status:
            return (
                self.pkg_repr,
                " is requested and" if self.node.depth == 1 else ", which",
                " can be satisfied" if isinstance(node, ConstraintListNode) else " can be installed",
                self.conflict_note,
            )
        elif self.conflicts.in_conflict(self.node.grp_id):
            return (
                self.pkg_repr,
                " is uninstallable because it" if self.node.depth == 1 else ", which",
                " conflicts with any installable versions of ",
                self.conflicts_repr,
            )
        else:
            return (self.pkg_repr, ", which cannot be installed for an unknown reason")

    def explain_visited(self) -> tuple[str, ...]:
        return (
            self.pkg_repr,
            self.conflict_note,
            ", which ",
            "can" if self.node.status else "cannot",
            " be installed (as previously explained)",
        )


def header_message(graph: CompressedProblemsGraph, params: GraphicsParams | None = None) -> str | None:
    params = GraphicsParams() if params is None else params
    names = Names(graph, params)
    root = graph.root_node()
    deps = unique(names.dep_repr(graph.edge(root, s)) for s in graph.successors(root))
    if len(deps) == 0:
        return None
    return "Could not find any compatible versions for requested package{s} {pkgs}.".format(
        s=("s" if len(deps) > 1 else ""), pkgs=", ".join(params.palette.unavailable(d) for d in deps)
    )


def explain_graph(graph: CompressedProblemsGraph, params: GraphicsParams | None = None) -> str:
    params = GraphicsParams() if params is None else params
    root = graph.root_node()
    if len(graph.successors(root)) == 0:
        return NO_INFORMATION_MESSAGE

    names = Names(graph, params)
    conflicts = graph.conflicts()

    # Packages are considered installable the first time they appear in a conflict, the next
    # time it is considered a conflict.
    installables: set[GroupId] = set()

    not_installable = set(graph.not_installable())

    def leaf_status(grp_id: GroupId) -> bool:
        if isinstance(graph.node(grp_id), UnresolvedDependencyListNode) or grp_id in not_installable:
            return False
        if conflicts.in_conflict(grp_id):
            if any(c in installables for c in conflicts.conflicts(grp_id)):
                return False
            installables.add(grp_id)
        return True

    def split_sort_key(grp_id: GroupId) -> tuple[T.Any, T.Any]:
        versions = [version_key(v) for v in graph.node(grp_id).versions()]
        return min(versions), max(versions)

    pb_explainer = ProblemExplainer(names, conflicts, params)
    problem_msg = pb_explainer.explain(
        GraphWalker(
            graph=graph,
            leaf_status=leaf_status,
            split_sort_key=split_sort_key,
            installable=lambda g: g not in not_installable,
        ).visit(root)
    )

    header_msg = header_message(graph, params)
    return "Error: " + "\n\n".join([m for m in [header_msg, problem_msg] if m is not None])


def graph_structure(
    graph: CompressedProblemsGraph,
) -> tuple[dict[GroupId, CompressedNode], dict[tuple[GroupId, GroupId], DependencyList]]:
    """Return the nodes and edges of a compressed graph, for callers rendering it themselves."""
    return graph.graph()


def explain_problems(
    records: T.Iterable[RuleConflict],
    index: PackageIndex | None = None,
    params: GraphicsParams | None = None,
    merge_criteria: MergeCriteria | None = None,
) -> str:
    pbs = simplify_conflicts(build_problems_graph(records, index=index))
    return explain_graph(compress(pbs, merge_criteria), params)
