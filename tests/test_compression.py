import networkx as nx
import pytest

from conftest import conflict, job, requires
from conflict_explainer import problems
from conflict_explainer.compression import (
    CompressedProblemsGraph,
    DependencyList,
    PackageListNode,
    UnresolvedDependencyListNode,
    compress,
    greedy_clique_partition,
    node_name,
)
from conflict_explainer.problems_graph import (
    PackageNode,
    ProblemsGraph,
    ProblemsGraphError,
    RootNode,
    build_problems_graph,
    simplify_conflicts,
)
from conflict_explainer.records import PackageInfo, RuleConflict, RuleKind


def assert_homomorphism(pbs, cp):
    for a, b, dep in pbs.edges():
        grp_a, grp_b = cp.group_of(a), cp.group_of(b)
        assert dep in cp.edge_dependencies(grp_a, grp_b)
    for a, b in pbs.conflicts().pairs():
        assert cp.conflicts().has_conflict(cp.group_of(a), cp.group_of(b))
    for n in pbs.nodes():
        if n != pbs.root_node():
            assert pbs.node(n) in list(cp.node(cp.group_of(n)))


class TestNamedList:
    def test_truncation(self):
        versions = ["1.0", "1.1", "1.2", "1.3", "1.4", "1.5", "1.6"]
        node = PackageListNode(PackageNode("pkg", v, "bstring") for v in versions)
        assert node.name() == "pkg"
        assert node.versions_trunc() == "1.0|1.1|1.2|1.3|1.4|..."
        assert node.versions_trunc(sep=", ", etc="etc", threshold=3) == "1.0, 1.1, 1.2, etc"
        assert node.build_strings_trunc() == "bstring"
        assert node.build_strings_trunc(remove_duplicates=False, threshold=2) == "bstring|bstring|..."

    def test_versions_and_build_strings(self):
        node = PackageListNode([PackageNode("pkg", "1.0", "h1"), PackageNode("pkg", "1.0", "h2")])
        assert node.versions_and_build_strings() == ["1.0 h1", "1.0 h2"]
        assert node.versions_and_build_strings_trunc() == "1.0 h1|1.0 h2"

    def test_set_semantics(self):
        node = PackageListNode()
        assert not node
        node.add(PackageNode("pkg", "1.0"))
        node.add(PackageNode("pkg", "2.0"))
        node.add(PackageNode("pkg", "1.0"))
        assert len(node) == 2
        assert PackageNode("pkg", "2.0") in node
        assert node.versions() == ["1.0", "2.0"]

    def test_empty_has_no_name(self):
        with pytest.raises(ValueError):
            PackageListNode().name()

    def test_equality_depends_on_type(self):
        assert PackageListNode([PackageNode("a")]) == PackageListNode([PackageNode("a")])
        assert PackageListNode() != UnresolvedDependencyListNode()

    def test_dependency_list(self):
        deps = DependencyList(["python>=3.8", "python<3.12"])
        assert deps.name() == "python"
        assert deps.versions() == [">=3.8", "<3.12"]
        assert DependencyList(["numpy 1.2 py_0"]).build_strings() == ["py_0"]


def test_greedy_clique_partition():
    graph = nx.Graph([(1, 2), (2, 3), (1, 3), (3, 4), (5, 6)])
    graph.add_node(7)
    cliques = greedy_clique_partition(graph)
    assert sorted(cliques[0]) == [1, 2, 3]
    assert sorted(sorted(c) for c in cliques) == [[1, 2, 3], [4], [5, 6], [7]]
    # The input graph is left untouched
    assert len(graph) == 7


class TestCompress:
    def test_empty(self):
        cp = compress(build_problems_graph([]))
        assert cp.nodes() == [cp.root_node()]
        assert isinstance(cp.node(cp.root_node()), RootNode)
        assert not cp.conflicts()

    def test_merges_alternatives(self, pkg_a_b_conflict):
        pbs = build_problems_graph(pkg_a_b_conflict)
        cp = compress(pbs)
        assert len(cp) == 3
        root, grp_a, grp_b = cp.nodes()
        assert root == cp.root_node()
        assert isinstance(cp.node(grp_a), PackageListNode)
        assert cp.node(grp_a).versions() == ["1.0", "1.1"]
        assert node_name(cp.node(grp_b)) == "pkgB"
        assert list(cp.conflicts().pairs()) == [(grp_a, grp_b)]
        assert cp.edge_dependencies(root, grp_a) == ["pkgA"]
        assert_homomorphism(pbs, cp)

    def test_from_problems_graph(self, pkg_a_b_conflict):
        pbs = build_problems_graph(pkg_a_b_conflict)
        cp = CompressedProblemsGraph.from_problems_graph(pbs)
        assert cp.graph() == compress(pbs).graph()

    def test_conflicting_nodes_are_never_merged(self):
        records = [job("a", "a-1.0-0"), job("a", "a-2.0-0"), conflict("a-1.0-0", "a-2.0-0", RuleKind.PKG_SAME_NAME)]
        pbs = build_problems_graph(records)
        cp = compress(pbs)
        assert len(cp) == 3
        assert cp.group_of(1) != cp.group_of(2)
        assert cp.conflicts().has_conflict(cp.group_of(1), cp.group_of(2))
        # Once the conflict between alternatives is removed, they can be merged
        assert len(compress(simplify_conflicts(pbs))) == 2

    def test_different_children_are_not_merged(self):
        records = [
            job("a", "a-1.0-0"),
            job("a", "a-2.0-0"),
            requires("a-1.0-0", "b>=1", "b-1.0-0"),
        ]
        cp = compress(build_problems_graph(records))
        assert len(cp) == 4

    def test_not_installable_are_not_merged_with_installable(self):
        records = [
            job("a", "a-1.0-0"),
            job("a", "a-2.0-0"),
            job("a", "a-3.0-0"),
            RuleConflict(type=RuleKind.PKG_NOT_INSTALLABLE, source=PackageInfo.parse("a-1.0-0")),
            RuleConflict(type=RuleKind.PKG_NOT_INSTALLABLE, source=PackageInfo.parse("a-3.0-0")),
        ]
        pbs = build_problems_graph(records)
        cp = compress(pbs)
        assert len(cp) == 3
        assert cp.group_of(1) == cp.group_of(3)
        assert cp.not_installable() == [cp.group_of(1)]
        assert cp.node(cp.group_of(1)).versions() == ["1.0", "3.0"]
        assert compress(cp).not_installable() == [cp.group_of(1)]

    def test_same_dependency_different_names(self):
        records = [job("a", "a-1.0-0"), job("a", "c-1.0-0")]
        assert len(compress(build_problems_graph(records))) == 3

    def test_merge_criteria(self, pkg_a_b_conflict):
        pbs = build_problems_graph(pkg_a_b_conflict)
        assert len(compress(pbs, merge_criteria=lambda g, n1, n2: False)) == 4

        calls = []

        def criteria(g, n1, n2):
            calls.append((n1, n2))
            return g.node(n1).version.split(".")[0] == g.node(n2).version.split(".")[0]

        assert len(compress(pbs, merge_criteria=criteria)) == 3
        assert calls

    def test_edges_are_merged(self):
        pbs = build_problems_graph(
            [
                job("menu", "menu-1.0-0"),
                job("menu", "menu-1.1-0"),
                requires("menu-1.0-0", "dropdown>=1", "dropdown-1.0-0"),
                requires("menu-1.1-0", "dropdown>=1.1", "dropdown-1.0-0"),
            ]
        )
        cp = compress(pbs)
        assert len(cp) == 3
        grp_menu, grp_dropdown = cp.group_of(1), cp.group_of(3)
        assert cp.edge(grp_menu, grp_dropdown) == DependencyList(["dropdown>=1", "dropdown>=1.1"])
        assert_homomorphism(pbs, cp)

    def test_cycle(self):
        pbs = ProblemsGraph()
        a = pbs.add_node(PackageNode.from_info(PackageInfo("a", "1.0")))
        b = pbs.add_node(PackageNode.from_info(PackageInfo("b", "1.0")))
        pbs.add_edge(pbs.root_node(), a, "a")
        pbs.add_edge(a, b, "b")
        pbs.add_edge(b, a, "a")
        with pytest.raises(ProblemsGraphError):
            compress(pbs)

    @pytest.mark.parametrize(
        "create",
        [
            problems.create_basic_conflict,
            problems.create_pubgrub,
            problems.create_run_constrained,
            problems.create_missing_dependency,
        ],
    )
    def test_idempotent(self, create):
        records, index = create()
        pbs = simplify_conflicts(build_problems_graph(records, index=index))
        cp = compress(pbs)
        assert_homomorphism(pbs, cp)
        again = compress(cp)
        assert len(again) == len(cp)
        assert len(list(again.conflicts().pairs())) == len(list(cp.conflicts().pairs()))

    def test_pubgrub(self):
        records, index = problems.create_pubgrub()
        cp = compress(simplify_conflicts(build_problems_graph(records, index=index)))
        names = [node_name(cp.node(g)) for g in cp.nodes()]
        assert names == ["root", "menu", "menu", "icons", "intl", "dropdown", "dropdown", "icons", "intl"]
        assert cp.node(1).versions() == ["1.5.0", "1.4.0", "1.3.0", "1.2.0", "1.1.0"]
        assert cp.node(5).versions() == ["2.3.0", "2.2.0", "2.1.0", "2.0.0"]
        assert sorted(tuple(sorted(p)) for p in cp.conflicts().pairs()) == [(3, 7), (4, 8)]

    def test_missing_dependency(self):
        records, index = problems.create_missing_dependency()
        cp = compress(build_problems_graph(records, index=index))
        assert len(cp) == 3
        assert isinstance(cp.node(2), UnresolvedDependencyListNode)
        assert cp.edge_dependencies(1, 2) == ["libfoo>=3"]
