from conflict_explainer import analysis, problems
from conflict_explainer.compression import compress
from conflict_explainer.problems_graph import build_problems_graph, simplify_conflicts


def test_rule_conflicts_df(pkg_a_b_conflict):
    df = analysis.rule_conflicts_df(pkg_a_b_conflict)
    assert len(df) == 5
    assert list(df["type"]) == ["JOB", "JOB", "JOB", "PKG_CONFLICTS", "PKG_CONFLICTS"]
    assert df["target_is_pkg"].all()
    assert not df["source_is_pkg"][:3].any()


def test_package_info_df():
    records, index = problems.create_pubgrub()
    df = analysis.package_info_df(build_problems_graph(records, index=index))
    assert len(df) == 15
    assert set(df["name"]) == {"menu", "dropdown", "icons", "intl"}
    assert (df["build_string"] == "bstring").all()


def test_groups_and_conflicts_df():
    records, index = problems.create_pubgrub()
    cp = compress(simplify_conflicts(build_problems_graph(records, index=index)))
    groups = analysis.groups_df(cp)
    assert list(groups["type"]) == ["root"] + ["package"] * 8
    assert list(groups["size"]) == [1, 5, 1, 1, 1, 4, 1, 1, 1]
    assert groups["in_conflict"].sum() == 4

    conflicts = analysis.conflicts_df(cp.conflicts())
    assert list(conflicts.columns) == ["node", "conflicting_node"]
    assert len(conflicts) == 2


def test_empty_frames():
    assert analysis.rule_conflicts_df([]).empty
    assert list(analysis.package_info_df(build_problems_graph([])).columns)[0] == "id"
