from typing import Iterable

import pandas as pd

from .compression import CompressedProblemsGraph, NamedList, node_name, node_variant
from .conflicts import ConflictMap
from .problems_graph import PackageNode, ProblemsGraph
from .records import RuleConflict


def rule_conflicts_df(records: Iterable[RuleConflict]) -> pd.DataFrame:
    problems = []
    for p in records:
        problems.append(
            {
                "type": p.type.name,
                "source_id": p.source_id,
                "source_is_pkg": p.source is not None,
                "dependency": p.dep,
                "dependency_id": p.dep_id,
                "target_id": p.target_id,
                "target_is_pkg": p.target is not None,
                "explanation": str(p),
            }
        )
    return pd.DataFrame(
        problems,
        columns=[
            "type",
            "source_id",
            "source_is_pkg",
            "dependency",
            "dependency_id",
            "target_id",
            "target_is_pkg",
            "explanation",
        ],
    )


def package_info_df(pbs: ProblemsGraph) -> pd.DataFrame:
    pkgs = []
    for node_id in pbs.nodes():
        pkg = pbs.node(node_id)
        if isinstance(pkg, PackageNode):
            pkgs.append(
                {
                    "id": node_id,
                    "name": pkg.name,
                    "version": pkg.version,
                    "build_string": pkg.build_string,
                    "build_number": pkg.build_number,
                    "channel": pkg.channel,
                }
            )
    return pd.DataFrame(pkgs, columns=["id", "name", "version", "build_string", "build_number", "channel"])


def groups_df(cp: CompressedProblemsGraph) -> pd.DataFrame:
    groups = []
    not_installable = set(cp.not_installable())
    for grp_id in cp.nodes():
        node = cp.node(grp_id)
        is_list = isinstance(node, NamedList)
        groups.append(
            {
                "id": grp_id,
                "type": node_variant(node),
                "name": node_name(node),
                "size": len(node) if is_list else 1,
                "versions": node.versions_trunc() if is_list else "",
                "in_conflict": cp.conflicts().in_conflict(grp_id),
                "not_installable": grp_id in not_installable,
            }
        )
    return pd.DataFrame(
        groups, columns=["id", "type", "name", "size", "versions", "in_conflict", "not_installable"]
    )


def conflicts_df(conflicts: ConflictMap) -> pd.DataFrame:
    return pd.DataFrame(list(conflicts.pairs()), columns=["node", "conflicting_node"])
