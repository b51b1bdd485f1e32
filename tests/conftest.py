"""
Shared fixtures and record helpers.
"""
import pytest

from conflict_explainer.records import PackageInfo, RuleConflict, RuleKind


def pkg(dist: str) -> PackageInfo:
    return PackageInfo.parse(dist)


def job(dep: str, target: str | None = None) -> RuleConflict:
    return RuleConflict(
        type=RuleKind.JOB,
        dep=dep,
        target=None if target is None else pkg(target),
        description=f"package {dep} is requested",
    )


def requires(source: str, dep: str, target: str | None = None) -> RuleConflict:
    return RuleConflict(
        type=RuleKind.PKG_REQUIRES,
        source=pkg(source),
        dep=dep,
        target=None if target is None else pkg(target),
        description=f"package {source} requires {dep}",
    )


def conflict(source: str, target: str, kind: RuleKind = RuleKind.PKG_CONFLICTS) -> RuleConflict:
    return RuleConflict(
        type=kind,
        source=pkg(source),
        target=pkg(target),
        description=f"package {source} conflicts with {target}",
    )


@pytest.fixture
def numpy_missing() -> list[RuleConflict]:
    return [
        RuleConflict(
            type=RuleKind.JOB_NOTHING_PROVIDES_DEP,
            dep_id=1,
            dep="numpy>=2.0",
            description="nothing provides requested numpy>=2.0",
        )
    ]


@pytest.fixture
def pkg_a_b_conflict() -> list[RuleConflict]:
    """Two versions of pkgA requested through the same dependency, both conflicting with pkgB."""
    return [
        job("pkgA", "pkgA-1.0-0"),
        job("pkgA", "pkgA-1.1-0"),
        job("pkgB", "pkgB-2.0-0"),
        conflict("pkgA-1.0-0", "pkgB-2.0-0"),
        conflict("pkgA-1.1-0", "pkgB-2.0-0"),
    ]
