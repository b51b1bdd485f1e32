"""Known unsatisfiable problems, expressed as the rules a solver reports for them."""

from __future__ import annotations

import dataclasses
from typing import Any, Optional, Sequence

import packaging.specifiers

from .records import DependencyInfo, PackageInfo, RuleConflict, RuleKind
from .utils import Counter


def _create_package(
    name: str,
    version: str,
    dependencies: Optional[list[str]] = None,
    build_number: int = 0,
    build_string: str = "bstring",
    channel: str = "",
) -> PackageInfo:
    # Dependencies only document the problem, the reported rules are what matters
    return PackageInfo(
        name=name, version=version, build_string=build_string, channel=channel, build_number=build_number
    )


def _conda_specifier(version: str) -> packaging.specifiers.SpecifierSet:
    # Conda "=1.2" means any version starting with 1.2
    if version.startswith("=") and not version.startswith("=="):
        version = f"={version}" if version.endswith("*") else f"={version}.*"
    return packaging.specifiers.SpecifierSet(version)


def matches(pkg: PackageInfo, dep: str) -> bool:
    info = DependencyInfo.parse(dep)
    if pkg.name != info.name or (info.channel and info.channel != pkg.channel):
        return False
    if not info.version:
        return True
    return _conda_specifier(info.version).contains(pkg.version, prereleases=True)


@dataclasses.dataclass
class RepodataIndex:
    """An in-memory package index, selecting packages with simple conda specifications."""

    packages: list[PackageInfo] = dataclasses.field(default_factory=list)

    def select_packages(self, dep_id: int | None, dep: str) -> list[PackageInfo]:
        return [p for p in self.packages if matches(p, dep)]

    def find(self, dist: str) -> PackageInfo:
        """Find a package from its ``name-version`` string."""
        for p in self.packages:
            if f"{p.name}-{p.version}" == dist:
                return p
        raise KeyError(dist)


def _create_problem_manual(
    packages: Sequence[dict[str, Any]], specs: Sequence[str], rules: Sequence[tuple[str, ...]]
) -> tuple[list[RuleConflict], RepodataIndex]:
    """Create the rules reported for a problem.

    Rules are tuples starting with the lower case rule kind, followed by the source and target
    packages as ``name-version`` and the dependency, as relevant to the kind.
    """
    index = RepodataIndex([_create_package(**pkg) for pkg in packages])
    pkg_ids = {p: i + 1 for i, p in enumerate(index.packages)}
    dep_counter = Counter(1)
    dep_ids: dict[str, int] = {}

    def dep_id(dep: str) -> int:
        if dep not in dep_ids:
            dep_ids[dep] = dep_counter()
        return dep_ids[dep]

    records = [
        RuleConflict(
            type=RuleKind.JOB,
            source_id=0,
            dep_id=dep_id(s),
            dep=s,
            description=f"package {s} is requested",
        )
        for s in specs
    ]
    for kind, *args in rules:
        kind = RuleKind[kind.upper()]
        if kind in (RuleKind.PKG_REQUIRES, RuleKind.PKG_NOTHING_PROVIDES_DEP):
            src, dep = args
            source = index.find(src)
            records.append(
                RuleConflict(
                    type=kind,
                    source_id=pkg_ids[source],
                    dep_id=dep_id(dep),
                    source=source,
                    dep=dep,
                    description=f"package {source} requires {dep}",
                )
            )
        elif kind == RuleKind.JOB_NOTHING_PROVIDES_DEP:
            (dep,) = args
            records.append(
                RuleConflict(type=kind, dep_id=dep_id(dep), dep=dep, description=f"nothing provides requested {dep}")
            )
        else:
            src, tgt, *dep = args
            source, target = index.find(src), index.find(tgt)
            records.append(
                RuleConflict(
                    type=kind,
                    source_id=pkg_ids[source],
                    target_id=pkg_ids[target],
                    dep_id=dep_id(dep[0]) if dep else None,
                    source=source,
                    target=target,
                    dep=dep[0] if dep else None,
                    description=f"package {source} conflicts with {target}",
                )
            )
    return records, index


def create_basic_conflict() -> tuple[list[RuleConflict], RepodataIndex]:
    return _create_problem_manual(
        packages=[
            {"name": "A", "version": "0.1.0"},
            {"name": "A", "version": "0.2.0"},
            {"name": "A", "version": "0.3.0"},
        ],
        specs=[],
        rules=[("job_nothing_provides_dep", "A=0.4.0")],
    )


def create_pubgrub() -> tuple[list[RuleConflict], RepodataIndex]:
    return _create_problem_manual(
        packages=[
            {"name": "menu", "version": "1.5.0", "dependencies": ["dropdown=2.*"]},
            {"name": "menu", "version": "1.4.0", "dependencies": ["dropdown=2.*"]},
            {"name": "menu", "version": "1.3.0", "dependencies": ["dropdown=2.*"]},
            {"name": "menu", "version": "1.2.0", "dependencies": ["dropdown=2.*"]},
            {"name": "menu", "version": "1.1.0", "dependencies": ["dropdown=2.*"]},
            {"name": "menu", "version": "1.0.0", "dependencies": ["dropdown=1.*"]},
            {"name": "dropdown", "version": "2.3.0", "dependencies": ["icons=2.*"]},
            {"name": "dropdown", "version": "2.2.0", "dependencies": ["icons=2.*"]},
            {"name": "dropdown", "version": "2.1.0", "dependencies": ["icons=2.*"]},
            {"name": "dropdown", "version": "2.0.0", "dependencies": ["icons=2.*"]},
            {"name": "dropdown", "version": "1.8.0", "dependencies": ["icons=1.*", "intl=3.*"]},
            {"name": "icons", "version": "2.0.0"},
            {"name": "icons", "version": "1.0.0"},
            {"name": "intl", "version": "5.0.0"},
            {"name": "intl", "version": "4.0.0"},
            {"name": "intl", "version": "3.0.0"},
        ],
        specs=["menu", "icons=1.*", "intl=5.*"],
        rules=[
            ("pkg_requires", "menu-1.5.0", "dropdown=2.*"),
            ("pkg_requires", "menu-1.4.0", "dropdown=2.*"),
            ("pkg_requires", "menu-1.3.0", "dropdown=2.*"),
            ("pkg_requires", "menu-1.2.0", "dropdown=2.*"),
            ("pkg_requires", "menu-1.1.0", "dropdown=2.*"),
            ("pkg_requires", "menu-1.0.0", "dropdown=1.*"),
            ("pkg_requires", "dropdown-2.3.0", "icons=2.*"),
            ("pkg_requires", "dropdown-2.2.0", "icons=2.*"),
            ("pkg_requires", "dropdown-2.1.0", "icons=2.*"),
            ("pkg_requires", "dropdown-2.0.0", "icons=2.*"),
            ("pkg_requires", "dropdown-1.8.0", "intl=3.*"),
            ("pkg_same_name", "icons-2.0.0", "icons-1.0.0"),
            ("pkg_same_name", "intl-3.0.0", "intl-5.0.0"),
        ],
    )


def create_run_constrained() -> tuple[list[RuleConflict], RepodataIndex]:
    return _create_problem_manual(
        packages=[
            {"name": "foo", "version": "1.0.0"},
            {"name": "bar", "version": "2.0.0"},
        ],
        specs=["foo", "bar"],
        rules=[("pkg_constrains", "foo-1.0.0", "bar-2.0.0", "bar<2")],
    )


def create_missing_dependency() -> tuple[list[RuleConflict], RepodataIndex]:
    return _create_problem_manual(
        packages=[
            {"name": "app", "version": "1.1.0", "dependencies": ["libfoo>=3"]},
            {"name": "app", "version": "1.0.0", "dependencies": ["libfoo>=3"]},
        ],
        specs=["app"],
        rules=[
            ("pkg_nothing_provides_dep", "app-1.1.0", "libfoo>=3"),
            ("pkg_nothing_provides_dep", "app-1.0.0", "libfoo>=3"),
        ],
    )
