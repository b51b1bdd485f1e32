"""Rule conflict records, as reported by a solver when it fails.

The solver itself is not part of this package.
Records are either built directly or converted from the structured problems of a libsolv based
solver with :func:`records_from_solver`.
"""

from __future__ import annotations

import dataclasses
import enum
import re
import typing as T


class RuleKind(enum.IntEnum):
    """The reason a rule entered the unsatisfiable core, with libsolv values."""

    UNKNOWN = 0
    PKG = 0x100
    PKG_NOT_INSTALLABLE = 0x101
    PKG_NOTHING_PROVIDES_DEP = 0x102
    PKG_REQUIRES = 0x103
    PKG_SELF_CONFLICT = 0x104
    PKG_CONFLICTS = 0x105
    PKG_SAME_NAME = 0x106
    PKG_OBSOLETES = 0x107
    PKG_IMPLICIT_OBSOLETES = 0x108
    PKG_INSTALLED_OBSOLETES = 0x109
    PKG_RECOMMENDS = 0x10A
    PKG_CONSTRAINS = 0x10B
    UPDATE = 0x200
    FEATURE = 0x300
    JOB = 0x400
    JOB_NOTHING_PROVIDES_DEP = 0x401
    JOB_PROVIDED_BY_SYSTEM = 0x402
    JOB_UNKNOWN_PACKAGE = 0x403
    JOB_UNSUPPORTED = 0x404
    DISTUPGRADE = 0x500
    INFARCH = 0x600
    CHOICE = 0x700
    LEARNT = 0x800
    BEST = 0x900
    YUMOBS = 0xA00
    RECOMMENDS = 0xB00
    BLACK = 0xC00
    STRICT_REPO_PRIORITY = 0xD00

    @classmethod
    def parse(cls, value: T.Any) -> RuleKind:
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        name = value if isinstance(value, str) else getattr(value, "name", None)
        if name is None:
            raise ValueError(f"Cannot interpret {value!r} as a rule kind")
        name = name.rsplit(".", 1)[-1].removeprefix("SOLVER_RULE_")
        if name not in cls.__members__:
            raise ValueError(f"Unknown rule kind {name!r}")
        return cls[name]


@dataclasses.dataclass(frozen=True)
class PackageInfo:
    dist_re: T.ClassVar[re.Pattern] = re.compile(r"\s*(?:(?P<channel>[^:\s]+)::)?(?P<dist>\S+)\s*")

    name: str
    version: str = ""
    build_string: str = ""
    channel: str = ""
    build_number: int = 0

    @classmethod
    def parse(cls, repr: str) -> PackageInfo:
        """Parse a ``[channel::]name-version-build`` distribution string."""
        match = cls.dist_re.fullmatch(repr)
        if match is None:
            raise ValueError(f"Invalid package string {repr!r}")
        parts = match["dist"].rsplit("-", 2)
        if len(parts) < 3:
            parts += [""] * (3 - len(parts))
        name, version, build_string = parts
        return cls(name=name, version=version, build_string=build_string, channel=match["channel"] or "")

    @property
    def key(self) -> tuple[str, str, str, str]:
        return (self.name, self.version, self.build_string, self.channel)

    def __str__(self) -> str:
        dist = "-".join(p for p in (self.name, self.version, self.build_string) if p)
        return f"{self.channel}::{dist}" if self.channel else dist


@dataclasses.dataclass(frozen=True)
class DependencyInfo:
    dep_re: T.ClassVar[re.Pattern] = re.compile(r"\s*(?:([^:\s]+)::)?(\w[\w.-]*)\s*(.*?)\s*")

    name: str
    range: str
    channel: str = ""

    @classmethod
    def parse(cls, repr: str) -> DependencyInfo:
        match = cls.dep_re.fullmatch(repr)
        if match is None:
            raise ValueError(f"Invalid dependency string {repr!r}")
        channel, name, range = match.groups()
        return cls(name=name, range=range, channel=channel or "")

    @property
    def version(self) -> str:
        parts = self.range.split(maxsplit=1)
        return parts[0] if parts else ""

    @property
    def build(self) -> str:
        parts = self.range.split(maxsplit=1)
        return parts[1] if len(parts) > 1 else ""

    def __str__(self) -> str:
        return f"{self.name} {self.range}" if self.range else self.name


@dataclasses.dataclass(frozen=True)
class RuleConflict:
    type: RuleKind
    source_id: int | None = None
    target_id: int | None = None
    dep_id: int | None = None
    source: PackageInfo | None = None
    target: PackageInfo | None = None
    dep: str | None = None
    description: str = ""

    def __str__(self) -> str:
        return self.description


def _package_info(pkg: T.Any) -> PackageInfo | None:
    if pkg is None:
        return None
    return PackageInfo(
        name=pkg.name,
        version=pkg.version,
        build_string=pkg.build_string,
        channel=getattr(pkg, "channel", ""),
        build_number=getattr(pkg, "build_number", 0),
    )


def _resolve(value: T.Any) -> T.Any:
    # The bindings expose source, target and dep as methods
    return value() if callable(value) else value


def records_from_solver(solver: T.Any) -> list[RuleConflict]:
    """Convert the structured problems of a failed solver into records."""
    records = []
    for p in solver.all_problems_structured():
        records.append(
            RuleConflict(
                type=RuleKind.parse(p.type),
                source_id=p.source_id,
                target_id=p.target_id,
                dep_id=p.dep_id,
                source=_package_info(_resolve(p.source)),
                target=_package_info(_resolve(p.target)),
                dep=_resolve(p.dep),
                description=str(p),
            )
        )
    return records
