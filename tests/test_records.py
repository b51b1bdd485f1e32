from types import SimpleNamespace

import pytest

from conflict_explainer.records import DependencyInfo, PackageInfo, RuleConflict, RuleKind, records_from_solver


class TestRuleKind:
    @pytest.mark.parametrize(
        "value",
        [
            RuleKind.PKG_CONFLICTS,
            "PKG_CONFLICTS",
            "SOLVER_RULE_PKG_CONFLICTS",
            "SolverRuleinfo.SOLVER_RULE_PKG_CONFLICTS",
            SimpleNamespace(name="SOLVER_RULE_PKG_CONFLICTS"),
            0x105,
        ],
    )
    def test_parse(self, value):
        assert RuleKind.parse(value) is RuleKind.PKG_CONFLICTS

    def test_parse_unknown_name(self):
        with pytest.raises(ValueError):
            RuleKind.parse("SOLVER_RULE_DOES_NOT_EXIST")

    def test_parse_unknown_value(self):
        with pytest.raises(ValueError):
            RuleKind.parse(0x9999)

    def test_libsolv_values(self):
        assert RuleKind.PKG == 0x100
        assert RuleKind.PKG_CONSTRAINS == 0x10B
        assert RuleKind.JOB_NOTHING_PROVIDES_DEP == 0x401


class TestDependencyInfo:
    @pytest.mark.parametrize(
        "spec, name, range",
        [
            ("numpy>=2.0", "numpy", ">=2.0"),
            ("dropdown=2.*", "dropdown", "=2.*"),
            ("r-base 3.5.*", "r-base", "3.5.*"),
            ("menu", "menu", ""),
            ("  python_abi  3.10.* ", "python_abi", "3.10.*"),
        ],
    )
    def test_parse(self, spec, name, range):
        info = DependencyInfo.parse(spec)
        assert info.name == name
        assert info.range == range

    def test_channel(self):
        info = DependencyInfo.parse("conda-forge::numpy>=2.0")
        assert info.channel == "conda-forge"
        assert info.name == "numpy"
        assert str(info) == "numpy >=2.0"

    def test_version_and_build(self):
        info = DependencyInfo.parse("numpy 1.2 py_0")
        assert info.version == "1.2"
        assert info.build == "py_0"

    def test_invalid(self):
        with pytest.raises(ValueError):
            DependencyInfo.parse(">=2.0")


class TestPackageInfo:
    def test_parse(self):
        info = PackageInfo.parse("conda-forge::r-base-3.5.1-h1")
        assert info == PackageInfo(name="r-base", version="3.5.1", build_string="h1", channel="conda-forge")
        assert str(info) == "conda-forge::r-base-3.5.1-h1"

    def test_parse_without_build(self):
        info = PackageInfo.parse("pkgA-1.0")
        assert info.key == ("pkgA", "1.0", "", "")

    def test_build_number_not_in_key(self):
        a = PackageInfo("a", "1.0", "b", build_number=1)
        b = PackageInfo("a", "1.0", "b", build_number=2)
        assert a.key == b.key


def test_records_from_solver():
    def pkg_info(name, version):
        return SimpleNamespace(name=name, version=version, build_string="bstring", build_number=0)

    problems = [
        SimpleNamespace(
            type=SimpleNamespace(name="SOLVER_RULE_PKG_REQUIRES"),
            source_id=3,
            target_id=0,
            dep_id=7,
            source=lambda: pkg_info("menu", "1.0.0"),
            target=lambda: None,
            dep=lambda: "dropdown=1.*",
        ),
    ]
    solver = SimpleNamespace(all_problems_structured=lambda: problems)

    (record,) = records_from_solver(solver)
    assert record.type is RuleKind.PKG_REQUIRES
    assert record.source == PackageInfo("menu", "1.0.0", "bstring")
    assert record.target is None
    assert record.dep == "dropdown=1.*"
    assert (record.source_id, record.dep_id) == (3, 7)


def test_record_str_is_description():
    record = RuleConflict(type=RuleKind.JOB, dep="a", description="package a is requested")
    assert str(record) == "package a is requested"
