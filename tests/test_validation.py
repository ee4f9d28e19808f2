from familycanvas.registry import MemberRegistry
from familycanvas.schemas import Member, MemberDraft
from familycanvas.validation import check_registry, validate

YEAR = 2024


def person(member_id, birth_year, **kw):
    return Member(
        id=member_id,
        first_name=kw.pop("first_name", member_id.title()),
        surname="Doe",
        birth_year=birth_year,
        **kw,
    )


def family():
    dad = person("dad", "1960", gender="male", spouses=("mom",), children=("alex",))
    mom = person("mom", "1975", gender="female", spouses=("dad",), children=("alex",))
    alex = person("alex", "1990", parents=("dad", "mom"))
    return MemberRegistry([alex, dad, mom])


def test_valid_draft_passes():
    registry = family()
    assert validate(MemberDraft(birth_year="1995"), "child", registry.get("dad"), registry, YEAR) is None


def test_year_format_and_future_birth():
    registry = MemberRegistry()
    assert validate(MemberDraft(birth_year=""), "root", None, registry, YEAR).rule == "birth_year_format"
    assert validate(MemberDraft(birth_year="85"), "root", None, registry, YEAR).rule == "birth_year_format"
    error = validate(MemberDraft(birth_year="2025"), "root", None, registry, YEAR)
    assert error.rule == "future_birth"
    assert "2024" in error.message


def test_lifespan_ordering():
    registry = MemberRegistry()
    error = validate(MemberDraft(birth_year="1950", death_year="1940"), "root", None, registry, YEAR)
    assert error.rule == "lifespan"
    assert error.field == "death_year"
    assert validate(MemberDraft(birth_year="1950", death_year="1950"), "root", None, registry, YEAR) is None


def test_parent_gap_boundary():
    registry = family()
    alex = registry.get("alex")
    error = validate(MemberDraft(birth_year="1981"), "parent", alex, registry, YEAR)
    assert error.rule == "parent_age_gap"
    assert error.member_id == "alex"
    assert validate(MemberDraft(birth_year="1980"), "parent", alex, registry, YEAR) is None


def test_child_gap_boundary():
    registry = MemberRegistry([person("solo", "1980", gender="male")])
    solo = registry.get("solo")
    error = validate(MemberDraft(birth_year="1989"), "child", solo, registry, YEAR)
    assert error.rule == "child_age_gap"
    assert error.message == "Child must be at least 10 years younger than Solo Doe (born 1980)"
    assert validate(MemberDraft(birth_year="1990"), "child", solo, registry, YEAR) is None


def test_child_gap_also_applies_to_co_parent():
    registry = family()
    error = validate(MemberDraft(birth_year="1984"), "child", registry.get("dad"), registry, YEAR)
    assert error.rule == "co_parent_age_gap"
    assert error.member_id == "mom"


def test_spouse_minimum_age():
    registry = MemberRegistry([person("solo", "1980", gender="male")])
    solo = registry.get("solo")
    error = validate(MemberDraft(birth_year="2013"), "spouse", solo, registry, YEAR)
    assert error.rule == "spouse_min_age"
    assert "2012" in error.message
    assert validate(MemberDraft(birth_year="2012"), "spouse", solo, registry, YEAR) is None


def test_spouse_must_be_old_enough_for_existing_children():
    registry = family()
    error = validate(MemberDraft(birth_year="1985"), "spouse", registry.get("dad"), registry, YEAR)
    assert error.rule == "spouse_child_age_gap"
    assert error.message == "Wife/Mother must be at least 10 years older than Alex Doe (born 1990)"


def test_first_failure_wins():
    registry = family()
    error = validate(MemberDraft(birth_year="2030"), "parent", registry.get("alex"), registry, YEAR)
    assert error.rule == "future_birth"


def test_edit_rechecks_every_relative():
    registry = family()
    error = validate(MemberDraft(birth_year="1985"), None, None, registry, YEAR, editing_id="dad")
    assert error.rule == "edit_child_age_gap"
    error = validate(MemberDraft(birth_year="1980"), None, None, registry, YEAR, editing_id="alex")
    assert error.rule == "edit_parent_age_gap"
    assert error.member_id == "mom"
    assert validate(MemberDraft(birth_year="1985"), None, None, registry, YEAR, editing_id="alex") is None


def test_edit_checks_spouse_children():
    lone = person("lone", "1990", parents=("mom",))
    mom = person("mom", "1960", gender="female", spouses=("dad",), children=("lone",))
    dad = person("dad", "1958", gender="male", spouses=("mom",))
    registry = MemberRegistry([lone, mom, dad])
    error = validate(MemberDraft(birth_year="1985"), None, None, registry, YEAR, editing_id="dad")
    assert error.rule == "edit_spouse_child_age_gap"


def test_check_registry_reports_problems():
    assert check_registry(family()) == []
    broken = MemberRegistry(
        [
            person("a", "1990", parents=("b",), spouses=("ghost",)),
            person("b", "1985"),
            person("c", "1990", death_year="1980"),
        ]
    )
    warnings = check_registry(broken)
    assert any("Asymmetric" in w for w in warnings)
    assert any("Dangling" in w for w in warnings)
    assert any("Suspicious" in w for w in warnings)
    assert any("died before being born" in w for w in warnings)
