from core.rules import CONFLICT_RULES, Rule, RuleEngine

from conftest import make_request


def test_conflicts_are_ordered_by_severity_then_confidence():
    request = make_request(
        {"energy": 1, "duration": 75, "focus": "strength"},
        injuries=["knee"]
    )

    conflicts = RuleEngine().detect_conflicts(request)

    assert [c.components for c in conflicts] == [
        ["injuries", "focus", "duration"],
        ["energy", "focus"],
        ["energy", "duration"],
        ["equipment", "focus"],
    ]
    assert [c.severity for c in conflicts] == ["critical", "high", "high", "medium"]


def test_injury_conflict_is_high_when_only_focus_is_intense():
    request = make_request({"energy": 3, "duration": 30, "focus": "strength"}, injuries=["knee"])

    injury = [c for c in RuleEngine().detect_conflicts(request) if c.components[0] == "injuries"]

    assert len(injury) == 1
    assert injury[0].severity == "high"
    assert injury[0].components == ["injuries", "focus"]


def test_injuries_marked_none_are_ignored():
    request = make_request({"focus": "strength", "duration": 75, "injuries": ["none"]})

    conflicts = RuleEngine().detect_conflicts(request)

    assert all(c.components[0] != "injuries" for c in conflicts)


def test_nested_and_prefixed_selection_values_are_read():
    nested = make_request({"energy": {"rating": 1}, "duration": {"duration": 75}})
    prefixed = make_request({"customization_energy": 1, "customization_duration": 75})

    for request in (nested, prefixed):
        conflicts = RuleEngine().detect_conflicts(request)
        assert [c.components for c in conflicts] == [["energy", "duration"]]


def test_soreness_overlap_with_target_areas():
    request = make_request({"soreness": ["Legs"], "areas": ["legs", "core"], "focus": "mobility"})

    conflicts = RuleEngine().detect_conflicts(request)

    assert len(conflicts) == 1
    assert conflicts[0].components == ["soreness", "areas"]
    assert "legs" in conflicts[0].description


def test_beginner_with_advanced_focus():
    request = make_request({"focus": "power", "equipment": ["kettlebell"]}, fitness_level="Beginner")

    conflicts = RuleEngine().detect_conflicts(request)

    assert [c.components for c in conflicts] == [["focus", "user_profile"]]


def test_evening_rule_respects_time_of_day():
    selections = {"focus": "strength", "equipment": ["dumbbells", "bench"]}
    evening = make_request(selections, environment={"time_of_day": "Evening"})
    morning = make_request(selections)

    assert any(c.type == "user_experience" for c in RuleEngine().detect_conflicts(evening))
    assert not any(c.type == "user_experience" for c in RuleEngine().detect_conflicts(morning))


def test_synergies_for_energized_strength_with_dumbbells():
    request = make_request({"energy": 5, "focus": "strength", "equipment": ["Dumbbells"]})

    evaluation = RuleEngine().evaluate(request)

    assert [s.components for s in evaluation.synergies] == [["energy", "focus"], ["focus", "equipment"]]
    assert evaluation.conflicts == []


def test_optimizations_for_strength_session():
    request = make_request({"energy": 3, "duration": 30, "focus": "strength", "soreness": ["legs"]})

    evaluation = RuleEngine().evaluate(request)

    assert [i.confidence for i in evaluation.optimizations] == [0.75, 0.7]
    assert all(i.actionable and i.type == "info" for i in evaluation.optimizations)
    assert [c.components for c in evaluation.conflicts] == [["equipment", "focus"]]
    assert evaluation.synergies == []


def test_warmup_optimization_for_very_long_session():
    request = make_request({"duration": 120})

    evaluation = RuleEngine().evaluate(request)

    assert len(evaluation.optimizations) == 1
    assert "warm-up" in evaluation.optimizations[0].message


def test_failing_rule_is_skipped():
    broken = Rule(id="broken", predicate=lambda r: 1 / 0 > 0, generator=lambda r: None)
    engine = RuleEngine(conflict_rules=(broken,) + CONFLICT_RULES)

    conflicts = engine.detect_conflicts(make_request({"energy": 1, "duration": 75}))

    assert [c.components for c in conflicts] == [["energy", "duration"]]


def test_empty_selections_produce_nothing():
    evaluation = RuleEngine().evaluate(make_request({}))

    assert evaluation.to_dict() == {"conflicts": [], "synergies": [], "optimizations": []}
