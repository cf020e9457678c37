"""
Tests for the rule-based persona classifier (Block 0).
"""
import pytest

from factories import make_intake

from pilot_path.b0_persona_classifier import (
    apply_classification,
    classify,
    infer_domain,
    infer_track,
    onboard,
    rank_personas,
)
from pilot_path.models import (
    Domain,
    IntakeAnswers,
    LearningTrack,
    Persona,
    ProgramProgress,
)


class TestTrackAndDomain:
    @pytest.mark.parametrize("tools,expected", [
        (["Python"], LearningTrack.ANALYST),
        (["excel", "SQL "], LearningTrack.ANALYST),
        (["Excel", "Power BI"], LearningTrack.MANAGER),
        ([], LearningTrack.MANAGER),
        (None, LearningTrack.MANAGER),
    ])
    def test_track(self, tools, expected):
        assert infer_track(tools) == expected

    @pytest.mark.parametrize("role,expected", [
        ("Supply Chain Lead", Domain.OPS),
        ("Head of Ops", Domain.OPS),
        ("Brand Manager", Domain.MARKETING),
        ("", Domain.MARKETING),
        (None, Domain.MARKETING),
    ])
    def test_domain(self, role, expected):
        assert infer_domain(role) == expected


class TestPersonaRanking:
    def test_inventory_signals_win(self):
        intake = make_intake(
            role="Warehouse Supply Manager",
            decisions=["Reorder quantities"],
            kpis=["Fill rate"],
        )
        primary, secondary, scores = rank_personas(Domain.OPS, intake)
        assert primary == Persona.INVENTORY_CONTROLLER
        assert secondary == Persona.DEMAND_PLANNER
        assert scores["inventory_controller"] > scores["demand_planner"]

    def test_tie_goes_to_first_candidate(self):
        intake = make_intake(role="Ops Manager")
        primary, _, scores = rank_personas(Domain.OPS, intake)
        assert scores["demand_planner"] == scores["inventory_controller"] == 0
        assert primary == Persona.DEMAND_PLANNER

    def test_diagnostic_bonus_breaks_marketing_tie(self):
        no_diag = make_intake(role="Marketing Manager", diagnostic_score=None)
        with_diag = make_intake(role="Marketing Manager", diagnostic_score=80)
        assert rank_personas(Domain.MARKETING, no_diag)[0] == Persona.GROWTH_MARKETER
        assert rank_personas(Domain.MARKETING, with_diag)[0] == Persona.CUSTOMER_ANALYST

    def test_out_of_range_diagnostic_ignored(self):
        intake = make_intake(role="Marketing Manager", diagnostic_score=250)
        assert rank_personas(Domain.MARKETING, intake)[0] == Persona.GROWTH_MARKETER

    def test_diagnostic_threshold_comes_from_settings(self, monkeypatch):
        monkeypatch.setenv("DIAGNOSTIC_THRESHOLD", "90")
        intake = make_intake(role="Marketing Manager", diagnostic_score=80)
        assert rank_personas(Domain.MARKETING, intake)[0] == Persona.GROWTH_MARKETER
        assert rank_personas(Domain.MARKETING, intake, diagnostic_threshold=75)[0] == Persona.CUSTOMER_ANALYST


class TestClassify:
    def test_planner_routing(self, planner_intake, catalog):
        result = classify(planner_intake, catalog)
        assert result.domain_preference == Domain.OPS
        assert result.primary_persona == Persona.DEMAND_PLANNER
        assert result.active_skill_tree_id == "tree-ops-demand"
        assert result.active_program_id == "prog-ops-demand-9w"
        assert result.starting_use_case_id == "uc-ops-1"

    def test_deterministic(self, planner_intake, catalog):
        assert classify(planner_intake, catalog) == classify(planner_intake, catalog)

    def test_blank_intake_never_fails(self, catalog):
        result = classify(IntakeAnswers(), catalog)
        assert result.track == LearningTrack.MANAGER
        assert result.domain_preference == Domain.MARKETING
        assert result.starting_use_case_id == "uc-mkt-1"

    def test_garbled_intake_never_fails(self, catalog):
        intake = IntakeAnswers(role=None, tools=[None, 42], decisions=None, kpis=None, diagnostic_score="high")
        result = classify(intake, catalog)
        assert result.primary_persona in (Persona.GROWTH_MARKETER, Persona.CUSTOMER_ANALYST)


class TestReclassification:
    def test_history_preserved(self, planner_profile, catalog):
        learned = planner_profile.model_copy(update={
            "mastery_score": 88,
            "verified_skills": ["data-hygiene"],
            "program_progress": ProgramProgress(program_id="prog-ops-demand-9w", current_week=3),
        })
        result = classify(make_intake(role="Growth Marketing Lead"), catalog)
        updated = apply_classification(learned, result)

        assert updated.domain_preference == Domain.MARKETING
        assert updated.active_program_id == "prog-mkt-growth-9w"
        assert updated.mastery_score == 88
        assert updated.verified_skills == ["data-hygiene"]
        assert updated.program_progress.current_week == 3

    def test_onboard_builds_profile(self, planner_intake, catalog):
        profile, result = onboard("u1", planner_intake, name="Asha", initial_mastery=150, catalog=catalog)
        assert profile.id == "u1"
        assert profile.mastery_score == 100
        assert profile.tools == ["excel"]
        assert profile.active_skill_tree_id == result.active_skill_tree_id

    def test_onboard_initial_mastery_from_settings(self, planner_intake, catalog, monkeypatch):
        monkeypatch.setenv("INITIAL_MASTERY", "55")
        profile, _ = onboard("u2", planner_intake, catalog=catalog)
        assert profile.mastery_score == 55
