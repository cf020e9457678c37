"""
Tests for the guardrail layer: intake warnings, content checks (including
cycle detection) and submission checks.
"""
import pytest

from factories import make_intake, make_node, make_graph, make_program

from pilot_path.b0_persona_classifier import classify
from pilot_path.b2_journey import init_progress
from pilot_path.guardrails import (
    ContentGuardrails,
    GuardrailLevel,
    IntakeGuardrails,
    SubmissionGuardrails,
    find_dependency_cycle,
)
from pilot_path.models import Domain, SkillStatus


def _codes(result):
    return [v.code for v in result.violations]


class TestIntakeGuardrails:
    def test_clean_intake_passes(self):
        result = IntakeGuardrails().check(make_intake())
        assert result.passed
        assert result.violations == []

    def test_empty_role_warns_only(self):
        result = IntakeGuardrails().check(make_intake(role=""))
        assert result.passed
        assert "G-01" in _codes(result)
        assert result.warnings[0].level == GuardrailLevel.WARN

    def test_availability_out_of_range(self):
        assert "G-02" in _codes(IntakeGuardrails().check(make_intake(availability=40)))

    def test_diagnostic_out_of_range(self):
        assert "G-03" in _codes(IntakeGuardrails().check(make_intake(diagnostic_score=140)))

    @pytest.mark.parametrize("availability", [None, "5", 7.5])
    def test_non_int_availability_warns_instead_of_raising(self, availability):
        result = IntakeGuardrails().check(make_intake(availability=availability))
        assert result.passed
        assert "G-02" in _codes(result)

    @pytest.mark.parametrize("score", ["high", "80", 72.5])
    def test_non_int_diagnostic_warns_instead_of_raising(self, score):
        result = IntakeGuardrails().check(make_intake(diagnostic_score=score))
        assert result.passed
        assert "G-03" in _codes(result)

    def test_garbled_intake_still_classifies(self, catalog):
        intake = make_intake(availability="lots", diagnostic_score="high")
        assert IntakeGuardrails().check(intake).passed
        assert classify(intake, catalog).domain_preference == Domain.OPS


class TestFindDependencyCycle:
    def test_acyclic(self):
        nodes = [make_node("A"), make_node("B", deps=("A",)), make_node("C", deps=("B", "A"))]
        assert find_dependency_cycle(nodes) == []

    def test_cycle_reports_members(self):
        nodes = [
            make_node("A"),
            make_node("B", deps=("C",)),
            make_node("C", deps=("B",)),
            make_node("D", deps=("C",)),
        ]
        # D is stuck behind the cycle as well
        assert find_dependency_cycle(nodes) == ["B", "C", "D"]


class TestContentGuardrails:
    def test_duplicate_ids(self):
        graph = make_graph([make_node("A"), make_node("A")])
        assert "G-04" in _codes(ContentGuardrails().check_graph(graph))

    def test_self_dependency(self):
        graph = make_graph([make_node("A", deps=("A",))])
        result = ContentGuardrails().check_graph(graph)
        assert "G-05" in _codes(result)
        assert result.blocked

    def test_empty_program(self):
        program = make_program().model_copy(update={"weeks": ()})
        assert "G-08" in _codes(ContentGuardrails().check_program(program))


class TestSubmissionGuardrails:
    def setup_method(self):
        self.guard = SubmissionGuardrails()
        self.program = make_program(n_weeks=2)
        self.progress = init_progress(self.program)

    def test_valid_submission(self):
        result = self.guard.check(self.progress, self.program, 0, "My baseline KPI table")
        assert result.passed

    def test_empty_text_blocks(self):
        result = self.guard.check(self.progress, self.program, 0, "   ")
        assert result.blocked
        assert "G-10" in _codes(result)

    def test_unknown_week_blocks(self):
        assert "G-11" in _codes(self.guard.check(self.progress, self.program, 7, "text"))

    def test_locked_week_blocks(self):
        result = self.guard.check(self.progress, self.program, 1, "text")
        assert result.blocked
        assert "G-12" in _codes(result)

    def test_pii_warns_but_passes(self):
        result = self.guard.check(self.progress, self.program, 0, "Reach me at asha@example.com")
        assert result.passed
        assert "G-13" in _codes(result)

    def test_indian_mobile_detected(self):
        result = self.guard.check(self.progress, self.program, 0, "Call 9876543210 for the data")
        assert "G-13" in _codes(result)
