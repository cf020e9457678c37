"""
Tests for data models: SkillNode, ReviewResult aliases, UserProfile
validation and serialisation of program progress.
"""
import pytest
from pydantic import ValidationError

from factories import make_node, make_intake

from pilot_path.models import (
    ProgramProgress,
    ReviewResult,
    SkillStatus,
    UserProfile,
    WeekState,
    WeekStatus,
)


# ─── SkillNode ────────────────────────────────────────────────────────────────

class TestSkillNode:
    def test_frozen(self):
        node = make_node("A")
        with pytest.raises(ValidationError):
            node.status = SkillStatus.COMPLETED

    def test_with_status_returns_copy(self):
        node = make_node("A", SkillStatus.LOCKED)
        done = node.with_status(SkillStatus.COMPLETED)
        assert done.status == SkillStatus.COMPLETED
        assert node.status == SkillStatus.LOCKED

    def test_with_same_status_returns_self(self):
        node = make_node("A", SkillStatus.LOCKED)
        assert node.with_status(SkillStatus.LOCKED) is node


# ─── ReviewResult ─────────────────────────────────────────────────────────────

class TestReviewResult:
    def test_accepts_wire_aliases(self):
        r = ReviewResult.model_validate({
            "score": 80, "feedback": "ok", "nextActions": ["a"], "pass": True,
        })
        assert r.passed is True
        assert r.next_actions == ["a"]

    def test_accepts_field_names(self):
        r = ReviewResult(score=50, feedback="meh", passed=False)
        assert r.passed is False
        assert r.strengths == []

    def test_score_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            ReviewResult(score=120, feedback="x", passed=True)

    def test_to_week_review_drops_pass_flag(self):
        review = ReviewResult(score=90, feedback="great", passed=True).to_week_review()
        assert review.score == 90
        assert not hasattr(review, "passed")


# ─── UserProfile ──────────────────────────────────────────────────────────────

class TestUserProfile:
    def test_defaults(self):
        p = UserProfile(id="u1")
        assert p.mastery_score == 70
        assert p.verified_skills == []
        assert p.program_progress is None

    def test_verified_skills_deduplicated(self):
        p = UserProfile(id="u1", verified_skills=["a", "b", "a"])
        assert p.verified_skills == ["a", "b"]

    def test_mastery_bounds_enforced(self):
        with pytest.raises(ValidationError):
            UserProfile(id="u1", mastery_score=101)

    def test_intake_round_trip(self):
        intake = make_intake(kpis=["Fill rate"], diagnostic_score=55)
        p = UserProfile(
            id="u1", role=intake.role, kpis=intake.kpis,
            diagnostic_score=intake.diagnostic_score,
        )
        back = p.intake()
        assert back.role == intake.role
        assert back.kpis == ["Fill rate"]
        assert back.diagnostic_score == 55

    def test_json_round_trip_keeps_int_week_keys(self):
        progress = ProgramProgress(
            program_id="prog-x",
            weeks={0: WeekState(status=WeekStatus.UNLOCKED), 1: WeekState()},
        )
        p = UserProfile(id="u1", program_progress=progress)
        restored = UserProfile.model_validate_json(p.model_dump_json())
        assert restored.program_progress.weeks[0].status == WeekStatus.UNLOCKED
        assert restored.program_progress.weeks[1].status == WeekStatus.LOCKED
