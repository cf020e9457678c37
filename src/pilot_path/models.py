"""
Data models for the PilotPath Adaptive Skill Graph Engine.

Static content (skill nodes, use cases, program weeks) is frozen; every
per-user change produces a new object via ``model_copy`` so the shared
catalog templates are never mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ─── Enumerations ────────────────────────────────────────────────────────────

class SkillStatus(str, Enum):
    """Visibility / lock state of one node in a learner's skill tree."""
    HIDDEN      = "HIDDEN"       # not shown at all
    LOCKED      = "LOCKED"       # visible, prerequisites pending
    UNLOCKED    = "UNLOCKED"     # actionable
    IN_PROGRESS = "IN_PROGRESS"  # learner has started it
    COMPLETED   = "COMPLETED"    # verified by a finished pilot


class LearningTrack(str, Enum):
    MANAGER = "MANAGER"   # no-code track
    ANALYST = "ANALYST"   # python / sql track


class Domain(str, Enum):
    OPS       = "ops"
    MARKETING = "marketing"
    SHARED    = "shared"


class Difficulty(str, Enum):
    BEGINNER     = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED     = "advanced"


class Persona(str, Enum):
    """Finer-grained learner persona; selects the skill-tree/program variant."""
    DEMAND_PLANNER       = "demand_planner"        # ops, forecasting decisions
    INVENTORY_CONTROLLER = "inventory_controller"  # ops, stock / replenishment
    GROWTH_MARKETER      = "growth_marketer"       # marketing, lead & campaign
    CUSTOMER_ANALYST     = "customer_analyst"      # marketing, churn & segments


class WeekStatus(str, Enum):
    LOCKED     = "locked"
    UNLOCKED   = "unlocked"
    SUBMITTED  = "submitted"
    PASSED     = "passed"
    NEEDS_WORK = "needs_work"


# ─── Static content models ───────────────────────────────────────────────────

class SkillNode(BaseModel):
    """One unit of learning content in the dependency graph."""
    model_config = ConfigDict(frozen=True)

    id:           str
    label:        str
    description:  str = ""
    status:       SkillStatus = SkillStatus.LOCKED
    dependencies: tuple[str, ...] = ()
    domain:       Domain = Domain.SHARED
    difficulty:   Difficulty = Difficulty.BEGINNER
    category:     str = "foundation"
    remedial:     bool = Field(
        default=False,
        description="Recovery content unlocked directly when mastery drops",
    )

    def with_status(self, status: SkillStatus) -> "SkillNode":
        if status == self.status:
            return self
        return self.model_copy(update={"status": status})


class UseCase(BaseModel):
    """A hands-on pilot; finishing it verifies its required skills."""
    model_config = ConfigDict(frozen=True)

    id:              str
    title:           str
    domain:          Domain
    description:     str = ""
    difficulty:      Difficulty = Difficulty.INTERMEDIATE
    estimated_hours: float = 3.0
    required_skills: tuple[str, ...] = ()
    cookbook:        tuple[str, ...] = ()


class SkillGraph(BaseModel):
    """A skill-tree variant: the template node list for one persona."""
    model_config = ConfigDict(frozen=True)

    id:     str
    title:  str
    domain: Domain
    nodes:  tuple[SkillNode, ...]

    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def node_by_id(self, node_id: str) -> Optional[SkillNode]:
        return next((n for n in self.nodes if n.id == node_id), None)


class Rubric(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_pass_score: int = Field(default=70, ge=0, le=100)
    criteria:           tuple[str, ...] = ()


class ProgramWeek(BaseModel):
    model_config = ConfigDict(frozen=True)

    week_no:      int = Field(ge=0)
    title:        str
    outcome:      str = ""
    deliverables: tuple[str, ...] = ()
    rubric:       Rubric = Rubric()


class Program(BaseModel):
    """A gated multi-week journey (the "9-week Journey")."""
    model_config = ConfigDict(frozen=True)

    id:      str
    title:   str
    domain:  Domain
    persona: Persona
    weeks:   tuple[ProgramWeek, ...]

    def week(self, week_no: int) -> Optional[ProgramWeek]:
        return next((w for w in self.weeks if w.week_no == week_no), None)

    def week_numbers(self) -> list[int]:
        return sorted(w.week_no for w in self.weeks)


class PathLibraryEntry(BaseModel):
    """Admin preview entry: a persona's skill tree + program pairing."""
    model_config = ConfigDict(frozen=True)

    id:                str
    label:             str
    domain_preference: Domain
    persona:           Persona
    skill_tree_id:     str
    program_id:        str


# ─── Intake (raw, unprocessed) ───────────────────────────────────────────────

@dataclass
class IntakeAnswers:
    """
    Raw onboarding answers exactly as the learner gave them.
    Nothing here is validated; the classifier tolerates any of it being blank.
    """
    role:             str = ""
    industry:         str = ""
    tools:            list[str] = field(default_factory=list)   # e.g. ["excel (advanced)", "sql"]
    goal:             str = ""
    availability:     int = 5                                    # hours per week
    decisions:        list[str] = field(default_factory=list)   # decisions the learner owns
    kpis:             list[str] = field(default_factory=list)   # KPIs the learner is measured on
    diagnostic_score: Optional[int] = None                       # 0-100 self-assessment quiz


class ClassificationResult(BaseModel):
    """Output of the persona classifier."""
    model_config = ConfigDict(frozen=True)

    track:                LearningTrack
    domain_preference:    Domain
    primary_persona:      Persona
    secondary_persona:    Persona
    persona_scores:       dict[str, int]
    active_skill_tree_id: str
    active_program_id:    str
    starting_use_case_id: str


# ─── Program progress ────────────────────────────────────────────────────────

class Submission(BaseModel):
    text:         str
    submitted_at: datetime = Field(default_factory=utc_now)
    attachments:  list[str] = Field(default_factory=list)


class WeekReview(BaseModel):
    """Latest verdict stored against a week (the reviewer's pass flag is not kept)."""
    score:        int = Field(ge=0, le=100)
    feedback:     str = ""
    strengths:    list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    next_actions: list[str] = Field(default_factory=list)


class WeekState(BaseModel):
    status:     WeekStatus = WeekStatus.LOCKED
    submission: Optional[Submission] = None
    review:     Optional[WeekReview] = None


class ProgramProgress(BaseModel):
    program_id:   str
    current_week: int = Field(default=0, ge=0)
    started_at:   datetime = Field(default_factory=utc_now)
    updated_at:   datetime = Field(default_factory=utc_now)
    weeks:        dict[int, WeekState] = Field(default_factory=dict)

    def week_status(self, week_no: int) -> Optional[WeekStatus]:
        state = self.weeks.get(week_no)
        return state.status if state else None


# ─── Reviewer contract ───────────────────────────────────────────────────────

class ReviewResult(BaseModel):
    """
    Shape every reviewer must return.  ``pass`` is a Python keyword, so the
    field is ``passed`` with ``"pass"`` accepted as its alias on input.
    """
    model_config = ConfigDict(populate_by_name=True)

    score:        int = Field(ge=0, le=100)
    feedback:     str
    strengths:    list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    next_actions: list[str] = Field(default_factory=list, alias="nextActions")
    passed:       bool = Field(alias="pass")

    def to_week_review(self) -> WeekReview:
        return WeekReview(
            score=self.score,
            feedback=self.feedback,
            strengths=list(self.strengths),
            improvements=list(self.improvements),
            next_actions=list(self.next_actions),
        )


# ─── Portfolio ───────────────────────────────────────────────────────────────

class Artifact(BaseModel):
    """Immutable portfolio record emitted when a pilot is completed."""
    model_config = ConfigDict(frozen=True)

    id:          str
    user_id:     str
    use_case_id: str
    title:       str
    type:        str = "Pilot Artifact"
    created_at:  datetime = Field(default_factory=utc_now)
    status:      str = "verified"


# ─── User profile ────────────────────────────────────────────────────────────

class UserProfile(BaseModel):
    """
    Identity plus learning state.  ``mastery_score``, ``verified_skills``,
    ``artifacts`` and ``program_progress`` are historical facts; the derived
    classification fields may be recomputed at any time.
    """
    id:       str
    name:     str = ""
    is_admin: bool = False

    # intake
    role:             str = ""
    industry:         str = ""
    tools:            list[str] = Field(default_factory=list)
    goal:             str = ""
    availability:     int = 5
    decisions:        list[str] = Field(default_factory=list)
    kpis:             list[str] = Field(default_factory=list)
    diagnostic_score: Optional[int] = None

    # derived by classification
    track:                LearningTrack = LearningTrack.MANAGER
    domain_preference:    Domain = Domain.MARKETING
    primary_persona:      Optional[Persona] = None
    secondary_persona:    Optional[Persona] = None
    active_skill_tree_id: Optional[str] = None
    active_program_id:    Optional[str] = None

    # learning state
    mastery_score:    int = Field(default=70, ge=0, le=100)
    verified_skills:  list[str] = Field(default_factory=list)
    node_statuses:    dict[str, SkillStatus] = Field(default_factory=dict)
    artifacts:        list[Artifact] = Field(default_factory=list)
    program_progress: Optional[ProgramProgress] = None

    @field_validator("verified_skills")
    @classmethod
    def _dedupe_skills(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    def intake(self) -> IntakeAnswers:
        return IntakeAnswers(
            role=self.role,
            industry=self.industry,
            tools=list(self.tools),
            goal=self.goal,
            availability=self.availability,
            decisions=list(self.decisions),
            kpis=list(self.kpis),
            diagnostic_score=self.diagnostic_score,
        )
