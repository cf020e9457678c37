"""
b0_persona_classifier.py – Rule-based onboarding classifier
=============================================================
Maps raw intake answers to a learning track, a domain and a persona, and
from those to the skill-tree and 9-week program variants that govern the
learner's experience.

Logic covers:
  • Declared tools → track (python / sql ⇒ analyst, otherwise manager)
  • Role keywords → domain (ops / chain / supply ⇒ ops, otherwise marketing)
  • Weighted persona scoring over decisions, KPIs, role text and diagnostic
  • Static (domain, persona) → (skill tree, program) routing
  • First use case of the domain → starting pilot

The classifier never raises: blank or garbled intake resolves to defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from pilot_path.catalog import ContentCatalog, get_catalog, program_id_for, skill_tree_id_for
from pilot_path.config import get_settings
from pilot_path.models import (
    ClassificationResult,
    Domain,
    IntakeAnswers,
    LearningTrack,
    Persona,
    UserProfile,
)

logger = logging.getLogger(__name__)


# ── Keyword sets ──────────────────────────────────────────────────────────────

_ANALYST_TOOLS = {"python", "sql"}
_OPS_ROLE_KEYWORDS = ("ops", "chain", "supply")

# Signal weights
DECISION_WEIGHT   = 45
KPI_WEIGHT        = 30
ROLE_WEIGHT       = 15
DIAGNOSTIC_WEIGHT = 10


@dataclass(frozen=True)
class PersonaSignals:
    persona:            Persona
    decision_keywords:  tuple[str, ...]
    kpi_keywords:       tuple[str, ...]
    role_keywords:      tuple[str, ...]
    uses_diagnostic:    bool = False   # the more quantitative persona of the pair


# Candidate personas per domain.  Order is the tie-break: on equal scores
# the first entry wins.
PERSONA_CANDIDATES: dict[Domain, tuple[PersonaSignals, PersonaSignals]] = {
    Domain.OPS: (
        PersonaSignals(
            persona=Persona.DEMAND_PLANNER,
            decision_keywords=("forecast", "demand plan", "s&op", "sales plan", "production plan"),
            kpi_keywords=("forecast accuracy", "mape", "bias", "forecast error"),
            role_keywords=("planner", "planning", "demand", "forecast"),
            uses_diagnostic=True,
        ),
        PersonaSignals(
            persona=Persona.INVENTORY_CONTROLLER,
            decision_keywords=("reorder", "replenish", "safety stock", "stock transfer", "purchase order"),
            kpi_keywords=("fill rate", "inventory turns", "stock-out", "stockout", "days of cover", "holding cost"),
            role_keywords=("inventory", "warehouse", "procurement", "store", "logistics"),
        ),
    ),
    Domain.MARKETING: (
        PersonaSignals(
            persona=Persona.GROWTH_MARKETER,
            decision_keywords=("lead", "campaign", "budget allocation", "channel", "ad spend"),
            kpi_keywords=("cac", "conversion", "cpl", "roas", "lead velocity"),
            role_keywords=("growth", "performance", "acquisition", "sales", "digital"),
        ),
        PersonaSignals(
            persona=Persona.CUSTOMER_ANALYST,
            decision_keywords=("churn", "retention", "segment", "loyalty", "win-back"),
            kpi_keywords=("ltv", "clv", "retention rate", "churn rate", "nps", "repeat purchase"),
            role_keywords=("crm", "analyst", "insights", "customer", "retention"),
            uses_diagnostic=True,
        ),
    ),
}


# ── Helpers ───────────────────────────────────────────────────────────────────

def _text(*fields: str) -> str:
    """Combine multiple text fields into a single searchable string."""
    return " ".join(str(f) for f in fields if f).lower()


def _any_match(haystack: str, needles: tuple[str, ...]) -> bool:
    return any(n in haystack for n in needles)


def infer_track(tools: Optional[list[str]]) -> LearningTrack:
    declared = {str(t).strip().lower() for t in (tools or []) if t}
    return LearningTrack.ANALYST if declared & _ANALYST_TOOLS else LearningTrack.MANAGER


def infer_domain(role: Optional[str]) -> Domain:
    role_text = str(role or "").lower()
    if any(k in role_text for k in _OPS_ROLE_KEYWORDS):
        return Domain.OPS
    return Domain.MARKETING


def score_persona(
    signals: PersonaSignals,
    intake: IntakeAnswers,
    diagnostic_threshold: Optional[int] = None,
) -> int:
    """Weighted sum of independent signals; always a non-negative int."""
    if diagnostic_threshold is None:
        diagnostic_threshold = get_settings().engine.diagnostic_threshold
    score = 0
    if _any_match(_text(*(intake.decisions or [])), signals.decision_keywords):
        score += DECISION_WEIGHT
    if _any_match(_text(*(intake.kpis or [])), signals.kpi_keywords):
        score += KPI_WEIGHT
    if _any_match(_text(intake.role), signals.role_keywords):
        score += ROLE_WEIGHT
    diag = intake.diagnostic_score
    if (
        signals.uses_diagnostic
        and isinstance(diag, int)
        and 0 <= diag <= 100
        and diag >= diagnostic_threshold
    ):
        score += DIAGNOSTIC_WEIGHT
    return score


def rank_personas(
    domain: Domain,
    intake: IntakeAnswers,
    diagnostic_threshold: Optional[int] = None,
) -> tuple[Persona, Persona, dict[str, int]]:
    """Return (primary, secondary, scores).  Ties go to the first-listed persona."""
    first, second = PERSONA_CANDIDATES[domain]
    s1 = score_persona(first, intake, diagnostic_threshold)
    s2 = score_persona(second, intake, diagnostic_threshold)
    scores = {first.persona.value: s1, second.persona.value: s2}
    if s2 > s1:
        return second.persona, first.persona, scores
    return first.persona, second.persona, scores


# ── Public API ────────────────────────────────────────────────────────────────

def classify(
    intake: IntakeAnswers,
    catalog: Optional[ContentCatalog] = None,
    diagnostic_threshold: Optional[int] = None,
) -> ClassificationResult:
    """
    Classify a learner from their onboarding answers.
    Same inputs always give the same result; nothing here can fail.
    """
    catalog = catalog or get_catalog()

    track  = infer_track(intake.tools)
    domain = infer_domain(intake.role)
    primary, secondary, scores = rank_personas(domain, intake, diagnostic_threshold)

    route = catalog.route(domain, primary)
    if route is None:
        # Catalog without a route for this pairing: fall back to the naming scheme.
        route = (skill_tree_id_for(primary), program_id_for(primary))
    tree_id, program_id = route

    starter = catalog.starting_use_case(domain)
    starting_use_case_id = starter.id if starter else (catalog.use_cases[0].id if catalog.use_cases else "")

    logger.debug(
        "Classified role=%r → track=%s domain=%s persona=%s scores=%s",
        intake.role, track.value, domain.value, primary.value, scores,
    )

    return ClassificationResult(
        track=track,
        domain_preference=domain,
        primary_persona=primary,
        secondary_persona=secondary,
        persona_scores=scores,
        active_skill_tree_id=tree_id,
        active_program_id=program_id,
        starting_use_case_id=starting_use_case_id,
    )


def apply_classification(profile: UserProfile, result: ClassificationResult) -> UserProfile:
    """
    Return a copy of *profile* with the derived classification fields
    replaced.  Mastery, verified skills, artifacts and program progress are
    historical state and are carried over untouched.
    """
    return profile.model_copy(
        update={
            "track":                result.track,
            "domain_preference":    result.domain_preference,
            "primary_persona":      result.primary_persona,
            "secondary_persona":    result.secondary_persona,
            "active_skill_tree_id": result.active_skill_tree_id,
            "active_program_id":    result.active_program_id,
        },
        deep=True,
    )


def onboard(
    user_id: str,
    intake: IntakeAnswers,
    name: str = "",
    is_admin: bool = False,
    initial_mastery: Optional[int] = None,
    catalog: Optional[ContentCatalog] = None,
) -> tuple[UserProfile, ClassificationResult]:
    """Build a brand-new profile from intake answers."""
    if initial_mastery is None:
        initial_mastery = get_settings().engine.initial_mastery
    result = classify(intake, catalog)
    profile = UserProfile(
        id=user_id,
        name=name,
        is_admin=is_admin,
        role=intake.role or "",
        industry=intake.industry or "",
        tools=[str(t).lower() for t in (intake.tools or []) if t],
        goal=intake.goal or "",
        availability=intake.availability if isinstance(intake.availability, int) else 5,
        decisions=list(intake.decisions or []),
        kpis=list(intake.kpis or []),
        diagnostic_score=intake.diagnostic_score,
        mastery_score=max(0, min(100, initial_mastery)),
    )
    return apply_classification(profile, result), result
