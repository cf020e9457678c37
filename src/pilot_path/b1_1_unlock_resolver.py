"""
b1_1_unlock_resolver.py – Completion / Unlock Resolver
=======================================================
Runs when a learner finishes a pilot (use case).

  complete_use_case(nodes, required_skill_ids) → nodes
    1. Completion pass: required nodes → COMPLETED (idempotent).
    2. Unlock pass: LOCKED nodes whose dependencies are all COMPLETED in the
       post-completion list → UNLOCKED.  One pass only; a node two hops
       away waits for the next completion event.

  complete_pilot(profile, use_case_id, difficulty_adjustment, …) → CompletionOutcome
    Profile-level, all-or-nothing: verified skills, clamped mastery delta,
    unlock pass, portfolio artifact, then a graph-engine refresh for the new
    mastery.  Unknown use case / missing profile → nothing changes.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from pilot_path.b1_graph_engine import (
    compute_node_statuses,
    instantiate_nodes,
    status_overlay,
    unlock_ready_nodes,
)
from pilot_path.catalog import ContentCatalog, get_catalog
from pilot_path.config import get_settings
from pilot_path.models import Artifact, SkillNode, SkillStatus, UserProfile, utc_now

logger = logging.getLogger(__name__)

MASTERY_MIN = 0
MASTERY_MAX = 100


@dataclass
class CompletionOutcome:
    """Result of complete_pilot; ``applied`` is False for a rejected no-op."""
    applied:         bool
    profile:         Optional[UserProfile]
    nodes:           list[SkillNode] = field(default_factory=list)
    artifact:        Optional[Artifact] = None
    newly_completed: list[str] = field(default_factory=list)
    newly_unlocked:  list[str] = field(default_factory=list)
    mastery_before:  Optional[int] = None
    mastery_after:   Optional[int] = None
    reason:          str = ""


def clamp_mastery(score: int) -> int:
    return max(MASTERY_MIN, min(MASTERY_MAX, int(score)))


def complete_use_case(
    nodes: Iterable[SkillNode],
    required_skill_ids: Iterable[str],
) -> list[SkillNode]:
    required = set(required_skill_ids)

    completed = [
        n.with_status(SkillStatus.COMPLETED) if n.id in required else n
        for n in nodes
    ]
    unlocked, _ = unlock_ready_nodes(completed)
    return unlocked


def mark_in_progress(nodes: Iterable[SkillNode], node_id: str) -> list[SkillNode]:
    """Learner opened an UNLOCKED node; any other status is left alone."""
    return [
        n.with_status(SkillStatus.IN_PROGRESS)
        if n.id == node_id and n.status == SkillStatus.UNLOCKED
        else n
        for n in nodes
    ]


def complete_pilot(
    profile: Optional[UserProfile],
    use_case_id: Optional[str],
    difficulty_adjustment: Optional[int] = None,
    catalog: Optional[ContentCatalog] = None,
    advanced_threshold: Optional[int] = None,
    remedial_threshold: Optional[int] = None,
    now: Optional[datetime] = None,
) -> CompletionOutcome:
    """
    Apply a finished pilot to a learner's profile.

    ``difficulty_adjustment`` is the signed mastery delta chosen by the
    caller; left unset it comes from PILOT_COMPLETION_DELTA.  The returned
    profile is a fresh copy; *profile* itself is never modified.
    """
    if profile is None:
        logger.warning("Pilot completion ignored: no profile loaded")
        return CompletionOutcome(applied=False, profile=None, reason="No learner profile loaded.")

    catalog = catalog or get_catalog()
    use_case = catalog.use_case(use_case_id)
    if use_case is None:
        logger.warning("Pilot completion ignored: unknown use case %r for user %s", use_case_id, profile.id)
        return CompletionOutcome(
            applied=False, profile=profile,
            reason=f"Unknown use case '{use_case_id}'.",
        )

    graph = catalog.graph(profile.active_skill_tree_id)
    if graph is None:
        logger.warning("Pilot completion ignored: user %s has no skill tree", profile.id)
        return CompletionOutcome(
            applied=False, profile=profile,
            reason=f"Unknown skill tree '{profile.active_skill_tree_id}'.",
        )

    # Everything below works on copies; the caller's profile stays intact
    # until the new one is returned.
    mastery_before = profile.mastery_score
    before = compute_node_statuses(
        instantiate_nodes(graph, profile.node_statuses, profile.verified_skills),
        mastery_before,
        profile.domain_preference,
        advanced_threshold=advanced_threshold,
        remedial_threshold=remedial_threshold,
    )
    before_status = {n.id: n.status for n in before}

    resolved = complete_use_case(before, use_case.required_skills)

    if difficulty_adjustment is None:
        difficulty_adjustment = get_settings().engine.completion_delta
    mastery_after = clamp_mastery(mastery_before + int(difficulty_adjustment))

    nodes = compute_node_statuses(
        resolved,
        mastery_after,
        profile.domain_preference,
        advanced_threshold=advanced_threshold,
        remedial_threshold=remedial_threshold,
    )

    artifact = Artifact(
        id=uuid.uuid4().hex,
        user_id=profile.id,
        use_case_id=use_case.id,
        title=use_case.title,
        type="Pilot Artifact",
        created_at=now or utc_now(),
        status="verified",
    )

    verified = list(dict.fromkeys([*profile.verified_skills, *use_case.required_skills]))
    updated = profile.model_copy(
        update={
            "mastery_score":   mastery_after,
            "verified_skills": verified,
            "node_statuses":   status_overlay(nodes),
            "artifacts":       [artifact, *profile.artifacts],
        },
        deep=True,
    )

    newly_completed = [
        n.id for n in nodes
        if n.status == SkillStatus.COMPLETED and before_status.get(n.id) != SkillStatus.COMPLETED
    ]
    newly_unlocked = [
        n.id for n in nodes
        if n.status == SkillStatus.UNLOCKED and before_status.get(n.id) != SkillStatus.UNLOCKED
    ]

    logger.info(
        "User %s completed %s: mastery %d → %d, completed=%s, unlocked=%s",
        profile.id, use_case.id, mastery_before, mastery_after, newly_completed, newly_unlocked,
    )

    return CompletionOutcome(
        applied=True,
        profile=updated,
        nodes=nodes,
        artifact=artifact,
        newly_completed=newly_completed,
        newly_unlocked=newly_unlocked,
        mastery_before=mastery_before,
        mastery_after=mastery_after,
    )
