"""
b1_graph_engine.py – Graph State Engine
========================================
Computes the visibility / lock status of every node in a learner's skill
tree from three inputs only: the nodes (with their current statuses), the
learner's mastery score and their active domain.

Rules, applied per node in priority order:

  1. Domain filter   node.domain not in {active, "shared"}   → HIDDEN
  2. Advanced reveal mastery ≥ 85, advanced, currently HIDDEN → LOCKED
  3. Remedial rescue mastery < 40, remedial, currently HIDDEN → UNLOCKED
  4. Otherwise the status is left as it is.

Advanced nodes still have to earn UNLOCKED through the resolver; remedial
nodes skip the dependency gate entirely.  The function is pure and
idempotent: feeding its output back in with the same mastery and domain
returns the same list.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from pilot_path.config import get_settings
from pilot_path.models import (
    Difficulty,
    Domain,
    SkillGraph,
    SkillNode,
    SkillStatus,
    UserProfile,
)

logger = logging.getLogger(__name__)


def _thresholds(advanced: Optional[int], remedial: Optional[int]) -> tuple[int, int]:
    """Fill unset thresholds from ADVANCED_ / REMEDIAL_MASTERY_THRESHOLD."""
    if advanced is None or remedial is None:
        engine = get_settings().engine
        advanced = engine.advanced_mastery_threshold if advanced is None else advanced
        remedial = engine.remedial_mastery_threshold if remedial is None else remedial
    return advanced, remedial


def _domain_value(domain: Union[Domain, str, None]) -> Optional[str]:
    if domain is None:
        return None
    return domain.value if isinstance(domain, Domain) else str(domain)


def _node_status(
    node: SkillNode,
    mastery_score: int,
    active_domain: Optional[str],
    advanced_threshold: int,
    remedial_threshold: int,
) -> SkillStatus:
    node_domain = _domain_value(node.domain)
    if node_domain and node_domain != Domain.SHARED.value and node_domain != active_domain:
        return SkillStatus.HIDDEN
    if (
        mastery_score >= advanced_threshold
        and node.difficulty == Difficulty.ADVANCED
        and node.status == SkillStatus.HIDDEN
    ):
        return SkillStatus.LOCKED
    if (
        mastery_score < remedial_threshold
        and node.remedial
        and node.status == SkillStatus.HIDDEN
    ):
        return SkillStatus.UNLOCKED
    return node.status


def compute_node_statuses(
    nodes: Iterable[SkillNode],
    mastery_score: int,
    active_domain: Union[Domain, str, None],
    advanced_threshold: Optional[int] = None,
    remedial_threshold: Optional[int] = None,
    admin_override: bool = False,
) -> list[SkillNode]:
    """
    Return a new node list with statuses recomputed; inputs are not touched.

    ``admin_override`` short-circuits the rules and shows every node as
    UNLOCKED, which is what an administrator browsing the tree sees.
    """
    if admin_override:
        return [n.with_status(SkillStatus.UNLOCKED) for n in nodes]

    advanced_threshold, remedial_threshold = _thresholds(advanced_threshold, remedial_threshold)
    domain = _domain_value(active_domain)
    result = [
        n.with_status(_node_status(n, mastery_score, domain, advanced_threshold, remedial_threshold))
        for n in nodes
    ]
    logger.debug(
        "Recomputed %d nodes (mastery=%s, domain=%s): %d visible",
        len(result), mastery_score, domain, len(visible_nodes(result)),
    )
    return result


# ── Per-user overlays ─────────────────────────────────────────────────────────

def unlock_ready_nodes(nodes: Iterable[SkillNode]) -> tuple[list[SkillNode], list[str]]:
    """
    Single pass: LOCKED nodes whose dependencies are all COMPLETED become
    UNLOCKED.  Readiness is judged against the input list, so a node unlocked
    here never unlocks its own dependants in the same pass.
    """
    nodes = list(nodes)
    status_by_id = {n.id: n.status for n in nodes}
    result, unlocked = [], []
    for n in nodes:
        if n.status == SkillStatus.LOCKED and all(
            status_by_id.get(dep) == SkillStatus.COMPLETED for dep in n.dependencies
        ):
            result.append(n.with_status(SkillStatus.UNLOCKED))
            unlocked.append(n.id)
        else:
            result.append(n)
    return result, unlocked


def instantiate_nodes(
    graph: SkillGraph,
    overlay: Optional[dict[str, SkillStatus]] = None,
    verified_skills: Iterable[str] = (),
) -> list[SkillNode]:
    """
    Copy the template nodes of *graph* and apply a learner's stored statuses.
    Ids in the overlay that the graph does not define are ignored.

    A stored HIDDEN carries no progress of its own, since hiding is re-derived
    from the domain on every run.  Such a node is rebuilt from
    *verified_skills* (verified → COMPLETED, else the template status) and
    then goes through one unlock pass, so a learner who leaves a domain and
    comes back finds the branch as they left it.
    """
    overlay = overlay or {}
    verified = set(verified_skills)
    nodes = []
    for n in graph.nodes:
        stored = SkillStatus(overlay[n.id]) if n.id in overlay else None
        if stored not in (None, SkillStatus.HIDDEN):
            nodes.append(n.with_status(stored))
        elif n.id in verified:
            nodes.append(n.with_status(SkillStatus.COMPLETED))
        else:
            nodes.append(n)
    nodes, _ = unlock_ready_nodes(nodes)
    return nodes


def status_overlay(nodes: Iterable[SkillNode]) -> dict[str, SkillStatus]:
    return {n.id: n.status for n in nodes}


def visible_nodes(nodes: Iterable[SkillNode]) -> list[SkillNode]:
    return [n for n in nodes if n.status != SkillStatus.HIDDEN]


def track_completion_pct(verified_skills: Iterable[str], nodes: Iterable[SkillNode]) -> int:
    """Verified skills as a share of the visible tree, 0–100."""
    visible = visible_nodes(nodes)
    visible_ids = {n.id for n in visible}
    done = len([s for s in set(verified_skills) if s in visible_ids])
    return round(done / max(1, len(visible)) * 100)


def refresh_profile_graph(
    profile: UserProfile,
    graph: SkillGraph,
    advanced_threshold: Optional[int] = None,
    remedial_threshold: Optional[int] = None,
) -> tuple[UserProfile, list[SkillNode]]:
    """
    Re-run the engine for a learner after their mastery, domain or admin
    flag changed.  Returns the updated profile copy and the node list.
    Admin views are computed on the fly and never written to the overlay.
    """
    nodes = instantiate_nodes(graph, profile.node_statuses, profile.verified_skills)
    if profile.is_admin:
        return profile, compute_node_statuses(nodes, profile.mastery_score, profile.domain_preference, admin_override=True)

    nodes = compute_node_statuses(
        nodes,
        profile.mastery_score,
        profile.domain_preference,
        advanced_threshold=advanced_threshold,
        remedial_threshold=remedial_threshold,
    )
    updated = profile.model_copy(update={"node_statuses": status_overlay(nodes)}, deep=True)
    return updated, nodes
