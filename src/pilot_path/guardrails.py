"""
guardrails.py – Validation layer around the skill graph engine
===============================================================
Implements intake checks, load-time content validation and submission
checks that wrap every state-changing call.

Guardrail levels
----------------
BLOCK   – Hard-stop: the operation does not proceed, state is untouched.
WARN    – Soft-stop: the operation proceeds with a visible warning.
INFO    – Advisory: informational note only.

Guards implemented
------------------
Intake guards (before classification — never block):
  G-01  Role text present (classifier falls back to the default domain)
  G-02  Weekly availability within 2–15 hours
  G-03  Diagnostic score within [0, 100] when provided

Content guards (at catalog load time):
  G-04  Node ids unique within a skill graph
  G-05  No node depends on itself
  G-06  Every dependency id exists in the same graph
  G-07  Dependency relation is acyclic (topological sort)
  G-08  Program week numbers contiguous from 0, no duplicates
  G-09  Use-case required skills exist in the skill graph

Submission guards (before a week is marked submitted):
  G-10  Submission text is non-empty
  G-11  Week exists in the program
  G-12  Week is not locked
  G-13  PII patterns in submission text (text is sent to an external reviewer)
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from pilot_path.models import (
    IntakeAnswers,
    Program,
    ProgramProgress,
    SkillGraph,
    SkillNode,
    UseCase,
    WeekStatus,
)


# ─── Enums & data models ─────────────────────────────────────────────────────

class GuardrailLevel(str, Enum):
    BLOCK = "BLOCK"
    WARN  = "WARN"
    INFO  = "INFO"


@dataclass
class GuardrailViolation:
    code:    str
    level:   GuardrailLevel
    message: str
    field:   str = ""   # which field / node / week triggered the violation


@dataclass
class GuardrailResult:
    passed:     bool
    violations: list[GuardrailViolation] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return any(v.level == GuardrailLevel.BLOCK for v in self.violations)

    @property
    def blocking(self) -> list[GuardrailViolation]:
        return [v for v in self.violations if v.level == GuardrailLevel.BLOCK]

    @property
    def warnings(self) -> list[GuardrailViolation]:
        return [v for v in self.violations if v.level == GuardrailLevel.WARN]

    @property
    def infos(self) -> list[GuardrailViolation]:
        return [v for v in self.violations if v.level == GuardrailLevel.INFO]

    def summary(self) -> str:
        if not self.violations:
            return "✅ All guardrails passed."
        lines = [f"{'🚫' if v.level == GuardrailLevel.BLOCK else '⚠️' if v.level == GuardrailLevel.WARN else 'ℹ️'} [{v.code}] {v.message}" for v in self.violations]
        return "\n".join(lines)


def _result(violations: list[GuardrailViolation]) -> GuardrailResult:
    return GuardrailResult(
        passed=not any(v.level == GuardrailLevel.BLOCK for v in violations),
        violations=violations,
    )


# ─── PII patterns (submission text goes to a third-party model) ─────────────

_PII_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("Email address",  re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b")),
    ("Phone number",   re.compile(r"(?:\+91[\-\s]?)?\b[6-9]\d{9}\b|\b(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]\d{3}[-.\s]\d{4}\b")),
    ("Aadhaar number", re.compile(r"\b\d{4}\s\d{4}\s\d{4}\b")),
    ("PAN number",     re.compile(r"\b[A-Z]{5}\d{4}[A-Z]\b")),
    ("Credit card",    re.compile(r"\b(?:4\d{3}|5[1-5]\d{2}|6011|3[47]\d{2})[\s\-]?\d{4}[\s\-]?\d{4}[\s\-]?\d{4}\b")),
]


# ─── Guardrail checks ─────────────────────────────────────────────────────────

class IntakeGuardrails:
    """G-01 – G-03: advisory checks on onboarding answers."""

    def check(self, intake: IntakeAnswers) -> GuardrailResult:
        violations: list[GuardrailViolation] = []

        # G-01 Role text
        if not (intake.role or "").strip():
            violations.append(GuardrailViolation(
                code="G-01", level=GuardrailLevel.WARN,
                field="role",
                message="Role is empty — learner will be placed on the default marketing path.",
            ))

        # G-02 Availability
        if not isinstance(intake.availability, int) or not (2 <= intake.availability <= 15):
            violations.append(GuardrailViolation(
                code="G-02", level=GuardrailLevel.WARN,
                field="availability",
                message=f"Weekly availability ({intake.availability!r} h) is missing or outside the 2–15 h range the journey is paced for.",
            ))

        # G-03 Diagnostic score
        diag = intake.diagnostic_score
        if diag is not None and (not isinstance(diag, int) or not (0 <= diag <= 100)):
            violations.append(GuardrailViolation(
                code="G-03", level=GuardrailLevel.WARN,
                field="diagnostic_score",
                message=f"Diagnostic score {diag!r} is not an integer in [0, 100]; it will be ignored.",
            ))

        return _result(violations)


def find_dependency_cycle(nodes: Iterable[SkillNode]) -> list[str]:
    """
    Kahn's algorithm over the dependency relation.
    Returns the ids that could not be ordered (empty list when acyclic).
    Unknown dependency ids are ignored here; G-06 reports them.
    """
    node_list = list(nodes)
    ids = {n.id for n in node_list}
    indegree: dict[str, int] = {n.id: 0 for n in node_list}
    dependents: dict[str, list[str]] = {n.id: [] for n in node_list}
    for n in node_list:
        for dep in set(n.dependencies):
            if dep in ids:
                indegree[n.id] += 1
                dependents[dep].append(n.id)

    queue = deque(nid for nid, deg in indegree.items() if deg == 0)
    ordered: set[str] = set()
    while queue:
        nid = queue.popleft()
        ordered.add(nid)
        for child in dependents[nid]:
            indegree[child] -= 1
            if indegree[child] == 0:
                queue.append(child)

    return sorted(ids - ordered)


class ContentGuardrails:
    """G-04 – G-09: load-time validation of static content."""

    def check_graph(self, graph: SkillGraph) -> GuardrailResult:
        violations: list[GuardrailViolation] = []
        ids = [n.id for n in graph.nodes]

        # G-04 Unique ids
        dups = sorted({i for i in ids if ids.count(i) > 1})
        if dups:
            violations.append(GuardrailViolation(
                code="G-04", level=GuardrailLevel.BLOCK,
                field=graph.id,
                message=f"Skill graph '{graph.id}' has duplicate node ids: {dups}.",
            ))

        known = set(ids)
        for node in graph.nodes:
            # G-05 Self dependency
            if node.id in node.dependencies:
                violations.append(GuardrailViolation(
                    code="G-05", level=GuardrailLevel.BLOCK,
                    field=node.id,
                    message=f"Node '{node.id}' depends on itself.",
                ))
            # G-06 Unknown dependency
            missing = [d for d in node.dependencies if d not in known]
            if missing:
                violations.append(GuardrailViolation(
                    code="G-06", level=GuardrailLevel.BLOCK,
                    field=node.id,
                    message=f"Node '{node.id}' depends on unknown node(s): {missing}.",
                ))

        # G-07 Acyclic
        stuck = find_dependency_cycle(graph.nodes)
        if stuck:
            violations.append(GuardrailViolation(
                code="G-07", level=GuardrailLevel.BLOCK,
                field=graph.id,
                message=f"Skill graph '{graph.id}' has a dependency cycle through: {stuck}.",
            ))

        return _result(violations)

    def check_program(self, program: Program) -> GuardrailResult:
        violations: list[GuardrailViolation] = []

        # G-08 Contiguous weeks from 0
        numbers = [w.week_no for w in program.weeks]
        if not numbers:
            violations.append(GuardrailViolation(
                code="G-08", level=GuardrailLevel.BLOCK,
                field=program.id,
                message=f"Program '{program.id}' has no weeks.",
            ))
        elif sorted(numbers) != list(range(len(numbers))):
            violations.append(GuardrailViolation(
                code="G-08", level=GuardrailLevel.BLOCK,
                field=program.id,
                message=f"Program '{program.id}' weeks must be 0..{len(numbers) - 1} without gaps; got {sorted(numbers)}.",
            ))

        return _result(violations)

    def check_use_case(self, use_case: UseCase, known_node_ids: set[str]) -> GuardrailResult:
        violations: list[GuardrailViolation] = []

        # G-09 Required skills exist
        missing = [s for s in use_case.required_skills if s not in known_node_ids]
        if not use_case.required_skills:
            violations.append(GuardrailViolation(
                code="G-09", level=GuardrailLevel.BLOCK,
                field=use_case.id,
                message=f"Use case '{use_case.id}' verifies no skills.",
            ))
        elif missing:
            violations.append(GuardrailViolation(
                code="G-09", level=GuardrailLevel.BLOCK,
                field=use_case.id,
                message=f"Use case '{use_case.id}' requires skills not defined in any skill tree: {missing}.",
            ))

        return _result(violations)


class SubmissionGuardrails:
    """G-10 – G-13: checks before a week submission is accepted."""

    def check(
        self,
        progress: ProgramProgress,
        program: Program,
        week_no: int,
        text: Optional[str],
    ) -> GuardrailResult:
        violations: list[GuardrailViolation] = []

        # G-10 Non-empty text
        if not (text or "").strip():
            violations.append(GuardrailViolation(
                code="G-10", level=GuardrailLevel.BLOCK,
                field="text",
                message="Please paste your submission before requesting a review.",
            ))

        # G-11 Week exists
        state = progress.weeks.get(week_no)
        if program.week(week_no) is None or state is None:
            violations.append(GuardrailViolation(
                code="G-11", level=GuardrailLevel.BLOCK,
                field=f"week[{week_no}]",
                message=f"Week {week_no} is not part of program '{program.id}'.",
            ))
        # G-12 Week not locked
        elif state.status == WeekStatus.LOCKED:
            violations.append(GuardrailViolation(
                code="G-12", level=GuardrailLevel.BLOCK,
                field=f"week[{week_no}]",
                message=f"Week {week_no} is locked. Pass the previous week to unlock it.",
            ))

        # G-13 PII scan
        for label, pattern in _PII_PATTERNS:
            if text and pattern.search(text):
                violations.append(GuardrailViolation(
                    code="G-13", level=GuardrailLevel.WARN,
                    field="text",
                    message=f"PII detected in submission — {label}. It will be sent to the AI reviewer.",
                ))

        return _result(violations)
