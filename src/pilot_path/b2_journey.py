"""
b2_journey.py – Program Progress State Machine (the 9-week Journey)
====================================================================
Per-week lifecycle::

    locked → unlocked → submitted → passed | needs_work
                            ↑              │
                            └── resubmit ──┘

  init_progress(program)                week 0 unlocked, every other week locked
  ensure_progress(profile, program)     initialise once per (learner, program)
  begin_submission(progress, …)         guardrails, then → submitted
  apply_review(progress, …, review)     → passed (score ≥ bar AND pass flag) or
                                        needs_work; a pass force-unlocks week+1
  submit_for_review(profile, …)         begin → reviewer → apply, persisting
                                        through the store unless persist=False
  resume_review(profile, …)             re-request a verdict for a week left
                                        at submitted by a failed review

All transitions return new objects.  A reviewer failure leaves the week at
``submitted`` and raises ReviewUnavailableError carrying that state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol, Sequence

from pilot_path.b2_1_reviewer import Reviewer, ReviewContext, parse_review_payload
from pilot_path.catalog import ContentCatalog, get_catalog
from pilot_path.exceptions import ReviewUnavailableError, SubmissionRejectedError
from pilot_path.guardrails import GuardrailResult, GuardrailViolation, SubmissionGuardrails
from pilot_path.models import (
    PathLibraryEntry,
    Program,
    ProgramProgress,
    ReviewResult,
    Submission,
    UserProfile,
    WeekState,
    WeekStatus,
    utc_now,
)

logger = logging.getLogger(__name__)


class ProfileStore(Protocol):
    def load_profile(self, user_id: str) -> Optional[UserProfile]: ...
    def save_profile(self, profile: UserProfile) -> None: ...


@dataclass
class JourneyOutcome:
    """What one reviewed submission did to the learner's journey."""
    profile:       UserProfile
    progress:      ProgramProgress
    week_no:       int
    review:        ReviewResult
    status:        WeekStatus
    unlocked_week: Optional[int] = None
    persisted:     bool = False
    warnings:      list[GuardrailViolation] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == WeekStatus.PASSED


# ── Initialisation ────────────────────────────────────────────────────────────

def init_progress(program: Program, now: Optional[datetime] = None) -> ProgramProgress:
    ts = now or utc_now()
    weeks = {
        n: WeekState(status=WeekStatus.UNLOCKED if n == 0 else WeekStatus.LOCKED)
        for n in program.week_numbers()
    }
    return ProgramProgress(
        program_id=program.id,
        current_week=0,
        started_at=ts,
        updated_at=ts,
        weeks=weeks,
    )


def ensure_progress(profile: UserProfile, program: Program) -> UserProfile:
    """
    Attach fresh progress for *program* unless the learner already has
    progress for that program id; existing progress is never reset.
    """
    existing = profile.program_progress
    if existing is not None and existing.program_id == program.id:
        return profile
    if existing is not None:
        logger.info(
            "User %s switches program %s → %s; starting new progress",
            profile.id, existing.program_id, program.id,
        )
    return profile.model_copy(update={"program_progress": init_progress(program)}, deep=True)


# ── Transitions ───────────────────────────────────────────────────────────────

def begin_submission(
    progress: ProgramProgress,
    program: Program,
    week_no: int,
    text: Optional[str],
    attachments: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
) -> tuple[ProgramProgress, GuardrailResult]:
    """
    Validate and record a submission.  The previous submission is replaced;
    the previous review stays as the latest verdict until a new one lands.
    Raises SubmissionRejectedError (nothing changed) on a blocking guardrail.
    """
    guard = SubmissionGuardrails().check(progress, program, week_no, text)
    if guard.blocked:
        raise SubmissionRejectedError(
            "; ".join(v.message for v in guard.blocking), result=guard,
        )

    ts = now or utc_now()
    updated = progress.model_copy(deep=True)
    state = updated.weeks[week_no]
    updated.weeks[week_no] = state.model_copy(update={
        "status":     WeekStatus.SUBMITTED,
        "submission": Submission(text=text, submitted_at=ts, attachments=list(attachments or [])),
    })
    updated.updated_at = ts
    return updated, guard


def apply_review(
    progress: ProgramProgress,
    program: Program,
    week_no: int,
    review: ReviewResult,
    now: Optional[datetime] = None,
) -> ProgramProgress:
    """
    Record a verdict for a submitted week.  Both the score bar and the
    reviewer's own pass flag must agree for the week to pass.
    """
    week = program.week(week_no)
    state = progress.weeks.get(week_no)
    if week is None or state is None:
        raise SubmissionRejectedError(f"Week {week_no} is not part of program '{program.id}'.")
    if state.status != WeekStatus.SUBMITTED:
        raise SubmissionRejectedError(
            f"Week {week_no} is '{state.status.value}', only a submitted week can be reviewed."
        )

    passed = review.score >= week.rubric.overall_pass_score and review.passed is True
    ts = now or utc_now()

    updated = progress.model_copy(deep=True)
    updated.weeks[week_no] = state.model_copy(update={
        "status": WeekStatus.PASSED if passed else WeekStatus.NEEDS_WORK,
        "review": review.to_week_review(),
    })

    nxt = week_no + 1
    if passed and program.week(nxt) is not None:
        prev = updated.weeks.get(nxt) or WeekState()
        updated.weeks[nxt] = prev.model_copy(update={"status": WeekStatus.UNLOCKED})
        updated.current_week = max(updated.current_week, nxt)

    updated.updated_at = ts
    return updated


def _request_review(
    reviewer: Reviewer,
    text: str,
    program: Program,
    week_no: int,
    submitted: ProgramProgress,
) -> ReviewResult:
    week = program.week(week_no)
    try:
        raw = reviewer.review(text, ReviewContext.from_week(week))
        return raw if isinstance(raw, ReviewResult) else parse_review_payload(raw)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Review failed for %s week %d: %s", program.id, week_no, exc)
        raise ReviewUnavailableError(
            f"Week {week_no} could not be reviewed right now ({exc}).",
            progress=submitted,
            week_no=week_no,
        ) from exc


def _program_for(profile: UserProfile, catalog: ContentCatalog) -> Program:
    program = catalog.program(profile.active_program_id)
    if program is None:
        raise SubmissionRejectedError(
            f"No program '{profile.active_program_id}' is assigned to user {profile.id}."
        )
    return program


def _finish(
    profile: UserProfile,
    program: Program,
    week_no: int,
    submitted: ProgramProgress,
    review: ReviewResult,
    store: Optional[ProfileStore],
    persist: bool,
    warnings: list[GuardrailViolation],
) -> JourneyOutcome:
    before_week = submitted.current_week
    progress = apply_review(submitted, program, week_no, review)
    final = profile.model_copy(update={"program_progress": progress}, deep=True)
    status = progress.weeks[week_no].status

    saved = False
    if persist and store is not None:
        store.save_profile(final)
        saved = True

    unlocked = week_no + 1 if status == WeekStatus.PASSED and program.week(week_no + 1) else None
    logger.info(
        "User %s week %d → %s (score=%d, pass=%s, current_week %d → %d, persisted=%s)",
        profile.id, week_no, status.value, review.score, review.passed,
        before_week, progress.current_week, saved,
    )
    return JourneyOutcome(
        profile=final,
        progress=progress,
        week_no=week_no,
        review=review,
        status=status,
        unlocked_week=unlocked,
        persisted=saved,
        warnings=warnings,
    )


# ── Orchestration ─────────────────────────────────────────────────────────────

def submit_for_review(
    profile: UserProfile,
    week_no: int,
    text: str,
    reviewer: Reviewer,
    store: Optional[ProfileStore] = None,
    persist: bool = True,
    catalog: Optional[ContentCatalog] = None,
    attachments: Optional[Sequence[str]] = None,
) -> JourneyOutcome:
    """
    Submit a week's work and grade it.

    With ``persist=True`` the submitted state is saved before the reviewer is
    called, and the verdict is saved after it, so an abandoned review can be
    resumed.  ``persist=False`` (admin preview) computes the same transitions
    but never touches the store.
    """
    catalog = catalog or get_catalog()
    program = _program_for(profile, catalog)
    profile = ensure_progress(profile, program)

    submitted, guard = begin_submission(profile.program_progress, program, week_no, text, attachments)
    submitted_profile = profile.model_copy(update={"program_progress": submitted}, deep=True)
    if persist and store is not None:
        store.save_profile(submitted_profile)

    review = _request_review(reviewer, text, program, week_no, submitted)
    return _finish(submitted_profile, program, week_no, submitted, review, store, persist, guard.warnings)


def resume_review(
    profile: UserProfile,
    week_no: int,
    reviewer: Reviewer,
    store: Optional[ProfileStore] = None,
    persist: bool = True,
    catalog: Optional[ContentCatalog] = None,
) -> JourneyOutcome:
    """Retry the reviewer for a week still at ``submitted`` with its stored text."""
    catalog = catalog or get_catalog()
    program = _program_for(profile, catalog)
    progress = profile.program_progress
    state = progress.weeks.get(week_no) if progress and progress.program_id == program.id else None
    if state is None or state.status != WeekStatus.SUBMITTED or state.submission is None:
        raise SubmissionRejectedError(f"Week {week_no} has no submission awaiting review.")

    review = _request_review(reviewer, state.submission.text, program, week_no, progress)
    return _finish(profile, program, week_no, progress, review, store, persist, [])


# ── Admin preview ─────────────────────────────────────────────────────────────

def preview_profile(
    admin: UserProfile,
    entry: PathLibraryEntry,
    catalog: Optional[ContentCatalog] = None,
) -> UserProfile:
    """
    Throw-away profile for an administrator walking through a persona's
    path.  Feed it to submit_for_review with ``persist=False``.
    """
    catalog = catalog or get_catalog()
    program = catalog.program(entry.program_id)
    if program is None:
        raise SubmissionRejectedError(f"Path '{entry.id}' points at unknown program '{entry.program_id}'.")
    return admin.model_copy(
        update={
            "domain_preference":    entry.domain_preference,
            "primary_persona":      entry.persona,
            "active_skill_tree_id": entry.skill_tree_id,
            "active_program_id":    entry.program_id,
            "program_progress":     init_progress(program),
        },
        deep=True,
    )
