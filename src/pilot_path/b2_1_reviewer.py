"""
b2_1_reviewer.py – AI-graded submission reviewer
=================================================
The journey state machine only needs ``review(text, context) → ReviewResult``.
Two implementations share that contract:

  AzureOpenAIReviewer  Live tier.  JSON-mode chat completion against an Azure
                       OpenAI deployment; the reply is validated before use.
  MockReviewer         Rule-based grader (no credentials needed).  Scores
                       deliverable coverage and depth deterministically so the
                       journey is fully testable offline.

get_reviewer(settings) picks the live tier when credentials are real and
FORCE_MOCK_MODE is off, otherwise the mock tier.

parse_review_payload() is the single gate for reviewer output: anything that
is not a well-formed review raises MalformedReviewError, which the journey
treats as a failed review (never as a pass).
"""

from __future__ import annotations

import json
import logging
import re
import textwrap
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union

from openai import AzureOpenAI
from pydantic import ValidationError

from pilot_path.config import AzureOpenAIConfig, Settings, get_settings
from pilot_path.exceptions import MalformedReviewError
from pilot_path.models import ProgramWeek, ReviewResult

logger = logging.getLogger(__name__)


# ─── Review context ──────────────────────────────────────────────────────────

@dataclass
class ReviewContext:
    """What the reviewer is told about the week being graded."""
    week_no:      int
    title:        str
    outcome:      str = ""
    deliverables: list[str] = field(default_factory=list)
    pass_score:   int = 70
    criteria:     list[str] = field(default_factory=list)

    @classmethod
    def from_week(cls, week: ProgramWeek) -> "ReviewContext":
        return cls(
            week_no=week.week_no,
            title=week.title,
            outcome=week.outcome,
            deliverables=list(week.deliverables),
            pass_score=week.rubric.overall_pass_score,
            criteria=list(week.rubric.criteria),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "weekNo":       self.week_no,
            "title":        self.title,
            "outcome":      self.outcome,
            "deliverables": self.deliverables,
            "rubric":       {"overallPassScore": self.pass_score, "criteria": self.criteria},
        }


class Reviewer(Protocol):
    def review(self, submission_text: str, context: ReviewContext) -> ReviewResult: ...


# ─── Payload parsing ─────────────────────────────────────────────────────────

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def parse_review_payload(raw: Union[str, bytes, dict, None]) -> ReviewResult:
    """Validate a reviewer reply (JSON text or dict) into a ReviewResult."""
    if raw is None:
        raise MalformedReviewError("Reviewer returned an empty response.", raw=raw)

    data: Any = raw
    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8", "replace") if isinstance(raw, bytes) else raw
        text = _FENCE.sub("", text).strip()
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedReviewError(f"Reviewer reply is not JSON: {exc}", raw=raw) from exc

    if not isinstance(data, dict):
        raise MalformedReviewError("Reviewer reply must be a JSON object.", raw=raw)
    # bool("false") is True, so only accept a real boolean pass flag
    if not isinstance(data.get("pass"), bool) and not isinstance(data.get("passed"), bool):
        raise MalformedReviewError("Reviewer reply is missing a boolean 'pass' flag.", raw=raw)

    try:
        return ReviewResult.model_validate(data)
    except ValidationError as exc:
        raise MalformedReviewError(f"Reviewer reply failed validation: {exc}", raw=raw) from exc


# ─── Live tier: Azure OpenAI ─────────────────────────────────────────────────

_SYSTEM_PROMPT = textwrap.dedent("""\
    You are a strict but encouraging reviewer for a 9-week applied analytics
    program for Indian operations and marketing managers.  Grade the learner's
    weekly submission against the week's outcome, deliverables and rubric.

    Respond with ONLY a valid JSON object matching this schema exactly:
    {
      "score": <integer 0-100>,
      "feedback": "<2-4 sentences>",
      "strengths": ["..."],
      "improvements": ["..."],
      "nextActions": ["..."],
      "pass": <true if the submission meets the rubric's overallPassScore, else false>
    }
    Do NOT include any explanation, markdown, or extra text outside the JSON.""")


class AzureOpenAIReviewer:
    """Grades submissions with an Azure OpenAI chat deployment in JSON mode."""

    def __init__(self, config: AzureOpenAIConfig | None = None, client: Any = None) -> None:
        self._cfg = config or get_settings().openai
        if client is not None:
            self._client = client
        elif self._cfg.is_configured:
            self._client = AzureOpenAI(
                azure_endpoint=self._cfg.endpoint,
                api_key=self._cfg.api_key,
                api_version=self._cfg.api_version,
                timeout=self._cfg.timeout_s,
            )
        else:
            raise EnvironmentError(
                "Azure OpenAI is not configured. "
                "Set AZURE_OPENAI_ENDPOINT + AZURE_OPENAI_API_KEY or use MockReviewer."
            )

    def review(self, submission_text: str, context: ReviewContext) -> ReviewResult:
        user_message = (
            f"WEEK CONTEXT:\n{json.dumps(context.as_dict(), indent=2)}\n\n"
            f"LEARNER SUBMISSION:\n{submission_text}"
        )
        response = self._client.chat.completions.create(
            model=self._cfg.deployment,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user",   "content": user_message},
            ],
            temperature=0.2,
            max_tokens=1200,
        )
        if not response.choices:
            raise MalformedReviewError("Reviewer returned no choices.", raw=response)
        result = parse_review_payload(response.choices[0].message.content)
        logger.info("Live review week %d: score=%d pass=%s", context.week_no, result.score, result.passed)
        return result


# ─── Mock tier: rule-based grader ────────────────────────────────────────────

_STOPWORDS = {"with", "your", "from", "that", "this", "each", "per", "and", "the", "for", "list", "table"}
_EVIDENCE = re.compile(r"\d+(?:\.\d+)?\s*%|₹|\binr\b|https?://|\b\d{2,}\b", re.IGNORECASE)


def _keywords(text: str) -> set[str]:
    return {w for w in re.findall(r"[a-z][a-z\-]{3,}", text.lower()) if w not in _STOPWORDS}


class MockReviewer:
    """
    Deterministic grader used in mock mode and in tests.

    Score = deliverable coverage (0–60) + depth by word count (0–25)
            + evidence such as numbers, INR amounts or links (0–15).
    """

    def review(self, submission_text: str, context: ReviewContext) -> ReviewResult:
        text  = submission_text or ""
        words = text.lower()

        covered, missing = [], []
        for d in context.deliverables:
            kws = _keywords(d)
            hit = bool(kws) and sum(1 for k in kws if k in words) >= max(1, len(kws) // 2)
            (covered if hit else missing).append(d)

        coverage = len(covered) / len(context.deliverables) if context.deliverables else 1.0
        depth    = min(len(text.split()) / 150.0, 1.0)
        evidence = min(len(_EVIDENCE.findall(text)) / 3.0, 1.0)

        score = round(coverage * 60 + depth * 25 + evidence * 15)
        passed = score >= context.pass_score

        strengths = [f"Covers: {d}" for d in covered][:6]
        if evidence >= 1.0:
            strengths.append("Backs claims with concrete numbers.")
        improvements = [f"Missing or thin: {d}" for d in missing][:6]
        if depth < 0.5:
            improvements.append("Explain what you did and what you found in more detail.")
        if evidence < 0.5:
            improvements.append("Add key metrics, INR impact or links to your sheet / notebook.")

        next_actions = (
            [f"Add: {d}" for d in missing][:6]
            if missing else [f"Move on to Week {context.week_no + 1}."]
        )

        feedback = (
            f"Week {context.week_no} ({context.title}): {len(covered)}/{len(context.deliverables)} "
            f"deliverables covered, score {score} against a pass bar of {context.pass_score}."
        )

        return ReviewResult(
            score=score,
            feedback=feedback,
            strengths=strengths,
            improvements=improvements,
            next_actions=next_actions,
            passed=passed,
        )


def get_reviewer(settings: Optional[Settings] = None) -> Reviewer:
    """Live reviewer when Azure OpenAI is configured, mock otherwise."""
    settings = settings or get_settings()
    if settings.live_mode:
        try:
            return AzureOpenAIReviewer(settings.openai)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Azure OpenAI reviewer init failed (%s); using mock reviewer", exc)
    return MockReviewer()
