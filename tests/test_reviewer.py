"""
Tests for the submission reviewer (Block 2.1): payload parsing, the mock
grader, the Azure OpenAI tier with a fake client, and tier selection.
"""
import json
from types import SimpleNamespace

import pytest

from factories import make_program

from pilot_path.b2_1_reviewer import (
    AzureOpenAIReviewer,
    MockReviewer,
    ReviewContext,
    get_reviewer,
    parse_review_payload,
)
from pilot_path.config import AzureOpenAIConfig, get_settings
from pilot_path.exceptions import MalformedReviewError


_GOOD = {
    "score": 82,
    "feedback": "Clear baseline.",
    "strengths": ["KPI table"],
    "improvements": ["Add costs"],
    "nextActions": ["Start week 1"],
    "pass": True,
}


class TestParseReviewPayload:
    def test_dict(self):
        r = parse_review_payload(_GOOD)
        assert r.score == 82
        assert r.passed is True
        assert r.next_actions == ["Start week 1"]

    def test_json_string_with_fences(self):
        raw = "```json\n" + json.dumps(_GOOD) + "\n```"
        assert parse_review_payload(raw).score == 82

    @pytest.mark.parametrize("raw", [
        None,
        "not json at all",
        "[1, 2, 3]",
        {"score": 80, "feedback": "x"},                        # no pass flag
        {"score": 80, "feedback": "x", "pass": "true"},        # pass flag not a bool
        {"score": 180, "feedback": "x", "pass": True},         # score out of range
        {"feedback": "x", "pass": True},                       # no score
    ])
    def test_malformed(self, raw):
        with pytest.raises(MalformedReviewError):
            parse_review_payload(raw)


class TestMockReviewer:
    def setup_method(self):
        self.context = ReviewContext.from_week(make_program().week(0))
        self.reviewer = MockReviewer()

    def test_context_from_week(self):
        assert self.context.week_no == 0
        assert self.context.pass_score == 70
        assert len(self.context.deliverables) == 2

    def test_strong_submission_passes(self):
        text = (
            "Baseline KPI table: fill rate 91%, stock-outs 38 per month, holding cost ₹42 lakh. "
            "Process map of the planning cycle from sales forecast to purchase orders."
        )
        result = self.reviewer.review(text, self.context)
        assert result.passed
        assert result.score >= 70
        assert not [i for i in result.improvements if i.startswith("Missing")]

    def test_thin_submission_needs_work(self):
        result = self.reviewer.review("Did some stuff.", self.context)
        assert not result.passed
        assert result.score < 70
        assert result.next_actions[0].startswith("Add:")

    def test_deterministic(self):
        text = "Baseline KPI table with 12 rows."
        assert self.reviewer.review(text, self.context) == self.reviewer.review(text, self.context)


def _fake_client(content):
    message = SimpleNamespace(content=content)
    response = SimpleNamespace(choices=[SimpleNamespace(message=message)])
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        return response

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, calls


_CFG = AzureOpenAIConfig(
    endpoint="https://x.openai.azure.com", api_key="k", deployment="gpt-4o",
    api_version="2024-12-01-preview", timeout_s=5.0,
)


class TestAzureOpenAIReviewer:
    def test_json_mode_request(self):
        client, calls = _fake_client(json.dumps(_GOOD))
        reviewer = AzureOpenAIReviewer(_CFG, client=client)
        result = reviewer.review("my work", ReviewContext.from_week(make_program().week(0)))
        assert result.score == 82
        assert calls[0]["response_format"] == {"type": "json_object"}
        assert calls[0]["model"] == "gpt-4o"
        assert "my work" in calls[0]["messages"][1]["content"]

    def test_malformed_reply_raises(self):
        client, _ = _fake_client("Sorry, I cannot grade this.")
        reviewer = AzureOpenAIReviewer(_CFG, client=client)
        with pytest.raises(MalformedReviewError):
            reviewer.review("my work", ReviewContext.from_week(make_program().week(0)))

    def test_unconfigured_raises(self):
        cfg = AzureOpenAIConfig(endpoint="", api_key="", deployment="d", api_version="v", timeout_s=1.0)
        with pytest.raises(EnvironmentError):
            AzureOpenAIReviewer(cfg)


class TestGetReviewer:
    def test_mock_when_forced(self):
        assert isinstance(get_reviewer(get_settings()), MockReviewer)
