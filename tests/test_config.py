"""
Smoke tests for config / settings loading.
Run: python -m pytest tests/ -v
"""
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from pilot_path.config import get_settings, _is_placeholder


class TestIsPlaceholder:
    def test_empty_string_is_placeholder(self):
        assert _is_placeholder("")

    def test_angle_bracket_is_placeholder(self):
        assert _is_placeholder("<your-key-here>")

    def test_your_prefix_is_placeholder(self):
        assert _is_placeholder("your-endpoint")

    def test_literal_PLACEHOLDER_is_placeholder(self):
        assert _is_placeholder("PLACEHOLDER")

    def test_real_value_not_placeholder(self):
        assert not _is_placeholder("https://my-resource.openai.azure.com")


class TestSettingsLoading:
    def test_get_settings_returns_object(self):
        s = get_settings()
        assert hasattr(s, "openai")
        assert hasattr(s, "engine")
        assert hasattr(s, "app")

    def test_engine_defaults(self, monkeypatch):
        for k in ("ADVANCED_MASTERY_THRESHOLD", "REMEDIAL_MASTERY_THRESHOLD",
                  "DEFAULT_PASS_SCORE", "PILOT_COMPLETION_DELTA"):
            monkeypatch.delenv(k, raising=False)
        e = get_settings().engine
        assert e.advanced_mastery_threshold == 85
        assert e.remedial_mastery_threshold == 40
        assert e.default_pass_score == 70
        assert e.completion_delta == 10

    def test_engine_override(self, monkeypatch):
        monkeypatch.setenv("PILOT_COMPLETION_DELTA", "-20")
        assert get_settings().engine.completion_delta == -20

    def test_live_mode_false_with_placeholders(self, monkeypatch):
        monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "<placeholder>")
        monkeypatch.setenv("AZURE_OPENAI_API_KEY", "<placeholder>")
        monkeypatch.setenv("FORCE_MOCK_MODE", "false")
        assert not get_settings().live_mode

    def test_force_mock_overrides_real_credentials(self, monkeypatch):
        monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://x.openai.azure.com")
        monkeypatch.setenv("AZURE_OPENAI_API_KEY", "abc123realkey")
        monkeypatch.setenv("FORCE_MOCK_MODE", "true")
        s = get_settings()
        assert s.openai.is_configured
        assert not s.live_mode

    def test_empty_db_path_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("PILOTPATH_DB_PATH", "")
        assert get_settings().app.db_path.endswith("pilot_path_data.db")

    def test_status_summary_keys(self):
        summary = get_settings().status_summary()
        assert set(summary) == {"Azure OpenAI reviewer", "Profile store", "Content catalog"}
