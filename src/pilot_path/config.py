"""
config.py — Central settings for the PilotPath skill graph engine
=================================================================
All configuration is loaded from environment variables / .env file.
Copy .env.example → .env and fill in your values.

Live review mode activates automatically when AZURE_OPENAI_ENDPOINT and
AZURE_OPENAI_API_KEY contain real (non-placeholder) values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env into os.environ (no-op if already set, safe to call multiple times)
load_dotenv(override=False)

_DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent.parent / "pilot_path_data.db"


# ─── Helpers ────────────────────────────────────────────────────────────────

def _is_placeholder(value: str) -> bool:
    """Return True if the value looks like an unfilled template placeholder."""
    return not value or "<" in value or value.startswith("your-") or value == "PLACEHOLDER"


# ─── Azure OpenAI (submission reviewer) ─────────────────────────────────────

@dataclass(frozen=True)
class AzureOpenAIConfig:
    endpoint:    str
    api_key:     str
    deployment:  str
    api_version: str
    timeout_s:   float

    @property
    def is_configured(self) -> bool:
        """True when both endpoint and key are real (non-placeholder) values."""
        return (
            bool(self.endpoint)
            and bool(self.api_key)
            and not _is_placeholder(self.endpoint)
            and not _is_placeholder(self.api_key)
        )


# ─── Engine thresholds ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class EngineConfig:
    advanced_mastery_threshold: int   # mastery ≥ this reveals advanced nodes
    remedial_mastery_threshold: int   # mastery < this opens remedial nodes
    default_pass_score:         int   # rubric pass bar when a week omits one
    initial_mastery:            int   # mastery assigned at onboarding
    diagnostic_threshold:       int   # diagnostic score earning the persona bonus
    completion_delta:           int   # default mastery change per finished pilot


# ─── App-level settings ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class AppConfig:
    force_mock_mode: bool
    db_path:         str
    catalog_path:    str    # optional JSON catalog overriding the built-in one


# ─── Master settings object ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    openai: AzureOpenAIConfig
    engine: EngineConfig
    app:    AppConfig

    @property
    def live_mode(self) -> bool:
        """True when Azure OpenAI creds are real and FORCE_MOCK_MODE is false."""
        return self.openai.is_configured and not self.app.force_mock_mode

    def status_summary(self) -> dict[str, str]:
        """Return a dict of service → status badge."""
        def badge(ok: bool) -> str:
            return "🟢 Live" if ok else "⚪ Not configured"

        return {
            "Azure OpenAI reviewer": badge(self.live_mode),
            "Profile store":         f"🗄️ {self.app.db_path}",
            "Content catalog":       self.app.catalog_path or "built-in",
        }


def get_settings() -> Settings:
    """Load all configuration from environment variables."""
    _str   = lambda k, d="": os.getenv(k, d).strip()
    _int   = lambda k, d=0: int(os.getenv(k, str(d)) or d)
    _float = lambda k, d=0.0: float(os.getenv(k, str(d)) or d)
    _bool  = lambda k, d=False: os.getenv(k, str(d)).lower() in ("1", "true", "yes")

    return Settings(
        openai=AzureOpenAIConfig(
            endpoint    = _str("AZURE_OPENAI_ENDPOINT").rstrip("/"),
            api_key     = _str("AZURE_OPENAI_API_KEY"),
            deployment  = _str("AZURE_OPENAI_DEPLOYMENT", "gpt-4o"),
            api_version = _str("AZURE_OPENAI_API_VERSION", "2024-12-01-preview"),
            timeout_s   = _float("AZURE_OPENAI_TIMEOUT_S", 60.0),
        ),
        engine=EngineConfig(
            advanced_mastery_threshold = _int("ADVANCED_MASTERY_THRESHOLD", 85),
            remedial_mastery_threshold = _int("REMEDIAL_MASTERY_THRESHOLD", 40),
            default_pass_score         = _int("DEFAULT_PASS_SCORE", 70),
            initial_mastery            = _int("INITIAL_MASTERY", 70),
            diagnostic_threshold       = _int("DIAGNOSTIC_THRESHOLD", 60),
            completion_delta           = _int("PILOT_COMPLETION_DELTA", 10),
        ),
        app=AppConfig(
            force_mock_mode = _bool("FORCE_MOCK_MODE", False),
            db_path         = _str("PILOTPATH_DB_PATH") or str(_DEFAULT_DB_PATH),
            catalog_path    = _str("PILOTPATH_CATALOG_PATH"),
        ),
    )
