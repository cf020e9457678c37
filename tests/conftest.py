"""
Shared pytest fixtures for the PilotPath engine test suite.
All fixtures use mock mode — no Azure credentials required.
Factory helpers live in tests/factories.py so they can be imported
directly by test modules as well as being used here.
"""
import sys
import os

_tests_dir = os.path.dirname(__file__)
_src_dir   = os.path.join(_tests_dir, "..", "src")
for _p in (_tests_dir, _src_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)

# Force mock mode: never call Azure during tests
os.environ["FORCE_MOCK_MODE"] = "true"
os.environ.setdefault("AZURE_OPENAI_ENDPOINT", "<placeholder>")
os.environ.setdefault("AZURE_OPENAI_API_KEY",  "<placeholder>")


import pytest

from factories import make_intake, make_program, MemoryStore

from pilot_path.b0_persona_classifier import onboard
from pilot_path.catalog import build_default_catalog


# ─── pytest fixtures ──────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def catalog():
    return build_default_catalog()


@pytest.fixture
def planner_intake():
    return make_intake(
        decisions=["Monthly demand forecast"],
        kpis=["Forecast accuracy (MAPE)"],
        diagnostic_score=72,
    )


@pytest.fixture
def planner_profile(planner_intake, catalog):
    profile, _ = onboard("u-planner", planner_intake, name="Asha", catalog=catalog)
    return profile


@pytest.fixture
def two_week_program():
    return make_program(n_weeks=2, pass_score=70)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "pilot_path_test.db"
    monkeypatch.setenv("PILOTPATH_DB_PATH", str(path))
    return path
