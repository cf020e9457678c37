"""
demo_journey.py – Console walkthrough of the adaptive skill graph engine

Run:
    python demo_journey.py

Works without credentials: the mock reviewer is used unless .env holds a
real Azure OpenAI endpoint and key.  Profiles are written to the SQLite
file named by PILOTPATH_DB_PATH (default: pilot_path_data.db).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# ── make src/ importable without installing the package ──────────────────────
sys.path.insert(0, str(Path(__file__).parent / "src"))

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from pilot_path.b0_persona_classifier import onboard
from pilot_path.b1_1_unlock_resolver import complete_pilot
from pilot_path.b1_graph_engine import refresh_profile_graph, track_completion_pct
from pilot_path.b2_1_reviewer import get_reviewer
from pilot_path.b2_journey import submit_for_review
from pilot_path.catalog import get_catalog
from pilot_path.config import get_settings
from pilot_path.database import SqliteProfileStore
from pilot_path.exceptions import PilotPathError, ReviewUnavailableError
from pilot_path.guardrails import IntakeGuardrails
from pilot_path.models import IntakeAnswers, SkillNode, SkillStatus, WeekStatus

console = Console()

# ─── Colour map for node / week statuses ─────────────────────────────────────
STATUS_STYLE = {
    SkillStatus.HIDDEN:      "dim",
    SkillStatus.LOCKED:      "bold red",
    SkillStatus.UNLOCKED:    "bold cyan",
    SkillStatus.IN_PROGRESS: "bold yellow",
    SkillStatus.COMPLETED:   "bold green",
}

WEEK_STYLE = {
    WeekStatus.LOCKED:     "dim",
    WeekStatus.UNLOCKED:   "bold cyan",
    WeekStatus.SUBMITTED:  "bold yellow",
    WeekStatus.PASSED:     "bold green",
    WeekStatus.NEEDS_WORK: "bold red",
}

SAMPLE_INTAKE = IntakeAnswers(
    role="Supply Chain Planner",
    industry="FMCG",
    tools=["Excel (advanced)", "Power BI"],
    goal="Cut stock-outs in festive season",
    availability=6,
    decisions=["Monthly demand forecast for 120 SKUs"],
    kpis=["Forecast accuracy (MAPE)", "Fill rate"],
    diagnostic_score=72,
)

SAMPLE_WEEK0 = (
    "Process map of our current planning cycle: sales sends a Monday forecast, "
    "planning adjusts it in Excel, procurement raises POs on Wednesday. "
    "Baseline KPI table: fill rate 91%, stock-outs 38 per month across 120 SKUs, "
    "holding cost ₹42 lakh per quarter."
)


# ─── Display helpers ─────────────────────────────────────────────────────────

def show_tree(title: str, nodes: list[SkillNode]) -> None:
    table = Table(box=box.SIMPLE_HEAD, header_style="bold white on dark_violet", padding=(0, 1))
    table.add_column("Node",       style="white", min_width=28)
    table.add_column("Domain",     justify="center")
    table.add_column("Difficulty", justify="center")
    table.add_column("Status",     justify="center")
    for n in nodes:
        style = STATUS_STYLE[n.status]
        table.add_row(n.label, n.domain.value, n.difficulty.value, f"[{style}]{n.status.value}[/{style}]")
    console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="blue"))


def show_weeks(progress) -> None:
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan", padding=(0, 1))
    table.add_column("Week", justify="right")
    table.add_column("Status")
    table.add_column("Score", justify="right")
    for week_no, state in sorted(progress.weeks.items()):
        style = WEEK_STYLE[state.status]
        score = str(state.review.score) if state.review else "–"
        table.add_row(str(week_no), f"[{style}]{state.status.value}[/{style}]", score)
    console.print(Panel(table, title=f"[bold]Journey · current week {progress.current_week}[/bold]",
                        border_style="magenta"))


# ─── Main ────────────────────────────────────────────────────────────────────

def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s", handlers=[RichHandler(show_path=False)])
    settings = get_settings()
    catalog = get_catalog()
    store = SqliteProfileStore(settings.app.db_path)

    console.print()
    console.print(Panel(
        "[bold]PilotPath — Adaptive Skill Graph Engine[/bold]\n"
        f"[dim]{' • '.join(f'{k}: {v}' for k, v in settings.status_summary().items())}[/dim]",
        style="on dark_violet",
        expand=False,
    ))

    try:
        # ── Onboarding ────────────────────────────────────────────────────────
        for v in IntakeGuardrails().check(SAMPLE_INTAKE).violations:
            console.print(f"[yellow]⚠ [{v.code}] {v.message}[/yellow]")

        profile, result = onboard("demo-learner", SAMPLE_INTAKE, name="Demo Learner", catalog=catalog)
        console.print(Panel(
            f"Track [bold]{result.track.value}[/bold] · Domain [bold]{result.domain_preference.value}[/bold] · "
            f"Persona [bold]{result.primary_persona.value}[/bold] (scores {result.persona_scores})\n"
            f"Skill tree [cyan]{result.active_skill_tree_id}[/cyan] · "
            f"Program [cyan]{result.active_program_id}[/cyan] · "
            f"Starter pilot [cyan]{result.starting_use_case_id}[/cyan]",
            title="[bold]Classification[/bold]", border_style="green",
        ))

        graph = catalog.graph(profile.active_skill_tree_id)
        profile, nodes = refresh_profile_graph(profile, graph)
        show_tree(f"Skill tree at mastery {profile.mastery_score}", nodes)

        # ── First pilot ───────────────────────────────────────────────────────
        outcome = complete_pilot(profile, result.starting_use_case_id, catalog=catalog)
        profile = outcome.profile
        show_tree(
            f"After '{outcome.artifact.title}': mastery {outcome.mastery_before} → {outcome.mastery_after}, "
            f"{track_completion_pct(profile.verified_skills, outcome.nodes)}% of track verified",
            outcome.nodes,
        )

        # ── Week 0 review ─────────────────────────────────────────────────────
        journey = submit_for_review(profile, 0, SAMPLE_WEEK0, get_reviewer(settings), store=store, catalog=catalog)
        for w in journey.warnings:
            console.print(f"[yellow]⚠ [{w.code}] {w.message}[/yellow]")
        console.print(Panel(
            f"[italic]{journey.review.feedback}[/italic]",
            title=f"[bold]Week 0 → {journey.status.value} ({journey.review.score})[/bold]",
            border_style="green" if journey.passed else "red",
        ))
        show_weeks(journey.progress)

    except ReviewUnavailableError as e:
        console.print(f"\n[bold yellow]{e.get_user_message()}[/bold yellow]")
        sys.exit(1)

    except PilotPathError as e:
        console.print(f"\n[bold red]{e.get_user_message()}[/bold red]")
        sys.exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
