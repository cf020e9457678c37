"""
catalog.py — Static content: skill trees, 9-week programs, pilot use cases
===========================================================================
All content is defined once, validated once, and exposed as frozen models
inside read-only mappings.  Per-user state never lives here; callers copy
node templates and overlay their own statuses (see b1_graph_engine).

Skill trees
-----------
Every persona tree contains the full base graph (both domains plus shared
nodes) so that domain filtering decides what a learner sees, plus one or
two persona extension nodes.

  data-hygiene ─┬─ ops-forecasting ── ops-optimization ── ops-advanced-sensing
                │                            └────────────┐
                └─ mkt-classification ── mkt-segmentation ─┴─ deployment-final
                                                └── mkt-advanced-personalization
  remedial-excel-logic   (hidden until mastery drops)

Public API
----------
  get_catalog()                 built-in (or PILOTPATH_CATALOG_PATH) catalog, cached
  build_default_catalog()       construct + validate the built-in content
  load_catalog_file(path)       JSON catalog with identical validation
  validate_catalog(catalog)     raise ContentValidationError on malformed content
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union

from pilot_path.exceptions import ContentValidationError
from pilot_path.guardrails import (
    ContentGuardrails,
    GuardrailLevel,
    GuardrailResult,
    GuardrailViolation,
)
from pilot_path.models import (
    Difficulty,
    Domain,
    PathLibraryEntry,
    Persona,
    Program,
    ProgramWeek,
    Rubric,
    SkillGraph,
    SkillNode,
    SkillStatus,
    UseCase,
)

logger = logging.getLogger(__name__)


# ─── Base skill graph ────────────────────────────────────────────────────────

_BASE_NODES: tuple[SkillNode, ...] = (
    SkillNode(
        id="data-hygiene", label="Data Hygiene",
        description="Fixing messy spreadsheets & automated normalization.",
        status=SkillStatus.UNLOCKED, dependencies=(),
        domain=Domain.SHARED, difficulty=Difficulty.BEGINNER, category="foundation",
    ),
    SkillNode(
        id="ops-forecasting", label="Demand Forecasting",
        description="Time-series analysis for inventory planning.",
        status=SkillStatus.LOCKED, dependencies=("data-hygiene",),
        domain=Domain.OPS, difficulty=Difficulty.INTERMEDIATE, category="business",
    ),
    SkillNode(
        id="ops-optimization", label="Safety Stock Opt.",
        description="Calculated buffers to minimize stockouts and holding costs.",
        status=SkillStatus.LOCKED, dependencies=("ops-forecasting",),
        domain=Domain.OPS, difficulty=Difficulty.INTERMEDIATE, category="tool",
    ),
    SkillNode(
        id="ops-advanced-sensing", label="Demand Sensing (AI)",
        description="Real-time adjustment of forecasts based on external signals.",
        status=SkillStatus.HIDDEN, dependencies=("ops-optimization",),
        domain=Domain.OPS, difficulty=Difficulty.ADVANCED, category="advanced",
    ),
    SkillNode(
        id="mkt-classification", label="Lead Prioritization",
        description="Predicting lead conversion probability.",
        status=SkillStatus.LOCKED, dependencies=("data-hygiene",),
        domain=Domain.MARKETING, difficulty=Difficulty.INTERMEDIATE, category="business",
    ),
    SkillNode(
        id="mkt-segmentation", label="Behavioral Clustering",
        description="Grouping customers by churn risk and LTV.",
        status=SkillStatus.LOCKED, dependencies=("mkt-classification",),
        domain=Domain.MARKETING, difficulty=Difficulty.INTERMEDIATE, category="tool",
    ),
    SkillNode(
        id="mkt-advanced-personalization", label="Hyper-Personalization",
        description="Generative AI workflows for localized ad copy.",
        status=SkillStatus.HIDDEN, dependencies=("mkt-segmentation",),
        domain=Domain.MARKETING, difficulty=Difficulty.ADVANCED, category="advanced",
    ),
    SkillNode(
        id="remedial-excel-logic", label="Logic Foundations",
        description="Deep dive into IF/THEN and boolean logic for datasets.",
        status=SkillStatus.HIDDEN, dependencies=(),
        domain=Domain.SHARED, difficulty=Difficulty.BEGINNER, category="foundation",
        remedial=True,
    ),
)


def _deployment_node(domain: Domain) -> SkillNode:
    # The capstone hangs off the learner's own domain so it stays reachable.
    prereq = "ops-optimization" if domain == Domain.OPS else "mkt-segmentation"
    return SkillNode(
        id="deployment-final", label="Pilot Deployment",
        description="Automating your model output to a live business workflow.",
        status=SkillStatus.LOCKED, dependencies=(prereq,),
        domain=Domain.SHARED, difficulty=Difficulty.ADVANCED, category="advanced",
    )


_PERSONA_EXTENSIONS: dict[Persona, tuple[SkillNode, ...]] = {
    Persona.DEMAND_PLANNER: (
        SkillNode(
            id="ops-forecast-accuracy", label="Forecast Accuracy Tracking",
            description="MAPE, bias and forecast value-add across SKUs and regions.",
            status=SkillStatus.LOCKED, dependencies=("ops-forecasting",),
            domain=Domain.OPS, difficulty=Difficulty.INTERMEDIATE, category="business",
        ),
    ),
    Persona.INVENTORY_CONTROLLER: (
        SkillNode(
            id="ops-replenishment", label="Replenishment Rules",
            description="Reorder points and min-max policies per warehouse.",
            status=SkillStatus.LOCKED, dependencies=("ops-optimization",),
            domain=Domain.OPS, difficulty=Difficulty.INTERMEDIATE, category="tool",
        ),
    ),
    Persona.GROWTH_MARKETER: (
        SkillNode(
            id="mkt-campaign-attribution", label="Campaign Attribution",
            description="Crediting conversions to channels and campaigns.",
            status=SkillStatus.LOCKED, dependencies=("mkt-classification",),
            domain=Domain.MARKETING, difficulty=Difficulty.INTERMEDIATE, category="business",
        ),
    ),
    Persona.CUSTOMER_ANALYST: (
        SkillNode(
            id="mkt-churn-prediction", label="Churn Risk Scoring",
            description="Predicting which customers are about to lapse.",
            status=SkillStatus.HIDDEN, dependencies=("mkt-segmentation",),
            domain=Domain.MARKETING, difficulty=Difficulty.ADVANCED, category="advanced",
        ),
    ),
}

PERSONA_DOMAIN: dict[Persona, Domain] = {
    Persona.DEMAND_PLANNER:       Domain.OPS,
    Persona.INVENTORY_CONTROLLER: Domain.OPS,
    Persona.GROWTH_MARKETER:      Domain.MARKETING,
    Persona.CUSTOMER_ANALYST:     Domain.MARKETING,
}

_PERSONA_SLUG: dict[Persona, str] = {
    Persona.DEMAND_PLANNER:       "ops-demand",
    Persona.INVENTORY_CONTROLLER: "ops-inventory",
    Persona.GROWTH_MARKETER:      "mkt-growth",
    Persona.CUSTOMER_ANALYST:     "mkt-customer",
}


def skill_tree_id_for(persona: Persona) -> str:
    return f"tree-{_PERSONA_SLUG[persona]}"


def program_id_for(persona: Persona) -> str:
    return f"prog-{_PERSONA_SLUG[persona]}-9w"


def _build_skill_tree(persona: Persona) -> SkillGraph:
    domain = PERSONA_DOMAIN[persona]
    return SkillGraph(
        id=skill_tree_id_for(persona),
        title=f"{persona.value.replace('_', ' ').title()} Skill Tree",
        domain=domain,
        nodes=_BASE_NODES + (_deployment_node(domain),) + _PERSONA_EXTENSIONS[persona],
    )


# ─── Pilot use cases ─────────────────────────────────────────────────────────
# Order matters: the first use case of a domain is the onboarding starter.

_USE_CASES: tuple[UseCase, ...] = (
    UseCase(
        id="uc-ops-1", title="Regional Warehouse Rebalancing", domain=Domain.OPS,
        description="Reallocate stock between Bangalore and Mumbai hubs to meet spike demand.",
        difficulty=Difficulty.INTERMEDIATE, estimated_hours=4,
        required_skills=("data-hygiene", "ops-forecasting"),
        cookbook=(
            "Step 1: Normalize date formats in the ledger.",
            "Step 2: Calculate stock-out probability using 30-day rolling variance.",
            "Step 3: Run the rebalancing script to suggest inter-city transfers.",
            "Step 4: Export as a Transport Manifest CSV.",
        ),
    ),
    UseCase(
        id="uc-mkt-1", title="Tier-2 City Lead Scoring", domain=Domain.MARKETING,
        description="Identify high-intent leads in non-metro regions to optimize tele-sales time.",
        difficulty=Difficulty.INTERMEDIATE, estimated_hours=3,
        required_skills=("data-hygiene", "mkt-classification"),
        cookbook=(
            "Step 1: Cleanse leads with invalid phone formats.",
            'Step 2: Apply weighting to "web_visits" vs "downloads".',
            "Step 3: Assign Probability Scores (0.0 - 1.0).",
            'Step 4: Push Top 10% to "Hot List" in Google Sheets.',
        ),
    ),
    UseCase(
        id="uc-ops-2", title="Festive Season Safety Stock Reset", domain=Domain.OPS,
        description="Recompute buffers for Diwali demand without inflating holding cost.",
        difficulty=Difficulty.INTERMEDIATE, estimated_hours=4,
        required_skills=("ops-optimization",),
        cookbook=(
            "Step 1: Pull last two festive seasons of daily sales per SKU.",
            "Step 2: Estimate demand variability and supplier lead-time variability.",
            "Step 3: Set service-level targets per ABC class.",
            "Step 4: Publish the revised safety stock sheet.",
        ),
    ),
    UseCase(
        id="uc-ops-3", title="Monsoon Demand Sensing", domain=Domain.OPS,
        description="Adjust the weekly forecast using rainfall and regional holiday signals.",
        difficulty=Difficulty.ADVANCED, estimated_hours=6,
        required_skills=("ops-advanced-sensing",),
    ),
    UseCase(
        id="uc-mkt-2", title="Churn Cohort Clustering", domain=Domain.MARKETING,
        description="Group subscribers by recency, frequency and value to target win-back offers.",
        difficulty=Difficulty.INTERMEDIATE, estimated_hours=4,
        required_skills=("mkt-segmentation",),
    ),
    UseCase(
        id="uc-mkt-3", title="Vernacular Ad Copy Generator", domain=Domain.MARKETING,
        description="Generate localized Hindi and Tamil ad variants per customer segment.",
        difficulty=Difficulty.ADVANCED, estimated_hours=5,
        required_skills=("mkt-advanced-personalization",),
    ),
    UseCase(
        id="uc-shared-deploy", title="Ship the Pilot", domain=Domain.SHARED,
        description="Schedule your model output into a live weekly business workflow.",
        difficulty=Difficulty.ADVANCED, estimated_hours=5,
        required_skills=("deployment-final",),
    ),
    UseCase(
        id="uc-remedial-logic", title="Spreadsheet Logic Bootcamp", domain=Domain.SHARED,
        description="Rebuild a broken IF/THEN pricing sheet step by step.",
        difficulty=Difficulty.BEGINNER, estimated_hours=2,
        required_skills=("remedial-excel-logic",),
    ),
    UseCase(
        id="uc-ops-forecast-accuracy", title="Forecast Accuracy Review", domain=Domain.OPS,
        description="Build a MAPE and bias dashboard for the top 50 SKUs.",
        difficulty=Difficulty.INTERMEDIATE, estimated_hours=3,
        required_skills=("ops-forecast-accuracy",),
    ),
    UseCase(
        id="uc-ops-replenishment", title="Min-Max Replenishment Policy", domain=Domain.OPS,
        description="Set reorder points for a regional distribution centre.",
        difficulty=Difficulty.INTERMEDIATE, estimated_hours=3,
        required_skills=("ops-replenishment",),
    ),
    UseCase(
        id="uc-mkt-attribution", title="Channel Attribution Audit", domain=Domain.MARKETING,
        description="Compare last-touch and position-based credit for last quarter's leads.",
        difficulty=Difficulty.INTERMEDIATE, estimated_hours=3,
        required_skills=("mkt-campaign-attribution",),
    ),
    UseCase(
        id="uc-mkt-churn", title="Churn Early-Warning List", domain=Domain.MARKETING,
        description="Score active customers by lapse risk and hand the top decile to CRM.",
        difficulty=Difficulty.ADVANCED, estimated_hours=5,
        required_skills=("mkt-churn-prediction",),
    ),
)


# ─── 9-week programs ─────────────────────────────────────────────────────────

_WeekSpec = tuple[str, str, tuple[str, ...]]

_COMMON_HEAD: dict[Domain, tuple[_WeekSpec, ...]] = {
    Domain.OPS: (
        ("Orientation & Baseline",
         "Map how planning decisions are made today and what they cost.",
         ("Process map of your current planning cycle", "Baseline KPI table (fill rate, stock-outs, holding cost)")),
        ("Data Hygiene Sprint",
         "Turn a messy sales / inventory ledger into an analysis-ready table.",
         ("Cleaned dataset with a data dictionary", "List of fixes applied and rows dropped")),
        ("Exploratory Analysis",
         "Find the SKUs, regions and weeks that drive most of the variability.",
         ("Pareto chart of SKUs by volume", "Three written observations with supporting numbers")),
    ),
    Domain.MARKETING: (
        ("Orientation & Baseline",
         "Map the funnel from lead to revenue and where it leaks.",
         ("Funnel diagram with conversion rates", "Baseline KPI table (CAC, conversion, retention)")),
        ("Lead Data Hygiene",
         "Deduplicate and standardise CRM exports.",
         ("Cleaned lead table with a data dictionary", "List of fixes applied and rows dropped")),
        ("Funnel Analysis",
         "Find which sources and cities convert best.",
         ("Conversion table by source and city tier", "Three written observations with supporting numbers")),
    ),
}

_COMMON_TAIL: dict[Domain, tuple[_WeekSpec, ...]] = {
    Domain.OPS: (
        ("Pilot Deployment",
         "Put the model output into the weekly planning meeting.",
         ("Automated weekly output (sheet, notebook or dashboard)", "Owner and cadence for the workflow")),
        ("Capstone & Business Case",
         "Quantify the pilot's impact and pitch the scale-up.",
         ("One-page business case with INR impact", "Scale-up plan and risks")),
    ),
    Domain.MARKETING: (
        ("Campaign Deployment",
         "Run the model-driven campaign on a live segment.",
         ("Campaign brief with target segment", "Tracking plan and success metric")),
        ("Capstone & Business Case",
         "Quantify the pilot's impact and pitch the scale-up.",
         ("One-page business case with INR impact", "Scale-up plan and risks")),
    ),
}

_PERSONA_CORE: dict[Persona, tuple[_WeekSpec, ...]] = {
    Persona.DEMAND_PLANNER: (
        ("Baseline Forecast",
         "Build a moving-average and exponential-smoothing baseline.",
         ("Forecast for the next 8 weeks for top SKUs", "Method comparison table")),
        ("Seasonality & Festive Peaks",
         "Model Diwali, monsoon and month-end effects.",
         ("Seasonal indices per category", "Adjusted forecast with peak weeks marked")),
        ("Forecast Accuracy",
         "Measure MAPE and bias and explain the biggest misses.",
         ("Accuracy dashboard by SKU and region", "Root-cause notes for the top 5 misses")),
        ("Demand Sensing",
         "Blend external signals into the short-term forecast.",
         ("Signal list with correlation evidence", "Sensing-adjusted forecast vs baseline")),
    ),
    Persona.INVENTORY_CONTROLLER: (
        ("ABC-XYZ Segmentation",
         "Classify SKUs by value and variability.",
         ("ABC-XYZ matrix", "Policy recommendation per segment")),
        ("Safety Stock",
         "Size buffers from demand and lead-time variability.",
         ("Safety stock sheet per SKU", "Service level vs holding cost trade-off chart")),
        ("Reorder Points & Replenishment",
         "Set min-max policies per warehouse.",
         ("Reorder point table", "Simulated stock-out count before vs after")),
        ("Warehouse Rebalancing",
         "Move stock between hubs ahead of demand spikes.",
         ("Transfer manifest", "Cost vs stock-out savings estimate")),
    ),
    Persona.GROWTH_MARKETER: (
        ("Lead Scoring",
         "Predict which leads convert.",
         ("Scored lead list", "Top features driving conversion")),
        ("Channel Attribution",
         "Credit conversions across channels.",
         ("Attribution comparison table", "Budget shift recommendation")),
        ("Experiment Design",
         "Design an A/B test for the next campaign.",
         ("Test plan with sample size", "Decision rule written in advance")),
        ("Personalised Copy with GenAI",
         "Generate and review localized ad variants.",
         ("Ad variants per segment", "Review checklist for brand and compliance")),
    ),
    Persona.CUSTOMER_ANALYST: (
        ("RFM Segmentation",
         "Segment customers by recency, frequency and monetary value.",
         ("RFM table", "Segment sizes and revenue share")),
        ("Behavioural Clustering",
         "Cluster customers on behaviour beyond RFM.",
         ("Cluster profiles", "Naming and action per cluster")),
        ("Churn Risk Scoring",
         "Score active customers by lapse risk.",
         ("Risk-scored customer list", "Precision at top decile")),
        ("Retention Playbook",
         "Match each risk segment to a retention action.",
         ("Playbook table", "Expected saved revenue")),
    ),
}

_CAPSTONE_PASS_SCORE = 75


def _build_program(persona: Persona, default_pass_score: int = 70) -> Program:
    domain = PERSONA_DOMAIN[persona]
    specs = _COMMON_HEAD[domain] + _PERSONA_CORE[persona] + _COMMON_TAIL[domain]
    last = len(specs) - 1
    weeks = tuple(
        ProgramWeek(
            week_no=i,
            title=title,
            outcome=outcome,
            deliverables=deliverables,
            rubric=Rubric(
                overall_pass_score=_CAPSTONE_PASS_SCORE if i == last else default_pass_score,
                criteria=("Completeness of deliverables", "Correctness of analysis", "Business relevance"),
            ),
        )
        for i, (title, outcome, deliverables) in enumerate(specs)
    )
    return Program(
        id=program_id_for(persona),
        title=f"9-Week {persona.value.replace('_', ' ').title()} Journey",
        domain=domain,
        persona=persona,
        weeks=weeks,
    )


# ─── Catalog container ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class ContentCatalog:
    skill_graphs:  Mapping[str, SkillGraph]
    programs:      Mapping[str, Program]
    use_cases:     tuple[UseCase, ...]
    path_library:  tuple[PathLibraryEntry, ...]
    # (domain, persona) → (skill_tree_id, program_id)
    persona_routes: Mapping[tuple[Domain, Persona], tuple[str, str]]

    def use_case(self, use_case_id: Optional[str]) -> Optional[UseCase]:
        return next((u for u in self.use_cases if u.id == use_case_id), None)

    def graph(self, graph_id: Optional[str]) -> Optional[SkillGraph]:
        return self.skill_graphs.get(graph_id) if graph_id else None

    def program(self, program_id: Optional[str]) -> Optional[Program]:
        return self.programs.get(program_id) if program_id else None

    def starting_use_case(self, domain: Domain) -> Optional[UseCase]:
        return next((u for u in self.use_cases if u.domain == domain), None)

    def use_case_for_node(self, node_id: str) -> Optional[UseCase]:
        return next((u for u in self.use_cases if node_id in u.required_skills), None)

    def route(self, domain: Domain, persona: Persona) -> Optional[tuple[str, str]]:
        return self.persona_routes.get((domain, persona))


def _freeze(
    graphs: list[SkillGraph],
    programs: list[Program],
    use_cases: list[UseCase],
    library: list[PathLibraryEntry],
) -> ContentCatalog:
    routes = {
        (entry.domain_preference, entry.persona): (entry.skill_tree_id, entry.program_id)
        for entry in library
    }
    return ContentCatalog(
        skill_graphs=MappingProxyType({g.id: g for g in graphs}),
        programs=MappingProxyType({p.id: p for p in programs}),
        use_cases=tuple(use_cases),
        path_library=tuple(library),
        persona_routes=MappingProxyType(routes),
    )


def validate_catalog(catalog: ContentCatalog) -> GuardrailResult:
    """Run every content guardrail; raise ContentValidationError if any blocks."""
    guard = ContentGuardrails()
    violations: list[GuardrailViolation] = []
    for graph in catalog.skill_graphs.values():
        violations.extend(guard.check_graph(graph).violations)
    for program in catalog.programs.values():
        violations.extend(guard.check_program(program).violations)

    all_node_ids: set[str] = set()
    for graph in catalog.skill_graphs.values():
        all_node_ids.update(graph.node_ids())
    for use_case in catalog.use_cases:
        violations.extend(guard.check_use_case(use_case, all_node_ids).violations)

    for (domain, persona), (tree_id, program_id) in catalog.persona_routes.items():
        if tree_id not in catalog.skill_graphs or program_id not in catalog.programs:
            violations.append(GuardrailViolation(
                code="G-09", level=GuardrailLevel.BLOCK,
                field=f"{domain.value}/{persona.value}",
                message=f"Route {domain.value}/{persona.value} points at unknown tree/program ({tree_id}, {program_id}).",
            ))

    result = GuardrailResult(
        passed=not any(v.level == GuardrailLevel.BLOCK for v in violations),
        violations=violations,
    )
    if not result.passed:
        raise ContentValidationError(
            f"Content catalog rejected:\n{result.summary()}", result=result
        )
    return result


def build_default_catalog(default_pass_score: int = 70) -> ContentCatalog:
    """Construct and validate the built-in content."""
    personas = list(PERSONA_DOMAIN)
    library = [
        PathLibraryEntry(
            id=f"path-{_PERSONA_SLUG[p]}",
            label=f"{PERSONA_DOMAIN[p].value.title()} · {p.value.replace('_', ' ').title()}",
            domain_preference=PERSONA_DOMAIN[p],
            persona=p,
            skill_tree_id=skill_tree_id_for(p),
            program_id=program_id_for(p),
        )
        for p in personas
    ]
    catalog = _freeze(
        graphs=[_build_skill_tree(p) for p in personas],
        programs=[_build_program(p, default_pass_score) for p in personas],
        use_cases=list(_USE_CASES),
        library=library,
    )
    validate_catalog(catalog)
    logger.debug(
        "Built-in catalog loaded: %d trees, %d programs, %d use cases",
        len(catalog.skill_graphs), len(catalog.programs), len(catalog.use_cases),
    )
    return catalog


def load_catalog_file(path: Union[str, Path]) -> ContentCatalog:
    """
    Load a catalog from JSON with keys ``skill_graphs``, ``programs``,
    ``use_cases`` and ``path_library`` (lists of objects shaped like the
    corresponding models).  Validation is identical to the built-in catalog.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    catalog = _freeze(
        graphs=[SkillGraph.model_validate(g) for g in data.get("skill_graphs", [])],
        programs=[Program.model_validate(p) for p in data.get("programs", [])],
        use_cases=[UseCase.model_validate(u) for u in data.get("use_cases", [])],
        library=[PathLibraryEntry.model_validate(e) for e in data.get("path_library", [])],
    )
    validate_catalog(catalog)
    logger.info("Catalog loaded from %s", path)
    return catalog


@lru_cache(maxsize=1)
def get_catalog() -> ContentCatalog:
    """Process-wide catalog, loaded once at first use."""
    from pilot_path.config import get_settings

    settings = get_settings()
    if settings.app.catalog_path:
        return load_catalog_file(settings.app.catalog_path)
    return build_default_catalog(settings.engine.default_pass_score)
