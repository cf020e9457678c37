"""
Tests for the static content catalog: built-in content shape, load-time
validation and JSON catalog loading.
"""
import json

import pytest

from factories import make_node, make_graph, make_program

from pilot_path.catalog import (
    ContentCatalog,
    build_default_catalog,
    load_catalog_file,
    program_id_for,
    skill_tree_id_for,
    validate_catalog,
)
from pilot_path.exceptions import ContentValidationError
from pilot_path.models import Domain, Persona, SkillStatus, UseCase


def _catalog_with(graph=None, program=None, use_cases=None) -> ContentCatalog:
    graph = graph or make_graph([make_node("A", SkillStatus.UNLOCKED)])
    program = program or make_program()
    return ContentCatalog(
        skill_graphs={graph.id: graph},
        programs={program.id: program},
        use_cases=tuple(use_cases or (UseCase(id="uc-a", title="A", domain=Domain.OPS, required_skills=("A",)),)),
        path_library=(),
        persona_routes={},
    )


class TestBuiltInCatalog:
    def test_one_tree_and_program_per_persona(self, catalog):
        for persona in Persona:
            assert catalog.graph(skill_tree_id_for(persona)) is not None
            assert catalog.program(program_id_for(persona)) is not None

    def test_programs_have_nine_weeks(self, catalog):
        for program in catalog.programs.values():
            assert program.week_numbers() == list(range(9))

    def test_capstone_has_higher_bar(self, catalog):
        program = catalog.program("prog-ops-demand-9w")
        assert program.week(8).rubric.overall_pass_score == 75
        assert program.week(0).rubric.overall_pass_score == 70

    def test_default_pass_score_applied(self):
        custom = build_default_catalog(default_pass_score=65)
        assert custom.program("prog-mkt-growth-9w").week(3).rubric.overall_pass_score == 65

    def test_starting_use_case_per_domain(self, catalog):
        assert catalog.starting_use_case(Domain.OPS).id == "uc-ops-1"
        assert catalog.starting_use_case(Domain.MARKETING).id == "uc-mkt-1"

    def test_routes_match_path_library(self, catalog):
        for entry in catalog.path_library:
            assert catalog.route(entry.domain_preference, entry.persona) == (entry.skill_tree_id, entry.program_id)

    def test_catalog_mappings_are_read_only(self, catalog):
        with pytest.raises(TypeError):
            catalog.skill_graphs["x"] = None

    def test_deployment_node_reachable_in_own_domain(self, catalog):
        ops = catalog.graph("tree-ops-demand").node_by_id("deployment-final")
        mkt = catalog.graph("tree-mkt-growth").node_by_id("deployment-final")
        assert ops.dependencies == ("ops-optimization",)
        assert mkt.dependencies == ("mkt-segmentation",)


class TestValidation:
    def test_valid_catalog_passes(self):
        assert validate_catalog(_catalog_with()).passed

    def test_cycle_rejected(self):
        graph = make_graph([
            make_node("A", deps=("B",)),
            make_node("B", deps=("A",)),
        ])
        with pytest.raises(ContentValidationError) as exc:
            validate_catalog(_catalog_with(graph=graph))
        assert any(v.code == "G-07" for v in exc.value.result.violations)

    def test_unknown_dependency_rejected(self):
        graph = make_graph([make_node("A", deps=("ghost",))])
        with pytest.raises(ContentValidationError):
            validate_catalog(_catalog_with(graph=graph))

    def test_week_gap_rejected(self):
        program = make_program(n_weeks=3)
        gapped = program.model_copy(update={"weeks": (program.weeks[0], program.weeks[2])})
        with pytest.raises(ContentValidationError):
            validate_catalog(_catalog_with(program=gapped))

    def test_use_case_with_unknown_skill_rejected(self):
        bad = UseCase(id="uc-bad", title="Bad", domain=Domain.OPS, required_skills=("nope",))
        with pytest.raises(ContentValidationError):
            validate_catalog(_catalog_with(use_cases=[bad]))


class TestLoadCatalogFile:
    def test_load_round_trip(self, tmp_path, catalog):
        data = {
            "skill_graphs": [g.model_dump(mode="json") for g in catalog.skill_graphs.values()],
            "programs":     [p.model_dump(mode="json") for p in catalog.programs.values()],
            "use_cases":    [u.model_dump(mode="json") for u in catalog.use_cases],
            "path_library": [e.model_dump(mode="json") for e in catalog.path_library],
        }
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        loaded = load_catalog_file(path)
        assert set(loaded.skill_graphs) == set(catalog.skill_graphs)
        assert loaded.route(Domain.OPS, Persona.DEMAND_PLANNER) == ("tree-ops-demand", "prog-ops-demand-9w")

    def test_malformed_file_rejected(self, tmp_path):
        data = {
            "skill_graphs": [{
                "id": "t", "title": "T", "domain": "ops",
                "nodes": [{"id": "A", "label": "A", "dependencies": ["A"]}],
            }],
            "programs": [], "use_cases": [], "path_library": [],
        }
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(ContentValidationError):
            load_catalog_file(path)
