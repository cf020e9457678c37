"""
pilot_path — Adaptive Skill Graph Engine for the PilotPath learning product
============================================================================
Classifies working managers into a learning persona, gates a dependency
graph of skills by mastery and domain, applies finished pilots to that
graph, and walks each learner through a reviewer-gated 9-week journey.

Module map
----------
  models.py                    Pydantic models, enums, intake dataclass.
  config.py                    Settings loaded from .env; live / mock detection.
  exceptions.py                PilotPathError hierarchy.
  guardrails.py                Intake, content and submission guardrails (G-01..G-13).
  catalog.py                   Static skill trees, programs, use cases, path library.
  database.py                  SQLite profile store (single profiles table).

  b0_persona_classifier.py     Block 0: intake → track, domain, persona, variants.
  b1_graph_engine.py           Block 1: node visibility / lock rules.
  b1_1_unlock_resolver.py      Block 1.1: pilot completion, unlock pass, mastery delta.
  b2_journey.py                Block 2: 9-week program state machine.
  b2_1_reviewer.py             Block 2.1: AI reviewer (Azure OpenAI / mock).

Flow
----
  IntakeGuardrails [G-01..G-03] → B0 (classify / onboard)
  → B1 (compute_node_statuses) → learner finishes a pilot
  → B1.1 (complete_pilot) → B1 re-run with the new mastery
  Independently:
  SubmissionGuardrails [G-10..G-13] → B2 (begin_submission)
  → B2.1 (reviewer.review) → B2 (apply_review) → next week unlocked on pass
"""
__version__ = "0.1.0"
