"""Stat computation engine.

Submodules:
    nodes: Stat and effect nodes with per-kind accumulators.
    context: The per-pass node arena (EvaluationContext).
    builder: Builds a context from raw records and attaches effects.
    formula: Token resolution and safe arithmetic for calculations.
    combiner: Per-kind rules producing a stat's final result.
    scheduler: Lazy, memoized, cycle-safe evaluation of the graph.
    totals: Experience and carried-weight aggregates.

Example:
    >>> from statforge.engine import build_context, compute_all
    >>> context = compute_all(build_context(records))
    >>> context.attribute("strength").modifier
    3
"""

from __future__ import annotations

from statforge.engine.builder import attach_effect, attach_proficiency, build_context
from statforge.engine.combiner import (
    ability_modifier,
    combine_stat,
    default_proficiency_bonus,
)
from statforge.engine.context import EvaluationContext
from statforge.engine.formula import FormulaEvaluator, evaluate_expression
from statforge.engine.nodes import (
    AttributeNode,
    DamageMultiplierNode,
    EffectNode,
    SkillNode,
    StatKey,
    StatNode,
)
from statforge.engine.scheduler import compute_all, compute_effect, compute_stat
from statforge.engine.totals import compute_experience, compute_weight_carried


__all__ = [
    # Graph
    "StatKey",
    "StatNode",
    "AttributeNode",
    "SkillNode",
    "DamageMultiplierNode",
    "EffectNode",
    "EvaluationContext",
    # Building
    "build_context",
    "attach_effect",
    "attach_proficiency",
    # Evaluation
    "FormulaEvaluator",
    "evaluate_expression",
    "compute_effect",
    "compute_stat",
    "compute_all",
    "combine_stat",
    "ability_modifier",
    "default_proficiency_bonus",
    # Totals
    "compute_experience",
    "compute_weight_carried",
]
