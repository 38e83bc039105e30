"""Graph evaluator: computes every stat of a character exactly once.

Each stat is computed lazily. Before a stat uses another stat (through a
formula token, its ability or the proficiency bonus skill) it forces that
stat first, so the order in which ``compute_all`` walks the arena does not
change any result.

Per node the state machine is UNCOMPUTED -> IN_PROGRESS -> COMPUTED:

- COMPUTED nodes are returned as-is (memoization).
- Reaching an IN_PROGRESS node means the graph has a cycle through it and
  the running frame. The edge is recorded and the node's current value is
  used for now.
- Otherwise the node's effects are computed and applied, then the
  combiner produces the result.

Nodes stay IN_PROGRESS until their dependency group (the stats that can
all reach one another) is complete, which is tracked with Tarjan's
strongly connected components bookkeeping in the context. A group that
forms a cycle is then terminated as a whole: every member gets a NaN
result, so which stats are cyclic never depends on where evaluation
started or on the order of the effects.

Recursion depth is bounded by the number of stats, since a node can only
appear once on the evaluation stack.
"""

from __future__ import annotations

import math
from functools import partial

from statforge.core.logging import get_logger
from statforge.engine.combiner import combine_stat
from statforge.engine.context import EvaluationContext
from statforge.engine.formula import FormulaEvaluator
from statforge.engine.nodes import EffectNode, StatKey, StatNode, is_number
from statforge.models.enums import NodeState, Operation, StatKind


logger = get_logger(__name__)

EVALUATION_ORDER: tuple[StatKind, ...] = (
    StatKind.ATTRIBUTE,
    StatKind.SKILL,
    StatKind.DAMAGE_MULTIPLIER,
)

_FLAG_OPERATIONS = frozenset({Operation.ADVANTAGE, Operation.DISADVANTAGE, Operation.FAIL})


def compute_effect(effect: EffectNode, evaluator: FormulaEvaluator) -> None:
    """Compute an effect's result once per pass.

    A finite literal value wins; conditional effects keep their text;
    advantage, disadvantage and fail count as 1; any other calculation
    goes through the formula evaluator. An effect with neither value nor
    calculation contributes nothing.
    """
    if effect.computed:
        return
    if is_number(effect.value) and math.isfinite(effect.value):  # type: ignore[arg-type]
        effect.result = effect.value
    elif effect.operation is Operation.CONDITIONAL:
        effect.result = effect.calculation
    elif effect.operation in _FLAG_OPERATIONS:
        effect.result = 1
    elif effect.calculation and effect.calculation.strip():
        effect.result = evaluator.evaluate(effect.calculation)
    effect.computed = True


def compute_stat(context: EvaluationContext, key: StatKey) -> StatNode:
    """Compute one stat (and, transitively, everything it depends on).

    Args:
        context: The evaluation context of the current pass.
        key: Arena key of the stat.

    Returns:
        The node. It is COMPUTED unless it belongs to a dependency group
        that is still open, in which case its value is provisional.
    """
    node = context.nodes[key]
    if node.state is NodeState.COMPUTED:
        return node
    if node.state is NodeState.IN_PROGRESS:
        context.link(key)
        return node

    context.enter(key)
    try:
        ensure = partial(compute_stat, context)
        evaluator = FormulaEvaluator(context, ensure)
        for effect in node.effects:
            compute_effect(effect, evaluator)
            node.apply_effect(effect)
        combine_stat(node, context, ensure)
    finally:
        cycle = context.finish(key)

    if cycle:
        logger.warning(
            "Dependency cycle detected",
            character_id=context.character_id,
            cycle=[str(member) for member in cycle],
        )
    logger.debug("Stat computed", stat=str(key), result=node.result)
    return node


def compute_all(context: EvaluationContext) -> EvaluationContext:
    """Compute every stat in the arena, in place.

    Returns:
        The same context, with every node COMPUTED.
    """
    for kind in EVALUATION_ORDER:
        for node in list(context.iter_kind(kind)):
            compute_stat(context, node.key)
    return context


__all__ = [
    "EVALUATION_ORDER",
    "compute_effect",
    "compute_stat",
    "compute_all",
]
