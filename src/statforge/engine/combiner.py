"""Per-kind rules that turn accumulated effects into a stat's result.

Combining runs once a node's effects are all applied. Skills depend on
other stats (their ability and, when defined, the proficiency bonus
skill), so the skill rule receives the scheduler's ``ensure`` callback to
compute those first.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Callable

from statforge.engine.nodes import (
    AttributeNode,
    DamageMultiplierNode,
    SkillNode,
    StatKey,
    StatNode,
)


if TYPE_CHECKING:
    from statforge.engine.context import EvaluationContext


Ensure = Callable[[StatKey], StatNode]


def floor_finite(value: float) -> float:
    """Floor a value, leaving NaN and infinities untouched."""
    return math.floor(value) if math.isfinite(value) else value


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp to ``[lower, upper]``; NaN stays NaN."""
    if value < lower:
        value = lower
    if value > upper:
        value = upper
    return value


def ability_modifier(score: float) -> float:
    """Ability modifier for a score: ``floor((score - 10) / 2)``.

    Example:
        >>> ability_modifier(14)
        2
        >>> ability_modifier(7)
        -2
    """
    return floor_finite((score - 10) / 2)


def default_proficiency_bonus(total_level: int) -> int:
    """Level-derived proficiency bonus: +2 at level 1, +6 at level 17."""
    return math.floor(total_level / 4 + 1.75)


def combine_attribute(node: AttributeNode) -> None:
    """``(base + add) * mul``, clamped, floored unless decimal."""
    result = clamp((node.base + node.add) * node.mul, node.min, node.max)
    if not node.decimal:
        result = floor_finite(result)
    node.result = result
    if node.is_ability:
        node.modifier = ability_modifier(result)


def combine_skill(node: SkillNode, context: EvaluationContext, ensure: Ensure) -> None:
    """``(ability modifier + scaled proficiency bonus + add) * mul``, clamped, floored."""
    if node.proficiencies:
        node.proficiency_level = max(node.proficiency_level, *node.proficiencies)

    bonus_variable = context.settings.proficiency_bonus_variable
    bonus_skill = context.skill(bonus_variable)
    if bonus_skill is not None and bonus_skill is not node:
        proficiency_bonus = ensure(bonus_skill.key).result
    else:
        proficiency_bonus = default_proficiency_bonus(context.total_level)
    scaled_bonus = proficiency_bonus * node.proficiency_level

    modifier: float = 0
    if node.ability:
        attribute = context.attribute(node.ability)
        if attribute is not None:
            ensure(attribute.key)
            if attribute.modifier is not None:
                modifier = attribute.modifier

    result = (modifier + scaled_bonus + node.add) * node.mul
    node.result = floor_finite(clamp(result, node.min, node.max))


def combine_damage_multiplier(node: DamageMultiplierNode) -> None:
    """Immunity wins; resistance and vulnerability cancel each other out."""
    if node.immunity_count:
        node.result = 0
    elif node.resistance_count and node.vulnerability_count:
        node.result = 1
    elif node.resistance_count:
        node.result = 0.5
    elif node.vulnerability_count:
        node.result = 2
    else:
        node.result = 1


def combine_stat(node: StatNode, context: EvaluationContext, ensure: Ensure) -> None:
    """Dispatch to the rule for the node's kind."""
    if isinstance(node, AttributeNode):
        combine_attribute(node)
    elif isinstance(node, SkillNode):
        combine_skill(node, context, ensure)
    elif isinstance(node, DamageMultiplierNode):
        combine_damage_multiplier(node)
    else:
        raise TypeError(f"Cannot combine {type(node).__name__}")


__all__ = [
    "floor_finite",
    "clamp",
    "ability_modifier",
    "default_proficiency_bonus",
    "combine_attribute",
    "combine_skill",
    "combine_damage_multiplier",
    "combine_stat",
]
