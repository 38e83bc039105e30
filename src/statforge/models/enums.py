"""Enumeration types for StatForge.

These enums name the stat kinds, the effect operations authors can pick
and the evaluation state a stat node moves through during one
recompute pass.
"""

from __future__ import annotations

from enum import StrEnum


class StatKind(StrEnum):
    """The three kinds of computed stats on a character."""

    ATTRIBUTE = "attribute"
    SKILL = "skill"
    DAMAGE_MULTIPLIER = "damageMultiplier"


class Operation(StrEnum):
    """Operations an effect applies to its target stat.

    Numeric operations fold the effect result into an accumulator,
    counting operations only record that the effect is present.
    """

    BASE = "base"
    ADD = "add"
    MUL = "mul"
    MIN = "min"
    MAX = "max"
    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"
    PASSIVE_ADD = "passiveAdd"
    FAIL = "fail"
    CONDITIONAL = "conditional"

    @property
    def is_counter(self) -> bool:
        """Whether the operation increments a counter instead of a value."""
        return self in COUNTER_OPERATIONS


COUNTER_OPERATIONS: frozenset[Operation] = frozenset(
    {
        Operation.ADVANTAGE,
        Operation.DISADVANTAGE,
        Operation.FAIL,
        Operation.CONDITIONAL,
    }
)


class NodeState(StrEnum):
    """Evaluation state of a stat node within one recompute pass.

    UNCOMPUTED -> IN_PROGRESS -> COMPUTED, where COMPUTED is terminal.
    """

    UNCOMPUTED = "uncomputed"
    IN_PROGRESS = "in_progress"
    COMPUTED = "computed"


class ProficiencyType(StrEnum):
    """Proficiency record types. Only skill and save proficiencies count."""

    SKILL = "skill"
    SAVE = "save"
    WEAPON = "weapon"
    ARMOR = "armor"
    TOOL = "tool"
    LANGUAGE = "language"


STAT_PROFICIENCY_TYPES: frozenset[ProficiencyType] = frozenset(
    {ProficiencyType.SKILL, ProficiencyType.SAVE}
)


__all__ = [
    "StatKind",
    "Operation",
    "COUNTER_OPERATIONS",
    "NodeState",
    "ProficiencyType",
    "STAT_PROFICIENCY_TYPES",
]
