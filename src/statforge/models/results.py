"""Computed results handed to the write-back sink.

A CharacterResult is the complete, internally consistent output of one
recompute pass: one update per stat plus the character's aggregates.
Results may be NaN when a stat sits on a dependency cycle.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, computed_field


class _Update(BaseModel):
    """Shared configuration for per-stat updates."""

    model_config = ConfigDict(frozen=True)

    variable_name: str
    result: float


class AttributeUpdate(_Update):
    """Computed value (and ability modifier) of an attribute."""

    modifier: float | None = None


class SkillUpdate(_Update):
    """Computed value and effect counters of a skill."""

    advantage_count: int = 0
    disadvantage_count: int = 0
    passive_add: float = 0
    proficiency_level: float = 0
    conditional_count: int = 0
    fail_count: int = 0


class DamageMultiplierUpdate(_Update):
    """Computed multiplier of one damage type."""


class CharacterResult(BaseModel):
    """The full result set of one recompute pass.

    Attributes:
        character_id: Identifier of the recomputed character.
        total_level: Sum of all class levels.
        attributes: Attribute updates keyed by variable name.
        skills: Skill updates keyed by variable name.
        damage_multipliers: Damage multiplier updates keyed by variable name.
    """

    model_config = ConfigDict(frozen=True)

    character_id: str
    total_level: int = 0
    attributes: dict[str, AttributeUpdate] = Field(default_factory=dict)
    skills: dict[str, SkillUpdate] = Field(default_factory=dict)
    damage_multipliers: dict[str, DamageMultiplierUpdate] = Field(default_factory=dict)

    @computed_field(description="Variable names whose result is NaN")
    @property
    def unresolved(self) -> list[str]:
        """Variable names whose result is NaN, e.g. members of a cycle."""
        names = [
            update.variable_name
            for group in (self.attributes, self.skills, self.damage_multipliers)
            for update in group.values()
            if math.isnan(update.result)
        ]
        return sorted(names)

    def flat_results(self) -> dict[str, float]:
        """Flatten results to ``{variable_name: result}``.

        Attribute names shadow skills and damage multipliers with the same
        name, mirroring the lookup order formulas use.
        """
        flat: dict[str, float] = {}
        for group in (self.damage_multipliers, self.skills, self.attributes):
            flat.update({name: update.result for name, update in group.items()})
        return flat


__all__ = [
    "AttributeUpdate",
    "SkillUpdate",
    "DamageMultiplierUpdate",
    "CharacterResult",
]
