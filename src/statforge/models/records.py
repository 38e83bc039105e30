"""Raw record schemas read from the storage collaborator.

Records are immutable snapshots of what a user authored for one
character. The engine reads them, never mutates them, and builds a
fresh node graph from them on every recompute pass.

Field names are snake_case in Python; the camelCase names used by
stored documents (``variableName``, ``baseValue``...) are accepted as
aliases.

Example:
    >>> EffectRecord.model_validate(
    ...     {"stat": "strength", "operation": "add", "calculation": "level / 2"}
    ... )
"""

from __future__ import annotations

from typing import Annotated

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from statforge.models.enums import Operation, ProficiencyType


VariableName = Annotated[str, Field(min_length=1, description="Stat variable name")]


class _Record(BaseModel):
    """Shared configuration for raw records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class AttributeRecord(_Record):
    """A stored attribute (ability score, hit points, speed...).

    Attributes:
        variable_name: Name formulas use to reference the attribute.
        attribute_type: Category, e.g. ``ability`` for the six abilities.
        base_value: Starting value before any effect applies.
        decimal: Keep fractional results instead of flooring them.
    """

    variable_name: VariableName
    attribute_type: str = Field(
        default="stat",
        validation_alias=AliasChoices("attributeType", "attribute_type", "type"),
    )
    base_value: float | None = None
    decimal: bool = False


class SkillRecord(_Record):
    """A stored skill or saving throw.

    Attributes:
        variable_name: Name formulas use to reference the skill.
        ability: Variable name of the attribute the skill is based on.
    """

    variable_name: VariableName
    ability: str | None = None


class DamageMultiplierRecord(_Record):
    """A stored damage multiplier (one per damage type)."""

    variable_name: VariableName


class ClassLevelRecord(_Record):
    """Levels the character has in one class."""

    name: str = Field(min_length=1)
    level: int = Field(default=1, ge=0)


class EffectRecord(_Record):
    """A modifier applied to one stat.

    Attributes:
        stat: Variable name of the stat the effect targets.
        operation: How the effect folds into the stat.
        value: Literal numeric contribution, takes precedence when finite.
        calculation: Free-text formula evaluated against the character.
        enabled: Disabled effects are never attached.
    """

    stat: str = Field(validation_alias=AliasChoices("stat", "targetVariableName"))
    operation: Operation
    value: float | None = None
    calculation: str | None = None
    enabled: bool = True


class ProficiencyRecord(_Record):
    """A proficiency in a skill, save or other feature.

    Attributes:
        name: Variable name of the skill the proficiency applies to.
        type: Proficiency category, only skill and save count for stats.
        level: Proficiency multiplier (0.5 half, 1 proficient, 2 expertise).
        enabled: Disabled proficiencies are never attached.
    """

    name: str = Field(validation_alias=AliasChoices("name", "targetName"))
    type: ProficiencyType = ProficiencyType.SKILL
    level: float = Field(default=1, validation_alias=AliasChoices("level", "value"))
    enabled: bool = True


class ExperienceRecord(_Record):
    """An experience award."""

    value: int = 0


class ContainerRecord(_Record):
    """A container owned by the character."""

    id: str
    is_carried: bool = False
    weight: float = 0


class ItemRecord(_Record):
    """An item, either held directly by the character or inside a container."""

    parent_id: str
    weight: float = 0


class CharacterRecords(_Record):
    """Everything the engine reads for one character, as one snapshot.

    Attributes:
        character_id: Identifier of the character.
        attributes: Attribute records.
        skills: Skill records.
        damage_multipliers: Damage multiplier records.
        class_levels: Class level records.
        effects: Effect records.
        proficiencies: Proficiency records.
    """

    character_id: str = Field(min_length=1)
    attributes: list[AttributeRecord] = Field(default_factory=list)
    skills: list[SkillRecord] = Field(default_factory=list)
    damage_multipliers: list[DamageMultiplierRecord] = Field(default_factory=list)
    class_levels: list[ClassLevelRecord] = Field(default_factory=list)
    effects: list[EffectRecord] = Field(default_factory=list)
    proficiencies: list[ProficiencyRecord] = Field(default_factory=list)


__all__ = [
    "AttributeRecord",
    "SkillRecord",
    "DamageMultiplierRecord",
    "ClassLevelRecord",
    "EffectRecord",
    "ProficiencyRecord",
    "ExperienceRecord",
    "ContainerRecord",
    "ItemRecord",
    "CharacterRecords",
]
