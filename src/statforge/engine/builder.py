"""Builds the evaluation graph of a character from its raw records.

The builder creates one node per distinct variable name per stat kind,
sums class levels and attaches effects and proficiencies to the nodes
they modify. Records whose target stat does not exist are dropped
without error. Duplicate records (same variable name, or same class
name) keep the first occurrence.
"""

from __future__ import annotations

from statforge.core.config import EngineSettings, get_settings
from statforge.core.logging import get_logger
from statforge.engine.context import EvaluationContext
from statforge.engine.nodes import (
    AttributeNode,
    DamageMultiplierNode,
    EffectNode,
    SkillNode,
    StatKey,
    StatNode,
)
from statforge.models.enums import STAT_PROFICIENCY_TYPES, StatKind
from statforge.models.records import (
    AttributeRecord,
    CharacterRecords,
    EffectRecord,
    ProficiencyRecord,
)


logger = get_logger(__name__)

EFFECT_TARGET_ORDER: tuple[StatKind, ...] = (
    StatKind.ATTRIBUTE,
    StatKind.SKILL,
    StatKind.DAMAGE_MULTIPLIER,
)


def _attribute_node(record: AttributeRecord, settings: EngineSettings) -> AttributeNode:
    return AttributeNode(
        key=StatKey(StatKind.ATTRIBUTE, record.variable_name),
        attribute_type=record.attribute_type,
        is_ability=record.attribute_type == settings.ability_attribute_type,
        decimal=record.decimal,
        base=record.base_value or 0,
    )


def attach_effect(context: EvaluationContext, record: EffectRecord) -> StatNode | None:
    """Attach an enabled effect to the stat it targets.

    Targets are looked up among attributes, then skills, then damage
    multipliers.

    Returns:
        The node the effect was attached to, or None if it was dropped.
    """
    if not record.enabled:
        return None
    for kind in EFFECT_TARGET_ORDER:
        node = context.get(kind, record.stat)
        if node is not None:
            node.effects.append(EffectNode.from_record(record))
            return node
    logger.debug("Dropped effect without target", stat=record.stat)
    return None


def attach_proficiency(
    context: EvaluationContext,
    record: ProficiencyRecord,
) -> SkillNode | None:
    """Attach an enabled skill or save proficiency to its skill.

    Returns:
        The skill node, or None if the proficiency was dropped.
    """
    if not record.enabled or record.type not in STAT_PROFICIENCY_TYPES:
        return None
    node = context.skill(record.name)
    if node is None:
        logger.debug("Dropped proficiency without target", name=record.name)
        return None
    node.proficiencies.append(record.level)
    return node


def build_context(
    records: CharacterRecords,
    settings: EngineSettings | None = None,
) -> EvaluationContext:
    """Assemble the node arena of one character.

    Args:
        records: Snapshot of the character's raw records.
        settings: Engine settings; defaults to the application settings.

    Returns:
        A context with every node UNCOMPUTED and every effect attached.
    """
    if settings is None:
        settings = get_settings().engine

    context = EvaluationContext(character_id=records.character_id, settings=settings)

    for attribute in records.attributes:
        context.add_node(_attribute_node(attribute, settings))

    for skill in records.skills:
        context.add_node(
            SkillNode(
                key=StatKey(StatKind.SKILL, skill.variable_name),
                ability=skill.ability,
            )
        )

    for multiplier in records.damage_multipliers:
        context.add_node(
            DamageMultiplierNode(key=StatKey(StatKind.DAMAGE_MULTIPLIER, multiplier.variable_name))
        )

    for class_level in records.class_levels:
        context.add_class_level(class_level.name, class_level.level)

    attached = sum(attach_effect(context, effect) is not None for effect in records.effects)
    for proficiency in records.proficiencies:
        attach_proficiency(context, proficiency)

    logger.debug(
        "Character model built",
        character_id=records.character_id,
        stats=len(context.nodes),
        effects=attached,
        total_level=context.total_level,
    )
    return context


__all__ = [
    "EFFECT_TARGET_ORDER",
    "attach_effect",
    "attach_proficiency",
    "build_context",
]
