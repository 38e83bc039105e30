"""Recompute entry points.

A caller (API handler, background job, publication hook) asks for a
character to be recomputed by id. Each call reads one snapshot of the
character's records, builds a fresh node graph, computes it and hands
the results to the write-back sink. Calls for different characters share
no mutable state and may run concurrently.

Example:
    >>> from statforge.service import recompute_character
    >>> result = recompute_character("hero-1")
    >>> result.attributes["strength"].modifier
    3
"""

from __future__ import annotations

import re

from statforge.core.config import EngineSettings
from statforge.core.exceptions import ValidationError
from statforge.core.logging import bind_context, clear_context, get_logger
from statforge.engine.builder import build_context
from statforge.engine.nodes import AttributeNode, DamageMultiplierNode, SkillNode
from statforge.engine.scheduler import compute_all
from statforge.engine.totals import compute_experience, compute_weight_carried
from statforge.models.records import CharacterRecords
from statforge.models.results import CharacterResult
from statforge.storage.database import Database, get_database


logger = get_logger(__name__)

CHARACTER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_character_id(character_id: object) -> str:
    """Reject malformed character ids before any work is done.

    Raises:
        ValidationError: If the id is not a short word-like string.
    """
    if not isinstance(character_id, str) or not CHARACTER_ID_PATTERN.match(character_id):
        raise ValidationError(
            "Invalid character id",
            field_name="character_id",
            invalid_value=character_id,
        )
    return character_id


def compute_character(
    records: CharacterRecords,
    settings: EngineSettings | None = None,
) -> CharacterResult:
    """Compute every stat of a character from its records.

    Pure with respect to storage: the records are only read.

    Args:
        records: Snapshot of the character's raw records.
        settings: Engine settings; defaults to the application settings.

    Returns:
        The complete result set of the pass.
    """
    context = compute_all(build_context(records, settings))

    attributes = {}
    skills = {}
    multipliers = {}
    for node in context.nodes.values():
        if isinstance(node, AttributeNode):
            attributes[node.variable_name] = node.to_update()
        elif isinstance(node, SkillNode):
            skills[node.variable_name] = node.to_update()
        elif isinstance(node, DamageMultiplierNode):
            multipliers[node.variable_name] = node.to_update()

    return CharacterResult(
        character_id=records.character_id,
        total_level=context.total_level,
        attributes=attributes,
        skills=skills,
        damage_multipliers=multipliers,
    )


def recompute_character(
    character_id: str,
    database: Database | None = None,
    settings: EngineSettings | None = None,
) -> CharacterResult:
    """Recompute a stored character and write its results back.

    Args:
        character_id: Identifier of the character.
        database: Storage collaborator; defaults to the global database.
        settings: Engine settings; defaults to the application settings.

    Returns:
        The computed result set.

    Raises:
        ValidationError: If the id is malformed.
        CharacterNotFoundError: If the character does not exist.
    """
    validate_character_id(character_id)
    database = database or get_database()

    bind_context(character_id=character_id)
    try:
        records = database.load_character_records(character_id)
        result = compute_character(records, settings)
        report = database.write_character_result(result)
        logger.info(
            "Character recomputed",
            stats=len(result.attributes) + len(result.skills) + len(result.damage_multipliers),
            total_level=result.total_level,
            unresolved=len(result.unresolved),
            write_failures=len(report.failed),
        )
        return result
    finally:
        clear_context()


def recompute_character_xp(character_id: str, database: Database | None = None) -> int:
    """Recompute and store a character's experience total."""
    validate_character_id(character_id)
    database = database or get_database()

    xp = compute_experience(database.load_experience_records(character_id))
    database.write_experience(character_id, xp)
    logger.info("Experience recomputed", character_id=character_id, xp=xp)
    return xp


def recompute_character_weight_carried(
    character_id: str,
    database: Database | None = None,
) -> float:
    """Recompute and store the weight a character carries."""
    validate_character_id(character_id)
    database = database or get_database()

    containers, items = database.load_inventory(character_id)
    weight = compute_weight_carried(character_id, containers, items)
    database.write_weight_carried(character_id, weight)
    logger.info("Carried weight recomputed", character_id=character_id, weight=weight)
    return weight


__all__ = [
    "CHARACTER_ID_PATTERN",
    "validate_character_id",
    "compute_character",
    "recompute_character",
    "recompute_character_xp",
    "recompute_character_weight_carried",
]
