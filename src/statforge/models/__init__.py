"""Pydantic V2 schemas for StatForge.

Submodules:
    enums: StatKind, Operation, NodeState, ProficiencyType.
    records: Raw records read from storage (input contract).
    results: Computed updates handed to the write-back sink (output contract).
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from statforge.models.enums import (
    COUNTER_OPERATIONS,
    STAT_PROFICIENCY_TYPES,
    NodeState,
    Operation,
    ProficiencyType,
    StatKind,
)

# =============================================================================
# Records
# =============================================================================
from statforge.models.records import (
    AttributeRecord,
    CharacterRecords,
    ClassLevelRecord,
    ContainerRecord,
    DamageMultiplierRecord,
    EffectRecord,
    ExperienceRecord,
    ItemRecord,
    ProficiencyRecord,
    SkillRecord,
)

# =============================================================================
# Results
# =============================================================================
from statforge.models.results import (
    AttributeUpdate,
    CharacterResult,
    DamageMultiplierUpdate,
    SkillUpdate,
)


__all__ = [
    # Enums
    "StatKind",
    "Operation",
    "COUNTER_OPERATIONS",
    "NodeState",
    "ProficiencyType",
    "STAT_PROFICIENCY_TYPES",
    # Records
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
    # Results
    "AttributeUpdate",
    "SkillUpdate",
    "DamageMultiplierUpdate",
    "CharacterResult",
]
