"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the StatForge test suite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

    from statforge.core.config import EngineSettings
    from statforge.models.records import CharacterRecords
    from statforge.storage.database import Database


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache and database singleton around each test."""
    from statforge.core.config import clear_settings_cache
    from statforge.storage.database import reset_database

    clear_settings_cache()
    reset_database()
    yield
    clear_settings_cache()
    reset_database()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "STATFORGE_DEBUG": "true",
        "STATFORGE_LOG_LEVEL": "DEBUG",
        "STATFORGE_DATABASE_PATH": str(tmp_path / "env.db"),
        "STATFORGE_ENGINE_MODIFIER_SUFFIX": "Bonus",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def engine_settings() -> EngineSettings:
    """Engine settings with default values."""
    from statforge.core.config import EngineSettings

    return EngineSettings()


# =============================================================================
# Record Fixtures
# =============================================================================


@pytest.fixture
def sample_ability_scores() -> dict[str, int]:
    """Provide sample ability scores.

    Returns:
        Dictionary of ability base values.
    """
    return {
        "strength": 16,
        "dexterity": 14,
        "constitution": 15,
        "wisdom": 12,
    }


@pytest.fixture
def sample_records_data(sample_ability_scores: dict[str, int]) -> dict[str, Any]:
    """Raw records of a level 5 fighter/rogue, in stored (camelCase) shape.

    Expected results with a proficiency bonus of 3:
        strength 18 (+4), hitPoints 20, speed 30, carryMultiplier 1.5,
        athletics 10, stealth 8, strengthSave 7, perception 1,
        fire 1, cold 0.5, poison 0.

    Args:
        sample_ability_scores: Ability base values.

    Returns:
        Dictionary accepted by CharacterRecords.
    """
    abilities = [
        {"variableName": name, "attributeType": "ability", "baseValue": score}
        for name, score in sample_ability_scores.items()
    ]
    return {
        "character_id": "hero-1",
        "attributes": [
            *abilities,
            {"variableName": "hitPoints", "baseValue": 10},
            {"variableName": "speed", "baseValue": 30},
            {"variableName": "carryMultiplier", "baseValue": 1.5, "decimal": True},
        ],
        "skills": [
            {"variableName": "athletics", "ability": "strength"},
            {"variableName": "stealth", "ability": "dexterity"},
            {"variableName": "strengthSave", "ability": "strength"},
            {"variableName": "perception", "ability": "wisdom"},
        ],
        "damage_multipliers": [
            {"variableName": "fire"},
            {"variableName": "cold"},
            {"variableName": "poison"},
        ],
        "class_levels": [
            {"name": "fighter", "level": 3},
            {"name": "rogue", "level": 2},
        ],
        "effects": [
            {"targetVariableName": "strength", "operation": "add", "value": 2},
            {
                "targetVariableName": "hitPoints",
                "operation": "add",
                "calculation": "constitutionMod * level",
            },
            {"targetVariableName": "speed", "operation": "base", "value": 25},
            {"targetVariableName": "athletics", "operation": "add", "calculation": "fighterLevel"},
            {"targetVariableName": "stealth", "operation": "advantage"},
            {"targetVariableName": "perception", "operation": "passiveAdd", "value": 5},
            {"targetVariableName": "fire", "operation": "mul", "value": 0.5},
            {"targetVariableName": "fire", "operation": "mul", "value": 2},
            {"targetVariableName": "cold", "operation": "mul", "value": 0.5},
            {"targetVariableName": "poison", "operation": "mul", "value": 0},
            {"targetVariableName": "poison", "operation": "mul", "value": 0.5},
        ],
        "proficiencies": [
            {"targetName": "athletics", "type": "skill", "value": 1},
            {"targetName": "stealth", "type": "skill", "value": 2},
            {"targetName": "strengthSave", "type": "save", "value": 1},
            {"targetName": "perception", "type": "weapon", "value": 1},
        ],
    }


@pytest.fixture
def sample_records(sample_records_data: dict[str, Any]) -> CharacterRecords:
    """Create the sample CharacterRecords instance."""
    from statforge.models.records import CharacterRecords

    return CharacterRecords.model_validate(sample_records_data)


@pytest.fixture
def make_records() -> Any:
    """Factory building CharacterRecords from keyword lists.

    Returns:
        Callable taking the record lists as keyword arguments.
    """
    from statforge.models.records import CharacterRecords

    def _make(character_id: str = "test-char", **lists: Any) -> CharacterRecords:
        return CharacterRecords.model_validate({"character_id": character_id, **lists})

    return _make


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def database(tmp_path: Path) -> Database:
    """Create a Database backed by a temporary file."""
    from statforge.storage.database import Database

    return Database(tmp_path / "data" / "statforge.db")


@pytest.fixture
def stored_character(database: Database, sample_records_data: dict[str, Any]) -> str:
    """Store the sample character and return its id.

    Args:
        database: Temporary database.
        sample_records_data: Records to store.

    Returns:
        The stored character's id.
    """
    char_id = database.add_character("Test Fighter", character_id="hero-1").id

    for attribute in sample_records_data["attributes"]:
        database.add_attribute(
            char_id,
            attribute["variableName"],
            attribute_type=attribute.get("attributeType", "stat"),
            base_value=attribute.get("baseValue"),
            decimal=attribute.get("decimal", False),
        )
    for skill in sample_records_data["skills"]:
        database.add_skill(char_id, skill["variableName"], ability=skill.get("ability"))
    for multiplier in sample_records_data["damage_multipliers"]:
        database.add_damage_multiplier(char_id, multiplier["variableName"])
    for class_level in sample_records_data["class_levels"]:
        database.add_class_level(char_id, class_level["name"], class_level["level"])
    for effect in sample_records_data["effects"]:
        database.add_effect(
            char_id,
            effect["targetVariableName"],
            effect["operation"],
            value=effect.get("value"),
            calculation=effect.get("calculation"),
        )
    for proficiency in sample_records_data["proficiencies"]:
        database.add_proficiency(
            char_id,
            proficiency["targetName"],
            type=proficiency["type"],
            level=proficiency["value"],
        )

    return char_id
