"""SQLite persistence layer for StatForge.

Provides the storage collaborator of the stat engine:
- Raw records per character (attributes, skills, damage multipliers,
  class levels, effects, proficiencies, experience, containers, items)
- Write-back of computed results

Reads for one recompute happen inside a single transaction so the engine
sees a consistent snapshot. Write-back is best-effort: every update runs
on its own and a failing update is reported without blocking the rest.
"""

from __future__ import annotations

import math
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Generator
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from statforge.core.exceptions import CharacterNotFoundError, StorageError
from statforge.core.logging import get_logger
from statforge.models.records import (
    CharacterRecords,
    ContainerRecord,
    ExperienceRecord,
    ItemRecord,
)
from statforge.models.results import CharacterResult


logger = get_logger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class StoredCharacter:
    """Character row with its stored aggregates.

    Attributes:
        id: Unique identifier.
        name: Display name.
        level: Total level written by the last recompute.
        xp: Experience written by the last XP recompute.
        weight_carried: Weight written by the last carried-weight recompute.
        created_at: When the character was created.
    """

    id: str
    name: str
    level: int
    xp: int
    weight_carried: float
    created_at: datetime

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> StoredCharacter:
        """Create from database row."""
        return cls(
            id=row[0],
            name=row[1],
            level=row[2],
            xp=row[3],
            weight_carried=row[4],
            created_at=datetime.fromisoformat(row[5]),
        )


@dataclass
class WriteReport:
    """Outcome of a best-effort write-back.

    Attributes:
        updated: Number of updates that ran without error.
        failed: Names of the updates that failed.
    """

    updated: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def _is_locked(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.OperationalError) and "locked" in str(exc).lower()


def _nullable(value: float | None) -> float | None:
    """NaN is stored as NULL."""
    if value is None or math.isnan(value):
        return None
    return value


# =============================================================================
# Database Class
# =============================================================================


class Database:
    """SQLite database holding character records and computed stats."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize database.

        Args:
            db_path: Path to database file. If None, uses the configured path.
        """
        if db_path is None:
            from statforge.core.config import get_settings

            self.db_path = get_settings().storage.database_path
        else:
            self.db_path = Path(db_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

        logger.info("Database initialized", path=str(self.db_path))

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS characters (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    level INTEGER NOT NULL DEFAULT 0,
                    xp INTEGER NOT NULL DEFAULT 0,
                    weight_carried REAL NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS attributes (
                    id TEXT PRIMARY KEY,
                    char_id TEXT NOT NULL,
                    variable_name TEXT NOT NULL,
                    attribute_type TEXT NOT NULL DEFAULT 'stat',
                    base_value REAL,
                    decimal INTEGER NOT NULL DEFAULT 0,
                    value REAL,
                    modifier REAL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS skills (
                    id TEXT PRIMARY KEY,
                    char_id TEXT NOT NULL,
                    variable_name TEXT NOT NULL,
                    ability TEXT,
                    value REAL,
                    advantage INTEGER NOT NULL DEFAULT 0,
                    disadvantage INTEGER NOT NULL DEFAULT 0,
                    passive_bonus REAL DEFAULT 0,
                    proficiency REAL NOT NULL DEFAULT 0,
                    conditional_benefits INTEGER NOT NULL DEFAULT 0,
                    fail INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS damage_multipliers (
                    id TEXT PRIMARY KEY,
                    char_id TEXT NOT NULL,
                    variable_name TEXT NOT NULL,
                    value REAL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS class_levels (
                    id TEXT PRIMARY KEY,
                    char_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    level INTEGER NOT NULL DEFAULT 1
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS effects (
                    id TEXT PRIMARY KEY,
                    char_id TEXT NOT NULL,
                    stat TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    value REAL,
                    calculation TEXT,
                    enabled INTEGER NOT NULL DEFAULT 1
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS proficiencies (
                    id TEXT PRIMARY KEY,
                    char_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL DEFAULT 'skill',
                    level REAL NOT NULL DEFAULT 1,
                    enabled INTEGER NOT NULL DEFAULT 1
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS experiences (
                    id TEXT PRIMARY KEY,
                    char_id TEXT NOT NULL,
                    value INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS containers (
                    id TEXT PRIMARY KEY,
                    char_id TEXT NOT NULL,
                    is_carried INTEGER NOT NULL DEFAULT 0,
                    weight REAL NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS items (
                    id TEXT PRIMARY KEY,
                    char_id TEXT NOT NULL,
                    parent_id TEXT NOT NULL,
                    weight REAL NOT NULL DEFAULT 0
                )
            """)

            for table in (
                "attributes",
                "skills",
                "damage_multipliers",
                "class_levels",
                "effects",
                "proficiencies",
                "experiences",
                "containers",
                "items",
            ):
                cursor.execute(
                    f"CREATE INDEX IF NOT EXISTS idx_{table}_char_id ON {table}(char_id)"
                )

            cursor.execute("""
                INSERT OR REPLACE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    # =========================================================================
    # Record Insertion
    # =========================================================================

    def _insert(self, table: str, values: dict[str, Any]) -> str:
        record_id = values.setdefault("id", str(uuid4()))
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        with self._get_connection() as conn:
            conn.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
        return record_id

    def add_character(self, name: str, character_id: str | None = None) -> StoredCharacter:
        """Create a character.

        Args:
            name: Display name.
            character_id: Explicit identifier; generated when omitted.

        Returns:
            The created character.
        """
        created_at = datetime.now()
        values: dict[str, Any] = {"name": name, "created_at": created_at.isoformat()}
        if character_id:
            values["id"] = character_id
        record_id = self._insert("characters", values)
        logger.info("Added character", character_id=record_id, name=name)
        return StoredCharacter(
            id=record_id,
            name=name,
            level=0,
            xp=0,
            weight_carried=0,
            created_at=created_at,
        )

    def add_attribute(
        self,
        char_id: str,
        variable_name: str,
        *,
        attribute_type: str = "stat",
        base_value: float | None = None,
        decimal: bool = False,
    ) -> str:
        """Add an attribute record. Returns its id."""
        return self._insert("attributes", {
            "char_id": char_id,
            "variable_name": variable_name,
            "attribute_type": attribute_type,
            "base_value": base_value,
            "decimal": int(decimal),
        })

    def add_skill(self, char_id: str, variable_name: str, *, ability: str | None = None) -> str:
        """Add a skill record. Returns its id."""
        return self._insert("skills", {
            "char_id": char_id,
            "variable_name": variable_name,
            "ability": ability,
        })

    def add_damage_multiplier(self, char_id: str, variable_name: str) -> str:
        """Add a damage multiplier record. Returns its id."""
        return self._insert("damage_multipliers", {
            "char_id": char_id,
            "variable_name": variable_name,
        })

    def add_class_level(self, char_id: str, name: str, level: int = 1) -> str:
        """Add a class level record. Returns its id."""
        return self._insert("class_levels", {"char_id": char_id, "name": name, "level": level})

    def add_effect(
        self,
        char_id: str,
        stat: str,
        operation: str,
        *,
        value: float | None = None,
        calculation: str | None = None,
        enabled: bool = True,
    ) -> str:
        """Add an effect record. Returns its id."""
        return self._insert("effects", {
            "char_id": char_id,
            "stat": stat,
            "operation": operation,
            "value": value,
            "calculation": calculation,
            "enabled": int(enabled),
        })

    def add_proficiency(
        self,
        char_id: str,
        name: str,
        *,
        type: str = "skill",
        level: float = 1,
        enabled: bool = True,
    ) -> str:
        """Add a proficiency record. Returns its id."""
        return self._insert("proficiencies", {
            "char_id": char_id,
            "name": name,
            "type": type,
            "level": level,
            "enabled": int(enabled),
        })

    def add_experience(self, char_id: str, value: int) -> str:
        """Add an experience award. Returns its id."""
        return self._insert("experiences", {"char_id": char_id, "value": value})

    def add_container(
        self,
        char_id: str,
        *,
        weight: float = 0,
        is_carried: bool = False,
        container_id: str | None = None,
    ) -> str:
        """Add a container. Returns its id."""
        values: dict[str, Any] = {
            "char_id": char_id,
            "weight": weight,
            "is_carried": int(is_carried),
        }
        if container_id:
            values["id"] = container_id
        return self._insert("containers", values)

    def add_item(self, char_id: str, parent_id: str, *, weight: float = 0) -> str:
        """Add an item held by ``parent_id`` (the character or a container)."""
        return self._insert("items", {"char_id": char_id, "parent_id": parent_id, "weight": weight})

    # =========================================================================
    # Reads
    # =========================================================================

    def get_character(self, char_id: str) -> StoredCharacter | None:
        """Get a character by id.

        Returns:
            The character if found, None otherwise.
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT id, name, level, xp, weight_carried, created_at
                FROM characters WHERE id = ?
            """, (char_id,))
            row = cursor.fetchone()

            if row:
                return StoredCharacter.from_row(tuple(row))
            return None

    @staticmethod
    def _rows(conn: sqlite3.Connection, query: str, char_id: str) -> list[dict[str, Any]]:
        return [dict(row) for row in conn.execute(query, (char_id,)).fetchall()]

    def _require_character(self, conn: sqlite3.Connection, char_id: str) -> None:
        row = conn.execute("SELECT 1 FROM characters WHERE id = ?", (char_id,)).fetchone()
        if row is None:
            raise CharacterNotFoundError("Character does not exist", character_id=char_id)

    def load_character_records(self, char_id: str) -> CharacterRecords:
        """Read every record the stat engine needs, as one snapshot.

        Only enabled effects and enabled skill/save proficiencies are read.

        Raises:
            CharacterNotFoundError: If the character does not exist.
            StorageError: If stored records do not match the record schemas.
        """
        with self._get_connection() as conn:
            conn.execute("BEGIN")
            self._require_character(conn, char_id)
            data = {
                "character_id": char_id,
                "attributes": self._rows(conn, """
                    SELECT variable_name, attribute_type, base_value, decimal
                    FROM attributes WHERE char_id = ? ORDER BY rowid
                """, char_id),
                "skills": self._rows(conn, """
                    SELECT variable_name, ability
                    FROM skills WHERE char_id = ? ORDER BY rowid
                """, char_id),
                "damage_multipliers": self._rows(conn, """
                    SELECT variable_name
                    FROM damage_multipliers WHERE char_id = ? ORDER BY rowid
                """, char_id),
                "class_levels": self._rows(conn, """
                    SELECT name, level
                    FROM class_levels WHERE char_id = ? ORDER BY rowid
                """, char_id),
                "effects": self._rows(conn, """
                    SELECT stat, operation, value, calculation, enabled
                    FROM effects WHERE char_id = ? AND enabled = 1 ORDER BY rowid
                """, char_id),
                "proficiencies": self._rows(conn, """
                    SELECT name, type, level, enabled
                    FROM proficiencies
                    WHERE char_id = ? AND enabled = 1 AND type IN ('skill', 'save')
                    ORDER BY rowid
                """, char_id),
            }

        try:
            return CharacterRecords.model_validate(data)
        except PydanticValidationError as exc:
            raise StorageError(
                "Stored records are invalid",
                details={"character_id": char_id, "errors": exc.error_count()},
            ) from exc

    def load_experience_records(self, char_id: str) -> list[ExperienceRecord]:
        """Read the character's experience awards.

        Raises:
            CharacterNotFoundError: If the character does not exist.
        """
        with self._get_connection() as conn:
            self._require_character(conn, char_id)
            rows = self._rows(conn, "SELECT value FROM experiences WHERE char_id = ?", char_id)
        return [ExperienceRecord.model_validate(row) for row in rows]

    def load_inventory(self, char_id: str) -> tuple[list[ContainerRecord], list[ItemRecord]]:
        """Read the character's containers and items, as one snapshot.

        Raises:
            CharacterNotFoundError: If the character does not exist.
        """
        with self._get_connection() as conn:
            conn.execute("BEGIN")
            self._require_character(conn, char_id)
            containers = self._rows(conn, """
                SELECT id, is_carried, weight FROM containers WHERE char_id = ?
            """, char_id)
            items = self._rows(conn, """
                SELECT parent_id, weight FROM items WHERE char_id = ?
            """, char_id)
        return (
            [ContainerRecord.model_validate(row) for row in containers],
            [ItemRecord.model_validate(row) for row in items],
        )

    # =========================================================================
    # Write-back
    # =========================================================================

    @retry(
        retry=retry_if_exception(_is_locked),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, max=1),
        reraise=True,
    )
    def _execute(self, conn: sqlite3.Connection, sql: str, params: tuple[Any, ...]) -> None:
        conn.execute(sql, params)

    def _statements(self, result: CharacterResult) -> list[tuple[str, str, tuple[Any, ...]]]:
        char_id = result.character_id
        statements: list[tuple[str, str, tuple[Any, ...]]] = []

        for name, attribute in result.attributes.items():
            if attribute.modifier is None:
                statements.append((f"attribute:{name}", """
                    UPDATE attributes SET value = ?
                    WHERE char_id = ? AND variable_name = ?
                """, (_nullable(attribute.result), char_id, name)))
            else:
                statements.append((f"attribute:{name}", """
                    UPDATE attributes SET value = ?, modifier = ?
                    WHERE char_id = ? AND variable_name = ?
                """, (_nullable(attribute.result), _nullable(attribute.modifier), char_id, name)))

        for name, skill in result.skills.items():
            statements.append((f"skill:{name}", """
                UPDATE skills
                SET value = ?, advantage = ?, disadvantage = ?, passive_bonus = ?,
                    proficiency = ?, conditional_benefits = ?, fail = ?
                WHERE char_id = ? AND variable_name = ?
            """, (
                _nullable(skill.result),
                skill.advantage_count,
                skill.disadvantage_count,
                _nullable(skill.passive_add),
                skill.proficiency_level,
                skill.conditional_count,
                skill.fail_count,
                char_id,
                name,
            )))

        for name, multiplier in result.damage_multipliers.items():
            statements.append((f"damageMultiplier:{name}", """
                UPDATE damage_multipliers SET value = ?
                WHERE char_id = ? AND variable_name = ?
            """, (_nullable(multiplier.result), char_id, name)))

        statements.append(("character:level", """
            UPDATE characters SET level = ? WHERE id = ?
        """, (result.total_level, char_id)))
        return statements

    def write_character_result(self, result: CharacterResult) -> WriteReport:
        """Write computed stats back, one independent update per stat.

        A failing update is logged and listed in the report; the remaining
        updates still run.

        Args:
            result: Output of a recompute pass.

        Returns:
            How many updates ran and which ones failed.
        """
        report = WriteReport()
        with self._get_connection() as conn:
            for name, sql, params in self._statements(result):
                try:
                    self._execute(conn, sql, params)
                except sqlite3.Error as exc:
                    logger.warning("Stat update failed", update=name, error=str(exc))
                    report.failed.append(name)
                else:
                    report.updated += 1

        logger.info(
            "Wrote character results",
            character_id=result.character_id,
            updated=report.updated,
            failed=len(report.failed),
        )
        return report

    def write_experience(self, char_id: str, xp: int) -> None:
        """Store the character's experience total."""
        with self._get_connection() as conn:
            self._execute(conn, "UPDATE characters SET xp = ? WHERE id = ?", (xp, char_id))

    def write_weight_carried(self, char_id: str, weight: float) -> None:
        """Store the character's carried weight."""
        with self._get_connection() as conn:
            self._execute(
                conn,
                "UPDATE characters SET weight_carried = ? WHERE id = ?",
                (weight, char_id),
            )

    def get_stat_values(self, char_id: str) -> dict[str, float | None]:
        """Stored values of every stat, keyed by variable name.

        Attributes shadow skills and damage multipliers with the same name.
        """
        values: dict[str, float | None] = {}
        with self._get_connection() as conn:
            for table in ("damage_multipliers", "skills", "attributes"):
                for row in conn.execute(
                    f"SELECT variable_name, value FROM {table} WHERE char_id = ? ORDER BY rowid",
                    (char_id,),
                ):
                    values[row["variable_name"]] = row["value"]
        return values


# =============================================================================
# Singleton Instance
# =============================================================================


_database_instance: Database | None = None


def get_database() -> Database:
    """Get the global database instance.

    Returns:
        Database singleton instance.
    """
    global _database_instance

    if _database_instance is None:
        _database_instance = Database()

    return _database_instance


def reset_database() -> None:
    """Drop the global instance so the next call re-reads settings."""
    global _database_instance
    _database_instance = None


__all__ = [
    "Database",
    "StoredCharacter",
    "WriteReport",
    "get_database",
    "reset_database",
]
