"""Storage module for StatForge persistence.

Provides SQLite-based storage for:
- Raw character records read by the stat engine
- Computed results written back after a recompute
"""

from statforge.storage.database import (
    Database,
    StoredCharacter,
    WriteReport,
    get_database,
    reset_database,
)

__all__ = [
    "Database",
    "StoredCharacter",
    "WriteReport",
    "get_database",
    "reset_database",
]
