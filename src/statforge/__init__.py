"""StatForge - character stat computation engine for tabletop RPGs.

Characters carry a web of user-authored effects, proficiencies and
free-text formulas. StatForge turns the raw records of one character
into final stat values: every stat is computed once, formulas may
reference other stats in any order, and dependency cycles resolve to NaN
instead of recursing forever.

Example:
    >>> from statforge import CharacterRecords, compute_character
    >>> records = CharacterRecords.model_validate({
    ...     "character_id": "hero-1",
    ...     "attributes": [
    ...         {"variableName": "strength", "type": "ability", "baseValue": 16},
    ...     ],
    ...     "effects": [
    ...         {"stat": "strength", "operation": "add", "calculation": "level"},
    ...     ],
    ...     "class_levels": [{"name": "fighter", "level": 2}],
    ... })
    >>> compute_character(records).attributes["strength"].result
    18.0

Call ``setup_logging()`` once at startup to apply the ``STATFORGE_LOG_*``
settings.

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic schemas for records and results.
    engine: Graph builder, formula evaluator, combiner and scheduler.
    storage: SQLite storage collaborator and write-back sink.
    service: Recompute entry points.
"""

from __future__ import annotations

# Core
from statforge.core.config import Settings, get_settings
from statforge.core.exceptions import StatForgeError
from statforge.core.logging import configure_logging, get_logger, setup_logging

# Models
from statforge.models import CharacterRecords, CharacterResult

# Engine
from statforge.engine import EvaluationContext, build_context, compute_all

# Service
from statforge.service import (
    compute_character,
    recompute_character,
    recompute_character_weight_carried,
    recompute_character_xp,
)


__version__ = "0.1.0"
__all__ = [
    "__version__",
    # Core
    "StatForgeError",
    "Settings",
    "get_settings",
    "configure_logging",
    "setup_logging",
    "get_logger",
    # Models
    "CharacterRecords",
    "CharacterResult",
    # Engine
    "EvaluationContext",
    "build_context",
    "compute_all",
    # Service
    "compute_character",
    "recompute_character",
    "recompute_character_xp",
    "recompute_character_weight_carried",
]
