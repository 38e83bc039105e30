"""Character aggregates that do not go through the stat graph."""

from __future__ import annotations

from collections.abc import Iterable

from statforge.models.records import ContainerRecord, ExperienceRecord, ItemRecord


def compute_experience(experiences: Iterable[ExperienceRecord]) -> int:
    """Total experience: the sum of all awards."""
    return sum(experience.value for experience in experiences)


def compute_weight_carried(
    character_id: str,
    containers: Iterable[ContainerRecord],
    items: Iterable[ItemRecord],
) -> float:
    """Weight the character carries.

    Carried containers count with their own weight. Items count when
    they are held by the character directly or sit in a carried
    container; items in containers left behind do not.
    """
    weight: float = 0
    carried: set[str] = set()
    for container in containers:
        if container.is_carried:
            carried.add(container.id)
            weight += container.weight
    for item in items:
        if item.parent_id == character_id or item.parent_id in carried:
            weight += item.weight
    return weight


__all__ = ["compute_experience", "compute_weight_carried"]
