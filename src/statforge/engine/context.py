"""Evaluation context: the node arena of one recompute pass.

The context owns every stat node of a character (keyed by StatKey), the
class levels, the total level and the stack of nodes currently being
evaluated. It is built fresh for each pass and discarded afterwards, so
no computation state outlives a call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from statforge.core.config import EngineSettings
from statforge.engine.nodes import (
    AttributeNode,
    DamageMultiplierNode,
    SkillNode,
    StatKey,
    StatNode,
)
from statforge.models.enums import NodeState, StatKind


@dataclass
class EvaluationContext:
    """Node arena and shared state of a single character's recompute pass.

    Attributes:
        character_id: Identifier of the character being computed.
        settings: Engine settings in effect for this pass.
        nodes: Arena of stat nodes, in insertion order.
        class_levels: Class level by lower-cased class name.
        total_level: Sum of all class levels.
        stack: Keys of the nodes whose frames are running, outermost first.
        pending: Keys of the IN_PROGRESS nodes, in entry order. A node
            stays here after its frame returns until its dependency group
            (every stat it can reach that can also reach it) is closed.
    """

    character_id: str
    settings: EngineSettings = field(default_factory=EngineSettings)
    nodes: dict[StatKey, StatNode] = field(default_factory=dict)
    class_levels: dict[str, int] = field(default_factory=dict)
    total_level: int = 0
    stack: list[StatKey] = field(default_factory=list)
    pending: list[StatKey] = field(default_factory=list)
    _entered: int = field(default=0, init=False, repr=False)
    _index: dict[tuple[StatKind, str], StatKey] = field(
        default_factory=dict, init=False, repr=False
    )

    def add_node(self, node: StatNode) -> bool:
        """Register a node; returns False if its key is already taken."""
        if node.key in self.nodes:
            return False
        self.nodes[node.key] = node
        self._index.setdefault((node.key.kind, node.variable_name.lower()), node.key)
        return True

    def add_class_level(self, name: str, level: int) -> bool:
        """Record a class level; the first record of a class wins."""
        lowered = name.lower()
        if lowered in self.class_levels:
            return False
        self.class_levels[lowered] = level
        self.total_level += level
        return True

    def get(self, kind: StatKind, variable_name: str) -> StatNode | None:
        """Exact lookup by kind and variable name."""
        return self.nodes.get(StatKey(kind, variable_name))

    def find(self, kind: StatKind, token: str) -> StatNode | None:
        """Case-insensitive lookup used to resolve formula tokens."""
        key = self._index.get((kind, token.lower()))
        return self.nodes[key] if key is not None else None

    def attribute(self, variable_name: str) -> AttributeNode | None:
        node = self.get(StatKind.ATTRIBUTE, variable_name)
        return node if isinstance(node, AttributeNode) else None

    def skill(self, variable_name: str) -> SkillNode | None:
        node = self.get(StatKind.SKILL, variable_name)
        return node if isinstance(node, SkillNode) else None

    def damage_multiplier(self, variable_name: str) -> DamageMultiplierNode | None:
        node = self.get(StatKind.DAMAGE_MULTIPLIER, variable_name)
        return node if isinstance(node, DamageMultiplierNode) else None

    def class_level(self, name: str) -> int | None:
        return self.class_levels.get(name.lower())

    def iter_kind(self, kind: StatKind) -> Iterator[StatNode]:
        """Nodes of one kind, in insertion order."""
        return (node for key, node in self.nodes.items() if key.kind is kind)

    def enter(self, key: StatKey) -> StatNode:
        """Start the frame of an UNCOMPUTED node."""
        node = self.nodes[key]
        node.state = NodeState.IN_PROGRESS
        node.index = node.lowlink = self._entered
        self._entered += 1
        self.stack.append(key)
        self.pending.append(key)
        return node

    def link(self, key: StatKey) -> None:
        """Record that the running frame re-entered the IN_PROGRESS ``key``.

        The target's group is still open, so both nodes lie on a common
        cycle. A frame re-entering itself is a cycle on its own.
        """
        caller = self.nodes[self.stack[-1]]
        target = self.nodes[key]
        caller.lowlink = min(caller.lowlink, target.index)
        if caller is target:
            caller.cyclic = True

    def finish(self, key: StatKey) -> list[StatKey]:
        """End the running frame of ``key`` and close its group if complete.

        A group closes at the first-entered node that reaches nothing older.
        Its members become COMPUTED; when the group is a cycle they are
        terminated with NaN, whatever the order they were entered in.

        Returns:
            The members of a closed cycle in entry order, else an empty list.
        """
        self.stack.pop()
        node = self.nodes[key]
        if self.stack:
            caller = self.nodes[self.stack[-1]]
            caller.lowlink = min(caller.lowlink, node.lowlink)
        if node.lowlink != node.index:
            return []

        start = self.pending.index(key)
        group = self.pending[start:]
        del self.pending[start:]
        if len(group) == 1 and not node.cyclic:
            node.state = NodeState.COMPUTED
            return []
        for member in group:
            self.nodes[member].mark_cyclic()
        return group


__all__ = ["EvaluationContext"]
