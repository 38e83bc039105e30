"""Stat and effect nodes of the per-character evaluation graph.

Every stat kind shares the same evaluation shape (state, result and the
attached effects) and carries its own accumulators. An effect folds into
its stat through ``apply_effect``; operations a kind does not support are
ignored, so a ``base`` effect on a skill or an ``advantage`` effect on an
attribute simply has no influence.

Effect results are usually numbers. A formula that could not be evaluated
leaves its text as the result: sums and products that meet such a text
turn into NaN, comparisons (base, min, max) skip it.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar

from statforge.models.enums import NodeState, Operation, StatKind
from statforge.models.records import EffectRecord
from statforge.models.results import AttributeUpdate, DamageMultiplierUpdate, SkillUpdate


EffectResult = float | str | None

IMMUNITY = 0
RESISTANCE = 0.5
VULNERABILITY = 2


def is_number(value: object) -> bool:
    """Whether ``value`` is a real number (bools excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def as_number(value: EffectResult) -> float:
    """Coerce an effect result for arithmetic; text becomes NaN."""
    if is_number(value):
        return value  # type: ignore[return-value]
    return math.nan


@dataclass(frozen=True)
class StatKey:
    """Arena key of a stat node: its kind and variable name."""

    kind: StatKind
    variable_name: str

    def __str__(self) -> str:
        return f"{self.kind}:{self.variable_name}"


@dataclass
class EffectNode:
    """An effect attached to a stat, with its memoized result.

    Attributes:
        operation: How the effect folds into its stat.
        value: Literal numeric contribution.
        calculation: Formula text, evaluated when no finite value is set.
        computed: Whether ``result`` is final for this pass.
        result: Number, text (conditional or unresolvable formula) or None
            when the effect carries neither value nor calculation.
    """

    operation: Operation
    value: float | None = None
    calculation: str | None = None
    computed: bool = False
    result: EffectResult = None

    @classmethod
    def from_record(cls, record: EffectRecord) -> EffectNode:
        return cls(
            operation=record.operation,
            value=record.value,
            calculation=record.calculation,
        )


@dataclass
class StatNode(ABC):
    """Common evaluation shape of every stat kind.

    Attributes:
        key: Arena key of the node.
        state: Evaluation state within the current pass.
        result: Final value once COMPUTED.
        cyclic: Set when the node was found on a dependency cycle.
        effects: Effects attached to the node.
        index: Order in which the node was entered during the pass.
        lowlink: Smallest index reachable from the node through nodes
            whose dependency group is still open.
    """

    SUPPORTED_OPERATIONS: ClassVar[frozenset[Operation]] = frozenset()

    key: StatKey
    state: NodeState = NodeState.UNCOMPUTED
    result: float = 0
    cyclic: bool = False
    effects: list[EffectNode] = field(default_factory=list)
    index: int = -1
    lowlink: int = -1

    @property
    def variable_name(self) -> str:
        return self.key.variable_name

    @property
    def computed(self) -> bool:
        return self.state is NodeState.COMPUTED

    @property
    def in_progress(self) -> bool:
        return self.state is NodeState.IN_PROGRESS

    def apply_effect(self, effect: EffectNode) -> None:
        """Fold a computed effect into this node's accumulators."""
        if effect.operation not in self.SUPPORTED_OPERATIONS:
            return
        if not effect.operation.is_counter and effect.result is None:
            return
        self._apply(effect.operation, effect.result)

    @abstractmethod
    def _apply(self, operation: Operation, result: EffectResult) -> None:
        """Fold one supported operation into the accumulators."""

    @abstractmethod
    def to_update(self) -> AttributeUpdate | SkillUpdate | DamageMultiplierUpdate:
        """Write-back shape of the computed node."""

    def mark_cyclic(self) -> None:
        """Terminate the node as a member of a dependency cycle."""
        self.state = NodeState.COMPUTED
        self.result = math.nan
        self.cyclic = True


@dataclass
class AttributeNode(StatNode):
    """Attribute accumulators: largest base, summed adds, multiplied muls, clamps."""

    SUPPORTED_OPERATIONS: ClassVar[frozenset[Operation]] = frozenset(
        {Operation.BASE, Operation.ADD, Operation.MUL, Operation.MIN, Operation.MAX}
    )

    attribute_type: str = "stat"
    is_ability: bool = False
    decimal: bool = False
    base: float = 0
    add: float = 0
    mul: float = 1
    min: float = -math.inf
    max: float = math.inf
    modifier: float | None = None

    def _apply(self, operation: Operation, result: EffectResult) -> None:
        if operation is Operation.ADD:
            self.add += as_number(result)
        elif operation is Operation.MUL:
            self.mul *= as_number(result)
        elif not is_number(result):
            return
        elif operation is Operation.BASE:
            if result > self.base:
                self.base = result
        elif operation is Operation.MIN:
            if result > self.min:
                self.min = result
        elif operation is Operation.MAX:
            if result < self.max:
                self.max = result

    def mark_cyclic(self) -> None:
        super().mark_cyclic()
        if self.is_ability:
            self.modifier = math.nan

    def to_update(self) -> AttributeUpdate:
        return AttributeUpdate(
            variable_name=self.variable_name,
            result=self.result,
            modifier=self.modifier,
        )


@dataclass
class SkillNode(StatNode):
    """Skill accumulators plus effect counters and proficiency levels."""

    SUPPORTED_OPERATIONS: ClassVar[frozenset[Operation]] = frozenset(
        {
            Operation.ADD,
            Operation.MUL,
            Operation.MIN,
            Operation.MAX,
            Operation.ADVANTAGE,
            Operation.DISADVANTAGE,
            Operation.PASSIVE_ADD,
            Operation.FAIL,
            Operation.CONDITIONAL,
        }
    )

    ability: str | None = None
    add: float = 0
    mul: float = 1
    min: float = -math.inf
    max: float = math.inf
    proficiency_level: float = 0
    advantage_count: int = 0
    disadvantage_count: int = 0
    passive_add: float = 0
    fail_count: int = 0
    conditional_count: int = 0
    proficiencies: list[float] = field(default_factory=list)

    def _apply(self, operation: Operation, result: EffectResult) -> None:
        if operation is Operation.ADVANTAGE:
            self.advantage_count += 1
        elif operation is Operation.DISADVANTAGE:
            self.disadvantage_count += 1
        elif operation is Operation.FAIL:
            self.fail_count += 1
        elif operation is Operation.CONDITIONAL:
            self.conditional_count += 1
        elif operation is Operation.ADD:
            self.add += as_number(result)
        elif operation is Operation.MUL:
            self.mul *= as_number(result)
        elif operation is Operation.PASSIVE_ADD:
            self.passive_add += as_number(result)
        elif not is_number(result):
            return
        elif operation is Operation.MIN:
            if result > self.min:
                self.min = result
        elif operation is Operation.MAX:
            if result < self.max:
                self.max = result

    def to_update(self) -> SkillUpdate:
        return SkillUpdate(
            variable_name=self.variable_name,
            result=self.result,
            advantage_count=self.advantage_count,
            disadvantage_count=self.disadvantage_count,
            passive_add=self.passive_add,
            proficiency_level=self.proficiency_level,
            conditional_count=self.conditional_count,
            fail_count=self.fail_count,
        )


@dataclass
class DamageMultiplierNode(StatNode):
    """Counts immunity (x0), resistance (x0.5) and vulnerability (x2) markers."""

    SUPPORTED_OPERATIONS: ClassVar[frozenset[Operation]] = frozenset({Operation.MUL})

    result: float = 1
    immunity_count: int = 0
    resistance_count: int = 0
    vulnerability_count: int = 0

    def _apply(self, operation: Operation, result: EffectResult) -> None:
        if not is_number(result):
            return
        if result == IMMUNITY:
            self.immunity_count += 1
        elif result == RESISTANCE:
            self.resistance_count += 1
        elif result == VULNERABILITY:
            self.vulnerability_count += 1

    def to_update(self) -> DamageMultiplierUpdate:
        return DamageMultiplierUpdate(variable_name=self.variable_name, result=self.result)


__all__ = [
    "EffectResult",
    "is_number",
    "as_number",
    "StatKey",
    "EffectNode",
    "StatNode",
    "AttributeNode",
    "SkillNode",
    "DamageMultiplierNode",
]
