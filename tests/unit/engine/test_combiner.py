"""Tests for the per-kind combination rules."""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import partial
from typing import Any

import pytest

from statforge.engine.builder import build_context
from statforge.engine.combiner import (
    ability_modifier,
    clamp,
    combine_attribute,
    combine_damage_multiplier,
    combine_skill,
    combine_stat,
    default_proficiency_bonus,
    floor_finite,
)
from statforge.engine.context import EvaluationContext
from statforge.engine.nodes import AttributeNode, DamageMultiplierNode, StatKey, StatNode
from statforge.engine.scheduler import compute_stat
from statforge.models.enums import StatKind


def _attribute(**kwargs: Any) -> AttributeNode:
    return AttributeNode(key=StatKey(StatKind.ATTRIBUTE, "score"), **kwargs)


def _multiplier(**counts: int) -> DamageMultiplierNode:
    return DamageMultiplierNode(key=StatKey(StatKind.DAMAGE_MULTIPLIER, "fire"), **counts)


def _skill_context(
    make_records: Any,
    settings: Any,
    *,
    level: int,
    strength: float = 14,
    proficiency: float | None = 1,
    skills: list[dict[str, Any]] | None = None,
    effects: list[dict[str, Any]] | None = None,
) -> EvaluationContext:
    records = make_records(
        attributes=[{"variableName": "strength", "attributeType": "ability", "baseValue": strength}],
        skills=skills or [{"variableName": "athletics", "ability": "strength"}],
        class_levels=[{"name": "fighter", "level": level}],
        proficiencies=(
            [{"name": "athletics", "level": proficiency}] if proficiency is not None else []
        ),
        effects=effects or [],
    )
    return build_context(records, settings)


def _combine(context: EvaluationContext, name: str) -> float:
    node = context.skill(name)
    assert node is not None
    combine_skill(node, context, partial(compute_stat, context))
    return node.result


class TestHelpers:
    """Tests for rounding and clamping helpers."""

    def test_floor_finite(self) -> None:
        """Test non-finite values pass through floor."""
        assert floor_finite(2.7) == 2
        assert floor_finite(-2.5) == -3
        assert math.isnan(floor_finite(math.nan))
        assert floor_finite(math.inf) == math.inf

    def test_clamp(self) -> None:
        """Test clamping and NaN handling."""
        assert clamp(20, 5, 8) == 8
        assert clamp(1, 5, 8) == 5
        assert clamp(6, -math.inf, math.inf) == 6
        assert math.isnan(clamp(math.nan, 0, 10))

    @pytest.mark.parametrize(
        ("score", "modifier"),
        [(14, 2), (10, 0), (11, 0), (7, -2), (1, -5), (20, 5)],
    )
    def test_ability_modifier(self, score: int, modifier: int) -> None:
        """Test floor((score - 10) / 2)."""
        assert ability_modifier(score) == modifier

    @pytest.mark.parametrize(
        ("level", "bonus"),
        [(1, 2), (4, 2), (5, 3), (8, 3), (9, 4), (13, 5), (17, 6), (20, 6)],
    )
    def test_default_proficiency_bonus(self, level: int, bonus: int) -> None:
        """Test floor(level / 4 + 1.75)."""
        assert default_proficiency_bonus(level) == bonus


class TestCombineAttribute:
    """Tests for the attribute rule."""

    def test_base_add_mul(self) -> None:
        """Test floor((base + add) * mul)."""
        node = _attribute(base=10, add=2, mul=1.5)

        combine_attribute(node)

        assert node.result == 18

    def test_floors_unless_decimal(self) -> None:
        """Test results are floored unless the attribute is decimal."""
        floored = _attribute(base=10, mul=1.25)
        decimal = _attribute(base=10, mul=1.25, decimal=True)

        combine_attribute(floored)
        combine_attribute(decimal)

        assert floored.result == 12
        assert decimal.result == pytest.approx(12.5)

    def test_clamped(self) -> None:
        """Test min and max bound the result."""
        node = _attribute(base=25, min=3, max=20)

        combine_attribute(node)

        assert node.result == 20

    def test_ability_modifier_derived(self) -> None:
        """Test abilities get a modifier, other attributes do not."""
        ability = _attribute(base=14, is_ability=True)
        other = _attribute(base=14)

        combine_attribute(ability)
        combine_attribute(other)

        assert ability.modifier == 2
        assert other.modifier is None

    def test_nan_add(self) -> None:
        """Test NaN accumulators give a NaN result and modifier."""
        node = _attribute(base=10, add=math.nan, is_ability=True)

        combine_attribute(node)

        assert math.isnan(node.result)
        assert node.modifier is not None and math.isnan(node.modifier)


class TestCombineSkill:
    """Tests for the skill rule."""

    def test_default_bonus(self, make_records: Any, engine_settings: Any) -> None:
        """Test modifier 2 + bonus 2 x proficiency 1 at level 4."""
        context = _skill_context(make_records, engine_settings, level=4)

        assert _combine(context, "athletics") == 4

    def test_level_five_bonus(self, make_records: Any, engine_settings: Any) -> None:
        """Test the bonus rises to 3 at level 5."""
        context = _skill_context(make_records, engine_settings, level=5)

        assert _combine(context, "athletics") == 5

    def test_expertise_and_half_proficiency(
        self,
        make_records: Any,
        engine_settings: Any,
    ) -> None:
        """Test the bonus scales with the proficiency level, then floors."""
        expertise = _skill_context(make_records, engine_settings, level=5, proficiency=2)
        half = _skill_context(make_records, engine_settings, level=5, proficiency=0.5)

        assert _combine(expertise, "athletics") == 8
        assert _combine(half, "athletics") == 3

    def test_highest_proficiency_wins(self, make_records: Any, engine_settings: Any) -> None:
        """Test only the maximum proficiency level counts."""
        records = make_records(
            skills=[{"variableName": "stealth"}],
            class_levels=[{"name": "rogue", "level": 1}],
            proficiencies=[
                {"name": "stealth", "level": 1},
                {"name": "stealth", "level": 2},
                {"name": "stealth", "level": 0.5},
            ],
        )
        context = build_context(records, engine_settings)

        assert _combine(context, "stealth") == 4
        stealth = context.skill("stealth")
        assert stealth is not None
        assert stealth.proficiency_level == 2

    def test_no_ability(self, make_records: Any, engine_settings: Any) -> None:
        """Test skills without an ability use a modifier of 0."""
        context = _skill_context(
            make_records,
            engine_settings,
            level=1,
            skills=[{"variableName": "luck"}],
            proficiency=None,
        )

        assert _combine(context, "luck") == 0

    def test_missing_ability(self, make_records: Any, engine_settings: Any) -> None:
        """Test skills naming a missing attribute use a modifier of 0."""
        context = _skill_context(
            make_records,
            engine_settings,
            level=1,
            skills=[{"variableName": "athletics", "ability": "might"}],
        )

        assert _combine(context, "athletics") == 2

    def test_add_mul_and_clamp(self, make_records: Any, engine_settings: Any) -> None:
        """Test add and mul apply to the sum, then min and max clamp."""
        context = _skill_context(make_records, engine_settings, level=4)
        node = context.skill("athletics")
        assert node is not None
        node.add = 1
        node.mul = 2
        node.max = 9

        assert _combine(context, "athletics") == 9

    def test_proficiency_bonus_skill(self, make_records: Any, engine_settings: Any) -> None:
        """Test a proficiencyBonus skill replaces the level-derived bonus."""
        context = _skill_context(
            make_records,
            engine_settings,
            level=1,
            skills=[
                {"variableName": "athletics", "ability": "strength"},
                {"variableName": "proficiencyBonus"},
            ],
            effects=[{"stat": "proficiencyBonus", "operation": "add", "value": 4}],
        )

        assert _combine(context, "athletics") == 6
        bonus = context.skill("proficiencyBonus")
        assert bonus is not None
        assert bonus.computed
        assert bonus.result == 4

    def test_proficiency_bonus_variable_setting(
        self,
        make_records: Any,
    ) -> None:
        """Test the bonus skill name comes from the engine settings."""
        from statforge.core.config import EngineSettings

        context = _skill_context(
            make_records,
            EngineSettings(proficiency_bonus_variable="profBonus"),
            level=1,
            skills=[
                {"variableName": "athletics", "ability": "strength"},
                {"variableName": "profBonus"},
            ],
            effects=[{"stat": "profBonus", "operation": "add", "value": 5}],
        )

        assert _combine(context, "athletics") == 7

    def test_ability_computed_first(self, make_records: Any, engine_settings: Any) -> None:
        """Test the ability is forced before its modifier is read."""
        context = _skill_context(make_records, engine_settings, level=4)
        strength = context.attribute("strength")
        assert strength is not None
        assert not strength.computed

        _combine(context, "athletics")

        assert strength.computed
        assert strength.modifier == 2


class TestCombineDamageMultiplier:
    """Tests for the damage multiplier rule."""

    @pytest.mark.parametrize(
        ("counts", "result"),
        [
            ({}, 1),
            ({"resistance_count": 1}, 0.5),
            ({"vulnerability_count": 1}, 2),
            ({"resistance_count": 1, "vulnerability_count": 1}, 1),
            ({"immunity_count": 1, "resistance_count": 1}, 0),
            ({"immunity_count": 1, "vulnerability_count": 2}, 0),
            ({"resistance_count": 3}, 0.5),
        ],
    )
    def test_rules(self, counts: dict[str, int], result: float) -> None:
        """Test immunity dominates and resistance cancels vulnerability."""
        node = _multiplier(**counts)

        combine_damage_multiplier(node)

        assert node.result == result


class TestCombineStat:
    """Tests for kind dispatch."""

    def test_dispatch(self, make_records: Any, engine_settings: Any) -> None:
        """Test each kind reaches its rule."""
        context = build_context(make_records(), engine_settings)
        node = _attribute(base=10, add=2, mul=1.5)

        combine_stat(node, context, partial(compute_stat, context))

        assert node.result == 18

    def test_unknown_kind(self, make_records: Any, engine_settings: Any) -> None:
        """Test a node kind without a rule cannot be combined."""

        @dataclass
        class BareNode(StatNode):
            def _apply(self, operation: Any, result: Any) -> None:
                pass

            def to_update(self) -> Any:
                return None

        context = build_context(make_records(), engine_settings)
        node = BareNode(key=StatKey(StatKind.ATTRIBUTE, "bare"))

        with pytest.raises(TypeError):
            combine_stat(node, context, partial(compute_stat, context))
