"""Tests for graph building and effect/proficiency attachment."""

from __future__ import annotations

from typing import Any

import pytest

from statforge.core.config import EngineSettings
from statforge.engine.builder import attach_effect, attach_proficiency, build_context
from statforge.engine.context import EvaluationContext
from statforge.engine.nodes import AttributeNode, SkillNode, StatKey
from statforge.models.enums import NodeState, Operation, StatKind
from statforge.models.records import EffectRecord, ProficiencyRecord


@pytest.fixture
def context(make_records: Any, engine_settings: EngineSettings) -> EvaluationContext:
    """Context with one stat of each kind."""
    records = make_records(
        attributes=[{"variableName": "strength", "attributeType": "ability", "baseValue": 15}],
        skills=[{"variableName": "athletics", "ability": "strength"}],
        damage_multipliers=[{"variableName": "fire"}],
    )
    return build_context(records, engine_settings)


class TestBuildContext:
    """Tests for build_context."""

    def test_nodes_per_kind(self, sample_records: Any, engine_settings: EngineSettings) -> None:
        """Test one node per record, keyed by kind and name."""
        context = build_context(sample_records, engine_settings)

        assert len(list(context.iter_kind(StatKind.ATTRIBUTE))) == 7
        assert len(list(context.iter_kind(StatKind.SKILL))) == 4
        assert len(list(context.iter_kind(StatKind.DAMAGE_MULTIPLIER))) == 3
        assert context.character_id == "hero-1"
        assert all(node.state is NodeState.UNCOMPUTED for node in context.nodes.values())

    def test_attribute_fields(self, context: EvaluationContext) -> None:
        """Test attribute records map onto node fields."""
        strength = context.attribute("strength")

        assert isinstance(strength, AttributeNode)
        assert strength.is_ability
        assert strength.attribute_type == "ability"
        assert strength.base == 15

    def test_missing_base_value(self, make_records: Any, engine_settings: EngineSettings) -> None:
        """Test a missing base value starts at 0."""
        context = build_context(
            make_records(attributes=[{"variableName": "luck"}]),
            engine_settings,
        )

        assert context.attribute("luck").base == 0  # type: ignore[union-attr]

    def test_ability_type_setting(self, make_records: Any) -> None:
        """Test the ability attribute type comes from settings."""
        records = make_records(
            attributes=[
                {"variableName": "might", "attributeType": "score"},
                {"variableName": "strength", "attributeType": "ability"},
            ]
        )

        context = build_context(records, EngineSettings(ability_attribute_type="score"))

        assert context.attribute("might").is_ability  # type: ignore[union-attr]
        assert not context.attribute("strength").is_ability  # type: ignore[union-attr]

    def test_duplicate_names_first_wins(
        self,
        make_records: Any,
        engine_settings: EngineSettings,
    ) -> None:
        """Test duplicate variable names keep the first record."""
        records = make_records(
            attributes=[
                {"variableName": "speed", "baseValue": 30},
                {"variableName": "speed", "baseValue": 25},
            ]
        )

        context = build_context(records, engine_settings)

        assert len(context.nodes) == 1
        assert context.attribute("speed").base == 30  # type: ignore[union-attr]

    def test_total_level(self, make_records: Any, engine_settings: EngineSettings) -> None:
        """Test class levels sum into the total level."""
        records = make_records(
            class_levels=[
                {"name": "fighter", "level": 3},
                {"name": "wizard", "level": 2},
                {"name": "Fighter", "level": 7},
            ]
        )

        context = build_context(records, engine_settings)

        assert context.total_level == 5
        assert context.class_level("FIGHTER") == 3
        assert context.class_level("rogue") is None

    def test_empty_character(self, make_records: Any, engine_settings: EngineSettings) -> None:
        """Test a character without records builds an empty arena."""
        context = build_context(make_records(), engine_settings)

        assert context.nodes == {}
        assert context.total_level == 0

    def test_default_settings(
        self,
        make_records: Any,
        tmp_path: Any,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test settings default to the application settings."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("STATFORGE_ENGINE_MODIFIER_SUFFIX", "Bonus")

        context = build_context(make_records())

        assert context.settings.modifier_suffix == "Bonus"


class TestAttachEffect:
    """Tests for effect attachment."""

    def test_attaches_to_each_kind(self, context: EvaluationContext) -> None:
        """Test effects find attributes, skills and damage multipliers."""
        for stat in ("strength", "athletics", "fire"):
            node = attach_effect(context, EffectRecord(stat=stat, operation=Operation.ADD, value=1))
            assert node is not None
            assert node.variable_name == stat
            assert len(node.effects) == 1

    def test_effect_node_fields(self, context: EvaluationContext) -> None:
        """Test the attached effect carries the record's fields."""
        node = attach_effect(
            context,
            EffectRecord(stat="strength", operation=Operation.MUL, calculation="level / 2"),
        )

        assert node is not None
        effect = node.effects[0]
        assert effect.operation is Operation.MUL
        assert effect.calculation == "level / 2"
        assert effect.value is None
        assert not effect.computed

    def test_missing_target_dropped(self, context: EvaluationContext) -> None:
        """Test an effect on an unknown stat is dropped silently."""
        node = attach_effect(context, EffectRecord(stat="charisma", operation=Operation.ADD, value=1))

        assert node is None
        assert all(not n.effects for n in context.nodes.values())

    def test_disabled_dropped(self, context: EvaluationContext) -> None:
        """Test disabled effects are never attached."""
        record = EffectRecord(stat="strength", operation=Operation.ADD, value=1, enabled=False)

        assert attach_effect(context, record) is None
        assert context.attribute("strength").effects == []  # type: ignore[union-attr]

    def test_attribute_wins_name_clash(
        self,
        make_records: Any,
        engine_settings: EngineSettings,
    ) -> None:
        """Test an effect targets the attribute when a skill shares its name."""
        records = make_records(
            attributes=[{"variableName": "initiative"}],
            skills=[{"variableName": "initiative"}],
        )
        context = build_context(records, engine_settings)

        node = attach_effect(context, EffectRecord(stat="initiative", operation=Operation.ADD, value=2))

        assert isinstance(node, AttributeNode)

    def test_target_lookup_exact(self, context: EvaluationContext) -> None:
        """Test effect targets match variable names exactly."""
        record = EffectRecord(stat="Strength", operation=Operation.ADD, value=1)

        assert attach_effect(context, record) is None


class TestAttachProficiency:
    """Tests for proficiency attachment."""

    @pytest.mark.parametrize("type_", ["skill", "save"])
    def test_skill_and_save(self, context: EvaluationContext, type_: str) -> None:
        """Test skill and save proficiencies attach to their skill."""
        record = ProficiencyRecord.model_validate({"name": "athletics", "type": type_, "level": 2})

        node = attach_proficiency(context, record)

        assert isinstance(node, SkillNode)
        assert node.proficiencies == [2]

    @pytest.mark.parametrize("type_", ["weapon", "armor", "tool", "language"])
    def test_other_types_dropped(self, context: EvaluationContext, type_: str) -> None:
        """Test other proficiency types never affect skills."""
        record = ProficiencyRecord.model_validate({"name": "athletics", "type": type_})

        assert attach_proficiency(context, record) is None
        assert context.skill("athletics").proficiencies == []  # type: ignore[union-attr]

    def test_disabled_dropped(self, context: EvaluationContext) -> None:
        """Test disabled proficiencies are never attached."""
        record = ProficiencyRecord(name="athletics", enabled=False)

        assert attach_proficiency(context, record) is None

    def test_missing_skill_dropped(self, context: EvaluationContext) -> None:
        """Test a proficiency for an unknown skill is dropped silently."""
        record = ProficiencyRecord(name="arcana")

        assert attach_proficiency(context, record) is None

    def test_attributes_not_targeted(self, context: EvaluationContext) -> None:
        """Test proficiencies only look up skills."""
        record = ProficiencyRecord(name="strength")

        assert attach_proficiency(context, record) is None
        assert context.get(StatKind.ATTRIBUTE, "strength") is not None
        assert StatKey(StatKind.SKILL, "strength") not in context.nodes
