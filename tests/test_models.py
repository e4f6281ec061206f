"""Tests for the card data model."""

import pytest

from card_forge.models import (
    AlternativeEffect,
    BudgetBreakdown,
    CardDefinition,
    CombinationPolicy,
    Comparator,
    ConditionKind,
    Effect,
    EffectCondition,
    EffectKind,
    Rarity,
    UpgradeCondition,
    UpgradeConditionKind,
    UpgradeScope,
    default_scope,
    default_single_turn,
)


def _conditional(policy: CombinationPolicy) -> Effect:
    return Effect(
        kind=EffectKind.DAMAGE,
        magnitude=6,
        condition=EffectCondition(
            kind=ConditionKind.TARGET_HEALTH_BELOW,
            threshold=40,
            comparator=Comparator.LESS_THAN,
            alternative=AlternativeEffect(EffectKind.HEAL, 2),
            policy=policy,
        ),
    )


@pytest.mark.parametrize(
    "value,required,comparator,expected",
    [
        (5, 5, Comparator.EQUAL, True),
        (4, 5, Comparator.GREATER_THAN_OR_EQUAL, False),
        (6, 5, Comparator.GREATER_THAN, True),
        (5, 5, Comparator.LESS_THAN_OR_EQUAL, True),
        (5, 5, Comparator.LESS_THAN, False),
    ],
)
def test_comparator_semantics(value, required, comparator, expected):
    assert comparator.compare(value, required) is expected


def test_rarity_tiers_are_ordered():
    assert [r.tier for r in Rarity] == [0, 1, 2]


class TestEffect:
    def test_plain_effect_resolves_to_itself(self):
        effect = Effect(EffectKind.DAMAGE, 4)
        assert not effect.is_conditional
        assert effect.resolve(True) == [(EffectKind.DAMAGE, 4)]

    def test_failed_condition_keeps_main_effect(self):
        effect = _conditional(CombinationPolicy.REPLACE)
        assert effect.resolve(False) == [(EffectKind.DAMAGE, 6)]

    def test_replace_swaps_in_alternative(self):
        effect = _conditional(CombinationPolicy.REPLACE)
        assert effect.resolve(True) == [(EffectKind.HEAL, 2)]

    def test_additional_appends_alternative(self):
        effect = _conditional(CombinationPolicy.ADDITIONAL)
        assert effect.resolve(True) == [(EffectKind.DAMAGE, 6), (EffectKind.HEAL, 2)]

    def test_condition_holds_uses_comparator(self):
        condition = _conditional(CombinationPolicy.REPLACE).condition
        assert condition.holds(30)
        assert not condition.holds(40)

    def test_negative_duration_rejected(self):
        with pytest.raises(ValueError, match="duration"):
            Effect(EffectKind.APPLY_STUN, 1, duration=-1)


class TestCardDefinition:
    def test_effects_default_to_empty_tuple(self):
        card = CardDefinition(card_id=1, name="Blank", rarity=Rarity.COMMON, energy_cost=0, effects=None)
        assert card.effects == ()
        assert card.is_zero_cost

    def test_effect_list_is_frozen_to_tuple(self):
        card = CardDefinition(
            card_id=1,
            name="Strike",
            rarity=Rarity.COMMON,
            energy_cost=2,
            effects=[Effect(EffectKind.DAMAGE, 3)],
        )
        assert isinstance(card.effects, tuple)

    def test_negative_energy_rejected(self):
        with pytest.raises(ValueError, match="energy cost"):
            CardDefinition(card_id=1, name="Bad", rarity=Rarity.COMMON, energy_cost=-1)

    def test_requires_combo_needs_amount(self):
        with pytest.raises(ValueError, match="required_combo_amount"):
            CardDefinition(
                card_id=1,
                name="Bad",
                rarity=Rarity.RARE,
                energy_cost=1,
                requires_combo=True,
                required_combo_amount=0,
            )

    def test_combo_gate(self):
        card = CardDefinition(
            card_id=1,
            name="Finisher",
            rarity=Rarity.RARE,
            energy_cost=1,
            requires_combo=True,
            required_combo_amount=3,
        )
        assert not card.can_play_with_combo(2)
        assert card.can_play_with_combo(3)

    def test_can_upgrade_requires_target(self):
        condition = UpgradeCondition(UpgradeConditionKind.TIMES_PLAYED_THIS_FIGHT, 2)
        card = CardDefinition(1, "Strike", Rarity.COMMON, 1, upgrade=condition)
        assert not card.can_upgrade
        assert card.upgraded_card_id is None

        linked = CardDefinition(1, "Strike", Rarity.COMMON, 1, upgrade=condition.linked_to(10001))
        assert linked.can_upgrade
        assert linked.upgraded_card_id == 10001


class TestUpgradeCondition:
    def test_scope_defaults_from_kind(self):
        assert UpgradeCondition(UpgradeConditionKind.TOTAL_FIGHTS_WON, 3).scope is UpgradeScope.LIFETIME
        assert UpgradeCondition(UpgradeConditionKind.DRAWN_OFTEN, 3).scope is UpgradeScope.PER_FIGHT

    def test_explicit_scope_kept(self):
        condition = UpgradeCondition(
            UpgradeConditionKind.DRAWN_OFTEN, 3, scope=UpgradeScope.LIFETIME
        )
        assert condition.scope is UpgradeScope.LIFETIME

    def test_default_scope_helper(self):
        assert default_scope(UpgradeConditionKind.TIMES_PLAYED_ACROSS_FIGHTS) is UpgradeScope.LIFETIME
        assert default_scope(UpgradeConditionKind.TIMES_PLAYED_THIS_FIGHT) is UpgradeScope.PER_FIGHT

    def test_single_turn_defaults_from_kind(self):
        assert UpgradeCondition(UpgradeConditionKind.DAMAGE_DEALT_IN_SINGLE_TURN, 10).single_turn is True
        assert UpgradeCondition(UpgradeConditionKind.ZERO_COST_CARDS_THIS_TURN, 2).single_turn is True
        assert UpgradeCondition(UpgradeConditionKind.DAMAGE_DEALT_THIS_FIGHT, 10).single_turn is False
        assert default_single_turn(UpgradeConditionKind.ZERO_COST_CARDS_THIS_FIGHT) is False

    def test_explicit_single_turn_kept(self):
        condition = UpgradeCondition(UpgradeConditionKind.DAMAGE_DEALT_THIS_FIGHT, 10, single_turn=True)
        assert condition.single_turn is True


class TestBudgetBreakdown:
    def test_final_budget_subtracts_tax(self):
        b = BudgetBreakdown(Rarity.COMMON, 20, 12, 12.0, 8.0, upgrade_tax=3.0)
        assert b.final_effect_budget == 5.0

    def test_final_budget_floored_at_one(self):
        b = BudgetBreakdown(Rarity.COMMON, 10, 5, 5.0, 5.0, upgrade_tax=9999.0)
        assert b.final_effect_budget == 1.0

    def test_no_tax(self):
        b = BudgetBreakdown(Rarity.RARE, 45, 30, 15.0, 30.0)
        assert b.final_effect_budget == 30.0
