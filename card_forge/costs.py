"""Effect and upgrade-condition pricing tables.

Both tables are pure lookups built from the configuration bundle. They
never raise for an unknown kind: unpriced kinds fall back to one point
per unit (effects) or one point flat (upgrade conditions), so a bad
reference degrades a card instead of aborting generation.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Dict, FrozenSet, Optional

from card_forge.config import EffectCostConfig, UpgradeCostConfig
from card_forge.models import (
    ConditionKind,
    Effect,
    EffectCondition,
    EffectKind,
    UpgradeConditionKind,
    UpgradeScope,
    default_scope,
)

logger = logging.getLogger(__name__)

UNPRICED_COST_PER_UNIT = 1.0
UNPRICED_UPGRADE_COST = 1.0


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# Conditions not listed here are treated as medium.
CONDITION_DIFFICULTY: Dict[ConditionKind, Difficulty] = {
    ConditionKind.CARDS_IN_HAND: Difficulty.EASY,
    ConditionKind.TARGET_HEALTH_ABOVE: Difficulty.EASY,
    ConditionKind.ENERGY_REMAINING: Difficulty.EASY,
    ConditionKind.TARGET_HEALTH_BELOW: Difficulty.MEDIUM,
    ConditionKind.SOURCE_HEALTH_BELOW: Difficulty.MEDIUM,
    ConditionKind.TIMES_PLAYED_THIS_FIGHT: Difficulty.MEDIUM,
    ConditionKind.COMBO_COUNT: Difficulty.MEDIUM,
    ConditionKind.IN_STANCE: Difficulty.MEDIUM,
    ConditionKind.PERFECTION_STREAK: Difficulty.HARD,
    ConditionKind.DAMAGE_TAKEN_LAST_ROUND: Difficulty.HARD,
    ConditionKind.HEALING_RECEIVED_LAST_ROUND: Difficulty.HARD,
    ConditionKind.ZERO_COST_CARDS_THIS_FIGHT: Difficulty.HARD,
}


def condition_difficulty(kind: ConditionKind) -> Difficulty:
    return CONDITION_DIFFICULTY.get(kind, Difficulty.MEDIUM)


class EffectCostTable:
    """Prices effects in budget points.

    Linear kinds cost ``magnitude * rate``; flat kinds cost ``rate`` once.
    A condition discounts the price by its difficulty multiplier, the
    harder the condition the bigger the discount.
    """

    def __init__(
        self,
        rates: Dict[EffectKind, float],
        flat_kinds: FrozenSet[EffectKind],
        multipliers: Dict[Difficulty, float],
    ) -> None:
        self._rates = dict(rates)
        self._flat_kinds = frozenset(flat_kinds)
        self._multipliers = dict(multipliers)

    @classmethod
    def from_config(cls, config: Optional[EffectCostConfig]) -> EffectCostTable:
        if config is None:
            logger.warning(
                "No effect cost configuration, pricing every effect at %.1f point per unit",
                UNPRICED_COST_PER_UNIT,
            )
            return cls.fallback()
        return cls(
            rates=config.rates,
            flat_kinds=config.flat_kinds,
            multipliers={
                Difficulty.EASY: config.easy_condition_multiplier,
                Difficulty.MEDIUM: config.medium_condition_multiplier,
                Difficulty.HARD: config.hard_condition_multiplier,
            },
        )

    @classmethod
    def fallback(cls) -> EffectCostTable:
        """1:1 pricing for every kind, conditions not discounted."""
        return cls(rates={}, flat_kinds=frozenset(), multipliers={d: 1.0 for d in Difficulty})

    def is_flat(self, kind: EffectKind) -> bool:
        return kind in self._flat_kinds and kind in self._rates

    def base_price(self, kind: EffectKind, magnitude: float) -> float:
        rate = self._rates.get(kind)
        if rate is None:
            logger.debug("No price for effect kind %s, using %.1f per unit", kind.value, UNPRICED_COST_PER_UNIT)
            return magnitude * UNPRICED_COST_PER_UNIT
        if kind in self._flat_kinds:
            return rate
        return magnitude * rate

    def conditional_multiplier(self, kind: ConditionKind) -> float:
        return self._multipliers.get(condition_difficulty(kind), 1.0)

    def price(
        self,
        kind: EffectKind,
        magnitude: float,
        condition: Optional[ConditionKind] = None,
    ) -> float:
        cost = self.base_price(kind, magnitude)
        if condition is not None:
            cost *= self.conditional_multiplier(condition)
        return cost

    def per_unit_price(self, kind: EffectKind) -> float:
        return self.base_price(kind, 1)

    def price_effect(self, effect: Effect) -> float:
        condition: Optional[EffectCondition] = effect.condition
        return self.price(effect.kind, effect.magnitude, condition.kind if condition else None)


class UpgradeTier(str, Enum):
    VERY_EASY = "very_easy"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    VERY_HARD = "very_hard"


UPGRADE_TIERS: Dict[UpgradeConditionKind, UpgradeTier] = {
    # Happen naturally
    UpgradeConditionKind.TIMES_PLAYED_THIS_FIGHT: UpgradeTier.VERY_EASY,
    UpgradeConditionKind.COPIES_IN_DECK: UpgradeTier.VERY_EASY,
    UpgradeConditionKind.COPIES_IN_HAND: UpgradeTier.VERY_EASY,
    # Common gameplay
    UpgradeConditionKind.DAMAGE_DEALT_THIS_FIGHT: UpgradeTier.EASY,
    UpgradeConditionKind.HEALING_GIVEN_THIS_FIGHT: UpgradeTier.EASY,
    UpgradeConditionKind.PLAYED_IN_STANCE: UpgradeTier.EASY,
    UpgradeConditionKind.DRAWN_OFTEN: UpgradeTier.EASY,
    UpgradeConditionKind.ZERO_COST_CARDS_THIS_TURN: UpgradeTier.EASY,
    # Some planning
    UpgradeConditionKind.COMBO_COUNT_REACHED: UpgradeTier.MEDIUM,
    UpgradeConditionKind.PLAYED_WITH_COMBO: UpgradeTier.MEDIUM,
    UpgradeConditionKind.PLAYED_AT_LOW_HEALTH: UpgradeTier.MEDIUM,
    UpgradeConditionKind.PLAYED_MULTIPLE_TIMES_IN_TURN: UpgradeTier.MEDIUM,
    UpgradeConditionKind.DAMAGE_DEALT_IN_SINGLE_TURN: UpgradeTier.MEDIUM,
    UpgradeConditionKind.ZERO_COST_CARDS_THIS_FIGHT: UpgradeTier.MEDIUM,
    # Specific strategies
    UpgradeConditionKind.PERFECTION_STREAK_ACHIEVED: UpgradeTier.HARD,
    UpgradeConditionKind.PLAYED_AS_FINISHER: UpgradeTier.HARD,
    UpgradeConditionKind.ALL_COPIES_PLAYED_FROM_HAND: UpgradeTier.HARD,
    UpgradeConditionKind.PLAYED_ON_CONSECUTIVE_TURNS: UpgradeTier.HARD,
    UpgradeConditionKind.WON_FIGHT_USING_CARD: UpgradeTier.HARD,
    # Rare or difficult
    UpgradeConditionKind.DEFEATED_OPPONENT_WITH_CARD: UpgradeTier.VERY_HARD,
    UpgradeConditionKind.LOST_FIGHT_WITH_CARD: UpgradeTier.VERY_HARD,
    UpgradeConditionKind.SURVIVED_FIGHT_WITH_CARD: UpgradeTier.VERY_HARD,
    UpgradeConditionKind.PERFECT_TURN_PLAYED: UpgradeTier.VERY_HARD,
    UpgradeConditionKind.ONLY_CARD_PLAYED_THIS_TURN: UpgradeTier.VERY_HARD,
    # Everything else sits in the middle
    UpgradeConditionKind.TIMES_PLAYED_ACROSS_FIGHTS: UpgradeTier.MEDIUM,
    UpgradeConditionKind.COPIES_IN_DISCARD: UpgradeTier.MEDIUM,
    UpgradeConditionKind.DAMAGE_TAKEN_THIS_FIGHT: UpgradeTier.MEDIUM,
    UpgradeConditionKind.HEALING_RECEIVED_THIS_FIGHT: UpgradeTier.MEDIUM,
    UpgradeConditionKind.PLAYED_AT_HALF_HEALTH: UpgradeTier.MEDIUM,
    UpgradeConditionKind.PLAYED_AT_HIGH_HEALTH: UpgradeTier.MEDIUM,
    UpgradeConditionKind.COMBO_USE_BACK_TO_BACK: UpgradeTier.MEDIUM,
    UpgradeConditionKind.SURVIVED_STATUS_EFFECT: UpgradeTier.MEDIUM,
    UpgradeConditionKind.BATTLE_LENGTH_OVER: UpgradeTier.MEDIUM,
    UpgradeConditionKind.HELD_AT_TURN_END: UpgradeTier.MEDIUM,
    UpgradeConditionKind.FINAL_CARD_IN_HAND: UpgradeTier.MEDIUM,
    UpgradeConditionKind.DISCARDED_MANUALLY: UpgradeTier.MEDIUM,
    UpgradeConditionKind.DECK_SIZE_BELOW: UpgradeTier.MEDIUM,
    UpgradeConditionKind.ALL_CARDS_COST_LOW_ENOUGH: UpgradeTier.MEDIUM,
    UpgradeConditionKind.FAMILIAR_NAME_IN_DECK: UpgradeTier.MEDIUM,
    UpgradeConditionKind.ONLY_CARD_TYPE_IN_DECK: UpgradeTier.MEDIUM,
    UpgradeConditionKind.DRAWN_OFTEN_LIFETIME: UpgradeTier.MEDIUM,
    UpgradeConditionKind.HELD_AT_TURN_END_LIFETIME: UpgradeTier.MEDIUM,
    UpgradeConditionKind.DISCARDED_MANUALLY_LIFETIME: UpgradeTier.MEDIUM,
    UpgradeConditionKind.FINAL_CARD_IN_HAND_LIFETIME: UpgradeTier.MEDIUM,
    UpgradeConditionKind.COMBO_USE_BACK_TO_BACK_LIFETIME: UpgradeTier.MEDIUM,
    UpgradeConditionKind.ONLY_CARD_PLAYED_IN_TURN_LIFETIME: UpgradeTier.MEDIUM,
    UpgradeConditionKind.TOTAL_FIGHTS_WON: UpgradeTier.MEDIUM,
    UpgradeConditionKind.TOTAL_FIGHTS_LOST: UpgradeTier.MEDIUM,
    UpgradeConditionKind.TOTAL_BATTLE_TURNS: UpgradeTier.MEDIUM,
    UpgradeConditionKind.TOTAL_PERFECT_TURNS: UpgradeTier.MEDIUM,
    UpgradeConditionKind.TOTAL_STATUS_EFFECTS_SURVIVED: UpgradeTier.MEDIUM,
}

# Thresholds on these kinds make the condition harder as they grow.
THRESHOLD_SCALED_KINDS = frozenset({
    UpgradeConditionKind.TIMES_PLAYED_THIS_FIGHT,
    UpgradeConditionKind.TIMES_PLAYED_ACROSS_FIGHTS,
    UpgradeConditionKind.DAMAGE_DEALT_THIS_FIGHT,
    UpgradeConditionKind.DAMAGE_DEALT_IN_SINGLE_TURN,
    UpgradeConditionKind.COMBO_COUNT_REACHED,
    UpgradeConditionKind.PLAYED_ON_CONSECUTIVE_TURNS,
    UpgradeConditionKind.PLAYED_MULTIPLE_TIMES_IN_TURN,
})


class UpgradeCostTable:
    """Prices the budget tax of an upgrade condition."""

    def __init__(self, config: Optional[UpgradeCostConfig]) -> None:
        if config is None:
            logger.warning(
                "No upgrade cost configuration, every upgrade condition costs %.1f point",
                UNPRICED_UPGRADE_COST,
            )
        self._config = config

    def tier_cost(self, tier: UpgradeTier) -> float:
        if self._config is None:
            return UNPRICED_UPGRADE_COST
        return {
            UpgradeTier.VERY_EASY: self._config.very_easy_cost,
            UpgradeTier.EASY: self._config.easy_cost,
            UpgradeTier.MEDIUM: self._config.medium_cost,
            UpgradeTier.HARD: self._config.hard_cost,
            UpgradeTier.VERY_HARD: self._config.very_hard_cost,
        }[tier]

    def price(
        self,
        kind: UpgradeConditionKind,
        required_value: int = 1,
        scope: Optional[UpgradeScope] = None,
    ) -> float:
        if self._config is None:
            return UNPRICED_UPGRADE_COST
        tier = UPGRADE_TIERS.get(kind)
        if tier is None:
            logger.warning(
                "Upgrade condition %s has no priced tier, charging %.1f point",
                kind.value,
                UNPRICED_UPGRADE_COST,
            )
            return UNPRICED_UPGRADE_COST

        scope = scope or default_scope(kind)
        if scope is UpgradeScope.LIFETIME:
            scope_mod = self._config.lifetime_multiplier
        else:
            scope_mod = self._config.per_fight_multiplier

        return self.tier_cost(tier) * scope_mod * value_modifier(kind, required_value)


def value_modifier(kind: UpgradeConditionKind, required_value: int) -> float:
    """Logarithmic growth: each extra required step is worth less."""
    if kind in THRESHOLD_SCALED_KINDS and required_value > 1:
        return 1.0 + math.log10(required_value) * 0.3
    return 1.0
