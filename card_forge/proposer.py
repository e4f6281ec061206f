"""Stochastic drafting of a single budget-respecting effect."""

from __future__ import annotations

import logging
import math
import random
from typing import Dict, List, Optional, Tuple

from card_forge.config import GenerationConfig
from card_forge.costs import EffectCostTable
from card_forge.models import (
    AlternativeEffect,
    CombinationPolicy,
    Comparator,
    ConditionKind,
    Effect,
    EffectCondition,
    EffectKind,
    Element,
    Rarity,
    TargetKind,
)

logger = logging.getLogger(__name__)

# (primary target, probability of primary, secondary target)
TARGET_POLICY: Dict[EffectKind, Tuple[TargetKind, float, TargetKind]] = {
    EffectKind.DAMAGE: (TargetKind.OPPONENT, 0.8, TargetKind.RANDOM),
    EffectKind.HEAL: (TargetKind.SELF, 0.5, TargetKind.ALLY),
    EffectKind.DRAW_CARD: (TargetKind.SELF, 1.0, TargetKind.SELF),
    EffectKind.DISCARD_RANDOM_CARDS: (TargetKind.SELF, 1.0, TargetKind.SELF),
    EffectKind.APPLY_SHIELD: (TargetKind.ALLY, 0.7, TargetKind.SELF),
    EffectKind.APPLY_THORNS: (TargetKind.ALLY, 0.7, TargetKind.SELF),
    EffectKind.APPLY_STRENGTH: (TargetKind.ALLY, 0.6, TargetKind.SELF),
    EffectKind.APPLY_SALVE: (TargetKind.ALLY, 0.6, TargetKind.SELF),
    EffectKind.RAISE_CRITICAL_CHANCE: (TargetKind.ALLY, 0.6, TargetKind.SELF),
    EffectKind.APPLY_LIMIT_BREAK: (TargetKind.SELF, 0.6, TargetKind.ALLY),
    EffectKind.APPLY_ELEMENTAL_STATUS: (TargetKind.ALLY, 0.6, TargetKind.SELF),
    EffectKind.ENTER_STANCE: (TargetKind.SELF, 0.8, TargetKind.ALLY),
    EffectKind.EXIT_STANCE: (TargetKind.SELF, 1.0, TargetKind.SELF),
    EffectKind.APPLY_WEAK: (TargetKind.OPPONENT, 0.7, TargetKind.RANDOM),
    EffectKind.APPLY_BREAK: (TargetKind.OPPONENT, 0.7, TargetKind.RANDOM),
    EffectKind.APPLY_BURN: (TargetKind.OPPONENT, 0.7, TargetKind.RANDOM),
    EffectKind.APPLY_STUN: (TargetKind.OPPONENT, 0.8, TargetKind.RANDOM),
    EffectKind.APPLY_CURSE: (TargetKind.OPPONENT, 0.8, TargetKind.RANDOM),
}
DEFAULT_TARGET_POLICY = (TargetKind.SELF, 0.5, TargetKind.OPPONENT)

# Biased toward simple, frequently true conditions.
CONDITION_WEIGHTS: Dict[ConditionKind, int] = {
    ConditionKind.TARGET_HEALTH_BELOW: 15,
    ConditionKind.SOURCE_HEALTH_BELOW: 15,
    ConditionKind.CARDS_IN_HAND: 12,
    ConditionKind.COMBO_COUNT: 12,
    ConditionKind.ENERGY_REMAINING: 10,
    ConditionKind.TARGET_HEALTH_ABOVE: 8,
    ConditionKind.SOURCE_HEALTH_ABOVE: 8,
    ConditionKind.CARDS_IN_DECK: 6,
    ConditionKind.CARDS_IN_DISCARD: 6,
    ConditionKind.ZERO_COST_CARDS_THIS_TURN: 5,
    ConditionKind.TIMES_PLAYED_THIS_FIGHT: 5,
    ConditionKind.DAMAGE_TAKEN_THIS_FIGHT: 3,
    ConditionKind.DAMAGE_TAKEN_LAST_ROUND: 3,
    ConditionKind.HEALING_RECEIVED_THIS_FIGHT: 3,
    ConditionKind.HEALING_RECEIVED_LAST_ROUND: 3,
    ConditionKind.ZERO_COST_CARDS_THIS_FIGHT: 2,
    ConditionKind.PERFECTION_STREAK: 2,
    ConditionKind.IN_STANCE: 2,
    ConditionKind.LAST_CARD_TYPE: 2,
}

# Inclusive threshold ranges per condition kind.
CONDITION_THRESHOLDS: Dict[ConditionKind, Tuple[int, int]] = {
    ConditionKind.TARGET_HEALTH_BELOW: (25, 59),
    ConditionKind.TARGET_HEALTH_ABOVE: (50, 79),
    ConditionKind.SOURCE_HEALTH_BELOW: (25, 49),
    ConditionKind.SOURCE_HEALTH_ABOVE: (60, 89),
    ConditionKind.CARDS_IN_HAND: (1, 3),
    ConditionKind.CARDS_IN_DECK: (5, 14),
    ConditionKind.CARDS_IN_DISCARD: (3, 7),
    ConditionKind.TIMES_PLAYED_THIS_FIGHT: (2, 3),
    ConditionKind.DAMAGE_TAKEN_THIS_FIGHT: (10, 29),
    ConditionKind.DAMAGE_TAKEN_LAST_ROUND: (5, 14),
    ConditionKind.HEALING_RECEIVED_THIS_FIGHT: (5, 19),
    ConditionKind.HEALING_RECEIVED_LAST_ROUND: (3, 9),
    ConditionKind.PERFECTION_STREAK: (2, 3),
    ConditionKind.COMBO_COUNT: (2, 4),
    ConditionKind.ZERO_COST_CARDS_THIS_TURN: (1, 2),
    ConditionKind.ZERO_COST_CARDS_THIS_FIGHT: (3, 5),
    ConditionKind.ENERGY_REMAINING: (10, 29),
    ConditionKind.IN_STANCE: (1, 1),
}
DEFAULT_THRESHOLD_RANGE = (1, 4)

ELEMENTAL_KINDS = frozenset({EffectKind.DAMAGE, EffectKind.APPLY_ELEMENTAL_STATUS})
DURATION_KINDS = frozenset({
    EffectKind.APPLY_ELEMENTAL_STATUS,
    EffectKind.APPLY_STUN,
    EffectKind.ENTER_STANCE,
    EffectKind.APPLY_LIMIT_BREAK,
})
ALTERNATIVE_KINDS = (EffectKind.DRAW_CARD, EffectKind.APPLY_SHIELD, EffectKind.HEAL)
ALTERNATIVE_MAGNITUDE = (1, 3)


def comparator_for(kind: ConditionKind) -> Comparator:
    """Comparator implied by a condition's name."""
    if kind.value.endswith("_below"):
        return Comparator.LESS_THAN
    if kind.value.endswith("_above"):
        return Comparator.GREATER_THAN
    return Comparator.GREATER_THAN_OR_EQUAL


class EffectProposer:
    """Drafts one candidate effect that fits a remaining budget.

    Effect kinds are drawn uniformly; kinds too expensive for the budget
    are rejected and redrawn, up to ``max_proposal_attempts`` times.
    """

    def __init__(
        self,
        costs: EffectCostTable,
        generation: GenerationConfig,
        rng: random.Random,
    ) -> None:
        self.costs = costs
        self.generation = generation
        self.rng = rng
        self._kinds: List[EffectKind] = list(EffectKind)
        self._elements: List[Element] = [e for e in Element if e is not Element.NONE]
        self._condition_kinds: List[ConditionKind] = list(CONDITION_WEIGHTS)
        self._condition_weights: List[int] = list(CONDITION_WEIGHTS.values())

    def propose(self, remaining_budget: float, rarity: Rarity) -> Optional[Effect]:
        """Return an affordable effect, or None when the budget is too small."""
        for attempt in range(1, self.generation.max_proposal_attempts + 1):
            kind = self.rng.choice(self._kinds)
            per_unit = self.costs.per_unit_price(kind)
            max_units = math.floor(remaining_budget / per_unit) if per_unit > 0 else 0
            if max_units < 1:
                logger.debug(
                    "Attempt %d: %s costs %.2f, only %.2f left",
                    attempt,
                    kind.value,
                    per_unit,
                    remaining_budget,
                )
                continue

            effect = Effect(
                kind=kind,
                magnitude=self.rng.randint(1, max_units),
                target=self.select_target(kind),
                duration=self._draw_duration(kind),
                element=self._draw_element(kind),
                condition=self._draw_condition(),
            )
            logger.debug("Proposed %s card effect: %s", rarity.value, effect)
            return effect

        logger.debug(
            "No affordable effect within %.2f points after %d attempts",
            remaining_budget,
            self.generation.max_proposal_attempts,
        )
        return None

    def select_target(self, kind: EffectKind) -> TargetKind:
        primary, chance, secondary = TARGET_POLICY.get(kind, DEFAULT_TARGET_POLICY)
        return primary if self.rng.random() < chance else secondary

    def _draw_element(self, kind: EffectKind) -> Element:
        if kind in ELEMENTAL_KINDS and self.rng.random() < self.generation.element_chance:
            return self.rng.choice(self._elements)
        return Element.NONE

    def _draw_duration(self, kind: EffectKind) -> int:
        if kind not in DURATION_KINDS:
            return 0
        lo, hi = self.generation.duration_range
        return self.rng.randint(lo, hi)

    def _draw_condition(self) -> Optional[EffectCondition]:
        if self.rng.random() >= self.generation.condition_chance:
            return None

        kind = self.rng.choices(self._condition_kinds, weights=self._condition_weights)[0]
        lo, hi = CONDITION_THRESHOLDS.get(kind, DEFAULT_THRESHOLD_RANGE)
        if self.rng.random() < self.generation.replace_policy_chance:
            policy = CombinationPolicy.REPLACE
        else:
            policy = CombinationPolicy.ADDITIONAL
        return EffectCondition(
            kind=kind,
            threshold=self.rng.randint(lo, hi),
            comparator=comparator_for(kind),
            alternative=AlternativeEffect(
                kind=self.rng.choice(ALTERNATIVE_KINDS),
                magnitude=self.rng.randint(*ALTERNATIVE_MAGNITUDE),
            ),
            policy=policy,
        )
