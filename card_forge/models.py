"""Card data model: enumerations, effects, upgrade conditions and budgets.

Everything here is immutable once built. Generation code creates new
instances instead of mutating; an upgrade swaps which definition a card
instance points at (see card_forge/upgrades.py).
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"

    @property
    def tier(self) -> int:
        """Ordinal position, 0 for common."""
        return list(Rarity).index(self)


class CardCategory(str, Enum):
    STARTER = "starter"
    DRAFTABLE = "draftable"
    UPGRADED = "upgraded"


class CardType(str, Enum):
    NONE = "none"
    ATTACK = "attack"
    SKILL = "skill"
    SPELL = "spell"
    COMBO = "combo"
    FINISHER = "finisher"
    STANCE = "stance"
    ARTIFACT = "artifact"
    RITUAL = "ritual"
    COUNTER = "counter"
    REACTION = "reaction"


class EffectKind(str, Enum):
    DAMAGE = "damage"
    HEAL = "heal"
    DRAW_CARD = "draw_card"
    RESTORE_ENERGY = "restore_energy"
    BUFF_STATS = "buff_stats"
    DEBUFF_STATS = "debuff_stats"
    APPLY_BREAK = "apply_break"
    APPLY_WEAK = "apply_weak"
    APPLY_BURN = "apply_burn"
    APPLY_SALVE = "apply_salve"
    RAISE_CRITICAL_CHANCE = "raise_critical_chance"
    APPLY_THORNS = "apply_thorns"
    APPLY_SHIELD = "apply_shield"
    APPLY_ELEMENTAL_STATUS = "apply_elemental_status"
    APPLY_STUN = "apply_stun"
    APPLY_LIMIT_BREAK = "apply_limit_break"
    APPLY_STRENGTH = "apply_strength"
    APPLY_CURSE = "apply_curse"
    DISCARD_RANDOM_CARDS = "discard_random_cards"
    ENTER_STANCE = "enter_stance"
    EXIT_STANCE = "exit_stance"


class TargetKind(str, Enum):
    SELF = "self"
    OPPONENT = "opponent"
    ALLY = "ally"
    RANDOM = "random"


class Element(str, Enum):
    NONE = "none"
    FIRE = "fire"
    ICE = "ice"
    LIGHTNING = "lightning"
    VOID = "void"


class Stance(str, Enum):
    NONE = "none"
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    FOCUSED = "focused"
    BERSERKER = "berserker"
    GUARDIAN = "guardian"
    MYSTIC = "mystic"
    LIMIT_BREAK = "limit_break"


class ConditionKind(str, Enum):
    """Conditions that gate an effect's alternative at resolution time."""

    TARGET_HEALTH_BELOW = "target_health_below"
    TARGET_HEALTH_ABOVE = "target_health_above"
    SOURCE_HEALTH_BELOW = "source_health_below"
    SOURCE_HEALTH_ABOVE = "source_health_above"
    CARDS_IN_HAND = "cards_in_hand"
    CARDS_IN_DECK = "cards_in_deck"
    CARDS_IN_DISCARD = "cards_in_discard"
    TIMES_PLAYED_THIS_FIGHT = "times_played_this_fight"
    DAMAGE_TAKEN_THIS_FIGHT = "damage_taken_this_fight"
    DAMAGE_TAKEN_LAST_ROUND = "damage_taken_last_round"
    HEALING_RECEIVED_THIS_FIGHT = "healing_received_this_fight"
    HEALING_RECEIVED_LAST_ROUND = "healing_received_last_round"
    PERFECTION_STREAK = "perfection_streak"
    COMBO_COUNT = "combo_count"
    ZERO_COST_CARDS_THIS_TURN = "zero_cost_cards_this_turn"
    ZERO_COST_CARDS_THIS_FIGHT = "zero_cost_cards_this_fight"
    IN_STANCE = "in_stance"
    LAST_CARD_TYPE = "last_card_type"
    ENERGY_REMAINING = "energy_remaining"


class Comparator(str, Enum):
    GREATER_THAN_OR_EQUAL = ">="
    EQUAL = "=="
    GREATER_THAN = ">"
    LESS_THAN_OR_EQUAL = "<="
    LESS_THAN = "<"

    def compare(self, value: int, required: int) -> bool:
        return _COMPARATOR_OPS[self](value, required)


_COMPARATOR_OPS: Dict[Comparator, Callable[[int, int], bool]] = {
    Comparator.GREATER_THAN_OR_EQUAL: operator.ge,
    Comparator.EQUAL: operator.eq,
    Comparator.GREATER_THAN: operator.gt,
    Comparator.LESS_THAN_OR_EQUAL: operator.le,
    Comparator.LESS_THAN: operator.lt,
}


class CombinationPolicy(str, Enum):
    REPLACE = "replace"  # alternative supersedes the main effect
    ADDITIONAL = "additional"  # alternative is added after the main effect


class UpgradeScope(str, Enum):
    PER_FIGHT = "per_fight"
    LIFETIME = "lifetime"


class UpgradeConditionKind(str, Enum):
    # Play counts
    TIMES_PLAYED_THIS_FIGHT = "times_played_this_fight"
    TIMES_PLAYED_ACROSS_FIGHTS = "times_played_across_fights"
    PLAYED_MULTIPLE_TIMES_IN_TURN = "played_multiple_times_in_turn"
    PLAYED_ON_CONSECUTIVE_TURNS = "played_on_consecutive_turns"
    ONLY_CARD_PLAYED_THIS_TURN = "only_card_played_this_turn"
    ALL_COPIES_PLAYED_FROM_HAND = "all_copies_played_from_hand"
    # Copies
    COPIES_IN_DECK = "copies_in_deck"
    COPIES_IN_HAND = "copies_in_hand"
    COPIES_IN_DISCARD = "copies_in_discard"
    # Damage and healing
    DAMAGE_DEALT_THIS_FIGHT = "damage_dealt_this_fight"
    DAMAGE_DEALT_IN_SINGLE_TURN = "damage_dealt_in_single_turn"
    DAMAGE_TAKEN_THIS_FIGHT = "damage_taken_this_fight"
    HEALING_GIVEN_THIS_FIGHT = "healing_given_this_fight"
    HEALING_RECEIVED_THIS_FIGHT = "healing_received_this_fight"
    # Combat state
    PERFECTION_STREAK_ACHIEVED = "perfection_streak_achieved"
    COMBO_COUNT_REACHED = "combo_count_reached"
    ZERO_COST_CARDS_THIS_TURN = "zero_cost_cards_this_turn"
    ZERO_COST_CARDS_THIS_FIGHT = "zero_cost_cards_this_fight"
    PLAYED_IN_STANCE = "played_in_stance"
    PLAYED_WITH_COMBO = "played_with_combo"
    PLAYED_AS_FINISHER = "played_as_finisher"
    PLAYED_AT_LOW_HEALTH = "played_at_low_health"
    PLAYED_AT_HALF_HEALTH = "played_at_half_health"
    PLAYED_AT_HIGH_HEALTH = "played_at_high_health"
    PERFECT_TURN_PLAYED = "perfect_turn_played"
    COMBO_USE_BACK_TO_BACK = "combo_use_back_to_back"
    SURVIVED_STATUS_EFFECT = "survived_status_effect"
    BATTLE_LENGTH_OVER = "battle_length_over"
    # Fight outcomes
    WON_FIGHT_USING_CARD = "won_fight_using_card"
    LOST_FIGHT_WITH_CARD = "lost_fight_with_card"
    SURVIVED_FIGHT_WITH_CARD = "survived_fight_with_card"
    DEFEATED_OPPONENT_WITH_CARD = "defeated_opponent_with_card"
    # Hand and deck handling
    DRAWN_OFTEN = "drawn_often"
    HELD_AT_TURN_END = "held_at_turn_end"
    FINAL_CARD_IN_HAND = "final_card_in_hand"
    DISCARDED_MANUALLY = "discarded_manually"
    DECK_SIZE_BELOW = "deck_size_below"
    ALL_CARDS_COST_LOW_ENOUGH = "all_cards_cost_low_enough"
    FAMILIAR_NAME_IN_DECK = "familiar_name_in_deck"
    ONLY_CARD_TYPE_IN_DECK = "only_card_type_in_deck"
    # Lifetime variants
    DRAWN_OFTEN_LIFETIME = "drawn_often_lifetime"
    HELD_AT_TURN_END_LIFETIME = "held_at_turn_end_lifetime"
    DISCARDED_MANUALLY_LIFETIME = "discarded_manually_lifetime"
    FINAL_CARD_IN_HAND_LIFETIME = "final_card_in_hand_lifetime"
    COMBO_USE_BACK_TO_BACK_LIFETIME = "combo_use_back_to_back_lifetime"
    ONLY_CARD_PLAYED_IN_TURN_LIFETIME = "only_card_played_in_turn_lifetime"
    TOTAL_FIGHTS_WON = "total_fights_won"
    TOTAL_FIGHTS_LOST = "total_fights_lost"
    TOTAL_BATTLE_TURNS = "total_battle_turns"
    TOTAL_PERFECT_TURNS = "total_perfect_turns"
    TOTAL_STATUS_EFFECTS_SURVIVED = "total_status_effects_survived"


LIFETIME_UPGRADE_KINDS = frozenset({
    UpgradeConditionKind.TIMES_PLAYED_ACROSS_FIGHTS,
    UpgradeConditionKind.DRAWN_OFTEN_LIFETIME,
    UpgradeConditionKind.HELD_AT_TURN_END_LIFETIME,
    UpgradeConditionKind.DISCARDED_MANUALLY_LIFETIME,
    UpgradeConditionKind.FINAL_CARD_IN_HAND_LIFETIME,
    UpgradeConditionKind.COMBO_USE_BACK_TO_BACK_LIFETIME,
    UpgradeConditionKind.ONLY_CARD_PLAYED_IN_TURN_LIFETIME,
    UpgradeConditionKind.TOTAL_FIGHTS_WON,
    UpgradeConditionKind.TOTAL_FIGHTS_LOST,
    UpgradeConditionKind.TOTAL_BATTLE_TURNS,
    UpgradeConditionKind.TOTAL_PERFECT_TURNS,
    UpgradeConditionKind.TOTAL_STATUS_EFFECTS_SURVIVED,
})


SINGLE_TURN_UPGRADE_KINDS = frozenset({
    UpgradeConditionKind.DAMAGE_DEALT_IN_SINGLE_TURN,
    UpgradeConditionKind.ZERO_COST_CARDS_THIS_TURN,
})


def default_scope(kind: UpgradeConditionKind) -> UpgradeScope:
    """Lifetime kinds accumulate across fights, everything else resets."""
    if kind in LIFETIME_UPGRADE_KINDS:
        return UpgradeScope.LIFETIME
    return UpgradeScope.PER_FIGHT


def default_single_turn(kind: UpgradeConditionKind) -> bool:
    """Kinds measured within one turn never add up across turns."""
    return kind in SINGLE_TURN_UPGRADE_KINDS


# ------------------------------------------------------------------
# Effects
# ------------------------------------------------------------------


@dataclass(frozen=True)
class AlternativeEffect:
    """Second arm of a conditional effect."""

    kind: EffectKind
    magnitude: int


@dataclass(frozen=True)
class EffectCondition:
    """A condition always travels with exactly one alternative and one policy."""

    kind: ConditionKind
    threshold: int
    comparator: Comparator
    alternative: AlternativeEffect
    policy: CombinationPolicy = CombinationPolicy.REPLACE

    def holds(self, value: int) -> bool:
        return self.comparator.compare(value, self.threshold)


@dataclass(frozen=True)
class Effect:
    """One mechanical action of a card, in resolution order."""

    kind: EffectKind
    magnitude: int
    target: TargetKind = TargetKind.OPPONENT
    duration: int = 0  # turns, 0 = instant
    element: Element = Element.NONE
    condition: Optional[EffectCondition] = None

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ValueError(f"Effect duration must be >= 0, got {self.duration}")

    @property
    def is_conditional(self) -> bool:
        return self.condition is not None

    def resolve(self, condition_holds: bool) -> List[Tuple[EffectKind, int]]:
        """Return the (kind, magnitude) pairs this effect produces."""
        main = (self.kind, self.magnitude)
        if self.condition is None or not condition_holds:
            return [main]
        alt = (self.condition.alternative.kind, self.condition.alternative.magnitude)
        if self.condition.policy is CombinationPolicy.REPLACE:
            return [alt]
        return [main, alt]


@dataclass(frozen=True)
class StanceChange:
    stance: Stance
    override_previous: bool = True


@dataclass(frozen=True)
class PersistentFightEffect:
    """An effect that keeps triggering for the rest of a fight."""

    name: str
    kind: EffectKind = EffectKind.DAMAGE
    potency: int = 1
    trigger_interval: int = 1  # every N turns
    lasts_entire_fight: bool = True
    turn_duration: int = 0  # only used when lasts_entire_fight is False
    required_stance: Stance = Stance.NONE
    stackable: bool = True


# ------------------------------------------------------------------
# Upgrades and card definitions
# ------------------------------------------------------------------


@dataclass(frozen=True)
class UpgradeCondition:
    """Rule that swaps a card for its upgraded definition once satisfied.

    The upgraded card is referenced by id and resolved through a
    CardCatalog at use time, so it may not exist yet when the base card
    is authored.

    ``required_stance``, ``min_health_percent``/``max_health_percent`` and
    ``single_turn`` are guards: they decide whether a tick counts and are
    checked next to the threshold comparison, not folded into it.
    """

    kind: UpgradeConditionKind
    required_value: int
    comparator: Comparator = Comparator.GREATER_THAN_OR_EQUAL
    scope: Optional[UpgradeScope] = None
    upgrade_all_copies: bool = False
    upgraded_card_id: Optional[int] = None
    required_stance: Optional[Stance] = None
    min_health_percent: Optional[float] = None
    max_health_percent: Optional[float] = None
    single_turn: Optional[bool] = None

    def __post_init__(self) -> None:
        if self.scope is None:
            object.__setattr__(self, "scope", default_scope(self.kind))
        if self.single_turn is None:
            object.__setattr__(self, "single_turn", default_single_turn(self.kind))

    def linked_to(self, upgraded_card_id: int) -> UpgradeCondition:
        """Return a copy pointing at ``upgraded_card_id``."""
        return replace(self, upgraded_card_id=upgraded_card_id)


@dataclass(frozen=True)
class CardDefinition:
    """A finished card. Read by every other game system, never mutated."""

    card_id: int
    name: str
    rarity: Rarity
    energy_cost: int
    effects: Tuple[Effect, ...] = ()
    description: str = ""
    artwork: str = ""
    category: CardCategory = CardCategory.DRAFTABLE
    card_type: CardType = CardType.ATTACK
    stance_change: Optional[StanceChange] = None
    builds_combo: bool = False
    requires_combo: bool = False
    required_combo_amount: int = 0
    persistent_effects: Tuple[PersistentFightEffect, ...] = ()
    upgrade: Optional[UpgradeCondition] = None

    def __post_init__(self) -> None:
        if self.effects is None:
            object.__setattr__(self, "effects", ())
        elif not isinstance(self.effects, tuple):
            object.__setattr__(self, "effects", tuple(self.effects))
        if not isinstance(self.persistent_effects, tuple):
            object.__setattr__(self, "persistent_effects", tuple(self.persistent_effects or ()))
        if self.energy_cost < 0:
            raise ValueError(f"Card {self.card_id}: energy cost must be >= 0, got {self.energy_cost}")
        if self.requires_combo and self.required_combo_amount < 1:
            raise ValueError(
                f"Card {self.card_id}: requires_combo needs required_combo_amount >= 1"
            )

    @property
    def can_upgrade(self) -> bool:
        return self.upgrade is not None and self.upgrade.upgraded_card_id is not None

    @property
    def upgraded_card_id(self) -> Optional[int]:
        return self.upgrade.upgraded_card_id if self.upgrade else None

    @property
    def is_zero_cost(self) -> bool:
        return self.energy_cost == 0

    def can_play_with_combo(self, combo_count: int) -> bool:
        if not self.requires_combo:
            return True
        return combo_count >= self.required_combo_amount


# ------------------------------------------------------------------
# Budgets
# ------------------------------------------------------------------


@dataclass(frozen=True)
class BudgetBreakdown:
    """How a card's power points split between energy cost and effects."""

    rarity: Rarity
    total_budget: int
    energy_cost: int  # in energy, what the card costs to play
    energy_cost_points: float  # the same cost expressed in budget points
    effect_budget: float
    upgrade_tax: float = 0.0
    used_fallback: bool = False

    @property
    def final_effect_budget(self) -> float:
        return max(1.0, self.effect_budget - self.upgrade_tax)
