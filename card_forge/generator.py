"""Card assembly and the full card generation pipeline."""

from __future__ import annotations

import logging
import math
import random
from collections import Counter
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from card_forge.budget import BudgetCalculator
from card_forge.catalog import CardCatalog
from card_forge.config import GenerationConfig, RarityDistributionConfig
from card_forge.costs import EffectCostTable
from card_forge.models import (
    BudgetBreakdown,
    CardCategory,
    CardDefinition,
    CardType,
    Effect,
    EffectKind,
    Element,
    Rarity,
    Stance,
    StanceChange,
    UpgradeCondition,
    UpgradeConditionKind,
)
from card_forge.proposer import EffectProposer

logger = logging.getLogger(__name__)

# Price comparisons tolerate float noise from the conditional multipliers.
PRICE_TOLERANCE = 1e-9

UPGRADED_ID_OFFSET = 10000

# Deck-composition kinds stay out of the pools, no play event feeds them.
UPGRADE_CONDITION_POOLS: Dict[Rarity, Tuple[UpgradeConditionKind, ...]] = {
    Rarity.COMMON: (
        UpgradeConditionKind.TIMES_PLAYED_THIS_FIGHT,
        UpgradeConditionKind.COPIES_IN_DECK,
        UpgradeConditionKind.COPIES_IN_HAND,
        UpgradeConditionKind.DAMAGE_DEALT_THIS_FIGHT,
        UpgradeConditionKind.HEALING_GIVEN_THIS_FIGHT,
        UpgradeConditionKind.PLAYED_AT_LOW_HEALTH,
        UpgradeConditionKind.HELD_AT_TURN_END,
        UpgradeConditionKind.DRAWN_OFTEN,
    ),
    Rarity.UNCOMMON: (
        UpgradeConditionKind.COMBO_COUNT_REACHED,
        UpgradeConditionKind.PLAYED_IN_STANCE,
        UpgradeConditionKind.PLAYED_MULTIPLE_TIMES_IN_TURN,
        UpgradeConditionKind.ZERO_COST_CARDS_THIS_TURN,
        UpgradeConditionKind.DAMAGE_DEALT_IN_SINGLE_TURN,
        UpgradeConditionKind.PLAYED_WITH_COMBO,
        UpgradeConditionKind.COMBO_USE_BACK_TO_BACK,
        UpgradeConditionKind.FINAL_CARD_IN_HAND,
        UpgradeConditionKind.ONLY_CARD_PLAYED_THIS_TURN,
        UpgradeConditionKind.PLAYED_AT_HIGH_HEALTH,
        UpgradeConditionKind.BATTLE_LENGTH_OVER,
    ),
    Rarity.RARE: (
        UpgradeConditionKind.PERFECTION_STREAK_ACHIEVED,
        UpgradeConditionKind.WON_FIGHT_USING_CARD,
        UpgradeConditionKind.PLAYED_AS_FINISHER,
        UpgradeConditionKind.PERFECT_TURN_PLAYED,
        UpgradeConditionKind.SURVIVED_FIGHT_WITH_CARD,
        UpgradeConditionKind.DEFEATED_OPPONENT_WITH_CARD,
        UpgradeConditionKind.SURVIVED_STATUS_EFFECT,
    ),
}

# Inclusive required-value ranges; anything unlisted draws from 1-3.
REQUIRED_VALUE_RANGES: Dict[UpgradeConditionKind, Tuple[int, int]] = {
    UpgradeConditionKind.DAMAGE_DEALT_THIS_FIGHT: (10, 24),
    UpgradeConditionKind.DAMAGE_DEALT_IN_SINGLE_TURN: (8, 14),
    UpgradeConditionKind.COMBO_COUNT_REACHED: (3, 5),
    UpgradeConditionKind.COPIES_IN_DECK: (2, 3),
    UpgradeConditionKind.HEALING_GIVEN_THIS_FIGHT: (8, 19),
}
DEFAULT_REQUIRED_RANGE = (1, 3)

COMBO_CHANCE: Dict[Rarity, float] = {
    Rarity.COMMON: 0.15,
    Rarity.UNCOMMON: 0.25,
    Rarity.RARE: 0.40,
}
BUILDS_COMBO_CHANCE = 0.7
REQUIRED_COMBO_RANGES: Dict[Rarity, Tuple[int, int]] = {
    Rarity.COMMON: (1, 2),
    Rarity.UNCOMMON: (2, 3),
    Rarity.RARE: (3, 5),
}

UPGRADE_SCALE_RANGE = (1.25, 1.5)

NAME_STEMS: Dict[EffectKind, str] = {
    EffectKind.DAMAGE: "Strike",
    EffectKind.HEAL: "Mend",
    EffectKind.DRAW_CARD: "Insight",
    EffectKind.RESTORE_ENERGY: "Second Wind",
    EffectKind.BUFF_STATS: "Empower",
    EffectKind.DEBUFF_STATS: "Sap",
    EffectKind.APPLY_BREAK: "Shatter",
    EffectKind.APPLY_WEAK: "Enfeeble",
    EffectKind.APPLY_BURN: "Scorch",
    EffectKind.APPLY_SALVE: "Salve",
    EffectKind.RAISE_CRITICAL_CHANCE: "Focus",
    EffectKind.APPLY_THORNS: "Thornhide",
    EffectKind.APPLY_SHIELD: "Guard",
    EffectKind.APPLY_ELEMENTAL_STATUS: "Infuse",
    EffectKind.APPLY_STUN: "Stagger",
    EffectKind.APPLY_LIMIT_BREAK: "Overdrive",
    EffectKind.APPLY_STRENGTH: "Might",
    EffectKind.APPLY_CURSE: "Hex",
    EffectKind.DISCARD_RANDOM_CARDS: "Purge",
    EffectKind.ENTER_STANCE: "Posture",
    EffectKind.EXIT_STANCE: "Release",
}
RARITY_PREFIXES: Dict[Rarity, str] = {
    Rarity.COMMON: "",
    Rarity.UNCOMMON: "Greater ",
    Rarity.RARE: "Grand ",
}


class CardAssembler:
    """Fills a budget with effects proposed one at a time."""

    def __init__(
        self,
        proposer: EffectProposer,
        costs: EffectCostTable,
        generation: GenerationConfig,
        rng: random.Random,
    ) -> None:
        self.proposer = proposer
        self.costs = costs
        self.generation = generation
        self.rng = rng

    def assemble(self, breakdown: BudgetBreakdown) -> Tuple[Effect, ...]:
        """Return effects whose summed price never exceeds the final budget.

        Stops early when the proposer gives up; the result may then hold
        fewer effects than the drawn target count, or none at all.
        """
        target_count = self.rng.randint(self.generation.min_effects, self.generation.max_effects)
        remaining = breakdown.final_effect_budget
        effects: List[Effect] = []

        for _ in range(target_count):
            effect = self.proposer.propose(remaining, breakdown.rarity)
            if effect is None:
                logger.debug(
                    "Budget exhausted with %.2f points left after %d effects",
                    remaining,
                    len(effects),
                )
                break
            price = self.costs.price_effect(effect)
            if price > remaining + PRICE_TOLERANCE:
                logger.debug("Rejected %s: costs %.2f, %.2f left", effect.kind.value, price, remaining)
                continue
            effects.append(effect)
            remaining -= price

        return tuple(effects)


class CardGenerator:
    """Builds complete cards: budget, upgrade condition, effects and metadata.

    Card ids are handed out sequentially from ``first_id``. Upgraded versions
    live at ``card_id + 10000``, so base ids must stay below that offset.
    """

    def __init__(
        self,
        budget: BudgetCalculator,
        assembler: CardAssembler,
        costs: EffectCostTable,
        generation: GenerationConfig,
        distribution: RarityDistributionConfig,
        rng: random.Random,
        first_id: int = 1,
    ) -> None:
        self.budget = budget
        self.assembler = assembler
        self.costs = costs
        self.generation = generation
        self.distribution = distribution
        self.rng = rng
        self._next_id = first_id

    def _allocate_id(self) -> int:
        card_id = self._next_id
        if card_id >= UPGRADED_ID_OFFSET:
            raise ValueError(f"Card id {card_id} would collide with upgraded card ids")
        self._next_id += 1
        return card_id

    # -- single cards -------------------------------------------------

    def generate_card(
        self,
        rarity: Rarity,
        category: CardCategory = CardCategory.DRAFTABLE,
    ) -> CardDefinition:
        breakdown = self.budget.compute(rarity)

        upgrade: Optional[UpgradeCondition] = None
        if self._should_have_upgrade():
            upgrade = self.draw_upgrade_condition(rarity)
            breakdown = self.budget.apply_upgrade_tax(
                breakdown, upgrade.kind, upgrade.required_value, upgrade.scope
            )

        effects = self.assembler.assemble(breakdown)
        if not effects:
            effects = self._fallback_effects(breakdown)

        card_type = card_type_for(effects)
        builds_combo, requires_combo, combo_amount = self._draw_combo(rarity)
        card = CardDefinition(
            card_id=self._allocate_id(),
            name=card_name(effects, rarity),
            rarity=rarity,
            energy_cost=breakdown.energy_cost,
            effects=effects,
            description=describe_effects(effects),
            category=category,
            card_type=card_type,
            stance_change=self._draw_stance_change(effects),
            builds_combo=builds_combo,
            requires_combo=requires_combo,
            required_combo_amount=combo_amount,
            upgrade=upgrade,
        )
        logger.info(
            "Generated %s card %d '%s': %d effects, %.1f/%.1f points",
            rarity.value,
            card.card_id,
            card.name,
            len(effects),
            sum(self.costs.price_effect(e) for e in effects),
            breakdown.final_effect_budget,
        )
        return card

    def _should_have_upgrade(self) -> bool:
        if not self.generation.allow_no_upgrade_condition:
            return True
        return self.rng.random() >= self.generation.no_upgrade_condition_chance

    def draw_upgrade_condition(self, rarity: Rarity) -> UpgradeCondition:
        kind = self.rng.choice(UPGRADE_CONDITION_POOLS[rarity])
        if kind is UpgradeConditionKind.TIMES_PLAYED_THIS_FIGHT:
            lo, hi = (2, 3) if rarity is Rarity.COMMON else (3, 5)
        else:
            lo, hi = REQUIRED_VALUE_RANGES.get(kind, DEFAULT_REQUIRED_RANGE)
        return UpgradeCondition(
            kind=kind,
            required_value=self.rng.randint(lo, hi),
            upgrade_all_copies=self.rng.random() < self.generation.upgrade_all_copies_chance,
        )

    def _fallback_effects(self, breakdown: BudgetBreakdown) -> Tuple[Effect, ...]:
        per_unit = self.costs.per_unit_price(EffectKind.DAMAGE)
        magnitude = math.floor(breakdown.final_effect_budget / per_unit)
        if magnitude < 1:
            logger.warning(
                "No effect fits %.2f points for a %s card, leaving it without effects",
                breakdown.final_effect_budget,
                breakdown.rarity.value,
            )
            return ()
        logger.debug("Nothing assembled, falling back to %d damage", magnitude)
        return (Effect(kind=EffectKind.DAMAGE, magnitude=magnitude),)

    def _draw_combo(self, rarity: Rarity) -> Tuple[bool, bool, int]:
        if self.rng.random() >= COMBO_CHANCE[rarity]:
            return False, False, 0
        if self.rng.random() < BUILDS_COMBO_CHANCE:
            return True, False, 0
        lo, hi = REQUIRED_COMBO_RANGES[rarity]
        return False, True, self.rng.randint(lo, hi)

    def _draw_stance_change(self, effects: Iterable[Effect]) -> Optional[StanceChange]:
        if not any(e.kind is EffectKind.ENTER_STANCE for e in effects):
            return None
        stances = [s for s in Stance if s is not Stance.NONE]
        return StanceChange(stance=self.rng.choice(stances))

    # -- upgrades -----------------------------------------------------

    def generate_upgraded_version(self, card: CardDefinition) -> CardDefinition:
        """Stronger copy of ``card``: cheaper by one energy, effects scaled up."""
        effects = tuple(
            replace(e, magnitude=max(1, round(e.magnitude * self.rng.uniform(*UPGRADE_SCALE_RANGE))))
            for e in card.effects
        )
        return replace(
            card,
            card_id=card.card_id + UPGRADED_ID_OFFSET,
            name=f"{card.name}+",
            category=CardCategory.UPGRADED,
            energy_cost=max(0, card.energy_cost - 1),
            effects=effects,
            description=describe_effects(effects),
            upgrade=None,
        )

    # -- sets ---------------------------------------------------------

    def generate_set(
        self,
        rarities: Iterable[Rarity],
        category: CardCategory = CardCategory.DRAFTABLE,
        catalog: Optional[CardCatalog] = None,
    ) -> CardCatalog:
        """Generate one card per rarity plus upgrades, linked in a catalog."""
        catalog = catalog if catalog is not None else CardCatalog()
        for rarity in rarities:
            card = self.generate_card(rarity, category)
            if card.upgrade is not None:
                upgraded = self.generate_upgraded_version(card)
                card = replace(card, upgrade=card.upgrade.linked_to(upgraded.card_id))
                catalog.register(upgraded)
            catalog.register(card)
        return catalog

    def draw_draft_rarity(self) -> Rarity:
        weights = self.distribution.normalized_draft_percentages
        rarities = list(weights)
        return self.rng.choices(rarities, weights=[weights[r] for r in rarities])[0]

    def draft_rarities(self, count: int) -> List[Rarity]:
        return [self.draw_draft_rarity() for _ in range(count)]

    def starter_rarities(self) -> List[Rarity]:
        return self.distribution.starter_composition()


def card_type_for(effects: Iterable[Effect]) -> CardType:
    kinds = {e.kind for e in effects}
    if EffectKind.DAMAGE in kinds:
        return CardType.ATTACK
    if kinds & {EffectKind.HEAL, EffectKind.APPLY_SHIELD}:
        return CardType.SKILL
    if EffectKind.DRAW_CARD in kinds:
        return CardType.SPELL
    if kinds & {EffectKind.ENTER_STANCE, EffectKind.EXIT_STANCE}:
        return CardType.STANCE
    return CardType.SKILL


def card_name(effects: Tuple[Effect, ...], rarity: Rarity) -> str:
    """Name after the most frequent effect kind, first one on ties."""
    if not effects:
        return f"{RARITY_PREFIXES[rarity]}Blank".strip()
    counts = Counter(e.kind for e in effects)
    dominant = max(counts, key=lambda kind: counts[kind])
    name = NAME_STEMS[dominant]
    element = next((e.element for e in effects if e.element is not Element.NONE), None)
    if element is not None:
        name = f"{element.value.title()} {name}"
    return f"{RARITY_PREFIXES[rarity]}{name}"


def describe_effects(effects: Iterable[Effect]) -> str:
    return " ".join(describe_effect(e) for e in effects)


def describe_effect(effect: Effect) -> str:
    label = effect.kind.value.replace("_", " ")
    text = f"{label} {effect.magnitude} ({effect.target.value})"
    if effect.duration:
        text += f" for {effect.duration} turns"
    if effect.condition is not None:
        cond = effect.condition
        alt = cond.alternative
        text += (
            f"; if {cond.kind.value.replace('_', ' ')} {cond.comparator.value} {cond.threshold}:"
            f" {cond.policy.value} with {alt.kind.value.replace('_', ' ')} {alt.magnitude}"
        )
    return text.capitalize() + "."
