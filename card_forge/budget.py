"""Rarity to point-budget conversion, including the upgrade-condition tax."""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import Dict, Optional, Tuple

from card_forge.config import BudgetConfig
from card_forge.costs import UpgradeCostTable
from card_forge.models import BudgetBreakdown, Rarity, UpgradeConditionKind, UpgradeScope

logger = logging.getLogger(__name__)

# Used when no budget table is configured. Small on purpose: a card built on
# fallbacks should be playable, not strong.
FALLBACK_BUDGETS: Dict[Rarity, int] = {
    Rarity.COMMON: 20,
    Rarity.UNCOMMON: 30,
    Rarity.RARE: 45,
}
FALLBACK_ENERGY_RANGES: Dict[Rarity, Tuple[int, int]] = {
    Rarity.COMMON: (12, 15),
    Rarity.UNCOMMON: (18, 23),
    Rarity.RARE: (28, 34),
}
FALLBACK_POINTS_PER_ENERGY = 0.5


class BudgetCalculator:
    """Splits a rarity's budget between energy cost and effects."""

    def __init__(
        self,
        config: Optional[BudgetConfig],
        upgrade_costs: UpgradeCostTable,
        rng: random.Random,
    ) -> None:
        self.config = config
        self.upgrade_costs = upgrade_costs
        self.rng = rng

    def compute(self, rarity: Rarity) -> BudgetBreakdown:
        if self.config is None:
            return self._compute_fallback(rarity)

        base = self.config.budgets[rarity]
        variation = self.config.budget_variation
        total = max(1, base + self.rng.randint(-variation, variation))
        lo, hi = self.config.energy_ranges[rarity]
        return self._split(rarity, total, self.rng.randint(lo, hi), self.config.points_per_energy)

    def _compute_fallback(self, rarity: Rarity) -> BudgetBreakdown:
        logger.warning(
            "No budget configuration, using fallback budget for %s cards", rarity.value
        )
        lo, hi = FALLBACK_ENERGY_RANGES[rarity]
        breakdown = self._split(
            rarity,
            FALLBACK_BUDGETS[rarity],
            self.rng.randint(lo, hi),
            FALLBACK_POINTS_PER_ENERGY,
        )
        return replace(breakdown, used_fallback=True)

    def _split(
        self,
        rarity: Rarity,
        total: int,
        energy_cost: int,
        points_per_energy: float,
    ) -> BudgetBreakdown:
        energy_points = energy_cost * points_per_energy
        effect_budget = max(0, total - round(energy_points))
        logger.debug(
            "%s budget: total=%d energy=%d (%.1f pts) effects=%d",
            rarity.value,
            total,
            energy_cost,
            energy_points,
            effect_budget,
        )
        return BudgetBreakdown(
            rarity=rarity,
            total_budget=total,
            energy_cost=energy_cost,
            energy_cost_points=energy_points,
            effect_budget=float(effect_budget),
        )

    def apply_upgrade_tax(
        self,
        breakdown: BudgetBreakdown,
        kind: UpgradeConditionKind,
        required_value: int,
        scope: Optional[UpgradeScope] = None,
    ) -> BudgetBreakdown:
        """Return a copy of ``breakdown`` charged for an upgrade condition.

        The effect budget is left as is; ``final_effect_budget`` applies the
        tax and keeps at least one point for effects.
        """
        tax = self.upgrade_costs.price(kind, required_value, scope)
        logger.debug(
            "Upgrade tax for %s (>= %d): %.2f points", kind.value, required_value, tax
        )
        return replace(breakdown, upgrade_tax=tax)
