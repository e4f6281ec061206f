"""Per-call wiring of configuration, pricing tables and the random source."""

from __future__ import annotations

import logging
import random
from typing import Optional

from card_forge.budget import BudgetCalculator
from card_forge.config import AppConfig
from card_forge.costs import EffectCostTable, UpgradeCostTable
from card_forge.generator import CardAssembler, CardGenerator
from card_forge.proposer import EffectProposer

logger = logging.getLogger(__name__)


class EngineContext:
    """Everything one generation run needs, built from a config and an RNG.

    Create one per generation call or fight session. Nothing here is
    shared between contexts, so independent contexts can run on separate
    threads as long as each has its own RNG.
    """

    def __init__(self, config: AppConfig, rng: random.Random) -> None:
        self.config = config
        self.rng = rng
        self.effect_costs = EffectCostTable.from_config(config.effect_costs)
        self.upgrade_costs = UpgradeCostTable(config.upgrade_costs)
        self.budget = BudgetCalculator(config.budget, self.upgrade_costs, rng)
        self.proposer = EffectProposer(self.effect_costs, config.generation, rng)
        self.assembler = CardAssembler(self.proposer, self.effect_costs, config.generation, rng)
        self.generator = CardGenerator(
            budget=self.budget,
            assembler=self.assembler,
            costs=self.effect_costs,
            generation=config.generation,
            distribution=config.rarity_distribution,
            rng=rng,
        )

    @classmethod
    def create(cls, config: Optional[AppConfig] = None, seed: Optional[int] = None) -> EngineContext:
        """Context with default tables unless ``config`` says otherwise."""
        if seed is not None:
            logger.debug("Seeding generation with %d", seed)
        return cls(config if config is not None else AppConfig.defaults(), random.Random(seed))
