"""YAML configuration bundle for card generation and validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import yaml

from card_forge.models import EffectKind, Rarity

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")

# Points per unit of magnitude. Tuned for 100 HP fighters and ~7 round fights.
DEFAULT_EFFECT_RATES: Dict[EffectKind, float] = {
    EffectKind.DAMAGE: 0.4,
    EffectKind.HEAL: 0.35,
    EffectKind.DRAW_CARD: 3.0,
    EffectKind.RESTORE_ENERGY: 0.15,
    EffectKind.APPLY_BREAK: 4.0,
    EffectKind.APPLY_WEAK: 3.0,
    EffectKind.APPLY_BURN: 0.6,
    EffectKind.APPLY_SALVE: 0.5,
    EffectKind.RAISE_CRITICAL_CHANCE: 2.5,
    EffectKind.APPLY_THORNS: 0.4,
    EffectKind.APPLY_SHIELD: 0.3,
    EffectKind.APPLY_ELEMENTAL_STATUS: 3.0,
    EffectKind.APPLY_STUN: 5.0,
    EffectKind.APPLY_LIMIT_BREAK: 4.5,
    EffectKind.APPLY_STRENGTH: 2.5,
    EffectKind.APPLY_CURSE: 3.5,
    EffectKind.DISCARD_RANDOM_CARDS: 2.0,
    EffectKind.ENTER_STANCE: 4.0,
    EffectKind.EXIT_STANCE: 2.0,
}

# Kinds priced once regardless of magnitude: a status unlock, not a quantity.
DEFAULT_FLAT_KINDS: FrozenSet[EffectKind] = frozenset({
    EffectKind.APPLY_BREAK,
    EffectKind.APPLY_WEAK,
    EffectKind.RAISE_CRITICAL_CHANCE,
    EffectKind.APPLY_ELEMENTAL_STATUS,
    EffectKind.APPLY_STUN,
    EffectKind.APPLY_LIMIT_BREAK,
    EffectKind.APPLY_STRENGTH,
    EffectKind.APPLY_CURSE,
    EffectKind.ENTER_STANCE,
    EffectKind.EXIT_STANCE,
})


def _default_budgets() -> Dict[Rarity, int]:
    return {Rarity.COMMON: 35, Rarity.UNCOMMON: 55, Rarity.RARE: 80}


def _default_energy_ranges() -> Dict[Rarity, Tuple[int, int]]:
    return {Rarity.COMMON: (25, 35), Rarity.UNCOMMON: (35, 45), Rarity.RARE: (45, 55)}


@dataclass
class BudgetConfig:
    """Point budget per rarity and how energy cost is carved out of it."""

    budgets: Dict[Rarity, int] = field(default_factory=_default_budgets)
    budget_variation: int = 3  # +/- applied to the rarity budget
    energy_ranges: Dict[Rarity, Tuple[int, int]] = field(default_factory=_default_energy_ranges)
    points_per_energy: float = 0.5


@dataclass
class EffectCostConfig:
    """Per-kind effect prices and conditional difficulty multipliers."""

    rates: Dict[EffectKind, float] = field(default_factory=lambda: dict(DEFAULT_EFFECT_RATES))
    flat_kinds: FrozenSet[EffectKind] = DEFAULT_FLAT_KINDS
    easy_condition_multiplier: float = 0.9
    medium_condition_multiplier: float = 0.7
    hard_condition_multiplier: float = 0.5


@dataclass
class UpgradeCostConfig:
    """Budget tax for attaching an upgrade condition, by difficulty tier."""

    very_easy_cost: float = 0.5
    easy_cost: float = 1.0
    medium_cost: float = 2.0
    hard_cost: float = 3.0
    very_hard_cost: float = 4.0
    per_fight_multiplier: float = 0.7
    lifetime_multiplier: float = 1.3


@dataclass
class GenerationConfig:
    """Sampling knobs for the proposer and card generator."""

    min_effects: int = 1
    max_effects: int = 3
    max_proposal_attempts: int = 10
    condition_chance: float = 0.3
    element_chance: float = 0.4
    replace_policy_chance: float = 0.7
    duration_range: Tuple[int, int] = (1, 3)
    allow_no_upgrade_condition: bool = True
    no_upgrade_condition_chance: float = 0.1
    upgrade_all_copies_chance: float = 0.3


@dataclass
class RarityDistributionConfig:
    """How often each rarity shows up in draft packs and starter decks."""

    draft_percentages: Dict[Rarity, float] = field(default_factory=lambda: {
        Rarity.COMMON: 75.0,
        Rarity.UNCOMMON: 20.0,
        Rarity.RARE: 5.0,
    })
    starter_counts: Dict[Rarity, int] = field(default_factory=lambda: {
        Rarity.COMMON: 6,
        Rarity.UNCOMMON: 3,
        Rarity.RARE: 1,
    })

    @property
    def normalized_draft_percentages(self) -> Dict[Rarity, float]:
        """Return draft percentages scaled to sum to 100."""
        total = sum(self.draft_percentages.values())
        if total <= 0:
            share = 100.0 / len(Rarity)
            return {r: share for r in Rarity}
        return {r: self.draft_percentages.get(r, 0.0) * 100.0 / total for r in Rarity}

    @property
    def starter_deck_size(self) -> int:
        return sum(self.starter_counts.values())

    def starter_composition(self) -> List[Rarity]:
        """Return starter deck rarities, commons first."""
        composition: List[Rarity] = []
        for rarity in Rarity:
            composition.extend([rarity] * self.starter_counts.get(rarity, 0))
        return composition


@dataclass
class AppConfig:
    """Top-level configuration bundle.

    The three cost/budget tables are optional: when one is absent the
    component that needs it runs on fallback constants and logs a warning.
    """

    budget: Optional[BudgetConfig] = None
    effect_costs: Optional[EffectCostConfig] = None
    upgrade_costs: Optional[UpgradeCostConfig] = None
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    rarity_distribution: RarityDistributionConfig = field(default_factory=RarityDistributionConfig)

    @classmethod
    def defaults(cls) -> AppConfig:
        """Return a bundle with every table filled with the tuned defaults."""
        return cls(
            budget=BudgetConfig(),
            effect_costs=EffectCostConfig(),
            upgrade_costs=UpgradeCostConfig(),
        )

    @property
    def missing_tables(self) -> List[str]:
        """Names of the tables that will run on fallback values."""
        missing = []
        if self.budget is None:
            missing.append("budget")
        if self.effect_costs is None:
            missing.append("effect_costs")
        if self.upgrade_costs is None:
            missing.append("upgrade_costs")
        return missing


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load configuration from a YAML file.

    A missing file is not an error: generation proceeds on fallback values.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    if not config_path.exists():
        logger.info("No config file at %s, cost and budget tables will use fallbacks", config_path)
        config = AppConfig()
    else:
        logger.info("Loading config from %s", config_path)
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        config = _parse_config(raw) if raw else AppConfig()

    _validate_config(config)
    return config


def _parse_config(raw: Dict[str, Any]) -> AppConfig:
    """Parse raw YAML dict into AppConfig."""
    config = AppConfig()

    if "budget" in raw:
        config.budget = _parse_budget_config(raw["budget"] or {})

    if "effect_costs" in raw:
        config.effect_costs = _parse_effect_cost_config(raw["effect_costs"] or {})

    if "upgrade_costs" in raw:
        up = raw["upgrade_costs"] or {}
        defaults = UpgradeCostConfig()
        config.upgrade_costs = UpgradeCostConfig(
            very_easy_cost=float(up.get("very_easy", defaults.very_easy_cost)),
            easy_cost=float(up.get("easy", defaults.easy_cost)),
            medium_cost=float(up.get("medium", defaults.medium_cost)),
            hard_cost=float(up.get("hard", defaults.hard_cost)),
            very_hard_cost=float(up.get("very_hard", defaults.very_hard_cost)),
            per_fight_multiplier=float(up.get("per_fight_multiplier", defaults.per_fight_multiplier)),
            lifetime_multiplier=float(up.get("lifetime_multiplier", defaults.lifetime_multiplier)),
        )

    if "generation" in raw:
        gen = raw["generation"] or {}
        defaults = GenerationConfig()
        duration = gen.get("duration_range", defaults.duration_range)
        config.generation = GenerationConfig(
            min_effects=int(gen.get("min_effects", defaults.min_effects)),
            max_effects=int(gen.get("max_effects", defaults.max_effects)),
            max_proposal_attempts=int(gen.get("max_proposal_attempts", defaults.max_proposal_attempts)),
            condition_chance=float(gen.get("condition_chance", defaults.condition_chance)),
            element_chance=float(gen.get("element_chance", defaults.element_chance)),
            replace_policy_chance=float(gen.get("replace_policy_chance", defaults.replace_policy_chance)),
            duration_range=(int(duration[0]), int(duration[1])),
            allow_no_upgrade_condition=bool(
                gen.get("allow_no_upgrade_condition", defaults.allow_no_upgrade_condition)
            ),
            no_upgrade_condition_chance=float(
                gen.get("no_upgrade_condition_chance", defaults.no_upgrade_condition_chance)
            ),
            upgrade_all_copies_chance=float(
                gen.get("upgrade_all_copies_chance", defaults.upgrade_all_copies_chance)
            ),
        )

    if "rarity_distribution" in raw:
        dist = raw["rarity_distribution"] or {}
        defaults_dist = RarityDistributionConfig()
        config.rarity_distribution = RarityDistributionConfig(
            draft_percentages=(
                _parse_rarity_map(dist["draft"], float) if "draft" in dist
                else defaults_dist.draft_percentages
            ),
            starter_counts=(
                _parse_rarity_map(dist["starter"], int) if "starter" in dist
                else defaults_dist.starter_counts
            ),
        )

    return config


def _parse_budget_config(raw: Dict[str, Any]) -> BudgetConfig:
    bc = BudgetConfig()
    if "budgets" in raw:
        bc.budgets = _parse_rarity_map(raw["budgets"], int)
    if "energy_ranges" in raw:
        bc.energy_ranges = {
            rarity: (int(bounds[0]), int(bounds[1]))
            for rarity, bounds in _parse_rarity_map(raw["energy_ranges"], list).items()
        }
    bc.budget_variation = int(raw.get("variation", bc.budget_variation))
    bc.points_per_energy = float(raw.get("points_per_energy", bc.points_per_energy))
    return bc


def _parse_effect_cost_config(raw: Dict[str, Any]) -> EffectCostConfig:
    ec = EffectCostConfig()
    if "rates" in raw:
        # Partial rate tables extend the defaults instead of replacing them
        rates = dict(DEFAULT_EFFECT_RATES)
        for name, rate in (raw["rates"] or {}).items():
            rates[_parse_enum(EffectKind, name, "effect kind")] = float(rate)
        ec.rates = rates
    if "flat" in raw:
        ec.flat_kinds = frozenset(
            _parse_enum(EffectKind, name, "effect kind") for name in (raw["flat"] or [])
        )
    mult = raw.get("condition_multipliers", {}) or {}
    ec.easy_condition_multiplier = float(mult.get("easy", ec.easy_condition_multiplier))
    ec.medium_condition_multiplier = float(mult.get("medium", ec.medium_condition_multiplier))
    ec.hard_condition_multiplier = float(mult.get("hard", ec.hard_condition_multiplier))
    return ec


def _parse_rarity_map(raw: Dict[str, Any], cast) -> Dict[Rarity, Any]:
    return {_parse_enum(Rarity, name, "rarity"): cast(value) for name, value in raw.items()}


def _parse_enum(enum_cls, name: str, label: str):
    try:
        return enum_cls(str(name).lower())
    except ValueError:
        raise ValueError(
            f"Config error: unknown {label} '{name}'. "
            f"Known: {[member.value for member in enum_cls]}"
        ) from None


def _validate_config(config: AppConfig) -> None:
    """Validate config and raise on errors."""
    gen = config.generation
    if gen.min_effects < 0 or gen.min_effects > gen.max_effects:
        raise ValueError(
            f"Config error: effect count range [{gen.min_effects}, {gen.max_effects}] is invalid"
        )
    if gen.max_proposal_attempts < 1:
        raise ValueError("Config error: max_proposal_attempts must be at least 1")
    lo, hi = gen.duration_range
    if lo < 1 or lo > hi:
        raise ValueError(f"Config error: duration range {gen.duration_range} is invalid")
    for name in (
        "condition_chance",
        "element_chance",
        "replace_policy_chance",
        "no_upgrade_condition_chance",
        "upgrade_all_copies_chance",
    ):
        value = getattr(gen, name)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Config error: {name} must be within [0, 1], got {value}")

    if config.budget is not None:
        bc = config.budget
        for rarity in Rarity:
            if rarity not in bc.budgets:
                raise ValueError(f"Config error: no budget for rarity '{rarity.value}'")
            if bc.budgets[rarity] < 1:
                raise ValueError(f"Config error: budget for '{rarity.value}' must be at least 1")
            if rarity not in bc.energy_ranges:
                raise ValueError(f"Config error: no energy range for rarity '{rarity.value}'")
            lo, hi = bc.energy_ranges[rarity]
            if lo < 0 or lo > hi:
                raise ValueError(
                    f"Config error: energy range for '{rarity.value}' is invalid: ({lo}, {hi})"
                )
        if bc.budget_variation < 0:
            raise ValueError("Config error: budget variation must be >= 0")
        if bc.points_per_energy <= 0:
            raise ValueError("Config error: points_per_energy must be positive")

    if config.effect_costs is not None:
        ec = config.effect_costs
        for kind, rate in ec.rates.items():
            if rate <= 0:
                raise ValueError(f"Config error: cost for '{kind.value}' must be positive, got {rate}")
        for name in ("easy", "medium", "hard"):
            value = getattr(ec, f"{name}_condition_multiplier")
            if not 0.0 < value <= 1.0:
                raise ValueError(
                    f"Config error: {name} condition multiplier must be within (0, 1], got {value}"
                )

    if config.upgrade_costs is not None:
        uc = config.upgrade_costs
        for name in ("very_easy_cost", "easy_cost", "medium_cost", "hard_cost", "very_hard_cost"):
            if getattr(uc, name) < 0:
                raise ValueError(f"Config error: upgrade {name} must be >= 0")

    logger.info(
        "Config validated: effects per card %d-%d, fallback tables: %s",
        gen.min_effects,
        gen.max_effects,
        ", ".join(config.missing_tables) or "none",
    )
