"""Card catalog keyed by id, with validation and JSON export.

Upgrade links are stored as ids and resolved through the catalog at use
time, so a base card can be registered before its upgraded version.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from card_forge.models import (
    AlternativeEffect,
    CardCategory,
    CardDefinition,
    CardType,
    CombinationPolicy,
    Comparator,
    ConditionKind,
    Effect,
    EffectCondition,
    EffectKind,
    Element,
    PersistentFightEffect,
    Rarity,
    Stance,
    StanceChange,
    TargetKind,
    UpgradeCondition,
    UpgradeConditionKind,
    UpgradeScope,
)

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"


class CardCatalog:
    """Arena of card definitions keyed by card id."""

    def __init__(self, cards: Optional[List[CardDefinition]] = None) -> None:
        self._cards: Dict[int, CardDefinition] = {}
        for card in cards or []:
            self.register(card)

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[CardDefinition]:
        return iter(sorted(self._cards.values(), key=lambda c: c.card_id))

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._cards

    def register(self, card: CardDefinition) -> None:
        if card.card_id in self._cards:
            raise ValueError(f"Duplicate card id {card.card_id} ('{card.name}')")
        self._cards[card.card_id] = card

    def get(self, card_id: int) -> Optional[CardDefinition]:
        return self._cards.get(card_id)

    def resolve_upgrade(self, card: CardDefinition) -> Optional[CardDefinition]:
        """Return the upgraded definition of ``card``, or None if it has none."""
        if not card.can_upgrade:
            return None
        upgraded = self._cards.get(card.upgraded_card_id)
        if upgraded is None:
            logger.error(
                "Card %d upgrades into unknown card %d", card.card_id, card.upgraded_card_id
            )
        return upgraded

    def by_category(self, category: CardCategory) -> List[CardDefinition]:
        return [c for c in self if c.category is category]

    def validate(self) -> List[str]:
        """Check cross-card links.

        Returns a list of error strings (empty = valid).
        """
        errors: List[str] = []
        for card in self:
            prefix = f"card {card.card_id}"
            if card.upgrade is None:
                continue
            if card.category is CardCategory.UPGRADED:
                errors.append(f"{prefix}: upgraded cards must not upgrade again")
            target_id = card.upgrade.upgraded_card_id
            if target_id is None:
                errors.append(f"{prefix}: upgrade condition has no target card")
            elif target_id == card.card_id:
                errors.append(f"{prefix}: upgrades into itself")
            elif target_id not in self._cards:
                errors.append(f"{prefix}: upgrade target {target_id} not in catalog")
        return errors

    # -- JSON ---------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": EXPORT_VERSION,
            "cards": [card_to_dict(c) for c in self],
        }

    def export(self, path: Path) -> None:
        write_card_set(path, self.to_dict())
        logger.info("Wrote %d cards to %s", len(self), path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CardCatalog:
        return cls([card_from_dict(raw) for raw in data.get("cards", [])])

    @classmethod
    def load(cls, path: Path) -> CardCatalog:
        data = json.loads(path.read_text(encoding="utf-8"))
        errors = validate_card_set(data)
        if errors:
            raise ValueError(f"Invalid card set {path}: {'; '.join(errors)}")
        return cls.from_dict(data)


def write_card_set(path: Path, data: Dict[str, Any]) -> None:
    """Write a card set dict to a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


def validate_card_set(data: Dict[str, Any]) -> List[str]:
    """Validate an exported card set against the expected shape.

    Returns a list of error strings (empty = valid).
    """
    errors: List[str] = []

    if "version" not in data:
        errors.append("Missing required field: version")
    if "cards" not in data:
        errors.append("Missing required field: cards")
        return errors

    seen_ids: set = set()
    for i, card in enumerate(data["cards"]):
        prefix = f"cards[{i}]"
        for required in ("id", "name", "rarity", "energy_cost"):
            if required not in card:
                errors.append(f"{prefix}: missing '{required}'")
        if "id" in card:
            if card["id"] in seen_ids:
                errors.append(f"{prefix}: duplicate id '{card['id']}'")
            else:
                seen_ids.add(card["id"])
        if card.get("rarity") not in {r.value for r in Rarity} and "rarity" in card:
            errors.append(f"{prefix}: unknown rarity '{card['rarity']}'")
        if isinstance(card.get("energy_cost"), int) and card["energy_cost"] < 0:
            errors.append(f"{prefix}: negative energy cost")
        if card.get("requires_combo") and card.get("required_combo_amount", 0) < 1:
            errors.append(f"{prefix}: requires combo without a required amount")
        for j, effect in enumerate(card.get("effects", [])):
            if effect.get("kind") not in {k.value for k in EffectKind}:
                errors.append(f"{prefix}.effects[{j}]: unknown kind '{effect.get('kind')}'")

    return errors


# ------------------------------------------------------------------
# Card <-> dict
# ------------------------------------------------------------------


def card_to_dict(card: CardDefinition) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": card.card_id,
        "name": card.name,
        "description": card.description,
        "artwork": card.artwork,
        "rarity": card.rarity.value,
        "category": card.category.value,
        "card_type": card.card_type.value,
        "energy_cost": card.energy_cost,
        "effects": [_effect_to_dict(e) for e in card.effects],
        "builds_combo": card.builds_combo,
        "requires_combo": card.requires_combo,
        "required_combo_amount": card.required_combo_amount,
    }
    if card.stance_change is not None:
        data["stance_change"] = {
            "stance": card.stance_change.stance.value,
            "override_previous": card.stance_change.override_previous,
        }
    if card.persistent_effects:
        data["persistent_effects"] = [
            {
                "name": p.name,
                "kind": p.kind.value,
                "potency": p.potency,
                "trigger_interval": p.trigger_interval,
                "lasts_entire_fight": p.lasts_entire_fight,
                "turn_duration": p.turn_duration,
                "required_stance": p.required_stance.value,
                "stackable": p.stackable,
            }
            for p in card.persistent_effects
        ]
    if card.upgrade is not None:
        up = card.upgrade
        data["upgrade"] = {
            "kind": up.kind.value,
            "required_value": up.required_value,
            "comparator": up.comparator.value,
            "scope": up.scope.value,
            "upgrade_all_copies": up.upgrade_all_copies,
            "upgraded_card_id": up.upgraded_card_id,
            "required_stance": up.required_stance.value if up.required_stance else None,
            "min_health_percent": up.min_health_percent,
            "max_health_percent": up.max_health_percent,
            "single_turn": up.single_turn,
        }
    return data


def _effect_to_dict(effect: Effect) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "kind": effect.kind.value,
        "magnitude": effect.magnitude,
        "target": effect.target.value,
        "duration": effect.duration,
        "element": effect.element.value,
    }
    if effect.condition is not None:
        cond = effect.condition
        data["condition"] = {
            "kind": cond.kind.value,
            "threshold": cond.threshold,
            "comparator": cond.comparator.value,
            "alternative": {
                "kind": cond.alternative.kind.value,
                "magnitude": cond.alternative.magnitude,
            },
            "policy": cond.policy.value,
        }
    return data


def card_from_dict(raw: Dict[str, Any]) -> CardDefinition:
    stance_change = None
    if raw.get("stance_change"):
        sc = raw["stance_change"]
        stance_change = StanceChange(
            stance=Stance(sc["stance"]),
            override_previous=sc.get("override_previous", True),
        )

    upgrade = None
    if raw.get("upgrade"):
        up = raw["upgrade"]
        upgrade = UpgradeCondition(
            kind=UpgradeConditionKind(up["kind"]),
            required_value=up["required_value"],
            comparator=Comparator(up.get("comparator", ">=")),
            scope=UpgradeScope(up["scope"]) if up.get("scope") else None,
            upgrade_all_copies=up.get("upgrade_all_copies", False),
            upgraded_card_id=up.get("upgraded_card_id"),
            required_stance=Stance(up["required_stance"]) if up.get("required_stance") else None,
            min_health_percent=up.get("min_health_percent"),
            max_health_percent=up.get("max_health_percent"),
            single_turn=up.get("single_turn"),
        )

    return CardDefinition(
        card_id=raw["id"],
        name=raw["name"],
        rarity=Rarity(raw["rarity"]),
        energy_cost=raw["energy_cost"],
        effects=tuple(_effect_from_dict(e) for e in raw.get("effects", [])),
        description=raw.get("description", ""),
        artwork=raw.get("artwork", ""),
        category=CardCategory(raw.get("category", CardCategory.DRAFTABLE.value)),
        card_type=CardType(raw.get("card_type", CardType.ATTACK.value)),
        stance_change=stance_change,
        builds_combo=raw.get("builds_combo", False),
        requires_combo=raw.get("requires_combo", False),
        required_combo_amount=raw.get("required_combo_amount", 0),
        persistent_effects=tuple(
            PersistentFightEffect(
                name=p["name"],
                kind=EffectKind(p.get("kind", EffectKind.DAMAGE.value)),
                potency=p.get("potency", 1),
                trigger_interval=p.get("trigger_interval", 1),
                lasts_entire_fight=p.get("lasts_entire_fight", True),
                turn_duration=p.get("turn_duration", 0),
                required_stance=Stance(p.get("required_stance", Stance.NONE.value)),
                stackable=p.get("stackable", True),
            )
            for p in raw.get("persistent_effects", [])
        ),
        upgrade=upgrade,
    )


def _effect_from_dict(raw: Dict[str, Any]) -> Effect:
    condition = None
    if raw.get("condition"):
        c = raw["condition"]
        condition = EffectCondition(
            kind=ConditionKind(c["kind"]),
            threshold=c["threshold"],
            comparator=Comparator(c["comparator"]),
            alternative=AlternativeEffect(
                kind=EffectKind(c["alternative"]["kind"]),
                magnitude=c["alternative"]["magnitude"],
            ),
            policy=CombinationPolicy(c.get("policy", CombinationPolicy.REPLACE.value)),
        )
    return Effect(
        kind=EffectKind(raw["kind"]),
        magnitude=raw["magnitude"],
        target=TargetKind(raw.get("target", TargetKind.OPPONENT.value)),
        duration=raw.get("duration", 0),
        element=Element(raw.get("element", Element.NONE.value)),
        condition=condition,
    )
