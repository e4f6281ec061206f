"""Tests for the card catalog, validation and JSON export."""

import json
import logging

import pytest

from card_forge.catalog import CardCatalog, card_from_dict, card_to_dict, validate_card_set
from card_forge.engine import EngineContext
from card_forge.models import (
    AlternativeEffect,
    CardCategory,
    CardDefinition,
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
)


def _upgradable(card_id=1, target=10001, category=CardCategory.DRAFTABLE) -> CardDefinition:
    return CardDefinition(
        card_id,
        "Strike",
        Rarity.COMMON,
        2,
        category=category,
        upgrade=UpgradeCondition(
            UpgradeConditionKind.TIMES_PLAYED_THIS_FIGHT, 2, upgraded_card_id=target
        ),
    )


class TestCatalog:
    def test_register_and_get(self):
        catalog = CardCatalog()
        card = CardDefinition(1, "Strike", Rarity.COMMON, 1)
        catalog.register(card)
        assert catalog.get(1) is card
        assert catalog.get(2) is None
        assert 1 in catalog
        assert len(catalog) == 1

    def test_duplicate_id_rejected(self):
        catalog = CardCatalog([CardDefinition(1, "Strike", Rarity.COMMON, 1)])
        with pytest.raises(ValueError, match="Duplicate card id 1"):
            catalog.register(CardDefinition(1, "Other", Rarity.RARE, 1))

    def test_iterates_in_id_order(self):
        catalog = CardCatalog([
            CardDefinition(5, "E", Rarity.COMMON, 1),
            CardDefinition(2, "B", Rarity.COMMON, 1),
        ])
        assert [c.card_id for c in catalog] == [2, 5]

    def test_upgrade_resolved_lazily(self):
        catalog = CardCatalog([_upgradable()])
        assert catalog.validate() == ["card 1: upgrade target 10001 not in catalog"]

        catalog.register(CardDefinition(10001, "Strike+", Rarity.COMMON, 1, category=CardCategory.UPGRADED))
        assert catalog.validate() == []
        assert catalog.resolve_upgrade(catalog.get(1)).name == "Strike+"

    def test_resolve_missing_upgrade_logs_error(self, caplog):
        catalog = CardCatalog([_upgradable(target=77)])
        with caplog.at_level(logging.ERROR):
            assert catalog.resolve_upgrade(catalog.get(1)) is None
        assert "unknown card 77" in caplog.text

    def test_validate_catches_bad_links(self):
        catalog = CardCatalog([
            _upgradable(card_id=1, target=1),
            _upgradable(card_id=2, target=None),
            _upgradable(card_id=10002, target=1, category=CardCategory.UPGRADED),
        ])
        errors = catalog.validate()
        assert "card 1: upgrades into itself" in errors
        assert "card 2: upgrade condition has no target card" in errors
        assert "card 10002: upgraded cards must not upgrade again" in errors


class TestExport:
    def test_card_survives_json(self):
        card = CardDefinition(
            card_id=4,
            name="Fire Strike",
            rarity=Rarity.UNCOMMON,
            energy_cost=3,
            effects=(
                Effect(
                    EffectKind.DAMAGE,
                    7,
                    target=TargetKind.RANDOM,
                    element=Element.FIRE,
                    condition=EffectCondition(
                        kind=ConditionKind.COMBO_COUNT,
                        threshold=3,
                        comparator=Comparator.GREATER_THAN_OR_EQUAL,
                        alternative=AlternativeEffect(EffectKind.DRAW_CARD, 1),
                        policy=CombinationPolicy.ADDITIONAL,
                    ),
                ),
                Effect(EffectKind.ENTER_STANCE, 1, target=TargetKind.SELF, duration=2),
            ),
            stance_change=StanceChange(Stance.BERSERKER),
            requires_combo=True,
            required_combo_amount=2,
            persistent_effects=(PersistentFightEffect("Embers", potency=2),),
            upgrade=UpgradeCondition(
                UpgradeConditionKind.PLAYED_IN_STANCE,
                1,
                upgraded_card_id=10004,
                required_stance=Stance.BERSERKER,
            ),
        )
        raw = json.loads(json.dumps(card_to_dict(card)))
        assert card_from_dict(raw) == card

    def test_export_and_load(self, tmp_path):
        catalog = EngineContext.create(seed=17).generator.generate_set([Rarity.COMMON, Rarity.RARE])
        path = tmp_path / "out" / "cards.json"
        catalog.export(path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["version"]
        assert validate_card_set(data) == []

        loaded = CardCatalog.load(path)
        assert [c for c in loaded] == [c for c in catalog]

    def test_load_rejects_malformed_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"version": "1", "cards": [{"id": 1}]}), encoding="utf-8")
        with pytest.raises(ValueError, match="missing 'name'"):
            CardCatalog.load(path)


class TestValidateCardSet:
    def test_missing_cards(self):
        assert validate_card_set({"version": "1"}) == ["Missing required field: cards"]

    def test_card_errors(self):
        data = {
            "version": "1",
            "cards": [
                {"id": 1, "name": "A", "rarity": "mythic", "energy_cost": -1},
                {"id": 1, "name": "B", "rarity": "common", "energy_cost": 1,
                 "requires_combo": True, "effects": [{"kind": "explode"}]},
            ],
        }
        errors = validate_card_set(data)
        assert "cards[0]: unknown rarity 'mythic'" in errors
        assert "cards[0]: negative energy cost" in errors
        assert "cards[1]: duplicate id '1'" in errors
        assert "cards[1]: requires combo without a required amount" in errors
        assert "cards[1].effects[0]: unknown kind 'explode'" in errors
