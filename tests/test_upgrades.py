"""Tests for upgrade evaluation and firing."""

import logging

import pytest

from card_forge.catalog import CardCatalog
from card_forge.models import (
    CardCategory,
    CardDefinition,
    Comparator,
    Rarity,
    Stance,
    UpgradeCondition,
    UpgradeConditionKind,
    UpgradeScope,
)
from card_forge.tracking import PlayTracker, StatisticsSnapshot
from card_forge.upgrades import (
    UpgradeEvaluator,
    UpgradeSession,
    Zone,
    guards_pass,
    satisfied,
)

K = UpgradeConditionKind


def _catalog(all_copies: bool = False, **condition_kwargs) -> CardCatalog:
    condition = UpgradeCondition(
        kind=condition_kwargs.pop("kind", K.TIMES_PLAYED_THIS_FIGHT),
        required_value=condition_kwargs.pop("required_value", 2),
        upgrade_all_copies=all_copies,
        upgraded_card_id=10001,
        **condition_kwargs,
    )
    return CardCatalog([
        CardDefinition(1, "Strike", Rarity.COMMON, 2, upgrade=condition),
        CardDefinition(10001, "Strike+", Rarity.COMMON, 1, category=CardCategory.UPGRADED),
        CardDefinition(2, "Guard", Rarity.COMMON, 1),
    ])


def _played(instance_id: int, times: int, catalog: CardCatalog) -> StatisticsSnapshot:
    tracker = PlayTracker()
    for _ in range(times):
        tracker.card_played(instance_id, catalog.get(1))
    return tracker.snapshot()


@pytest.mark.parametrize(
    "accumulated,required,comparator,expected",
    [
        (5, 5, Comparator.EQUAL, True),
        (4, 5, Comparator.GREATER_THAN_OR_EQUAL, False),
        (6, 5, Comparator.GREATER_THAN, True),
        (5, 5, Comparator.LESS_THAN_OR_EQUAL, True),
        (5, 5, Comparator.LESS_THAN, False),
    ],
)
def test_satisfied(accumulated, required, comparator, expected):
    assert satisfied(accumulated, required, comparator) is expected
    # pure: same inputs, same answer
    assert satisfied(accumulated, required, comparator) is expected


class TestEvaluator:
    def test_reads_fight_counter(self):
        condition = UpgradeCondition(K.DAMAGE_DEALT_THIS_FIGHT, 10)
        snapshot = StatisticsSnapshot(fight={(7, K.DAMAGE_DEALT_THIS_FIGHT): 12})
        assert UpgradeEvaluator().evaluate(condition, 7, snapshot)
        assert not UpgradeEvaluator().evaluate(condition, 8, snapshot)

    def test_lifetime_scope_reads_lifetime_counter(self):
        condition = UpgradeCondition(K.TOTAL_FIGHTS_WON, 3)
        snapshot = StatisticsSnapshot(
            fight={(1, K.TOTAL_FIGHTS_WON): 0},
            lifetime={(1, K.TOTAL_FIGHTS_WON): 3},
        )
        assert UpgradeEvaluator().evaluate(condition, 1, snapshot)

    def test_single_turn_reads_turn_counter(self):
        condition = UpgradeCondition(K.DAMAGE_DEALT_IN_SINGLE_TURN, 10, single_turn=True)
        snapshot = StatisticsSnapshot(
            turn={(1, K.DAMAGE_DEALT_IN_SINGLE_TURN): 4},
            fight={(1, K.DAMAGE_DEALT_IN_SINGLE_TURN): 15},
        )
        assert not UpgradeEvaluator().evaluate(condition, 1, snapshot)

    def test_stance_guard(self):
        condition = UpgradeCondition(K.TIMES_PLAYED_THIS_FIGHT, 1, required_stance=Stance.BERSERKER)
        counters = {(1, K.TIMES_PLAYED_THIS_FIGHT): 5}
        assert not guards_pass(condition, StatisticsSnapshot(fight=counters, stance=Stance.GUARDIAN))
        assert UpgradeEvaluator().evaluate(
            condition, 1, StatisticsSnapshot(fight=counters, stance=Stance.BERSERKER)
        )

    def test_health_guard(self):
        condition = UpgradeCondition(
            K.TIMES_PLAYED_THIS_FIGHT, 1, min_health_percent=10.0, max_health_percent=30.0
        )
        counters = {(1, K.TIMES_PLAYED_THIS_FIGHT): 1}
        assert UpgradeEvaluator().evaluate(condition, 1, StatisticsSnapshot(fight=counters, health_percent=20.0))
        assert not UpgradeEvaluator().evaluate(condition, 1, StatisticsSnapshot(fight=counters, health_percent=5.0))
        assert not UpgradeEvaluator().evaluate(condition, 1, StatisticsSnapshot(fight=counters, health_percent=31.0))

    def test_evaluate_is_idempotent(self):
        condition = UpgradeCondition(K.TIMES_PLAYED_THIS_FIGHT, 2)
        snapshot = StatisticsSnapshot(fight={(1, K.TIMES_PLAYED_THIS_FIGHT): 2})
        evaluator = UpgradeEvaluator()
        assert evaluator.evaluate(condition, 1, snapshot) == evaluator.evaluate(condition, 1, snapshot)


class TestUpgradeSession:
    def test_fires_exactly_once(self):
        catalog = _catalog()
        session = UpgradeSession.from_deck(catalog, [1, 1, 2])
        snapshot = _played(1, 2, catalog)

        event = session.check(1, snapshot)
        assert event is not None
        assert event.base_card_id == 1
        assert event.upgraded_card_id == 10001
        assert event.instance_ids == (1,)
        assert session.find(1).card_id == 10001
        assert session.find(1).upgraded

        assert session.check(1, snapshot) is None
        assert session.find(1).card_id == 10001

    def test_single_copy_leaves_others(self):
        catalog = _catalog(all_copies=False)
        session = UpgradeSession.from_deck(catalog, [1, 1])
        session.check(1, _played(1, 2, catalog))
        assert session.find(2).card_id == 1
        assert not session.find(2).upgraded

    def test_all_copies_across_zones(self):
        catalog = _catalog(all_copies=True)
        session = UpgradeSession.from_deck(catalog, [1, 1, 1, 2])
        session.move(2, Zone.HAND)
        session.move(3, Zone.DISCARD)

        event = session.check(1, _played(1, 2, catalog))
        assert sorted(event.instance_ids) == [1, 2, 3]
        assert {session.find(i).card_id for i in (1, 2, 3)} == {10001}
        assert session.find(4).card_id == 2
        # every upgraded copy is done for good
        assert session.check(2, _played(2, 5, catalog)) is None

    def test_not_satisfied_does_nothing(self):
        catalog = _catalog()
        session = UpgradeSession.from_deck(catalog, [1])
        assert session.check(1, _played(1, 1, catalog)) is None
        assert session.find(1).card_id == 1

    def test_card_without_upgrade(self):
        catalog = _catalog()
        session = UpgradeSession.from_deck(catalog, [2])
        assert session.check(1, StatisticsSnapshot()) is None

    def test_unknown_upgrade_target_logs_error(self, caplog):
        condition = UpgradeCondition(K.TIMES_PLAYED_THIS_FIGHT, 1, upgraded_card_id=999)
        catalog = CardCatalog([CardDefinition(1, "Strike", Rarity.COMMON, 2, upgrade=condition)])
        session = UpgradeSession.from_deck(catalog, [1])
        with caplog.at_level(logging.ERROR):
            assert session.check(1, _played(1, 1, catalog)) is None
        assert "unknown card 999" in caplog.text
        assert not session.find(1).upgraded

    def test_check_all(self):
        catalog = _catalog(all_copies=True)
        session = UpgradeSession.from_deck(catalog, [1, 1])
        tracker = PlayTracker()
        tracker.card_played(1, catalog.get(1))
        tracker.card_played(1, catalog.get(1))
        events = session.check_all(tracker.snapshot())
        assert len(events) == 1
        assert sorted(events[0].instance_ids) == [1, 2]

    def test_copies_in_zone_feed_tracker(self):
        catalog = _catalog(kind=K.COPIES_IN_HAND, required_value=2)
        session = UpgradeSession.from_deck(catalog, [1, 1, 1])
        session.move(1, Zone.HAND)
        tracker = PlayTracker()

        session.sync_copy_counts(tracker)
        assert session.check(1, tracker.snapshot()) is None

        session.move(2, Zone.HAND)
        session.sync_copy_counts(tracker)
        assert session.check(1, tracker.snapshot()) is not None

    def test_unknown_instance(self):
        session = UpgradeSession.from_deck(_catalog(), [1])
        with pytest.raises(KeyError):
            session.find(42)

    def test_lifetime_condition_across_fights(self):
        catalog = _catalog(kind=K.TIMES_PLAYED_ACROSS_FIGHTS, required_value=3)
        assert catalog.get(1).upgrade.scope is UpgradeScope.LIFETIME
        tracker = PlayTracker()
        for _ in range(3):
            session = UpgradeSession.from_deck(catalog, [1])
            tracker.card_played(1, catalog.get(1))
            event = session.check(1, tracker.snapshot())
            tracker.fight_ended(won=True)
        assert event is not None

    def test_combo_count_condition_fires_from_play(self):
        catalog = _catalog(kind=K.COMBO_COUNT_REACHED, required_value=4)
        session = UpgradeSession.from_deck(catalog, [1])
        tracker = PlayTracker()
        tracker.card_played(1, catalog.get(1), combo_count=3)
        assert session.check(1, tracker.snapshot()) is None
        tracker.card_played(1, catalog.get(1), combo_count=5)
        assert session.check(1, tracker.snapshot()) is not None
