"""Tests for play statistics tracking."""

from card_forge.models import CardDefinition, CardType, Rarity, Stance, UpgradeConditionKind, UpgradeScope
from card_forge.tracking import PlayTracker

K = UpgradeConditionKind

STRIKE = CardDefinition(1, "Strike", Rarity.COMMON, 2)
FREEBIE = CardDefinition(2, "Freebie", Rarity.COMMON, 0)
FINISHER = CardDefinition(3, "Finale", Rarity.RARE, 3, card_type=CardType.FINISHER)


def test_card_played_counts():
    tracker = PlayTracker()
    tracker.card_played(1, STRIKE)
    tracker.card_played(1, STRIKE)
    snap = tracker.snapshot()
    assert snap.value(1, K.TIMES_PLAYED_THIS_FIGHT) == 2
    assert snap.value(1, K.TIMES_PLAYED_ACROSS_FIGHTS, UpgradeScope.LIFETIME) == 2
    assert snap.value(1, K.PLAYED_MULTIPLE_TIMES_IN_TURN) == 2
    assert snap.value(2, K.TIMES_PLAYED_THIS_FIGHT) == 0


def test_played_flags():
    tracker = PlayTracker()
    tracker.stance = Stance.AGGRESSIVE
    tracker.set_health_percent(20)
    tracker.card_played(3, FINISHER, combo_count=2)
    tracker.card_played(2, FREEBIE)
    snap = tracker.snapshot()
    assert snap.value(3, K.PLAYED_IN_STANCE) == 1
    assert snap.value(3, K.PLAYED_WITH_COMBO) == 1
    assert snap.value(3, K.PLAYED_AS_FINISHER) == 1
    assert snap.value(3, K.PLAYED_AT_LOW_HEALTH) == 1
    assert snap.value(3, K.PLAYED_AT_HALF_HEALTH) == 1
    assert snap.value(3, K.PLAYED_AT_HIGH_HEALTH) == 0
    assert snap.value(2, K.ZERO_COST_CARDS_THIS_FIGHT) == 1
    assert snap.stance is Stance.AGGRESSIVE
    assert snap.health_percent == 20


def test_health_is_clamped():
    tracker = PlayTracker()
    tracker.set_health_percent(140)
    assert tracker.health_percent == 100.0
    tracker.set_health_percent(-5)
    assert tracker.health_percent == 0.0


def test_turn_counters_reset_on_turn_end():
    tracker = PlayTracker()
    tracker.damage_dealt(1, 6)
    tracker.turn_ended()
    tracker.damage_dealt(1, 4)
    snap = tracker.snapshot()
    assert snap.value(1, K.DAMAGE_DEALT_IN_SINGLE_TURN, single_turn=True) == 4
    assert snap.value(1, K.DAMAGE_DEALT_THIS_FIGHT) == 10


def test_turn_end_credits_hand_and_only_card():
    tracker = PlayTracker()
    tracker.card_played(1, STRIKE)
    tracker.turn_ended(hand=[5])
    snap = tracker.snapshot()
    assert snap.value(1, K.ONLY_CARD_PLAYED_THIS_TURN) == 1
    assert snap.value(1, K.ONLY_CARD_PLAYED_IN_TURN_LIFETIME, UpgradeScope.LIFETIME) == 1
    assert snap.value(5, K.HELD_AT_TURN_END) == 1
    assert snap.value(5, K.FINAL_CARD_IN_HAND) == 1


def test_consecutive_turns():
    tracker = PlayTracker()
    for _ in range(3):
        tracker.card_played(1, STRIKE)
        tracker.turn_ended()
    assert tracker.snapshot().value(1, K.PLAYED_ON_CONSECUTIVE_TURNS) == 3

    tracker.turn_ended()
    assert tracker.snapshot().value(1, K.PLAYED_ON_CONSECUTIVE_TURNS) == 0


def test_fight_end_resets_fight_keeps_lifetime():
    tracker = PlayTracker()
    tracker.card_played(1, STRIKE)
    tracker.card_drawn(1)
    tracker.fight_ended(won=True, finishing_instance=1)
    snap = tracker.snapshot()
    assert snap.value(1, K.TIMES_PLAYED_THIS_FIGHT) == 0
    assert snap.value(1, K.TIMES_PLAYED_ACROSS_FIGHTS, UpgradeScope.LIFETIME) == 1
    assert snap.value(1, K.DRAWN_OFTEN_LIFETIME, UpgradeScope.LIFETIME) == 1
    assert snap.value(1, K.TOTAL_FIGHTS_WON, UpgradeScope.LIFETIME) == 1
    assert snap.value(1, K.DEFEATED_OPPONENT_WITH_CARD, UpgradeScope.LIFETIME) == 1


def test_lost_fight():
    tracker = PlayTracker()
    tracker.card_played(1, STRIKE)
    tracker.fight_ended(won=False, survived=False)
    lifetime = tracker.lifetime_counters()
    assert lifetime[(1, K.TOTAL_FIGHTS_LOST)] == 1
    assert (1, K.SURVIVED_FIGHT_WITH_CARD) not in lifetime


def test_snapshot_is_isolated_from_later_events():
    tracker = PlayTracker()
    tracker.card_played(1, STRIKE)
    snap = tracker.snapshot()
    tracker.card_played(1, STRIKE)
    assert snap.value(1, K.TIMES_PLAYED_THIS_FIGHT) == 1


def test_combo_count_keeps_highest_reached():
    tracker = PlayTracker()
    tracker.card_played(1, STRIKE, combo_count=5)
    tracker.card_played(1, STRIKE, combo_count=2)
    snap = tracker.snapshot()
    assert snap.value(1, K.COMBO_COUNT_REACHED) == 5
    assert snap.value(2, K.COMBO_COUNT_REACHED) == 0


def test_combo_back_to_back():
    tracker = PlayTracker()
    tracker.card_played(1, STRIKE, combo_count=1)
    tracker.card_played(2, FREEBIE, combo_count=2)
    tracker.card_played(3, FINISHER)
    tracker.card_played(1, STRIKE, combo_count=3)
    snap = tracker.snapshot()
    assert snap.value(2, K.COMBO_USE_BACK_TO_BACK) == 1
    assert snap.value(1, K.COMBO_USE_BACK_TO_BACK) == 0
    assert snap.value(2, K.COMBO_USE_BACK_TO_BACK_LIFETIME, UpgradeScope.LIFETIME) == 1


def test_perfect_turns_build_a_streak():
    tracker = PlayTracker()
    for _ in range(2):
        tracker.card_played(1, STRIKE)
        tracker.turn_ended()
    snap = tracker.snapshot()
    assert tracker.perfection_streak == 2
    assert snap.value(1, K.PERFECTION_STREAK_ACHIEVED) == 2
    assert snap.value(1, K.PERFECT_TURN_PLAYED) == 2
    assert snap.value(1, K.TOTAL_PERFECT_TURNS, UpgradeScope.LIFETIME) == 2


def test_damage_taken_breaks_the_streak():
    tracker = PlayTracker()
    tracker.card_played(1, STRIKE)
    tracker.turn_ended()
    tracker.card_played(1, STRIKE)
    tracker.damage_taken(3)
    tracker.turn_ended()
    snap = tracker.snapshot()
    assert tracker.perfection_streak == 0
    assert snap.value(1, K.PERFECT_TURN_PLAYED) == 1
    # the best streak this fight is kept
    assert snap.value(1, K.PERFECTION_STREAK_ACHIEVED) == 1


def test_battle_length_and_status_effects():
    tracker = PlayTracker()
    tracker.card_played(1, STRIKE)
    for _ in range(3):
        tracker.turn_ended()
    tracker.status_effect_survived()
    snap = tracker.snapshot()
    assert snap.value(1, K.BATTLE_LENGTH_OVER) == 3
    assert snap.value(1, K.SURVIVED_STATUS_EFFECT) == 1
    assert snap.value(1, K.TOTAL_STATUS_EFFECTS_SURVIVED, UpgradeScope.LIFETIME) == 1

    tracker.fight_ended(won=True)
    assert tracker.perfection_streak == 0
    assert tracker.snapshot().value(1, K.BATTLE_LENGTH_OVER) == 0
