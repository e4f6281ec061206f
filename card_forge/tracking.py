"""Play statistics per card instance, fed to the upgrade evaluator.

The tracker owns every counter and is the only thing that mutates them.
Evaluation works on an immutable StatisticsSnapshot taken from it.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import DefaultDict, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from card_forge.models import CardDefinition, CardType, Stance, UpgradeConditionKind, UpgradeScope

logger = logging.getLogger(__name__)

CounterKey = Tuple[int, UpgradeConditionKind]

LOW_HEALTH_PERCENT = 25.0
HALF_HEALTH_PERCENT = 50.0
HIGH_HEALTH_PERCENT = 75.0

_K = UpgradeConditionKind


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Counters and combat state at one moment, keyed by (instance id, kind)."""

    turn: Mapping[CounterKey, int] = field(default_factory=dict)
    fight: Mapping[CounterKey, int] = field(default_factory=dict)
    lifetime: Mapping[CounterKey, int] = field(default_factory=dict)
    stance: Stance = Stance.NONE
    health_percent: float = 100.0

    def value(
        self,
        instance_id: int,
        kind: UpgradeConditionKind,
        scope: UpgradeScope = UpgradeScope.PER_FIGHT,
        single_turn: bool = False,
    ) -> int:
        """Accumulated value for one statistic.

        Lifetime scope wins over ``single_turn``: a lifetime counter never
        resets, so a single-turn window does not apply to it.
        """
        key = (instance_id, kind)
        if scope is UpgradeScope.LIFETIME:
            return self.lifetime.get(key, 0)
        if single_turn:
            return self.turn.get(key, 0)
        return self.fight.get(key, 0)


class PlayTracker:
    """Records play events and keeps turn, fight and lifetime counters.

    One tracker per player; it outlives fights so lifetime counters carry
    over. Per-turn counters reset on ``turn_ended``, per-fight counters on
    ``fight_ended``.
    """

    def __init__(self) -> None:
        self._turn: DefaultDict[CounterKey, int] = defaultdict(int)
        self._fight: DefaultDict[CounterKey, int] = defaultdict(int)
        self._lifetime: DefaultDict[CounterKey, int] = defaultdict(int)
        self.stance = Stance.NONE
        self.health_percent = 100.0
        self._played_this_turn: List[int] = []
        self._played_last_turn: Set[int] = set()
        self._played_this_fight: Set[int] = set()
        self._last_play_used_combo = False
        self._hit_this_turn = False
        self._perfection_streak = 0
        self._fight_turns = 0

    # -- raw counters -------------------------------------------------

    def increment(self, instance_id: int, kind: UpgradeConditionKind, amount: int = 1) -> None:
        key = (instance_id, kind)
        self._turn[key] += amount
        self._fight[key] += amount
        self._lifetime[key] += amount

    def set_counter(self, instance_id: int, kind: UpgradeConditionKind, value: int) -> None:
        """Overwrite a gauge-like statistic such as copies in hand."""
        key = (instance_id, kind)
        self._turn[key] = value
        self._fight[key] = value
        self._lifetime[key] = value

    def record_peak(self, instance_id: int, kind: UpgradeConditionKind, value: int) -> None:
        """Keep the highest value seen, for "reached" statistics like combo count."""
        key = (instance_id, kind)
        for counters in (self._turn, self._fight, self._lifetime):
            counters[key] = max(counters[key], value)

    def snapshot(self) -> StatisticsSnapshot:
        return StatisticsSnapshot(
            turn=MappingProxyType(dict(self._turn)),
            fight=MappingProxyType(dict(self._fight)),
            lifetime=MappingProxyType(dict(self._lifetime)),
            stance=self.stance,
            health_percent=self.health_percent,
        )

    # -- events -------------------------------------------------------

    def set_health_percent(self, percent: float) -> None:
        self.health_percent = max(0.0, min(100.0, percent))

    def card_played(
        self,
        instance_id: int,
        card: CardDefinition,
        combo_count: int = 0,
    ) -> None:
        self.increment(instance_id, _K.TIMES_PLAYED_THIS_FIGHT)
        self.increment(instance_id, _K.TIMES_PLAYED_ACROSS_FIGHTS)

        self._played_this_turn.append(instance_id)
        self._played_this_fight.add(instance_id)
        plays_this_turn = self._played_this_turn.count(instance_id)
        if plays_this_turn > 1:
            self.set_counter(instance_id, _K.PLAYED_MULTIPLE_TIMES_IN_TURN, plays_this_turn)

        if self.stance is not Stance.NONE:
            self.increment(instance_id, _K.PLAYED_IN_STANCE)
        if combo_count > 0:
            self.increment(instance_id, _K.PLAYED_WITH_COMBO)
            self.record_peak(instance_id, _K.COMBO_COUNT_REACHED, combo_count)
            if self._last_play_used_combo:
                self.increment(instance_id, _K.COMBO_USE_BACK_TO_BACK)
                self.increment(instance_id, _K.COMBO_USE_BACK_TO_BACK_LIFETIME)
        self._last_play_used_combo = combo_count > 0
        if card.card_type is CardType.FINISHER:
            self.increment(instance_id, _K.PLAYED_AS_FINISHER)
        if card.is_zero_cost:
            self.increment(instance_id, _K.ZERO_COST_CARDS_THIS_TURN)
            self.increment(instance_id, _K.ZERO_COST_CARDS_THIS_FIGHT)

        if self.health_percent <= LOW_HEALTH_PERCENT:
            self.increment(instance_id, _K.PLAYED_AT_LOW_HEALTH)
        if self.health_percent <= HALF_HEALTH_PERCENT:
            self.increment(instance_id, _K.PLAYED_AT_HALF_HEALTH)
        if self.health_percent >= HIGH_HEALTH_PERCENT:
            self.increment(instance_id, _K.PLAYED_AT_HIGH_HEALTH)

        logger.debug("Instance %d played (card %d)", instance_id, card.card_id)

    def card_drawn(self, instance_id: int) -> None:
        self.increment(instance_id, _K.DRAWN_OFTEN)
        self.increment(instance_id, _K.DRAWN_OFTEN_LIFETIME)

    def card_discarded(self, instance_id: int) -> None:
        self.increment(instance_id, _K.DISCARDED_MANUALLY)
        self.increment(instance_id, _K.DISCARDED_MANUALLY_LIFETIME)

    def damage_dealt(self, instance_id: int, amount: int) -> None:
        self.increment(instance_id, _K.DAMAGE_DEALT_THIS_FIGHT, amount)
        self.increment(instance_id, _K.DAMAGE_DEALT_IN_SINGLE_TURN, amount)

    def healing_given(self, instance_id: int, amount: int) -> None:
        self.increment(instance_id, _K.HEALING_GIVEN_THIS_FIGHT, amount)

    def damage_taken(self, amount: int) -> None:
        """The player was hit: the turn is no longer perfect and the streak breaks."""
        if amount <= 0:
            return
        self._hit_this_turn = True
        self._perfection_streak = 0

    def status_effect_survived(self) -> None:
        """A status effect on the player ran out; credit every card played this fight."""
        for instance_id in self._played_this_fight:
            self.increment(instance_id, _K.SURVIVED_STATUS_EFFECT)
            self.increment(instance_id, _K.TOTAL_STATUS_EFFECTS_SURVIVED)

    @property
    def perfection_streak(self) -> int:
        return self._perfection_streak

    def turn_ended(self, hand: Iterable[int] = ()) -> None:
        """Close the turn: credit held cards, streaks and battle length, reset turn counters."""
        hand = list(hand)
        for instance_id in hand:
            self.increment(instance_id, _K.HELD_AT_TURN_END)
            self.increment(instance_id, _K.HELD_AT_TURN_END_LIFETIME)
        if len(hand) == 1:
            self.increment(hand[0], _K.FINAL_CARD_IN_HAND)
            self.increment(hand[0], _K.FINAL_CARD_IN_HAND_LIFETIME)

        played = set(self._played_this_turn)
        if len(self._played_this_turn) == 1:
            only = self._played_this_turn[0]
            self.increment(only, _K.ONLY_CARD_PLAYED_THIS_TURN)
            self.increment(only, _K.ONLY_CARD_PLAYED_IN_TURN_LIFETIME)
        for instance_id in played:
            key = (instance_id, _K.PLAYED_ON_CONSECUTIVE_TURNS)
            if instance_id in self._played_last_turn:
                self._fight[key] += 1
                self._lifetime[key] += 1
            else:
                self._fight[key] = 1
        # Streaks break for cards not played this turn
        for instance_id in self._played_last_turn - played:
            self._fight[(instance_id, _K.PLAYED_ON_CONSECUTIVE_TURNS)] = 0

        if not self._hit_this_turn:
            self._perfection_streak += 1
            for instance_id in played:
                self.increment(instance_id, _K.PERFECT_TURN_PLAYED)
                self.increment(instance_id, _K.TOTAL_PERFECT_TURNS)

        self._fight_turns += 1
        for instance_id in self._played_this_fight:
            self.increment(instance_id, _K.TOTAL_BATTLE_TURNS)
            self.record_peak(instance_id, _K.BATTLE_LENGTH_OVER, self._fight_turns)
            self.record_peak(instance_id, _K.PERFECTION_STREAK_ACHIEVED, self._perfection_streak)

        self._played_last_turn = played
        self._played_this_turn = []
        self._last_play_used_combo = False
        self._hit_this_turn = False
        self._turn.clear()

    def fight_ended(
        self,
        won: bool,
        survived: bool = True,
        finishing_instance: Optional[int] = None,
    ) -> None:
        """Credit fight outcomes to every instance played, then reset the fight."""
        for instance_id in self._played_this_fight:
            if won:
                self.increment(instance_id, _K.WON_FIGHT_USING_CARD)
                self.increment(instance_id, _K.TOTAL_FIGHTS_WON)
            else:
                self.increment(instance_id, _K.LOST_FIGHT_WITH_CARD)
                self.increment(instance_id, _K.TOTAL_FIGHTS_LOST)
            if survived:
                self.increment(instance_id, _K.SURVIVED_FIGHT_WITH_CARD)
        if won and finishing_instance is not None:
            self.increment(finishing_instance, _K.DEFEATED_OPPONENT_WITH_CARD)

        logger.info(
            "Fight ended (%s), %d card instances credited",
            "won" if won else "lost",
            len(self._played_this_fight),
        )
        self._turn.clear()
        self._fight.clear()
        self._played_this_turn = []
        self._played_last_turn = set()
        self._played_this_fight = set()
        self._last_play_used_combo = False
        self._hit_this_turn = False
        self._perfection_streak = 0
        self._fight_turns = 0

    def lifetime_counters(self) -> Dict[CounterKey, int]:
        return dict(self._lifetime)
