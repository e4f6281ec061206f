"""Upgrade condition evaluation and per-fight upgrade firing.

Evaluation is a pure comparison over a statistics snapshot. Firing is
owned by an UpgradeSession, which swaps the definition id a card
instance points at and remembers the swap so it never happens twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from card_forge.catalog import CardCatalog
from card_forge.models import Comparator, UpgradeCondition, UpgradeConditionKind
from card_forge.tracking import PlayTracker, StatisticsSnapshot

logger = logging.getLogger(__name__)


def satisfied(accumulated: int, required: int, comparator: Comparator) -> bool:
    return comparator.compare(accumulated, required)


def guards_pass(condition: UpgradeCondition, snapshot: StatisticsSnapshot) -> bool:
    """Stance and health guards. They gate the check, not the threshold."""
    if condition.required_stance is not None and snapshot.stance is not condition.required_stance:
        return False
    if condition.min_health_percent is not None and snapshot.health_percent < condition.min_health_percent:
        return False
    if condition.max_health_percent is not None and snapshot.health_percent > condition.max_health_percent:
        return False
    return True


class UpgradeEvaluator:
    """Stateless check of an upgrade condition for one card instance."""

    def evaluate(
        self,
        condition: UpgradeCondition,
        instance_id: int,
        snapshot: StatisticsSnapshot,
    ) -> bool:
        if not guards_pass(condition, snapshot):
            return False
        accumulated = snapshot.value(
            instance_id, condition.kind, condition.scope, condition.single_turn
        )
        return satisfied(accumulated, condition.required_value, condition.comparator)


class Zone(str, Enum):
    DECK = "deck"
    HAND = "hand"
    DISCARD = "discard"


@dataclass
class CardInstance:
    """One physical copy of a card. ``card_id`` changes when it upgrades."""

    instance_id: int
    card_id: int
    upgraded: bool = False


@dataclass(frozen=True)
class UpgradeEvent:
    base_card_id: int
    upgraded_card_id: int
    instance_ids: Tuple[int, ...]


@dataclass
class UpgradeSession:
    """Card instances of one fight and the upgrades fired on them."""

    catalog: CardCatalog
    zones: Dict[Zone, List[CardInstance]] = field(
        default_factory=lambda: {zone: [] for zone in Zone}
    )
    evaluator: UpgradeEvaluator = field(default_factory=UpgradeEvaluator)

    @classmethod
    def from_deck(cls, catalog: CardCatalog, card_ids: Iterable[int]) -> UpgradeSession:
        """Start a fight with every card in the deck, instance ids from 1."""
        session = cls(catalog)
        session.zones[Zone.DECK] = [
            CardInstance(instance_id=i, card_id=card_id)
            for i, card_id in enumerate(card_ids, start=1)
        ]
        return session

    def instances(self) -> Iterator[CardInstance]:
        for zone in Zone:
            yield from self.zones.get(zone, [])

    def find(self, instance_id: int) -> CardInstance:
        for instance in self.instances():
            if instance.instance_id == instance_id:
                return instance
        raise KeyError(f"No card instance {instance_id} in this session")

    def zone_of(self, instance_id: int) -> Zone:
        for zone in Zone:
            if any(i.instance_id == instance_id for i in self.zones.get(zone, [])):
                return zone
        raise KeyError(f"No card instance {instance_id} in this session")

    def move(self, instance_id: int, to: Zone) -> None:
        instance = self.find(instance_id)
        self.zones[self.zone_of(instance_id)].remove(instance)
        self.zones.setdefault(to, []).append(instance)

    def copies_in(self, zone: Zone, card_id: int) -> int:
        return sum(1 for i in self.zones.get(zone, []) if i.card_id == card_id)

    def sync_copy_counts(self, tracker: PlayTracker) -> None:
        """Push copies-in-zone gauges for every instance into the tracker."""
        gauges = (
            (Zone.DECK, UpgradeConditionKind.COPIES_IN_DECK),
            (Zone.HAND, UpgradeConditionKind.COPIES_IN_HAND),
            (Zone.DISCARD, UpgradeConditionKind.COPIES_IN_DISCARD),
        )
        for instance in self.instances():
            for zone, kind in gauges:
                tracker.set_counter(instance.instance_id, kind, self.copies_in(zone, instance.card_id))

    def check(self, instance_id: int, snapshot: StatisticsSnapshot) -> Optional[UpgradeEvent]:
        """Fire the instance's upgrade if its condition holds.

        Returns the event, or None when nothing fired. An instance that has
        already upgraded is never evaluated again.
        """
        instance = self.find(instance_id)
        if instance.upgraded:
            logger.debug("Instance %d already upgraded, skipping", instance_id)
            return None

        card = self.catalog.get(instance.card_id)
        if card is None or card.upgrade is None:
            return None
        if not card.can_upgrade:
            logger.warning("Card %d has an upgrade condition without a target", card.card_id)
            return None
        if not self.evaluator.evaluate(card.upgrade, instance_id, snapshot):
            return None

        upgraded = self.catalog.resolve_upgrade(card)
        if upgraded is None:
            return None

        if card.upgrade.upgrade_all_copies:
            targets = [
                i for i in self.instances()
                if i.card_id == card.card_id and not i.upgraded
            ]
        else:
            targets = [instance]
        for target in targets:
            target.card_id = upgraded.card_id
            target.upgraded = True

        event = UpgradeEvent(
            base_card_id=card.card_id,
            upgraded_card_id=upgraded.card_id,
            instance_ids=tuple(t.instance_id for t in targets),
        )
        logger.info(
            "Card %d upgraded to %d on %d instance(s)",
            event.base_card_id,
            event.upgraded_card_id,
            len(event.instance_ids),
        )
        return event

    def check_all(self, snapshot: StatisticsSnapshot) -> List[UpgradeEvent]:
        events = []
        for instance in list(self.instances()):
            event = self.check(instance.instance_id, snapshot)
            if event is not None:
                events.append(event)
        return events
