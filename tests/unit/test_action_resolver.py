import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from earthgame.application.services.action_resolver import ActionResolver
from earthgame.application.services.event_bus import EventBus
from earthgame.application.services.seed_policy import seeded_rng_factory
from earthgame.domain.errors import (
    ActionUnavailable,
    ConcurrencyConflict,
    InsufficientResource,
    InvalidArgument,
    NotFound,
    StorageError,
)
from earthgame.domain.events import ActionResolved, ItemAcquired
from earthgame.domain.models.actor import Actor, ActorStatus
from earthgame.domain.models.item import CatalogItem, ItemCategory, Rarity
from earthgame.domain.models.location import ActionKind, Location
from earthgame.infrastructure.inmemory.atomic_persistence import create_inmemory_atomic_persistor
from earthgame.infrastructure.inmemory.repos import (
    InMemoryActorRepository,
    InMemoryInventoryRepository,
    InMemoryItemCatalogRepository,
    InMemoryLocationRepository,
    InMemoryTransactionRepository,
)


WALLET = "Wallet1"


class _FixedRng:
    def __init__(self, roll: float, pick: int = 0) -> None:
        self.roll = roll
        self.pick = pick

    def random(self) -> float:
        return self.roll

    def randrange(self, stop: int) -> int:
        return min(self.pick, stop - 1)


def _rng(roll: float, pick: int = 0):
    return lambda _actor, _action: _FixedRng(roll, pick)


MINE_SITE = Location(id="loc-mine", name="Rust Flats", supported_actions=frozenset({ActionKind.MINE}))
MARKET = Location(id="loc-market", name="Haven Market")
ORE = CatalogItem(id="item-ore", name="Cobalt Ore", category=ItemCategory.MATERIAL, rarity=Rarity.RARE)
HAT = CatalogItem(id="item-hat", name="Straw Hat", category=ItemCategory.HAT, rarity=Rarity.COMMON)


class _World:
    def __init__(self, actor: Actor, items=(ORE, HAT), rng_factory=None, event_bus=None, persistor=None) -> None:
        self.actors = InMemoryActorRepository([actor])
        self.locations = InMemoryLocationRepository([MINE_SITE, MARKET])
        self.items = InMemoryItemCatalogRepository(items)
        self.inventory = InMemoryInventoryRepository()
        self.transactions = InMemoryTransactionRepository()
        self.persistor = persistor or create_inmemory_atomic_persistor(self.actors, self.inventory, self.transactions)
        self.resolver = ActionResolver(
            self.actors,
            self.locations,
            self.items,
            self.inventory,
            self.transactions,
            self.persistor,
            rng_factory=rng_factory or _rng(0.0),
            event_bus=event_bus,
        )


def _actor(**overrides) -> Actor:
    values = {
        "id": "a1",
        "wallet_address": WALLET,
        "name": "Ari",
        "level": 1,
        "health": 100,
        "energy": 100,
        "experience": 0,
        "location_id": MINE_SITE.id,
    }
    values.update(overrides)
    return Actor(**values)


class ActionResolverSuccessTests(unittest.TestCase):
    def test_successful_mine_debits_energy_and_grants_item(self) -> None:
        world = _World(_actor(level=12, health=80, energy=10, experience=500))

        outcome = world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertEqual(8, outcome.cost)
        self.assertEqual(2, outcome.actor.energy)
        self.assertEqual(2, world.actors.get("a1").energy)
        self.assertEqual(ORE, outcome.found.item)
        self.assertEqual(1, world.inventory.get_line("a1", ORE.id).quantity)
        self.assertEqual("Successfully mined Cobalt Ore! Energy cost: 8", outcome.message)
        self.assertEqual(325, outcome.capacity)
        self.assertEqual(87, outcome.success_rate_percent)

    def test_only_material_category_is_drawn_for_mining(self) -> None:
        world = _World(_actor(), rng_factory=_rng(0.0, pick=10_000))

        outcome = world.resolver.resolve_action(WALLET)

        self.assertEqual(ORE.id, outcome.found.item.id)
        self.assertIsNone(world.inventory.get_line("a1", HAT.id))

    def test_energy_exactly_equal_to_cost_succeeds_with_zero_left(self) -> None:
        world = _World(_actor(energy=10))

        outcome = world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertEqual(0, outcome.actor.energy)
        self.assertEqual(0, world.actors.get("a1").energy)

    def test_repeated_finds_stack_inventory_quantity(self) -> None:
        world = _World(_actor(energy=30))

        world.resolver.resolve_action(WALLET, MINE_SITE.id)
        world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertEqual(2, world.inventory.get_line("a1", ORE.id).quantity)
        self.assertEqual(1, len(world.inventory.list_for_actor("a1")))
        self.assertEqual(10, world.actors.get("a1").energy)

    def test_transaction_record_describes_the_find(self) -> None:
        world = _World(_actor())

        outcome = world.resolver.resolve_action(WALLET, MINE_SITE.id)

        records = world.transactions.list_for_actor("a1")
        self.assertEqual(1, len(records))
        self.assertEqual(outcome.transaction, records[0])
        self.assertEqual("MINE", records[0].action_type)
        self.assertEqual(ORE.id, records[0].item_id)
        self.assertEqual(10, records[0].energy_cost)
        self.assertEqual("Mined Cobalt Ore at Rust Flats (Cost: 10 energy, Success Rate: 71%)", records[0].description)

    def test_defaults_to_actor_location(self) -> None:
        world = _World(_actor())

        outcome = world.resolver.resolve_action(WALLET)

        self.assertIsNotNone(outcome.found)

    def test_details_block_reports_cost_breakdown(self) -> None:
        world = _World(_actor(level=5, health=40))

        outcome = world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertEqual(
            {
                "baseCost": 10,
                "actualCost": 13,
                "levelEfficiency": 1,
                "healthPenalty": True,
                "successRate": 65,
                "maxEnergy": 100 + 75 + 20,
            },
            outcome.details,
        )

    def test_events_published_after_commit(self) -> None:
        bus = EventBus()
        seen = []
        bus.subscribe(ActionResolved, seen.append)
        bus.subscribe(ItemAcquired, seen.append)
        world = _World(_actor(), event_bus=bus)

        world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertEqual([ActionResolved, ItemAcquired], [type(event) for event in seen])
        self.assertEqual(ORE.id, seen[1].item_id)
        self.assertEqual("MATERIAL", seen[1].category)


class ActionResolverMissTests(unittest.TestCase):
    def test_miss_charges_energy_without_inventory_change(self) -> None:
        world = _World(_actor(energy=25), rng_factory=_rng(0.999))

        first = world.resolver.resolve_action(WALLET, MINE_SITE.id)
        second = world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertIsNone(first.found)
        self.assertIsNone(second.found)
        self.assertEqual(5, world.actors.get("a1").energy)
        self.assertEqual([], world.inventory.list_for_actor("a1"))
        self.assertEqual(2, world.transactions.count_for_actor("a1", "MINE"))
        self.assertEqual("No resources found this time. Energy cost: 10 (standard rate)", first.message)

    def test_miss_message_mentions_damage_when_injured(self) -> None:
        world = _World(_actor(health=20), rng_factory=_rng(0.999))

        outcome = world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertEqual("No resources found this time. Energy cost: 15 (increased due to system damage)", outcome.message)

    def test_empty_category_is_a_miss_not_an_error(self) -> None:
        world = _World(_actor(), items=(HAT,))

        outcome = world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertIsNone(outcome.found)
        self.assertEqual(90, world.actors.get("a1").energy)
        record = world.transactions.list_for_actor("a1")[0]
        self.assertIsNone(record.item_id)
        self.assertEqual(0, record.quantity)
        self.assertTrue(record.description.startswith("Mining at Rust Flats found nothing"))


class ActionResolverRejectionTests(unittest.TestCase):
    def test_missing_wallet_is_invalid(self) -> None:
        world = _World(_actor())
        for wallet in (None, "", "   "):
            with self.assertRaises(InvalidArgument):
                world.resolver.resolve_action(wallet)

    def test_unknown_action_is_invalid(self) -> None:
        world = _World(_actor())
        with self.assertRaises(InvalidArgument):
            world.resolver.resolve_action(WALLET, action="FISH")

    def test_unknown_wallet_is_not_found(self) -> None:
        world = _World(_actor())
        with self.assertRaises(NotFound):
            world.resolver.resolve_action("nobody")

    def test_inactive_actor_is_not_found(self) -> None:
        world = _World(_actor(status=ActorStatus.BANNED))
        with self.assertRaises(NotFound):
            world.resolver.resolve_action(WALLET)
        self.assertEqual(100, world.actors.get("a1").energy)

    def test_one_energy_short_is_rejected_without_changes(self) -> None:
        world = _World(_actor(energy=9))

        with self.assertRaises(InsufficientResource) as ctx:
            world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertEqual(10, ctx.exception.cost)
        self.assertEqual(9, world.actors.get("a1").energy)
        self.assertEqual(0, world.transactions.count_for_actor("a1"))

    def test_injured_low_level_actor_cannot_afford_action(self) -> None:
        world = _World(_actor(level=1, health=30, energy=7))

        with self.assertRaises(InsufficientResource) as ctx:
            world.resolver.resolve_action(WALLET, MINE_SITE.id)

        payload = ctx.exception.to_payload()
        self.assertEqual(15, payload["energyCost"])
        self.assertEqual("DAMAGED_SYSTEMS_INCREASE_COST", payload["healthStatus"])
        self.assertEqual(7, payload["energy"])
        self.assertEqual(7, world.actors.get("a1").energy)

    def test_unknown_location_is_not_found(self) -> None:
        world = _World(_actor())
        with self.assertRaises(NotFound):
            world.resolver.resolve_action(WALLET, "loc-nowhere")

    def test_actor_without_location_and_no_override_is_not_found(self) -> None:
        world = _World(_actor(location_id=None))
        with self.assertRaises(NotFound):
            world.resolver.resolve_action(WALLET)

    def test_location_without_mining_is_unavailable(self) -> None:
        world = _World(_actor())

        with self.assertRaises(ActionUnavailable):
            world.resolver.resolve_action(WALLET, MARKET.id)

        self.assertEqual(100, world.actors.get("a1").energy)


class ActionResolverConcurrencyTests(unittest.TestCase):
    def test_conflict_is_recomputed_once(self) -> None:
        world = _World(_actor(energy=50))
        real_persistor = world.resolver.atomic_persistor
        calls = {"count": 0}

        def _racing_persistor(actor, expected_version, operations):
            calls["count"] += 1
            if calls["count"] == 1:
                # Another request spends energy first.
                stored = world.actors.get("a1")
                world.actors.compare_and_set(Actor(**{**stored.__dict__, "energy": 30}), stored.version)
            return real_persistor(actor, expected_version, operations)

        world.resolver.atomic_persistor = _racing_persistor

        outcome = world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertEqual(2, calls["count"])
        self.assertEqual(20, outcome.actor.energy)
        self.assertEqual(20, world.actors.get("a1").energy)
        self.assertEqual(1, world.transactions.count_for_actor("a1"))

    def test_second_conflict_raises(self) -> None:
        world = _World(_actor(energy=50))

        def _always_conflicts(actor, expected_version, operations):
            raise ConcurrencyConflict("stale", actorId=actor.id)

        world.resolver.atomic_persistor = _always_conflicts

        with self.assertRaises(ConcurrencyConflict):
            world.resolver.resolve_action(WALLET, MINE_SITE.id)
        self.assertEqual(50, world.actors.get("a1").energy)

    def test_failing_operation_rolls_back_everything(self) -> None:
        world = _World(_actor(energy=50))

        def _broken_append(record):
            def _operation(_session):
                raise RuntimeError("disk full")

            return _operation

        world.transactions.build_append_operation = _broken_append

        with self.assertRaises(StorageError):
            world.resolver.resolve_action(WALLET, MINE_SITE.id)

        self.assertEqual(50, world.actors.get("a1").energy)
        self.assertEqual(0, world.actors.get("a1").version)
        self.assertEqual([], world.inventory.list_for_actor("a1"))

    def test_read_failure_is_reported_as_storage_error(self) -> None:
        world = _World(_actor())

        def _offline(_wallet):
            raise OSError("connection reset")

        world.actors.get_by_wallet = _offline

        with self.assertRaises(StorageError):
            world.resolver.resolve_action(WALLET)


class ActionResolverSeedTests(unittest.TestCase):
    def test_seeded_rng_reproduces_outcomes(self) -> None:
        first = _World(_actor(energy=100), rng_factory=seeded_rng_factory(99))
        second = _World(_actor(energy=100), rng_factory=seeded_rng_factory(99))

        a = [first.resolver.resolve_action(WALLET).found for _ in range(8)]
        b = [second.resolver.resolve_action(WALLET).found for _ in range(8)]

        self.assertEqual(a, b)


class ActorStatsTests(unittest.TestCase):
    def test_stats_reports_derived_values(self) -> None:
        world = _World(_actor(level=12, health=80, energy=10, experience=500))

        view = world.resolver.stats(WALLET)

        self.assertEqual(8, view.cost)
        self.assertEqual(325, view.capacity)
        self.assertEqual(87, view.success_rate_percent)
        self.assertEqual("OPTIMAL", view.health_status)


if __name__ == "__main__":
    unittest.main()
