from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from earthgame.domain.errors import StorageError
from earthgame.domain.models.actor import Actor, ActorStatus
from earthgame.domain.models.inventory import InventoryLine
from earthgame.domain.models.item import CatalogItem, ItemCategory, Rarity
from earthgame.domain.models.location import ActionKind, Location
from earthgame.domain.models.transaction import TransactionRecord
from earthgame.domain.repositories import (
    ActorRepository,
    InventoryRepository,
    ItemCatalogRepository,
    LocationRepository,
    Operation,
    TransactionRepository,
)
from .connection import SessionLocal


def sql_timestamp(moment: datetime | None = None) -> str:
    value = moment or datetime.now(timezone.utc)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d %H:%M:%S")


def parse_timestamp(raw_value) -> datetime:
    if isinstance(raw_value, datetime):
        parsed = raw_value
    else:
        try:
            parsed = datetime.fromisoformat(str(raw_value))
        except (TypeError, ValueError):
            parsed = datetime.now(timezone.utc)
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)


def _dialect(session) -> str:
    return session.bind.dialect.name if session.bind is not None else "mysql"


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"{action} failed: {exc}") from exc


def _row_to_actor(row) -> Actor:
    return Actor(
        id=str(row.id),
        wallet_address=str(row.wallet_address),
        name=str(row.name or ""),
        level=row.level,
        health=row.health,
        energy=row.energy,
        experience=row.experience if row.experience is not None else 0,
        location_id=str(row.current_location_id) if row.current_location_id is not None else None,
        status=ActorStatus.normalize(row.status),
        coins=int(row.coins or 0),
        version=int(row.current_version or 0),
    )


def _row_to_location(row) -> Location:
    actions = {ActionKind.MINE} if bool(row.has_mining) else set()
    return Location(
        id=str(row.id),
        name=str(row.name),
        biome=row.biome,
        difficulty=int(row.difficulty or 1),
        supported_actions=frozenset(actions),
    )


def _row_to_item(row) -> CatalogItem:
    return CatalogItem(
        id=str(row.id),
        name=str(row.name),
        category=ItemCategory(str(row.category).upper()),
        rarity=Rarity.parse(row.rarity),
        description=str(row.description or ""),
    )


_ACTOR_COLUMNS = """
    id, wallet_address, name, level, health, energy, experience, coins,
    current_location_id, status, current_version
"""


class SqlActorRepository(ActorRepository):
    def get(self, actor_id: str) -> Optional[Actor]:
        with storage_errors("Loading character"), SessionLocal() as session:
            row = session.execute(
                text(f"SELECT {_ACTOR_COLUMNS} FROM characters WHERE id = :aid"),
                {"aid": str(actor_id)},
            ).first()
            return _row_to_actor(row) if row else None

    def get_by_wallet(self, wallet_address: str) -> Optional[Actor]:
        with storage_errors("Loading character by wallet"), SessionLocal() as session:
            row = session.execute(
                text(
                    f"""
                    SELECT {_ACTOR_COLUMNS}
                    FROM characters
                    WHERE wallet_address = :wallet
                    ORDER BY CASE WHEN status = 'ACTIVE' THEN 0 ELSE 1 END, id
                    """
                ),
                {"wallet": str(wallet_address)},
            ).first()
            return _row_to_actor(row) if row else None

    def save(self, actor: Actor) -> None:
        params = {
            "aid": str(actor.id),
            "wallet": actor.wallet_address,
            "name": actor.name,
            "level": actor.level,
            "health": actor.health,
            "energy": actor.energy,
            "experience": actor.experience,
            "coins": actor.coins,
            "loc": actor.location_id,
            "status": actor.status.value,
            "version": actor.version,
            "updated_at": sql_timestamp(),
        }
        with storage_errors("Saving character"), SessionLocal.begin() as session:
            if _dialect(session) == "mysql":
                statement = text(
                    """
                    INSERT INTO characters (id, wallet_address, name, level, health, energy, experience, coins, current_location_id, status, current_version, updated_at)
                    VALUES (:aid, :wallet, :name, :level, :health, :energy, :experience, :coins, :loc, :status, :version, :updated_at)
                    ON DUPLICATE KEY UPDATE
                        wallet_address = VALUES(wallet_address),
                        name = VALUES(name),
                        level = VALUES(level),
                        health = VALUES(health),
                        energy = VALUES(energy),
                        experience = VALUES(experience),
                        coins = VALUES(coins),
                        current_location_id = VALUES(current_location_id),
                        status = VALUES(status),
                        current_version = current_version + 1,
                        updated_at = VALUES(updated_at)
                    """
                )
            else:
                statement = text(
                    """
                    INSERT INTO characters (id, wallet_address, name, level, health, energy, experience, coins, current_location_id, status, current_version, updated_at)
                    VALUES (:aid, :wallet, :name, :level, :health, :energy, :experience, :coins, :loc, :status, :version, :updated_at)
                    ON CONFLICT(id) DO UPDATE SET
                        wallet_address = excluded.wallet_address,
                        name = excluded.name,
                        level = excluded.level,
                        health = excluded.health,
                        energy = excluded.energy,
                        experience = excluded.experience,
                        coins = excluded.coins,
                        current_location_id = excluded.current_location_id,
                        status = excluded.status,
                        current_version = characters.current_version + 1,
                        updated_at = excluded.updated_at
                    """
                )
            session.execute(statement, params)


class SqlLocationRepository(LocationRepository):
    def get(self, location_id: str) -> Optional[Location]:
        with storage_errors("Loading location"), SessionLocal() as session:
            row = session.execute(
                text("SELECT id, name, biome, difficulty, has_mining FROM locations WHERE id = :lid"),
                {"lid": str(location_id)},
            ).first()
            return _row_to_location(row) if row else None

    def list_all(self) -> List[Location]:
        with storage_errors("Listing locations"), SessionLocal() as session:
            rows = session.execute(
                text("SELECT id, name, biome, difficulty, has_mining FROM locations ORDER BY name")
            ).all()
            return [_row_to_location(row) for row in rows]


class SqlItemCatalogRepository(ItemCatalogRepository):
    def get(self, item_id: str) -> Optional[CatalogItem]:
        with storage_errors("Loading item"), SessionLocal() as session:
            row = session.execute(
                text("SELECT id, name, category, rarity, description FROM items WHERE id = :iid"),
                {"iid": str(item_id)},
            ).first()
            return _row_to_item(row) if row else None

    def list_by_category(self, category: ItemCategory) -> List[CatalogItem]:
        with storage_errors("Listing items"), SessionLocal() as session:
            rows = session.execute(
                text("SELECT id, name, category, rarity, description FROM items WHERE category = :category"),
                {"category": ItemCategory(category).value},
            ).all()
        items = [_row_to_item(row) for row in rows]
        return sorted(items, key=lambda item: (int(item.rarity or Rarity.COMMON), item.id))


class SqlInventoryRepository(InventoryRepository):
    def get_line(self, actor_id: str, item_id: str) -> Optional[InventoryLine]:
        with storage_errors("Loading inventory line"), SessionLocal() as session:
            row = session.execute(
                text(
                    """
                    SELECT id, character_id, item_id, quantity, is_equipped
                    FROM character_inventory
                    WHERE character_id = :aid AND item_id = :iid
                    """
                ),
                {"aid": str(actor_id), "iid": str(item_id)},
            ).first()
        if not row:
            return None
        return InventoryLine(
            id=str(row.id),
            actor_id=str(row.character_id),
            item_id=str(row.item_id),
            quantity=int(row.quantity),
            equipped=bool(row.is_equipped),
        )

    def list_for_actor(self, actor_id: str) -> List[InventoryLine]:
        with storage_errors("Listing inventory"), SessionLocal() as session:
            rows = session.execute(
                text(
                    """
                    SELECT id, character_id, item_id, quantity, is_equipped
                    FROM character_inventory
                    WHERE character_id = :aid
                    ORDER BY created_at, id
                    """
                ),
                {"aid": str(actor_id)},
            ).all()
        return [
            InventoryLine(
                id=str(row.id),
                actor_id=str(row.character_id),
                item_id=str(row.item_id),
                quantity=int(row.quantity),
                equipped=bool(row.is_equipped),
            )
            for row in rows
        ]

    def build_add_item_operation(self, *, actor_id: str, item_id: str, quantity: int = 1) -> Operation:
        def _operation(session) -> None:
            if _dialect(session) == "mysql":
                statement = text(
                    """
                    INSERT INTO character_inventory (id, character_id, item_id, quantity, is_equipped, created_at, updated_at)
                    VALUES (:lid, :aid, :iid, :qty, 0, :now, :now)
                    ON DUPLICATE KEY UPDATE
                        quantity = quantity + VALUES(quantity),
                        updated_at = VALUES(updated_at)
                    """
                )
            else:
                statement = text(
                    """
                    INSERT INTO character_inventory (id, character_id, item_id, quantity, is_equipped, created_at, updated_at)
                    VALUES (:lid, :aid, :iid, :qty, 0, :now, :now)
                    ON CONFLICT(character_id, item_id) DO UPDATE SET
                        quantity = character_inventory.quantity + excluded.quantity,
                        updated_at = excluded.updated_at
                    """
                )
            session.execute(
                statement,
                {
                    "lid": str(uuid.uuid4()),
                    "aid": str(actor_id),
                    "iid": str(item_id),
                    "qty": max(1, int(quantity)),
                    "now": sql_timestamp(),
                },
            )

        return _operation


class SqlTransactionRepository(TransactionRepository):
    def list_for_actor(self, actor_id: str) -> List[TransactionRecord]:
        with storage_errors("Listing transactions"), SessionLocal() as session:
            rows = session.execute(
                text(
                    """
                    SELECT id, character_id, type, item_id, quantity, description, energy_burn, created_at
                    FROM transactions
                    WHERE character_id = :aid
                    ORDER BY created_at, id
                    """
                ),
                {"aid": str(actor_id)},
            ).all()
        return [
            TransactionRecord(
                id=str(row.id),
                actor_id=str(row.character_id),
                action_type=str(row.type),
                item_id=str(row.item_id) if row.item_id is not None else None,
                quantity=int(row.quantity or 0),
                description=str(row.description),
                energy_cost=int(row.energy_burn or 0),
                created_at=parse_timestamp(row.created_at),
            )
            for row in rows
        ]

    def count_for_actor(self, actor_id: str, action_type: str | None = None) -> int:
        query = "SELECT COUNT(*) FROM transactions WHERE character_id = :aid"
        params: dict[str, object] = {"aid": str(actor_id)}
        if action_type is not None:
            query += " AND type = :kind"
            params["kind"] = str(action_type)
        with storage_errors("Counting transactions"), SessionLocal() as session:
            return int(session.execute(text(query), params).scalar() or 0)

    def build_append_operation(self, record: TransactionRecord) -> Operation:
        def _operation(session) -> None:
            session.execute(
                text(
                    """
                    INSERT INTO transactions (id, character_id, type, item_id, quantity, description, energy_burn, created_at)
                    VALUES (:tid, :aid, :kind, :iid, :qty, :description, :energy, :created_at)
                    """
                ),
                {
                    "tid": record.id,
                    "aid": record.actor_id,
                    "kind": record.action_type,
                    "iid": record.item_id,
                    "qty": record.quantity,
                    "description": record.description,
                    "energy": record.energy_cost,
                    "created_at": sql_timestamp(record.created_at),
                },
            )

        return _operation
