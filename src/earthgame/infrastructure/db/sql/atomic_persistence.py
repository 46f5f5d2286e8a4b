from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from earthgame.domain.errors import ConcurrencyConflict, StorageError
from earthgame.domain.models.actor import Actor
from earthgame.domain.repositories import Operation
from .connection import SessionLocal
from .repos import sql_timestamp


def save_action_atomic(
    actor: Actor,
    expected_version: int,
    operations: Sequence[Operation] | None = None,
) -> Actor:
    """Debit the actor and apply dependent writes in one DB transaction.

    The actor row is only updated when its stored version still equals
    ``expected_version``; otherwise nothing is written.
    """
    try:
        with SessionLocal.begin() as session:
            result = session.execute(
                text(
                    """
                    UPDATE characters
                    SET energy = :energy,
                        current_version = current_version + 1,
                        updated_at = :updated_at
                    WHERE id = :aid AND current_version = :version
                    """
                ),
                {
                    "energy": int(actor.energy),
                    "updated_at": sql_timestamp(),
                    "aid": str(actor.id),
                    "version": int(expected_version),
                },
            )
            if result.rowcount != 1:
                raise ConcurrencyConflict(
                    "Character was modified by another request",
                    actorId=actor.id,
                    expectedVersion=int(expected_version),
                )
            for operation in operations or ():
                operation(session)
    except SQLAlchemyError as exc:
        raise StorageError(f"Action commit failed: {exc}") from exc

    return replace(actor, version=int(expected_version) + 1)
