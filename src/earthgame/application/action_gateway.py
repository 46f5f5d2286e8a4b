"""Request/response boundary for the action resolver.

Translates the logical request ``{"walletAddress": ..., "locationId": ...}``
into a resolver call and every outcome, typed error or unexpected failure
into a ``(status, payload)`` pair a transport can send as-is.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from earthgame.application.services.action_resolver import ActionResolver
from earthgame.domain.errors import ActionError, InvalidArgument


logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Internal server error"


def _field(payload: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in payload and payload[name] is not None:
            return payload[name]
    return None


def handle_action_request(resolver: ActionResolver, payload: Mapping[str, Any] | None) -> tuple[int, dict[str, object]]:
    try:
        if payload is not None and not isinstance(payload, Mapping):
            raise InvalidArgument("Request body must be an object")
        request = payload or {}
        wallet = _field(request, "walletAddress", "wallet_address")
        location_id = _field(request, "locationId", "location_id")
        action = _field(request, "action") or "MINE"
        if wallet is not None and not isinstance(wallet, str):
            raise InvalidArgument("Wallet address must be a string")

        outcome = resolver.resolve_action(wallet, location_id=location_id, action=action)
        return 200, outcome.to_payload()
    except ActionError as exc:
        if exc.status_code >= 500:
            logger.error("Action failed in storage", extra={"error_kind": exc.kind, "detail": exc.message})
            return exc.status_code, {"errorKind": exc.kind, "message": GENERIC_FAILURE_MESSAGE}
        return exc.status_code, exc.to_payload()
    except Exception:
        logger.exception("Unexpected failure while resolving action")
        return 500, {"errorKind": "Internal", "message": GENERIC_FAILURE_MESSAGE}
