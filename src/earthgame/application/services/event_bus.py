from collections import defaultdict
import logging
from typing import Callable, DefaultDict, List, Type


Handler = Callable[[object], None]


class EventBus:
    """Synchronous in-process publisher; a failing handler never blocks the others."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[Type[object], List[tuple[int, int, Handler]]] = defaultdict(list)
        self._sequence = 0
        self._errors: List[Exception] = []
        self._logger = logging.getLogger(__name__)

    def subscribe(self, event_type: Type[object], handler: Handler, *, priority: int = 100) -> None:
        rows = self._handlers[event_type]
        rows.append((int(priority), self._sequence, handler))
        rows.sort(key=lambda row: (row[0], row[1]))
        self._sequence += 1

    def unsubscribe(self, event_type: Type[object], handler: Handler) -> bool:
        rows = self._handlers.get(event_type, [])
        kept = [row for row in rows if row[2] != handler]
        if len(kept) == len(rows):
            return False
        self._handlers[event_type] = kept
        return True

    def publish(self, event: object) -> List[Exception]:
        errors: List[Exception] = []
        event_name = type(event).__name__
        for priority, _, handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception as exc:
                errors.append(exc)
                self._logger.exception(
                    "Event handler failed; continuing with remaining handlers",
                    extra={
                        "event_type": event_name,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                        "priority": priority,
                    },
                )
        self._errors = errors
        return list(errors)

    def last_publish_errors(self) -> List[Exception]:
        return list(self._errors)
