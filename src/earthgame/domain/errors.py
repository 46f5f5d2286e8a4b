class ActionError(Exception):
    """Base for every failure the action resolver reports to callers."""

    kind = "ActionError"
    status_code = 500

    def __init__(self, message: str, **details: object) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details)

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"errorKind": self.kind, "message": self.message}
        payload.update(self.details)
        return payload


class InvalidArgument(ActionError):
    kind = "InvalidArgument"
    status_code = 400


class NotFound(ActionError):
    kind = "NotFound"
    status_code = 404


class InsufficientResource(ActionError):
    kind = "InsufficientResource"
    status_code = 400

    def __init__(self, message: str, *, cost: int, capacity: int, energy: int, health_status: str) -> None:
        super().__init__(
            message,
            energyCost=int(cost),
            maxEnergy=int(capacity),
            energy=int(energy),
            healthStatus=str(health_status),
        )
        self.cost = int(cost)
        self.capacity = int(capacity)
        self.energy = int(energy)
        self.health_status = str(health_status)


class ActionUnavailable(ActionError):
    kind = "ActionUnavailable"
    status_code = 400


class StorageError(ActionError):
    kind = "StorageError"
    status_code = 500


class ConcurrencyConflict(StorageError):
    kind = "ConcurrencyConflict"
    status_code = 409
