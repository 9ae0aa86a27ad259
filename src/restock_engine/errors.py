"""Error conditions raised by the replenishment engine.

Validation problems, stale state and backing-store failures are separate
classes so callers (and the HTTP layer) can react to each differently:
validation errors are shown to the operator, stale-state errors mean
"refetch and retry", store errors are transient.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class FieldError:
    """One field-level validation failure."""
    field: str
    message: str

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class RestockError(Exception):
    """Base class for all engine errors."""


class InvalidInput(RestockError):
    """A numeric or structural input is outside its allowed domain."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    @property
    def errors(self) -> list[FieldError]:
        return [FieldError(self.field, self.message)]


class RuleValidationError(RestockError):
    """A reorder rule violates one or more invariants; nothing was persisted."""

    def __init__(self, errors: list[FieldError]):
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))
        self.errors = errors


class NotFound(RestockError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key


class InvalidTransition(RestockError):
    """Lifecycle transition attempted from a state that does not allow it."""

    def __init__(self, order_id: str | None, current: str, attempted: str):
        target = f"purchase order {order_id}" if order_id else "purchase order"
        super().__init__(f"Cannot {attempted} {target} in status '{current}'")
        self.order_id = order_id
        self.current = current
        self.attempted = attempted


class ConcurrentModification(RestockError):
    """The row changed between read and conditional write."""

    def __init__(self, order_id: str, expected_status: str):
        super().__init__(
            f"Purchase order {order_id} was modified concurrently "
            f"(expected status '{expected_status}'); refetch and retry"
        )
        self.order_id = order_id
        self.expected_status = expected_status


class BackingStoreError(RestockError):
    """Transient failure talking to the database."""
