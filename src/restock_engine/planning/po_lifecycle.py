"""Purchase order lifecycle — the state machine, without persistence.

    draft --approve--> sent --receive--> received
      |                 |
      +----cancel-------+----cancel----> cancelled

received and cancelled are terminal. The store layer calls plan_transition
before its conditional UPDATE so an invalid request never touches the row.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from restock_engine.errors import InvalidInput, InvalidTransition


class POStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class POAction(str, Enum):
    APPROVE = "approve"
    CANCEL = "cancel"
    RECEIVE = "receive"


TERMINAL_STATES = frozenset({POStatus.RECEIVED, POStatus.CANCELLED})

_TRANSITIONS: dict[POAction, dict[POStatus, POStatus]] = {
    POAction.APPROVE: {POStatus.DRAFT: POStatus.SENT},
    POAction.CANCEL: {POStatus.DRAFT: POStatus.CANCELLED, POStatus.SENT: POStatus.CANCELLED},
    POAction.RECEIVE: {POStatus.SENT: POStatus.RECEIVED},
}

# Timestamp column set by each action
TIMESTAMP_FIELDS: dict[POAction, str] = {
    POAction.APPROVE: "sent_at",
    POAction.CANCEL: "cancelled_at",
    POAction.RECEIVE: "received_at",
}


@dataclass(frozen=True)
class Transition:
    action: POAction
    source: POStatus
    target: POStatus

    @property
    def timestamp_field(self) -> str:
        return TIMESTAMP_FIELDS[self.action]


def plan_transition(current: str, action: str, order_id: str | None = None) -> Transition:
    """Resolve the target state or raise InvalidTransition.

    Unknown status strings are treated like any other invalid source state;
    an unknown action is InvalidInput.
    """
    try:
        act = POAction(action)
    except ValueError:
        raise InvalidInput("action", f"unknown action '{action}'") from None
    try:
        source = POStatus(current)
    except ValueError:
        raise InvalidTransition(order_id, current, act.value) from None

    target = _TRANSITIONS[act].get(source)
    if target is None:
        raise InvalidTransition(order_id, source.value, act.value)
    return Transition(action=act, source=source, target=target)


def allowed_actions(current: str) -> list[str]:
    """Actions that are valid from the given status."""
    return [a.value for a, table in _TRANSITIONS.items() if any(s.value == current for s in table)]


def is_terminal(status: str) -> bool:
    return status in {s.value for s in TERMINAL_STATES}
