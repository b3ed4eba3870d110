"""Pure ticket lifecycle rules, independent of the session and request context."""
from __future__ import annotations
from datetime import datetime
from typing import NamedTuple, Optional
from helpdesk.models.ticket import Ticket
from helpdesk.utils.fsm import TransitionValidator


class Resolution(NamedTuple):
    resolved_at: Optional[datetime]
    closed_at: Optional[datetime]


def stamp_resolution(status: str, resolved_at: Optional[datetime], closed_at: Optional[datetime], now: datetime) -> Resolution:
    """Return the (resolved_at, closed_at) pair after entering ``status``.

    Each stamp is set the first time its status is entered and never changes afterwards,
    including when a ticket is reopened and resolved or closed again.
    """
    if status == Ticket.STATUS_RESOLVED and resolved_at is None:
        resolved_at = now
    if status == Ticket.STATUS_CLOSED and closed_at is None:
        closed_at = now
    return Resolution(resolved_at, closed_at)


def status_fsm(lock_closed: bool = False) -> TransitionValidator:
    """Any status reaches any other; with ``lock_closed`` a closed ticket cannot be reopened."""
    terminal = (Ticket.STATUS_CLOSED,) if lock_closed else ()
    return TransitionValidator.fully_connected(Ticket.ALL_STATUSES, terminal=terminal)

__all__ = ['Resolution', 'stamp_resolution', 'status_fsm']
