from __future__ import annotations
from typing import Any, List, Optional
from sqlalchemy import select
from helpdesk import get_db
from helpdesk.models.ticket_update import TicketUpdate


def _as_value(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def record_update(
    ticket_id: int,
    actor_id: int,
    update_type: str,
    old_value: Any = None,
    new_value: Any = None,
    comment: Optional[str] = None,
) -> TicketUpdate:
    """Append one audit entry for a ticket within the current DB session.

    Parameters:
      update_type: one of TicketUpdate.ALL_TYPES (status_change, assignment, comment, priority_change)
      old_value / new_value: stored in string form; None stays None (e.g. unassigned)
      comment: free text, used by comment entries
    """
    if update_type not in TicketUpdate.ALL_TYPES:
        raise ValueError(f"unknown update_type {update_type!r}")
    session = get_db()
    entry = TicketUpdate(
        ticket_id=ticket_id,
        updated_by=actor_id,
        update_type=update_type,
        old_value=_as_value(old_value),
        new_value=_as_value(new_value),
        comment=comment,
    )
    session.add(entry)
    # No commit here; caller's transaction boundary controls durability.
    return entry


def ticket_history(ticket_id: int) -> List[TicketUpdate]:
    """Audit entries for a ticket, oldest first."""
    session = get_db()
    stmt = (
        select(TicketUpdate)
        .where(TicketUpdate.ticket_id == ticket_id)
        .order_by(TicketUpdate.created_at.asc(), TicketUpdate.id.asc())
    )
    return list(session.execute(stmt).scalars())

__all__ = ['record_update', 'ticket_history']
