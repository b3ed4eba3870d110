"""Authorization decisions over (actor, ticket, action).

Every function here is pure: it reads the actor's role/id and the ticket's
requester/status and returns a bool. No session access, no request context, no
raising on denial. Callers turn denials into Forbidden (or, for privileged fields
inside an otherwise-permitted update, silently drop the field).

Each decision handles all three roles explicitly and falls through to
``_unhandled`` so a new Role member is rejected loudly until it is given rules.
"""
from __future__ import annotations
from typing import NoReturn, Optional
from helpdesk.constants.roles import Role
from helpdesk.models.ticket import Ticket


def _role(actor) -> Role:
    return Role(actor.role)


def _unhandled(role) -> NoReturn:
    raise ValueError(f"No authorization rule for role {role!r}")


def _is_requester(actor, ticket: Ticket) -> bool:
    return ticket.requester_id == actor.id


def can_view_ticket(actor, ticket: Ticket) -> bool:
    role = _role(actor)
    if role is Role.END_USER:
        return _is_requester(actor, ticket)
    if role in (Role.IT_USER, Role.IT_ADMIN):
        return True
    _unhandled(role)


def can_create_ticket(actor) -> bool:
    role = _role(actor)
    if role in (Role.END_USER, Role.IT_USER, Role.IT_ADMIN):
        return True
    _unhandled(role)


def can_edit_ticket(actor, ticket: Ticket) -> bool:
    """Base edit right: title, description, category, priority."""
    role = _role(actor)
    if role is Role.END_USER:
        return _is_requester(actor, ticket) and ticket.status == Ticket.STATUS_OPEN
    if role in (Role.IT_USER, Role.IT_ADMIN):
        return True
    _unhandled(role)


def can_edit_status(actor, ticket: Ticket) -> bool:
    role = _role(actor)
    if role is Role.END_USER:
        return False
    if role in (Role.IT_USER, Role.IT_ADMIN):
        return True
    _unhandled(role)


def can_assign(actor, assignee_id: Optional[int]) -> bool:
    """IT users may only take a ticket themselves; admins may assign (or unassign) anyone."""
    role = _role(actor)
    if role is Role.END_USER:
        return False
    if role is Role.IT_USER:
        return assignee_id is not None and assignee_id == actor.id
    if role is Role.IT_ADMIN:
        return True
    _unhandled(role)


def can_delete_ticket(actor, ticket: Optional[Ticket] = None) -> bool:
    role = _role(actor)
    if role in (Role.END_USER, Role.IT_USER):
        return False
    if role is Role.IT_ADMIN:
        return True
    _unhandled(role)


def can_comment(actor, ticket: Ticket) -> bool:
    role = _role(actor)
    if role is Role.END_USER:
        return _is_requester(actor, ticket)
    if role in (Role.IT_USER, Role.IT_ADMIN):
        return True
    _unhandled(role)


def can_list_all_tickets(actor) -> bool:
    """False means the listing is restricted to the actor's own tickets."""
    role = _role(actor)
    if role is Role.END_USER:
        return False
    if role in (Role.IT_USER, Role.IT_ADMIN):
        return True
    _unhandled(role)


def can_view_stats(actor) -> bool:
    role = _role(actor)
    if role is Role.END_USER:
        return False
    if role in (Role.IT_USER, Role.IT_ADMIN):
        return True
    _unhandled(role)


def can_view_users(actor) -> bool:
    role = _role(actor)
    if role is Role.END_USER:
        return False
    if role in (Role.IT_USER, Role.IT_ADMIN):
        return True
    _unhandled(role)


def can_manage_users(actor) -> bool:
    """Create, edit, (de)activate and delete other actors."""
    role = _role(actor)
    if role in (Role.END_USER, Role.IT_USER):
        return False
    if role is Role.IT_ADMIN:
        return True
    _unhandled(role)


def can_manage_notifications(actor) -> bool:
    role = _role(actor)
    if role in (Role.END_USER, Role.IT_USER):
        return False
    if role is Role.IT_ADMIN:
        return True
    _unhandled(role)


def self_action_denied(actor, target_user_id: int) -> bool:
    """Deactivating or deleting must target a different actor than the caller."""
    return actor.id == target_user_id

__all__ = [
    'can_view_ticket', 'can_create_ticket', 'can_edit_ticket', 'can_edit_status', 'can_assign',
    'can_delete_ticket', 'can_comment', 'can_list_all_tickets', 'can_view_stats', 'can_view_users',
    'can_manage_users', 'can_manage_notifications', 'self_action_denied',
]
