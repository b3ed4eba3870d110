"""Ticket lifecycle operations: create, update, assign, comment, delete, stats.

Each operation checks authorization first, then validates its input (collecting
every violation), then mutates the ticket and appends audit entries in a single
commit. Notifications are submitted after that commit; a failure to queue one is
logged and never undoes the ticket change.
"""
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional
from flask import current_app
from sqlalchemy import func, or_, select
from helpdesk import get_db
from helpdesk.errors import Forbidden, NotFound
from helpdesk.constants.roles import Role
from helpdesk.models.ticket import Ticket
from helpdesk.models.ticket_update import TicketUpdate
from helpdesk.models.user import User
from helpdesk.services import notifications, policy
from helpdesk.services.audit import record_update
from helpdesk.utils.clock import utcnow
from helpdesk.utils.filters import apply_filters
from helpdesk.utils.lifecycle import stamp_resolution, status_fsm
from helpdesk.utils.listing import apply_pagination, build_list_payload, parse_pagination
from helpdesk.utils.sorting import apply_sort
from helpdesk.utils.validation import (
    COMMENT_LENGTH, check_choice, check_positive_int, check_text, raise_if_errors,
)

EDITABLE_FIELDS = ('title', 'description', 'category', 'priority')
PRIVILEGED_FIELDS = ('status', 'assigned_to')


def _load_ticket(ticket_id: int) -> Ticket:
    ticket = get_db().get(Ticket, ticket_id)
    if ticket is None:
        raise NotFound(description='Ticket not found')
    return ticket


def _load_assignee(errors: List[str], assignee_id: Optional[int]) -> Optional[User]:
    if assignee_id is None:
        return None
    user = get_db().get(User, assignee_id)
    if user is None:
        errors.append('assigned_to references an unknown user')
    return user


def _notify(send, *args):
    """Queue a notification; failures are logged and the triggering mutation stands."""
    try:
        send(*args)
    except Exception:
        get_db().rollback()
        current_app.logger.exception('Failed to queue %s notification', send.__name__)


def _validate_ticket_fields(data: Mapping[str, Any], partial: bool) -> Dict[str, Any]:
    """Return the cleaned subset of ticket fields present in ``data``.

    On create (partial=False) title, description and category are required and only
    the four requester-editable fields are read.
    """
    errors: List[str] = []
    clean: Dict[str, Any] = {}
    fields = EDITABLE_FIELDS + (PRIVILEGED_FIELDS if partial else ())
    for field in fields:
        if field not in data:
            if not partial and field != 'priority':
                errors.append(f'{field} is required')
            continue
        value = data[field]
        if field == 'title':
            clean[field] = check_text(errors, field, value, Ticket.TITLE_LENGTH)
        elif field == 'description':
            clean[field] = check_text(errors, field, value, Ticket.DESCRIPTION_LENGTH)
        elif field == 'category':
            clean[field] = check_choice(errors, field, value, Ticket.ALL_CATEGORIES)
        elif field == 'priority':
            clean[field] = check_choice(errors, field, value, Ticket.ALL_PRIORITIES)
        elif field == 'status':
            clean[field] = check_choice(errors, field, value, Ticket.ALL_STATUSES)
        elif field == 'assigned_to':
            clean[field] = check_positive_int(errors, field, value, nullable=True)
    raise_if_errors(errors)
    return clean


def create_ticket(actor: User, data: Mapping[str, Any]) -> Ticket:
    if not policy.can_create_ticket(actor):
        raise Forbidden(description='Insufficient permissions to create tickets')
    fields = _validate_ticket_fields(data, partial=False)
    session = get_db()
    ticket = Ticket(
        title=fields['title'],
        description=fields['description'],
        category=fields['category'],
        priority=fields.get('priority') or Ticket.PRIORITY_MEDIUM,
        status=Ticket.STATUS_OPEN,
        requester=actor,
    )
    session.add(ticket)
    session.commit()
    current_app.logger.info('New ticket created by %s: #%s', actor.email, ticket.id)
    _notify(notifications.notify_ticket_created, ticket)
    return ticket


def get_ticket(actor: User, ticket_id: int) -> Ticket:
    ticket = _load_ticket(ticket_id)
    if not policy.can_view_ticket(actor, ticket):
        raise Forbidden(description='Access denied to this ticket')
    return ticket


def update_ticket(actor: User, ticket_id: int, data: Mapping[str, Any]) -> Ticket:
    """Partial update. Privileged fields the actor may not set are dropped without error."""
    ticket = _load_ticket(ticket_id)
    if not policy.can_edit_ticket(actor, ticket):
        raise Forbidden(description='Insufficient permissions to modify this ticket')
    changes = _validate_ticket_fields(data, partial=True)

    if 'status' in changes and not policy.can_edit_status(actor, ticket):
        changes.pop('status')
    if 'assigned_to' in changes and not policy.can_assign(actor, changes['assigned_to']):
        changes.pop('assigned_to')

    errors: List[str] = []
    assignee = _load_assignee(errors, changes.get('assigned_to'))
    raise_if_errors(errors)
    if 'status' in changes:
        status_fsm(current_app.config.get('TICKETS_LOCK_CLOSED', False)).assert_can_transition(
            ticket.status, changes['status']
        )

    old_status, old_priority, old_assignee = ticket.status, ticket.priority, ticket.assigned_to
    for field in ('title', 'description', 'category', 'priority', 'status'):
        if field in changes:
            setattr(ticket, field, changes[field])
    if 'assigned_to' in changes:
        ticket.assigned_to = changes['assigned_to']
        ticket.assignee = assignee

    status_changed = ticket.status != old_status
    assignment_changed = ticket.assigned_to != old_assignee
    if status_changed:
        ticket.resolved_at, ticket.closed_at = stamp_resolution(ticket.status, ticket.resolved_at, ticket.closed_at, utcnow())
        record_update(ticket.id, actor.id, TicketUpdate.TYPE_STATUS_CHANGE, old_status, ticket.status)
    if ticket.priority != old_priority:
        record_update(ticket.id, actor.id, TicketUpdate.TYPE_PRIORITY_CHANGE, old_priority, ticket.priority)
    if assignment_changed:
        record_update(ticket.id, actor.id, TicketUpdate.TYPE_ASSIGNMENT, old_assignee, ticket.assigned_to)
    get_db().commit()
    current_app.logger.info('Ticket updated by %s: #%s', actor.email, ticket.id)

    if status_changed:
        _notify(notifications.notify_status_updated, ticket, old_status, ticket.status, actor)
    if assignment_changed and assignee is not None:
        _notify(notifications.notify_ticket_assigned, ticket, assignee)
    return ticket


def assign_ticket(actor: User, ticket_id: int, assignee_raw: Any) -> Ticket:
    """Dedicated assignment path: unlike update, assigning someone else as an IT user is Forbidden."""
    errors: List[str] = []
    assignee_id = check_positive_int(errors, 'assigned_to', assignee_raw, nullable=True)
    if not policy.can_assign(actor, assignee_id):
        if Role(actor.role) is Role.IT_USER:
            raise Forbidden(description='You can only assign tickets to yourself')
        raise Forbidden(description='Insufficient permissions to assign tickets')
    raise_if_errors(errors)
    ticket = _load_ticket(ticket_id)
    assignee = _load_assignee(errors, assignee_id)
    raise_if_errors(errors)

    # Every successful assign call is an audited event, even when it repeats the current assignee
    old_assignee = ticket.assigned_to
    ticket.assigned_to = assignee_id
    ticket.assignee = assignee
    record_update(ticket.id, actor.id, TicketUpdate.TYPE_ASSIGNMENT, old_assignee, assignee_id)
    get_db().commit()
    current_app.logger.info('Ticket #%s assigned by %s to user ID: %s', ticket.id, actor.email, assignee_id)
    if assignee is not None:
        _notify(notifications.notify_ticket_assigned, ticket, assignee)
    return ticket


def add_comment(actor: User, ticket_id: int, text: Any) -> TicketUpdate:
    ticket = _load_ticket(ticket_id)
    if not policy.can_comment(actor, ticket):
        raise Forbidden(description='Access denied to this ticket')
    errors: List[str] = []
    comment = check_text(errors, 'comment', text, COMMENT_LENGTH)
    raise_if_errors(errors)
    entry = record_update(ticket.id, actor.id, TicketUpdate.TYPE_COMMENT, comment=comment)
    entry.updater = actor
    get_db().commit()
    current_app.logger.info('Comment added to ticket #%s by %s', ticket.id, actor.email)
    # Only the requester hears about comments, and never about their own.
    _notify(notifications.notify_comment_added, ticket, actor, comment)
    return entry


def delete_ticket(actor: User, ticket_id: int) -> None:
    if not policy.can_delete_ticket(actor):
        raise Forbidden(description='Only IT administrators can delete tickets')
    ticket = _load_ticket(ticket_id)
    session = get_db()
    session.delete(ticket)
    session.commit()
    current_app.logger.info('Ticket deleted by %s: #%s', actor.email, ticket_id)


def get_stats(actor: User) -> Dict[str, int]:
    if not policy.can_view_stats(actor):
        raise Forbidden(description='Insufficient permissions')
    session = get_db()
    by_status = dict(session.execute(select(Ticket.status, func.count(Ticket.id)).group_by(Ticket.status)).all())
    unassigned = session.execute(
        select(func.count(Ticket.id)).where(Ticket.assigned_to.is_(None), Ticket.status.in_(Ticket.ACTIVE_STATUSES))
    ).scalar_one()
    mine = session.execute(select(func.count(Ticket.id)).where(Ticket.assigned_to == actor.id)).scalar_one()
    return {
        'total': sum(by_status.values()),
        'open': by_status.get(Ticket.STATUS_OPEN, 0),
        'in_progress': by_status.get(Ticket.STATUS_IN_PROGRESS, 0),
        'resolved': by_status.get(Ticket.STATUS_RESOLVED, 0),
        'closed': by_status.get(Ticket.STATUS_CLOSED, 0),
        'unassigned': unassigned,
        'assigned_to_me': mine,
    }


def _search(q, term: str):
    pattern = f"%{term}%"
    return q.filter(or_(Ticket.title.ilike(pattern), Ticket.description.ilike(pattern)))


TICKET_FILTERS = {
    'status': {'op': lambda q, v: q.filter(Ticket.status == v), 'validate': lambda v: v in Ticket.ALL_STATUSES},
    'category': {'op': lambda q, v: q.filter(Ticket.category == v), 'validate': lambda v: v in Ticket.ALL_CATEGORIES},
    'priority': {'op': lambda q, v: q.filter(Ticket.priority == v), 'validate': lambda v: v in Ticket.ALL_PRIORITIES},
    'assigned_to': {'op': lambda q, v: q.filter(Ticket.assigned_to == v), 'coerce': int},
    'requester_id': {'op': lambda q, v: q.filter(Ticket.requester_id == v), 'coerce': int},
    'search': {'op': _search, 'coerce': str.strip},
}

TICKET_SORTS = {
    'created_at': Ticket.created_at,
    'updated_at': Ticket.updated_at,
    'priority': (Ticket.priority, Ticket.ALL_PRIORITIES),
    'status': (Ticket.status, Ticket.ALL_STATUSES),
    'title': Ticket.title,
    'id': Ticket.id,
}


def list_tickets(actor: User, args: Mapping[str, Any]):
    """Paged ticket listing; end users only ever see their own tickets, whatever they ask for."""
    page, page_size = parse_pagination(args)
    params = dict(args)
    q = get_db().query(Ticket)
    if not policy.can_list_all_tickets(actor):
        params.pop('requester_id', None)
        q = q.filter(Ticket.requester_id == actor.id)
    q = apply_filters(q, TICKET_FILTERS, params)
    q = apply_sort(q, args.get('sort'), TICKET_SORTS, [Ticket.created_at.desc(), Ticket.id.desc()], Ticket.id.asc())
    rows, total = apply_pagination(q, page, page_size)
    return build_list_payload('tickets', [t.to_json() for t in rows], total, page, page_size)

__all__ = [
    'create_ticket', 'get_ticket', 'update_ticket', 'assign_ticket', 'add_comment',
    'delete_ticket', 'get_stats', 'list_tickets',
]
