from flask import Blueprint, request
from helpdesk.decorators.auth import require_actor, current_actor
from helpdesk.services import tickets as ticket_service
from helpdesk.services.audit import ticket_history
from helpdesk.utils.validation import json_body

tickets_bp = Blueprint('tickets', __name__)


@tickets_bp.post('')
@require_actor
def create_ticket():
    ticket = ticket_service.create_ticket(current_actor(), json_body())
    return {'message': 'Ticket created successfully', 'ticket': ticket.to_json()}, 201


@tickets_bp.get('')
@require_actor
def list_tickets():
    return ticket_service.list_tickets(current_actor(), request.args)


@tickets_bp.get('/stats/overview')
@require_actor
def stats_overview():
    return {'stats': ticket_service.get_stats(current_actor())}


@tickets_bp.get('/<int:ticket_id>')
@require_actor
def get_ticket(ticket_id: int):
    ticket = ticket_service.get_ticket(current_actor(), ticket_id)
    return {'ticket': ticket.to_json(updates=ticket_history(ticket.id))}


@tickets_bp.put('/<int:ticket_id>')
@require_actor
def update_ticket(ticket_id: int):
    ticket = ticket_service.update_ticket(current_actor(), ticket_id, json_body())
    return {'message': 'Ticket updated successfully', 'ticket': ticket.to_json()}


@tickets_bp.post('/<int:ticket_id>/comments')
@require_actor
def add_comment(ticket_id: int):
    entry = ticket_service.add_comment(current_actor(), ticket_id, json_body().get('comment'))
    return {'message': 'Comment added successfully', 'update': entry.to_json()}, 201


@tickets_bp.post('/<int:ticket_id>/assign')
@require_actor
def assign_ticket(ticket_id: int):
    ticket = ticket_service.assign_ticket(current_actor(), ticket_id, json_body().get('assigned_to'))
    return {'message': 'Ticket assigned successfully', 'ticket': ticket.to_json()}


@tickets_bp.delete('/<int:ticket_id>')
@require_actor
def delete_ticket(ticket_id: int):
    ticket_service.delete_ticket(current_actor(), ticket_id)
    return {'message': 'Ticket deleted successfully'}
