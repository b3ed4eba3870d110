from flask import Blueprint, request
from helpdesk.decorators.auth import require_actor, current_actor
from helpdesk.services import notifications as notification_service
from helpdesk.utils.validation import json_body

notifications_bp = Blueprint('notifications', __name__)


@notifications_bp.get('')
@require_actor
def list_notifications():
    return notification_service.list_notifications(current_actor(), request.args)


@notifications_bp.post('/retry-failed')
@require_actor
def retry_failed():
    count = notification_service.retry_failed(current_actor(), json_body().get('ticket_id'))
    return {'message': f'{count} failed notifications queued for retry', 'count': count}
