import pytest
from helpdesk.errors import Forbidden, NotFound, ValidationError
from helpdesk.models.ticket import Ticket
from helpdesk.models.ticket_update import TicketUpdate
from helpdesk.services import tickets as svc
from tests.test_utils_seed import seed_actors, create_ticket_row
from tests.test_lifecycle_helpers import entries, outbox

VALID = {'title': '  Printer jam  ', 'description': 'Paper is stuck in tray two.', 'category': 'hardware'}


def test_create_defaults_priority_and_status(app_context):
    a = seed_actors()
    t = svc.create_ticket(a['u1'], VALID)
    assert t.status == 'open'
    assert t.priority == 'medium'
    assert t.requester_id == a['u1'].id
    assert t.title == 'Printer jam'
    assert entries(t.id) == []
    [mail] = outbox(t.id)
    assert mail.recipient_email == 'u1@example.com'
    assert mail.subject == f'New Support Ticket Created - #{t.id}'
    assert mail.status == 'pending'


def test_create_reports_every_violation(app_context):
    a = seed_actors()
    with pytest.raises(ValidationError) as exc:
        svc.create_ticket(a['u1'], {'title': 'ab', 'description': 'short', 'category': 'printer', 'priority': 'urgent'})
    assert len(exc.value.errors) == 4


def test_update_n_changed_fields_gives_n_entries(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    svc.update_ticket(a['admin'], t.id, {'status': 'in_progress', 'priority': 'high', 'assigned_to': a['it1'].id})
    by_type = {e.update_type: e for e in entries(t.id)}
    assert set(by_type) == {'status_change', 'priority_change', 'assignment'}
    assert (by_type['status_change'].old_value, by_type['status_change'].new_value) == ('open', 'in_progress')
    assert (by_type['priority_change'].old_value, by_type['priority_change'].new_value) == ('medium', 'high')
    assert (by_type['assignment'].old_value, by_type['assignment'].new_value) == (None, str(a['it1'].id))
    assert all(e.updated_by == a['admin'].id for e in by_type.values())


def test_identical_update_is_idempotent(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'], status='in_progress', priority='high', assignee=a['it1'])
    svc.update_ticket(a['admin'], t.id, {'status': 'in_progress', 'priority': 'high', 'assigned_to': a['it1'].id})
    assert entries(t.id) == []
    assert outbox(t.id) == []


def test_end_user_cannot_touch_someone_elses_ticket(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    with pytest.raises(Forbidden):
        svc.update_ticket(a['u2'], t.id, {'priority': 'critical'})
    assert entries(t.id) == []
    assert t.priority == 'medium'


def test_end_user_loses_edit_right_once_ticket_leaves_open(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'], status='in_progress')
    with pytest.raises(Forbidden):
        svc.update_ticket(a['u1'], t.id, {'title': 'Printer still jammed'})


def test_privileged_fields_silently_dropped_for_end_user(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    updated = svc.update_ticket(a['u1'], t.id, {'title': 'Printer jam upstairs', 'status': 'closed', 'assigned_to': a['it1'].id})
    assert updated.title == 'Printer jam upstairs'
    assert updated.status == 'open'
    assert updated.assigned_to is None
    assert entries(t.id) == []


def test_it_user_update_cannot_assign_someone_else(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    updated = svc.update_ticket(a['it1'], t.id, {'assigned_to': a['it2'].id, 'priority': 'low'})
    assert updated.assigned_to is None
    assert [e.update_type for e in entries(t.id)] == ['priority_change']


def test_update_missing_ticket_is_not_found(app_context):
    a = seed_actors()
    with pytest.raises(NotFound):
        svc.update_ticket(a['admin'], 9999, {'status': 'closed'})


def test_resolution_timestamps_are_set_once(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    svc.update_ticket(a['it1'], t.id, {'status': 'resolved'})
    first_resolved = t.resolved_at
    assert first_resolved is not None and t.closed_at is None
    svc.update_ticket(a['it1'], t.id, {'status': 'open'})
    svc.update_ticket(a['it1'], t.id, {'status': 'resolved'})
    svc.update_ticket(a['it1'], t.id, {'status': 'closed'})
    first_closed = t.closed_at
    svc.update_ticket(a['it1'], t.id, {'status': 'open'})
    svc.update_ticket(a['it1'], t.id, {'status': 'closed'})
    assert t.resolved_at == first_resolved
    assert t.closed_at == first_closed
    assert len(entries(t.id, TicketUpdate.TYPE_STATUS_CHANGE)) == 6


def test_closed_can_be_made_terminal(app_context, monkeypatch):
    monkeypatch.setitem(app_context.config, 'TICKETS_LOCK_CLOSED', True)
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    svc.update_ticket(a['admin'], t.id, {'status': 'closed'})
    with pytest.raises(ValidationError):
        svc.update_ticket(a['admin'], t.id, {'status': 'open'})
    assert t.status == 'closed'


def test_assign_to_unknown_user_is_validation_error(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    with pytest.raises(ValidationError):
        svc.assign_ticket(a['admin'], t.id, 424242)
    assert entries(t.id) == []


def test_it_user_assigning_other_is_forbidden(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    with pytest.raises(Forbidden):
        svc.assign_ticket(a['it1'], t.id, a['it2'].id)
    assert t.assigned_to is None


def test_it_user_takes_ticket_and_both_parties_hear_about_it(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    svc.assign_ticket(a['it1'], t.id, a['it1'].id)
    assert t.assigned_to == a['it1'].id
    [entry] = entries(t.id, TicketUpdate.TYPE_ASSIGNMENT)
    assert entry.new_value == str(a['it1'].id)
    assert {m.recipient_email for m in outbox(t.id)} == {'u1@example.com', 'it1@example.com'}


def test_repeated_assignment_is_still_recorded(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'], assignee=a['it1'])
    svc.assign_ticket(a['it1'], t.id, a['it1'].id)
    assert t.assigned_to == a['it1'].id
    [entry] = entries(t.id, TicketUpdate.TYPE_ASSIGNMENT)
    assert (entry.old_value, entry.new_value) == (str(a['it1'].id), str(a['it1'].id))
    assert {m.recipient_email for m in outbox(t.id)} == {'u1@example.com', 'it1@example.com'}


def test_admin_can_unassign(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'], assignee=a['it1'])
    svc.assign_ticket(a['admin'], t.id, None)
    assert t.assigned_to is None
    [entry] = entries(t.id)
    assert (entry.old_value, entry.new_value) == (str(a['it1'].id), None)
    assert outbox(t.id) == []


def test_comment_text_is_trimmed_and_bounded(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    with pytest.raises(ValidationError):
        svc.add_comment(a['it1'], t.id, '   ')
    with pytest.raises(ValidationError):
        svc.add_comment(a['it1'], t.id, 'x' * 2001)
    entry = svc.add_comment(a['it1'], t.id, '  Rebooted the printer  ')
    assert entry.comment == 'Rebooted the printer'
    [mail] = outbox(t.id)
    assert mail.subject == f'New Comment on Support Ticket #{t.id}'


def test_other_end_user_cannot_comment(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    with pytest.raises(Forbidden):
        svc.add_comment(a['u2'], t.id, 'me too')


def test_notification_failure_does_not_undo_the_update(app_context, monkeypatch):
    from helpdesk.services import notifications

    def broken_submit(*args, **kwargs):
        raise RuntimeError('outbox unavailable')

    monkeypatch.setattr(notifications, 'submit', broken_submit)
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    updated = svc.update_ticket(a['admin'], t.id, {'status': 'resolved'})
    assert updated.status == 'resolved'
    assert updated.resolved_at is not None
    assert len(entries(t.id)) == 1
    assert outbox(t.id) == []


def test_delete_is_admin_only_and_cascades(app_context):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    svc.add_comment(a['it1'], t.id, 'Looking into it')
    with pytest.raises(Forbidden):
        svc.delete_ticket(a['it1'], t.id)
    svc.delete_ticket(a['admin'], t.id)
    assert entries(t.id) == []
    assert outbox(t.id) == []
    with pytest.raises(NotFound):
        svc.delete_ticket(a['admin'], t.id)


def test_stats_counts(app_context):
    a = seed_actors()
    create_ticket_row(a['u1'])
    create_ticket_row(a['u1'], status='in_progress', assignee=a['it1'])
    create_ticket_row(a['u2'], status='in_progress')
    create_ticket_row(a['u2'], status='resolved', assignee=a['it1'])
    create_ticket_row(a['u2'], status='closed')
    stats = svc.get_stats(a['it1'])
    assert stats == {
        'total': 5,
        'open': 1,
        'in_progress': 2,
        'resolved': 1,
        'closed': 1,
        'unassigned': 2,
        'assigned_to_me': 2,
    }
    with pytest.raises(Forbidden):
        svc.get_stats(a['u1'])
