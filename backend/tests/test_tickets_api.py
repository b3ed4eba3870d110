from helpdesk import close_db
from tests.test_utils_seed import seed_actors, create_ticket_row
from tests.test_lifecycle_helpers import jwt_headers, create_ticket_via_api, entries, outbox


def test_scenario_a_end_user_creates_ticket(app_context, client):
    a = seed_actors()
    body = create_ticket_via_api(client, jwt_headers(a['u1']))
    assert body['priority'] == 'medium'
    assert body['requester_id'] == a['u1'].id
    assert body['requester']['email'] == 'u1@example.com'
    assert body['assignee'] is None
    got = client.get(f"/tickets/{body['id']}", headers=jwt_headers(a['u1'])).get_json()['ticket']
    for key in ('title', 'description', 'category', 'priority', 'status', 'requester_id'):
        assert got[key] == body[key]
    assert got['updates'] == []


def test_scenario_b_it_user_cannot_assign_colleague(app_context, client):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    resp = client.post(f'/tickets/{t.id}/assign', json={'assigned_to': a['it2'].id}, headers=jwt_headers(a['it1']))
    assert resp.status_code == 403
    assert resp.get_json()['error']['kind'] == 'forbidden'
    assert client.get(f'/tickets/{t.id}', headers=jwt_headers(a['admin'])).get_json()['ticket']['assigned_to'] is None


def test_scenario_c_admin_resolves_ticket(app_context, client):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    resp = client.put(f'/tickets/{t.id}', json={'status': 'resolved'}, headers=jwt_headers(a['admin']))
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()['ticket']
    assert body['status'] == 'resolved'
    assert body['resolved_at'] is not None
    [entry] = entries(t.id)
    assert (entry.update_type, entry.old_value, entry.new_value) == ('status_change', 'open', 'resolved')
    [mail] = outbox(t.id)
    assert mail.recipient_email == 'u1@example.com'
    assert mail.subject == f'Support Ticket #{t.id} Status Updated - resolved'


def test_scenario_d_requester_comment_is_not_mailed_back(app_context, client):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    resp = client.post(f'/tickets/{t.id}/comments', json={'comment': 'still broken'}, headers=jwt_headers(a['u1']))
    assert resp.status_code == 201
    update = resp.get_json()['update']
    assert update['update_type'] == 'comment'
    assert update['comment'] == 'still broken'
    assert update['updater']['id'] == a['u1'].id
    assert outbox(t.id) == []


def test_timestamps_read_back_from_the_store_keep_utc_offset(app_context, client):
    a = seed_actors()
    admin = jwt_headers(a['admin'])
    body = create_ticket_via_api(client, jwt_headers(a['u1']))
    resolved = client.put(f"/tickets/{body['id']}", json={'status': 'resolved'}, headers=admin).get_json()['ticket']
    assert resolved['resolved_at'].endswith('+00:00')
    # Drop the identity map so the next read comes from the database
    close_db()
    fetched = client.get(f"/tickets/{body['id']}", headers=admin).get_json()['ticket']
    for key in ('resolved_at', 'created_at', 'updated_at'):
        assert fetched[key] == resolved[key]
    assert fetched['requester']['email'] == 'u1@example.com'
    assert all(u['created_at'].endswith('+00:00') for u in fetched['updates'])


def test_get_ticket_history_is_ordered(app_context, client):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    admin = jwt_headers(a['admin'])
    client.put(f'/tickets/{t.id}', json={'status': 'in_progress'}, headers=admin)
    client.post(f'/tickets/{t.id}/comments', json={'comment': 'On it'}, headers=admin)
    client.put(f'/tickets/{t.id}', json={'priority': 'critical'}, headers=admin)
    updates = client.get(f'/tickets/{t.id}', headers=jwt_headers(a['u1'])).get_json()['ticket']['updates']
    assert [u['update_type'] for u in updates] == ['status_change', 'comment', 'priority_change']


def test_end_user_cannot_view_other_ticket(app_context, client):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    resp = client.get(f'/tickets/{t.id}', headers=jwt_headers(a['u2']))
    assert resp.status_code == 403
    resp = client.get('/tickets/9999', headers=jwt_headers(a['u2']))
    assert resp.status_code == 404


def test_list_scoped_to_requester_for_end_users(app_context, client):
    a = seed_actors()
    create_ticket_row(a['u1'], title='Mine one')
    create_ticket_row(a['u1'], title='Mine two')
    create_ticket_row(a['u2'], title='Not mine')
    # requester_id is ignored for end users
    body = client.get(f"/tickets?requester_id={a['u2'].id}", headers=jwt_headers(a['u1'])).get_json()
    assert {t['title'] for t in body['tickets']} == {'Mine one', 'Mine two'}
    assert body['pagination']['total_count'] == 2
    staff = client.get('/tickets', headers=jwt_headers(a['it1'])).get_json()
    assert staff['pagination']['total_count'] == 3


def test_list_filters_and_search(app_context, client):
    a = seed_actors()
    create_ticket_row(a['u1'], title='VPN drops', category='network', priority='high')
    create_ticket_row(a['u1'], title='Laptop fan loud', category='hardware', status='in_progress', assignee=a['it1'])
    create_ticket_row(a['u2'], title='Need VPN access', category='access')
    headers = jwt_headers(a['admin'])
    titles = lambda qs: [t['title'] for t in client.get(f'/tickets?{qs}', headers=headers).get_json()['tickets']]
    assert titles('category=network') == ['VPN drops']
    assert titles('status=in_progress') == ['Laptop fan loud']
    assert titles(f"assigned_to={a['it1'].id}") == ['Laptop fan loud']
    assert titles('search=vpn&sort=title') == ['Need VPN access', 'VPN drops']
    assert titles(f"requester_id={a['u2'].id}") == ['Need VPN access']


def test_list_rejects_bad_filters(app_context, client):
    a = seed_actors()
    resp = client.get('/tickets?status=pending&priority=urgent', headers=jwt_headers(a['admin']))
    assert resp.status_code == 400
    assert len(resp.get_json()['error']['errors']) == 2
    resp = client.get('/tickets?sort=-colour', headers=jwt_headers(a['admin']))
    assert resp.status_code == 400


def test_list_pagination(app_context, client):
    a = seed_actors()
    for i in range(5):
        create_ticket_row(a['u1'], title=f'Ticket {i}')
    headers = jwt_headers(a['u1'])
    body = client.get('/tickets?page=2&page_size=2&sort=id', headers=headers).get_json()
    assert [t['title'] for t in body['tickets']] == ['Ticket 2', 'Ticket 3']
    assert body['pagination'] == {
        'current_page': 2,
        'page_size': 2,
        'total_pages': 3,
        'total_count': 5,
        'returned': 2,
        'has_next': True,
        'has_prev': True,
    }
    last = client.get('/tickets?page=3&page_size=2', headers=headers).get_json()['pagination']
    assert last['has_next'] is False
    assert client.get('/tickets?page=abc', headers=headers).status_code == 400


def test_priority_and_status_sort_by_rank_not_name(app_context, client):
    a = seed_actors()
    create_ticket_row(a['u1'], title='Mouse squeaks', priority='low', status='closed')
    create_ticket_row(a['u1'], title='Server down', priority='critical')
    create_ticket_row(a['u1'], title='Monitor flicker', priority='medium', status='in_progress')
    create_ticket_row(a['u1'], title='VPN slow', priority='high', status='resolved')
    headers = jwt_headers(a['it1'])
    titles = lambda qs: [t['title'] for t in client.get(f'/tickets?{qs}', headers=headers).get_json()['tickets']]
    assert titles('sort=-priority') == ['Server down', 'VPN slow', 'Monitor flicker', 'Mouse squeaks']
    assert titles('sort=status') == ['Server down', 'Monitor flicker', 'VPN slow', 'Mouse squeaks']
    resp = client.get('/tickets?sort=colour,-size', headers=headers)
    assert resp.get_json()['error']['errors'] == ['Invalid sort field colour', 'Invalid sort field size']


def test_newest_first_by_default(app_context, client):
    a = seed_actors()
    headers = jwt_headers(a['u1'])
    first = create_ticket_via_api(client, headers, title='Older ticket')
    second = create_ticket_via_api(client, headers, title='Newer ticket')
    ids = [t['id'] for t in client.get('/tickets', headers=headers).get_json()['tickets']]
    assert ids == [second['id'], first['id']]


def test_assign_endpoint_notifies_requester_and_assignee(app_context, client):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    resp = client.post(f'/tickets/{t.id}/assign', json={'assigned_to': a['it2'].id}, headers=jwt_headers(a['admin']))
    assert resp.status_code == 200
    assert resp.get_json()['ticket']['assignee']['email'] == 'it2@example.com'
    subjects = {m.subject for m in outbox(t.id)}
    assert subjects == {
        f'Your Support Ticket #{t.id} Has Been Assigned',
        f'Support Ticket #{t.id} Assigned to You',
    }


def test_assign_rejects_non_integer_ids(app_context, client):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    resp = client.post(f'/tickets/{t.id}/assign', json={'assigned_to': 'it2'}, headers=jwt_headers(a['admin']))
    assert resp.status_code == 400
    assert resp.get_json()['error']['kind'] == 'validation_error'


def test_end_user_cannot_assign_or_delete(app_context, client):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    headers = jwt_headers(a['u1'])
    assert client.post(f'/tickets/{t.id}/assign', json={'assigned_to': a['u1'].id}, headers=headers).status_code == 403
    assert client.delete(f'/tickets/{t.id}', headers=headers).status_code == 403


def test_delete_ticket(app_context, client):
    a = seed_actors()
    t = create_ticket_row(a['u1'])
    resp = client.delete(f'/tickets/{t.id}', headers=jwt_headers(a['admin']))
    assert resp.status_code == 200
    assert client.get(f'/tickets/{t.id}', headers=jwt_headers(a['admin'])).status_code == 404


def test_stats_endpoint(app_context, client):
    a = seed_actors()
    create_ticket_row(a['u1'])
    create_ticket_row(a['u1'], status='resolved', assignee=a['it1'])
    stats = client.get('/tickets/stats/overview', headers=jwt_headers(a['it1'])).get_json()['stats']
    assert stats['total'] == 2
    assert stats['unassigned'] == 1
    assert stats['assigned_to_me'] == 1
    assert client.get('/tickets/stats/overview', headers=jwt_headers(a['u1'])).status_code == 403


def test_requests_without_token_are_unauthorized(client):
    resp = client.get('/tickets')
    assert resp.status_code == 401
    assert resp.get_json()['error']['kind'] == 'unauthorized'
