import re
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from seva_kendra.config import settings
from seva_kendra.errors import InternalError
from seva_kendra.main import app

client = TestClient(app)


def _submit(phone, name='Asha', service='Birth Certificate', **extra):
    payload = {'user_name': name, 'user_phone': phone, 'service_name': service, **extra}
    r = client.post('/api/applications', json=payload)
    assert r.status_code == 201, r.text
    return r.json()['data']


def _history(app_id):
    r = client.get(f'/api/applications/{app_id}/history')
    assert r.status_code == 200
    return r.json()['data']


def test_submit_then_approve_scenario(phone):
    created = _submit(phone, aadhaar_number='123412341234', address='Ward 4')
    assert created['status'] == 'pending'
    assert re.fullmatch(r'APP-\d+', created['registration_no'])
    assert created['fee'] == 30.0
    history = _history(created['id'])
    assert len(history) == 1
    assert history[0]['status'] == 'pending'
    assert history[0]['remarks'] == 'Application submitted successfully'

    r = client.put(f"/api/applications/{created['id']}/status", json={'status': 'approved', 'remarks': 'Verified'})
    assert r.status_code == 200
    updated = r.json()['data']
    assert updated['status'] == 'approved'
    assert updated['registration_no'] == created['registration_no']
    history = _history(created['id'])
    assert len(history) == 2
    assert history[1]['status'] == 'approved'
    assert history[1]['remarks'] == 'Verified'
    assert history[1]['updated_by'] == 'admin'


def test_submit_requires_name_phone_and_service(phone):
    for payload in (
        {'user_phone': phone, 'service_name': 'PAN Card'},
        {'user_name': 'Asha', 'service_name': 'PAN Card'},
        {'user_name': 'Asha', 'user_phone': phone},
        {'user_name': ' ', 'user_phone': phone, 'service_name': 'PAN Card'},
    ):
        r = client.post('/api/applications', json=payload)
        assert r.status_code == 400
        assert r.json() == {'success': False, 'message': 'User name, phone and service name are required'}


def test_submit_by_service_id_denormalizes_name(phone):
    services = client.get('/api/services').json()['data']
    pan = next(s for s in services if s['name'] == 'PAN Card')
    created = _submit(phone, service=None, service_id=pan['id'])
    assert created['service_id'] == pan['id']
    assert created['service_name'] == 'PAN Card'
    assert created['fee'] == 107.0


def test_submit_with_unknown_service_id_is_rejected(phone):
    r = client.post('/api/applications', json={'user_name': 'A', 'user_phone': phone, 'service_id': 987654})
    assert r.status_code == 400


def test_service_outside_catalog_is_kept_by_name(phone):
    created = _submit(phone, service='Marriage Certificate')
    assert created['service_id'] is None
    assert created['service_name'] == 'Marriage Certificate'
    assert created['fee'] is None


def test_update_status_unknown_id_is_404():
    r = client.put('/api/applications/99999999/status', json={'status': 'approved'})
    assert r.status_code == 404
    assert r.json() == {'success': False, 'message': 'Application not found'}
    assert client.get('/api/applications/99999999').status_code == 404
    assert client.get('/api/applications/99999999/history').status_code == 404


def test_update_status_requires_status(phone):
    created = _submit(phone)
    r = client.put(f"/api/applications/{created['id']}/status", json={'remarks': 'nothing'})
    assert r.status_code == 400
    assert r.json()['message'] == 'Status is required'
    assert len(_history(created['id'])) == 1


def test_each_update_appends_exactly_one_entry(phone):
    created = _submit(phone)
    statuses = ['under_review', 'approved', 'completed', 'reopened']
    previous = _history(created['id'])
    for n, status in enumerate(statuses, start=2):
        r = client.put(
            f"/api/applications/{created['id']}/status",
            json={'status': status, 'updated_by': 'clerk-7'},
        )
        assert r.status_code == 200
        current = _history(created['id'])
        assert len(current) == n
        # earlier entries are untouched
        assert current[:-1] == previous
        assert current[-1]['status'] == status
        assert current[-1]['remarks'] == 'Status updated'
        assert current[-1]['updated_by'] == 'clerk-7'
        previous = current
    detail = client.get(f"/api/applications/{created['id']}").json()['data']
    assert detail['status'] == 'reopened'


def test_phone_filter_returns_subset(phone):
    other = '8' + phone[1:]
    mine = [_submit(phone)['id'], _submit(phone, service='Income Certificate')['id']]
    _submit(other)
    everything = client.get('/api/applications').json()
    filtered = client.get('/api/applications', params={'phone': phone}).json()
    assert filtered['count'] == 2
    assert all(a['user_phone'] == phone for a in filtered['data'])
    all_ids = {a['id'] for a in everything['data']}
    assert {a['id'] for a in filtered['data']} <= all_ids
    # most recent first
    assert [a['id'] for a in filtered['data']] == list(reversed(mine))


def test_list_includes_service_fee(phone):
    _submit(phone, service='PAN Card')
    data = client.get('/api/applications', params={'phone': phone}).json()['data']
    assert data[0]['service_name'] == 'PAN Card'
    assert data[0]['fee'] == 107.0


def test_strict_status_mode_rejects_unknown_labels(phone, monkeypatch):
    monkeypatch.setattr(settings, 'STRICT_STATUS_VALIDATION', True)
    created = _submit(phone)
    r = client.put(f"/api/applications/{created['id']}/status", json={'status': 'teleported'})
    assert r.status_code == 400
    assert 'teleported' in r.json()['message']
    ok = client.put(f"/api/applications/{created['id']}/status", json={'status': 'rejected'})
    assert ok.status_code == 200
    assert len(_history(created['id'])) == 2


def test_persistence_failure_is_500(monkeypatch):
    def broken(self, phone=None):
        raise InternalError('database is locked')

    monkeypatch.setattr('seva_kendra.services.ApplicationService.list_applications', broken)
    r = client.get('/api/applications')
    assert r.status_code == 500
    assert r.json() == {'success': False, 'error': 'database is locked'}


def test_non_numeric_id_is_client_error():
    r = client.put('/api/applications/abc/status', json={'status': 'approved'})
    assert r.status_code == 400
    assert r.json()['success'] is False


def test_blank_phone_filter_matches_nothing(phone):
    _submit(phone)
    r = client.get('/api/applications', params={'phone': '   '})
    assert r.status_code == 200
    assert r.json()['count'] == 0
    assert r.json()['data'] == []


def test_database_failure_surfaces_underlying_message(monkeypatch):
    def broken(self, phone=None):
        raise OperationalError('SELECT', {}, Exception('disk I/O error'))

    monkeypatch.setattr('seva_kendra.repositories.ApplicationRepository.list_with_service', broken)
    r = client.get('/api/applications')
    assert r.status_code == 500
    assert r.json() == {'success': False, 'error': 'disk I/O error'}
