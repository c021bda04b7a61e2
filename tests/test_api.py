"""Escenarios de la API HTTP completa."""

from security import TokenService
from conftest import TEST_SECRET


def test_health(client):
    resp = client.get('/health')
    assert resp.status_code == 200
    body = resp.json()
    assert body['ok'] is True
    assert body['service'] == 'prosperity-compass-backend'
    assert body['time']


def test_signup_then_me(client):
    resp = client.post('/auth/signup', json={'email': 'a@x.com', 'password': 'password123'})
    assert resp.status_code == 201
    body = resp.json()
    user, token = body['user'], body['token']
    assert user['email'] == 'a@x.com'
    assert TokenService(TEST_SECRET).verify(token) == user['id']

    me = client.get('/me', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    assert me.json()['user'] == user


def test_responses_never_contain_password_material(client, signup):
    signup(email='a@x.com', password='password123', name='A')
    for resp in (
        client.get('/users'),
        client.post('/auth/login', json={'email': 'a@x.com', 'password': 'password123'}),
        client.post('/users', json={'email': 'b@x.com', 'password': 'password123'}),
    ):
        text = resp.text
        assert 'password' not in text.lower()
        assert '$2b$' not in text


def test_signup_validation_errors_are_per_field(client):
    resp = client.post('/auth/signup', json={'email': 'bad', 'password': '1'})
    assert resp.status_code == 400
    error = resp.json()['error']
    assert set(error['fieldErrors']) == {'email', 'password'}


def test_signup_invalid_json(client):
    resp = client.post('/auth/signup', content=b'{not json', headers={'Content-Type': 'application/json'})
    assert resp.status_code == 400
    assert resp.json()['error']['formErrors'] == ['Invalid JSON body']


def test_signup_duplicate_email(client, signup):
    signup(email='a@x.com')
    resp = client.post('/auth/signup', json={'email': 'a@x.com', 'password': 'password123'})
    assert resp.status_code == 400
    assert resp.json() == {'error': 'Email already registered'}


def test_login_success(client, signup):
    user, _ = signup(email='a@x.com', password='password123')
    resp = client.post('/auth/login', json={'email': 'a@x.com', 'password': 'password123'})
    assert resp.status_code == 200
    body = resp.json()
    assert body['user'] == user
    me = client.get('/me', headers={'Authorization': f"Bearer {body['token']}"})
    assert me.json()['user']['id'] == user['id']


def test_login_failures_are_indistinguishable(client, signup):
    signup(email='a@x.com', password='password123')
    wrong_password = client.post('/auth/login', json={'email': 'a@x.com', 'password': 'wrong-pass'})
    unknown_email = client.post('/auth/login', json={'email': 'nobody@x.com', 'password': 'password123'})
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {'error': 'Invalid email or password'}


def test_me_for_deleted_subject_returns_null(client):
    token = TokenService(TEST_SECRET).issue('ghost')
    resp = client.get('/me', headers={'Authorization': f'Bearer {token}'})
    assert resp.status_code == 200
    assert resp.json() == {'user': None}


def test_users_list_and_create(client):
    created = client.post('/users', json={'email': 'c@x.com', 'name': 'Carol', 'password': 'password123'})
    assert created.status_code == 201
    assert created.json()['name'] == 'Carol'
    listed = client.get('/users').json()
    assert [u['email'] for u in listed] == ['c@x.com']
    dup = client.post('/users', json={'email': 'c@x.com', 'password': 'password123'})
    assert dup.status_code == 400


def test_account_and_transaction_flow(client, signup):
    _, headers = signup()
    resp = client.post('/accounts', json={'name': 'Checking', 'type': 'depository'}, headers=headers)
    assert resp.status_code == 201
    account = resp.json()
    assert account['id']
    assert account['institution'] is None

    resp = client.post('/transactions', headers=headers, json={
        'accountId': account['id'], 'postedAt': '2024-01-01', 'amount': -18.75,
    })
    assert resp.status_code == 201
    tx = resp.json()
    assert tx['amount'] == '-18.75'
    assert tx['currency'] == 'USD'
    assert tx['pending'] is False
    assert tx['accountId'] == account['id']
    assert tx['postedAt'] == '2024-01-01T00:00:00Z'
    assert tx['createdAt'].endswith('Z')

    listed = client.get('/transactions', headers=headers, params={'accountId': account['id']}).json()
    assert [t['id'] for t in listed] == [tx['id']]
    assert client.get('/accounts', headers=headers).json() == [account]


def test_accounts_are_private(client, signup):
    _, alice = signup(email='alice@x.com')
    _, bob = signup(email='bob@x.com')
    client.post('/accounts', json={'name': 'Checking', 'type': 'depository'}, headers=alice)
    assert len(client.get('/accounts', headers=alice).json()) == 1
    assert client.get('/accounts', headers=bob).json() == []


def test_client_supplied_user_id_is_ignored(client, signup):
    alice_user, alice = signup(email='alice@x.com')
    _, bob = signup(email='bob@x.com')
    resp = client.post('/accounts', headers=bob,
                       json={'name': 'Sneaky', 'type': 'depository', 'userId': alice_user['id']})
    assert resp.status_code == 201
    assert resp.json()['userId'] != alice_user['id']
    assert client.get('/accounts', headers=alice).json() == []


def test_transaction_against_foreign_account_is_forbidden(client, signup):
    _, alice = signup(email='alice@x.com')
    _, bob = signup(email='bob@x.com')
    account = client.post('/accounts', json={'name': 'Checking', 'type': 'depository'}, headers=alice).json()
    resp = client.post('/transactions', headers=bob, json={
        'accountId': account['id'], 'postedAt': '2024-01-01', 'amount': '5',
    })
    assert resp.status_code == 403
    assert resp.json() == {'error': 'Account not found or not yours'}
    assert client.get('/transactions', headers=alice).json() == []


def test_transaction_validation_lists_all_fields(client, signup):
    _, headers = signup()
    resp = client.post('/transactions', headers=headers, json={'amount': 'abc'})
    assert resp.status_code == 400
    assert set(resp.json()['error']['fieldErrors']) == {'accountId', 'postedAt', 'amount'}


def test_validation_runs_before_identity(client):
    resp = client.post('/accounts', json={})
    assert resp.status_code == 400
    resp = client.post('/accounts', json={'name': 'Checking', 'type': 'depository'})
    assert resp.status_code == 401


def test_unknown_route_uses_error_envelope(client):
    resp = client.get('/nope')
    assert resp.status_code == 404
    assert 'error' in resp.json()


def test_account_form_with_blank_mask(client, signup):
    _, headers = signup()
    resp = client.post('/accounts', headers=headers, json={
        'name': 'Checking', 'institution': 'Seed Bank', 'type': 'depository',
        'subtype': 'checking', 'mask': '',
    })
    assert resp.status_code == 201, resp.text
    assert resp.json()['mask'] is None


def test_writes_succeed_and_report_utc_timestamps(client, signup):
    user, headers = signup()
    assert user['createdAt'].endswith('Z')
    created = client.post('/users', json={'email': 'd@x.com', 'password': 'password123'})
    assert created.status_code == 201
    assert created.json()['createdAt'].endswith('Z')
    account = client.post('/accounts', json={'name': 'Card', 'type': 'credit', 'mask': '4242'},
                          headers=headers)
    assert account.status_code == 201
    assert account.json()['createdAt'].endswith('Z')
    tx = client.post('/transactions', headers=headers, json={
        'accountId': account.json()['id'], 'postedAt': '2024-01-01T10:30:00+02:00', 'amount': '12.5',
    })
    assert tx.status_code == 201
    assert tx.json()['postedAt'] == '2024-01-01T08:30:00Z'
    assert tx.json()['amount'] == '12.50'
