# Overview: Pytest coverage for the auth API (register, login, lockout, status gate, sessions).

import pytest

from shopdesk.models import Shop, SessionToken
from shopdesk.services.login_lockout_service import MAX_FAILED_ATTEMPTS
from shopdesk.services.session_service import validate_session

from conftest import TEST_PASSWORD, BRIDGE_SECRET, auth_headers


def _login(client, email, password=TEST_PASSWORD):
    return client.post('/api/auth/login', json={'email': email, 'password': password})


class TestRegister:

    def test_register_creates_active_shop_and_session(self, client, db_session):
        response = client.post('/api/auth/register', json={
            'email': 'New.Owner@Shop.test',
            'password': TEST_PASSWORD,
            'shop_name': 'New Shop',
            'timezone': 'Asia/Karachi',
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body['shop']['email'] == 'new.owner@shop.test'
        assert body['shop']['account_status'] == 'active'
        assert body['shop']['timezone'] == 'Asia/Karachi'
        assert body['token']

    def test_register_weak_password(self, client, db_session):
        response = client.post('/api/auth/register', json={'email': 'a@b.test', 'password': 'short'})
        assert response.status_code == 400

    def test_register_duplicate_email_case_insensitive(self, client, shop):
        response = client.post('/api/auth/register', json={
            'email': shop.email.upper(),
            'password': TEST_PASSWORD,
        })
        assert response.status_code == 409

    def test_register_rejects_unknown_profile_field(self, client, db_session):
        response = client.post('/api/auth/register', json={
            'email': 'x@y.test',
            'password': TEST_PASSWORD,
            'account_status': 'active',
        })
        assert response.status_code == 400


class TestLogin:

    def test_login_success_returns_token(self, client, shop):
        response = _login(client, shop.email)

        assert response.status_code == 200
        token = response.get_json()['token']
        assert validate_session(token) is not None

    def test_wrong_password_reports_attempts_remaining(self, client, shop):
        response = _login(client, shop.email, 'Wrong-Password1!')

        assert response.status_code == 401
        body = response.get_json()
        assert body['attempts_remaining'] == MAX_FAILED_ATTEMPTS - 1

    def test_unknown_email_gets_generic_message(self, client, db_session):
        response = _login(client, 'ghost@shop.test', 'Wrong-Password1!')

        assert response.status_code == 401
        assert 'attempts_remaining' not in response.get_json()

    def test_fifth_failure_locks_and_sixth_is_rejected_before_credentials(self, client, shop, db_session):
        for _ in range(MAX_FAILED_ATTEMPTS - 1):
            assert _login(client, shop.email, 'Wrong-Password1!').status_code == 401

        response = _login(client, shop.email, 'Wrong-Password1!')
        assert response.status_code == 429
        assert response.get_json()['locked'] is True

        # Even the right password is refused while locked, and nothing is counted
        response = _login(client, shop.email)
        assert response.status_code == 429
        assert response.get_json()['retry_after_minutes'] <= 15
        assert db_session.get(Shop, shop.id).failed_login_attempts == MAX_FAILED_ATTEMPTS

    def test_success_resets_failed_attempts(self, client, shop, db_session):
        _login(client, shop.email, 'Wrong-Password1!')
        _login(client, shop.email, 'Wrong-Password1!')

        assert _login(client, shop.email).status_code == 200
        assert db_session.get(Shop, shop.id).failed_login_attempts == 0

    @pytest.mark.parametrize("status", ["pending", "frozen", "rejected"])
    def test_blocked_status_gets_403_without_session(self, client, shop, db_session, status):
        shop.account_status = status
        db_session.commit()

        response = _login(client, shop.email)

        assert response.status_code == 403
        assert response.get_json()['account_status'] == status
        assert db_session.query(SessionToken).filter_by(shop_id=shop.id).count() == 0

    def test_lockout_status_endpoint(self, client, shop):
        _login(client, shop.email, 'Wrong-Password1!')

        response = client.get(f'/api/auth/lockout-status/{shop.email}')

        assert response.status_code == 200
        assert response.get_json()['failed_attempts'] == 1


class TestSessions:

    def test_protected_route_requires_token(self, client, db_session):
        assert client.get('/api/stock').status_code == 401

    def test_validate_and_logout(self, client, token):
        assert client.post('/api/auth/validate', headers=auth_headers(token)).status_code == 200

        assert client.post('/api/auth/logout', headers=auth_headers(token)).status_code == 200
        assert client.post('/api/auth/validate', headers=auth_headers(token)).status_code == 401

    def test_frozen_account_loses_live_session(self, client, shop, token, db_session):
        shop.account_status = "frozen"
        db_session.commit()

        assert client.get('/api/shop', headers=auth_headers(token)).status_code == 401

    def test_change_password_revokes_other_sessions(self, client, shop, token):
        other = _login(client, shop.email).get_json()['token']

        response = client.post('/api/auth/change-password', headers=auth_headers(token), json={
            'current_password': TEST_PASSWORD,
            'new_password': 'Different456$',
        })

        assert response.status_code == 200
        assert response.get_json()['sessions_revoked'] == 1
        assert validate_session(other) is None
        assert validate_session(token) is not None
        assert _login(client, shop.email, 'Different456$').status_code == 200

    def test_change_password_wrong_current(self, client, token):
        response = client.post('/api/auth/change-password', headers=auth_headers(token), json={
            'current_password': 'Nope-Nope1!',
            'new_password': 'Different456$',
        })
        assert response.status_code == 401


class TestOAuthBridge:

    def test_requires_bridge_secret(self, client, db_session):
        response = client.post('/api/auth/oauth', json={'email': 'fed@shop.test', 'provider': 'google'})
        assert response.status_code == 401

    def test_first_sign_in_creates_shop(self, client, db_session):
        response = client.post(
            '/api/auth/oauth',
            headers={'X-OAuth-Bridge-Secret': BRIDGE_SECRET},
            json={'email': 'fed@shop.test', 'provider': 'google', 'display_name': 'Fed Owner'},
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body['shop']['auth_provider'] == 'google'
        assert body['shop']['display_name'] == 'Fed Owner'
        assert body['token']


class TestShopProfile:

    def test_get_and_patch_profile(self, client, headers):
        assert client.get('/api/shop', headers=headers).get_json()['shop']['shop_name'] == 'Corner Store'

        response = client.patch('/api/shop', headers=headers, json={
            'shop_name': 'Corner Store 2',
            'phone_numbers': ['555-0101', ' '],
        })

        assert response.status_code == 200
        shop = response.get_json()['shop']
        assert shop['shop_name'] == 'Corner Store 2'
        assert shop['phone_numbers'] == ['555-0101']

    def test_patch_rejects_bad_timezone(self, client, headers):
        response = client.patch('/api/shop', headers=headers, json={'timezone': 'Mars/Olympus'})
        assert response.status_code == 400
