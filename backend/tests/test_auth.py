"""
Authentication tests.

Verifies:
- Login answers the same 401 for unknown users and wrong passwords
- Sessions expire on idle and absolute timeouts and die on logout
- The TOTP second factor gates session issuance for local accounts only,
  and only after a password login issued a challenge
- Users edit their own profile and password without USER permissions
"""

import time
from datetime import timedelta

import pyotp
import pytest

from inventario.errors import ValidationError
from inventario.extensions import db
from inventario.models import AuditLogEntry, LoginChallenge, SessionToken, User, UserRole
from inventario.services import auth_service
from inventario.services.session_service import hash_token
from inventario.time_utils import utcnow

from conftest import ADMIN_PASSWORD, TEST_PASSWORD, auth_headers, get_auth_token, make_user


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


class TestLogin:

    def test_login_returns_token_and_permissions(self, client, admin):
        resp = client.post('/api/auth/login', json={'username': 'admin', 'password': ADMIN_PASSWORD})
        assert resp.status_code == 200
        body = resp.json
        assert body['token']
        assert body['user']['username'] == 'admin'
        assert 'password_hash' not in body['user']
        assert 'two_factor_secret' not in body['user']
        assert 'MANAGE_DATABASE' in body['permissions']

    def test_login_stamps_last_login(self, client, operator):
        assert operator.last_login_at is None
        get_auth_token(client, 'operator', TEST_PASSWORD)
        db.session.expire_all()
        assert db.session.get(User, operator.id).last_login_at is not None

    def test_unknown_user_and_wrong_password_look_the_same(self, client, admin):
        unknown = client.post('/api/auth/login', json={'username': 'ghost', 'password': 'whatever'})
        wrong = client.post('/api/auth/login', json={'username': 'admin', 'password': 'Wrong@12345'})
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json == wrong.json == {'error': 'Invalid credentials'}

    def test_missing_fields(self, client):
        resp = client.post('/api/auth/login', json={'username': 'admin'})
        assert resp.status_code == 400

    def test_operator_permissions_are_limited(self, client, operator):
        resp = client.post('/api/auth/login', json={'username': 'operator', 'password': TEST_PASSWORD})
        permissions = set(resp.json['permissions'])
        assert 'CREATE_EQUIPMENT' in permissions
        assert 'UPDATE_EQUIPMENT' not in permissions
        assert 'VIEW_AUDIT_LOG' not in permissions

    def test_logout_revokes_session(self, client, admin_headers):
        assert client.get('/api/auth/me', headers=admin_headers).status_code == 200

        resp = client.post('/api/auth/logout', headers=admin_headers)
        assert resp.status_code == 200

        assert client.get('/api/auth/me', headers=admin_headers).status_code == 401
        assert client.post('/api/auth/logout', headers=admin_headers).status_code == 401

    def test_me_requires_token(self, client):
        assert client.get('/api/auth/me').status_code == 401
        assert client.get('/api/auth/me', headers=auth_headers('not-a-token')).status_code == 401


# =============================================================================
# SESSION TIMEOUTS
# =============================================================================


class TestSessionTimeouts:

    def _session(self, headers) -> SessionToken:
        token = headers['Authorization'].split(' ', 1)[1]
        return db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).one()

    def test_idle_session_is_rejected(self, client, admin_headers):
        session = self._session(admin_headers)
        session.last_used_at = utcnow() - timedelta(hours=9)
        db.session.commit()

        assert client.get('/api/auth/me', headers=admin_headers).status_code == 401
        db.session.expire_all()
        assert self._session(admin_headers).is_revoked is True

    def test_expired_session_is_rejected(self, client, admin_headers):
        session = self._session(admin_headers)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

        assert client.get('/api/auth/me', headers=admin_headers).status_code == 401

    def test_activity_refreshes_last_used(self, client, admin_headers):
        session = self._session(admin_headers)
        session.last_used_at = utcnow() - timedelta(hours=7)
        db.session.commit()

        assert client.get('/api/auth/me', headers=admin_headers).status_code == 200
        db.session.expire_all()
        assert utcnow() - self._session(admin_headers).last_used_at < timedelta(minutes=1)


# =============================================================================
# PASSWORD STRENGTH
# =============================================================================


@pytest.mark.parametrize(
    "password",
    ["short1!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSpecial123"],
)
def test_weak_passwords_rejected(app, password):
    with pytest.raises(ValidationError):
        auth_service.validate_password_strength(password)


def test_verify_password_tolerates_malformed_hash(app):
    assert auth_service.verify_password("Passw0rd!", "not-a-bcrypt-hash") is False


# =============================================================================
# TWO-FACTOR AUTHENTICATION
# =============================================================================


class TestTwoFactor:

    def _enroll(self, client, headers) -> str:
        resp = client.post('/api/auth/2fa/generate', headers=headers)
        assert resp.status_code == 200
        secret = resp.json['secret']
        assert resp.json['enrollment_uri'].startswith('otpauth://totp/')

        resp = client.post('/api/auth/2fa/enable', headers=headers, json={
            'secret': secret,
            'code': pyotp.TOTP(secret).now(),
        })
        assert resp.status_code == 200
        assert resp.json['user']['is_2fa_enabled'] is True
        return secret

    def _challenge(self, client) -> str:
        resp = client.post('/api/auth/login', json={'username': 'operator', 'password': TEST_PASSWORD})
        assert resp.status_code == 200
        assert resp.json['requires_2fa'] is True
        assert 'token' not in resp.json
        return resp.json['challenge']

    def test_login_requires_second_step_after_enrollment(self, client, operator, operator_headers):
        secret = self._enroll(client, operator_headers)

        resp = client.post('/api/auth/login', json={'username': 'operator', 'password': TEST_PASSWORD})
        assert resp.status_code == 200
        assert resp.json['user_id'] == operator.id
        stored = db.session.query(LoginChallenge).one()
        assert stored.token_hash == hash_token(resp.json['challenge'])

        resp = client.post('/api/auth/2fa/verify', json={
            'challenge': resp.json['challenge'],
            'code': pyotp.TOTP(secret).now(),
        })
        assert resp.status_code == 200
        assert resp.json['token']
        assert client.get('/api/auth/me', headers=auth_headers(resp.json['token'])).status_code == 200
        assert db.session.query(LoginChallenge).count() == 0

    def test_verify_without_password_login_is_refused(self, client, operator, operator_headers):
        secret = self._enroll(client, operator_headers)
        sessions_before = db.session.query(SessionToken).count()

        resp = client.post('/api/auth/2fa/verify', json={
            'user_id': operator.id,
            'code': pyotp.TOTP(secret).now(),
        })
        assert resp.status_code == 401
        assert resp.json == {'error': 'Invalid verification code'}

        resp = client.post('/api/auth/2fa/verify', json={
            'challenge': 'not-a-challenge',
            'code': pyotp.TOTP(secret).now(),
        })
        assert resp.status_code == 401
        assert db.session.query(SessionToken).count() == sessions_before

    def test_challenge_is_single_use(self, client, operator, operator_headers):
        secret = self._enroll(client, operator_headers)
        challenge = self._challenge(client)
        code = pyotp.TOTP(secret).now()

        assert client.post('/api/auth/2fa/verify', json={'challenge': challenge, 'code': code}).status_code == 200
        assert client.post('/api/auth/2fa/verify', json={'challenge': challenge, 'code': code}).status_code == 401

    def test_expired_challenge_is_refused(self, client, operator, operator_headers):
        secret = self._enroll(client, operator_headers)
        challenge = self._challenge(client)

        stored = db.session.query(LoginChallenge).one()
        stored.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        resp = client.post('/api/auth/2fa/verify', json={
            'challenge': challenge,
            'code': pyotp.TOTP(secret).now(),
        })
        assert resp.status_code == 401
        assert db.session.query(LoginChallenge).count() == 0

    def test_wrong_codes_exhaust_the_challenge(self, client, app, operator, operator_headers):
        secret = self._enroll(client, operator_headers)
        challenge = self._challenge(client)
        max_attempts = app.config['LOGIN_CHALLENGE_MAX_ATTEMPTS']
        totp = pyotp.TOTP(secret)
        wrong = next(c for c in ('000000', '111111', '222222', '333333') if not totp.verify(c, valid_window=1))

        for _ in range(max_attempts):
            resp = client.post('/api/auth/2fa/verify', json={'challenge': challenge, 'code': wrong})
            assert resp.status_code == 401

        resp = client.post('/api/auth/2fa/verify', json={'challenge': challenge, 'code': totp.now()})
        assert resp.status_code == 401
        assert db.session.query(LoginChallenge).count() == 0

    def test_bad_code_issues_no_session(self, client, operator, operator_headers):
        self._enroll(client, operator_headers)
        challenge = self._challenge(client)
        sessions_before = db.session.query(SessionToken).count()

        for code in ('12345', 'abcdef', ''):
            resp = client.post('/api/auth/2fa/verify', json={'challenge': challenge, 'code': code})
            assert resp.status_code in (400, 401)

        assert db.session.query(SessionToken).count() == sessions_before

    def test_enable_with_wrong_code_leaves_state(self, client, operator, operator_headers):
        secret = client.post('/api/auth/2fa/generate', headers=operator_headers).json['secret']

        resp = client.post('/api/auth/2fa/enable', headers=operator_headers, json={
            'secret': secret,
            'code': '12345',
        })
        assert resp.status_code == 401
        assert resp.json['error'] == 'Invalid verification code'
        db.session.expire_all()
        assert db.session.get(User, operator.id).is_2fa_enabled is False

    def test_login_without_2fa_issues_no_challenge(self, client, operator):
        resp = client.post('/api/auth/login', json={'username': 'operator', 'password': TEST_PASSWORD})
        assert resp.json['token']
        assert db.session.query(LoginChallenge).count() == 0

    def test_disable_clears_secret(self, client, operator, operator_headers):
        self._enroll(client, operator_headers)

        resp = client.post('/api/auth/2fa/disable', headers=operator_headers)
        assert resp.status_code == 200
        db.session.expire_all()
        user = db.session.get(User, operator.id)
        assert user.is_2fa_enabled is False
        assert user.two_factor_secret is None

    def test_sso_user_skips_local_second_factor(self, client, app):
        make_user(
            "sso.user",
            UserRole.OPERATOR,
            sso_provider="azure",
            is_2fa_enabled=True,
            two_factor_secret=pyotp.random_base32(),
        )
        resp = client.post('/api/auth/login', json={'username': 'sso.user', 'password': TEST_PASSWORD})
        assert resp.status_code == 200
        assert resp.json['token']

    def test_code_replays_inside_window_but_not_outside(self, client, operator, operator_headers):
        secret = self._enroll(client, operator_headers)
        totp = pyotp.TOTP(secret)

        code = totp.now()
        for _ in range(2):
            resp = client.post('/api/auth/2fa/verify', json={'challenge': self._challenge(client), 'code': code})
            assert resp.status_code == 200

        stale = totp.at(time.time() - 120)
        resp = client.post('/api/auth/2fa/verify', json={'challenge': self._challenge(client), 'code': stale})
        if stale != code:
            assert resp.status_code == 401


# =============================================================================
# OWN PROFILE
# =============================================================================


class TestOwnProfile:

    def test_operator_edits_name_and_email(self, client, operator, operator_headers):
        resp = client.put('/api/auth/me', headers=operator_headers, json={
            'real_name': 'Olga Operadora',
            'email': 'olga@company.com',
            'username': 'operator',
            'role': 'User/Operador',
        })
        assert resp.status_code == 200
        assert resp.json['user']['real_name'] == 'Olga Operadora'
        assert resp.json['user']['email'] == 'olga@company.com'

        entry = db.session.query(AuditLogEntry).order_by(AuditLogEntry.id.desc()).first()
        assert entry.target_type == 'USER'
        assert entry.username == 'operator'
        assert entry.details.startswith('Updated own profile')

    def test_role_cannot_be_raised(self, client, operator, operator_headers):
        resp = client.put('/api/auth/me', headers=operator_headers, json={'role': 'Admin'})
        assert resp.status_code == 200
        db.session.expire_all()
        assert db.session.get(User, operator.id).role == UserRole.OPERATOR

    def test_password_change_keeps_this_session_only(self, client, operator, operator_headers):
        other_token = get_auth_token(client, 'operator', TEST_PASSWORD)

        resp = client.put('/api/auth/me', headers=operator_headers, json={
            'password': 'N3w@Passw0rd',
            'current_password': TEST_PASSWORD,
        })
        assert resp.status_code == 200

        assert client.get('/api/auth/me', headers=operator_headers).status_code == 200
        assert client.get('/api/auth/me', headers=auth_headers(other_token)).status_code == 401
        assert get_auth_token(client, 'operator', TEST_PASSWORD) is None
        assert get_auth_token(client, 'operator', 'N3w@Passw0rd')

        entry = db.session.query(AuditLogEntry).order_by(AuditLogEntry.id.desc()).first()
        assert 'password changed (1 other sessions revoked)' in entry.details

    def test_password_change_needs_current_password(self, client, operator, operator_headers):
        resp = client.put('/api/auth/me', headers=operator_headers, json={
            'password': 'N3w@Passw0rd',
            'current_password': 'Wrong@12345',
        })
        assert resp.status_code == 401
        assert get_auth_token(client, 'operator', TEST_PASSWORD)

    def test_weak_password_rejected(self, client, operator, operator_headers):
        resp = client.put('/api/auth/me', headers=operator_headers, json={
            'password': 'weak',
            'current_password': TEST_PASSWORD,
        })
        assert resp.status_code == 400

    def test_email_taken_by_someone_else(self, client, admin, operator, operator_headers):
        resp = client.put('/api/auth/me', headers=operator_headers, json={'email': admin.email})
        assert resp.status_code == 409
        assert resp.json['field'] == 'email'

    def test_requires_token(self, client):
        assert client.put('/api/auth/me', json={'real_name': 'X'}).status_code == 401
