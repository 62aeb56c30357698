from reportdesk.models import User, PasswordResetToken, TokenBlacklist

PASSWORD = 'password123'


def login(client, email, password=PASSWORD):
    return client.post('/api/auth/login', json={'email': email, 'password': password})


class TestLogin:

    def test_login_sets_session_cookies(self, client, owner, fetch):
        resp = login(client, 'Owner@Example.com')

        assert resp.status_code == 200
        body = resp.get_json()
        assert body['success'] is True
        assert body['access_token']
        assert body['refresh_token']
        assert body['user']['email'] == 'owner@example.com'
        cookies = ' '.join(resp.headers.getlist('Set-Cookie'))
        assert 'access_token_cookie=' in cookies
        assert 'refresh_token_cookie=' in cookies
        assert fetch(User, owner).last_login is not None

        # The cookie alone is a session
        profile = client.get('/api/auth/profile')
        assert profile.status_code == 200
        assert profile.get_json()['user']['id'] == owner

    def test_wrong_password(self, client, owner):
        resp = login(client, 'owner@example.com', 'not-the-password')
        assert resp.status_code == 401
        assert resp.get_json() == {'success': False, 'message': 'Invalid credentials'}

    def test_unknown_email(self, client):
        assert login(client, 'nobody@example.com').status_code == 401

    def test_inactive_user(self, client, make_user):
        make_user(email='former@example.com', is_active=False)
        resp = login(client, 'former@example.com')
        assert resp.status_code == 401
        assert resp.get_json()['success'] is False

    def test_missing_password(self, client):
        resp = client.post('/api/auth/login', json={'email': 'owner@example.com'})
        assert resp.status_code == 400
        assert resp.get_json()['success'] is False
        assert resp.get_json()['errors']


class TestSessions:

    def test_logout_revokes_token(self, client, owner, fetch):
        token = login(client, 'owner@example.com').get_json()['access_token']

        resp = client.post('/api/auth/logout')

        assert resp.status_code == 200
        assert len(fetch(TokenBlacklist)) == 1
        replay = client.get('/api/auth/profile', headers={'Authorization': f'Bearer {token}'})
        assert replay.status_code == 401
        assert replay.get_json() == {'success': False, 'message': 'Session revoked'}

    def test_refresh_rotates_tokens(self, client, owner, auth_header):
        headers = auth_header(owner, refresh=True)

        resp = client.post('/api/auth/refresh', headers=headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body['access_token']
        new_access = {'Authorization': f"Bearer {body['access_token']}"}
        assert client.get('/api/auth/profile', headers=new_access).status_code == 200

        client.delete_cookie('access_token_cookie')
        client.delete_cookie('refresh_token_cookie')
        assert client.post('/api/auth/refresh', headers=headers).status_code == 401

    def test_refresh_rejects_access_token(self, client, owner, auth_header):
        assert client.post('/api/auth/refresh', headers=auth_header(owner)).status_code == 401

    def test_garbage_token(self, client):
        resp = client.get('/api/auth/profile', headers={'Authorization': 'Bearer not.a.jwt'})
        assert resp.status_code == 401
        assert resp.get_json()['success'] is False

    def test_token_for_deleted_user(self, client, auth_header):
        resp = client.get('/api/auth/profile', headers=auth_header(4040))
        assert resp.status_code == 401


class TestProfile:

    def test_get_profile(self, client, manager, auth_header):
        resp = client.get('/api/auth/profile', headers=auth_header(manager))
        assert resp.status_code == 200
        user = resp.get_json()['user']
        assert user['role'] == 'manager'
        assert user['full_name'] == 'Mary Manager'

    def test_update_profile(self, client, owner, auth_header, fetch):
        resp = client.post('/api/auth/profile', headers=auth_header(owner),
                           json={'fullName': 'Oscar O. Owner', 'phone': '0977 123456'})

        assert resp.status_code == 200
        user = fetch(User, owner)
        assert user.full_name == 'Oscar O. Owner'
        assert user.phone == '0977 123456'
        assert user.role == 'user'

    def test_update_password(self, client, owner, auth_header):
        resp = client.post('/api/auth/update-password', headers=auth_header(owner),
                           json={'password': 'a-much-better-secret'})

        assert resp.status_code == 200
        assert login(client, 'owner@example.com').status_code == 401
        assert login(client, 'owner@example.com', 'a-much-better-secret').status_code == 200

    def test_session_checked_before_body(self, client):
        assert client.post('/api/auth/profile', json={'fullName': 42}).status_code == 401
        assert client.post('/api/auth/update-password', json={}).status_code == 401

    def test_short_password(self, client, owner, auth_header):
        resp = client.post('/api/auth/update-password', headers=auth_header(owner), json={'password': 'short'})
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'Password must be at least 8 characters'


class TestRecovery:

    def test_unknown_email_gets_the_same_answer(self, client, owner, outbox):
        unknown = client.post('/api/auth/reset-password', json={'email': 'nobody@example.com'})
        known = client.post('/api/auth/reset-password', json={'email': 'owner@example.com'})

        assert unknown.status_code == known.status_code == 200
        assert unknown.get_json() == known.get_json()
        assert [m['email'] for m in outbox] == ['owner@example.com']

    def test_recovery_round_trip(self, client, owner, outbox, fetch):
        client.post('/api/auth/reset-password', json={'email': 'owner@example.com'})
        token = fetch(PasswordResetToken, user_id=owner)[0]
        assert token.purpose == 'recovery'
        assert f"http://frontend.test/auth/reset/confirm?token={token.token}" in outbox[0]['msg']

        resp = client.post('/api/auth/confirm', json={'token': token.token, 'password': 'brand-new-secret'})

        assert resp.status_code == 200
        assert login(client, 'owner@example.com', 'brand-new-secret').status_code == 200
        reused = client.post('/api/auth/confirm', json={'token': token.token, 'password': 'another-secret'})
        assert reused.status_code == 400
        assert reused.get_json()['message'] == 'Invalid or expired token'

    def test_invitation_acceptance(self, client, admin, auth_header, fetch):
        created = client.post('/api/admin/createUser', headers=auth_header(admin),
                              json={'email': 'invitee@example.com', 'role': 'user'})
        user_id = created.get_json()['userId']
        token = fetch(PasswordResetToken, user_id=user_id)[0]

        resp = client.post('/api/auth/confirm', json={'token': token.token, 'password': 'my-first-secret'})

        assert resp.status_code == 200
        assert resp.get_json()['user']['id'] == user_id
        assert login(client, 'invitee@example.com', 'my-first-secret').status_code == 200

    def test_unknown_token(self, client):
        resp = client.post('/api/auth/confirm', json={'token': 'does-not-exist', 'password': 'long-enough-1'})
        assert resp.status_code == 400


class TestApplication:

    def test_health(self, client):
        resp = client.get('/health')
        assert resp.status_code == 200
        assert resp.get_json()['database'] == 'healthy'

    def test_unknown_route(self, client):
        resp = client.get('/api/does-not-exist')
        assert resp.status_code == 404
        assert resp.get_json()['success'] is False
