"""
Tests for the link API endpoints.
"""
from unittest.mock import patch

from cardlink.utils.exceptions import StorageError, StorageTimeoutError


class TestCheckLink:

    def test_requires_an_identifier(self, client):
        with patch('cardlink.services.store.Store.execute') as execute:
            response = client.get('/api/link/check')

        assert response.status_code == 400
        data = response.get_json()
        assert data['success'] is False
        assert data['error']['code'] == 'VALIDATION_ERROR'
        execute.assert_not_called()

    def test_identity_without_link(self, client):
        response = client.get('/api/link/check?externalIdentityId=U-new')

        assert response.status_code == 200
        assert response.get_json() == {'success': True, 'isLinked': False, 'data': None}

    def test_linked_identity(self, client, linked_member):
        response = client.post('/api/link/check', json={'lineUserId': 'U1001'})

        data = response.get_json()
        assert data['isLinked'] is True
        assert data['data']['accountId'] == 'member001'
        assert data['data']['balance'] == 1500.5
        assert data['data']['displayName'] == 'Chai'

    def test_identity_wins_over_username(self, client, linked_member, make_account):
        make_account('member002')

        response = client.get('/api/link/check?externalIdentityId=U1001&username=member002')

        assert response.get_json()['data']['accountId'] == 'member001'

    def test_known_username_not_linked(self, client, make_account):
        make_account('member002')

        response = client.get('/api/link/check?username=member002')

        data = response.get_json()
        assert response.status_code == 200
        assert data['isLinked'] is False
        assert data['data']['accountId'] == 'member002'
        assert data['data']['externalIdentityId'] is None

    def test_unknown_username(self, client):
        response = client.get('/api/link/check?username=ghost')

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'ACCOUNT_NOT_FOUND'

    def test_storage_error_is_opaque_with_detail(self, client):
        error = StorageError(detail='resolve link by identity: OperationalError')
        with patch('cardlink.services.link_registry.LinkRegistry.resolve_by_external_id',
                   side_effect=error):
            response = client.get('/api/link/check?externalIdentityId=U1001')

        assert response.status_code == 500
        data = response.get_json()
        assert data['error']['message'] == 'Internal server error'
        assert data['error']['detail'] == 'resolve link by identity: OperationalError'

    def test_timeout_is_distinct(self, client):
        with patch('cardlink.services.link_registry.LinkRegistry.resolve_by_external_id',
                   side_effect=StorageTimeoutError('resolve link by identity', 5000)):
            response = client.get('/api/link/check?externalIdentityId=U1001')

        assert response.status_code == 504
        assert response.get_json()['error']['code'] == 'STORAGE_TIMEOUT'


class TestUsernameAndStats:

    def test_username_available(self, client, make_account):
        make_account('member002')

        data = client.get('/api/link/username/member002').get_json()

        assert data['success'] is True
        assert data['exists'] is True
        assert data['available'] is True

    def test_stats(self, client, linked_member):
        data = client.get('/api/link/stats').get_json()

        assert data['data']['active_links'] == 1


class TestUnlink:

    def test_unlink(self, client, linked_member):
        response = client.post('/api/link/unlink', json={'externalIdentityId': 'U1001', 'username': 'member001'})

        assert response.get_json() == {'success': True, 'unlinked': True}
        check = client.get('/api/link/check?externalIdentityId=U1001').get_json()
        assert check['isLinked'] is False

    def test_unlink_requires_both(self, client):
        response = client.post('/api/link/unlink', json={'externalIdentityId': 'U1001'})

        assert response.status_code == 400


class TestAppLevel:

    def test_health(self, client):
        data = client.get('/health').get_json()

        assert data['success'] is True
        assert data['database'] == 'sqlite'

    def test_health_store_down(self, client):
        with patch('cardlink.services.store.Store.ping', side_effect=StorageError(detail='ping: OperationalError')):
            response = client.get('/health')

        assert response.status_code == 503
        assert response.get_json()['success'] is False

    def test_unknown_route(self, client):
        response = client.get('/api/nowhere')

        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_cors_header(self, client):
        response = client.get('/api/link/check?externalIdentityId=U1', headers={'Origin': 'https://chat.example'})

        assert response.headers.get('Access-Control-Allow-Origin') == '*'
