"""
Tests for the transactions and balance endpoints.
"""
from datetime import datetime, timedelta
from decimal import Decimal


def _seed(make_transaction, count):
    start = datetime(2026, 2, 1, 10, 0, 0)
    for i in range(count):
        make_transaction('member001', transaction_id=f'tx_{i}', created_at=start + timedelta(hours=i))


class TestListTransactions:

    def test_requires_identifier(self, client):
        response = client.get('/api/transactions')

        assert response.status_code == 400

    def test_unknown_account(self, client):
        response = client.get('/api/transactions?externalIdentityId=U-ghost')

        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_page_and_account(self, client, linked_member, make_transaction):
        _seed(make_transaction, 7)

        data = client.get('/api/transactions?externalIdentityId=U1001&limit=5').get_json()['data']

        assert len(data['transactions']) == 5
        assert data['pagination'] == {'total': 7, 'limit': 5, 'offset': 0, 'hasMore': True}
        assert data['account'] == {'username': 'member001', 'displayName': 'Chai'}
        assert data['transactions'][0]['transactionId'] == 'tx_6'

    def test_post_body_and_clamping(self, client, linked_member, make_transaction):
        _seed(make_transaction, 3)

        data = client.post('/api/transactions', json={
            'username': 'member001', 'limit': 500, 'offset': 0
        }).get_json()['data']

        assert data['pagination']['limit'] == 100
        assert data['pagination']['hasMore'] is False
        assert len(data['transactions']) == 3

    def test_zero_limit_defaults(self, client, linked_member, make_transaction):
        _seed(make_transaction, 12)

        data = client.get('/api/transactions?username=member001&limit=0').get_json()['data']

        assert data['pagination']['limit'] == 10
        assert len(data['transactions']) == 10

    def test_type_and_dates(self, client, linked_member, make_transaction):
        make_transaction(transaction_id='tx_w', transaction_type='withdraw',
                         created_at=datetime(2026, 2, 2, 9, 0, 0))
        make_transaction(transaction_id='tx_d', transaction_type='deposit',
                         created_at=datetime(2026, 2, 2, 9, 0, 0))
        make_transaction(transaction_id='tx_w_old', transaction_type='withdraw',
                         created_at=datetime(2026, 1, 2, 9, 0, 0))

        data = client.get(
            '/api/transactions?username=member001&type=withdraw&dateFrom=2026-02-01&dateTo=2026-02-02'
        ).get_json()['data']

        assert [t['transactionId'] for t in data['transactions']] == ['tx_w']

    def test_malformed_date(self, client, linked_member):
        response = client.get('/api/transactions?username=member001&dateFrom=not-a-date')

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_DATEFROM'

    def test_relinked_identity_does_not_see_previous_account(self, client, registry, make_account,
                                                             make_transaction):
        make_account('memberA')
        make_account('memberB')
        registry.upsert_link('U1001', 'memberA', 'manual')
        make_transaction('memberA', external_identity_id='U1001', transaction_id='tx_of_A')
        registry.upsert_link('U1001', 'memberB', 'manual')

        by_username = client.get('/api/transactions?username=memberB').get_json()['data']
        by_identity = client.get('/api/transactions?externalIdentityId=U1001').get_json()['data']

        assert by_username['transactions'] == []
        assert by_username['pagination']['total'] == 0
        assert by_identity['account']['username'] == 'memberB'
        assert by_identity['transactions'] == []

    def test_deactivated_account_is_not_found(self, client, make_account, make_link, make_transaction):
        make_account('member001', is_active=False)
        make_link('U1001', 'member001')
        make_transaction('member001')

        by_username = client.get('/api/transactions?username=member001')
        by_identity = client.get('/api/transactions?externalIdentityId=U1001')

        assert by_username.status_code == 404
        assert by_identity.status_code == 404
        assert by_username.get_json()['error']['code'] == 'ACCOUNT_NOT_FOUND'


class TestBalance:

    def test_not_linked(self, client):
        data = client.get('/api/balance?externalIdentityId=U-new').get_json()

        assert data == {'success': True, 'isLinked': False, 'data': None}

    def test_balance_with_summary(self, client, linked_member, make_transaction):
        make_transaction(transaction_type='deposit', amount=Decimal('200.00'))
        make_transaction(transaction_type='withdraw', amount=Decimal('50.00'))

        data = client.get('/api/balance?externalIdentityId=U1001').get_json()['data']

        assert data['balance'] == 1500.5
        assert data['tier'] == 'Gold'
        assert data['points'] == 320
        assert data['summary']['deposit'] == {'count': 1, 'total': 200.0}
        assert data['summary']['withdraw'] == {'count': 1, 'total': 50.0}

    def test_requires_identity(self, client):
        assert client.get('/api/balance').status_code == 400
