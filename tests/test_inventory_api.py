import pytest


@pytest.fixture
def api_variant(make_variant):
    """Plain ids, so no ORM instance outlives the request that detaches it."""
    variant = make_variant(product_name='Honey Soap', sku='HNY-01')
    return variant.id, variant.product_id


def _receive(client, variant_id, qty, unit_cost, **extra):
    payload = {'variant_id': variant_id, 'qty': qty, 'unit_cost': unit_cost, **extra}
    return client.post('/api/inventory/receive', json=payload, headers={'X-Actor': 'clerk-7'})


class TestInventoryApi:
    def test_ping(self, client):
        response = client.get('/api/inventory/_ping')
        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'ok'
        assert response.headers['Cache-Control'] == 'no-store'

    def test_receive_then_issue(self, client, api_variant):
        variant_id = api_variant[0]
        received = _receive(client, variant_id, 5, '10.00', received_at='2026-01-02T03:04:05Z')
        assert received.status_code == 201
        body = received.get_json()['data']
        assert body['lot']['available_quantity'] == 5
        assert body['lot']['arrived_at'].startswith('2026-01-02T03:04:05')
        assert body['movement']['actor'] == 'clerk-7'
        assert body['stock'] == 5

        _receive(client, variant_id, 5, '20.00')
        issued = client.post('/api/inventory/issue', json={'variant_id': variant_id, 'qty': 7, 'ref': 'ORD-1'})
        assert issued.status_code == 200
        data = issued.get_json()['data']
        assert [line['allocated_qty'] for line in data['allocations']] == [5, 2]
        assert data['total_cost'] == '90.0000'
        assert data['stock'] == 3

    def test_insufficient_stock_error_body(self, client, api_variant):
        variant_id = api_variant[0]
        _receive(client, variant_id, 2, '1.00')

        response = client.post('/api/inventory/issue', json={'variant_id': variant_id, 'qty': 3})

        assert response.status_code == 400
        assert response.headers['Cache-Control'] == 'no-store'
        body = response.get_json()
        assert body['success'] is False
        assert body['error'] == 'insufficient_stock'
        assert body['details'] == {'variant_id': variant_id, 'requested': 3, 'available': 2}

    def test_validation_and_not_found(self, client, api_variant):
        variant_id = api_variant[0]
        bad = _receive(client, variant_id, 0, '1.00')
        assert bad.status_code == 400
        assert bad.get_json()['error'] == 'invalid_argument'

        bad_time = _receive(client, variant_id, 1, '1.00', received_at='last tuesday')
        assert bad_time.status_code == 400

        missing = client.post('/api/inventory/issue', json={'variant_id': 999, 'qty': 1})
        assert missing.status_code == 404
        assert missing.get_json()['error'] == 'not_found'

        no_body = client.post('/api/inventory/adjust', data='not json', content_type='text/plain')
        assert no_body.status_code == 400

    def test_out_of_range_values_are_client_errors(self, client, api_variant):
        variant_id = api_variant[0]

        huge = _receive(client, variant_id, 10**20, '1.00')
        assert huge.status_code == 400
        assert huge.get_json()['error'] == 'invalid_argument'
        assert huge.get_json()['retryable'] is False

        huge_delta = client.post('/api/inventory/adjust', json={'variant_id': variant_id, 'delta': -(10**20)})
        assert huge_delta.status_code == 400

        too_precise = _receive(client, variant_id, 1, '0.00005')
        assert too_precise.status_code == 400
        assert too_precise.get_json()['error'] == 'invalid_argument'

        stock = client.get(f'/api/inventory/variants/{variant_id}/stock').get_json()['data']
        assert stock['stock'] == 0

    def test_sale_is_all_or_nothing(self, client, make_variant):
        soap_id = make_variant(sku='SALE-1').id
        balm_id = make_variant(sku='SALE-2').id
        _receive(client, soap_id, 3, '1.00')
        _receive(client, balm_id, 1, '1.00')

        short = client.post('/api/inventory/sale', json={
            'order_id': 42,
            'items': [{'variant_id': soap_id, 'qty': 2}, {'variant_id': balm_id, 'qty': 2}],
        })
        assert short.status_code == 400
        assert client.get(f'/api/inventory/variants/{soap_id}/stock').get_json()['data']['stock'] == 3

        ok = client.post('/api/inventory/sale', json={
            'order_id': 43,
            'items': [{'variant_id': soap_id, 'qty': 2}, {'variant_id': balm_id, 'qty': 1}],
        })
        assert ok.status_code == 200
        assert [line['total_allocated'] for line in ok.get_json()['data']['lines']] == [2, 1]

        moves = client.get('/api/inventory/moves', query_string={'q': '43', 'type': 'out'}).get_json()['data']
        assert {move['ref'] for move in moves} == {'43'}
        assert len(moves) == 2

        empty = client.post('/api/inventory/sale', json={'items': []})
        assert empty.status_code == 400

    def test_adjust_and_set_stock(self, client, api_variant):
        variant_id = api_variant[0]
        _receive(client, variant_id, 10, '4.00')

        adjusted = client.post('/api/inventory/adjust', json={'variant_id': variant_id, 'delta': -2, 'note': 'spill'})
        assert adjusted.status_code == 200
        assert adjusted.get_json()['data']['stock'] == 8

        recount = client.put(f'/api/inventory/variants/{variant_id}/stock', json={'stock': 5})
        data = recount.get_json()['data']
        assert data['movement']['change_qty'] == -3
        assert data['stock']['stock'] == 5
        assert data['stock']['avg_cost'] == '4.0000'

        unchanged = client.put(f'/api/inventory/variants/{variant_id}/stock', json={'stock': 5})
        assert unchanged.get_json()['data']['movement'] is None

    def test_reads(self, client, api_variant):
        variant_id, product_id = api_variant
        _receive(client, variant_id, 2, '1.00')
        _receive(client, variant_id, 3, '2.00')
        client.post('/api/inventory/issue', json={'variant_id': variant_id, 'qty': 2})

        lots = client.get(f'/api/inventory/variants/{variant_id}/lots').get_json()['data']
        assert [lot['available_quantity'] for lot in lots] == [3]
        all_lots = client.get(
            f'/api/inventory/variants/{variant_id}/lots', query_string={'include_depleted': 'true'}
        ).get_json()['data']
        assert len(all_lots) == 2

        product = client.get(f'/api/inventory/products/{product_id}/stock').get_json()['data']
        assert product == {'product_id': product_id, 'stock': 3}

        page = client.get('/api/inventory/moves', query_string={'variant_id': variant_id, 'limit': 2})
        assert [move['move_type'] for move in page.get_json()['data']] == ['out', 'in']

        bad = client.get('/api/inventory/moves', query_string={'variant_id': 'abc'})
        assert bad.status_code == 400

        unknown = client.get('/api/inventory/variants/31337/stock')
        assert unknown.status_code == 404
