from datetime import datetime, timedelta
import pytest
from tiva.models import Order
from tiva.services.analytics_service import channel_percentages


def _order(client, headers, items, channel='whatsapp'):
    response = client.post('/api/orders', headers=headers, json={
        'customer': {'name': 'Ana', 'phone': '3001234567'},
        'items': items,
        'channel': channel,
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


def _get(client, headers, path, **params):
    response = client.get(f'/api/analytics/{path}', headers=headers,
                          query_string=params)
    assert response.status_code == 200, response.get_json()
    return response.get_json()['data']


def test_channel_percentages_round_each_channel():
    shares = channel_percentages({'whatsapp': 1, 'sms': 1, 'web': 1})
    assert shares == {'whatsapp': 33, 'sms': 33, 'web': 33, 'phone': 0}
    assert sum(shares.values()) == 99

    # Halves round up for every channel.
    shares = channel_percentages({'whatsapp': 1, 'sms': 7})
    assert shares == {'whatsapp': 13, 'sms': 88, 'web': 0, 'phone': 0}
    assert sum(shares.values()) == 101

    shares = channel_percentages({'whatsapp': 2, 'sms': 1})
    assert shares == {'whatsapp': 67, 'sms': 33, 'web': 0, 'phone': 0}

    shares = channel_percentages({'phone': 5})
    assert shares['phone'] == 100


def test_channel_percentages_without_orders():
    assert channel_percentages({}) == {
        'whatsapp': 0, 'sms': 0, 'web': 0, 'phone': 0}


def test_overview_without_orders(client, owner):
    data = _get(client, owner['headers'], 'overview')
    assert data['totalOrders'] == 0
    assert data['totalRevenue'] == 0
    assert data['topProduct'] is None
    assert sum(data['channelBreakdown'].values()) == 0


def test_overview_and_top_products(client, owner, make_product):
    headers = owner['headers']
    arepa = make_product(headers, price=10000)
    jugo = make_product(headers, name='Jugo', price=3000)

    _order(client, headers, [{'productId': arepa['id'], 'quantity': 1},
                             {'productId': jugo['id'], 'quantity': 4}])
    _order(client, headers, [{'productId': arepa['id'], 'quantity': 2}],
           channel='sms')
    _order(client, headers, [{'productId': jugo['id'], 'quantity': 1}],
           channel='web')

    overview = _get(client, headers, 'overview')
    assert overview['totalOrders'] == 3
    assert overview['totalRevenue'] == 10000 + 12000 + 20000 + 3000
    assert overview['topProduct'] == {
        'name': 'Jugo', 'qty': 5, 'revenue': 15000.0}
    assert overview['channelBreakdown'] == {
        'whatsapp': 33, 'sms': 33, 'web': 33, 'phone': 0}

    top = _get(client, headers, 'top-products')
    assert [(p['name'], p['qty'], p['revenue']) for p in top] == [
        ('Jugo', 5, 15000.0),
        ('Arepa', 3, 30000.0),
    ]
    assert top[1]['avgPrice'] == 10000.0

    assert len(_get(client, headers, 'top-products', limit=1)) == 1


def test_channel_stats(client, owner, make_product):
    headers = owner['headers']
    product = make_product(headers, price=1000)
    _order(client, headers, [{'productId': product['id'], 'quantity': 1}])
    _order(client, headers, [{'productId': product['id'], 'quantity': 3}])
    _order(client, headers, [{'productId': product['id'], 'quantity': 2}],
           channel='sms')

    stats = _get(client, headers, 'channel-stats')
    assert stats == [
        {'channel': 'whatsapp', 'count': 2, 'revenue': 4000.0,
         'avgOrderValue': 2000.0},
        {'channel': 'sms', 'count': 1, 'revenue': 2000.0,
         'avgOrderValue': 2000.0},
    ]


def test_averages_are_not_rounded(client, owner, make_product):
    headers = owner['headers']
    product = make_product(headers, price=1000)
    for quantity in (1, 1, 2):
        _order(client, headers,
               [{'productId': product['id'], 'quantity': quantity}])

    stats = _get(client, headers, 'channel-stats')
    assert stats[0]['avgOrderValue'] == pytest.approx(4000 / 3)
    assert stats[0]['avgOrderValue'] != 1333.33


def test_orders_by_day(client, db, owner, make_product):
    headers = owner['headers']
    product = make_product(headers, price=1000)
    recent = _order(client, headers,
                    [{'productId': product['id'], 'quantity': 1}])
    old = _order(client, headers,
                 [{'productId': product['id'], 'quantity': 2}])

    order = db.session.get(Order, old['id'])
    order.created_at = datetime.utcnow() - timedelta(days=40)
    db.session.commit()

    days = _get(client, headers, 'orders-by-day')
    assert days == [{
        'date': recent['createdAt'][:10],
        'count': 1,
        'revenue': 1000.0,
    }]
    assert len(_get(client, headers, 'orders-by-day', days=60)) == 2


def test_date_range_filters(client, db, owner, make_product):
    headers = owner['headers']
    product = make_product(headers, price=1000)
    old = _order(client, headers,
                 [{'productId': product['id'], 'quantity': 1}])
    _order(client, headers, [{'productId': product['id'], 'quantity': 1}])

    order = db.session.get(Order, old['id'])
    order.created_at = datetime.utcnow() - timedelta(days=10)
    db.session.commit()

    since = (datetime.utcnow() - timedelta(days=2)).date().isoformat()
    assert _get(client, headers, 'overview', **{'from': since})[
        'totalOrders'] == 1


def test_invalid_date_range(client, owner):
    response = client.get('/api/analytics/overview', headers=owner['headers'],
                          query_string={'from': '31/12/2024'})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Invalid date range'


def test_analytics_are_isolated_between_stores(client, owner, other_owner,
                                               make_product):
    product = make_product(owner['headers'])
    _order(client, owner['headers'],
           [{'productId': product['id'], 'quantity': 1}])

    rival = _get(client, other_owner['headers'], 'overview')
    assert rival['totalOrders'] == 0
    assert _get(client, other_owner['headers'], 'top-products') == []
    assert _get(client, other_owner['headers'], 'channel-stats') == []


def test_analytics_require_token(client):
    assert client.get('/api/analytics/overview').status_code == 401
