from tiva.models import Order, OrderStatus


def _login(client, email='owner@example.com', password='secret123'):
    return client.post('/dashboard/login', data={
        'email': email, 'password': password, 'next': ''})


def test_health_and_api_index(client):
    health = client.get('/health')
    assert health.status_code == 200
    assert health.get_json()['status'] == 'OK'

    index = client.get('/api')
    assert index.get_json()['endpoints']['public'] == '/api/public'


def test_unknown_api_path(client):
    response = client.get('/api/does-not-exist')
    assert response.status_code == 404
    assert response.get_json() == {
        'success': False, 'message': 'Endpoint not found'}


def test_unexpected_errors_are_reported(app, client):
    @app.route('/api/explode')
    def explode():
        raise RuntimeError('kaboom')

    response = client.get('/api/explode')
    assert response.status_code == 500
    body = response.get_json()
    assert body['message'] == 'Internal server error'
    assert body['error'] == 'kaboom'
    assert 'RuntimeError' in body['stack']


def test_landing_page(client):
    response = client.get('/')
    assert response.status_code == 200
    assert b'Create your store' in response.data


def test_dashboard_requires_login(client):
    response = client.get('/dashboard/')
    assert response.status_code == 302
    assert '/dashboard/login' in response.headers['Location']


def test_dashboard_login_flow(client, owner, make_product):
    make_product(owner['headers'], name='Buñuelo')

    bad = _login(client, password='wrong-pass')
    assert bad.status_code == 401
    assert b'Invalid credentials' in bad.data

    response = _login(client)
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/dashboard/')

    home = client.get('/dashboard/')
    assert home.status_code == 200
    assert b'Hello, Demo Store' in home.data
    assert 'Buñuelo'.encode() in home.data

    for page in ('products', 'orders', 'analytics', 'settings'):
        assert client.get(f'/dashboard/{page}').status_code == 200, page

    client.post('/dashboard/logout')
    assert client.get('/dashboard/').status_code == 302


def test_dashboard_register(client):
    response = client.post('/dashboard/register', data={
        'name': 'Ana', 'email': 'ana@example.com',
        'password': 'secret123', 'store_name': 'Ana Shop'})
    assert response.status_code == 302
    assert b'Hello, Ana Shop' in client.get('/dashboard/').data


def test_dashboard_product_form(client, owner, get_product):
    _login(client)
    response = client.post('/dashboard/products', data={
        'name': 'Tamal', 'price': '7000', 'stock': '4',
        'tags': 'food, Lunch', 'description': ''})
    assert response.status_code == 302

    listing = client.get('/api/products', headers=owner['headers'])
    product = listing.get_json()['data'][0]
    assert product['name'] == 'Tamal'
    assert product['tags'] == ['food', 'lunch']

    client.post(f"/dashboard/products/{product['id']}/archive")
    assert get_product(product['id']).status.value == 'archived'


def test_dashboard_cannot_touch_other_stores(client, owner, other_owner,
                                             make_product):
    foreign = make_product(other_owner['headers'])
    _login(client)
    response = client.get(f"/dashboard/products/{foreign['id']}/edit")
    assert response.status_code == 404


def test_storefront_catalog_and_order(client, db, owner, make_product,
                                      set_store):
    set_store(owner['storeId'], whatsapp_number='3001234567')
    product = make_product(owner['headers'], name='Arepa', stock=5)

    page = client.get('/catalog/demo-store')
    assert page.status_code == 200
    assert b'Arepa' in page.data

    response = client.post('/catalog/demo-store', data={
        'customer_name': 'Ana',
        'customer_phone': '3001234567',
        f"qty_{product['id']}": '2',
        f'qty_{product["id"] + 1000}': '0',
        'channel': 'whatsapp',
    })
    assert response.status_code == 201
    assert b'ORD-000001' in response.data
    assert b'https://wa.me/573001234567?text=' not in response.data
    assert b'https://wa.me/3001234567?text=' in response.data

    order = Order.query.one()
    assert order.status == OrderStatus.PENDING
    assert order.total == 20000


def test_storefront_order_errors_rerender_catalog(client, owner,
                                                  make_product):
    product = make_product(owner['headers'], name='Pandebono', stock=1)
    response = client.post('/catalog/demo-store', data={
        'customer_name': 'Ana',
        'customer_phone': '3001234567',
        f"qty_{product['id']}": '3',
    })
    assert response.status_code == 400
    assert b'Insufficient stock for Pandebono' in response.data
    assert Order.query.count() == 0


def test_unknown_catalog_page(client):
    response = client.get('/catalog/nowhere')
    assert response.status_code == 404
    assert b'Catalog not found' in response.data


def test_reset_link_redirects_to_dashboard(client):
    response = client.get('/reset-password?token=abc')
    assert response.status_code == 302
    assert '/dashboard/reset-password?token=abc' in \
        response.headers['Location']
