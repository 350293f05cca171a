import pytest
from flask_jwt_extended import create_access_token
from tiva import create_app
from tiva.config import TestingConfig
from tiva.extensions import db as _db
from tiva.models import Product, Store, User, UserRole


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def sent_mail(monkeypatch):
    outbox = []

    def fake_send_mail(to, subject, text, html=None):
        outbox.append({'to': to, 'subject': subject, 'text': text})
        return True

    monkeypatch.setattr(
        'tiva.services.email_service.send_mail', fake_send_mail)
    return outbox


def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}


def register(client, name='Ana Owner', email='owner@example.com',
             password='secret123', store_name='Demo Store'):
    response = client.post('/api/auth/register', json={
        'name': name,
        'email': email,
        'password': password,
        'storeName': store_name,
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


@pytest.fixture
def owner(client):
    """Registered owner: dict with token, user, store, headers."""
    data = register(client)
    data['headers'] = auth_headers(data['token'])
    return data


@pytest.fixture
def other_owner(client):
    data = register(client, name='Luis Rival', email='rival@example.com',
                    store_name='Rival Shop')
    data['headers'] = auth_headers(data['token'])
    return data


@pytest.fixture
def make_product(client):
    def _make(headers, **fields):
        payload = {'name': 'Arepa', 'price': 10000, 'stock': 5}
        payload.update(fields)
        response = client.post('/api/products', json=payload,
                               headers=headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()['data']
    return _make


@pytest.fixture
def make_staff(db):
    def _make(store_id, email='staff@example.com'):
        staff = User(name='Staff', email=email, role=UserRole.STAFF,
                     store_id=store_id)
        staff.set_password('staff123')
        db.session.add(staff)
        db.session.commit()
        return staff, auth_headers(create_access_token(
            identity=str(staff.id)))
    return _make


@pytest.fixture
def set_store(db):
    def _set(store_id, **fields):
        store = db.session.get(Store, store_id)
        for key, value in fields.items():
            setattr(store, key, value)
        db.session.commit()
        return store
    return _set


@pytest.fixture
def get_product(db):
    def _get(product_id):
        db.session.expire_all()
        return db.session.get(Product, product_id)
    return _get
