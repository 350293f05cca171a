from datetime import datetime, timedelta
from tiva.models import User
from tiva.services import email_service
from tiva.services.password_service import FORGOT_PASSWORD_MESSAGE
from conftest import auth_headers


def _user(db, email='owner@example.com'):
    db.session.expire_all()
    return User.query.filter_by(email=email).first()


def test_forgot_password_sets_token_and_mails_link(client, db, owner,
                                                   sent_mail):
    response = client.post('/api/password/forgot',
                           json={'email': 'Owner@Example.com'})
    assert response.status_code == 200
    assert response.get_json()['message'] == FORGOT_PASSWORD_MESSAGE

    user = _user(db)
    assert user.reset_password_token
    assert len(user.reset_password_token) == 64
    assert user.reset_password_expires > datetime.utcnow()

    assert len(sent_mail) == 1
    assert sent_mail[0]['to'] == 'owner@example.com'
    assert ('http://frontend.test/reset-password?token='
            + user.reset_password_token) in sent_mail[0]['text']


def test_forgot_password_unknown_email_gives_same_answer(client, sent_mail):
    response = client.post('/api/password/forgot',
                           json={'email': 'nobody@example.com'})
    assert response.status_code == 200
    assert response.get_json()['message'] == FORGOT_PASSWORD_MESSAGE
    assert sent_mail == []


def test_forgot_password_requires_email(client):
    response = client.post('/api/password/forgot', json={})
    assert response.status_code == 400


def test_forgot_password_with_non_string_email(client, sent_mail):
    response = client.post('/api/password/forgot', json={'email': 12345})
    assert response.status_code == 200
    assert sent_mail == []


def test_forgot_password_mail_failure_clears_token(client, db, owner,
                                                   monkeypatch):
    def broken_send_mail(to, subject, text, html=None):
        raise email_service.EmailDeliveryError(
            'Could not send the email. Please try again later.')

    monkeypatch.setattr(email_service, 'send_mail', broken_send_mail)

    response = client.post('/api/password/forgot',
                           json={'email': 'owner@example.com'})
    assert response.status_code == 500
    assert response.get_json()['success'] is False

    user = _user(db)
    assert user.reset_password_token is None
    assert user.reset_password_expires is None


def test_verify_and_reset_password(client, db, owner, sent_mail):
    client.post('/api/password/forgot', json={'email': 'owner@example.com'})
    token = _user(db).reset_password_token

    verify = client.get(f'/api/password/verify/{token}')
    assert verify.status_code == 200
    assert verify.get_json()['data']['email'] == 'owner@example.com'

    reset = client.post('/api/password/reset', json={
        'token': token, 'newPassword': 'brand-new-pass'})
    assert reset.status_code == 200

    user = _user(db)
    assert user.reset_password_token is None
    assert user.check_password('brand-new-pass')

    login = client.post('/api/auth/login', json={
        'email': 'owner@example.com', 'password': 'brand-new-pass'})
    assert login.status_code == 200

    # Tokens are single use.
    again = client.post('/api/password/reset', json={
        'token': token, 'newPassword': 'another-pass'})
    assert again.status_code == 400
    assert again.get_json()['message'] == 'Invalid or expired token'


def test_expired_token_is_rejected(client, db, owner, sent_mail):
    client.post('/api/password/forgot', json={'email': 'owner@example.com'})
    user = _user(db)
    token = user.reset_password_token
    user.reset_password_expires = datetime.utcnow() - timedelta(minutes=1)
    db.session.commit()

    verify = client.get(f'/api/password/verify/{token}')
    assert verify.status_code == 400
    assert verify.get_json()['message'] == 'Invalid or expired token'

    reset = client.post('/api/password/reset', json={
        'token': token, 'newPassword': 'brand-new-pass'})
    assert reset.status_code == 400


def test_reset_requires_long_enough_password(client, db, owner, sent_mail):
    client.post('/api/password/forgot', json={'email': 'owner@example.com'})
    token = _user(db).reset_password_token

    response = client.post('/api/password/reset', json={
        'token': token, 'newPassword': '123'})
    assert response.status_code == 400
    assert _user(db).reset_password_token == token


def test_change_password(client, db, owner):
    response = client.post('/api/password/change', headers=owner['headers'],
                           json={'currentPassword': 'secret123',
                                 'newPassword': 'changed-pass'})
    assert response.status_code == 200
    assert _user(db).check_password('changed-pass')


def test_change_password_wrong_current(client, owner):
    response = client.post('/api/password/change', headers=owner['headers'],
                           json={'currentPassword': 'wrong-one',
                                 'newPassword': 'changed-pass'})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Current password is incorrect'


def test_change_password_needs_token(client):
    response = client.post('/api/password/change',
                           headers=auth_headers('garbage'),
                           json={'currentPassword': 'a',
                                 'newPassword': 'changed-pass'})
    assert response.status_code == 401
