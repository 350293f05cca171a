import io
import cloudinary.exceptions
import pytest

PNG = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


@pytest.fixture
def fake_cloudinary(monkeypatch):
    calls = {'upload': [], 'destroy': [], 'resource': [], 'resources': []}

    def upload(file, **options):
        calls['upload'].append(options)
        public_id = f"{options['folder']}/{options['public_id']}"
        return {
            'secure_url': f'https://res.cloudinary.com/test/{public_id}.png',
            'public_id': public_id,
            'format': 'png',
            'bytes': len(file.read()),
            'width': 10,
            'height': 10,
            'created_at': '2026-10-19T10:00:00Z',
        }

    def destroy(public_id, **options):
        calls['destroy'].append(public_id)
        return {'result': 'ok' if public_id.endswith('exists') else
                'not found'}

    def resource(public_id, **options):
        calls['resource'].append(public_id)
        if not public_id.endswith('exists'):
            raise cloudinary.exceptions.NotFound('Resource not found')
        return {'public_id': public_id, 'format': 'png', 'bytes': 10}

    def resources(**options):
        calls['resources'].append(options)
        return {'resources': [{'public_id': options['prefix'] + 'a'}]}

    monkeypatch.setattr('cloudinary.uploader.upload', upload)
    monkeypatch.setattr('cloudinary.uploader.destroy', destroy)
    monkeypatch.setattr('cloudinary.api.resource', resource)
    monkeypatch.setattr('cloudinary.api.resources', resources)
    return calls


def _file(name='photo.png', mimetype='image/png', data=PNG):
    return (io.BytesIO(data), name, mimetype)


def test_upload_single_image(client, owner, fake_cloudinary):
    response = client.post('/api/uploads', headers=owner['headers'],
                           data={'image': _file()},
                           content_type='multipart/form-data')

    assert response.status_code == 200, response.get_json()
    data = response.get_json()['data']
    folder = f"tiva_uploads/{owner['storeId']}"
    assert data['public_id'].startswith(folder + '/')
    assert data['secure_url'].startswith('https://')
    assert data['bytes'] == len(PNG)

    options = fake_cloudinary['upload'][0]
    assert options['folder'] == folder
    assert options['resource_type'] == 'image'


def test_upload_requires_file(client, owner, fake_cloudinary):
    response = client.post('/api/uploads', headers=owner['headers'],
                           data={}, content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['message'] == 'No file received'


def test_upload_rejects_wrong_type(client, owner, fake_cloudinary):
    response = client.post(
        '/api/uploads', headers=owner['headers'],
        data={'image': _file('doc.pdf', 'application/pdf')},
        content_type='multipart/form-data')
    assert response.status_code == 400
    assert 'Only JPG, PNG and WebP' in response.get_json()['message']
    assert fake_cloudinary['upload'] == []


def test_upload_rejects_large_file(client, app, owner, fake_cloudinary):
    too_big = b'\x00' * (app.config['UPLOAD_MAX_BYTES'] + 1)
    response = client.post('/api/uploads', headers=owner['headers'],
                           data={'image': _file(data=too_big)},
                           content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['message'] == \
        'File is too large. Maximum size is 5MB'


def test_provider_failure_is_502(client, owner, monkeypatch):
    def broken(file, **options):
        raise cloudinary.exceptions.Error('Invalid API key')

    monkeypatch.setattr('cloudinary.uploader.upload', broken)
    response = client.post('/api/uploads', headers=owner['headers'],
                           data={'image': _file()},
                           content_type='multipart/form-data')
    assert response.status_code == 502
    assert response.get_json()['success'] is False


def test_upload_multiple_collects_errors(client, owner, fake_cloudinary):
    response = client.post(
        '/api/uploads/multiple', headers=owner['headers'],
        data={'images': [_file('a.png'), _file('b.gif', 'image/gif'),
                         _file('c.webp', 'image/webp')]},
        content_type='multipart/form-data')

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['total_uploaded'] == 2
    assert data['total_errors'] == 1
    assert [u['originalname'] for u in data['uploaded']] == ['a.png',
                                                             'c.webp']
    assert data['errors'][0]['file'] == 'b.gif'


def test_upload_multiple_limit(client, app, owner, fake_cloudinary):
    files = [_file(f'{i}.png')
             for i in range(app.config['UPLOAD_MAX_FILES'] + 1)]
    response = client.post('/api/uploads/multiple', headers=owner['headers'],
                           data={'images': files},
                           content_type='multipart/form-data')
    assert response.status_code == 400
    assert fake_cloudinary['upload'] == []


def test_list_images_uses_store_folder(client, owner, fake_cloudinary):
    response = client.get('/api/uploads', headers=owner['headers'])
    assert response.status_code == 200
    assert response.get_json()['data']['total'] == 1
    assert fake_cloudinary['resources'][0]['prefix'] == \
        f"tiva_uploads/{owner['storeId']}/"


def test_image_info_and_delete(client, owner, fake_cloudinary):
    folder = f"tiva_uploads/{owner['storeId']}"

    info = client.get(f'/api/uploads/{folder}/exists',
                      headers=owner['headers'])
    assert info.status_code == 200
    assert info.get_json()['data']['public_id'] == f'{folder}/exists'

    missing = client.get(f'/api/uploads/{folder}/gone',
                         headers=owner['headers'])
    assert missing.status_code == 404

    deleted = client.delete(f'/api/uploads/{folder}/exists',
                            headers=owner['headers'])
    assert deleted.status_code == 200

    not_deleted = client.delete(f'/api/uploads/{folder}/gone',
                                headers=owner['headers'])
    assert not_deleted.status_code == 404


def test_images_of_other_stores_are_not_found(client, owner, other_owner,
                                              fake_cloudinary):
    foreign = f"tiva_uploads/{other_owner['storeId']}/exists"
    assert client.get(f'/api/uploads/{foreign}',
                      headers=owner['headers']).status_code == 404
    assert client.delete(f'/api/uploads/{foreign}',
                         headers=owner['headers']).status_code == 404
    assert fake_cloudinary['destroy'] == []
    assert fake_cloudinary['resource'] == []
