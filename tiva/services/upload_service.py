from flask import current_app
from tiva.models import TenantScope
from tiva.services.errors import NotFoundError, ServiceError, UpstreamError
from werkzeug.utils import secure_filename
import cloudinary
import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader
import io
import logging
import secrets
import time

logger = logging.getLogger(__name__)

TRANSFORMATION = [
    {'width': 800, 'crop': 'limit', 'quality': 'auto'},
    {'fetch_format': 'auto'},
]

RESULT_FIELDS = (
    'secure_url',
    'public_id',
    'format',
    'bytes',
    'width',
    'height',
    'created_at',
)


def init_cloudinary(app):
    cloudinary.config(
        cloud_name=app.config.get('CLOUDINARY_CLOUD_NAME'),
        api_key=app.config.get('CLOUDINARY_API_KEY'),
        api_secret=app.config.get('CLOUDINARY_API_SECRET'),
        secure=True,
    )
    if not app.config.get('CLOUDINARY_CLOUD_NAME'):
        logger.warning(
            "Cloudinary is not configured; image uploads will fail")


def store_folder(scope: TenantScope):
    prefix = current_app.config['UPLOAD_FOLDER_PREFIX']
    return f'{prefix}/{scope.store_id}'


def _generate_public_id(index=None):
    stamp = int(time.time() * 1000)
    token = secrets.token_hex(6)
    if index is None:
        return f'{stamp}_{token}'
    return f'{stamp}_{index}_{token}'


def _summary(result):
    return {key: result.get(key) for key in RESULT_FIELDS}


def _check_owned(scope: TenantScope, public_id):
    public_id = (public_id or '').strip()
    if not public_id:
        raise ServiceError('Image public id is required')
    # Images of other stores are reported as missing.
    if not public_id.startswith(store_folder(scope) + '/'):
        raise NotFoundError('Image not found')
    return public_id


def validate_file(file_storage):
    """Read the upload and return (filename, bytes); ServiceError if invalid."""
    if file_storage is None or not file_storage.filename:
        raise ServiceError('No file received')
    filename = secure_filename(file_storage.filename) or 'upload'
    mimetype = (file_storage.mimetype or '').lower()
    if mimetype not in current_app.config['UPLOAD_ALLOWED_MIMETYPES']:
        raise ServiceError(
            'Image format not allowed. Only JPG, PNG and WebP are accepted')
    data = file_storage.read()
    if len(data) > current_app.config['UPLOAD_MAX_BYTES']:
        raise ServiceError('File is too large. Maximum size is 5MB')
    if not data:
        raise ServiceError('File is empty')
    return filename, data


def _send(scope: TenantScope, data, public_id):
    try:
        return cloudinary.uploader.upload(
            io.BytesIO(data),
            folder=store_folder(scope),
            public_id=public_id,
            transformation=TRANSFORMATION,
            resource_type='image',
        )
    except cloudinary.exceptions.Error as e:
        logger.error(f"Cloudinary upload failed: {e}", exc_info=True)
        raise UpstreamError(str(e) or 'Image upload failed')


def upload_image(scope: TenantScope, file_storage):
    filename, data = validate_file(file_storage)
    result = _send(scope, data, _generate_public_id())
    logger.info(
        f"Uploaded {filename} to {result.get('public_id')} "
        f"({result.get('bytes')} bytes)")
    return _summary(result)


def upload_images(scope: TenantScope, files):
    """Upload each file independently and collect per-file errors."""
    files = [f for f in (files or []) if f is not None and f.filename]
    if not files:
        raise ServiceError('No files received')
    max_files = current_app.config['UPLOAD_MAX_FILES']
    if len(files) > max_files:
        raise ServiceError(f'Maximum {max_files} images per upload')

    uploaded = []
    errors = []
    for index, file_storage in enumerate(files):
        original = file_storage.filename
        try:
            _, data = validate_file(file_storage)
            result = _send(scope, data, _generate_public_id(index))
        except ServiceError as e:
            errors.append({'file': original, 'error': e.message})
            continue
        item = _summary(result)
        item.pop('created_at', None)
        item['originalname'] = original
        uploaded.append(item)

    logger.info(
        f"Batch upload for store {scope.store_id}: "
        f"{len(uploaded)} uploaded, {len(errors)} failed")
    return {
        'uploaded': uploaded,
        'errors': errors,
        'total_uploaded': len(uploaded),
        'total_errors': len(errors),
    }


def list_images(scope: TenantScope, max_results=50):
    try:
        max_results = min(max(int(max_results), 1), 500)
    except (TypeError, ValueError):
        raise ServiceError('max_results must be an integer')
    try:
        result = cloudinary.api.resources(
            type='upload',
            prefix=store_folder(scope) + '/',
            max_results=max_results,
        )
    except cloudinary.exceptions.Error as e:
        logger.error(f"Cloudinary listing failed: {e}", exc_info=True)
        raise UpstreamError(str(e) or 'Could not list images')
    resources = [_summary(r) for r in result.get('resources', [])]
    return {'images': resources, 'total': len(resources)}


def get_image_info(scope: TenantScope, public_id):
    public_id = _check_owned(scope, public_id)
    try:
        result = cloudinary.api.resource(public_id)
    except cloudinary.exceptions.NotFound:
        raise NotFoundError('Image not found')
    except cloudinary.exceptions.Error as e:
        logger.error(f"Cloudinary lookup failed: {e}", exc_info=True)
        raise UpstreamError(str(e) or 'Could not fetch image info')
    return _summary(result)


def delete_image(scope: TenantScope, public_id):
    public_id = _check_owned(scope, public_id)
    try:
        result = cloudinary.uploader.destroy(public_id)
    except cloudinary.exceptions.Error as e:
        logger.error(f"Cloudinary delete failed: {e}", exc_info=True)
        raise UpstreamError(str(e) or 'Could not delete image')
    if result.get('result') != 'ok':
        raise NotFoundError('Image not found or already deleted')
    logger.info(f"Deleted image {public_id}")
    return result
