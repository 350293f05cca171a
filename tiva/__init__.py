from flask import Flask, jsonify, render_template, request
from werkzeug.exceptions import HTTPException
from tiva.extensions import db, migrate, jwt, cors
from tiva.config import Config, DEFAULT_JWT_SECRET
from tiva.middleware import setup_auth_middleware
from tiva.services.errors import ServiceError
from tiva.utils import wants_json_response
import logging
import os
import traceback

# Configure logging
logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(os.environ.get('LOG_FILE', 'app.log')),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

API_NAME = 'Tiva Store API'
API_VERSION = '1.0.0'

HTTP_MESSAGES = {
    404: 'Endpoint not found',
    405: 'Method not allowed',
    413: 'File too large',
}


def register_error_handlers(app):

    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            logger.error(f"{request.method} {request.path}: {error.message}")
        if wants_json_response():
            return jsonify(error.to_dict()), error.status_code
        return render_template(
            'error.html',
            status=error.status_code,
            message=error.message,
        ), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        message = HTTP_MESSAGES.get(error.code) or error.description \
            or error.name
        if error.code == 404 and error.description and \
                not error.description.startswith('The requested URL'):
            message = error.description
        if wants_json_response():
            return jsonify({'success': False, 'message': message}), \
                error.code
        return render_template(
            'error.html',
            status=error.code,
            message=message,
        ), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.error(
            f"Unhandled error on {request.method} {request.path}: {error}",
            exc_info=True,
        )
        db.session.rollback()
        body = {'success': False, 'message': 'Internal server error'}
        if app.config.get('ENV_NAME') != 'production':
            body['error'] = str(error)
            body['stack'] = ''.join(traceback.format_exception(
                type(error), error, error.__traceback__))
        if wants_json_response():
            return jsonify(body), 500
        return render_template(
            'error.html',
            status=500,
            message=body['message'],
        ), 500


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    cors.init_app(
        app,
        resources={r'/api/*': {'origins': app.config['CORS_ALLOWED_ORIGINS']}},
        supports_credentials=True,
    )

    from tiva.services.audit_service import setup_major_events_log
    from tiva.services.upload_service import init_cloudinary
    if not app.config.get('TESTING'):
        setup_major_events_log()
    init_cloudinary(app)

    if app.config['JWT_SECRET_KEY'] == DEFAULT_JWT_SECRET and \
            app.config.get('ENV_NAME') != 'development':
        logger.warning(
            "JWT_SECRET is not set; tokens are signed with the built-in "
            "development secret")

    # Register blueprints
    from tiva.blueprints import (
        analytics,
        auth,
        dashboard,
        orders,
        password,
        products,
        public,
        store,
        storefront,
        uploads,
    )

    app.register_blueprint(auth.bp, url_prefix='/api/auth')
    app.register_blueprint(password.bp, url_prefix='/api/password')
    app.register_blueprint(store.bp, url_prefix='/api/store')
    app.register_blueprint(products.bp, url_prefix='/api/products')
    app.register_blueprint(orders.bp, url_prefix='/api/orders')
    app.register_blueprint(analytics.bp, url_prefix='/api/analytics')
    app.register_blueprint(uploads.bp, url_prefix='/api/uploads')
    app.register_blueprint(public.bp, url_prefix='/api/public')
    app.register_blueprint(dashboard.bp, url_prefix='/dashboard')
    app.register_blueprint(storefront.bp, url_prefix='/')

    @app.route('/health')
    def health():
        return jsonify({
            'status': 'OK',
            'message': f'{API_NAME} is running',
            'environment': app.config.get('ENV_NAME'),
        })

    @app.route('/api')
    def api_index():
        return jsonify({
            'success': True,
            'message': API_NAME,
            'version': API_VERSION,
            'endpoints': {
                'auth': '/api/auth',
                'password': '/api/password',
                'store': '/api/store',
                'products': '/api/products',
                'orders': '/api/orders',
                'analytics': '/api/analytics',
                'uploads': '/api/uploads',
                'public': '/api/public',
            },
        })

    register_error_handlers(app)

    # Request logging
    setup_auth_middleware(app)

    # Note: Database tables are managed via Flask-Migrate
    # Use 'flask db upgrade' to create/update tables

    logger.info("Flask application initialized")
    return app
