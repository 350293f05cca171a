from flask import (
    Blueprint,
    current_app,
    request,
    render_template,
    redirect,
    url_for,
    flash,
)
from flask_jwt_extended import (
    get_jwt,
    set_access_cookies,
    unset_jwt_cookies,
)
from tiva.extensions import db
from tiva.middleware import page_login_required, resolve_optional_scope
from tiva.models import (
    ASSIGNABLE_ORDER_STATUSES,
    Currency,
    OrderChannel,
    OrderStatus,
    ProductStatus,
    TenantScope,
    User,
)
from tiva.services import (
    analytics_service,
    auth_service,
    order_service,
    password_service,
    product_service,
    store_service,
    upload_service,
)
from tiva.services.audit_service import log_audit
from tiva.services.errors import ServiceError
from tiva.utils import pagination_meta
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('dashboard', __name__)


@bp.context_processor
def inject_dashboard_globals():
    try:
        csrf_token = get_jwt().get('csrf', '')
    except RuntimeError:
        csrf_token = ''
    return {
        'csrf_token': csrf_token,
        'product_statuses': [s.value for s in ProductStatus],
        'order_statuses': [s.value for s in OrderStatus],
        'assignable_statuses': [s.value for s in ASSIGNABLE_ORDER_STATUSES],
        'order_channels': [c.value for c in OrderChannel],
        'currencies': [c.value for c in Currency],
    }


def _audit(scope, action, target_type=None, target_id=None, payload=None):
    log_audit(
        actor_id=scope.user_id,
        actor_role=scope.role.value if scope.role else 'ANONYMOUS',
        store_id=scope.store_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        payload=payload,
    )


def _safe_next(target):
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return url_for('dashboard.home')


def _signed_in(user, token, target=None):
    response = redirect(_safe_next(target))
    set_access_cookies(response, token)
    return response


def _product_form_data(form):
    data = {
        'name': form.get('name', ''),
        'description': form.get('description', ''),
        'price': form.get('price', ''),
        'stock': form.get('stock') or 0,
        'tags': form.get('tags', ''),
        'imageUrls': [
            line.strip()
            for line in form.get('image_urls', '').splitlines()
            if line.strip()
        ],
    }
    if form.get('status'):
        data['status'] = form.get('status')
    return data


@bp.route('/login', methods=['GET', 'POST'])
def login():
    if request.method == 'GET':
        if resolve_optional_scope(['cookies']) is not None:
            return redirect(url_for('dashboard.home'))
        return render_template('dashboard/login.html',
                               next=request.args.get('next', ''))

    form = request.form
    try:
        user, token = auth_service.login(
            form.get('email'), form.get('password'))
    except ServiceError as e:
        log_audit(action='LOGIN_FAILED', target_type='USER',
                  payload={'reason': e.message, 'via': 'dashboard'})
        flash(e.message, 'error')
        return render_template(
            'dashboard/login.html',
            next=form.get('next', ''),
            email=form.get('email', ''),
        ), e.status_code

    log_audit(
        actor_id=user.id,
        actor_role=user.role.value,
        store_id=user.store_id,
        action='LOGIN_SUCCESS',
        target_type='USER',
        target_id=user.id,
        payload={'via': 'dashboard'},
    )
    return _signed_in(user, token, form.get('next'))


@bp.route('/register', methods=['GET', 'POST'])
def register():
    if request.method == 'GET':
        return render_template('dashboard/register.html')

    form = request.form
    data = {
        'name': form.get('name'),
        'email': form.get('email'),
        'password': form.get('password'),
        'storeName': form.get('store_name'),
    }
    try:
        user, token = auth_service.register(data)
    except ServiceError as e:
        flash(e.message, 'error')
        return render_template('dashboard/register.html',
                               form=form), e.status_code

    log_audit(
        actor_id=user.id,
        actor_role=user.role.value,
        store_id=user.store_id,
        action='REGISTER',
        target_type='STORE',
        target_id=user.store_id,
        payload={'via': 'dashboard'},
    )
    flash('Welcome to Tiva Store! Your store is ready.', 'success')
    return _signed_in(user, token)


@bp.route('/logout', methods=['POST'])
def logout():
    response = redirect(url_for('dashboard.login'))
    unset_jwt_cookies(response)
    flash('You have been logged out', 'success')
    return response


@bp.route('/forgot-password', methods=['GET', 'POST'])
def forgot_password():
    if request.method == 'POST':
        try:
            user = password_service.forgot_password(request.form.get('email'))
        except ServiceError as e:
            flash(e.message, 'error')
            return render_template(
                'dashboard/forgot_password.html'), e.status_code
        if user is not None:
            log_audit(
                actor_id=user.id,
                actor_role=user.role.value,
                store_id=user.store_id,
                action='PASSWORD_RESET_REQUESTED',
                target_type='USER',
                target_id=user.id,
            )
        flash(password_service.FORGOT_PASSWORD_MESSAGE, 'success')
        return redirect(url_for('dashboard.login'))
    return render_template('dashboard/forgot_password.html')


@bp.route('/reset-password', methods=['GET', 'POST'])
def reset_password():
    token = request.values.get('token', '')
    if request.method == 'POST':
        new_password = request.form.get('password', '')
        if new_password != request.form.get('confirm_password', ''):
            flash('Passwords do not match', 'error')
            return render_template('dashboard/reset_password.html',
                                   token=token), 400
        try:
            user = password_service.reset_password(token, new_password)
        except ServiceError as e:
            flash(e.message, 'error')
            return render_template('dashboard/reset_password.html',
                                   token=token), e.status_code
        log_audit(
            actor_id=user.id,
            actor_role=user.role.value,
            store_id=user.store_id,
            action='PASSWORD_RESET',
            target_type='USER',
            target_id=user.id,
        )
        flash('Password reset successfully. You can now log in.', 'success')
        return redirect(url_for('dashboard.login'))

    try:
        user = password_service.find_by_token(token)
    except ServiceError as e:
        flash(e.message, 'error')
        return redirect(url_for('dashboard.forgot_password'))
    return render_template('dashboard/reset_password.html',
                           token=token, user=user)


@bp.route('/', methods=['GET'])
@page_login_required
def home(scope: TenantScope):
    store = store_service.get_store(scope)
    return render_template(
        'dashboard/home.html',
        store=store,
        overview=analytics_service.overview(scope),
        latest_orders=order_service.latest_orders(scope, 5),
        latest_products=product_service.latest_active(scope, 5),
        catalog_url=store_service.catalog_link(store),
    )


@bp.route('/products', methods=['GET', 'POST'])
@page_login_required
def products(scope: TenantScope):
    if request.method == 'POST':
        try:
            product = product_service.create_product(
                scope, _product_form_data(request.form))
        except ServiceError as e:
            db.session.rollback()
            flash(e.message, 'error')
        else:
            _audit(scope, 'PRODUCT_CREATED', 'PRODUCT', product.id,
                   {'name': product.name})
            flash(f'Product "{product.name}" created', 'success')
        return redirect(url_for('dashboard.products'))

    result = product_service.list_products(scope, request.args)
    return render_template(
        'dashboard/products.html',
        store=store_service.get_store(scope),
        products=result['items'],
        pagination=pagination_meta(result),
        filters={
            'q': request.args.get('q', ''),
            'status': request.args.get('status', 'active'),
        },
    )


@bp.route('/products/<int:product_id>/edit', methods=['GET', 'POST'])
@page_login_required
def edit_product(scope: TenantScope, product_id):
    product = product_service.get_product(scope, product_id)
    if request.method == 'POST':
        try:
            product = product_service.update_product(
                scope, product_id, _product_form_data(request.form))
        except ServiceError as e:
            db.session.rollback()
            flash(e.message, 'error')
            return render_template('dashboard/product_edit.html',
                                   product=product), e.status_code
        _audit(scope, 'PRODUCT_UPDATED', 'PRODUCT', product.id)
        flash('Product updated', 'success')
        return redirect(url_for('dashboard.products'))
    return render_template('dashboard/product_edit.html', product=product)


@bp.route('/products/<int:product_id>/archive', methods=['POST'])
@page_login_required
def archive_product(scope: TenantScope, product_id):
    product = product_service.archive_product(scope, product_id)
    _audit(scope, 'PRODUCT_ARCHIVED', 'PRODUCT', product.id)
    flash(f'Product "{product.name}" archived', 'success')
    return redirect(url_for('dashboard.products'))


@bp.route('/products/<int:product_id>/delete', methods=['POST'])
@page_login_required
def delete_product(scope: TenantScope, product_id):
    product = product_service.delete_product(scope, product_id)
    _audit(scope, 'PRODUCT_DELETED', 'PRODUCT', product.id)
    flash(f'Product "{product.name}" deleted', 'success')
    return redirect(url_for('dashboard.products'))


@bp.route('/orders', methods=['GET'])
@page_login_required
def orders(scope: TenantScope):
    result = order_service.list_orders(scope, request.args)
    return render_template(
        'dashboard/orders.html',
        store=store_service.get_store(scope),
        orders=result['items'],
        pagination=pagination_meta(result),
        filters={
            'status': request.args.get('status', ''),
            'channel': request.args.get('channel', ''),
            'startDate': request.args.get('startDate', ''),
            'endDate': request.args.get('endDate', ''),
        },
    )


@bp.route('/orders/<int:order_id>/status', methods=['POST'])
@page_login_required
def update_order_status(scope: TenantScope, order_id):
    try:
        order, previous = order_service.update_status(
            scope, order_id, request.form.get('status'))
    except ServiceError as e:
        if e.status_code == 404:
            raise
        flash(e.message, 'error')
    else:
        _audit(scope, 'ORDER_STATUS_CHANGED', 'ORDER', order.id,
               {'from': previous.value, 'to': order.status.value})
        flash(f'Order {order.order_number} is now {order.status.value}',
              'success')
    return redirect(request.referrer or url_for('dashboard.orders'))


@bp.route('/analytics', methods=['GET'])
@page_login_required
def analytics(scope: TenantScope):
    date_from = request.args.get('from') or None
    date_to = request.args.get('to') or None
    return render_template(
        'dashboard/analytics.html',
        store=store_service.get_store(scope),
        overview=analytics_service.overview(scope, date_from, date_to),
        top_products=analytics_service.top_products(
            scope, date_from, date_to),
        orders_by_day=analytics_service.orders_by_day(
            scope, request.args.get('days')),
        channel_stats=analytics_service.channel_stats(
            scope, date_from, date_to),
        filters={
            'from': date_from or '',
            'to': date_to or '',
            'days': request.args.get('days', ''),
        },
    )


@bp.route('/settings', methods=['GET', 'POST'])
@page_login_required
def settings(scope: TenantScope):
    store = store_service.get_store(scope)
    if request.method == 'POST':
        if scope.role is None or scope.role.value != 'owner':
            flash('Only the store owner can change settings', 'error')
            return redirect(url_for('dashboard.settings'))
        form = request.form
        data = {
            'name': form.get('name', ''),
            'description': form.get('description', ''),
            'whatsappNumber': form.get('whatsapp_number', ''),
            'smsNumber': form.get('sms_number', ''),
            'currency': form.get('currency', store.currency.value),
            'language': form.get('language', store.language),
            'settings': {
                'theme': {
                    'primaryColor': form.get('primary_color', ''),
                    'secondaryColor': form.get('secondary_color', ''),
                },
                'contact': {
                    'phone': form.get('contact_phone', ''),
                    'email': form.get('contact_email', ''),
                    'address': form.get('contact_address', ''),
                },
                'social': {
                    'whatsapp': form.get('social_whatsapp', ''),
                    'instagram': form.get('social_instagram', ''),
                    'facebook': form.get('social_facebook', ''),
                },
            },
        }
        try:
            store, changed = store_service.update_store(scope, data)
        except ServiceError as e:
            db.session.rollback()
            flash(e.message, 'error')
        else:
            _audit(scope, 'STORE_UPDATED', 'STORE', store.id,
                   {'fields': changed})
            flash('Settings saved', 'success')
        return redirect(url_for('dashboard.settings'))

    return render_template(
        'dashboard/settings.html',
        store=store,
        owner=db.session.get(User, store.owner_id),
        catalog_url=store_service.catalog_link(store),
        upload_ready=bool(current_app.config.get('CLOUDINARY_CLOUD_NAME')),
    )


@bp.route('/settings/logo', methods=['POST'])
@page_login_required
def upload_logo(scope: TenantScope):
    if scope.role is None or scope.role.value != 'owner':
        flash('Only the store owner can change settings', 'error')
        return redirect(url_for('dashboard.settings'))
    try:
        result = upload_service.upload_image(scope, request.files.get('logo'))
        store, _ = store_service.update_store(
            scope, {'logo': result['secure_url']})
    except ServiceError as e:
        flash(e.message, 'error')
    else:
        _audit(scope, 'STORE_LOGO_UPDATED', 'STORE', store.id,
               {'public_id': result['public_id']})
        flash('Logo updated', 'success')
    return redirect(url_for('dashboard.settings'))
