from decimal import Decimal
from urllib.parse import quote
import re

# Characters a browser's encodeURIComponent leaves untouched.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_component(text):
    return quote(text, safe=_URI_COMPONENT_SAFE)


def format_amount(value):
    """Render money the way shoppers type it: 20000, 19.5, 12.25."""
    amount = Decimal(str(value or 0))
    if amount == amount.to_integral_value():
        return str(int(amount))
    return format(amount.normalize(), 'f')


def whatsapp_message(store_name, order, items):
    lines = [
        f'🛒 *Order for {store_name}*',
        '',
        f'👤 *Customer:* {order.customer_name}',
        f'📞 *Phone:* {order.customer_phone}',
        '',
        '📋 *Products:*',
    ]
    for item in items:
        lines.append(
            f'• {item.product_name} x{item.quantity} - '
            f'${format_amount(item.total)}'
        )
    lines.append('')
    lines.append(f'💰 *Total: ${format_amount(order.total)}*')
    if order.notes:
        lines.append('')
        lines.append(f'📝 *Notes:* {order.notes}')
    lines.append('')
    lines.append(f'🆔 *Order ID:* {order.order_number}')
    return '\n'.join(lines)


def sms_message(store_name, order, items):
    products = ', '.join(
        f'{item.product_name} x{item.quantity}' for item in items)
    lines = [
        f'Order for {store_name}',
        f'Customer: {order.customer_name} ({order.customer_phone})',
        f'Products: {products}',
        f'Total: ${format_amount(order.total)}',
    ]
    if order.notes:
        lines.append(f'Notes: {order.notes}')
    lines.append(f'ID: {order.order_number}')
    return '\n'.join(lines)


def whatsapp_link(number, message):
    digits = re.sub(r'\D', '', number or '')
    return f'https://wa.me/{digits}?text={encode_component(message)}'


def sms_link(number, message):
    return f'sms:{(number or "").strip()}?body={encode_component(message)}'


def build_contact_links(store, order, items):
    """Only channels the store has configured get a link."""
    links = {}
    if store.whatsapp_number:
        links['whatsapp'] = whatsapp_link(
            store.whatsapp_number,
            whatsapp_message(store.name, order, items))
    if store.sms_number:
        links['sms'] = sms_link(
            store.sms_number,
            sms_message(store.name, order, items))
    return links
