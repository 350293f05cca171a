from decimal import Decimal
from types import SimpleNamespace
from tiva.services.contact_links import (
    build_contact_links,
    encode_component,
    format_amount,
    sms_message,
    whatsapp_link,
    whatsapp_message,
)


def _order(notes=None):
    return SimpleNamespace(
        customer_name='Ana',
        customer_phone='3001234567',
        total=Decimal('26500.00'),
        notes=notes,
        order_number='ORD-000007',
    )


def _items():
    return [
        SimpleNamespace(product_name='Arepa', quantity=2,
                        total=Decimal('20000.00')),
        SimpleNamespace(product_name='Jugo', quantity=1,
                        total=Decimal('6500.00')),
    ]


def test_format_amount():
    assert format_amount(Decimal('20000.00')) == '20000'
    assert format_amount(Decimal('19.50')) == '19.5'
    assert format_amount(Decimal('12.25')) == '12.25'
    assert format_amount(None) == '0'


def test_encode_component_matches_browser_encoding():
    assert encode_component("a b&c=d/e") == 'a%20b%26c%3Dd%2Fe'
    assert encode_component("it's(ok)!*~") == "it's(ok)!*~"
    assert encode_component('\n') == '%0A'


def test_whatsapp_message_layout():
    message = whatsapp_message('Demo Store', _order(), _items())
    lines = message.split('\n')
    assert lines[0] == '🛒 *Order for Demo Store*'
    assert '👤 *Customer:* Ana' in lines
    assert '📞 *Phone:* 3001234567' in lines
    assert '• Arepa x2 - $20000' in lines
    assert '• Jugo x1 - $6500' in lines
    assert '💰 *Total: $26500*' in lines
    assert lines[-1] == '🆔 *Order ID:* ORD-000007'
    assert 'Notes' not in message


def test_notes_are_included_when_present():
    assert '📝 *Notes:* No onions' in whatsapp_message(
        'Demo Store', _order('No onions'), _items())
    assert 'Notes: No onions' in sms_message(
        'Demo Store', _order('No onions'), _items())


def test_sms_message_layout():
    message = sms_message('Demo Store', _order(), _items())
    assert message.split('\n') == [
        'Order for Demo Store',
        'Customer: Ana (3001234567)',
        'Products: Arepa x2, Jugo x1',
        'Total: $26500',
        'ID: ORD-000007',
    ]


def test_whatsapp_link_strips_non_digits():
    link = whatsapp_link('+57 (300) 123-4567', 'Hi there')
    assert link == 'https://wa.me/573001234567?text=Hi%20there'


def test_build_contact_links_only_for_configured_channels():
    both = SimpleNamespace(name='Demo Store', whatsapp_number='+573001234567',
                           sms_number='3009998888')
    links = build_contact_links(both, _order(), _items())
    assert links['whatsapp'].startswith('https://wa.me/573001234567?text=')
    assert links['sms'].startswith('sms:3009998888?body=Order%20for%20Demo')

    none = SimpleNamespace(name='Demo Store', whatsapp_number=None,
                           sms_number='')
    assert build_contact_links(none, _order(), _items()) == {}
