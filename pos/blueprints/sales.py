"""
Sales blueprint for the POS cart and checkout (JSON API).

POST and DELETE routes are CSRF-protected: the till reads /sales/csrf-token once
per session and sends it back in the X-CSRFToken header.
"""
from datetime import datetime
from typing import Tuple, Union

from flask import Blueprint, session, jsonify, send_file, current_app, Response
from flask_wtf.csrf import generate_csrf

from pos.blueprints.metrics import checkouts_total, checkout_duration_seconds, sale_total_amount
from pos.database import get_session
from pos.exceptions import BusinessLogicError, InsufficientStockError, NotFoundError, PersistenceError, ValidationError
from pos.repositories import SqlStorage
from pos.services import cart_service
from pos.services.cart_service import Cart
from pos.services.checkout_service import commit_checkout
from pos.services.pricing_service import Breakdown
from pos.services.receipt_service import generate_estimate_pdf, generate_receipt_pdf
from pos.utils.formatters import money, round_money
from pos.utils.number_format import parse_decimal, parse_quantity
from pos.utils.payload import request_payload

sales_bp = Blueprint('sales', __name__, url_prefix='/sales')

CART_SESSION_KEY = 'cart'


def _storage() -> SqlStorage:
    return SqlStorage(get_session())


def get_cart() -> Cart:
    """Get the till's cart from the session."""
    return Cart.from_dict(session.get(CART_SESSION_KEY))


def save_cart(cart: Cart) -> None:
    """Save cart to session (Decimals serialized as strings)."""
    session[CART_SESSION_KEY] = cart.to_dict()
    session.modified = True


def _product_id(payload: dict) -> int:
    try:
        return int(payload.get('product_id'))
    except (TypeError, ValueError):
        raise BusinessLogicError('Missing or invalid product_id')


def _display(breakdown: Breakdown) -> dict:
    """Two-decimal strings for the till display."""
    symbol = current_app.config.get('CURRENCY_SYMBOL', '')
    return {
        'subtotal': money(breakdown.subtotal, symbol),
        'tax_total': money(breakdown.tax_total, symbol),
        'discount_total': money(breakdown.discount_total, symbol),
        'grand_total': money(breakdown.grand_total, symbol),
    }


def _cart_response(cart: Cart, storage: SqlStorage, status: int = 200) -> Tuple[Response, int]:
    """Recompute the breakdown from scratch and return the cart view."""
    breakdown = cart_service.price_cart(cart, storage.promotions)
    return jsonify({
        'status': 'ok',
        'cart': cart.to_dict(),
        'item_count': cart.item_count,
        'breakdown': breakdown.to_dict(),
        'display': _display(breakdown),
    }), status


@sales_bp.route('/cart', methods=['GET'])
def cart_view():
    """Current cart with a freshly computed breakdown."""
    return _cart_response(get_cart(), _storage())


@sales_bp.route('/cart/add', methods=['POST'])
def cart_add():
    """Add product by id or scanned barcode."""
    storage = _storage()
    payload = request_payload()
    cart = get_cart()

    barcode = str(payload.get('barcode') or '').strip()
    if barcode:
        cart_service.add_by_barcode(cart, storage.catalog, barcode)
    else:
        qty = parse_quantity(payload.get('qty', 1))
        cart_service.add_product(cart, storage.catalog, _product_id(payload), qty)

    save_cart(cart)
    return _cart_response(cart, storage)


@sales_bp.route('/cart/increment', methods=['POST'])
def cart_increment():
    cart = get_cart()
    cart.increment(_product_id(request_payload()))
    save_cart(cart)
    return _cart_response(cart, _storage())


@sales_bp.route('/cart/decrement', methods=['POST'])
def cart_decrement():
    cart = get_cart()
    cart.decrement(_product_id(request_payload()))
    save_cart(cart)
    return _cart_response(cart, _storage())


@sales_bp.route('/cart/remove', methods=['POST'])
def cart_remove():
    """Remove item from cart."""
    cart = get_cart()
    product_id = _product_id(request_payload())
    cart.remove(product_id)
    save_cart(cart)

    current_app.logger.info(f"[CART] remove product_id={product_id}")
    return _cart_response(cart, _storage())


@sales_bp.route('/cart/clear', methods=['POST'])
def cart_clear():
    """Abandon the order: drop lines and discount selections."""
    cart = get_cart()
    cart.clear()
    save_cart(cart)
    return _cart_response(cart, _storage())


@sales_bp.route('/cart/line-discount', methods=['POST'])
def cart_line_discount():
    payload = request_payload()
    cart = get_cart()
    cart.set_line_discount(_product_id(payload), payload.get('discount'))
    save_cart(cart)
    return _cart_response(cart, _storage())


@sales_bp.route('/cart/coupon', methods=['POST'])
def cart_apply_coupon():
    storage = _storage()
    cart = get_cart()
    cart_service.apply_coupon(cart, storage.promotions, request_payload().get('code'))
    save_cart(cart)
    return _cart_response(cart, storage)


@sales_bp.route('/cart/coupon', methods=['DELETE'])
def cart_remove_coupon():
    cart = get_cart()
    cart.clear_coupon()
    save_cart(cart)
    return _cart_response(cart, _storage())


@sales_bp.route('/cart/manual-discount', methods=['POST'])
def cart_manual_discount():
    payload = request_payload()
    cart = get_cart()
    cart.set_manual_discount(payload.get('kind'), payload.get('value'))
    save_cart(cart)
    return _cart_response(cart, _storage())


@sales_bp.route('/cart/group-discount', methods=['POST'])
def cart_group_discount():
    """Toggle the buy-X-get-Y scheme (optionally selecting one)."""
    storage = _storage()
    payload = request_payload()
    cart = get_cart()

    scheme_id = payload.get('scheme_id')
    if scheme_id not in (None, ''):
        try:
            scheme_id = int(scheme_id)
        except (TypeError, ValueError):
            raise BusinessLogicError('Invalid scheme_id')
    else:
        scheme_id = None
        if cart.group_scheme_id is None:
            # Default to the first active scheme
            schemes = storage.promotions.list_active_group_schemes()
            scheme_id = schemes[0].id if schemes else None

    active = str(payload.get('active', 'true')).lower() in ('1', 'true', 'on', 'yes')
    cart_service.select_group_discount(cart, storage.promotions, scheme_id, active)
    save_cart(cart)
    return _cart_response(cart, storage)


@sales_bp.route('/schemes', methods=['GET'])
def list_schemes():
    schemes = _storage().promotions.list_active_group_schemes()
    return jsonify({'status': 'ok', 'schemes': [s.to_dict() for s in schemes]})


@sales_bp.route('/confirm/preview', methods=['GET'])
def confirm_preview():
    """Preview sale before confirmation."""
    cart = get_cart()
    if cart.is_empty:
        raise BusinessLogicError('The cart is empty. Add products to continue.')

    response, status = _cart_response(cart, _storage())
    data = response.get_json()
    data['payment_methods'] = list(current_app.config.get('ALLOWED_PAYMENT_METHODS', ()))
    return jsonify(data), status


@sales_bp.route('/confirm', methods=['POST'])
def confirm():
    """Confirm sale and process transaction."""
    storage = _storage()
    payload = request_payload()
    cart = get_cart()

    try:
        with checkout_duration_seconds.time():
            breakdown = cart_service.price_cart(cart, storage.promotions)

            # The till may send the total it displayed; refuse if it no longer matches
            expected_total = payload.get('expected_total')
            if expected_total not in (None, ''):
                if parse_decimal(expected_total, 'expected_total') != round_money(breakdown.grand_total):
                    raise BusinessLogicError('The order total changed. Review the cart before confirming.')

            sale = commit_checkout(
                cart,
                breakdown,
                payload.get('payment_method', 'CASH'),
                storage,
                allowed_methods=current_app.config.get('ALLOWED_PAYMENT_METHODS')
            )
    except InsufficientStockError:
        checkouts_total.labels(outcome='insufficient_stock').inc()
        raise
    except PersistenceError:
        checkouts_total.labels(outcome='persistence_error').inc()
        raise
    except (BusinessLogicError, ValidationError, NotFoundError):
        checkouts_total.labels(outcome='rejected').inc()
        raise

    checkouts_total.labels(outcome='committed').inc()
    sale_total_amount.labels(payment_method=sale.payment_method.value).observe(float(breakdown.grand_total))
    save_cart(cart)

    current_app.logger.info(f"[CHECKOUT] sale #{sale.id} confirmed ({sale.payment_method.value})")
    return jsonify({'status': 'ok', 'sale': sale.to_dict()}), 201


@sales_bp.route('/<int:sale_id>', methods=['GET'])
def sale_detail(sale_id: int):
    """Stored sale exactly as committed."""
    sale = _storage().sales.get_sale(sale_id)
    if not sale:
        raise NotFoundError(f'Sale {sale_id} not found.')
    return jsonify({'status': 'ok', 'sale': sale.to_dict()})


def _store_info() -> dict:
    config = current_app.config
    return {
        'name': config.get('STORE_NAME', ''),
        'address': config.get('STORE_ADDRESS', ''),
        'phone': config.get('STORE_PHONE', ''),
        'gst_no': config.get('STORE_GST_NO', ''),
        'footer': config.get('RECEIPT_FOOTER', ''),
        'currency': config.get('CURRENCY_SYMBOL', ''),
    }


@sales_bp.route('/<int:sale_id>/receipt.pdf', methods=['GET'])
def sale_receipt(sale_id: int) -> Union[Response, str]:
    """Re-render the receipt of a stored sale."""
    sale = _storage().sales.get_sale(sale_id)
    if not sale:
        raise NotFoundError(f'Sale {sale_id} not found.')

    pdf_buffer = generate_receipt_pdf(sale, _store_info())

    filename = f"receipt_{sale.id}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.pdf"
    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=filename
    )


@sales_bp.route('/cart/estimate.pdf', methods=['GET'])
def cart_estimate():
    """Printable estimate of the current cart; nothing is stored."""
    cart = get_cart()
    if cart.is_empty:
        raise BusinessLogicError('The cart is empty. Add products to continue.')

    breakdown = cart_service.price_cart(cart, _storage().promotions)
    pdf_buffer = generate_estimate_pdf(cart, breakdown, _store_info())

    filename = f"estimate_{datetime.now().strftime('%Y%m%d_%H%M%S')}.pdf"
    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=False,
        download_name=filename
    )


@sales_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """Token the till sends back in the X-CSRFToken header on every POST/DELETE."""
    return jsonify({'status': 'ok', 'csrf_token': generate_csrf()})
