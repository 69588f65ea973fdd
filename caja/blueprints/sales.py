"""Sales blueprint: checkout, listing, void and receipt - store-scoped JSON API."""
from decimal import Decimal
from flask import Blueprint, request, jsonify, current_app, g

from caja.database import get_session
from caja.exceptions import CajaError, RateLimitedError
from caja.middleware import require_login, require_store
from caja.models import Sale, Store
from caja.services.checkout_schemas import CheckoutRequest
from caja.services.checkout_service import checkout as run_checkout, void_sale, get_sale, list_sales as query_sales
from caja.services.rate_limit_service import get_rate_limiter
from caja.services.receipt_service import build_receipt_text
from caja.blueprints.metrics import checkout_total
from caja.utils.dates import parse_day, to_local

sales_bp = Blueprint('sales', __name__, url_prefix='/api')


def _sale_to_dict(sale: Sale) -> dict:
    return {
        'id': sale.id,
        'receiptNumber': sale.receipt_number,
        'createdAt': to_local(sale.created_at).isoformat(),
        'total': float(sale.total),
        'paymentMethod': sale.payment_method.value,
        'paymentMethodLabel': sale.payment_method.label,
        'status': sale.status.value,
        'customerName': sale.customer_name,
        'customerPhone': sale.customer_phone,
        'cashSessionId': sale.cash_session_id,
        'voidedAt': to_local(sale.voided_at).isoformat() if sale.voided_at else None,
        'items': [
            {
                'productId': item.product_id,
                'name': item.name,
                'quantity': item.quantity,
                'unitPrice': float(item.unit_price),
                'subtotal': float(item.subtotal),
            }
            for item in sale.items
        ],
    }


@sales_bp.route('/checkout', methods=['POST'])
@require_login
@require_store
def checkout():
    """Confirm the POS cart as a sale (rate-limited per cashier)."""
    limiter = get_rate_limiter()
    if not limiter.hit(f"checkout:{g.store_id}:{g.user_id}"):
        current_app.logger.warning(f"[RATE] Checkout throttled for cashier {g.user_id} store={g.store_id}")
        checkout_total.labels(outcome=RateLimitedError.code).inc()
        raise RateLimitedError()

    db_session = get_session()
    try:
        checkout_request = CheckoutRequest.from_payload(
            request.get_json(silent=True),
            store_id=g.store_id,
            cashier_id=g.user_id,
            tolerance=Decimal(str(current_app.config.get('TOTAL_TOLERANCE', '0.01'))),
        )
        result = run_checkout(
            db_session,
            checkout_request,
            require_open_session=current_app.config.get('REQUIRE_OPEN_CASH_SESSION', False),
        )
    except CajaError as e:
        checkout_total.labels(outcome=e.code).inc()
        raise

    checkout_total.labels(outcome='replayed' if result.replayed else 'completed').inc()
    return jsonify({'ok': True, 'saleId': result.sale_id, 'replayed': result.replayed}), 200 if result.replayed else 201


@sales_bp.route('/sales', methods=['GET'])
@require_login
@require_store
def list_sales():
    """Sales of a business day (?date=YYYY-MM-DD, defaults to today)."""
    db_session = get_session()
    day = parse_day(request.args.get('date'))
    sales = query_sales(db_session, g.store_id, day)
    return jsonify({'sales': [_sale_to_dict(s) for s in sales]})


@sales_bp.route('/sales/<int:sale_id>', methods=['GET'])
@require_login
@require_store
def detail_sale(sale_id: int):
    db_session = get_session()
    return jsonify(_sale_to_dict(get_sale(db_session, sale_id, g.store_id)))


@sales_bp.route('/sales/<int:sale_id>/void', methods=['POST'])
@require_login
@require_store
def void(sale_id: int):
    """Void a completed sale and restore its stock."""
    db_session = get_session()
    result = void_sale(db_session, sale_id, g.store_id, g.user_id)
    return jsonify({'success': True, 'saleId': result.sale_id, 'restored': result.restored})


@sales_bp.route('/sales/<int:sale_id>/receipt', methods=['GET'])
@require_login
@require_store
def receipt(sale_id: int):
    """Plain-text receipt ready to paste into WhatsApp."""
    db_session = get_session()
    sale = get_sale(db_session, sale_id, g.store_id)
    store = db_session.query(Store).filter_by(id=g.store_id).first()
    store_name = store.name if store else current_app.config.get('BUSINESS_NAME', 'Mi Negocio')

    text = build_receipt_text(sale, store_name, receipt_url=request.args.get('url') or None)
    return jsonify({'saleId': sale.id, 'receiptNumber': sale.receipt_number, 'text': text})
