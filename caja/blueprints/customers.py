"""Customers blueprint - history derived from sales, store-scoped."""
from flask import Blueprint, request, jsonify, g

from caja.database import get_session
from caja.middleware import require_login, require_store
from caja.models import PaymentMethod
from caja.services.customer_service import get_customer_history

customers_bp = Blueprint('customers', __name__, url_prefix='/api/customers')


@customers_bp.route('', methods=['GET'])
@require_login
@require_store
def list_customers():
    """Customers with total spent and visits, optional ?q= on name or phone."""
    db_session = get_session()
    customers = get_customer_history(db_session, g.store_id, search=request.args.get('q'))
    return jsonify({
        'customers': [
            {
                'customerName': c['customer_name'],
                'customerPhone': c['customer_phone'],
                'totalSpent': float(c['total_spent']),
                'visitCount': c['visit_count'],
                'lastVisit': c['last_visit'],
                'lastPaymentMethod': c['last_payment_method'],
                'lastPaymentMethodLabel': PaymentMethod(c['last_payment_method']).label,
            }
            for c in customers
        ]
    })
