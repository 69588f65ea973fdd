"""Expenses blueprint (gastos) - store-scoped JSON API."""
from flask import Blueprint, request, jsonify, g

from caja.database import get_session
from caja.middleware import require_login, require_store
from caja.models import Expense
from caja.services.expense_service import create_expense, list_expenses
from caja.utils.dates import parse_day, to_local

expenses_bp = Blueprint('expenses', __name__, url_prefix='/api/expenses')


def _expense_to_dict(expense: Expense) -> dict:
    return {
        'id': expense.id,
        'category': expense.category,
        'amount': float(expense.amount),
        'description': expense.description,
        'cashierId': expense.cashier_id,
        'createdAt': to_local(expense.created_at).isoformat(),
    }


@expenses_bp.route('', methods=['GET'])
@require_login
@require_store
def index():
    """Expenses of a business day (?date=YYYY-MM-DD)."""
    db_session = get_session()
    expenses = list_expenses(db_session, g.store_id, parse_day(request.args.get('date')))
    return jsonify({
        'expenses': [_expense_to_dict(e) for e in expenses],
        'total': float(sum((e.amount for e in expenses), 0)),
    })


@expenses_bp.route('', methods=['POST'])
@require_login
@require_store
def create():
    db_session = get_session()
    data = request.get_json(silent=True) or {}
    expense = create_expense(
        db_session,
        g.store_id,
        g.user_id,
        data.get('category'),
        data.get('amount'),
        description=data.get('description'),
    )
    return jsonify(_expense_to_dict(expense)), 201
