"""Cash sessions blueprint (apertura y cierre de caja) - store-scoped JSON API."""
from flask import Blueprint, request, jsonify, g

from caja.database import get_session
from caja.middleware import require_login, require_store
from caja.models import CashSession
from caja.services.cash_session_service import (
    open_cash_session, close_cash_session, get_open_session,
    get_session_summary, list_cash_sessions
)
from caja.blueprints.metrics import cash_session_close_total
from caja.utils.dates import to_local

cash_sessions_bp = Blueprint('cash_sessions', __name__, url_prefix='/api/cash-sessions')


def _iso(dt):
    return to_local(dt).isoformat() if dt else None


def _money(value):
    return float(value) if value is not None else None


def _session_to_dict(cash_session: CashSession) -> dict:
    return {
        'id': cash_session.id,
        'status': cash_session.status.value,
        'openedAt': _iso(cash_session.opened_at),
        'closedAt': _iso(cash_session.closed_at),
        'openedBy': cash_session.opened_by,
        'closedBy': cash_session.closed_by,
        'openingAmount': _money(cash_session.opening_amount),
        'closingAmount': _money(cash_session.closing_amount),
        'expectedAmount': _money(cash_session.expected_amount),
        'notes': cash_session.notes,
    }


@cash_sessions_bp.route('/current', methods=['GET'])
@require_login
@require_store
def current():
    """Open session of the store with its live totals, or null."""
    db_session = get_session()
    cash_session = get_open_session(db_session, g.store_id)
    if not cash_session:
        return jsonify({'session': None, 'summary': None})

    summary = get_session_summary(db_session, cash_session.id, g.store_id)
    return jsonify({'session': _session_to_dict(cash_session), 'summary': summary.to_dict()})


@cash_sessions_bp.route('', methods=['GET'])
@require_login
@require_store
def history():
    """Latest sessions with sales totals and variance."""
    db_session = get_session()
    limit = request.args.get('limit', 30, type=int)
    rows = list_cash_sessions(db_session, g.store_id, limit=max(1, min(limit, 200)))
    return jsonify({
        'sessions': [
            {
                'id': row['id'],
                'status': row['status'],
                'openedAt': _iso(row['opened_at']),
                'closedAt': _iso(row['closed_at']),
                'openedBy': row['opened_by'],
                'closedBy': row['closed_by'],
                'openingAmount': _money(row['opening_amount']),
                'closingAmount': _money(row['closing_amount']),
                'expectedAmount': _money(row['expected_amount']),
                'variance': _money(row['variance']),
                'salesTotal': _money(row['sales_total']),
                'salesCount': row['sales_count'],
                'notes': row['notes'],
            }
            for row in rows
        ]
    })


@cash_sessions_bp.route('', methods=['POST'])
@require_login
@require_store
def open_session():
    """Open the drawer with the counted opening float."""
    db_session = get_session()
    data = request.get_json(silent=True) or {}
    cash_session = open_cash_session(
        db_session,
        g.store_id,
        g.user_id,
        data.get('openingAmount', data.get('opening_amount')),
        notes=data.get('notes'),
    )
    return jsonify({'sessionId': cash_session.id, 'session': _session_to_dict(cash_session)}), 201


@cash_sessions_bp.route('/<int:session_id>/close', methods=['POST'])
@require_login
@require_store
def close_session(session_id: int):
    """Close the drawer with the counted amount; returns expected and variance."""
    db_session = get_session()
    data = request.get_json(silent=True) or {}
    result = close_cash_session(
        db_session,
        session_id,
        data.get('countedAmount', data.get('closingAmount', data.get('closing_amount'))),
        notes=data.get('notes'),
        store_id=g.store_id,
        cashier_id=g.user_id,
    )
    cash_session_close_total.inc()
    return jsonify(result.to_dict())
