"""Main blueprint: health check."""
from flask import Blueprint, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError

from caja.database import ping

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """Liveness with a database round-trip."""
    try:
        ping()
    except SQLAlchemyError as e:
        current_app.logger.error(f"[HEALTH] Database unreachable: {e}")
        return jsonify({'status': 'error', 'database': 'down'}), 503
    return jsonify({'status': 'ok', 'database': 'up'})
