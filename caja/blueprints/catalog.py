"""Catalog blueprint for products and stock - store-scoped JSON API."""
from flask import Blueprint, request, jsonify, current_app, g

from caja.database import get_session
from caja.middleware import require_login, require_store, require_role
from caja.models import Product, StockMovement
from caja.services.stock_service import (
    list_products, create_product, adjust_stock, get_stock_history, list_low_stock
)
from caja.utils.dates import to_local

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api/products')


def _product_to_dict(product: Product) -> dict:
    threshold = current_app.config.get('LOW_STOCK_THRESHOLD', 10)
    return {
        'id': product.id,
        'name': product.name,
        'category': product.category,
        'barcode': product.barcode,
        'salePrice': float(product.sale_price),
        'costPrice': float(product.cost_price),
        'currentStock': product.current_stock,
        'minStock': product.min_stock,
        'active': product.active,
        'lowStock': product.is_low_stock(threshold),
    }


def _movement_to_dict(movement: StockMovement) -> dict:
    return {
        'id': movement.id,
        'type': movement.type.value,
        'quantity': movement.quantity,
        'description': movement.description,
        'saleId': movement.sale_id,
        'createdAt': to_local(movement.created_at).isoformat(),
    }


@catalog_bp.route('', methods=['GET'])
@require_login
@require_store
def products_list():
    """Active products, optional ?q= on name or barcode."""
    db_session = get_session()
    products = list_products(db_session, g.store_id, search=request.args.get('q', '').strip() or None)
    return jsonify({'products': [_product_to_dict(p) for p in products]})


@catalog_bp.route('', methods=['POST'])
@require_login
@require_store
@require_role('ADMIN')
def products_create():
    db_session = get_session()
    data = request.get_json(silent=True) or {}
    product = create_product(
        db_session,
        g.store_id,
        data.get('name'),
        data.get('salePrice', data.get('sale_price')),
        cost_price=data.get('costPrice', data.get('cost_price', 0)),
        category=data.get('category'),
        initial_stock=data.get('currentStock', data.get('initial_stock', 0)),
        min_stock=data.get('minStock', data.get('min_stock', 0)),
        barcode=data.get('barcode'),
        created_by=g.user_id,
    )
    return jsonify(_product_to_dict(product)), 201


@catalog_bp.route('/<int:product_id>/stock', methods=['POST'])
@require_login
@require_store
@require_role('ADMIN')
def products_stock(product_id: int):
    """Manual stock movement: {type: IN|OUT|ADJUSTMENT, quantity, description?}."""
    db_session = get_session()
    data = request.get_json(silent=True) or {}
    product = adjust_stock(
        db_session,
        g.store_id,
        product_id,
        data.get('quantity'),
        data.get('type'),
        description=data.get('description'),
        created_by=g.user_id,
    )
    return jsonify(_product_to_dict(product))


@catalog_bp.route('/<int:product_id>/movements', methods=['GET'])
@require_login
@require_store
def products_movements(product_id: int):
    db_session = get_session()
    limit = request.args.get('limit', 50, type=int)
    movements = get_stock_history(db_session, g.store_id, product_id, limit=max(1, min(limit, 500)))
    return jsonify({'movements': [_movement_to_dict(m) for m in movements]})


@catalog_bp.route('/low-stock', methods=['GET'])
@require_login
@require_store
def products_low_stock():
    db_session = get_session()
    products = list_low_stock(db_session, g.store_id, current_app.config.get('LOW_STOCK_THRESHOLD', 10))
    return jsonify({'products': [_product_to_dict(p) for p in products]})
