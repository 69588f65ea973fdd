"""
Catalog and manual stock operations - store-scoped.

Every stock change writes a StockMovement in the same transaction as the
product update, so the movement history always sums to current_stock.
"""
import logging
from typing import List, Optional

from sqlalchemy import or_, and_
from sqlalchemy.exc import SQLAlchemyError

from caja.exceptions import CajaError, ValidationError, NotFoundError, TransactionFailedError
from caja.models import Product, StockMovement, StockMovementType
from caja.services.checkout_service import apply_stock_delta
from caja.utils.number_format import parse_amount

logger = logging.getLogger(__name__)

MANUAL_MOVEMENT_TYPES = (StockMovementType.IN, StockMovementType.OUT, StockMovementType.ADJUSTMENT)


def _parse_int(value, field: str, minimum: int = 0) -> int:
    if value is None or value == '':
        return 0
    if isinstance(value, bool):
        raise ValidationError(f'{field} inválido')
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f'{field} debe ser un número entero')
    if parsed < minimum:
        raise ValidationError(f'{field} no puede ser menor a {minimum}')
    return parsed


def get_product(session, store_id: int, product_id: int) -> Product:
    product = session.query(Product).filter(
        Product.id == product_id,
        Product.store_id == store_id
    ).first()
    if not product:
        raise NotFoundError('Producto no encontrado')
    return product


def list_products(session, store_id: int, search: Optional[str] = None,
                  include_inactive: bool = False) -> List[Product]:
    """Catalog listing ordered by name, optional name/barcode search."""
    query = session.query(Product).filter(Product.store_id == store_id)
    if not include_inactive:
        query = query.filter(Product.active == True)  # noqa: E712
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(term), Product.barcode.ilike(term)))
    return query.order_by(Product.name).all()


def create_product(session, store_id: int, name, sale_price, cost_price=0,
                   category: Optional[str] = None, initial_stock=0, min_stock=0,
                   barcode: Optional[str] = None, created_by: Optional[int] = None) -> Product:
    """Create a product; a positive initial stock is recorded as an IN movement."""
    name = name.strip() if isinstance(name, str) else ''
    if not name:
        raise ValidationError('El nombre es requerido')

    price = parse_amount(sale_price, 'El precio de venta')
    cost = parse_amount(cost_price if cost_price not in (None, '') else 0, 'El precio de compra')
    stock = _parse_int(initial_stock, 'El stock inicial')
    minimum = _parse_int(min_stock, 'El stock mínimo')

    try:
        product = Product(
            store_id=store_id,
            name=name[:200],
            category=(category or '').strip() or None,
            barcode=(barcode or '').strip() or None,
            sale_price=price,
            cost_price=cost,
            current_stock=stock,
            min_stock=minimum,
            active=True,
        )
        session.add(product)
        session.flush()

        if stock > 0:
            session.add(StockMovement(
                store_id=store_id,
                product_id=product.id,
                quantity=stock,
                type=StockMovementType.IN,
                description='Stock inicial',
                created_by=created_by,
            ))

        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"[STOCK] Failed to create product for store {store_id}: {e}", exc_info=True)
        raise TransactionFailedError()

    logger.info(f"[STOCK] Product #{product.id} '{product.name}' created store={store_id} stock={stock}")
    return product


def adjust_stock(session, store_id: int, product_id: int, delta, movement_type,
                 description: Optional[str] = None, created_by: Optional[int] = None) -> Product:
    """
    Manual stock change.

    IN must be positive, OUT negative (a positive OUT quantity is taken as
    units leaving), ADJUSTMENT any non-zero signed delta. The update is
    conditional, so stock never goes below zero.

    Raises:
        ValidationError, NotFoundError, InsufficientStockError
    """
    if not isinstance(movement_type, StockMovementType):
        try:
            movement_type = StockMovementType(str(movement_type or '').strip().upper())
        except ValueError:
            raise ValidationError('Tipo de movimiento inválido')
    if movement_type not in MANUAL_MOVEMENT_TYPES:
        raise ValidationError('Tipo de movimiento inválido')

    if isinstance(delta, bool):
        raise ValidationError('La cantidad es inválida')
    try:
        delta = int(str(delta).strip())
    except (TypeError, ValueError):
        raise ValidationError('La cantidad debe ser un número entero')
    if delta == 0:
        raise ValidationError('La cantidad no puede ser 0')

    if movement_type == StockMovementType.IN and delta < 0:
        raise ValidationError('Un ingreso debe ser positivo')
    if movement_type == StockMovementType.OUT:
        delta = -abs(delta)

    try:
        product = get_product(session, store_id, product_id)
        apply_stock_delta(session, store_id, product, delta)
        session.add(StockMovement(
            store_id=store_id,
            product_id=product.id,
            quantity=delta,
            type=movement_type,
            description=(description or '').strip() or None,
            created_by=created_by,
        ))
        session.commit()
    except CajaError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"[STOCK] Adjust failed for product #{product_id}: {e}", exc_info=True)
        raise TransactionFailedError()

    logger.info(f"[STOCK] Product #{product_id} {movement_type.value} {delta:+d} store={store_id}")
    return product


def get_stock_history(session, store_id: int, product_id: int, limit: int = 50) -> List[StockMovement]:
    """Latest movements of a product, newest first."""
    get_product(session, store_id, product_id)
    return session.query(StockMovement).filter(
        StockMovement.store_id == store_id,
        StockMovement.product_id == product_id
    ).order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit).all()


def list_low_stock(session, store_id: int, threshold: int = 0) -> List[Product]:
    """
    Active products at or below their minimum stock.

    Products without a minimum (min_stock = 0) are compared to ``threshold``.
    """
    return session.query(Product).filter(
        Product.store_id == store_id,
        Product.active == True,  # noqa: E712
        or_(
            and_(Product.min_stock > 0, Product.current_stock <= Product.min_stock),
            and_(Product.min_stock == 0, Product.current_stock <= threshold),
        )
    ).order_by(Product.current_stock.asc(), Product.name).all()
