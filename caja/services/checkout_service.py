"""
Checkout service with transactional logic - store-scoped.

Converts a validated cart into a sale, its items, SALE stock movements and
product stock decrements as one unit of work, exactly once per idempotency
key. Voiding is the compensating transaction.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload

from caja.exceptions import (
    CajaError, ValidationError, InsufficientStockError, SaleNotFoundError,
    AlreadyVoidedError, TransactionFailedError
)
from caja.models import (
    Product, Sale, SaleItem, SaleStatus, StockMovement, StockMovementType,
    CashSession, CashSessionStatus
)
from caja.services.cache_service import invalidate_store_reads
from caja.services.checkout_schemas import CheckoutRequest
from caja.utils.dates import utcnow, business_day_range

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    sale_id: int
    replayed: bool = False


@dataclass(frozen=True)
class VoidResult:
    sale_id: int
    restored: List[dict] = field(default_factory=list)


def checkout(session, request: CheckoutRequest, require_open_session: bool = False) -> CheckoutResult:
    """
    Confirm a sale with full transactional processing (store-scoped).

    Steps:
    1. Idempotency short-circuit: a sale already recorded under the same
       (store, key) is returned as is, with no new side effects
    2. Validate products belong to the store and are active
    3. Resolve the cash session (explicit one must be OPEN, else the store's open one)
    4. Insert sale (total = sum of line subtotals; the declared total only
       has to agree within the tolerance), items and SALE movements; decrement stock with a
       conditional update that refuses to go below zero
    5. Commit, or roll everything back

    Returns:
        CheckoutResult with the sale id; ``replayed`` is True when the key
        had already been processed

    Raises:
        ValidationError, InsufficientStockError, TransactionFailedError
    """
    if request.idempotency_key:
        existing_id = _find_sale_by_idempotency_key(session, request.store_id, request.idempotency_key)
        if existing_id:
            logger.info(f"[CHECKOUT] Replay of key {request.idempotency_key} -> sale #{existing_id}")
            return CheckoutResult(sale_id=existing_id, replayed=True)

    try:
        products = _load_products(session, request)
        cash_session_id = _resolve_cash_session(session, request, require_open_session)

        sale = Sale(
            store_id=request.store_id,
            cashier_id=request.cashier_id,
            cash_session_id=cash_session_id,
            total=request.lines_total,
            payment_method=request.payment_method,
            status=SaleStatus.COMPLETED,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            idempotency_key=request.idempotency_key,
            created_at=utcnow(),
        )
        session.add(sale)
        session.flush()

        for line in request.lines:
            product = products[line.product_id]
            session.add(SaleItem(
                sale_id=sale.id,
                product_id=product.id,
                name=line.name or product.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                subtotal=line.subtotal,
            ))
            apply_stock_delta(session, request.store_id, product, -line.quantity)
            session.add(StockMovement(
                store_id=request.store_id,
                product_id=product.id,
                quantity=-line.quantity,
                type=StockMovementType.SALE,
                description=f'Venta #{sale.id}',
                sale_id=sale.id,
                created_by=request.cashier_id,
            ))

        session.commit()
        sale_id = sale.id

    except IntegrityError as e:
        session.rollback()
        if request.idempotency_key:
            # A concurrent retry with the same key won the insert
            existing_id = _find_sale_by_idempotency_key(session, request.store_id, request.idempotency_key)
            if existing_id:
                logger.info(f"[CHECKOUT] Concurrent replay of key {request.idempotency_key} -> sale #{existing_id}")
                return CheckoutResult(sale_id=existing_id, replayed=True)
        logger.error(f"[CHECKOUT] Integrity error for store {request.store_id}: {e}", exc_info=True)
        raise TransactionFailedError()
    except CajaError as e:
        session.rollback()
        logger.warning(f"[CHECKOUT] Rejected for store {request.store_id}: {e.code} {e.message}")
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"[CHECKOUT] Transaction failed for store {request.store_id}: {e}", exc_info=True)
        raise TransactionFailedError()

    logger.info(
        f"[CHECKOUT] Sale #{sale_id} store={request.store_id} cashier={request.cashier_id} "
        f"total={request.lines_total} method={request.payment_method.value} lines={len(request.lines)}"
    )
    invalidate_store_reads(request.store_id)
    return CheckoutResult(sale_id=sale_id)


def void_sale(session, sale_id: int, store_id: int, cashier_id: int) -> VoidResult:
    """
    Void a completed sale and give its units back to stock.

    The status flip is a guarded update (only from COMPLETED), so a second
    void, even a concurrent one, fails with ALREADY_VOIDED and leaves stock
    untouched.
    """
    try:
        sale = (
            session.query(Sale)
            .options(selectinload(Sale.items))
            .filter(Sale.id == sale_id, Sale.store_id == store_id)
            .with_for_update()
            .first()
        )
        if not sale:
            raise SaleNotFoundError(sale_id)
        if sale.status == SaleStatus.CANCELLED:
            raise AlreadyVoidedError(sale_id)

        result = session.execute(
            update(Sale)
            .where(
                Sale.id == sale_id,
                Sale.store_id == store_id,
                Sale.status == SaleStatus.COMPLETED,
            )
            .values(status=SaleStatus.CANCELLED, voided_at=utcnow(), voided_by=cashier_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyVoidedError(sale_id)

        restored = []
        for item in sale.items:
            session.execute(
                update(Product)
                .where(Product.id == item.product_id, Product.store_id == store_id)
                .values(current_stock=Product.current_stock + item.quantity, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            session.add(StockMovement(
                store_id=store_id,
                product_id=item.product_id,
                quantity=item.quantity,
                type=StockMovementType.VOID,
                description=f'Anulación venta #{sale_id}',
                sale_id=sale_id,
                created_by=cashier_id,
            ))
            restored.append({'productId': item.product_id, 'name': item.name, 'quantity': item.quantity})

        session.commit()

    except CajaError as e:
        session.rollback()
        logger.warning(f"[VOID] Rejected sale #{sale_id} store={store_id}: {e.code}")
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"[VOID] Transaction failed for sale #{sale_id}: {e}", exc_info=True)
        raise TransactionFailedError()

    logger.info(f"[VOID] Sale #{sale_id} voided by {cashier_id}, {len(restored)} lines restored")
    invalidate_store_reads(store_id)
    return VoidResult(sale_id=sale_id, restored=restored)


def get_sale(session, sale_id: int, store_id: int) -> Sale:
    """Get a sale with its items (store-scoped)."""
    sale = (
        session.query(Sale)
        .options(selectinload(Sale.items))
        .filter(Sale.id == sale_id, Sale.store_id == store_id)
        .first()
    )
    if not sale:
        raise SaleNotFoundError(sale_id)
    return sale


def list_sales(session, store_id: int, day: Optional[date] = None,
               status: Optional[SaleStatus] = None) -> List[Sale]:
    """Sales of one business day, newest first."""
    start_dt, end_dt = business_day_range(day)
    query = (
        session.query(Sale)
        .options(selectinload(Sale.items))
        .filter(
            Sale.store_id == store_id,
            Sale.created_at >= start_dt,
            Sale.created_at < end_dt,
        )
    )
    if status is not None:
        query = query.filter(Sale.status == status)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _find_sale_by_idempotency_key(session, store_id: int, idempotency_key: str) -> Optional[int]:
    return session.query(Sale.id).filter(
        Sale.store_id == store_id,
        Sale.idempotency_key == idempotency_key
    ).scalar()


def _load_products(session, request: CheckoutRequest) -> Dict[int, Product]:
    """Fetch the cart's products in batch and check they can be sold."""
    product_ids = {line.product_id for line in request.lines}
    products = session.query(Product).filter(
        Product.id.in_(product_ids),
        Product.store_id == request.store_id
    ).all()

    if len(products) != len(product_ids):
        raise ValidationError('Uno o más productos no encontrados o no pertenecen a su negocio')

    for product in products:
        if not product.active:
            raise ValidationError(f'El producto "{product.name}" no está activo')

    return {p.id: p for p in products}


def _resolve_cash_session(session, request: CheckoutRequest, require_open_session: bool) -> Optional[int]:
    """Return the id of the OPEN cash session the sale belongs to, if any."""
    query = session.query(CashSession).filter(
        CashSession.store_id == request.store_id,
        CashSession.status == CashSessionStatus.OPEN
    )
    if request.cash_session_id:
        query = query.filter(CashSession.id == request.cash_session_id)

    # Shared lock: closing the session waits for in-flight checkouts
    cash_session = query.with_for_update(read=True).first()

    if request.cash_session_id and not cash_session:
        raise ValidationError('La caja indicada no está abierta')
    if cash_session is None and require_open_session:
        raise ValidationError('Debés abrir la caja antes de vender')

    return cash_session.id if cash_session else None


def apply_stock_delta(session, store_id: int, product: Product, delta: int) -> None:
    """
    Atomically add ``delta`` to a product's stock, never below zero.

    The guard lives in the UPDATE's WHERE clause, so two concurrent sales of
    the last unit cannot both succeed.
    """
    conditions = [Product.id == product.id, Product.store_id == store_id]
    if delta < 0:
        conditions.append(Product.current_stock >= -delta)

    result = session.execute(
        update(Product)
        .where(*conditions)
        .values(current_stock=Product.current_stock + delta, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        available = session.query(Product.current_stock).filter(Product.id == product.id).scalar()
        raise InsufficientStockError(product.name, -delta, available)
