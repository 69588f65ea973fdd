"""
Cash session ledger (apertura y cierre de caja) - store-scoped.

A store has at most one OPEN session at a time; the partial unique index on
cash_session(store_id) WHERE status = 'OPEN' is what actually enforces it.
Closing computes the expected drawer amount and records the variance, which
is informative only and never blocks the close.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from caja.exceptions import (
    CajaError, SessionNotFoundError, SessionAlreadyOpenError,
    SessionAlreadyClosedError, TransactionFailedError
)
from caja.models import CashSession, CashSessionStatus, Sale, SaleStatus, PaymentMethod
from caja.services.expense_service import sum_expenses
from caja.utils.dates import utcnow, business_date, business_day_range
from caja.utils.number_format import parse_amount

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS)


@dataclass(frozen=True)
class CashCloseResult:
    """Numbers shown in the close modal and persisted on close."""
    session_id: int
    opening_amount: Decimal
    cash_sales: Decimal
    all_sales: Decimal
    sales_count: int
    expenses: Decimal
    expected_amount: Decimal
    counted_amount: Optional[Decimal] = None
    variance: Optional[Decimal] = None

    def to_dict(self):
        return {
            'sessionId': self.session_id,
            'openingAmount': float(self.opening_amount),
            'cashSales': float(self.cash_sales),
            'allSales': float(self.all_sales),
            'salesCount': self.sales_count,
            'expenses': float(self.expenses),
            'expectedAmount': float(self.expected_amount),
            'countedAmount': float(self.counted_amount) if self.counted_amount is not None else None,
            'variance': float(self.variance) if self.variance is not None else None,
        }


def get_open_session(session, store_id: int) -> Optional[CashSession]:
    """Get the OPEN cash session of a store, if any."""
    return session.query(CashSession).filter(
        CashSession.store_id == store_id,
        CashSession.status == CashSessionStatus.OPEN
    ).first()


def open_cash_session(session, store_id: int, cashier_id: int, opening_amount,
                      notes: Optional[str] = None) -> CashSession:
    """
    Open a cash session with the counted opening float.

    Raises:
        ValidationError: opening amount missing, negative or not a number
        SessionAlreadyOpenError: the store already has an OPEN session
    """
    amount = parse_amount(opening_amount, 'El monto inicial')

    existing = get_open_session(session, store_id)
    if existing:
        logger.warning(f"[CAJA] Open rejected for store {store_id}: session #{existing.id} still open")
        raise SessionAlreadyOpenError(store_id, existing.id)

    try:
        cash_session = CashSession(
            store_id=store_id,
            opened_by=cashier_id,
            opened_at=utcnow(),
            opening_amount=amount,
            status=CashSessionStatus.OPEN,
            notes=notes,
        )
        session.add(cash_session)
        session.commit()

    except IntegrityError:
        # Race condition: another cashier opened the drawer simultaneously
        session.rollback()
        existing = get_open_session(session, store_id)
        logger.warning(f"[CAJA] Concurrent open for store {store_id} lost the race")
        raise SessionAlreadyOpenError(store_id, existing.id if existing else None)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"[CAJA] Open failed for store {store_id}: {e}", exc_info=True)
        raise TransactionFailedError()

    logger.info(f"[CAJA] Session #{cash_session.id} opened store={store_id} amount={amount}")
    return cash_session


def get_session_summary(session, session_id: int, store_id: int) -> CashCloseResult:
    """Live totals for a session (what the close would compute right now)."""
    cash_session = _get_session(session, session_id, store_id)
    return _compute_totals(session, cash_session)


def close_cash_session(session, session_id: int, counted_amount, notes: Optional[str] = None,
                       store_id: Optional[int] = None, cashier_id: Optional[int] = None) -> CashCloseResult:
    """
    Close an OPEN session with the counted drawer amount.

    expected = opening + cash sales - expenses of the session's business day
    variance = counted - expected

    Raises:
        ValidationError, SessionNotFoundError, SessionAlreadyClosedError
    """
    counted = parse_amount(counted_amount, 'El monto contado')

    try:
        query = session.query(CashSession).filter(CashSession.id == session_id)
        if store_id is not None:
            query = query.filter(CashSession.store_id == store_id)
        cash_session = query.with_for_update().first()

        if not cash_session:
            raise SessionNotFoundError(session_id)
        if cash_session.status == CashSessionStatus.CLOSED:
            raise SessionAlreadyClosedError(session_id)

        totals = _compute_totals(session, cash_session)
        variance = counted - totals.expected_amount

        result = session.execute(
            update(CashSession)
            .where(CashSession.id == session_id, CashSession.status == CashSessionStatus.OPEN)
            .values(
                status=CashSessionStatus.CLOSED,
                closed_at=utcnow(),
                closed_by=cashier_id,
                closing_amount=counted,
                expected_amount=totals.expected_amount,
                notes=notes if notes is not None else cash_session.notes,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise SessionAlreadyClosedError(session_id)

        session.commit()

    except CajaError as e:
        session.rollback()
        logger.warning(f"[CAJA] Close rejected for session #{session_id}: {e.code}")
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"[CAJA] Close failed for session #{session_id}: {e}", exc_info=True)
        raise TransactionFailedError()

    logger.info(
        f"[CAJA] Session #{session_id} closed expected={totals.expected_amount} "
        f"counted={counted} variance={variance}"
    )
    return CashCloseResult(
        session_id=totals.session_id,
        opening_amount=totals.opening_amount,
        cash_sales=totals.cash_sales,
        all_sales=totals.all_sales,
        sales_count=totals.sales_count,
        expenses=totals.expenses,
        expected_amount=totals.expected_amount,
        counted_amount=counted,
        variance=variance,
    )


def list_cash_sessions(session, store_id: int, limit: int = 30) -> List[dict]:
    """Session history, newest first, with completed sales per session."""
    sessions = session.query(CashSession).filter(
        CashSession.store_id == store_id
    ).order_by(CashSession.opened_at.desc(), CashSession.id.desc()).limit(limit).all()

    if not sessions:
        return []

    sales_by_session = {
        row.cash_session_id: (row.total, row.count)
        for row in session.query(
            Sale.cash_session_id,
            func.sum(Sale.total).label('total'),
            func.count(Sale.id).label('count'),
        ).filter(
            Sale.store_id == store_id,
            Sale.cash_session_id.in_([s.id for s in sessions]),
            Sale.status == SaleStatus.COMPLETED,
        ).group_by(Sale.cash_session_id).all()
    }

    history = []
    for cash_session in sessions:
        sales_total, sales_count = sales_by_session.get(cash_session.id, (0, 0))
        history.append({
            'id': cash_session.id,
            'status': cash_session.status.value,
            'opened_at': cash_session.opened_at,
            'closed_at': cash_session.closed_at,
            'opened_by': cash_session.opened_by,
            'closed_by': cash_session.closed_by,
            'opening_amount': _money(cash_session.opening_amount),
            'closing_amount': _money(cash_session.closing_amount) if cash_session.closing_amount is not None else None,
            'expected_amount': _money(cash_session.expected_amount) if cash_session.expected_amount is not None else None,
            'variance': _money(cash_session.variance) if cash_session.variance is not None else None,
            'sales_total': _money(sales_total),
            'sales_count': int(sales_count or 0),
            'notes': cash_session.notes,
        })
    return history


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _get_session(session, session_id: int, store_id: int) -> CashSession:
    cash_session = session.query(CashSession).filter(
        CashSession.id == session_id,
        CashSession.store_id == store_id
    ).first()
    if not cash_session:
        raise SessionNotFoundError(session_id)
    return cash_session


def _compute_totals(session, cash_session: CashSession) -> CashCloseResult:
    """Aggregate the session's completed sales and its business day expenses."""
    cash_sales = session.query(func.coalesce(func.sum(Sale.total), 0)).filter(
        Sale.cash_session_id == cash_session.id,
        Sale.status == SaleStatus.COMPLETED,
        Sale.payment_method == PaymentMethod.CASH,
    ).scalar()

    all_sales, sales_count = session.query(
        func.coalesce(func.sum(Sale.total), 0),
        func.count(Sale.id),
    ).filter(
        Sale.cash_session_id == cash_session.id,
        Sale.status == SaleStatus.COMPLETED,
    ).one()

    start_dt, end_dt = business_day_range(business_date(cash_session.opened_at))
    expenses = sum_expenses(session, cash_session.store_id, start_dt, end_dt)

    opening = _money(cash_session.opening_amount)
    cash_sales = _money(cash_sales)
    expected = opening + cash_sales - expenses

    return CashCloseResult(
        session_id=cash_session.id,
        opening_amount=opening,
        cash_sales=cash_sales,
        all_sales=_money(all_sales),
        sales_count=int(sales_count or 0),
        expenses=expenses,
        expected_amount=expected,
    )
