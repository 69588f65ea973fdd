"""Expense service (gastos) - store-scoped."""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from caja.exceptions import ValidationError, TransactionFailedError
from caja.models import Expense
from caja.utils.dates import utcnow, business_day_range
from caja.utils.number_format import parse_amount

logger = logging.getLogger(__name__)


def create_expense(session, store_id: int, cashier_id: int, category, amount,
                   description: Optional[str] = None) -> Expense:
    """Record a cash outflow. Category is free text (Sueldos, Limpieza, ...)."""
    category = (category or '').strip() if isinstance(category, str) else ''
    if not category:
        raise ValidationError('La categoría es requerida')

    parsed_amount = parse_amount(amount, 'El monto', allow_zero=False)

    try:
        expense = Expense(
            store_id=store_id,
            cashier_id=cashier_id,
            category=category[:100],
            amount=parsed_amount,
            description=(description or '').strip() or None,
            created_at=utcnow(),
        )
        session.add(expense)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"[GASTOS] Failed to create expense for store {store_id}: {e}", exc_info=True)
        raise TransactionFailedError()

    logger.info(f"[GASTOS] Expense #{expense.id} store={store_id} {expense.category} {parsed_amount}")
    return expense


def list_expenses(session, store_id: int, day: Optional[date] = None) -> List[Expense]:
    """Expenses of one business day, newest first."""
    start_dt, end_dt = business_day_range(day)
    return session.query(Expense).filter(
        Expense.store_id == store_id,
        Expense.created_at >= start_dt,
        Expense.created_at < end_dt
    ).order_by(Expense.created_at.desc(), Expense.id.desc()).all()


def sum_expenses(session, store_id: int, start: datetime, end: datetime) -> Decimal:
    """Sum of expenses in [start, end) (naive UTC bounds)."""
    total = session.query(func.coalesce(func.sum(Expense.amount), 0)).filter(
        Expense.store_id == store_id,
        Expense.created_at >= start,
        Expense.created_at < end
    ).scalar()
    return Decimal(str(total or 0)).quantize(Decimal('0.01'))
