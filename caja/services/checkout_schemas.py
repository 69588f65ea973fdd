"""
Typed checkout request, validated at the API boundary.

The POS posts a loosely shaped JSON body; ``CheckoutRequest.from_payload``
turns it into immutable dataclasses and rejects on the first invariant
violation, before any domain logic or database access runs.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Tuple

from caja.exceptions import ValidationError
from caja.models import PaymentMethod, normalize_payment_method
from caja.utils.number_format import parse_amount, parse_quantity, parse_id

DEFAULT_TOLERANCE = Decimal('0.01')
MAX_IDEMPOTENCY_KEY_LENGTH = 64


def _to_text(value: Any, max_length: int) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text[:max_length]


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    unit_price: Decimal
    name: Optional[str] = None
    stock_snapshot: Optional[int] = None

    @property
    def subtotal(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(Decimal('0.01'))

    @classmethod
    def from_payload(cls, raw: Any, position: int, tolerance: Decimal) -> "CartLine":
        """
        Accepts the flat shape ``{productId, quantity, unitPrice, subtotal?,
        name?, stock?}`` and the POS cart shape ``{product: {id, name,
        sale_price, current_stock}, quantity}``.
        """
        if not isinstance(raw, dict):
            raise ValidationError(f'Línea {position} del carrito inválida')

        product = raw.get('product') if isinstance(raw.get('product'), dict) else {}
        label = f'Línea {position}'

        product_id = parse_id(
            raw.get('productId', raw.get('product_id', product.get('id'))), f'{label}: el producto'
        )
        quantity = parse_quantity(raw.get('quantity', raw.get('qty')), f'{label}: la cantidad')
        unit_price = parse_amount(
            raw.get('unitPrice', raw.get('unit_price', product.get('sale_price'))), f'{label}: el precio'
        )
        name = _to_text(raw.get('name', product.get('name')), 200)

        stock_raw = raw.get('stock', product.get('current_stock'))
        stock_snapshot = None
        if stock_raw is not None:
            try:
                stock_snapshot = int(stock_raw)
            except (TypeError, ValueError):
                raise ValidationError(f'{label}: stock informado inválido')

        line = cls(
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            name=name,
            stock_snapshot=stock_snapshot,
        )

        declared_subtotal = raw.get('subtotal')
        if declared_subtotal is not None:
            subtotal = parse_amount(declared_subtotal, f'{label}: el subtotal')
            if abs(subtotal - line.subtotal) > tolerance:
                raise ValidationError(
                    f'{label}: el subtotal ({subtotal}) no coincide con cantidad × precio ({line.subtotal})'
                )

        if stock_snapshot is not None and quantity > stock_snapshot:
            raise ValidationError(
                f'{label}: la cantidad ({quantity}) supera el stock disponible ({stock_snapshot})'
            )

        return line


@dataclass(frozen=True)
class CheckoutRequest:
    store_id: int
    cashier_id: int
    lines: Tuple[CartLine, ...]
    payment_method: PaymentMethod
    total: Decimal
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    cash_session_id: Optional[int] = None
    idempotency_key: Optional[str] = None

    @property
    def lines_total(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal('0.00'))

    @classmethod
    def from_payload(cls, payload: Any, store_id: int, cashier_id: int,
                     tolerance: Decimal = DEFAULT_TOLERANCE) -> "CheckoutRequest":
        """Parse and validate a checkout body. Raises ValidationError."""
        if not store_id:
            raise ValidationError('store_id es requerido')
        if not cashier_id:
            raise ValidationError('cashier_id es requerido')
        if not isinstance(payload, dict):
            raise ValidationError('Datos inválidos para procesar checkout.')

        cart = payload.get('cart')
        if not isinstance(cart, list) or not cart:
            raise ValidationError('El carrito está vacío')

        lines = tuple(
            CartLine.from_payload(raw, position, tolerance)
            for position, raw in enumerate(cart, start=1)
        )

        try:
            payment_method = normalize_payment_method(payload.get('paymentMethod', payload.get('payment_method')))
        except ValueError:
            raise ValidationError('Método de pago inválido')

        total = parse_amount(payload.get('total'), 'El total', allow_zero=False)

        cash_session_raw = payload.get('cashSessionId', payload.get('cash_session_id'))
        cash_session_id = None
        if cash_session_raw not in (None, ''):
            cash_session_id = parse_id(cash_session_raw, 'La caja')

        idempotency_key = payload.get('idempotencyKey', payload.get('idempotency_key'))
        if idempotency_key is not None:
            idempotency_key = str(idempotency_key).strip() or None
            if idempotency_key and len(idempotency_key) > MAX_IDEMPOTENCY_KEY_LENGTH:
                raise ValidationError('Clave de idempotencia demasiado larga')

        request = cls(
            store_id=store_id,
            cashier_id=cashier_id,
            lines=lines,
            payment_method=payment_method,
            total=total,
            customer_name=_to_text(payload.get('customerName', payload.get('customer_name')), 200),
            customer_phone=_to_text(
                payload.get('customerPhone', payload.get('customer_phone', payload.get('phone'))), 50
            ),
            cash_session_id=cash_session_id,
            idempotency_key=idempotency_key,
        )

        if abs(request.total - request.lines_total) > tolerance:
            raise ValidationError(
                f'El total ({request.total}) no coincide con la suma de los productos ({request.lines_total})'
            )
        if request.lines_total <= 0:
            raise ValidationError('El total de la venta debe ser mayor a 0')

        return request
