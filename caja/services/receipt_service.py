"""
Plain-text receipt for sharing a sale over WhatsApp.

Only builds the message; sending it is left to the client.
"""
from typing import Optional

from caja.models import Sale
from caja.utils.dates import to_local
from caja.utils.formatters import money_ar, datetime_ar

SEPARATOR = '------------------------'
LEGAL_FOOTER = 'COMPROBANTE NO VÁLIDO COMO FACTURA'


def build_receipt_text(sale: Sale, store_name: str, receipt_url: Optional[str] = None) -> str:
    """
    Build the receipt message for a sale.

    Example:
        *COMPROBANTE DE VENTA*
        Almacén Don Pepe
        Nro: 0001-00000042
        Fecha: 12/01/2026 15:30
        ------------------------
        2x Coca Cola 500ml - $3.000
        ------------------------
        *Total: $3.000*
        Medio de pago: Efectivo
    """
    lines = [
        '*COMPROBANTE DE VENTA*',
        store_name,
        f'Nro: {sale.receipt_number}',
        f'Fecha: {datetime_ar(to_local(sale.created_at))}',
        SEPARATOR,
    ]

    for item in sale.items:
        lines.append(f'{item.quantity}x {item.name} - ${money_ar(item.subtotal)}')

    lines.append(SEPARATOR)
    lines.append(f'*Total: ${money_ar(sale.total)}*')
    lines.append(f'Medio de pago: {sale.payment_method.label}')

    if sale.customer_phone:
        lines.append(f'Cliente: {sale.customer_phone}')

    if receipt_url:
        lines.append('')
        lines.append(f'Comprobante: {receipt_url}')

    lines.append('')
    lines.append('Gracias por tu compra.')
    lines.append(LEGAL_FOOTER)

    return '\n'.join(lines)
