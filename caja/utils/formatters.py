"""
Utilidades de formateo para comprobantes.
Incluye formatos de números y fechas en estilo argentino.
"""
from decimal import Decimal, InvalidOperation
from datetime import datetime
from typing import Union, Optional


def _group_thousands(integer_part: str) -> str:
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    return '.'.join(groups)[::-1]


def num_ar(value: Union[int, float, Decimal, str, None], decimals: Optional[int] = None) -> str:
    """
    Formatea un número en estilo argentino:
    - Separador de miles: punto (.)
    - Separador decimal: coma (,)
    - Si no tiene decimales significativos, no los muestra

    Examples:
        num_ar(1500) -> "1.500"
        num_ar(1500.5) -> "1.500,5"
        num_ar(185.00) -> "185"
        num_ar(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        if isinstance(value, str):
            value = value.replace(",", ".")
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    if num == 0:
        return "0"

    if decimals is not None:
        num = num.quantize(Decimal(10) ** -decimals)

    num_str = f"{num:f}"
    if '.' in num_str:
        integer_part, decimal_part = num_str.split('.')
        decimal_part = decimal_part.rstrip('0')
    else:
        integer_part, decimal_part = num_str, ""

    sign_str = ''
    if integer_part.startswith('-'):
        sign_str = '-'
        integer_part = integer_part[1:]

    integer_formatted = _group_thousands(integer_part)
    if decimal_part:
        return f"{sign_str}{integer_formatted},{decimal_part}"
    return f"{sign_str}{integer_formatted}"


def money_ar(value: Union[int, float, Decimal, str, None]) -> str:
    """Monto en estilo argentino (alias de num_ar para dinero)."""
    return num_ar(value)


def money_ar_2(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Formatea un monto con exactamente 2 decimales (ej: 1.500,00).
    Devuelve "-" si es inválido.
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value).replace(",", ".")).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    integer_part, decimal_part = f"{abs(num):.2f}".split(".")
    return f"{sign}{_group_thousands(integer_part)},{decimal_part}"


def datetime_ar(value: Union[datetime, None], with_time: bool = True) -> str:
    """
    Formatea un datetime en formato argentino: DD/MM/YYYY HH:MM

    Examples:
        datetime_ar(datetime(2026, 1, 12, 15, 30)) -> "12/01/2026 15:30"
    """
    if value is None or not isinstance(value, datetime):
        return "-"

    if with_time:
        return value.strftime("%d/%m/%Y %H:%M")
    return value.strftime("%d/%m/%Y")
