"""
Currency helpers. All amounts in the canteen are Philippine pesos.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

CURRENCY_SYMBOL = '₱'


def parse_amount(value, default=None):
    """Parse a number, numeric string or '₱1,234.50' into a Decimal."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    text = str(value).strip().replace(CURRENCY_SYMBOL, '').replace(',', '').strip()
    if not text:
        return default
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return default
    return amount if amount.is_finite() else default


def round_currency(value):
    """Round to two decimal places, half-up."""
    amount = parse_amount(value, Decimal('0'))
    return amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def format_peso(value):
    """Format an amount as ₱1,234.50"""
    amount = round_currency(value)
    sign = '-' if amount < 0 else ''
    return f'{sign}{CURRENCY_SYMBOL}{abs(amount):,.2f}'
