from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import ValidationError

CENTS = Decimal('0.01')

# Largest amount a Decimal(10, 2) column holds
MAX_AMOUNT = Decimal('99999999.99')

# Most of one item a single order may add
MAX_QUANTITY = 1000


def to_money(value):
    """Coerce a price-like value to a 2-decimal Decimal."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid monetary amount: {value!r}")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def validate_quantity(quantity):
    # bool is an int subclass; True must not order one item
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be a positive integer")
    if quantity <= 0:
        raise ValidationError("quantity must be a positive integer")
    return quantity


def subtotal(unit_price, quantity):
    """Line subtotal: unit price times quantity, rounded to cents."""
    validate_quantity(quantity)
    price = to_money(unit_price)
    if price < 0:
        raise ValidationError("unit price must not be negative")
    return fits_column(price * quantity)


def tab_total(subtotals):
    """Sum of line subtotals, rounded to cents. An empty tab totals 0.00."""
    total = sum((to_money(s) for s in subtotals), Decimal('0'))
    return fits_column(total)


def fits_column(amount):
    """Round to cents, rejecting amounts too large to store."""
    # compare before quantizing; quantize itself fails past the context precision
    if amount > MAX_AMOUNT or amount.quantize(CENTS, rounding=ROUND_HALF_UP) > MAX_AMOUNT:
        raise ValidationError(f"Amount exceeds the largest storable value of {MAX_AMOUNT}")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
