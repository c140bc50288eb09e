"""Amount parsing and the three amount encodings.

:func:`read_amount` turns the amount column(s) of a row into a non-negative
magnitude plus a :class:`TransactionType`; :func:`amount_fields` does the
reverse for export.  Both dispatch over the closed set of
:data:`~transaction_converter.models.AmountEncoding` variants.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation

from transaction_converter.errors import (
    InvalidAmountError,
    InvalidTransactionTypeError,
    MissingAmountError,
    MissingFieldError,
)
from transaction_converter.models import (
    AmountEncoding,
    SeparateDebitCreditFields,
    SingleAmountField,
    Transaction,
    TransactionType,
    TransactionTypeAndAmountFields,
)

_CENTS = Decimal("0.01")
_CURRENCY_SYMBOLS = re.compile(r"[$€£¥]")
# Largest exponent whose value still fits the default 28-digit context once
# quantized to cents.
_MAX_ADJUSTED = 25


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a signed Decimal.

    Handles:
    - "123.45"
    - "$123.45" / "-$123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Exponent notation is rejected, as are values too large to render with
    two decimals.

    Raises:
        InvalidAmountError: If the text is not a number.
    """
    text = amount_str.strip()

    is_negative = False
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1]

    text = _CURRENCY_SYMBOLS.sub("", text).replace(",", "").strip()

    invalid = InvalidAmountError(
        f"Unable to parse amount [{amount_str}] into a valid currency value."
    )
    if "e" in text.lower():
        raise invalid
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise invalid from None
    if not amount.is_finite():
        raise InvalidAmountError(f"Amount [{amount_str}] is not a finite number.")
    if amount.adjusted() > _MAX_ADJUSTED:
        raise InvalidAmountError(f"Amount [{amount_str}] is too large.")
    return -amount if is_negative else amount


def format_amount(amount: Decimal) -> str:
    """Render *amount* with two decimals and no thousands separators."""
    return str(amount.quantize(_CENTS))


def read_amount(
    row: Mapping[str, str], encoding: AmountEncoding
) -> tuple[Decimal, TransactionType]:
    """Resolve magnitude and direction for one row.

    Returns:
        ``(magnitude, transaction_type)`` with ``magnitude >= 0``.

    Raises:
        MissingFieldError: A required column is absent from the row.
        MissingAmountError: The amount column(s) are blank.
        InvalidAmountError: An amount is not a number.
        InvalidTransactionTypeError: The type literal is not recognised.
    """
    if isinstance(encoding, SingleAmountField):
        amount = _required_amount(row, encoding.field)
        is_negative = amount < 0
        if is_negative == encoding.debit_is_negative:
            txn_type = TransactionType.DEBIT
        else:
            txn_type = TransactionType.CREDIT
        return abs(amount), txn_type

    if isinstance(encoding, SeparateDebitCreditFields):
        debit = row.get(encoding.debit_field, "")
        if debit.strip():
            return abs(parse_amount(debit)), TransactionType.DEBIT
        credit = row.get(encoding.credit_field, "")
        if credit.strip():
            return abs(parse_amount(credit)), TransactionType.CREDIT
        raise MissingAmountError(
            f"Neither the debit field [{encoding.debit_field}] nor the credit field "
            f"[{encoding.credit_field}] holds an amount."
        )

    if isinstance(encoding, TransactionTypeAndAmountFields):
        amount = _required_amount(row, encoding.amount_field)
        if encoding.type_field not in row:
            raise MissingFieldError(encoding.type_field, "Transaction type")
        literal = row[encoding.type_field]
        if literal == encoding.credit_string:
            txn_type = TransactionType.CREDIT
        elif literal == encoding.debit_string:
            txn_type = TransactionType.DEBIT
        else:
            raise InvalidTransactionTypeError(
                f"String [{literal}] matches neither the credit string "
                f"[{encoding.credit_string}] nor the debit string [{encoding.debit_string}]."
            )
        return abs(amount), txn_type

    raise TypeError(f"Unsupported amount encoding: {encoding!r}")


def amount_fields(transaction: Transaction, encoding: AmountEncoding) -> dict[str, str]:
    """Express a transaction's amount and direction as output columns."""
    magnitude = transaction.amount
    is_debit = transaction.transaction_type is TransactionType.DEBIT

    if isinstance(encoding, SingleAmountField):
        negate = is_debit if encoding.debit_is_negative else not is_debit
        return {encoding.field: format_amount(_signed(magnitude, negate))}

    if isinstance(encoding, SeparateDebitCreditFields):
        rendered = format_amount(magnitude)
        return {
            encoding.debit_field: rendered if is_debit else "",
            encoding.credit_field: "" if is_debit else rendered,
        }

    if isinstance(encoding, TransactionTypeAndAmountFields):
        negate = is_debit and encoding.include_debit_sign
        return {
            encoding.type_field: encoding.debit_string if is_debit else encoding.credit_string,
            encoding.amount_field: format_amount(_signed(magnitude, negate)),
        }

    raise TypeError(f"Unsupported amount encoding: {encoding!r}")


def _signed(magnitude: Decimal, negate: bool) -> Decimal:
    # Never produce "-0.00".
    if negate and magnitude != 0:
        return -magnitude
    return magnitude


def _required_amount(row: Mapping[str, str], field: str) -> Decimal:
    if field not in row:
        raise MissingFieldError(field, "Amount")
    value = row[field]
    if not value.strip():
        raise MissingAmountError(f"Amount field [{field}] is blank.")
    return parse_amount(value)
