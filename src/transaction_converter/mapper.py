"""Format mapper: field maps to transactions and back.

Both directions are pure functions of ``(row or transaction, Format)``.
The import side reads the columns each sub-config names; the export side
builds a column-name -> value map from the same sub-configs and projects it
onto ``Format.field_order``.
"""

from __future__ import annotations

from collections.abc import Mapping

from transaction_converter.amounts import amount_fields, read_amount
from transaction_converter.dates import datetime_fields, read_datetime
from transaction_converter.errors import InvalidStatusError, MissingFieldError
from transaction_converter.models import (
    Format,
    StatusConfig,
    Transaction,
    TransactionStatus,
)


def row_to_transaction(row: Mapping[str, str], fmt: Format) -> Transaction:
    """Map one parsed row onto a :class:`Transaction`.

    Args:
        row: Column name -> raw cell text.
        fmt: The source format.

    Returns:
        A transaction in the ``RAW`` payee phase.

    Raises:
        ParseError: One of its subclasses, describing the first problem
            found in the row.
    """
    if fmt.payee_field not in row:
        raise MissingFieldError(fmt.payee_field, "Payee")
    raw_payee = row[fmt.payee_field]

    amount, txn_type = read_amount(row, fmt.amount)
    moment = read_datetime(row, fmt.date_time)
    status = _read_status(row, fmt.status)

    memo = row.get(fmt.memo_field) if fmt.memo_field is not None else None
    category = row.get(fmt.category_field) if fmt.category_field is not None else None

    return Transaction.build(
        date=moment,
        raw_payee_name=raw_payee,
        transaction_type=txn_type,
        amount=amount,
        status=status,
        category=category,
        memo=memo,
    )


def transaction_to_row(transaction: Transaction, fmt: Format) -> list[str]:
    """Render *transaction* as cell values ordered by ``fmt.field_order``.

    Columns in the field order that no sub-config fills are written as
    empty strings.
    """
    fields: dict[str, str] = {}
    fields.update(datetime_fields(transaction.date, fmt.date_time))
    fields[fmt.payee_field] = transaction.payee()
    if fmt.category_field is not None:
        fields[fmt.category_field] = transaction.category or ""
    if fmt.status is not None:
        fields[fmt.status.field] = (
            fmt.status.pending_string
            if transaction.status is TransactionStatus.PENDING
            else fmt.status.cleared_string
        )
    fields.update(amount_fields(transaction, fmt.amount))
    if fmt.memo_field is not None:
        fields[fmt.memo_field] = transaction.memo or ""

    return [fields.get(name, "") for name in fmt.field_order]


def _read_status(row: Mapping[str, str], config: StatusConfig | None) -> TransactionStatus:
    if config is None:
        return TransactionStatus.CLEARED
    if config.field not in row:
        raise MissingFieldError(config.field, "Transaction status")
    value = row[config.field]
    if value == config.cleared_string:
        return TransactionStatus.CLEARED
    if value == config.pending_string:
        return TransactionStatus.PENDING
    raise InvalidStatusError(
        f"String [{value}] matches neither the cleared string [{config.cleared_string}] "
        f"nor the pending string [{config.pending_string}]."
    )
