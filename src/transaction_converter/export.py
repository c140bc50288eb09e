"""Destination writer and run summary printer.

- :func:`export_transactions` sorts the enriched batch, maps each
  transaction onto the destination format's field order, and writes the
  rows (with an optional header).
- :func:`print_summary` prints a short human-readable account of the run
  to a diagnostic stream, never to the CSV output.
"""

from __future__ import annotations

import logging
from collections import Counter
from decimal import Decimal
from typing import IO

from transaction_converter.amounts import format_amount
from transaction_converter.config import RunConfig
from transaction_converter.mapper import transaction_to_row
from transaction_converter.models import (
    PayeeResolution,
    StageResult,
    Transaction,
    TransactionType,
)
from transaction_converter.pipeline import sort_transactions
from transaction_converter.tabular import write_rows

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Destination export
# ---------------------------------------------------------------------------


def export_transactions(
    run: RunConfig,
    transactions: list[Transaction],
    writer: IO[str],
) -> int:
    """Write *transactions* to *writer* in the destination format.

    1. Sorts with the resolved :meth:`RunConfig.sort` (stable).
    2. Maps each transaction with
       :func:`~transaction_converter.mapper.transaction_to_row`.
    3. Writes the rows, preceded by the format's ``field_order`` as a
       header row when :meth:`RunConfig.include_header` is true.

    Args:
        run: Run configuration holding the destination format.
        transactions: Enriched transactions from
            :func:`~transaction_converter.pipeline.import_transactions`.
        writer: Open text stream for the destination.

    Returns:
        Number of data rows written.
    """
    fmt = run.dst_format()
    ordered = sort_transactions(transactions, run.sort())
    rows = [transaction_to_row(t, fmt) for t in ordered]
    header = list(fmt.field_order) if run.include_header() else None

    write_rows(writer, header, rows)
    logger.info("Wrote %d transaction(s) in format %s", len(rows), fmt.id)
    return len(rows)


# ---------------------------------------------------------------------------
# Summary printer
# ---------------------------------------------------------------------------


def print_summary(result: StageResult, stream: IO[str]) -> None:
    """Print a processing summary of one import to *stream*.

    The summary includes:

    - Rows read, transactions imported, and pending transactions dropped.
    - Payee normalization counts (resolved vs. unmatched).
    - Categorization counts.
    - Debit and credit totals.
    - Top unmatched raw payees, to help write new normalizer rules.
    - Accumulated warnings, if any.
    """
    txns = result.transactions
    total = len(txns)

    resolved = sum(1 for t in txns if t.payee_resolution is PayeeResolution.RESOLVED)
    categorized = sum(1 for t in txns if t.category is not None)
    cat_pct = categorized / total * 100 if total > 0 else 0.0

    debits = sum(
        (t.amount for t in txns if t.transaction_type is TransactionType.DEBIT), Decimal(0)
    )
    credits = sum(
        (t.amount for t in txns if t.transaction_type is TransactionType.CREDIT), Decimal(0)
    )

    unmatched: Counter[str] = Counter(
        t.raw_payee_name for t in txns if t.payee_resolution is PayeeResolution.UNRESOLVED
    )

    def emit(line: str = "") -> None:
        print(line, file=stream)

    emit()
    emit("== Conversion Summary ==")
    emit(f"Rows read:    {result.rows_read}")
    emit(f"Imported:     {total} transactions ({result.pending_dropped} pending dropped)")
    emit(f"Payees:       {resolved} normalized, {total - resolved} unmatched")
    emit(f"Categorized:  {categorized} / {total} ({cat_pct:.1f}%)")
    emit(f"Debits:       {format_amount(debits)}")
    emit(f"Credits:      {format_amount(credits)}")

    if unmatched:
        emit()
        emit("Top unmatched payees:")
        for i, (payee, count) in enumerate(unmatched.most_common(10), start=1):
            emit(f"  {i:>2}. {payee:<40} ({count} txns)")

    if result.warnings:
        emit()
        emit(f"Warnings: {len(result.warnings)}")
        for w in result.warnings:
            emit(f"  - {w}")

    emit()

