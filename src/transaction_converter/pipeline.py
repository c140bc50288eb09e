"""Pipeline orchestration for Transaction Converter.

Composes the import stages: parse rows, map rows, filter pending, normalize
payees, and categorize.  The pipeline holds no business logic of its own;
each stage delegates to :mod:`~transaction_converter.mapper` or
:mod:`~transaction_converter.payees`.  Warnings from every stage are
accumulated into the returned :class:`~transaction_converter.models.StageResult`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import IO

from transaction_converter.config import RunConfig
from transaction_converter.errors import ParseError
from transaction_converter.mapper import row_to_transaction
from transaction_converter.models import (
    Format,
    PayeeResolution,
    Sort,
    SortBy,
    SortOrder,
    StageResult,
    Transaction,
    TransactionStatus,
)
from transaction_converter.payees import PromptSelect, categorize, normalize_payee
from transaction_converter.tabular import parse_rows

logger = logging.getLogger(__name__)

_SORT_KEYS = {
    SortBy.DATE: lambda t: t.date,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def import_transactions(
    run: RunConfig,
    reader: IO[str],
    prompt_select: PromptSelect | None = None,
) -> StageResult:
    """Read, map, filter, and enrich every row from *reader*.

    Stages executed in order:

    1. **Parse** -- split the tabular text into field maps.
    2. **Map** -- convert each row with the account's source format.
    3. **Filter** -- drop pending transactions when ``ignore_pending``.
    4. **Normalize** -- resolve payees with the account's rules.
    5. **Categorize** -- assign categories, prompting when ambiguous.

    Args:
        run: Run configuration (account, formats, overrides).
        reader: Open text stream holding the source export.
        prompt_select: Selection prompt used for ambiguous categories.
            ``None`` behaves like ``skip_prompts``.

    Returns:
        A :class:`StageResult` with the enriched transactions in input
        order and any warnings.

    Raises:
        ParseError: On the first malformed row, unless
            ``skip_invalid_rows`` is enabled.
        SourceReadError: If the source is not valid UTF-8 CSV.
    """
    rows = parse_rows(reader)

    result = map_rows(rows, run.src_format(), skip_invalid=run.skip_invalid_rows())
    result.rows_read = len(rows)

    if run.ignore_pending():
        kept = filter_pending(result.transactions)
        result.pending_dropped = len(result.transactions) - len(kept)
        result.transactions = kept

    result.transactions = normalize_and_categorize(result.transactions, run, prompt_select)

    unresolved = sum(
        1 for t in result.transactions if t.payee_resolution is PayeeResolution.UNRESOLVED
    )
    if unresolved:
        result.warnings.append(f"{unresolved} payee(s) matched no normalizer rule")
    uncategorized = sum(1 for t in result.transactions if t.category is None)
    if uncategorized:
        result.warnings.append(f"{uncategorized} transaction(s) left uncategorized")

    return result


# ---------------------------------------------------------------------------
# Stage implementations
# ---------------------------------------------------------------------------


def map_rows(
    rows: Sequence[Mapping[str, str]],
    fmt: Format,
    skip_invalid: bool = False,
) -> StageResult:
    """Map field maps to transactions with *fmt*.

    Row numbers in messages are 1-based and count data rows only.
    """
    transactions: list[Transaction] = []
    warnings: list[str] = []

    for number, row in enumerate(rows, start=1):
        try:
            transactions.append(row_to_transaction(row, fmt))
        except ParseError as exc:
            exc.row = number
            if not skip_invalid:
                raise
            logger.warning("Skipped row %d: %s", number, exc)
            warnings.append(f"Skipped malformed row {number}: {exc}")

    logger.debug("Mapped %d of %d row(s) with format %s", len(transactions), len(rows), fmt.id)
    return StageResult(transactions=transactions, warnings=warnings)


def filter_pending(transactions: list[Transaction]) -> list[Transaction]:
    """Keep only cleared transactions, preserving their order."""
    return [t for t in transactions if t.status is TransactionStatus.CLEARED]


def normalize_and_categorize(
    transactions: list[Transaction],
    run: RunConfig,
    prompt_select: PromptSelect | None = None,
) -> list[Transaction]:
    """Run both enrichment steps, in order, once per transaction."""
    account = run.account()
    enriched: list[Transaction] = []
    for txn in transactions:
        txn = normalize_payee(txn, account)
        txn = categorize(txn, run, prompt_select)
        enriched.append(txn)
    return enriched


def sort_transactions(transactions: list[Transaction], sort: Sort) -> list[Transaction]:
    """Return *transactions* sorted by the configured key.

    The sort is stable in both directions: transactions sharing a date
    keep their original relative order.
    """
    return sorted(
        transactions,
        key=_SORT_KEYS[sort.sort_by],
        reverse=sort.order is SortOrder.DESCENDING,
    )
