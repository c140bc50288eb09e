"""Payee normalization and categorization.

Two strictly ordered enrichment steps:

1. :func:`normalize_payee` -- walk the account's normalizer rules in
   declaration order; the **first** matching rule decides the payee.  This
   is first-match, not best-match: rule order in the config is the
   priority order.
2. :func:`categorize` -- derive the category from the resolved payee's
   candidate category ids, asking the user to choose when there is more
   than one candidate.

Each step returns a new :class:`Transaction`.  Unmatched payees and
uncategorized transactions are logged, never raised.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from typing import Protocol

from transaction_converter.amounts import format_amount
from transaction_converter.config import RunConfig
from transaction_converter.models import (
    Account,
    ContainsMatcher,
    ExactMatcher,
    Matcher,
    PayeeNormalizerRule,
    PayeeResolution,
    RegexMatcher,
    Transaction,
)

logger = logging.getLogger(__name__)


class PromptSelect(Protocol):
    """Capability to ask the user to pick one of several options.

    The pipeline accepts any callable conforming to this protocol.
    :func:`transaction_converter.prompts.console_prompt_select` is the
    terminal implementation; tests pass scripted callables.
    """

    def __call__(self, options: Sequence[str], message: str = "") -> int | None:
        """Return the 0-based index of the chosen option, or ``None`` to skip."""
        ...


# ---------------------------------------------------------------------------
# Rule matching
# ---------------------------------------------------------------------------


def matches(matcher: Matcher, ignore_case: bool, text: str) -> bool:
    """Test one matcher against *text*."""
    if isinstance(matcher, RegexMatcher):
        return matcher.pattern.search(text) is not None
    needle = matcher.match_string
    if ignore_case:
        needle = needle.casefold()
        text = text.casefold()
    if isinstance(matcher, ExactMatcher):
        return needle == text
    if isinstance(matcher, ContainsMatcher):
        return needle in text
    raise TypeError(f"Unsupported matcher: {matcher!r}")


def match_rule(
    raw_payee: str, rules: Sequence[PayeeNormalizerRule]
) -> PayeeNormalizerRule | None:
    """Return the first rule in *rules* that matches *raw_payee*, if any."""
    for rule in rules:
        if matches(rule.matcher, rule.ignore_case, raw_payee):
            return rule
    return None


# ---------------------------------------------------------------------------
# Enrichment steps
# ---------------------------------------------------------------------------


def normalize_payee(transaction: Transaction, account: Account) -> Transaction:
    """Resolve the transaction's raw payee text to one of the account's payees.

    Must run exactly once per transaction, before :func:`categorize`.

    Returns:
        A copy marked ``RESOLVED`` with ``normalized_payee_id`` (and, when
        the payee exists, ``normalized_payee_name``) set, or a copy marked
        ``UNRESOLVED`` when no rule matched.
    """
    assert transaction.payee_resolution is PayeeResolution.RAW, (
        "normalize_payee must run exactly once per transaction"
    )

    rule = match_rule(transaction.raw_payee_name, account.normalizers)
    if rule is None:
        logger.warning("Payee was not normalized: %s", transaction.raw_payee_name)
        return dataclasses.replace(transaction, payee_resolution=PayeeResolution.UNRESOLVED)

    payee = account.payees.get(rule.payee_id)
    logger.debug(
        "Normalized payee %r -> %s", transaction.raw_payee_name, rule.payee_id
    )
    return dataclasses.replace(
        transaction,
        normalized_payee_id=rule.payee_id,
        normalized_payee_name=payee.name if payee is not None else None,
        payee_resolution=PayeeResolution.RESOLVED,
    )


def categorize(
    transaction: Transaction,
    run: RunConfig,
    prompt_select: PromptSelect | None = None,
) -> Transaction:
    """Assign a category from the resolved payee's candidates.

    - No resolved payee: returned unchanged.
    - No candidates: category left as is.
    - One candidate: applied without prompting.
    - Several candidates: left as is when prompts are skipped (or no
      prompt is available); otherwise the user picks one, or skips.

    "Left as is" means ``None`` unless the source format carried a
    category column.

    Must run after :func:`normalize_payee`.
    """
    assert transaction.payee_resolution is not PayeeResolution.RAW, (
        "categorize must run after normalize_payee"
    )

    if transaction.normalized_payee_id is None:
        return transaction

    category_id = _select_category_id(transaction, run, prompt_select)
    category = run.category(category_id) if category_id is not None else None
    if category is None:
        # A category carried over from the source row is kept.
        if transaction.category is None:
            logger.warning(
                "Transaction was not categorized: [payee: %s], [amount: %s], [date: %s]",
                transaction.payee(),
                format_amount(transaction.amount),
                transaction.date.date().isoformat(),
            )
        return transaction

    return dataclasses.replace(transaction, category=category.name)


def _select_category_id(
    transaction: Transaction,
    run: RunConfig,
    prompt_select: PromptSelect | None,
) -> str | None:
    payee = run.account().payees.get(transaction.normalized_payee_id)
    if payee is None or not payee.category_ids:
        return None

    candidates = payee.category_ids
    if len(candidates) == 1:
        return candidates[0]

    if run.skip_prompts() or prompt_select is None:
        return None

    names = [_category_name(run, c) for c in candidates]
    message = _describe(transaction)
    while True:
        choice = prompt_select(names, message=message)
        if choice is None:
            return None
        if 0 <= choice < len(candidates):
            return candidates[choice]
        logger.warning(
            "Selection %d is out of range (1-%d or 0 to skip); asking again.",
            choice + 1,
            len(candidates),
        )


def _category_name(run: RunConfig, category_id: str) -> str:
    category = run.category(category_id)
    return category.name if category is not None else category_id


def _describe(transaction: Transaction) -> str:
    return (
        "Multiple categories available for transaction: "
        f"[payee: {transaction.payee()}], "
        f"[amount: {format_amount(transaction.amount)}], "
        f"[type: {transaction.transaction_type.value}], "
        f"[date: {transaction.date.isoformat()}], "
        f"[raw payee: {transaction.raw_payee_name}], "
        f"[memo: {transaction.memo or ''}], "
        f"[status: {transaction.status.value}]"
    )
