"""Core data models for Transaction Converter.

This module defines the canonical :class:`Transaction`, the enums it uses,
and the typed configuration objects that the config loader produces.  It
has no internal imports -- everything depends on it, but it depends on
nothing within the package.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Union

_LINE_BREAKS = re.compile(r"\s*[\r\n]+\s*")


def clean_text(value: str | None) -> str:
    """Trim *value* and collapse embedded line breaks into single spaces."""
    if value is None:
        return ""
    return _LINE_BREAKS.sub(" ", value).strip()


def clean_optional_text(value: str | None) -> str | None:
    """Like :func:`clean_text`, but blank input becomes ``None``."""
    cleaned = clean_text(value)
    return cleaned or None


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TransactionType(enum.Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class TransactionStatus(enum.Enum):
    PENDING = "pending"
    CLEARED = "cleared"


class PayeeResolution(enum.Enum):
    """Enrichment phase of a transaction's payee.

    ``RAW`` until :func:`~transaction_converter.payees.normalize_payee` has
    run, then ``RESOLVED`` or ``UNRESOLVED`` depending on whether a rule
    matched.
    """

    RAW = "raw"
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


class SortBy(enum.Enum):
    DATE = "date"


class SortOrder(enum.Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Transaction:
    """A single financial transaction in canonical form.

    Instances are immutable.  The two enrichment steps (payee normalization
    and categorization) each return a new instance built with
    :func:`dataclasses.replace`.

    Attributes:
        date: Timezone-aware UTC timestamp of the transaction.
        raw_payee_name: Payee/description text as exported by the bank,
            trimmed and with line breaks collapsed.
        transaction_type: Direction of the money movement.
        amount: Non-negative magnitude.  Direction lives only in
            ``transaction_type``.
        status: Pending or cleared.
        category: Category display name, or ``None``.
        memo: Free-text note, or ``None``.
        normalized_payee_id: Id of the payee a normalizer rule resolved to.
        normalized_payee_name: Display name of that payee.
        payee_resolution: Which enrichment phase the payee is in.
    """

    date: datetime
    raw_payee_name: str
    transaction_type: TransactionType
    amount: Decimal
    status: TransactionStatus = TransactionStatus.CLEARED
    category: str | None = None
    memo: str | None = None
    normalized_payee_id: str | None = None
    normalized_payee_name: str | None = None
    payee_resolution: PayeeResolution = PayeeResolution.RAW

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(
                f"Transaction amount must be a non-negative magnitude, got {self.amount}"
            )

    @classmethod
    def build(
        cls,
        date: datetime,
        raw_payee_name: str,
        transaction_type: TransactionType,
        amount: Decimal,
        status: TransactionStatus = TransactionStatus.CLEARED,
        category: str | None = None,
        memo: str | None = None,
    ) -> Transaction:
        """Construct a transaction, cleaning the free-text fields."""
        return cls(
            date=date,
            raw_payee_name=clean_text(raw_payee_name),
            transaction_type=transaction_type,
            amount=amount,
            status=status,
            category=clean_optional_text(category),
            memo=clean_optional_text(memo),
        )

    def payee(self) -> str:
        """The normalized payee name if one was resolved, else the raw name."""
        if self.normalized_payee_name is not None:
            return self.normalized_payee_name
        return self.raw_payee_name


@dataclass
class StageResult:
    """Return type for the import pipeline.

    Attributes:
        transactions: Transactions that made it through every stage.
        warnings: Non-fatal issues, such as skipped rows, unmatched payees
            and uncategorized transactions.
        rows_read: Number of rows handed to the mapper.
        pending_dropped: Number of pending transactions filtered out.
    """

    transactions: list[Transaction] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    rows_read: int = 0
    pending_dropped: int = 0


# ---------------------------------------------------------------------------
# Configuration: categories, payees, normalizer rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Category:
    id: str
    name: str


@dataclass(frozen=True)
class Payee:
    """A canonical counterparty.

    Attributes:
        id: Unique id within the owning account.
        name: Display name written to the output.
        category_ids: Candidate category ids.  One candidate is applied
            automatically; several trigger a prompt.
    """

    id: str
    name: str
    category_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExactMatcher:
    match_string: str


@dataclass(frozen=True)
class ContainsMatcher:
    match_string: str


@dataclass(frozen=True)
class RegexMatcher:
    """Regex matcher.  ``pattern`` is compiled at load time."""

    match_string: str
    pattern: re.Pattern[str]


Matcher = Union[ExactMatcher, ContainsMatcher, RegexMatcher]


@dataclass(frozen=True)
class PayeeNormalizerRule:
    """Binds raw payee text to a payee id.

    Attributes:
        payee_id: Payee this rule resolves to.
        matcher: How the raw payee text is tested.
        ignore_case: Compare case-insensitively.  For regex matchers the
            flag is already baked into the compiled pattern.
    """

    payee_id: str
    matcher: Matcher
    ignore_case: bool = True


# ---------------------------------------------------------------------------
# Configuration: formats
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SingleAmountField:
    """One signed column holds the amount."""

    field: str
    debit_is_negative: bool = False


@dataclass(frozen=True)
class SeparateDebitCreditFields:
    """Debits and credits live in separate unsigned columns."""

    debit_field: str
    credit_field: str


@dataclass(frozen=True)
class TransactionTypeAndAmountFields:
    """An amount column plus a column naming the transaction type.

    Attributes:
        amount_field: Column holding the amount.
        type_field: Column holding the type literal.
        credit_string: Literal that marks a credit.
        debit_string: Literal that marks a debit.
        include_debit_sign: On export, write debit amounts as negative.
    """

    amount_field: str
    type_field: str
    credit_string: str
    debit_string: str
    include_debit_sign: bool = False


AmountEncoding = Union[SingleAmountField, SeparateDebitCreditFields, TransactionTypeAndAmountFields]


@dataclass(frozen=True)
class DateTimeConfig:
    date_field: str
    date_format: str
    time_field: str | None = None
    time_format: str | None = None
    delimiter: str | None = None


@dataclass(frozen=True)
class StatusConfig:
    field: str
    pending_string: str
    cleared_string: str


@dataclass(frozen=True)
class Sort:
    sort_by: SortBy = SortBy.DATE
    order: SortOrder = SortOrder.ASCENDING


@dataclass(frozen=True)
class Format:
    """A declarative tabular layout.

    Attributes:
        id: Unique format id.
        name: Display name.
        field_order: Column names in output order.  Every column referenced
            by the other attributes must appear here.
        date_time: Where and how the date (and optional time) is encoded.
        payee_field: Column holding the payee/description.
        amount: One of the three amount encodings.
        status: Optional pending/cleared column.
        memo_field: Optional memo column.
        category_field: Optional category column.
        include_header: Default for writing a header row on export.
        sort: Default output ordering when this is the destination format.
    """

    id: str
    name: str
    field_order: tuple[str, ...]
    date_time: DateTimeConfig
    payee_field: str
    amount: AmountEncoding
    status: StatusConfig | None = None
    memo_field: str | None = None
    category_field: str | None = None
    include_header: bool | None = None
    sort: Sort | None = None

    def referenced_fields(self) -> list[tuple[str, str]]:
        """Return ``(role, column)`` pairs for every column this format uses."""
        refs = [("Date", self.date_time.date_field)]
        if self.date_time.time_field is not None:
            refs.append(("Time", self.date_time.time_field))
        amount = self.amount
        if isinstance(amount, SingleAmountField):
            refs.append(("Amount", amount.field))
        elif isinstance(amount, SeparateDebitCreditFields):
            refs.append(("Debit", amount.debit_field))
            refs.append(("Credit", amount.credit_field))
        else:
            refs.append(("Amount", amount.amount_field))
            refs.append(("Transaction type", amount.type_field))
        refs.append(("Payee", self.payee_field))
        if self.status is not None:
            refs.append(("Status", self.status.field))
        if self.memo_field is not None:
            refs.append(("Memo", self.memo_field))
        if self.category_field is not None:
            refs.append(("Category", self.category_field))
        return refs


# ---------------------------------------------------------------------------
# Configuration: accounts and the document
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Account:
    """One bank account and its payee knowledge.

    Attributes:
        id: Unique account id, selected on the command line.
        name: Display name.
        format_id: Id of the format the account's exports use.
        normalizers: Payee normalizer rules in match order.
        payees: Payees keyed by id, in declaration order.
        ignore_pending: Default for dropping pending transactions.
        skip_prompts: Default for suppressing category prompts.
        sort: Default output ordering.
        skip_invalid_rows: Default for skipping malformed rows instead of
            aborting the import.
    """

    id: str
    name: str
    format_id: str
    normalizers: tuple[PayeeNormalizerRule, ...] = ()
    payees: dict[str, Payee] = field(default_factory=dict)
    ignore_pending: bool | None = None
    skip_prompts: bool | None = None
    sort: Sort | None = None
    skip_invalid_rows: bool | None = None


@dataclass(frozen=True)
class Config:
    """The validated config document."""

    accounts: dict[str, Account] = field(default_factory=dict)
    categories: dict[str, Category] = field(default_factory=dict)
    formats: dict[str, Format] = field(default_factory=dict)


@dataclass(frozen=True)
class RunOverrides:
    """Command-line overrides.  ``None`` means "use the config default"."""

    sort_by: SortBy | None = None
    sort_order: SortOrder | None = None
    include_header: bool | None = None
    ignore_pending: bool | None = None
    skip_prompts: bool | None = None
    skip_invalid_rows: bool | None = None
