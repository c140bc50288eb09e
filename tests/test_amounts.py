"""Tests for transaction_converter.amounts: parsing and the three amount encodings."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from transaction_converter.amounts import (
    amount_fields,
    format_amount,
    parse_amount,
    read_amount,
)
from transaction_converter.errors import (
    InvalidAmountError,
    InvalidTransactionTypeError,
    MissingAmountError,
    MissingFieldError,
)
from transaction_converter.models import (
    SeparateDebitCreditFields,
    SingleAmountField,
    Transaction,
    TransactionType,
    TransactionTypeAndAmountFields,
)

SIGNED = SingleAmountField(field="Amount", debit_is_negative=True)
SIGNED_CREDIT_NEGATIVE = SingleAmountField(field="Amount", debit_is_negative=False)
SPLIT = SeparateDebitCreditFields(debit_field="Debit", credit_field="Credit")
TYPED = TransactionTypeAndAmountFields(
    amount_field="Amount",
    type_field="Type",
    credit_string="Deposit",
    debit_string="Withdrawal",
    include_debit_sign=True,
)


def _txn(amount: str, txn_type: TransactionType) -> Transaction:
    return Transaction.build(
        date=datetime(2018, 6, 1, tzinfo=timezone.utc),
        raw_payee_name="Payee",
        transaction_type=txn_type,
        amount=Decimal(amount),
    )


# ---------------------------------------------------------------------------
# parse_amount / format_amount
# ---------------------------------------------------------------------------


class TestParseAmount:
    """Tests for the amount string parser."""

    def test_plain(self):
        assert parse_amount("123.45") == Decimal("123.45")

    def test_negative(self):
        assert parse_amount("-4874") == Decimal("-4874")

    def test_currency_symbol(self):
        assert parse_amount("$1,234.56") == Decimal("1234.56")
        assert parse_amount("-$50.00") == Decimal("-50.00")

    def test_parentheses_are_negative(self):
        assert parse_amount("(12.00)") == Decimal("-12.00")

    def test_surrounding_whitespace(self):
        assert parse_amount("  7.25 ") == Decimal("7.25")

    def test_garbage_raises(self):
        with pytest.raises(InvalidAmountError, match="abc"):
            parse_amount("abc")

    def test_non_finite_raises(self):
        with pytest.raises(InvalidAmountError):
            parse_amount("NaN")

    def test_exponent_notation_rejected(self):
        with pytest.raises(InvalidAmountError, match="1e30"):
            parse_amount("1e30")

    def test_oversized_value_rejected(self):
        with pytest.raises(InvalidAmountError, match="too large"):
            parse_amount("-12345678901234567890123456789")

    def test_largest_value_still_formats(self):
        amount = parse_amount("9" * 26 + ".99")
        assert format_amount(amount) == "9" * 26 + ".99"


class TestFormatAmount:
    """Tests for two-decimal rendering."""

    def test_pads_to_cents(self):
        assert format_amount(Decimal("4874")) == "4874.00"

    def test_no_thousands_separator(self):
        assert format_amount(Decimal("1234.5")) == "1234.50"


# ---------------------------------------------------------------------------
# read_amount
# ---------------------------------------------------------------------------


class TestReadSingleAmountField:
    """Sign of the parsed value decides direction."""

    def test_negative_is_debit_when_debit_is_negative(self):
        assert read_amount({"Amount": "-50.00"}, SIGNED) == (
            Decimal("50.00"),
            TransactionType.DEBIT,
        )

    def test_positive_is_credit_when_debit_is_negative(self):
        assert read_amount({"Amount": "50.00"}, SIGNED) == (
            Decimal("50.00"),
            TransactionType.CREDIT,
        )

    def test_negative_is_credit_otherwise(self):
        amount, txn_type = read_amount({"Amount": "-50.00"}, SIGNED_CREDIT_NEGATIVE)
        assert txn_type is TransactionType.CREDIT
        assert amount == Decimal("50.00")

    def test_positive_is_debit_otherwise(self):
        _, txn_type = read_amount({"Amount": "50.00"}, SIGNED_CREDIT_NEGATIVE)
        assert txn_type is TransactionType.DEBIT

    def test_missing_column(self):
        with pytest.raises(MissingFieldError, match=r"Amount field \[Amount\]"):
            read_amount({"Other": "1"}, SIGNED)

    def test_blank_value(self):
        with pytest.raises(MissingAmountError):
            read_amount({"Amount": "  "}, SIGNED)


class TestReadSeparateDebitCreditFields:
    """Whichever column is populated decides direction."""

    def test_debit(self):
        assert read_amount({"Debit": "85.10", "Credit": ""}, SPLIT) == (
            Decimal("85.10"),
            TransactionType.DEBIT,
        )

    def test_credit(self):
        assert read_amount({"Debit": "", "Credit": "250.00"}, SPLIT) == (
            Decimal("250.00"),
            TransactionType.CREDIT,
        )

    def test_signed_values_become_magnitudes(self):
        amount, _ = read_amount({"Debit": "", "Credit": "-250.00"}, SPLIT)
        assert amount == Decimal("250.00")

    def test_both_blank(self):
        with pytest.raises(MissingAmountError, match="Debit"):
            read_amount({"Debit": "", "Credit": " "}, SPLIT)

    def test_both_absent(self):
        with pytest.raises(MissingAmountError):
            read_amount({}, SPLIT)

    def test_invalid_debit(self):
        with pytest.raises(InvalidAmountError):
            read_amount({"Debit": "n/a", "Credit": ""}, SPLIT)


class TestReadTransactionTypeAndAmountFields:
    """A literal type column decides direction."""

    def test_withdrawal_is_debit(self):
        assert read_amount({"Amount": "-4874", "Type": "Withdrawal"}, TYPED) == (
            Decimal("4874"),
            TransactionType.DEBIT,
        )

    def test_deposit_is_credit(self):
        _, txn_type = read_amount({"Amount": "2500.00", "Type": "Deposit"}, TYPED)
        assert txn_type is TransactionType.CREDIT

    def test_type_match_is_case_sensitive(self):
        with pytest.raises(InvalidTransactionTypeError, match="withdrawal"):
            read_amount({"Amount": "1.00", "Type": "withdrawal"}, TYPED)

    def test_missing_type_column(self):
        with pytest.raises(MissingFieldError, match="Transaction type"):
            read_amount({"Amount": "1.00"}, TYPED)


# ---------------------------------------------------------------------------
# amount_fields
# ---------------------------------------------------------------------------


class TestAmountFields:
    """Tests for re-expressing direction on export."""

    def test_single_debit_negated(self):
        assert amount_fields(_txn("50", TransactionType.DEBIT), SIGNED) == {"Amount": "-50.00"}

    def test_single_credit_positive(self):
        assert amount_fields(_txn("50", TransactionType.CREDIT), SIGNED) == {"Amount": "50.00"}

    def test_single_credit_negated_when_debits_positive(self):
        fields = amount_fields(_txn("50", TransactionType.CREDIT), SIGNED_CREDIT_NEGATIVE)
        assert fields == {"Amount": "-50.00"}

    def test_zero_is_never_negative(self):
        assert amount_fields(_txn("0", TransactionType.DEBIT), SIGNED) == {"Amount": "0.00"}

    def test_split_debit(self):
        fields = amount_fields(_txn("85.1", TransactionType.DEBIT), SPLIT)
        assert fields == {"Debit": "85.10", "Credit": ""}

    def test_split_credit(self):
        fields = amount_fields(_txn("250", TransactionType.CREDIT), SPLIT)
        assert fields == {"Debit": "", "Credit": "250.00"}

    def test_typed_debit_with_sign(self):
        fields = amount_fields(_txn("4874", TransactionType.DEBIT), TYPED)
        assert fields == {"Type": "Withdrawal", "Amount": "-4874.00"}

    def test_typed_debit_without_sign(self):
        unsigned = TransactionTypeAndAmountFields(
            amount_field="Amount",
            type_field="Type",
            credit_string="Deposit",
            debit_string="Withdrawal",
        )
        fields = amount_fields(_txn("4874", TransactionType.DEBIT), unsigned)
        assert fields == {"Type": "Withdrawal", "Amount": "4874.00"}

    def test_typed_credit(self):
        fields = amount_fields(_txn("2500", TransactionType.CREDIT), TYPED)
        assert fields == {"Type": "Deposit", "Amount": "2500.00"}
