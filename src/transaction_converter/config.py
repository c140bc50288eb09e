"""Configuration loading, validation, and project initialization.

Reads the config document with stdlib ``tomllib`` (or ``json`` for files
ending in ``.json``) and writes the starter document with ``tomli_w``.
Every cross-reference is validated here, so code downstream can treat
lookups as total.  Depends only on ``models.py`` and ``errors.py``.
"""

from __future__ import annotations

import json
import re
import tomllib
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol, TypeVar

import tomli_w

from transaction_converter.errors import ConfigError
from transaction_converter.models import (
    Account,
    AmountEncoding,
    Category,
    Config,
    ContainsMatcher,
    DateTimeConfig,
    ExactMatcher,
    Format,
    Matcher,
    Payee,
    PayeeNormalizerRule,
    RegexMatcher,
    RunOverrides,
    SeparateDebitCreditFields,
    SingleAmountField,
    Sort,
    SortBy,
    SortOrder,
    StatusConfig,
    TransactionTypeAndAmountFields,
)

DEFAULT_CONFIG_NAME = "config.toml"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(path: Path) -> Config:
    """Load and validate the config document at *path*.

    Args:
        path: A ``.toml`` or ``.json`` file.

    Returns:
        A fully validated :class:`Config`.

    Raises:
        ConfigError: If the file cannot be read or parsed, or if any
            validation rule fails.
    """
    path = Path(path)
    try:
        if path.suffix.lower() == ".json":
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        else:
            with open(path, "rb") as f:
                data = tomllib.load(f)
    except OSError as exc:
        raise ConfigError(f"Unable to open config file [{path}]: {exc}") from exc
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Unable to parse config file [{path}]: {exc}") from exc

    return parse_config(data)


def parse_config(data: dict[str, Any]) -> Config:
    """Build a validated :class:`Config` from an already-decoded document."""
    if not isinstance(data, dict):
        raise ConfigError("Config document must be a table/object at the top level.")

    categories = _keyed(
        (_parse_category(c) for c in _list(data, "categories", "config")),
        "category",
    )
    formats = _keyed(
        (_parse_format(f) for f in _list(data, "formats", "config")),
        "format",
    )
    accounts = _keyed(
        (_parse_account(a) for a in _list(data, "accounts", "config")),
        "account",
    )

    config = Config(accounts=accounts, categories=categories, formats=formats)
    validate_config(config)
    return config


def validate_config(config: Config) -> None:
    """Check every cross-reference in *config*.

    Raises:
        ConfigError: Naming the first offending id.
    """
    for fmt in config.formats.values():
        validate_format(fmt)

    for account in config.accounts.values():
        if account.format_id not in config.formats:
            raise ConfigError(
                f"Format [{account.format_id}] does not exist. "
                f"Referenced from account [{account.id}]."
            )
        for payee in account.payees.values():
            for category_id in payee.category_ids:
                if category_id not in config.categories:
                    raise ConfigError(
                        f"Category [{category_id}] does not exist. "
                        f"Referenced from payee [{payee.id}] of account [{account.id}]."
                    )
        for rule in account.normalizers:
            if rule.payee_id not in account.payees:
                raise ConfigError(
                    f"Payee [{rule.payee_id}] does not exist. Referenced from a "
                    f"normalizer rule [{rule.matcher.match_string}] of account [{account.id}]."
                )


def validate_format(fmt: Format) -> None:
    """Ensure every column *fmt* references is listed in its field order."""
    for role, column in fmt.referenced_fields():
        if column not in fmt.field_order:
            raise ConfigError(
                f"{role} field name [{column}] for format [{fmt.id}] not included in field order."
            )


class RunConfig:
    """The config document bound to one run.

    Combines the loaded :class:`Config` with the selected source account,
    the destination format, and command-line overrides.  Every per-run
    setting resolves as: override, then account default, then format or
    global default.
    """

    def __init__(
        self,
        config: Config,
        account_id: str,
        dst_format_id: str,
        overrides: RunOverrides | None = None,
    ):
        if account_id not in config.accounts:
            raise ConfigError(
                f"Account [{account_id}] does not exist. Known accounts: "
                f"{', '.join(sorted(config.accounts)) or '(none)'}."
            )
        if dst_format_id not in config.formats:
            raise ConfigError(
                f"Destination format [{dst_format_id}] does not exist. Known formats: "
                f"{', '.join(sorted(config.formats)) or '(none)'}."
            )
        self.config = config
        self._account = config.accounts[account_id]
        self._dst_format = config.formats[dst_format_id]
        self.overrides = overrides or RunOverrides()

    def account(self) -> Account:
        return self._account

    def src_format(self) -> Format:
        return self.config.formats[self._account.format_id]

    def dst_format(self) -> Format:
        return self._dst_format

    def category(self, category_id: str) -> Category | None:
        return self.config.categories.get(category_id)

    def sort(self) -> Sort:
        base = self._account.sort or self._dst_format.sort or Sort()
        return Sort(
            sort_by=self.overrides.sort_by or base.sort_by,
            order=self.overrides.sort_order or base.order,
        )

    def include_header(self) -> bool:
        return _first_set(self.overrides.include_header, self._dst_format.include_header)

    def ignore_pending(self) -> bool:
        return _first_set(self.overrides.ignore_pending, self._account.ignore_pending)

    def skip_prompts(self) -> bool:
        return _first_set(self.overrides.skip_prompts, self._account.skip_prompts)

    def skip_invalid_rows(self) -> bool:
        return _first_set(self.overrides.skip_invalid_rows, self._account.skip_invalid_rows)


def initialize(target_dir: Path) -> Path:
    """Write a starter ``config.toml`` into *target_dir*.

    Idempotent: an existing file is **not** overwritten.

    Returns:
        Path to the config file.
    """
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / DEFAULT_CONFIG_NAME
    if not path.exists():
        header = (
            "# Transaction Converter configuration\n"
            "# Every column named in a format's sub-tables must appear in its fieldOrder.\n\n"
        )
        path.write_text(header + tomli_w.dumps(STARTER_CONFIG), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Starter document
# ---------------------------------------------------------------------------

STARTER_CONFIG: dict[str, Any] = {
    "categories": [
        {"id": "groceries", "name": "Groceries"},
        {"id": "restaurants", "name": "Restaurants"},
        {"id": "household", "name": "Household"},
        {"id": "transfer", "name": "Transfer"},
    ],
    "formats": [
        {
            "id": "ally",
            "name": "Ally Bank",
            "includeHeader": True,
            "fieldOrder": ["Date", "Time", "Amount", "Type", "Description"],
            "dateTimeConfig": {
                "dateField": "Date",
                "dateFormat": "%Y-%m-%d",
                "timeField": "Time",
                "timeFormat": "%T",
            },
            "payeeConfig": {"fieldName": "Description"},
            "amountConfig": {
                "type": "TransactionTypeAndAmountFields",
                "amountField": "Amount",
                "transactionTypeField": "Type",
                "creditString": "Deposit",
                "debitString": "Withdrawal",
                "includeDebitSign": True,
            },
        },
        {
            "id": "citi",
            "name": "Citi Credit Card",
            "includeHeader": True,
            "fieldOrder": ["Status", "Date", "Description", "Debit", "Credit"],
            "dateTimeConfig": {"dateField": "Date", "dateFormat": "%m/%d/%Y"},
            "payeeConfig": {"fieldName": "Description"},
            "amountConfig": {
                "type": "SeparateDebitCreditFields",
                "debitField": "Debit",
                "creditField": "Credit",
            },
            "statusConfig": {
                "fieldName": "Status",
                "pendingString": "Pending",
                "clearedString": "Cleared",
            },
        },
        {
            "id": "google-sheets",
            "name": "Google Sheets Budget",
            "includeHeader": False,
            "sort": {"sortBy": "date", "sortOrder": "ascending"},
            "fieldOrder": ["Date", "Payee", "Category", "Amount", "Status", "Memo"],
            "dateTimeConfig": {"dateField": "Date", "dateFormat": "%Y-%m-%d"},
            "payeeConfig": {"fieldName": "Payee"},
            "amountConfig": {
                "type": "SingleAmountField",
                "fieldName": "Amount",
                "debitIsNegative": True,
            },
            "statusConfig": {
                "fieldName": "Status",
                "pendingString": "Pending",
                "clearedString": "Cleared",
            },
            "memoConfig": {"fieldName": "Memo"},
            "categoryConfig": {"fieldName": "Category"},
        },
    ],
    "accounts": [
        {
            "id": "ally-checking",
            "name": "Ally Checking",
            "formatId": "ally",
            "ignorePending": True,
            "payees": [
                {"id": "ally-savings", "name": "Ally Savings", "categoryIds": ["transfer"]},
                {
                    "id": "costco",
                    "name": "Costco",
                    "categoryIds": ["groceries", "household"],
                },
            ],
            "normalizers": [
                {
                    "payeeId": "ally-savings",
                    "type": "Contains",
                    "matchString": "Online Savings",
                },
                {"payeeId": "costco", "type": "Regex", "matchString": r"^costco\b"},
            ],
        },
    ],
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _first_set(*values: bool | None) -> bool:
    for value in values:
        if value is not None:
            return value
    return False


class _Identified(Protocol):
    @property
    def id(self) -> str: ...


T = TypeVar("T", bound=_Identified)


def _keyed(items: Iterable[T], kind: str, where: str = "") -> dict[str, T]:
    """Index *items* by ``id``, rejecting duplicates."""
    result: dict[str, T] = {}
    for item in items:
        if item.id in result:
            suffix = f" in {where}" if where else ""
            raise ConfigError(f"Duplicate {kind} id [{item.id}]{suffix}.")
        result[item.id] = item
    return result


def _list(data: dict, key: str, where: str) -> list:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise ConfigError(f"[{key}] in {where} must be a list.")
    return value


def _table(data: dict, key: str, where: str) -> dict:
    value = _require(data, key, where)
    if not isinstance(value, dict):
        raise ConfigError(f"[{key}] in {where} must be a table/object.")
    return value


def _optional_table(data: dict, key: str, where: str) -> dict | None:
    if data.get(key) is None:
        return None
    return _table(data, key, where)


def _require(data: dict, key: str, where: str) -> Any:
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a table/object for {where}.")
    if key not in data:
        raise ConfigError(f"Missing required key [{key}] in {where}.")
    return data[key]


def _str(data: dict, key: str, where: str) -> str:
    value = _require(data, key, where)
    if not isinstance(value, str):
        raise ConfigError(f"[{key}] in {where} must be a string.")
    return value


def _optional_str(data: dict, key: str, where: str) -> str | None:
    if data.get(key) is None:
        return None
    return _str(data, key, where)


def _optional_bool(data: dict, key: str, where: str) -> bool | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ConfigError(f"[{key}] in {where} must be true or false.")
    return value


def _enum(enum_cls, value: Any, key: str, where: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ConfigError(
            f"Invalid value [{value}] for [{key}] in {where}. Expected one of: {allowed}."
        ) from None


def _parse_sort(data: dict | None, where: str) -> Sort | None:
    if data is None:
        return None
    return Sort(
        sort_by=_enum(SortBy, data.get("sortBy", "date"), "sortBy", where),
        order=_enum(SortOrder, data.get("sortOrder", "ascending"), "sortOrder", where),
    )


def _parse_category(data: dict) -> Category:
    where = "category"
    category_id = _str(data, "id", where)
    return Category(id=category_id, name=_str(data, "name", f"category [{category_id}]"))


def _parse_format(data: dict) -> Format:
    format_id = _str(data, "id", "format")
    where = f"format [{format_id}]"

    field_order = _require(data, "fieldOrder", where)
    if not isinstance(field_order, list) or not all(isinstance(f, str) for f in field_order):
        raise ConfigError(f"[fieldOrder] in {where} must be a list of strings.")

    dt = _table(data, "dateTimeConfig", where)
    dt_where = f"dateTimeConfig of {where}"
    date_time = DateTimeConfig(
        date_field=_str(dt, "dateField", dt_where),
        date_format=_str(dt, "dateFormat", dt_where),
        time_field=_optional_str(dt, "timeField", dt_where),
        time_format=_optional_str(dt, "timeFormat", dt_where),
        delimiter=_optional_str(dt, "dateTimeDeliminator", dt_where),
    )

    payee = _table(data, "payeeConfig", where)

    status = None
    status_data = _optional_table(data, "statusConfig", where)
    if status_data is not None:
        s_where = f"statusConfig of {where}"
        status = StatusConfig(
            field=_str(status_data, "fieldName", s_where),
            pending_string=_str(status_data, "pendingString", s_where),
            cleared_string=_str(status_data, "clearedString", s_where),
        )

    memo = _optional_table(data, "memoConfig", where)
    category = _optional_table(data, "categoryConfig", where)

    return Format(
        id=format_id,
        name=_str(data, "name", where),
        field_order=tuple(field_order),
        date_time=date_time,
        payee_field=_str(payee, "fieldName", f"payeeConfig of {where}"),
        amount=_parse_amount_encoding(_table(data, "amountConfig", where), where),
        status=status,
        memo_field=None if memo is None else _str(memo, "fieldName", f"memoConfig of {where}"),
        category_field=(
            None if category is None else _str(category, "fieldName", f"categoryConfig of {where}")
        ),
        include_header=_optional_bool(data, "includeHeader", where),
        sort=_parse_sort(_optional_table(data, "sort", where), where),
    )


def _parse_amount_encoding(data: dict, format_where: str) -> AmountEncoding:
    where = f"amountConfig of {format_where}"
    # The original layout nests the variant one level deeper under "format".
    if "type" not in data and isinstance(data.get("format"), dict):
        data = data["format"]
    kind = _str(data, "type", where)

    if kind == "SingleAmountField":
        return SingleAmountField(
            field=_str(data, "fieldName", where),
            debit_is_negative=bool(_optional_bool(data, "debitIsNegative", where)),
        )
    if kind == "SeparateDebitCreditFields":
        return SeparateDebitCreditFields(
            debit_field=_str(data, "debitField", where),
            credit_field=_str(data, "creditField", where),
        )
    if kind == "TransactionTypeAndAmountFields":
        return TransactionTypeAndAmountFields(
            amount_field=_str(data, "amountField", where),
            type_field=_str(data, "transactionTypeField", where),
            credit_string=_str(data, "creditString", where),
            debit_string=_str(data, "debitString", where),
            include_debit_sign=bool(_optional_bool(data, "includeDebitSign", where)),
        )
    raise ConfigError(
        f"Unknown amount format type [{kind}] in {where}. Expected one of: "
        "SingleAmountField, SeparateDebitCreditFields, TransactionTypeAndAmountFields."
    )


def _parse_matcher(data: dict, ignore_case: bool, where: str) -> Matcher:
    kind = _str(data, "type", where)
    match_string = _str(data, "matchString", where)
    if kind == "Exact":
        return ExactMatcher(match_string)
    if kind == "Contains":
        return ContainsMatcher(match_string)
    if kind == "Regex":
        flags = re.IGNORECASE if ignore_case else 0
        try:
            pattern = re.compile(match_string, flags)
        except re.error as exc:
            raise ConfigError(
                f"Invalid regex string [{match_string}] provided to normalizer in {where}: {exc}"
            ) from exc
        return RegexMatcher(match_string, pattern)
    raise ConfigError(
        f"Unknown matcher type [{kind}] in {where}. Expected one of: Exact, Contains, Regex."
    )


def _parse_rule(data: dict, payee_id: str | None, where: str) -> PayeeNormalizerRule:
    if payee_id is None:
        payee_id = _str(data, "payeeId", where)
    ignore_case = _optional_bool(data, "ignoreCase", where)
    ignore_case = True if ignore_case is None else ignore_case
    return PayeeNormalizerRule(
        payee_id=payee_id,
        matcher=_parse_matcher(data, ignore_case, where),
        ignore_case=ignore_case,
    )


def _parse_account(data: dict) -> Account:
    account_id = _str(data, "id", "account")
    where = f"account [{account_id}]"

    rules = [
        _parse_rule(r, None, f"normalizers of {where}")
        for r in _list(data, "normalizers", where)
    ]

    payees: list[Payee] = []
    for p in _list(data, "payees", where):
        payee_id = _str(p, "id", f"payees of {where}")
        p_where = f"payee [{payee_id}] of {where}"
        category_ids = p.get("categoryIds") or []
        if not isinstance(category_ids, list) or not all(isinstance(c, str) for c in category_ids):
            raise ConfigError(f"[categoryIds] in {p_where} must be a list of strings.")
        payees.append(
            Payee(id=payee_id, name=_str(p, "name", p_where), category_ids=tuple(category_ids))
        )
        # Rules nested under a payee follow the account-level rules.
        rules.extend(
            _parse_rule(r, payee_id, f"normalizers of {p_where}")
            for r in _list(p, "normalizers", p_where)
        )

    return Account(
        id=account_id,
        name=_str(data, "name", where),
        format_id=_str(data, "formatId", where),
        normalizers=tuple(rules),
        payees=_keyed(payees, "payee", where),
        ignore_pending=_optional_bool(data, "ignorePending", where),
        skip_prompts=_optional_bool(data, "skipPrompts", where),
        sort=_parse_sort(_optional_table(data, "sort", where), where),
        skip_invalid_rows=_optional_bool(data, "skipInvalidRows", where),
    )
