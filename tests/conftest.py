"""Shared pytest fixtures for Transaction Converter tests.

Provides reusable fixtures for:
- config_path / config: the test config document in tests/fixtures/ and its
  loaded, validated form.
- make_run: a factory for RunConfig objects bound to an account and a
  destination format, with optional overrides.
- make_transaction: a factory for RAW-phase Transaction objects with
  sensible defaults.
- scripted_prompt: a category prompt that replays canned answers.
- Convenience fixtures for fixture file paths.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from transaction_converter.config import RunConfig, load_config
from transaction_converter.models import (
    Config,
    RunOverrides,
    Transaction,
    TransactionStatus,
    TransactionType,
)

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Fixture file path helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the tests/fixtures/ directory."""
    return FIXTURES_DIR


@pytest.fixture
def config_path() -> Path:
    """Path to the test config document."""
    return FIXTURES_DIR / "config.toml"


@pytest.fixture
def ally_sample_csv() -> Path:
    """Path to the Ally Bank sample export."""
    return FIXTURES_DIR / "ally_sample.csv"


@pytest.fixture
def citi_sample_csv() -> Path:
    """Path to the Citi card sample export."""
    return FIXTURES_DIR / "citi_sample.csv"


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config(config_path: Path) -> Config:
    """The test config document, loaded and validated."""
    return load_config(config_path)


@pytest.fixture
def make_run(config: Config):
    """Factory for RunConfig objects.

    Usage::

        run = make_run("ally-checking", "sheets", skip_prompts=True)
    """

    def _make(
        account_id: str = "ally-checking",
        dst_format_id: str = "sheets",
        **overrides,
    ) -> RunConfig:
        return RunConfig(config, account_id, dst_format_id, RunOverrides(**overrides))

    return _make


# ---------------------------------------------------------------------------
# Transaction fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_transaction():
    """Factory for RAW-phase transactions with sensible defaults."""

    def _make(
        raw_payee_name: str = "COSTCO WHSE #0123",
        amount: str = "10.00",
        transaction_type: TransactionType = TransactionType.DEBIT,
        status: TransactionStatus = TransactionStatus.CLEARED,
        date: datetime | None = None,
        **kwargs,
    ) -> Transaction:
        return Transaction.build(
            date=date or datetime(2018, 6, 1, tzinfo=timezone.utc),
            raw_payee_name=raw_payee_name,
            transaction_type=transaction_type,
            amount=Decimal(amount),
            status=status,
            **kwargs,
        )

    return _make


class ScriptedPrompt:
    """Category prompt that returns canned answers and records each call."""

    def __init__(self, *answers: int | None):
        self.answers = list(answers)
        self.calls: list[tuple[list[str], str]] = []

    def __call__(self, options, message: str = "") -> int | None:
        self.calls.append((list(options), message))
        if not self.answers:
            raise AssertionError("prompt called more times than scripted")
        return self.answers.pop(0)


@pytest.fixture
def scripted_prompt():
    """The :class:`ScriptedPrompt` class, for building prompts with canned answers."""
    return ScriptedPrompt
