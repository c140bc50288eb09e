"""Error types raised by the converter.

Everything the converter raises on purpose derives from
:class:`TransactionConverterError`, so the CLI can catch a single base class
and print one message.  Row-level parse failures share :class:`ParseError`
so the pipeline can decide whether to abort the batch or skip the row.
"""


class TransactionConverterError(Exception):
    """Base class for all converter errors."""


class ConfigError(TransactionConverterError):
    """The config document is missing, malformed, or fails validation."""


class TransactionIOError(TransactionConverterError):
    """A source or destination file could not be opened."""

    def __init__(self, filename: str, cause: Exception):
        self.filename = filename
        self.cause = cause
        super().__init__(
            f"An error occurred while trying to open file [{filename}]: {cause}"
        )


class ParseError(TransactionConverterError):
    """A single input row could not be mapped to a transaction.

    ``row`` is the 1-based data row number, filled in by the pipeline.
    """

    row: int | None = None


class MissingFieldError(ParseError):
    """A column referenced by the format is absent from the row."""

    def __init__(self, field: str, role: str = "Field"):
        self.field = field
        super().__init__(f"{role} field [{field}] does not exist.")


class InvalidAmountError(ParseError):
    """An amount column holds text that is not a number."""


class MissingAmountError(ParseError):
    """None of the amount columns holds a value."""


class InvalidDateTimeError(ParseError):
    """The composite date/time string does not match the composite format."""

    def __init__(self, value: str, fmt: str, cause: Exception):
        self.value = value
        self.fmt = fmt
        self.cause = cause
        super().__init__(
            f"Unable to parse date/time [{value}] with format [{fmt}]: {cause}"
        )


class InvalidStatusError(ParseError):
    """A status column matches neither the cleared nor the pending literal."""


class InvalidTransactionTypeError(ParseError):
    """A type column matches neither the credit nor the debit literal."""


class SourceReadError(TransactionConverterError):
    """The source stream could not be decoded or split into CSV rows."""

    def __init__(self, filename: str, cause: Exception):
        self.filename = filename
        self.cause = cause
        super().__init__(f"Unable to read rows from [{filename}]: {cause}")
