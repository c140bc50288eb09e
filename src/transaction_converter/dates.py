"""Date/time assembly.

Formats describe the date and the optional time of day as separate columns
with separate ``strftime``-style formats.  On import the two halves are
joined with a delimiter into one composite value and parsed with one
composite format; on export each half is rendered with its own format.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timezone

from transaction_converter.errors import InvalidDateTimeError, MissingFieldError
from transaction_converter.models import DateTimeConfig

DEFAULT_TIME = "00:00:00"
DEFAULT_TIME_FORMAT = "%T"
DEFAULT_DELIMITER = " "

# Shorthand directives that ``strftime`` accepts on some platforms but
# ``strptime`` never does.
_SHORTHANDS = {
    "%T": "%H:%M:%S",
    "%F": "%Y-%m-%d",
    "%D": "%m/%d/%y",
    "%R": "%H:%M",
}
_DIRECTIVE = re.compile(r"%.")


def expand_format(fmt: str) -> str:
    """Replace shorthand directives such as ``%T`` with their long form."""
    return _DIRECTIVE.sub(lambda m: _SHORTHANDS.get(m.group(0), m.group(0)), fmt)


def composite(row: Mapping[str, str], config: DateTimeConfig) -> tuple[str, str]:
    """Return ``(value, format)`` for the row's date and optional time.

    Raises:
        MissingFieldError: The date column, or a configured time column,
            is absent from the row.
    """
    if config.date_field not in row:
        raise MissingFieldError(config.date_field, "Date")
    date_str = row[config.date_field]
    delimiter = config.delimiter if config.delimiter is not None else DEFAULT_DELIMITER

    if config.time_field is not None:
        if config.time_field not in row:
            raise MissingFieldError(config.time_field, "Time")
        time_str = row[config.time_field]
        time_format = config.time_format or DEFAULT_TIME_FORMAT
    else:
        time_str = DEFAULT_TIME
        time_format = DEFAULT_TIME_FORMAT

    value = f"{date_str}{delimiter}{time_str}"
    fmt = f"{config.date_format}{delimiter}{time_format}"
    return value, fmt


def parse_datetime(value: str, fmt: str) -> datetime:
    """Parse *value* with *fmt* into a UTC timestamp.

    Raises:
        InvalidDateTimeError: Carrying the raw value, the format and the
            underlying cause.
    """
    try:
        parsed = datetime.strptime(value, expand_format(fmt))
    except ValueError as exc:
        raise InvalidDateTimeError(value, fmt, exc) from exc
    return parsed.replace(tzinfo=timezone.utc)


def read_datetime(row: Mapping[str, str], config: DateTimeConfig) -> datetime:
    value, fmt = composite(row, config)
    return parse_datetime(value, fmt)


def datetime_fields(moment: datetime, config: DateTimeConfig) -> dict[str, str]:
    """Render *moment* into the date column and, if configured, the time column."""
    fields = {config.date_field: moment.strftime(expand_format(config.date_format))}
    if config.time_field is not None:
        time_format = config.time_format or DEFAULT_TIME_FORMAT
        fields[config.time_field] = moment.strftime(expand_format(time_format))
    return fields
