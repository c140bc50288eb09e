"""CSV framing and file handling.

Turns tabular text into ``{column: value}`` rows and ordered value lists
back into tabular text.  Opening files goes through :func:`open_source` and
:func:`open_destination` so failures surface as
:class:`~transaction_converter.errors.TransactionIOError` naming the file.
"""

from __future__ import annotations

import csv
import errno
import os
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import IO

from transaction_converter.errors import SourceReadError, TransactionIOError


def open_source(path: str | Path | None) -> IO[str]:
    """Open *path* for reading, or return stdin when *path* is ``None``."""
    if path is None:
        return sys.stdin
    try:
        return open(path, newline="", encoding="utf-8-sig")
    except OSError as exc:
        raise TransactionIOError(str(path), exc) from exc


def open_destination(path: str | Path | None) -> IO[str]:
    """Open *path* for writing, or return stdout when *path* is ``None``."""
    if path is None:
        return sys.stdout
    try:
        return open(path, "w", newline="", encoding="utf-8")
    except OSError as exc:
        raise TransactionIOError(str(path), exc) from exc


def check_destination(path: str | Path | None) -> None:
    """Fail early if *path* could not be created or overwritten.

    Nothing is created or truncated; :func:`open_destination` does that once
    the rows are ready to be written.
    """
    if path is None:
        return
    target = Path(path)
    if target.is_dir():
        cause = IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), str(target))
    elif target.exists():
        if os.access(target, os.W_OK):
            return
        cause = PermissionError(errno.EACCES, os.strerror(errno.EACCES), str(target))
    elif not target.parent.is_dir():
        cause = FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(target))
    elif os.access(target.parent, os.W_OK):
        return
    else:
        cause = PermissionError(errno.EACCES, os.strerror(errno.EACCES), str(target))
    raise TransactionIOError(str(path), cause)


def parse_rows(reader: IO[str]) -> list[dict[str, str]]:
    """Parse CSV text with a header row into a list of field maps.

    Whitespace after a delimiter is skipped, so "Date, Time" headers yield
    "Date" and "Time".  Cells missing from short rows are left out of the
    map so they read as absent columns.

    Raises:
        SourceReadError: If the text is not valid UTF-8 or is not valid CSV.
    """
    rows: list[dict[str, str]] = []
    try:
        for raw in csv.DictReader(reader, skipinitialspace=True):
            rows.append({k: v for k, v in raw.items() if k is not None and v is not None})
    except (UnicodeDecodeError, csv.Error) as exc:
        raise SourceReadError(getattr(reader, "name", "<stream>"), exc) from exc
    return rows


def write_rows(
    writer: IO[str],
    header: Sequence[str] | None,
    rows: Iterable[Sequence[str]],
) -> None:
    """Write *rows* as CSV, preceded by *header* when given."""
    out = csv.writer(writer)
    if header is not None:
        out.writerow(header)
    out.writerows(rows)
