"""Terminal implementation of the category selection prompt.

Kept apart from :mod:`transaction_converter.payees` so the categorizer can
be tested with scripted selections instead of a real terminal.
"""

from __future__ import annotations

from collections.abc import Sequence

import click


def console_prompt_select(options: Sequence[str], message: str = "") -> int | None:
    """Print a numbered menu and block until the user picks an entry.

    ``0`` skips.  Out-of-range or non-numeric input is rejected by click
    and asked again.  End of input raises :class:`click.Abort`.

    Returns:
        The 0-based index of the chosen option, or ``None`` when skipped.
    """
    click.echo(err=True)
    if message:
        click.echo(message, err=True)
    click.echo("Please select an option:", err=True)
    click.echo("0. (skip)", err=True)
    for number, option in enumerate(options, start=1):
        click.echo(f"{number}. {option}", err=True)

    choice = click.prompt(
        "Selection",
        type=click.IntRange(0, len(options)),
        err=True,
    )
    if choice == 0:
        return None
    return choice - 1
