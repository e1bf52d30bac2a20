"""Invoice numbering."""

from __future__ import annotations

import re
from collections.abc import Iterable

INVOICE_PREFIX = "INV"


def format_invoice_number(year: int, sequence: int) -> str:
    return f"{INVOICE_PREFIX}-{year}-{sequence:03d}"


def next_invoice_number(existing_numbers: Iterable[str | None], year: int) -> str:
    """Return the next ``INV-<year>-<NNN>`` number for ``year``.

    The sequence restarts every calendar year and continues from the highest
    sequence already issued that year, so gaps left by deleted invoices are
    never reused.
    """

    pattern = re.compile(rf"^{INVOICE_PREFIX}-{year}-(\d+)$")
    highest = 0
    for number in existing_numbers:
        match = pattern.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return format_invoice_number(year, highest + 1)


__all__ = ["INVOICE_PREFIX", "format_invoice_number", "next_invoice_number"]
