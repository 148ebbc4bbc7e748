"""Bank statement ingestion.

Statements arrive as comma-separated text exported by banks:
``date, description, amount, running_balance[, reference]`` with a header
row. Exports are inconsistent, so a malformed line is skipped with a
warning instead of failing the whole statement.
"""

from __future__ import annotations

import csv
import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

from finance_ledger.config import settings
from finance_ledger.logger import get_logger

logger = get_logger(__name__)

MIN_COLUMNS = 4


class Direction(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


@dataclass(frozen=True)
class StatementLine:
    """One normalized statement record. ``amount`` keeps the bank's sign."""

    line_number: int
    date: date
    description: str
    amount: Decimal
    balance: Decimal | None = None
    reference: str | None = None

    @property
    def id(self) -> str:
        return f"stmt-{self.line_number}"

    @property
    def direction(self) -> Direction:
        return Direction.CREDIT if self.amount > 0 else Direction.DEBIT

    @property
    def absolute_amount(self) -> Decimal:
        return abs(self.amount)


@dataclass(frozen=True)
class SkippedLine:
    line_number: int
    reason: str


@dataclass
class ParsedStatement:
    lines: list[StatementLine] = field(default_factory=list)
    skipped: list[SkippedLine] = field(default_factory=list)


class StatementLineError(ValueError):
    """A statement line could not be normalized."""

    pass


def parse_statement_date(value: str, *, dayfirst: bool | None = None) -> date:
    """Parse ISO dates first, then fall back to dateutil for bank formats."""
    value = value.strip()
    if not value:
        raise StatementLineError("missing date")
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return date_parser.parse(
            value, dayfirst=settings.statement_date_dayfirst if dayfirst is None else dayfirst
        ).date()
    except (ValueError, OverflowError) as e:
        raise StatementLineError(f"invalid date {value!r}") from e


def parse_amount(value: str, field_name: str = "amount") -> Decimal:
    cleaned = value.strip().replace(" ", "")
    if not cleaned:
        raise StatementLineError(f"missing {field_name}")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise StatementLineError(f"invalid {field_name} {value!r}") from e
    if not amount.is_finite():
        raise StatementLineError(f"invalid {field_name} {value!r}")
    return amount


def parse_statement_row(line_number: int, row: list[str]) -> StatementLine:
    columns = [col.replace('"', "").strip() for col in row]
    if len(columns) < MIN_COLUMNS:
        raise StatementLineError(f"expected at least {MIN_COLUMNS} columns, got {len(columns)}")

    balance = parse_amount(columns[3], "balance") if columns[3] else None
    reference = columns[4] if len(columns) > 4 and columns[4] else None
    return StatementLine(
        line_number=line_number,
        date=parse_statement_date(columns[0]),
        description=columns[1],
        amount=parse_amount(columns[2]),
        balance=balance,
        reference=reference,
    )


def parse_statement(content: str) -> ParsedStatement:
    """Parse raw statement text; the first line is a header and is discarded.

    Blank lines are ignored silently, malformed lines are reported in
    ``skipped``.
    """
    parsed = ParsedStatement()
    raw_lines = content.splitlines()

    for line_number, raw in enumerate(raw_lines[1:], start=1):
        if not raw.strip():
            continue
        row = next(csv.reader([raw], skipinitialspace=True))
        try:
            parsed.lines.append(parse_statement_row(line_number, row))
        except StatementLineError as e:
            logger.warning(
                "Skipping malformed statement line",
                line_number=line_number,
                reason=str(e),
            )
            parsed.skipped.append(SkippedLine(line_number=line_number, reason=str(e)))

    logger.debug(
        "Statement parsed",
        lines=len(parsed.lines),
        skipped=len(parsed.skipped),
    )
    return parsed
