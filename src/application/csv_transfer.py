from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Sequence

from pydantic import ValidationError

from application.engine import resolve_timezone
from domain.models import Category, Transaction, TransactionType
from domain.schemas import ImportSummary, TransactionCreate
from infrastructure.storage.store import LedgerStore

logger = logging.getLogger(__name__)

HEADER = ("Date", "Description", "Type", "Amount", "Category")
EXPORT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CENTS = Decimal("0.01")

_FALLBACK_DATE_FORMATS = ("%Y/%m/%d %H:%M:%S", "%Y/%m/%d", "%m/%d/%Y %H:%M:%S", "%m/%d/%Y")


class CsvRowError(ValueError):
    """A single CSV row that cannot become a transaction."""


# ---- export ----

def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def export_csv(
    transactions: Iterable[Transaction],
    categories: Sequence[Category] = (),
    timezone_name: str = "UTC",
) -> str:
    tz = resolve_timezone(timezone_name)
    names = {category.id: category.name for category in categories}
    lines = [",".join(HEADER)]
    for txn in transactions:
        when = txn.date if txn.date.tzinfo is None else txn.date.astimezone(tz)
        amount = Decimal(txn.amount).quantize(CENTS, rounding=ROUND_HALF_UP)
        lines.append(
            ",".join(
                [
                    when.strftime(EXPORT_DATE_FORMAT),
                    _quote(txn.description),
                    txn.type.value,
                    f"{amount:f}",
                    names.get(txn.category_id or "", ""),
                ]
            )
        )
    return "\n".join(lines)


def export_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"titan-finance-export-{today.strftime('%Y-%m-%d')}.csv"


# ---- parse ----

class _State(Enum):
    OUTSIDE = "outside"
    INSIDE = "inside"


def split_line(line: str) -> list[str]:
    """
    Split one CSV line with a two-state automaton.

    OUTSIDE: ',' ends the field, '"' enters INSIDE, anything else is kept.
    INSIDE:  '""' is one literal quote, a lone '"' returns to OUTSIDE,
             anything else (commas included) is kept.
    End of line ends the last field in either state. Fields are trimmed.
    """
    fields: list[str] = []
    current: list[str] = []
    state = _State.OUTSIDE
    i = 0
    while i < len(line):
        char = line[i]
        if state is _State.INSIDE:
            if char == '"':
                if line[i + 1:i + 2] == '"':
                    current.append('"')
                    i += 2
                    continue
                state = _State.OUTSIDE
            else:
                current.append(char)
        elif char == '"':
            state = _State.INSIDE
        elif char == ",":
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    fields.append("".join(current).strip())
    return fields


def split_records(content: str) -> list[str]:
    """Split CSV text into records on newlines that fall OUTSIDE a quoted field.

    Uses the same two states as `split_line`; an escaped '""' toggles twice and
    leaves the state unchanged. A trailing carriage return is dropped from each record.
    """
    records: list[str] = []
    current: list[str] = []
    state = _State.OUTSIDE
    for char in content:
        if char == '"':
            state = _State.OUTSIDE if state is _State.INSIDE else _State.INSIDE
        elif char == "\n" and state is _State.OUTSIDE:
            records.append("".join(current).rstrip("\r"))
            current = []
            continue
        current.append(char)
    records.append("".join(current).rstrip("\r"))
    return records


def parse_csv(content: str) -> list[dict[str, str]]:
    records = split_records(content.strip())
    if len(records) < 2:
        return []

    headers = [header.lower() for header in split_line(records[0])]
    rows: list[dict[str, str]] = []
    for record in records[1:]:
        if not record.strip():
            continue
        values = split_line(record)
        rows.append({header: values[i] if i < len(values) else "" for i, header in enumerate(headers)})
    return rows


# ---- row validation ----

def parse_amount(raw: Any) -> Decimal:
    text = str(raw or "").strip()
    if "_" in text:
        raise CsvRowError(f"amount is not a number: {text!r}")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise CsvRowError(f"amount is not a number: {text!r}") from None
    if not amount.is_finite():
        raise CsvRowError(f"amount is not finite: {text!r}")
    return amount


def parse_date(raw: Any) -> datetime | None:
    text = str(raw or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def clean_description(raw: Any) -> str:
    text = str(raw or "")
    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    return text.strip()


def build_create_request(
    row: Mapping[str, str],
    category_lookup: Mapping[str, str],
    now: datetime,
) -> TransactionCreate:
    """Turn one parsed row into a create request, raising CsvRowError when it is unusable.

    Unknown types fall back to expense, unknown categories to uncategorized and
    unreadable dates to `now`; only amount and description can fail a row.
    """
    amount = parse_amount(row.get("amount"))
    description = clean_description(row.get("description"))
    if not description:
        raise CsvRowError("description is empty")

    txn_type = TransactionType.INCOME if (row.get("type") or "").strip().lower() == "income" else TransactionType.EXPENSE
    category_id = category_lookup.get((row.get("category") or "").strip().lower())

    when = parse_date(row.get("date"))
    if when is None:
        when = now
    elif when.tzinfo is None and now.tzinfo is not None:
        when = when.replace(tzinfo=now.tzinfo)

    try:
        return TransactionCreate(
            amount=amount,
            description=description,
            type=txn_type,
            category_id=category_id,
            date=when,
        )
    except ValidationError as exc:
        raise CsvRowError(str(exc)) from exc


class CsvImporter:
    """Imports CSV rows into a store, one create call per valid row."""

    def __init__(
        self,
        store: LedgerStore,
        timezone_name: str = "UTC",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._tz = resolve_timezone(timezone_name)
        self._clock = clock or (lambda: datetime.now(self._tz))

    def import_csv(self, content: str) -> ImportSummary:
        rows = parse_csv(content)
        if not rows:
            logger.info("CSV import found no data rows chars=%d", len(content))
            return ImportSummary(message="No valid data found in CSV")

        # Last definition wins for duplicated names.
        lookup = {category.name.lower(): category.id for category in self._store.list_categories()}

        imported = 0
        failed = 0
        for position, row in enumerate(rows, start=1):
            try:
                request = build_create_request(row, lookup, self._clock())
            except CsvRowError as exc:
                failed += 1
                logger.info("CSV import rejected row=%d reason=%s", position, exc)
                continue
            # Storage errors are operation-level failures and propagate.
            self._store.create_transaction(request)
            imported += 1

        logger.info("CSV import complete rows=%d imported=%d failed=%d", len(rows), imported, failed)
        message = f"Successfully imported {imported} transactions"
        if failed:
            message += f", {failed} failed"
        return ImportSummary(imported=imported, failed=failed, message=message)
