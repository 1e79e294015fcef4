from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import Decimal
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from domain.models import DEFAULT_COLOR, UNCATEGORIZED, Account, Category, Transaction, TransactionType
from domain.schemas import (
    AccountBreakdownEntry,
    CategoryBreakdownEntry,
    CategoryLabel,
    CategorySpending,
    DayOfWeekEntry,
    InsightsReport,
    MonthlyBucket,
    MonthlyCategoryRow,
    OverallStats,
    SavingsGrade,
    TopExpense,
    TransactionTotals,
    TransactionView,
    WeeklyReview,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
DAY_ABBR = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
STATS_MONTHS = 12

SAVINGS_GRADES = (
    (50.0, "A+", "Exceptional! You're saving like a titan."),
    (30.0, "A", "Excellent savings rate!"),
    (20.0, "B", "Good job! Room for improvement."),
    (10.0, "C", "Consider reducing expenses."),
    (0.0, "D", "Your expenses match your income."),
)


def resolve_timezone(name: str | None) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name}") from None


def savings_grade(rate: float) -> SavingsGrade:
    for threshold, grade, message in SAVINGS_GRADES:
        if rate >= threshold:
            return SavingsGrade(grade=grade, message=message)
    return SavingsGrade(grade="F", message="Spending exceeds income. Time to act.")


def _percent(part: Decimal, whole: Decimal) -> float:
    if whole <= 0:
        return 0.0
    return float(part / whole * 100)


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


@dataclass
class _Totals:
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    count: int = 0

    def add(self, txn: Transaction) -> None:
        self.count += 1
        if txn.type == TransactionType.INCOME:
            self.income += txn.amount
        else:
            self.expenses += txn.amount


class LedgerIndex:
    """Identifier maps for the dimension tables, built once per report call.

    Lookups that miss (no id, or an id whose record was deleted) return None,
    which callers treat as uncategorized / unassigned.
    """

    def __init__(self, categories: Iterable[Category] = (), accounts: Iterable[Account] = ()):
        self.categories: dict[str, Category] = {}
        for category in categories:
            self.categories.setdefault(category.id, category)
        self.accounts: dict[str, Account] = {}
        for account in accounts:
            self.accounts.setdefault(account.id, account)

    def category_for(self, txn: Transaction) -> Category | None:
        if not txn.category_id:
            return None
        return self.categories.get(txn.category_id)

    def account_for(self, txn: Transaction) -> Account | None:
        if not txn.account_id:
            return None
        return self.accounts.get(txn.account_id)


class AggregationEngine:
    """
    Derives every report view from an in-memory transaction list.

    All calendar math happens in one reporting timezone. Aware datetimes are
    converted into it; naive datetimes are read as wall-clock times already in it.
    """

    def __init__(self, timezone_name: str = "UTC"):
        self.timezone_name = timezone_name or "UTC"
        self.tz = resolve_timezone(self.timezone_name)

    # ---- calendar helpers ----
    def local(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value.astimezone(self.tz)

    def reference_point(self, reference: datetime | date | None = None) -> datetime:
        if reference is None:
            return datetime.now(self.tz)
        if isinstance(reference, datetime):
            return self.local(reference)
        return datetime.combine(reference, time(12, 0), tzinfo=self.tz)

    def _month_keys(self, reference: datetime, month_count: int) -> list[tuple[int, int]]:
        return [
            _shift_month(reference.year, reference.month, -offset)
            for offset in range(month_count - 1, -1, -1)
        ]

    def _month_key(self, txn: Transaction) -> tuple[int, int]:
        when = self.local(txn.date)
        return when.year, when.month

    # ---- views ----
    def totals(self, transactions: Iterable[Transaction]) -> TransactionTotals:
        acc = _Totals()
        for txn in transactions:
            acc.add(txn)
        return TransactionTotals(income=acc.income, expenses=acc.expenses, net=acc.income - acc.expenses)

    def monthly_series(
        self,
        transactions: Iterable[Transaction],
        month_count: int = 12,
        reference: datetime | date | None = None,
    ) -> list[MonthlyBucket]:
        if month_count <= 0:
            return []
        ref = self.reference_point(reference)
        buckets: OrderedDict[tuple[int, int], _Totals] = OrderedDict(
            (key, _Totals()) for key in self._month_keys(ref, month_count)
        )
        for txn in transactions:
            bucket = buckets.get(self._month_key(txn))
            if bucket is not None:
                bucket.add(txn)

        return [
            MonthlyBucket(
                month=f"{MONTH_ABBR[month - 1]} {year}",
                short_month=MONTH_ABBR[month - 1],
                start=date(year, month, 1),
                expenses=acc.expenses,
                income=acc.income,
                net=acc.income - acc.expenses,
                transaction_count=acc.count,
            )
            for (year, month), acc in buckets.items()
        ]

    def category_breakdown(
        self,
        transactions: Iterable[Transaction],
        categories: Sequence[Category],
    ) -> list[CategoryBreakdownEntry]:
        index = LedgerIndex(categories=categories)
        sums: dict[str, _Totals] = {category_id: _Totals() for category_id in index.categories}
        for txn in transactions:
            if not txn.is_expense:
                continue
            category = index.category_for(txn)
            if category is not None:
                sums[category.id].add(txn)

        entries = [
            CategoryBreakdownEntry(
                id=category.id,
                name=category.name,
                color=category.color,
                total=sums[category.id].expenses,
                transaction_count=sums[category.id].count,
            )
            for category in index.categories.values()
            if sums[category.id].expenses > 0
        ]
        # Stable sort: equal totals keep category input order.
        entries.sort(key=lambda entry: entry.total, reverse=True)
        grand_total = sum((entry.total for entry in entries), ZERO)
        for entry in entries:
            entry.percentage = _percent(entry.total, grand_total)
        return entries

    def account_breakdown(
        self,
        transactions: Iterable[Transaction],
        accounts: Sequence[Account],
    ) -> list[AccountBreakdownEntry]:
        index = LedgerIndex(accounts=accounts)
        sums: dict[str, _Totals] = {account_id: _Totals() for account_id in index.accounts}
        for txn in transactions:
            account = index.account_for(txn)
            if account is not None:
                sums[account.id].add(txn)

        return [
            AccountBreakdownEntry(
                id=account.id,
                name=account.name,
                color=account.color,
                total_spent=sums[account.id].expenses,
                total_income=sums[account.id].income,
                transaction_count=sums[account.id].count,
            )
            for account in index.accounts.values()
            if sums[account.id].count > 0
        ]

    def monthly_category_matrix(
        self,
        transactions: Iterable[Transaction],
        categories: Sequence[Category],
        month_count: int = 6,
        reference: datetime | date | None = None,
    ) -> list[MonthlyCategoryRow]:
        if month_count <= 0:
            return []
        ref = self.reference_point(reference)
        index = LedgerIndex(categories=categories)
        rows: OrderedDict[tuple[int, int], dict[str, Decimal]] = OrderedDict()
        for key in self._month_keys(ref, month_count):
            rows[key] = {category.name: ZERO for category in index.categories.values()}

        for txn in transactions:
            if not txn.is_expense:
                continue
            category = index.category_for(txn)
            values = rows.get(self._month_key(txn))
            if category is None or values is None:
                continue
            values[category.name] += txn.amount

        return [
            MonthlyCategoryRow(month=MONTH_ABBR[month - 1], values=values)
            for (_, month), values in rows.items()
        ]

    def day_of_week(self, transactions: Iterable[Transaction]) -> list[DayOfWeekEntry]:
        days = [_Totals() for _ in DAY_ABBR]
        for txn in transactions:
            if not txn.is_expense:
                continue
            # weekday() counts from Monday; the histogram starts on Sunday.
            days[(self.local(txn.date).weekday() + 1) % 7].add(txn)
        return [
            DayOfWeekEntry(day=label, total=acc.expenses, count=acc.count)
            for label, acc in zip(DAY_ABBR, days)
        ]

    def top_expenses(
        self,
        transactions: Iterable[Transaction],
        categories: Sequence[Category] = (),
        n: int = 10,
    ) -> list[TopExpense]:
        if n <= 0:
            return []
        index = LedgerIndex(categories=categories)
        expenses = [txn for txn in transactions if txn.is_expense]
        expenses.sort(key=lambda txn: txn.amount, reverse=True)

        result: list[TopExpense] = []
        for txn in expenses[:n]:
            category = index.category_for(txn)
            result.append(
                TopExpense(
                    id=txn.id,
                    description=txn.description,
                    amount=txn.amount,
                    date=txn.date,
                    category=category.name if category else UNCATEGORIZED,
                    category_color=category.color if category else DEFAULT_COLOR,
                )
            )
        return result

    def overall_stats(
        self,
        transactions: Sequence[Transaction],
        reference: datetime | date | None = None,
    ) -> OverallStats:
        totals = self.totals(transactions)
        monthly = self.monthly_series(transactions, STATS_MONTHS, reference)
        current = monthly[-1].expenses
        previous = monthly[-2].expenses
        count = len(transactions)

        return OverallStats(
            total_expenses=totals.expenses,
            total_income=totals.income,
            net_savings=totals.net,
            avg_monthly_expense=sum((m.expenses for m in monthly), ZERO) / STATS_MONTHS,
            avg_monthly_income=sum((m.income for m in monthly), ZERO) / STATS_MONTHS,
            transaction_count=count,
            month_over_month_change=_percent(current - previous, previous),
            current_month_expenses=current,
            savings_rate=_percent(totals.net, totals.income),
            avg_transaction=totals.expenses / count if count else ZERO,
        )

    def weekly_review(
        self,
        transactions: Iterable[Transaction],
        categories: Sequence[Category] = (),
        reference: datetime | date | None = None,
        days: int = 7,
    ) -> WeeklyReview:
        ref = self.reference_point(reference)
        start = datetime.combine(ref.date() - timedelta(days=max(days, 0)), time.min, tzinfo=self.tz)
        end = datetime.combine(ref.date(), time.max, tzinfo=self.tz)
        index = LedgerIndex(categories=categories)

        acc = _Totals()
        uncategorized: list[Transaction] = []
        uncategorized_count = 0
        spending: dict[str, CategorySpending] = {}
        for txn in transactions:
            if not start <= self.local(txn.date) <= end:
                continue
            acc.add(txn)
            category = index.category_for(txn)
            if category is None:
                uncategorized_count += 1
                if txn.is_expense:
                    uncategorized.append(txn)
                continue
            if txn.is_expense:
                entry = spending.setdefault(category.name, CategorySpending(color=category.color))
                entry.total += txn.amount

        rate = _percent(acc.income - acc.expenses, acc.income)
        ordered = dict(sorted(spending.items(), key=lambda item: item[1].total, reverse=True))
        return WeeklyReview(
            start=start,
            end=end,
            weekly_income=acc.income,
            weekly_expenses=acc.expenses,
            savings_rate=rate,
            uncategorized_count=uncategorized_count,
            uncategorized=[TransactionView.model_validate(txn) for txn in uncategorized],
            transaction_count=acc.count,
            category_spending=ordered,
            grade=savings_grade(rate),
        )

    def filter_transactions(
        self,
        transactions: Iterable[Transaction],
        search: str | None = None,
        txn_type: TransactionType | str | None = None,
        account_id: str | None = None,
    ) -> list[Transaction]:
        needle = (search or "").strip().lower()
        wanted_type = TransactionType(txn_type) if txn_type else None
        return [
            txn
            for txn in transactions
            if (not needle or needle in txn.description.lower())
            and (wanted_type is None or txn.type == wanted_type)
            and (not account_id or txn.account_id == account_id)
        ]

    def group_by_day(self, transactions: Iterable[Transaction]) -> dict[str, list[Transaction]]:
        groups: dict[str, list[Transaction]] = {}
        for txn in transactions:
            groups.setdefault(self.local(txn.date).strftime("%Y-%m-%d"), []).append(txn)
        return groups

    def insights(
        self,
        transactions: Sequence[Transaction],
        categories: Sequence[Category] = (),
        accounts: Sequence[Account] = (),
        reference: datetime | date | None = None,
        top_n: int = 10,
        month_count: int = 12,
        matrix_months: int = 6,
    ) -> InsightsReport:
        ref = self.reference_point(reference)
        logger.info(
            "Building insights transactions=%d categories=%d accounts=%d reference=%s tz=%s",
            len(transactions),
            len(categories),
            len(accounts),
            ref.isoformat(),
            self.timezone_name,
        )
        return InsightsReport(
            reference=ref,
            timezone=self.timezone_name,
            monthly_data=self.monthly_series(transactions, month_count, ref),
            category_breakdown=self.category_breakdown(transactions, categories),
            account_breakdown=self.account_breakdown(transactions, accounts),
            monthly_category_data=self.monthly_category_matrix(transactions, categories, matrix_months, ref),
            day_of_week_spending=self.day_of_week(transactions),
            top_expenses=self.top_expenses(transactions, categories, top_n),
            categories=[CategoryLabel(id=c.id, name=c.name, color=c.color) for c in categories],
            stats=self.overall_stats(transactions, ref),
        )
