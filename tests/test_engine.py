from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from application.engine import AggregationEngine, LedgerIndex, resolve_timezone, savings_grade
from domain.models import Account, Category, Transaction, TransactionType

REFERENCE = date(2024, 3, 15)


def _txn(
    id: str,
    amount: str,
    when: datetime,
    txn_type: TransactionType = TransactionType.EXPENSE,
    category_id: str | None = None,
    account_id: str | None = None,
    description: str | None = None,
) -> Transaction:
    return Transaction(
        id=id,
        amount=Decimal(amount),
        description=description or f"txn {id}",
        type=txn_type,
        date=when,
        category_id=category_id,
        account_id=account_id,
    )


class AggregationEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = AggregationEngine("UTC")
        self.categories = [
            Category(id="food", name="Food", color="#22c55e"),
            Category(id="rent", name="Rent", color="#3b82f6"),
            Category(id="fun", name="Fun", color="#a855f7"),
        ]
        self.accounts = [
            Account(id="checking", name="Checking"),
            Account(id="cash", name="Cash"),
            Account(id="unused", name="Unused"),
        ]
        self.transactions = [
            _txn("t1", "1200", datetime(2024, 3, 1, 9, 0), category_id="rent", account_id="checking"),
            _txn("t2", "50.25", datetime(2024, 3, 3, 18, 30), category_id="food", account_id="cash"),
            _txn("t3", "3000", datetime(2024, 3, 1, 8, 0), TransactionType.INCOME, account_id="checking"),
            _txn("t4", "80", datetime(2024, 2, 10, 12, 0), category_id="food"),
            _txn("t5", "15", datetime(2024, 1, 20, 12, 0), category_id="deleted-category"),
            _txn("t6", "999", datetime(2022, 6, 1, 12, 0), category_id="fun"),
        ]

    # ---- totals ----
    def test_overall_totals_match_per_type_sums(self) -> None:
        stats = self.engine.overall_stats(self.transactions, REFERENCE)

        expenses = sum(t.amount for t in self.transactions if t.type == TransactionType.EXPENSE)
        income = sum(t.amount for t in self.transactions if t.type == TransactionType.INCOME)
        self.assertEqual(stats.total_expenses + stats.total_income, expenses + income)
        self.assertEqual(stats.total_expenses, Decimal("2344.25"))
        self.assertEqual(stats.net_savings, Decimal("3000") - Decimal("2344.25"))
        self.assertEqual(stats.transaction_count, 6)

    def test_totals_for_empty_input_are_zero(self) -> None:
        totals = self.engine.totals([])
        self.assertEqual((totals.income, totals.expenses, totals.net), (0, 0, 0))

    # ---- monthly series ----
    def test_monthly_series_buckets_window_oldest_first(self) -> None:
        buckets = self.engine.monthly_series(self.transactions, 3, REFERENCE)

        self.assertEqual([b.month for b in buckets], ["Jan 2024", "Feb 2024", "Mar 2024"])
        self.assertEqual([b.short_month for b in buckets], ["Jan", "Feb", "Mar"])
        self.assertEqual(sum(b.transaction_count for b in buckets), 5)
        march = buckets[-1]
        self.assertEqual(march.expenses, Decimal("1250.25"))
        self.assertEqual(march.income, Decimal("3000"))
        self.assertEqual(march.net, Decimal("1749.75"))

    def test_monthly_series_keeps_empty_months_and_crosses_years(self) -> None:
        buckets = self.engine.monthly_series(self.transactions, 12, REFERENCE)

        self.assertEqual(len(buckets), 12)
        self.assertEqual(buckets[0].month, "Apr 2023")
        self.assertEqual(buckets[0].start, date(2023, 4, 1))
        self.assertEqual(buckets[0].transaction_count, 0)
        self.assertEqual(buckets[0].expenses, 0)

    def test_monthly_series_non_positive_count_is_empty(self) -> None:
        self.assertEqual(self.engine.monthly_series(self.transactions, 0, REFERENCE), [])
        self.assertEqual(self.engine.monthly_series(self.transactions, -3, REFERENCE), [])

    def test_aware_datetimes_are_bucketed_in_reporting_timezone(self) -> None:
        eastern = timezone(timedelta(hours=-5))
        # 23:00 on Feb 29 in UTC-5 is already March 1 in UTC.
        txn = _txn("late", "10", datetime(2024, 2, 29, 23, 0, tzinfo=eastern))

        buckets = self.engine.monthly_series([txn], 2, REFERENCE)
        self.assertEqual([b.transaction_count for b in buckets], [0, 1])

        shifted = AggregationEngine("UTC")
        shifted.tz = eastern
        buckets = shifted.monthly_series([txn], 2, REFERENCE)
        self.assertEqual([b.transaction_count for b in buckets], [1, 0])

    # ---- category breakdown ----
    def test_category_breakdown_sorted_with_percentages(self) -> None:
        entries = self.engine.category_breakdown(self.transactions, self.categories)

        self.assertEqual([e.id for e in entries], ["rent", "fun", "food"])
        self.assertEqual(entries[2].total, Decimal("130.25"))
        self.assertEqual(entries[2].transaction_count, 2)
        self.assertAlmostEqual(sum(e.percentage for e in entries), 100.0, places=6)

    def test_category_breakdown_ignores_income_and_dangling_references(self) -> None:
        entries = self.engine.category_breakdown(self.transactions, self.categories)
        ids = {e.id for e in entries}

        self.assertNotIn("deleted-category", ids)
        self.assertEqual(sum(e.transaction_count for e in entries), 4)

    def test_category_breakdown_without_spending_is_empty(self) -> None:
        income_only = [_txn("i1", "100", datetime(2024, 3, 1), TransactionType.INCOME, category_id="food")]

        entries = self.engine.category_breakdown(income_only, self.categories)

        self.assertEqual(entries, [])
        self.assertEqual(sum(e.percentage for e in entries), 0)

    def test_category_breakdown_ties_keep_category_order(self) -> None:
        txns = [
            _txn("a", "10", datetime(2024, 3, 1), category_id="fun"),
            _txn("b", "10", datetime(2024, 3, 1), category_id="food"),
        ]

        entries = self.engine.category_breakdown(txns, self.categories)

        self.assertEqual([e.id for e in entries], ["food", "fun"])
        self.assertEqual([e.percentage for e in entries], [50.0, 50.0])

    # ---- account breakdown ----
    def test_account_breakdown_excludes_idle_accounts(self) -> None:
        entries = self.engine.account_breakdown(self.transactions, self.accounts)

        self.assertEqual([e.id for e in entries], ["checking", "cash"])
        checking = entries[0]
        self.assertEqual(checking.total_spent, Decimal("1200"))
        self.assertEqual(checking.total_income, Decimal("3000"))
        self.assertEqual(checking.transaction_count, 2)

    # ---- monthly category matrix ----
    def test_monthly_category_matrix_has_every_category_each_month(self) -> None:
        rows = self.engine.monthly_category_matrix(self.transactions, self.categories, 6, REFERENCE)

        self.assertEqual([r.month for r in rows], ["Oct", "Nov", "Dec", "Jan", "Feb", "Mar"])
        for row in rows:
            self.assertEqual(set(row.values), {"Food", "Rent", "Fun"})
        self.assertEqual(rows[-1].values["Rent"], Decimal("1200"))
        self.assertEqual(rows[-2].values["Food"], Decimal("80"))
        self.assertEqual(rows[0].values["Fun"], 0)

    def test_monthly_category_matrix_merges_duplicate_names(self) -> None:
        categories = [Category(id="a", name="Food"), Category(id="b", name="Food")]
        txns = [
            _txn("x", "5", datetime(2024, 3, 2), category_id="a"),
            _txn("y", "7", datetime(2024, 3, 3), category_id="b"),
        ]

        rows = self.engine.monthly_category_matrix(txns, categories, 1, REFERENCE)

        self.assertEqual(rows[0].values, {"Food": Decimal("12")})

    # ---- day of week ----
    def test_day_of_week_always_has_seven_entries(self) -> None:
        empty = self.engine.day_of_week([])

        self.assertEqual([d.day for d in empty], ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"])
        self.assertTrue(all(d.total == 0 and d.count == 0 for d in empty))
        self.assertEqual(len(self.engine.day_of_week(self.transactions)), 7)

    def test_day_of_week_counts_expenses_only(self) -> None:
        days = {d.day: d for d in self.engine.day_of_week(self.transactions)}

        # 2024-03-01 was a Friday, 2024-03-03 a Sunday.
        self.assertEqual(days["Fri"].total, Decimal("1200"))
        self.assertEqual(days["Fri"].count, 1)
        self.assertEqual(days["Sun"].total, Decimal("50.25"))

    # ---- top expenses ----
    def test_top_expenses_sorted_and_limited(self) -> None:
        top = self.engine.top_expenses(self.transactions, self.categories, 3)

        self.assertEqual([t.id for t in top], ["t1", "t6", "t4"])
        self.assertEqual(top[0].category, "Rent")
        self.assertEqual(top[0].category_color, "#3b82f6")

    def test_top_expenses_length_and_uncategorized_label(self) -> None:
        top = self.engine.top_expenses(self.transactions, self.categories, 50)

        self.assertEqual(len(top), 5)
        dangling = next(t for t in top if t.id == "t5")
        self.assertEqual(dangling.category, "Uncategorized")
        self.assertEqual(dangling.category_color, "#71717a")
        self.assertEqual(self.engine.top_expenses(self.transactions, self.categories, 0), [])

    def test_top_expenses_ties_keep_input_order(self) -> None:
        txns = [
            _txn("z-first", "40", datetime(2024, 3, 2)),
            _txn("big", "90", datetime(2024, 3, 3)),
            _txn("a-second", "40", datetime(2024, 3, 4)),
            _txn("m-third", "40", datetime(2024, 3, 1)),
        ]

        top = self.engine.top_expenses(txns, self.categories, 3)

        self.assertEqual([t.id for t in top], ["big", "z-first", "a-second"])

    # ---- overall stats ----
    def test_month_over_month_is_zero_without_previous_spending(self) -> None:
        txns = [_txn("m", "500", datetime(2024, 3, 5))]

        stats = self.engine.overall_stats(txns, REFERENCE)

        self.assertEqual(stats.month_over_month_change, 0.0)
        self.assertEqual(stats.current_month_expenses, Decimal("500"))

    def test_overall_stats_averages_and_rates(self) -> None:
        stats = self.engine.overall_stats(self.transactions, REFERENCE)

        in_window = Decimal("1200") + Decimal("50.25") + Decimal("80") + Decimal("15")
        self.assertEqual(stats.avg_monthly_expense, in_window / 12)
        self.assertEqual(stats.avg_monthly_income, Decimal("3000") / 12)
        self.assertAlmostEqual(stats.month_over_month_change, (1250.25 - 80) / 80 * 100)
        self.assertAlmostEqual(stats.savings_rate, 655.75 / 3000 * 100)
        self.assertEqual(stats.avg_transaction, Decimal("2344.25") / 6)

    def test_overall_stats_on_empty_input(self) -> None:
        stats = self.engine.overall_stats([], REFERENCE)

        self.assertEqual(stats.transaction_count, 0)
        self.assertEqual(stats.savings_rate, 0.0)
        self.assertEqual(stats.avg_transaction, 0)

    # ---- insights ----
    def test_insights_bundles_every_view(self) -> None:
        report = self.engine.insights(
            self.transactions, self.categories, self.accounts, reference=REFERENCE, top_n=2
        )

        self.assertEqual(report.timezone, "UTC")
        self.assertEqual(len(report.monthly_data), 12)
        self.assertEqual(len(report.monthly_category_data), 6)
        self.assertEqual(len(report.top_expenses), 2)
        self.assertEqual(len(report.day_of_week_spending), 7)
        self.assertEqual([c.name for c in report.categories], ["Food", "Rent", "Fun"])
        payload = report.model_dump(mode="json")
        self.assertIsInstance(payload["stats"]["total_expenses"], float)


class WeeklyReviewTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = AggregationEngine("UTC")
        self.categories = [Category(id="food", name="Food", color="#f97316"), Category(id="fun", name="Fun")]

    def test_window_runs_from_start_of_day_to_end_of_reference_day(self) -> None:
        txns = [
            _txn("edge-start", "10", datetime(2024, 3, 8, 0, 0), category_id="food"),
            _txn("too-early", "99", datetime(2024, 3, 7, 23, 59), category_id="food"),
            _txn("edge-end", "20", datetime(2024, 3, 15, 23, 59, 59), category_id="fun"),
            _txn("too-late", "99", datetime(2024, 3, 16, 0, 0), category_id="fun"),
        ]

        review = self.engine.weekly_review(txns, self.categories, REFERENCE)

        self.assertEqual(review.transaction_count, 2)
        self.assertEqual(review.weekly_expenses, Decimal("30"))
        self.assertEqual(review.start, datetime(2024, 3, 8, tzinfo=timezone.utc))

    def test_category_spending_sorted_and_uncategorized_counted(self) -> None:
        txns = [
            _txn("a", "10", datetime(2024, 3, 10), category_id="food"),
            _txn("b", "40", datetime(2024, 3, 11), category_id="fun"),
            _txn("c", "5", datetime(2024, 3, 12)),
            _txn("d", "100", datetime(2024, 3, 12), TransactionType.INCOME),
        ]

        review = self.engine.weekly_review(txns, self.categories, REFERENCE)

        self.assertEqual(list(review.category_spending), ["Fun", "Food"])
        self.assertEqual(review.category_spending["Food"].color, "#f97316")
        self.assertEqual(review.uncategorized_count, 2)
        self.assertAlmostEqual(review.savings_rate, 45.0)
        self.assertEqual(review.grade.grade, "A")

    def test_uncategorized_queue_lists_window_expenses_without_category(self) -> None:
        txns = [
            _txn("loose", "12.5", datetime(2024, 3, 14), description="Corner shop"),
            _txn("dangling", "8", datetime(2024, 3, 13), category_id="deleted"),
            _txn("filed", "30", datetime(2024, 3, 12), category_id="food"),
            _txn("pay", "500", datetime(2024, 3, 11), TransactionType.INCOME),
            _txn("old", "9", datetime(2024, 2, 1)),
        ]

        review = self.engine.weekly_review(txns, self.categories, REFERENCE)

        self.assertEqual([t.id for t in review.uncategorized], ["loose", "dangling"])
        self.assertEqual(review.uncategorized[0].description, "Corner shop")
        self.assertEqual(review.uncategorized[0].amount, Decimal("12.5"))
        self.assertEqual(review.uncategorized_count, 3)
        payload = review.model_dump(mode="json")
        self.assertEqual(payload["uncategorized"][1]["category_id"], "deleted")

    def test_no_income_grades_as_zero_rate(self) -> None:
        review = self.engine.weekly_review([_txn("a", "10", datetime(2024, 3, 10))], self.categories, REFERENCE)

        self.assertEqual(review.savings_rate, 0.0)
        self.assertEqual(review.grade.grade, "D")

    def test_savings_grade_thresholds(self) -> None:
        cases = [(75, "A+"), (50, "A+"), (30, "A"), (29.9, "B"), (20, "B"), (10, "C"), (0, "D"), (-0.1, "F")]
        for rate, expected in cases:
            with self.subTest(rate=rate):
                self.assertEqual(savings_grade(rate).grade, expected)


class JournalTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = AggregationEngine("UTC")
        self.transactions = [
            _txn("a", "4", datetime(2024, 3, 2, 9), description="Coffee beans", account_id="cash"),
            _txn("b", "3", datetime(2024, 3, 2, 8), description="COFFEE shop", account_id="card"),
            _txn("c", "900", datetime(2024, 3, 1, 8), TransactionType.INCOME, description="Salary", account_id="card"),
        ]

    def test_filter_by_search_type_and_account(self) -> None:
        by_search = self.engine.filter_transactions(self.transactions, search="coffee")
        by_type = self.engine.filter_transactions(self.transactions, txn_type="income")
        combined = self.engine.filter_transactions(self.transactions, search="coffee", account_id="card")

        self.assertEqual([t.id for t in by_search], ["a", "b"])
        self.assertEqual([t.id for t in by_type], ["c"])
        self.assertEqual([t.id for t in combined], ["b"])
        self.assertEqual(len(self.engine.filter_transactions(self.transactions)), 3)

    def test_group_by_day_keeps_first_seen_order(self) -> None:
        groups = self.engine.group_by_day(self.transactions)

        self.assertEqual(list(groups), ["2024-03-02", "2024-03-01"])
        self.assertEqual([t.id for t in groups["2024-03-02"]], ["a", "b"])


class LedgerIndexTests(unittest.TestCase):
    def test_missing_references_resolve_to_none(self) -> None:
        index = LedgerIndex([Category(id="food", name="Food")], [Account(id="cash", name="Cash")])

        self.assertIsNone(index.category_for(_txn("x", "1", datetime(2024, 1, 1), category_id="gone")))
        self.assertIsNone(index.account_for(_txn("y", "1", datetime(2024, 1, 1))))
        self.assertEqual(index.category_for(_txn("z", "1", datetime(2024, 1, 1), category_id="food")).name, "Food")

    def test_resolve_timezone(self) -> None:
        self.assertIs(resolve_timezone("UTC"), timezone.utc)
        self.assertIs(resolve_timezone(None), timezone.utc)
        with self.assertRaises(ValueError):
            resolve_timezone("Not/AZone")


if __name__ == "__main__":
    unittest.main()
