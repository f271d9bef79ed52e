# tests/test_aggregation.py
import datetime
import unittest

from obras.core import aggregation
from obras.core.models import Expense


def make_expense(id, category, amount, year=2024, month=5, day=10, description="item"):
    return Expense(id=id, description=description, category=category, amount=amount,
                   date=datetime.datetime(year, month, day))


class TestAggregation(unittest.TestCase):

    def setUp(self):
        self.expenses = [
            make_expense(1, "Materiais", 120.0, month=3),
            make_expense(2, "Mão de Obra", 500.0, month=3),
            make_expense(3, "Materiais", 80.0, month=4),
            make_expense(4, "Ferramentas", 45.5, month=5),
            make_expense(5, "Outros", 45.5, month=5),
        ]

    # --- total_for_category ---
    def test_total_for_all(self):
        self.assertAlmostEqual(aggregation.total_for_category(self.expenses, "All"), 791.0)

    def test_total_for_category(self):
        self.assertAlmostEqual(aggregation.total_for_category(self.expenses, "Materiais"), 200.0)

    def test_total_for_unknown_category(self):
        self.assertEqual(aggregation.total_for_category(self.expenses, "Documentação"), 0.0)

    def test_total_for_empty(self):
        self.assertEqual(aggregation.total_for_category([]), 0.0)

    def test_total_is_idempotent(self):
        first = aggregation.total_for_category(self.expenses, "Materiais")
        second = aggregation.total_for_category(self.expenses, "Materiais")
        self.assertEqual(first, second)

    # --- by_category_totals ---
    def test_by_category_totals_sorted_descending(self):
        result = aggregation.by_category_totals(self.expenses)
        totals = [r["total"] for r in result]
        self.assertEqual(totals, sorted(totals, reverse=True))
        self.assertEqual(result[0], {"category": "Mão de Obra", "total": 500.0})

    def test_by_category_totals_sum_matches_direct_sum(self):
        result = aggregation.by_category_totals(self.expenses)
        self.assertAlmostEqual(sum(r["total"] for r in result), sum(e.amount for e in self.expenses))

    def test_by_category_ties_keep_first_encountered_order(self):
        result = aggregation.by_category_totals(self.expenses)
        tied = [r["category"] for r in result if r["total"] == 45.5]
        self.assertEqual(tied, ["Ferramentas", "Outros"])

    def test_by_category_totals_empty(self):
        self.assertEqual(aggregation.by_category_totals([]), [])

    def test_by_category_totals_is_idempotent(self):
        self.assertEqual(aggregation.by_category_totals(self.expenses),
                         aggregation.by_category_totals(self.expenses))

    # --- monthly_totals_with_trend ---
    def test_monthly_empty(self):
        self.assertEqual(aggregation.monthly_totals_with_trend([]), [])

    def test_monthly_single_point_trend_equals_total(self):
        result = aggregation.monthly_totals_with_trend([make_expense(1, "Materiais", 42.0)])
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0]["total"], 42.0)
        self.assertEqual(result[0]["trend"], 42.0)
        self.assertEqual(result[0]["label"], "mai/24")

    def test_monthly_two_points_perfect_fit(self):
        expenses = [
            make_expense(1, "Materiais", 30.0, month=2),
            make_expense(2, "Materiais", 10.0, month=1),
        ]
        result = aggregation.monthly_totals_with_trend(expenses)
        self.assertEqual([r["total"] for r in result], [10.0, 30.0])
        self.assertEqual([r["trend"] for r in result], [10.0, 30.0])
        self.assertEqual([r["month"] for r in result], ["2024-01", "2024-02"])

    def test_monthly_groups_and_orders_chronologically(self):
        expenses = self.expenses + [make_expense(6, "Materiais", 10.0, year=2023, month=12)]
        result = aggregation.monthly_totals_with_trend(expenses)
        self.assertEqual([r["month"] for r in result], ["2023-12", "2024-03", "2024-04", "2024-05"])
        self.assertEqual([r["total"] for r in result], [10.0, 620.0, 80.0, 91.0])

    def test_monthly_trend_never_negative(self):
        expenses = [
            make_expense(1, "Materiais", 1000.0, month=1),
            make_expense(2, "Materiais", 10.0, month=2),
            make_expense(3, "Materiais", 0.0, month=3),
        ]
        result = aggregation.monthly_totals_with_trend(expenses)
        self.assertTrue(all(r["trend"] >= 0 for r in result))
        self.assertEqual(result[-1]["trend"], 0.0)

    def test_monthly_filtered_by_category(self):
        result = aggregation.monthly_totals_with_trend(self.expenses, "Materiais")
        self.assertEqual([r["total"] for r in result], [120.0, 80.0])

    def test_linear_trend_formula(self):
        # y = 5x + 2 exato
        self.assertEqual(aggregation.linear_trend([2.0, 7.0, 12.0]), [2.0, 7.0, 12.0])

    # --- auxiliares ---
    def test_list_categories(self):
        self.assertEqual(aggregation.list_categories(self.expenses),
                         ["All", "Materiais", "Mão de Obra", "Ferramentas", "Outros"])

    def test_month_label(self):
        self.assertEqual(aggregation.month_label(2025, 12), "dez/25")

    def test_dashboard_summary(self):
        summary = aggregation.dashboard_summary(self.expenses, "Materiais")
        self.assertEqual(summary["total"], 200.0)
        self.assertEqual(len(summary["by_category"]), 4)
        self.assertEqual(len(summary["monthly"]), 2)


if __name__ == '__main__':
    unittest.main()
