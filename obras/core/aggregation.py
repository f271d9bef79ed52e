# obras/core/aggregation.py
import pandas as pd
from typing import List, Dict, Any

from obras.config import ALL_CATEGORIES
from obras.core.models import Expense

# Funções puras: recalculadas a cada pedido a partir da lista de despesas.

MONTH_ABBREVIATIONS = ["jan", "fev", "mar", "abr", "mai", "jun",
                       "jul", "ago", "set", "out", "nov", "dez"]


def _to_dataframe(expenses: List[Expense]) -> pd.DataFrame:
    df = pd.DataFrame(
        [{"category": e.category, "amount": float(e.amount), "date": e.date} for e in expenses],
        columns=["category", "amount", "date"],
    )
    if not df.empty:
        df["date"] = pd.to_datetime(df["date"])
    return df


def month_label(year: int, month: int) -> str:
    """Ex: (2024, 5) -> 'mai/24'"""
    return f"{MONTH_ABBREVIATIONS[month - 1]}/{year % 100:02d}"


def list_categories(expenses: List[Expense]) -> List[str]:
    """'All' seguido das categorias existentes, pela ordem em que aparecem."""
    seen = []
    for expense in expenses:
        if expense.category not in seen:
            seen.append(expense.category)
    return [ALL_CATEGORIES] + seen


def filter_by_category(expenses: List[Expense], category: str = ALL_CATEGORIES) -> List[Expense]:
    if category == ALL_CATEGORIES:
        return list(expenses)
    return [e for e in expenses if e.category == category]


def total_for_category(expenses: List[Expense], category: str = ALL_CATEGORIES) -> float:
    df = _to_dataframe(filter_by_category(expenses, category))
    if df.empty:
        return 0.0
    return float(df["amount"].sum())


def by_category_totals(expenses: List[Expense]) -> List[Dict[str, Any]]:
    """Total por categoria, do maior para o menor; empates mantêm a ordem de chegada."""
    df = _to_dataframe(expenses)
    if df.empty:
        return []

    totals = df.groupby("category", sort=False)["amount"].sum()
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [{"category": name, "total": float(value)} for name, value in ordered]


def linear_trend(totals: List[float]) -> List[float]:
    """Reta de mínimos quadrados sobre os índices 0..n-1, sem valores negativos."""
    n = len(totals)
    if n < 2:
        return list(totals)

    sum_x = sum_y = sum_xy = sum_x2 = 0.0
    for x, y in enumerate(totals):
        sum_x += x
        sum_y += y
        sum_xy += x * y
        sum_x2 += x * x

    m = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    b = (sum_y - m * sum_x) / n
    return [max(0.0, m * x + b) for x in range(n)]


def monthly_totals_with_trend(expenses: List[Expense], category: str = ALL_CATEGORIES) -> List[Dict[str, Any]]:
    """Totais por (ano, mês) em ordem cronológica, com a linha de tendência."""
    df = _to_dataframe(filter_by_category(expenses, category))
    if df.empty:
        return []

    df["mes_ano"] = df["date"].dt.to_period("M")
    monthly = df.groupby("mes_ano")["amount"].sum().sort_index()

    totals = [float(v) for v in monthly.values]
    trend = linear_trend(totals)

    points = []
    for (period, total), trend_value in zip(zip(monthly.index, totals), trend):
        points.append({
            "month": f"{period.year:04d}-{period.month:02d}",
            "label": month_label(period.year, period.month),
            "total": total,
            "trend": trend_value,
        })
    return points


def dashboard_summary(expenses: List[Expense], category: str = ALL_CATEGORIES) -> Dict[str, Any]:
    return {
        "category": category,
        "categories": list_categories(expenses),
        "total": total_for_category(expenses, category),
        "by_category": by_category_totals(expenses),
        "monthly": monthly_totals_with_trend(expenses, category),
    }
