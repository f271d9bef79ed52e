# obras/core/charts.py
import io
from typing import List, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.ticker as mticker

from obras.config import ALL_CATEGORIES
from obras.core import aggregation
from obras.core.models import Expense

# Configurações globais para os gráficos
plt.style.use('seaborn-v0_8-darkgrid')
plt.rcParams['font.family'] = 'sans-serif'
plt.rcParams['font.size'] = 10
plt.rcParams['axes.labelsize'] = 12
plt.rcParams['axes.titlesize'] = 14
plt.rcParams['legend.fontsize'] = 10

COLORS = {
    'Total': '#1A73E8',
    'Tendência': '#F59E0B',
    'Fatias': ['#1A73E8', '#00C896', '#F59E0B', '#EF4444', '#3B82F6', '#6B7280'],
}


def format_euro(value: float) -> str:
    """Ex: 1250 -> '1,3k €', 80 -> '80 €' (eixo y)."""
    if value >= 1000:
        return f"{value / 1000:.1f}".replace('.', ',') + "k €"
    return f"{value:g} €"


def _to_png(fig) -> io.BytesIO:
    buf = io.BytesIO()
    fig.savefig(buf, format='png', dpi=150)
    buf.seek(0)
    plt.close(fig)
    return buf


def generate_category_chart(expenses: List[Expense]) -> Union[io.BytesIO, None]:
    """Gráfico circular da despesa por categoria."""
    data = aggregation.by_category_totals(expenses)
    if not data:
        return None

    names = [d['category'] for d in data]
    values = [d['total'] for d in data]
    colors = [COLORS['Fatias'][i % len(COLORS['Fatias'])] for i in range(len(data))]

    fig, ax = plt.subplots(figsize=(10, 7))
    wedges, _ = ax.pie(values, startangle=90, colors=colors)
    ax.axis('equal')
    ax.set_title('Despesas por Categoria', fontsize=16, fontweight='bold')

    labels = [f"{name}: {value:.2f} €" for name, value in zip(names, values)]
    ax.legend(wedges, labels, title="Categoria", loc="center left", bbox_to_anchor=(1, 0, 0.5, 1))
    fig.tight_layout()
    return _to_png(fig)


def generate_monthly_trend_chart(expenses: List[Expense], category: str = ALL_CATEGORIES) -> Union[io.BytesIO, None]:
    """Barras com o total mensal e a linha de tendência."""
    points = aggregation.monthly_totals_with_trend(expenses, category)
    if not points:
        return None

    labels = [p['label'] for p in points]
    totals = [p['total'] for p in points]
    trend = [p['trend'] for p in points]

    fig, ax = plt.subplots(figsize=(12, 7))
    bars = ax.bar(labels, totals, color=COLORS['Total'], label='Total')
    ax.plot(labels, trend, color=COLORS['Tendência'], linestyle='--', marker='o', label='Tendência')
    ax.bar_label(bars, fmt='%.2f €', fontsize=8, padding=3)

    title = 'Despesa Mensal'
    if category != ALL_CATEGORIES:
        title += f' ({category})'
    ax.set_title(title, fontsize=16, fontweight='bold')
    ax.set_xlabel('Mês', fontsize=12)
    ax.set_ylabel('Valor (€)', fontsize=12)
    ax.yaxis.set_major_formatter(mticker.FuncFormatter(lambda value, _: format_euro(value)))
    ax.grid(axis='y', linestyle='--', alpha=0.7)
    ax.legend()
    fig.tight_layout()
    return _to_png(fig)
