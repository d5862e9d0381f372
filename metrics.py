"""
Aggregation of per-transaction emission estimates.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence
import pandas as pd

from schema import EmissionFactor, IndustryTotal, PeriodMetrics, TransactionEmission

AVERAGE_CAR_EMISSIONS_PER_KM = 0.192  # kg CO2 per km, average passenger car
AVERAGE_TREE_ABSORPTION_PER_YEAR = 21.77  # kg CO2 absorbed per tree per year

PERIODS = {
    'daily': 1,
    'weekly': 7,
    'monthly': 30,
    'yearly': 365,
}

def estimate_kg_co2e(amount: float, factor: Optional[EmissionFactor]) -> Optional[float]:
    """kg CO2e for a transaction, or None when no emission factor is known."""
    if factor is None:
        return None
    return abs(amount) * factor.factor_with_margins

def _matched_frame(transactions: Sequence[TransactionEmission]) -> pd.DataFrame:
    rows = [
        {
            'date': t.transaction_date,
            'industry': t.emission_factor.industry,
            'amount': abs(t.amount),
            'kg_co2e': t.kg_co2e,
        }
        for t in transactions
        if t.emission_factor is not None and t.kg_co2e is not None
    ]
    df = pd.DataFrame(rows, columns=['date', 'industry', 'amount', 'kg_co2e'])
    df['date'] = pd.to_datetime(df['date'], format='%Y-%m-%d')
    return df

def monthly_emissions(transactions: Sequence[TransactionEmission]) -> Dict[str, float]:
    """Total kg CO2e per YYYY-MM, oldest month first."""
    df = _matched_frame(transactions)
    if df.empty:
        return {}
    totals = df.groupby(df['date'].dt.strftime('%Y-%m'))['kg_co2e'].sum().sort_index()
    return {month: float(value) for month, value in totals.items()}

def top_industries(transactions: Sequence[TransactionEmission], limit: int = 5) -> List[IndustryTotal]:
    """Industries with the largest emissions, with their share of the matched total."""
    df = _matched_frame(transactions)
    if df.empty:
        return []
    total = df['kg_co2e'].sum()
    totals = df.groupby('industry', sort=False)['kg_co2e'].sum()
    # stable sort keeps first-seen order among equal totals
    totals = totals.sort_values(ascending=False, kind='mergesort').head(limit)
    return [
        IndustryTotal(
            industry=industry,
            kg_co2e=float(value),
            share=min(1.0, float(value / total)) if total > 0 else 0.0,
        )
        for industry, value in totals.items()
    ]

def period_metrics(transactions: Sequence[TransactionEmission], now: Optional[datetime] = None) -> Dict[str, PeriodMetrics]:
    """Carbon, spend and kg-per-dollar over the trailing day, week, month and year up to `now`."""
    now = now or datetime.now()
    df = _matched_frame(transactions)

    metrics = {}
    for period, days in PERIODS.items():
        window = df[(df['date'] >= now - timedelta(days=days)) & (df['date'] <= now)]
        carbon = float(window['kg_co2e'].sum())
        amount = float(window['amount'].sum())
        metrics[period] = PeriodMetrics(
            carbon=carbon,
            amount=amount,
            ratio=carbon / amount if amount > 0 else 0.0,
        )
    return metrics

def equivalents(kg_co2e: float) -> Dict[str, float]:
    return {
        'car_km': kg_co2e / AVERAGE_CAR_EMISSIONS_PER_KM,
        'tree_years': kg_co2e / AVERAGE_TREE_ABSORPTION_PER_YEAR,
    }
