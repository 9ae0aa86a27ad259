"""Supplier performance scorer: reliability metrics from received orders.

Pure functions. The composite score is on a 0-100 scale:

    score = 100 * (0.5 * on_time_rate
                   + 0.3 * 1 / (1 + lead_time_variance)
                   + 0.2 * (1 - defect_rate))

Suppliers with fewer than `min_orders` received orders get the neutral
score of 50 so that new suppliers are not penalised for lack of history.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import Sequence

from restock_engine.planning.records import ReceiptRecord


ON_TIME_WEIGHT = 0.5
CONSISTENCY_WEIGHT = 0.3
QUALITY_WEIGHT = 0.2

NEUTRAL_SCORE = 50.0
SECONDS_PER_DAY = 86400.0


@dataclass
class SupplierPerformance:
    """Derived reliability report for one supplier (never hand-edited)."""
    supplier_id: str
    on_time_rate: float
    average_lead_time_days: float
    lead_time_variance: float
    defect_rate: float
    score: float
    grade: str
    orders_considered: int
    is_default: bool


def _score_to_grade(score: float) -> str:
    """Map a 0-100 score to a letter grade."""
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


def _is_on_time(r: ReceiptRecord) -> bool:
    if r.expected_delivery_date is None:
        return True  # no promise made, nothing to miss
    return r.received_at.date() <= r.expected_delivery_date


def composite_score(on_time_rate: float, lead_time_variance: float, defect_rate: float) -> float:
    consistency = 1.0 / (1.0 + max(0.0, lead_time_variance))
    quality = 1.0 - min(1.0, max(0.0, defect_rate))
    return 100.0 * (
        ON_TIME_WEIGHT * on_time_rate
        + CONSISTENCY_WEIGHT * consistency
        + QUALITY_WEIGHT * quality
    )


def score_supplier(
    supplier_id: str,
    receipts: Sequence[ReceiptRecord],
    defect_rate: float | None = None,
    min_orders: int = 3,
) -> SupplierPerformance:
    """Compute on-time rate, lead-time mean/variance and the composite score.

    Args:
        supplier_id: Supplier being scored.
        receipts: The supplier's purchase orders; only those with a received_at
            timestamp count.
        defect_rate: Externally sourced defect rate in [0, 1]; None means 0.
        min_orders: Minimum received orders before real scoring kicks in.

    Returns:
        SupplierPerformance. is_default is True when the neutral score was used.
    """
    defects = defect_rate or 0.0
    received = [r for r in receipts if r.received_at is not None]

    if len(received) < max(1, min_orders):
        return SupplierPerformance(
            supplier_id=supplier_id,
            on_time_rate=0.0,
            average_lead_time_days=0.0,
            lead_time_variance=0.0,
            defect_rate=defects,
            score=NEUTRAL_SCORE,
            grade=_score_to_grade(NEUTRAL_SCORE),
            orders_considered=len(received),
            is_default=True,
        )

    on_time = sum(1 for r in received if _is_on_time(r))
    on_time_rate = on_time / len(received)

    lead_times = [
        (r.received_at - r.sent_at).total_seconds() / SECONDS_PER_DAY
        for r in received
        if r.sent_at is not None
    ]
    avg_lead = statistics.fmean(lead_times) if lead_times else 0.0
    variance = statistics.pvariance(lead_times) if len(lead_times) >= 2 else 0.0

    score = composite_score(on_time_rate, variance, defects)
    return SupplierPerformance(
        supplier_id=supplier_id,
        on_time_rate=round(on_time_rate, 4),
        average_lead_time_days=round(avg_lead, 2),
        lead_time_variance=round(variance, 4),
        defect_rate=defects,
        score=round(score, 2),
        grade=_score_to_grade(score),
        orders_considered=len(received),
        is_default=False,
    )


def rank_suppliers(reports: Sequence[SupplierPerformance]) -> list[SupplierPerformance]:
    """Best first; ties broken by shorter average lead time, then id."""
    return sorted(reports, key=lambda p: (-p.score, p.average_lead_time_days, p.supplier_id))
