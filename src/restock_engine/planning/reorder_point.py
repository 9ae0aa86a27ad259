"""Reorder point calculator — demand statistics, safety stock, reorder points.

Pure functions. Given a product's demand history, a supplier lead time and a
target service level, derive the stock level at which a new order should be
triggered:

    safety_stock  = z(service_level) * sigma * sqrt(lead_time)
    reorder_point = ceil(mu * lead_time + safety_stock)

mu and sigma are the mean and sample standard deviation of units sold per
period. Sparse history never raises: with fewer than two points sigma is 0,
and with none mu is 0 as well.
"""

from __future__ import annotations

import bisect
import math
import statistics
from dataclasses import dataclass
from typing import Sequence

from restock_engine.errors import InvalidInput
from restock_engine.planning.records import DemandHistoryPoint


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class DemandStats:
    """Mean and spread of per-period demand."""
    mean: float
    std_dev: float
    sample_size: int


@dataclass
class ReorderPointResult:
    """Reorder point calculation result."""
    reorder_point: int
    mean_daily_demand: float
    demand_std_dev: float
    safety_stock: float
    lead_time_days: float
    service_level: float
    z_score: float
    sample_size: int


# ---------------------------------------------------------------------------
# Service level -> standard normal quantile
# ---------------------------------------------------------------------------

# Values between entries are linearly interpolated; values outside the table
# are clamped to the nearest end point.
_Z_SCORES: dict[float, float] = {
    0.50: 0.000,
    0.75: 0.674,
    0.80: 0.842,
    0.85: 1.036,
    0.90: 1.282,
    0.95: 1.645,
    0.97: 1.881,
    0.98: 2.054,
    0.99: 2.326,
    0.995: 2.576,
}

_LEVELS = sorted(_Z_SCORES)


def z_score_for(service_level: float) -> float:
    """Map a service level in (0, 1) to a z value using the lookup table."""
    if not 0 < service_level < 1:
        raise InvalidInput("service_level", "must be strictly between 0 and 1")

    if service_level <= _LEVELS[0]:
        return _Z_SCORES[_LEVELS[0]]
    if service_level >= _LEVELS[-1]:
        return _Z_SCORES[_LEVELS[-1]]

    idx = bisect.bisect_right(_LEVELS, service_level)
    lo, hi = _LEVELS[idx - 1], _LEVELS[idx]
    frac = (service_level - lo) / (hi - lo)
    return _Z_SCORES[lo] + frac * (_Z_SCORES[hi] - _Z_SCORES[lo])


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------

def demand_stats(units: Sequence[float]) -> DemandStats:
    """Mean and sample standard deviation of per-period demand."""
    values = [float(u) for u in units]
    if not values:
        return DemandStats(mean=0.0, std_dev=0.0, sample_size=0)
    mean = statistics.fmean(values)
    std = statistics.stdev(values) if len(values) >= 2 else 0.0
    return DemandStats(mean=mean, std_dev=std, sample_size=len(values))


def history_units(history: Sequence[DemandHistoryPoint]) -> list[float]:
    """Units sold in date order."""
    return [p.units_sold for p in sorted(history, key=lambda p: p.date)]


def compute_safety_stock(
    demand_std_dev: float,
    lead_time_days: float,
    service_level: float = 0.95,
    mean_daily_demand: float = 0.0,
    lead_time_std_dev: float = 0.0,
) -> float:
    """Compute safety stock.

    With a constant lead time: SS = z * sigma_d * sqrt(LT).
    With lead-time variability: SS = z * sqrt(LT * sigma_d^2 + mu^2 * sigma_lt^2).

    Args:
        demand_std_dev: Standard deviation of per-period demand.
        lead_time_days: Supplier lead time in days.
        service_level: Target probability of not stocking out.
        mean_daily_demand: Mean per-period demand (only used with lead-time variability).
        lead_time_std_dev: Standard deviation of the lead time in days.

    Returns:
        Safety stock in units (float, not rounded up).
    """
    if lead_time_days < 0:
        raise InvalidInput("lead_time_days", "must be zero or positive")
    z = z_score_for(service_level)

    if lead_time_std_dev > 0:
        variance = lead_time_days * demand_std_dev ** 2 + mean_daily_demand ** 2 * lead_time_std_dev ** 2
        return z * math.sqrt(variance)

    if demand_std_dev <= 0 or lead_time_days == 0:
        return 0.0
    return z * demand_std_dev * math.sqrt(lead_time_days)


def _ceil_units(value: float) -> int:
    # round first so 11.000000000000002 does not become 12
    return math.ceil(round(value, 6))


def compute_reorder_point(
    history: Sequence[DemandHistoryPoint] | Sequence[float],
    lead_time_days: float,
    service_level: float = 0.95,
    lead_time_std_dev: float = 0.0,
) -> ReorderPointResult:
    """Compute the reorder point from demand history.

    Args:
        history: DemandHistoryPoint records (any order) or raw per-period units.
        lead_time_days: Supplier lead time in days (>= 0).
        service_level: Target service level in (0, 1).
        lead_time_std_dev: Optional lead-time standard deviation in days.

    Returns:
        ReorderPointResult; reorder_point is rounded up to a whole unit.
    """
    if lead_time_days < 0:
        raise InvalidInput("lead_time_days", "must be zero or positive")

    if history and isinstance(history[0], DemandHistoryPoint):
        units = history_units(history)  # type: ignore[arg-type]
    else:
        units = [float(u) for u in history]  # type: ignore[union-attr]

    stats = demand_stats(units)
    z = z_score_for(service_level)
    safety = compute_safety_stock(
        stats.std_dev,
        lead_time_days,
        service_level,
        mean_daily_demand=stats.mean,
        lead_time_std_dev=lead_time_std_dev,
    )
    rop = _ceil_units(stats.mean * lead_time_days + safety)

    return ReorderPointResult(
        reorder_point=max(0, rop),
        mean_daily_demand=round(stats.mean, 4),
        demand_std_dev=round(stats.std_dev, 4),
        safety_stock=round(safety, 4),
        lead_time_days=lead_time_days,
        service_level=service_level,
        z_score=round(z, 4),
        sample_size=stats.sample_size,
    )


def compute_max_stock(
    mean_daily_demand: float,
    lead_time_days: float,
    safety_stock: float,
    multiplier: float = 2.0,
) -> int:
    """Suggested maximum stock: ceil(mu * LT * multiplier + safety_stock)."""
    return _ceil_units(mean_daily_demand * lead_time_days * multiplier + safety_stock)
