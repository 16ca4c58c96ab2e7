"""
Ensemble-implied probabilities for bracket payout shapes.

Three estimators, in order of preference:
1. Exact member counting over raw ensemble member highs
2. Linear interpolation over the 2°F bucket-probability table
3. Logistic transform of the deterministic forecast high (Above only)
"""

from dataclasses import dataclass
from typing import Optional

from scipy.special import expit

from ..core.types import (
    Above,
    Below,
    Between,
    MarketType,
    TempBucketProbability,
    WeatherSnapshot,
)


def member_satisfies(high: float, market_type: MarketType) -> bool:
    """Payout predicate for one ensemble member's daily high."""
    if isinstance(market_type, Above):
        return high > market_type.threshold
    if isinstance(market_type, Below):
        return high < market_type.threshold
    if isinstance(market_type, Between):
        return market_type.low <= high < market_type.high
    raise TypeError(f"Unknown market type: {market_type!r}")


def yes_from_members(member_highs: list[float], market_type: MarketType) -> float:
    """Fraction of ensemble members that resolve the contract YES."""
    if not member_highs:
        return 0.0
    count = sum(1 for h in member_highs if member_satisfies(h, market_type))
    return count / len(member_highs)


def _overlap_fraction(bucket: TempBucketProbability, low: float, high: float) -> float:
    """Share of the bucket's width inside [low, high)."""
    width = bucket.upper - bucket.lower
    if width <= 0:
        return 0.0
    overlap = min(bucket.upper, high) - max(bucket.lower, low)
    return max(0.0, min(1.0, overlap / width))


def yes_from_buckets(buckets: list[TempBucketProbability], market_type: MarketType) -> float:
    """Sum bucket mass inside the payout region, splitting straddling buckets
    in proportion to their overlap."""
    if isinstance(market_type, Above):
        low, high = market_type.threshold, float("inf")
    elif isinstance(market_type, Below):
        low, high = float("-inf"), market_type.threshold
    elif isinstance(market_type, Between):
        low, high = market_type.low, market_type.high
    else:
        raise TypeError(f"Unknown market type: {market_type!r}")

    return sum(b.probability * _overlap_fraction(b, low, high) for b in buckets)


def yes_from_point_estimate(forecast_high: float, threshold: float, scale: float = 2.0) -> float:
    """Smooth probability proxy: logistic((forecast_high - threshold) / scale)."""
    return float(expit((forecast_high - threshold) / scale))


@dataclass
class EnsembleEstimate:
    """YES probability plus the estimator that produced it."""
    probability: float
    method: str  # "members", "buckets" or "sigmoid"
    detail: str


def estimate_yes_probability(
    weather: WeatherSnapshot,
    market_type: MarketType,
    logistic_scale: float = 2.0,
) -> Optional[EnsembleEstimate]:
    """Ensemble-implied YES probability for a payout shape.

    Returns None when no estimator applies (no ensemble data and the shape
    is not Above).
    """
    members = weather.ensemble_member_highs
    if members:
        prob = yes_from_members(members, market_type)
        matching = sum(1 for h in members if member_satisfies(h, market_type))
        return EnsembleEstimate(
            probability=prob,
            method="members",
            detail=f"{matching}/{len(members)} members",
        )

    if weather.ensemble is not None and weather.bucket_probabilities:
        prob = yes_from_buckets(weather.bucket_probabilities, market_type)
        return EnsembleEstimate(
            probability=prob,
            method="buckets",
            detail=f"{len(weather.bucket_probabilities)} buckets",
        )

    if isinstance(market_type, Above):
        prob = yes_from_point_estimate(
            weather.open_meteo_forecast_high, market_type.threshold, logistic_scale
        )
        return EnsembleEstimate(
            probability=prob,
            method="sigmoid",
            detail=(
                f"forecast_high={weather.open_meteo_forecast_high:.1f}°F "
                f"vs threshold={market_type.threshold:.0f}°F"
            ),
        )

    return None
