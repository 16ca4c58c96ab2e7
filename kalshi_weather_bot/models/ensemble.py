"""
Ensemble Statistics

Turns per-member daily highs from the Open-Meteo ensemble API into:
- Summary statistics (mean, range, population std dev, percentiles)
- 2°F temperature bucket probabilities
- A forecast confidence tier

Member spread is the uncertainty signal: tight agreement across
ICON, GFS and ECMWF members means a high-confidence forecast.
"""

import math
from typing import Optional

import numpy as np

from ..core.types import EnsembleForecast, ForecastConfidence, TempBucketProbability

BUCKET_WIDTH_F = 2

# Std dev thresholds (°F) for confidence tiers
HIGH_CONFIDENCE_STD = 2.0
MEDIUM_CONFIDENCE_STD = 4.0


def _nearest_rank(sorted_highs: np.ndarray, p: float) -> float:
    """Nearest-rank percentile, rounding half away from zero."""
    n = len(sorted_highs)
    idx = int(math.floor(p / 100.0 * (n - 1) + 0.5))
    return float(sorted_highs[min(idx, n - 1)])


def summarize_members(highs: list[float]) -> Optional[EnsembleForecast]:
    """
    Summarize ensemble member daily highs.

    Args:
        highs: One daily high (°F) per ensemble member

    Returns:
        EnsembleForecast, or None when there are no members
    """
    if not highs:
        return None

    arr = np.sort(np.asarray(highs, dtype=float))
    return EnsembleForecast(
        model_count=len(arr),
        mean_high=float(arr.mean()),
        min_high=float(arr[0]),
        max_high=float(arr[-1]),
        std_dev=float(arr.std()),  # population (ddof=0)
        p10=_nearest_rank(arr, 10.0),
        p25=_nearest_rank(arr, 25.0),
        p75=_nearest_rank(arr, 75.0),
        p90=_nearest_rank(arr, 90.0),
    )


def build_buckets(highs: list[float]) -> list[TempBucketProbability]:
    """
    Histogram member highs into 2°F buckets [t, t+2).

    The bucket range is padded by one bucket on each side of the
    member range; only non-empty buckets are returned.
    """
    if not highs:
        return []

    arr = np.asarray(highs, dtype=float)
    n = len(arr)
    bucket_low = math.floor(arr.min() / 2.0) * 2 - BUCKET_WIDTH_F
    bucket_high = math.ceil(arr.max() / 2.0) * 2 + BUCKET_WIDTH_F

    buckets = []
    for temp in range(bucket_low, bucket_high, BUCKET_WIDTH_F):
        lower = float(temp)
        upper = float(temp + BUCKET_WIDTH_F)
        count = int(np.count_nonzero((arr >= lower) & (arr < upper)))
        if count:
            buckets.append(TempBucketProbability(
                label=f"{temp}-{temp + BUCKET_WIDTH_F}°F",
                lower=lower,
                upper=upper,
                probability=count / n,
            ))
    return buckets


def confidence_from_ensemble(ensemble: Optional[EnsembleForecast]) -> ForecastConfidence:
    """Map ensemble spread to a confidence tier (no ensemble: MEDIUM)."""
    if ensemble is None:
        return ForecastConfidence.MEDIUM
    if ensemble.std_dev < HIGH_CONFIDENCE_STD:
        return ForecastConfidence.HIGH
    if ensemble.std_dev < MEDIUM_CONFIDENCE_STD:
        return ForecastConfidence.MEDIUM
    return ForecastConfidence.LOW
