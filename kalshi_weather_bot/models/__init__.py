"""
Forecast models for weather prediction.

Includes:
- Ensemble member statistics and bucket probabilities
- Confidence tiers from ensemble spread
"""

from .ensemble import (
    summarize_members,
    build_buckets,
    confidence_from_ensemble,
)

__all__ = [
    "summarize_members",
    "build_buckets",
    "confidence_from_ensemble",
]
