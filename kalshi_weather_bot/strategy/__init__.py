"""
Trading decision engines.

Includes:
- Ensemble probability estimators
- Fee, sizing and spread-aware pricing
- Rules brain (deterministic)
- LLM brain (OpenRouter)
"""

from .brain import Brain, DecisionContext
from .rules_brain import RulesBrain
from .llm_brain import LLMBrain, parse_decision
from .probability import estimate_yes_probability, EnsembleEstimate
from .pricing import estimate_fee_pp, size_from_edge, spread_aware_price

__all__ = [
    "Brain",
    "DecisionContext",
    "RulesBrain",
    "LLMBrain",
    "parse_decision",
    "estimate_yes_probability",
    "EnsembleEstimate",
    "estimate_fee_pp",
    "size_from_edge",
    "spread_aware_price",
]
