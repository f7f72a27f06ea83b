"""Analysis: replications, aggregation, analytic comparison, plots."""

from analysis.metrics import aggregate_results, compare_with_theory, confidence_interval_95
from analysis.theory import analytic_steady_state

__all__ = [
    "aggregate_results",
    "compare_with_theory",
    "confidence_interval_95",
    "analytic_steady_state",
]
