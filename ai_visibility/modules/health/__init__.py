"""Composite Health Score Aggregator module."""

from ai_visibility.modules.health.scorer import (
    WEIGHTS,
    compute_health_score,
    grade_description,
    score_to_grade,
)

__all__ = ["WEIGHTS", "compute_health_score", "grade_description", "score_to_grade"]
