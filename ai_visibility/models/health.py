"""Composite AI health score types."""

from dataclasses import dataclass, field
from typing import Optional

from ai_visibility.models.audit import PageAuditResult


@dataclass(frozen=True)
class HealthScoreInput:
    """Pre-fetched inputs for :func:`compute_health_score`.

    ``visibility_score`` and ``audit_freshness_ratio`` are fractions in
    ``[0, 1]``; ``visibility_score`` is ``None`` when no share-of-voice scan
    has run yet.
    """

    visibility_score: Optional[float] = None
    page_audit: Optional[PageAuditResult] = None
    open_claim_count: int = 0
    audit_freshness_ratio: float = 0.0


@dataclass(frozen=True)
class HealthDimension:
    score: int
    weight: float
    label: str


@dataclass(frozen=True)
class HealthRecommendation:
    title: str
    description: str
    estimated_impact: int
    component: str
    dimension: Optional[str] = None


@dataclass
class HealthScoreResult:
    score: int
    grade: str
    components: dict[str, HealthDimension]
    top_recommendation: Optional[HealthRecommendation] = None
    recommendations: list[HealthRecommendation] = field(default_factory=list)
