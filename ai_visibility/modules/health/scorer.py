"""Composite AI health score.

Combines the latest share of voice, open hallucination count, page audit
and audit freshness into one weighted 0-100 score with a letter grade and
a ranked list of recommendations.  Pure: no I/O and no side effects.
"""

import logging

from ai_visibility.errors import ValidationError
from ai_visibility.models.audit import PageAuditResult
from ai_visibility.models.health import (
    HealthDimension,
    HealthRecommendation,
    HealthScoreInput,
    HealthScoreResult,
)
from ai_visibility.utils.helpers import truncate_text
from ai_visibility.utils.validators import require_fraction, require_non_negative_int

logger = logging.getLogger(__name__)

WEIGHTS: dict[str, float] = {
    "visibility": 0.30,
    "accuracy": 0.25,
    "structure": 0.25,
    "freshness": 0.20,
}

LABELS: dict[str, str] = {
    "visibility": "Visibility",
    "accuracy": "Accuracy",
    "structure": "Structure",
    "freshness": "Freshness",
}

ACCURACY_FLOOR = 40
ACCURACY_PENALTY_PER_CLAIM = 10
LOW_VISIBILITY = 50

_GRADE_MAP = [
    (90, "A"),
    (75, "B"),
    (60, "C"),
    (40, "D"),
    (0, "F"),
]

GRADE_DESCRIPTIONS: dict[str, str] = {
    "A": "Excellent: AI engines see you clearly",
    "B": "Good: some gaps to close",
    "C": "Fair: significant opportunities",
    "D": "Poor: major gaps hurting visibility",
    "F": "Critical: AI engines barely know you exist",
}


def score_to_grade(score: int) -> str:
    for threshold, letter in _GRADE_MAP:
        if score >= threshold:
            return letter
    return "F"


def grade_description(grade: str) -> str:
    try:
        return GRADE_DESCRIPTIONS[grade]
    except KeyError:
        raise ValidationError(f"Unknown grade: {grade!r}") from None


# ---------------------------------------------------------------------------
# Component scores
# ---------------------------------------------------------------------------

def visibility_score(share_of_voice: "float | None") -> int:
    return 0 if share_of_voice is None else round(share_of_voice * 100)


def accuracy_score(open_claim_count: int) -> int:
    return max(ACCURACY_FLOOR, 100 - ACCURACY_PENALTY_PER_CLAIM * open_claim_count)


def structure_score(page_audit: "PageAuditResult | None") -> int:
    return 0 if page_audit is None else page_audit.overall_score


def freshness_score(audit_freshness_ratio: float) -> int:
    return round(audit_freshness_ratio * 100)


def _recoverable(raw: int, component: str) -> int:
    """Composite points gained by taking *component* from *raw* to 100."""
    return round((100 - raw) * WEIGHTS[component])


def _validate(data: HealthScoreInput) -> None:
    if data.visibility_score is not None:
        require_fraction(data.visibility_score, "visibility_score")
    require_fraction(data.audit_freshness_ratio, "audit_freshness_ratio")
    require_non_negative_int(data.open_claim_count, "open_claim_count")
    if data.page_audit is not None:
        if not isinstance(data.page_audit, PageAuditResult):
            raise ValidationError("page_audit must be a PageAuditResult or None.")
        if not 0 <= data.page_audit.overall_score <= 100:
            raise ValidationError(
                f"page_audit.overall_score out of range: {data.page_audit.overall_score!r}"
            )


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

def build_recommendations(
    data: HealthScoreInput, components: dict[str, HealthDimension]
) -> list[HealthRecommendation]:
    recs: list[HealthRecommendation] = []

    if data.page_audit is not None:
        for rec in data.page_audit.recommendations:
            recs.append(HealthRecommendation(
                title=truncate_text(rec.issue, 60),
                description=rec.fix,
                estimated_impact=rec.impact_points,
                component="structure",
                dimension=rec.dimension,
            ))
    else:
        recs.append(HealthRecommendation(
            title="Run a page audit",
            description="No page audit is on record. Audit your homepage to score how well AI engines can read it.",
            estimated_impact=_recoverable(0, "structure"),
            component="structure",
        ))

    if data.open_claim_count > 0:
        noun = "hallucination" if data.open_claim_count == 1 else "hallucinations"
        recs.append(HealthRecommendation(
            title=f"Close {data.open_claim_count} open {noun}",
            description=(
                f"AI engines are repeating {data.open_claim_count} false {noun} about your business. "
                "Publish corrections so they can be verified and closed."
            ),
            estimated_impact=_recoverable(components["accuracy"].score, "accuracy"),
            component="accuracy",
        ))

    visibility = components["visibility"].score
    if data.visibility_score is None:
        recs.append(HealthRecommendation(
            title="Run an AI visibility scan",
            description="No share-of-voice data yet. Probe your key queries across AI engines.",
            estimated_impact=_recoverable(0, "visibility"),
            component="visibility",
        ))
    elif visibility < LOW_VISIBILITY:
        recs.append(HealthRecommendation(
            title="Improve AI visibility",
            description=(
                f"You are cited in {visibility}% of AI answers. Track more queries and "
                "strengthen your listings and page content to appear in more of them."
            ),
            estimated_impact=_recoverable(visibility, "visibility"),
            component="visibility",
        ))

    freshness = components["freshness"].score
    if freshness < 100:
        recs.append(HealthRecommendation(
            title="Restore missed audits",
            description=f"Only {freshness}% of scheduled audits ran in the last window. Re-run the missed ones.",
            estimated_impact=_recoverable(freshness, "freshness"),
            component="freshness",
        ))

    # sorted() is stable, so equal impacts keep the order above.
    return sorted(
        (r for r in recs if r.estimated_impact > 0),
        key=lambda r: r.estimated_impact,
        reverse=True,
    )


# ---------------------------------------------------------------------------
# Main scoring function
# ---------------------------------------------------------------------------

def compute_health_score(data: HealthScoreInput) -> HealthScoreResult:
    """Compute the composite AI health score from pre-fetched inputs.

    Raises:
        ValidationError: when any input is out of range.
    """
    if not isinstance(data, HealthScoreInput):
        raise ValidationError("compute_health_score expects a HealthScoreInput.")
    _validate(data)

    raw = {
        "visibility": visibility_score(data.visibility_score),
        "accuracy": accuracy_score(data.open_claim_count),
        "structure": structure_score(data.page_audit),
        "freshness": freshness_score(data.audit_freshness_ratio),
    }
    components = {
        key: HealthDimension(score=raw[key], weight=WEIGHTS[key], label=LABELS[key])
        for key in WEIGHTS
    }
    score = round(sum(raw[key] * WEIGHTS[key] for key in WEIGHTS))
    grade = score_to_grade(score)
    recommendations = build_recommendations(data, components)

    logger.debug("Health score %d (%s) from %s", score, grade, raw)
    return HealthScoreResult(
        score=score,
        grade=grade,
        components=components,
        top_recommendation=recommendations[0] if recommendations else None,
        recommendations=recommendations,
    )
