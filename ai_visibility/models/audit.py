"""Page audit result types."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

# Weight of each dimension in the overall page score.
DIMENSION_WEIGHTS: dict[str, float] = {
    "answer_first": 0.35,
    "schema_completeness": 0.25,
    "faq_schema": 0.20,
    "keyword_density": 0.10,
    "entity_clarity": 0.10,
}


@dataclass(frozen=True)
class Recommendation:
    """A single fix suggested by the page auditor."""

    issue: str
    fix: str
    impact_points: int
    dimension: Optional[str] = None
    schema_type: Optional[str] = None


@dataclass
class PageAuditResult:
    """Scores for one (business, URL) pair.

    ``overall_score`` is derived from the five sub-scores with
    :data:`DIMENSION_WEIGHTS`; use :meth:`from_scores` to build one.
    """

    url: str
    page_type: str
    answer_first_score: int
    schema_completeness_score: int
    faq_schema_score: int
    keyword_density_score: int
    entity_clarity_score: int
    faq_schema_present: bool
    overall_score: int = 0
    recommendations: list[Recommendation] = field(default_factory=list)

    @staticmethod
    def weighted_overall(
        answer_first: int,
        schema_completeness: int,
        faq_schema: int,
        keyword_density: int,
        entity_clarity: int,
    ) -> int:
        return round(
            answer_first * DIMENSION_WEIGHTS["answer_first"]
            + schema_completeness * DIMENSION_WEIGHTS["schema_completeness"]
            + faq_schema * DIMENSION_WEIGHTS["faq_schema"]
            + keyword_density * DIMENSION_WEIGHTS["keyword_density"]
            + entity_clarity * DIMENSION_WEIGHTS["entity_clarity"]
        )

    @classmethod
    def from_scores(
        cls,
        url: str,
        page_type: str,
        answer_first: int,
        schema_completeness: int,
        faq_schema: int,
        faq_present: bool,
        keyword_density: int,
        entity_clarity: int,
        recommendations: Optional[list[Recommendation]] = None,
    ) -> "PageAuditResult":
        overall = cls.weighted_overall(
            answer_first, schema_completeness, faq_schema, keyword_density, entity_clarity
        )
        return cls(
            url=url,
            page_type=page_type,
            answer_first_score=answer_first,
            schema_completeness_score=schema_completeness,
            faq_schema_score=faq_schema,
            keyword_density_score=keyword_density,
            entity_clarity_score=entity_clarity,
            faq_schema_present=faq_present,
            overall_score=overall,
            recommendations=list(recommendations or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
