"""Tests for the composite AI health score."""

import pytest


def _audit(score=100, recommendations=None):
    from ai_visibility.models import PageAuditResult
    return PageAuditResult.from_scores(
        url="https://charcoalnchill.com",
        page_type="homepage",
        answer_first=score,
        schema_completeness=score,
        faq_schema=score,
        faq_present=True,
        keyword_density=score,
        entity_clarity=score,
        recommendations=recommendations,
    )


# ===========================================================================
# 1. Composite score and grade
# ===========================================================================
class TestComputeHealthScore:

    def test_everything_at_maximum_is_grade_a(self):
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import compute_health_score
        result = compute_health_score(HealthScoreInput(
            visibility_score=1.0,
            page_audit=_audit(100),
            open_claim_count=0,
            audit_freshness_ratio=1.0,
        ))
        assert result.score == 100
        assert result.grade == "A"
        assert result.top_recommendation is None
        assert result.recommendations == []

    def test_no_data_yet(self):
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import compute_health_score
        result = compute_health_score(HealthScoreInput())

        # Only accuracy contributes: 100 * 0.25.
        assert result.score == 25
        assert result.grade == "F"
        assert result.components["visibility"].score == 0
        assert result.components["accuracy"].score == 100
        assert result.components["structure"].score == 0
        assert result.components["freshness"].score == 0

        top = result.top_recommendation
        assert top.title == "Run an AI visibility scan"
        assert top.estimated_impact == 30
        assert [r.title for r in result.recommendations] == [
            "Run an AI visibility scan", "Run a page audit", "Restore missed audits",
        ]

    def test_components_carry_weights_and_labels(self):
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import WEIGHTS, compute_health_score
        result = compute_health_score(HealthScoreInput(visibility_score=0.5))
        assert sum(WEIGHTS.values()) == pytest.approx(1.0)
        assert {k: d.weight for k, d in result.components.items()} == WEIGHTS
        assert result.components["visibility"].label == "Visibility"

    def test_weighted_sum_is_rounded(self):
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import compute_health_score
        result = compute_health_score(HealthScoreInput(
            visibility_score=0.33,
            page_audit=_audit(70),
            open_claim_count=1,
            audit_freshness_ratio=0.5,
        ))
        # 33*0.30 + 90*0.25 + 70*0.25 + 50*0.20 = 9.9 + 22.5 + 17.5 + 10 = 59.9
        assert result.score == 60
        assert result.grade == "C"

    @pytest.mark.parametrize("claims,expected", [
        (0, 100), (1, 90), (3, 70), (6, 40), (7, 40), (25, 40),
    ])
    def test_accuracy_floor(self, claims, expected):
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import compute_health_score
        result = compute_health_score(HealthScoreInput(open_claim_count=claims))
        assert result.components["accuracy"].score == expected

    def test_score_never_increases_with_more_claims(self):
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import compute_health_score
        scores = [
            compute_health_score(HealthScoreInput(
                visibility_score=0.6, page_audit=_audit(80),
                open_claim_count=n, audit_freshness_ratio=0.9,
            )).score
            for n in range(12)
        ]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.parametrize("dimension", ["visibility_score", "page_audit", "audit_freshness_ratio"])
    def test_score_never_decreases_as_a_dimension_improves(self, dimension):
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import compute_health_score
        base = {
            "visibility_score": 0.4,
            "page_audit": _audit(55),
            "open_claim_count": 2,
            "audit_freshness_ratio": 0.6,
        }
        scores = []
        for step in range(0, 101, 5):
            inputs = dict(base)
            inputs[dimension] = _audit(step) if dimension == "page_audit" else step / 100
            scores.append(compute_health_score(HealthScoreInput(**inputs)).score)
        assert scores == sorted(scores)
        assert scores[-1] > scores[0]


# ===========================================================================
# 2. Grades
# ===========================================================================
class TestGrades:

    @pytest.mark.parametrize("score,grade", [
        (100, "A"), (90, "A"), (89, "B"), (75, "B"), (74, "C"),
        (60, "C"), (59, "D"), (40, "D"), (39, "F"), (0, "F"),
    ])
    def test_grade_bands(self, score, grade):
        from ai_visibility.modules.health import score_to_grade
        assert score_to_grade(score) == grade

    def test_grade_description(self):
        from ai_visibility.errors import ValidationError
        from ai_visibility.modules.health import grade_description
        assert grade_description("A").startswith("Excellent")
        with pytest.raises(ValidationError):
            grade_description("E")


# ===========================================================================
# 3. Recommendations
# ===========================================================================
class TestHealthRecommendations:

    def test_audit_recommendations_are_merged(self):
        from ai_visibility.models import HealthScoreInput, Recommendation
        from ai_visibility.modules.health import compute_health_score
        audit = _audit(60, recommendations=[
            Recommendation(
                issue="Missing LocalBusiness schema",
                fix="Add LocalBusiness JSON-LD with name, address and hours.",
                impact_points=15,
                dimension="schema_completeness",
                schema_type="LocalBusiness",
            ),
            Recommendation(
                issue="No FAQPage schema",
                fix="Add an FAQ section with FAQPage markup.",
                impact_points=8,
                dimension="faq_schema",
            ),
        ])
        result = compute_health_score(HealthScoreInput(
            visibility_score=0.8,
            page_audit=audit,
            open_claim_count=2,
            audit_freshness_ratio=1.0,
        ))

        titles = [r.title for r in result.recommendations]
        assert titles == [
            "Missing LocalBusiness schema",
            "No FAQPage schema",
            "Close 2 open hallucinations",
        ]
        claims = result.recommendations[-1]
        assert claims.estimated_impact == 5
        assert claims.component == "accuracy"
        assert result.top_recommendation.component == "structure"
        assert result.top_recommendation.dimension == "schema_completeness"

    def test_single_claim_wording(self):
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import compute_health_score
        result = compute_health_score(HealthScoreInput(
            visibility_score=1.0, page_audit=_audit(100),
            open_claim_count=1, audit_freshness_ratio=1.0,
        ))
        assert result.top_recommendation.title == "Close 1 open hallucination"
        assert result.top_recommendation.estimated_impact == 2

    def test_low_visibility(self):
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import compute_health_score
        result = compute_health_score(HealthScoreInput(
            visibility_score=0.2, page_audit=_audit(100), audit_freshness_ratio=1.0,
        ))
        top = result.top_recommendation
        assert top.title == "Improve AI visibility"
        assert top.estimated_impact == 24
        assert "20%" in top.description

    def test_ranked_by_impact(self):
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import compute_health_score
        result = compute_health_score(HealthScoreInput(
            visibility_score=0.1, open_claim_count=4, audit_freshness_ratio=0.25,
        ))
        impacts = [r.estimated_impact for r in result.recommendations]
        assert impacts == sorted(impacts, reverse=True)
        assert all(i > 0 for i in impacts)


# ===========================================================================
# 4. Input validation
# ===========================================================================
class TestHealthValidation:

    @pytest.mark.parametrize("kwargs", [
        {"visibility_score": 1.5},
        {"visibility_score": -0.1},
        {"audit_freshness_ratio": 2.0},
        {"audit_freshness_ratio": float("nan")},
        {"open_claim_count": -1},
        {"open_claim_count": 1.5},
        {"page_audit": {"overall_score": 80}},
    ])
    def test_out_of_range_inputs(self, kwargs):
        from ai_visibility.errors import ValidationError
        from ai_visibility.models import HealthScoreInput
        from ai_visibility.modules.health import compute_health_score
        with pytest.raises(ValidationError):
            compute_health_score(HealthScoreInput(**kwargs))

    def test_rejects_other_input_types(self):
        from ai_visibility.errors import ValidationError
        from ai_visibility.modules.health import compute_health_score
        with pytest.raises(ValidationError):
            compute_health_score({"visibility_score": 0.5})
