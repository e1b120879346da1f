"""Data types; importing this package registers every model with Base.metadata."""

from ai_visibility.models.business import (
    BusinessContext,
    PageType,
)
from ai_visibility.models.audit import (
    DIMENSION_WEIGHTS,
    PageAuditResult,
    Recommendation,
)
from ai_visibility.models.probe import (
    EngineQueryResult,
    ShareOfVoice,
)
from ai_visibility.models.claim import (
    ClaimCheck,
    CorrectionCheckResult,
    CorrectionStatus,
    HallucinationClaim,
)
from ai_visibility.models.health import (
    HealthDimension,
    HealthRecommendation,
    HealthScoreInput,
    HealthScoreResult,
)

__all__ = [
    "BusinessContext",
    "PageType",
    "DIMENSION_WEIGHTS",
    "PageAuditResult",
    "Recommendation",
    "EngineQueryResult",
    "ShareOfVoice",
    "ClaimCheck",
    "CorrectionCheckResult",
    "CorrectionStatus",
    "HallucinationClaim",
    "HealthDimension",
    "HealthRecommendation",
    "HealthScoreInput",
    "HealthScoreResult",
]
