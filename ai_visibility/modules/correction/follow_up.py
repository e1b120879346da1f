"""Batch follow-up over claims in the reference claim store.

Picks up ``verifying`` claims whose cooldown has elapsed, re-checks each
one and records the outcome.  A claim whose check fails is stamped as
checked without changing status, so it is retried only after another
cooldown window instead of on every run.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ai_visibility.errors import ProbeError, ValidationError
from ai_visibility.models.claim import CorrectionStatus, HallucinationClaim
from ai_visibility.modules.correction.verifier import CorrectionVerifier
from ai_visibility.utils.helpers import as_utc, utcnow

logger = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 50


@dataclass
class FollowUpSummary:
    checked: int = 0
    fixed: int = 0
    recurring: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def select_due_claims(
    session: Session,
    cooldown: timedelta,
    now: Optional[datetime] = None,
    limit: int = DEFAULT_BATCH_LIMIT,
) -> list[HallucinationClaim]:
    """Verifying claims past their cooldown and not checked within it."""
    cutoff = as_utc(now or utcnow()) - cooldown
    stmt = (
        select(HallucinationClaim)
        .where(
            HallucinationClaim.correction_status == CorrectionStatus.VERIFYING,
            HallucinationClaim.verifying_since.is_not(None),
            HallucinationClaim.verifying_since <= cutoff,
            HallucinationClaim.correction_query.is_not(None),
            or_(
                HallucinationClaim.follow_up_checked_at.is_(None),
                HallucinationClaim.follow_up_checked_at <= cutoff,
            ),
        )
        .order_by(HallucinationClaim.verifying_since, HallucinationClaim.id)
        .limit(limit)
    )
    return list(session.scalars(stmt))


async def run_correction_follow_up(
    session: Session,
    verifier: CorrectionVerifier,
    now: Optional[datetime] = None,
    limit: int = DEFAULT_BATCH_LIMIT,
) -> FollowUpSummary:
    """Check every due claim and apply its transition.

    Per-claim :class:`ProbeError` / :class:`ValidationError` are counted in
    ``errors`` and never stop the batch.  Changes are flushed; committing is
    the caller's job (``get_session()`` commits on exit).
    """
    now = as_utc(now or utcnow())
    claims = select_due_claims(session, verifier.cooldown, now=now, limit=limit)
    summary = FollowUpSummary()

    if not claims:
        logger.info("No claims due for correction follow-up.")
        return summary

    logger.info("Found %d claim(s) due for correction follow-up.", len(claims))
    for claim in claims:
        try:
            result = await verifier.check_correction_status(claim.to_check(), now=now)
        except (ProbeError, ValidationError) as exc:
            summary.errors += 1
            logger.warning("Follow-up check failed for claim %s: %s", claim.id, exc)
            claim.mark_checked(now)
            continue

        if result.cooling_down:
            # Selection already filtered these; only reachable with a longer verifier cooldown.
            continue

        status = claim.apply_follow_up(result.still_hallucinating, now)
        summary.checked += 1
        if status is CorrectionStatus.FIXED:
            summary.fixed += 1
        else:
            summary.recurring += 1
        logger.info("Claim %s moved to %s", claim.id, status.value)

    session.flush()
    logger.info("Correction follow-up complete: %s", summary.to_dict())
    return summary
