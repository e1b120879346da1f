"""Hallucination claim record and its correction-status state machine.

Status flow::

    open -> verifying -> fixed
                      -> recurring

``open -> verifying`` happens when a correction is published (outside this
package).  The follow-up check owns ``verifying -> fixed | recurring``.
``fixed`` and ``recurring`` are terminal for a claim instance.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ai_visibility.database import Base
from ai_visibility.errors import InvalidTransitionError, ValidationError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CorrectionStatus(str, enum.Enum):
    OPEN = "open"
    VERIFYING = "verifying"
    FIXED = "fixed"
    RECURRING = "recurring"


_ALLOWED_TRANSITIONS: dict[CorrectionStatus, frozenset[CorrectionStatus]] = {
    CorrectionStatus.OPEN: frozenset({CorrectionStatus.VERIFYING}),
    CorrectionStatus.VERIFYING: frozenset({CorrectionStatus.FIXED, CorrectionStatus.RECURRING}),
    CorrectionStatus.FIXED: frozenset(),
    CorrectionStatus.RECURRING: frozenset(),
}


def can_transition(current: CorrectionStatus, target: CorrectionStatus) -> bool:
    return target in _ALLOWED_TRANSITIONS[CorrectionStatus(current)]


def begin_verification(current: CorrectionStatus) -> CorrectionStatus:
    """``open -> verifying``; raises for any other starting state."""
    current = CorrectionStatus(current)
    if not can_transition(current, CorrectionStatus.VERIFYING):
        raise InvalidTransitionError(current.value, CorrectionStatus.VERIFYING.value)
    return CorrectionStatus.VERIFYING


def transition(current: CorrectionStatus, still_hallucinating: bool) -> CorrectionStatus:
    """Resolve a ``verifying`` claim from the outcome of its follow-up check."""
    current = CorrectionStatus(current)
    target = CorrectionStatus.RECURRING if still_hallucinating else CorrectionStatus.FIXED
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)
    return target


@dataclass(frozen=True)
class ClaimCheck:
    """What the verifier needs to re-probe a claim."""

    query: str
    engine: str
    original_claim_text: str
    verifying_since: Optional[datetime] = None

    def __post_init__(self) -> None:
        for name in ("query", "engine", "original_claim_text"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"ClaimCheck.{name} must be a non-empty string.")


@dataclass(frozen=True)
class CorrectionCheckResult:
    """Outcome of a follow-up check.

    ``still_hallucinating`` is ``None`` when the claim is still inside its
    cooldown window and no probe was issued.
    """

    still_hallucinating: Optional[bool]
    cooling_down: bool = False
    checked_at: Optional[datetime] = None
    response_text: Optional[str] = None


class HallucinationClaim(Base):
    """A false statement an AI engine made about a business."""

    __tablename__ = "ai_hallucinations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    claim_text: Mapped[str] = mapped_column(Text, nullable=False)
    expected_truth: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    model_provider: Mapped[str] = mapped_column(String(100), nullable=False)
    correction_query: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    correction_status: Mapped[CorrectionStatus] = mapped_column(
        Enum(CorrectionStatus, native_enum=False, length=20),
        default=CorrectionStatus.OPEN,
        nullable=False,
        index=True,
    )
    verifying_since: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    follow_up_checked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    follow_up_result: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def to_check(self) -> ClaimCheck:
        return ClaimCheck(
            query=self.correction_query or "",
            engine=self.model_provider,
            original_claim_text=self.claim_text,
            verifying_since=self.verifying_since,
        )

    def start_verifying(self, now: Optional[datetime] = None) -> None:
        self.correction_status = begin_verification(self.correction_status)
        self.verifying_since = now or _utcnow()

    def apply_follow_up(self, still_hallucinating: bool, now: Optional[datetime] = None) -> CorrectionStatus:
        """Record a successful follow-up check and move to a terminal state."""
        now = now or _utcnow()
        new_status = transition(self.correction_status, still_hallucinating)
        self.correction_status = new_status
        self.follow_up_result = new_status.value
        self.follow_up_checked_at = now
        if new_status is CorrectionStatus.FIXED:
            self.resolved_at = now
        return new_status

    def mark_checked(self, now: Optional[datetime] = None) -> None:
        """Record a failed follow-up attempt without changing status."""
        self.follow_up_checked_at = now or _utcnow()

    def __repr__(self) -> str:
        return (
            f"<HallucinationClaim id={self.id} status={self.correction_status} "
            f"engine={self.model_provider!r}>"
        )
