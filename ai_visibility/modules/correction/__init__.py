"""Correction Verification State Machine module."""

from ai_visibility.modules.correction.follow_up import (
    FollowUpSummary,
    run_correction_follow_up,
    select_due_claims,
)
from ai_visibility.modules.correction.verifier import CorrectionVerifier, resolve_engine

__all__ = [
    "CorrectionVerifier",
    "FollowUpSummary",
    "resolve_engine",
    "run_correction_follow_up",
    "select_due_claims",
]
