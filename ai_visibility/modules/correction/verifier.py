"""Correction verifier: re-asks an AI engine whether a false claim persists.

After a correction is published the claim sits in ``verifying`` for a
cooldown period (14 days by default) so engines have time to pick the fix
up.  Once it has elapsed the original query is re-issued to the engine that
made the claim and the new answer is searched for the claim's distinctive
wrong facts (phone numbers, times, addresses, prices).
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional, Union

from ai_visibility.errors import ProbeError, ValidationError
from ai_visibility.models.claim import ClaimCheck, CorrectionCheckResult, HallucinationClaim
from ai_visibility.modules.citation.engines import ENGINE_REGISTRY, EngineSpec
from ai_visibility.utils.helpers import as_utc, utcnow
from ai_visibility.utils.text_matching import claim_persists

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_DAYS = 14

# Checked in order; "copilot" must win over "openai" for provider strings
# such as "microsoft-copilot".
_PROVIDER_ALIASES: list[tuple[tuple[str, ...], str]] = [
    (("copilot", "bing", "microsoft"), "copilot"),
    (("perplexity", "sonar"), "perplexity"),
    (("gemini", "google"), "google"),
    (("openai", "gpt", "chatgpt"), "openai"),
]


def resolve_engine(model_provider: str) -> str:
    """Map a stored provider string (``openai-gpt4o``, ...) to an engine id."""
    provider = (model_provider or "").strip().lower()
    if provider in ENGINE_REGISTRY:
        return provider
    for needles, engine in _PROVIDER_ALIASES:
        if any(n in provider for n in needles):
            return engine
    raise ValidationError(f"Unknown model provider: {model_provider!r}")


class CorrectionVerifier:
    """Decides whether a corrected claim is fixed or recurring.

    Usage::

        verifier = CorrectionVerifier(llm_client=llm)
        result = await verifier.check_correction_status(claim.to_check())
        if result.still_hallucinating is not None:
            claim.apply_follow_up(result.still_hallucinating)
    """

    def __init__(
        self,
        llm_client: Any,
        cooldown_days: int = DEFAULT_COOLDOWN_DAYS,
        registry: Optional[dict[str, EngineSpec]] = None,
    ) -> None:
        if cooldown_days < 0:
            raise ValidationError("cooldown_days must be non-negative.")
        self._llm = llm_client
        self._cooldown = timedelta(days=cooldown_days)
        self._registry = registry if registry is not None else ENGINE_REGISTRY

    @property
    def cooldown(self) -> timedelta:
        return self._cooldown

    def is_cooling_down(self, verifying_since: Optional[datetime], now: datetime) -> bool:
        if verifying_since is None:
            return False
        return as_utc(now) - as_utc(verifying_since) < self._cooldown

    async def _reprobe(self, spec: EngineSpec, query: str) -> str:
        if not self._llm.has_credential(spec.provider):
            raise ProbeError(
                f"No {spec.provider} credential to re-probe engine {spec.name}",
                engine=spec.name,
            )
        try:
            completion = await self._llm.complete(
                query,
                system_prompt=spec.system_prompt,
                provider=spec.provider,
                model=spec.model,
                search_grounding=spec.search_grounding,
            )
        except Exception as exc:
            raise ProbeError(f"Re-probe of {spec.name} failed: {exc}", engine=spec.name) from exc
        return completion.text or ""

    async def check_correction_status(
        self,
        claim: Union[ClaimCheck, HallucinationClaim],
        now: Optional[datetime] = None,
    ) -> CorrectionCheckResult:
        """Re-probe *claim* and report whether the false claim is still made.

        Raises:
            ValidationError: malformed claim or unknown engine.
            ProbeError: missing credential or provider failure.
        """
        if isinstance(claim, HallucinationClaim):
            claim = claim.to_check()
        now = as_utc(now or utcnow())

        if self.is_cooling_down(claim.verifying_since, now):
            logger.debug("Claim for %r still cooling down since %s", claim.query, claim.verifying_since)
            return CorrectionCheckResult(still_hallucinating=None, cooling_down=True)

        engine = resolve_engine(claim.engine)
        spec = self._registry[engine]
        response = await self._reprobe(spec, claim.query)

        still = claim_persists(claim.original_claim_text, response)
        logger.info(
            "Correction check on %s for %r: %s",
            engine, claim.query, "still hallucinating" if still else "fixed",
        )
        return CorrectionCheckResult(
            still_hallucinating=still,
            checked_at=now,
            response_text=response,
        )
