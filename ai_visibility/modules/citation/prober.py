"""Multi-engine citation prober.

Sends one local-search query to every configured AI engine at once and
reports, per engine, whether the business was named, which other
businesses were named and which source URL was cited.
"""

import asyncio
import logging
from typing import Any, Iterable, Optional

from ai_visibility.errors import EngineError, ValidationError
from ai_visibility.models.business import BusinessContext
from ai_visibility.models.probe import EngineQueryResult
from ai_visibility.modules.citation.engines import ENGINE_REGISTRY, EngineSpec
from ai_visibility.utils.text_matching import mentions_business, names_match
from ai_visibility.utils.validators import require_text

logger = logging.getLogger(__name__)


def placeholder_result(engine: str, query: str) -> EngineQueryResult:
    """Result for an engine whose provider has no credential."""
    return EngineQueryResult(engine=engine, query=query, placeholder=True)


class CitationProber:
    """Fan a query out to the configured AI engines.

    Engines whose provider has no credential get a placeholder result
    without being called; engines that fail are logged and dropped.

    Usage::

        prober = CitationProber(llm_client=llm, engines=["perplexity", "google"])
        results = await prober.probe_query("best hookah bar in Alpharetta GA", business)
    """

    def __init__(
        self,
        llm_client: Any,
        engines: Optional[Iterable[str]] = None,
        temperature: float = 0.3,
        registry: Optional[dict[str, EngineSpec]] = None,
    ) -> None:
        self._llm = llm_client
        self._registry = registry if registry is not None else ENGINE_REGISTRY
        names = list(engines) if engines is not None else list(self._registry)
        unknown = [n for n in names if n not in self._registry]
        if unknown:
            raise ValidationError(
                f"Unknown engine(s): {', '.join(unknown)}. "
                f"Expected any of: {', '.join(self._registry)}"
            )
        self._engines = names
        self._temperature = temperature

    @property
    def engines(self) -> list[str]:
        return list(self._engines)

    async def _run_engine(
        self, spec: EngineSpec, query: str, business: BusinessContext
    ) -> EngineQueryResult:
        try:
            completion = await self._llm.complete(
                spec.build_prompt(query),
                system_prompt=spec.system_prompt,
                provider=spec.provider,
                model=spec.model,
                temperature=self._temperature,
                search_grounding=spec.search_grounding,
            )
        except Exception as exc:
            raise EngineError(f"{spec.name} query failed: {exc}", engine=spec.name) from exc

        text = completion.text or ""
        parsed = spec.parse_response(text)
        name = business.business_name

        cited = mentions_business(name, parsed.names)
        if not cited and parsed.free_text:
            cited = names_match(name, text)

        cited_url = parsed.cited_url
        if cited_url is None and completion.citations:
            cited_url = completion.citations[0]

        return EngineQueryResult(
            engine=spec.name,
            query=query,
            business_cited=cited,
            businesses_found=[n for n in parsed.names if not names_match(name, n)],
            raw_response=text,
            cited_url=cited_url,
        )

    async def probe_query(self, query: str, business: BusinessContext) -> list[EngineQueryResult]:
        """Probe every configured engine with *query*.

        Returns one result per configured engine, in configuration order,
        minus engines whose attempt failed.
        """
        query = require_text(query, "query")
        if not isinstance(business, BusinessContext):
            raise ValidationError(f"business must be a BusinessContext, got {type(business).__name__}.")
        slots: list[Optional[EngineQueryResult]] = []
        pending: list[tuple[int, EngineSpec]] = []

        for engine in self._engines:
            spec = self._registry[engine]
            if not self._llm.has_credential(spec.provider):
                logger.info("No %s credential, placeholder result for engine %s", spec.provider, engine)
                slots.append(placeholder_result(engine, query))
                continue
            pending.append((len(slots), spec))
            slots.append(None)

        outcomes = await asyncio.gather(
            *(self._run_engine(spec, query, business) for _, spec in pending),
            return_exceptions=True,
        )

        dropped: set[int] = set()
        for (index, spec), outcome in zip(pending, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Dropping engine %s for query %r: %s", spec.name, query, outcome)
                dropped.add(index)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                slots[index] = outcome

        results = [r for i, r in enumerate(slots) if i not in dropped and r is not None]
        logger.info(
            "Probed %r on %d engine(s): %d cited",
            query, len(results), sum(1 for r in results if r.business_cited),
        )
        return results
