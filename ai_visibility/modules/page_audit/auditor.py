"""Page Content Auditor: scores a page for AI answer-engine readability.

Fetches a page once and scores it on five dimensions:

==========================  ======  =============================================
Dimension                   Weight  Signal
==========================  ======  =============================================
Answer-first structure      35%     Does the opening text answer the local query?
Schema completeness         25%     Required JSON-LD types/properties for the page
FAQ schema                  20%     FAQPage block and how many Q&A pairs it has
Keyword density             10%     Business name, city, state, category, amenities
Entity clarity              10%     Name, address, phone and hours in visible text
==========================  ======  =============================================

Answer-first is scored by the OpenAI model when a key is configured and by a
local heuristic otherwise; the other four are computed from the HTML alone.
"""

import logging
import re
import time
from typing import Any, Optional

import httpx

from ai_visibility.errors import FetchError, ValidationError
from ai_visibility.models.audit import PageAuditResult, Recommendation
from ai_visibility.models.business import BusinessContext, PageType
from ai_visibility.modules.page_audit.html_parser import ParsedPage, parse_page
from ai_visibility.utils.helpers import clamp_score, truncate_text
from ai_visibility.utils.text_processing import calculate_keyword_density, first_sentence
from ai_visibility.utils.validators import require_url

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Schema requirements per page type
# ---------------------------------------------------------------------------

REQUIRED_SCHEMAS: dict[PageType, dict[str, list[str]]] = {
    PageType.HOMEPAGE: {
        "types": ["LocalBusiness", "Restaurant", "FoodEstablishment"],
        "properties": ["name", "address", "telephone", "openingHours"],
    },
    PageType.MENU: {
        "types": ["MenuPage", "Restaurant"],
        "properties": ["hasMenu", "servesCuisine", "name"],
    },
    PageType.ABOUT: {
        "types": ["LocalBusiness", "Restaurant", "Organization"],
        "properties": ["name", "description"],
    },
    PageType.FAQ: {
        "types": ["FAQPage"],
        "properties": ["mainEntity"],
    },
    PageType.EVENTS: {
        "types": ["Event"],
        "properties": ["name", "startDate", "location"],
    },
    PageType.OTHER: {
        "types": ["LocalBusiness"],
        "properties": ["name"],
    },
}

_MIN_OPENING_CHARS = 20
_GENERIC_OPENER_RE = re.compile(r"welcome to|home page|navigation", re.IGNORECASE)
_PHONE_RE = re.compile(r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
_DAY_RE = re.compile(r"\b(?:mon|tue|wed|thu|fri|sat|sun)", re.IGNORECASE)
_CLOCK_RE = re.compile(r"\b\d{1,2}(?::\d{2}\s*(?:am|pm)?|\s*(?:am|pm))\b", re.IGNORECASE)

_STUFFING_DENSITY_PCT = 3.0
_STUFFING_MIN_COUNT = 3
_STUFFING_PENALTY = 20

_ANSWER_FIRST_SYSTEM_PROMPT = (
    "You grade website copy for AI answer engines. "
    "Respond ONLY with valid JSON."
)


# ---------------------------------------------------------------------------
# Dimension scorers
# ---------------------------------------------------------------------------

def heuristic_answer_first(opening_text: str, business: BusinessContext) -> int:
    """Score how directly *opening_text* answers a local query, without an LLM."""
    if not opening_text or len(opening_text) < _MIN_OPENING_CHARS:
        return 0

    lower = opening_text.lower()
    score = 20

    name = business.business_name.lower()
    city = (business.city or "").lower()
    category = business.primary_category.lower()

    if name and name in lower:
        score += 25
    if city and city in lower:
        score += 15
    if category and category in lower:
        score += 15

    opener = first_sentence(opening_text)
    if len(opener) > 50:
        score += 10
    if _GENERIC_OPENER_RE.search(opener):
        score -= 15

    return clamp_score(score)


def _type_names(block: dict[str, Any]) -> list[str]:
    value = block.get("@type")
    if isinstance(value, list):
        return [str(v) for v in value if v]
    return [str(value)] if value else []


def score_schema_completeness(json_ld_blocks: list[dict[str, Any]], page_type: PageType) -> int:
    if not json_ld_blocks:
        return 0

    required = REQUIRED_SCHEMAS.get(page_type, REQUIRED_SCHEMAS[PageType.OTHER])
    all_types = [t for block in json_ld_blocks for t in _type_names(block)]
    has_required_type = any(
        req in found for req in required["types"] for found in all_types
    )
    if not has_required_type:
        return 10

    all_keys = {key for block in json_ld_blocks for key in block}
    properties = required["properties"]
    if not properties:
        return 100
    present = [p for p in properties if p in all_keys]
    return round(100 * len(present) / len(properties))


def score_faq_schema(json_ld_blocks: list[dict[str, Any]]) -> tuple[int, bool]:
    """Return ``(score, present)`` for the first FAQPage block."""
    faq_block = next(
        (b for b in json_ld_blocks if "FAQPage" in _type_names(b)), None
    )
    if faq_block is None:
        return 0, False

    main_entity = faq_block.get("mainEntity")
    if isinstance(main_entity, list):
        pairs = len(main_entity)
    elif isinstance(main_entity, dict):
        pairs = 1
    else:
        pairs = 0

    if pairs >= 5:
        return 100, True
    if pairs >= 3:
        return 75, True
    if pairs >= 1:
        return 40, True
    return 0, True


def keyword_terms(business: BusinessContext) -> list[str]:
    terms = [business.business_name, business.city, business.state, business.primary_category]
    terms.extend(business.amenity_labels(limit=2))
    return [t.lower().strip() for t in terms if t and t.strip()]


def score_keyword_density(visible_text: str, business: BusinessContext) -> int:
    """Share of business terms present, minus a penalty for keyword stuffing."""
    terms = keyword_terms(business)
    if not terms:
        return 50
    if not visible_text:
        return 0

    lower = visible_text.lower()
    present = [t for t in terms if t in lower]
    score = round(100 * len(present) / len(terms))

    for term in present:
        density = calculate_keyword_density(visible_text, term)
        if density["count"] >= _STUFFING_MIN_COUNT and density["density_pct"] > _STUFFING_DENSITY_PCT:
            logger.debug("Keyword stuffing: %r at %.2f%%", term, density["density_pct"])
            score -= _STUFFING_PENALTY
            break

    return clamp_score(score)


def score_entity_clarity(parsed: ParsedPage, business: BusinessContext) -> int:
    text = parsed.visible_text
    if not text:
        return 0

    lower = text.lower()
    signals = 0

    name = business.business_name.lower()
    if name in parsed.h1.lower() or name in parsed.title.lower():
        signals += 1

    city = (business.city or "").lower()
    state = (business.state or "").lower()
    if city and state and city in lower and state in lower:
        signals += 1

    if _PHONE_RE.search(text):
        signals += 1

    if _DAY_RE.search(text) and _CLOCK_RE.search(text):
        signals += 1

    return round(100 * signals / 4)


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

def build_recommendations(
    answer_first: int,
    schema_completeness: int,
    faq_score: int,
    faq_present: bool,
    keyword_density: int,
    entity_clarity: int,
    page_type: PageType,
    business: BusinessContext,
) -> list[Recommendation]:
    """One recommendation per deficient dimension, highest impact first."""
    recs: list[Recommendation] = []
    name = business.business_name
    city = business.city or "your area"

    if answer_first <= 30:
        recs.append(Recommendation(
            issue="Opening text is navigation or hero copy that answers nothing",
            fix=(
                f'Open the page with a direct answer, e.g. "{name} is {city}\'s '
                f'[what you are, known for what]." Put the answer in the first sentence.'
            ),
            impact_points=35,
            dimension="answer_first",
        ))
    elif answer_first <= 60:
        recs.append(Recommendation(
            issue="Opening text does not lead with the key claim",
            fix="Move the strongest claim about the business into the first sentence.",
            impact_points=20,
            dimension="answer_first",
        ))
    elif answer_first <= 80:
        recs.append(Recommendation(
            issue="Opening text is good but not tuned to the most common local query",
            fix=f'Add "Serving {city} since [year], {name} is known for [top two attributes]." to the opening paragraph.',
            impact_points=10,
            dimension="answer_first",
        ))

    if schema_completeness < 50:
        recs.append(Recommendation(
            issue=f"Missing required JSON-LD schema for {page_type.value} page",
            fix=(
                f'Add a <script type="application/ld+json"> block with the '
                f"{' or '.join(REQUIRED_SCHEMAS[page_type]['types'])} type and its "
                f"{', '.join(REQUIRED_SCHEMAS[page_type]['properties'])} properties."
            ),
            impact_points=25,
            dimension="schema_completeness",
            schema_type=REQUIRED_SCHEMAS[page_type]["types"][0],
        ))

    if not faq_present:
        recs.append(Recommendation(
            issue="No FAQPage schema found",
            fix=f"Add FAQPage schema with at least 5 question/answer pairs about {name}.",
            impact_points=20,
            dimension="faq_schema",
            schema_type="FAQPage",
        ))
    elif faq_score < 75:
        recs.append(Recommendation(
            issue="FAQPage schema has fewer than 3 question/answer pairs",
            fix="Expand the FAQ to 5 or more pairs covering hours, parking, pricing and atmosphere.",
            impact_points=10,
            dimension="faq_schema",
            schema_type="FAQPage",
        ))

    if keyword_density < 50:
        recs.append(Recommendation(
            issue="Key business terms are missing from the page text",
            fix=f'Mention "{name}", "{city}" and your primary category naturally in the page copy.',
            impact_points=10,
            dimension="keyword_density",
        ))

    if entity_clarity < 50:
        recs.append(Recommendation(
            issue="Business identity cannot be fully extracted from the page text",
            fix="Show name, address, phone and hours in the visible main content, not only in schema or the footer.",
            impact_points=10,
            dimension="entity_clarity",
        ))

    # sorted() is stable, so equal impacts keep dimension order.
    return sorted(recs, key=lambda r: r.impact_points, reverse=True)


# ---------------------------------------------------------------------------
# PageAuditor
# ---------------------------------------------------------------------------

class PageAuditor:
    """Fetches a page and scores it for AI answer engines.

    Usage::

        auditor = PageAuditor(llm_client=llm)
        result = await auditor.audit_page(
            "https://charcoalnchill.com", "homepage", business,
        )
    """

    DEFAULT_USER_AGENT = "AIVisibilityBot/1.0 (+https://example.com/bot)"

    def __init__(
        self,
        llm_client: Optional[Any] = None,
        timeout: float = 10.0,
        user_agent: Optional[str] = None,
        use_llm: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._llm = llm_client
        self._timeout = timeout
        self._headers = {
            "User-Agent": user_agent or self.DEFAULT_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        }
        self._use_llm = use_llm
        self._transport = transport

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _fetch_page(self, url: str) -> str:
        """GET *url* once; raise :class:`FetchError` on any failure."""
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers=self._headers,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                resp = await client.get(url)
        except httpx.HTTPError as exc:
            logger.error("Failed to fetch %s: %s", url, exc)
            raise FetchError(f"Page fetch failed for {url}: {exc}", url=url) from exc

        if not resp.is_success:
            logger.warning("Page fetch for %s returned HTTP %d", url, resp.status_code)
            raise FetchError(
                f"Page fetch failed: {resp.status_code} {resp.reason_phrase} for {url}",
                status=resp.status_code,
                url=url,
            )
        return resp.text

    # ------------------------------------------------------------------
    # Answer-first scoring
    # ------------------------------------------------------------------

    async def score_answer_first(self, opening_text: str, business: BusinessContext) -> int:
        if not opening_text or len(opening_text) < _MIN_OPENING_CHARS:
            return 0

        if not (self._use_llm and self._llm is not None and self._llm.has_credential("openai")):
            return heuristic_answer_first(opening_text, business)

        category = business.primary_category or "restaurant"
        city = business.city or "the area"
        target_query = f"best {category} in {city} {business.state or ''}".strip()
        prompt = (
            f'On a scale of 0-100, how directly does this opening text answer the query "{target_query}"?\n\n'
            f'Opening text: "{truncate_text(opening_text, 500)}"\n\n'
            'Return JSON: {"score": <number>}'
        )
        try:
            data = await self._llm.generate_json(
                prompt,
                system_prompt=_ANSWER_FIRST_SYSTEM_PROMPT,
                provider="openai",
                temperature=0.0,
            )
        except Exception as exc:
            logger.warning("LLM answer-first scoring failed, using heuristic: %s", exc)
            return heuristic_answer_first(opening_text, business)

        score = data.get("score") if isinstance(data, dict) else None
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not 0 <= score <= 100:
            logger.warning("LLM answer-first score out of contract (%r), using heuristic", score)
            return heuristic_answer_first(opening_text, business)
        return clamp_score(score)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def audit_page(
        self,
        url: str,
        page_type: "PageType | str",
        business: BusinessContext,
    ) -> PageAuditResult:
        """Fetch *url* and score it on all five dimensions.

        Raises:
            FetchError: on a non-2xx response or a transport failure.
            ValidationError: on a malformed URL, unknown page type or business.
        """
        url = require_url(url)
        page_type = PageType.parse(page_type)
        if not isinstance(business, BusinessContext):
            raise ValidationError(f"business must be a BusinessContext, got {type(business).__name__}.")
        start = time.monotonic()
        logger.info("Starting page audit for %s (%s)", url, page_type.value)

        html = await self._fetch_page(url)
        parsed = parse_page(html)

        answer_first = await self.score_answer_first(parsed.opening_text, business)
        schema = score_schema_completeness(parsed.json_ld_blocks, page_type)
        faq_score, faq_present = score_faq_schema(parsed.json_ld_blocks)
        keyword = score_keyword_density(parsed.visible_text, business)
        entity = score_entity_clarity(parsed, business)

        recommendations = build_recommendations(
            answer_first, schema, faq_score, faq_present, keyword, entity, page_type, business,
        )
        result = PageAuditResult.from_scores(
            url=url,
            page_type=page_type.value,
            answer_first=answer_first,
            schema_completeness=schema,
            faq_schema=faq_score,
            faq_present=faq_present,
            keyword_density=keyword,
            entity_clarity=entity,
            recommendations=recommendations,
        )

        elapsed = round(time.monotonic() - start, 2)
        logger.info(
            "Page audit complete for %s: overall=%d (%d recommendations) in %.2fs",
            url, result.overall_score, len(recommendations), elapsed,
        )
        return result
