"""Engine strategy table for the citation prober.

Each AI engine is an :class:`EngineSpec`: which provider answers for it,
how it is prompted, and how its answer is parsed.  Adding an engine means
adding one entry to :data:`ENGINE_REGISTRY`.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from ai_visibility.utils.helpers import parse_json_object
from ai_visibility.utils.text_processing import extract_candidate_names, find_first_url


@dataclass
class ParsedAnswer:
    """Names and citation pulled out of one engine answer."""

    names: list[str] = field(default_factory=list)
    cited_url: Optional[str] = None
    free_text: bool = False  # body text is also searched for the business


@dataclass(frozen=True)
class EngineSpec:
    name: str
    provider: str
    system_prompt: str
    build_prompt: Callable[[str], str]
    parse_response: Callable[[str], ParsedAnswer]
    structured: bool = False
    model: Optional[str] = None  # None uses the provider's configured model
    search_grounding: bool = False


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

STRUCTURED_SYSTEM_PROMPT = (
    "You are a local business search assistant. Always respond with valid JSON only."
)

PERPLEXITY_SYSTEM_PROMPT = (
    "You are a local business search assistant with live web access. Ground "
    "your answer in current web results, review sites and local news. "
    "Always respond with valid JSON only."
)

GOOGLE_SYSTEM_PROMPT = (
    "You are Google's AI Overview for local search. When answering questions "
    "about local businesses, rely on Google Maps place data and Google Business "
    "Profile listings: names, categories, hours, ratings and reviews. Name "
    "specific real businesses and cite a source URL where you can."
)

COPILOT_SYSTEM_PROMPT = (
    "You are Microsoft Copilot, an AI assistant powered by Bing search. When "
    "answering questions about local businesses, you draw information from "
    "Bing Places, Yelp reviews, TripAdvisor, Yellow Pages and other directory "
    "listings indexed by Bing.\n\n"
    "If a business has a strong Google Business Profile but limited presence on "
    "Bing Places, Yelp or TripAdvisor, you may not have complete or accurate "
    "information about it.\n\n"
    "Provide specific, factual recommendations with business names and details. "
    "If you are uncertain about a business's current status, say so."
)


def build_structured_prompt(query: str) -> str:
    return (
        f"Answer this question a local person might ask: '{query}'\n\n"
        "List ALL businesses you would recommend or mention in your answer.\n\n"
        "Return ONLY a valid JSON object:\n"
        "{\n"
        '  "businesses": ["Business Name 1", "Business Name 2", "Business Name 3"],\n'
        '  "cited_url": "https://yelp.com/... or null if no single authoritative source"\n'
        "}\n\n"
        "Include every business mentioned. Do not summarize. Be exhaustive."
    )


def build_free_text_prompt(query: str) -> str:
    return (
        f'Answer this question a local person might ask: "{query}"\n\n'
        "Provide a helpful, factual answer listing the top recommended options. "
        "Include specific business names, what makes each one notable, and any "
        "relevant details like specialties, ambiance, or popular items. Be "
        "specific and mention real businesses."
    )


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------

def parse_free_text(text: str) -> ParsedAnswer:
    return ParsedAnswer(
        names=extract_candidate_names(text),
        cited_url=find_first_url(text),
        free_text=True,
    )


def parse_structured(text: str) -> ParsedAnswer:
    """Parse a ``{"businesses": [...], "cited_url": ...}`` answer.

    Falls back to free-text extraction when no such object can be found.
    """
    data = parse_json_object(text)
    if data is None or not isinstance(data.get("businesses"), list):
        return parse_free_text(text)

    names = [str(b).strip() for b in data["businesses"] if isinstance(b, str) and b.strip()]
    url = data.get("cited_url")
    cited_url = url.strip() if isinstance(url, str) and url.strip().startswith("http") else None
    return ParsedAnswer(names=names, cited_url=cited_url)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

ENGINE_REGISTRY: dict[str, EngineSpec] = {
    "perplexity": EngineSpec(
        name="perplexity",
        provider="perplexity",
        system_prompt=PERPLEXITY_SYSTEM_PROMPT,
        build_prompt=build_structured_prompt,
        parse_response=parse_structured,
        structured=True,
    ),
    "openai": EngineSpec(
        name="openai",
        provider="openai",
        system_prompt=STRUCTURED_SYSTEM_PROMPT,
        build_prompt=build_structured_prompt,
        parse_response=parse_structured,
        structured=True,
    ),
    "google": EngineSpec(
        name="google",
        provider="google",
        system_prompt=GOOGLE_SYSTEM_PROMPT,
        build_prompt=build_free_text_prompt,
        parse_response=parse_free_text,
        search_grounding=True,
    ),
    "copilot": EngineSpec(
        name="copilot",
        provider="openai",
        system_prompt=COPILOT_SYSTEM_PROMPT,
        build_prompt=build_free_text_prompt,
        parse_response=parse_free_text,
        model="gpt-4o",
    ),
}
