"""Multi-provider LLM client for OpenAI, Perplexity and Google Gemini.

Each AI engine probed by the citation prober is backed by one of these
providers.  Callers check :meth:`LLMClient.has_credential` before calling
a provider; calls to an unconfigured provider raise ``RuntimeError``.
Errors from a provider are never retried here.
"""

import asyncio
import functools
import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
import openai
import google.generativeai as genai

from ai_visibility.utils.helpers import strip_code_fences

logger = logging.getLogger(__name__)

PROVIDERS = ("openai", "perplexity", "google")

GEMINI_SEARCH_TOOL = "google_search_retrieval"


def _grounding_sources(response: Any) -> list[str]:
    """Source URLs from a Gemini response's search-grounding metadata."""
    urls: list[str] = []
    for candidate in getattr(response, "candidates", None) or []:
        metadata = getattr(candidate, "grounding_metadata", None)
        for chunk in getattr(metadata, "grounding_chunks", None) or []:
            uri = getattr(getattr(chunk, "web", None), "uri", None)
            if isinstance(uri, str) and uri and uri not in urls:
                urls.append(uri)
    return urls


@dataclass
class UsageStats:
    """Tracks token usage and estimated cost."""
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_requests: int = 0
    total_cost_usd: float = 0.0
    requests_by_provider: dict[str, int] = field(default_factory=dict)

    def add_usage(self, provider: str, input_tokens: int, output_tokens: int,
                  cost_per_1k_input: float = 0.00015,
                  cost_per_1k_output: float = 0.0006) -> float:
        """Record token usage and return cost for this call."""
        cost = (input_tokens / 1000) * cost_per_1k_input + \
               (output_tokens / 1000) * cost_per_1k_output
        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens
        self.total_requests += 1
        self.total_cost_usd += cost
        self.requests_by_provider[provider] = self.requests_by_provider.get(provider, 0) + 1
        return cost


class RateLimiter:
    """Simple async rate limiter using a sliding one-minute window."""

    def __init__(self, requests_per_minute: int = 60):
        self._rpm = requests_per_minute
        self._timestamps: list[float] = []
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            now = time.monotonic()
            self._timestamps = [t for t in self._timestamps if now - t < 60.0]
            if len(self._timestamps) >= self._rpm:
                wait = 60.0 - (now - self._timestamps[0])
                if wait > 0:
                    logger.debug("Rate limiter sleeping %.2fs", wait)
                    await asyncio.sleep(wait)
            self._timestamps.append(time.monotonic())


@dataclass
class Completion:
    """Text answer from a provider plus any source URLs it cited."""
    text: str
    provider: str
    model: str
    citations: list[str] = field(default_factory=list)


class LLMClient:
    """Async client for the text-generation providers behind each AI engine.

    Usage::

        client = LLMClient()
        if client.has_credential("perplexity"):
            answer = await client.complete("best hookah bar in Alpharetta GA",
                                           provider="perplexity")
        data = await client.generate_json('Return {"score": <0-100>}')
    """

    PERPLEXITY_BASE_URL = "https://api.perplexity.ai"

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        perplexity_api_key: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        openai_model: str = "gpt-4o-mini",
        perplexity_model: str = "sonar",
        gemini_model: str = "gemini-2.0-flash",
        max_tokens: int = 1024,
        temperature: float = 0.3,
        timeout: int = 60,
        openai_rpm: int = 60,
        perplexity_rpm: int = 50,
        gemini_rpm: int = 15,
        gemini_search_grounding: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        # API keys
        self._openai_key = openai_api_key or os.getenv("OPENAI_API_KEY", "")
        self._perplexity_key = perplexity_api_key or os.getenv("PERPLEXITY_API_KEY", "")
        self._gemini_key = (
            gemini_api_key
            or os.getenv("GEMINI_API_KEY", "")
            or os.getenv("GOOGLE_GENERATIVE_AI_API_KEY", "")
        )

        # Model configuration
        self._models = {
            "openai": openai_model,
            "perplexity": perplexity_model,
            "google": gemini_model,
        }
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._transport = transport  # used for Perplexity HTTP calls
        self._gemini_search_grounding = gemini_search_grounding

        # Clients
        self._openai_client: Optional[openai.AsyncOpenAI] = None
        if self._openai_key:
            self._openai_client = openai.AsyncOpenAI(
                api_key=self._openai_key, timeout=timeout
            )

        if self._gemini_key:
            genai.configure(api_key=self._gemini_key)

        # Rate limiters
        self._limiters = {
            "openai": RateLimiter(openai_rpm),
            "perplexity": RateLimiter(perplexity_rpm),
            "google": RateLimiter(gemini_rpm),
        }

        # Usage tracking
        self.usage = UsageStats()

    # ------------------------------------------------------------------
    # Capability check
    # ------------------------------------------------------------------

    def has_credential(self, provider: str) -> bool:
        """Return True when an API key is configured for *provider*."""
        if provider == "openai":
            return bool(self._openai_key)
        if provider == "perplexity":
            return bool(self._perplexity_key)
        if provider == "google":
            return bool(self._gemini_key)
        return False

    def configured_providers(self) -> list[str]:
        return [p for p in PROVIDERS if self.has_credential(p)]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def complete(
        self,
        prompt: str,
        system_prompt: str = "You are a helpful local search assistant.",
        provider: str = "openai",
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        search_grounding: bool = False,
    ) -> Completion:
        """Generate an answer from a single provider.  No fallback, no retry.

        ``search_grounding`` asks Gemini to ground its answer in Google
        Search and return the sources as ``citations``; other providers
        ignore it.
        """
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown LLM provider: {provider!r}")
        if not self.has_credential(provider):
            raise RuntimeError(f"No credential configured for provider {provider!r}.")

        model = model or self._models[provider]
        max_tokens = max_tokens or self._max_tokens
        temperature = temperature if temperature is not None else self._temperature

        await self._limiters[provider].acquire()
        if provider == "openai":
            return await self._call_openai(prompt, system_prompt, model, max_tokens, temperature)
        if provider == "perplexity":
            return await self._call_perplexity(prompt, system_prompt, model, max_tokens, temperature)
        grounded = search_grounding and self._gemini_search_grounding
        return await self._call_gemini(prompt, system_prompt, model, max_tokens, temperature, grounded)

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str = "You are a helpful local search assistant.",
        provider: str = "openai",
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Generate plain text from *provider*."""
        completion = await self.complete(
            prompt,
            system_prompt=system_prompt,
            provider=provider,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return completion.text

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str = "You are a helpful assistant. Respond ONLY with valid JSON.",
        provider: str = "openai",
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = 0.0,
    ) -> Any:
        """Generate a small JSON object and parse it."""
        raw = await self.generate_text(
            prompt=prompt,
            system_prompt=system_prompt,
            provider=provider,
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        cleaned = strip_code_fences(raw)
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse JSON from LLM response: %s", exc)
            logger.debug("Raw response: %s", raw[:500])
            raise ValueError(f"LLM returned invalid JSON: {exc}") from exc

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _call_openai(
        self, prompt: str, system_prompt: str, model: str,
        max_tokens: int, temperature: float
    ) -> Completion:
        """Call OpenAI Chat Completions API."""
        response = await self._openai_client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        choice = response.choices[0].message.content or ""
        usage = response.usage
        if usage:
            cost = self.usage.add_usage("openai", usage.prompt_tokens, usage.completion_tokens)
            logger.info(
                "OpenAI call (%s): %d in / %d out tokens, $%.6f",
                model, usage.prompt_tokens, usage.completion_tokens, cost,
            )
        return Completion(text=choice.strip(), provider="openai", model=model)

    async def _call_perplexity(
        self, prompt: str, system_prompt: str, model: str,
        max_tokens: int, temperature: float
    ) -> Completion:
        """Call the Perplexity chat completions endpoint."""
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        async with httpx.AsyncClient(
            base_url=self.PERPLEXITY_BASE_URL,
            headers={
                "Authorization": f"Bearer {self._perplexity_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        ) as client:
            resp = await client.post("/chat/completions", json=payload)
            resp.raise_for_status()
            data = resp.json()

        choices = data.get("choices") or [{}]
        text = (choices[0].get("message") or {}).get("content") or ""
        citations = [c for c in data.get("citations") or [] if isinstance(c, str)]
        usage = data.get("usage") or {}
        cost = self.usage.add_usage(
            "perplexity",
            int(usage.get("prompt_tokens", 0)),
            int(usage.get("completion_tokens", 0)),
            cost_per_1k_input=0.001,
            cost_per_1k_output=0.001,
        )
        logger.info("Perplexity call (%s): %d citations, $%.6f", model, len(citations), cost)
        return Completion(text=text.strip(), provider="perplexity", model=model, citations=citations)

    async def _call_gemini(
        self, prompt: str, system_prompt: str, model: str,
        max_tokens: int, temperature: float, grounded: bool = False
    ) -> Completion:
        """Call Google Gemini API, optionally with Google Search grounding."""
        gemini = genai.GenerativeModel(
            model_name=model,
            system_instruction=system_prompt,
            generation_config=genai.types.GenerationConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
            ),
        )
        # Run synchronous Gemini call in a thread to keep async interface
        call = functools.partial(
            gemini.generate_content, prompt, tools=GEMINI_SEARCH_TOOL if grounded else None
        )
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, call)
        text = response.text or ""
        citations = _grounding_sources(response) if grounded else []
        self.usage.add_usage("google", 0, 0, 0.0, 0.0)
        logger.info("Gemini call (%s) completed (len=%d, %d sources)", model, len(text), len(citations))
        return Completion(text=text.strip(), provider="google", model=model, citations=citations)

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------

    def get_usage_summary(self) -> dict[str, Any]:
        """Return a summary of token usage and costs."""
        return {
            "total_requests": self.usage.total_requests,
            "total_input_tokens": self.usage.total_input_tokens,
            "total_output_tokens": self.usage.total_output_tokens,
            "total_cost_usd": round(self.usage.total_cost_usd, 6),
            "requests_by_provider": dict(self.usage.requests_by_provider),
            "configured_providers": self.configured_providers(),
        }
