"""Multi-Engine Citation Prober module."""

from ai_visibility.modules.citation.engines import ENGINE_REGISTRY, EngineSpec, ParsedAnswer
from ai_visibility.modules.citation.prober import CitationProber
from ai_visibility.modules.citation.sov import compute_share_of_voice

__all__ = [
    "ENGINE_REGISTRY",
    "EngineSpec",
    "ParsedAnswer",
    "CitationProber",
    "compute_share_of_voice",
]
