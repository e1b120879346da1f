"""Citation probe result types."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class EngineQueryResult:
    """Outcome of one query against one AI engine."""

    engine: str
    query: str
    business_cited: bool = False
    businesses_found: list[str] = field(default_factory=list)
    raw_response: Optional[str] = None
    cited_url: Optional[str] = None
    placeholder: bool = False  # engine configured but no credential


@dataclass
class ShareOfVoice:
    """Citation statistics over a set of engine runs."""

    total_runs: int
    cited_runs: int
    share_of_voice: float
    citation_rate: float
    per_engine: dict[str, float] = field(default_factory=dict)
    # Real runs where no business at all was named: an open field to claim.
    first_mover_runs: int = 0
