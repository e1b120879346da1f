"""Share-of-voice aggregation over engine runs."""

from collections import defaultdict
from typing import Iterable

from ai_visibility.models.probe import EngineQueryResult, ShareOfVoice


def compute_share_of_voice(
    results: Iterable[EngineQueryResult], per_engine: bool = True
) -> ShareOfVoice:
    """Aggregate probe results into share of voice and citation rate.

    share of voice = cited runs / total runs; citation rate = cited runs
    that carried a source URL / cited runs.  Both are fractions in
    ``[0, 1]``.  Placeholder runs count as uncited runs.
    """
    results = list(results)
    total = len(results)
    cited = [r for r in results if r.business_cited]
    with_url = [r for r in cited if r.cited_url]

    buckets: dict[str, float] = {}
    if per_engine:
        runs: dict[str, int] = defaultdict(int)
        hits: dict[str, int] = defaultdict(int)
        for r in results:
            runs[r.engine] += 1
            if r.business_cited:
                hits[r.engine] += 1
        buckets = {engine: hits[engine] / count for engine, count in runs.items()}

    first_movers = [
        r for r in results
        if not r.placeholder and not r.business_cited and not r.businesses_found
    ]

    return ShareOfVoice(
        total_runs=total,
        cited_runs=len(cited),
        share_of_voice=len(cited) / total if total else 0.0,
        citation_rate=len(with_url) / len(cited) if cited else 0.0,
        per_engine=buckets,
        first_mover_runs=len(first_movers),
    )
