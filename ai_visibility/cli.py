"""Typer CLI application for AI Visibility Core.

Provides commands to audit a page, probe AI engines for citations,
compute the composite health score and run the correction follow-up
batch against the claim store.
"""

import asyncio
import json
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ai_visibility.errors import VisibilityError

console = Console()
app = typer.Typer(
    name="aivis",
    help="AI Visibility Core -- page audits, AI citation probes, correction checks & health scores.",
    add_completion=False,
    no_args_is_help=True,
)

CONFIG_OPTION = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml.")


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level and format."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _run_async(coro):
    """Run an async coroutine from synchronous CLI context."""
    return asyncio.run(coro)


def _fail(message: str) -> None:
    console.print(f"[red]✘[/red] {message}")
    raise typer.Exit(code=1)


def _business(name: str, city: Optional[str], state: Optional[str], categories: Optional[list[str]]):
    from ai_visibility.models.business import BusinessContext
    try:
        return BusinessContext(
            business_name=name,
            city=city,
            state=state,
            categories=tuple(categories or ()),
        )
    except VisibilityError as exc:
        _fail(str(exc))


def _score_style(score: int) -> str:
    if score >= 75:
        return f"[green]{score}[/green]"
    if score >= 50:
        return f"[yellow]{score}[/yellow]"
    return f"[red]{score}[/red]"


def _print_audit(result) -> None:
    table = Table(title="Page Audit: " + result.url, show_header=True, header_style="bold magenta")
    table.add_column("Dimension", style="cyan", min_width=22)
    table.add_column("Score", justify="right")
    table.add_row("Answer-first", _score_style(result.answer_first_score))
    table.add_row("Schema completeness", _score_style(result.schema_completeness_score))
    faq_label = "FAQ schema" + ("" if result.faq_schema_present else " (absent)")
    table.add_row(faq_label, _score_style(result.faq_schema_score))
    table.add_row("Keyword density", _score_style(result.keyword_density_score))
    table.add_row("Entity clarity", _score_style(result.entity_clarity_score))
    table.add_row("[bold]Overall[/bold]", _score_style(result.overall_score))
    console.print(table)

    for rec in result.recommendations:
        console.print(f"  [bold]+{rec.impact_points}[/bold] {rec.issue}\n      {rec.fix}")


# ------------------------------------------------------------------
# audit
# ------------------------------------------------------------------
@app.command()
def audit(
    url: str = typer.Argument(..., help="Page URL to audit."),
    name: str = typer.Option(..., "--name", "-n", help="Business name."),
    city: Optional[str] = typer.Option(None, "--city", help="Business city."),
    state: Optional[str] = typer.Option(None, "--state", help="Business state."),
    category: Optional[list[str]] = typer.Option(None, "--category", help="Business category (repeatable)."),
    page_type: str = typer.Option("homepage", "--page-type", "-t", help="homepage, menu, about, faq, events or other."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON."),
    config: str = CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Audit a page for AI answer-engine readability."""
    _setup_logging(verbose)
    from ai_visibility.config import build_llm_client, load_settings
    from ai_visibility.modules.page_audit import PageAuditor

    business = _business(name, city, state, category)
    settings = load_settings(config)
    auditor = PageAuditor(
        llm_client=build_llm_client(settings),
        timeout=settings.fetch_timeout,
        user_agent=settings.user_agent,
        use_llm=settings.llm_answer_first,
    )

    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task(description="Auditing " + url + "...", total=None)
        try:
            result = _run_async(auditor.audit_page(url, page_type, business))
        except VisibilityError as exc:
            _fail(str(exc))

    if as_json:
        console.print_json(json.dumps(result.to_dict()))
        return
    _print_audit(result)
    console.print("[green]✔[/green] Audit complete.")


# ------------------------------------------------------------------
# probe
# ------------------------------------------------------------------
@app.command()
def probe(
    query: str = typer.Argument(..., help='Local search query, e.g. "best hookah bar in Alpharetta GA".'),
    name: str = typer.Option(..., "--name", "-n", help="Business name."),
    city: Optional[str] = typer.Option(None, "--city", help="Business city."),
    state: Optional[str] = typer.Option(None, "--state", help="Business state."),
    category: Optional[list[str]] = typer.Option(None, "--category", help="Business category (repeatable)."),
    engine: Optional[list[str]] = typer.Option(None, "--engine", "-e", help="Engine to probe (repeatable). Defaults to settings."),
    config: str = CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Ask every configured AI engine a query and report citations."""
    _setup_logging(verbose)
    from ai_visibility.config import build_llm_client, load_settings
    from ai_visibility.modules.citation import CitationProber, compute_share_of_voice

    business = _business(name, city, state, category)
    settings = load_settings(config)
    try:
        prober = CitationProber(
            llm_client=build_llm_client(settings),
            engines=engine or settings.engines,
            temperature=settings.temperature,
        )
    except VisibilityError as exc:
        _fail(str(exc))

    console.print(Panel("[bold cyan]Citation Probe: " + query + "[/bold cyan]"))
    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task(description="Probing " + ", ".join(prober.engines) + "...", total=None)
        try:
            results = _run_async(prober.probe_query(query, business))
        except VisibilityError as exc:
            _fail(str(exc))

    table = Table(title="Engine Results", show_header=True, header_style="bold magenta")
    table.add_column("Engine", style="cyan")
    table.add_column("Cited")
    table.add_column("Other businesses", max_width=50)
    table.add_column("Source", max_width=40)
    for r in results:
        if r.placeholder:
            cited = "[yellow]○ no key[/yellow]"
        elif r.business_cited:
            cited = "[green]✔ yes[/green]"
        else:
            cited = "[red]✘ no[/red]"
        table.add_row(r.engine, cited, ", ".join(r.businesses_found[:5]), r.cited_url or "")
    console.print(table)

    sov = compute_share_of_voice(results)
    console.print(
        f"Share of voice: [bold]{sov.share_of_voice:.0%}[/bold] "
        f"({sov.cited_runs}/{sov.total_runs} runs), citation rate {sov.citation_rate:.0%}"
    )


# ------------------------------------------------------------------
# health
# ------------------------------------------------------------------
@app.command()
def health(
    visibility: Optional[float] = typer.Option(None, "--visibility", help="Latest share of voice, 0-1."),
    open_claims: int = typer.Option(0, "--open-claims", help="Number of open hallucinations."),
    freshness: float = typer.Option(1.0, "--freshness", help="Share of scheduled audits that ran, 0-1."),
    audit_url: Optional[str] = typer.Option(None, "--audit-url", help="Audit this page and use it for the structure score."),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Business name (required with --audit-url)."),
    city: Optional[str] = typer.Option(None, "--city", help="Business city."),
    state: Optional[str] = typer.Option(None, "--state", help="Business state."),
    category: Optional[list[str]] = typer.Option(None, "--category", help="Business category (repeatable)."),
    config: str = CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Compute the composite AI health score."""
    _setup_logging(verbose)
    from ai_visibility.models.health import HealthScoreInput
    from ai_visibility.modules.health import compute_health_score, grade_description

    page_audit = None
    if audit_url:
        if not name:
            _fail("--name is required with --audit-url.")
        from ai_visibility.config import build_llm_client, load_settings
        from ai_visibility.modules.page_audit import PageAuditor

        settings = load_settings(config)
        auditor = PageAuditor(
            llm_client=build_llm_client(settings),
            timeout=settings.fetch_timeout,
            user_agent=settings.user_agent,
            use_llm=settings.llm_answer_first,
        )
        try:
            page_audit = _run_async(
                auditor.audit_page(audit_url, "homepage", _business(name, city, state, category))
            )
        except VisibilityError as exc:
            _fail(str(exc))

    try:
        result = compute_health_score(HealthScoreInput(
            visibility_score=visibility,
            page_audit=page_audit,
            open_claim_count=open_claims,
            audit_freshness_ratio=freshness,
        ))
    except VisibilityError as exc:
        _fail(str(exc))

    console.print(Panel(
        f"[bold]{result.score}[/bold] / 100  grade [bold]{result.grade}[/bold]\n"
        f"{grade_description(result.grade)}",
        title="AI Health Score",
    ))
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Weight", justify="right")
    for component in result.components.values():
        table.add_row(component.label, _score_style(component.score), f"{component.weight:.0%}")
    console.print(table)

    if result.top_recommendation:
        top = result.top_recommendation
        console.print(f"[bold]Top recommendation[/bold] (+{top.estimated_impact}): {top.title}\n  {top.description}")


# ------------------------------------------------------------------
# follow-up
# ------------------------------------------------------------------
@app.command("follow-up")
def follow_up(
    limit: int = typer.Option(50, "--limit", help="Maximum claims to check in one run."),
    config: str = CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Re-check verifying claims whose cooldown has elapsed."""
    _setup_logging(verbose)
    from ai_visibility.config import build_llm_client, load_settings
    from ai_visibility.database import get_session, init_db
    from ai_visibility.modules.correction import CorrectionVerifier, run_correction_follow_up

    settings = load_settings(config)
    init_db(database_url=settings.database_url, echo=settings.database_echo)
    verifier = CorrectionVerifier(
        llm_client=build_llm_client(settings),
        cooldown_days=settings.cooldown_days,
    )

    with get_session() as session:
        summary = _run_async(run_correction_follow_up(session, verifier, limit=limit))

    table = Table(title="Correction Follow-up", show_header=True, header_style="bold magenta")
    table.add_column("Checked", justify="right")
    table.add_column("Fixed", justify="right", style="green")
    table.add_column("Recurring", justify="right", style="red")
    table.add_column("Errors", justify="right", style="yellow")
    table.add_row(str(summary.checked), str(summary.fixed), str(summary.recurring), str(summary.errors))
    console.print(table)


# ------------------------------------------------------------------
# init-db
# ------------------------------------------------------------------
@app.command("init-db")
def init_db_command(
    config: str = CONFIG_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Create the claim store tables."""
    _setup_logging(verbose)
    from ai_visibility.config import load_settings
    from ai_visibility.database import init_db

    settings = load_settings(config)
    init_db(database_url=settings.database_url, echo=settings.database_echo)
    console.print("[green]✔[/green] Database initialised.")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
