"""
Command-line interface for NLU Content Analyzer.

Provides commands to analyze text with Watson or Google NLU, optimize text
for target keywords with an LLM, check keyword status, and manage the
estimated cost budget.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .analyzer import AnalysisOrchestrator
from .config import AnalysisConfig, GoogleCredentials, OptimizationSettings, WatsonCredentials
from .cost_tracker import CostTracker
from .errors import AnalyzerError
from .export import write_export
from .keyword_loader import KeywordLoadError, load_keywords, parse_keyword_list
from .keyword_matcher import keyword_statuses
from .model_catalog import DEFAULT_MODEL, MODELS, resolve_model
from .models import AIProvider, AnalysisResult, Feature, KeywordStatus, TextStats
from .optimizer import TextOptimizer
from .session_store import JsonFileSessionStore
from .text_stats import calculate_text_stats

console = Console()

DEFAULT_SESSION_FILE = Path.home() / ".nlu-content-analyzer" / "session.json"

STATUS_STYLES = {
    KeywordStatus.EXACT: "green",
    KeywordStatus.PARTIAL: "yellow",
    KeywordStatus.RELEVANT: "cyan",
    KeywordStatus.MISSING: "red",
}


def _read_text(text: Optional[str], file: Optional[Path]) -> str:
    if file is not None:
        return file.read_text(encoding="utf-8")
    if text:
        return text
    console.print("[red]Error:[/red] Provide text as an argument or with --file")
    sys.exit(1)


def _read_keywords(keywords: Optional[str], keywords_file: Optional[Path]) -> list[str]:
    result: list[str] = []
    if keywords:
        result.extend(parse_keyword_list(keywords))
    if keywords_file is not None:
        result.extend(load_keywords(keywords_file))
    return result


def _load_analysis(path: Optional[Path]) -> Optional[AnalysisResult]:
    if path is None:
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Error:[/red] not valid JSON in {path}: {e}")
        sys.exit(1)
    if not isinstance(data, dict):
        console.print(f"[red]Error:[/red] no saved analysis in {path}")
        sys.exit(1)
    return AnalysisResult.from_dict(data)


def _parse_limits(values: tuple[str, ...]) -> dict[Feature, int]:
    limits: dict[Feature, int] = {}
    for value in values:
        name, sep, number = value.partition("=")
        if not sep:
            raise click.BadParameter(f"expected FEATURE=N, got '{value}'", param_hint="--limit")
        try:
            limits[Feature(name.strip())] = int(number)
        except ValueError:
            raise click.BadParameter(f"invalid limit '{value}'", param_hint="--limit")
    return limits


@click.group()
@click.option(
    "--session-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="NLU_SESSION_FILE",
    default=DEFAULT_SESSION_FILE,
    show_default=True,
    help="JSON file holding session state (credentials, budgets, cost history).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.pass_context
def main(ctx: click.Context, session_file: Path, verbose: bool) -> None:
    """
    NLU Content Analyzer - analyze text and optimize it for target keywords.

    Examples:

        nlu-analyze analyze "IBM Watson is great." --feature keywords

        nlu-analyze optimize --file page.txt -k "comfortable bra, support" --model o4-mini

        nlu-analyze costs
    """
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["store"] = JsonFileSessionStore(session_file)
    ctx.obj["verbose"] = verbose


@main.command()
@click.argument("text", required=False)
@click.option("--file", "-f", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Read text from a file.")
@click.option(
    "--provider",
    type=click.Choice(["watson", "google"]),
    default="watson",
    show_default=True,
    help="NLU provider.",
)
@click.option("--language", default="auto", show_default=True, help="Language code or 'auto'.")
@click.option(
    "--feature",
    "features",
    multiple=True,
    type=click.Choice([f.value for f in Feature]),
    help="Feature to request (repeatable). Defaults to keywords, entities, concepts, categories.",
)
@click.option("--limit", "limits", multiple=True, help="Per-feature limit as FEATURE=N (repeatable).")
@click.option("--tone-model", default=None, help="Watson tone model (defaults from language).")
@click.option(
    "--credentials-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to an ibm-credentials.env file.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Export results to a .csv or .json file.",
)
@click.option(
    "--save",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Save the raw analysis (for later 'optimize --prior' or 'status').",
)
@click.pass_context
def analyze(
    ctx: click.Context,
    text: Optional[str],
    file: Optional[Path],
    provider: str,
    language: str,
    features: tuple[str, ...],
    limits: tuple[str, ...],
    tone_model: Optional[str],
    credentials_file: Optional[Path],
    output: Optional[Path],
    save: Optional[Path],
) -> None:
    """Analyze TEXT with Watson or Google NLU."""
    verbose = ctx.obj["verbose"]
    content = _read_text(text, file)

    try:
        config = AnalysisConfig(
            language=language,
            features=frozenset(Feature(f) for f in features) if features else AnalysisConfig().features,
            limits={**AnalysisConfig().limits, **_parse_limits(limits)},
            tone_model=tone_model,
        )
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    if credentials_file is not None:
        try:
            watson_credentials = WatsonCredentials.from_credentials_file(credentials_file)
        except ValueError as e:
            console.print(f"[red]Credentials error:[/red] {e}")
            sys.exit(1)
    else:
        watson_credentials = WatsonCredentials.from_env()

    google_credentials = GoogleCredentials.from_env()

    # Credentials from the environment override those saved in the session
    orchestrator = AnalysisOrchestrator(
        ctx.obj["store"],
        watson_credentials=watson_credentials if watson_credentials.api_key else None,
        google_credentials=google_credentials if google_credentials.api_key else None,
    )

    console.print(Panel.fit(
        "[bold blue]NLU Content Analyzer[/bold blue]\n"
        f"Analyzing text with {provider}",
        border_style="blue",
    ))

    try:
        with console.status(f"[bold green]Analyzing with {provider}..."):
            result = asyncio.run(orchestrator.analyze_text(content, config, provider))
    except AnalyzerError as e:
        console.print(f"[red]Analysis failed:[/red] {e.guidance or e.message}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    stats = calculate_text_stats(content)
    _display_analysis(result, stats, verbose)

    if save is not None:
        save.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        console.print(f"[dim]Analysis saved to: {save}[/dim]")

    if output is not None:
        try:
            path = write_export(result, output, stats)
        except ValueError as e:
            console.print(f"[red]Export error:[/red] {e}")
            sys.exit(1)
        console.print(f"\n[bold green]Success![/bold green] Results exported to: {path}")


@main.command()
@click.argument("text", required=False)
@click.option("--file", "-f", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Read text from a file.")
@click.option("--keywords", "-k", help="Comma-separated target keywords.")
@click.option(
    "--keywords-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Keyword file (CSV, Excel or text).",
)
@click.option("--model", "-m", default=DEFAULT_MODEL, show_default=True, help="LLM model id.")
@click.option("--api-key", help="API key for the model's provider (defaults to OPENAI_API_KEY / ANTHROPIC_API_KEY).")
@click.option(
    "--prior",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Saved analysis of the original text (from 'analyze --save').",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the optimized text to a file.",
)
@click.pass_context
def optimize(
    ctx: click.Context,
    text: Optional[str],
    file: Optional[Path],
    keywords: Optional[str],
    keywords_file: Optional[Path],
    model: str,
    api_key: Optional[str],
    prior: Optional[Path],
    output: Optional[Path],
) -> None:
    """Rewrite TEXT around target keywords with OpenAI or Anthropic."""
    store = ctx.obj["store"]
    content = _read_text(text, file)

    try:
        target_keywords = _read_keywords(keywords, keywords_file)
        prior_result = _load_analysis(prior)
    except KeywordLoadError as e:
        console.print(f"[red]Keyword loading error:[/red] {e}")
        sys.exit(1)

    if not target_keywords:
        console.print("[red]Error:[/red] Provide target keywords with --keywords or --keywords-file")
        sys.exit(1)

    settings = OptimizationSettings.from_env(model=model)
    key = api_key or settings.api_key

    console.print(Panel.fit(
        "[bold blue]NLU Content Analyzer[/bold blue]\n"
        f"Optimizing text with {settings.model} ({settings.provider.value})",
        border_style="blue",
    ))

    optimizer = TextOptimizer(store)
    try:
        with console.status("[bold green]Optimizing text..."):
            result = asyncio.run(optimizer.optimize(content, target_keywords, prior_result, key, settings.model))
    except AnalyzerError as e:
        console.print(f"[red]Optimization failed:[/red] {e.guidance or e.message}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if result.is_degraded:
        console.print("[yellow]Warning:[/yellow] provider unavailable, showing fallback text")

    console.print(Panel(result.optimized_text, title="Optimized text", border_style="green"))
    _display_statuses(result.keyword_statuses)

    budget = optimizer.cost_tracker.budget(settings.provider)
    cost = result.cost_record.estimated_cost if result.cost_record else 0.0
    console.print(f"\nCost: ${cost:.5f}, Remaining budget: ${budget.remaining:.2f}")

    if output is not None:
        output.write_text(result.optimized_text, encoding="utf-8")
        console.print(f"\n[bold green]Success![/bold green] Optimized text saved to: {output}")


@main.command()
@click.option("--keywords", "-k", required=True, help="Comma-separated target keywords.")
@click.option(
    "--analysis",
    "analysis_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Saved analysis (from 'analyze --save').",
)
def status(keywords: str, analysis_path: Path) -> None:
    """Show how well target keywords are represented in an analysis."""
    result = _load_analysis(analysis_path)
    _display_statuses(keyword_statuses(parse_keyword_list(keywords), result))


@main.command()
@click.option(
    "--reset",
    type=click.Choice(["openai", "anthropic", "all"]),
    help="Reset history and budget for a provider, or for all.",
)
@click.option(
    "--set-budget",
    nargs=2,
    type=(click.Choice(["openai", "anthropic"]), float),
    help="Set the remaining budget: PROVIDER AMOUNT.",
)
@click.pass_context
def costs(ctx: click.Context, reset: Optional[str], set_budget: Optional[tuple[str, float]]) -> None:
    """Show estimated AI spend, budgets and cost history."""
    tracker = CostTracker(ctx.obj["store"])

    if reset:
        tracker.reset_tracking(None if reset == "all" else AIProvider(reset))
        console.print(f"[green]Cost tracking reset for {reset}[/green]")

    if set_budget:
        provider, amount = set_budget
        try:
            tracker.set_budget(AIProvider(provider), amount)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        console.print(f"[green]Budget for {provider} set to ${amount:.2f}[/green]")

    budget_table = Table(title="Budgets", show_header=True)
    budget_table.add_column("Provider", style="cyan")
    budget_table.add_column("Remaining", style="green")
    budget_table.add_column("Spent", style="yellow")
    for provider in AIProvider:
        budget = tracker.budget(provider)
        budget_table.add_row(provider.value, f"${budget.remaining:.2f}", f"${budget.total_spent:.5f}")
    console.print(budget_table)

    history = tracker.history()
    if history:
        history_table = Table(title="Cost History", show_header=True)
        history_table.add_column("Model", style="cyan")
        history_table.add_column("Input tokens")
        history_table.add_column("Output tokens")
        history_table.add_column("Cost", style="yellow")
        for record in history:
            history_table.add_row(
                record.model,
                str(record.estimated_input_tokens),
                str(record.estimated_output_tokens),
                f"${record.estimated_cost:.5f}",
            )
        console.print(history_table)


@main.command()
def models() -> None:
    """List the available LLM models."""
    table = Table(title="Models", show_header=True)
    table.add_column("Model", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Provider", style="green")
    table.add_column("Token parameter")
    table.add_column("Cost-effective")

    for model_id in MODELS:
        config = resolve_model(model_id)
        table.add_row(
            config.id,
            config.name,
            config.provider.value,
            config.param_style,
            "Yes" if config.cost_effective else "No",
        )

    console.print(table)


def _display_analysis(result: AnalysisResult, stats: TextStats, verbose: bool) -> None:
    """Display analysis summary."""
    console.print(
        f"\n[bold]Text:[/bold] {stats.word_count} words, {stats.sentence_count} sentences, "
        f"{stats.char_count} characters  [bold]Language:[/bold] {result.language}"
    )

    if result.keywords:
        kw_table = Table(title="Keywords", show_header=True)
        kw_table.add_column("Keyword", style="green")
        kw_table.add_column("Relevance", style="cyan")
        kw_table.add_column("Sentiment")
        for k in result.keywords:
            kw_table.add_row(k.text, f"{k.relevance:.2f}", k.sentiment.label if k.sentiment else "")
        console.print(kw_table)

    if result.entities:
        entity_table = Table(title="Entities", show_header=True)
        entity_table.add_column("Entity", style="green")
        entity_table.add_column("Type", style="cyan")
        entity_table.add_column("Relevance")
        for e in result.entities:
            entity_table.add_row(e.text, e.type, f"{e.relevance:.2f}")
        console.print(entity_table)

    if result.categories:
        console.print("\n[cyan]Categories:[/cyan] " + ", ".join(c.label for c in result.categories))

    if result.concepts:
        console.print("[cyan]Concepts:[/cyan] " + ", ".join(c.text for c in result.concepts))

    if result.classifications:
        console.print("[cyan]Tone:[/cyan] " + ", ".join(
            f"{c.class_name} ({c.confidence:.2f})" for c in result.classifications
        ))

    if result.sentiment:
        console.print(f"[cyan]Sentiment:[/cyan] {result.sentiment.label} ({result.sentiment.score:.2f})")

    if verbose:
        console.print(f"\n[dim]Request id: {result.request_id}[/dim]")


def _display_statuses(statuses: dict[str, KeywordStatus]) -> None:
    table = Table(title="Keyword Status", show_header=True)
    table.add_column("Keyword", style="green")
    table.add_column("Status")
    for keyword, keyword_status in statuses.items():
        style = STATUS_STYLES[keyword_status]
        table.add_row(keyword, f"[{style}]{keyword_status.value}[/{style}]")
    console.print(table)


def run_cli() -> None:
    """Entry point for the CLI."""
    main()


if __name__ == "__main__":
    run_cli()
