"""Main CLI application using Typer."""

import asyncio
import json
import sys

import typer
from rich.console import Console
from rich.table import Table

from aitriage import __version__
from aitriage.config.loader import ConfigError, load_config
from aitriage.config.schema import TriageConfig
from aitriage.engine import TriageEngine
from aitriage.privacy.models import PIISummary
from aitriage.risk.categories import infer_site_category
from aitriage.risk.models import Processing, RiskContext, SiteCategory

app = typer.Typer(
    name="aitriage",
    help="aitriage - Local privacy triage for in-browser AI usage",
    no_args_is_help=True,
)

console = Console()

_LEVEL_STYLE = {"low": "green", "medium": "yellow", "high": "red"}


def _load(config_path: str | None) -> TriageConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Failed to load config: {e}[/red]")
        raise typer.Exit(1) from e


def _parse_pairs(pairs: list[str], option: str) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            console.print(f"[red]Invalid {option} value {pair!r}; expected KEY=VALUE[/red]")
            raise typer.Exit(2)
        parsed[key.strip()] = value.strip()
    return parsed


@app.command()
def version():
    """Show aitriage version."""
    console.print(f"aitriage version {__version__}")


@app.command()
def sanitize(
    text: str = typer.Argument(None, help="Text to sanitize (reads stdin if omitted)"),
    category: SiteCategory = typer.Option(
        SiteCategory.GENERAL, "--category", "-k", help="Site category"
    ),
    processing: Processing = typer.Option(
        Processing.UNKNOWN, "--processing", "-p", help="Where AI processing happens"
    ),
    trackers: bool = typer.Option(False, "--trackers", help="Trackers present on the page"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Mask personal data in text before it leaves the device."""
    if text is None:
        text = sys.stdin.read()
    engine = TriageEngine(_load(config_path))
    outcome = engine.sanitize(
        text, category=category, processing=processing, trackers_present=trackers
    )

    if as_json:
        console.print_json(json.dumps(outcome.to_dict()))
        return

    console.print(outcome.sanitized_value, markup=False, highlight=False)
    if outcome.redactions:
        table = Table(title=f"Redactions ({len(outcome.redactions)})")
        table.add_column("Type", style="magenta")
        table.add_column("Start", justify="right")
        table.add_column("End", justify="right")
        table.add_column("Confidence", justify="right")
        for r in outcome.redactions:
            table.add_row(r.type, str(r.start), str(r.end), f"{r.confidence:.2f}")
        console.print(table)
    style = _LEVEL_STYLE.get(str(outcome.risk_level), "white")
    console.print(f"Risk: [{style}]{outcome.risk_level}[/{style}] (score {outcome.score})")
    if outcome.decision:
        reason = f" - {outcome.decision.reason}" if outcome.decision.reason else ""
        console.print(f"Decision: {outcome.decision.action}{reason}")


@app.command()
def assess(
    category: SiteCategory = typer.Option(
        SiteCategory.GENERAL, "--category", "-k", help="Site category"
    ),
    processing: Processing = typer.Option(
        Processing.UNKNOWN, "--processing", "-p", help="Where AI processing happens"
    ),
    trackers: bool = typer.Option(False, "--trackers", help="Trackers present on the page"),
    pii: list[str] = typer.Option(
        [], "--pii", help="Detected PII as TYPE=COUNT (repeatable), e.g. card=1"
    ),
    explain: bool = typer.Option(False, "--explain", "-e", help="Also print an explanation"),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Score the privacy risk of a browsing context."""
    counts: dict[str, int] = {}
    for kind, raw in _parse_pairs(pii, "--pii").items():
        if not raw.isdigit():
            console.print(f"[red]Invalid count for {kind}: {raw!r}[/red]")
            raise typer.Exit(2)
        counts[kind] = int(raw)

    engine = TriageEngine(_load(config_path))
    context = RiskContext(
        processing=processing,
        trackers_present=trackers,
        site_category=category,
        pii_summary=PIISummary(counts=counts),
    )
    assessment = engine.assess_risk(context)
    style = _LEVEL_STYLE.get(str(assessment.level), "white")
    console.print(f"Risk: [{style}]{assessment.level}[/{style}] (score {assessment.score})")
    console.print(f"AI detected: {'yes' if assessment.ai_detected else 'no'}")
    for flag in assessment.red_flags:
        console.print(f"  [red]•[/red] {flag}")
    if explain:
        console.print(asyncio.run(engine.explain_risk(assessment, context)))


@app.command()
def classify(
    url: str = typer.Argument(..., help="Request URL"),
    method: str = typer.Option("POST", "--method", "-m", help="HTTP method"),
    initiator: str = typer.Option(None, "--initiator", "-i", help="Page URL or origin"),
    content_type: str = typer.Option(None, "--content-type", help="Request content-type"),
    response_type: str = typer.Option(None, "--response-type", help="Response content-type"),
    body_size: int = typer.Option(None, "--body-size", help="Request body size in bytes"),
    resource_type: str = typer.Option("xmlhttprequest", "--resource-type", help="Resource type"),
    header: list[str] = typer.Option([], "--header", "-H", help="Request header NAME=VALUE"),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Classify a single network request."""
    headers = _parse_pairs(header, "--header")
    if content_type:
        headers["content-type"] = content_type
    event = {
        "method": method,
        "url": url,
        "context_id": 0,
        "initiator": initiator,
        "resource_type": resource_type,
        "request_headers": headers,
        "response_headers": {"content-type": response_type} if response_type else {},
        "request_body_size": body_size,
    }
    engine = TriageEngine(_load(config_path))
    record = asyncio.run(engine.classify(event))
    if record is None:
        console.print("[dim]Not classified (ignored, malformed or non-HTTP request)[/dim]")
        return

    style = _LEVEL_STYLE.get(str(record.risk).lower(), "white")
    console.print(f"AI: {'yes' if record.is_ai else 'no'} ({record.classification})")
    console.print(f"Risk: [{style}]{record.risk}[/{style}]")
    if record.known_provider:
        console.print(f"Provider: {record.known_provider}")
    console.print(f"Reason: {record.reason}")
    console.print(record.explanation)


@app.command()
def inspect(
    content_type: str = typer.Option(
        "text/html", "--content-type", "-t", help="Response Content-Type"
    ),
    category: SiteCategory = typer.Option(
        SiteCategory.GENERAL, "--category", "-k", help="Site category"
    ),
    processing: Processing = typer.Option(
        Processing.UNKNOWN, "--processing", "-p", help="Where AI processing happens"
    ),
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
):
    """Check an AI response body (read from stdin) for active content."""
    engine = TriageEngine(_load(config_path))
    outcome = engine.inspect_response(
        sys.stdin.read(), content_type, category=category, processing=processing
    )
    if outcome is None:
        console.print(f"[yellow]Nothing to scan for {content_type!r}[/yellow]")
        return
    if outcome.inspection.sanitized is not None:
        console.print(outcome.inspection.sanitized, markup=False, highlight=False)
    flag = "[red]yes[/red]" if outcome.inspection.malicious else "[green]no[/green]"
    console.print(f"Active content: {flag}")
    reason = f" - {outcome.decision.reason}" if outcome.decision.reason else ""
    console.print(f"Decision: {outcome.decision.action}{reason}")


@app.command()
def category(
    hostname: str = typer.Argument(..., help="Site hostname"),
    url: str = typer.Option("", "--url", help="Full page URL"),
    title: str = typer.Option("", "--title", help="Page title"),
):
    """Infer the site category used for risk scoring."""
    console.print(str(infer_site_category(hostname, url, title)))


@app.command()
def serve(
    config_path: str = typer.Option(None, "--config", "-c", help="Path to config file"),
    host: str = typer.Option(None, "--host", help="Bind address (overrides config)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (overrides config)"),
):
    """Start the aitriage API server."""
    from aitriage.cli.server_cmd import serve_command

    serve_command(_load(config_path), host=host, port=port)


def main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
