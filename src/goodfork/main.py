"""
GoodFork - CLI Entry Point.

Usage:
    goodfork recommend --user-id <id>   Generate recommendations for a user
    goodfork alignment <user-id>        Show goal alignment
    goodfork feedback <rec-id> ...      Record feedback
    goodfork health                     Check system health
    goodfork serve                      Run the web API
    goodfork --help                     Show help
"""

import asyncio
import logging
import os

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table

app = typer.Typer(
    name="goodfork",
    help="GoodFork - personalized meal recommendations.",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """GoodFork - personalized meal recommendations."""
    logging.basicConfig(level="DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING").upper())


@app.command()
def recommend(
    user_id: str = typer.Option(None, "--user-id", "-u", help="User id to recommend for"),
    email: str = typer.Option(None, "--email", "-e", help="User email (used when no id is given)"),
    limit: int = typer.Option(4, "--limit", "-n", help="Number of recommendations (3-5)"),
    deterministic: bool = typer.Option(False, "--deterministic", "-d", help="Skip the LLM rerank"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log all LLM prompts to prompt_logs/"),
) -> None:
    """Generate and persist recommendations for one user."""
    from pydantic import ValidationError

    from goodfork.config import get_settings
    from goodfork.db.store import get_store
    from goodfork.engine.pipeline import RecommendationEngine
    from goodfork.errors import RecommendationError
    from goodfork.llm.prompt_logger import enable_prompt_logging, get_session_log_dir
    from goodfork.models.recommendation import RecommendationRequest

    settings = get_settings()
    log_prompts = log_prompts or (settings.goodfork_log_prompts and settings.is_development)
    if log_prompts:
        enable_prompt_logging(True)

    try:
        request = RecommendationRequest(
            user_id=user_id,
            email=email,
            limit=limit,
            deterministic_only=deterministic,
        )
    except ValidationError as e:
        console.print(f"\n[red]❌ Invalid request: {e.errors()[0]['msg']}[/red]")
        raise typer.Exit(2)

    engine = RecommendationEngine(store=get_store(), settings=settings)

    try:
        with Live(Spinner("dots", text="Ranking..."), console=console, transient=True):
            response = asyncio.run(engine.generate(request))
    except RecommendationError as e:
        console.print(f"\n[red]❌ {e.error_code}: {e.client_message}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Recommendations ({response.delivered}/{response.requested}, source={response.source})")
    table.add_column("#", justify="right")
    table.add_column("Recipe", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Macros")
    table.add_column("Stock")
    for index, card in enumerate(response.recommendations, start=1):
        table.add_row(
            str(index),
            card.title,
            str(card.metadata.base_score),
            card.macros.label or "-",
            f"{card.inventory.status} ({card.inventory.quantity})",
        )
    console.print(table)

    for card in response.recommendations:
        reasons = ", ".join(f"{a.reason} ({a.delta:+d})" for a in card.metadata.adjustments)
        body = f"{card.rationale}\n\n[dim]Swap:[/dim] {card.healthy_swap_copy or '-'}"
        if card.swap_recipe:
            body += f"\n[dim]Try instead:[/dim] {card.swap_recipe.title}"
        if reasons:
            body += f"\n[dim]{reasons}[/dim]"
        console.print(Panel.fit(body, title=card.title, border_style="green"))

    if log_prompts:
        log_dir = get_session_log_dir()
        if log_dir:
            console.print(f"\n[dim]📝 Prompts logged to: {log_dir}[/dim]")


@app.command()
def alignment(
    user_id: str = typer.Argument(..., help="User id"),
) -> None:
    """Show how recent meals line up with the user's primary goal."""
    from goodfork.db.store import get_store
    from goodfork.goal_alignment import get_goal_alignment

    result = asyncio.run(get_goal_alignment(get_store(), user_id))

    goal = result.goal.label if result.goal else "No goal set"
    console.print(f"\n[bold]{goal}[/bold]  average {result.average_score}/100 over {result.sample_count} meals")
    if result.used_fallback_data:
        console.print("[dim]No engaged meals yet; using recent recommendations.[/dim]")

    table = Table()
    table.add_column("Recipe")
    table.add_column("Status")
    table.add_column("Score", justify="right")
    table.add_column("Band")
    table.add_column("Note")
    for sample in result.samples:
        table.add_row(sample.recipe_title, sample.status, str(sample.score), sample.band, sample.note)
    console.print(table)


@app.command()
def feedback(
    recommendation_id: str = typer.Argument(..., help="Recommendation id"),
    user_id: str = typer.Option(..., "--user-id", "-u", help="Owner of the recommendation"),
    action: str = typer.Option("ACCEPT", "--action", "-a", help="ACCEPT, SAVE or SWAP"),
    notes: str = typer.Option(None, "--notes", help="Optional note (2-280 chars)"),
) -> None:
    """Record feedback on a recommendation."""
    from pydantic import ValidationError

    from goodfork.db.store import get_store
    from goodfork.errors import RecommendationError
    from goodfork.feedback import log_feedback_event
    from goodfork.models.recommendation import FeedbackRequest

    try:
        request = FeedbackRequest(
            recommendation_id=recommendation_id,
            user_id=user_id,
            action=action.upper(),
            notes=notes,
        )
    except ValidationError as e:
        console.print(f"\n[red]❌ Invalid feedback: {e.errors()[0]['msg']}[/red]")
        raise typer.Exit(2)

    try:
        record = asyncio.run(log_feedback_event(get_store(), request))
    except RecommendationError as e:
        console.print(f"\n[red]❌ {e.error_code}: {e.client_message}[/red]")
        raise typer.Exit(1)

    console.print(f"✅ Recorded {record.action.value} ({record.sentiment.value}) as {record.id}")


@app.command()
def health() -> None:
    """Check system health and configuration."""
    from goodfork.config import get_settings

    console.print("\n[bold]GoodFork Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("✅ Configuration loaded")
        console.print(f"   Environment: {settings.goodfork_env}")
        console.print(f"   Log level: {settings.log_level}")

        if settings.supabase_url.startswith("https://"):
            console.print("✅ Supabase URL configured")
        else:
            console.print("❌ Supabase URL missing or invalid")

        if settings.ai_ranking_configured:
            console.print(f"✅ AI ranking enabled ({settings.recommender_model})")
        elif settings.require_ai_ranking:
            console.print("❌ AI ranking required but not configured")
        else:
            console.print("ℹ️  AI ranking disabled, deterministic ranking only")

        console.print("\n[green]All checks passed![/green]")

    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def db() -> None:
    """Check database connection and schema."""
    from goodfork.db.client import get_client

    console.print("\n[bold]Database Connection Check[/bold]\n")

    try:
        client = get_client()
        console.print("✅ Connected to Supabase")

        tables = [
            "users",
            "user_profiles",
            "recipes",
            "inventory_items",
            "recommendations",
            "feedback",
        ]

        console.print("\n[bold]Table Status:[/bold]")
        for table in tables:
            try:
                result = client.table(table).select("*", count="exact").limit(0).execute()
                count = result.count if hasattr(result, "count") else "?"
                console.print(f"  ✅ {table}: {count} rows")
            except Exception as e:
                console.print(f"  ❌ {table}: {e}")

        console.print("\n[green]Database check complete![/green]")

    except Exception as e:
        console.print(f"\n[red]❌ Database connection failed: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
) -> None:
    """Run the web API with uvicorn."""
    import uvicorn

    uvicorn.run("goodfork.web.app:app", host=host, port=port, reload=reload)


@app.command()
def version() -> None:
    """Show version information."""
    from goodfork import __version__

    console.print(f"GoodFork version {__version__}")


if __name__ == "__main__":
    app()
