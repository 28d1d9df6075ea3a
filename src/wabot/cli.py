"""
WABOT CLI

Command-line interface for operating the chatbot backend.

Usage:
    wabot init-db                   - Create database tables
    wabot seed [--reset]            - Load sample knowledge base entries
    wabot ask "message" --from ID   - Run one message through the pipeline
    wabot status                    - Show configuration and database status
    wabot serve                     - Start the HTTP server
"""

import asyncio

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from wabot import __version__
from wabot.core.config import get_config_source, settings
from wabot.core.database import get_db
from wabot.services.assistant.pipeline import build_pipeline
from wabot.services.seed_data import SAMPLE_KNOWLEDGE
from wabot.services.stores import KnowledgeStore

# Initialize Typer app and Rich console
app = typer.Typer(
    name="wabot",
    help="WABOT - WhatsApp AI chatbot backend",
    add_completion=False
)
console = Console()


def _yes_no(flag) -> str:
    return "[green]Yes[/green]" if flag else "[red]No[/red]"


# =============================================================================
# Database Commands
# =============================================================================

@app.command("init-db")
def init_db():
    """Create the database tables if they don't exist."""
    try:
        db = get_db()
    except Exception as e:
        console.print(f"[red]Database initialization failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Database ready[/green] ({db.dialect})")


@app.command()
def seed(reset: bool = typer.Option(False, "--reset", help="Delete existing entries first")):
    """Load the sample knowledge base."""
    try:
        store = KnowledgeStore(get_db())
        if reset:
            removed = store.clear()
            console.print(f"[yellow]Removed {removed} existing entries[/yellow]")
        added = store.seed(SAMPLE_KNOWLEDGE)
    except Exception as e:
        console.print(f"[red]Seeding failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Inserted {added} knowledge base entries[/green] ({store.count()} total)")


# =============================================================================
# Chat Commands
# =============================================================================

@app.command()
def ask(
    message: str = typer.Argument(..., help="Message to answer"),
    sender: str = typer.Option("cli", "--from", help="Contact identifier (phone number)"),
):
    """Run one message through the reply pipeline and print the result."""
    try:
        pipeline = build_pipeline(get_db())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    reply = asyncio.run(pipeline.respond(message, sender))

    console.print(Panel(reply.response, title=f"{settings.assistant.bot_name} > {sender}", border_style="green"))
    console.print(
        f"[dim]intent: {reply.intent} | knowledge used: {reply.knowledge_used} | "
        f"model: {reply.model} | {reply.response_time_ms}ms[/dim]"
    )


# =============================================================================
# Status Commands
# =============================================================================

@app.command()
def status():
    """Show configuration and database status."""
    table = Table(title=f"WABOT {__version__} Status", style="bold white")
    table.add_column("Setting", style="cyan", width=22)
    table.add_column("Value")
    table.add_column("Source", style="dim")

    table.add_row("Backend", settings.backend_kind.value, "")
    table.add_row("OpenAI", _yes_no(settings.llm.openai_api_key), get_config_source("llm.openai.api_key"))
    table.add_row("Gemini", _yes_no(settings.llm.gemini_api_key), get_config_source("llm.gemini.api_key"))
    table.add_row("n8n webhook", _yes_no(settings.n8n_webhook_url), get_config_source("webhook.n8n_url"))

    try:
        db = get_db()
        db_status = db.status()
        table.add_row("Database", _yes_no(db_status.get("connected")), db.dialect)
        table.add_row("Knowledge entries", str(KnowledgeStore(db).count()), "")
    except Exception as e:
        table.add_row("Database", f"[red]{e}[/red]", "")

    console.print(table)


@app.command()
def serve(
    host: str = typer.Option(settings.server.host, help="Bind address"),
    port: int = typer.Option(settings.server.port, help="Port"),
    reload: bool = typer.Option(settings.server.dev_mode, help="Reload on code changes"),
):
    """Start the HTTP server."""
    import uvicorn

    console.print(f"[bold green]Starting WABOT on {host}:{port}[/bold green]")
    uvicorn.run("wabot.main:app", host=host, port=port, reload=reload, log_level="info")


@app.command()
def version():
    """Show WABOT version."""
    console.print(f"[bold]WABOT {__version__}[/bold]")


# =============================================================================
# Main Entry Point
# =============================================================================

def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
