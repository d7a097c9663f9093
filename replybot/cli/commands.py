"""CLI commands for ReplyBot."""

import asyncio
import json
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from replybot import __logo__, __version__

app = typer.Typer(
    name="replybot",
    help=f"{__logo__} ReplyBot - automated chat replies",
    no_args_is_help=True,
)

console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="Path to config.json")


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} ReplyBot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
):
    """ReplyBot - automated chat replies."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _load(config_path: Path | None):
    from replybot.config.loader import load_config
    from replybot.errors import ConfigurationError

    try:
        return load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)


# ============================================================================
# Setup
# ============================================================================


@app.command()
def onboard(config_path: Path = ConfigOption):
    """Create a default configuration file."""
    from replybot.config.loader import get_config_path, save_config
    from replybot.config.schema import Config, ReplyRule

    path = config_path or get_config_path()

    if path.exists():
        console.print(f"[yellow]Config already exists at {path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    config.auto_reply.keyword_rules = [
        ReplyRule(name="greeting", keywords=("hello", "hi"), response="Hello! How can I help you?"),
        ReplyRule(name="pricing", keywords=("price", "cost"), response="Our pricing is listed on the website."),
    ]
    save_config(config, path)

    console.print(f"[green]✓[/green] Created config at {path}")
    console.print("\nNext steps:")
    console.print(f"  1. Edit keyword rules and AI settings in [cyan]{path}[/cyan]")
    console.print("  2. Try a message: [cyan]replybot simulate -m \"hello\"[/cyan]")


# ============================================================================
# Inspection
# ============================================================================


@app.command()
def status(config_path: Path = ConfigOption):
    """Show auto-reply configuration."""
    config = _load(config_path)
    auto_reply = config.auto_reply

    table = Table(title=f"{__logo__} Auto-reply")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    hours = auto_reply.working_hours
    table.add_row("Enabled", "[green]yes[/green]" if auto_reply.enabled else "[dim]no[/dim]")
    table.add_row("Mode", auto_reply.mode)
    table.add_row("Keyword rules", str(len(auto_reply.keyword_rules)))
    table.add_row("AI model", auto_reply.ai_config.model or "[dim]not set[/dim]")
    table.add_row(
        "Working hours",
        f"{hours.start}-{hours.end} ({hours.timezone})" if hours.enabled else "[dim]always[/dim]",
    )
    table.add_row("Response delay", f"{auto_reply.response_delay}s")
    table.add_row("Bot id", auto_reply.bot_id)
    table.add_row("Stats dir", str(config.storage_path))

    console.print(table)


@app.command()
def match(
    text: str = typer.Argument(..., help="Message text to test"),
    config_path: Path = ConfigOption,
):
    """Test which keyword rule a message would hit."""
    from replybot.auto_reply.keywords import KeywordIndex, normalize

    config = _load(config_path)
    index = KeywordIndex(config.auto_reply.keyword_rules)

    result = index.lookup(normalize(text))
    if result is None:
        console.print("[yellow]No keyword rule matched[/yellow]")
        raise typer.Exit(1)

    kind = "fuzzy" if result.fuzzy else "exact"
    label = f" ({result.rule.name})" if result.rule.name else ""
    console.print(f"[green]✓[/green] Matched [cyan]{result.keyword}[/cyan] \\[{kind}]{label}")
    console.print(f"  {result.rule.response}")


@app.command()
def stats(config_path: Path = ConfigOption):
    """Show persisted reply statistics."""
    from replybot.auto_reply.stats import STATS_KEY

    config = _load(config_path)
    stats_file = config.storage_path / STATS_KEY

    if not stats_file.exists():
        console.print(f"[dim]No stats recorded yet ({stats_file})[/dim]")
        return

    data = json.loads(stats_file.read_text(encoding="utf-8"))

    table = Table(title="Reply statistics")
    table.add_column("Counter", style="cyan")
    table.add_column("Value", justify="right")
    for key in ("totalReplies", "keywordMatches", "aiReplies", "fallbackReplies"):
        table.add_row(key, str(data.get(key, 0)))

    console.print(table)


# ============================================================================
# Simulation
# ============================================================================


class ConsoleSink:
    """Outbound sink that prints replies instead of sending them."""

    async def send(self, conversation_id: str, text: str, options) -> None:
        console.print(f"[bold green]→ {conversation_id}[/bold green]: {text}")


@app.command()
def simulate(
    message: str = typer.Option(..., "--message", "-m", help="Inbound message text"),
    conversation: str = typer.Option("cli@c.us", "--conversation", help="Conversation id"),
    group: bool = typer.Option(False, "--group", help="Treat as a group message"),
    mention: bool = typer.Option(False, "--mention", help="Mention the bot (groups)"),
    no_delay: bool = typer.Option(False, "--no-delay", help="Skip the response delay"),
    config_path: Path = ConfigOption,
):
    """Run one message through the reply engine without a transport."""
    from replybot.auto_reply.events import Contact, InboundEventKind, MessageEvent
    from replybot.auto_reply.plugin import create_plugin
    from replybot.storage.store import MemoryStore

    config = _load(config_path)
    config.auto_reply.enabled = True
    if no_delay:
        config.auto_reply.response_delay = 0

    event = MessageEvent(
        conversation_id=conversation,
        text=message,
        is_group=group,
        mentioned_ids=frozenset({config.auto_reply.bot_id}) if mention else frozenset(),
        contact=Contact(id=conversation, name="cli"),
    )
    kind = InboundEventKind.GROUP_MESSAGE_RECEIVED if group else InboundEventKind.MESSAGE_RECEIVED

    async def run():
        plugin = create_plugin(config, ConsoleSink(), store=MemoryStore())
        await plugin.initialize()
        try:
            return await plugin.handle(kind, event)
        finally:
            await plugin.destroy()

    reply = asyncio.run(run())

    if reply is None:
        console.print("[yellow]No reply[/yellow] (gated or nothing matched)")
        raise typer.Exit(1)

    console.print(f"[dim]kind={reply.kind.value} sent={reply.sent}[/dim]")


if __name__ == "__main__":
    app()
