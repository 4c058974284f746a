"""CLI commands for replybot."""

from __future__ import annotations

import asyncio
import sys

import typer
from loguru import logger
from rich.console import Console

from replybot import __logo__, __version__
from replybot.config.schema import Config

app = typer.Typer(
    name="replybot",
    help=f"{__logo__} replybot - debounced WhatsApp replies with tool calling",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} replybot v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """replybot - debounced WhatsApp replies with tool calling."""
    pass


def _make_provider(config: Config):
    """Create the model provider, exiting with a hint when no key is configured."""
    from replybot.providers.factory import create_provider

    try:
        return create_provider(config)
    except RuntimeError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _make_agent(config: Config):
    from replybot.agent.loop import AgentLoop
    from replybot.gateway.evolution import EvolutionGateway

    provider = _make_provider(config)
    gateway = EvolutionGateway(
        api_url=config.gateway.url,
        timeout=config.gateway.timeout_seconds,
    )
    return AgentLoop(provider=provider, gateway=gateway, config=config)


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """Initialize replybot configuration."""
    from replybot.config.loader import get_config_path, load_config, save_config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        console.print("  [bold]y[/bold] = overwrite with defaults (existing values will be lost)")
        console.print("  [bold]N[/bold] = refresh config, keeping existing values and adding new fields")
        if typer.confirm("Overwrite?"):
            config = Config()
            save_config(config)
            console.print(f"[green]✓[/green] Config reset to defaults at {config_path}")
        else:
            config = load_config()
            save_config(config)
            console.print(f"[green]✓[/green] Config refreshed, existing values preserved: {config_path}")
    else:
        save_config(Config())
        console.print(f"[green]✓[/green] Created config at {config_path}")

    console.print(f"\n{__logo__} replybot is ready!")
    console.print("\nNext steps:")
    console.print("  1. Add your API key to [cyan]~/.replybot/config.json[/cyan]")
    console.print("  2. Point the Evolution API webhook at [cyan]http://<host>:18790/webhook[/cyan]")
    console.print("  3. Run: [cyan]replybot serve[/cyan]")


# ============================================================================
# Agent
# ============================================================================


@app.command()
def agent(
    message: str = typer.Option(..., "--message", "-m", help="Message to send to the agent"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
):
    """Answer a single message without buffering or history."""
    from replybot.config.loader import load_config

    if verbose:
        logger.enable("replybot")
    else:
        logger.disable("replybot")

    config = load_config()
    agent_loop = _make_agent(config)

    async def run_once() -> str:
        try:
            return await agent_loop.process_direct(message)
        finally:
            await agent_loop.close()

    response = asyncio.run(run_once())
    console.print(f"\n{__logo__} {response}")


# ============================================================================
# Serve
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default from config)"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
):
    """Start the webhook server."""
    import uvicorn

    from replybot.config.loader import load_config
    from replybot.webhook.app import create_app

    _configure_logging(verbose)
    config = load_config()
    agent_loop = _make_agent(config)
    fastapi_app = create_app(agent_loop, config.webhook)

    bind_host = host or config.webhook.host
    bind_port = port or config.webhook.port
    console.print(f"{__logo__} Starting replybot on {bind_host}:{bind_port}{config.webhook.path}")
    console.print(
        f"[dim]Inactivity window {config.buffer.inactivity_seconds}s, "
        f"model {config.agent.model}[/dim]"
    )
    uvicorn.run(fastapi_app, host=bind_host, port=bind_port, log_level="debug" if verbose else "info")


# ============================================================================
# Status
# ============================================================================


@app.command()
def status():
    """Show replybot status."""
    import os

    from replybot.config.loader import get_config_path, load_config
    from replybot.providers.factory import API_KEY_ENV_VARS

    config_path = get_config_path()
    config = load_config()

    console.print(f"{__logo__} replybot Status\n")
    console.print(
        f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}"
    )
    console.print(f"Model: {config.agent.model}")
    console.print(f"Provider: {config.provider.api_base}")
    console.print(f"Gateway: {config.gateway.url}")
    console.print(f"Plans API: {config.tools.api_base_url}")
    console.print(
        f"Webhook: {config.webhook.host}:{config.webhook.port}{config.webhook.path}"
    )
    console.print(
        f"Buffer: {config.buffer.inactivity_seconds}s window, {config.buffer.merge_mode} mode"
    )

    env_key = next((name for name in API_KEY_ENV_VARS if os.environ.get(name, "").strip()), None)
    if config.provider.api_key:
        console.print("API key: [green]✓[/green]")
    elif env_key:
        console.print(f"API key: [green]✓[/green] (from {env_key})")
    else:
        console.print("API key: [dim]not set[/dim]")


if __name__ == "__main__":
    app()
