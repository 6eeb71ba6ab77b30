"""CLI commands for huddle."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from huddle import __logo__, __version__

app = typer.Typer(
    name="huddle",
    help=f"{__logo__} huddle - AI personas that talk, trade and build together",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} huddle v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """huddle - AI personas that talk, trade and build together."""
    pass


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """Initialize huddle configuration and data directory."""
    from huddle.config.loader import get_config_path, get_env_path, save_config
    from huddle.config.schema import Config
    from huddle.utils.helpers import get_data_path

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config)
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print(f"[green]✓[/green] Created secrets file at {get_env_path()} (mode 600)")

    data_dir = get_data_path()
    (data_dir / "contracts").mkdir(exist_ok=True)
    config.assets_path.mkdir(parents=True, exist_ok=True)
    console.print(f"[green]✓[/green] Data directory at {data_dir}")

    console.print(f"\n{__logo__} huddle is ready!")
    console.print("\nNext steps:")
    console.print("  1. Add your API key to [cyan]~/.huddle/.env[/cyan]")
    console.print("     Example: HUDDLE_PROVIDERS__OPENROUTER__API_KEY=sk-or-v1-xxx")
    console.print("  2. Put the compiled token artifact at [cyan]~/.huddle/contracts/ERC20Token.json[/cyan]")
    console.print("  3. Chat: [cyan]huddle chat -m \"Hey Rishi, create a wallet for me\"[/cyan]")


# ============================================================================
# Shared Orchestrator Factory
# ============================================================================


def _create_provider(config):
    """Pick the chat provider for the configured backend."""
    from huddle.config.schema import OPENAI_COMPATIBLE_PROVIDERS
    from huddle.providers.litellm_provider import LiteLLMProvider
    from huddle.providers.openai_provider import OpenAIProvider

    provider_name = config.get_provider_name()
    model = config.get_model()
    api_key = config.get_api_key()
    is_bedrock = model.startswith("bedrock/")

    if provider_name and not api_key and not is_bedrock:
        console.print(f"[red]Error: No API key configured for provider {provider_name}.[/red]")
        console.print(f"Set one in ~/.huddle/.env: HUDDLE_PROVIDERS__{provider_name.upper()}__API_KEY=your-key")
        raise typer.Exit(1)

    if provider_name in OPENAI_COMPATIBLE_PROVIDERS and not is_bedrock:
        return OpenAIProvider(
            api_key=api_key,
            api_base=config.get_api_base(),
            provider=provider_name,
            default_model=model,
        )
    return LiteLLMProvider(
        api_key=api_key,
        api_base=config.get_api_base(),
        default_model=model,
        provider_name=provider_name,
    )


def _create_orchestrator(config, sink, bus=None):
    """Wire store, tools, router and persona agent from config.

    Shared by the ``gateway`` and ``chat`` commands.
    """
    from huddle.agent import Orchestrator, PersonaAgent, Router
    from huddle.agent.tools import ToolDeps, ToolDispatcher, build_registry
    from huddle.notify import Notifier
    from huddle.personas import build_persona_registry
    from huddle.storage import HuddleStore

    defaults = config.agents.defaults
    provider = _create_provider(config)
    try:
        personas = build_persona_registry(
            default_model=config.get_model(),
            default_persona=defaults.default_persona,
            overrides=config.agents.personas,
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    store = HuddleStore(config.database_path, message_ttl=config.storage.message_ttl)
    notifier = Notifier(sink, timeout=config.notify.timeout)
    deps = ToolDeps.from_config(config, store, notifier)
    registry = build_registry(deps)

    orchestrator = Orchestrator(
        store=store,
        router=Router(provider, personas, model=config.get_classifier_model()),
        agent=PersonaAgent(
            provider,
            ToolDispatcher(registry, notifier),
            model=config.get_model(),
            max_tokens=defaults.max_tokens,
        ),
        notifier=notifier,
        personas=personas,
        max_recursions=defaults.max_recursions,
        history_limit=defaults.history_limit,
        bus=bus,
    )
    return orchestrator, store


# ============================================================================
# Gateway / Server
# ============================================================================


@app.command()
def gateway(
    port: int | None = typer.Option(None, "--port", "-p", help="Gateway port (defaults to config.gateway.port)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Start the huddle gateway (HTTP API, websocket viewers, bus consumer)."""
    from huddle.bus import MessageBus
    from huddle.config.loader import config_has_secrets, load_config, save_config
    from huddle.gateway import create_gateway_app
    from huddle.notify import ConnectionHub

    if verbose:
        import logging
        logging.basicConfig(level=logging.DEBUG)

    config = load_config()

    if config_has_secrets():
        console.print(
            "[yellow]⚠  config.json contains plaintext API keys. "
            "Re-save it with [cyan]huddle onboard[/cyan] to move them to ~/.huddle/.env[/yellow]"
        )

    if port is None:
        port = int(config.gateway.port)

    if not (config.gateway.auth_token or "").strip():
        import secrets
        config.gateway.auth_token = secrets.token_urlsafe(32)
        save_config(config)
        console.print("[green]✓[/green] Generated gateway token (saved to ~/.huddle/.env)")

    console.print(f"{__logo__} Starting huddle gateway on port {port}...")

    bus = MessageBus()
    hub = ConnectionHub(send_timeout=config.notify.viewer_timeout)
    orchestrator, store = _create_orchestrator(config, hub, bus)
    console.print(f"[green]✓[/green] Personas: {', '.join(orchestrator.personas.names)}")

    async def run():
        import uvicorn

        await store.initialize()
        api_app = create_gateway_app(orchestrator, store, hub, config.gateway.auth_token, bus=bus)
        api_config = uvicorn.Config(
            api_app,
            host=config.gateway.host,
            port=port,
            log_level="warning",
            access_log=False,
        )
        api_server = uvicorn.Server(api_config)
        try:
            await asyncio.gather(orchestrator.run(), api_server.serve())
        finally:
            orchestrator.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


# ============================================================================
# Chat Commands
# ============================================================================


@app.command()
def chat(
    message: str = typer.Option(None, "--message", "-m", help="Message to send to the room"),
    session_id: str = typer.Option("cli-default", "--session", "-s", help="Session ID"),
    user: str = typer.Option("cli-user", "--user", "-u", help="Your user id (owns the persona wallets)"),
    single: bool = typer.Option(False, "--single", help="One reply per message, no hand-offs"),
):
    """Talk to the personas directly."""
    from huddle.bus import ChatMode
    from huddle.config.loader import load_config
    from huddle.notify import ConsoleSink

    config = load_config()
    # Replies are printed by the console sink as they are pushed.
    orchestrator, _ = _create_orchestrator(config, ConsoleSink(console))
    mode = ChatMode.STANDARD if single else ChatMode(config.agents.defaults.chat_mode)

    async def turn(text: str) -> None:
        try:
            await orchestrator.process_direct(text, session_id=session_id, sender_id=user, chat_mode=mode)
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")

    if message:
        asyncio.run(turn(message))
        return

    console.print(f"{__logo__} Interactive mode (Ctrl+C to exit)\n")

    async def run_interactive():
        while True:
            try:
                user_input = console.input("[bold blue]You:[/bold blue] ")
            except (KeyboardInterrupt, EOFError):
                console.print("\nGoodbye!")
                break
            if user_input.strip():
                await turn(user_input)

    asyncio.run(run_interactive())


# ============================================================================
# Inspection / Maintenance
# ============================================================================


@app.command()
def personas():
    """List the personas in the room."""
    from huddle.config.loader import load_config
    from huddle.personas import build_persona_registry

    config = load_config()
    registry = build_persona_registry(
        default_model=config.get_model(),
        default_persona=config.agents.defaults.default_persona,
        overrides=config.agents.personas,
    )

    table = Table(title="Personas")
    table.add_column("Name", style="cyan")
    table.add_column("Toolsets")
    table.add_column("Tool rounds", justify="right")
    table.add_column("Model")
    table.add_column("Description")
    for persona in registry:
        name = f"{persona.name} (default)" if persona.is_default else persona.name
        table.add_row(
            name,
            ", ".join(persona.toolsets),
            str(persona.max_tool_rounds),
            persona.model or "",
            persona.description,
        )
    console.print(table)


@app.command()
def tools():
    """List tools and whether their services are configured."""
    from huddle.agent.tools import ToolDeps, build_registry
    from huddle.config.loader import load_config
    from huddle.notify import ConsoleSink, Notifier
    from huddle.storage import HuddleStore

    config = load_config()
    store = HuddleStore(config.database_path, message_ttl=config.storage.message_ttl)
    deps = ToolDeps.from_config(config, store, Notifier(ConsoleSink(console)))
    registry = build_registry(deps)

    table = Table(title="Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Toolsets")
    table.add_column("Available")
    for name in registry.tool_names:
        tool = registry.get(name)
        table.add_row(
            name,
            ", ".join(sorted(registry.get_toolsets(name))),
            "[green]✓[/green]" if tool.is_available() else "[dim]not configured[/dim]",
        )
    console.print(table)


@app.command()
def purge():
    """Delete expired chat messages."""
    from huddle.config.loader import load_config
    from huddle.storage import HuddleStore

    config = load_config()
    store = HuddleStore(config.database_path, message_ttl=config.storage.message_ttl)
    removed = asyncio.run(store.purge_expired())
    console.print(f"[green]✓[/green] Removed {removed} expired message(s)")


@app.command()
def status():
    """Show huddle status."""
    from huddle.config.loader import config_has_secrets, get_config_path, get_env_path, load_config

    config_path = get_config_path()
    env_path = get_env_path()
    config = load_config()

    console.print(f"{__logo__} huddle Status\n")

    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Secrets: {env_path} {'[green]✓[/green]' if env_path.exists() else '[yellow]missing[/yellow]'}")
    if config_has_secrets():
        console.print("  [yellow]⚠  config.json has plaintext keys[/yellow]")
    console.print(f"Database: {config.database_path}")
    artifact = Path(config.contract_artifact_path)
    console.print(f"Token artifact: {artifact} {'[green]✓[/green]' if artifact.exists() else '[dim]missing[/dim]'}")

    console.print(f"Provider: {config.get_provider_name() or 'not set'}")
    console.print(f"Model: {config.get_model()}")
    console.print(f"Chain: {config.chain.network} ({config.chain.rpc_url})")
    for label, ok in (
        ("Basescan", bool(config.verification.api_key)),
        ("Pinata", bool(config.pinata.jwt)),
        ("Twitter", bool(config.twitter.consumer_key)),
        ("xAI", bool(config.xai.api_key)),
    ):
        console.print(f"{label}: {'[green]✓[/green]' if ok else '[dim]not set[/dim]'}")


if __name__ == "__main__":
    app()
